"""
External collaborator interfaces.

The engine queries these systems but does not own them. Implementations may
raise any exception; the shell treats a failure either as a primary
side-effect failure (custody transfer, payout) with explicit compensation, or
as a best-effort failure recorded in the outcome log.

`integration/memory.py` ships in-memory implementations of every protocol.
"""

from __future__ import annotations

from typing import Mapping, Optional, Protocol, Sequence, Tuple

from ..core.fees import REWARD_CURRENCY


class AssetCustody(Protocol):
    def owner_of(self, identity_key: int) -> str: ...

    def transfer(self, identity_key: int, src: str, dst: str) -> None: ...

    def force_transfer(self, identity_key: int, src: str, dst: str) -> None: ...


class FungibleToken(Protocol):
    def balance_of(self, account: str) -> int: ...

    def allowance(self, owner: str, spender: str) -> int: ...

    def transfer_from(self, spender: str, src: str, dst: str, amount: int) -> None: ...

    def mint(self, minter: str, to: str, amount: int) -> None: ...

    def burn_from(self, spender: str, owner: str, amount: int) -> None: ...

    def is_mint_exempt(self, account: str) -> bool: ...


class TraitRegistry(Protocol):
    def variant_of(self, identity_key: int) -> int: ...

    def accessory_bonuses(self, identity_key: int) -> Sequence[int]: ...


class WearOracle(Protocol):
    def wear_level(self, identity_key: int) -> int: ...


class ColonyAuthority(Protocol):
    def colony_of(self, identity_key: int) -> int: ...

    def members_of(self, colony_id: int) -> Sequence[int]: ...

    def creator_bonus_ceiling(self) -> int: ...

    def set_colony_bonus(self, colony_id: int, bonus: int) -> None: ...


class SpecializationRegistry(Protocol):
    def specialization_of(self, identity_key: int) -> int: ...


class ExperienceSink(Protocol):
    def award(self, identity_key: int, amount: int) -> None: ...

    def progress_of(self, identity_key: int) -> Tuple[int, int]: ...


class AchievementSink(Protocol):
    def record(self, account: str, kind: str, value: int) -> None: ...


class PrerequisitePolicy(Protocol):
    def is_activated(self, account: str) -> bool: ...


class Collaborators:
    """
    The set of external systems one program talks to.

    `tokens` maps a currency reference to its token; the reward token is
    registered under `REWARD_CURRENCY`. Optional collaborators may be None, in
    which case the matching signal falls back to its neutral value.
    """

    def __init__(
        self,
        *,
        custody: AssetCustody,
        tokens: Mapping[str, FungibleToken],
        traits: Optional[TraitRegistry] = None,
        wear: Optional[WearOracle] = None,
        colony_authority: Optional[ColonyAuthority] = None,
        specialization: Optional[SpecializationRegistry] = None,
        experience: Optional[ExperienceSink] = None,
        achievements: Optional[AchievementSink] = None,
        prerequisite: Optional[PrerequisitePolicy] = None,
    ) -> None:
        if REWARD_CURRENCY not in tokens:
            raise ValueError(f"tokens must include the {REWARD_CURRENCY!r} currency")
        self.custody = custody
        self.tokens = dict(tokens)
        self.traits = traits
        self.wear = wear
        self.colony_authority = colony_authority
        self.specialization = specialization
        self.experience = experience
        self.achievements = achievements
        self.prerequisite = prerequisite

    @property
    def reward_token(self) -> FungibleToken:
        return self.tokens[REWARD_CURRENCY]

    def token(self, currency: str) -> FungibleToken:
        tok = self.tokens.get(currency)
        if tok is None:
            raise KeyError(f"unknown currency: {currency}")
        return tok
