"""
In-memory collaborator implementations.

Used by the test-suite, the offline demo, and any embedding that keeps the
whole program in one process. Every class accepts a `failing` set of method
names; a listed method raises `CollaboratorError` instead of running, which is
how partial-failure and rollback paths are exercised.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

from ..core.constants import SECONDS_PER_DAY
from ..errors import CollaboratorError


@dataclass
class _FailureInjection:
    failing: Set[str] = field(default_factory=set)
    calls: List[Tuple[str, tuple]] = field(default_factory=list)

    def _enter(self, method: str, *args: object) -> None:
        self.calls.append((method, args))
        if method in self.failing:
            raise CollaboratorError(f"{type(self).__name__}.{method} failed")


@dataclass
class InMemoryCustody(_FailureInjection):
    """Asset ownership registry: identity_key -> owner account."""

    owners: Dict[int, str] = field(default_factory=dict)

    def mint_asset(self, identity_key: int, owner: str) -> None:
        self.owners[identity_key] = owner

    def owner_of(self, identity_key: int) -> str:
        self._enter("owner_of", identity_key)
        owner = self.owners.get(identity_key)
        if owner is None:
            raise CollaboratorError(f"unknown asset {identity_key}")
        return owner

    def transfer(self, identity_key: int, src: str, dst: str) -> None:
        self._enter("transfer", identity_key, src, dst)
        self._move(identity_key, src, dst)

    def force_transfer(self, identity_key: int, src: str, dst: str) -> None:
        self._enter("force_transfer", identity_key, src, dst)
        self._move(identity_key, src, dst)

    def _move(self, identity_key: int, src: str, dst: str) -> None:
        if self.owners.get(identity_key) != src:
            raise CollaboratorError(f"asset {identity_key} is not held by {src}")
        self.owners[identity_key] = dst


@dataclass
class InMemoryToken(_FailureInjection):
    """
    Fungible token with allowances and a privileged mint.

    Minting is restricted to `minters`; a minter that is not in
    `mint_exempt` is limited to `daily_mint_limit` per UTC day (None means
    unlimited). `clock` supplies the day for that limit.
    """

    balances: Dict[str, int] = field(default_factory=dict)
    allowances: Dict[Tuple[str, str], int] = field(default_factory=dict)
    minters: Set[str] = field(default_factory=set)
    mint_exempt: Set[str] = field(default_factory=set)
    daily_mint_limit: Optional[int] = None
    clock: Optional[object] = None
    total_supply: int = 0
    _minted_today: Dict[Tuple[str, int], int] = field(default_factory=dict)

    def credit(self, account: str, amount: int) -> None:
        self.balances[account] = self.balances.get(account, 0) + amount
        self.total_supply += amount

    def approve(self, owner: str, spender: str, amount: int) -> None:
        self.allowances[(owner, spender)] = amount

    def balance_of(self, account: str) -> int:
        self._enter("balance_of", account)
        return self.balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        self._enter("allowance", owner, spender)
        return self.allowances.get((owner, spender), 0)

    def transfer_from(self, spender: str, src: str, dst: str, amount: int) -> None:
        self._enter("transfer_from", spender, src, dst, amount)
        if spender != src:
            allowed = self.allowances.get((src, spender), 0)
            if allowed < amount:
                raise CollaboratorError(f"allowance {allowed} < {amount} for {spender} on {src}")
            self.allowances[(src, spender)] = allowed - amount
        have = self.balances.get(src, 0)
        if have < amount:
            raise CollaboratorError(f"balance {have} < {amount} for {src}")
        self.balances[src] = have - amount
        self.balances[dst] = self.balances.get(dst, 0) + amount

    def mint(self, minter: str, to: str, amount: int) -> None:
        self._enter("mint", minter, to, amount)
        if self.minters and minter not in self.minters:
            raise CollaboratorError(f"{minter} is not a minter")
        if self.daily_mint_limit is not None and minter not in self.mint_exempt:
            day = self._day()
            used = self._minted_today.get((minter, day), 0)
            if used + amount > self.daily_mint_limit:
                raise CollaboratorError("daily mint limit exceeded")
            self._minted_today[(minter, day)] = used + amount
        self.credit(to, amount)

    def burn_from(self, spender: str, owner: str, amount: int) -> None:
        self._enter("burn_from", spender, owner, amount)
        if spender != owner:
            allowed = self.allowances.get((owner, spender), 0)
            if allowed < amount:
                raise CollaboratorError(f"allowance {allowed} < {amount} for {spender} on {owner}")
            self.allowances[(owner, spender)] = allowed - amount
        have = self.balances.get(owner, 0)
        if have < amount:
            raise CollaboratorError(f"balance {have} < {amount} for {owner}")
        self.balances[owner] = have - amount
        self.total_supply -= amount

    def is_mint_exempt(self, account: str) -> bool:
        self._enter("is_mint_exempt", account)
        return account in self.mint_exempt

    def _day(self) -> int:
        if self.clock is None:
            return 0
        return int(self.clock()) // SECONDS_PER_DAY  # type: ignore[operator]


@dataclass
class InMemoryTraits(_FailureInjection):
    variants: Dict[int, int] = field(default_factory=dict)
    accessories: Dict[int, List[int]] = field(default_factory=dict)

    def variant_of(self, identity_key: int) -> int:
        self._enter("variant_of", identity_key)
        return self.variants.get(identity_key, 1)

    def accessory_bonuses(self, identity_key: int) -> Sequence[int]:
        self._enter("accessory_bonuses", identity_key)
        return list(self.accessories.get(identity_key, ()))


@dataclass
class InMemoryWearOracle(_FailureInjection):
    levels: Dict[int, int] = field(default_factory=dict)

    def wear_level(self, identity_key: int) -> int:
        self._enter("wear_level", identity_key)
        return self.levels.get(identity_key, 0)


@dataclass
class InMemoryColonyAuthority(_FailureInjection):
    """External source of truth for colony membership."""

    memberships: Dict[int, int] = field(default_factory=dict)
    bonuses: Dict[int, int] = field(default_factory=dict)
    creator_ceiling: int = 25
    failing_colonies: Set[int] = field(default_factory=set)

    def colony_of(self, identity_key: int) -> int:
        self._enter("colony_of", identity_key)
        return self.memberships.get(identity_key, 0)

    def members_of(self, colony_id: int) -> Sequence[int]:
        self._enter("members_of", colony_id)
        if colony_id in self.failing_colonies:
            raise CollaboratorError(f"authority unavailable for colony {colony_id}")
        return sorted(k for k, c in self.memberships.items() if c == colony_id)

    def creator_bonus_ceiling(self) -> int:
        self._enter("creator_bonus_ceiling")
        return self.creator_ceiling

    def set_colony_bonus(self, colony_id: int, bonus: int) -> None:
        self._enter("set_colony_bonus", colony_id, bonus)
        self.bonuses[colony_id] = bonus


@dataclass
class InMemorySpecializations(_FailureInjection):
    specializations: Dict[int, int] = field(default_factory=dict)

    def specialization_of(self, identity_key: int) -> int:
        self._enter("specialization_of", identity_key)
        return self.specializations.get(identity_key, 0)


@dataclass
class InMemoryExperience(_FailureInjection):
    experience: Dict[int, int] = field(default_factory=dict)
    xp_per_level: int = 1_000

    def award(self, identity_key: int, amount: int) -> None:
        self._enter("award", identity_key, amount)
        self.experience[identity_key] = self.experience.get(identity_key, 0) + amount

    def progress_of(self, identity_key: int) -> Tuple[int, int]:
        self._enter("progress_of", identity_key)
        xp = self.experience.get(identity_key, 0)
        return min(1 + xp // self.xp_per_level, 100), xp


@dataclass
class InMemoryAchievements(_FailureInjection):
    records: List[Tuple[str, str, int]] = field(default_factory=list)

    def record(self, account: str, kind: str, value: int) -> None:
        self._enter("record", account, kind, value)
        self.records.append((account, kind, value))


@dataclass
class InMemoryPrerequisite(_FailureInjection):
    activated: Set[str] = field(default_factory=set)

    def is_activated(self, account: str) -> bool:
        self._enter("is_activated", account)
        return account in self.activated
