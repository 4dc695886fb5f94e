"""
Position ledger table.

Implements PositionTable[identity_key] -> Position with a per-owner index
(list + slot map, swap-with-last removal) and global counters.

Positions are frozen; callers replace a record to mutate it, which keeps the
previous record available as a rollback snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from ..core.constants import (
    MAX_CHARGE,
    MAX_INFUSION_LEVEL,
    MAX_LEVEL,
    MAX_SPECIALIZATION,
    MAX_VARIANT,
    MAX_WEAR,
    MIN_LEVEL,
    MIN_VARIANT,
)
from ..core.identity import collection_of
from ..core.math import require_range, require_uint


Account = str


@dataclass(frozen=True)
class Position:
    identity_key: int
    owner: Account
    custody_source: Account
    staked_at: int
    last_claim_timestamp: int
    last_sync_timestamp: int
    variant: int = 1
    level: int = 1
    experience: int = 0
    charge_level: int = MAX_CHARGE
    infusion_level: int = 0
    specialization: int = 0
    wear_level: int = 0
    wear_penalty: int = 0
    colony_id: int = 0
    total_rewards_claimed: int = 0
    staked: bool = True

    def __post_init__(self) -> None:
        require_uint("identity_key", self.identity_key)
        if not isinstance(self.owner, str):
            raise TypeError("owner must be a str")
        for name, v in (
            ("staked_at", self.staked_at),
            ("last_claim_timestamp", self.last_claim_timestamp),
            ("last_sync_timestamp", self.last_sync_timestamp),
            ("experience", self.experience),
            ("colony_id", self.colony_id),
            ("total_rewards_claimed", self.total_rewards_claimed),
        ):
            require_uint(name, v)
        require_range("variant", self.variant, MIN_VARIANT, MAX_VARIANT)
        require_range("level", self.level, MIN_LEVEL, MAX_LEVEL)
        require_range("charge_level", self.charge_level, 0, MAX_CHARGE)
        require_range("infusion_level", self.infusion_level, 0, MAX_INFUSION_LEVEL)
        require_range("specialization", self.specialization, 0, MAX_SPECIALIZATION)
        require_range("wear_level", self.wear_level, 0, MAX_WEAR)
        require_range("wear_penalty", self.wear_penalty, 0, 100)
        if not isinstance(self.staked, bool):
            raise TypeError("staked must be a bool")

    @property
    def active(self) -> bool:
        return self.staked and bool(self.owner)


def new_position(
    identity_key: int,
    owner: Account,
    custody_source: Account,
    now: int,
    variant: int = 1,
) -> Position:
    """Fresh position: every timestamp at `now`, level 1, full charge, no bonuses."""
    return Position(
        identity_key=identity_key,
        owner=owner,
        custody_source=custody_source,
        staked_at=now,
        last_claim_timestamp=now,
        last_sync_timestamp=now,
        variant=variant,
    )


@dataclass
class PositionTable:
    """
    Mutable mapping: identity_key -> Position, plus owner index and counters.

    Owner lists keep insertion order except where swap-with-last removal moved
    an entry; batch cursors index into these lists.
    """

    _positions: Dict[int, Position] = field(default_factory=dict)
    _by_owner: Dict[Account, List[int]] = field(default_factory=dict)
    _slot: Dict[int, int] = field(default_factory=dict)
    _per_collection: Dict[int, int] = field(default_factory=dict)
    _cooldown_until: Dict[int, int] = field(default_factory=dict)
    total_rewards_claimed: int = 0

    def get(self, identity_key: int) -> Optional[Position]:
        return self._positions.get(identity_key)

    def __contains__(self, identity_key: object) -> bool:
        return identity_key in self._positions

    def __len__(self) -> int:
        return len(self._positions)

    def __iter__(self) -> Iterator[Position]:
        for key in sorted(self._positions):
            yield self._positions[key]

    @property
    def total_staked(self) -> int:
        return len(self._positions)

    def staked_in_collection(self, collection_id: int) -> int:
        return self._per_collection.get(collection_id, 0)

    def insert(self, position: Position) -> None:
        key = position.identity_key
        if key in self._positions:
            raise ValueError(f"position already exists: {key}")
        self._positions[key] = position
        self._index(key, position.owner)
        cid = collection_of(key)
        self._per_collection[cid] = self._per_collection.get(cid, 0) + 1

    def replace(self, position: Position) -> Position:
        """Store an updated record; re-indexes when the owner changed. Returns the previous record."""
        key = position.identity_key
        prev = self._positions.get(key)
        if prev is None:
            raise KeyError(f"unknown position: {key}")
        if prev.owner != position.owner:
            self._unindex(key, prev.owner)
            self._index(key, position.owner)
        self._positions[key] = position
        return prev

    def remove(self, identity_key: int) -> Position:
        prev = self._positions.pop(identity_key, None)
        if prev is None:
            raise KeyError(f"unknown position: {identity_key}")
        self._unindex(identity_key, prev.owner)
        cid = collection_of(identity_key)
        left = self._per_collection.get(cid, 0) - 1
        if left > 0:
            self._per_collection[cid] = left
        else:
            self._per_collection.pop(cid, None)
        return prev

    def positions_of(self, owner: Account) -> Tuple[int, ...]:
        return tuple(self._by_owner.get(owner, ()))

    def count_of(self, owner: Account) -> int:
        return len(self._by_owner.get(owner, ()))

    def add_claimed(self, amount: int) -> None:
        require_uint("amount", amount)
        self.total_rewards_claimed += amount

    def sub_claimed(self, amount: int) -> None:
        require_uint("amount", amount)
        self.total_rewards_claimed = max(self.total_rewards_claimed - amount, 0)

    def cooldown_until(self, identity_key: int) -> int:
        return self._cooldown_until.get(identity_key, 0)

    def set_cooldown(self, identity_key: int, until: int) -> None:
        require_uint("until", until)
        if until == 0:
            self._cooldown_until.pop(identity_key, None)
        else:
            self._cooldown_until[identity_key] = until

    def _index(self, key: int, owner: Account) -> None:
        keys = self._by_owner.setdefault(owner, [])
        self._slot[key] = len(keys)
        keys.append(key)

    def _unindex(self, key: int, owner: Account) -> None:
        keys = self._by_owner.get(owner)
        slot = self._slot.pop(key, None)
        if keys is None or slot is None:
            raise ValueError(f"owner index out of sync for {key}")
        last = keys.pop()
        if last != key:
            keys[slot] = last
            self._slot[last] = slot
        if not keys:
            del self._by_owner[owner]

    def __repr__(self) -> str:
        return f"PositionTable({len(self._positions)} positions)"
