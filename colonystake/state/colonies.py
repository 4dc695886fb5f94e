"""
Colony tables.

- ColonyTable: colony_id -> Colony metadata (frozen records).
- MembershipTable: colony_id -> member identity keys, with a slot map for
  O(1) swap-with-last removal.
- pending assignments: identity_key -> colony_id for assets that are not
  staked yet (0 means "leave on next stake").

Colony ids derived locally come from a domain-separated hash of the name so
the same name always maps to the same id.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from ..core.math import require_uint
from .canonical import domain_sep_bytes


@dataclass(frozen=True)
class Colony:
    colony_id: int
    name: str
    creator: str
    active: bool = True
    bonus: int = 0

    def __post_init__(self) -> None:
        require_uint("colony_id", self.colony_id)
        if self.colony_id == 0:
            raise ValueError("colony_id must be non-zero")
        if not isinstance(self.name, str):
            raise TypeError("name must be a str")
        if not isinstance(self.creator, str):
            raise TypeError("creator must be a str")
        if not isinstance(self.active, bool):
            raise TypeError("active must be a bool")
        require_uint("bonus", self.bonus)


def derive_colony_id(name: str) -> int:
    if not isinstance(name, str) or not name.strip():
        raise ValueError("colony name must be a non-empty str")
    digest = hashlib.sha256(domain_sep_bytes("colony_id", version=1) + name.strip().encode("utf-8")).digest()
    cid = int.from_bytes(digest[:8], "big")
    return cid or 1


@dataclass
class ColonyTable:
    _colonies: Dict[int, Colony] = field(default_factory=dict)

    def get(self, colony_id: int) -> Optional[Colony]:
        return self._colonies.get(colony_id)

    def __contains__(self, colony_id: object) -> bool:
        return colony_id in self._colonies

    def __len__(self) -> int:
        return len(self._colonies)

    def __iter__(self) -> Iterator[Colony]:
        for cid in sorted(self._colonies):
            yield self._colonies[cid]

    def ids(self) -> Tuple[int, ...]:
        return tuple(sorted(self._colonies))

    def put(self, colony: Colony) -> Optional[Colony]:
        prev = self._colonies.get(colony.colony_id)
        self._colonies[colony.colony_id] = colony
        return prev

    def discard(self, colony_id: int) -> Optional[Colony]:
        return self._colonies.pop(colony_id, None)


@dataclass
class MembershipTable:
    _members: Dict[int, List[int]] = field(default_factory=dict)
    _slot: Dict[int, Tuple[int, int]] = field(default_factory=dict)

    def members(self, colony_id: int) -> Tuple[int, ...]:
        return tuple(self._members.get(colony_id, ()))

    def count(self, colony_id: int) -> int:
        return len(self._members.get(colony_id, ()))

    def colony_of(self, identity_key: int) -> int:
        entry = self._slot.get(identity_key)
        return entry[0] if entry is not None else 0

    def contains(self, colony_id: int, identity_key: int) -> bool:
        entry = self._slot.get(identity_key)
        return entry is not None and entry[0] == colony_id

    def add(self, colony_id: int, identity_key: int) -> bool:
        """Append a member. Returns False if it is already listed there."""
        require_uint("colony_id", colony_id)
        if colony_id == 0:
            raise ValueError("colony_id must be non-zero")
        entry = self._slot.get(identity_key)
        if entry is not None:
            if entry[0] == colony_id:
                return False
            raise ValueError(f"{identity_key} is already a member of colony {entry[0]}")
        keys = self._members.setdefault(colony_id, [])
        self._slot[identity_key] = (colony_id, len(keys))
        keys.append(identity_key)
        return True

    def remove(self, identity_key: int) -> int:
        """Swap-with-last removal. Returns the colony it was removed from (0 if none)."""
        entry = self._slot.pop(identity_key, None)
        if entry is None:
            return 0
        colony_id, slot = entry
        keys = self._members[colony_id]
        last = keys.pop()
        if last != identity_key:
            keys[slot] = last
            self._slot[last] = (colony_id, slot)
        if not keys:
            del self._members[colony_id]
        return colony_id

    def clear(self, colony_id: int) -> Tuple[int, ...]:
        keys = self._members.pop(colony_id, [])
        for key in keys:
            self._slot.pop(key, None)
        return tuple(keys)


@dataclass
class PendingAssignments:
    _pending: Dict[int, int] = field(default_factory=dict)

    def get(self, identity_key: int) -> Optional[int]:
        return self._pending.get(identity_key)

    def set(self, identity_key: int, colony_id: int) -> None:
        require_uint("colony_id", colony_id)
        self._pending[identity_key] = colony_id

    def pop(self, identity_key: int) -> Optional[int]:
        return self._pending.pop(identity_key, None)

    def discard_colony(self, colony_id: int) -> int:
        stale = [k for k, v in self._pending.items() if v == colony_id]
        for k in stale:
            del self._pending[k]
        return len(stale)

    def __len__(self) -> int:
        return len(self._pending)
