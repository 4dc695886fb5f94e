"""
Infusion sub-ledger table.

Implements InfusionTable[identity_key] -> InfusionPosition. Records are frozen
and replaced on mutation; an emptied record is dropped to keep the table
sparse.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional

from ..core.math import require_uint


@dataclass(frozen=True)
class InfusionPosition:
    identity_key: int
    depositor: str
    infused_amount: int = 0
    infusion_time: int = 0
    last_harvest_time: int = 0
    infused: bool = False

    def __post_init__(self) -> None:
        require_uint("identity_key", self.identity_key)
        if not isinstance(self.depositor, str):
            raise TypeError("depositor must be a str")
        require_uint("infused_amount", self.infused_amount)
        require_uint("infusion_time", self.infusion_time)
        require_uint("last_harvest_time", self.last_harvest_time)
        if not isinstance(self.infused, bool):
            raise TypeError("infused must be a bool")
        if self.infused != (self.infused_amount > 0):
            raise ValueError("infused flag must match a non-zero infused_amount")


@dataclass
class InfusionTable:
    _entries: Dict[int, InfusionPosition] = field(default_factory=dict)
    total_infused: int = 0

    def get(self, identity_key: int) -> Optional[InfusionPosition]:
        return self._entries.get(identity_key)

    def __contains__(self, identity_key: object) -> bool:
        return identity_key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[InfusionPosition]:
        for key in sorted(self._entries):
            yield self._entries[key]

    def put(self, entry: InfusionPosition) -> Optional[InfusionPosition]:
        """Store `entry` (dropping it when empty). Returns the previous record."""
        prev = self._entries.get(entry.identity_key)
        if prev is not None:
            self.total_infused -= prev.infused_amount
        if entry.infused:
            self._entries[entry.identity_key] = entry
            self.total_infused += entry.infused_amount
        else:
            self._entries.pop(entry.identity_key, None)
        return prev

    def restore(self, identity_key: int, prev: Optional[InfusionPosition]) -> None:
        """Rollback helper: put back a snapshot taken before a failed side effect."""
        current = self._entries.pop(identity_key, None)
        if current is not None:
            self.total_infused -= current.infused_amount
        if prev is not None:
            self.put(prev)
