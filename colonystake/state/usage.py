"""
Daily issuance usage table.

Implements DailyUsageTable[(account, utc_day)] -> consumed amount, a flat
composite-key map. Days strictly before the newest day seen for an account
are pruned lazily on write.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Tuple

from ..core.constants import SECONDS_PER_DAY
from ..core.math import require_uint


def utc_day(timestamp: int) -> int:
    require_uint("timestamp", timestamp)
    return timestamp // SECONDS_PER_DAY


@dataclass
class DailyUsageTable:
    _used: Dict[Tuple[str, int], int] = field(default_factory=dict)
    _latest_day: Dict[str, int] = field(default_factory=dict)

    def get(self, account: str, day: int) -> int:
        return self._used.get((account, day), 0)

    def set(self, account: str, day: int, amount: int) -> None:
        require_uint("day", day)
        require_uint("amount", amount)
        latest = self._latest_day.get(account)
        if latest is not None and latest < day:
            self._used.pop((account, latest), None)
        if latest is None or latest < day:
            self._latest_day[account] = day
        if amount == 0:
            self._used.pop((account, day), None)
        else:
            self._used[(account, day)] = amount

    def items(self) -> Dict[Tuple[str, int], int]:
        return dict(self._used)
