"""
Aggregate ledger state for one staking program.

Every table the shell mutates lives here, so a whole program can be
snapshotted for its state root or swapped out in tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict

from .colonies import ColonyTable, MembershipTable, PendingAssignments
from .infusions import InfusionTable
from .positions import PositionTable
from .receipts import ReceiptTable
from .state_root import compute_state_root
from .usage import DailyUsageTable


@dataclass
class ProgramState:
    positions: PositionTable = field(default_factory=PositionTable)
    colonies: ColonyTable = field(default_factory=ColonyTable)
    members: MembershipTable = field(default_factory=MembershipTable)
    pending: PendingAssignments = field(default_factory=PendingAssignments)
    infusions: InfusionTable = field(default_factory=InfusionTable)
    usage: DailyUsageTable = field(default_factory=DailyUsageTable)
    receipts: ReceiptTable = field(default_factory=ReceiptTable)

    # Continuation cursors for bounded batch operations.
    batch_cursors: Dict[str, int] = field(default_factory=dict)
    repair_cursor: int = 0

    def state_root(self) -> str:
        return compute_state_root(
            positions=self.positions,
            colonies=self.colonies,
            members=self.members,
            infusions=self.infusions,
        )
