"""
Ledger state tables for the staking program
"""

from .colonies import Colony, ColonyTable, MembershipTable, PendingAssignments, derive_colony_id
from .infusions import InfusionPosition, InfusionTable
from .positions import Position, PositionTable, new_position
from .program_state import ProgramState
from .receipts import Receipt, ReceiptTable
from .usage import DailyUsageTable, utc_day

__all__ = [
    "Colony",
    "ColonyTable",
    "MembershipTable",
    "PendingAssignments",
    "derive_colony_id",
    "InfusionPosition",
    "InfusionTable",
    "Position",
    "PositionTable",
    "new_position",
    "ProgramState",
    "Receipt",
    "ReceiptTable",
    "DailyUsageTable",
    "utc_day",
]
