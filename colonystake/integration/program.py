"""
StakingProgram: the single entry point wiring every service together.

    program = StakingProgram(config, collaborators, clock=clock)
    program.stake(key, "alice")
    program.claim(key, "alice")

All services share one `ShellContext` (configuration, collaborators, ledger
state, clock, outcome log and re-entrancy guard).
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple, Union

from ..core.reward import RewardBreakdown
from ..state.colonies import Colony
from ..state.infusions import InfusionPosition
from ..state.positions import Position
from ..state.program_state import ProgramState
from ..state.receipts import Receipt
from .best_effort import OutcomeLog
from .colonies import ColonyInfo, ColonyRegistry, RepairReport
from .collaborators import Collaborators
from .config import BatchBudget, ProgramConfig, load_config
from .context import Clock, ShellContext, system_clock
from .fees import FeeCollector
from .infusion import HarvestResult, InfusionLedger, InfusionStats, WithdrawResult
from .issuance import IssuanceLimiter, QuotaStatus
from .ledger import PositionLedger, UnstakeResult
from .receipts import ReceiptWrapper
from .rewards import BatchClaimResult, ClaimResult, RewardService


class StakingProgram:
    def __init__(
        self,
        config: ProgramConfig,
        collaborators: Collaborators,
        *,
        clock: Clock = system_clock,
        state: Optional[ProgramState] = None,
        outcomes: Optional[OutcomeLog] = None,
    ) -> None:
        self.ctx = ShellContext(
            config=config,
            collaborators=collaborators,
            state=state if state is not None else ProgramState(),
            clock=clock,
            outcomes=outcomes if outcomes is not None else OutcomeLog(),
        )
        self.fees = FeeCollector(self.ctx)
        self.issuance = IssuanceLimiter(self.ctx)
        self.colonies = ColonyRegistry(self.ctx)
        self.rewards = RewardService(self.ctx, self.fees, self.issuance)
        self.ledger = PositionLedger(self.ctx, self.fees, self.colonies, self.rewards)
        self.infusion = InfusionLedger(self.ctx, self.fees, self.issuance)
        self.receipts = ReceiptWrapper(self.ctx, self.ledger)

    @classmethod
    def from_yaml(
        cls,
        path: Union[str, Path],
        collaborators: Collaborators,
        *,
        clock: Clock = system_clock,
    ) -> "StakingProgram":
        return cls(load_config(path), collaborators, clock=clock)

    @property
    def config(self) -> ProgramConfig:
        return self.ctx.config

    @property
    def state(self) -> ProgramState:
        return self.ctx.state

    @property
    def outcomes(self) -> OutcomeLog:
        return self.ctx.outcomes

    # Positions -------------------------------------------------------------

    def stake(self, identity_key: int, caller: str) -> Position:
        return self.ledger.stake(identity_key, caller)

    def unstake(self, identity_key: int, caller: str) -> UnstakeResult:
        return self.ledger.unstake(identity_key, caller)

    def sync(self, identity_key: int, caller: str) -> Position:
        return self.ledger.sync(identity_key, caller)

    def recharge(self, identity_key: int, caller: str) -> Position:
        return self.ledger.recharge(identity_key, caller)

    # Rewards ---------------------------------------------------------------

    def claim(self, identity_key: int, caller: str) -> ClaimResult:
        return self.rewards.claim(identity_key, caller)

    def batch_claim(
        self,
        caller: str,
        max_count: Optional[int] = None,
        budget: Optional[BatchBudget] = None,
    ) -> BatchClaimResult:
        return self.rewards.batch_claim(caller, max_count, budget)

    # Infusion --------------------------------------------------------------

    def infuse(self, identity_key: int, amount: int, caller: str) -> InfusionPosition:
        return self.infusion.infuse(identity_key, amount, caller)

    def harvest(self, identity_key: int, caller: str) -> HarvestResult:
        return self.infusion.harvest(identity_key, caller)

    def reinvest(self, identity_key: int, caller: str) -> InfusionPosition:
        return self.infusion.reinvest(identity_key, caller)

    def withdraw(self, identity_key: int, amount: int, caller: str) -> WithdrawResult:
        return self.infusion.withdraw(identity_key, amount, caller)

    # Colonies --------------------------------------------------------------

    def create_colony(self, name: str, creator: str, bonus: int = 0) -> Colony:
        return self.colonies.create_colony(name, creator, bonus)

    def join_colony(self, identity_key: int, colony_id: int, caller: str) -> None:
        self.colonies.join(identity_key, colony_id, caller)

    def leave_colony(self, identity_key: int, caller: str) -> None:
        self.colonies.leave(identity_key, caller)

    def set_colony_bonus(self, colony_id: int, value: int, caller: str) -> Colony:
        return self.colonies.set_bonus(colony_id, value, caller)

    def dissolve_colony(self, colony_id: int, caller: str) -> Tuple[int, ...]:
        return self.colonies.dissolve(colony_id, caller)

    def repair_colony(self, colony_id: Optional[int] = None, max_items: Optional[int] = None) -> RepairReport:
        return self.colonies.repair(colony_id, max_items)

    # Receipts --------------------------------------------------------------

    def wrap(self, identity_key: int, caller: str) -> Receipt:
        return self.receipts.wrap(identity_key, caller)

    def transfer_receipt(self, receipt_id: int, sender: str, to: str) -> Receipt:
        return self.receipts.transfer(receipt_id, sender, to)

    def transfer_receipt_with_permit(self, receipt_id: int, to: str, signature_hex: str) -> Receipt:
        return self.receipts.transfer_with_permit(receipt_id, to, signature_hex)

    def unwrap(self, receipt_id: int, caller: str) -> Position:
        return self.receipts.unwrap(receipt_id, caller)

    def release(self, receipt_id: int, caller: str) -> UnstakeResult:
        return self.receipts.release(receipt_id, caller)

    # Queries ---------------------------------------------------------------

    def position(self, identity_key: int) -> Optional[Position]:
        return self.state.positions.get(identity_key)

    def positions_of(self, owner: str) -> Tuple[Position, ...]:
        positions = self.state.positions
        return tuple(p for p in (positions.get(k) for k in positions.positions_of(owner)) if p is not None)

    def pending_reward(self, identity_key: int) -> int:
        return self.rewards.pending_reward(identity_key)

    def reward_breakdown(self, identity_key: int) -> RewardBreakdown:
        return self.rewards.reward_breakdown(identity_key)

    def colony_info(self, colony_id: int) -> ColonyInfo:
        return self.colonies.colony_info(colony_id)

    def infusion_stats(self, identity_key: int) -> InfusionStats:
        return self.infusion.infusion_stats(identity_key)

    def quota_status(self, account: str) -> QuotaStatus:
        return self.issuance.quota_status(account)

    def state_root(self) -> str:
        return self.state.state_root()
