"""
Reward service: live context gathering, claims and batch claims.

Rewards accrue lazily; nothing is stored between claims except the claim
timestamp. Each claim follows the same order:

1. compute the reward from the stored position and live signals,
2. consume the recipient's daily quota,
3. charge the claim fee,
4. advance the position (bookkeeping is final before any token moves),
5. distribute through the issuance limiter.

A distribution that delivers nothing rolls back steps 2-4. A distribution
that delivers part of the amount keeps that part and rewinds the claim
timestamp in proportion to what was not delivered, so the remainder keeps
accruing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

from ..core.constants import PRECISION
from ..core.math import require_uint
from ..core.reward import RewardBreakdown, RewardContext, calculate_reward
from ..errors import IssuanceFailed, NoRewardsAvailable, NotOwner, NotStaked, ValidationError
from ..state.positions import Position
from .best_effort import STATUS_FAILED, STATUS_OK, STATUS_SKIPPED
from .config import BatchBudget
from .context import ShellContext
from .fees import FeeCharge, FeeCollector
from .issuance import Distribution, IssuanceLimiter


logger = logging.getLogger(__name__)

# Experience awarded per whole reward token claimed.
XP_PER_TOKEN = 1


@dataclass(frozen=True)
class ClaimResult:
    identity_key: int
    recipient: str
    amount: int
    fee: FeeCharge
    distribution: Distribution


@dataclass(frozen=True)
class BatchClaimResult:
    claimed: Tuple[int, ...] = ()
    amount: int = 0
    scanned: int = 0
    cursor: int = 0
    stopped: str = "exhausted"
    fee: Optional[FeeCharge] = None
    distribution: Distribution = Distribution()


class RewardService:
    def __init__(self, ctx: ShellContext, fees: FeeCollector, issuance: IssuanceLimiter) -> None:
        self._ctx = ctx
        self._fees = fees
        self._issuance = issuance

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def context_for(self, position: Position, now: int) -> RewardContext:
        state = self._ctx.state
        colony_bonus = 0
        if position.colony_id:
            colony = state.colonies.get(position.colony_id)
            if colony is not None and colony.active:
                colony_bonus = colony.bonus

        traits = self._ctx.collaborators.traits
        res = self._ctx.best_effort(
            "accessory_lookup",
            str(position.identity_key),
            getattr(traits, "accessory_bonuses", None),
            position.identity_key,
            identity_key=position.identity_key,
        )
        accessories: Tuple[int, ...] = ()
        if res.ok:
            values = tuple(res.value or ())
            if all(isinstance(v, int) and not isinstance(v, bool) and v >= 0 for v in values):
                accessories = values
            else:
                self._ctx.record(
                    "accessory_lookup",
                    str(position.identity_key),
                    STATUS_SKIPPED,
                    "malformed accessory bonuses",
                    position.identity_key,
                )

        return RewardContext(
            now=now,
            colony_bonus=colony_bonus,
            accessory_bonuses=accessories,
            account_positions=state.positions.count_of(position.owner),
            total_positions=state.positions.total_staked,
        )

    def breakdown_for(self, position: Position, now: int) -> RewardBreakdown:
        return calculate_reward(position, self.context_for(position, now), self._ctx.config.reward)

    def reward_breakdown(self, identity_key: int) -> RewardBreakdown:
        pos = self._ctx.state.positions.get(identity_key)
        if pos is None:
            raise NotStaked(f"not staked: {identity_key}")
        return self.breakdown_for(pos, self._ctx.now())

    def pending_reward(self, identity_key: int) -> int:
        return self.reward_breakdown(identity_key).final_reward

    def recipient_of(self, position: Position) -> str:
        holder = self._ctx.state.receipts.active_holder(position.identity_key)
        return holder if holder is not None else position.owner

    # ------------------------------------------------------------------
    # Claims
    # ------------------------------------------------------------------

    def claim(self, identity_key: int, caller: str) -> ClaimResult:
        with self._ctx.guard.hold("claim"):
            state = self._ctx.state
            pos = state.positions.get(identity_key)
            if pos is None:
                raise NotStaked(f"not staked: {identity_key}")
            recipient = self.recipient_of(pos)
            if caller != recipient:
                raise NotOwner(f"{caller} may not claim for {identity_key}")

            now = self._ctx.now()
            amount = self.breakdown_for(pos, now).final_reward
            if amount == 0:
                raise NoRewardsAvailable(f"nothing accrued for {identity_key}")

            self._issuance.consume(recipient, amount, strict=True)
            try:
                fee = self._fees.charge("claim", caller)
            except Exception:
                self._issuance.release(recipient, amount)
                raise

            self._advance([(pos, amount)], now)
            try:
                dist = self._issuance.distribute(recipient, amount)
            except IssuanceFailed as exc:
                self._settle_partial([(pos, amount)], exc.delivered, now)
                self._issuance.release(recipient, amount - exc.delivered)
                if exc.delivered == 0:
                    self._fees.refund(fee)
                self._ctx.record("claim", recipient, STATUS_FAILED, f"delivered={exc.delivered}", identity_key)
                raise

            self._after_payout(recipient, [(pos, amount)])
            self._ctx.record("claim", recipient, STATUS_OK, str(amount), identity_key)
            return ClaimResult(
                identity_key=identity_key,
                recipient=recipient,
                amount=amount,
                fee=fee,
                distribution=dist,
            )

    def batch_claim(
        self,
        caller: str,
        max_count: Optional[int] = None,
        budget: Optional[BatchBudget] = None,
    ) -> BatchClaimResult:
        """
        Claim for up to `max_count` of the caller's positions in one payout.

        Scanning starts at the caller's persisted cursor and wraps around. The
        cursor is advanced past every scanned position even when nothing is
        claimable, so repeated calls walk the whole list.
        """
        budget = budget or self._ctx.config.batch
        limit = budget.max_count if max_count is None else max_count
        try:
            require_uint("max_count", limit)
        except (TypeError, ValueError) as exc:
            raise ValidationError(str(exc)) from exc
        if limit == 0:
            raise ValidationError("max_count must be positive")

        with self._ctx.guard.hold("claim"):
            state = self._ctx.state
            keys = state.positions.positions_of(caller)
            if not keys:
                return BatchClaimResult()

            now = self._ctx.now()
            n = len(keys)
            start = state.batch_cursors.get(caller, 0) % n
            quota_left = self._issuance.remaining(caller)
            units = budget.units

            selected: List[Tuple[Position, int]] = []
            total = 0
            scanned = 0
            stopped = "exhausted"
            passed_over = False
            while scanned < n:
                if units < budget.scan_cost + budget.reserve:
                    stopped = "budget"
                    break
                key = keys[(start + scanned) % n]
                pos = state.positions.get(key)
                holder = state.receipts.active_holder(key)
                if pos is None or (holder is not None and holder != caller):
                    units -= budget.scan_cost
                    scanned += 1
                    continue
                amount = self.breakdown_for(pos, now).final_reward
                if amount == 0:
                    units -= budget.scan_cost
                    scanned += 1
                    continue
                if total + amount > quota_left:
                    if selected:
                        stopped = "quota"
                        break
                    # too large for what is left today; step past it so the rest stays reachable
                    units -= budget.scan_cost
                    scanned += 1
                    passed_over = True
                    continue
                if units < budget.scan_cost + budget.claim_cost + budget.reserve:
                    stopped = "budget"
                    break
                units -= budget.scan_cost + budget.claim_cost
                selected.append((pos, amount))
                total += amount
                scanned += 1
                if len(selected) >= limit:
                    stopped = "max_count"
                    break

            if passed_over and stopped == "exhausted":
                stopped = "quota"
            cursor = (start + scanned) % n
            if not selected:
                state.batch_cursors[caller] = cursor
                self._ctx.record("batch_claim", caller, STATUS_SKIPPED, f"scanned={scanned} cursor={cursor}")
                return BatchClaimResult(scanned=scanned, cursor=cursor, stopped=stopped)

            self._issuance.consume(caller, total, strict=True)
            try:
                fee = self._fees.charge("claim", caller)
            except Exception:
                self._issuance.release(caller, total)
                raise

            self._advance(selected, now)
            try:
                dist = self._issuance.distribute(caller, total)
            except IssuanceFailed as exc:
                self._settle_partial(selected, exc.delivered, now)
                self._issuance.release(caller, total - exc.delivered)
                if exc.delivered == 0:
                    self._fees.refund(fee)
                self._ctx.record("batch_claim", caller, STATUS_FAILED, f"delivered={exc.delivered}")
                raise

            state.batch_cursors[caller] = cursor
            self._after_payout(caller, selected)
            self._ctx.record("batch_claim", caller, STATUS_OK, f"claimed={len(selected)} cursor={cursor}")
            return BatchClaimResult(
                claimed=tuple(p.identity_key for p, _ in selected),
                amount=total,
                scanned=scanned,
                cursor=cursor,
                stopped=stopped,
                fee=fee,
                distribution=dist,
            )

    def settle_on_exit(self, position: Position, recipient: str) -> int:
        """
        Pay whatever the position accrued before it leaves the ledger.

        Permissive: quota is truncated and every failure is recorded and
        swallowed. Returns the amount delivered.
        """
        now = self._ctx.now()
        try:
            amount = self.breakdown_for(position, now).final_reward
            granted = self._issuance.consume(recipient, amount, strict=False)
        except Exception as exc:
            self._ctx.record("exit_reward", recipient, STATUS_FAILED, str(exc), position.identity_key)
            return 0
        if granted == 0:
            return 0

        self._advance([(position, granted)], now)
        try:
            self._issuance.distribute(recipient, granted)
        except IssuanceFailed as exc:
            self._settle_partial([(position, granted)], exc.delivered, now)
            self._issuance.release(recipient, granted - exc.delivered)
            self._ctx.record("exit_reward", recipient, STATUS_FAILED, str(exc), position.identity_key)
            return exc.delivered
        if granted < amount:
            self._ctx.record(
                "exit_reward",
                recipient,
                STATUS_SKIPPED,
                f"quota truncated {amount} to {granted}",
                position.identity_key,
            )
        self._after_payout(recipient, [(position, granted)])
        return granted

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _advance(self, claims: Sequence[Tuple[Position, int]], now: int) -> None:
        positions = self._ctx.state.positions
        for prev, amount in claims:
            current = positions.get(prev.identity_key) or prev
            positions.replace(
                replace(
                    current,
                    last_claim_timestamp=now,
                    total_rewards_claimed=prev.total_rewards_claimed + amount,
                )
            )
            positions.add_claimed(amount)

    def _settle_partial(self, claims: Sequence[Tuple[Position, int]], delivered: int, now: int) -> None:
        """
        Undo `_advance` for the part of `claims` that was not delivered.

        Claims are covered in order; the first partially covered one keeps a
        claim timestamp proportional to the delivered share.
        """
        positions = self._ctx.state.positions
        remaining = delivered
        for prev, amount in claims:
            current = positions.get(prev.identity_key)
            if current is None:
                continue
            if remaining >= amount:
                remaining -= amount
                continue
            kept = remaining
            remaining = 0
            elapsed = now - prev.last_claim_timestamp
            positions.replace(
                replace(
                    current,
                    last_claim_timestamp=prev.last_claim_timestamp + (elapsed * kept) // amount,
                    total_rewards_claimed=prev.total_rewards_claimed + kept,
                )
            )
            positions.sub_claimed(amount - kept)

    def _after_payout(self, recipient: str, claims: Sequence[Tuple[Position, int]]) -> None:
        collab = self._ctx.collaborators
        award = getattr(collab.experience, "award", None)
        for pos, amount in claims:
            xp = (amount // PRECISION) * XP_PER_TOKEN
            if xp:
                self._ctx.best_effort(
                    "experience_award",
                    str(pos.identity_key),
                    award,
                    pos.identity_key,
                    xp,
                    identity_key=pos.identity_key,
                )
        total = sum(amount for _, amount in claims)
        self._ctx.best_effort(
            "achievement",
            recipient,
            getattr(collab.achievements, "record", None),
            recipient,
            "rewards_claimed",
            total,
        )
        logger.debug("reward payout recipient=%s positions=%d amount=%d", recipient, len(claims), total)
