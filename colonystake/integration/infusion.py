"""
Infusion ledger: reward tokens deposited into a staked position.

Deposits sit in the infusion vault account and earn an APR that grows with
the infusion tier. The tier is mirrored onto `Position.infusion_level`, where
it also feeds the reward multiplier.

A depositor keeps access to the deposit after the position is unstaked:
withdraw works without a live position, harvest and reinvest do not.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional

from ..core.constants import MAX_VARIANT, MIN_VARIANT, PERCENT
from ..core.infusion import harvest_amount, infusion_apr, infusion_cap, infusion_tier, remaining_room
from ..core.math import require_uint, saturating_sub
from ..core.stake_balance import stake_balance_multiplier
from ..errors import (
    BelowMinimumDeposit,
    InfusionCapReached,
    InsufficientInfusion,
    IssuanceFailed,
    NoRewardsAvailable,
    NotInfused,
    NotOwner,
    NotStaked,
    ValidationError,
)
from ..state.infusions import InfusionPosition
from ..state.positions import Position
from .best_effort import STATUS_FAILED, STATUS_OK
from .context import ShellContext
from .fees import FeeCharge, FeeCollector
from .issuance import Distribution, IssuanceLimiter


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InfusionStats:
    identity_key: int
    depositor: str
    infused_amount: int
    cap: int
    tier: int
    apr: int
    pending_harvest: int
    infusion_time: int
    last_harvest_time: int


@dataclass(frozen=True)
class HarvestResult:
    identity_key: int
    gross: int = 0
    fee: int = 0
    net: int = 0
    distribution: Distribution = Distribution()


@dataclass(frozen=True)
class WithdrawResult:
    identity_key: int
    withdrawn: int
    harvested: int
    remaining: int
    fee: FeeCharge


def _require_amount(amount: object) -> int:
    try:
        return require_uint("amount", amount)
    except (TypeError, ValueError) as exc:
        raise ValidationError(str(exc)) from exc


class InfusionLedger:
    def __init__(self, ctx: ShellContext, fees: FeeCollector, issuance: IssuanceLimiter) -> None:
        self._ctx = ctx
        self._fees = fees
        self._issuance = issuance

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _variant_of(self, identity_key: int, position: Optional[Position]) -> int:
        if position is not None:
            return position.variant
        traits = self._ctx.collaborators.traits
        res = self._ctx.best_effort(
            "variant_lookup",
            str(identity_key),
            getattr(traits, "variant_of", None),
            identity_key,
            identity_key=identity_key,
        )
        value = res.value_or(MIN_VARIANT)
        if not isinstance(value, int) or isinstance(value, bool) or not (MIN_VARIANT <= value <= MAX_VARIANT):
            return MIN_VARIANT
        return value

    def _cap(self, variant: int) -> int:
        return infusion_cap(variant, self._ctx.config.infusion.caps)

    def _harvestable(self, entry: InfusionPosition, position: Optional[Position], now: int) -> int:
        params = self._ctx.config.infusion
        variant = self._variant_of(entry.identity_key, position)
        tier = infusion_tier(entry.infused_amount, self._cap(variant))
        apr = infusion_apr(variant, tier, params)
        multiplier = PERCENT
        if params.apply_stake_balance and position is not None:
            positions = self._ctx.state.positions
            multiplier = stake_balance_multiplier(
                positions.count_of(position.owner),
                positions.total_staked,
                saturating_sub(now, position.staked_at),
                self._ctx.config.reward.stake_balance,
            )
        return harvest_amount(
            entry.infused_amount,
            apr,
            entry.last_harvest_time,
            now,
            balance_multiplier=multiplier,
            max_harvest=params.max_harvest,
        )

    def _mirror_tier(self, identity_key: int, infused_amount: int) -> None:
        positions = self._ctx.state.positions
        pos = positions.get(identity_key)
        if pos is None:
            return
        tier = infusion_tier(infused_amount, self._cap(pos.variant))
        if tier != pos.infusion_level:
            positions.replace(replace(pos, infusion_level=tier))

    def _require_entry(self, identity_key: int, caller: str) -> InfusionPosition:
        entry = self._ctx.state.infusions.get(identity_key)
        if entry is None:
            raise NotInfused(f"nothing infused into {identity_key}")
        if entry.depositor != caller:
            raise NotOwner(f"{caller} is not the depositor of {identity_key}")
        return entry

    def _require_staked(self, identity_key: int) -> Position:
        pos = self._ctx.state.positions.get(identity_key)
        if pos is None:
            raise NotStaked(f"not staked: {identity_key}")
        return pos

    def _pay_harvest(
        self,
        entry: InfusionPosition,
        position: Optional[Position],
        caller: str,
        now: int,
        *,
        strict: bool,
    ) -> HarvestResult:
        """
        Pay the pending harvest of `entry` to `caller`.

        The harvest fee is withheld from the payout. `last_harvest_time` is
        moved before the payout and rewound if the payout fails.
        """
        key = entry.identity_key
        gross = self._harvestable(entry, position, now)
        if gross == 0:
            if strict:
                raise NoRewardsAvailable(f"nothing to harvest for {key}")
            return HarvestResult(identity_key=key)

        granted = self._issuance.consume(caller, gross, strict=strict)
        if granted == 0:
            return HarvestResult(identity_key=key)
        withheld = self._fees.withhold("harvest", granted)
        net = granted - withheld.amount

        infusions = self._ctx.state.infusions
        infusions.put(replace(entry, last_harvest_time=now))
        try:
            dist = self._issuance.distribute(caller, net)
        except IssuanceFailed as exc:
            elapsed = now - entry.last_harvest_time
            kept = entry.last_harvest_time + (elapsed * exc.delivered) // net
            current = infusions.get(key)
            if current is not None:
                infusions.put(replace(current, last_harvest_time=kept))
            self._issuance.release(caller, granted - exc.delivered)
            self._ctx.record("harvest", caller, STATUS_FAILED, f"delivered={exc.delivered}", key)
            raise

        self._fees.settle_withheld(withheld, self._issuance.distribute)
        self._ctx.record("harvest", caller, STATUS_OK, f"gross={granted} fee={withheld.amount}", key)
        return HarvestResult(identity_key=key, gross=granted, fee=withheld.amount, net=net, distribution=dist)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def infuse(self, identity_key: int, amount: int, caller: str) -> InfusionPosition:
        amount = _require_amount(amount)
        with self._ctx.guard.hold("infusion"):
            ctx = self._ctx
            pos = self._require_staked(identity_key)
            if pos.owner != caller:
                raise NotOwner(f"{caller} does not own {identity_key}")
            params = ctx.config.infusion
            if amount == 0 or amount < params.min_deposit:
                raise BelowMinimumDeposit(f"deposit {amount} is below the minimum {params.min_deposit}")
            infusions = ctx.state.infusions
            entry = infusions.get(identity_key)
            if entry is not None and entry.depositor != caller:
                raise NotOwner(f"{identity_key} holds a deposit by {entry.depositor}")
            current = entry.infused_amount if entry is not None else 0
            room = remaining_room(current, self._cap(pos.variant))
            if room == 0:
                raise InfusionCapReached(f"{identity_key} is infused to its cap")
            deposit = min(amount, room)

            now = ctx.now()
            if entry is not None:
                try:
                    self._pay_harvest(entry, pos, caller, now, strict=False)
                except Exception as exc:
                    ctx.record("harvest", caller, STATUS_FAILED, f"before infuse: {exc}", identity_key)
                entry = infusions.get(identity_key)

            fee = self._fees.charge("infuse", caller) if entry is None else FeeCharge(operation="infuse", payer=caller)

            prev = entry
            if entry is None:
                updated = InfusionPosition(
                    identity_key=identity_key,
                    depositor=caller,
                    infused_amount=deposit,
                    infusion_time=now,
                    last_harvest_time=now,
                    infused=True,
                )
            else:
                updated = replace(entry, infused_amount=entry.infused_amount + deposit, last_harvest_time=now)
            infusions.put(updated)
            prev_level = pos.infusion_level
            self._mirror_tier(identity_key, updated.infused_amount)

            token = ctx.collaborators.reward_token
            try:
                token.transfer_from(ctx.config.program_account, caller, ctx.config.infusion_vault, deposit)
            except Exception:
                infusions.restore(identity_key, prev)
                self._restore_level(identity_key, prev_level)
                self._fees.refund(fee)
                ctx.record("infuse", caller, STATUS_FAILED, "rolled back", identity_key)
                raise

            ctx.record("infuse", caller, STATUS_OK, str(deposit), identity_key)
            logger.info("infused %d into %d (total=%d)", deposit, identity_key, updated.infused_amount)
            return updated

    def harvest(self, identity_key: int, caller: str) -> HarvestResult:
        with self._ctx.guard.hold("infusion"):
            pos = self._require_staked(identity_key)
            entry = self._require_entry(identity_key, caller)
            return self._pay_harvest(entry, pos, caller, self._ctx.now(), strict=True)

    def reinvest(self, identity_key: int, caller: str) -> InfusionPosition:
        with self._ctx.guard.hold("infusion"):
            ctx = self._ctx
            pos = self._require_staked(identity_key)
            entry = self._require_entry(identity_key, caller)
            now = ctx.now()
            gross = self._harvestable(entry, pos, now)
            if gross == 0:
                raise NoRewardsAvailable(f"nothing to reinvest for {identity_key}")
            room = remaining_room(entry.infused_amount, self._cap(pos.variant))
            if room == 0:
                raise InfusionCapReached(f"{identity_key} is infused to its cap")

            fee = self._fees.charge("reinvest", caller)
            added = min(gross, room)
            try:
                self._issuance.consume(caller, added, strict=True)
            except Exception:
                self._fees.refund(fee)
                raise

            updated = replace(entry, infused_amount=entry.infused_amount + added, last_harvest_time=now)
            ctx.state.infusions.put(updated)
            prev_level = pos.infusion_level
            self._mirror_tier(identity_key, updated.infused_amount)
            try:
                self._issuance.distribute(ctx.config.infusion_vault, added)
            except IssuanceFailed as exc:
                if exc.delivered:
                    partial = entry.infused_amount + exc.delivered
                    ctx.state.infusions.put(replace(entry, infused_amount=partial, last_harvest_time=now))
                    self._mirror_tier(identity_key, partial)
                else:
                    ctx.state.infusions.restore(identity_key, entry)
                    self._restore_level(identity_key, prev_level)
                    self._fees.refund(fee)
                self._issuance.release(caller, added - exc.delivered)
                ctx.record("reinvest", caller, STATUS_FAILED, f"delivered={exc.delivered}", identity_key)
                raise

            ctx.record("reinvest", caller, STATUS_OK, str(added), identity_key)
            return updated

    def withdraw(self, identity_key: int, amount: int, caller: str) -> WithdrawResult:
        amount = _require_amount(amount)
        if amount == 0:
            raise ValidationError("amount must be positive")
        with self._ctx.guard.hold("infusion"):
            ctx = self._ctx
            infusions = ctx.state.infusions
            entry = self._require_entry(identity_key, caller)
            if amount > entry.infused_amount:
                raise InsufficientInfusion(f"withdraw {amount} exceeds infused {entry.infused_amount}")

            pos = ctx.state.positions.get(identity_key)
            harvested = 0
            try:
                harvested = self._pay_harvest(entry, pos, caller, ctx.now(), strict=False).net
            except Exception as exc:
                ctx.record("harvest", caller, STATUS_FAILED, f"before withdraw: {exc}", identity_key)

            fee = self._fees.charge("withdraw", caller)

            entry = infusions.get(identity_key) or entry
            left = entry.infused_amount - amount
            if left == 0:
                updated = InfusionPosition(identity_key=identity_key, depositor=entry.depositor)
            else:
                updated = replace(entry, infused_amount=left)
            infusions.put(updated)
            prev_level = pos.infusion_level if pos is not None else 0
            self._mirror_tier(identity_key, left)

            token = ctx.collaborators.reward_token
            try:
                token.transfer_from(ctx.config.program_account, ctx.config.infusion_vault, caller, amount)
            except Exception:
                infusions.restore(identity_key, entry)
                self._restore_level(identity_key, prev_level)
                self._fees.refund(fee)
                ctx.record("withdraw", caller, STATUS_FAILED, "rolled back", identity_key)
                raise

            ctx.record("withdraw", caller, STATUS_OK, f"amount={amount} left={left}", identity_key)
            return WithdrawResult(
                identity_key=identity_key,
                withdrawn=amount,
                harvested=harvested,
                remaining=left,
                fee=fee,
            )

    def _restore_level(self, identity_key: int, level: int) -> None:
        positions = self._ctx.state.positions
        pos = positions.get(identity_key)
        if pos is not None and pos.infusion_level != level:
            positions.replace(replace(pos, infusion_level=level))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def infusion_stats(self, identity_key: int) -> InfusionStats:
        entry = self._ctx.state.infusions.get(identity_key)
        if entry is None:
            raise NotInfused(f"nothing infused into {identity_key}")
        pos = self._ctx.state.positions.get(identity_key)
        variant = self._variant_of(identity_key, pos)
        cap = self._cap(variant)
        tier = infusion_tier(entry.infused_amount, cap)
        return InfusionStats(
            identity_key=identity_key,
            depositor=entry.depositor,
            infused_amount=entry.infused_amount,
            cap=cap,
            tier=tier,
            apr=infusion_apr(variant, tier, self._ctx.config.infusion),
            pending_harvest=self._harvestable(entry, pos, self._ctx.now()),
            infusion_time=entry.infusion_time,
            last_harvest_time=entry.last_harvest_time,
        )


__all__ = ["HarvestResult", "InfusionLedger", "InfusionStats", "WithdrawResult"]
