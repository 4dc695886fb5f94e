"""
Position ledger: stake, unstake, sync and recharge.

Every operation validates first, then finalizes its own bookkeeping, and only
then touches custody. A custody failure undoes the bookkeeping step by step
(position, colony membership, pending assignment, cooldown, fee) and raises
CustodyTransferFailed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from ..core.bonuses import wear_penalty
from ..core.constants import (
    MAX_CHARGE,
    MAX_LEVEL,
    MAX_SPECIALIZATION,
    MAX_VARIANT,
    MAX_WEAR,
    MIN_LEVEL,
    MIN_VARIANT,
    SECONDS_PER_DAY,
)
from ..core.identity import collection_of
from ..core.infusion import infusion_cap, infusion_tier
from ..core.math import saturating_sub
from ..errors import (
    AlreadyStaked,
    CooldownActive,
    CustodyTransferFailed,
    InvalidCollection,
    NotOwner,
    NotStaked,
    PositionWrapped,
    PrerequisiteNotMet,
    ValidationError,
)
from ..state.positions import Position, new_position
from .best_effort import STATUS_FAILED, STATUS_OK
from .colonies import ColonyRegistry
from .context import ShellContext
from .fees import FeeCharge, FeeCollector
from .rewards import RewardService


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnstakeResult:
    identity_key: int
    recipient: str
    reward_paid: int
    fee: FeeCharge
    forced: bool = False


def _is_int_in(value: object, lo: int, hi: int) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and lo <= value <= hi


class PositionLedger:
    def __init__(
        self,
        ctx: ShellContext,
        fees: FeeCollector,
        colonies: ColonyRegistry,
        rewards: RewardService,
    ) -> None:
        self._ctx = ctx
        self._fees = fees
        self._colonies = colonies
        self._rewards = rewards

    def _require_position(self, identity_key: int) -> Position:
        pos = self._ctx.state.positions.get(identity_key)
        if pos is None:
            raise NotStaked(f"not staked: {identity_key}")
        return pos

    # ------------------------------------------------------------------
    # Stake
    # ------------------------------------------------------------------

    def _check_prerequisite(self, caller: str) -> None:
        cfg = self._ctx.config
        policy = self._ctx.collaborators.prerequisite
        if policy is None and not cfg.prerequisite_required:
            return
        if cfg.prerequisite_bypass or self._ctx.is_admin(caller) or caller in cfg.bypass_accounts:
            return
        if policy is None:
            raise PrerequisiteNotMet("no prerequisite policy is configured")
        try:
            activated = policy.is_activated(caller)
        except Exception as exc:
            raise PrerequisiteNotMet(f"prerequisite check failed for {caller}: {exc}") from exc
        if not activated:
            raise PrerequisiteNotMet(f"{caller} has not met the staking prerequisite")

    def _resolve_variant(self, identity_key: int) -> int:
        traits = self._ctx.collaborators.traits
        res = self._ctx.best_effort(
            "variant_lookup",
            str(identity_key),
            getattr(traits, "variant_of", None),
            identity_key,
            identity_key=identity_key,
        )
        if not res.ok:
            return MIN_VARIANT
        if not _is_int_in(res.value, MIN_VARIANT, MAX_VARIANT):
            self._ctx.record(
                "variant_lookup",
                str(identity_key),
                STATUS_FAILED,
                f"out of range: {res.value!r}",
                identity_key,
            )
            return MIN_VARIANT
        return res.value  # type: ignore[return-value]

    def _infusion_level(self, identity_key: int, variant: int) -> int:
        entry = self._ctx.state.infusions.get(identity_key)
        if entry is None:
            return 0
        return infusion_tier(entry.infused_amount, infusion_cap(variant, self._ctx.config.infusion.caps))

    def stake(self, identity_key: int, caller: str) -> Position:
        with self._ctx.guard.hold("stake"):
            ctx = self._ctx
            state = ctx.state
            ctx.require_enabled()
            try:
                collection = collection_of(identity_key)
            except (TypeError, ValueError) as exc:
                raise InvalidCollection(str(exc)) from exc
            if collection not in ctx.config.collections:
                raise InvalidCollection(f"collection {collection} is not registered")
            if identity_key in state.positions:
                raise AlreadyStaked(f"already staked: {identity_key}")
            now = ctx.now()
            until = state.positions.cooldown_until(identity_key)
            if now < until:
                raise CooldownActive(identity_key, until)
            custody = ctx.collaborators.custody
            if custody.owner_of(identity_key) != caller:
                raise NotOwner(f"{caller} does not own {identity_key}")
            self._check_prerequisite(caller)

            fee = self._fees.charge("stake", caller)

            variant = self._resolve_variant(identity_key)
            pos = new_position(identity_key, caller, caller, now, variant)
            pos = replace(pos, infusion_level=self._infusion_level(identity_key, variant))
            assignment = self._colonies.assignment_for_stake(identity_key)
            if assignment.colony_id:
                pos = replace(pos, colony_id=assignment.colony_id)
            state.positions.insert(pos)
            self._colonies.attach(identity_key, assignment.colony_id)

            try:
                custody.transfer(identity_key, caller, ctx.config.custody_account)
            except Exception as exc:
                state.positions.remove(identity_key)
                self._colonies.undo_assignment(identity_key, assignment)
                self._fees.refund(fee)
                ctx.record("stake", caller, STATUS_FAILED, f"rolled back: {exc}", identity_key)
                raise CustodyTransferFailed(f"custody transfer of {identity_key} failed: {exc}") from exc

            if until:
                state.positions.set_cooldown(identity_key, 0)
            ctx.best_effort(
                "achievement",
                caller,
                getattr(ctx.collaborators.achievements, "record", None),
                caller,
                "staked",
                state.positions.count_of(caller),
            )
            ctx.record("stake", caller, STATUS_OK, f"variant={variant} colony={pos.colony_id}", identity_key)
            logger.info("staked %d owner=%s variant=%d", identity_key, caller, variant)
            return pos

    # ------------------------------------------------------------------
    # Unstake
    # ------------------------------------------------------------------

    def unstake(self, identity_key: int, caller: str) -> UnstakeResult:
        with self._ctx.guard.hold("unstake"):
            pos = self._require_position(identity_key)
            if self._ctx.state.receipts.active_holder(identity_key) is not None:
                raise PositionWrapped(f"{identity_key} is wrapped; release the receipt instead")
            if caller != pos.owner and not self._ctx.is_admin(caller):
                raise NotOwner(f"{caller} may not unstake {identity_key}")
            return self.exit(pos, recipient=pos.owner, payer=caller)

    def exit(self, position: Position, *, recipient: str, payer: str) -> UnstakeResult:
        """
        Remove `position` and return custody to `recipient`.

        Shared by unstake and receipt release; callers hold their own guard
        and have done their own authorization.
        """
        ctx = self._ctx
        state = ctx.state
        key = position.identity_key

        reward_paid = self._rewards.settle_on_exit(position, recipient)
        fee = self._fees.charge("unstake", payer)

        snapshot = state.positions.get(key) or position
        prev_cooldown = state.positions.cooldown_until(key)
        colony_id = self._colonies.detach(key)
        state.positions.remove(key)
        state.positions.set_cooldown(key, ctx.now() + ctx.config.cooldown_seconds)

        custody = ctx.collaborators.custody
        forced = False
        try:
            custody.transfer(key, ctx.config.custody_account, recipient)
        except Exception as exc:
            ctx.record("custody_return", recipient, STATUS_FAILED, str(exc), key)
            try:
                custody.force_transfer(key, ctx.config.custody_account, recipient)
                forced = True
            except Exception as forced_exc:
                state.positions.insert(snapshot)
                self._colonies.attach(key, colony_id)
                state.positions.set_cooldown(key, prev_cooldown)
                self._fees.refund(fee)
                ctx.record("unstake", recipient, STATUS_FAILED, f"rolled back: {forced_exc}", key)
                raise CustodyTransferFailed(f"custody return of {key} failed: {forced_exc}") from forced_exc

        ctx.record("unstake", recipient, STATUS_OK, f"reward={reward_paid} forced={forced}", key)
        logger.info("unstaked %d to %s reward=%d forced=%s", key, recipient, reward_paid, forced)
        return UnstakeResult(identity_key=key, recipient=recipient, reward_paid=reward_paid, fee=fee, forced=forced)

    # ------------------------------------------------------------------
    # Sync / recharge
    # ------------------------------------------------------------------

    def sync(self, identity_key: int, caller: str) -> Position:
        """
        Refresh level, experience, wear and specialization from the registries
        and apply charge decay for every whole day since the last sync.
        """
        with self._ctx.guard.hold("sync"):
            ctx = self._ctx
            pos = self._require_position(identity_key)
            if caller != pos.owner and not ctx.is_admin(caller):
                raise NotOwner(f"{caller} may not sync {identity_key}")
            collab = ctx.collaborators
            target = str(identity_key)

            level, experience = pos.level, pos.experience
            res = ctx.best_effort(
                "experience_sync",
                target,
                getattr(collab.experience, "progress_of", None),
                identity_key,
                identity_key=identity_key,
            )
            if res.ok and isinstance(res.value, tuple) and len(res.value) == 2:
                lvl, xp = res.value
                if _is_int_in(lvl, MIN_LEVEL, MAX_LEVEL) and isinstance(xp, int) and not isinstance(xp, bool) and xp >= 0:
                    level, experience = lvl, xp

            wear = pos.wear_level
            res = ctx.best_effort(
                "wear_sync",
                target,
                getattr(collab.wear, "wear_level", None),
                identity_key,
                identity_key=identity_key,
            )
            if res.ok and isinstance(res.value, int):
                wear = min(max(res.value, 0), MAX_WEAR)

            specialization = pos.specialization
            res = ctx.best_effort(
                "specialization_sync",
                target,
                getattr(collab.specialization, "specialization_of", None),
                identity_key,
                identity_key=identity_key,
            )
            if res.ok and _is_int_in(res.value, 0, MAX_SPECIALIZATION):
                specialization = res.value  # type: ignore[assignment]

            now = ctx.now()
            days = saturating_sub(now, pos.last_sync_timestamp) // SECONDS_PER_DAY
            charge = saturating_sub(pos.charge_level, days * ctx.config.charge_decay_per_day)
            params = ctx.config.reward
            updated = replace(
                pos,
                level=level,
                experience=experience,
                wear_level=wear,
                wear_penalty=wear_penalty(wear, params.wear_thresholds, params.wear_penalties),
                specialization=specialization,
                charge_level=charge,
                last_sync_timestamp=pos.last_sync_timestamp + days * SECONDS_PER_DAY,
            )
            ctx.state.positions.replace(updated)
            ctx.record("sync", target, STATUS_OK, f"level={level} wear={wear} charge={charge}", identity_key)
            return updated

    def recharge(self, identity_key: int, caller: str) -> Position:
        with self._ctx.guard.hold("recharge"):
            pos = self._require_position(identity_key)
            if caller != pos.owner:
                raise NotOwner(f"{caller} may not recharge {identity_key}")
            if pos.charge_level == MAX_CHARGE:
                raise ValidationError(f"{identity_key} is fully charged")
            self._fees.charge("recharge", caller)
            updated = replace(pos, charge_level=MAX_CHARGE)
            self._ctx.state.positions.replace(updated)
            self._ctx.record("recharge", str(identity_key), STATUS_OK, "", identity_key)
            return updated


__all__ = ["PositionLedger", "UnstakeResult"]
