"""
Issuance limiter.

One daily quota per recipient account, shared by every pathway that issues
reward tokens (claims, batch claims, harvests, reinvests and the best-effort
payouts on unstake and withdraw). Days are UTC day indices of the injected
clock.

Payouts come from the treasury first, bounded by its balance and its
allowance to the program; the shortfall (or everything, if the treasury
transfer fails) is minted by the program account.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..core.math import require_uint, saturating_sub
from ..errors import IssuanceFailed, QuotaExceeded
from ..state.usage import utc_day
from .best_effort import STATUS_FAILED
from .context import ShellContext


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuotaStatus:
    account: str
    day: int
    limit: int
    used: int
    remaining: int


@dataclass(frozen=True)
class Distribution:
    from_treasury: int = 0
    minted: int = 0

    @property
    def total(self) -> int:
        return self.from_treasury + self.minted


class IssuanceLimiter:
    def __init__(self, ctx: ShellContext) -> None:
        self._ctx = ctx

    @property
    def limit(self) -> int:
        return self._ctx.config.daily_issuance_limit

    def quota_status(self, account: str) -> QuotaStatus:
        day = utc_day(self._ctx.now())
        used = self._ctx.state.usage.get(account, day)
        return QuotaStatus(
            account=account,
            day=day,
            limit=self.limit,
            used=used,
            remaining=saturating_sub(self.limit, used),
        )

    def remaining(self, account: str) -> int:
        return self.quota_status(account).remaining

    def consume(self, account: str, amount: int, *, strict: bool = True) -> int:
        """
        Record `amount` against today's quota of `account`; returns the amount granted.

        Strict mode raises QuotaExceeded instead of granting less; permissive
        mode truncates to what is left.
        """
        require_uint("amount", amount)
        if amount == 0:
            return 0
        status = self.quota_status(account)
        if amount > status.remaining:
            if strict:
                raise QuotaExceeded(account, amount, status.remaining)
            amount = status.remaining
        if amount:
            self._ctx.state.usage.set(account, status.day, status.used + amount)
        return amount

    def release(self, account: str, amount: int) -> None:
        require_uint("amount", amount)
        if amount == 0:
            return
        day = utc_day(self._ctx.now())
        usage = self._ctx.state.usage
        usage.set(account, day, saturating_sub(usage.get(account, day), amount))

    def distribute(self, account: str, amount: int) -> Distribution:
        """Deliver `amount` reward tokens to `account`; raises IssuanceFailed with the delivered part."""
        require_uint("amount", amount)
        if amount == 0:
            return Distribution()

        cfg = self._ctx.config
        token = self._ctx.collaborators.reward_token
        treasury = cfg.treasury_account
        spender = cfg.program_account

        available = 0
        bal = self._ctx.best_effort("treasury_balance", treasury, token.balance_of, treasury)
        if bal.ok:
            allowed = self._ctx.best_effort("treasury_allowance", treasury, token.allowance, treasury, spender)
            if allowed.ok:
                available = min(bal.value or 0, allowed.value or 0)

        from_treasury = min(available, amount)
        if from_treasury:
            try:
                token.transfer_from(spender, treasury, account, from_treasury)
            except Exception as exc:
                self._ctx.record("treasury_transfer", account, STATUS_FAILED, f"{type(exc).__name__}: {exc}")
                from_treasury = 0

        shortfall = amount - from_treasury
        if shortfall:
            try:
                token.mint(spender, account, shortfall)
            except Exception as exc:
                raise IssuanceFailed(account, amount, from_treasury, f"{type(exc).__name__}: {exc}") from exc

        logger.info(
            "issued %d to %s (treasury=%d minted=%d)",
            amount,
            account,
            from_treasury,
            shortfall,
        )
        return Distribution(from_treasury=from_treasury, minted=shortfall)
