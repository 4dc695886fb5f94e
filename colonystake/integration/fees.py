"""
Fee collection (imperative shell around `core.fees`).

Two kinds of fee exist:

- charged fees are pulled from the payer's balance through the program's
  allowance, either to the beneficiary or burned (`apply`);
- withheld fees are subtracted from a payout before it is issued, and the
  withheld part is issued to the beneficiary or never issued at all when the
  fee burns (`withhold` / `settle_withheld`).

Every charged fee returns a `FeeCharge` so a failed operation can hand it
back through `refund`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..core.fees import FeeConfig, resolve_fee, withheld_fee
from ..errors import FeeNotAuthorized, InsufficientFeeBalance
from .best_effort import STATUS_FAILED, STATUS_OK
from .context import ShellContext


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeeCharge:
    operation: str
    payer: str
    amount: int = 0
    currency: str = ""
    beneficiary: str = ""
    burned: bool = False

    @property
    def charged(self) -> bool:
        return self.amount > 0


@dataclass(frozen=True)
class WithheldFee:
    operation: str
    amount: int = 0
    beneficiary: str = ""
    burned: bool = False


class FeeCollector:
    def __init__(self, ctx: ShellContext) -> None:
        self._ctx = ctx

    def resolve(self, operation: str) -> Optional[FeeConfig]:
        return resolve_fee(operation, self._ctx.config.fees)

    def apply(self, fee: Optional[FeeConfig], payer: str, operation: str = "") -> FeeCharge:
        """
        Pull `fee.amount` from `payer`.

        A fee with no amount or no beneficiary is a no-op, burning fees
        included. Balance and allowance are checked before any transfer.
        """
        if fee is None or fee.amount == 0 or not fee.beneficiary:
            return FeeCharge(operation=operation, payer=payer)

        token = self._ctx.collaborators.token(fee.currency)
        spender = self._ctx.config.program_account
        balance = token.balance_of(payer)
        if balance < fee.amount:
            raise InsufficientFeeBalance(f"{operation} fee {fee.amount} exceeds balance {balance} of {payer}")
        allowed = token.allowance(payer, spender)
        if allowed < fee.amount:
            raise FeeNotAuthorized(f"{operation} fee {fee.amount} exceeds allowance {allowed} from {payer}")

        if fee.burn_on_collect:
            token.burn_from(spender, payer, fee.amount)
        else:
            token.transfer_from(spender, payer, fee.beneficiary, fee.amount)

        logger.info(
            "fee charged op=%s payer=%s amount=%d burned=%s",
            operation,
            payer,
            fee.amount,
            fee.burn_on_collect,
        )
        return FeeCharge(
            operation=operation,
            payer=payer,
            amount=fee.amount,
            currency=fee.currency,
            beneficiary=fee.beneficiary,
            burned=fee.burn_on_collect,
        )

    def charge(self, operation: str, payer: str) -> FeeCharge:
        return self.apply(self.resolve(operation), payer, operation)

    def refund(self, charge: FeeCharge) -> bool:
        """
        Compensating transfer for a charge whose operation was rolled back.

        Burned fees are re-minted. A refund that cannot be delivered is
        recorded as a failed outcome; the caller still raises its own error.
        """
        if not charge.charged:
            return True
        token = self._ctx.collaborators.token(charge.currency)
        spender = self._ctx.config.program_account
        if charge.burned:
            res = self._ctx.best_effort("fee_refund", charge.payer, token.mint, spender, charge.payer, charge.amount)
        else:
            res = self._ctx.best_effort(
                "fee_refund",
                charge.payer,
                token.transfer_from,
                spender,
                charge.beneficiary,
                charge.payer,
                charge.amount,
            )
        if res.ok:
            self._ctx.record("fee_refund", charge.payer, STATUS_OK, f"{charge.operation}:{charge.amount}")
        return res.ok

    def withhold(self, operation: str, gross: int) -> WithheldFee:
        cfg = self.resolve(operation)
        if cfg is None or not cfg.beneficiary:
            return WithheldFee(operation=operation)
        return WithheldFee(
            operation=operation,
            amount=withheld_fee(gross, cfg),
            beneficiary=cfg.beneficiary,
            burned=cfg.burn_on_collect,
        )

    def settle_withheld(self, fee: WithheldFee, issue) -> None:
        """Issue a withheld fee to its beneficiary through `issue(account, amount)`; burned fees are dropped."""
        if fee.amount == 0 or fee.burned:
            return
        try:
            issue(fee.beneficiary, fee.amount)
        except Exception as exc:
            self._ctx.record("fee_withheld", fee.beneficiary, STATUS_FAILED, f"{type(exc).__name__}: {exc}")
