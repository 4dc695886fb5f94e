"""
Fee kernels (deterministic, integer-only).

- `resolve_fee` maps an operation name to its configured fee, falling back
  through legacy aliases (an unconfigured harvest fee uses the claim fee).
- `tiered_fee` picks a basis-point rate from an ascending threshold table.
- Every percentage fee is clamped so the payer keeps at least
  `MIN_RETAINED_PERCENT` of the gross amount.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from .constants import BPS_DENOM, MIN_RETAINED_PERCENT, PERCENT
from .math import require_uint


REWARD_CURRENCY = "reward"

FEE_OPERATIONS: tuple[str, ...] = (
    "stake",
    "unstake",
    "claim",
    "harvest",
    "infuse",
    "reinvest",
    "withdraw",
    "recharge",
)

# Older deployments configured fewer operation names; newer names fall back in order.
LEGACY_FEE_ALIASES: dict[str, tuple[str, ...]] = {
    "harvest": ("claim",),
    "reinvest": ("harvest", "claim"),
    "withdraw": ("unstake",),
    "recharge": ("claim",),
}


@dataclass(frozen=True)
class FeeTiers:
    thresholds: tuple[int, ...]
    bps: tuple[int, ...]

    def __post_init__(self) -> None:
        if len(self.thresholds) == 0 or len(self.thresholds) != len(self.bps):
            raise ValueError("fee tiers need matching non-empty thresholds and bps")
        prev = -1
        for t in self.thresholds:
            require_uint("threshold", t)
            if t <= prev:
                raise ValueError("fee tier thresholds must be strictly ascending")
            prev = t
        for b in self.bps:
            require_uint("bps", b)
            if b > BPS_DENOM:
                raise ValueError(f"bps must be <= {BPS_DENOM}: {b}")


@dataclass(frozen=True)
class FeeConfig:
    amount: int = 0
    beneficiary: str = ""
    currency: str = REWARD_CURRENCY
    burn_on_collect: bool = False
    tiers: Optional[FeeTiers] = None

    def __post_init__(self) -> None:
        require_uint("amount", self.amount)
        if not isinstance(self.beneficiary, str):
            raise TypeError("beneficiary must be a str")
        if not isinstance(self.currency, str) or not self.currency:
            raise TypeError("currency must be a non-empty str")
        if not isinstance(self.burn_on_collect, bool):
            raise TypeError("burn_on_collect must be a bool")

    @property
    def configured(self) -> bool:
        return self.amount > 0 or self.tiers is not None


def resolve_fee(operation: str, fees: Mapping[str, FeeConfig]) -> Optional[FeeConfig]:
    """Configured fee for `operation`, else the first configured legacy alias."""
    if not isinstance(operation, str) or not operation:
        raise TypeError("operation must be a non-empty str")
    for name in (operation,) + LEGACY_FEE_ALIASES.get(operation, ()):
        cfg = fees.get(name)
        if cfg is not None and cfg.configured:
            return cfg
    return None


def max_fee_for(gross: int) -> int:
    """Largest fee that still leaves the payer MIN_RETAINED_PERCENT of `gross`."""
    require_uint("gross", gross)
    return (gross * (PERCENT - MIN_RETAINED_PERCENT)) // PERCENT


def select_tier(amount: int, thresholds: Sequence[int]) -> int:
    """Index of the first threshold >= amount; the last tier when amount exceeds all."""
    require_uint("amount", amount)
    if not thresholds:
        raise ValueError("thresholds must be non-empty")
    for i, t in enumerate(thresholds):
        if amount <= t:
            return i
    return len(thresholds) - 1


def tiered_fee(amount: int, thresholds: Sequence[int], bps: Sequence[int], base_fee: int = 0) -> int:
    require_uint("base_fee", base_fee)
    if len(thresholds) != len(bps):
        raise ValueError("thresholds and bps must have equal length")
    tier = select_tier(amount, thresholds)
    fee = (amount * bps[tier]) // BPS_DENOM
    if fee < base_fee:
        fee = base_fee
    return min(fee, max_fee_for(amount))


def withheld_fee(gross: int, cfg: Optional[FeeConfig]) -> int:
    """
    Fee withheld from a payout: max(flat amount, tiered percentage), clamped
    to leave the payer at least 1% of `gross`.
    """
    require_uint("gross", gross)
    if cfg is None or gross == 0:
        return 0
    fee = cfg.amount
    if cfg.tiers is not None:
        fee = max(fee, tiered_fee(gross, cfg.tiers.thresholds, cfg.tiers.bps, cfg.amount))
    return min(fee, max_fee_for(gross))
