"""
Infusion kernel (pure).

Tiering, APR and harvest arithmetic for the infusion sub-ledger:

- tier is a pure function of infused_amount / cap:
  >=80% -> 5, >=60% -> 4, >=40% -> 3, >=20% -> 2, otherwise 1 (0 when empty)
- apr = min(base + variant_bonus * (variant - 1) + tier_bonus * tier, max_apr)
- harvest = infused * apr * elapsed / (100 * SECONDS_PER_YEAR), capped
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional

from .constants import (
    DEFAULT_BASE_APR,
    DEFAULT_MAX_APR,
    DEFAULT_MAX_HARVEST,
    DEFAULT_MIN_INFUSION,
    DEFAULT_TIER_APR_BONUS,
    DEFAULT_VARIANT_APR_BONUS,
    INFUSION_CAP_FALLBACK,
    INFUSION_TIER_THRESHOLDS,
    MAX_VARIANT,
    MIN_VARIANT,
    PERCENT,
    SECONDS_PER_YEAR,
)
from .math import require_range, require_uint, saturating_sub


@dataclass(frozen=True)
class InfusionParams:
    min_deposit: int = DEFAULT_MIN_INFUSION
    caps: Mapping[int, int] = field(default_factory=dict)
    base_apr: int = DEFAULT_BASE_APR
    variant_apr_bonus: int = DEFAULT_VARIANT_APR_BONUS
    tier_apr_bonus: int = DEFAULT_TIER_APR_BONUS
    max_apr: int = DEFAULT_MAX_APR
    max_harvest: int = DEFAULT_MAX_HARVEST
    apply_stake_balance: bool = False

    def __post_init__(self) -> None:
        for name, v in (
            ("min_deposit", self.min_deposit),
            ("base_apr", self.base_apr),
            ("variant_apr_bonus", self.variant_apr_bonus),
            ("tier_apr_bonus", self.tier_apr_bonus),
            ("max_apr", self.max_apr),
            ("max_harvest", self.max_harvest),
        ):
            require_uint(name, v)
        for variant, cap in self.caps.items():
            require_range("cap variant", variant, MIN_VARIANT, MAX_VARIANT)
            require_uint("cap", cap)
        if not isinstance(self.apply_stake_balance, bool):
            raise TypeError("apply_stake_balance must be a bool")


def infusion_cap(variant: int, configured: Optional[Mapping[int, int]] = None) -> int:
    require_range("variant", variant, MIN_VARIANT, MAX_VARIANT)
    if configured:
        v = configured.get(variant)
        if v is not None:
            return require_uint("cap", v)
    return INFUSION_CAP_FALLBACK[variant]


def infusion_tier(infused_amount: int, cap: int) -> int:
    require_uint("infused_amount", infused_amount)
    require_uint("cap", cap)
    if infused_amount == 0 or cap == 0:
        return 0
    pct = (infused_amount * PERCENT) // cap
    for minimum, tier in INFUSION_TIER_THRESHOLDS:
        if pct >= minimum:
            return tier
    return 1


def infusion_apr(variant: int, tier: int, params: InfusionParams) -> int:
    require_range("variant", variant, MIN_VARIANT, MAX_VARIANT)
    require_range("tier", tier, 0, 5)
    apr = params.base_apr + params.variant_apr_bonus * (variant - 1) + params.tier_apr_bonus * tier
    return min(apr, params.max_apr)


def harvest_amount(
    infused_amount: int,
    apr: int,
    last_harvest_time: int,
    now: int,
    *,
    balance_multiplier: int = PERCENT,
    max_harvest: int = DEFAULT_MAX_HARVEST,
) -> int:
    require_uint("infused_amount", infused_amount)
    require_uint("apr", apr)
    require_uint("balance_multiplier", balance_multiplier)
    elapsed = saturating_sub(now, last_harvest_time)
    if elapsed == 0 or infused_amount == 0:
        return 0
    gross = (infused_amount * apr * elapsed) // (PERCENT * SECONDS_PER_YEAR)
    gross = (gross * balance_multiplier) // PERCENT
    return min(gross, max_harvest)


def remaining_room(infused_amount: int, cap: int) -> int:
    return saturating_sub(cap, infused_amount)
