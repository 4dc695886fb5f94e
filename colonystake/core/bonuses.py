"""
Bonus resolvers (pure).

One function per bonus category. Each takes the raw input plus an optional
configured table and returns an integer percent (or a rate, for
`daily_rate`). A configured entry wins when present for that key; otherwise
the named fallback from `constants.py` applies.

Threshold tables are tuples of `(minimum, value)` pairs; they are scanned from
the highest minimum down, so callers may pass them in any order.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Optional, Sequence

from .constants import (
    CHARGE_BONUS_FALLBACK,
    CONTEXT_BONUS_CAP_V1,
    CONTEXT_BONUS_CAP_V2,
    DAILY_RATE_FALLBACK,
    INFUSION_BONUS_FALLBACK,
    LEVEL_BONUS_DEN,
    LEVEL_BONUS_NUM,
    LOYALTY_BONUS_FALLBACK,
    MAX_CHARGE,
    MAX_INFUSION_LEVEL,
    MAX_LEVEL,
    MAX_SPECIALIZATION,
    MAX_VARIANT,
    MAX_WEAR,
    MIN_LEVEL,
    MIN_VARIANT,
    MULTIPLICATIVE_SINCE_VERSION,
    SPECIALIZATION_BONUS_FALLBACK,
    VARIANT_BONUS_STEP,
    WEAR_PENALTIES_FALLBACK,
    WEAR_THRESHOLDS_FALLBACK,
)
from .math import require_range, require_uint


Table = Optional[Mapping[int, int]]
Thresholds = Optional[Sequence[tuple[int, int]]]


def _lookup(table: Table, key: int) -> Optional[int]:
    if not table:
        return None
    v = table.get(key)
    if v is None:
        return None
    return require_uint(f"configured value for {key}", v)


def _scan_thresholds(value: int, table: Sequence[tuple[int, int]]) -> int:
    for minimum, bonus in sorted(table, key=lambda t: t[0], reverse=True):
        if value >= minimum:
            return bonus
    return 0


def daily_rate(variant: int, configured: Table = None) -> int:
    require_range("variant", variant, MIN_VARIANT, MAX_VARIANT)
    v = _lookup(configured, variant)
    if v is not None:
        return v
    return DAILY_RATE_FALLBACK[variant]


def level_bonus(level: int, configured: Table = None) -> int:
    require_range("level", level, MIN_LEVEL, MAX_LEVEL)
    v = _lookup(configured, level)
    if v is not None:
        return v
    return (level * LEVEL_BONUS_NUM) // LEVEL_BONUS_DEN


def variant_bonus(variant: int, configured: Table = None) -> int:
    require_range("variant", variant, MIN_VARIANT, MAX_VARIANT)
    v = _lookup(configured, variant)
    if v is not None:
        return v
    return VARIANT_BONUS_STEP * (variant - 1)


def charge_bonus(charge_level: int, configured: Thresholds = None) -> int:
    require_range("charge_level", charge_level, 0, MAX_CHARGE)
    return _scan_thresholds(charge_level, configured or CHARGE_BONUS_FALLBACK)


def infusion_bonus(infusion_level: int, configured: Table = None) -> int:
    require_range("infusion_level", infusion_level, 0, MAX_INFUSION_LEVEL)
    if infusion_level == 0:
        return 0
    v = _lookup(configured, infusion_level)
    if v is not None:
        return v
    return INFUSION_BONUS_FALLBACK[infusion_level]


def specialization_bonus(specialization: int, configured: Table = None) -> int:
    require_range("specialization", specialization, 0, MAX_SPECIALIZATION)
    if specialization == 0:
        return 0
    v = _lookup(configured, specialization)
    if v is not None:
        return v
    return SPECIALIZATION_BONUS_FALLBACK.get(specialization, 0)


def loyalty_bonus(staking_duration: int, configured: Thresholds = None) -> int:
    """Tiered by how long the position has been staked (seconds)."""
    require_uint("staking_duration", staking_duration)
    return _scan_thresholds(staking_duration, configured or LOYALTY_BONUS_FALLBACK)


def colony_bonus(bonus: int, cap: int) -> int:
    require_uint("colony bonus", bonus)
    require_uint("colony bonus cap", cap)
    return min(bonus, cap)


def accessory_bonus(bonuses: Iterable[int], cap: int) -> int:
    require_uint("accessory bonus cap", cap)
    total = 0
    for b in bonuses:
        total += require_uint("accessory bonus", b)
        if total >= cap:
            return cap
    return total


def context_bonus_cap(config_version: int, override: Optional[int] = None) -> int:
    require_uint("config_version", config_version)
    if override is not None:
        return require_uint("context bonus cap", override)
    if config_version >= MULTIPLICATIVE_SINCE_VERSION:
        return CONTEXT_BONUS_CAP_V2
    return CONTEXT_BONUS_CAP_V1


def wear_penalty(
    wear_level: int,
    thresholds: Optional[Sequence[int]] = None,
    penalties: Optional[Sequence[int]] = None,
) -> int:
    """
    Percentage reduction for a wear level.

    `thresholds` must be strictly ascending and pair up with `penalties`; the
    penalty of the highest threshold not above `wear_level` applies.
    """
    require_range("wear_level", wear_level, 0, MAX_WEAR)
    if thresholds is None or penalties is None:
        thresholds, penalties = WEAR_THRESHOLDS_FALLBACK, WEAR_PENALTIES_FALLBACK
    if len(thresholds) != len(penalties):
        raise ValueError("wear thresholds and penalties must have equal length")
    selected = 0
    prev = -1
    for threshold, penalty in zip(thresholds, penalties):
        if threshold <= prev:
            raise ValueError("wear thresholds must be strictly ascending")
        prev = threshold
        if wear_level >= threshold:
            selected = require_range("wear penalty", penalty, 0, 100)
        else:
            break
    return selected
