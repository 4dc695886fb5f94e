"""
Reward computation kernel (pure).

`calculate_reward(position, context, params)` folds a position's stored
attributes and the live context signals into one integer reward:

1. elapsed time since last claim, clamped to `max_reward_period`
2. linear base accrual from the per-variant daily rate
3. token multiplier = 100 + level + variant + charge + infusion + specialization
4. context bonus = colony + loyalty + accessories, clamped to a combined cap
5. combination, selected by `config_version`:
   - version < 2, additive:  base * token * (100 + ctx) * season / 1e6
   - version >= 2, multiplicative: three sequential percent steps
6. stake-balance multiplier (account share decay + time-in-program bonus)
7. wear penalty
8. cap at `max_safe_reward`

Both combination modes are kept as version-selected paths; they differ only in
where floor rounding happens.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, unique
from typing import Mapping, Optional, Sequence

from ..state.positions import Position
from .bonuses import (
    accessory_bonus,
    charge_bonus,
    colony_bonus,
    context_bonus_cap,
    daily_rate,
    infusion_bonus,
    level_bonus,
    loyalty_bonus,
    specialization_bonus,
    variant_bonus,
    wear_penalty,
)
from .constants import (
    DEFAULT_MAX_ACCESSORY_BONUS,
    DEFAULT_MAX_COLONY_BONUS,
    DEFAULT_MAX_REWARD_PERIOD,
    DEFAULT_SEASON_MULTIPLIER,
    MAX_SAFE_REWARD,
    MULTIPLICATIVE_SINCE_VERSION,
    PERCENT,
    SECONDS_PER_DAY,
)
from .math import require_uint, saturating_sub
from .stake_balance import StakeBalanceParams, stake_balance_multiplier


@unique
class RewardMode(Enum):
    ADDITIVE = "additive"
    MULTIPLICATIVE = "multiplicative"


def reward_mode(config_version: int) -> RewardMode:
    require_uint("config_version", config_version)
    if config_version >= MULTIPLICATIVE_SINCE_VERSION:
        return RewardMode.MULTIPLICATIVE
    return RewardMode.ADDITIVE


@dataclass(frozen=True)
class RewardParams:
    config_version: int = 1
    season_multiplier: int = DEFAULT_SEASON_MULTIPLIER
    max_reward_period: int = DEFAULT_MAX_REWARD_PERIOD
    max_safe_reward: int = MAX_SAFE_REWARD

    # Configured tables; a missing key falls back to the named constant.
    daily_rates: Mapping[int, int] = field(default_factory=dict)
    level_bonuses: Mapping[int, int] = field(default_factory=dict)
    variant_bonuses: Mapping[int, int] = field(default_factory=dict)
    infusion_bonuses: Mapping[int, int] = field(default_factory=dict)
    specialization_bonuses: Mapping[int, int] = field(default_factory=dict)
    charge_bonuses: Optional[Sequence[tuple[int, int]]] = None
    loyalty_bonuses: Optional[Sequence[tuple[int, int]]] = None

    max_colony_bonus: int = DEFAULT_MAX_COLONY_BONUS
    max_accessory_bonus: int = DEFAULT_MAX_ACCESSORY_BONUS
    context_bonus_cap: Optional[int] = None

    wear_thresholds: Optional[Sequence[int]] = None
    wear_penalties: Optional[Sequence[int]] = None

    stake_balance: StakeBalanceParams = StakeBalanceParams()

    def __post_init__(self) -> None:
        for name, v in (
            ("config_version", self.config_version),
            ("season_multiplier", self.season_multiplier),
            ("max_reward_period", self.max_reward_period),
            ("max_safe_reward", self.max_safe_reward),
            ("max_colony_bonus", self.max_colony_bonus),
            ("max_accessory_bonus", self.max_accessory_bonus),
        ):
            require_uint(name, v)
        if self.config_version == 0:
            raise ValueError("config_version must be >= 1")
        if self.context_bonus_cap is not None:
            require_uint("context_bonus_cap", self.context_bonus_cap)
        if (self.wear_thresholds is None) != (self.wear_penalties is None):
            raise ValueError("wear_thresholds and wear_penalties must be configured together")

    @property
    def mode(self) -> RewardMode:
        return reward_mode(self.config_version)

    @property
    def combined_context_cap(self) -> int:
        return context_bonus_cap(self.config_version, self.context_bonus_cap)


@dataclass(frozen=True)
class RewardContext:
    """Live signals gathered by the shell at access time."""

    now: int
    colony_bonus: int = 0
    accessory_bonuses: tuple[int, ...] = ()
    account_positions: int = 0
    total_positions: int = 0

    def __post_init__(self) -> None:
        require_uint("now", self.now)
        require_uint("colony_bonus", self.colony_bonus)
        require_uint("account_positions", self.account_positions)
        require_uint("total_positions", self.total_positions)


@dataclass(frozen=True)
class RewardBreakdown:
    elapsed: int = 0
    base_reward: int = 0
    level_bonus: int = 0
    variant_bonus: int = 0
    charge_bonus: int = 0
    infusion_bonus: int = 0
    specialization_bonus: int = 0
    token_multiplier: int = PERCENT
    colony_bonus: int = 0
    loyalty_bonus: int = 0
    accessory_bonus: int = 0
    context_bonus: int = 0
    mode: RewardMode = RewardMode.ADDITIVE
    season_multiplier: int = DEFAULT_SEASON_MULTIPLIER
    combined_reward: int = 0
    stake_balance_multiplier: int = PERCENT
    wear_penalty: int = 0
    final_reward: int = 0
    capped: bool = False


def effective_elapsed(position: Position, now: int, max_period: int) -> int:
    return min(saturating_sub(now, position.last_claim_timestamp), max_period)


def base_reward(variant: int, elapsed: int, rates: Optional[Mapping[int, int]] = None) -> int:
    require_uint("elapsed", elapsed)
    return (daily_rate(variant, rates) * elapsed) // SECONDS_PER_DAY


def token_multiplier_terms(position: Position, params: RewardParams) -> tuple[int, int, int, int, int]:
    return (
        level_bonus(position.level, params.level_bonuses),
        variant_bonus(position.variant, params.variant_bonuses),
        charge_bonus(position.charge_level, params.charge_bonuses),
        infusion_bonus(position.infusion_level, params.infusion_bonuses),
        specialization_bonus(position.specialization, params.specialization_bonuses),
    )


def combine(base: int, token_multiplier: int, context: int, season: int, mode: RewardMode) -> int:
    if mode is RewardMode.ADDITIVE:
        return (base * token_multiplier * (PERCENT + context) * season) // (PERCENT * PERCENT * PERCENT)
    r = (base * token_multiplier) // PERCENT
    r = (r * season) // PERCENT
    return (r * (PERCENT + context)) // PERCENT


def calculate_reward(position: Position, context: RewardContext, params: RewardParams) -> RewardBreakdown:
    """Compute the reward owed to `position` at `context.now`."""
    elapsed = effective_elapsed(position, context.now, params.max_reward_period)
    if elapsed == 0 or not position.staked:
        return RewardBreakdown(mode=params.mode, season_multiplier=params.season_multiplier)

    base = base_reward(position.variant, elapsed, params.daily_rates)

    lvl, var, chg, inf, special = token_multiplier_terms(position, params)
    token_mult = PERCENT + lvl + var + chg + inf + special

    staking_duration = saturating_sub(context.now, position.staked_at)
    col = colony_bonus(context.colony_bonus, params.max_colony_bonus)
    loy = loyalty_bonus(staking_duration, params.loyalty_bonuses)
    acc = accessory_bonus(context.accessory_bonuses, params.max_accessory_bonus)
    ctx = min(col + loy + acc, params.combined_context_cap)

    combined = combine(base, token_mult, ctx, params.season_multiplier, params.mode)

    balance_mult = stake_balance_multiplier(
        context.account_positions,
        context.total_positions,
        staking_duration,
        params.stake_balance,
    )
    adjusted = (combined * balance_mult) // PERCENT

    penalty = wear_penalty(position.wear_level, params.wear_thresholds, params.wear_penalties)
    adjusted = (adjusted * (PERCENT - penalty)) // PERCENT

    capped = adjusted > params.max_safe_reward
    final = params.max_safe_reward if capped else adjusted

    return RewardBreakdown(
        elapsed=elapsed,
        base_reward=base,
        level_bonus=lvl,
        variant_bonus=var,
        charge_bonus=chg,
        infusion_bonus=inf,
        specialization_bonus=special,
        token_multiplier=token_mult,
        colony_bonus=col,
        loyalty_bonus=loy,
        accessory_bonus=acc,
        context_bonus=ctx,
        mode=params.mode,
        season_multiplier=params.season_multiplier,
        combined_reward=combined,
        stake_balance_multiplier=balance_mult,
        wear_penalty=penalty,
        final_reward=final,
        capped=capped,
    )
