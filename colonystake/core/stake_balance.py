"""
Stake-balance adjustment kernel.

Accounts holding a large share of all staked positions earn less per position.
The decay is a piecewise-linear curve over the account's share (in bps) with
breakpoints at 1%, 5%, 10% and 20%, approaching `MAX_BALANCE_DECAY` at 100%.

    share   0%..1%   5%   10%   20%   100%
    decay     0      5    12    20     30

The curve is scaled by `decay_rate` (percent) and capped. A time-in-program
bonus ramps linearly over `time_bonus_period` and is added after the floor,
then the floor is re-applied.
"""

from __future__ import annotations

from dataclasses import dataclass

from .constants import (
    BPS_DENOM,
    DEFAULT_DECAY_RATE,
    DEFAULT_MAX_TIME_BONUS,
    DEFAULT_MIN_BALANCE_MULTIPLIER,
    DEFAULT_TIME_BONUS_PERIOD,
    MAX_BALANCE_DECAY,
    PERCENT,
)
from .math import require_uint


_DECAY_CURVE: tuple[tuple[int, int], ...] = (
    (0, 0),
    (100, 0),
    (500, 5),
    (1_000, 12),
    (2_000, 20),
    (BPS_DENOM, MAX_BALANCE_DECAY),
)


@dataclass(frozen=True)
class StakeBalanceParams:
    enabled: bool = False
    decay_rate: int = DEFAULT_DECAY_RATE
    min_multiplier: int = DEFAULT_MIN_BALANCE_MULTIPLIER
    max_time_bonus: int = DEFAULT_MAX_TIME_BONUS
    time_bonus_period: int = DEFAULT_TIME_BONUS_PERIOD

    def __post_init__(self) -> None:
        if not isinstance(self.enabled, bool):
            raise TypeError("enabled must be a bool")
        for name, v in (
            ("decay_rate", self.decay_rate),
            ("min_multiplier", self.min_multiplier),
            ("max_time_bonus", self.max_time_bonus),
            ("time_bonus_period", self.time_bonus_period),
        ):
            require_uint(name, v)
        if self.min_multiplier > PERCENT:
            raise ValueError(f"min_multiplier must be <= {PERCENT}: {self.min_multiplier}")


def share_bps(account_positions: int, total_positions: int) -> int:
    require_uint("account_positions", account_positions)
    require_uint("total_positions", total_positions)
    if total_positions == 0:
        return 0
    if account_positions > total_positions:
        raise ValueError("account_positions must be <= total_positions")
    return (account_positions * BPS_DENOM) // total_positions


def base_decay(share: int) -> int:
    require_uint("share", share)
    if share >= BPS_DENOM:
        return MAX_BALANCE_DECAY
    for (x0, y0), (x1, y1) in zip(_DECAY_CURVE, _DECAY_CURVE[1:]):
        if share <= x1:
            return y0 + ((share - x0) * (y1 - y0)) // (x1 - x0)
    return MAX_BALANCE_DECAY


def balance_decay(share: int, decay_rate: int) -> int:
    require_uint("decay_rate", decay_rate)
    return min((base_decay(share) * decay_rate) // PERCENT, MAX_BALANCE_DECAY)


def time_in_program_bonus(staking_duration: int, max_bonus: int, period: int) -> int:
    require_uint("staking_duration", staking_duration)
    require_uint("max_bonus", max_bonus)
    require_uint("period", period)
    if period == 0 or staking_duration >= period:
        return max_bonus
    return (staking_duration * max_bonus) // period


def stake_balance_multiplier(
    account_positions: int,
    total_positions: int,
    staking_duration: int,
    params: StakeBalanceParams,
) -> int:
    """Percent multiplier (100 = unchanged) for an account's reward."""
    if not params.enabled:
        return PERCENT
    decay = balance_decay(share_bps(account_positions, total_positions), params.decay_rate)
    multiplier = max(PERCENT - decay, params.min_multiplier)
    multiplier += time_in_program_bonus(staking_duration, params.max_time_bonus, params.time_bonus_period)
    return max(multiplier, params.min_multiplier)
