# [TESTER] v1

from __future__ import annotations

from dataclasses import replace

import pytest

from colonystake.core.constants import MAX_SAFE_REWARD, PRECISION, SECONDS_PER_DAY
from colonystake.core.reward import (
    RewardContext,
    RewardMode,
    RewardParams,
    calculate_reward,
    combine,
    reward_mode,
)
from colonystake.core.stake_balance import StakeBalanceParams
from colonystake.state.positions import new_position


DAY = SECONDS_PER_DAY
T0 = 20_000 * DAY


def _position(**overrides):
    pos = new_position(1 << 128 | 7, "alice", "alice", T0)
    return replace(pos, **overrides)


def test_fresh_position_earns_base_rate_times_charge_bonus() -> None:
    pos = _position()
    out = calculate_reward(pos, RewardContext(now=T0 + DAY), RewardParams())
    assert out.base_reward == 10 * PRECISION
    assert out.token_multiplier == 110
    assert out.context_bonus == 0
    assert out.final_reward == 11 * PRECISION


def test_regression_vector_additive_mode() -> None:
    # variant 2, level 10, charge 90, colony bonus 5, staked for 30 days.
    pos = _position(
        variant=2,
        level=10,
        charge_level=90,
        staked_at=T0 - 29 * DAY,
        last_claim_timestamp=T0,
    )
    out = calculate_reward(pos, RewardContext(now=T0 + DAY, colony_bonus=5), RewardParams())
    assert out.level_bonus == 4
    assert out.variant_bonus == 4
    assert out.charge_bonus == 10
    assert out.token_multiplier == 118
    assert out.loyalty_bonus == 2
    assert out.context_bonus == 7
    assert out.mode is RewardMode.ADDITIVE
    assert out.final_reward == 12 * PRECISION * 118 * 107 // 10_000


def test_modes_differ_only_in_rounding() -> None:
    assert combine(333, 110, 15, 100, RewardMode.ADDITIVE) == 421
    assert combine(333, 110, 15, 100, RewardMode.MULTIPLICATIVE) == 420


def test_config_version_selects_mode() -> None:
    assert reward_mode(1) is RewardMode.ADDITIVE
    assert reward_mode(2) is RewardMode.MULTIPLICATIVE
    assert RewardParams(config_version=3).mode is RewardMode.MULTIPLICATIVE
    with pytest.raises(ValueError):
        RewardParams(config_version=0)


def test_zero_elapsed_or_unstaked_earns_nothing() -> None:
    pos = _position()
    assert calculate_reward(pos, RewardContext(now=T0), RewardParams()).final_reward == 0
    # A claim timestamp in the future saturates to zero elapsed time.
    assert calculate_reward(pos, RewardContext(now=T0 - DAY), RewardParams()).final_reward == 0
    idle = _position(staked=False)
    assert calculate_reward(idle, RewardContext(now=T0 + DAY), RewardParams()).final_reward == 0


def test_elapsed_is_clamped_to_max_reward_period() -> None:
    pos = _position()
    params = RewardParams(max_reward_period=10 * DAY)
    out = calculate_reward(pos, RewardContext(now=T0 + 400 * DAY), params)
    assert out.elapsed == 10 * DAY
    assert out.base_reward == 100 * PRECISION


def test_context_bonus_is_capped_per_version() -> None:
    pos = _position(staked_at=T0 - 400 * DAY)
    ctx = RewardContext(now=T0 + DAY, colony_bonus=50, accessory_bonuses=(15, 15))
    v1 = calculate_reward(pos, ctx, RewardParams())
    # colony 50 + loyalty 10 + accessories 20 (capped) = 80 -> 50 under v1
    assert v1.colony_bonus == 50
    assert v1.accessory_bonus == 20
    assert v1.loyalty_bonus == 10
    assert v1.context_bonus == 50
    v2 = calculate_reward(pos, ctx, RewardParams(config_version=2))
    assert v2.context_bonus == 75
    override = calculate_reward(pos, ctx, RewardParams(context_bonus_cap=30))
    assert override.context_bonus == 30


def test_colony_bonus_is_clamped_to_configured_maximum() -> None:
    pos = _position()
    out = calculate_reward(pos, RewardContext(now=T0 + DAY, colony_bonus=90), RewardParams(max_colony_bonus=20))
    assert out.colony_bonus == 20


def test_wear_penalty_reduces_reward() -> None:
    pos = _position(wear_level=55)
    out = calculate_reward(pos, RewardContext(now=T0 + DAY), RewardParams())
    assert out.wear_penalty == 10
    assert out.final_reward == 11 * PRECISION * 90 // 100


def test_stake_balance_multiplier_applies_when_enabled() -> None:
    pos = _position()
    params = RewardParams(stake_balance=StakeBalanceParams(enabled=True, max_time_bonus=0))
    ctx = RewardContext(now=T0 + DAY, account_positions=1, total_positions=1)
    out = calculate_reward(pos, ctx, params)
    assert out.stake_balance_multiplier == 70
    assert out.final_reward == 11 * PRECISION * 70 // 100


def test_final_reward_is_capped() -> None:
    pos = _position(variant=4, level=100)
    params = RewardParams(max_reward_period=365 * DAY, season_multiplier=10_000)
    out = calculate_reward(pos, RewardContext(now=T0 + 365 * DAY), params)
    assert out.capped is True
    assert out.final_reward == MAX_SAFE_REWARD


def test_configured_tables_override_fallbacks() -> None:
    pos = _position()
    params = RewardParams(daily_rates={1: 20 * PRECISION}, charge_bonuses=((50, 0),))
    out = calculate_reward(pos, RewardContext(now=T0 + DAY), params)
    assert out.base_reward == 20 * PRECISION
    assert out.charge_bonus == 0
    assert out.final_reward == 20 * PRECISION
