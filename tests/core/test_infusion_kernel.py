# [TESTER] v1

from __future__ import annotations

import pytest

from colonystake.core.constants import PRECISION, SECONDS_PER_YEAR
from colonystake.core.infusion import (
    InfusionParams,
    harvest_amount,
    infusion_apr,
    infusion_cap,
    infusion_tier,
    remaining_room,
)


def test_caps_fall_back_per_variant() -> None:
    assert infusion_cap(1) == 1_000 * PRECISION
    assert infusion_cap(4) == 5_000 * PRECISION
    assert infusion_cap(1, {1: 7}) == 7
    assert infusion_cap(2, {1: 7}) == 2_000 * PRECISION


@pytest.mark.parametrize(
    "amount,tier",
    [(0, 0), (1, 1), (199, 1), (200, 2), (400, 3), (600, 4), (799, 4), (800, 5), (1_000, 5)],
)
def test_tier_from_fill_percentage(amount: int, tier: int) -> None:
    assert infusion_tier(amount * PRECISION, 1_000 * PRECISION) == tier


def test_apr_is_capped() -> None:
    params = InfusionParams()
    assert infusion_apr(1, 1, params) == 11
    assert infusion_apr(4, 5, params) == 10 + 6 + 5
    assert infusion_apr(4, 5, InfusionParams(max_apr=12)) == 12


def test_harvest_accrues_linearly_over_a_year() -> None:
    infused = 1_000 * PRECISION
    assert harvest_amount(infused, 10, 0, SECONDS_PER_YEAR) == 100 * PRECISION
    assert harvest_amount(infused, 10, 0, SECONDS_PER_YEAR // 2) == 50 * PRECISION
    assert harvest_amount(infused, 10, 100, 100) == 0
    assert harvest_amount(infused, 10, 0, SECONDS_PER_YEAR, balance_multiplier=80) == 80 * PRECISION
    assert harvest_amount(infused, 10, 0, SECONDS_PER_YEAR, max_harvest=PRECISION) == PRECISION


def test_remaining_room_saturates() -> None:
    assert remaining_room(300, 1_000) == 700
    assert remaining_room(1_200, 1_000) == 0


def test_params_validation() -> None:
    with pytest.raises(ValueError):
        InfusionParams(caps={5: 1})
    with pytest.raises(TypeError):
        InfusionParams(apply_stake_balance="yes")  # type: ignore[arg-type]
