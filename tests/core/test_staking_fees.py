# [TESTER] v1

from __future__ import annotations

import pytest

from colonystake.core.constants import PRECISION
from colonystake.core.fees import (
    FeeConfig,
    FeeTiers,
    max_fee_for,
    resolve_fee,
    select_tier,
    tiered_fee,
    withheld_fee,
)


def test_resolve_fee_prefers_exact_operation() -> None:
    fees = {"claim": FeeConfig(amount=1), "harvest": FeeConfig(amount=2)}
    assert resolve_fee("harvest", fees).amount == 2
    assert resolve_fee("claim", fees).amount == 1


def test_resolve_fee_falls_back_through_legacy_aliases() -> None:
    fees = {"claim": FeeConfig(amount=1), "unstake": FeeConfig(amount=3)}
    assert resolve_fee("harvest", fees).amount == 1
    assert resolve_fee("reinvest", fees).amount == 1
    assert resolve_fee("withdraw", fees).amount == 3
    assert resolve_fee("stake", fees) is None


def test_unconfigured_entry_does_not_shadow_alias() -> None:
    fees = {"harvest": FeeConfig(), "claim": FeeConfig(amount=5)}
    assert resolve_fee("harvest", fees).amount == 5


def test_select_tier() -> None:
    thresholds = (100, 1_000)
    assert select_tier(50, thresholds) == 0
    assert select_tier(100, thresholds) == 0
    assert select_tier(101, thresholds) == 1
    assert select_tier(10_000, thresholds) == 1


def test_tiered_fee_respects_base_fee_and_retention() -> None:
    assert tiered_fee(1_000, (100, 1_000), (500, 200)) == 20
    assert tiered_fee(1_000, (100, 1_000), (500, 200), base_fee=50) == 50
    # 100% bps still leaves the payer 1%.
    assert tiered_fee(1_000, (10_000,), (10_000,)) == 990


def test_withheld_fee_is_max_of_flat_and_tiered() -> None:
    tiers = FeeTiers(thresholds=(100 * PRECISION,), bps=(500,))
    cfg = FeeConfig(amount=PRECISION, tiers=tiers)
    assert withheld_fee(10 * PRECISION, cfg) == PRECISION
    assert withheld_fee(100 * PRECISION, cfg) == 5 * PRECISION
    assert withheld_fee(0, cfg) == 0
    assert withheld_fee(10 * PRECISION, None) == 0


def test_withheld_flat_fee_is_clamped_to_retention() -> None:
    cfg = FeeConfig(amount=10 * PRECISION)
    assert withheld_fee(PRECISION, cfg) == max_fee_for(PRECISION)
    assert max_fee_for(PRECISION) == PRECISION * 99 // 100


def test_fee_config_validation() -> None:
    with pytest.raises(ValueError):
        FeeTiers(thresholds=(10, 5), bps=(1, 2))
    with pytest.raises(ValueError):
        FeeTiers(thresholds=(10,), bps=(10_001,))
    with pytest.raises(ValueError):
        FeeTiers(thresholds=(), bps=())
    with pytest.raises(TypeError):
        FeeConfig(currency="")
    with pytest.raises(ValueError):
        FeeConfig(amount=-1)
