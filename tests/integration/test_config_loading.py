# [TESTER] v1

from __future__ import annotations

from pathlib import Path

import pytest

from colonystake.core.constants import PRECISION
from colonystake.core.reward import RewardMode
from colonystake.integration.config import ProgramConfig, config_from_dict, load_config, parse_amount


def test_parse_amount_units() -> None:
    assert parse_amount(5) == 5
    assert parse_amount("5") == 5 * PRECISION
    assert parse_amount("0.5") == PRECISION // 2
    assert parse_amount("0.000000000000000001") == 1
    with pytest.raises(ValueError):
        parse_amount("0.0000000000000000001")
    with pytest.raises(ValueError):
        parse_amount("-1")
    with pytest.raises(ValueError):
        parse_amount("ten")
    with pytest.raises(TypeError):
        parse_amount(True)
    with pytest.raises(TypeError):
        parse_amount(1.5)


def test_load_yaml_config(tmp_path: Path) -> None:
    path = tmp_path / "program.yaml"
    path.write_text(
        """
enabled: true
collections: [1, 2]
admins: [ops]
daily_issuance_limit: "500"
cooldown_seconds: 3600
reward:
  config_version: 2
  daily_rates: {1: "20"}
  charge_bonuses: [[80, 12], [40, 4]]
  wear_thresholds: [20, 60]
  wear_penalties: [5, 15]
  stake_balance: {enabled: true, min_multiplier: 80}
infusion:
  caps: {1: "100"}
  min_deposit: "0.5"
colony: {max_bonus: 40, force_override: true}
batch: {max_count: 10}
fees:
  claim: {amount: "1", beneficiary: treasury}
  harvest:
    amount: "0.5"
    beneficiary: treasury
    tiers: {thresholds: ["100", "1000"], bps: [200, 100]}
""",
        encoding="utf-8",
    )
    cfg = load_config(path)
    assert cfg.collections == frozenset({1, 2})
    assert cfg.is_admin("ops")
    assert cfg.daily_issuance_limit == 500 * PRECISION
    assert cfg.cooldown_seconds == 3600
    assert cfg.reward.mode is RewardMode.MULTIPLICATIVE
    assert cfg.reward.daily_rates == {1: 20 * PRECISION}
    assert cfg.reward.charge_bonuses == ((80, 12), (40, 4))
    assert cfg.reward.wear_thresholds == (20, 60)
    assert cfg.reward.stake_balance.enabled is True
    assert cfg.reward.stake_balance.min_multiplier == 80
    assert cfg.infusion.caps == {1: 100 * PRECISION}
    assert cfg.infusion.min_deposit == PRECISION // 2
    assert cfg.colony.max_bonus == 40
    assert cfg.colony.force_override is True
    assert cfg.batch.max_count == 10
    assert cfg.fees["claim"].amount == PRECISION
    assert cfg.fees["harvest"].tiers.thresholds == (100 * PRECISION, 1_000 * PRECISION)
    assert cfg.fees["harvest"].tiers.bps == (200, 100)


def test_empty_yaml_gives_defaults(tmp_path: Path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert load_config(path) == ProgramConfig()


def test_unknown_keys_are_rejected() -> None:
    with pytest.raises(ValueError, match="unknown"):
        config_from_dict({"enabeld": True})
    with pytest.raises(ValueError, match="unknown"):
        config_from_dict({"reward": {"daily_rate": {1: 5}}})
    with pytest.raises(ValueError, match="unknown fee operation"):
        config_from_dict({"fees": {"swap": {"amount": 1}}})


def test_config_validation() -> None:
    with pytest.raises(ValueError):
        ProgramConfig(collections=frozenset({0}))
    with pytest.raises(TypeError):
        ProgramConfig(enabled="yes")  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        config_from_dict({"reward": {"wear_thresholds": [10]}})
    with pytest.raises(TypeError):
        config_from_dict(["not", "a", "mapping"])  # type: ignore[arg-type]
