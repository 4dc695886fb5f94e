"""
Program configuration.

`ProgramConfig` is a frozen tree of validated dataclasses. It can be built in
code or loaded from YAML:

    enabled: true
    collections: [1, 2]
    admins: [ops]
    daily_issuance_limit: "20000"      # strings are whole tokens (x 1e18)
    reward:
      config_version: 1
      daily_rates: {1: "10", 2: "12"}
      charge_bonuses: [[80, 10], [60, 6], [40, 3]]
      stake_balance: {enabled: true, min_multiplier: 70}
    infusion:
      caps: {1: "1000"}
    colony: {max_bonus: 50, force_override: false}
    fees:
      claim: {amount: "1", beneficiary: treasury}
      harvest: {amount: "0.5", beneficiary: treasury, tiers: {thresholds: ["100", "1000"], bps: [200, 100]}}

Amounts given as YAML ints are raw base units; amounts given as strings are
decimal token amounts converted exactly to base units. Missing keys keep the
dataclass defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, FrozenSet, Mapping, Optional, Union

import yaml

from ..core.constants import (
    DEFAULT_CHARGE_DECAY_PER_DAY,
    DEFAULT_COOLDOWN_SECONDS,
    DEFAULT_CREATOR_BONUS_CEILING,
    DEFAULT_DAILY_ISSUANCE_LIMIT,
    DEFAULT_MAX_COLONY_BONUS,
    DEFAULT_MAX_COLONY_MEMBERS,
    PRECISION,
)
from ..core.fees import FEE_OPERATIONS, LEGACY_FEE_ALIASES, FeeConfig, FeeTiers
from ..core.infusion import InfusionParams
from ..core.math import require_uint
from ..core.reward import RewardParams
from ..core.stake_balance import StakeBalanceParams


@dataclass(frozen=True)
class ColonyParams:
    max_bonus: int = DEFAULT_MAX_COLONY_BONUS
    creator_bonus_ceiling: int = DEFAULT_CREATOR_BONUS_CEILING
    max_members: int = DEFAULT_MAX_COLONY_MEMBERS
    force_override: bool = False
    repair_max_items: int = 500

    def __post_init__(self) -> None:
        for name, v in (
            ("max_bonus", self.max_bonus),
            ("creator_bonus_ceiling", self.creator_bonus_ceiling),
            ("max_members", self.max_members),
            ("repair_max_items", self.repair_max_items),
        ):
            require_uint(name, v)
        if not isinstance(self.force_override, bool):
            raise TypeError("force_override must be a bool")
        if self.repair_max_items == 0:
            raise ValueError("repair_max_items must be positive")


@dataclass(frozen=True)
class BatchBudget:
    """
    Resource budget for batch operations.

    Every scanned position costs `scan_cost` units and every claimed one an
    extra `claim_cost`; the batch stops before the remaining units would drop
    below `reserve`.
    """

    units: int = 1_000_000
    scan_cost: int = 5_000
    claim_cost: int = 20_000
    reserve: int = 50_000
    max_count: int = 50

    def __post_init__(self) -> None:
        for name, v in (
            ("units", self.units),
            ("scan_cost", self.scan_cost),
            ("claim_cost", self.claim_cost),
            ("reserve", self.reserve),
            ("max_count", self.max_count),
        ):
            require_uint(name, v)


@dataclass(frozen=True)
class ProgramConfig:
    enabled: bool = True
    collections: FrozenSet[int] = frozenset({1})
    admins: FrozenSet[str] = frozenset()
    bypass_accounts: FrozenSet[str] = frozenset()

    # Accounts this program acts as.
    program_account: str = "staking-program"
    custody_account: str = "staking-custody"
    treasury_account: str = "treasury"
    infusion_vault: str = "infusion-vault"
    chain_id: str = "colonystake-local"

    prerequisite_required: bool = False
    prerequisite_bypass: bool = False
    cooldown_seconds: int = DEFAULT_COOLDOWN_SECONDS
    daily_issuance_limit: int = DEFAULT_DAILY_ISSUANCE_LIMIT
    charge_decay_per_day: int = DEFAULT_CHARGE_DECAY_PER_DAY

    reward: RewardParams = RewardParams()
    infusion: InfusionParams = InfusionParams()
    colony: ColonyParams = ColonyParams()
    batch: BatchBudget = BatchBudget()
    fees: Mapping[str, FeeConfig] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name in ("enabled", "prerequisite_required", "prerequisite_bypass"):
            if not isinstance(getattr(self, name), bool):
                raise TypeError(f"{name} must be a bool")
        for cid in self.collections:
            require_uint("collection id", cid)
            if cid == 0:
                raise ValueError("collection id 0 is reserved")
        for name in ("program_account", "custody_account", "treasury_account", "infusion_vault", "chain_id"):
            v = getattr(self, name)
            if not isinstance(v, str) or not v:
                raise TypeError(f"{name} must be a non-empty str")
        require_uint("cooldown_seconds", self.cooldown_seconds)
        require_uint("daily_issuance_limit", self.daily_issuance_limit)
        require_uint("charge_decay_per_day", self.charge_decay_per_day)
        known = set(FEE_OPERATIONS) | set(LEGACY_FEE_ALIASES)
        for op, cfg in self.fees.items():
            if op not in known:
                raise ValueError(f"unknown fee operation: {op}")
            if not isinstance(cfg, FeeConfig):
                raise TypeError(f"fee {op} must be a FeeConfig")

    def is_admin(self, account: str) -> bool:
        return account in self.admins


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def parse_amount(value: Any, *, name: str = "amount") -> int:
    """YAML ints are base units; decimal strings are whole tokens scaled by 1e18."""
    if isinstance(value, bool):
        raise TypeError(f"{name} must be an int or decimal string")
    if isinstance(value, int):
        return require_uint(name, value)
    if isinstance(value, str):
        try:
            d = Decimal(value.strip())
        except InvalidOperation as exc:
            raise ValueError(f"{name} must be a decimal string: {value!r}") from exc
        scaled = d * PRECISION
        if scaled != scaled.to_integral_value() or scaled < 0:
            raise ValueError(f"{name} must be a non-negative amount with at most 18 decimals: {value!r}")
        return int(scaled)
    raise TypeError(f"{name} must be an int or decimal string, got {type(value).__name__}")


def _int_table(obj: Any, *, name: str, amounts: bool = False) -> dict[int, int]:
    if obj is None:
        return {}
    if not isinstance(obj, Mapping):
        raise TypeError(f"{name} must be a mapping")
    out: dict[int, int] = {}
    for k, v in obj.items():
        key = int(k)
        out[key] = parse_amount(v, name=f"{name}[{key}]") if amounts else require_uint(f"{name}[{key}]", v)
    return out


def _pairs(obj: Any, *, name: str) -> Optional[tuple[tuple[int, int], ...]]:
    if obj is None:
        return None
    if not isinstance(obj, (list, tuple)):
        raise TypeError(f"{name} must be a list of [minimum, value] pairs")
    out = []
    for item in obj:
        if not isinstance(item, (list, tuple)) or len(item) != 2:
            raise TypeError(f"{name} entries must be [minimum, value] pairs")
        out.append((require_uint(f"{name} minimum", item[0]), require_uint(f"{name} value", item[1])))
    return tuple(out)


def _ints(obj: Any, *, name: str) -> Optional[tuple[int, ...]]:
    if obj is None:
        return None
    if not isinstance(obj, (list, tuple)):
        raise TypeError(f"{name} must be a list")
    return tuple(require_uint(name, v) for v in obj)


def _known_kwargs(cls: type, obj: Mapping[str, Any], skip: tuple[str, ...] = ()) -> dict[str, Any]:
    names = {f.name for f in fields(cls)}
    unknown = set(obj) - names
    if unknown:
        raise ValueError(f"unknown {cls.__name__} keys: {sorted(unknown)}")
    return {k: v for k, v in obj.items() if k not in skip}


def _stake_balance_from_dict(obj: Mapping[str, Any]) -> StakeBalanceParams:
    return StakeBalanceParams(**_known_kwargs(StakeBalanceParams, obj))


def _reward_from_dict(obj: Mapping[str, Any]) -> RewardParams:
    table_keys = ("daily_rates", "level_bonuses", "variant_bonuses", "infusion_bonuses", "specialization_bonuses")
    pair_keys = ("charge_bonuses", "loyalty_bonuses")
    list_keys = ("wear_thresholds", "wear_penalties")
    kwargs = _known_kwargs(RewardParams, obj, skip=table_keys + pair_keys + list_keys + ("stake_balance", "max_safe_reward"))
    for key in table_keys:
        if key in obj:
            kwargs[key] = _int_table(obj[key], name=key, amounts=(key == "daily_rates"))
    for key in pair_keys:
        if key in obj:
            kwargs[key] = _pairs(obj[key], name=key)
    for key in list_keys:
        if key in obj:
            kwargs[key] = _ints(obj[key], name=key)
    if "max_safe_reward" in obj:
        kwargs["max_safe_reward"] = parse_amount(obj["max_safe_reward"], name="max_safe_reward")
    if "stake_balance" in obj:
        kwargs["stake_balance"] = _stake_balance_from_dict(obj["stake_balance"] or {})
    return RewardParams(**kwargs)


def _infusion_from_dict(obj: Mapping[str, Any]) -> InfusionParams:
    amount_keys = ("min_deposit", "max_harvest")
    kwargs = _known_kwargs(InfusionParams, obj, skip=amount_keys + ("caps",))
    for key in amount_keys:
        if key in obj:
            kwargs[key] = parse_amount(obj[key], name=key)
    if "caps" in obj:
        kwargs["caps"] = _int_table(obj["caps"], name="caps", amounts=True)
    return InfusionParams(**kwargs)


def _fee_from_dict(op: str, obj: Mapping[str, Any]) -> FeeConfig:
    kwargs = _known_kwargs(FeeConfig, obj, skip=("amount", "tiers"))
    if "amount" in obj:
        kwargs["amount"] = parse_amount(obj["amount"], name=f"fees.{op}.amount")
    tiers = obj.get("tiers")
    if tiers is not None:
        thresholds = tuple(parse_amount(t, name=f"fees.{op}.tiers.thresholds") for t in tiers.get("thresholds", ()))
        bps = tuple(require_uint(f"fees.{op}.tiers.bps", b) for b in tiers.get("bps", ()))
        kwargs["tiers"] = FeeTiers(thresholds=thresholds, bps=bps)
    return FeeConfig(**kwargs)


def config_from_dict(obj: Mapping[str, Any]) -> ProgramConfig:
    if not isinstance(obj, Mapping):
        raise TypeError("config must be a mapping")
    nested = ("reward", "infusion", "colony", "batch", "fees")
    kwargs = _known_kwargs(ProgramConfig, obj, skip=nested + ("collections", "admins", "bypass_accounts", "daily_issuance_limit"))
    if "collections" in obj:
        kwargs["collections"] = frozenset(require_uint("collection id", c) for c in obj["collections"] or ())
    for key in ("admins", "bypass_accounts"):
        if key in obj:
            kwargs[key] = frozenset(str(a) for a in obj[key] or ())
    if "daily_issuance_limit" in obj:
        kwargs["daily_issuance_limit"] = parse_amount(obj["daily_issuance_limit"], name="daily_issuance_limit")
    if "reward" in obj:
        kwargs["reward"] = _reward_from_dict(obj["reward"] or {})
    if "infusion" in obj:
        kwargs["infusion"] = _infusion_from_dict(obj["infusion"] or {})
    if "colony" in obj:
        kwargs["colony"] = ColonyParams(**_known_kwargs(ColonyParams, obj["colony"] or {}))
    if "batch" in obj:
        kwargs["batch"] = BatchBudget(**_known_kwargs(BatchBudget, obj["batch"] or {}))
    if "fees" in obj:
        kwargs["fees"] = {str(op): _fee_from_dict(str(op), cfg or {}) for op, cfg in (obj["fees"] or {}).items()}
    return ProgramConfig(**kwargs)


def load_config(path: Union[str, Path]) -> ProgramConfig:
    obj = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if obj is None:
        return ProgramConfig()
    if not isinstance(obj, Mapping):
        raise TypeError("config YAML must be a mapping")
    return config_from_dict(obj)
