"""
Pure staking kernels (integer-only, no collaborators).

`reward` depends on `colonystake.state.positions` and is imported directly
(`from colonystake.core.reward import calculate_reward`).
"""

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
from .fees import FeeConfig, FeeTiers, resolve_fee, tiered_fee, withheld_fee
from .identity import pack_identity, unpack_identity
from .infusion import InfusionParams, harvest_amount, infusion_apr, infusion_cap, infusion_tier
from .stake_balance import StakeBalanceParams, stake_balance_multiplier

__all__ = [
    "accessory_bonus",
    "charge_bonus",
    "colony_bonus",
    "context_bonus_cap",
    "daily_rate",
    "infusion_bonus",
    "level_bonus",
    "loyalty_bonus",
    "specialization_bonus",
    "variant_bonus",
    "wear_penalty",
    "FeeConfig",
    "FeeTiers",
    "resolve_fee",
    "tiered_fee",
    "withheld_fee",
    "pack_identity",
    "unpack_identity",
    "InfusionParams",
    "harvest_amount",
    "infusion_apr",
    "infusion_cap",
    "infusion_tier",
    "StakeBalanceParams",
    "stake_balance_multiplier",
]
