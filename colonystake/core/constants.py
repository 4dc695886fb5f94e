"""
Units and fallback tables.

Every configurable bonus category has a named fallback here; the resolvers in
`bonuses.py` use the configured table when one is present and these constants
otherwise.

Units/conventions:
- amounts are ints scaled by PRECISION (1e18),
- percentages are ints where 100 == 100%,
- `*_bps` values are basis points (1/10_000).
"""

from __future__ import annotations


PRECISION = 10**18
PERCENT = 100
BPS_DENOM = 10_000

SECONDS_PER_DAY = 86_400
SECONDS_PER_YEAR = 365 * SECONDS_PER_DAY

MIN_VARIANT = 1
MAX_VARIANT = 4
MIN_LEVEL = 1
MAX_LEVEL = 100
MAX_CHARGE = 100
MAX_INFUSION_LEVEL = 5
MAX_SPECIALIZATION = 5
MAX_WEAR = 100

# Final reward ceiling per computation.
MAX_SAFE_REWARD = 1_000_000 * PRECISION

DEFAULT_MAX_REWARD_PERIOD = 365 * SECONDS_PER_DAY

DAILY_RATE_FALLBACK: dict[int, int] = {
    1: 10 * PRECISION,
    2: 12 * PRECISION,
    3: 15 * PRECISION,
    4: 20 * PRECISION,
}

# level bonus is level * 4 / 10 percent (0.4% per level).
LEVEL_BONUS_NUM = 4
LEVEL_BONUS_DEN = 10

VARIANT_BONUS_STEP = 4

# (min charge, bonus) descending.
CHARGE_BONUS_FALLBACK: tuple[tuple[int, int], ...] = ((80, 10), (60, 6), (40, 3))

INFUSION_BONUS_FALLBACK: dict[int, int] = {1: 8, 2: 12, 3: 16, 4: 20, 5: 28}

SPECIALIZATION_BONUS_FALLBACK: dict[int, int] = {1: 4, 2: 6}

# (min staking duration seconds, bonus) descending.
LOYALTY_BONUS_FALLBACK: tuple[tuple[int, int], ...] = (
    (365 * SECONDS_PER_DAY, 10),
    (180 * SECONDS_PER_DAY, 7),
    (90 * SECONDS_PER_DAY, 5),
    (30 * SECONDS_PER_DAY, 2),
)

DEFAULT_MAX_COLONY_BONUS = 50
DEFAULT_CREATOR_BONUS_CEILING = 25
DEFAULT_MAX_ACCESSORY_BONUS = 20

# Combined context-bonus cap per configuration version.
CONTEXT_BONUS_CAP_V1 = 50
CONTEXT_BONUS_CAP_V2 = 75
MULTIPLICATIVE_SINCE_VERSION = 2

DEFAULT_SEASON_MULTIPLIER = 100

# Ascending wear thresholds and the penalty percent each selects.
WEAR_THRESHOLDS_FALLBACK: tuple[int, ...] = (10, 30, 50, 70, 90)
WEAR_PENALTIES_FALLBACK: tuple[int, ...] = (2, 5, 10, 20, 30)

# Stake-balance curve.
MAX_BALANCE_DECAY = 30
DEFAULT_DECAY_RATE = 100
DEFAULT_MIN_BALANCE_MULTIPLIER = 70
DEFAULT_MAX_TIME_BONUS = 10
DEFAULT_TIME_BONUS_PERIOD = 365 * SECONDS_PER_DAY

# Infusion.
INFUSION_CAP_FALLBACK: dict[int, int] = {
    1: 1_000 * PRECISION,
    2: 2_000 * PRECISION,
    3: 3_500 * PRECISION,
    4: 5_000 * PRECISION,
}
# (min percent of cap, tier) descending.
INFUSION_TIER_THRESHOLDS: tuple[tuple[int, int], ...] = ((80, 5), (60, 4), (40, 3), (20, 2))
DEFAULT_MIN_INFUSION = PRECISION
DEFAULT_BASE_APR = 10
DEFAULT_VARIANT_APR_BONUS = 2
DEFAULT_TIER_APR_BONUS = 1
DEFAULT_MAX_APR = 30
DEFAULT_MAX_HARVEST = 100_000 * PRECISION

# Fee payers always keep at least this share of the gross amount.
MIN_RETAINED_PERCENT = 1

DEFAULT_DAILY_ISSUANCE_LIMIT = 20_000 * PRECISION
DEFAULT_COOLDOWN_SECONDS = SECONDS_PER_DAY
DEFAULT_MAX_COLONY_MEMBERS = 100
DEFAULT_CHARGE_DECAY_PER_DAY = 1
