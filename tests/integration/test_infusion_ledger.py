# [TESTER] v1

from __future__ import annotations

import pytest

from staking_world import DAY, TREASURY, VAULT, make_program

from colonystake.core.constants import PRECISION, SECONDS_PER_YEAR
from colonystake.core.fees import FeeConfig
from colonystake.errors import (
    BelowMinimumDeposit,
    CollaboratorError,
    InfusionCapReached,
    InsufficientInfusion,
    IssuanceFailed,
    NoRewardsAvailable,
    NotInfused,
    NotOwner,
    NotStaked,
    ValidationError,
)
from colonystake.integration.config import ProgramConfig


FUNDS = 5_000 * PRECISION


@pytest.fixture
def staked(world, program):
    key = world.asset(1)
    program.stake(key, "alice")
    world.fund("alice", FUNDS)
    return key


def test_infuse_moves_tokens_to_vault_and_sets_tier(world, program, staked) -> None:
    entry = program.infuse(staked, 100 * PRECISION, "alice")
    assert entry.infused_amount == 100 * PRECISION
    assert entry.depositor == "alice"
    assert world.balance(VAULT) == 100 * PRECISION
    assert world.balance("alice") == FUNDS - 100 * PRECISION
    assert program.position(staked).infusion_level == 1
    assert program.state.infusions.total_infused == 100 * PRECISION


def test_infusion_tier_feeds_reward_multiplier(world, program, staked) -> None:
    program.infuse(staked, 100 * PRECISION, "alice")
    world.clock.advance(DAY)
    breakdown = program.reward_breakdown(staked)
    assert breakdown.infusion_bonus == 8
    assert breakdown.final_reward == 10 * PRECISION * 118 // 100


def test_deposit_is_clamped_to_cap(world, program, staked) -> None:
    program.infuse(staked, 300 * PRECISION, "alice")
    entry = program.infuse(staked, 2_000 * PRECISION, "alice")
    assert entry.infused_amount == 1_000 * PRECISION
    assert program.position(staked).infusion_level == 5
    assert world.balance("alice") == FUNDS - 1_000 * PRECISION
    with pytest.raises(InfusionCapReached):
        program.infuse(staked, PRECISION, "alice")


def test_infuse_rejections(world, program, staked) -> None:
    with pytest.raises(NotStaked):
        program.infuse(world.asset(2), PRECISION, "alice")
    with pytest.raises(NotOwner):
        program.infuse(staked, PRECISION, "bob")
    with pytest.raises(BelowMinimumDeposit):
        program.infuse(staked, PRECISION - 1, "alice")
    with pytest.raises(BelowMinimumDeposit):
        program.infuse(staked, 0, "alice")
    with pytest.raises(ValidationError):
        program.infuse(staked, -5, "alice")


def test_failed_deposit_transfer_rolls_back(world, program, staked) -> None:
    root = program.state_root()
    world.token.failing.add("transfer_from")
    with pytest.raises(CollaboratorError):
        program.infuse(staked, 100 * PRECISION, "alice")
    assert program.state.infusions.get(staked) is None
    assert program.position(staked).infusion_level == 0
    assert program.state_root() == root


def test_top_up_pays_pending_harvest_first(world, program, staked) -> None:
    program.infuse(staked, 100 * PRECISION, "alice")
    world.clock.advance(365 * DAY)
    entry = program.infuse(staked, 100 * PRECISION, "alice")
    assert entry.infused_amount == 200 * PRECISION
    assert entry.last_harvest_time == world.clock.now
    # 100 infused at tier 1: apr 11% for one year.
    assert world.balance("alice") == FUNDS - 200 * PRECISION + 11 * PRECISION


def test_harvest_withholds_fee(world) -> None:
    program = make_program(
        ProgramConfig(fees={"harvest": FeeConfig(amount=PRECISION, beneficiary=TREASURY)}),
        world,
    )
    key = world.asset(2)
    program.stake(key, "alice")
    world.fund("alice", FUNDS)
    program.infuse(key, 1_000 * PRECISION, "alice")
    with pytest.raises(NoRewardsAvailable):
        program.harvest(key, "alice")
    world.clock.advance(SECONDS_PER_YEAR)
    with pytest.raises(NotOwner):
        program.harvest(key, "bob")
    result = program.harvest(key, "alice")
    assert result.gross == 150 * PRECISION
    assert result.fee == PRECISION
    assert result.net == 149 * PRECISION
    assert world.balance(TREASURY) == PRECISION
    assert program.quota_status("alice").used == 150 * PRECISION
    assert program.infusion_stats(key).pending_harvest == 0


def test_failed_harvest_payout_keeps_harvest_pending(world, program, staked) -> None:
    program.infuse(staked, 1_000 * PRECISION, "alice")
    world.clock.advance(SECONDS_PER_YEAR)
    world.token.failing.add("mint")
    with pytest.raises(IssuanceFailed):
        program.harvest(staked, "alice")
    assert program.infusion_stats(staked).pending_harvest == 150 * PRECISION
    assert program.quota_status("alice").used == 0


def test_reinvest_compounds_into_vault(world, program, staked) -> None:
    program.infuse(staked, 500 * PRECISION, "alice")
    world.clock.advance(SECONDS_PER_YEAR)
    entry = program.reinvest(staked, "alice")
    assert entry.infused_amount == 565 * PRECISION
    assert entry.last_harvest_time == world.clock.now
    assert world.balance(VAULT) == 565 * PRECISION
    assert program.quota_status("alice").used == 65 * PRECISION
    with pytest.raises(NoRewardsAvailable):
        program.reinvest(staked, "alice")


def test_reinvest_at_cap_is_rejected(world, program, staked) -> None:
    program.infuse(staked, 1_000 * PRECISION, "alice")
    world.clock.advance(DAY)
    with pytest.raises(InfusionCapReached):
        program.reinvest(staked, "alice")


def test_withdraw_partial_and_full(world, program, staked) -> None:
    program.infuse(staked, 500 * PRECISION, "alice")
    result = program.withdraw(staked, 100 * PRECISION, "alice")
    assert result.withdrawn == 100 * PRECISION
    assert result.remaining == 400 * PRECISION
    assert result.harvested == 0
    assert program.position(staked).infusion_level == 3

    with pytest.raises(InsufficientInfusion):
        program.withdraw(staked, 401 * PRECISION, "alice")
    with pytest.raises(ValidationError):
        program.withdraw(staked, 0, "alice")
    with pytest.raises(NotOwner):
        program.withdraw(staked, PRECISION, "bob")

    program.withdraw(staked, 400 * PRECISION, "alice")
    assert program.state.infusions.get(staked) is None
    assert program.position(staked).infusion_level == 0
    assert world.balance("alice") == FUNDS
    with pytest.raises(NotInfused):
        program.withdraw(staked, PRECISION, "alice")


def test_depositor_can_withdraw_after_unstake(world, program, staked) -> None:
    program.infuse(staked, 100 * PRECISION, "alice")
    program.unstake(staked, "alice")
    with pytest.raises(NotStaked):
        program.harvest(staked, "alice")
    world.clock.advance(365 * DAY)
    result = program.withdraw(staked, 100 * PRECISION, "alice")
    assert result.harvested == 11 * PRECISION
    assert result.remaining == 0
    assert world.balance("alice") == FUNDS + 11 * PRECISION


def test_restake_mirrors_existing_infusion(world, program, staked) -> None:
    program.infuse(staked, 1_000 * PRECISION, "alice")
    program.unstake(staked, "alice")
    world.clock.advance(DAY)
    assert program.stake(staked, "alice").infusion_level == 5


def test_infusion_stats(world, program, staked) -> None:
    with pytest.raises(NotInfused):
        program.infusion_stats(staked)
    program.infuse(staked, 800 * PRECISION, "alice")
    stats = program.infusion_stats(staked)
    assert stats.cap == 1_000 * PRECISION
    assert stats.tier == 5
    assert stats.apr == 15
    assert stats.pending_harvest == 0
    assert stats.infusion_time == world.clock.now


def test_top_up_with_exhausted_quota_does_not_backdate_new_deposit(world, program, staked) -> None:
    program.infuse(staked, 100 * PRECISION, "alice")
    world.clock.advance(SECONDS_PER_YEAR)
    assert program.infusion_stats(staked).pending_harvest == 11 * PRECISION
    program.issuance.consume("alice", program.issuance.remaining("alice"))
    before = world.balance("alice")

    entry = program.infuse(staked, 800 * PRECISION, "alice")
    assert entry.infused_amount == 900 * PRECISION
    assert entry.last_harvest_time == world.clock.now
    assert program.infusion_stats(staked).pending_harvest == 0
    assert world.balance("alice") == before - 800 * PRECISION
