# [TESTER] v1

from __future__ import annotations

import pytest

from staking_world import make_program

from colonystake.errors import (
    ColonyExists,
    ColonyFull,
    ColonyInactive,
    ColonyNotFound,
    CustodyTransferFailed,
    InvalidBonus,
    NotOwner,
    Unauthorized,
    ValidationError,
)
from colonystake.integration.colonies import (
    REPAIR_AUTHORITY_UNAVAILABLE,
    REPAIR_CONFLICT,
    REPAIR_CONFLICT_OVERRIDDEN,
    REPAIR_LOCAL_INDEX_FIXED,
    REPAIR_MEMBER_ADDED,
    REPAIR_MEMBER_REMOVED,
)
from colonystake.integration.config import ColonyParams, ProgramConfig
from colonystake.state.colonies import derive_colony_id


def _statuses(program, status: str):
    return program.outcomes.filter(operation="colony_repair", status=status)


def test_create_colony(program) -> None:
    colony = program.create_colony(" hive ", "carol", bonus=5)
    assert colony.colony_id == derive_colony_id("hive")
    assert colony.name == "hive"
    assert colony.active
    with pytest.raises(ColonyExists):
        program.create_colony("hive", "dave")
    with pytest.raises(InvalidBonus):
        program.create_colony("nest", "carol", bonus=51)
    with pytest.raises(ValidationError):
        program.create_colony("", "carol")
    with pytest.raises(ValidationError):
        program.create_colony("nest", "")


def test_join_switch_and_leave_staked_position(world, program) -> None:
    key = world.asset(1)
    program.stake(key, "alice")
    hive = program.create_colony("hive", "carol").colony_id
    nest = program.create_colony("nest", "carol").colony_id

    program.join_colony(key, hive, "alice")
    program.join_colony(key, hive, "alice")
    assert program.colony_info(hive).members == (key,)
    assert program.position(key).colony_id == hive

    program.join_colony(key, nest, "alice")
    assert program.colony_info(hive).member_count == 0
    assert program.colony_info(nest).members == (key,)

    program.leave_colony(key, "alice")
    assert program.position(key).colony_id == 0
    assert program.colony_info(nest).members == ()
    with pytest.raises(ValidationError):
        program.leave_colony(key, "alice")


def test_join_rejections(world) -> None:
    program = make_program(ProgramConfig(colony=ColonyParams(max_members=1)), world)
    a = world.asset(1)
    b = world.asset(2)
    program.stake(a, "alice")
    program.stake(b, "alice")
    hive = program.create_colony("hive", "carol").colony_id
    with pytest.raises(ColonyNotFound):
        program.join_colony(a, 12345, "alice")
    with pytest.raises(NotOwner):
        program.join_colony(a, hive, "bob")
    program.join_colony(a, hive, "alice")
    with pytest.raises(ColonyFull):
        program.join_colony(b, hive, "alice")
    program.dissolve_colony(hive, "carol")
    with pytest.raises(ColonyInactive):
        program.join_colony(b, hive, "alice")


def test_unstaked_choice_is_applied_on_next_stake(world, program) -> None:
    key = world.asset(1)
    hive = program.create_colony("hive", "carol").colony_id
    program.join_colony(key, hive, "alice")
    assert program.state.pending.get(key) == hive
    assert program.colony_info(hive).members == ()
    program.stake(key, "alice")
    assert program.position(key).colony_id == hive
    assert program.colony_info(hive).members == (key,)
    assert program.state.pending.get(key) is None


def test_pending_leave_overrides_authority(world, program) -> None:
    key = world.asset(1)
    hive = program.create_colony("hive", "carol").colony_id
    world.authority.memberships[key] = hive
    program.leave_colony(key, "alice")
    program.stake(key, "alice")
    assert program.position(key).colony_id == 0


def test_authority_colony_is_registered_on_first_stake(world, program) -> None:
    key = world.asset(1)
    world.authority.memberships[key] = 777
    program.stake(key, "alice")
    info = program.colony_info(777)
    assert info.name == "colony-777"
    assert info.creator == ""
    assert info.members == (key,)


def test_failed_stake_discards_colony_registered_for_it(world, program) -> None:
    key = world.asset(1)
    world.authority.memberships[key] = 777
    world.custody.failing.add("transfer")
    with pytest.raises(CustodyTransferFailed):
        program.stake(key, "alice")
    with pytest.raises(ColonyNotFound):
        program.colony_info(777)


def test_set_bonus_caps_by_role(world, program) -> None:
    hive = program.create_colony("hive", "carol").colony_id
    assert program.set_colony_bonus(hive, 50, "admin").bonus == 50
    with pytest.raises(InvalidBonus):
        program.set_colony_bonus(hive, 51, "admin")
    assert program.set_colony_bonus(hive, 25, "carol").bonus == 25
    with pytest.raises(InvalidBonus):
        program.set_colony_bonus(hive, 26, "carol")
    with pytest.raises(Unauthorized):
        program.set_colony_bonus(hive, 1, "bob")
    assert world.authority.bonuses[hive] == 25

    world.authority.creator_ceiling = 80
    assert program.set_colony_bonus(hive, 50, "carol").bonus == 50
    with pytest.raises(InvalidBonus):
        program.set_colony_bonus(hive, 51, "carol")

    world.authority.failing.add("creator_bonus_ceiling")
    with pytest.raises(InvalidBonus):
        program.set_colony_bonus(hive, 30, "carol")


def test_bonus_propagation_failure_is_best_effort(world, program) -> None:
    hive = program.create_colony("hive", "carol").colony_id
    world.authority.failing.add("set_colony_bonus")
    assert program.set_colony_bonus(hive, 10, "carol").bonus == 10
    assert program.colony_info(hive).bonus == 10
    assert program.outcomes.filter(operation="colony_bonus_sync", status="failed")


def test_bonus_update_rejects_reentry_from_authority(world, program, monkeypatch) -> None:
    hive = program.create_colony("hive", "carol").colony_id

    def reenter(colony_id, value):
        program.set_colony_bonus(colony_id, 40, "admin")

    monkeypatch.setattr(world.authority, "set_colony_bonus", reenter)
    assert program.set_colony_bonus(hive, 10, "carol").bonus == 10
    assert program.colony_info(hive).bonus == 10
    (failed,) = program.outcomes.filter(operation="colony_bonus_sync", status="failed")
    assert failed.detail.startswith("ReentrantCall")


def test_dissolve_releases_members_and_pending(world, program) -> None:
    staked = world.asset(1)
    waiting = world.asset(2)
    program.stake(staked, "alice")
    hive = program.create_colony("hive", "carol").colony_id
    program.join_colony(staked, hive, "alice")
    program.join_colony(waiting, hive, "alice")
    with pytest.raises(Unauthorized):
        program.dissolve_colony(hive, "bob")
    assert program.dissolve_colony(hive, "admin") == (staked,)
    info = program.colony_info(hive)
    assert not info.active
    assert info.name == "hive"
    assert info.members == ()
    assert program.position(staked).colony_id == 0
    assert program.state.pending.get(waiting) is None
    with pytest.raises(ColonyInactive):
        program.dissolve_colony(hive, "carol")
    with pytest.raises(ColonyInactive):
        program.set_colony_bonus(hive, 1, "admin")


def test_repair_adds_and_removes_members(world, program) -> None:
    joined = world.asset(1)
    external = world.asset(2)
    program.stake(joined, "alice")
    program.stake(external, "alice")
    hive = program.create_colony("hive", "carol").colony_id
    program.join_colony(joined, hive, "alice")
    world.authority.memberships[external] = hive

    report = program.repair_colony(hive)
    assert report.added == 1
    assert report.removed == 1
    assert program.colony_info(hive).members == (external,)
    assert program.position(joined).colony_id == 0
    assert program.position(external).colony_id == hive
    assert len(_statuses(program, REPAIR_MEMBER_ADDED)) == 1
    assert len(_statuses(program, REPAIR_MEMBER_REMOVED)) == 1


def test_repair_conflict_is_reported_unless_forced(world) -> None:
    for force, expected in ((False, REPAIR_CONFLICT), (True, REPAIR_CONFLICT_OVERRIDDEN)):
        program = make_program(ProgramConfig(colony=ColonyParams(force_override=force)), world)
        key = world.asset(10 + int(force))
        program.stake(key, "alice")
        hive = program.create_colony("hive", "carol").colony_id
        nest = program.create_colony("nest", "carol").colony_id
        program.join_colony(key, hive, "alice")
        world.authority.memberships[key] = nest

        report = program.repair_colony(nest)
        assert len(_statuses(program, expected)) == 1
        if force:
            assert report.overridden == 1
            assert program.position(key).colony_id == nest
            assert program.colony_info(hive).members == ()
        else:
            assert report.conflicts == 1
            assert program.position(key).colony_id == hive


def test_repair_fixes_local_index(world, program) -> None:
    key = world.asset(1)
    program.stake(key, "alice")
    hive = program.create_colony("hive", "carol").colony_id
    program.join_colony(key, hive, "alice")
    world.authority.memberships[key] = hive
    program.state.members.remove(key)

    report = program.repair_colony(hive)
    assert report.fixed == 1
    assert program.colony_info(hive).members == (key,)
    assert _statuses(program, REPAIR_LOCAL_INDEX_FIXED)


def test_repair_marks_unavailable_authority(world, program) -> None:
    hive = program.create_colony("hive", "carol").colony_id
    world.authority.failing_colonies.add(hive)
    report = program.repair_colony(hive)
    assert report.unavailable == 1
    assert _statuses(program, REPAIR_AUTHORITY_UNAVAILABLE)


def test_repair_pass_is_bounded_and_resumes(world, program) -> None:
    for name in ("a", "b", "c"):
        program.create_colony(name, "carol")
    first = program.repair_colony(max_items=2)
    assert first.colonies_checked == 2
    assert first.complete is False
    assert first.cursor == 2
    second = program.repair_colony(max_items=2)
    assert second.colonies_checked == 1
    assert second.complete is True
    assert second.cursor == 0
    with pytest.raises(ValidationError):
        program.repair_colony(max_items=-1)
