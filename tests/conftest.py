# [TESTER] v1

from __future__ import annotations

import pytest

from staking_world import World, make_program, make_world

from colonystake.integration.program import StakingProgram


@pytest.fixture
def world() -> World:
    return make_world()


@pytest.fixture
def program(world: World) -> StakingProgram:
    return make_program(world=world)
