# [TESTER] v1
"""In-memory world shared by the staking tests: collaborators, clock, accounts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from colonystake.core.constants import SECONDS_PER_DAY
from colonystake.core.identity import pack_identity
from colonystake.integration.collaborators import Collaborators
from colonystake.integration.config import ProgramConfig
from colonystake.integration.memory import (
    InMemoryAchievements,
    InMemoryColonyAuthority,
    InMemoryCustody,
    InMemoryExperience,
    InMemorySpecializations,
    InMemoryToken,
    InMemoryTraits,
    InMemoryWearOracle,
)
from colonystake.integration.program import StakingProgram


# Day-aligned start so UTC-day arithmetic in tests is exact.
T0 = 20_000 * SECONDS_PER_DAY
DAY = SECONDS_PER_DAY

PROGRAM = "staking-program"
CUSTODY = "staking-custody"
TREASURY = "treasury"
VAULT = "infusion-vault"

UNLIMITED = 10**40


class ManualClock:
    def __init__(self, now: int = T0) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@dataclass
class World:
    clock: ManualClock
    custody: InMemoryCustody
    token: InMemoryToken
    traits: InMemoryTraits
    wear: InMemoryWearOracle
    authority: InMemoryColonyAuthority
    specializations: InMemorySpecializations
    experience: InMemoryExperience
    achievements: InMemoryAchievements
    collaborators: Collaborators

    def asset(self, token_id: int, owner: str = "alice", collection: int = 1) -> int:
        key = pack_identity(collection, token_id)
        self.custody.mint_asset(key, owner)
        return key

    def fund(self, account: str, amount: int) -> None:
        self.token.credit(account, amount)
        self.token.approve(account, PROGRAM, UNLIMITED)

    def approve(self, account: str) -> None:
        self.token.approve(account, PROGRAM, UNLIMITED)

    def balance(self, account: str) -> int:
        return self.token.balances.get(account, 0)


def make_world(clock: Optional[ManualClock] = None, *, prerequisite=None) -> World:
    clock = clock or ManualClock()
    custody = InMemoryCustody()
    token = InMemoryToken(minters={PROGRAM}, clock=clock)
    traits = InMemoryTraits()
    wear = InMemoryWearOracle()
    authority = InMemoryColonyAuthority()
    specializations = InMemorySpecializations()
    experience = InMemoryExperience()
    achievements = InMemoryAchievements()
    collaborators = Collaborators(
        custody=custody,
        tokens={"reward": token},
        traits=traits,
        wear=wear,
        colony_authority=authority,
        specialization=specializations,
        experience=experience,
        achievements=achievements,
        prerequisite=prerequisite,
    )
    world = World(
        clock=clock,
        custody=custody,
        token=token,
        traits=traits,
        wear=wear,
        authority=authority,
        specializations=specializations,
        experience=experience,
        achievements=achievements,
        collaborators=collaborators,
    )
    # The vault only ever pays out through the program.
    world.approve(VAULT)
    return world


def make_program(config: Optional[ProgramConfig] = None, world: Optional[World] = None) -> StakingProgram:
    world = world or make_world()
    config = config or ProgramConfig(admins=frozenset({"admin"}))
    return StakingProgram(config, world.collaborators, clock=world.clock)
