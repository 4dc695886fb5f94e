#!/usr/bin/env python3

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from colonystake.core.constants import PRECISION, SECONDS_PER_DAY
from colonystake.core.identity import pack_identity
from colonystake.integration import Collaborators, ProgramConfig, StakingProgram, load_config
from colonystake.integration.memory import (
    InMemoryAchievements,
    InMemoryColonyAuthority,
    InMemoryCustody,
    InMemoryExperience,
    InMemoryToken,
    InMemoryTraits,
    InMemoryWearOracle,
)


class _Clock:
    def __init__(self, now: int) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


def _tokens(amount: int) -> str:
    whole, frac = divmod(amount, PRECISION)
    return f"{whole}.{frac:018d}".rstrip("0").rstrip(".")


def main() -> int:
    ap = argparse.ArgumentParser(description="Offline staking walkthrough with in-memory collaborators.")
    ap.add_argument("--config", type=Path, default=None, help="YAML program config (defaults when omitted)")
    ap.add_argument("--days", type=int, default=7, help="days to accrue before claiming")
    ap.add_argument("--variant", type=int, default=2)
    ap.add_argument("--infuse", type=str, default="250", help="whole tokens to infuse (0 to skip)")
    ap.add_argument("-v", "--verbose", action="store_true")
    args = ap.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    config = load_config(args.config) if args.config else ProgramConfig(admins=frozenset({"ops"}))
    collection = min(config.collections)
    clock = _Clock(20_000 * SECONDS_PER_DAY)
    program_account = config.program_account

    custody = InMemoryCustody()
    token = InMemoryToken(minters={program_account}, clock=clock)
    traits = InMemoryTraits()
    collaborators = Collaborators(
        custody=custody,
        tokens={"reward": token},
        traits=traits,
        wear=InMemoryWearOracle(),
        colony_authority=InMemoryColonyAuthority(),
        experience=InMemoryExperience(),
        achievements=InMemoryAchievements(),
    )
    program = StakingProgram(config, collaborators, clock=clock)

    owner = "alice"
    key = pack_identity(collection, 1)
    custody.mint_asset(key, owner)
    traits.variants[key] = args.variant
    token.credit(owner, 10_000 * PRECISION)
    token.approve(owner, program_account, 10**40)
    token.approve(config.infusion_vault, program_account, 10**40)

    pos = program.stake(key, owner)
    print(f"[staking-demo] staked key={key} variant={pos.variant} charge={pos.charge_level}")

    colony = program.create_colony("demo-colony", owner, bonus=min(10, config.colony.max_bonus))
    program.join_colony(key, colony.colony_id, owner)
    print(f"[staking-demo] joined colony={colony.colony_id} bonus={colony.bonus}")

    infuse = int(args.infuse) * PRECISION
    if infuse:
        entry = program.infuse(key, infuse, owner)
        print(f"[staking-demo] infused {_tokens(entry.infused_amount)} tier={program.position(key).infusion_level}")

    clock.now += args.days * SECONDS_PER_DAY
    b = program.reward_breakdown(key)
    print(
        f"[staking-demo] after {args.days}d: base={_tokens(b.base_reward)} token_mult={b.token_multiplier} "
        f"context={b.context_bonus} mode={b.mode.value} final={_tokens(b.final_reward)}"
    )

    try:
        claim = program.claim(key, owner)
    except Exception as exc:
        print(f"[staking-demo] FAIL (claim): {exc}")
        return 1
    print(f"[staking-demo] claimed {_tokens(claim.amount)} quota_left={_tokens(program.quota_status(owner).remaining)}")

    if infuse:
        stats = program.infusion_stats(key)
        print(f"[staking-demo] infusion apr={stats.apr}% pending_harvest={_tokens(stats.pending_harvest)}")

    result = program.unstake(key, owner)
    print(f"[staking-demo] unstaked reward_paid={_tokens(result.reward_paid)} custody={custody.owners[key]}")
    print(f"[staking-demo] balance={_tokens(token.balances.get(owner, 0))} state_root={program.state_root()}")
    print("[staking-demo] OK")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
