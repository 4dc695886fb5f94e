# [TESTER] v1

from __future__ import annotations

from dataclasses import replace

from colonystake.core.identity import pack_identity
from colonystake.state import Colony, InfusionPosition, ProgramState, new_position


def _populate(state: ProgramState, order: list) -> None:
    for token_id in order:
        state.positions.insert(new_position(pack_identity(1, token_id), "alice", "alice", 100))
    state.colonies.put(Colony(colony_id=9, name="hive", creator="alice", bonus=5))
    for token_id in order:
        state.members.add(9, pack_identity(1, token_id))
    state.infusions.put(
        InfusionPosition(identity_key=pack_identity(1, 1), depositor="alice", infused_amount=1, infused=True)
    )


def test_state_root_is_insertion_order_independent() -> None:
    a = ProgramState()
    b = ProgramState()
    _populate(a, [1, 2, 3])
    _populate(b, [3, 2, 1])
    assert a.state_root() == b.state_root()
    assert a.state_root().startswith("0x")


def test_state_root_changes_with_position_fields() -> None:
    state = ProgramState()
    _populate(state, [1])
    before = state.state_root()
    key = pack_identity(1, 1)
    state.positions.replace(replace(state.positions.get(key), charge_level=50))
    assert state.state_root() != before
