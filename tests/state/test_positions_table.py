# [TESTER] v1

from __future__ import annotations

from dataclasses import replace

import pytest

from colonystake.core.identity import pack_identity
from colonystake.state.positions import Position, PositionTable, new_position


def _pos(token_id: int, owner: str = "alice", collection: int = 1) -> Position:
    return new_position(pack_identity(collection, token_id), owner, owner, 1_000)


def test_insert_indexes_owner_and_collection() -> None:
    table = PositionTable()
    table.insert(_pos(1))
    table.insert(_pos(2))
    table.insert(_pos(3, collection=2))
    assert len(table) == 3
    assert table.count_of("alice") == 3
    assert table.staked_in_collection(1) == 2
    assert table.staked_in_collection(2) == 1
    with pytest.raises(ValueError):
        table.insert(_pos(1))


def test_remove_swaps_last_into_freed_slot() -> None:
    table = PositionTable()
    keys = [pack_identity(1, i) for i in (1, 2, 3)]
    for i in (1, 2, 3):
        table.insert(_pos(i))
    table.remove(keys[0])
    assert table.positions_of("alice") == (keys[2], keys[1])
    table.remove(keys[1])
    table.remove(keys[2])
    assert table.positions_of("alice") == ()
    assert table.count_of("alice") == 0
    assert table.staked_in_collection(1) == 0
    with pytest.raises(KeyError):
        table.remove(keys[0])


def test_replace_reindexes_on_owner_change() -> None:
    table = PositionTable()
    pos = _pos(1)
    table.insert(pos)
    prev = table.replace(replace(pos, owner="bob"))
    assert prev.owner == "alice"
    assert table.positions_of("alice") == ()
    assert table.positions_of("bob") == (pos.identity_key,)


def test_cooldown_and_claimed_counters() -> None:
    table = PositionTable()
    table.set_cooldown(7, 500)
    assert table.cooldown_until(7) == 500
    table.set_cooldown(7, 0)
    assert table.cooldown_until(7) == 0
    table.add_claimed(10)
    table.sub_claimed(25)
    assert table.total_rewards_claimed == 0


def test_position_validation() -> None:
    with pytest.raises(ValueError):
        replace(_pos(1), variant=5)
    with pytest.raises(ValueError):
        replace(_pos(1), charge_level=101)
    with pytest.raises(TypeError):
        replace(_pos(1), staked=1)
