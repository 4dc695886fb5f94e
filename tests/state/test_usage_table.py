# [TESTER] v1

from __future__ import annotations

from colonystake.core.constants import SECONDS_PER_DAY
from colonystake.state.infusions import InfusionPosition, InfusionTable
from colonystake.state.usage import DailyUsageTable, utc_day


def test_utc_day() -> None:
    assert utc_day(0) == 0
    assert utc_day(SECONDS_PER_DAY - 1) == 0
    assert utc_day(SECONDS_PER_DAY) == 1


def test_older_days_are_pruned_on_write() -> None:
    usage = DailyUsageTable()
    usage.set("alice", 10, 5)
    usage.set("alice", 11, 7)
    assert usage.get("alice", 10) == 0
    assert usage.get("alice", 11) == 7
    usage.set("bob", 10, 1)
    assert usage.items() == {("alice", 11): 7, ("bob", 10): 1}
    usage.set("alice", 11, 0)
    assert usage.get("alice", 11) == 0


def test_infusion_table_tracks_total_and_drops_empty_entries() -> None:
    table = InfusionTable()
    entry = InfusionPosition(identity_key=1, depositor="alice", infused_amount=50, infused=True)
    table.put(entry)
    table.put(InfusionPosition(identity_key=2, depositor="bob", infused_amount=30, infused=True))
    assert table.total_infused == 80
    table.put(InfusionPosition(identity_key=1, depositor="alice"))
    assert 1 not in table
    assert table.total_infused == 30
    table.restore(1, entry)
    assert table.total_infused == 80
