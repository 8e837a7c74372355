from datetime import datetime, timedelta, timezone

import pytest

from models.review_item import Stage
from utils.schedule import DEFAULT_INTERVALS, ScheduleEngine, intervals_from_config, next_stage

NOW = datetime(2026, 3, 1, 6, 0, tzinfo=timezone.utc)


def _item(engine, page=1, surah=2, ayah=1, now=NOW):
    return engine.initialize(surah, ayah, page, number=7 + ayah, text="...", now=now)


def test_initialize_is_new_step_zero_and_due_now():
    engine = ScheduleEngine()
    item = _item(engine)
    assert item.stage == Stage.NEW
    assert item.step == 0
    assert item.next_due == NOW
    assert item.unit_ref == "2:1"
    assert engine.select_due([item], NOW) == [item]


def test_initialize_defaults_to_wall_clock():
    engine = ScheduleEngine()
    before = datetime.now(timezone.utc)
    item = engine.initialize(1, 1, 1)
    after = datetime.now(timezone.utc)
    assert before <= item.next_due <= after


def test_next_stage_chain_stops_at_manzil():
    assert next_stage(Stage.NEW) == Stage.CONSOLIDATING
    assert next_stage(Stage.CONSOLIDATING) == Stage.LONG_TERM
    assert next_stage(Stage.LONG_TERM) == Stage.LONG_TERM


def test_full_progression_through_all_stages():
    engine = ScheduleEngine()
    item = _item(engine)
    as_of = NOW
    seen = []
    for _ in range(11):
        item = engine.advance(item, as_of)
        seen.append((item.stage, item.step, (item.next_due - as_of).days))
        as_of = item.next_due
    assert seen == [
        (Stage.NEW, 1, 3),
        (Stage.NEW, 2, 7),
        (Stage.CONSOLIDATING, 0, 14),
        (Stage.CONSOLIDATING, 1, 30),
        (Stage.LONG_TERM, 0, 90),
        (Stage.LONG_TERM, 1, 180),
        (Stage.LONG_TERM, 0, 90),
        (Stage.LONG_TERM, 1, 180),
        (Stage.LONG_TERM, 0, 90),
        (Stage.LONG_TERM, 1, 180),
        (Stage.LONG_TERM, 0, 90),
    ]


def test_advance_moves_due_date_strictly_forward():
    engine = ScheduleEngine()
    item = _item(engine)
    for _ in range(8):
        advanced = engine.advance(item, item.next_due)
        assert advanced.next_due >= item.next_due + timedelta(days=1)
        item = advanced


def test_advance_does_not_mutate_input():
    engine = ScheduleEngine()
    item = _item(engine)
    snapshot = item.model_dump()
    engine.advance(item, NOW)
    assert item.model_dump() == snapshot


def test_advance_on_item_not_due_still_recomputes_from_as_of():
    engine = ScheduleEngine()
    item = engine.advance(_item(engine), NOW)
    early = NOW + timedelta(hours=1)
    again = engine.advance(item, early)
    assert (again.stage, again.step) == (Stage.NEW, 2)
    assert again.next_due == early + timedelta(days=7)


def test_select_due_boundary_and_order():
    engine = ScheduleEngine()
    later = _item(engine, page=3, ayah=40, now=NOW + timedelta(days=1))
    exact = _item(engine, page=2, ayah=20, now=NOW)
    earlier = _item(engine, page=1, ayah=5, now=NOW - timedelta(days=2))
    due = engine.select_due([later, exact, earlier], NOW)
    assert due == [earlier, exact]
    assert engine.select_due([later, exact, earlier], NOW) == due


def test_select_due_accepts_naive_as_of_as_utc():
    engine = ScheduleEngine()
    item = _item(engine)
    assert engine.select_due([item], NOW.replace(tzinfo=None)) == [item]


def test_advance_all_due_leaves_not_due_items_untouched():
    engine = ScheduleEngine()
    due = _item(engine, ayah=1)
    not_due = _item(engine, ayah=2, now=NOW + timedelta(days=5))
    snapshot = not_due.model_dump()
    result = engine.advance_all_due([due, not_due], NOW)
    assert result[1] is not_due
    assert not_due.model_dump() == snapshot
    assert (result[0].stage, result[0].step) == (Stage.NEW, 1)
    assert result[0].next_due == NOW + timedelta(days=3)


def test_custom_interval_table_is_used():
    engine = ScheduleEngine({Stage.NEW: [2], Stage.CONSOLIDATING: [5], Stage.LONG_TERM: [10, 20, 40]})
    item = engine.advance(_item(engine), NOW)
    assert (item.stage, item.step) == (Stage.CONSOLIDATING, 0)
    assert item.next_due == NOW + timedelta(days=5)
    item = engine.advance(item, item.next_due)
    assert (item.stage, item.step) == (Stage.LONG_TERM, 0)


@pytest.mark.parametrize(
    "table",
    [
        {Stage.NEW: [1], Stage.CONSOLIDATING: [2]},
        {Stage.NEW: [], Stage.CONSOLIDATING: [2], Stage.LONG_TERM: [3]},
        {Stage.NEW: [1], Stage.CONSOLIDATING: [0], Stage.LONG_TERM: [3]},
    ],
)
def test_invalid_interval_tables_are_rejected(table):
    with pytest.raises(ValueError):
        ScheduleEngine(table)


def test_intervals_from_config_reads_schedule_section():
    intervals = intervals_from_config({"new": [1, 2], "consolidating": [10], "long_term": [60]})
    assert intervals == {
        Stage.NEW: (1, 2),
        Stage.CONSOLIDATING: (10,),
        Stage.LONG_TERM: (60,),
    }
    assert intervals_from_config({}) == DEFAULT_INTERVALS
