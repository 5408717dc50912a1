# zephyr/tests/test_timeline.py
"""Tests for timeline aggregation."""

from datetime import date, datetime, timedelta, timezone

from zephyr.models import Activity, Memory, Task, TimeEntry, TimelineEventType
from zephyr.timeline import (
    build_timeline,
    category_lookup,
    day_bounds,
    summarize_energy,
)
from zephyr.models import Category

UTC = timezone.utc
DAY_START, DAY_END = day_bounds(date(2024, 3, 12), UTC)
NOW = datetime(2024, 3, 12, 18, 0, tzinfo=UTC)


def make_memory(memory_id, captured_at, tags=()):
    return Memory(id=memory_id, title=memory_id, captured_at=captured_at, tags=list(tags))


def make_task(task_id, status="pending", created_at=None, category=None, duration=None, tags=()):
    return Task(
        id=task_id,
        content={"title": task_id, "status": status, "estimated_duration": duration},
        created_at=created_at or datetime(2024, 3, 11, 9, 0, tzinfo=UTC),
        category=category,
        tags=list(tags),
    )


def test_day_bounds():
    assert DAY_START == datetime(2024, 3, 12, 0, 0, tzinfo=UTC)
    assert DAY_END.date() == date(2024, 3, 12)
    assert DAY_END.hour == 23 and DAY_END.minute == 59


def test_memories_outside_window_are_dropped():
    memories = [
        make_memory("inside", datetime(2024, 3, 12, 8, 0, tzinfo=UTC)),
        make_memory("before", datetime(2024, 3, 11, 23, 59, tzinfo=UTC)),
        make_memory("after", datetime(2024, 3, 13, 0, 0, tzinfo=UTC)),
        Memory(id="undated"),
    ]

    data = build_timeline(DAY_START, DAY_END, memories=memories)

    assert [e.id for e in data.events] == ["inside"]
    assert data.events[0].type == TimelineEventType.MEMORY


def test_only_unfinished_tasks_are_included():
    tasks = [
        make_task("pending", "pending"),
        make_task("doing", "in_progress"),
        make_task("held", "on_hold"),
        make_task("done", "completed"),
        make_task("dropped", "cancelled"),
    ]

    data = build_timeline(DAY_START, DAY_END, tasks=tasks, now=NOW)

    assert {e.id for e in data.events} == {"pending", "doing", "held"}


def test_old_tasks_are_flagged():
    tasks = [
        make_task("fresh", created_at=NOW - timedelta(days=2)),
        make_task("stale", created_at=NOW - timedelta(days=45)),
    ]

    data = build_timeline(DAY_START, DAY_END, tasks=tasks, now=NOW)
    flags = {e.id: e.metadata["is_old_task"] for e in data.events}

    assert flags == {"fresh": False, "stale": True}


def test_events_sorted_and_durations_summed():
    memories = [make_memory("m", datetime(2024, 3, 12, 12, 0, tzinfo=UTC))]
    tasks = [make_task("t", created_at=datetime(2024, 3, 1, tzinfo=UTC), duration=30)]
    entries = [TimeEntry(
        id="e",
        task_id="t",
        start_at=datetime(2024, 3, 12, 9, 0, tzinfo=UTC),
        duration_seconds=1500,
    )]

    data = build_timeline(DAY_START, DAY_END, memories=memories, tasks=tasks, time_entries=entries, now=NOW)

    assert [e.id for e in data.events] == ["t", "e", "m"]
    assert data.events[1].duration == 25
    assert data.events[1].title == "Time Entry"
    assert data.total_duration == 55


def test_category_counts_sorted_by_count():
    work = Category(id="w", name="Work", color="#111")
    home = Category(id="h", name="Home", color="#222")
    tasks = [
        make_task("1", category=home),
        make_task("2", category=work),
        make_task("3", category=work),
    ]

    data = build_timeline(DAY_START, DAY_END, tasks=tasks, now=NOW)

    assert [(c.id, c.count) for c in data.categories] == [("w", 2), ("h", 1)]


def test_tags_counted_and_capped():
    memories = [
        make_memory(f"m{i}", datetime(2024, 3, 12, 10, 0, tzinfo=UTC), tags=[f"tag{i}", "common"])
        for i in range(25)
    ]

    data = build_timeline(DAY_START, DAY_END, memories=memories)

    assert len(data.tags) == 20
    assert data.tags[0].name == "common"
    assert data.tags[0].count == 25


def test_activities_carry_category_and_energy():
    activity = Activity(
        id="a1",
        title="Run",
        activity_type="exercise",
        category_id="fit",
        start_time=datetime(2024, 3, 12, 6, 0, tzinfo=UTC),
        duration_minutes=40,
        energy_level=8,
    )
    lookup = category_lookup([Category(id="fit", name="Fitness", color="#0F0")])

    data = build_timeline(DAY_START, DAY_END, activities=[activity], categories=lookup)
    event = data.events[0]

    assert event.type == TimelineEventType.ACTIVITY
    assert event.category.name == "Fitness"
    assert event.energy.average == 8
    assert data.total_duration == 40


def test_naive_timestamps_treated_as_utc():
    memories = [make_memory("naive", datetime(2024, 3, 12, 8, 0))]

    data = build_timeline(DAY_START, DAY_END, memories=memories)

    assert data.events[0].start_time.tzinfo is not None


def test_summarize_energy():
    summary = summarize_energy([4, None, 6, 8])

    assert summary.count == 3
    assert summary.average == 6
    assert summary.minimum == 4
    assert summary.maximum == 8


def test_summarize_energy_empty():
    assert summarize_energy([None]) is None
    assert summarize_energy([]) is None
