# zephyr/timeline.py
"""
Timeline aggregation.

Turns tasks, memories, activities and time entries fetched from zmemory
into a single chronological TimelineData with category and tag counts.
Everything here is pure; fetching lives in the clients.
"""

import logging
from collections import Counter
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import (
    Activity,
    CategoryCount,
    EnergySummary,
    Memory,
    TagCount,
    Task,
    TimeEntry,
    TimelineCategory,
    TimelineData,
    TimelineEvent,
    TimelineEventType,
)

logger = logging.getLogger(__name__)

OLD_TASK_AGE = timedelta(days=30)
MAX_TAGS = 20


def _aware(value: datetime) -> datetime:
    # Naive timestamps from the API are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def day_bounds(day: date, tz: Optional[tzinfo] = None) -> Tuple[datetime, datetime]:
    """Start and end of a local calendar day as aware datetimes."""
    tz = tz or datetime.now().astimezone().tzinfo
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day, time.max, tzinfo=tz)
    return start, end


def range_bounds(start_day: date, end_day: date, tz: Optional[tzinfo] = None) -> Tuple[datetime, datetime]:
    """Start of the first day through end of the last day."""
    start, _ = day_bounds(start_day, tz)
    _, end = day_bounds(end_day, tz)
    return start, end


def summarize_energy(samples: Iterable[Optional[float]]) -> Optional[EnergySummary]:
    """Aggregate energy samples, ignoring missing ones."""
    values = [float(s) for s in samples if s is not None]
    if not values:
        return None
    return EnergySummary(
        count=len(values),
        average=round(sum(values) / len(values), 2),
        minimum=min(values),
        maximum=max(values),
    )


def memory_events(memories: Iterable[Memory], start: datetime, end: datetime) -> List[TimelineEvent]:
    """Memories captured inside [start, end]."""
    events = []
    for memory in memories:
        if memory.captured_at is None:
            continue
        captured_at = _aware(memory.captured_at)
        if not (start <= captured_at <= end):
            continue
        events.append(TimelineEvent(
            id=memory.id,
            type=TimelineEventType.MEMORY,
            title=memory.title or "",
            description=memory.note,
            start_time=captured_at,
            tags=list(memory.tags),
            is_highlight=memory.is_highlight,
            metadata={
                "memory_type": memory.memory_type.value,
                "emotion_valence": memory.emotion_valence,
                "emotion_arousal": memory.emotion_arousal,
                "mood": memory.mood,
                "importance": memory.importance_level,
                "salience": memory.salience_score,
            },
        ))
    return events


def task_events(tasks: Iterable[Task], now: Optional[datetime] = None) -> List[TimelineEvent]:
    """Unfinished tasks, placed at their creation time."""
    now = _aware(now or datetime.now(timezone.utc))
    cutoff = now - OLD_TASK_AGE
    events = []
    for task in tasks:
        if not task.is_unfinished or task.created_at is None:
            continue
        created_at = _aware(task.created_at)
        content = task.content
        category = None
        if task.category is not None:
            category = TimelineCategory(
                id=task.category.id,
                name=task.category.name,
                color=task.category.color,
                icon=task.category.icon,
            )
        events.append(TimelineEvent(
            id=task.id,
            type=TimelineEventType.TASK,
            title=content.title,
            description=content.description,
            start_time=created_at,
            end_time=_aware(content.completion_date) if content.completion_date else None,
            duration=content.estimated_duration,
            category=category,
            tags=list(task.tags),
            status=content.status.value,
            priority=content.priority.value,
            metadata={
                "progress": content.progress,
                "assignee": content.assignee,
                "due_date": content.due_date.isoformat() if content.due_date else None,
                "is_old_task": created_at < cutoff,
            },
        ))
    return events


def time_entry_events(entries: Iterable[TimeEntry]) -> List[TimelineEvent]:
    events = []
    for entry in entries:
        duration = None
        if entry.duration_seconds:
            duration = round(entry.duration_seconds / 60)
        events.append(TimelineEvent(
            id=entry.id,
            type=TimelineEventType.TIME_ENTRY,
            title="Time Entry" if entry.task_id else "Activity Entry",
            description=entry.notes,
            start_time=_aware(entry.start_at),
            end_time=_aware(entry.end_at) if entry.end_at else None,
            duration=duration,
            metadata={
                "source": entry.source,
                "task_id": entry.task_id,
                "timeline_item_id": entry.timeline_item_id,
                "timeline_item_type": entry.timeline_item_type,
            },
        ))
    return events


def activity_events(
    activities: Iterable[Activity],
    start: datetime,
    end: datetime,
    categories: Optional[Dict[str, TimelineCategory]] = None,
) -> List[TimelineEvent]:
    """Activities whose start time falls inside [start, end]."""
    categories = categories or {}
    events = []
    for activity in activities:
        if activity.start_time is None:
            continue
        started = _aware(activity.start_time)
        if not (start <= started <= end):
            continue
        events.append(TimelineEvent(
            id=activity.id,
            type=TimelineEventType.ACTIVITY,
            title=activity.title,
            description=activity.description,
            start_time=started,
            end_time=_aware(activity.end_time) if activity.end_time else None,
            duration=activity.duration_minutes,
            category=categories.get(activity.category_id) if activity.category_id else None,
            energy=summarize_energy([activity.energy_level]),
            tags=list(activity.tags),
            status=activity.status.value,
            priority=activity.priority.value,
            metadata={
                "activity_type": activity.activity_type,
                "mood_before": activity.mood_before,
                "mood_after": activity.mood_after,
                "location": activity.location,
            },
        ))
    return events


def aggregate(events: Sequence[TimelineEvent]) -> TimelineData:
    """Sort events chronologically and count durations, categories and tags."""
    ordered = sorted(events, key=lambda e: _aware(e.start_time))

    total_duration = sum(e.duration for e in ordered if e.duration)

    category_counts: Dict[str, CategoryCount] = {}
    tag_counts: Counter = Counter()
    for event in ordered:
        if event.category is not None:
            existing = category_counts.get(event.category.id)
            if existing:
                existing.count += 1
            else:
                category_counts[event.category.id] = CategoryCount(
                    id=event.category.id,
                    name=event.category.name,
                    color=event.category.color,
                    count=1,
                )
        tag_counts.update(event.tags)

    # sorted() is stable so ties keep first-seen order
    categories = sorted(category_counts.values(), key=lambda c: c.count, reverse=True)
    tags = [
        TagCount(name=name, count=count)
        for name, count in sorted(tag_counts.items(), key=lambda kv: kv[1], reverse=True)[:MAX_TAGS]
    ]

    return TimelineData(
        events=ordered,
        total_duration=total_duration,
        categories=categories,
        tags=tags,
    )


def build_timeline(
    start: datetime,
    end: datetime,
    memories: Iterable[Memory] = (),
    tasks: Iterable[Task] = (),
    activities: Iterable[Activity] = (),
    time_entries: Iterable[TimeEntry] = (),
    categories: Optional[Dict[str, TimelineCategory]] = None,
    now: Optional[datetime] = None,
) -> TimelineData:
    """Build the timeline for the window [start, end]."""
    start, end = _aware(start), _aware(end)
    events: List[TimelineEvent] = []
    events.extend(time_entry_events(time_entries))
    events.extend(memory_events(memories, start, end))
    events.extend(activity_events(activities, start, end, categories))
    events.extend(task_events(tasks, now))
    logger.debug(f"Built timeline with {len(events)} events for {start.isoformat()}..{end.isoformat()}")
    return aggregate(events)


def category_lookup(categories: Iterable) -> Dict[str, TimelineCategory]:
    """Map category id to its timeline representation."""
    return {
        c.id: TimelineCategory(id=c.id, name=c.name, color=c.color, icon=c.icon)
        for c in categories
    }
