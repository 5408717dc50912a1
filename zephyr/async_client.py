# zephyr/async_client.py
"""
Zephyr Async API Client

Async version of the Zephyr client using httpx.AsyncClient.
Provides the same API as the sync client but with async/await support.
"""

import asyncio
import logging
from datetime import date, datetime, timezone, tzinfo
from typing import Optional, Dict, Any, List

from .config import ZephyrConfig, load_config
from .http import AsyncHttpClient, handle_api_response
from .models import (
    Activity,
    ActivityStatus,
    Category,
    Conversation,
    ConversationMessage,
    Memory,
    MemorySearchResult,
    MessageRole,
    RunningTimer,
    Task,
    TaskStatus,
    TimeEntry,
    TimelineData,
)
from .client import (
    build_auth,
    build_memory_search_params,
    build_task_payload,
    build_task_update,
    _as_list,
    _iso,
    _unwrap,
    _value,
)
from . import timeline as timeline_builder

logger = logging.getLogger(__name__)


class AsyncTasksClient:
    """Async client for task operations."""

    def __init__(self, http: AsyncHttpClient):
        self._http = http

    async def list(self, **filters: Any) -> List[Task]:
        """List tasks; accepts the same filters as TasksClient.list."""
        params = {k: _iso(v) for k, v in filters.items()}
        data = handle_api_response(await self._http.get("/tasks", params=params))
        return [Task(**t) for t in _as_list(data)]

    async def get(self, task_id: str) -> Optional[Task]:
        result = await self._http.get(f"/tasks/{task_id}")
        if result.status == 404:
            return None
        return Task(**handle_api_response(result))

    async def create(
        self,
        title: str,
        description: Optional[str] = None,
        status: TaskStatus = TaskStatus.PENDING,
        priority: str = "medium",
        tags: Optional[List[str]] = None,
        **content: Any,
    ) -> Task:
        body = build_task_payload(title, description, status, priority, tags, **content)
        return Task(**handle_api_response(await self._http.post("/tasks", body=body)))

    async def update(self, task_id: str, tags: Optional[List[str]] = None, **content: Any) -> Task:
        body = build_task_update(content, tags)
        return Task(**handle_api_response(await self._http.put(f"/tasks/{task_id}", body=body)))

    async def delete(self, task_id: str) -> None:
        handle_api_response(await self._http.delete(f"/tasks/{task_id}"))

    async def update_status(self, task_id: str, status: TaskStatus) -> Task:
        return await self.update(task_id, status=status)

    async def get_tree(self, task_id: str) -> List[Task]:
        data = handle_api_response(await self._http.get(f"/tasks/{task_id}/tree"))
        return [Task(**t) for t in _as_list(data)]

    async def get_updated_today(self) -> List[Task]:
        data = handle_api_response(await self._http.get("/tasks/updated-today"))
        return [Task(**t) for t in _as_list(data)]

    async def get_active(self) -> List[Task]:
        return await self.list(status=TaskStatus.IN_PROGRESS, sort_by="updated_at", sort_order="desc")

    async def get_pending(self) -> List[Task]:
        return await self.list(status=TaskStatus.PENDING, sort_by="created_at", sort_order="desc")

    async def get_completed(self, limit: int = 20) -> List[Task]:
        return await self.list(
            status=TaskStatus.COMPLETED, sort_by="completion_date", sort_order="desc", limit=limit
        )

    async def get_root_tasks(self, limit: int = 500) -> List[Task]:
        return await self.list(root_tasks_only=True, sort_by="updated_at", sort_order="desc", limit=limit)

    async def get_overdue(self) -> List[Task]:
        return await self.list(
            due_before=datetime.now(timezone.utc),
            status=TaskStatus.PENDING,
            sort_by="due_date",
            sort_order="asc",
        )

    async def search(self, query: str) -> List[Task]:
        return await self.list(search=query, sort_by="updated_at", sort_order="desc")


class AsyncCategoriesClient:
    """Async client for category operations."""

    def __init__(self, http: AsyncHttpClient):
        self._http = http

    async def list(self) -> List[Category]:
        data = handle_api_response(await self._http.get("/categories"))
        return [Category(**c) for c in _as_list(data, "categories")]

    async def create(
        self,
        name: str,
        color: Optional[str] = None,
        icon: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Category:
        body = {"name": name, "color": color, "icon": icon, "description": description}
        body = {k: v for k, v in body.items() if v is not None}
        data = handle_api_response(await self._http.post("/categories", body=body))
        return Category(**_unwrap(data, "category"))

    async def update(self, category_id: str, **updates: Any) -> Category:
        data = handle_api_response(await self._http.put(f"/categories/{category_id}", body=updates))
        return Category(**_unwrap(data, "category"))

    async def delete(self, category_id: str) -> None:
        handle_api_response(await self._http.delete(f"/categories/{category_id}"))


class AsyncMemoriesClient:
    """Async client for memory operations."""

    def __init__(self, http: AsyncHttpClient):
        self._http = http

    async def create(self, title: str, note: Optional[str] = None, **fields: Any) -> Memory:
        body = {"title": title, "note": note}
        body.update({k: _iso(_value(v)) for k, v in fields.items()})
        body = {k: v for k, v in body.items() if v is not None}
        return Memory(**handle_api_response(await self._http.post("/memories", body=body)))

    async def get(self, memory_id: str) -> Optional[Memory]:
        result = await self._http.get(f"/memories/{memory_id}")
        if result.status == 404:
            return None
        return Memory(**handle_api_response(result))

    async def update(self, memory_id: str, **fields: Any) -> Memory:
        body = {k: _iso(_value(v)) for k, v in fields.items() if v is not None}
        return Memory(**handle_api_response(await self._http.put(f"/memories/{memory_id}", body=body)))

    async def delete(self, memory_id: str) -> Dict[str, Any]:
        return handle_api_response(await self._http.delete(f"/memories/{memory_id}")) or {}

    async def search(self, **params: Any) -> MemorySearchResult:
        for key in ("date_from", "date_to"):
            if key in params:
                params[key] = _iso(params[key])
        query = build_memory_search_params(**params)
        data = handle_api_response(await self._http.get("/memories", params=query))
        memories = [Memory(**m) for m in _as_list(data, "memories")]
        limit = query.get("limit")
        return MemorySearchResult(
            memories=memories,
            total=len(memories),
            has_more=bool(limit) and len(memories) >= limit,
        )


class AsyncActivitiesClient:
    """Async client for activity operations."""

    def __init__(self, http: AsyncHttpClient):
        self._http = http

    async def list(self, **filters: Any) -> List[Activity]:
        params = {k: _iso(v) for k, v in filters.items()}
        data = handle_api_response(await self._http.get("/activities", params=params))
        return [Activity(**a) for a in _as_list(data, "activities")]

    async def get(self, activity_id: str) -> Optional[Activity]:
        result = await self._http.get(f"/activities/{activity_id}")
        if result.status == 404:
            return None
        return Activity(**handle_api_response(result))

    async def create(self, title: str, activity_type: str = "other", **fields: Any) -> Activity:
        body = {"title": title, "activity_type": activity_type}
        body.update({k: _iso(_value(v)) for k, v in fields.items() if v is not None})
        return Activity(**handle_api_response(await self._http.post("/activities", body=body)))

    async def update(self, activity_id: str, **fields: Any) -> Activity:
        body = {k: _iso(_value(v)) for k, v in fields.items() if v is not None}
        return Activity(**handle_api_response(await self._http.put(f"/activities/{activity_id}", body=body)))

    async def delete(self, activity_id: str) -> None:
        handle_api_response(await self._http.delete(f"/activities/{activity_id}"))

    async def mark_completed(self, activity_id: str, mood_after: Optional[int] = None) -> Activity:
        return await self.update(
            activity_id,
            status=ActivityStatus.COMPLETED,
            completion_percentage=100,
            mood_after=mood_after,
        )


class AsyncTimeEntriesClient:
    """Async client for time tracking."""

    def __init__(self, http: AsyncHttpClient):
        self._http = http

    async def start_timer(self, task_id: str, auto_switch: bool = False) -> TimeEntry:
        data = handle_api_response(
            await self._http.post(f"/tasks/{task_id}/timer/start", body={"autoSwitch": auto_switch})
        )
        return TimeEntry(**_unwrap(data, "entry"))

    async def stop_timer(self, task_id: str, override_end_at: Optional[datetime] = None) -> TimeEntry:
        body = {"overrideEndAt": _iso(override_end_at)} if override_end_at else {}
        data = handle_api_response(await self._http.post(f"/tasks/{task_id}/timer/stop", body=body))
        return TimeEntry(**_unwrap(data, "entry"))

    async def get_running(self) -> RunningTimer:
        data = handle_api_response(await self._http.get("/time-entries/running")) or {}
        return RunningTimer(**data)

    async def list(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[TimeEntry]:
        params = {"from": _iso(start), "to": _iso(end), "limit": limit}
        data = handle_api_response(await self._http.get("/time-entries", params=params))
        return [TimeEntry(**e) for e in _as_list(data, "entries")]

    async def for_task(self, task_id: str) -> List[TimeEntry]:
        data = handle_api_response(await self._http.get(f"/tasks/{task_id}/time-entries"))
        return [TimeEntry(**e) for e in _as_list(data, "entries")]


class AsyncConversationsClient:
    """Async client for agent conversation history."""

    def __init__(self, http: AsyncHttpClient):
        self._http = http

    async def list(self, limit: int = 50, include_archived: bool = False) -> List[Conversation]:
        params = {"limit": limit, "includeArchived": True if include_archived else None}
        data = handle_api_response(await self._http.get("/conversations", params=params))
        return [Conversation(**c) for c in _as_list(data, "conversations")]

    async def get(self, conversation_id: str) -> Optional[Conversation]:
        result = await self._http.get(f"/conversations/{conversation_id}")
        if result.status == 404:
            return None
        return Conversation(**_unwrap(handle_api_response(result), "conversation"))

    async def search(self, query: str, limit: int = 20) -> List[Dict[str, Any]]:
        data = handle_api_response(
            await self._http.get("/conversations/search", params={"q": query, "limit": limit})
        )
        return _as_list(data, "results")

    async def create(self, title: Optional[str] = None, agent_id: Optional[str] = None) -> Conversation:
        body = {k: v for k, v in {"title": title, "agentId": agent_id}.items() if v is not None}
        data = handle_api_response(await self._http.post("/conversations", body=body))
        return Conversation(**_unwrap(data, "conversation"))

    async def add_message(self, conversation_id: str, role: MessageRole, content: str) -> ConversationMessage:
        data = handle_api_response(await self._http.post(
            f"/conversations/{conversation_id}/messages",
            body={"role": _value(role), "content": content},
        ))
        return ConversationMessage(**_unwrap(data, "message"))

    async def delete(self, conversation_id: str) -> None:
        handle_api_response(await self._http.delete(f"/conversations/{conversation_id}"))


class AsyncTimelineClient:
    """Builds timeline views, fetching every source concurrently."""

    def __init__(
        self,
        tasks: AsyncTasksClient,
        memories: AsyncMemoriesClient,
        activities: AsyncActivitiesClient,
        time_entries: AsyncTimeEntriesClient,
        categories: AsyncCategoriesClient,
    ):
        self._tasks = tasks
        self._memories = memories
        self._activities = activities
        self._time_entries = time_entries
        self._categories = categories

    async def _no_tasks(self) -> List[Task]:
        return []

    async def _build(self, start: datetime, end: datetime, memory_limit: int, with_tasks: bool) -> TimelineData:
        tasks_call = self._tasks.list(limit=500, root_tasks_only=True) if with_tasks else self._no_tasks()
        memories_result, tasks, activities, entries, categories = await asyncio.gather(
            self._memories.search(date_from=start, date_to=end, limit=memory_limit),
            tasks_call,
            self._activities.list(start_date=start, end_date=end),
            self._time_entries.list(start, end),
            self._categories.list(),
        )
        return timeline_builder.build_timeline(
            start,
            end,
            memories=memories_result.memories,
            tasks=tasks,
            activities=activities,
            time_entries=entries,
            categories=timeline_builder.category_lookup(categories),
        )

    async def get_day(self, day: date, tz: Optional[tzinfo] = None) -> TimelineData:
        start, end = timeline_builder.day_bounds(day, tz)
        return await self._build(start, end, 100, with_tasks=True)

    async def get_range(self, start_day: date, end_day: date, tz: Optional[tzinfo] = None) -> TimelineData:
        start, end = timeline_builder.range_bounds(start_day, end_day, tz)
        return await self._build(start, end, 500, with_tasks=False)


class AsyncZephyrClient:
    """
    Async zmemory API client.

    Same API as ZephyrClient but with async/await support.

    Example:
        ```python
        async with AsyncZephyrClient(environment="staging") as client:
            pending = await client.tasks.get_pending()
            today = await client.timeline.get_day(date.today())
        ```
    """

    def __init__(
        self,
        environment: Optional[str] = None,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        session_provider=None,
        config: Optional[ZephyrConfig] = None,
        transport=None,
    ):
        self.config = config or load_config(
            environment=environment, api_url=api_url, api_key=api_key, timeout=timeout
        )
        self.auth = build_auth(self.config, session_provider)

        self._http = AsyncHttpClient(
            base_url=self.config.api_url,
            api_prefix=self.config.api_prefix,
            auth=self.auth,
            timeout=self.config.timeout,
            transport=transport,
        )

        # Initialize sub-clients
        self.tasks = AsyncTasksClient(self._http)
        self.categories = AsyncCategoriesClient(self._http)
        self.memories = AsyncMemoriesClient(self._http)
        self.activities = AsyncActivitiesClient(self._http)
        self.time_entries = AsyncTimeEntriesClient(self._http)
        self.conversations = AsyncConversationsClient(self._http)
        self.timeline = AsyncTimelineClient(
            self.tasks, self.memories, self.activities, self.time_entries, self.categories
        )

        logger.info(f"AsyncZephyrClient initialized for {self.config.environment} ({self.config.api_url})")

    @property
    def http(self) -> AsyncHttpClient:
        return self._http

    async def health(self) -> Dict[str, Any]:
        """Check API health status."""
        return handle_api_response(await self._http.get("/health"))

    def clear_auth_cache(self) -> None:
        self.auth.clear_cache()

    async def close(self):
        """Close the HTTP client."""
        await self._http.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
