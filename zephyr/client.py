# zephyr/client.py
"""
Zephyr API Client

Main client for interacting with the zmemory API.
Provides typed access to tasks, categories, memories, activities,
time tracking, conversations and the timeline.
"""

import logging
from datetime import date, datetime, timezone, tzinfo
from typing import Optional, Dict, Any, List

from .auth import AuthTokenManager, StaticTokenProvider, SupabaseSessionProvider, get_supabase_client
from .config import ZephyrConfig, load_config
from .http import HttpClient, handle_api_response
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
from . import timeline as timeline_builder

logger = logging.getLogger(__name__)

# Content fields an update may set to ""
FIELDS_ALLOWING_EMPTY = ("description", "notes", "assignee")

MEMORY_SEARCH_PARAMS = {
    "q": "search",
    "tags": "tags",
    "category_id": "category_id",
    "memory_type": "memory_type",
    "importance_level": "importance_level",
    "is_highlight": "is_highlight",
    "date_from": "captured_from",
    "date_to": "captured_to",
    "emotion_valence_min": "min_emotion_valence",
    "emotion_valence_max": "max_emotion_valence",
    "mood_min": "min_mood",
    "mood_max": "max_mood",
    "limit": "limit",
    "offset": "offset",
}


def _value(v: Any) -> Any:
    return v.value if hasattr(v, "value") else v


def build_task_payload(
    title: str,
    description: Optional[str] = None,
    status: TaskStatus = TaskStatus.PENDING,
    priority: str = "medium",
    tags: Optional[List[str]] = None,
    **content: Any,
) -> Dict[str, Any]:
    """Build the body of a task create request."""
    body_content = {
        "title": title,
        "description": description or "",
        "status": _value(status),
        "priority": _value(priority),
        "progress": content.pop("progress", 0) or 0,
    }
    body_content.update({k: _value(v) for k, v in content.items() if v is not None})
    return {"type": "task", "content": body_content, "tags": tags or []}


def build_task_update(content: Optional[Dict[str, Any]] = None, tags: Optional[List[str]] = None) -> Dict[str, Any]:
    """Build a task update body, dropping unset and blank fields."""
    update: Dict[str, Any] = {}
    if content:
        cleaned = {}
        for key, value in content.items():
            if value is None:
                continue
            if value == "" and key not in FIELDS_ALLOWING_EMPTY:
                continue
            cleaned[key] = _value(value)
        update["content"] = cleaned
    if tags is not None:
        update["tags"] = tags
    return update


def build_memory_search_params(**params: Any) -> Dict[str, Any]:
    """Map friendly search arguments onto the backend's query names."""
    mapped: Dict[str, Any] = {}
    for key, value in params.items():
        if key not in MEMORY_SEARCH_PARAMS:
            raise ValueError(f"Unknown memory search parameter: {key}")
        if value is None or value == "" or value == []:
            continue
        if key in ("limit", "offset") and not value:
            continue
        mapped[MEMORY_SEARCH_PARAMS[key]] = _value(value)
    return mapped


def _as_list(data: Any, key: Optional[str] = None) -> List[Any]:
    if key and isinstance(data, dict):
        data = data.get(key, [])
    return data if isinstance(data, list) else []


def _unwrap(data: Any, key: str) -> Any:
    if isinstance(data, dict) and key in data:
        return data[key]
    return data


def _iso(value: Any) -> Any:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    return value


class TasksClient:
    """Client for task operations."""

    def __init__(self, http: HttpClient):
        self._http = http

    def list(
        self,
        status: Optional[TaskStatus] = None,
        priority: Optional[str] = None,
        category_id: Optional[str] = None,
        search: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
        root_tasks_only: Optional[bool] = None,
        due_before: Optional[datetime] = None,
        due_after: Optional[datetime] = None,
    ) -> List[Task]:
        """List tasks with optional filters."""
        params = {
            "status": status,
            "priority": priority,
            "category_id": category_id,
            "search": search,
            "limit": limit,
            "offset": offset,
            "sort_by": sort_by,
            "sort_order": sort_order,
            "root_tasks_only": root_tasks_only,
            "due_before": _iso(due_before),
            "due_after": _iso(due_after),
        }
        data = handle_api_response(self._http.get("/tasks", params=params))
        return [Task(**t) for t in _as_list(data)]

    def get(self, task_id: str) -> Optional[Task]:
        """Get a single task by ID."""
        result = self._http.get(f"/tasks/{task_id}")
        if result.status == 404:
            return None
        return Task(**handle_api_response(result))

    def create(
        self,
        title: str,
        description: Optional[str] = None,
        status: TaskStatus = TaskStatus.PENDING,
        priority: str = "medium",
        tags: Optional[List[str]] = None,
        **content: Any,
    ) -> Task:
        """Create a new task."""
        body = build_task_payload(title, description, status, priority, tags, **content)
        return Task(**handle_api_response(self._http.post("/tasks", body=body)))

    def update(self, task_id: str, tags: Optional[List[str]] = None, **content: Any) -> Task:
        """Update task content fields and/or tags."""
        body = build_task_update(content, tags)
        return Task(**handle_api_response(self._http.put(f"/tasks/{task_id}", body=body)))

    def delete(self, task_id: str) -> None:
        handle_api_response(self._http.delete(f"/tasks/{task_id}"))

    def update_status(self, task_id: str, status: TaskStatus) -> Task:
        return self.update(task_id, status=status)

    def get_tree(self, task_id: str) -> List[Task]:
        """Get a task with all of its subtasks."""
        data = handle_api_response(self._http.get(f"/tasks/{task_id}/tree"))
        return [Task(**t) for t in _as_list(data)]

    def get_updated_today(self) -> List[Task]:
        data = handle_api_response(self._http.get("/tasks/updated-today"))
        return [Task(**t) for t in _as_list(data)]

    # Query shortcuts

    def get_active(self) -> List[Task]:
        return self.list(status=TaskStatus.IN_PROGRESS, sort_by="updated_at", sort_order="desc")

    def get_pending(self) -> List[Task]:
        return self.list(status=TaskStatus.PENDING, sort_by="created_at", sort_order="desc")

    def get_completed(self, limit: int = 20) -> List[Task]:
        return self.list(
            status=TaskStatus.COMPLETED, sort_by="completion_date", sort_order="desc", limit=limit
        )

    def get_root_tasks(self, limit: int = 500) -> List[Task]:
        return self.list(root_tasks_only=True, sort_by="updated_at", sort_order="desc", limit=limit)

    def get_overdue(self) -> List[Task]:
        return self.list(
            due_before=datetime.now(timezone.utc),
            status=TaskStatus.PENDING,
            sort_by="due_date",
            sort_order="asc",
        )

    def search(self, query: str) -> List[Task]:
        return self.list(search=query, sort_by="updated_at", sort_order="desc")


class CategoriesClient:
    """Client for category operations."""

    def __init__(self, http: HttpClient):
        self._http = http

    def list(self) -> List[Category]:
        data = handle_api_response(self._http.get("/categories"))
        return [Category(**c) for c in _as_list(data, "categories")]

    def create(
        self,
        name: str,
        color: Optional[str] = None,
        icon: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Category:
        body = {"name": name, "color": color, "icon": icon, "description": description}
        body = {k: v for k, v in body.items() if v is not None}
        data = handle_api_response(self._http.post("/categories", body=body))
        return Category(**_unwrap(data, "category"))

    def update(self, category_id: str, **updates: Any) -> Category:
        data = handle_api_response(self._http.put(f"/categories/{category_id}", body=updates))
        return Category(**_unwrap(data, "category"))

    def delete(self, category_id: str) -> None:
        handle_api_response(self._http.delete(f"/categories/{category_id}"))


class MemoriesClient:
    """Client for memory operations."""

    def __init__(self, http: HttpClient):
        self._http = http

    def create(self, title: str, note: Optional[str] = None, **fields: Any) -> Memory:
        """Capture a new memory."""
        body = {"title": title, "note": note}
        body.update({k: _iso(_value(v)) for k, v in fields.items()})
        body = {k: v for k, v in body.items() if v is not None}
        return Memory(**handle_api_response(self._http.post("/memories", body=body)))

    def get(self, memory_id: str) -> Optional[Memory]:
        result = self._http.get(f"/memories/{memory_id}")
        if result.status == 404:
            return None
        return Memory(**handle_api_response(result))

    def update(self, memory_id: str, **fields: Any) -> Memory:
        body = {k: _iso(_value(v)) for k, v in fields.items() if v is not None}
        return Memory(**handle_api_response(self._http.put(f"/memories/{memory_id}", body=body)))

    def delete(self, memory_id: str) -> Dict[str, Any]:
        return handle_api_response(self._http.delete(f"/memories/{memory_id}")) or {}

    def search(self, **params: Any) -> MemorySearchResult:
        """
        Search memories.

        Accepts q, tags, category_id, memory_type, importance_level,
        is_highlight, date_from, date_to, emotion_valence_min/max,
        mood_min/max, limit and offset.
        """
        for key in ("date_from", "date_to"):
            if key in params:
                params[key] = _iso(params[key])
        query = build_memory_search_params(**params)
        data = handle_api_response(self._http.get("/memories", params=query))
        memories = [Memory(**m) for m in _as_list(data, "memories")]
        limit = query.get("limit")
        return MemorySearchResult(
            memories=memories,
            total=len(memories),
            has_more=bool(limit) and len(memories) >= limit,
        )


class ActivitiesClient:
    """Client for activity operations."""

    def __init__(self, http: HttpClient):
        self._http = http

    def list(self, **filters: Any) -> List[Activity]:
        params = {k: _iso(v) for k, v in filters.items()}
        data = handle_api_response(self._http.get("/activities", params=params))
        return [Activity(**a) for a in _as_list(data, "activities")]

    def get(self, activity_id: str) -> Optional[Activity]:
        result = self._http.get(f"/activities/{activity_id}")
        if result.status == 404:
            return None
        return Activity(**handle_api_response(result))

    def create(self, title: str, activity_type: str = "other", **fields: Any) -> Activity:
        body = {"title": title, "activity_type": activity_type}
        body.update({k: _iso(_value(v)) for k, v in fields.items() if v is not None})
        return Activity(**handle_api_response(self._http.post("/activities", body=body)))

    def update(self, activity_id: str, **fields: Any) -> Activity:
        body = {k: _iso(_value(v)) for k, v in fields.items() if v is not None}
        return Activity(**handle_api_response(self._http.put(f"/activities/{activity_id}", body=body)))

    def delete(self, activity_id: str) -> None:
        handle_api_response(self._http.delete(f"/activities/{activity_id}"))

    def mark_completed(self, activity_id: str, mood_after: Optional[int] = None) -> Activity:
        return self.update(
            activity_id,
            status=ActivityStatus.COMPLETED,
            completion_percentage=100,
            mood_after=mood_after,
        )


class TimeEntriesClient:
    """Client for time tracking."""

    def __init__(self, http: HttpClient):
        self._http = http

    def start_timer(self, task_id: str, auto_switch: bool = False) -> TimeEntry:
        data = handle_api_response(
            self._http.post(f"/tasks/{task_id}/timer/start", body={"autoSwitch": auto_switch})
        )
        return TimeEntry(**_unwrap(data, "entry"))

    def stop_timer(self, task_id: str, override_end_at: Optional[datetime] = None) -> TimeEntry:
        body = {"overrideEndAt": _iso(override_end_at)} if override_end_at else {}
        data = handle_api_response(self._http.post(f"/tasks/{task_id}/timer/stop", body=body))
        return TimeEntry(**_unwrap(data, "entry"))

    def get_running(self) -> RunningTimer:
        data = handle_api_response(self._http.get("/time-entries/running")) or {}
        return RunningTimer(**data)

    def list(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[TimeEntry]:
        params = {"from": _iso(start), "to": _iso(end), "limit": limit}
        data = handle_api_response(self._http.get("/time-entries", params=params))
        return [TimeEntry(**e) for e in _as_list(data, "entries")]

    def for_task(self, task_id: str) -> List[TimeEntry]:
        data = handle_api_response(self._http.get(f"/tasks/{task_id}/time-entries"))
        return [TimeEntry(**e) for e in _as_list(data, "entries")]


class ConversationsClient:
    """Client for agent conversation history."""

    def __init__(self, http: HttpClient):
        self._http = http

    def list(self, limit: int = 50, include_archived: bool = False) -> List[Conversation]:
        params = {"limit": limit, "includeArchived": True if include_archived else None}
        data = handle_api_response(self._http.get("/conversations", params=params))
        return [Conversation(**c) for c in _as_list(data, "conversations")]

    def get(self, conversation_id: str) -> Optional[Conversation]:
        result = self._http.get(f"/conversations/{conversation_id}")
        if result.status == 404:
            return None
        return Conversation(**_unwrap(handle_api_response(result), "conversation"))

    def search(self, query: str, limit: int = 20) -> List[Dict[str, Any]]:
        data = handle_api_response(self._http.get("/conversations/search", params={"q": query, "limit": limit}))
        return _as_list(data, "results")

    def create(self, title: Optional[str] = None, agent_id: Optional[str] = None) -> Conversation:
        body = {k: v for k, v in {"title": title, "agentId": agent_id}.items() if v is not None}
        data = handle_api_response(self._http.post("/conversations", body=body))
        return Conversation(**_unwrap(data, "conversation"))

    def add_message(self, conversation_id: str, role: MessageRole, content: str) -> ConversationMessage:
        data = handle_api_response(self._http.post(
            f"/conversations/{conversation_id}/messages",
            body={"role": _value(role), "content": content},
        ))
        return ConversationMessage(**_unwrap(data, "message"))

    def delete(self, conversation_id: str) -> None:
        handle_api_response(self._http.delete(f"/conversations/{conversation_id}"))


class TimelineClient:
    """Builds timeline views from memories, tasks, activities and time entries."""

    def __init__(
        self,
        tasks: TasksClient,
        memories: MemoriesClient,
        activities: ActivitiesClient,
        time_entries: TimeEntriesClient,
        categories: CategoriesClient,
    ):
        self._tasks = tasks
        self._memories = memories
        self._activities = activities
        self._time_entries = time_entries
        self._categories = categories

    def _build(self, start: datetime, end: datetime, memory_limit: int, tasks: List[Task]) -> TimelineData:
        memories = self._memories.search(date_from=start, date_to=end, limit=memory_limit).memories
        activities = self._activities.list(start_date=start, end_date=end)
        entries = self._time_entries.list(start, end)
        categories = timeline_builder.category_lookup(self._categories.list())
        return timeline_builder.build_timeline(
            start,
            end,
            memories=memories,
            tasks=tasks,
            activities=activities,
            time_entries=entries,
            categories=categories,
        )

    def get_day(self, day: date, tz: Optional[tzinfo] = None) -> TimelineData:
        """Everything recorded on a local day plus all unfinished root tasks."""
        start, end = timeline_builder.day_bounds(day, tz)
        tasks = self._tasks.list(limit=500, root_tasks_only=True)
        return self._build(start, end, 100, tasks)

    def get_range(self, start_day: date, end_day: date, tz: Optional[tzinfo] = None) -> TimelineData:
        """Memories, activities and time entries between two local days, inclusive."""
        start, end = timeline_builder.range_bounds(start_day, end_day, tz)
        return self._build(start, end, 500, [])


def build_auth(config: ZephyrConfig, session_provider=None) -> AuthTokenManager:
    """Pick the token source: explicit provider, API key, then Supabase."""
    if session_provider is not None:
        return AuthTokenManager(session_provider)
    if config.api_key:
        return AuthTokenManager(StaticTokenProvider(config.api_key))
    if config.supabase_url and config.supabase_key:
        return AuthTokenManager(
            SupabaseSessionProvider(get_supabase_client(config.supabase_url, config.supabase_key))
        )
    return AuthTokenManager()


class ZephyrClient:
    """
    Main zmemory API client.

    Example:
        ```python
        with ZephyrClient(api_url="http://localhost:3001") as client:
            pending = client.tasks.get_pending()
            today = client.timeline.get_day(date.today())
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
        """
        Initialize the client.

        Args:
            environment: One of "local", "staging", "production"
            api_url: Override the API URL
            api_key: Static bearer token (skips the Supabase session)
            timeout: Default request timeout in seconds
            session_provider: Object with get_access_token()
            config: Pre-built configuration; other args are ignored when given
            transport: Custom httpx transport
        """
        self.config = config or load_config(
            environment=environment, api_url=api_url, api_key=api_key, timeout=timeout
        )
        self.auth = build_auth(self.config, session_provider)

        self._http = HttpClient(
            base_url=self.config.api_url,
            api_prefix=self.config.api_prefix,
            auth=self.auth,
            timeout=self.config.timeout,
            transport=transport,
        )

        # Initialize sub-clients
        self.tasks = TasksClient(self._http)
        self.categories = CategoriesClient(self._http)
        self.memories = MemoriesClient(self._http)
        self.activities = ActivitiesClient(self._http)
        self.time_entries = TimeEntriesClient(self._http)
        self.conversations = ConversationsClient(self._http)
        self.timeline = TimelineClient(
            self.tasks, self.memories, self.activities, self.time_entries, self.categories
        )

        logger.info(f"ZephyrClient initialized for {self.config.environment} ({self.config.api_url})")

    @property
    def http(self) -> HttpClient:
        return self._http

    def health(self) -> Dict[str, Any]:
        """Check API health status."""
        return handle_api_response(self._http.get("/health"))

    def clear_auth_cache(self) -> None:
        self.auth.clear_cache()

    def close(self):
        """Close the HTTP client."""
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


