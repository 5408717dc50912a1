# zephyr/__init__.py
"""
Zephyr SDK

A Python client library for the ZephyrOS zmemory API.

Quick Start:
    ```python
    from zephyr import ZephyrClient

    client = ZephyrClient(api_url="http://localhost:3001")

    # Pending tasks
    tasks = client.tasks.get_pending()

    # Memories captured this week
    result = client.memories.search(date_from=week_start, limit=50)

    # Today's timeline
    timeline = client.timeline.get_day(date.today())
    ```

Low-level calls return an ApiResult instead of raising:
    ```python
    result = client.http.get("/tasks", params={"status": "pending"})
    tasks = handle_api_response(result)
    ```
"""

__version__ = "0.1.0"

from .client import ZephyrClient
from .async_client import AsyncZephyrClient
from .auth import AuthTokenManager, StaticTokenProvider, SupabaseSessionProvider
from .config import ZephyrConfig, load_config, configure_logging
from .http import ApiError, ApiResult, HttpClient, AsyncHttpClient, handle_api_response
from .models import (
    Task,
    TaskStatus,
    TaskPriority,
    Category,
    Memory,
    Conversation,
    ConversationMessage,
    Activity,
    TimeEntry,
    TimelineEvent,
    TimelineData,
)

__all__ = [
    "ZephyrClient",
    "AsyncZephyrClient",
    "AuthTokenManager",
    "StaticTokenProvider",
    "SupabaseSessionProvider",
    "ZephyrConfig",
    "load_config",
    "configure_logging",
    "ApiError",
    "ApiResult",
    "HttpClient",
    "AsyncHttpClient",
    "handle_api_response",
    "Task",
    "TaskStatus",
    "TaskPriority",
    "Category",
    "Memory",
    "Conversation",
    "ConversationMessage",
    "Activity",
    "TimeEntry",
    "TimelineEvent",
    "TimelineData",
]
