# zephyr/models.py
"""
Zephyr SDK Data Models

Pydantic models for the data shapes returned by the zmemory API.
The backend owns validation and lifecycle rules; these models only give
SDK callers typed access and tolerate fields they do not know about.
"""

from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS
# =============================================================================

class TaskStatus(str, Enum):
    """Task status values."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ON_HOLD = "on_hold"


UNFINISHED_TASK_STATUSES = (TaskStatus.PENDING, TaskStatus.IN_PROGRESS, TaskStatus.ON_HOLD)


class TaskPriority(str, Enum):
    """Task priority levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class CompletionBehavior(str, Enum):
    MANUAL = "manual"
    AUTO_WHEN_SUBTASKS_COMPLETE = "auto_when_subtasks_complete"


class ProgressCalculation(str, Enum):
    """How a parent task's progress is aggregated from its subtasks."""
    MANUAL = "manual"
    AVERAGE_SUBTASKS = "average_subtasks"
    WEIGHTED_SUBTASKS = "weighted_subtasks"


class MemoryType(str, Enum):
    """Memory kinds."""
    NOTE = "note"
    CONVERSATION = "conversation"
    DOCUMENT = "document"
    EXPERIENCE = "experience"
    INSIGHT = "insight"
    REFLECTION = "reflection"
    LEARNING = "learning"
    ACHIEVEMENT = "achievement"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ActivityStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"
    CANCELLED = "cancelled"


class TimelineEventType(str, Enum):
    """Kinds of records placed on the timeline."""
    TASK = "task"
    ACTIVITY = "activity"
    MEMORY = "memory"
    TIME_ENTRY = "time_entry"


class _ApiModel(BaseModel):
    model_config = ConfigDict(extra="allow", use_enum_values=False)


# =============================================================================
# DOMAIN MODELS
# =============================================================================

class Category(_ApiModel):
    """A user-defined category."""
    id: str
    name: str
    color: str = "#6B7280"
    icon: Optional[str] = None
    description: Optional[str] = None


class TaskContent(_ApiModel):
    """The content block of a task record."""
    title: str
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.PENDING
    priority: TaskPriority = TaskPriority.MEDIUM
    category_id: Optional[str] = None
    due_date: Optional[datetime] = None
    estimated_duration: Optional[int] = None  # minutes
    progress: int = Field(default=0, ge=0, le=100)
    assignee: Optional[str] = None
    notes: Optional[str] = None
    completion_date: Optional[datetime] = None

    # Hierarchy
    parent_task_id: Optional[str] = None
    subtask_order: int = 0
    completion_behavior: CompletionBehavior = CompletionBehavior.MANUAL
    progress_calculation: ProgressCalculation = ProgressCalculation.MANUAL


class Task(_ApiModel):
    """A task as stored by zmemory."""
    id: str
    type: str = "task"
    content: TaskContent
    tags: List[str] = Field(default_factory=list)
    category: Optional[Category] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def title(self) -> str:
        return self.content.title

    @property
    def status(self) -> TaskStatus:
        return self.content.status

    @property
    def priority(self) -> TaskPriority:
        return self.content.priority

    @property
    def is_unfinished(self) -> bool:
        return self.content.status in UNFINISHED_TASK_STATUSES


class Memory(_ApiModel):
    """A captured memory."""
    id: str
    title: Optional[str] = None
    note: str = ""
    memory_type: MemoryType = MemoryType.NOTE
    tags: List[str] = Field(default_factory=list)
    importance_level: Optional[str] = None
    is_highlight: bool = False
    emotion_valence: Optional[float] = Field(default=None, ge=-1, le=1)
    emotion_arousal: Optional[float] = Field(default=None, ge=0, le=1)
    mood: Optional[int] = None
    energy_delta: Optional[int] = None
    salience_score: Optional[float] = None
    source: Optional[str] = None
    captured_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def content(self) -> str:
        return self.note


class ConversationMessage(_ApiModel):
    """A single message in a conversation."""
    id: Optional[str] = None
    role: MessageRole
    content: str
    timestamp: Optional[datetime] = None


class Conversation(_ApiModel):
    """An agent conversation with its ordered messages."""
    id: str
    title: Optional[str] = None
    agent_id: Optional[str] = None
    summary: Optional[str] = None
    messages: List[ConversationMessage] = Field(default_factory=list)
    is_archived: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Activity(_ApiModel):
    """A logged activity."""
    id: str
    type: str = "activity"
    title: str
    description: Optional[str] = None
    activity_type: str = "other"
    status: ActivityStatus = ActivityStatus.ACTIVE
    priority: TaskPriority = TaskPriority.MEDIUM
    category_id: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    energy_level: Optional[int] = None  # 1-10
    mood_before: Optional[int] = None
    mood_after: Optional[int] = None
    completion_percentage: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TimeEntry(_ApiModel):
    """A tracked span of time against a task or timeline item."""
    id: str
    task_id: Optional[str] = None
    timeline_item_id: Optional[str] = None
    timeline_item_type: Optional[str] = None
    start_at: datetime
    end_at: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    notes: Optional[str] = None
    source: str = "timer"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# =============================================================================
# TIMELINE
# =============================================================================

class EnergySummary(BaseModel):
    """Aggregate of energy samples over a span."""
    count: int
    average: float
    minimum: float
    maximum: float


class TimelineCategory(BaseModel):
    id: str
    name: str
    color: str
    icon: Optional[str] = None


class TimelineEvent(BaseModel):
    """A task, activity, memory or time entry placed on the timeline."""
    id: str
    type: TimelineEventType
    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = None  # minutes
    category: Optional[TimelineCategory] = None
    energy: Optional[EnergySummary] = None
    tags: List[str] = Field(default_factory=list)
    is_highlight: bool = False
    status: Optional[str] = None
    priority: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class CategoryCount(BaseModel):
    id: str
    name: str
    color: str
    count: int


class TagCount(BaseModel):
    name: str
    count: int


class TimelineData(BaseModel):
    """Timeline events for a window plus their aggregates."""
    events: List[TimelineEvent] = Field(default_factory=list)
    total_duration: int = 0
    categories: List[CategoryCount] = Field(default_factory=list)
    tags: List[TagCount] = Field(default_factory=list)


# =============================================================================
# API RESPONSE MODELS
# =============================================================================

class MemorySearchResult(BaseModel):
    """Response for memory search."""
    memories: List[Memory]
    total: int
    has_more: bool = False


class RunningTimer(BaseModel):
    """Response for the running-timer endpoint."""
    is_running: bool = Field(default=False, alias="isRunning")
    entry: Optional[TimeEntry] = None

    model_config = ConfigDict(populate_by_name=True)
