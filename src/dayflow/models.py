from pydantic import BaseModel, Field, field_validator, model_validator
from datetime import datetime, timezone
from enum import Enum
from typing import ClassVar, Optional, List, Union
import uuid

from .version import APP_SCHEMA_VERSION
from .logs import get_logger

log = get_logger("models")

class Priority(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

class Status(Enum):
    TODO = "todo"
    STARTED = "started"
    INPROGRESS = "inprogress"
    DONE = "done"

class ItemKind(Enum):
    TASK_LIST = "taskList"
    TASK = "task"
    SUBTASK = "subtask"
    ACTIVITY = "activity"

    @property
    def label(self) -> str:
        return {
            ItemKind.TASK_LIST: "Task list",
            ItemKind.TASK: "Task",
            ItemKind.SUBTASK: "Subtask",
            ItemKind.ACTIVITY: "Activity",
        }[self]

class AttachmentType(Enum):
    LINK = "link"
    FILE = "file"

def new_id() -> str:
    """Generate a globally unique item id."""
    return str(uuid.uuid4())

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def as_instant(value: datetime) -> datetime:
    """Normalize a datetime to an aware instant; naive values are read as local time."""
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value.astimezone()
    return value

class HistoryEntry(BaseModel):
    """A single append-only history line owned by one item."""

    timestamp: datetime = Field(description="When the entry was recorded")
    content: str = Field(description="Free text, e.g. '[EDIT] previous description'")

    @field_validator('timestamp')
    @classmethod
    def normalize_timestamp(cls, v):
        return as_instant(v)

class Attachment(BaseModel):
    id: str = Field(default_factory=new_id, description="Unique identifier for the attachment")
    type: AttachmentType = Field(description="Whether the attachment is a link or an embedded file")
    name: str = Field(description="Display name, a filename or link title")
    url: Optional[str] = Field(default=None, description="Target URL for links")
    data_uri: Optional[str] = Field(default=None, description="Base64 data URI payload for files")
    file_type: Optional[str] = Field(default=None, description="MIME type for files, e.g. 'application/pdf'")
    timestamp: datetime = Field(default_factory=utcnow, description="When the attachment was added")

    @field_validator('timestamp')
    @classmethod
    def normalize_timestamp(cls, v):
        return as_instant(v)

class Schedule(BaseModel):
    """Auto-repeat schedule. Only the 'daily' rule is interpreted."""

    recurrence_rule: str = Field(default="", description="Recurrence rule, e.g. 'daily'; empty for none")
    specific_times: List[str] = Field(
        default_factory=list,
        description="Time slots such as '10:00-12:00' during which the item is active"
    )
    time_zone: str = Field(default="", description="IANA time zone the slots are expressed in")

class Reminder(BaseModel):
    remind_at: str = Field(default="", description="When to remind, free form or ISO 8601")
    message: str = Field(default="", description="Reminder text")

class PlanItem(BaseModel):
    """Fields shared by Task, Subtask and Activity."""

    KIND: ClassVar[ItemKind]
    CHILDREN_FIELD: ClassVar[Optional[str]] = None

    id: str = Field(default_factory=new_id, description="Globally unique, immutable identifier")
    parent_id: str = Field(description="Id of the owning list, task or subtask")
    name: str = Field(description="The human readable name of the item")
    description: Optional[str] = Field(default=None, description="Free text description; absent when empty")
    creation_date: datetime = Field(description="When work on the item starts")
    expected_completion_date: datetime = Field(description="When the item is expected to be done")
    actual_completion_date: Optional[datetime] = Field(default=None, description="When the item was done")
    last_edited_date: datetime = Field(default_factory=utcnow, description="Last change to this item or a descendant")
    status: Status = Field(default=Status.TODO, description="Current status of the item")
    priority: Priority = Field(default=Priority.MEDIUM, description="Priority of the item")
    order: int = Field(default=0, ge=0, description="Zero-based position among its siblings")
    description_history: List[HistoryEntry] = Field(
        default_factory=list,
        description="Append-only log of description edits and schedule changes"
    )
    attachments: List[Attachment] = Field(default_factory=list, description="Links and files attached to the item")
    auto_repeat: bool = Field(default=False, description="Whether the item repeats on its schedule")
    schedule: Schedule = Field(default_factory=Schedule, description="Auto-repeat schedule")
    reminder: Reminder = Field(default_factory=Reminder, description="Reminder settings")

    @field_validator('creation_date', 'expected_completion_date', 'actual_completion_date', 'last_edited_date')
    @classmethod
    def normalize_dates(cls, v):
        if v is None:
            return v
        return as_instant(v)

    @model_validator(mode='after')
    def validate_dates(self):
        if self.expected_completion_date < self.creation_date:
            log.warning(f"{self.KIND.label} {self.id}: expected completion before creation, adjusted to creation date.")
            self.expected_completion_date = self.creation_date
        return self

    @property
    def children(self) -> List['PlanItem']:
        if self.CHILDREN_FIELD is None:
            return []
        return getattr(self, self.CHILDREN_FIELD)

class ContainerItem(PlanItem):
    """A Task or Subtask: owns ordered children and gates them."""

    serial_completion_mandatory: bool = Field(
        default=False,
        description="Children must reach 'done' in ascending order"
    )
    sequence_mandatory: bool = Field(default=False, description="Manual reordering of children is locked")
    dependencies: List[str] = Field(default_factory=list, description="Ids of items this one depends on")

class Activity(PlanItem):
    """Leaf item owned by a Subtask."""

    KIND: ClassVar[ItemKind] = ItemKind.ACTIVITY

    notes: str = Field(default="", description="Notes for the current instance")
    numeric_value: Optional[float] = Field(default=None, description="A measured value, e.g. reps or minutes")
    is_skipped: bool = Field(default=False, description="The current instance was skipped")
    is_due: bool = Field(default=False, description="The current instance is due")
    due_count: int = Field(default=0, ge=0, description="How many times the activity was marked due")
    last_instance_date: Optional[datetime] = Field(default=None, description="Date of the last repeated instance")

    @field_validator('last_instance_date')
    @classmethod
    def normalize_instance_date(cls, v):
        if v is None:
            return v
        return as_instant(v)

class Subtask(ContainerItem):
    KIND: ClassVar[ItemKind] = ItemKind.SUBTASK
    CHILDREN_FIELD: ClassVar[Optional[str]] = "activities"

    activities: List[Activity] = Field(default_factory=list, description="Ordered activities of the subtask")

class Task(ContainerItem):
    KIND: ClassVar[ItemKind] = ItemKind.TASK
    CHILDREN_FIELD: ClassVar[Optional[str]] = "subtasks"

    subtasks: List[Subtask] = Field(default_factory=list, description="Ordered subtasks of the task")

class TaskList(BaseModel):
    """Root container; several lists coexist."""

    KIND: ClassVar[ItemKind] = ItemKind.TASK_LIST
    CHILDREN_FIELD: ClassVar[Optional[str]] = "tasks"

    id: str = Field(default_factory=new_id, description="Globally unique, immutable identifier")
    name: str = Field(description="The human readable name of the list")
    tasks: List[Task] = Field(default_factory=list, description="Ordered tasks of the list")

    @property
    def children(self) -> List[Task]:
        return self.tasks

Node = Union[TaskList, Task, Subtask, Activity]

class TaskBoard(BaseModel):
    """A full snapshot of every list, as loaded and saved by the persistence layer."""

    schema_version: str = Field(default=APP_SCHEMA_VERSION, description="Schema version the snapshot was written with")
    task_lists: List[TaskList] = Field(default_factory=list, description="All task lists in display order")
