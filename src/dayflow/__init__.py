"""
DayFlow - a hierarchical task planner.

Work is organized as List → Task → Subtask → Activity. A single TaskStore owns
the tree and keeps dates, ordering and edit timestamps consistent on every
mutation.
"""

from .version import VERSION, APP_SCHEMA_VERSION
from .config import StoreConfig
from .models import (
    Priority,
    Status,
    ItemKind,
    Attachment,
    AttachmentType,
    Schedule,
    Reminder,
    TaskList,
    Task,
    Subtask,
    Activity,
    TaskBoard,
)
from .gate import can_start_item, require_serial_order
from .schedules import is_item_active
from .scheduling import ScheduleAssistant, ScheduleOutcome
from .store import TaskStore
from .today import TodayItem
from .data import DataCore

__version__ = VERSION

__all__ = [
    "VERSION",
    "APP_SCHEMA_VERSION",
    "StoreConfig",
    "Priority",
    "Status",
    "ItemKind",
    "Attachment",
    "AttachmentType",
    "Schedule",
    "Reminder",
    "TaskList",
    "Task",
    "Subtask",
    "Activity",
    "TaskBoard",
    "can_start_item",
    "require_serial_order",
    "is_item_active",
    "ScheduleAssistant",
    "ScheduleOutcome",
    "TaskStore",
    "TodayItem",
    "DataCore",
]
