"""
TaskStore - the single state container for DayFlow task lists.

All mutations run inside a transaction: the committed lists are deep-copied
into a draft, the mutation rules in dayflow.mutations edit the draft, and the
draft replaces the committed lists only if no error was raised. Readers always
see either the state before or after a mutation, never a mix of the two.

Rejected operations (unknown ids, locked reorders, bad values) are logged and
reported through the return value instead of raising.
"""

import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Iterator, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from . import mutations
from .config import StoreConfig
from .gate import (
    StatusPolicy, StatusPropagation, StatusVerdict,
    allow_any_status_change, can_start_item, no_status_propagation,
)
from .hierarchy import Located, find_item, find_parent_list, get_all_items
from .models import (
    Activity, Attachment, AttachmentType, ItemKind, PlanItem, Priority, Reminder,
    Schedule, Status, Subtask, Task, TaskBoard, TaskList, as_instant, utcnow,
)
from .recovery import InvalidUpdateError, ItemNotFoundError, OperationBlockedError
from .schedules import are_date_fields_locked, is_item_active
from .today import TodayItem, select_today_items
from .logs import get_logger

log = get_logger("store")

DEFAULT_LIST_ID = "default-list"

# Failures a caller can recover from by fixing its input
REJECTIONS = (ItemNotFoundError, OperationBlockedError, InvalidUpdateError)
INPUT_REJECTIONS = REJECTIONS + (ValidationError,)

class TaskStore:
    """Holds the task lists and exposes every read and write operation on them."""

    def __init__(self, task_lists: Optional[Sequence[TaskList]] = None,
                 config: Optional[StoreConfig] = None,
                 clock: Optional[Callable[[], datetime]] = None,
                 status_policy: Optional[StatusPolicy] = None,
                 status_propagation: Optional[StatusPropagation] = None):
        self.config = config or StoreConfig()
        self._clock = clock or utcnow
        self._status_policy = status_policy or allow_any_status_change
        self._status_propagation = status_propagation or no_status_propagation
        if task_lists is None:
            task_lists = [TaskList(id=DEFAULT_LIST_ID, name=self.config.default_list_name)]
        self._task_lists: List[TaskList] = [task_list.model_copy(deep=True) for task_list in task_lists]
        self._lock = threading.RLock()
        self._revision = 0
        self.last_warnings: List[str] = []

    @classmethod
    def from_board(cls, board: TaskBoard, **kwargs) -> 'TaskStore':
        return cls(task_lists=board.task_lists, **kwargs)

    def to_board(self) -> TaskBoard:
        return TaskBoard(task_lists=self.get_raw_task_lists())

    # --- state -----------------------------------------------------------

    @property
    def task_lists(self) -> List[TaskList]:
        """The committed lists. Treat as read-only; use get_raw_task_lists() for a private copy."""
        return self._task_lists

    @property
    def revision(self) -> int:
        """Number of committed mutations since the store was created."""
        return self._revision

    def now(self) -> datetime:
        return as_instant(self._clock())

    @contextmanager
    def _transaction(self) -> Iterator[mutations.MutationContext]:
        with self._lock:
            self.last_warnings = []
            draft = [task_list.model_copy(deep=True) for task_list in self._task_lists]
            ctx = mutations.MutationContext(
                draft,
                now=self.now(),
                config=self.config,
                status_policy=self._status_policy,
                status_propagation=self._status_propagation,
            )
            yield ctx
            self._task_lists = draft
            self._revision += 1
            self.last_warnings = ctx.warnings

    # --- queries ---------------------------------------------------------

    def get_raw_task_lists(self) -> List[TaskList]:
        """A deep copy of every list, safe to modify or serialize."""
        return [task_list.model_copy(deep=True) for task_list in self._task_lists]

    def find_item(self, item_id: str) -> Optional[Located]:
        """Locate an item; the returned item and parent are copies."""
        located = find_item(self._task_lists, item_id)
        if located is None:
            return None
        parent = located.parent.model_copy(deep=True) if located.parent is not None else None
        return located._replace(item=located.item.model_copy(deep=True), parent=parent)

    def find_parent_list(self, item_id: str) -> Optional[TaskList]:
        task_list = find_parent_list(self._task_lists, item_id)
        return task_list.model_copy(deep=True) if task_list is not None else None

    def get_all_items(self) -> List[PlanItem]:
        return [item.model_copy(deep=True) for item in get_all_items(self._task_lists)]

    def is_item_active(self, item_id: str, now: Optional[datetime] = None) -> bool:
        return is_item_active(self._task_lists, item_id, as_instant(now) if now else self.now())

    def are_date_fields_locked(self, item_id: str) -> bool:
        return are_date_fields_locked(self._task_lists, item_id)

    def can_start_item(self, item_id: str) -> bool:
        return can_start_item(self._task_lists, item_id)

    def can_change_status(self, item_id: str, new_status: Union[Status, str]) -> StatusVerdict:
        """Ask the configured status policy whether a transition would be accepted."""
        return self._status_policy(self._task_lists, item_id, Status(new_status))

    def get_today_items(self, now: Optional[datetime] = None) -> List[TodayItem]:
        return select_today_items(
            self._task_lists,
            as_instant(now) if now else self.now(),
            window_days=self.config.today_window_days,
        )

    # --- lists -----------------------------------------------------------

    def add_task_list(self, name: str) -> TaskList:
        with self._transaction() as ctx:
            task_list = TaskList(name=name)
            ctx.task_lists.append(task_list)
        log.info(f"Added task list '{name}' ({task_list.id})")
        return task_list.model_copy(deep=True)

    def rename_task_list(self, list_id: str, name: str) -> bool:
        try:
            with self._transaction() as ctx:
                task_list = next((tl for tl in ctx.task_lists if tl.id == list_id), None)
                if task_list is None:
                    raise ItemNotFoundError(f"Task list with ID {list_id} not found.")
                task_list.name = name
        except REJECTIONS as e:
            log.warning(str(e))
            return False
        return True

    def delete_task_list(self, list_id: str) -> bool:
        try:
            with self._transaction() as ctx:
                remaining = [tl for tl in ctx.task_lists if tl.id != list_id]
                if len(remaining) == len(ctx.task_lists):
                    raise ItemNotFoundError(f"Task list with ID {list_id} not found.")
                ctx.task_lists[:] = remaining
        except REJECTIONS as e:
            log.warning(str(e))
            return False
        log.info(f"Deleted task list {list_id}")
        return True

    # --- generic item operations -------------------------------------------

    def _add(self, kind: ItemKind, parent_id: str, name: str, **kwargs) -> Optional[PlanItem]:
        try:
            with self._transaction() as ctx:
                item = mutations.add_item(ctx, kind, parent_id, name, **kwargs)
        except REJECTIONS as e:
            log.warning(str(e))
            return None
        return item.model_copy(deep=True)

    def _update(self, kind: ItemKind, item_id: str, updates: Mapping[str, Any]) -> Union[bool, str]:
        try:
            with self._transaction() as ctx:
                mutations.update_item(ctx, kind, item_id, updates)
        except REJECTIONS as e:
            log.warning(str(e))
            return str(e)
        return True

    def _delete(self, kind: ItemKind, item_id: str) -> bool:
        try:
            with self._transaction() as ctx:
                if not mutations.delete_item(ctx, kind, item_id):
                    raise ItemNotFoundError(f"{kind.label} with ID {item_id} not found.")
        except REJECTIONS as e:
            log.warning(str(e))
            return False
        return True

    def _reorder(self, container_kind: ItemKind, container_id: str, ordered_ids: Sequence[str]) -> Union[bool, str]:
        try:
            with self._transaction() as ctx:
                mutations.reorder_children(ctx, container_kind, container_id, list(ordered_ids))
        except REJECTIONS as e:
            log.warning(str(e))
            return str(e)
        return True

    def update_item(self, item_id: str, updates: Mapping[str, Any]) -> Union[bool, str]:
        """Update a Task, Subtask or Activity without knowing its kind up front."""
        located = self.find_item(item_id)
        if located is None or located.kind is ItemKind.TASK_LIST:
            message = f"Item with ID {item_id} not found or is a task list."
            log.warning(message)
            return message
        return self._update(located.kind, item_id, updates)

    # --- tasks -----------------------------------------------------------

    def add_task(self, list_id: str, name: str, priority: Union[Priority, str] = Priority.MEDIUM,
                 creation_date: Optional[datetime] = None,
                 expected_completion_date: Optional[datetime] = None) -> Optional[Task]:
        return self._add(ItemKind.TASK, list_id, name, priority=priority,
                         creation_date=creation_date,
                         expected_completion_date=expected_completion_date)

    def update_task(self, task_id: str, updates: Mapping[str, Any]) -> Union[bool, str]:
        return self._update(ItemKind.TASK, task_id, updates)

    def delete_task(self, task_id: str) -> bool:
        return self._delete(ItemKind.TASK, task_id)

    def reorder_tasks(self, list_id: str, task_ids: Sequence[str]) -> Union[bool, str]:
        return self._reorder(ItemKind.TASK_LIST, list_id, task_ids)

    # --- subtasks --------------------------------------------------------

    def add_subtask(self, task_id: str, name: str,
                    priority: Union[Priority, str] = Priority.MEDIUM) -> Optional[Subtask]:
        return self._add(ItemKind.SUBTASK, task_id, name, priority=priority)

    def update_subtask(self, subtask_id: str, updates: Mapping[str, Any]) -> Union[bool, str]:
        return self._update(ItemKind.SUBTASK, subtask_id, updates)

    def delete_subtask(self, subtask_id: str) -> bool:
        return self._delete(ItemKind.SUBTASK, subtask_id)

    def reorder_subtasks(self, task_id: str, subtask_ids: Sequence[str]) -> Union[bool, str]:
        return self._reorder(ItemKind.TASK, task_id, subtask_ids)

    # --- activities ------------------------------------------------------

    def add_activity(self, subtask_id: str, name: str,
                     priority: Union[Priority, str] = Priority.MEDIUM) -> Optional[Activity]:
        return self._add(ItemKind.ACTIVITY, subtask_id, name, priority=priority)

    def update_activity(self, activity_id: str, updates: Mapping[str, Any]) -> Union[bool, str]:
        return self._update(ItemKind.ACTIVITY, activity_id, updates)

    def delete_activity(self, activity_id: str) -> bool:
        return self._delete(ItemKind.ACTIVITY, activity_id)

    def reorder_activities(self, subtask_id: str, activity_ids: Sequence[str]) -> Union[bool, str]:
        return self._reorder(ItemKind.SUBTASK, subtask_id, activity_ids)

    # --- attachments -----------------------------------------------------

    def add_attachment(self, item_id: str, type: Union[AttachmentType, str], name: str,
                       url: Optional[str] = None, data_uri: Optional[str] = None,
                       file_type: Optional[str] = None) -> Optional[Attachment]:
        try:
            with self._transaction() as ctx:
                attachment = Attachment(
                    type=type, name=name, url=url,
                    data_uri=data_uri, file_type=file_type, timestamp=ctx.now,
                )
                mutations.add_attachment(ctx, item_id, attachment)
        except INPUT_REJECTIONS as e:
            log.warning(str(e))
            return None
        return attachment.model_copy(deep=True)

    def delete_attachment(self, item_id: str, attachment_id: str) -> bool:
        try:
            with self._transaction() as ctx:
                if not mutations.delete_attachment(ctx, item_id, attachment_id):
                    raise ItemNotFoundError(f"Attachment {attachment_id} not found on item {item_id}.")
        except REJECTIONS as e:
            log.warning(str(e))
            return False
        return True

    # --- auto-repeat -----------------------------------------------------

    def toggle_auto_repeat(self, item_id: str, enabled: bool) -> bool:
        try:
            with self._transaction() as ctx:
                mutations.set_auto_repeat(ctx, item_id, enabled)
        except REJECTIONS as e:
            log.warning(str(e))
            return False
        return True

    def set_schedule(self, item_id: str, schedule: Union[Schedule, Mapping[str, Any]]) -> bool:
        try:
            with self._transaction() as ctx:
                mutations.set_schedule(ctx, item_id, Schedule.model_validate(schedule).model_copy(deep=True))
        except INPUT_REJECTIONS as e:
            log.warning(str(e))
            return False
        return True

    def set_reminder(self, item_id: str, reminder: Union[Reminder, Mapping[str, Any]]) -> bool:
        try:
            with self._transaction() as ctx:
                mutations.set_reminder(ctx, item_id, Reminder.model_validate(reminder).model_copy(deep=True))
        except INPUT_REJECTIONS as e:
            log.warning(str(e))
            return False
        return True
