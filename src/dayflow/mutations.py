"""
Mutation rules for the List -> Task -> Subtask -> Activity hierarchy.

Every function here mutates the draft tree held by a MutationContext in place.
TaskStore builds the context on a deep copy of its committed lists and swaps
the copy in only when the function returns normally, so a raised
RecoverableError leaves the committed tree untouched.
"""

from datetime import datetime, timedelta
from functools import lru_cache
from typing import Annotated, Any, Dict, Iterator, List, Mapping, Optional, Sequence

from pydantic import BaseModel, TypeAdapter, ValidationError

from .config import StoreConfig
from .gate import StatusPolicy, StatusPropagation, allow_any_status_change, no_status_propagation
from .hierarchy import get_item_path
from .models import (
    Activity, Attachment, ContainerItem, HistoryEntry, ItemKind, Node, PlanItem,
    Priority, Reminder, Schedule, Status, Subtask, Task, TaskList, as_instant,
)
from .recovery import InvalidUpdateError, ItemNotFoundError, OperationBlockedError
from .logs import get_logger

log = get_logger("mutations")

ITEM_CLASSES = {
    ItemKind.TASK: Task,
    ItemKind.SUBTASK: Subtask,
    ItemKind.ACTIVITY: Activity,
}

PARENT_KINDS = {
    ItemKind.TASK: ItemKind.TASK_LIST,
    ItemKind.SUBTASK: ItemKind.TASK,
    ItemKind.ACTIVITY: ItemKind.SUBTASK,
}

CHILD_NOUNS = {
    ItemKind.TASK_LIST: "tasks",
    ItemKind.TASK: "subtasks",
    ItemKind.SUBTASK: "activities",
}

DATE_FIELDS = ('creation_date', 'expected_completion_date', 'actual_completion_date')

COMMON_FIELDS = frozenset({
    'name', 'description', *DATE_FIELDS, 'status', 'priority',
    'auto_repeat', 'schedule', 'reminder',
})
CONTAINER_FIELDS = frozenset({'serial_completion_mandatory', 'sequence_mandatory', 'dependencies'})
ACTIVITY_FIELDS = frozenset({'notes', 'numeric_value', 'is_skipped', 'is_due', 'due_count', 'last_instance_date'})

UPDATABLE_FIELDS = {
    ItemKind.TASK: COMMON_FIELDS | CONTAINER_FIELDS,
    ItemKind.SUBTASK: COMMON_FIELDS | CONTAINER_FIELDS,
    ItemKind.ACTIVITY: COMMON_FIELDS | ACTIVITY_FIELDS,
}

# Fields with bespoke change handling in update_item
_SPECIAL_FIELDS = frozenset({'description', 'status', 'schedule', 'reminder', 'is_due', 'is_skipped', *DATE_FIELDS})

class MutationContext:
    """Draft tree plus everything a mutation needs: clock reading, config, hooks, warnings."""

    def __init__(self, task_lists: List[TaskList], now: datetime, config: Optional[StoreConfig] = None,
                 status_policy: Optional[StatusPolicy] = None,
                 status_propagation: Optional[StatusPropagation] = None):
        self.task_lists = task_lists
        self.now = now
        self.config = config or StoreConfig()
        self.status_policy = status_policy or allow_any_status_change
        self.status_propagation = status_propagation or no_status_propagation
        self.warnings: List[str] = []

    def warn(self, message: str):
        """Record a non-fatal adjustment made while applying a mutation."""
        log.warning(message)
        self.warnings.append(message)

# --- helpers ---------------------------------------------------------------

def add_history_entry(item: PlanItem, timestamp: datetime, content: str):
    trimmed = content.strip()
    if trimmed:
        item.description_history.append(HistoryEntry(timestamp=timestamp, content=trimmed))

def touch_path(path: Sequence[Node], now: datetime):
    """Refresh last_edited_date on every Task/Subtask/Activity of a path."""
    for node in path:
        if isinstance(node, PlanItem):
            node.last_edited_date = now

def renumber(children: List[PlanItem]):
    for index, child in enumerate(children):
        child.order = index

def iter_descendants(item: Node) -> Iterator[PlanItem]:
    for child in item.children:
        yield child
        yield from iter_descendants(child)

def _same_instant(a: Optional[datetime], b: Optional[datetime]) -> bool:
    if a is None or b is None:
        return a is b
    return a == b

@lru_cache(maxsize=None)
def _field_adapter(model_cls: type, field_name: str) -> TypeAdapter:
    info = model_cls.model_fields[field_name]
    if info.metadata:
        return TypeAdapter(Annotated[(info.annotation, *info.metadata)])
    return TypeAdapter(info.annotation)

def coerce_updates(kind: ItemKind, updates: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate a partial update against the item model and normalize its values."""
    unknown = sorted(set(updates) - UPDATABLE_FIELDS[kind])
    if unknown:
        raise InvalidUpdateError(f"{kind.label} field(s) cannot be updated: {', '.join(unknown)}")

    model_cls = ITEM_CLASSES[kind]
    values = {}
    for key, value in updates.items():
        try:
            coerced = _field_adapter(model_cls, key).validate_python(value)
        except ValidationError as e:
            raise InvalidUpdateError(
                f"Invalid value for {kind.label.lower()} field '{key}': {e.errors()[0]['msg']}"
            ) from e
        if isinstance(coerced, datetime):
            coerced = as_instant(coerced)
        elif isinstance(coerced, BaseModel):
            coerced = coerced.model_copy(deep=True)
        values[key] = coerced
    return values

def _resolve(ctx: MutationContext, kind: ItemKind, item_id: str, message: str) -> List[Node]:
    path = get_item_path(ctx.task_lists, item_id)
    if not path or path[-1].KIND is not kind:
        raise ItemNotFoundError(message)
    return path

def _resolve_plan_item(ctx: MutationContext, item_id: str, action: str) -> List[Node]:
    path = get_item_path(ctx.task_lists, item_id)
    if not path or not isinstance(path[-1], PlanItem):
        raise ItemNotFoundError(f"Cannot {action}: item with ID {item_id} not found or is a task list.")
    return path

# --- date constraints --------------------------------------------------------

def clamp_dates(item: PlanItem, parent: Optional[PlanItem], ctx: MutationContext,
                creation_moved: bool = False) -> bool:
    """
    Force an item's dates into its own and its parent's bounds.

    creation_date is kept inside [parent.creation, parent.expected], then
    expected_completion_date is capped at parent.expected. An inverted range is
    collapsed onto expected_completion_date when only the creation date was
    moved, otherwise expected_completion_date is raised to creation_date.
    Returns True if anything was adjusted.
    """
    label = f"{item.KIND.label} {item.id}"
    adjusted = False

    if parent is not None:
        parent_label = parent.KIND.label.lower()
        if item.creation_date < parent.creation_date:
            ctx.warn(f"{label}: creation date adjusted to parent {parent_label}'s.")
            item.creation_date = parent.creation_date
            adjusted = True
        elif item.creation_date > parent.expected_completion_date:
            ctx.warn(f"{label}: creation date adjusted to parent {parent_label}'s expected completion.")
            item.creation_date = parent.expected_completion_date
            adjusted = True
        if item.expected_completion_date > parent.expected_completion_date:
            ctx.warn(f"{label}: expected completion adjusted to parent {parent_label}'s.")
            item.expected_completion_date = parent.expected_completion_date
            adjusted = True

    if item.expected_completion_date < item.creation_date:
        if creation_moved:
            ctx.warn(f"{label}: creation date adjusted to expected completion.")
            item.creation_date = item.expected_completion_date
        else:
            ctx.warn(f"{label}: expected completion adjusted to creation date.")
            item.expected_completion_date = item.creation_date
        adjusted = True

    return adjusted

def cascade_dates(container: PlanItem, ctx: MutationContext):
    """Clamp every descendant into its (possibly just adjusted) parent, top-down."""
    for child in container.children:
        if clamp_dates(child, container, ctx):
            child.last_edited_date = ctx.now
        cascade_dates(child, ctx)

# --- schedule / reminder -----------------------------------------------------

def _replace_schedule(item: PlanItem, schedule: Schedule, now: datetime) -> bool:
    if schedule == item.schedule:
        return False
    add_history_entry(item, now, f"[SCHEDULE] Schedule updated to: {schedule.recurrence_rule or 'none'}")
    item.schedule = schedule
    return True

def _replace_reminder(item: PlanItem, reminder: Reminder, now: datetime) -> bool:
    if reminder == item.reminder:
        return False
    add_history_entry(item, now, "[REMINDER] Reminder updated.")
    item.reminder = reminder
    return True

# --- operations --------------------------------------------------------------

def add_item(ctx: MutationContext, kind: ItemKind, parent_id: str, name: str,
             priority: Any = Priority.MEDIUM,
             creation_date: Optional[datetime] = None,
             expected_completion_date: Optional[datetime] = None) -> PlanItem:
    """
    Append a new Task, Subtask or Activity to its parent.

    Subtasks and Activities inherit their parent's dates. Tasks start now (or at
    creation_date) and run for the configured default duration.
    """
    parent_kind = PARENT_KINDS[kind]
    path = _resolve(ctx, parent_kind, parent_id,
                    f"Parent {parent_kind.label.lower()} with ID {parent_id} not found.")
    parent = path[-1]

    try:
        priority = Priority(priority)
    except ValueError as e:
        raise InvalidUpdateError(f"Invalid priority: {priority!r}") from e

    if isinstance(parent, PlanItem):
        creation = parent.creation_date
        expected = parent.expected_completion_date
    else:
        span = timedelta(days=ctx.config.default_task_duration_days)
        creation = as_instant(creation_date) if creation_date else ctx.now
        expected = as_instant(expected_completion_date) if expected_completion_date else creation + span
        if expected < creation:
            ctx.warn(f"New task '{name}': expected completion before creation, moved to creation + {span.days} days.")
            expected = creation + span
    if expected < creation:
        expected = creation

    siblings = parent.children
    item = ITEM_CLASSES[kind](
        parent_id=parent.id,
        name=name,
        priority=priority,
        creation_date=creation,
        expected_completion_date=expected,
        last_edited_date=ctx.now,
        order=len(siblings),
    )
    siblings.append(item)
    touch_path(path, ctx.now)
    log.debug(f"Added {kind.label.lower()} {item.id} under {parent_id} at order {item.order}")
    return item

def update_item(ctx: MutationContext, kind: ItemKind, item_id: str, updates: Mapping[str, Any]) -> PlanItem:
    """
    Apply a partial update to one item.

    Only keys present in updates are considered, and a key counts as changed
    only if its normalized value differs. Date changes are clamped into the
    item's bounds and cascaded to all descendants; any real change refreshes
    last_edited_date on the item and its Task/Subtask ancestors.
    """
    path = _resolve(ctx, kind, item_id, f"{kind.label} with ID {item_id} not found.")
    item = path[-1]
    parent = path[-2] if isinstance(path[-2], PlanItem) else None
    values = coerce_updates(kind, updates)
    now = ctx.now
    changed = False

    new_status = values.get('status')
    status_changing = new_status is not None and new_status != item.status
    if status_changing:
        verdict = ctx.status_policy(ctx.task_lists, item_id, new_status)
        if verdict is not True:
            raise OperationBlockedError(
                verdict if isinstance(verdict, str)
                else f"Status change of {item_id} to '{new_status.value}' is not allowed."
            )

    # History is captured before the new description lands
    if 'description' in values:
        old_text = item.description or ''
        new_text = values['description'] or ''
        if new_text != old_text:
            add_history_entry(item, item.last_edited_date, f"[EDIT] {old_text or '(empty)'}")
            item.description = new_text or None
            changed = True

    if status_changing:
        old_status = item.status
        item.status = new_status
        changed = True
        if ctx.config.record_status_history:
            add_history_entry(item, now, f"[STATUS] Status changed from '{old_status.value}' to '{new_status.value}'")
        if ctx.config.track_completion_dates:
            if new_status == Status.DONE:
                item.actual_completion_date = now
            elif old_status == Status.DONE:
                item.actual_completion_date = None

    if 'schedule' in values and _replace_schedule(item, values['schedule'], now):
        changed = True
    if 'reminder' in values and _replace_reminder(item, values['reminder'], now):
        changed = True

    if kind is ItemKind.ACTIVITY:
        if 'is_due' in values and values['is_due'] != item.is_due:
            if values['is_due']:
                item.due_count += 1
                add_history_entry(item, now, f"[DUE] Marked due (Count: {item.due_count}).")
                values.pop('due_count', None)
            item.is_due = values['is_due']
            changed = True
        if 'is_skipped' in values and values['is_skipped'] != item.is_skipped:
            if values['is_skipped']:
                add_history_entry(item, now, "[SKIP] Marked skipped.")
            item.is_skipped = values['is_skipped']
            changed = True

    for key in DATE_FIELDS:
        if key in values and not _same_instant(values[key], getattr(item, key)):
            setattr(item, key, values[key])
            changed = True

    for key, value in values.items():
        if key in _SPECIAL_FIELDS:
            continue
        if getattr(item, key) != value:
            setattr(item, key, value)
            changed = True

    bounds_touched = 'creation_date' in values or 'expected_completion_date' in values
    creation_moved = 'creation_date' in values and 'expected_completion_date' not in values
    if bounds_touched and clamp_dates(item, parent, ctx, creation_moved):
        changed = True

    if changed:
        touch_path(path, now)

    if bounds_touched:
        cascade_dates(item, ctx)

    if status_changing:
        ctx.status_propagation(ctx.task_lists, item_id)

    log.debug(f"Updated {kind.label.lower()} {item_id} (changed={changed})")
    return item

def delete_item(ctx: MutationContext, kind: ItemKind, item_id: str) -> bool:
    """Remove an item and renumber its surviving siblings. False if not found."""
    path = get_item_path(ctx.task_lists, item_id)
    if not path or path[-1].KIND is not kind:
        return False

    siblings = path[-2].children
    siblings[:] = [child for child in siblings if child.id != item_id]
    renumber(siblings)
    touch_path(path[:-1], ctx.now)
    log.debug(f"Deleted {kind.label.lower()} {item_id}")
    return True

def reorder_children(ctx: MutationContext, container_kind: ItemKind, container_id: str,
                     ordered_ids: Sequence[str]):
    """
    Reorder a container's children to match ordered_ids.

    ordered_ids must be a complete permutation of the current child ids.
    Containers with sequence_mandatory set refuse any reordering.
    """
    path = _resolve(ctx, container_kind, container_id,
                    f"{container_kind.label} with ID {container_id} not found.")
    container = path[-1]
    noun = CHILD_NOUNS[container_kind]

    if isinstance(container, ContainerItem) and container.sequence_mandatory:
        raise OperationBlockedError(
            f"Reordering {noun} for {container_kind.label.lower()} {container_id} "
            f"blocked due to sequence_mandatory flag."
        )

    children = container.children
    current_ids = [child.id for child in children]
    if len(ordered_ids) != len(set(ordered_ids)) or set(ordered_ids) != set(current_ids):
        raise InvalidUpdateError(
            f"Reorder of {noun} for {container_kind.label.lower()} {container_id} "
            f"must list each of its {len(current_ids)} {noun} exactly once."
        )

    if list(ordered_ids) == current_ids:
        return

    new_order = {child_id: index for index, child_id in enumerate(ordered_ids)}
    for child in children:
        child.order = new_order[child.id]
    children.sort(key=lambda child: child.order)
    touch_path(path, ctx.now)

def add_attachment(ctx: MutationContext, item_id: str, attachment: Attachment) -> Attachment:
    path = _resolve_plan_item(ctx, item_id, "add attachment")
    path[-1].attachments.append(attachment)
    touch_path(path, ctx.now)
    return attachment

def delete_attachment(ctx: MutationContext, item_id: str, attachment_id: str) -> bool:
    path = _resolve_plan_item(ctx, item_id, "delete attachment")
    item = path[-1]
    remaining = [att for att in item.attachments if att.id != attachment_id]
    if len(remaining) == len(item.attachments):
        return False
    item.attachments = remaining
    touch_path(path, ctx.now)
    return True

def set_auto_repeat(ctx: MutationContext, item_id: str, enabled: bool) -> PlanItem:
    """
    Toggle auto-repeat. Enabling it hands the item's schedule and reminder down
    to every descendant and turns auto-repeat on for them as well.
    """
    path = _resolve_plan_item(ctx, item_id, "toggle auto-repeat")
    item = path[-1]
    item.auto_repeat = enabled
    touch_path(path, ctx.now)

    if enabled:
        for descendant in iter_descendants(item):
            descendant.auto_repeat = True
            descendant.schedule = item.schedule.model_copy(deep=True)
            descendant.reminder = item.reminder.model_copy(deep=True)
            descendant.last_edited_date = ctx.now
    return item

def set_schedule(ctx: MutationContext, item_id: str, schedule: Schedule) -> PlanItem:
    path = _resolve_plan_item(ctx, item_id, "update schedule")
    item = path[-1]
    _replace_schedule(item, schedule, ctx.now)
    touch_path(path, ctx.now)

    if item.auto_repeat:
        for descendant in iter_descendants(item):
            descendant.schedule = schedule.model_copy(deep=True)
            descendant.last_edited_date = ctx.now
    return item

def set_reminder(ctx: MutationContext, item_id: str, reminder: Reminder) -> PlanItem:
    path = _resolve_plan_item(ctx, item_id, "update reminder")
    item = path[-1]
    _replace_reminder(item, reminder, ctx.now)
    touch_path(path, ctx.now)

    if item.auto_repeat:
        for descendant in iter_descendants(item):
            descendant.reminder = reminder.model_copy(deep=True)
            descendant.last_edited_date = ctx.now
    return item
