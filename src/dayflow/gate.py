"""
Serial-completion gate and the status-change extension points.

can_start_item is advisory and recomputed on every call; nothing is cached.
The status policy and status propagation hooks are injectable into a TaskStore.
Their defaults are deliberately permissive / inert.
"""

from typing import Callable, List, Sequence, Union

from .hierarchy import find_item
from .models import ContainerItem, ItemKind, Status, TaskList
from .logs import get_logger

log = get_logger("gate")

StatusVerdict = Union[bool, str]
StatusPolicy = Callable[[Sequence[TaskList], str, Status], StatusVerdict]
StatusPropagation = Callable[[List[TaskList], str], None]

def can_start_item(task_lists: Sequence[TaskList], item_id: str) -> bool:
    """
    Whether an item may be started right now.

    Only Task->Subtask and Subtask->Activity are gated. When the parent has
    serial_completion_mandatory set, every sibling with a lower order must be
    done. Lists and top-level tasks are always startable; unknown ids are not.
    """
    located = find_item(task_lists, item_id)
    if located is None:
        return False

    if located.kind in (ItemKind.TASK_LIST, ItemKind.TASK):
        return True

    parent = located.parent
    if not isinstance(parent, ContainerItem):
        log.warning(f"can_start_item: could not determine context for item {item_id}")
        return True

    if not parent.serial_completion_mandatory:
        return True

    item = located.item
    for sibling in parent.children:
        if sibling.id == item.id:
            continue
        if sibling.order < item.order and sibling.status != Status.DONE:
            log.debug(f"{item_id} blocked by unfinished sibling {sibling.id} (order {sibling.order})")
            return False
    return True

def allow_any_status_change(task_lists: Sequence[TaskList], item_id: str, new_status: Status) -> StatusVerdict:
    """Default status policy: every transition is allowed."""
    return True

def require_serial_order(task_lists: Sequence[TaskList], item_id: str, new_status: Status) -> StatusVerdict:
    """Opt-in status policy: leaving 'todo' requires the serial-completion gate to be open."""
    if new_status == Status.TODO or can_start_item(task_lists, item_id):
        return True
    return f"Item {item_id} cannot move to '{new_status.value}' before its preceding siblings are done."

def no_status_propagation(task_lists: List[TaskList], item_id: str) -> None:
    """Default propagation hook: parent statuses are never derived from children."""
    return None
