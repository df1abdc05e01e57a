"""
Today selector: a flat, urgency-ranked view over every list.

An item is selected when it is not done, its priority is high or medium, and
it is overdue or due within the window (seven days by default).
"""

import math
from datetime import datetime
from typing import List, Optional, Sequence, Union

from pydantic import BaseModel, Field

from .hierarchy import iter_item_paths
from .models import Activity, ItemKind, Priority, Status, Subtask, Task, TaskList

SECONDS_PER_DAY = 86400
OVERDUE_BONUS = 10

PRIORITY_WEIGHTS = {Priority.HIGH: 3, Priority.MEDIUM: 2, Priority.LOW: 1}
STATUS_WEIGHTS = {Status.INPROGRESS: 4, Status.STARTED: 3, Status.TODO: 2, Status.DONE: 0}

class TodayItem(BaseModel):
    """One row of the Today view with its breadcrumbs and urgency figures."""

    id: str
    kind: ItemKind
    name: str
    priority: Priority
    status: Status
    is_overdue: bool
    days_until_due: int = Field(description="Whole days until expected completion, rounded down")
    urgency_score: int
    parent_id: Optional[str] = None
    grandparent_id: Optional[str] = None
    list_name: Optional[str] = None
    task_name: Optional[str] = None
    subtask_name: Optional[str] = None
    item: Union[Task, Subtask, Activity] = Field(description="The selected item itself")

def days_until(expected: datetime, now: datetime) -> int:
    return math.floor((expected - now).total_seconds() / SECONDS_PER_DAY)

def urgency_score(priority: Priority, status: Status, days_until_due: int, is_overdue: bool) -> int:
    score = PRIORITY_WEIGHTS[priority] * 10 + STATUS_WEIGHTS[status] * 5 - days_until_due
    if is_overdue:
        score += OVERDUE_BONUS
    return score

def select_today_items(task_lists: Sequence[TaskList], now: datetime, window_days: int = 7) -> List[TodayItem]:
    """
    Flatten the hierarchy into Today candidates sorted by urgency, highest first.

    Ties keep hierarchy order: lists in array order, then pre-order within each.
    """
    selected = []
    for path in iter_item_paths(task_lists):
        item = path[-1]
        if item.status == Status.DONE or item.priority == Priority.LOW:
            continue

        is_overdue = item.expected_completion_date < now
        remaining = days_until(item.expected_completion_date, now)
        if not is_overdue and remaining > window_days:
            continue

        task = next((node for node in path if node.KIND is ItemKind.TASK), None)
        subtask = next((node for node in path if node.KIND is ItemKind.SUBTASK), None)
        selected.append(TodayItem(
            id=item.id,
            kind=item.KIND,
            name=item.name,
            priority=item.priority,
            status=item.status,
            is_overdue=is_overdue,
            days_until_due=remaining,
            urgency_score=urgency_score(item.priority, item.status, remaining, is_overdue),
            parent_id=path[-2].id,
            grandparent_id=path[-3].id if len(path) >= 3 else None,
            list_name=path[0].name,
            task_name=task.name if task is not None and task is not item else None,
            subtask_name=subtask.name if subtask is not None and subtask is not item else None,
            item=item.model_copy(deep=True),
        ))

    # sorted() is stable, so equal scores keep hierarchy order
    return sorted(selected, key=lambda row: row.urgency_score, reverse=True)
