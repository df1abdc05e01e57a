"""Export and import of task lists as JSON, CSV and a plain text outline."""

import csv
import io
from datetime import datetime
from typing import List, Optional, Sequence

from pydantic import ValidationError

from .hierarchy import iter_item_paths
from .models import Activity, ItemKind, PlanItem, TaskBoard, TaskList, utcnow
from .recovery import CorruptionError
from .logs import get_logger

log = get_logger("export")

CSV_COLUMNS = [
    "item_id", "parent_id", "item_type", "list_name", "task_name", "subtask_name", "activity_name",
    "description", "priority", "status", "creation_date", "expected_completion_date",
    "actual_completion_date", "last_edited_date", "order", "serial_completion_mandatory",
    "sequence_mandatory", "dependencies", "attachments",
]

def export_json(task_lists: Sequence[TaskList], indent: int = 2) -> str:
    """Serialize lists as a versioned board document."""
    return TaskBoard(task_lists=list(task_lists)).model_dump_json(indent=indent)

def import_json(text: str) -> List[TaskList]:
    try:
        board = TaskBoard.model_validate_json(text)
    except ValidationError as e:
        raise CorruptionError(f"Imported JSON is not a valid board: {e.error_count()} error(s)") from e
    return board.task_lists

def _iso(value: Optional[datetime]) -> str:
    return value.isoformat() if value else ""

def _csv_row(path) -> List[str]:
    item: PlanItem = path[-1]
    names = {node.KIND: node.name for node in path}
    serial = getattr(item, 'serial_completion_mandatory', "")
    sequence = getattr(item, 'sequence_mandatory', "")
    return [
        item.id,
        item.parent_id,
        item.KIND.value,
        path[0].name,
        names.get(ItemKind.TASK, ""),
        names.get(ItemKind.SUBTASK, ""),
        names.get(ItemKind.ACTIVITY, ""),
        item.description or "",
        item.priority.value,
        item.status.value,
        _iso(item.creation_date),
        _iso(item.expected_completion_date),
        _iso(item.actual_completion_date),
        _iso(item.last_edited_date),
        str(item.order),
        str(serial).lower(),
        str(sequence).lower(),
        ";".join(getattr(item, 'dependencies', [])),
        ";".join(att.name for att in item.attachments),
    ]

def export_csv(task_lists: Sequence[TaskList]) -> str:
    """One row per task, subtask and activity, in hierarchy order."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for path in iter_item_paths(task_lists):
        writer.writerow(_csv_row(path))
    return buffer.getvalue()

def export_plain_text(task_lists: Sequence[TaskList], now: Optional[datetime] = None) -> str:
    lines = ["DayFlow Export", f"Generated: {(now or utcnow()).isoformat()}", ""]
    for task_list in task_lists:
        lines.append(f"List: {task_list.name}")
        for path in iter_item_paths([task_list]):
            item = path[-1]
            indent = "  " * (len(path) - 1)
            due = item.expected_completion_date.date().isoformat()
            lines.append(f"{indent}- [{item.status.value}] {item.name} ({item.priority.value}, due {due})")
            if item.description:
                lines.append(f"{indent}    {item.description}")
            if isinstance(item, Activity) and item.notes:
                lines.append(f"{indent}    Notes: {item.notes}")
            for entry in item.description_history:
                lines.append(f"{indent}    {entry.timestamp.isoformat()} {entry.content}")
        lines.append("")
    log.debug(f"Exported {len(task_lists)} list(s) as plain text")
    return "\n".join(lines)
