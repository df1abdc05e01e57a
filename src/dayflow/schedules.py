"""Auto-repeat schedule helpers: inherited rules, active time slots and date locks."""

from datetime import datetime, time
from typing import Optional, Sequence, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .hierarchy import get_item_path
from .models import PlanItem, Schedule, TaskList, utcnow
from .logs import get_logger

log = get_logger("schedules")

DAILY = "daily"

def get_active_schedule_rule(task_lists: Sequence[TaskList], item_id: str) -> Optional[Schedule]:
    """The nearest schedule with a recurrence rule, looking at the item first and then its ancestors."""
    for node in reversed(get_item_path(task_lists, item_id)):
        if isinstance(node, PlanItem) and node.schedule.recurrence_rule:
            return node.schedule
    return None

def parse_time_slot(slot: str) -> Optional[Tuple[time, time]]:
    """Parse 'HH:MM-HH:MM'. Returns None for anything malformed."""
    try:
        start_text, end_text = slot.split("-")
        start = time.fromisoformat(start_text.strip())
        end = time.fromisoformat(end_text.strip())
    except ValueError:
        log.debug(f"Ignoring malformed time slot '{slot}'")
        return None
    return start, end

def _localize(now: datetime, time_zone: str) -> datetime:
    if not time_zone:
        return now.astimezone()
    try:
        return now.astimezone(ZoneInfo(time_zone))
    except (ZoneInfoNotFoundError, ValueError):
        log.warning(f"Unknown time zone '{time_zone}', using local time")
        return now.astimezone()

def is_item_active(task_lists: Sequence[TaskList], item_id: str, now: Optional[datetime] = None) -> bool:
    """
    Whether an item is active at `now` under its (possibly inherited) schedule.

    Items without any schedule are always active. A 'daily' rule without time
    slots is active all day; with slots, only inside one of them (both ends
    inclusive). Other rules are not interpreted and count as inactive.
    """
    if not get_item_path(task_lists, item_id):
        return False

    schedule = get_active_schedule_rule(task_lists, item_id)
    if schedule is None:
        return True

    if schedule.recurrence_rule.strip().lower() != DAILY:
        return False
    if not schedule.specific_times:
        return True

    clock = _localize(now or utcnow(), schedule.time_zone).time().replace(tzinfo=None)
    for slot in schedule.specific_times:
        parsed = parse_time_slot(slot)
        if parsed and parsed[0] <= clock <= parsed[1]:
            return True
    return False

def are_date_fields_locked(task_lists: Sequence[TaskList], item_id: str) -> bool:
    """Dates are locked when any ancestor repeats automatically."""
    path = get_item_path(task_lists, item_id)
    return any(isinstance(node, PlanItem) and node.auto_repeat for node in path[:-1])
