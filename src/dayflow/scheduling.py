"""
Schedule suggestion adapter.

Builds a scheduling request for one task list, hands it to an external
suggester (any callable, typically an AI model client), validates what comes
back and applies the suggested dates through the store's normal update path,
so every clamp and cascade rule still holds.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .models import ItemKind, Priority, TaskList, as_instant
from .recovery import ScheduleSuggestionError
from .logs import get_logger

log = get_logger("scheduling")

class SubtaskScheduleInput(BaseModel):
    id: str
    name: str
    priority: Priority
    deadline: Optional[str] = Field(default=None, description="ISO 8601 expected completion")
    dependencies: List[str] = Field(default_factory=list)
    estimated_time: int = Field(description="Rough effort in abstract units")
    description: Optional[str] = None

class TaskScheduleInput(SubtaskScheduleInput):
    subtasks: List[SubtaskScheduleInput] = Field(default_factory=list)

class ScheduleRequest(BaseModel):
    tasks: List[TaskScheduleInput] = Field(default_factory=list)
    user_context: Optional[str] = None

class ScheduleSuggestion(BaseModel):
    """One suggested date range. Accepts both snake_case and camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)

    item_id: str = Field(validation_alias=AliasChoices('item_id', 'itemId'))
    creation_date: datetime = Field(validation_alias=AliasChoices('creation_date', 'creationDate'))
    expected_completion_date: datetime = Field(
        validation_alias=AliasChoices('expected_completion_date', 'expectedCompletionDate')
    )

    @field_validator('creation_date', 'expected_completion_date')
    @classmethod
    def normalize_dates(cls, v):
        return as_instant(v)

    @model_validator(mode='after')
    def validate_range(self):
        if self.expected_completion_date < self.creation_date:
            log.warning(f"Suggestion for {self.item_id}: completion before creation, using creation date.")
            self.expected_completion_date = self.creation_date
        return self

class ScheduleResponse(BaseModel):
    schedule: List[ScheduleSuggestion] = Field(default_factory=list)

class ScheduleApplyResult(BaseModel):
    applied: List[str] = Field(default_factory=list, description="Ids whose dates were updated")
    skipped: List[str] = Field(default_factory=list, description="Ids that matched no task, subtask or activity")
    failed: Dict[str, str] = Field(default_factory=dict, description="Ids rejected by the store, with the reason")

class ScheduleOutcome(BaseModel):
    success: bool
    message: str
    result: Optional[ScheduleApplyResult] = None

ScheduleSuggester = Callable[[ScheduleRequest], Union[str, bytes, Mapping[str, Any]]]

def build_schedule_request(task_list: TaskList, now: datetime, user_context: Optional[str] = None) -> ScheduleRequest:
    """Describe every task of a list, with effort estimated from the size of its subtree."""
    tasks = []
    for task in task_list.tasks:
        subtasks = [
            SubtaskScheduleInput(
                id=subtask.id,
                name=subtask.name,
                priority=subtask.priority,
                deadline=subtask.expected_completion_date.isoformat(),
                dependencies=list(subtask.dependencies),
                estimated_time=1 + len(subtask.activities),
                description=subtask.description,
            )
            for subtask in task.subtasks
        ]
        tasks.append(TaskScheduleInput(
            id=task.id,
            name=task.name,
            priority=task.priority,
            deadline=task.expected_completion_date.isoformat(),
            dependencies=list(task.dependencies),
            estimated_time=1 + sum(sub.estimated_time for sub in subtasks),
            description=task.description,
            subtasks=subtasks,
        ))

    if user_context is None:
        user_context = f'Scheduling tasks for the list "{task_list.name}". Current date: {as_instant(now).isoformat()}'
    return ScheduleRequest(tasks=tasks, user_context=user_context)

def parse_schedule_suggestions(payload: Union[str, bytes, Mapping[str, Any]]) -> List[ScheduleSuggestion]:
    """Validate a suggester's answer, given as JSON text or already-decoded data."""
    try:
        if isinstance(payload, (str, bytes)):
            response = ScheduleResponse.model_validate_json(payload)
        else:
            response = ScheduleResponse.model_validate(payload)
    except ValidationError as e:
        raise ScheduleSuggestionError(
            f"Schedule suggestion is invalid ({e.error_count()} error(s)): {e.errors()[0]['msg']}"
        ) from e
    return response.schedule

def apply_schedule_suggestions(store, suggestions: List[ScheduleSuggestion]) -> ScheduleApplyResult:
    """Push each suggestion through store.update_item; unknown ids are skipped."""
    result = ScheduleApplyResult()
    for suggestion in suggestions:
        located = store.find_item(suggestion.item_id)
        if located is None or located.kind is ItemKind.TASK_LIST:
            log.warning(f"Schedule suggested for unknown item ID: {suggestion.item_id}")
            result.skipped.append(suggestion.item_id)
            continue

        outcome = store.update_item(suggestion.item_id, {
            'creation_date': suggestion.creation_date,
            'expected_completion_date': suggestion.expected_completion_date,
        })
        if outcome is True:
            result.applied.append(suggestion.item_id)
        else:
            result.failed[suggestion.item_id] = outcome
    return result

class ScheduleAssistant:
    """Runs one suggest-and-apply round for a list against a TaskStore."""

    def __init__(self, store, suggester: ScheduleSuggester):
        self.store = store
        self.suggester = suggester

    def suggest_for_list(self, list_id: str, user_context: Optional[str] = None) -> ScheduleOutcome:
        task_list = next((tl for tl in self.store.task_lists if tl.id == list_id), None)
        if task_list is None:
            return ScheduleOutcome(success=False, message=f"Task list with ID {list_id} not found.")

        request = build_schedule_request(task_list, self.store.now(), user_context)
        if not request.tasks:
            return ScheduleOutcome(success=False, message=f"Task list '{task_list.name}' has no tasks to schedule.")

        log.info(f"Requesting schedule for {len(request.tasks)} task(s) of list '{task_list.name}'")
        try:
            payload = self.suggester(request)
            suggestions = parse_schedule_suggestions(payload)
        except ScheduleSuggestionError as e:
            log.error(str(e))
            return ScheduleOutcome(success=False, message=str(e))
        except Exception as e:
            log.error(f"Schedule suggester failed: {e}")
            return ScheduleOutcome(success=False, message=f"Failed to get a schedule suggestion: {e}")

        if not suggestions:
            return ScheduleOutcome(success=False, message="No schedule could be generated for this list.")

        result = apply_schedule_suggestions(self.store, suggestions)
        log.info(f"Applied {len(result.applied)} suggestion(s), skipped {len(result.skipped)}, failed {len(result.failed)}")
        return ScheduleOutcome(
            success=True,
            message=f"Schedule applied to {len(result.applied)} item(s).",
            result=result,
        )
