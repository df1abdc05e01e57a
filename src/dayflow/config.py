import os
from pydantic import BaseModel, Field

_TRUE_VALUES = ('1', 'true', 'yes')

def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name, '')
    if not raw:
        return default
    return raw.lower() in _TRUE_VALUES

class StoreConfig(BaseModel):
    """Behaviour switches for a TaskStore."""

    record_status_history: bool = Field(
        default=False,
        description="Append '[STATUS]' history entries on status changes (disabled by default)"
    )
    track_completion_dates: bool = Field(
        default=False,
        description="Stamp/clear actual_completion_date when status enters/leaves 'done' (disabled by default)"
    )
    default_task_duration_days: int = Field(default=7, ge=0, description="Span of a new task without explicit dates")
    today_window_days: int = Field(default=7, ge=0, description="Items due within this many days show up in Today")
    default_list_name: str = Field(default="Project", description="Name of the list created for an empty store")

    @classmethod
    def from_env(cls) -> 'StoreConfig':
        """Build a config from DAYFLOW_* environment variables, falling back to defaults."""
        defaults = cls()
        return cls(
            record_status_history=_env_flag('DAYFLOW_RECORD_STATUS_HISTORY', defaults.record_status_history),
            track_completion_dates=_env_flag('DAYFLOW_TRACK_COMPLETION_DATES', defaults.track_completion_dates),
            default_task_duration_days=int(os.getenv('DAYFLOW_DEFAULT_TASK_DURATION_DAYS', defaults.default_task_duration_days)),
            today_window_days=int(os.getenv('DAYFLOW_TODAY_WINDOW_DAYS', defaults.today_window_days)),
            default_list_name=os.getenv('DAYFLOW_DEFAULT_LIST_NAME', defaults.default_list_name),
        )
