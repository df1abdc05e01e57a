"""
Schema checks for stored boards.

The JSON schema is generated from the TaskBoard model, so the schema on disk
can never drift from the code that reads it.
"""

import json
from datetime import date, datetime
from functools import lru_cache
from typing import Any, Dict, List, Optional

from jsonschema import Draft202012Validator, SchemaError
from packaging.version import InvalidVersion, Version

from dayflow.logs import get_logger
from dayflow.models import TaskBoard
from dayflow.recovery import CorruptionError, FatalError, MigrationNeededError
from dayflow.version import APP_SCHEMA_VERSION

log = get_logger("data.validate")

@lru_cache(maxsize=1)
def board_schema() -> Dict[str, Any]:
    schema = TaskBoard.model_json_schema()
    try:
        Draft202012Validator.check_schema(schema)
    except SchemaError as e:
        raise FatalError(f"Generated board schema is invalid: {e.message}") from e
    return schema

def _jsonable(data: Any) -> Any:
    # yaml.safe_load turns ISO timestamps into datetime objects
    def default(value):
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
    return json.loads(json.dumps(data, default=default))

def validate_board_data(data: Dict[str, Any]) -> List[str]:
    """
    Validate raw board data against the board schema.

    Returns:
        A list of human readable error messages; empty when the data is valid
    """
    validator = Draft202012Validator(board_schema())
    errors = []
    for error in sorted(validator.iter_errors(_jsonable(data)), key=lambda err: list(err.path)):
        location = "/".join(str(part) for part in error.path) or "<root>"
        errors.append(f"{location}: {error.message}")
    if errors:
        log.error(f"Board data FAILED validation with {len(errors)} error(s)")
    else:
        log.debug("Board data is valid")
    return errors

def check_schema_version(found: Optional[str], expected: str = APP_SCHEMA_VERSION) -> None:
    """
    Compare a stored schema version against the one this build writes.

    Raises:
        MigrationNeededError: the data was written by an older schema
        CorruptionError: the version is missing, malformed or newer than this build
    """
    if not found:
        raise CorruptionError("Board data carries no schema_version")
    try:
        stored = Version(found)
    except InvalidVersion as e:
        raise CorruptionError(f"Board data has an invalid schema_version '{found}'") from e

    current = Version(expected)
    log.info(f"BOARD: {stored}; APP: {current};")
    if stored < current:
        raise MigrationNeededError(f"Board data uses schema {stored}, this version expects {current}; migrate data")
    if stored > current:
        raise CorruptionError(f"Board data uses schema {stored}, which is newer than this version ({current})")
