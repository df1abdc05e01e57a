"""
DataCore - loading and saving DayFlow boards.

A board file (YAML by default, JSON when the path ends in .json) holds every
task list plus the schema version it was written with. Loading validates the
raw data against the board schema and the version before any model is built.
"""
import os
from pathlib import Path
from typing import Optional, Union

from dayflow.config import StoreConfig
from dayflow.logs import get_logger
from dayflow.models import TaskBoard
from dayflow.recovery import CorruptionError
from dayflow.store import TaskStore
from .io import atomic_write, data_type_for, load_data_file
from .validate import check_schema_version, validate_board_data

log = get_logger("data")

class DayflowContext:
    """Context object holding a TaskStore bound to a board file."""

    def __init__(self, path: Path, config: Optional[StoreConfig] = None):
        self.path = path
        board = DataCore.load_board(path)
        self.is_new = board is None
        if board is None:
            log.info(f"No board at {path}, starting with an empty store")
            self.store = TaskStore(config=config)
        else:
            self.store = TaskStore.from_board(board, config=config)

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - save changes unless the block failed."""
        if exc_type is None:
            self.save()

    def save(self):
        DataCore.save_board(self.store.to_board(), self.path)

class DataCore:
    DATA_DIR = Path.home() / ".local" / "share" / "dayflow" / "data"
    BOARD_FILE = "board.yml"

    @classmethod
    def board_path(cls, path: Union[Path, str, None] = None) -> Path:
        """Explicit path, else $DAYFLOW_BOARD, else the board file in $DAYFLOW_DATA_DIR or DATA_DIR."""
        if path:
            return Path(path)
        if os.getenv("DAYFLOW_BOARD"):
            return Path(os.environ["DAYFLOW_BOARD"])
        data_dir = Path(os.getenv("DAYFLOW_DATA_DIR", "") or cls.DATA_DIR)
        return data_dir / cls.BOARD_FILE

    @classmethod
    def load_board(cls, path: Union[Path, str, None] = None) -> Optional[TaskBoard]:
        """
        Load and validate a board.

        Returns:
            The board, or None if the file does not exist

        Raises:
            CorruptionError: the file is unreadable as a board
            MigrationNeededError: the board was written by an older schema
        """
        path = cls.board_path(path)
        data = load_data_file(path)
        if data is None:
            return None

        errors = validate_board_data(data)
        if errors:
            for error in errors:
                log.error(f"{path}: {error}")
            raise CorruptionError(f"Board file {path} failed validation: {errors[0]}")

        check_schema_version(data.get("schema_version"))
        board = TaskBoard.model_validate(data)
        log.info(f"Loaded {len(board.task_lists)} task list(s) from {path}")
        return board

    @classmethod
    def save_board(cls, board: TaskBoard, path: Union[Path, str, None] = None):
        path = cls.board_path(path)
        atomic_write(data_type_for(path), path, board.model_dump(mode="json"), create_dirs=True)
        log.info(f"Saved {len(board.task_lists)} task list(s) to {path}")

    @classmethod
    def get_context(cls, path: Union[Path, str, None] = None, config: Optional[StoreConfig] = None) -> DayflowContext:
        return DayflowContext(cls.board_path(path), config=config)
