"""Unit tests for DataCore class."""

import pytest
import tempfile
import yaml
import json
from pathlib import Path
from unittest.mock import patch

from dayflow.data import DataCore
from dayflow.data.io import DATA_JSON, DATA_YAML, atomic_write, load_yaml_file
from dayflow.data.validate import check_schema_version, validate_board_data
from dayflow.models import TaskBoard, TaskList
from dayflow.recovery import CorruptionError, FatalError, FileOperationError, MigrationNeededError
from dayflow.store import TaskStore
from dayflow.version import APP_SCHEMA_VERSION

from conftest import FakeClock


def sample_board():
    store = TaskStore(clock=FakeClock())
    task = store.add_task("default-list", "Write report", priority="high")
    sub = store.add_subtask(task.id, "Outline")
    store.add_activity(sub.id, "Draft headings")
    store.update_task(task.id, {"description": "Quarterly"})
    return store.to_board()


class TestBoardFiles:
    """Test saving and loading boards."""

    def test_yaml_round_trip(self):
        """Test that a saved YAML board loads back identically."""
        board = sample_board()
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "nested" / "board.yml"
            DataCore.save_board(board, path)
            loaded = DataCore.load_board(path)

        assert loaded.model_dump() == board.model_dump()

    def test_json_round_trip(self):
        """Test that a .json path is written as JSON."""
        board = sample_board()
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "board.json"
            DataCore.save_board(board, path)
            raw = json.loads(path.read_text(encoding='utf-8'))
            loaded = DataCore.load_board(path)

        assert raw["schema_version"] == APP_SCHEMA_VERSION
        assert loaded.model_dump() == board.model_dump()

    def test_missing_file(self):
        """Test that a missing board loads as None."""
        with tempfile.TemporaryDirectory() as temp_dir:
            assert DataCore.load_board(Path(temp_dir) / "none.yml") is None

    def test_schema_violation(self):
        """Test that invalid board data is reported as corruption."""
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "board.yml"
            path.write_text(yaml.safe_dump({
                "schema_version": APP_SCHEMA_VERSION,
                "task_lists": [{"id": "l1", "name": "Work", "tasks": [{"name": "no dates"}]}],
            }))
            with pytest.raises(CorruptionError):
                DataCore.load_board(path)

    def test_yaml_syntax_error(self):
        """Test that unparsable files are reported as corruption."""
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "board.yml"
            path.write_text("task_lists: [unclosed")
            with pytest.raises(CorruptionError):
                DataCore.load_board(path)

    def test_older_schema(self):
        """Test that boards from older schemas ask for a migration."""
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "board.yml"
            path.write_text(yaml.safe_dump({"schema_version": "0.1.0", "task_lists": []}))
            with pytest.raises(MigrationNeededError):
                DataCore.load_board(path)


class TestContext:
    """Test the DayflowContext context manager."""

    def test_saves_on_exit(self):
        """Test that changes made inside the block are persisted."""
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "board.yml"
            with DataCore.get_context(path) as context:
                assert context.is_new
                context.store.add_task_list("Errands")

            board = DataCore.load_board(path)
            assert [tl.name for tl in board.task_lists] == ["Project", "Errands"]

            with DataCore.get_context(path) as context:
                assert not context.is_new
                assert len(context.store.task_lists) == 2

    def test_no_save_on_error(self):
        """Test that a failing block leaves the file untouched."""
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "board.yml"
            with pytest.raises(RuntimeError):
                with DataCore.get_context(path) as context:
                    context.store.add_task_list("Errands")
                    raise RuntimeError("boom")
            assert not path.exists()


class TestBoardPath:
    """Test board path resolution."""

    def test_explicit_path_wins(self, monkeypatch):
        """Test precedence of explicit path over the environment."""
        monkeypatch.setenv("DAYFLOW_BOARD", "/tmp/env-board.yml")
        assert DataCore.board_path("/tmp/mine.yml") == Path("/tmp/mine.yml")
        assert DataCore.board_path() == Path("/tmp/env-board.yml")

    def test_data_dir(self, monkeypatch):
        """Test the data directory override."""
        monkeypatch.delenv("DAYFLOW_BOARD", raising=False)
        monkeypatch.setenv("DAYFLOW_DATA_DIR", "/tmp/dayflow-data")
        assert DataCore.board_path() == Path("/tmp/dayflow-data") / DataCore.BOARD_FILE

        monkeypatch.delenv("DAYFLOW_DATA_DIR")
        assert DataCore.board_path() == DataCore.DATA_DIR / DataCore.BOARD_FILE


class TestAtomicWrite:
    """Test atomic file writes."""

    def test_no_temp_files_left(self):
        """Test that only the target remains after a write."""
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "data.yml"
            atomic_write(DATA_YAML, path, {"a": 1})
            atomic_write(DATA_YAML, path, {"a": 2})
            assert [p.name for p in Path(temp_dir).iterdir()] == ["data.yml"]
            assert load_yaml_file(path) == {"a": 2}

    def test_unserializable_data(self):
        """Test that bad data is fatal and leaves the old file in place."""
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "data.json"
            atomic_write(DATA_JSON, path, {"a": 1})
            with pytest.raises(FatalError):
                atomic_write(DATA_JSON, path, {"a": object()})
            assert json.loads(path.read_text()) == {"a": 1}
            assert [p.name for p in Path(temp_dir).iterdir()] == ["data.json"]

    def test_io_error(self):
        """Test that I/O failures are recoverable errors."""
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "data.yml"
            with patch("dayflow.data.io.os.replace", side_effect=OSError("disk full")):
                with pytest.raises(FileOperationError):
                    atomic_write(DATA_YAML, path, {"a": 1})
            assert list(Path(temp_dir).iterdir()) == []


class TestValidate:
    """Test schema and version checks."""

    def test_valid_board(self):
        """Test that a dumped board validates cleanly."""
        assert validate_board_data(sample_board().model_dump(mode="json")) == []

    def test_errors_listed(self):
        """Test that each violation is reported with its location."""
        errors = validate_board_data({"task_lists": [{"id": "l1"}]})
        assert len(errors) == 1
        assert errors[0].startswith("task_lists/0")

    def test_versions(self):
        """Test version comparison."""
        check_schema_version(APP_SCHEMA_VERSION)
        with pytest.raises(MigrationNeededError):
            check_schema_version("0.0.1")
        with pytest.raises(CorruptionError):
            check_schema_version("99.0.0")
        with pytest.raises(CorruptionError):
            check_schema_version("not-a-version")
        with pytest.raises(CorruptionError):
            check_schema_version(None)
