"""Unit tests for the Today selector."""

from datetime import timedelta

from dayflow.config import StoreConfig
from dayflow.models import Activity, ItemKind, Priority, Status, Subtask, Task, TaskList
from dayflow.store import TaskStore
from dayflow.today import select_today_items, urgency_score

from conftest import T0, day


def make_task(name, expected, priority=Priority.MEDIUM, status=Status.TODO, subtasks=None):
    return Task(id=name, parent_id="l1", name=name, creation_date=day(-10), expected_completion_date=expected,
                priority=priority, status=status, subtasks=subtasks or [])


class TestUrgencyScore:
    """Test the score formula."""

    def test_components(self):
        """Test priority, status and days weights."""
        assert urgency_score(Priority.HIGH, Status.TODO, 2, False) == 38
        assert urgency_score(Priority.MEDIUM, Status.INPROGRESS, -1, True) == 51
        assert urgency_score(Priority.LOW, Status.STARTED, 0, False) == 25


class TestSelectTodayItems:
    """Test selection, ordering and breadcrumbs."""

    def test_filters(self):
        """Test that done, low priority and far-off items are left out."""
        lists = [TaskList(id="l1", name="Work", tasks=[
            make_task("soon", day(2), Priority.HIGH),
            make_task("low", day(1), Priority.LOW),
            make_task("done", day(1), status=Status.DONE),
            make_task("far", day(10)),
            make_task("edge", day(7)),
        ])]
        rows = select_today_items(lists, T0)
        assert sorted(row.id for row in rows) == ["edge", "soon"]

    def test_low_priority_never_selected(self):
        """Test that a low priority item stays out however overdue it is."""
        lists = [TaskList(id="l1", name="Work", tasks=[
            make_task("ancient", day(-20), Priority.LOW, status=Status.INPROGRESS),
            make_task("recent", day(-1)),
        ])]
        assert [row.id for row in select_today_items(lists, T0)] == ["recent"]

    def test_rows_hold_copies(self, store):
        """Test that changing a row's item leaves the store alone."""
        store.add_task("default-list", "A")
        row = store.get_today_items()[0]
        row.item.name = "mutated"
        assert store.task_lists[0].tasks[0].name == "A"

    def test_overdue_first(self):
        """Test ranking by urgency, highest first."""
        lists = [TaskList(id="l1", name="Work", tasks=[
            make_task("soon", day(2), Priority.HIGH),
            make_task("late", day(-1), status=Status.INPROGRESS),
        ])]
        rows = select_today_items(lists, T0)
        assert [(row.id, row.urgency_score) for row in rows] == [("late", 51), ("soon", 38)]
        assert rows[0].is_overdue
        assert rows[0].days_until_due == -1
        assert not rows[1].is_overdue

    def test_days_rounded_down(self):
        """Test that partial days round toward the past."""
        lists = [TaskList(id="l1", name="Work", tasks=[
            make_task("later", day(1, hours=12)),
            make_task("just_late", T0 - timedelta(hours=12)),
        ])]
        rows = {row.id: row for row in select_today_items(lists, T0)}
        assert rows["later"].days_until_due == 1
        assert rows["just_late"].days_until_due == -1
        assert rows["just_late"].is_overdue

    def test_stable_ties(self):
        """Test that equal scores keep hierarchy order."""
        lists = [
            TaskList(id="l1", name="A", tasks=[make_task("a1", day(3)), make_task("a2", day(3))]),
            TaskList(id="l2", name="B", tasks=[make_task("b1", day(3))]),
        ]
        assert [row.id for row in select_today_items(lists, T0)] == ["a1", "a2", "b1"]

    def test_breadcrumbs(self):
        """Test parent ids and names for each level."""
        activity = Activity(id="act", parent_id="sub", name="Stretch", creation_date=day(-1),
                            expected_completion_date=day(1))
        subtask = Subtask(id="sub", parent_id="task", name="Warm up", creation_date=day(-1),
                          expected_completion_date=day(1), activities=[activity])
        task = make_task("task", day(1), subtasks=[subtask])
        lists = [TaskList(id="l1", name="Health", tasks=[task])]

        rows = {row.id: row for row in select_today_items(lists, T0)}
        act = rows["act"]
        assert act.kind is ItemKind.ACTIVITY
        assert (act.parent_id, act.grandparent_id) == ("sub", "task")
        assert (act.list_name, act.task_name, act.subtask_name) == ("Health", "task", "Warm up")

        sub = rows["sub"]
        assert (sub.parent_id, sub.grandparent_id) == ("task", "l1")
        assert sub.subtask_name is None

        top = rows["task"]
        assert (top.parent_id, top.grandparent_id) == ("l1", None)
        assert top.task_name is None
        assert top.item.id == "task"

    def test_children_judged_on_their_own(self):
        """Test that a low priority task does not hide its medium subtasks."""
        subtask = Subtask(id="sub", parent_id="task", name="S", creation_date=day(-1),
                          expected_completion_date=day(1))
        lists = [TaskList(id="l1", name="Work", tasks=[
            make_task("task", day(1), Priority.LOW, subtasks=[subtask]),
        ])]
        assert [row.id for row in select_today_items(lists, T0)] == ["sub"]


class TestStoreToday:
    """Test the store wrapper."""

    def test_window_from_config(self, clock):
        """Test that the configured window is applied."""
        store = TaskStore(clock=clock, config=StoreConfig(today_window_days=3))
        store.add_task("default-list", "week")  # due in 7 days
        store.add_task("default-list", "short", expected_completion_date=day(2))
        assert [row.name for row in store.get_today_items()] == ["short"]

    def test_explicit_now(self, store):
        """Test evaluating Today at another instant."""
        store.add_task("default-list", "A")
        assert store.get_today_items(now=day(-30)) == []
        assert store.get_today_items(now=day(8))[0].is_overdue
