"""Unit tests for schedule helpers."""

from datetime import datetime, time

from dayflow.schedules import (
    are_date_fields_locked, get_active_schedule_rule, is_item_active, parse_time_slot,
)


def local(hour, minute=0):
    return datetime(2024, 1, 1, hour, minute).astimezone()


class TestActiveScheduleRule:
    """Test schedule inheritance."""

    def test_inherited_from_task(self, store, tree):
        """Test that the nearest ancestor's rule applies."""
        store.set_schedule(tree["task"].id, {"recurrence_rule": "daily"})
        rule = get_active_schedule_rule(store.task_lists, tree["activities"][0].id)
        assert rule.recurrence_rule == "daily"

    def test_own_rule_wins(self, store, tree):
        """Test that an item's own rule shadows its ancestors'."""
        store.set_schedule(tree["task"].id, {"recurrence_rule": "daily"})
        store.set_schedule(tree["book"].id, {"recurrence_rule": "weekly"})
        assert get_active_schedule_rule(store.task_lists, tree["book"].id).recurrence_rule == "weekly"

    def test_none(self, store, tree):
        """Test items without any rule."""
        assert get_active_schedule_rule(store.task_lists, tree["pack"].id) is None


class TestIsItemActive:
    """Test activity windows."""

    def test_unscheduled_is_active(self, store, tree):
        """Test that items without schedules are always active."""
        assert is_item_active(store.task_lists, tree["pack"].id, local(3))

    def test_daily_all_day(self, store, tree):
        """Test a daily rule without slots."""
        store.set_schedule(tree["book"].id, {"recurrence_rule": "daily"})
        assert is_item_active(store.task_lists, tree["book"].id, local(23, 59))

    def test_daily_slots(self, store, tree):
        """Test slot boundaries, which are inclusive."""
        store.set_schedule(tree["book"].id, {"recurrence_rule": "Daily", "specific_times": ["10:00-12:00", "18:00-19:00"]})
        item_id = tree["activities"][1].id
        assert is_item_active(store.task_lists, item_id, local(10, 0))
        assert is_item_active(store.task_lists, item_id, local(12, 0))
        assert is_item_active(store.task_lists, item_id, local(18, 30))
        assert not is_item_active(store.task_lists, item_id, local(12, 1))
        assert not is_item_active(store.task_lists, item_id, local(9, 59))

    def test_malformed_slots_ignored(self, store, tree):
        """Test that bad slots never match."""
        store.set_schedule(tree["book"].id, {"recurrence_rule": "daily", "specific_times": ["soon", "10:00-11:00"]})
        assert is_item_active(store.task_lists, tree["book"].id, local(10, 30))
        assert not is_item_active(store.task_lists, tree["book"].id, local(15))

    def test_other_rules_inactive(self, store, tree):
        """Test that uninterpreted rules count as inactive."""
        store.set_schedule(tree["book"].id, {"recurrence_rule": "weekly"})
        assert not is_item_active(store.task_lists, tree["book"].id, local(10))

    def test_unknown_item(self, store):
        """Test that unknown ids are inactive."""
        assert not is_item_active(store.task_lists, "missing", local(10))


class TestTimeSlots:
    """Test slot parsing."""

    def test_parse(self):
        """Test well formed and malformed slots."""
        assert parse_time_slot("08:30-09:45") == (time(8, 30), time(9, 45))
        assert parse_time_slot(" 08:30 - 09:45 ") == (time(8, 30), time(9, 45))
        assert parse_time_slot("08:30") is None
        assert parse_time_slot("ab:cd-ef:gh") is None


class TestDateLocks:
    """Test are_date_fields_locked."""

    def test_locked_under_repeating_ancestor(self, store, tree):
        """Test that descendants of a repeating item are locked."""
        store.toggle_auto_repeat(tree["task"].id, True)
        assert are_date_fields_locked(store.task_lists, tree["book"].id)
        assert are_date_fields_locked(store.task_lists, tree["activities"][0].id)
        assert not are_date_fields_locked(store.task_lists, tree["task"].id)

    def test_unlocked(self, store, tree):
        """Test items with no repeating ancestor."""
        assert not are_date_fields_locked(store.task_lists, tree["book"].id)
        assert not are_date_fields_locked(store.task_lists, "missing")
