"""Unit tests for the hierarchy locator."""

from dayflow.hierarchy import (
    find_item, find_parent_list, get_all_items, get_item_path, iter_item_paths,
)
from dayflow.models import ItemKind


class TestItemPath:
    """Test path resolution through the tree."""

    def test_activity_path(self, store, tree):
        """Test that an activity path runs from the list down."""
        activity = tree["activities"][1]
        path = get_item_path(store.task_lists, activity.id)
        assert [node.id for node in path] == ["default-list", tree["task"].id, tree["book"].id, activity.id]

    def test_list_path(self, store):
        """Test that a list resolves to itself."""
        path = get_item_path(store.task_lists, "default-list")
        assert len(path) == 1

    def test_unknown_id(self, store, tree):
        """Test that unknown ids give an empty path."""
        assert get_item_path(store.task_lists, "nope") == []


class TestFindItem:
    """Test find_item and find_parent_list."""

    def test_kinds_and_parents(self, store, tree):
        """Test the discriminated kind and parent of each level."""
        located = find_item(store.task_lists, tree["book"].id)
        assert located.kind is ItemKind.SUBTASK
        assert located.parent_kind is ItemKind.TASK
        assert located.parent.id == tree["task"].id

        located = find_item(store.task_lists, tree["task"].id)
        assert located.kind is ItemKind.TASK
        assert located.parent_kind is ItemKind.TASK_LIST

        located = find_item(store.task_lists, "default-list")
        assert located.kind is ItemKind.TASK_LIST
        assert located.parent is None

    def test_not_found(self, store):
        """Test that unknown ids are reported as None."""
        assert find_item(store.task_lists, "missing") is None
        assert find_parent_list(store.task_lists, "missing") is None

    def test_parent_list_at_any_depth(self, store, tree):
        """Test resolving the owning list from a leaf."""
        other = store.add_task_list("Other")
        assert find_parent_list(store.task_lists, tree["activities"][2].id).id == "default-list"
        assert find_parent_list(store.task_lists, other.id).id == other.id


class TestTraversal:
    """Test flattening the tree."""

    def test_pre_order(self, store, tree):
        """Test that items come parent first, in sibling order."""
        names = [item.name for item in get_all_items(store.task_lists)]
        assert names == ["Plan trip", "Book", "Flights", "Hotel", "Car", "Pack"]

    def test_paths_match_items(self, store, tree):
        """Test that iter_item_paths yields the same items with their paths."""
        paths = list(iter_item_paths(store.task_lists))
        assert [path[-1].id for path in paths] == [item.id for item in get_all_items(store.task_lists)]
        assert [len(path) for path in paths] == [2, 3, 4, 4, 4, 3]
