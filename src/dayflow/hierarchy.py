"""
Hierarchy locator for the List -> Task -> Subtask -> Activity tree.

Every function here works on a plain sequence of TaskList objects, so it can be
pointed at a draft inside a store transaction or at a committed snapshot alike.
"""

from typing import Iterator, List, NamedTuple, Optional, Sequence

from .models import ItemKind, Node, PlanItem, TaskList

class Located(NamedTuple):
    """An item together with its discriminated kind and its immediate parent."""
    kind: ItemKind
    item: Node
    parent_kind: Optional[ItemKind] = None
    parent: Optional[Node] = None

def _walk(nodes: Sequence[Node], item_id: str, trail: List[Node]) -> Optional[List[Node]]:
    for node in nodes:
        here = trail + [node]
        if node.id == item_id:
            return here
        found = _walk(node.children, item_id, here)
        if found:
            return found
    return None

def get_item_path(task_lists: Sequence[TaskList], item_id: str) -> List[Node]:
    """
    Return the chain of nodes from the owning list down to the item.

    The list is empty when the id is unknown. Search is depth-first, lists in
    array order.
    """
    return _walk(task_lists, item_id, []) or []

def find_item(task_lists: Sequence[TaskList], item_id: str) -> Optional[Located]:
    """Find an item of any kind plus its immediate parent, or None if not found."""
    path = get_item_path(task_lists, item_id)
    if not path:
        return None
    item = path[-1]
    if len(path) == 1:
        return Located(item.KIND, item)
    parent = path[-2]
    return Located(item.KIND, item, parent.KIND, parent)

def find_parent_list(task_lists: Sequence[TaskList], item_id: str) -> Optional[TaskList]:
    """Find the TaskList owning an id at any depth (a list owns itself)."""
    path = get_item_path(task_lists, item_id)
    return path[0] if path else None

def iter_item_paths(task_lists: Sequence[TaskList]) -> Iterator[List[Node]]:
    """Yield the path of every Task, Subtask and Activity in pre-order."""
    def descend(trail: List[Node]) -> Iterator[List[Node]]:
        for child in trail[-1].children:
            here = trail + [child]
            yield here
            yield from descend(here)

    for task_list in task_lists:
        yield from descend([task_list])

def iter_items(task_lists: Sequence[TaskList]) -> Iterator[PlanItem]:
    """Yield every Task, Subtask and Activity in pre-order."""
    for task_list in task_lists:
        for task in task_list.tasks:
            yield task
            for subtask in task.subtasks:
                yield subtask
                yield from subtask.activities

def get_all_items(task_lists: Sequence[TaskList]) -> List[PlanItem]:
    return list(iter_items(task_lists))
