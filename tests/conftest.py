"""Shared fixtures: a controllable clock and stores built on it."""

import pytest
from datetime import datetime, timedelta, timezone

from dayflow.store import TaskStore

T0 = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


def day(n, hours=0):
    """T0 shifted by n days (and optionally hours)."""
    return T0 + timedelta(days=n, hours=hours)


class FakeClock:
    def __init__(self, start=T0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return TaskStore(clock=clock)


@pytest.fixture
def tree(store, clock):
    """
    default-list
      Task "Plan trip" (T0 .. T0+7d)
        Subtask "Book" with activities Flights, Hotel, Car
        Subtask "Pack"
    """
    task = store.add_task("default-list", "Plan trip")
    book = store.add_subtask(task.id, "Book")
    pack = store.add_subtask(task.id, "Pack")
    acts = [store.add_activity(book.id, name) for name in ("Flights", "Hotel", "Car")]
    return {"task": task, "book": book, "pack": pack, "activities": acts}
