"""
Task collection state machine.

The module-level functions are pure: they take the current collection and return
a new one without touching the input. TaskStore owns the current collection and
writes it to durable storage after every mutation.
"""
import itertools
import logging
import uuid
from datetime import datetime
from typing import Iterable

import database
from models import Category, Stats, Subtask, Task, TaskFilter

logger = logging.getLogger(__name__)


class ValidationError(ValueError):
    """Raised when a task would be created with empty text."""


def add_task(tasks: list[Task], text: str, category: Category) -> list[Task]:
    text = (text or "").strip()
    if not text:
        raise ValidationError("Task text must not be empty")
    task = Task(
        id=str(uuid.uuid4()),
        text=text,
        completed=False,
        category=category,
        created_at=datetime.now().isoformat(),
    )
    return [task, *tasks]


def toggle_task(tasks: list[Task], task_id: str) -> list[Task]:
    if not any(t.id == task_id for t in tasks):
        return tasks
    return [
        t.model_copy(update={"completed": not t.completed}) if t.id == task_id else t
        for t in tasks
    ]


def delete_task(tasks: list[Task], task_id: str) -> list[Task]:
    if not any(t.id == task_id for t in tasks):
        return tasks
    return [t for t in tasks if t.id != task_id]


def set_subtasks(tasks: list[Task], task_id: str, subtasks: list[Subtask]) -> list[Task]:
    if not any(t.id == task_id for t in tasks):
        return tasks
    return [
        t.model_copy(update={"subtasks": list(subtasks)}) if t.id == task_id else t
        for t in tasks
    ]


def toggle_subtask(tasks: list[Task], task_id: str, subtask_id: str) -> list[Task]:
    task = next((t for t in tasks if t.id == task_id), None)
    if task is None or not any(s.id == subtask_id for s in task.subtasks):
        return tasks
    updated_subtasks = [
        s.model_copy(update={"completed": not s.completed}) if s.id == subtask_id else s
        for s in task.subtasks
    ]
    return [
        t.model_copy(update={"subtasks": updated_subtasks}) if t.id == task_id else t
        for t in tasks
    ]


def reorder_tasks(tasks: list[Task], prioritized_ids: Iterable[str]) -> list[Task]:
    """
    Rebuild the collection from a suggested priority order.

    Active tasks named in prioritized_ids come first in that order. Active tasks
    the suggestion left out follow in their original relative order, then all
    completed tasks, order preserved. Unknown, completed or repeated ids are ignored.
    """
    active = [t for t in tasks if not t.completed]
    completed = [t for t in tasks if t.completed]
    active_by_id = {t.id: t for t in active}

    reordered: list[Task] = []
    seen: set[str] = set()
    for task_id in prioritized_ids:
        task = active_by_id.get(task_id)
        if task is None or task_id in seen:
            continue
        seen.add(task_id)
        reordered.append(task)

    missing = [t for t in active if t.id not in seen]
    return [*reordered, *missing, *completed]


def make_subtasks(texts: Iterable[str]) -> list[Subtask]:
    """Build fresh subtasks from suggested texts, skipping blank entries."""
    return [
        Subtask(id=str(uuid.uuid4()), text=text.strip(), completed=False)
        for text in texts
        if text and text.strip()
    ]


def filter_tasks(tasks: list[Task], task_filter: TaskFilter) -> list[Task]:
    if task_filter == TaskFilter.ACTIVE:
        return [t for t in tasks if not t.completed]
    if task_filter == TaskFilter.COMPLETED:
        return [t for t in tasks if t.completed]
    return list(tasks)


def compute_stats(tasks: list[Task]) -> Stats:
    total = len(tasks)
    completed = sum(1 for t in tasks if t.completed)
    categories = {}
    for category in Category:
        count = sum(1 for t in tasks if t.category == category)
        if count:
            categories[category.value] = count
    return Stats(
        total=total,
        active=total - completed,
        completed=completed,
        completion_percent=round(completed / total * 100) if total else 0,
        categories=categories,
    )


class TaskStore:
    """Holds the current collection and persists it after each mutation."""

    def __init__(self, tasks: list[Task] | None = None):
        self.tasks: list[Task] = list(tasks or [])

    def load(self) -> list[Task]:
        self.tasks = database.load_tasks()
        logger.info("Loaded %d tasks from storage", len(self.tasks))
        return self.tasks

    def get(self, task_id: str) -> Task | None:
        return next((t for t in self.tasks if t.id == task_id), None)

    def _commit(self, tasks: list[Task]) -> list[Task]:
        if tasks is self.tasks:
            return self.tasks
        database.save_tasks(tasks)
        self.tasks = tasks
        return self.tasks

    def add(self, text: str, category: Category) -> list[Task]:
        return self._commit(add_task(self.tasks, text, category))

    def toggle(self, task_id: str) -> list[Task]:
        return self._commit(toggle_task(self.tasks, task_id))

    def delete(self, task_id: str) -> list[Task]:
        return self._commit(delete_task(self.tasks, task_id))

    def set_subtasks(self, task_id: str, subtasks: list[Subtask]) -> list[Task]:
        return self._commit(set_subtasks(self.tasks, task_id, subtasks))

    def toggle_subtask(self, task_id: str, subtask_id: str) -> list[Task]:
        return self._commit(toggle_subtask(self.tasks, task_id, subtask_id))

    def reorder(self, prioritized_ids: Iterable[str]) -> list[Task]:
        return self._commit(reorder_tasks(self.tasks, prioritized_ids))


class RequestGenerations:
    """
    Counters for in-flight AI requests, one slot per (action, key).

    A response is applied only if no newer request for the same action and key
    was started while it was pending. Generation numbers come from one shared
    sequence and never repeat, so a slot can be dropped once its latest request
    has resolved.
    """

    def __init__(self):
        self._sequence = itertools.count(1)
        self._current: dict[tuple[str, str], int] = {}

    def __len__(self) -> int:
        return len(self._current)

    def begin(self, action: str, key: str = "") -> int:
        generation = next(self._sequence)
        self._current[(action, key)] = generation
        return generation

    def is_current(self, action: str, key: str, generation: int) -> bool:
        return self._current.get((action, key)) == generation

    def finish(self, action: str, key: str, generation: int) -> None:
        """Release the slot unless a newer request for it is still pending."""
        if self.is_current(action, key, generation):
            del self._current[(action, key)]
