"""Task list kept in the remote store, mirrored to local storage on failure."""

import logging
import uuid
from dataclasses import replace
from typing import Callable, Optional

from .local_store import TASKS_KEY
from .models import MAX_PRIORITY, Task
from .notify import CUE_DELETE, CUE_TASK_ADD

logger = logging.getLogger(__name__)


def _check_priority(priority: int) -> None:
    if not 0 <= priority <= MAX_PRIORITY:
        raise ValueError(f"Priority must be between 0 and {MAX_PRIORITY}, got {priority}")


def _check_estimate(estimate: int) -> None:
    if estimate < 0:
        raise ValueError(f"Estimated pomodoros can't be negative, got {estimate}")


class TaskLedger:
    """The user's tasks, most recently added first.

    Every change goes to the remote store first. When that fails the same
    change is applied in memory and the whole list is written to the
    ``tasks`` key of local storage.
    """

    def __init__(self, remote, local, gateway, effects, cues, clock, stats=None):
        self.remote = remote
        self.local = local
        self.gateway = gateway
        self.effects = effects
        self.cues = cues
        self.clock = clock
        self.stats = stats
        self.tasks: list[Task] = []

    def get(self, task_id: str) -> Optional[Task]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def load(self) -> list[Task]:
        """Load tasks from the remote store, or local storage when it's unavailable."""

        def adopt(tasks: list[Task]) -> None:
            self.tasks = list(tasks)

        def from_local() -> list[Task]:
            self.tasks = self._read_local()
            return self.tasks

        self.gateway.perform(self.remote.get_tasks, from_local, adopt, "get_tasks")
        logger.info(f"Loaded {len(self.tasks)} tasks")
        return self.tasks

    def add(self, text: str, priority: int = 0, estimate: int = 1) -> Task:
        """Add a task at the top of the list.

        Args:
            text: Task description
            priority: 0 (none) to 3 (highest)
            estimate: Expected number of pomodoros

        Returns:
            The stored task
        """
        text = text.strip()
        if not text:
            raise ValueError("Task text can't be empty")
        _check_priority(priority)
        _check_estimate(estimate)

        def adopt(task: Task) -> None:
            self.tasks = [task] + self.tasks

        def add_locally() -> Task:
            task = Task(
                id=str(uuid.uuid4()),
                text=text,
                created_at=self.clock.now(),
                priority=priority,
                estimated_pomodoros=estimate,
            )
            self._apply_locally([task] + self.tasks)
            return task

        task = self.gateway.perform(
            lambda: self.remote.add_task(text, priority, estimate),
            add_locally,
            adopt,
            "add_task",
        )
        self.effects.submit(self.cues.play, CUE_TASK_ADD)
        return task

    def complete(self, task_id: str) -> None:
        """Mark a task done and refresh today's stats."""
        now = self.clock.now()
        self._mutate(
            lambda: self.remote.complete_task(task_id, True),
            lambda t: replace(t, completed=True, completed_at=now),
            task_id,
            "complete_task",
        )
        self._refresh_stats()

    def uncomplete(self, task_id: str) -> None:
        """Mark a task not done and refresh today's stats."""
        self._mutate(
            lambda: self.remote.complete_task(task_id, False),
            lambda t: replace(t, completed=False, completed_at=None),
            task_id,
            "complete_task",
        )
        self._refresh_stats()

    def update_text(self, task_id: str, text: str) -> None:
        text = text.strip()
        if not text:
            raise ValueError("Task text can't be empty")
        self._update(task_id, text=text)

    def update_priority(self, task_id: str, priority: int) -> None:
        _check_priority(priority)
        self._update(task_id, priority=priority)

    def update_estimate(self, task_id: str, estimate: int) -> None:
        _check_estimate(estimate)
        self._update(task_id, estimated_pomodoros=estimate)

    def remove(self, task_id: str) -> None:
        """Delete a task. The delete cue only plays for a task that was on the list."""
        known = self.get(task_id) is not None

        def drop_in_memory(_=None) -> None:
            self.tasks = [t for t in self.tasks if t.id != task_id]

        def drop_locally() -> None:
            self._apply_locally([t for t in self.tasks if t.id != task_id])

        self.gateway.perform(
            lambda: self.remote.delete_task(task_id),
            drop_locally,
            drop_in_memory,
            "delete_task",
        )
        if known:
            self.effects.submit(self.cues.play, CUE_DELETE)
        else:
            logger.warning(f"Remove of unknown task {task_id}, no cue played")

    # Internals

    def _update(self, task_id: str, **changes) -> None:
        current = self.get(task_id)
        if current is None:
            logger.warning(f"Ignoring update of unknown task {task_id}")
            return
        updated = replace(current, **changes)
        self._mutate(
            lambda: self.remote.update_task(updated),
            lambda t: updated,
            task_id,
            "update_task",
        )

    def _mutate(
        self,
        remote_op: Callable[[], None],
        change: Callable[[Task], Task],
        task_id: str,
        description: str,
    ) -> None:
        """Apply ``change`` to one task after the remote call, or locally if it fails."""

        def changed() -> list[Task]:
            return [change(t) if t.id == task_id else t for t in self.tasks]

        def in_memory(_=None) -> None:
            self.tasks = changed()

        def locally() -> None:
            self._apply_locally(changed())

        self.gateway.perform(remote_op, locally, in_memory, description)

    def _apply_locally(self, tasks: list[Task]) -> None:
        # Storage first: if the write fails, memory still matches storage.
        self.local.set(TASKS_KEY, [t.to_dict() for t in tasks])
        self.tasks = tasks

    def _read_local(self) -> list[Task]:
        data = self.local.get(TASKS_KEY)
        if data is None:
            return []
        try:
            return [Task.from_dict(item) for item in data]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring malformed local task list: {e}")
            return []

    def _refresh_stats(self) -> None:
        if self.stats is not None:
            self.effects.submit(self.stats.load_today)
