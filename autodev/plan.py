"""
Hierarchical task plan.

A Plan owns a single root Task (id "0") whose subtasks form a tree. Every task
is addressed by a dotted path of sibling indexes ("0.1.2"); ids are assigned
when a task is appended and never change afterwards.

State changes go through Task.set_state, which propagates:

- completed / abandoned / verified flow down to every descendant, skipping
  subtrees that are already abandoned
- in_progress flows up through every ancestor to the root
- open stays local
"""

from __future__ import annotations

import re
import threading
from enum import Enum
from typing import Iterator, Optional

from .errors import InvalidID, InvalidState, NotFound


class TaskState(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    VERIFIED = "verified"

    @classmethod
    def parse(cls, value: TaskState | str) -> TaskState:
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidState(f"invalid state: {value!r}") from None


# states that close a whole unit of work, children included
CLOSING_STATES = frozenset({TaskState.COMPLETED, TaskState.ABANDONED, TaskState.VERIFIED})

STATE_MARKERS = {
    TaskState.VERIFIED: "✅",
    TaskState.COMPLETED: "🟢",
    TaskState.ABANDONED: "❌",
    TaskState.IN_PROGRESS: "💪",
    TaskState.OPEN: "🔵",
}

ROOT_ID = "0"
_INDEX_RE = re.compile(r"[0-9]+")


class Task:
    """A single unit of work in a plan.

    A task keeps a strong reference to its parent, so a subtask handed out by a
    Plan still propagates to its ancestors after the Plan itself is dropped.
    """

    def __init__(self, goal: str, parent: Optional[Task] = None, lock: Optional[threading.RLock] = None):
        if not isinstance(goal, str):
            raise TypeError(f"goal must be a string, got {type(goal).__name__}")
        self.goal = goal
        self._state = TaskState.OPEN
        self._subtasks: list[Task] = []
        self._parent = parent
        if parent is None:
            self.id = ROOT_ID
            self._lock = lock or threading.RLock()
        else:
            self.id = f"{parent.id}.{len(parent._subtasks)}"
            self._lock = parent._lock

    def __repr__(self) -> str:
        return f"Task(id={self.id!r}, state={self._state.value!r}, goal={self.goal!r})"

    @property
    def state(self) -> TaskState:
        return self._state

    @property
    def parent(self) -> Optional[Task]:
        return self._parent

    @property
    def subtasks(self) -> tuple[Task, ...]:
        return tuple(self._subtasks)

    def add_subtask(self, goal: str) -> Task:
        with self._lock:
            child = Task(goal, parent=self)
            self._subtasks.append(child)
            return child

    def set_state(self, state: TaskState | str) -> None:
        new_state = TaskState.parse(state)
        with self._lock:
            self._apply(new_state)
            if new_state is TaskState.IN_PROGRESS:
                ancestor = self._parent
                while ancestor is not None:
                    ancestor._state = new_state
                    ancestor = ancestor._parent

    def _apply(self, state: TaskState) -> None:
        self._state = state
        if state not in CLOSING_STATES:
            return
        # pre-order, left to right; abandoned subtrees are left alone
        stack = [t for t in reversed(self._subtasks) if t._state is not TaskState.ABANDONED]
        while stack:
            task = stack.pop()
            task._state = state
            stack.extend(t for t in reversed(task._subtasks) if t._state is not TaskState.ABANDONED)

    def get_current_task(self) -> Optional[Task]:
        """Deepest in-progress task, children before self, left to right."""
        with self._lock:
            stack = [(self, False)]
            while stack:
                task, visited = stack.pop()
                if visited:
                    if task._state is TaskState.IN_PROGRESS:
                        return task
                    continue
                stack.append((task, True))
                stack.extend((t, False) for t in reversed(task._subtasks))
            return None

    def walk(self) -> Iterator[Task]:
        """Yield this task and its descendants in pre-order."""
        stack = [self]
        while stack:
            task = stack.pop()
            yield task
            stack.extend(reversed(task.subtasks))

    def render(self, indent: str = "") -> str:
        with self._lock:
            lines = []
            stack = [(self, indent)]
            while stack:
                task, prefix = stack.pop()
                lines.append(f"{prefix}{STATE_MARKERS[task._state]} {task.id} {task.goal}\n")
                stack.extend((t, prefix + "    ") for t in reversed(task._subtasks))
            return "".join(lines)

    def __str__(self) -> str:
        return self.render()

    def _node(self) -> dict:
        return {"id": self.id, "goal": self.goal, "state": self._state.value, "subtasks": []}

    def to_dict(self) -> dict:
        with self._lock:
            root = self._node()
            stack = [(self, root)]
            while stack:
                task, node = stack.pop()
                for subtask in task._subtasks:
                    child = subtask._node()
                    node["subtasks"].append(child)
                    stack.append((subtask, child))
            return root


class Plan:
    """A main goal plus the task tree that decomposes it."""

    def __init__(self, main_goal: str):
        self.main_goal = main_goal
        self._lock = threading.RLock()
        self.root_task = Task(main_goal, lock=self._lock)

    def __repr__(self) -> str:
        return f"Plan(main_goal={self.main_goal!r})"

    def __str__(self) -> str:
        return self.render()

    def get_task_by_id(self, task_id: str) -> Task:
        if not isinstance(task_id, str):
            raise InvalidID(f"invalid task id, not a string: {task_id!r}")
        parts = task_id.split(".")
        if parts[0] != ROOT_ID:
            raise InvalidID(f"invalid task id, must start with {ROOT_ID}: {task_id!r}")
        with self._lock:
            task = self.root_task
            for part in parts[1:]:
                if not _INDEX_RE.fullmatch(part):
                    raise InvalidID(f"invalid task id, non-integer: {task_id!r}")
                index = int(part)
                if index >= len(task._subtasks):
                    raise NotFound(f"task does not exist: {task_id}")
                task = task._subtasks[index]
            return task

    def add_subtask(self, parent_id: str, goal: str) -> Task:
        with self._lock:
            return self.get_task_by_id(parent_id).add_subtask(goal)

    def set_subtask_state(self, task_id: str, state: TaskState | str) -> Task:
        with self._lock:
            task = self.get_task_by_id(task_id)
            task.set_state(state)
            return task

    def get_current_task(self) -> Optional[Task]:
        return self.root_task.get_current_task()

    def reset(self) -> None:
        """Drop every subtask; the root starts over as an open task."""
        with self._lock:
            self.root_task = Task(self.main_goal, lock=self._lock)

    def render(self) -> str:
        return self.root_task.render()

    def to_dict(self) -> dict:
        return self.root_task.to_dict()

    def summary(self) -> dict[str, int]:
        with self._lock:
            counts = {state.value: 0 for state in TaskState}
            for task in self.root_task.walk():
                counts[task.state.value] += 1
            return counts
