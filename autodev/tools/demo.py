from __future__ import annotations
import asyncio
from dataclasses import dataclass, asdict
from typing import AsyncIterator

from ..plan import Plan, TaskState

DEMO_GOALS = [
    "Analyze project requirements",
    "Set up development environment",
    "Design system architecture",
    "Implement core functionality",
    "Write unit tests",
    "Perform integration testing",
    "Deploy to staging environment",
    "Conduct user acceptance testing",
    "Prepare documentation",
    "Deploy to production",
]


@dataclass
class PlanUpdate:
    task_id: str
    goal: str
    state: str

    def to_dict(self) -> dict:
        return asdict(self)


async def stream_demo_plan(plan: Plan, delay: float = 0.5) -> AsyncIterator[PlanUpdate]:
    """Play a scripted run against ``plan``: add, start and finish each demo goal."""
    for goal in DEMO_GOALS:
        await asyncio.sleep(delay)
        task = plan.add_subtask("0", goal)
        yield PlanUpdate(task.id, goal, task.state.value)
        for state, pause in ((TaskState.IN_PROGRESS, delay), (TaskState.COMPLETED, delay * 2)):
            await asyncio.sleep(pause)
            plan.set_subtask_state(task.id, state)
            yield PlanUpdate(task.id, goal, state.value)
