from __future__ import annotations
import logging
import re
from typing import Optional

from ..llm import LLM
from ..plan import Plan, Task

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a software project planner. You split goals into small, concrete, ordered steps."

# "1. step", "2) step", "- step", "* step"
_STEP_RE = re.compile(r"^\s*(?:\d+[.)]|[-*])\s+(.+?)\s*$")


def parse_steps(text: str) -> list[str]:
    steps = []
    for line in text.splitlines():
        m = _STEP_RE.match(line)
        if m:
            steps.append(m.group(1))
    return steps


class Planner:
    """Breaks a task's goal into subtasks with help from the LLM."""
    def __init__(self, llm: LLM, max_steps: int = 10):
        self.llm = llm
        self.max_steps = max_steps

    def decompose(self, plan: Plan, parent_id: str = "0", goal: Optional[str] = None) -> list[Task]:
        parent = plan.get_task_by_id(parent_id)
        goal = goal or parent.goal
        prompt = f"""Break the following goal into at most {self.max_steps} steps.

Goal: {goal}
Overall objective: {plan.main_goal}

Return ONLY a numbered list, one step per line, no explanations."""

        reply = self.llm.generate_text(prompt, system_prompt=SYSTEM_PROMPT)
        steps = parse_steps(reply)[: self.max_steps]
        if not steps:
            logger.info("planner reply contained no steps for task %s", parent_id)
            return []
        return [plan.add_subtask(parent_id, step) for step in steps]
