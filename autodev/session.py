from __future__ import annotations
import threading

from .llm import LLM, Message
from .plan import Plan


class AgentSession:
    """Current plan plus the chat transcript for a single user."""

    def __init__(self, main_goal: str):
        self.plan = Plan(main_goal)
        self._history: list[Message] = []
        self._lock = threading.Lock()

    def history(self) -> list[Message]:
        with self._lock:
            return list(self._history)

    def send_message(self, llm: LLM, text: str) -> str:
        with self._lock:
            conversation = self._history + [Message("user", text)]
            reply = llm.complete(conversation)
            conversation.append(Message("assistant", reply))
            self._history = conversation
            return reply

    def clear_history(self) -> None:
        with self._lock:
            self._history = []

    def reset_plan(self) -> None:
        self.plan.reset()
