from __future__ import annotations
from dataclasses import dataclass, asdict
import logging
import re
from typing import Optional, Sequence

from openai import OpenAI, OpenAIError

from .errors import LLMError

logger = logging.getLogger(__name__)


@dataclass
class Message:
    role: str  # "system", "user" or "assistant"
    content: str

    def to_dict(self) -> dict:
        return asdict(self)


class LLM:
    """
    Chat completion client for any OpenAI-compatible API.
    Without an API key it answers with canned replies so the UI stays usable offline.
    """
    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = "https://api.deepseek.com",
        model: str = "deepseek-chat",
        max_tokens: int = 1024,
        client=None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self.max_tokens = max_tokens
        if client is not None:
            self.client = client
        elif not self.api_key:
            logger.warning("LLM API key not set. LLM will use fallback mode.")
            self.client = None
        else:
            self.client = OpenAI(api_key=self.api_key, base_url=base_url)

    @classmethod
    def from_config(cls, cfg) -> "LLM":
        return cls(
            api_key=cfg.llm_api_key,
            base_url=cfg.llm_base_url,
            model=cfg.llm_model,
            max_tokens=cfg.llm_max_tokens,
        )

    @property
    def fallback(self) -> bool:
        return self.client is None

    def complete(self, messages: Sequence[Message], max_tokens: Optional[int] = None) -> str:
        if not messages:
            raise LLMError("cannot complete an empty conversation")
        if self.client is None:
            return _fallback_reply(messages[-1].content)

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[m.to_dict() for m in messages],
                temperature=0.1,
                max_tokens=max_tokens or self.max_tokens,
            )
        except OpenAIError as e:
            logger.error(f"LLM API error: {e}")
            raise LLMError(str(e)) from e

        if not response.choices:
            raise LLMError("LLM returned no choices")
        return (response.choices[0].message.content or "").strip()

    def generate_text(self, prompt: str, system_prompt: str = "You are a helpful AI assistant.") -> str:
        return self.complete([Message("system", system_prompt), Message("user", prompt)])

    def __str__(self) -> str:
        return f"LLM(model={self.model}, base_url={self.base_url})"


def _fallback_reply(text: str) -> str:
    lowered = text.lower()
    if "hello" in lowered or re.search(r"\bhi\b", lowered):
        return "Hello! How can I assist you today?"
    if "goodbye" in lowered or re.search(r"\bbye\b", lowered):
        return "Goodbye! Have a great day!"
    if "help" in lowered:
        return "I'm here to help! What kind of assistance do you need?"
    if "weather" in lowered:
        return (
            "I'm sorry, I don't have real-time weather information. You might want to "
            "check a weather website or app for accurate forecasts."
        )
    if "name" in lowered:
        return "My name is AutoDev AI. It's nice to meet you!"
    return f"I understand you're saying something about {text}. Can you please provide more context or ask a specific question?"
