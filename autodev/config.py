from __future__ import annotations
import os
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field

DEFAULT_MAIN_GOAL = (
    "We are cloning OpenDevin, a web UI for managing semi-autonomous AI coding agents "
    "that implements the CodeAct paper. Their codebase is in Python and we are "
    "converting it to Golang."
)


class AgentConfig(BaseModel):
    main_goal: str = Field(DEFAULT_MAIN_GOAL, description="Top-level objective the session plan starts from.")
    demo_delay: float = Field(0.5, description="Seconds between demo plan updates.")

    # OpenAI-compatible chat completion endpoint
    llm_api_key: Optional[str] = Field(None, description="API key for the LLM endpoint; fallback replies when unset")
    llm_base_url: str = Field("https://api.deepseek.com", description="LLM API base URL")
    llm_model: str = Field("deepseek-chat", description="Model name sent with every completion")
    llm_max_tokens: int = 1024

    # Greptile indexing plugin
    greptile_api_key: Optional[str] = None
    plugin_wasm_path: Path = Path("plugins/wasm/greptile.wasm")
    plugin_allowed_hosts: list[str] = ["api.greptile.com"]

    # GitHub REST API
    github_token: Optional[str] = None
    github_api_url: str = "https://api.github.com"
    github_timeout: float = 15.0

    @classmethod
    def from_env(cls, **overrides) -> "AgentConfig":
        load_dotenv(find_dotenv(usecwd=True))
        values = {
            "llm_api_key": os.getenv("LLM_API_KEY"),
            "greptile_api_key": os.getenv("GREPTILE_API_KEY"),
            "github_token": os.getenv("GITHUB_TOKEN"),
        }
        optional = {
            "llm_base_url": "LLM_BASE_URL",
            "llm_model": "LLM_MODEL",
            "llm_max_tokens": "LLM_MAX_TOKENS",
            "github_api_url": "GITHUB_API_URL",
            "plugin_wasm_path": "AUTODEV_PLUGIN_WASM",
            "main_goal": "AUTODEV_MAIN_GOAL",
            "demo_delay": "AUTODEV_DEMO_DELAY",
        }
        for field, env in optional.items():
            if os.getenv(env):
                values[field] = os.environ[env]
        values.update(overrides)
        return cls(**values)
