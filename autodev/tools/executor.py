from __future__ import annotations
from dataclasses import asdict
from typing import Any, Callable, Optional

from ..config import AgentConfig
from ..llm import LLM
from ..session import AgentSession
from .githubfs import GitHubFS
from .planner import Planner
from .plugin import PluginGateway


class Executor:
    def __init__(
        self,
        cfg: AgentConfig,
        session: Optional[AgentSession] = None,
        llm: Optional[LLM] = None,
        plugin: Optional[PluginGateway] = None,
        github: Optional[Callable[[str], GitHubFS]] = None,
    ):
        self.cfg = cfg
        self.session = session or AgentSession(cfg.main_goal)
        self.llm = llm or LLM.from_config(cfg)
        self.planner = Planner(self.llm)
        self.plugin = plugin or PluginGateway(cfg)
        self.github = github or (lambda repo: GitHubFS.from_config(cfg, repo))

    @property
    def plan(self):
        return self.session.plan

    def dispatch(self, kind: str, args: dict) -> Any:
        k = kind
        m = {
            "plan.get": lambda: self.plan.get_task_by_id(**args).to_dict(),
            "plan.add": lambda: self.plan.add_subtask(**args).to_dict(),
            "plan.set_state": lambda: self.plan.set_subtask_state(**args).to_dict(),
            "plan.current": lambda: self._current(),
            "plan.render": lambda: self.plan.render(),
            "plan.reset": lambda: self._reset(),
            "plan.decompose": lambda: [t.to_dict() for t in self.planner.decompose(self.plan, **args)],
            "chat.send": lambda: self.session.send_message(self.llm, **args),
            "chat.history": lambda: [msg.to_dict() for msg in self.session.history()],
            "plugin.run": lambda: [asdict(r) for r in self.plugin.run_many(**args)],
            "github.branches": lambda: self._github(args, lambda fs: fs.branches()),
            "github.list": lambda: self._github(
                args, lambda fs: [e.to_dict() for e in fs.list_dir(args["branch"], args.get("path", ""))]
            ),
            "github.read": lambda: self._github(args, lambda fs: fs.read_file(args["branch"], args["path"])),
        }.get(k)
        if not m:
            raise ValueError(f"unknown action: {k}")
        return m()

    def _current(self) -> Optional[dict]:
        task = self.plan.get_current_task()
        return task.to_dict() if task else None

    def _reset(self) -> dict:
        self.session.reset_plan()
        return self.plan.to_dict()

    def _github(self, args: dict, fn):
        fs = self.github(args["repo"])
        try:
            return fn(fs)
        finally:
            fs.close()
