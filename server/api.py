from __future__ import annotations
import json
import logging
from dataclasses import asdict
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from pydantic import BaseModel

from autodev.config import AgentConfig
from autodev.errors import (
    AuthError,
    AutodevError,
    InvalidID,
    InvalidOperation,
    InvalidState,
    LLMError,
    NotFound,
    PluginError,
    RemoteError,
    RemoteNotFound,
)
from autodev.plan import Plan
from autodev.tools.demo import stream_demo_plan
from autodev.tools.executor import Executor
from autodev.tools.githubfs import pick_default_branch

logger = logging.getLogger(__name__)

app = FastAPI(title="autodev", version="0.1.0")

# checked in order, subclasses first
ERROR_STATUS = [
    (NotFound, 404),
    (RemoteNotFound, 404),
    (AuthError, 401),
    ((InvalidID, InvalidState, InvalidOperation), 400),
    ((RemoteError, PluginError, LLMError), 502),
]


class DispatchIn(BaseModel):
    kind: str
    args: dict = {}


class SubtaskIn(BaseModel):
    parent_id: str = "0"
    goal: str


class StateIn(BaseModel):
    state: str


class DecomposeIn(BaseModel):
    parent_id: str = "0"
    goal: Optional[str] = None


class MessageIn(BaseModel):
    message: str


class PluginIn(BaseModel):
    operation: str
    repositories: list[str]
    branch: str = "main"
    query: Optional[str] = None


@app.on_event("startup")
def startup():
    app.state.cfg = AgentConfig.from_env()
    app.state.exec = Executor(app.state.cfg)


@app.on_event("shutdown")
def shutdown():
    app.state.exec.plugin.close()


@app.exception_handler(AutodevError)
def autodev_error(request: Request, exc: AutodevError):
    status = 500
    for kinds, code in ERROR_STATUS:
        if isinstance(exc, kinds):
            status = code
            break
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status, content={"detail": str(exc)})


def _executor() -> Executor:
    return app.state.exec


def _plan_view(plan: Plan) -> dict:
    current = plan.get_current_task()
    return {
        "main_goal": plan.main_goal,
        "plan": plan.to_dict(),
        "current": current.id if current else None,
        "summary": plan.summary(),
    }


@app.get("/health")
def health():
    return {"ok": True}


@app.get("/plan")
def get_plan():
    return _plan_view(_executor().plan)


@app.get("/plan/text", response_class=PlainTextResponse)
def get_plan_text():
    return _executor().plan.render()


@app.get("/plan/current")
def get_current_task():
    task = _executor().plan.get_current_task()
    return {"task": task.to_dict() if task else None}


@app.get("/plan/tasks/{task_id}")
def get_task(task_id: str):
    return _executor().plan.get_task_by_id(task_id).to_dict()


@app.post("/plan/subtasks", status_code=201)
def add_subtask(inp: SubtaskIn):
    return _executor().plan.add_subtask(inp.parent_id, inp.goal).to_dict()


@app.post("/plan/tasks/{task_id}/state")
def set_task_state(task_id: str, inp: StateIn):
    _executor().plan.set_subtask_state(task_id, inp.state)
    return _plan_view(_executor().plan)


@app.post("/plan/reset")
@app.post("/replay")
def reset_plan():
    _executor().session.reset_plan()
    return _plan_view(_executor().plan)


@app.post("/plan/decompose")
def decompose(inp: DecomposeIn):
    ex = _executor()
    tasks = ex.planner.decompose(ex.plan, inp.parent_id, inp.goal)
    return {"added": [t.to_dict() for t in tasks], "plan": ex.plan.to_dict()}


@app.get("/plan-updates")
def plan_updates():
    ex = _executor()
    plan = Plan(ex.cfg.main_goal)

    async def stream():
        async for update in stream_demo_plan(plan, delay=ex.cfg.demo_delay):
            yield f"data: {json.dumps(update.to_dict())}\n\n"

    return StreamingResponse(
        stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


@app.get("/messages")
def get_messages():
    return {"messages": [m.to_dict() for m in _executor().session.history()]}


@app.post("/messages")
def submit_message(inp: MessageIn):
    ex = _executor()
    reply = ex.session.send_message(ex.llm, inp.message)
    return {"reply": reply, "messages": [m.to_dict() for m in ex.session.history()]}


@app.post("/run-plugin")
def run_plugin(inp: PluginIn):
    results = _executor().plugin.run_many(inp.operation, inp.repositories, inp.branch, inp.query)
    return {"results": [asdict(r) for r in results]}


def _open_repo(repo: str):
    try:
        return _executor().github(repo)
    except ValueError as e:
        raise HTTPException(400, detail=str(e))


@app.get("/repos")
def repos(repo: str):
    fs = _open_repo(repo)
    try:
        branches = fs.branches()
        counts = {branch: fs.file_count(branch) for branch in branches}
        return {
            "repo": repo,
            "branches": branches,
            "default_branch": pick_default_branch(branches),
            "branch_file_counts": counts,
            "total_files": sum(counts.values()),
        }
    finally:
        fs.close()


@app.get("/explorer/list")
def explorer_list(repo: str, branch: str, path: str = ""):
    logger.info("Listing directory: repo=%s, branch=%s, path=%s", repo, branch, path)
    fs = _open_repo(repo)
    try:
        entries = fs.list_dir(branch, path)
    finally:
        fs.close()
    return {"repo": repo, "branch": branch, "path": path, "entries": [e.to_dict() for e in entries]}


@app.get("/explorer/file")
def explorer_file(repo: str, branch: str, path: str):
    logger.info("Fetching file content: repo=%s, branch=%s, path=%s", repo, branch, path)
    fs = _open_repo(repo)
    try:
        content = fs.read_file(branch, path)
    finally:
        fs.close()
    return {"path": path, "content": content}


@app.post("/dispatch")
def dispatch(inp: DispatchIn):
    try:
        return {"result": _executor().dispatch(inp.kind, inp.args)}
    except AutodevError:
        raise
    except (TypeError, KeyError, ValueError) as e:
        raise HTTPException(400, detail=str(e))
