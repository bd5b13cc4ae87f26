"""
Pytest configuration and shared fixtures for autodev tests.
"""

import base64
import json
from types import SimpleNamespace

import httpx
import pytest

from autodev.config import AgentConfig
from autodev.llm import LLM
from autodev.plan import Plan
from autodev.session import AgentSession
from autodev.tools.executor import Executor
from autodev.tools.githubfs import GitHubFS
from autodev.tools.plugin import PluginGateway


class FakeCompletions:
    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        message = SimpleNamespace(content=reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeOpenAI:
    """Stands in for openai.OpenAI; only chat.completions.create is used."""

    def __init__(self, replies):
        self.completions = FakeCompletions(replies)
        self.chat = SimpleNamespace(completions=self.completions)


class FakePlugin:
    """Stands in for an extism.Plugin; answers per repository."""

    def __init__(self, outputs=None, fail_for=()):
        self.outputs = outputs or {}
        self.fail_for = set(fail_for)
        self.calls = []

    def call(self, name, data):
        payload = json.loads(data)
        self.calls.append((name, payload))
        if payload["repository"] in self.fail_for:
            raise RuntimeError("wasm trap")
        return self.outputs.get(payload["repository"], b'{"message": "ok"}')


README = b"# demo\n\nA demo repository.\n"


def github_handler(request: httpx.Request) -> httpx.Response:
    if request.headers.get("Authorization") != "token test-token":
        return httpx.Response(401, json={"message": "Bad credentials"})

    path = request.url.path
    if path == "/repos/octo/demo/branches":
        return httpx.Response(200, json=[{"name": "dev"}, {"name": "main"}])
    if path == "/repos/octo/demo/contents":
        return httpx.Response(200, json=[
            {"name": "setup.py", "path": "setup.py", "type": "file", "size": 40},
            {"name": "src", "path": "src", "type": "dir", "size": 0},
            {"name": "README.md", "path": "README.md", "type": "file", "size": len(README)},
        ])
    if path == "/repos/octo/demo/contents/README.md":
        return httpx.Response(200, json={
            "name": "README.md",
            "path": "README.md",
            "type": "file",
            "encoding": "base64",
            "content": base64.b64encode(README).decode(),
        })
    if path == "/repos/octo/demo/contents/src":
        return httpx.Response(200, json=[{"name": "app.py", "path": "src/app.py", "type": "file", "size": 10}])
    if path == "/repos/octo/demo/git/trees/main":
        return httpx.Response(200, json={"truncated": False, "tree": [
            {"path": "README.md", "type": "blob"},
            {"path": "setup.py", "type": "blob"},
            {"path": "src", "type": "tree"},
            {"path": "src/app.py", "type": "blob"},
        ]})
    if path == "/repos/octo/demo/git/trees/dev":
        return httpx.Response(200, json={"truncated": False, "tree": [{"path": "README.md", "type": "blob"}]})
    if path == "/repos/octo/broken/branches":
        return httpx.Response(500, json={"message": "boom"})
    if path == "/repos/octo/offline/branches":
        raise httpx.ConnectError("connection refused", request=request)
    return httpx.Response(404, json={"message": "Not Found"})


def make_github(repo, token="test-token"):
    client = httpx.Client(base_url="https://api.github.com", transport=httpx.MockTransport(github_handler))
    return GitHubFS(repo, token, client=client)


@pytest.fixture
def plan():
    """Scenario plan: root with "Design" (0.0) and "Build" (0.1) -> "Write code" (0.1.0)."""
    p = Plan("Ship feature")
    p.add_subtask("0", "Design")
    p.add_subtask("0", "Build")
    p.add_subtask("0.1", "Write code")
    return p


@pytest.fixture
def cfg():
    return AgentConfig(
        main_goal="Ship feature",
        demo_delay=0,
        greptile_api_key="greptile-key",
        github_token="test-token",
    )


@pytest.fixture
def fake_openai():
    return FakeOpenAI(["1. Design the schema\n2. Write the migration\n3. Add tests"])


@pytest.fixture
def llm(fake_openai):
    return LLM(api_key="test", client=fake_openai)


@pytest.fixture
def fake_plugin():
    return FakePlugin(outputs={
        "octo/demo": b'Status: 200\nBody: {"message": "A demo repository."}',
        "octo/plain": b"indexing started",
    }, fail_for={"octo/broken"})


@pytest.fixture
def executor(cfg, llm, fake_plugin):
    return Executor(
        cfg,
        session=AgentSession(cfg.main_goal),
        llm=llm,
        plugin=PluginGateway(cfg, plugin=fake_plugin),
        github=make_github,
    )


@pytest.fixture
def client(executor):
    """TestClient whose app state is swapped for the test executor after startup."""
    from fastapi.testclient import TestClient

    from server.api import app

    with TestClient(app) as c:
        app.state.cfg = executor.cfg
        app.state.exec = executor
        yield c
