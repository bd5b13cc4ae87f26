"""
Gateway to the Greptile WASM plugin.

Each operation is its own request model; the plugin gets a JSON document on
its ``run`` export and answers with JSON, sometimes prefixed by a ``Body: ``
marker, or with plain text.
"""
from __future__ import annotations
import json
import logging
import time
from dataclasses import dataclass
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from ..config import AgentConfig
from ..errors import InvalidOperation, PluginError

logger = logging.getLogger(__name__)

BODY_MARKER = "Body: "


class IndexRequest(BaseModel):
    operation: Literal["index"] = "index"
    repository: str
    branch: str = "main"


class QueryRequest(BaseModel):
    operation: Literal["query"] = "query"
    repository: str
    branch: str = "main"
    query: str = Field(min_length=1)


class SearchRequest(BaseModel):
    operation: Literal["search"] = "search"
    repository: str
    branch: str = "main"
    query: str = Field(min_length=1)


PluginRequest = Annotated[Union[IndexRequest, QueryRequest, SearchRequest], Field(discriminator="operation")]
_request_adapter = TypeAdapter(PluginRequest)


def parse_request(data: dict) -> IndexRequest | QueryRequest | SearchRequest:
    try:
        return _request_adapter.validate_python(data)
    except ValidationError as e:
        raise InvalidOperation(f"invalid plugin request: {e.errors()[0]['msg']}") from e


def build_payload(request: IndexRequest | QueryRequest | SearchRequest, api_key: str, github_token: str) -> dict:
    payload: dict[str, Any] = {
        "operation": request.operation,
        "repository": request.repository,
        "remote": "github",
        "branch": request.branch,
        "api_key": api_key,
        "github_token": github_token,
    }
    if isinstance(request, QueryRequest):
        payload.update(
            messages=[{"id": "1", "content": request.query, "role": "user"}],
            session_id=_session_id(),
            stream=False,
            genius=True,
        )
    elif isinstance(request, SearchRequest):
        payload.update(query=request.query, session_id=_session_id(), stream=False)
    return payload


def parse_output(raw: bytes | str) -> dict | str:
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    idx = text.find(BODY_MARKER)
    if idx != -1:
        text = text[idx + len(BODY_MARKER):]
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return text
    return data if isinstance(data, dict) else text


def _session_id() -> str:
    return f"session-{int(time.time())}"


@dataclass
class RepoResult:
    repository: str
    ok: bool
    summary: str


class PluginGateway:
    def __init__(self, cfg: AgentConfig, plugin=None):
        self.cfg = cfg
        self._plugin = plugin

    def _open(self):
        if self._plugin is None:
            import extism

            manifest = {
                "wasm": [{"path": str(self.cfg.plugin_wasm_path)}],
                "allowed_hosts": list(self.cfg.plugin_allowed_hosts),
            }
            try:
                self._plugin = extism.Plugin(manifest, wasi=True)
            except Exception as e:
                raise PluginError(f"failed to load plugin {self.cfg.plugin_wasm_path}: {e}") from e
        return self._plugin

    def run(self, request: IndexRequest | QueryRequest | SearchRequest) -> dict | str:
        if not self.cfg.greptile_api_key or not self.cfg.github_token:
            raise PluginError("GREPTILE_API_KEY and GITHUB_TOKEN must be set")
        payload = build_payload(request, self.cfg.greptile_api_key, self.cfg.github_token)
        plugin = self._open()
        logger.info("plugin %s on %s@%s", request.operation, request.repository, request.branch)
        try:
            out = plugin.call("run", json.dumps(payload).encode("utf-8"))
        except Exception as e:
            logger.error(f"plugin call error: {e}")
            raise PluginError(f"plugin call error: {e}") from e
        return parse_output(out)

    def run_many(self, operation: str, repositories: list[str], branch: str = "main", query: Optional[str] = None) -> list[RepoResult]:
        results = []
        for repository in repositories:
            request = parse_request(
                {"operation": operation, "repository": repository, "branch": branch or "main", "query": query}
            )
            try:
                response = self.run(request)
            except PluginError as e:
                logger.warning("plugin failed for %s: %s", repository, e)
                results.append(RepoResult(repository, False, str(e)))
                continue
            if isinstance(response, dict) and isinstance(response.get("message"), str):
                results.append(RepoResult(repository, True, response["message"]))
            elif isinstance(response, str) and response.strip():
                results.append(RepoResult(repository, True, response.strip()))
            else:
                results.append(RepoResult(repository, True, "No summary available"))
        return results

    def close(self) -> None:
        # extism frees the plugin instance when it is garbage collected
        self._plugin = None
