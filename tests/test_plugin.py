"""
Tests for the indexing plugin gateway.
"""

import pytest

from autodev.config import AgentConfig
from autodev.errors import InvalidOperation, PluginError
from autodev.tools.plugin import (
    IndexRequest,
    PluginGateway,
    QueryRequest,
    SearchRequest,
    build_payload,
    parse_output,
    parse_request,
)

from conftest import FakePlugin


class TestRequests:

    def test_parse_by_operation(self):
        assert isinstance(parse_request({"operation": "index", "repository": "o/r"}), IndexRequest)
        assert isinstance(parse_request({"operation": "query", "repository": "o/r", "query": "q"}), QueryRequest)
        assert isinstance(parse_request({"operation": "search", "repository": "o/r", "query": "q"}), SearchRequest)

    def test_unknown_operation(self):
        with pytest.raises(InvalidOperation):
            parse_request({"operation": "delete", "repository": "o/r"})

    def test_query_requires_query(self):
        with pytest.raises(InvalidOperation):
            parse_request({"operation": "query", "repository": "o/r"})

    @pytest.mark.parametrize("operation", ["query", "search"])
    def test_query_must_not_be_empty(self, operation):
        with pytest.raises(InvalidOperation):
            parse_request({"operation": operation, "repository": "o/r", "query": ""})


class TestPayload:

    def test_index(self):
        payload = build_payload(IndexRequest(repository="o/r", branch="dev"), "key", "tok")
        assert payload == {
            "operation": "index",
            "repository": "o/r",
            "remote": "github",
            "branch": "dev",
            "api_key": "key",
            "github_token": "tok",
        }

    def test_query(self):
        payload = build_payload(QueryRequest(repository="o/r", query="where is auth?"), "key", "tok")
        assert payload["messages"] == [{"id": "1", "content": "where is auth?", "role": "user"}]
        assert payload["session_id"].startswith("session-")
        assert payload["stream"] is False
        assert payload["genius"] is True
        assert "query" not in payload

    def test_search(self):
        payload = build_payload(SearchRequest(repository="o/r", query="auth"), "key", "tok")
        assert payload["query"] == "auth"
        assert payload["stream"] is False
        assert "messages" not in payload
        assert "genius" not in payload


class TestParseOutput:

    def test_json(self):
        assert parse_output(b'{"message": "hi"}') == {"message": "hi"}

    def test_body_marker(self):
        assert parse_output('HTTP 200\nBody: {"message": "hi"}') == {"message": "hi"}

    def test_plain_text(self):
        assert parse_output(b"queued") == "queued"

    def test_non_object_json_is_text(self):
        assert parse_output(b"[1, 2]") == "[1, 2]"


class TestGateway:

    def test_run_calls_plugin_run_export(self, cfg):
        plugin = FakePlugin()
        result = PluginGateway(cfg, plugin=plugin).run(IndexRequest(repository="octo/demo"))
        assert result == {"message": "ok"}
        name, payload = plugin.calls[0]
        assert name == "run"
        assert payload["api_key"] == "greptile-key"
        assert payload["github_token"] == "test-token"

    def test_run_requires_credentials(self):
        gateway = PluginGateway(AgentConfig(), plugin=FakePlugin())
        with pytest.raises(PluginError, match="GREPTILE_API_KEY"):
            gateway.run(IndexRequest(repository="octo/demo"))

    def test_plugin_failure(self, cfg):
        gateway = PluginGateway(cfg, plugin=FakePlugin(fail_for={"octo/demo"}))
        with pytest.raises(PluginError, match="wasm trap"):
            gateway.run(IndexRequest(repository="octo/demo"))

    def test_run_many_collects_per_repository(self, cfg, fake_plugin):
        gateway = PluginGateway(cfg, plugin=fake_plugin)
        results = gateway.run_many("query", ["octo/demo", "octo/broken", "octo/plain", "octo/other"], query="what?")
        assert [(r.repository, r.ok) for r in results] == [
            ("octo/demo", True), ("octo/broken", False), ("octo/plain", True), ("octo/other", True),
        ]
        assert results[0].summary == "A demo repository."
        assert "wasm trap" in results[1].summary
        assert results[2].summary == "indexing started"
        assert results[3].summary == "ok"
        assert len(fake_plugin.calls) == 4

    def test_run_many_without_message(self, cfg):
        gateway = PluginGateway(cfg, plugin=FakePlugin(outputs={"o/r": b'{"status": "done"}'}))
        assert gateway.run_many("index", ["o/r"])[0].summary == "No summary available"

    def test_run_many_rejects_unknown_operation(self, cfg):
        with pytest.raises(InvalidOperation):
            PluginGateway(cfg, plugin=FakePlugin()).run_many("drop", ["o/r"])

    @pytest.mark.parametrize("operation", ["query", "search"])
    def test_run_many_without_query_never_reaches_plugin(self, cfg, operation):
        plugin = FakePlugin()
        with pytest.raises(InvalidOperation):
            PluginGateway(cfg, plugin=plugin).run_many(operation, ["o/r"])
        assert plugin.calls == []
