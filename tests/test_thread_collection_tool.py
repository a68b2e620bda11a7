"""Tests for the thread collection tools run through the registry."""
import asyncio
import json

import httpx
import pytest

from slack_toolkit.slack.client import SlackClient
from slack_toolkit.tools.definitions import get_default_definitions
from slack_toolkit.tools.registry import build_registry
from slack_toolkit.tools.schemas import ErrorCode

ROOT = "1754010000.000100"


def collected(envelope):
    assert envelope["isError"] is False, envelope
    return json.loads(envelope["content"][0]["text"])


def error_text(envelope) -> str:
    assert envelope["isError"] is True, envelope
    return envelope["content"][0]["text"]


@pytest.fixture
def channel_with_thread(slack_stub):
    parent = {"user": "U1", "ts": ROOT, "text": "Deploy to prod?", "reply_count": 3, "thread_ts": ROOT}
    replies = [
        {"user": "U2", "ts": "1754010100.000100", "text": "on it", "thread_ts": ROOT},
        {"user": "U3", "ts": "1754010200.000100", "text": "rollback needed", "thread_ts": ROOT},
        {"user": "U2", "ts": "1754010300.000100", "text": "done", "thread_ts": ROOT},
    ]
    slack_stub.routes["conversations.history"] = {"ok": True, "messages": [parent, replies[-1]]}
    slack_stub.routes["conversations.replies"] = {"ok": True, "messages": [parent] + replies}
    return slack_stub


class TestCollectThreadsByTimeRange:
    async def test_collects_thread_with_replies(self, registry, channel_with_thread):
        envelope = await registry.execute_tool("collect_threads_by_timerange", {
            "channel": "C123",
            "start_date": "2025-08-01T00:00:00Z",
            "end_date": "2025-08-02T00:00:00Z",
        })
        data = collected(envelope)

        assert len(data["threads"]) == 1
        assert data["threads"][0]["thread_ts"] == ROOT
        assert data["threads"][0]["thread_stats"]["reply_count"] == 3
        assert data["threads"][0]["thread_stats"]["participant_count"] == 3
        assert data["time_range"]["duration_hours"] == 24.0
        assert channel_with_thread.endpoints() == ["conversations.history", "conversations.replies"]

    async def test_unix_timestamps_accepted(self, registry, channel_with_thread):
        envelope = await registry.execute_tool("collect_threads_by_timerange", {
            "channel": "C123",
            "start_date": 1754006400,
            "end_date": "1754092800.5",
        })
        collected(envelope)
        history = channel_with_thread.params_for("conversations.history")[0]
        assert history["oldest"] == "1754006400"
        assert history["latest"] == "1754092800.5"

    async def test_reversed_range_fails_before_any_request(self, registry, slack_stub):
        envelope = await registry.execute_tool("collect_threads_by_timerange", {
            "channel": "C123",
            "start_date": "2025-08-02T00:00:00Z",
            "end_date": "2025-08-01T00:00:00Z",
        })
        text = error_text(envelope)
        assert text.startswith("Error [VALIDATION_ERROR]")
        assert "start_date must be before end_date" in text
        assert slack_stub.calls == []

    @pytest.mark.parametrize("tool, extra", [
        ("collect_threads_by_timerange", {}),
        ("collect_threads_by_keyword", {"keywords": ["deploy"]}),
    ])
    async def test_out_of_range_unix_value_fails_before_any_request(self, registry, slack_stub, tool, extra):
        args = {"channel": "C123", "start_date": "1", "end_date": "300000000000"}
        args.update(extra)
        text = error_text(await registry.execute_tool(tool, args))
        assert text.startswith("Error [VALIDATION_ERROR]")
        assert "out of range" in text
        assert slack_stub.calls == []

    @pytest.mark.parametrize("overrides", [
        {"channel": "general"},
        {"start_date": "someday"},
        {"max_threads": 0},
        {"max_threads": 101},
        {"keywords": []},
        {"keywords": [str(n) for n in range(11)]},
        {"match_type": "some"},
    ])
    async def test_invalid_arguments(self, registry, slack_stub, overrides):
        args = {"channel": "C123", "start_date": "2025-08-01", "end_date": "2025-08-02"}
        args.update(overrides)
        envelope = await registry.execute_tool("collect_threads_by_timerange", args)
        assert error_text(envelope).startswith("Error [VALIDATION_ERROR]")
        assert slack_stub.calls == []

    async def test_keyword_filter_applies(self, registry, channel_with_thread):
        args = {"channel": "C123", "start_date": "2025-08-01", "end_date": "2025-08-02"}

        kept = collected(await registry.execute_tool(
            "collect_threads_by_timerange", dict(args, keywords=["ROLLBACK"])
        ))
        assert len(kept["threads"]) == 1

        dropped = collected(await registry.execute_tool(
            "collect_threads_by_timerange", dict(args, keywords=["rollback", "outage"], match_type="all")
        ))
        assert dropped["threads"] == []
        assert dropped["collection_summary"]["match_type"] == "all"

    async def test_history_error_is_api_error(self, registry, slack_stub):
        slack_stub.routes["conversations.history"] = {"ok": False, "error": "channel_not_found"}
        result = await registry.run_tool("collect_threads_by_timerange", {
            "channel": "C404", "start_date": "2025-08-01", "end_date": "2025-08-02",
        })
        assert result.error_code.value == "API_ERROR"
        assert "channel_not_found" in result.error
        assert result.metadata.api_calls == 1

    async def test_upstream_429_is_rate_limited(self, registry, slack_stub):
        slack_stub.routes["conversations.history"] = httpx.Response(
            429, headers={"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"}
        )
        result = await registry.run_tool("collect_threads_by_timerange", {
            "channel": "C123", "start_date": "2025-08-01", "end_date": "2025-08-02",
        })
        assert result.error_code.value == "RATE_LIMITED"

    async def test_auth_failure_is_auth_error(self, registry, slack_stub):
        slack_stub.routes["conversations.history"] = {"ok": False, "error": "invalid_auth"}
        result = await registry.run_tool("collect_threads_by_timerange", {
            "channel": "C123", "start_date": "2025-08-01", "end_date": "2025-08-02",
        })
        assert result.error_code.value == "AUTH_ERROR"

    async def test_metrics_recorded(self, registry, channel_with_thread):
        await registry.execute_tool("collect_threads_by_timerange", {
            "channel": "C123", "start_date": "2025-08-01", "end_date": "2025-08-02",
        })
        metrics = registry.get_tool_metrics("collect_threads_by_timerange")
        assert metrics["execution_count"] == 1
        assert metrics["error_count"] == 0


class TestCollectThreadsByKeyword:
    async def test_collects_search_hits(self, registry, slack_stub, channel_with_thread):
        slack_stub.routes["search.messages"] = {
            "ok": True,
            "messages": {"matches": [{"ts": "1754010200.000100", "thread_ts": ROOT, "text": "rollback needed"}]},
        }
        data = collected(await registry.execute_tool("collect_threads_by_keyword", {
            "channel": "C123",
            "keywords": ["rollback"],
            "start_date": "2025-08-01",
            "end_date": "2025-08-02",
        }))

        assert data["threads"][0]["thread_ts"] == ROOT
        assert data["threads"][0]["keyword_matches"] == ["rollback"]
        assert data["search_query"] == "in:<#C123> after:2025-07-31 before:2025-08-03 rollback"

    async def test_keywords_required(self, registry, slack_stub):
        envelope = await registry.execute_tool("collect_threads_by_keyword", {
            "channel": "C123", "start_date": "2025-08-01", "end_date": "2025-08-02",
        })
        assert error_text(envelope).startswith("Error [VALIDATION_ERROR]")
        assert slack_stub.calls == []

    async def test_search_failure_is_search_error(self, registry, slack_stub):
        slack_stub.routes["search.messages"] = {"ok": False, "error": "not_allowed_token_type"}
        envelope = await registry.execute_tool("collect_threads_by_keyword", {
            "channel": "C123",
            "keywords": ["deploy"],
            "start_date": "2025-08-01",
            "end_date": "2025-08-02",
        })
        text = error_text(envelope)
        assert text.startswith("Error [SEARCH_ERROR]")
        assert "not_allowed_token_type" in text


class TestDeadline:
    async def test_deadline_cancels_in_flight_slack_request(self, slack_tokens, make_settings):
        events = []

        async def hanging_slack(request):
            events.append("started")
            try:
                await asyncio.sleep(30)
            except asyncio.CancelledError:
                events.append("cancelled")
                raise
            return httpx.Response(200, json={"ok": True, "messages": []})

        client = SlackClient(slack_tokens, transport=httpx.MockTransport(hanging_slack))
        definitions = [
            d.model_copy(update={"timeout_seconds": 0.05}) if d.name == "collect_threads_by_timerange" else d
            for d in get_default_definitions()
        ]
        registry = build_registry(make_settings(), client=client, definitions=definitions)

        result = await registry.run_tool("collect_threads_by_timerange", {
            "channel": "C123", "start_date": "2025-08-01", "end_date": "2025-08-02",
        })

        assert result.error_code == ErrorCode.TOOL_TIMEOUT
        assert "timed out after 0.05 seconds" in result.error
        assert events == ["started", "cancelled"]
        assert registry.get_stats()["in_flight"] == 0
        await client.aclose()
