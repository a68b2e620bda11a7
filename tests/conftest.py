"""
Pytest configuration and fixtures
"""
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import parse_qs

import httpx
import pytest

from slack_toolkit.config.settings import CollectionSettings, Settings
from slack_toolkit.slack.auth import SlackTokens
from slack_toolkit.slack.client import SlackClient
from slack_toolkit.tools.registry import ToolRegistry, build_registry


class SlackStub:
    """
    In-memory Slack Web API

    Routes map a method name to a JSON payload, an httpx.Response, or a
    callable taking the decoded form params and returning either.
    Unknown methods answer ok: false.
    """

    def __init__(self, routes: Optional[Dict[str, Any]] = None):
        self.routes: Dict[str, Any] = dict(routes or {})
        self.calls: List[Tuple[str, Dict[str, str]]] = []
        self.headers: List[httpx.Headers] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        endpoint = request.url.path.rsplit("/", 1)[-1]
        params = {key: values[0] for key, values in parse_qs(request.content.decode()).items()}
        self.calls.append((endpoint, params))
        self.headers.append(request.headers)

        route = self.routes.get(endpoint)
        if route is None:
            return httpx.Response(200, json={"ok": False, "error": "unknown_method"})
        if callable(route):
            route = route(params)
        if isinstance(route, httpx.Response):
            return route
        return httpx.Response(200, json=route)

    def endpoints(self) -> List[str]:
        return [endpoint for endpoint, _ in self.calls]

    def params_for(self, endpoint: str) -> List[Dict[str, str]]:
        return [params for name, params in self.calls if name == endpoint]


@pytest.fixture
def slack_tokens() -> SlackTokens:
    return SlackTokens(xoxc="xoxc-test-token", xoxd="xoxd-test-cookie", team_domain="example")


@pytest.fixture
def slack_stub() -> SlackStub:
    return SlackStub()


@pytest.fixture
def slack_client(slack_stub, slack_tokens) -> SlackClient:
    return SlackClient(slack_tokens, transport=httpx.MockTransport(slack_stub.handler))


@pytest.fixture
def collection_settings() -> CollectionSettings:
    return CollectionSettings(inter_batch_delay_seconds=0)


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    """Settings with no batch delay; keyword args merge into the sub-settings"""
    def build(**overrides) -> Settings:
        collection = {"inter_batch_delay_seconds": 0}
        collection.update(overrides.pop("collection", {}))
        return Settings(collection=collection, **overrides)
    return build


@pytest.fixture
def registry(slack_client, make_settings) -> ToolRegistry:
    """Production tools wired to the stubbed Slack API"""
    return build_registry(make_settings(), client=slack_client)
