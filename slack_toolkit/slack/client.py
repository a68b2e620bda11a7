"""
Slack Web API client

All calls go through `request(endpoint, params)`, a form-encoded POST that
returns the decoded JSON payload untouched (including `ok` / `error`).
Callers decide how to treat `ok: false`; only transport failures raise.
"""
import json
import logging
import math
from typing import Dict, Any, Optional, List

import httpx

from ..config.settings import SlackSettings
from .auth import SlackTokens
from .errors import SlackRequestError, SlackRateLimitedError

logger = logging.getLogger(__name__)


def _encode_params(params: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """Flatten params into form fields the way Slack expects them"""
    encoded: Dict[str, str] = {}
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            encoded[key] = "true" if value else "false"
        elif isinstance(value, (list, dict)):
            encoded[key] = json.dumps(value)
        else:
            encoded[key] = str(value)
    return encoded


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Seconds from a Retry-After header; None when absent or given as an HTTP-date"""
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        return None
    if math.isnan(seconds) or seconds < 0:
        return None
    return seconds


class SlackClient:
    """Authenticated async client for the Slack Web API"""

    def __init__(self,
                 tokens: SlackTokens,
                 base_url: str = "https://slack.com/api",
                 timeout: float = 30.0,
                 user_agent: Optional[str] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.tokens = tokens
        self.base_url = base_url.rstrip("/")
        headers = {
            "Authorization": f"Bearer {tokens.xoxc}",
            "Cookie": f"d={tokens.xoxd}",
        }
        if user_agent:
            headers["User-Agent"] = user_agent
        self._http = httpx.AsyncClient(timeout=timeout, headers=headers, transport=transport)
        self.request_count = 0

    @classmethod
    def from_settings(cls,
                      tokens: SlackTokens,
                      slack_settings: SlackSettings,
                      transport: Optional[httpx.AsyncBaseTransport] = None) -> "SlackClient":
        return cls(
            tokens,
            base_url=slack_settings.base_url,
            timeout=slack_settings.timeout,
            user_agent=slack_settings.user_agent,
            transport=transport,
        )

    async def request(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Call a Slack Web API method

        Args:
            endpoint: API method name, e.g. "conversations.history"
            params: Method arguments; None values are dropped

        Returns:
            Dict[str, Any]: Decoded JSON response

        Raises:
            SlackRateLimitedError: On HTTP 429
            SlackRequestError: On transport errors, other non-2xx statuses or a non-JSON body
        """
        method = endpoint.strip().lstrip("/")
        url = f"{self.base_url}/{method}"
        self.request_count += 1

        try:
            response = await self._http.post(url, data=_encode_params(params))
        except httpx.TimeoutException:
            raise SlackRequestError(f"Request to {method} timed out", method)
        except httpx.RequestError as e:
            raise SlackRequestError(f"Request to {method} failed: {e}", method)

        if response.status_code == 429:
            raise SlackRateLimitedError(method, _parse_retry_after(response.headers.get("Retry-After")))

        if response.status_code >= 400:
            raise SlackRequestError(f"HTTP {response.status_code}: {response.reason_phrase}", method, response.status_code)

        try:
            data = response.json()
        except ValueError:
            raise SlackRequestError(f"Invalid JSON response from {method}", method, response.status_code)

        if not isinstance(data, dict):
            raise SlackRequestError(f"Unexpected response shape from {method}", method, response.status_code)

        if not data.get("ok"):
            logger.debug(f"Slack method {method} returned error: {data.get('error')}")

        return data

    # Conversations

    async def get_conversation_history(self,
                                       channel: str,
                                       oldest: Optional[str] = None,
                                       latest: Optional[str] = None,
                                       inclusive: bool = True,
                                       limit: int = 100,
                                       cursor: Optional[str] = None) -> Dict[str, Any]:
        return await self.request("conversations.history", {
            "channel": channel,
            "oldest": oldest,
            "latest": latest,
            "inclusive": inclusive,
            "limit": limit,
            "cursor": cursor,
        })

    async def get_conversation_replies(self,
                                       channel: str,
                                       thread_ts: str,
                                       inclusive: bool = True,
                                       limit: int = 100,
                                       oldest: Optional[str] = None,
                                       latest: Optional[str] = None,
                                       cursor: Optional[str] = None) -> Dict[str, Any]:
        return await self.request("conversations.replies", {
            "channel": channel,
            "ts": thread_ts,
            "inclusive": inclusive,
            "limit": limit,
            "oldest": oldest,
            "latest": latest,
            "cursor": cursor,
        })

    async def list_channels(self,
                            types: str = "public_channel",
                            exclude_archived: bool = True,
                            limit: int = 100,
                            cursor: Optional[str] = None) -> Dict[str, Any]:
        return await self.request("conversations.list", {
            "types": types,
            "exclude_archived": exclude_archived,
            "limit": limit,
            "cursor": cursor,
        })

    # Messaging

    async def post_message(self,
                           channel: str,
                           text: str,
                           thread_ts: Optional[str] = None,
                           blocks: Optional[List[Dict[str, Any]]] = None,
                           attachments: Optional[List[Dict[str, Any]]] = None,
                           unfurl_links: Optional[bool] = None) -> Dict[str, Any]:
        return await self.request("chat.postMessage", {
            "channel": channel,
            "text": text,
            "thread_ts": thread_ts,
            "blocks": blocks or None,
            "attachments": attachments or None,
            "unfurl_links": unfurl_links,
        })

    async def update_message(self,
                             channel: str,
                             ts: str,
                             text: str,
                             blocks: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
        return await self.request("chat.update", {
            "channel": channel,
            "ts": ts,
            "text": text,
            "blocks": blocks or None,
        })

    async def delete_message(self, channel: str, ts: str) -> Dict[str, Any]:
        return await self.request("chat.delete", {"channel": channel, "ts": ts})

    async def add_reaction(self, channel: str, ts: str, name: str) -> Dict[str, Any]:
        return await self.request("reactions.add", {"channel": channel, "timestamp": ts, "name": name})

    # Users

    async def list_users(self, limit: int = 100, cursor: Optional[str] = None) -> Dict[str, Any]:
        return await self.request("users.list", {"limit": limit, "cursor": cursor, "include_locale": True})

    async def get_user_info(self, user_id: str) -> Dict[str, Any]:
        return await self.request("users.info", {"user": user_id, "include_locale": True})

    # Search

    async def search_messages(self,
                              query: str,
                              count: int = 20,
                              page: int = 1,
                              sort: str = "score",
                              sort_dir: str = "desc",
                              highlight: bool = False) -> Dict[str, Any]:
        return await self.request("search.messages", {
            "query": query,
            "count": count,
            "page": page,
            "sort": sort,
            "sort_dir": sort_dir,
            "highlight": highlight,
        })

    async def test_connection(self) -> bool:
        """Return True when auth.test succeeds"""
        try:
            response = await self.request("auth.test")
        except SlackRequestError as e:
            logger.warning(f"Slack connection test failed: {e.message}")
            return False
        return bool(response.get("ok"))

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "SlackClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
