"""
Thread collection over a channel time range

The collector works in steps: scan channel history inside the time range,
identify the threads that saw activity, fetch each thread's full reply list
in small concurrent batches, then optionally filter by keywords. A collector
instance lives for a single call and carries that call's API call counter.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Dict, Any, List, Optional, Iterable
from urllib.parse import urlparse, parse_qs

from ..config.settings import CollectionSettings
from .client import SlackClient

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
PREVIEW_LENGTH = 100


class TimeRangeError(ValueError):
    """Raised when a time range cannot be parsed or is empty"""
    pass


class SlackApiError(Exception):
    """Raised when Slack answers a collection request with ok: false"""

    def __init__(self, endpoint: str, error: str):
        self.endpoint = endpoint
        self.error = error
        super().__init__(f"Slack API error on {endpoint}: {error}")


@dataclass(frozen=True)
class TimeRange:
    """A closed span of Slack timestamps with exact decimal precision"""
    start: Decimal
    end: Decimal

    @property
    def oldest(self) -> str:
        return format(self.start, "f")

    @property
    def latest(self) -> str:
        return format(self.end, "f")

    @property
    def start_datetime(self) -> datetime:
        return _to_datetime(self.start)

    @property
    def end_datetime(self) -> datetime:
        return _to_datetime(self.end)

    @property
    def duration_hours(self) -> float:
        return round(float(self.end - self.start) / 3600, 2)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start_datetime.isoformat(),
            "end": self.end_datetime.isoformat(),
            "duration_hours": self.duration_hours,
        }


def _to_datetime(value: Decimal) -> datetime:
    seconds = int(value)
    micros = int((value - seconds) * 1_000_000)
    return EPOCH + timedelta(seconds=seconds, microseconds=micros)


def parse_timestamp(value: Any) -> Decimal:
    """
    Parse an ISO-8601 string or Unix seconds into a Decimal timestamp

    Strings containing '-' or 'T' are treated as ISO-8601; naive values are UTC.
    Anything else is read as Unix seconds.

    Raises:
        TimeRangeError: If the value cannot be parsed
    """
    if isinstance(value, bool):
        raise TimeRangeError(f"Invalid timestamp: {value!r}")
    if isinstance(value, (int, float, Decimal)):
        value = str(value)
    if not isinstance(value, str) or not value.strip():
        raise TimeRangeError(f"Invalid timestamp: {value!r}")

    text = value.strip()
    if "-" in text or "T" in text:
        if text.endswith("Z") or text.endswith("z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise TimeRangeError(f"Invalid ISO-8601 timestamp: {value!r}")
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        delta = parsed - EPOCH
        seconds = Decimal(delta.days * 86400 + delta.seconds)
        if delta.microseconds:
            seconds += Decimal(delta.microseconds) / Decimal(1_000_000)
        return seconds

    try:
        result = Decimal(text)
    except InvalidOperation:
        raise TimeRangeError(f"Invalid Unix timestamp: {value!r}")
    if not result.is_finite():
        raise TimeRangeError(f"Invalid Unix timestamp: {value!r}")
    try:
        _to_datetime(result)
    except (OverflowError, ValueError):
        raise TimeRangeError(f"Unix timestamp out of range: {value!r}")
    return result


def parse_time_range(start: Any, end: Any) -> TimeRange:
    """Parse both ends of a range; start must be strictly before end"""
    start_ts = parse_timestamp(start)
    end_ts = parse_timestamp(end)
    if start_ts >= end_ts:
        raise TimeRangeError("start_date must be before end_date")
    return TimeRange(start=start_ts, end=end_ts)


def identify_active_threads(messages: Iterable[Dict[str, Any]], max_threads: Optional[int] = None) -> List[str]:
    """
    Find thread roots among history messages

    A parent with replies contributes its own ts; a reply contributes its
    thread_ts. Order of first appearance is kept.
    """
    seen: Dict[str, None] = {}
    for message in messages:
        ts = message.get("ts")
        thread_ts = message.get("thread_ts")
        if (message.get("reply_count") or 0) > 0 and ts:
            seen.setdefault(ts, None)
        if thread_ts and thread_ts != ts:
            seen.setdefault(thread_ts, None)

    roots = list(seen)
    if max_threads is not None:
        roots = roots[:max_threads]
    return roots


def extract_thread_roots_from_search(matches: Iterable[Dict[str, Any]]) -> List[str]:
    """Find thread roots among search.messages matches, including permalink thread_ts"""
    seen: Dict[str, None] = {}
    for match in matches:
        ts = match.get("ts")
        thread_ts = match.get("thread_ts")
        if (match.get("reply_count") or 0) > 0 and ts:
            seen.setdefault(ts, None)
        if thread_ts and thread_ts != ts:
            seen.setdefault(thread_ts, None)

        permalink = match.get("permalink")
        if permalink:
            query = parse_qs(urlparse(permalink).query)
            for value in query.get("thread_ts", []):
                if value:
                    seen.setdefault(value, None)
    return list(seen)


def trim_message(message: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "user": message.get("user"),
        "ts": message.get("ts"),
        "text": message.get("text") or "",
        "thread_ts": message.get("thread_ts"),
    }


def build_thread_aggregate(thread_ts: str,
                           messages: List[Dict[str, Any]],
                           include_parent: bool = True,
                           include_metadata: bool = True) -> Dict[str, Any]:
    """Build the response entry for one fetched thread; messages[0] is the parent"""
    parent = messages[0]
    replies = messages[1:]

    aggregate: Dict[str, Any] = {
        "thread_ts": thread_ts,
        "messages": [trim_message(m) for m in (messages if include_parent else replies)],
    }
    if include_metadata:
        aggregate["thread_stats"] = {
            "reply_count": len(replies),
            "participant_count": len({m.get("user") for m in messages if m.get("user")}),
            "first_reply_ts": replies[0].get("ts") if replies else None,
            "last_reply_ts": replies[-1].get("ts") if replies else None,
            "parent_user": parent.get("user"),
            "parent_text_preview": (parent.get("text") or "")[:PREVIEW_LENGTH],
        }
    return aggregate


def _normalize_keywords(keywords: Iterable[str]) -> List[str]:
    return [k.strip().lower() for k in keywords if k and k.strip()]


def _thread_text(messages: Iterable[Dict[str, Any]]) -> str:
    return " ".join((m.get("text") or "").lower() for m in messages)


def identify_keyword_matches(messages: Iterable[Dict[str, Any]], keywords: Iterable[str]) -> List[str]:
    """Return the keywords (lowercased) that appear anywhere in the thread text"""
    text = _thread_text(messages)
    return [k for k in _normalize_keywords(keywords) if k in text]


def thread_matches_keywords(messages: Iterable[Dict[str, Any]], keywords: Iterable[str], match_type: str = "any") -> bool:
    normalized = _normalize_keywords(keywords)
    if not normalized:
        return True
    text = _thread_text(messages)
    if match_type == "all":
        return all(k in text for k in normalized)
    return any(k in text for k in normalized)


def _shift_date(moment: datetime, days: int) -> date:
    try:
        return (moment + timedelta(days=days)).date()
    except OverflowError:
        return moment.date()


def build_search_query(channel: str, keywords: List[str], match_type: str, time_range: TimeRange) -> str:
    """
    Build a search.messages query limited to one channel and date window

    Slack's after:/before: operators exclude the named day, so the window is
    widened by one day on each side.
    """
    after = _shift_date(time_range.start_datetime, -1).isoformat()
    before = _shift_date(time_range.end_datetime, 1).isoformat()

    cleaned = [k.strip() for k in keywords if k and k.strip()]
    if match_type == "all" or len(cleaned) == 1:
        keyword_query = " ".join(cleaned)
    else:
        keyword_query = f"({' OR '.join(cleaned)})"

    return f"in:<#{channel}> after:{after} before:{before} {keyword_query}"


class ThreadCollector:
    """Runs one collection against a channel; create a new instance per call"""

    def __init__(self, client: SlackClient, channel: str, collection_settings: Optional[CollectionSettings] = None):
        self.client = client
        self.channel = channel
        self.settings = collection_settings or CollectionSettings()
        self.api_calls = 0
        self.failed_threads: List[str] = []

    async def scan_history(self, time_range: TimeRange) -> List[Dict[str, Any]]:
        """
        Page through conversations.history inside the range

        Raises:
            SlackApiError: If any page comes back with ok: false
        """
        messages: List[Dict[str, Any]] = []
        cursor: Optional[str] = None
        pages = 0

        while True:
            response = await self.client.get_conversation_history(
                self.channel,
                oldest=time_range.oldest,
                latest=time_range.latest,
                inclusive=True,
                limit=self.settings.history_page_size,
                cursor=cursor,
            )
            self.api_calls += 1
            pages += 1

            if not response.get("ok"):
                raise SlackApiError("conversations.history", response.get("error", "unknown_error"))

            messages.extend(response.get("messages") or [])
            cursor = (response.get("response_metadata") or {}).get("next_cursor") or None
            if not cursor:
                break
            if pages >= self.settings.max_history_pages:
                logger.warning(f"History scan for {self.channel} stopped after {pages} pages; results may be incomplete")
                break

        logger.debug(f"Scanned {len(messages)} messages in {pages} page(s) from {self.channel}")
        return messages

    async def fetch_thread(self, thread_ts: str) -> Optional[List[Dict[str, Any]]]:
        """Fetch all messages of one thread; None when Slack returns nothing usable"""
        self.api_calls += 1
        response = await self.client.get_conversation_replies(
            self.channel,
            thread_ts,
            inclusive=True,
            limit=self.settings.replies_page_size,
        )
        if not response.get("ok"):
            raise SlackApiError("conversations.replies", response.get("error", "unknown_error"))
        messages = response.get("messages") or []
        return messages or None

    async def fetch_threads(self, thread_roots: List[str]) -> List[Dict[str, Any]]:
        """
        Fetch threads in concurrent batches

        Each batch settles fully before the next begins. A thread that fails
        is logged and left out of the result.

        Returns:
            List of {"thread_ts", "messages"} dicts in root order
        """
        fetched: List[Dict[str, Any]] = []
        batch_size = max(1, self.settings.fetch_batch_size)

        for offset in range(0, len(thread_roots), batch_size):
            if offset > 0 and self.settings.inter_batch_delay_seconds > 0:
                await asyncio.sleep(self.settings.inter_batch_delay_seconds)

            batch = thread_roots[offset:offset + batch_size]
            results = await asyncio.gather(*(self.fetch_thread(ts) for ts in batch), return_exceptions=True)

            for thread_ts, result in zip(batch, results):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                if isinstance(result, Exception):
                    logger.warning(f"Failed to fetch thread {thread_ts} in {self.channel}: {result}")
                    self.failed_threads.append(thread_ts)
                    continue
                if result is None:
                    continue
                fetched.append({"thread_ts": thread_ts, "messages": result})

        return fetched

    async def collect(self,
                      time_range: TimeRange,
                      max_threads: int = 50,
                      keywords: Optional[List[str]] = None,
                      match_type: str = "any",
                      include_parent: bool = True,
                      include_metadata: bool = True) -> Dict[str, Any]:
        """Run the full time-range collection and return the response payload"""
        history = await self.scan_history(time_range)
        roots_found = identify_active_threads(history)
        roots = roots_found[:max_threads]

        threads = await self.fetch_threads(roots)

        if keywords:
            before = len(threads)
            threads = [t for t in threads if thread_matches_keywords(t["messages"], keywords, match_type)]
            logger.info(f"Keyword filter kept {len(threads)} of {before} threads")

        aggregates = [
            build_thread_aggregate(t["thread_ts"], t["messages"], include_parent, include_metadata)
            for t in threads
        ]

        summary: Dict[str, Any] = {
            "messages_in_range": len(history),
            "total_threads_found": len(roots_found),
            "threads_returned": len(aggregates),
            "total_messages_collected": sum(len(a["messages"]) for a in aggregates),
            "failed_threads": len(self.failed_threads),
            "collection_method": "history-scan-with-keywords" if keywords else "history-scan",
        }
        if keywords:
            summary["keywords_applied"] = list(keywords)
            summary["match_type"] = match_type

        return {
            "channel": self.channel,
            "time_range": time_range.to_dict(),
            "collection_summary": summary,
            "threads": aggregates,
        }

    async def collect_by_keyword(self,
                                 time_range: TimeRange,
                                 keywords: List[str],
                                 match_type: str = "any",
                                 max_threads: int = 20,
                                 include_parent: bool = True,
                                 search_count: int = 100) -> Dict[str, Any]:
        """
        Find threads through search.messages and fetch them

        Raises:
            SlackApiError: If the search comes back with ok: false
        """
        query = build_search_query(self.channel, keywords, match_type, time_range)
        logger.info(f"Searching {self.channel} with query: {query}")

        response = await self.client.search_messages(query, count=search_count, sort="timestamp", sort_dir="desc")
        self.api_calls += 1
        if not response.get("ok"):
            raise SlackApiError("search.messages", response.get("error", "unknown_error"))

        matches = (response.get("messages") or {}).get("matches") or []
        roots_found = extract_thread_roots_from_search(matches)
        threads = await self.fetch_threads(roots_found[:max_threads])

        aggregates = []
        for thread in threads:
            aggregate = build_thread_aggregate(thread["thread_ts"], thread["messages"], include_parent)
            aggregate["keyword_matches"] = identify_keyword_matches(thread["messages"], keywords)
            aggregates.append(aggregate)

        return {
            "channel": self.channel,
            "time_range": time_range.to_dict(),
            "search_query": query,
            "collection_summary": {
                "search_matches": len(matches),
                "total_threads_found": len(roots_found),
                "threads_returned": len(aggregates),
                "total_messages_collected": sum(len(a["messages"]) for a in aggregates),
                "failed_threads": len(self.failed_threads),
                "collection_method": "keyword-search",
                "keywords_applied": list(keywords),
                "match_type": match_type,
            },
            "threads": aggregates,
        }
