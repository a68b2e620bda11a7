"""
Slack Web API access: credentials, HTTP client and thread collection
"""
from .errors import SlackError, SlackRequestError, SlackRateLimitedError, SlackAuthError
from .auth import SlackAuth, SlackTokens, SlackAuthResult
from .client import SlackClient
from .threads import (
    ThreadCollector,
    TimeRange,
    TimeRangeError,
    SlackApiError,
    parse_time_range,
    identify_active_threads,
    extract_thread_roots_from_search,
    build_thread_aggregate,
    build_search_query,
)

__all__ = [
    'SlackError',
    'SlackRequestError',
    'SlackRateLimitedError',
    'SlackAuthError',
    'SlackAuth',
    'SlackTokens',
    'SlackAuthResult',
    'SlackClient',
    'ThreadCollector',
    'TimeRange',
    'TimeRangeError',
    'SlackApiError',
    'parse_time_range',
    'identify_active_threads',
    'extract_thread_roots_from_search',
    'build_thread_aggregate',
    'build_search_query',
]
