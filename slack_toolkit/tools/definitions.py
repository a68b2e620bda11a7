"""
Static tool definitions

Definitions exist independently of tool instances: the factory pairs each
one with an implementation class. Input schemas here are what callers see;
runtime checks live in each tool's parameter model.
"""
from typing import List

from .schemas import ToolDefinition, ToolCategory, RateLimitConfig, CHANNEL_PATTERN, USER_PATTERN, TS_PATTERN

TIMESTAMP_DESCRIPTION = "Accepts a Unix timestamp (1754006400.000000) or an ISO-8601 date (2025-08-01T00:00:00Z)"


def _channel_property(description: str = "Channel ID (e.g., C1234567890)") -> dict:
    return {"type": "string", "description": description, "pattern": CHANNEL_PATTERN}


def _ts_property(description: str) -> dict:
    return {"type": "string", "description": description, "pattern": TS_PATTERN}


# Messaging

def post_message_definition() -> ToolDefinition:
    return ToolDefinition(
        name="post_message",
        description="Post a message to a Slack channel or thread",
        category=ToolCategory.MESSAGING.value,
        tags=["messaging", "write"],
        rate_limit=RateLimitConfig.per_minute(50),
        input_schema={
            "type": "object",
            "properties": {
                "channel": _channel_property(),
                "text": {"type": "string", "description": "Message content to post", "minLength": 1, "maxLength": 40000},
                "thread_ts": _ts_property("Optional: reply inside this thread"),
                "blocks": {"type": "array", "description": "Optional: Block Kit blocks", "items": {"type": "object"}},
                "attachments": {"type": "array", "description": "Optional: legacy attachments", "items": {"type": "object"}},
                "unfurl_links": {"type": "boolean", "description": "Unfurl links in the message", "default": True},
            },
            "required": ["channel", "text"],
        },
    )


def update_message_definition() -> ToolDefinition:
    return ToolDefinition(
        name="update_message",
        description="Edit the text or blocks of an existing message",
        category=ToolCategory.MESSAGING.value,
        tags=["messaging", "write"],
        rate_limit=RateLimitConfig.per_minute(30),
        input_schema={
            "type": "object",
            "properties": {
                "channel": _channel_property(),
                "ts": _ts_property("Timestamp of the message to update"),
                "text": {"type": "string", "description": "New message text", "minLength": 1, "maxLength": 40000},
                "blocks": {"type": "array", "description": "Optional: replacement Block Kit blocks", "items": {"type": "object"}},
            },
            "required": ["channel", "ts", "text"],
        },
    )


def delete_message_definition() -> ToolDefinition:
    return ToolDefinition(
        name="delete_message",
        description="Delete a message",
        category=ToolCategory.MESSAGING.value,
        tags=["messaging", "write", "destructive"],
        rate_limit=RateLimitConfig.per_minute(20),
        input_schema={
            "type": "object",
            "properties": {
                "channel": _channel_property(),
                "ts": _ts_property("Timestamp of the message to delete"),
            },
            "required": ["channel", "ts"],
        },
    )


def react_to_message_definition() -> ToolDefinition:
    return ToolDefinition(
        name="react_to_message",
        description="Add an emoji reaction to a message (resolved, archived, important, urgent or a custom emoji)",
        category=ToolCategory.REACTIONS.value,
        tags=["reactions", "write"],
        rate_limit=RateLimitConfig.per_minute(30),
        input_schema={
            "type": "object",
            "properties": {
                "channel_id": _channel_property("Channel ID where the message is located"),
                "message_ts": _ts_property("Timestamp of the message to react to"),
                "reaction_type": {
                    "type": "string",
                    "enum": ["resolved", "archived", "important", "urgent", "custom"],
                    "description": "Reaction to add",
                },
                "custom_emoji": {"type": "string", "description": "Emoji name without colons, required when reaction_type is custom"},
            },
            "required": ["channel_id", "message_ts", "reaction_type"],
        },
    )


# Conversations, channels and users

def get_thread_replies_definition() -> ToolDefinition:
    return ToolDefinition(
        name="get_thread_replies",
        description="Get the replies of a thread using conversations.replies",
        category=ToolCategory.CONVERSATIONS.value,
        tags=["threads", "read"],
        rate_limit=RateLimitConfig(max_calls=50, window_ms=60_000),
        input_schema={
            "type": "object",
            "properties": {
                "channel": _channel_property("Channel ID containing the thread"),
                "ts": _ts_property("Thread timestamp, e.g. 1754661651.179039"),
                "inclusive": {"type": "boolean", "description": "Include messages at the boundary timestamps", "default": True},
                "limit": {"type": "integer", "description": "Maximum messages to return", "default": 100, "minimum": 1, "maximum": 1000},
                "oldest": {"type": "string", "description": "Only messages after this timestamp"},
                "cursor": {"type": "string", "description": "Pagination cursor"},
            },
            "required": ["channel", "ts"],
        },
    )


def list_workspace_channels_definition() -> ToolDefinition:
    return ToolDefinition(
        name="list_workspace_channels",
        description="List accessible channels in the Slack workspace",
        category=ToolCategory.CHANNELS.value,
        tags=["channels", "read"],
        rate_limit=RateLimitConfig(max_calls=10, window_ms=60_000),
        input_schema={
            "type": "object",
            "properties": {
                "include_private": {"type": "boolean", "description": "Include private channels", "default": False},
                "include_archived": {"type": "boolean", "description": "Include archived channels", "default": False},
                "limit": {"type": "integer", "description": "Maximum channels to return", "default": 100, "minimum": 1, "maximum": 1000},
                "cursor": {"type": "string", "description": "Pagination cursor"},
            },
        },
    )


def list_workspace_users_definition() -> ToolDefinition:
    return ToolDefinition(
        name="list_workspace_users",
        description="List users in the Slack workspace",
        category=ToolCategory.USERS.value,
        tags=["users", "read"],
        rate_limit=RateLimitConfig(max_calls=10, window_ms=60_000),
        input_schema={
            "type": "object",
            "properties": {
                "include_bots": {"type": "boolean", "description": "Include bot users", "default": False},
                "include_deleted": {"type": "boolean", "description": "Include deactivated users", "default": False},
                "limit": {"type": "integer", "description": "Maximum users to return", "default": 100, "minimum": 1, "maximum": 1000},
                "cursor": {"type": "string", "description": "Pagination cursor"},
            },
        },
    )


def get_user_profile_definition() -> ToolDefinition:
    return ToolDefinition(
        name="get_user_profile",
        description="Get a user's profile including display name and account username",
        category=ToolCategory.USERS.value,
        tags=["users", "read"],
        rate_limit=RateLimitConfig.per_minute(100),
        input_schema={
            "type": "object",
            "properties": {
                "user_id": {"type": "string", "description": "Slack user ID (e.g., U08SBN9MTUG)", "pattern": USER_PATTERN},
            },
            "required": ["user_id"],
        },
    )


# Search and collection

def search_messages_definition() -> ToolDefinition:
    return ToolDefinition(
        name="search_messages",
        description="Search messages with Slack search operators (in:, from:, before:, after:)",
        category=ToolCategory.SEARCH.value,
        tags=["search", "read"],
        rate_limit=RateLimitConfig(max_calls=20, window_ms=60_000),
        input_schema={
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Search query, e.g. \"in:#general before:2025-08-09 deploy\"", "minLength": 1},
                "count": {"type": "integer", "description": "Results per page", "default": 20, "minimum": 1, "maximum": 100},
                "page": {"type": "integer", "description": "Page number", "default": 1, "minimum": 1},
                "sort": {"type": "string", "enum": ["score", "timestamp"], "default": "score"},
                "sort_dir": {"type": "string", "enum": ["desc", "asc"], "default": "desc"},
            },
            "required": ["query"],
        },
    )


def collect_threads_by_timerange_definition() -> ToolDefinition:
    return ToolDefinition(
        name="collect_threads_by_timerange",
        description=(
            "Collect complete threads that had activity within a time range. Scans channel history, "
            "identifies threads with activity, then fetches every thread with all replies. "
            "Optional keywords filter the collected threads."
        ),
        category=ToolCategory.DATA_COLLECTION.value,
        tags=["threads", "collection", "read"],
        rate_limit=RateLimitConfig.per_minute(10),
        timeout_seconds=120.0,
        input_schema={
            "type": "object",
            "properties": {
                "channel": _channel_property("Channel ID where threads should be collected"),
                "start_date": {"type": "string", "description": f"Start of the period. {TIMESTAMP_DESCRIPTION}"},
                "end_date": {"type": "string", "description": f"End of the period. {TIMESTAMP_DESCRIPTION}"},
                "include_parent": {"type": "boolean", "description": "Include the parent message", "default": True},
                "include_metadata": {"type": "boolean", "description": "Include thread statistics", "default": True},
                "max_threads": {"type": "integer", "description": "Maximum threads to collect", "minimum": 1, "maximum": 100, "default": 50},
                "keywords": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Optional case-insensitive keywords to filter threads",
                    "minItems": 1,
                    "maxItems": 10,
                },
                "match_type": {"type": "string", "enum": ["any", "all"], "default": "any"},
            },
            "required": ["channel", "start_date", "end_date"],
        },
    )


def collect_threads_by_keyword_definition() -> ToolDefinition:
    return ToolDefinition(
        name="collect_threads_by_keyword",
        description=(
            "Collect threads containing keywords within a time range, using Slack search to find "
            "candidate threads and conversations.replies to fetch them"
        ),
        category=ToolCategory.DATA_COLLECTION.value,
        tags=["threads", "collection", "search", "read"],
        rate_limit=RateLimitConfig.per_minute(10),
        timeout_seconds=120.0,
        input_schema={
            "type": "object",
            "properties": {
                "channel": _channel_property("Channel ID where threads should be searched"),
                "keywords": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Keywords to search for",
                    "minItems": 1,
                    "maxItems": 10,
                },
                "match_type": {"type": "string", "enum": ["any", "all"], "default": "any"},
                "start_date": {"type": "string", "description": f"Start of the period. {TIMESTAMP_DESCRIPTION}"},
                "end_date": {"type": "string", "description": f"End of the period. {TIMESTAMP_DESCRIPTION}"},
                "max_threads": {"type": "integer", "description": "Maximum threads to return", "minimum": 1, "maximum": 50, "default": 20},
                "include_parent": {"type": "boolean", "description": "Include the parent message", "default": True},
            },
            "required": ["channel", "keywords", "start_date", "end_date"],
        },
    )


def get_default_definitions() -> List[ToolDefinition]:
    """All production tool definitions, in listing order"""
    return [
        post_message_definition(),
        update_message_definition(),
        delete_message_definition(),
        react_to_message_definition(),
        get_thread_replies_definition(),
        list_workspace_channels_definition(),
        list_workspace_users_definition(),
        get_user_profile_definition(),
        search_messages_definition(),
        collect_threads_by_timerange_definition(),
        collect_threads_by_keyword_definition(),
    ]


PRODUCTION_TOOL_NAMES = [
    "post_message",
    "update_message",
    "delete_message",
    "react_to_message",
    "get_thread_replies",
    "list_workspace_channels",
    "list_workspace_users",
    "get_user_profile",
    "search_messages",
    "collect_threads_by_timerange",
    "collect_threads_by_keyword",
]
