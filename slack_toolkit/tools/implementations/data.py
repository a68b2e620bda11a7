"""
Read-only data tools: thread replies, channels, users and profiles
"""
from typing import Dict, Any, Optional

from pydantic import BaseModel, Field, field_validator

from ..base import ValidatedTool
from ..exceptions import ToolExecutionError
from ..schemas import (
    ToolContext, ToolExecutionResult, CHANNEL_PATTERN, TS_PATTERN, USER_PATTERN, check_pattern
)
from ...slack.threads import trim_message


def _next_cursor(response: Dict[str, Any]) -> Optional[str]:
    return (response.get("response_metadata") or {}).get("next_cursor") or None


class GetThreadRepliesParams(BaseModel):
    channel: str
    ts: str
    inclusive: bool = True
    limit: int = Field(default=100, ge=1, le=1000)
    oldest: Optional[str] = None
    cursor: Optional[str] = None

    @field_validator("channel")
    def validate_channel(cls, v):
        return check_pattern(v.strip(), CHANNEL_PATTERN, "channel ID")

    @field_validator("ts")
    def validate_ts(cls, v):
        return check_pattern(v, TS_PATTERN, "thread timestamp")


class GetThreadRepliesTool(ValidatedTool):
    """Fetch one page of a thread via conversations.replies"""
    params_model = GetThreadRepliesParams

    async def execute_impl(self, params: GetThreadRepliesParams, context: ToolContext) -> ToolExecutionResult:
        client = self.require_client()
        response = await client.get_conversation_replies(
            params.channel,
            params.ts,
            inclusive=params.inclusive,
            limit=params.limit,
            oldest=params.oldest,
            cursor=params.cursor,
        )
        if not response.get("ok"):
            return self.api_error(response, "get thread replies")

        messages = response.get("messages") or []
        return ToolExecutionResult.success_result({
            "channel": params.channel,
            "thread_ts": params.ts,
            "messages": [trim_message(m) for m in messages],
            "reply_count": max(0, len(messages) - 1),
            "has_more": bool(response.get("has_more")),
            "next_cursor": _next_cursor(response),
        }, api_calls=1)


class ListWorkspaceChannelsParams(BaseModel):
    include_private: bool = False
    include_archived: bool = False
    limit: int = Field(default=100, ge=1, le=1000)
    cursor: Optional[str] = None


class ListWorkspaceChannelsTool(ValidatedTool):
    """List channels visible to the authenticated user"""
    params_model = ListWorkspaceChannelsParams

    async def execute_impl(self, params: ListWorkspaceChannelsParams, context: ToolContext) -> ToolExecutionResult:
        client = self.require_client()
        types = "public_channel,private_channel" if params.include_private else "public_channel"
        response = await client.list_channels(
            types=types,
            exclude_archived=not params.include_archived,
            limit=params.limit,
            cursor=params.cursor,
        )
        if not response.get("ok"):
            return self.api_error(response, "list channels")

        channels = [
            {
                "id": channel.get("id"),
                "name": channel.get("name"),
                "is_private": bool(channel.get("is_private")),
                "is_archived": bool(channel.get("is_archived")),
                "is_member": bool(channel.get("is_member")),
                "num_members": channel.get("num_members"),
                "topic": (channel.get("topic") or {}).get("value", ""),
                "purpose": (channel.get("purpose") or {}).get("value", ""),
            }
            for channel in response.get("channels") or []
        ]
        return ToolExecutionResult.success_result({
            "channels": channels,
            "total": len(channels),
            "next_cursor": _next_cursor(response),
        }, api_calls=1)


class ListWorkspaceUsersParams(BaseModel):
    include_bots: bool = False
    include_deleted: bool = False
    limit: int = Field(default=100, ge=1, le=1000)
    cursor: Optional[str] = None


class ListWorkspaceUsersTool(ValidatedTool):
    """List workspace members; deactivated users and bots are hidden unless asked for"""
    params_model = ListWorkspaceUsersParams

    async def execute_impl(self, params: ListWorkspaceUsersParams, context: ToolContext) -> ToolExecutionResult:
        client = self.require_client()
        response = await client.list_users(limit=params.limit, cursor=params.cursor)
        if not response.get("ok"):
            return self.api_error(response, "list users")

        members = response.get("members") or []
        if not params.include_deleted:
            members = [m for m in members if not m.get("deleted")]
        if not params.include_bots:
            members = [m for m in members if not m.get("is_bot") and m.get("id") != "USLACKBOT"]

        users = []
        for member in members:
            profile = member.get("profile") or {}
            users.append({
                "id": member.get("id"),
                "name": member.get("name"),
                "real_name": member.get("real_name") or profile.get("real_name"),
                "display_name": profile.get("display_name"),
                "is_bot": bool(member.get("is_bot")),
                "deleted": bool(member.get("deleted")),
                "tz": member.get("tz"),
            })

        return ToolExecutionResult.success_result({
            "users": users,
            "total": len(users),
            "next_cursor": _next_cursor(response),
        }, api_calls=1)


class GetUserProfileParams(BaseModel):
    user_id: str

    @field_validator("user_id")
    def validate_user_id(cls, v):
        return check_pattern(v.strip(), USER_PATTERN, "user ID")


class GetUserProfileTool(ValidatedTool):
    """Display name and account name for one user"""
    params_model = GetUserProfileParams

    async def execute_impl(self, params: GetUserProfileParams, context: ToolContext) -> ToolExecutionResult:
        client = self.require_client()
        response = await client.get_user_info(params.user_id)
        if not response.get("ok"):
            return self.api_error(response, "get user profile")

        user = response.get("user")
        if not user:
            raise ToolExecutionError(f"Slack returned no user data for {params.user_id}", self.name)
        profile = user.get("profile") or {}
        email = profile.get("email") or ""

        return ToolExecutionResult.success_result({
            "user_id": params.user_id,
            "display_name": profile.get("display_name") or profile.get("real_name") or user.get("real_name") or "",
            "real_name": profile.get("real_name") or user.get("real_name") or "",
            "account": email.split("@")[0] if email else user.get("name", ""),
            "title": profile.get("title", ""),
            "tz": user.get("tz"),
        }, api_calls=1)
