"""
Messaging tools: post, update and delete messages

Slack reports messaging failures as `ok: false` with an error string; the
well-known strings map to their own error codes so callers can react to
them without parsing messages.
"""
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from ..base import ValidatedTool, AUTH_FAILURES
from ..schemas import (
    ToolContext, ToolExecutionResult, ErrorCode, CHANNEL_PATTERN, TS_PATTERN, check_pattern
)

MAX_TEXT_LENGTH = 40000

SLACK_ERROR_CODES = {
    "channel_not_found": ErrorCode.CHANNEL_NOT_FOUND,
    "not_in_channel": ErrorCode.NOT_IN_CHANNEL,
    "ratelimited": ErrorCode.RATE_LIMITED,
    "rate_limited": ErrorCode.RATE_LIMITED,
    "message_not_found": ErrorCode.MESSAGE_NOT_FOUND,
    "cant_update_message": ErrorCode.CANT_UPDATE_MESSAGE,
    "cant_delete_message": ErrorCode.CANT_DELETE_MESSAGE,
}


def messaging_error(response: Dict[str, Any], action: str) -> ToolExecutionResult:
    """Failed result for a messaging call, with the most specific code available"""
    error = response.get("error", "unknown_error")
    if error in SLACK_ERROR_CODES:
        code = SLACK_ERROR_CODES[error]
    elif error in AUTH_FAILURES or "token" in error:
        code = ErrorCode.AUTH_ERROR
    else:
        code = ErrorCode.API_ERROR
    return ToolExecutionResult.error_result(f"Failed to {action}: {error}", code, api_calls=1)


class ChannelMessageParams(BaseModel):
    """Fields shared by tools that address a channel"""
    channel: str = Field(..., min_length=1)

    @field_validator("channel")
    def validate_channel(cls, v):
        return check_pattern(v.strip(), CHANNEL_PATTERN, "channel ID")


def _check_text(v: str) -> str:
    if not v.strip():
        raise ValueError("Message text is required")
    if len(v) > MAX_TEXT_LENGTH:
        raise ValueError("Message text exceeds 40,000 character limit")
    return v


class PostMessageParams(ChannelMessageParams):
    text: str
    thread_ts: Optional[str] = None
    blocks: Optional[List[Dict[str, Any]]] = None
    attachments: Optional[List[Dict[str, Any]]] = None
    unfurl_links: Optional[bool] = None

    @field_validator("text")
    def validate_text(cls, v):
        return _check_text(v)

    @field_validator("thread_ts")
    def validate_thread_ts(cls, v):
        if v is None:
            return v
        return check_pattern(v, TS_PATTERN, "thread_ts")


class UpdateMessageParams(ChannelMessageParams):
    ts: str
    text: str
    blocks: Optional[List[Dict[str, Any]]] = None

    @field_validator("ts")
    def validate_ts(cls, v):
        return check_pattern(v, TS_PATTERN, "message timestamp")

    @field_validator("text")
    def validate_text(cls, v):
        return _check_text(v)


class DeleteMessageParams(ChannelMessageParams):
    ts: str

    @field_validator("ts")
    def validate_ts(cls, v):
        return check_pattern(v, TS_PATTERN, "message timestamp")


class PostMessageTool(ValidatedTool):
    """Post a message to a channel, optionally as a thread reply"""
    params_model = PostMessageParams

    async def execute_impl(self, params: PostMessageParams, context: ToolContext) -> ToolExecutionResult:
        client = self.require_client()
        self._logger.info(
            f"[{context.trace_id}] Posting message to {params.channel} "
            f"(thread={bool(params.thread_ts)}, length={len(params.text)})"
        )

        response = await client.post_message(
            params.channel,
            params.text.strip(),
            thread_ts=params.thread_ts,
            blocks=params.blocks,
            attachments=params.attachments,
            unfurl_links=params.unfurl_links,
        )
        if not response.get("ok"):
            return messaging_error(response, "post message")

        message = response.get("message") or {}
        return ToolExecutionResult.success_result({
            "message": {
                "channel": response.get("channel"),
                "ts": response.get("ts"),
                "text": message.get("text"),
                "user": message.get("user"),
                "thread_ts": message.get("thread_ts"),
                "posted_at": datetime.now(timezone.utc).isoformat(),
            },
            "is_thread_reply": params.thread_ts is not None,
            "has_rich_formatting": bool(params.blocks or params.attachments),
        }, api_calls=1)


class UpdateMessageTool(ValidatedTool):
    """Replace the text of an existing message"""
    params_model = UpdateMessageParams

    async def execute_impl(self, params: UpdateMessageParams, context: ToolContext) -> ToolExecutionResult:
        client = self.require_client()
        response = await client.update_message(params.channel, params.ts, params.text.strip(), blocks=params.blocks)
        if not response.get("ok"):
            return messaging_error(response, "update message")

        return ToolExecutionResult.success_result({
            "channel": response.get("channel", params.channel),
            "ts": response.get("ts", params.ts),
            "text": response.get("text", params.text),
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }, api_calls=1)


class DeleteMessageTool(ValidatedTool):
    """Delete a message"""
    params_model = DeleteMessageParams

    async def execute_impl(self, params: DeleteMessageParams, context: ToolContext) -> ToolExecutionResult:
        client = self.require_client()
        response = await client.delete_message(params.channel, params.ts)
        if not response.get("ok"):
            return messaging_error(response, "delete message")

        self._logger.info(f"[{context.trace_id}] Deleted message {params.ts} in {params.channel}")
        return ToolExecutionResult.success_result({
            "channel": response.get("channel", params.channel),
            "ts": response.get("ts", params.ts),
            "deleted": True,
        }, api_calls=1)
