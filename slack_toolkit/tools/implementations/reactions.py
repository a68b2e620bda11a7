"""
Reaction tool
"""
from typing import Optional, Literal, List

from pydantic import BaseModel, field_validator

from ..base import ValidatedTool
from ..schemas import ToolContext, ToolExecutionResult, CHANNEL_PATTERN, TS_PATTERN, check_pattern
from .messaging import messaging_error

REACTION_EMOJI = {
    "resolved": "white_check_mark",
    "archived": "package",
    "important": "star",
    "urgent": "rotating_light",
}


class ReactToMessageParams(BaseModel):
    channel_id: str
    message_ts: str
    reaction_type: Literal["resolved", "archived", "important", "urgent", "custom"]
    custom_emoji: Optional[str] = None

    @field_validator("channel_id")
    def validate_channel(cls, v):
        return check_pattern(v.strip(), CHANNEL_PATTERN, "channel ID")

    @field_validator("message_ts")
    def validate_ts(cls, v):
        return check_pattern(v, TS_PATTERN, "message timestamp")

    @field_validator("custom_emoji")
    def strip_colons(cls, v):
        if v is None:
            return v
        return v.strip().strip(":")


class ReactToMessageTool(ValidatedTool):
    """Add an emoji reaction chosen by reaction type"""
    params_model = ReactToMessageParams

    def check_params(self, params: ReactToMessageParams) -> List[str]:
        if params.reaction_type == "custom" and not params.custom_emoji:
            return ["custom_emoji is required when reaction_type is 'custom'"]
        return []

    async def execute_impl(self, params: ReactToMessageParams, context: ToolContext) -> ToolExecutionResult:
        client = self.require_client()
        emoji = params.custom_emoji if params.reaction_type == "custom" else REACTION_EMOJI[params.reaction_type]

        response = await client.add_reaction(params.channel_id, params.message_ts, emoji)
        if not response.get("ok"):
            if response.get("error") == "already_reacted":
                return ToolExecutionResult.success_result({
                    "channel_id": params.channel_id,
                    "message_ts": params.message_ts,
                    "reaction_type": params.reaction_type,
                    "emoji": emoji,
                    "already_reacted": True,
                }, api_calls=1)
            return messaging_error(response, "add reaction")

        return ToolExecutionResult.success_result({
            "channel_id": params.channel_id,
            "message_ts": params.message_ts,
            "reaction_type": params.reaction_type,
            "emoji": emoji,
            "already_reacted": False,
        }, api_calls=1)
