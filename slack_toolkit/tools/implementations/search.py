"""
Message search tool
"""
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from ..base import ValidatedTool, AUTH_FAILURES
from ..schemas import ToolContext, ToolExecutionResult, ErrorCode


class SearchMessagesParams(BaseModel):
    query: str
    count: int = Field(default=20, ge=1, le=100)
    page: int = Field(default=1, ge=1)
    sort: Literal["score", "timestamp"] = "score"
    sort_dir: Literal["desc", "asc"] = "desc"

    @field_validator("query")
    def validate_query(cls, v):
        if not v.strip():
            raise ValueError("Search query is required")
        return v.strip()


class SearchMessagesTool(ValidatedTool):
    """Run search.messages and return compact matches"""
    params_model = SearchMessagesParams

    async def execute_impl(self, params: SearchMessagesParams, context: ToolContext) -> ToolExecutionResult:
        client = self.require_client()
        response = await client.search_messages(
            params.query,
            count=params.count,
            page=params.page,
            sort=params.sort,
            sort_dir=params.sort_dir,
        )
        if not response.get("ok"):
            error = response.get("error", "unknown_error")
            code = ErrorCode.AUTH_ERROR if error in AUTH_FAILURES else ErrorCode.SEARCH_ERROR
            return ToolExecutionResult.error_result(f"Search failed: {error}", code, api_calls=1)

        messages = response.get("messages") or {}
        matches = []
        for match in messages.get("matches") or []:
            channel = match.get("channel") or {}
            matches.append({
                "ts": match.get("ts"),
                "thread_ts": match.get("thread_ts"),
                "user": match.get("user"),
                "username": match.get("username"),
                "text": match.get("text") or "",
                "channel_id": channel.get("id"),
                "channel_name": channel.get("name"),
                "permalink": match.get("permalink"),
            })

        paging = messages.get("paging") or {}
        return ToolExecutionResult.success_result({
            "query": params.query,
            "total": messages.get("total", len(matches)),
            "matches": matches,
            "page": paging.get("page", params.page),
            "pages": paging.get("pages", 1),
        }, api_calls=1)
