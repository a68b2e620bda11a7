"""
Thread collection tools

Both tools create a fresh ThreadCollector per call, so API call counts and
fetched threads never leak between concurrent calls.
"""
from typing import List, Optional, Literal, Union, Annotated

from pydantic import BaseModel, Field, field_validator, model_validator

from ..base import ValidatedTool, AUTH_FAILURES
from ..schemas import ToolContext, ToolExecutionResult, ErrorCode, CHANNEL_PATTERN, check_pattern
from ...slack.threads import ThreadCollector, SlackApiError, TimeRange, parse_time_range


class TimeRangeParams(BaseModel):
    channel: str
    start_date: Union[str, int, float]
    end_date: Union[str, int, float]
    include_parent: bool = True

    @field_validator("channel")
    def validate_channel(cls, v):
        return check_pattern(v.strip(), CHANNEL_PATTERN, "channel ID")

    @model_validator(mode="after")
    def validate_range(self):
        parse_time_range(self.start_date, self.end_date)
        return self

    @property
    def time_range(self) -> TimeRange:
        return parse_time_range(self.start_date, self.end_date)


KeywordList = Annotated[List[str], Field(min_length=1, max_length=10)]


def _clean_keywords(keywords: Optional[List[str]]) -> Optional[List[str]]:
    if keywords is None:
        return None
    cleaned = [k.strip() for k in keywords if k and k.strip()]
    if not cleaned:
        raise ValueError("keywords must contain at least one non-empty keyword")
    return cleaned


class CollectByTimeRangeParams(TimeRangeParams):
    include_metadata: bool = True
    max_threads: int = Field(default=50, ge=1, le=100)
    keywords: Optional[KeywordList] = None
    match_type: Literal["any", "all"] = "any"

    @field_validator("keywords")
    def validate_keywords(cls, v):
        return _clean_keywords(v)


class CollectByKeywordParams(TimeRangeParams):
    keywords: KeywordList
    match_type: Literal["any", "all"] = "any"
    max_threads: int = Field(default=20, ge=1, le=50)

    @field_validator("keywords")
    def validate_keywords(cls, v):
        return _clean_keywords(v)


def _collection_error(error: SlackApiError, api_calls: int, default_code: ErrorCode) -> ToolExecutionResult:
    code = ErrorCode.AUTH_ERROR if error.error in AUTH_FAILURES else default_code
    return ToolExecutionResult.error_result(str(error), code, api_calls=api_calls)


class CollectThreadsByTimeRangeTool(ValidatedTool):
    """Collect every thread with activity inside a time range"""
    params_model = CollectByTimeRangeParams

    async def execute_impl(self, params: CollectByTimeRangeParams, context: ToolContext) -> ToolExecutionResult:
        client = self.require_client()
        time_range = params.time_range
        collector = ThreadCollector(client, params.channel, self.collection_settings)

        self._logger.info(
            f"[{context.trace_id}] Collecting threads in {params.channel} "
            f"from {time_range.oldest} to {time_range.latest} (max {params.max_threads})"
        )

        try:
            data = await collector.collect(
                time_range,
                max_threads=params.max_threads,
                keywords=params.keywords,
                match_type=params.match_type,
                include_parent=params.include_parent,
                include_metadata=params.include_metadata,
            )
        except SlackApiError as e:
            return _collection_error(e, collector.api_calls, ErrorCode.API_ERROR)

        context.metadata["api_calls"] = collector.api_calls
        return ToolExecutionResult.success_result(data, api_calls=collector.api_calls)


class CollectThreadsByKeywordTool(ValidatedTool):
    """Collect threads found by a keyword search inside a time range"""
    params_model = CollectByKeywordParams

    async def execute_impl(self, params: CollectByKeywordParams, context: ToolContext) -> ToolExecutionResult:
        client = self.require_client()
        collector = ThreadCollector(client, params.channel, self.collection_settings)

        try:
            data = await collector.collect_by_keyword(
                params.time_range,
                params.keywords,
                match_type=params.match_type,
                max_threads=params.max_threads,
                include_parent=params.include_parent,
            )
        except SlackApiError as e:
            code = ErrorCode.SEARCH_ERROR if e.endpoint == "search.messages" else ErrorCode.API_ERROR
            return _collection_error(e, collector.api_calls, code)

        context.metadata["api_calls"] = collector.api_calls
        return ToolExecutionResult.success_result(data, api_calls=collector.api_calls)
