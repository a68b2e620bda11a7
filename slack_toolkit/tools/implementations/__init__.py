"""
Tool implementations package
"""
from typing import Dict, Type

from ..base import BaseTool
from .messaging import PostMessageTool, UpdateMessageTool, DeleteMessageTool
from .reactions import ReactToMessageTool
from .data import GetThreadRepliesTool, ListWorkspaceChannelsTool, ListWorkspaceUsersTool, GetUserProfileTool
from .search import SearchMessagesTool
from .thread_collection import CollectThreadsByTimeRangeTool, CollectThreadsByKeywordTool


def get_default_tool_classes() -> Dict[str, Type[BaseTool]]:
    """Production tool name to implementation class"""
    return {
        "post_message": PostMessageTool,
        "update_message": UpdateMessageTool,
        "delete_message": DeleteMessageTool,
        "react_to_message": ReactToMessageTool,
        "get_thread_replies": GetThreadRepliesTool,
        "list_workspace_channels": ListWorkspaceChannelsTool,
        "list_workspace_users": ListWorkspaceUsersTool,
        "get_user_profile": GetUserProfileTool,
        "search_messages": SearchMessagesTool,
        "collect_threads_by_timerange": CollectThreadsByTimeRangeTool,
        "collect_threads_by_keyword": CollectThreadsByKeywordTool,
    }


__all__ = [
    'PostMessageTool',
    'UpdateMessageTool',
    'DeleteMessageTool',
    'ReactToMessageTool',
    'GetThreadRepliesTool',
    'ListWorkspaceChannelsTool',
    'ListWorkspaceUsersTool',
    'GetUserProfileTool',
    'SearchMessagesTool',
    'CollectThreadsByTimeRangeTool',
    'CollectThreadsByKeywordTool',
    'get_default_tool_classes',
]
