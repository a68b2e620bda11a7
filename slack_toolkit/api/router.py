"""
HTTP API for the tool registry

Exposes tool discovery, execution, metrics and health over FastAPI. The
registry itself lives on app.state and is created by the application
lifespan.
"""
import logging
from typing import Dict, Any, Optional

from fastapi import APIRouter, Body, HTTPException, Request

from ..tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

api_router = APIRouter()


def get_registry(request: Request) -> ToolRegistry:
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        raise HTTPException(status_code=503, detail="Tool registry not initialized")
    return registry


@api_router.get("/tools")
async def list_tools(request: Request):
    """List every registered tool with its input schema"""
    registry = get_registry(request)
    tools = registry.get_tools()
    return {"tools": tools, "count": len(tools)}


@api_router.get("/tools/metrics")
async def tool_metrics(request: Request, tool: Optional[str] = None):
    """Per-tool execution metrics, optionally for a single tool"""
    registry = get_registry(request)
    if tool is not None and registry.get_tool(tool) is None:
        raise HTTPException(status_code=404, detail=f"Tool '{tool}' not found")
    return {"metrics": registry.get_tool_metrics(tool)}


@api_router.delete("/tools/metrics")
async def reset_tool_metrics(request: Request, tool: Optional[str] = None):
    registry = get_registry(request)
    registry.reset_metrics(tool)
    return {"status": "reset", "tool": tool}


@api_router.get("/tools/stats")
async def tool_stats(request: Request):
    """Registry statistics: tool counts, in-flight calls, middleware and totals"""
    return get_registry(request).get_stats()


@api_router.post("/tools/{name}")
async def call_tool(name: str, request: Request, args: Optional[Dict[str, Any]] = Body(default=None)):
    """
    Execute a tool

    The JSON body is the tool's arguments. Failures are reported in the
    envelope (isError) rather than as HTTP errors.
    """
    registry = get_registry(request)
    logger.info(f"Received tool call request: {name}")
    return await registry.execute_tool(name, args or {})


@api_router.get("/health")
async def api_health(request: Request):
    """API health check endpoint"""
    registry = get_registry(request)
    return {
        "status": "healthy",
        "tools": len(registry.get_tool_names()),
        "slack_authenticated": registry.client is not None,
        "in_flight": registry.gate.in_flight,
    }
