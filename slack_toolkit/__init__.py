"""
Slack Toolkit

Tool execution framework for Slack workspaces: tool definitions, a factory,
an execution registry with middleware, metrics and rate limiting, plus
time-range thread collection.
"""

__version__ = "0.1.0"
