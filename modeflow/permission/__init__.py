"""
Permission System - Per-mode allow/deny rules for agent tool calls.

Provides:
- decide: Pure allow/deny/pass decision for one tool call
- PermissionDecision / PermissionResult: The outcome
- PermissionRule: Parsed ``ToolName(pattern)`` rule
- resolve_tool_call: Typed view of raw tool arguments

Deny rules always dominate allow rules.
"""

from .matcher import PermissionDecision, PermissionResult, decide
from .rules import (
    CommandArgument,
    PathArgument,
    PermissionRule,
    ToolCall,
    ToolCategory,
    UrlArgument,
    category_of,
    resolve_tool_call,
)

__all__ = [
    "PermissionDecision",
    "PermissionResult",
    "decide",
    "CommandArgument",
    "PathArgument",
    "PermissionRule",
    "ToolCall",
    "ToolCategory",
    "UrlArgument",
    "category_of",
    "resolve_tool_call",
]
