"""
Permission Matcher - Decide allow/deny/pass for a tool call.

Decision order:
1. No permissions configured for the mode → pass
2. Tool outside the path/command/domain categories → pass
3. Any matching deny rule → deny (wins even if an allow rule also matches)
4. Any matching allow rule → allow
5. Otherwise → pass (the host applies its own default policy)

The matcher is a pure function. Malformed rules never raise; they are
treated as rules that match nothing.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional

from ..config.overlay import ModePermissions
from ..errors import PermissionRuleMalformed
from ..logger import get_logger
from .rules import PermissionRule, ToolCall, resolve_tool_call


class PermissionDecision(Enum):
    """Outcome of a permission check."""
    ALLOW = "allow"
    DENY = "deny"
    PASS = "pass"


@dataclass(frozen=True)
class PermissionResult:
    """A decision plus what produced it.

    Attributes:
        decision: allow, deny or pass
        reason: Human-readable explanation (set for deny)
        rule: The rule string that matched, if any
    """
    decision: PermissionDecision
    reason: Optional[str] = None
    rule: Optional[str] = None

    @property
    def is_allowed(self) -> bool:
        return self.decision is PermissionDecision.ALLOW

    @property
    def is_denied(self) -> bool:
        return self.decision is PermissionDecision.DENY

    def to_hook_response(self) -> Dict[str, Any]:
        """Shape the result as a PreToolUse hook response.

        A pass produces an empty object so the host decides on its own.
        """
        if self.decision is PermissionDecision.PASS:
            return {}

        output: Dict[str, Any] = {
            "hookEventName": "PreToolUse",
            "permissionDecision": self.decision.value,
        }
        if self.reason:
            output["permissionDecisionReason"] = self.reason
        return {"hookSpecificOutput": output}


PASS_RESULT = PermissionResult(decision=PermissionDecision.PASS)


def decide(
    tool_name: str,
    tool_arguments: Optional[Mapping[str, Any]],
    permissions: Optional[ModePermissions],
) -> PermissionResult:
    """Decide whether a tool call is allowed under a mode's permissions.

    Args:
        tool_name: Name of the tool being invoked (case-sensitive)
        tool_arguments: Raw tool arguments
        permissions: The current mode's rules, or None if it has none

    Returns:
        PermissionResult
    """
    if permissions is None:
        return PASS_RESULT

    call = resolve_tool_call(tool_name, tool_arguments)
    if call is None:
        return PASS_RESULT

    denied_by = _first_match(call, permissions.deny)
    if denied_by is not None:
        return PermissionResult(
            decision=PermissionDecision.DENY,
            reason=f"Blocked by deny rule: {denied_by}",
            rule=denied_by,
        )

    allowed_by = _first_match(call, permissions.allow)
    if allowed_by is not None:
        return PermissionResult(decision=PermissionDecision.ALLOW, rule=allowed_by)

    return PASS_RESULT


def _first_match(call: ToolCall, rules: Iterable[Any]) -> Optional[str]:
    for raw_rule in rules:
        try:
            if PermissionRule.parse(raw_rule).matches(call):
                return raw_rule
        except PermissionRuleMalformed as e:
            get_logger().debug("permission", "rule_malformed", {
                "rule": str(raw_rule),
                "error": str(e),
            })
    return None
