"""
Permission Rules - Rule parsing and the three matching strategies.

A rule is a string of the form ``ToolName(pattern)``. What the pattern
means depends on the tool's category:

- path:    Read, Write, Edit, Glob, NotebookRead, NotebookEdit
           glob against the file path, matched anywhere in the path
           at segment boundaries ("src/**" matches "/project/src/a.ts")
- command: Bash
           "npm test*" is a literal prefix, "npm test" is exact
- domain:  WebFetch
           "domain:github.com" is exact, "domain:*.github.com" is any
           strict subdomain of github.com

Tool arguments arrive as untyped dicts. resolve_tool_call() turns them
into one ToolCall variant per category before any rule is consulted.
"""

import collections.abc
import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Any, Mapping, Optional, Pattern
from urllib.parse import urlparse

from ..errors import PermissionRuleMalformed


class ToolCategory(Enum):
    """How a tool's rules are matched."""
    PATH = "path"
    COMMAND = "command"
    DOMAIN = "domain"


TOOL_CATEGORIES = {
    "Read": ToolCategory.PATH,
    "Write": ToolCategory.PATH,
    "Edit": ToolCategory.PATH,
    "Glob": ToolCategory.PATH,
    "NotebookRead": ToolCategory.PATH,
    "NotebookEdit": ToolCategory.PATH,
    "Bash": ToolCategory.COMMAND,
    "WebFetch": ToolCategory.DOMAIN,
}

# Argument keys holding the path, in lookup order
PATH_ARGUMENT_KEYS = ("file_path", "notebook_path", "path")

DOMAIN_PREFIX = "domain:"

# Schemes whose URLs accept a backslash as a path separator
SPECIAL_SCHEMES = ("http", "https", "ws", "wss", "ftp", "file")

RULE_PATTERN = re.compile(r"(\w+)\((.+)\)", re.DOTALL)


def category_of(tool_name: str) -> Optional[ToolCategory]:
    """Category for a tool name, or None if rules never apply to it."""
    return TOOL_CATEGORIES.get(tool_name)


@dataclass(frozen=True)
class ToolCall:
    """A tool invocation with its argument resolved for matching."""
    tool_name: str


@dataclass(frozen=True)
class PathArgument(ToolCall):
    path: Optional[str] = None


@dataclass(frozen=True)
class CommandArgument(ToolCall):
    command: Optional[str] = None


@dataclass(frozen=True)
class UrlArgument(ToolCall):
    url: Optional[str] = None


def resolve_tool_call(tool_name: str, tool_input: Optional[Mapping[str, Any]]) -> Optional[ToolCall]:
    """Resolve raw tool arguments into a typed ToolCall.

    Args:
        tool_name: Name of the tool being invoked
        tool_input: Raw argument mapping as received from the agent

    Returns:
        A ToolCall variant, or None if the tool has no rule category.
        Missing or non-string arguments resolve to None fields.
    """
    category = category_of(tool_name)
    if category is None:
        return None

    args: Mapping[str, Any] = tool_input if isinstance(tool_input, collections.abc.Mapping) else {}

    if category is ToolCategory.PATH:
        path = None
        for key in PATH_ARGUMENT_KEYS:
            path = _string_arg(args, key)
            if path is not None:
                break
        return PathArgument(tool_name=tool_name, path=path)

    if category is ToolCategory.COMMAND:
        return CommandArgument(tool_name=tool_name, command=_string_arg(args, "command"))

    return UrlArgument(tool_name=tool_name, url=_string_arg(args, "url"))


def _string_arg(args: Mapping[str, Any], key: str) -> Optional[str]:
    value = args.get(key)
    if isinstance(value, str) and value:
        return value
    return None


@dataclass(frozen=True)
class PermissionRule:
    """A parsed ``ToolName(pattern)`` rule.

    Example:
        rule = PermissionRule.parse("Bash(npm test*)")
        rule.matches(CommandArgument("Bash", "npm test:unit"))  # True
    """
    tool: str
    pattern: str
    source: str

    @classmethod
    def parse(cls, rule: Any) -> "PermissionRule":
        """Parse a rule string.

        Raises:
            PermissionRuleMalformed: If the string is not ``ToolName(pattern)``
        """
        if not isinstance(rule, str):
            raise PermissionRuleMalformed(rule, "rule must be a string")

        match = RULE_PATTERN.fullmatch(rule)
        if not match:
            raise PermissionRuleMalformed(rule, "expected ToolName(pattern)")
        return cls(tool=match.group(1), pattern=match.group(2), source=rule)

    def matches(self, call: ToolCall) -> bool:
        """Check whether this rule covers a tool call.

        Raises:
            PermissionRuleMalformed: If the pattern is invalid for the category
        """
        if self.tool != call.tool_name:
            return False

        if isinstance(call, PathArgument):
            if call.path is None:
                return False
            return matches_path(call.path, self.pattern)

        if isinstance(call, CommandArgument):
            if call.command is None:
                return False
            return matches_command(call.command, self.pattern)

        if isinstance(call, UrlArgument):
            if call.url is None:
                return False
            return matches_domain(call.url, self.pattern)

        return False


def matches_path(path: str, pattern: str) -> bool:
    """Glob match with "contains" semantics at path-segment boundaries."""
    return compile_glob(pattern).search(path.replace("\\", "/")) is not None


def matches_command(command: str, pattern: str) -> bool:
    """Trailing ``*`` means literal prefix; otherwise exact equality."""
    if pattern.endswith("*"):
        return command.startswith(pattern[:-1])
    return command == pattern


def matches_domain(url: str, pattern: str) -> bool:
    """Match the URL's hostname against ``domain:host`` or ``domain:*.base``.

    Raises:
        PermissionRuleMalformed: If the pattern lacks the domain: tag or a host
    """
    if not pattern.startswith(DOMAIN_PREFIX):
        raise PermissionRuleMalformed(pattern, f"expected '{DOMAIN_PREFIX}' prefix")

    domain = pattern[len(DOMAIN_PREFIX):].strip().lower()
    wildcard = domain.startswith("*.")
    base = domain[2:] if wildcard else domain
    if not base:
        raise PermissionRuleMalformed(pattern, "missing hostname")

    try:
        hostname = _hostname(url)
    except ValueError:
        return False
    if not hostname:
        return False

    if wildcard:
        return hostname.endswith("." + base)
    return hostname == base


def _hostname(url: str) -> Optional[str]:
    """Hostname as a WHATWG URL parser would see it.

    Special schemes treat a backslash like a slash, so
    "https://evil.com\\@github.com" is a request to evil.com.

    Raises:
        ValueError: If the authority cannot be parsed, including a bad port
    """
    scheme, sep, rest = url.partition(":")
    if sep and scheme.lower() in SPECIAL_SCHEMES:
        url = scheme + ":" + rest.replace("\\", "/")
    parsed = urlparse(url)
    # Non-numeric or out-of-range ports raise ValueError here
    parsed.port
    return parsed.hostname


@lru_cache(maxsize=512)
def compile_glob(pattern: str) -> Pattern[str]:
    """Compile a glob into a regex that finds it anywhere in a path.

    Supports ``*``, ``**``, ``?``, ``[...]`` and ``{a,b}``. A pattern
    starting with ``/`` is anchored at the root. A leading ``./`` and a
    trailing ``/`` are ignored, so ``./src/**/`` means ``src/**``.

    Raises:
        PermissionRuleMalformed: If the resulting expression is invalid
    """
    pattern = _normalize_glob(pattern)
    if pattern.endswith("/**"):
        body = _translate(pattern[:-3]) + "(?:/.*)?"
    else:
        body = _translate(pattern)

    prefix = "^" if pattern.startswith("/") else "(?:^|/)"
    try:
        return re.compile(prefix + body + "(?:/|$)", re.DOTALL)
    except re.error as e:
        raise PermissionRuleMalformed(pattern, f"invalid glob: {e}") from e


def _normalize_glob(pattern: str) -> str:
    while pattern.startswith("./") and len(pattern) > 2:
        pattern = pattern[2:]
    stripped = pattern.rstrip("/")
    return stripped if stripped else pattern


def _translate(glob: str) -> str:
    out = []
    i, n = 0, len(glob)
    while i < n:
        c = glob[i]
        if c == "*":
            j = i
            while j < n and glob[j] == "*":
                j += 1
            if j - i >= 2:
                if j < n and glob[j] == "/":
                    out.append("(?:.*/)?")
                    j += 1
                else:
                    out.append(".*")
            else:
                out.append("[^/]*")
            i = j
            continue
        if c == "?":
            out.append("[^/]")
        elif c == "[":
            end = glob.find("]", i + 2)
            if end == -1:
                out.append(re.escape(c))
            else:
                body = glob[i + 1:end].replace("\\", "\\\\")
                if body.startswith("!"):
                    body = "^" + body[1:]
                elif body.startswith("^"):
                    body = "\\" + body
                out.append(f"[{body}]")
                i = end
        elif c == "{":
            end = glob.find("}", i + 1)
            if end == -1:
                out.append(re.escape(c))
            else:
                alternatives = glob[i + 1:end].split(",")
                out.append("(?:" + "|".join(_translate(a) for a in alternatives) + ")")
                i = end
        else:
            out.append(re.escape(c))
        i += 1
    return "".join(out)
