"""Building blocks for exposing workspace operations as callable tools."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, Mapping, Optional, TypeVar

T = TypeVar("T")


class ToolError(Exception):
    """Raised by a tool handler; the message is reported back to the caller."""


@dataclass(frozen=True)
class ApiResponse:
    """A response from the control-plane API: HTTP status and decoded body."""

    status_code: int
    json: Any = None


@dataclass(frozen=True)
class ToolParam:
    """One argument accepted by a tool."""

    name: str
    kind: str = "string"
    description: str = ""
    required: bool = False
    enum: tuple[str, ...] = ()
    default: Any = None


@dataclass(frozen=True)
class Tool:
    """Name, description and arguments of a tool."""

    name: str
    description: str = ""
    params: tuple[ToolParam, ...] = ()

    @property
    def input_schema(self) -> dict[str, Any]:
        """JSON schema describing the tool's arguments."""
        properties: dict[str, Any] = {}
        for param in self.params:
            spec: dict[str, Any] = {"type": param.kind}
            if param.description:
                spec["description"] = param.description
            if param.enum:
                spec["enum"] = list(param.enum)
            if param.default is not None:
                spec["default"] = param.default
            properties[param.name] = spec
        schema: dict[str, Any] = {"type": "object", "properties": properties}
        required = [param.name for param in self.params if param.required]
        if required:
            schema["required"] = required
        return schema


@dataclass
class ToolRequest:
    """The arguments of a single tool call."""

    arguments: Mapping[str, Any] = field(default_factory=dict)

    def get_string(self, key: str, default: str = "") -> str:
        """Return the argument as a string, or the default if absent or not a string."""
        value = self.arguments.get(key)
        return value if isinstance(value, str) else default


@dataclass(frozen=True)
class ToolResult:
    """The outcome of a tool call."""

    text: str
    is_error: bool = False

    @classmethod
    def success(cls, text: str) -> "ToolResult":
        return cls(text=text)

    @classmethod
    def error(cls, message: str) -> "ToolResult":
        return cls(text=message, is_error=True)


ToolCallable = Callable[[ToolRequest], ToolResult]


class ToolServer:
    """A registry of tools that can be called by name."""

    def __init__(self) -> None:
        self.tools: dict[str, tuple[Tool, ToolCallable]] = {}

    def add_tool(self, tool: Tool, handler: ToolCallable) -> None:
        """Register a tool, replacing any tool of the same name."""
        self.tools[tool.name] = (tool, handler)

    def call_tool(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> ToolResult:
        """Run a tool; a ToolError from the handler becomes an error result."""
        try:
            _, handler = self.tools[name]
        except KeyError:
            raise ToolError(f"tool '{name}' not found") from None
        try:
            return handler(ToolRequest(dict(arguments or {})))
        except ToolError as exc:
            return ToolResult.error(str(exc))

    def tool_names(self) -> list[str]:
        """Names of the registered tools, in registration order."""
        return list(self.tools)


def to_json(value: Any, *, sort_keys: bool = False) -> str:
    """Serialise a value as indented JSON."""
    return json.dumps(value, indent=2, ensure_ascii=False, sort_keys=sort_keys)


def parse_rfc3339(text: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp; return None if it is missing or invalid."""
    if not text:
        return None
    candidate = text[:-1] + "+00:00" if text[-1] in "Zz" else text
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        return None
    return parsed if parsed.tzinfo is not None else None


def filter_and_marshal(
    items: Optional[Iterable[T]], filter_text: str, get_name: Callable[[T], str]
) -> str:
    """Keep items whose name contains the filter (case-insensitive) and return JSON."""
    if items is None:
        return to_json([])
    if not filter_text:
        return to_json(list(items))
    needle = filter_text.lower()
    filtered = [item for item in items if (name := get_name(item)) and needle in name.lower()]
    # An empty match serialises as null, as an absent list would.
    return to_json(filtered or None)


def contains_string(s: str, substr: str) -> bool:
    """Case-insensitive substring test."""
    return substr.lower() in s.lower()


def set_runtime_env(env: str) -> Optional[list[dict[str, str]]]:
    """Turn "A=1,B=2" into a list of name/value pairs; None for an empty string."""
    if not env:
        return None
    pairs = []
    for entry in env.split(","):
        name, sep, value = entry.partition("=")
        if not sep:
            raise ValueError(f"invalid environment entry '{entry}': expected NAME=VALUE")
        pairs.append({"name": name, "value": value})
    return pairs