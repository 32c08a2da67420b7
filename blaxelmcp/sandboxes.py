"""Sandbox tools: list, inspect, create and delete sandboxes in a workspace."""

from __future__ import annotations

import math
import re
from abc import ABC, abstractmethod
from http import HTTPStatus
from typing import Any, Optional

from blaxelmcp.tooling import (
    Tool,
    ToolError,
    ToolParam,
    ToolRequest,
    ToolResult,
    ToolServer,
    contains_string,
    parse_rfc3339,
    set_runtime_env,
    to_json,
)

_PORT_PATTERN = re.compile(r"[+-]?[0-9]+")
_DEFAULT_PROTOCOL = "TCP"


class SandboxHandler(ABC):
    """Operations behind the sandbox tools."""

    read_only: bool = False

    @abstractmethod
    def list_sandboxes(self, filter_text: str) -> str: ...

    @abstractmethod
    def get_sandbox(self, name: str) -> str: ...

    @abstractmethod
    def create_sandbox(
        self, name: str, image: str, memory: float, ports: str, env: str
    ) -> str: ...

    @abstractmethod
    def delete_sandbox(self, name: str) -> str: ...


def _sandbox_name(sandbox: dict[str, Any]) -> Optional[str]:
    return (sandbox.get("metadata") or {}).get("name")


def _sandbox_model(sandbox: dict[str, Any]) -> dict[str, Any]:
    metadata = sandbox.get("metadata") or {}
    runtime = (sandbox.get("spec") or {}).get("runtime") or {}
    model: dict[str, Any] = {
        "name": metadata.get("name") or "",
        "status": sandbox.get("status") or "",
        "labels": dict(metadata.get("labels") or {}),
    }
    for source, target in (
        ("image", "image"),
        ("generation", "generation"),
        ("memory", "memory"),
        ("ttl", "ttl"),
    ):
        if runtime.get(source) is not None:
            model[target] = runtime[source]
    expires = parse_rfc3339(runtime.get("expires"))
    if expires is not None:
        model["expires"] = expires.isoformat()
    created_at = parse_rfc3339(metadata.get("createdAt"))
    if created_at is not None:
        model["createdAt"] = created_at.isoformat()
    return model


def _parse_ports(ports: str) -> list[dict[str, Any]]:
    """Turn "8080, 8081" into TCP port entries; blank entries are skipped."""
    parsed = []
    for entry in ports.split(","):
        entry = entry.strip()
        if not entry:
            continue
        if not _PORT_PATTERN.fullmatch(entry):
            raise ToolError(f"invalid port '{entry}': invalid syntax")
        parsed.append({"target": int(entry), "protocol": _DEFAULT_PROTOCOL})
    return parsed


class SdkSandboxHandler(SandboxHandler):
    """Sandbox operations backed by an API client.

    The client provides list_sandboxes(), get_sandbox(name),
    create_sandbox(body) and delete_sandbox(name), each returning an ApiResponse.
    """

    def __init__(self, client: Any, read_only: bool = False) -> None:
        self._client = client
        self.read_only = read_only

    def _api(self) -> Any:
        if self._client is None:
            raise ToolError("SDK client not initialized")
        return self._client

    def list_sandboxes(self, filter_text: str = "") -> str:
        client = self._api()
        try:
            response = client.list_sandboxes()
        except Exception as exc:
            raise ToolError(f"failed to list sandboxes: {exc}") from exc
        if response.status_code != HTTPStatus.OK:
            raise ToolError(f"list sandboxes failed with status {response.status_code}")

        sandboxes = response.json or []
        if filter_text:
            sandboxes = [
                sandbox
                for sandbox in sandboxes
                if (name := _sandbox_name(sandbox)) is not None
                and contains_string(name, filter_text)
            ]
        return to_json([_sandbox_model(sandbox) for sandbox in sandboxes])

    def get_sandbox(self, name: str) -> str:
        client = self._api()
        try:
            response = client.get_sandbox(name)
        except Exception as exc:
            raise ToolError(f"failed to get sandbox: {exc}") from exc
        if response.json is None:
            raise ToolError("no sandbox found")
        return to_json(response.json)

    def create_sandbox(
        self,
        name: str,
        image: str = "",
        memory: float = 0.0,
        ports: str = "",
        env: str = "",
    ) -> str:
        client = self._api()
        runtime: dict[str, Any] = {}
        if image:
            runtime["image"] = image
        if memory > 0 and math.isfinite(memory):
            runtime["memory"] = int(memory)
        if ports:
            port_list = _parse_ports(ports)
            if port_list:
                runtime["ports"] = port_list
        if env:
            try:
                runtime["envs"] = set_runtime_env(env)
            except ValueError as exc:
                raise ToolError(str(exc)) from exc
        body = {"metadata": {"name": name}, "spec": {"runtime": runtime}}

        try:
            response = client.create_sandbox(body)
        except Exception as exc:
            raise ToolError(f"failed to create sandbox: {exc}") from exc
        if response.json is None:
            if response.status_code == HTTPStatus.CONFLICT:
                raise ToolError(f"sandbox with name '{name}' already exists")
            raise ToolError(f"failed to create sandbox with status {response.status_code}")

        sandbox_info: dict[str, Any] = {"name": name}
        status = response.json.get("status") if isinstance(response.json, dict) else None
        if status is not None:
            sandbox_info["status"] = status
        result = {
            "success": True,
            "message": f"Sandbox '{name}' created successfully",
            "sandbox": sandbox_info,
        }
        return to_json(result, sort_keys=True)

    def delete_sandbox(self, name: str) -> str:
        client = self._api()
        try:
            client.delete_sandbox(name)
        except Exception as exc:
            raise ToolError(f"failed to delete sandbox: {exc}") from exc
        result = {"success": True, "message": f"Sandbox '{name}' deleted successfully"}
        return to_json(result, sort_keys=True)


def _memory_arg(request: ToolRequest) -> float:
    """Memory given as a string is parsed; anything unparsable counts as 0."""
    text = request.get_string("memory", "")
    if not text:
        return 0.0
    try:
        return float(text)
    except ValueError:
        return 0.0


def register_sandbox_tools(server: ToolServer, handler: SandboxHandler) -> None:
    """Register the sandbox tools; write tools are left out in read-only mode."""
    read_only = bool(getattr(handler, "read_only", False))

    def list_sandboxes(request: ToolRequest) -> ToolResult:
        return ToolResult.success(handler.list_sandboxes(request.get_string("filter", "")))

    def get_sandbox(request: ToolRequest) -> ToolResult:
        name = request.get_string("name", "")
        if not name:
            raise ToolError("sandbox name is required")
        return ToolResult.success(handler.get_sandbox(name))

    def create_sandbox(request: ToolRequest) -> ToolResult:
        name = request.get_string("name", "")
        if not name:
            raise ToolError("sandbox name is required")
        image = request.get_string("image", "")
        ports = request.get_string("ports", "")
        env = request.get_string("env", "")
        memory = _memory_arg(request)
        return ToolResult.success(handler.create_sandbox(name, image, memory, ports, env))

    def delete_sandbox(request: ToolRequest) -> ToolResult:
        name = request.get_string("name", "")
        if not name:
            raise ToolError("sandbox name is required")
        return ToolResult.success(handler.delete_sandbox(name))

    server.add_tool(
        Tool(
            "list_sandboxes",
            "List all sandboxes in the workspace",
            (ToolParam("filter", description="Optional filter string"),),
        ),
        list_sandboxes,
    )
    server.add_tool(
        Tool(
            "get_sandbox",
            "Get details of a specific sandbox",
            (ToolParam("name", required=True, description="Name of the sandbox to retrieve"),),
        ),
        get_sandbox,
    )
    if read_only:
        return

    server.add_tool(
        Tool(
            "create_sandbox",
            "Create a new sandbox",
            (
                ToolParam("name", required=True, description="Name for the sandbox"),
                ToolParam("image", description="Docker image to use for the sandbox"),
                ToolParam("memory", kind="number", description="Memory in MB (default: 512)"),
                ToolParam(
                    "ports",
                    description=(
                        "Ports to expose from the sandbox, separated by commas (eg. 8080,8081)"
                    ),
                ),
                ToolParam(
                    "env",
                    description=(
                        "Environment variables to set in the sandbox, separated by commas "
                        "(eg. FOO=bar,BAR=baz)"
                    ),
                ),
            ),
        ),
        create_sandbox,
    )
    server.add_tool(
        Tool(
            "delete_sandbox",
            "Delete a sandbox by name",
            (ToolParam("name", required=True, description="Name of the sandbox to delete"),),
        ),
        delete_sandbox,
    )