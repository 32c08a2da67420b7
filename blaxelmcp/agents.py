"""Agent tools: list, inspect and delete agents in a workspace."""

from __future__ import annotations

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
    to_json,
)


class AgentHandler(ABC):
    """Operations behind the agent tools."""

    read_only: bool = False

    @abstractmethod
    def list_agents(self, filter_text: str) -> str: ...

    @abstractmethod
    def get_agent(self, name: str) -> str: ...

    @abstractmethod
    def delete_agent(self, name: str) -> str: ...


def _agent_name(agent: dict[str, Any]) -> Optional[str]:
    return (agent.get("metadata") or {}).get("name")


def _agent_model(agent: dict[str, Any]) -> dict[str, Any]:
    metadata = agent.get("metadata") or {}
    runtime = (agent.get("spec") or {}).get("runtime") or {}
    model: dict[str, Any] = {
        "name": metadata.get("name") or "",
        "status": agent.get("status") or "",
        "labels": dict(metadata.get("labels") or {}),
    }
    for source, target in (
        ("image", "image"),
        ("generation", "generation"),
        ("memory", "memory"),
        ("maxConcurrentTasks", "maxTasks"),
    ):
        if runtime.get(source) is not None:
            model[target] = runtime[source]
    created_at = parse_rfc3339(metadata.get("createdAt"))
    if created_at is not None:
        model["createdAt"] = created_at.isoformat()
    return model


class SdkAgentHandler(AgentHandler):
    """Agent operations backed by an API client.

    The client provides list_agents(), get_agent(name) and delete_agent(name),
    each returning an ApiResponse.
    """

    def __init__(self, client: Any, read_only: bool = False) -> None:
        self._client = client
        self.read_only = read_only

    def _api(self) -> Any:
        if self._client is None:
            raise ToolError("SDK client not initialized")
        return self._client

    def list_agents(self, filter_text: str = "") -> str:
        client = self._api()
        try:
            response = client.list_agents()
        except Exception as exc:
            raise ToolError(f"failed to list agents: {exc}") from exc
        if response.status_code != HTTPStatus.OK:
            raise ToolError(f"list agents failed with status {response.status_code}")

        agents = response.json or []
        if filter_text:
            agents = [
                agent
                for agent in agents
                if (name := _agent_name(agent)) is not None and contains_string(name, filter_text)
            ]
        return to_json([_agent_model(agent) for agent in agents])

    def get_agent(self, name: str) -> str:
        client = self._api()
        try:
            response = client.get_agent(name)
        except Exception as exc:
            raise ToolError(f"failed to get agent: {exc}") from exc
        if response.status_code != HTTPStatus.OK:
            raise ToolError(f"get agent failed with status {response.status_code}")
        if response.json is None:
            raise ToolError("agent not found")
        return to_json(response.json)

    def delete_agent(self, name: str) -> str:
        client = self._api()
        try:
            response = client.delete_agent(name)
        except Exception as exc:
            raise ToolError(f"failed to delete agent: {exc}") from exc
        if response.status_code not in (HTTPStatus.OK, HTTPStatus.NO_CONTENT):
            raise ToolError(f"delete agent failed with status {response.status_code}")
        result = {"success": True, "message": f"Agent '{name}' deleted successfully"}
        return to_json(result, sort_keys=True)


def register_agent_tools(server: ToolServer, handler: AgentHandler) -> None:
    """Register the agent tools; delete_agent is left out in read-only mode."""
    read_only = bool(getattr(handler, "read_only", False))

    def list_agents(request: ToolRequest) -> ToolResult:
        return ToolResult.success(handler.list_agents(request.get_string("filter", "")))

    def get_agent(request: ToolRequest) -> ToolResult:
        name = request.get_string("name", "")
        if not name:
            raise ToolError("agent name is required")
        return ToolResult.success(handler.get_agent(name))

    def delete_agent(request: ToolRequest) -> ToolResult:
        name = request.get_string("name", "")
        if not name:
            raise ToolError("agent name is required")
        return ToolResult.success(handler.delete_agent(name))

    server.add_tool(
        Tool(
            "list_agents",
            "List all agents in the workspace",
            (ToolParam("filter", description="Optional filter string to match agent names"),),
        ),
        list_agents,
    )
    server.add_tool(
        Tool(
            "get_agent",
            "Get details of a specific agent",
            (ToolParam("name", required=True, description="Name of the agent to retrieve"),),
        ),
        get_agent,
    )
    if not read_only:
        server.add_tool(
            Tool(
                "delete_agent",
                "Delete an agent from the workspace",
                (ToolParam("name", required=True, description="Name of the agent to delete"),),
            ),
            delete_agent,
        )