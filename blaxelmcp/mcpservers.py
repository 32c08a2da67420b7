"""MCP server tools: list, inspect, create and delete MCP servers (functions)."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from http import HTTPStatus
from typing import Any, Mapping, Optional

from blaxelmcp.integrations import _string_arg, _string_values
from blaxelmcp.polling import (
    DEFAULT_INTERVAL,
    DEFAULT_MAX_ATTEMPTS,
    StatusChecker,
    wait_for_resource_deletion,
    wait_for_resource_status,
)
from blaxelmcp.tooling import (
    ApiResponse,
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

logger = logging.getLogger(__name__)


class McpServerHandler(ABC):
    """Operations behind the MCP server tools."""

    read_only: bool = False

    @abstractmethod
    def list_mcp_servers(self, filter_text: str) -> str: ...

    @abstractmethod
    def get_mcp_server(self, name: str) -> str: ...

    @abstractmethod
    def create_mcp_server(
        self,
        name: str,
        integration_connection_name: str,
        integration_type: str,
        wait_for_completion: str,
        secret: Mapping[str, str],
        config: Mapping[str, str],
    ) -> str: ...

    @abstractmethod
    def delete_mcp_server(self, name: str, wait_for_completion: str) -> str: ...


class McpServerStatusChecker(StatusChecker):
    """Reads the deployment status of an MCP server through the API client."""

    resource_type = "mcp_server"

    def __init__(self, client: Any) -> None:
        self._client = client

    def get_resource(self, name: str) -> Any:
        return self._client.get_function(name)

    def extract_status(self, resource: Any) -> str:
        if isinstance(resource, ApiResponse) and resource.json is not None:
            status = resource.json.get("status")
            return status if status is not None else "DEPLOYING"
        return "DEPLOYING"


def _function_name(function: dict[str, Any]) -> Optional[str]:
    return (function.get("metadata") or {}).get("name")


def _function_model(function: dict[str, Any]) -> dict[str, Any]:
    metadata = function.get("metadata") or {}
    spec = function.get("spec") or {}
    runtime = spec.get("runtime") or {}
    model: dict[str, Any] = {
        "name": metadata.get("name") or "",
        "status": function.get("status") or "",
        "labels": dict(metadata.get("labels") or {}),
    }
    for key in ("image", "generation", "memory"):
        if runtime.get(key) is not None:
            model[key] = runtime[key]
    if spec.get("integrationConnections") is not None:
        model["integrationConnections"] = list(spec["integrationConnections"])
    created_at = parse_rfc3339(metadata.get("createdAt"))
    if created_at is not None:
        model["createdAt"] = created_at.isoformat()
    return model


def _should_wait(wait_for_completion: str) -> bool:
    return wait_for_completion == "true" if wait_for_completion else True


class SdkMcpServerHandler(McpServerHandler):
    """MCP server operations backed by an API client.

    The client provides list_functions(), get_function(name),
    create_function(body), delete_function(name) and
    create_integration_connection(body), each returning an ApiResponse.
    """

    poll_attempts: int = DEFAULT_MAX_ATTEMPTS
    poll_interval: float = DEFAULT_INTERVAL

    def __init__(self, client: Any, read_only: bool = False) -> None:
        self._client = client
        self.read_only = read_only

    def _api(self) -> Any:
        if self._client is None:
            raise ToolError("SDK client not initialized")
        return self._client

    def list_mcp_servers(self, filter_text: str = "") -> str:
        client = self._api()
        try:
            response = client.list_functions()
        except Exception as exc:
            raise ToolError(f"failed to list MCP servers: {exc}") from exc
        if response.status_code != HTTPStatus.OK:
            raise ToolError(f"list MCP servers failed with status {response.status_code}")

        functions = response.json or []
        if filter_text:
            functions = [
                fn
                for fn in functions
                if (name := _function_name(fn)) is not None and contains_string(name, filter_text)
            ]
        return to_json([_function_model(fn) for fn in functions])

    def get_mcp_server(self, name: str) -> str:
        client = self._api()
        try:
            response = client.get_function(name)
        except Exception as exc:
            raise ToolError(f"failed to get MCP server: {exc}") from exc
        if response.json is None:
            raise ToolError("no MCP server found")
        return to_json(response.json)

    def _create_inline_integration(
        self,
        client: Any,
        integration_name: str,
        integration_type: str,
        secret: Optional[Mapping[str, str]],
        config: Optional[Mapping[str, str]],
    ) -> None:
        spec: dict[str, Any] = {"integration": integration_type}
        if secret:
            spec["secret"] = dict(secret)
        if config:
            spec["config"] = dict(config)
        body = {"metadata": {"name": integration_name}, "spec": spec}
        try:
            response = client.create_integration_connection(body)
        except Exception as exc:
            raise ToolError(f"failed to create inline integration: {exc}") from exc
        if response.status_code >= 400:
            if response.status_code == HTTPStatus.CONFLICT:
                logger.info(
                    "Integration '%s' already exists, will attempt to use it", integration_name
                )
            else:
                raise ToolError(
                    f"failed to create integration with status {response.status_code}"
                )

    def create_mcp_server(
        self,
        name: str,
        integration_connection_name: str = "",
        integration_type: str = "",
        wait_for_completion: str = "",
        secret: Optional[Mapping[str, str]] = None,
        config: Optional[Mapping[str, str]] = None,
    ) -> str:
        client = self._api()
        has_existing = bool(integration_connection_name)
        has_new_type = bool(integration_type)
        if has_existing and has_new_type:
            raise ToolError(
                "specify either integrationConnectionName or integrationType, not both"
            )
        if not has_existing and not has_new_type:
            raise ToolError(
                "must provide either integrationConnectionName to reference an existing "
                "integration or integrationType to create a new one"
            )

        if has_existing:
            integration_name = integration_connection_name
        else:
            integration_name = f"{name}-{integration_type}-integration"
            self._create_inline_integration(
                client, integration_name, integration_type, secret, config
            )

        body = {
            "metadata": {"name": name},
            "spec": {
                "runtime": {"type": "mcp"},
                "integrationConnections": [integration_name],
            },
        }
        try:
            response = client.create_function(body)
        except Exception as exc:
            raise ToolError(f"failed to create MCP server: {exc}") from exc
        if response.json is None:
            if response.status_code == HTTPStatus.CONFLICT:
                raise ToolError(f"MCP server with name '{name}' already exists")
            raise ToolError(f"failed to create MCP server with status {response.status_code}")

        wait = _should_wait(wait_for_completion)
        status_note = ""
        if wait:
            logger.info("Waiting for MCP server '%s' to deploy...", name)
            try:
                wait_for_resource_status(
                    name,
                    McpServerStatusChecker(client),
                    self.poll_attempts,
                    self.poll_interval,
                )
            except ToolError as exc:
                logger.warning("Warning: MCP server created but status check failed: %s", exc)
                status_note = f" (status check failed: {exc})"
        else:
            logger.info("Skipping status wait for MCP server '%s'", name)

        if status_note:
            deployment_status = "created"
            message = f"MCP server '{name}' created successfully{status_note}"
            inline_message = (
                f"MCP server '{name}' created successfully with inline integration "
                f"'{integration_name}'{status_note}"
            )
        else:
            deployment_status = "created and deployed" if wait else "created"
            message = f"MCP server '{name}' {deployment_status} successfully"
            inline_message = (
                f"MCP server '{name}' {deployment_status} successfully with inline "
                f"integration '{integration_name}'"
            )

        server_info: dict[str, Any] = {"name": name, "integrationConnection": integration_name}
        if has_new_type:
            message = inline_message
            server_info["integrationType"] = integration_type
        result = {"success": True, "message": message, "mcp_server": server_info}
        return to_json(result, sort_keys=True)

    def delete_mcp_server(self, name: str, wait_for_completion: str = "") -> str:
        client = self._api()
        try:
            client.delete_function(name)
        except Exception as exc:
            raise ToolError(f"failed to delete MCP server: {exc}") from exc

        wait = _should_wait(wait_for_completion)
        if wait:
            logger.info("Waiting for MCP server '%s' to be fully deleted...", name)
            try:
                wait_for_resource_deletion(
                    name,
                    McpServerStatusChecker(client),
                    self.poll_attempts,
                    self.poll_interval,
                )
            except ToolError as exc:
                logger.warning(
                    "Warning: MCP server deletion initiated but status check failed: %s", exc
                )
                result = {
                    "success": True,
                    "message": f"MCP server '{name}' deletion initiated (status check failed: {exc})",
                }
                return to_json(result, sort_keys=True)
        else:
            logger.info("Skipping deletion wait for MCP server '%s'", name)

        deletion_status = "deleted" if wait else "deletion initiated"
        result = {"success": True, "message": f"MCP server '{name}' {deletion_status} successfully"}
        return to_json(result, sort_keys=True)


def register_mcp_server_tools(server: ToolServer, handler: McpServerHandler) -> None:
    """Register the MCP server tools; write tools are left out in read-only mode."""
    read_only = bool(getattr(handler, "read_only", False))

    def list_mcp_servers(request: ToolRequest) -> ToolResult:
        return ToolResult.success(handler.list_mcp_servers(request.get_string("filter", "")))

    def get_mcp_server(request: ToolRequest) -> ToolResult:
        name = request.get_string("name", "")
        if not name:
            raise ToolError("MCP server name is required")
        return ToolResult.success(handler.get_mcp_server(name))

    def create_mcp_server(request: ToolRequest) -> ToolResult:
        arguments = request.arguments
        name = _string_arg(arguments, "name")
        connection = _string_arg(arguments, "integrationConnectionName")
        integration_type = _string_arg(arguments, "integrationType")
        secret = _string_values(arguments.get("secret"), "secret")
        config = _string_values(arguments.get("config"), "config")
        wait = _string_arg(arguments, "waitForCompletion")
        if not name:
            raise ToolError("MCP server name is required")
        return ToolResult.success(
            handler.create_mcp_server(name, connection, integration_type, wait, secret, config)
        )

    def delete_mcp_server(request: ToolRequest) -> ToolResult:
        name = request.get_string("name", "")
        if not name:
            raise ToolError("MCP server name is required")
        wait = request.get_string("waitForCompletion", "true")
        return ToolResult.success(handler.delete_mcp_server(name, wait))

    server.add_tool(
        Tool(
            "list_mcp_servers",
            "List all MCP servers (functions) in the workspace",
            (ToolParam("filter", description="Optional filter string"),),
        ),
        list_mcp_servers,
    )
    server.add_tool(
        Tool(
            "get_mcp_server",
            "Get details of a specific MCP server (function)",
            (ToolParam("name", required=True, description="Name of the MCP server"),),
        ),
        get_mcp_server,
    )
    if read_only:
        return

    server.add_tool(
        Tool(
            "create_mcp_server",
            "Create an MCP server (function) with flexible integration options",
            (
                ToolParam("name", required=True, description="Name for the MCP server"),
                ToolParam("integrationConnectionName", description="Existing integration to use"),
                ToolParam("integrationType", description="Type for new integration (e.g., github)"),
                ToolParam("secret", kind="object", description="Secrets for new integration"),
                ToolParam("config", kind="object", description="Config for new integration"),
                ToolParam(
                    "waitForCompletion",
                    description=(
                        "Whether to wait for the MCP server to reach a final status "
                        "(true/false, default: true)"
                    ),
                ),
            ),
        ),
        create_mcp_server,
    )
    server.add_tool(
        Tool(
            "delete_mcp_server",
            "Delete an MCP server (function) by name",
            (
                ToolParam("name", required=True, description="Name of the MCP server to delete"),
                ToolParam(
                    "waitForCompletion",
                    description=(
                        "Whether to wait for the MCP server to be fully deleted "
                        "(true/false, default: true)"
                    ),
                ),
            ),
        ),
        delete_mcp_server,
    )