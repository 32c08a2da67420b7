"""Integration tools: list, inspect, create and delete integration connections."""

from __future__ import annotations

from abc import ABC, abstractmethod
from http import HTTPStatus
from typing import Any, Mapping, Optional

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


class IntegrationHandler(ABC):
    """Operations behind the integration tools."""

    read_only: bool = False

    @abstractmethod
    def list_integrations(self, filter_text: str) -> str: ...

    @abstractmethod
    def get_integration(self, name: str) -> str: ...

    @abstractmethod
    def create_integration(
        self,
        name: str,
        integration_type: str,
        secret: Mapping[str, str],
        config: Mapping[str, str],
    ) -> str: ...

    @abstractmethod
    def delete_integration(self, name: str) -> str: ...


def _integration_name(integration: dict[str, Any]) -> Optional[str]:
    return (integration.get("metadata") or {}).get("name")


def _integration_model(integration: dict[str, Any]) -> dict[str, Any]:
    metadata = integration.get("metadata") or {}
    spec = integration.get("spec") or {}
    model: dict[str, Any] = {
        "name": metadata.get("name") or "",
        "secrets": dict(spec.get("secret") or {}),
        "config": dict(spec.get("config") or {}),
        "labels": dict(metadata.get("labels") or {}),
    }
    created_at = parse_rfc3339(metadata.get("createdAt"))
    if created_at is not None:
        model["createdAt"] = created_at.isoformat()
    return model


class SdkIntegrationHandler(IntegrationHandler):
    """Integration operations backed by an API client.

    The client provides list_integration_connections(),
    get_integration_connection(name), create_integration_connection(body) and
    delete_integration_connection(name), each returning an ApiResponse.
    """

    def __init__(self, client: Any, read_only: bool = False) -> None:
        self._client = client
        self.read_only = read_only

    def _api(self) -> Any:
        if self._client is None:
            raise ToolError("SDK client not initialized")
        return self._client

    def list_integrations(self, filter_text: str = "") -> str:
        client = self._api()
        try:
            response = client.list_integration_connections()
        except Exception as exc:
            raise ToolError(f"failed to list integrations: {exc}") from exc
        if response.status_code != HTTPStatus.OK:
            raise ToolError(f"list integrations failed with status {response.status_code}")

        integrations = response.json or []
        if filter_text:
            integrations = [
                item
                for item in integrations
                if (name := _integration_name(item)) is not None
                and contains_string(name, filter_text)
            ]
        return to_json([_integration_model(item) for item in integrations])

    def get_integration(self, name: str) -> str:
        client = self._api()
        try:
            response = client.get_integration_connection(name)
        except Exception as exc:
            raise ToolError(f"failed to get integration: {exc}") from exc
        if response.json is None:
            raise ToolError("no integration found")
        return to_json(response.json)

    def create_integration(
        self,
        name: str,
        integration_type: str,
        secret: Optional[Mapping[str, str]] = None,
        config: Optional[Mapping[str, str]] = None,
    ) -> str:
        client = self._api()
        spec: dict[str, Any] = {"integration": integration_type}
        if secret:
            spec["secret"] = dict(secret)
        if config:
            spec["config"] = dict(config)
        body = {"metadata": {"name": name}, "spec": spec}

        try:
            response = client.create_integration_connection(body)
        except Exception as exc:
            raise ToolError(f"failed to create integration: {exc}") from exc
        if response.json is None:
            if response.status_code == HTTPStatus.CONFLICT:
                raise ToolError(f"integration with name '{name}' already exists")
            raise ToolError(f"failed to create integration with status {response.status_code}")

        result = {
            "success": True,
            "message": f"Integration '{name}' created successfully",
            "integration": {"name": name, "type": integration_type},
        }
        return to_json(result, sort_keys=True)

    def delete_integration(self, name: str) -> str:
        client = self._api()
        try:
            client.delete_integration_connection(name)
        except Exception as exc:
            raise ToolError(f"failed to delete integration: {exc}") from exc
        result = {"success": True, "message": f"Integration '{name}' deleted successfully"}
        return to_json(result, sort_keys=True)


def _string_values(value: Any, key: str) -> dict[str, str]:
    """Keep only the string values of an object argument."""
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ToolError(f"invalid arguments: '{key}' must be an object")
    return {k: v for k, v in value.items() if isinstance(v, str)}


def _string_arg(arguments: Mapping[str, Any], key: str) -> str:
    value = arguments.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ToolError(f"invalid arguments: '{key}' must be a string")
    return value


def register_integration_tools(server: ToolServer, handler: IntegrationHandler) -> None:
    """Register the integration tools; write tools are left out in read-only mode."""
    read_only = bool(getattr(handler, "read_only", False))

    def list_integrations(request: ToolRequest) -> ToolResult:
        return ToolResult.success(handler.list_integrations(request.get_string("filter", "")))

    def get_integration(request: ToolRequest) -> ToolResult:
        name = request.get_string("name", "")
        if not name:
            raise ToolError("integration name is required")
        return ToolResult.success(handler.get_integration(name))

    def create_integration(request: ToolRequest) -> ToolResult:
        arguments = request.arguments
        name = _string_arg(arguments, "name")
        integration_type = _string_arg(arguments, "integrationType")
        secret = _string_values(arguments.get("secret"), "secret")
        config = _string_values(arguments.get("config"), "config")
        if not name:
            raise ToolError("integration name is required")
        if not integration_type:
            raise ToolError("integrationType is required")
        return ToolResult.success(
            handler.create_integration(name, integration_type, secret, config)
        )

    def delete_integration(request: ToolRequest) -> ToolResult:
        name = request.get_string("name", "")
        if not name:
            raise ToolError("integration name is required")
        return ToolResult.success(handler.delete_integration(name))

    server.add_tool(
        Tool(
            "list_integrations",
            "List all integration connections in the workspace",
            (ToolParam("filter", description="Optional filter string"),),
        ),
        list_integrations,
    )
    server.add_tool(
        Tool(
            "get_integration",
            "Get details of a specific integration connection",
            (ToolParam("name", required=True, description="Name of the integration"),),
        ),
        get_integration,
    )
    if read_only:
        return

    server.add_tool(
        Tool(
            "create_integration",
            "Create a new integration connection",
            (
                ToolParam("name", required=True, description="Name for the integration connection"),
                ToolParam(
                    "integrationType",
                    required=True,
                    description="Type of integration (e.g., github, slack, etc.)",
                ),
                ToolParam(
                    "secret", kind="object", description="Secret credentials for the integration"
                ),
                ToolParam(
                    "config",
                    kind="object",
                    description="Configuration parameters for the integration",
                ),
            ),
        ),
        create_integration,
    )
    server.add_tool(
        Tool(
            "delete_integration",
            "Delete an integration connection by name",
            (ToolParam("name", required=True, description="Name of the integration to delete"),),
        ),
        delete_integration,
    )