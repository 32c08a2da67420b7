import json

import pytest

from blaxelmcp.mcpservers import (
    McpServerStatusChecker,
    SdkMcpServerHandler,
    register_mcp_server_tools,
)
from blaxelmcp.tooling import ApiResponse, ToolError, ToolServer


class FakeClient:
    def __init__(self, functions=None, statuses=None, create_status=200, integration_status=200):
        self.functions = functions
        self.statuses = list(statuses or [])
        self.create_status = create_status
        self.integration_status = integration_status
        self.created_functions = []
        self.created_integrations = []
        self.deleted = []

    def list_functions(self):
        return ApiResponse(200, self.functions)

    def get_function(self, name):
        item = self.statuses.pop(0) if self.statuses else ApiResponse(200, {"status": "DEPLOYED"})
        if isinstance(item, Exception):
            raise item
        return item

    def create_function(self, body):
        self.created_functions.append(body)
        payload = body if self.create_status == 200 else None
        return ApiResponse(self.create_status, payload)

    def create_integration_connection(self, body):
        self.created_integrations.append(body)
        return ApiResponse(self.integration_status, body if self.integration_status == 200 else None)

    def delete_function(self, name):
        self.deleted.append(name)
        return ApiResponse(200, None)


def make_handler(client, read_only=False):
    handler = SdkMcpServerHandler(client, read_only)
    handler.poll_attempts = 3
    handler.poll_interval = 0
    return handler


def test_list_filters_case_insensitively():
    client = FakeClient(
        functions=[
            {"metadata": {"name": "GitHub-Server"}, "status": "DEPLOYED"},
            {"metadata": {"name": "slack"}},
            {"spec": {}},
        ]
    )
    result = json.loads(make_handler(client).list_mcp_servers("github"))
    assert [item["name"] for item in result] == ["GitHub-Server"]
    assert result[0]["status"] == "DEPLOYED"


def test_list_without_filter_includes_models():
    client = FakeClient(
        functions=[
            {
                "metadata": {"name": "a", "createdAt": "2024-01-02T03:04:05Z"},
                "spec": {"runtime": {"memory": 1024}, "integrationConnections": ["conn"]},
            }
        ]
    )
    result = json.loads(make_handler(client).list_mcp_servers(""))
    assert result[0]["memory"] == 1024
    assert result[0]["integrationConnections"] == ["conn"]
    assert result[0]["createdAt"].startswith("2024-01-02T03:04:05")


def test_get_missing_raises():
    client = FakeClient(statuses=[ApiResponse(404, None)])
    with pytest.raises(ToolError, match="no MCP server found"):
        make_handler(client).get_mcp_server("x")


def test_no_client():
    with pytest.raises(ToolError, match="SDK client not initialized"):
        SdkMcpServerHandler(None).list_mcp_servers("")


def test_create_requires_exactly_one_integration_option():
    handler = make_handler(FakeClient())
    with pytest.raises(ToolError, match="not both"):
        handler.create_mcp_server("s", "conn", "github", "false", {}, {})
    with pytest.raises(ToolError, match="must provide either"):
        handler.create_mcp_server("s", "", "", "false", {}, {})


def test_create_with_existing_connection_no_wait():
    client = FakeClient()
    result = json.loads(make_handler(client).create_mcp_server("srv", "conn", "", "false", {}, {}))
    assert result["message"] == "MCP server 'srv' created successfully"
    assert result["mcp_server"] == {"name": "srv", "integrationConnection": "conn"}
    assert client.created_functions[0]["spec"]["integrationConnections"] == ["conn"]
    assert client.created_functions[0]["spec"]["runtime"]["type"] == "mcp"
    assert client.created_integrations == []


def test_create_inline_integration_and_wait_deployed():
    client = FakeClient(statuses=[ApiResponse(200, {"status": "BUILDING"}), ApiResponse(200, {"status": "DEPLOYED"})])
    handler = make_handler(client)
    result = json.loads(handler.create_mcp_server("srv", "", "github", "", {"token": "token"}, {}))
    assert result["message"] == (
        "MCP server 'srv' created and deployed successfully with inline integration "
        "'srv-github-integration'"
    )
    assert result["mcp_server"]["integrationType"] == "github"
    integration = client.created_integrations[0]
    assert integration["metadata"]["name"] == "srv-github-integration"
    assert integration["spec"]["secret"] == {"token": "token"}
    assert "config" not in integration["spec"]


def test_create_inline_integration_conflict_is_tolerated():
    client = FakeClient(integration_status=409)
    result = json.loads(make_handler(client).create_mcp_server("srv", "", "github", "false", {}, {}))
    assert result["success"] is True
    assert len(client.created_functions) == 1


def test_create_inline_integration_failure():
    client = FakeClient(integration_status=500)
    with pytest.raises(ToolError, match="failed to create integration with status 500"):
        make_handler(client).create_mcp_server("srv", "", "github", "false", {}, {})
    assert client.created_functions == []


def test_create_conflict():
    client = FakeClient(create_status=409)
    with pytest.raises(ToolError, match="MCP server with name 'srv' already exists"):
        make_handler(client).create_mcp_server("srv", "conn", "", "false", {}, {})


def test_create_wait_failure_still_succeeds():
    client = FakeClient(statuses=[ApiResponse(200, {"status": "FAILED"})])
    result = json.loads(make_handler(client).create_mcp_server("srv", "conn", "", "true", {}, {}))
    assert result["success"] is True
    assert "status check failed" in result["message"]
    assert "FAILED" in result["message"]


def test_delete_without_wait():
    client = FakeClient()
    result = json.loads(make_handler(client).delete_mcp_server("srv", "false"))
    assert result["message"] == "MCP server 'srv' deletion initiated successfully"
    assert client.deleted == ["srv"]


def test_delete_waits_until_404():
    client = FakeClient(statuses=[ApiResponse(200, {"status": "DELETING"}), RuntimeError("status 404")])
    result = json.loads(make_handler(client).delete_mcp_server("srv", "true"))
    assert result["message"] == "MCP server 'srv' deleted successfully"


def test_delete_wait_unexpected_state_reports_warning():
    client = FakeClient(statuses=[ApiResponse(200, {"status": "DEPLOYED"})])
    result = json.loads(make_handler(client).delete_mcp_server("srv", ""))
    assert result["message"].startswith("MCP server 'srv' deletion initiated (status check failed:")


def test_status_checker_extract():
    checker = McpServerStatusChecker(FakeClient())
    assert checker.resource_type == "mcp_server"
    assert checker.extract_status(ApiResponse(200, {"status": "DEPLOYED"})) == "DEPLOYED"
    assert checker.extract_status(ApiResponse(200, {})) == "DEPLOYING"
    assert checker.extract_status(ApiResponse(404, None)) == "DEPLOYING"


def test_register_read_only_tools():
    server = ToolServer()
    register_mcp_server_tools(server, make_handler(FakeClient(), read_only=True))
    assert server.tool_names() == ["list_mcp_servers", "get_mcp_server"]


def test_register_all_tools_and_call():
    server = ToolServer()
    client = FakeClient()
    register_mcp_server_tools(server, make_handler(client))
    assert server.tool_names() == [
        "list_mcp_servers",
        "get_mcp_server",
        "create_mcp_server",
        "delete_mcp_server",
    ]
    missing = server.call_tool("create_mcp_server", {"integrationType": "github"})
    assert missing.is_error and missing.text == "MCP server name is required"
    bad = server.call_tool("create_mcp_server", {"name": "s", "secret": "secret"})
    assert bad.is_error and bad.text.startswith("invalid arguments")
    ok = server.call_tool(
        "create_mcp_server",
        {"name": "s", "integrationConnectionName": "c", "waitForCompletion": "false"},
    )
    assert not ok.is_error
    assert json.loads(ok.text)["mcp_server"]["integrationConnection"] == "c"
    deleted = server.call_tool("delete_mcp_server", {"name": "s", "waitForCompletion": "false"})
    assert json.loads(deleted.text)["message"] == "MCP server 's' deletion initiated successfully"