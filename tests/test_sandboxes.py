import json

import pytest

from blaxelmcp.sandboxes import SdkSandboxHandler, register_sandbox_tools
from blaxelmcp.tooling import ApiResponse, ToolError, ToolServer


class FakeClient:
    def __init__(self, list_response=None, get_response=None, create_response=None):
        self.list_response = list_response or ApiResponse(200, [])
        self.get_response = get_response or ApiResponse(404, None)
        self.create_response = create_response or ApiResponse(200, {"status": "DEPLOYING"})
        self.created = []
        self.deleted = []

    def list_sandboxes(self):
        return self.list_response

    def get_sandbox(self, name):
        return self.get_response

    def create_sandbox(self, body):
        self.created.append(body)
        return self.create_response

    def delete_sandbox(self, name):
        self.deleted.append(name)
        return ApiResponse(200, None)


class FailingClient(FakeClient):
    def create_sandbox(self, body):
        raise RuntimeError("boom")


def _sandbox(name, **extra):
    item = {"metadata": {"name": name}}
    item.update(extra)
    return item


def test_list_filters_case_insensitively():
    client = FakeClient(
        list_response=ApiResponse(200, [_sandbox("Alpha-Box"), _sandbox("beta"), {"metadata": {}}])
    )
    result = json.loads(SdkSandboxHandler(client).list_sandboxes("alpha"))
    assert [item["name"] for item in result] == ["Alpha-Box"]


def test_list_without_filter_keeps_all_and_defaults_fields():
    client = FakeClient(list_response=ApiResponse(200, [_sandbox("a"), {}]))
    result = json.loads(SdkSandboxHandler(client).list_sandboxes(""))
    assert len(result) == 2
    assert result[1] == {"name": "", "status": "", "labels": {}}


def test_list_none_body_is_empty_list():
    client = FakeClient(list_response=ApiResponse(200, None))
    assert json.loads(SdkSandboxHandler(client).list_sandboxes()) == []


def test_list_non_ok_status_raises():
    client = FakeClient(list_response=ApiResponse(500, None))
    with pytest.raises(ToolError, match="list sandboxes failed with status 500"):
        SdkSandboxHandler(client).list_sandboxes()


def test_list_converts_runtime_and_times():
    sandbox = {
        "metadata": {
            "name": "box",
            "labels": {"team": "core"},
            "createdAt": "2024-01-02T03:04:05Z",
        },
        "status": "DEPLOYED",
        "spec": {
            "runtime": {
                "image": "img",
                "generation": "mk3",
                "memory": 2048,
                "ttl": "1h",
                "expires": "not a date",
            }
        },
    }
    client = FakeClient(list_response=ApiResponse(200, [sandbox]))
    (model,) = json.loads(SdkSandboxHandler(client).list_sandboxes())
    assert model["status"] == "DEPLOYED"
    assert model["labels"] == {"team": "core"}
    assert model["image"] == "img"
    assert model["memory"] == 2048
    assert model["ttl"] == "1h"
    assert "expires" not in model
    assert model["createdAt"].startswith("2024-01-02T03:04:05")


def test_get_returns_json_and_missing_raises():
    client = FakeClient(get_response=ApiResponse(200, {"metadata": {"name": "box"}}))
    assert json.loads(SdkSandboxHandler(client).get_sandbox("box")) == {"metadata": {"name": "box"}}
    with pytest.raises(ToolError, match="no sandbox found"):
        SdkSandboxHandler(FakeClient()).get_sandbox("box")


def test_create_builds_request_body():
    client = FakeClient()
    output = json.loads(
        SdkSandboxHandler(client).create_sandbox("box", "img", 1024.7, " 8080, ,8081", "A=1,B=x=y")
    )
    runtime = client.created[0]["spec"]["runtime"]
    assert client.created[0]["metadata"] == {"name": "box"}
    assert runtime["image"] == "img"
    assert runtime["memory"] == 1024
    assert runtime["ports"] == [
        {"target": 8080, "protocol": "TCP"},
        {"target": 8081, "protocol": "TCP"},
    ]
    assert runtime["envs"] == [{"name": "A", "value": "1"}, {"name": "B", "value": "x=y"}]
    assert output["message"] == "Sandbox 'box' created successfully"
    assert output["sandbox"] == {"name": "box", "status": "DEPLOYING"}


def test_create_with_no_options_sends_empty_runtime():
    client = FakeClient(create_response=ApiResponse(200, {}))
    output = json.loads(SdkSandboxHandler(client).create_sandbox("box", "", 0, "", ""))
    assert client.created[0]["spec"]["runtime"] == {}
    assert output["sandbox"] == {"name": "box"}


def test_create_invalid_port_raises():
    client = FakeClient()
    with pytest.raises(ToolError, match="invalid port 'abc'"):
        SdkSandboxHandler(client).create_sandbox("box", "", 0, "8080,abc", "")
    assert client.created == []


def test_create_conflict_and_other_failures():
    conflict = FakeClient(create_response=ApiResponse(409, None))
    with pytest.raises(ToolError, match="sandbox with name 'box' already exists"):
        SdkSandboxHandler(conflict).create_sandbox("box")
    failed = FakeClient(create_response=ApiResponse(500, None))
    with pytest.raises(ToolError, match="failed to create sandbox with status 500"):
        SdkSandboxHandler(failed).create_sandbox("box")


def test_create_client_exception_is_wrapped():
    with pytest.raises(ToolError, match="failed to create sandbox: boom"):
        SdkSandboxHandler(FailingClient()).create_sandbox("box")


def test_delete_reports_success():
    client = FakeClient()
    output = json.loads(SdkSandboxHandler(client).delete_sandbox("box"))
    assert client.deleted == ["box"]
    assert output == {"success": True, "message": "Sandbox 'box' deleted successfully"}


def test_missing_client_raises():
    with pytest.raises(ToolError, match="SDK client not initialized"):
        SdkSandboxHandler(None).list_sandboxes()


def test_read_only_registers_only_read_tools():
    server = ToolServer()
    register_sandbox_tools(server, SdkSandboxHandler(FakeClient(), read_only=True))
    assert server.tool_names() == ["list_sandboxes", "get_sandbox"]


def test_full_registration_and_required_name():
    server = ToolServer()
    register_sandbox_tools(server, SdkSandboxHandler(FakeClient()))
    assert server.tool_names() == [
        "list_sandboxes",
        "get_sandbox",
        "create_sandbox",
        "delete_sandbox",
    ]
    result = server.call_tool("create_sandbox", {})
    assert result.is_error
    assert result.text == "sandbox name is required"


def test_create_tool_parses_memory_string():
    client = FakeClient()
    server = ToolServer()
    register_sandbox_tools(server, SdkSandboxHandler(client))
    result = server.call_tool("create_sandbox", {"name": "box", "memory": "512"})
    assert not result.is_error
    assert client.created[0]["spec"]["runtime"]["memory"] == 512
    server.call_tool("create_sandbox", {"name": "box2", "memory": "lots"})
    assert "memory" not in client.created[1]["spec"]["runtime"]


def test_get_tool_error_becomes_result():
    server = ToolServer()
    register_sandbox_tools(server, SdkSandboxHandler(FakeClient()))
    result = server.call_tool("get_sandbox", {"name": "box"})
    assert result.is_error
    assert result.text == "no sandbox found"