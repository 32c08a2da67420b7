"""Runtime tools: invoke agents, jobs, models and sandboxes in a workspace."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Union

from blaxelmcp.tooling import (
    Tool,
    ToolError,
    ToolParam,
    ToolRequest,
    ToolResult,
    ToolServer,
    to_json,
)

_JSON_HEADERS = {"Content-Type": "application/json"}


@dataclass(frozen=True)
class RunResponse:
    """Raw response of a resource invocation: HTTP status and body."""

    status_code: int
    body: Union[bytes, str] = b""


class RuntimeHandler(ABC):
    """Operations behind the runtime tools."""

    read_only: bool = False

    @abstractmethod
    def run_agent(self, name: str, message: str, context: str) -> str: ...

    @abstractmethod
    def run_job(self, name: str, parameters: str) -> str: ...

    @abstractmethod
    def run_model(self, name: str, body: str, path: str, method: str) -> str: ...

    @abstractmethod
    def run_sandbox(self, name: str, body: str, method: str, path: str) -> str: ...


def _body_text(response: Any) -> str:
    body = response.body
    if isinstance(body, (bytes, bytearray)):
        return bytes(body).decode("utf-8", errors="replace")
    return "" if body is None else str(body)


def _pretty(text: str) -> str:
    """Re-indent the text if it is JSON, otherwise return it unchanged."""
    try:
        parsed = json.loads(text)
    except ValueError:
        return text
    return to_json(parsed, sort_keys=True)


class SdkRuntimeHandler(RuntimeHandler):
    """Runtime operations backed by an API client.

    The client provides run(workspace=, resource_type=, name=, method=, path=,
    headers=, params=, body=), returning an object with status_code and body,
    and start_sandbox(name), returning an ApiResponse.
    """

    def __init__(self, client: Any, workspace: str = "", read_only: bool = False) -> None:
        self._client = client
        self.workspace = workspace
        self.read_only = read_only

    def _api(self) -> Any:
        if self._client is None:
            raise ToolError("SDK client not initialized")
        return self._client

    def _run(
        self, resource_type: str, name: str, method: str, path: str, body: str, failure: str
    ) -> tuple[int, str]:
        client = self._api()
        try:
            response = client.run(
                workspace=self.workspace,
                resource_type=resource_type,
                name=name,
                method=method,
                path=path,
                headers=dict(_JSON_HEADERS),
                params=None,
                body=body,
            )
        except Exception as exc:
            raise ToolError(f"{failure}: {exc}") from exc
        try:
            text = _body_text(response)
        except Exception as exc:
            raise ToolError(f"failed to read response: {exc}") from exc
        return response.status_code, text

    def run_agent(self, name: str, message: str, context: str = "") -> str:
        request_body: dict[str, Any] = {"inputs": message}
        if context:
            try:
                request_body["context"] = json.loads(context)
            except ValueError:
                pass
        payload = json.dumps(request_body, sort_keys=True, separators=(",", ":"))
        status, text = self._run("agent", name, "POST", "", payload, "failed to run agent")
        if status != HTTPStatus.OK:
            raise ToolError(f"agent invocation failed with status {status}: {text}")
        return _pretty(text)

    def run_job(self, name: str, parameters: str = "") -> str:
        payload = parameters or "{}"
        status, text = self._run("job", name, "POST", "", payload, "failed to run job")
        if status not in (HTTPStatus.OK, HTTPStatus.ACCEPTED):
            raise ToolError(f"job trigger failed with status {status}: {text}")
        return f"Job triggered successfully:\n{_pretty(text)}"

    def run_model(self, name: str, body: str, path: str, method: str) -> str:
        status, text = self._run("model", name, method, path, body, "failed to run model")
        if status != HTTPStatus.OK:
            raise ToolError(f"model invocation failed with status {status}: {text}")
        return _pretty(text)

    def run_sandbox(self, name: str, body: str, method: str, path: str) -> str:
        client = self._api()
        try:
            started = client.start_sandbox(name)
        except Exception as exc:
            raise ToolError(f"failed to start sandbox: {exc}") from exc
        if started.status_code not in (HTTPStatus.OK, HTTPStatus.CONFLICT):
            raise ToolError(f"failed to start sandbox with status {started.status_code}")

        status, text = self._run(
            "sandbox", name, method, path, body, "failed to execute in sandbox"
        )
        if status != HTTPStatus.OK:
            raise ToolError(f"sandbox execution failed with status {status}: {text}")
        return _pretty(text)


def register_runtime_tools(server: ToolServer, handler: RuntimeHandler) -> None:
    """Register the runtime tools."""

    def run_agent(request: ToolRequest) -> ToolResult:
        name = request.get_string("name", "")
        if not name:
            raise ToolError("agent name is required")
        message = request.get_string("message", "")
        if not message:
            raise ToolError("message is required")
        context = request.get_string("context", "")
        return ToolResult.success(handler.run_agent(name, message, context))

    def run_job(request: ToolRequest) -> ToolResult:
        name = request.get_string("name", "")
        if not name:
            raise ToolError("job name is required")
        parameters = request.get_string("parameters", "")
        return ToolResult.success(handler.run_job(name, parameters))

    def run_model(request: ToolRequest) -> ToolResult:
        name = request.get_string("name", "")
        if not name:
            raise ToolError("model name is required")
        body = request.get_string("body", "")
        if not body:
            raise ToolError("body is required")
        path = request.get_string("path", "") or "/v1/chat/completions"
        method = request.get_string("method", "") or "POST"
        return ToolResult.success(handler.run_model(name, body, path, method))

    def run_sandbox(request: ToolRequest) -> ToolResult:
        name = request.get_string("name", "")
        if not name:
            raise ToolError("sandbox name is required")
        body = request.get_string("body", "{}")
        method = request.get_string("method", "POST")
        path = request.get_string("path", "/process")
        return ToolResult.success(handler.run_sandbox(name, body, method, path))

    server.add_tool(
        Tool(
            "run_agent",
            "Chat with or invoke an agent",
            (
                ToolParam("name", required=True, description="Name of the agent to run"),
                ToolParam(
                    "message",
                    required=True,
                    description="Message or prompt to send to the agent",
                ),
                ToolParam(
                    "context",
                    description="Optional context data for the agent (JSON string)",
                ),
            ),
        ),
        run_agent,
    )
    server.add_tool(
        Tool(
            "run_job",
            "Trigger or run a job",
            (
                ToolParam("name", required=True, description="Name of the job to run"),
                ToolParam(
                    "parameters", description="Optional parameters for the job (JSON string)"
                ),
            ),
        ),
        run_job,
    )
    server.add_tool(
        Tool(
            "run_model",
            "Invoke a model API",
            (
                ToolParam("name", required=True, description="Name of the model API to invoke"),
                ToolParam(
                    "body", required=True, description="Body data for the model (JSON string)"
                ),
                ToolParam("path", description="Path of the model API to invoke"),
            ),
        ),
        run_model,
    )
    server.add_tool(
        Tool(
            "run_sandbox",
            "Execute code in a sandbox environment",
            (
                ToolParam("name", required=True, description="Name of the sandbox to use"),
                ToolParam(
                    "body",
                    description="Body to use for the request (JSON string)",
                    default="{}",
                ),
                ToolParam("method", description="HTTP method to use", default="POST"),
                ToolParam("path", description="Path to use", default="/process"),
            ),
        ),
        run_sandbox,
    )