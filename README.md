# blaxelmcp

Tool definitions and handlers for managing the resources of a Blaxel
workspace (agents, integration connections, MCP servers, sandboxes and
workspace users) and for invoking deployed agents, jobs, models and
sandboxes.

The package has no dependencies beyond the standard library.

Each resource family comes in two parts:

* a `register_*_tools(server, handler)` function that declares the tools
  (names, descriptions, parameters) on a `ToolServer` and wires each one to
  a handler method;
* an `Sdk*Handler` class that does the work against an API client you
  supply, and renders the results as text or indented JSON.

Handlers built with `read_only=True` only get the listing and lookup tools;
the creating, updating and deleting tools are not registered. The runtime
tools are always registered.

## Modules

| Module                    | What it provides |
|---------------------------|------------------|
| `blaxelmcp.tooling`       | `ToolServer`, `Tool`, `ToolParam`, `ToolRequest`, `ToolResult`, `ToolError`, `ApiResponse`; helpers `filter_and_marshal`, `contains_string`, `set_runtime_env` |
| `blaxelmcp.polling`       | `StatusChecker`, `wait_for_resource_status`, `wait_for_resource_deletion`, `is_final_status`, `is_building_status` |
| `blaxelmcp.agents`        | `register_agent_tools`, `AgentHandler`, `SdkAgentHandler` |
| `blaxelmcp.integrations`  | `register_integration_tools`, `IntegrationHandler`, `SdkIntegrationHandler` |
| `blaxelmcp.mcpservers`    | `register_mcp_server_tools`, `McpServerHandler`, `SdkMcpServerHandler`, `McpServerStatusChecker` |
| `blaxelmcp.runtime`       | `register_runtime_tools`, `RuntimeHandler`, `SdkRuntimeHandler`, `RunResponse` |
| `blaxelmcp.sandboxes`     | `register_sandbox_tools`, `SandboxHandler`, `SdkSandboxHandler` |
| `blaxelmcp.users`         | `register_user_tools`, `UserHandler`, `SdkUserHandler` |

## Tools

| Family       | Always registered | Left out when read-only |
|--------------|-------------------|-------------------------|
| agents       | `list_agents`, `get_agent` | `delete_agent` |
| integrations | `list_integrations`, `get_integration` | `create_integration`, `delete_integration` |
| MCP servers  | `list_mcp_servers`, `get_mcp_server` | `create_mcp_server`, `delete_mcp_server` |
| sandboxes    | `list_sandboxes`, `get_sandbox` | `create_sandbox`, `delete_sandbox` |
| users        | `list_workspace_users`, `get_workspace_user` | `invite_workspace_user`, `update_workspace_user_role`, `remove_workspace_user` |
| runtime      | `run_agent`, `run_job`, `run_model`, `run_sandbox` | — |

`Tool.input_schema` gives the JSON schema of a tool's arguments.

## Usage

```python
from blaxelmcp.tooling import ToolServer
from blaxelmcp.agents import SdkAgentHandler, register_agent_tools
from blaxelmcp.sandboxes import SdkSandboxHandler, register_sandbox_tools

client = ...  # your API client for the workspace

server = ToolServer()
register_agent_tools(server, SdkAgentHandler(client, read_only=True))
register_sandbox_tools(server, SdkSandboxHandler(client))

print(server.tool_names())
result = server.call_tool("list_agents", {"filter": "demo"})
print(result.is_error, result.text)
```

`call_tool` returns a `ToolResult`. A `ToolError` raised while the tool
runs (a missing argument, a failed API call, an unexpected status code)
comes back as a result with `is_error=True` and the message as its text.
Calling a tool name that is not registered raises `ToolError`.

### The API client

The handlers do not make HTTP requests themselves; they call methods on the
client you pass in. Apart from `run`, each method returns an
`ApiResponse(status_code, json)`, where `json` is the decoded body or
`None`.

* `SdkAgentHandler`: `list_agents()`, `get_agent(name)`, `delete_agent(name)`
* `SdkIntegrationHandler`: `list_integration_connections()`,
  `get_integration_connection(name)`, `create_integration_connection(body)`,
  `delete_integration_connection(name)`
* `SdkMcpServerHandler`: `list_functions()`, `get_function(name)`,
  `create_function(body)`, `delete_function(name)`,
  `create_integration_connection(body)`
* `SdkSandboxHandler`: `list_sandboxes()`, `get_sandbox(name)`,
  `create_sandbox(body)`, `delete_sandbox(name)`
* `SdkUserHandler`: `list_workspace_users()`, `invite_workspace_user(body)`,
  `update_workspace_user_role(identifier, body)`,
  `remove_workspace_user(identifier)`
* `SdkRuntimeHandler(client, workspace, read_only)`: `start_sandbox(name)`
  and `run(workspace=, resource_type=, name=, method=, path=, headers=,
  params=, body=)`, which returns an object with `status_code` and `body`
  (bytes or text), such as a `RunResponse`.

An exception raised by a client method becomes a `ToolError` with a message
saying which operation failed. A handler constructed with `client=None`
raises `ToolError("SDK client not initialized")` when used.

### Waiting for a deployment

`create_mcp_server` and `delete_mcp_server` wait for the MCP server to
settle unless `wait_for_completion` is a non-empty string other than
`"true"`. A failed wait does not fail the call; the message then carries
"status check failed". The same polling works for any resource through a
`StatusChecker`:

```python
from blaxelmcp.mcpservers import McpServerStatusChecker
from blaxelmcp.polling import wait_for_resource_status

checker = McpServerStatusChecker(client)
wait_for_resource_status("my-server", checker, max_attempts=60, interval=2.0)
```

`DEPLOYED` ends the wait; `FAILED`, `TERMINATED`, `DEACTIVATED` and
`DELETING` end it with a `ToolError`. Building states (`CREATED`,
`UPDATED`, `UPLOADING`, `BUILDING`, `DEPLOYING`, `DEACTIVATING`) and
unknown states keep it polling until the attempts run out.
`wait_for_resource_deletion` succeeds when the resource is gone, reports
`DELETED`, or the lookup fails with an error mentioning "404" or
"not found"; `DELETING` keeps it polling, and any other status is an error.
The defaults are 60 attempts, 2 seconds apart.

### Helpers

* `contains_string(s, substr)`: case-insensitive substring test used by the
  list filters.
* `set_runtime_env("FOO=bar,BAR=baz")`: returns
  `[{"name": "FOO", "value": "bar"}, {"name": "BAR", "value": "baz"}]`,
  `None` for an empty string, and raises `ValueError` for an entry without
  `=`.
* `filter_and_marshal(items, filter_text, get_name)`: keeps items whose name
  contains the filter and returns indented JSON.

Progress and warnings are written through the standard `logging` module
under the `blaxelmcp.*` logger names.

## What this package does not do

* It does not speak the MCP wire protocol: `ToolServer` is an in-process
  registry, with no stdio or network transport to serve the tools to a
  client.
* It has no HTTP client for the Blaxel API and reads no credentials or
  configuration; you supply the client object.
* It installs no command-line program.
* It has no tools for jobs, model APIs, service accounts or local project
  scaffolding and deployment, beyond invoking a job or model through the
  runtime tools.