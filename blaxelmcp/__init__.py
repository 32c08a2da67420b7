"""Tool registry, status polling and handlers for agents, integrations, MCP servers, sandboxes, users and runtime invocation in a Blaxel workspace."""

__version__ = "0.1.0"