"""Workspace user tools: list, inspect, invite, update and remove users."""

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
    to_json,
)


class UserHandler(ABC):
    """Operations behind the workspace user tools."""

    read_only: bool = False

    @abstractmethod
    def list_users(self, filter_text: str) -> str: ...

    @abstractmethod
    def get_user(self, email: str) -> str: ...

    @abstractmethod
    def invite_user(self, email: str, role: str) -> str: ...

    @abstractmethod
    def update_user_role(self, email: str, role: str) -> str: ...

    @abstractmethod
    def remove_user(self, email: str) -> str: ...


def _full_name(user: dict[str, Any]) -> Optional[str]:
    """Join given and family name; None if neither is present."""
    given = user.get("given_name")
    family = user.get("family_name")
    if given is None and family is None:
        return None
    return " ".join(part for part in (given, family) if part)


def _user_info(user: dict[str, Any]) -> dict[str, Any]:
    info: dict[str, Any] = {}
    for key in ("email", "sub"):
        if user.get(key) is not None:
            info[key] = user[key]
    name = _full_name(user)
    if name is not None:
        info["name"] = name
    for key in ("role", "accepted", "email_verified"):
        if user.get(key) is not None:
            info[key] = user[key]
    return info


def _matches(user: dict[str, Any], filter_text: str) -> bool:
    needle = filter_text.lower()
    email = user.get("email") or ""
    name = _full_name(user) or ""
    return needle in email.lower() or needle in name.lower()


def _is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


class SdkUserHandler(UserHandler):
    """Workspace user operations backed by an API client.

    The client provides list_workspace_users(), invite_workspace_user(body),
    update_workspace_user_role(identifier, body) and
    remove_workspace_user(identifier), each returning an ApiResponse. Users are
    objects with the keys email, sub, given_name, family_name, role, accepted
    and email_verified.
    """

    def __init__(self, client: Any, read_only: bool = False) -> None:
        self._client = client
        self.read_only = read_only

    def _api(self) -> Any:
        if self._client is None:
            raise ToolError("SDK client not initialized")
        return self._client

    def _fetch_users(self) -> Any:
        client = self._api()
        try:
            return client.list_workspace_users()
        except Exception as exc:
            raise ToolError(f"failed to list workspace users: {exc}") from exc

    def list_users(self, filter_text: str = "") -> str:
        response = self._fetch_users()
        if response.json is None:
            return to_json({"users": [], "count": 0}, sort_keys=True)

        users = [
            _user_info(user)
            for user in response.json
            if not filter_text or _matches(user, filter_text)
        ]
        # An empty selection serialises as null, as an absent list would.
        return to_json({"users": users or None, "count": len(users)}, sort_keys=True)

    def get_user(self, email: str) -> str:
        response = self._fetch_users()
        if response.json is None:
            raise ToolError("no users found")
        wanted = email.casefold()
        for user in response.json:
            address = user.get("email")
            if address is not None and address.casefold() == wanted:
                return to_json({"user": _user_info(user)}, sort_keys=True)
        raise ToolError(f"user with email '{email}' not found in workspace")

    def invite_user(self, email: str, role: str = "") -> str:
        client = self._api()
        try:
            response = client.invite_workspace_user({"email": email})
        except Exception as exc:
            raise ToolError(f"failed to invite user: {exc}") from exc

        if _is_success(response.status_code):
            message = f"Successfully invited user '{email}' to the workspace"
            if role:
                message += (
                    f". Role '{role}' can be set using update_workspace_user_role "
                    "after the user accepts the invitation"
                )
            return to_json({"success": True, "message": message}, sort_keys=True)
        if response.status_code == HTTPStatus.CONFLICT:
            raise ToolError(
                f"user '{email}' is already in the workspace or has a pending invitation"
            )
        raise ToolError(f"failed to invite user with status {response.status_code}")

    def update_user_role(self, email: str, role: str) -> str:
        client = self._api()
        try:
            response = client.update_workspace_user_role(email, {"role": role})
        except Exception as exc:
            raise ToolError(f"failed to update user role: {exc}") from exc

        if _is_success(response.status_code):
            result = {
                "success": True,
                "message": f"Successfully updated role for user '{email}' to '{role}'",
            }
            return to_json(result, sort_keys=True)
        if response.status_code == HTTPStatus.NOT_FOUND:
            raise ToolError(f"user '{email}' not found in workspace")
        raise ToolError(f"failed to update user role with status {response.status_code}")

    def remove_user(self, email: str) -> str:
        client = self._api()
        try:
            response = client.remove_workspace_user(email)
        except Exception as exc:
            raise ToolError(f"failed to remove user: {exc}") from exc

        if _is_success(response.status_code):
            result = {
                "success": True,
                "message": f"Successfully removed user '{email}' from the workspace",
            }
            return to_json(result, sort_keys=True)
        if response.status_code == HTTPStatus.NOT_FOUND:
            raise ToolError(f"user '{email}' not found in workspace")
        raise ToolError(f"failed to remove user with status {response.status_code}")


def register_user_tools(server: ToolServer, handler: UserHandler) -> None:
    """Register the user tools; write tools are left out in read-only mode."""
    read_only = bool(getattr(handler, "read_only", False))

    def list_users(request: ToolRequest) -> ToolResult:
        return ToolResult.success(handler.list_users(request.get_string("filter", "")))

    def get_user(request: ToolRequest) -> ToolResult:
        email = request.get_string("name", "")
        if not email:
            raise ToolError("name is required")
        return ToolResult.success(handler.get_user(email))

    def invite_user(request: ToolRequest) -> ToolResult:
        email = request.get_string("email", "")
        if not email:
            raise ToolError("email is required")
        role = request.get_string("role", "")
        return ToolResult.success(handler.invite_user(email, role))

    def update_user_role(request: ToolRequest) -> ToolResult:
        email = request.get_string("name", "")
        if not email:
            raise ToolError("name is required")
        role = request.get_string("role", "")
        if not role:
            raise ToolError("role is required")
        return ToolResult.success(handler.update_user_role(email, role))

    def remove_user(request: ToolRequest) -> ToolResult:
        email = request.get_string("name", "")
        if not email:
            raise ToolError("name is required")
        return ToolResult.success(handler.remove_user(email))

    server.add_tool(
        Tool(
            "list_workspace_users",
            "List all users in the workspace",
            (ToolParam("filter", description="Optional filter to match user names or emails"),),
        ),
        list_users,
    )
    server.add_tool(
        Tool(
            "get_workspace_user",
            "Get details of a specific user in the workspace",
            (ToolParam("name", required=True, description="Email of the user to retrieve"),),
        ),
        get_user,
    )
    if read_only:
        return

    server.add_tool(
        Tool(
            "invite_workspace_user",
            "Invite a user to the workspace",
            (
                ToolParam("email", required=True, description="Email of the user to invite"),
                ToolParam("role", description="Role to assign to the user (optional)"),
            ),
        ),
        invite_user,
    )
    server.add_tool(
        Tool(
            "update_workspace_user_role",
            "Update a user's role in the workspace",
            (
                ToolParam("name", required=True, description="Email of the user to update"),
                ToolParam("role", required=True, description="New role for the user"),
            ),
        ),
        update_user_role,
    )
    server.add_tool(
        Tool(
            "remove_workspace_user",
            "Remove a user from the workspace",
            (ToolParam("name", required=True, description="Email of the user to remove"),),
        ),
        remove_user,
    )