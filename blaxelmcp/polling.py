"""Polling a resource until it is deployed or deleted."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any

from blaxelmcp.tooling import ToolError

logger = logging.getLogger(__name__)

_FINAL_STATUSES = frozenset({"DEPLOYED", "FAILED", "TERMINATED", "DEACTIVATED", "DELETING"})
_BUILDING_STATUSES = frozenset(
    {"CREATED", "UPDATED", "UPLOADING", "BUILDING", "DEPLOYING", "DEACTIVATING"}
)

DEFAULT_MAX_ATTEMPTS = 60
DEFAULT_INTERVAL = 2.0


class StatusChecker(ABC):
    """Fetches a resource and reads its status."""

    resource_type: str = "resource"

    @abstractmethod
    def get_resource(self, name: str) -> Any:
        """Fetch the resource; return None if absent, raise on failure."""

    @abstractmethod
    def extract_status(self, resource: Any) -> str:
        """Read the status string from a fetched resource."""


def is_final_status(status: str) -> bool:
    """True if the resource is no longer building or deploying."""
    return status in _FINAL_STATUSES


def is_building_status(status: str) -> bool:
    """True if the resource is still building."""
    return status in _BUILDING_STATUSES


def wait_for_resource_status(
    resource_name: str,
    checker: StatusChecker,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    interval: float = DEFAULT_INTERVAL,
) -> None:
    """Wait until the resource is DEPLOYED; raise ToolError on failure or timeout."""
    kind = checker.resource_type
    for attempt in range(1, max_attempts + 1):
        last = attempt == max_attempts
        try:
            resource = checker.get_resource(resource_name)
        except Exception as exc:
            logger.info("Failed to get %s status (attempt %d/%d): %s", kind, attempt, max_attempts, exc)
            if last:
                raise ToolError(
                    f"failed to get {kind} status after {max_attempts} attempts: {exc}"
                ) from exc
            time.sleep(interval)
            continue

        if resource is None:
            logger.info("%s not found (attempt %d/%d)", kind, attempt, max_attempts)
            if last:
                raise ToolError(f"{kind} not found after {max_attempts} attempts")
            time.sleep(interval)
            continue

        status = checker.extract_status(resource)
        logger.info(
            "%s '%s' status check attempt %d/%d: %s", kind, resource_name, attempt, max_attempts, status
        )

        if is_final_status(status):
            if status == "DEPLOYED":
                logger.info("%s '%s' successfully deployed", kind, resource_name)
                return
            raise ToolError(f"{kind} '{resource_name}' reached final status '{status}' (not deployed)")
        if is_building_status(status):
            logger.info("%s '%s' still building, status: %s", kind, resource_name, status)
            if last:
                raise ToolError(
                    f"{kind} '{resource_name}' did not reach final status within timeout, "
                    f"last status: {status}"
                )
        else:
            logger.info("%s '%s' unknown status: %s", kind, resource_name, status)
            if last:
                raise ToolError(
                    f"{kind} '{resource_name}' unknown status after {max_attempts} attempts: {status}"
                )
        time.sleep(interval)

    raise ToolError(f"{kind} '{resource_name}' status check timed out after {max_attempts} attempts")


def wait_for_resource_deletion(
    resource_name: str,
    checker: StatusChecker,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    interval: float = DEFAULT_INTERVAL,
) -> None:
    """Wait until the resource is gone; raise ToolError on failure or timeout."""
    kind = checker.resource_type
    for attempt in range(1, max_attempts + 1):
        last = attempt == max_attempts
        try:
            resource = checker.get_resource(resource_name)
        except Exception as exc:
            message = str(exc)
            if "404" in message or "not found" in message:
                logger.info("%s '%s' successfully deleted (404 response)", kind, resource_name)
                return
            logger.info(
                "Failed to get %s status during deletion (attempt %d/%d): %s",
                kind, attempt, max_attempts, exc,
            )
            if last:
                raise ToolError(
                    f"failed to get {kind} status during deletion after {max_attempts} attempts: {exc}"
                ) from exc
            time.sleep(interval)
            continue

        if resource is None:
            logger.info(
                "%s %s not found during deletion (attempt %d/%d)", kind, resource_name, attempt, max_attempts
            )
            return

        status = checker.extract_status(resource)
        logger.info(
            "%s '%s' deletion status check attempt %d/%d: %s",
            kind, resource_name, attempt, max_attempts, status,
        )

        if status == "DELETING":
            logger.info("%s '%s' still being deleted, status: %s", kind, resource_name, status)
            if last:
                raise ToolError(
                    f"{kind} '{resource_name}' still in deleting state after {max_attempts} attempts"
                )
            time.sleep(interval)
            continue
        if status == "DELETED":
            logger.info("%s '%s' successfully deleted", kind, resource_name)
            return
        raise ToolError(f"{kind} '{resource_name}' is in unexpected state '{status}' during deletion")

    raise ToolError(f"{kind} '{resource_name}' deletion check timed out after {max_attempts} attempts")