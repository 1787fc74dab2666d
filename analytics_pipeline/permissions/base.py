"""
Permission client protocol.

The registry talks to the permission service through this interface only.
PermissionsV2Client implements it over HTTP, InMemoryPermissionClient in
process. Every method may raise PermissionServiceError; the registry
propagates it instead of falling back to a default answer.
"""

from __future__ import annotations

from typing import Protocol

from analytics_pipeline.permissions.schemas import (
    Capability,
    Resource,
    ResourcePermissions,
    Topic,
)


class PermissionClient(Protocol):
    """Capability checks and permission-record management for one topic space."""

    async def check_permission(
        self,
        token: str,
        topic: str,
        resource_id: str,
        capability: Capability,
    ) -> bool:
        """Whether the caller identified by ``token`` holds ``capability`` on the resource."""
        ...

    async def list_accessible_resource_ids(
        self,
        token: str,
        topic: str,
        capability: Capability,
    ) -> set[str]:
        """Ids of every resource in ``topic`` on which the caller holds ``capability``."""
        ...

    async def set_permission(
        self,
        admin_token: str,
        topic: str,
        resource_id: str,
        permissions: ResourcePermissions,
    ) -> None:
        """Create or overwrite the permission record of a resource."""
        ...

    async def remove_resource(self, admin_token: str, topic: str, resource_id: str) -> None:
        """Delete the permission record of a resource."""
        ...

    async def list_resources(self, admin_token: str, topic: str) -> list[Resource]:
        """Every resource of ``topic`` with its permission record."""
        ...

    async def set_topic(self, admin_token: str, topic: Topic) -> None:
        """Register ``topic`` and its default permissions."""
        ...
