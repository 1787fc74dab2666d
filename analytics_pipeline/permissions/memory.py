"""
In-process permission client.

Evaluates permission records locally instead of calling the permission
service. Selected with ``permissions_url = "mock"`` and used throughout the
test-suite. Callers are identified from their bearer token claims (subject,
roles, groups); admin tokens are accepted without checks.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from analytics_pipeline.auth import TokenClaims
from analytics_pipeline.permissions.schemas import (
    Capability,
    PermissionsMap,
    Resource,
    ResourcePermissions,
    Topic,
)

logger = logging.getLogger(__name__)


class InMemoryPermissionClient:
    """
    PermissionClient keeping records in dicts keyed by topic and resource id.

    Effective rights of a caller are the union of the user entry for their
    subject, the entries of their groups and roles, and the role defaults of
    the topic.
    """

    def __init__(self, identify: Callable[[str], TokenClaims] = TokenClaims.parse) -> None:
        """
        Initialize the client.

        Args:
            identify: Resolves a caller token to its claims
        """
        self._identify = identify
        self._topics: dict[str, Topic] = {}
        self._resources: dict[str, dict[str, ResourcePermissions]] = {}

    async def check_permission(
        self,
        token: str,
        topic: str,
        resource_id: str,
        capability: Capability,
    ) -> bool:
        record = self._resources.get(topic, {}).get(resource_id)
        if record is None:
            return False
        return self._allows(self._identify(token), topic, record, capability)

    async def list_accessible_resource_ids(
        self,
        token: str,
        topic: str,
        capability: Capability,
    ) -> set[str]:
        claims = self._identify(token)
        return {
            resource_id
            for resource_id, record in self._resources.get(topic, {}).items()
            if self._allows(claims, topic, record, capability)
        }

    async def set_permission(
        self,
        admin_token: str,
        topic: str,
        resource_id: str,
        permissions: ResourcePermissions,
    ) -> None:
        self._resources.setdefault(topic, {})[resource_id] = permissions.model_copy(deep=True)

    async def remove_resource(self, admin_token: str, topic: str, resource_id: str) -> None:
        self._resources.get(topic, {}).pop(resource_id, None)

    async def list_resources(self, admin_token: str, topic: str) -> list[Resource]:
        return [
            Resource(id=resource_id, topic_id=topic, **record.model_dump())
            for resource_id, record in self._resources.get(topic, {}).items()
        ]

    async def set_topic(self, admin_token: str, topic: Topic) -> None:
        self._topics[topic.id] = topic.model_copy(deep=True)
        logger.debug(f"[permissions:memory] Registered topic {topic.id}")

    # ==================== Helpers ====================

    def get_permissions(self, topic: str, resource_id: str) -> ResourcePermissions | None:
        """Stored record of a resource (for testing)."""
        return self._resources.get(topic, {}).get(resource_id)

    def _allows(
        self,
        claims: TokenClaims,
        topic: str,
        record: ResourcePermissions,
        capability: Capability,
    ) -> bool:
        grants: list[PermissionsMap] = []
        if claims.sub in record.user_permissions:
            grants.append(record.user_permissions[claims.sub])
        grants.extend(record.group_permissions[g] for g in claims.groups if g in record.group_permissions)
        grants.extend(record.role_permissions[r] for r in claims.roles if r in record.role_permissions)

        defaults = self._topics.get(topic)
        if defaults is not None:
            role_defaults = defaults.default_permissions.role_permissions
            grants.extend(role_defaults[r] for r in claims.roles if r in role_defaults)

        return any(grant.allows(capability) for grant in grants)
