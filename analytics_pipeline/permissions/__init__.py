"""
Permission service access.

    permissions/
    ├── schemas.py  # Capability, PermissionsMap, ResourcePermissions, Resource, Topic
    ├── base.py     # PermissionClient protocol
    ├── client.py   # PermissionsV2Client (HTTP)
    └── memory.py   # InMemoryPermissionClient
"""

from analytics_pipeline.permissions.base import PermissionClient
from analytics_pipeline.permissions.client import PermissionsConfig, PermissionsV2Client
from analytics_pipeline.permissions.memory import InMemoryPermissionClient
from analytics_pipeline.permissions.schemas import (
    PIPELINE_TOPIC,
    Capability,
    PermissionsMap,
    Resource,
    ResourcePermissions,
    Topic,
)

__all__ = [
    "PIPELINE_TOPIC",
    "Capability",
    "InMemoryPermissionClient",
    "PermissionClient",
    "PermissionsConfig",
    "PermissionsMap",
    "PermissionsV2Client",
    "Resource",
    "ResourcePermissions",
    "Topic",
]
