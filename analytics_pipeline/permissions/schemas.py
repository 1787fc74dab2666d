"""
Pydantic schemas for the permission service.

A permission record maps users, groups and roles to four independent
capabilities (read, write, execute, administrate) for one resource.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# Topic under which every pipeline is registered in the permission service
PIPELINE_TOPIC = "analytics-pipelines"


class Capability(str, Enum):
    """Capabilities, with their wire codes."""

    READ = "r"
    WRITE = "w"
    EXECUTE = "x"
    ADMINISTRATE = "a"


class PermissionsMap(BaseModel):
    """Capabilities granted to one subject."""

    read: bool = False
    write: bool = False
    execute: bool = False
    administrate: bool = False

    @classmethod
    def full(cls) -> PermissionsMap:
        return cls(read=True, write=True, execute=True, administrate=True)

    def allows(self, capability: Capability) -> bool:
        return {
            Capability.READ: self.read,
            Capability.WRITE: self.write,
            Capability.EXECUTE: self.execute,
            Capability.ADMINISTRATE: self.administrate,
        }[capability]


class ResourcePermissions(BaseModel):
    """Per-user, per-group and per-role permissions of a resource."""

    model_config = ConfigDict(extra="ignore")

    user_permissions: dict[str, PermissionsMap] = Field(default_factory=dict)
    group_permissions: dict[str, PermissionsMap] = Field(default_factory=dict)
    role_permissions: dict[str, PermissionsMap] = Field(default_factory=dict)

    @classmethod
    def for_owner(cls, user_id: str) -> ResourcePermissions:
        """Default record of a new pipeline: the owner may do everything."""
        return cls().with_owner(user_id)

    def with_owner(self, user_id: str) -> ResourcePermissions:
        """Copy of this record in which ``user_id`` holds all four capabilities."""
        merged = self.model_copy(deep=True)
        merged.user_permissions[user_id] = PermissionsMap.full()
        return merged


class Resource(ResourcePermissions):
    """A resource as listed by the permission service."""

    id: str
    topic_id: str = PIPELINE_TOPIC

    def permissions(self) -> ResourcePermissions:
        return ResourcePermissions(
            user_permissions=self.user_permissions,
            group_permissions=self.group_permissions,
            role_permissions=self.role_permissions,
        )


class Topic(BaseModel):
    """Topic registration with the defaults applied to every resource in it."""

    model_config = ConfigDict(extra="ignore")

    id: str
    default_permissions: ResourcePermissions = Field(default_factory=ResourcePermissions)

    @classmethod
    def pipelines(cls) -> Topic:
        """The pipeline topic: the ``admin`` role may do everything."""
        return cls(
            id=PIPELINE_TOPIC,
            default_permissions=ResourcePermissions(
                role_permissions={"admin": PermissionsMap.full()},
            ),
        )
