"""
Pipeline registry.

Orchestrates create/read/update/delete of pipeline records, enforces
capability checks against the permission service and keeps the permission
store in step with the stored pipelines.

Consistency:
    Save and delete write to two stores one after the other. If the second
    write fails, the error reaches the caller but the first write stays;
    ``reconcile_permissions()`` repairs such drift later.

Usage:
    registry = Registry(repository, permissions, admin_token="...")
    await registry.ensure_topic()
    pipeline_id = await registry.save(pipeline, user_id)
    pipeline = await registry.get(pipeline_id, user_id, token)
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from analytics_pipeline.db.query import QueryArgs
from analytics_pipeline.db.repository import PipelineRepository
from analytics_pipeline.errors import AuthorizationError, NotFoundError, ValidationError
from analytics_pipeline.models import (
    OperatorUsage,
    Pipeline,
    PipelinesResponse,
    PipelineUserCount,
    utc_now,
)
from analytics_pipeline.permissions.base import PermissionClient
from analytics_pipeline.permissions.schemas import (
    PIPELINE_TOPIC,
    Capability,
    ResourcePermissions,
    Topic,
)

logger = logging.getLogger(__name__)

MESSAGE_MISSING_RIGHTS = "user does not have the required rights"


@dataclass
class ReconcileReport:
    """What a reconciliation pass changed in the permission store."""

    updated: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.updated or self.removed)


class Registry:
    """
    Pipeline operations gated by ownership and capabilities.

    Holds no state of its own besides its two collaborators, so one
    instance serves all concurrent requests.
    """

    def __init__(
        self,
        repository: PipelineRepository,
        permissions: PermissionClient,
        *,
        admin_token: str = "",
        topic: str = PIPELINE_TOPIC,
    ):
        """
        Initialize the registry.

        Args:
            repository: Pipeline document store
            permissions: Permission service client
            admin_token: Token used for permission-store writes
            topic: Permission topic pipelines are registered under
        """
        self._repository = repository
        self._permissions = permissions
        self._admin_token = admin_token
        self._topic = topic

    async def ensure_topic(self) -> None:
        """Register the pipeline topic with admin-role defaults."""
        topic = Topic.pipelines()
        topic.id = self._topic
        await self._permissions.set_topic(self._admin_token, topic)

    # =========================================================================
    # User operations
    # =========================================================================

    async def save(self, pipeline: Pipeline, user_id: str) -> str:
        """
        Store a new pipeline owned by ``user_id`` and register its permissions.

        Returns:
            The generated pipeline id
        """
        now = utc_now()
        new = pipeline.model_copy(
            update={
                "id": str(uuid.uuid4()),
                "user_id": user_id,
                "created_at": now,
                "updated_at": now,
            }
        )

        await self._repository.insert(new)
        await self._permissions.set_permission(
            self._admin_token,
            self._topic,
            new.id,
            ResourcePermissions.for_owner(user_id),
        )
        logger.info(f"[registry] Saved pipeline {new.id} for user {user_id}")
        return new.id

    async def update(self, pipeline: Pipeline, user_id: str, token: str) -> str:
        """
        Replace a pipeline's body, keeping its id, owner and creation time.

        Raises:
            ValidationError: The payload has no id
            AuthorizationError: Caller lacks write capability
            NotFoundError: No stored pipeline has this id
        """
        if not pipeline.id:
            raise ValidationError("pipeline id is required for an update")

        await self._require(token, pipeline.id, Capability.WRITE)
        existing = await self._repository.find(pipeline.id)

        now = utc_now()
        if existing.updated_at is not None and now <= existing.updated_at:
            now = existing.updated_at + timedelta(milliseconds=1)

        updated = pipeline.model_copy(
            update={
                "user_id": existing.user_id,
                "created_at": existing.created_at,
                "updated_at": now,
            }
        )
        await self._repository.replace(updated)
        logger.info(f"[registry] Updated pipeline {updated.id} by user {user_id}")
        return updated.id

    async def get(self, pipeline_id: str, user_id: str, token: str) -> Pipeline:
        """
        Load a pipeline the caller may read.

        Raises:
            AuthorizationError: Caller lacks read capability
            NotFoundError: No stored pipeline has this id
        """
        await self._require(token, pipeline_id, Capability.READ)
        return await self._repository.find(pipeline_id)

    async def delete(self, pipeline_id: str, user_id: str, token: str) -> None:
        """
        Delete a pipeline the caller administrates, then its permission record.

        Raises:
            AuthorizationError: Caller lacks administrate capability
            NotFoundError: No stored pipeline has this id
        """
        await self._require(token, pipeline_id, Capability.ADMINISTRATE)
        await self._repository.delete(pipeline_id)
        await self._permissions.remove_resource(self._admin_token, self._topic, pipeline_id)
        logger.info(f"[registry] Deleted pipeline {pipeline_id} by user {user_id}")

    async def list(
        self,
        user_id: str,
        query: QueryArgs | Mapping[str, Any] | None,
        token: str,
    ) -> PipelinesResponse:
        """Pipelines the caller owns or may read, one page at a time."""
        args = _query_args(query)
        accessible = await self._permissions.list_accessible_resource_ids(
            token, self._topic, Capability.READ
        )
        return await self._repository.list(
            user_id, admin=False, args=args, accessible_ids=accessible
        )

    # =========================================================================
    # Admin operations (role checked by the HTTP layer)
    # =========================================================================

    async def list_admin(
        self,
        user_id: str,
        query: QueryArgs | Mapping[str, Any] | None = None,
    ) -> PipelinesResponse:
        """Every pipeline, regardless of owner or permissions."""
        return await self._repository.list(user_id, admin=True, args=_query_args(query))

    async def delete_admin(self, pipeline_id: str, user_id: str) -> None:
        """Delete any pipeline and its permission record."""
        await self._repository.delete(pipeline_id)
        await self._permissions.remove_resource(self._admin_token, self._topic, pipeline_id)
        logger.info(f"[registry] Admin {user_id} deleted pipeline {pipeline_id}")

    async def pipeline_user_count(self) -> list[PipelineUserCount]:
        return await self._repository.pipeline_user_count()

    async def operator_usage(self) -> list[OperatorUsage]:
        return await self._repository.operator_usage()

    async def reconcile_permissions(self) -> ReconcileReport:
        """
        Bring the permission store in line with the stored pipelines.

        Every stored pipeline gets a record in which its owner holds all four
        capabilities (other entries are kept); records without a stored
        pipeline are removed. Records already in shape are not rewritten, so
        a second pass changes nothing.

        Safe to run alongside live traffic: permission records are listed
        before the pipelines, and a record is only removed after a direct
        lookup confirms its pipeline is gone.
        """
        logger.debug("[registry] Reconciling pipeline permissions")
        report = ReconcileReport()

        resources = {
            resource.id: resource.permissions()
            for resource in await self._permissions.list_resources(self._admin_token, self._topic)
        }
        stored = await self._repository.list("", admin=True, args=QueryArgs())

        stored_ids: set[str] = set()
        for pipeline in stored.data:
            stored_ids.add(pipeline.id)
            current = resources.get(pipeline.id)
            merged = (current or ResourcePermissions()).with_owner(pipeline.user_id)
            if merged != current:
                await self._permissions.set_permission(
                    self._admin_token, self._topic, pipeline.id, merged
                )
                report.updated.append(pipeline.id)
            # Yield so a cancelled pass stops between pipelines
            await asyncio.sleep(0)

        for resource_id in resources:
            if resource_id in stored_ids:
                continue
            if await self._exists(resource_id):
                logger.debug(f"[registry] {resource_id} was stored during the pass, kept")
                continue
            await self._permissions.remove_resource(self._admin_token, self._topic, resource_id)
            report.removed.append(resource_id)
            logger.debug(
                f"[registry] {resource_id} exists only in the permission store, now deleted"
            )

        logger.info(
            f"[registry] Reconciled permissions: {len(report.updated)} updated, "
            f"{len(report.removed)} removed"
        )
        return report

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _require(self, token: str, pipeline_id: str, capability: Capability) -> None:
        allowed = await self._permissions.check_permission(
            token, self._topic, pipeline_id, capability
        )
        if not allowed:
            raise AuthorizationError(MESSAGE_MISSING_RIGHTS)

    async def _exists(self, pipeline_id: str) -> bool:
        try:
            await self._repository.find(pipeline_id)
        except NotFoundError:
            return False
        return True


def _query_args(query: QueryArgs | Mapping[str, Any] | None) -> QueryArgs:
    if isinstance(query, QueryArgs):
        return query
    return QueryArgs.from_query(query)
