"""
Dependency wiring for the analytics pipeline service.

Builds the document store, permission client and registry from settings.
The handles are owned by the application (``app.state``) rather than kept
as module globals, so tests can hand in their own registry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache

from fastapi import Request

from analytics_pipeline.config import (
    MEMORY_MONGO_URL,
    MOCK_PERMISSIONS_URL,
    AppSettings,
    load_settings,
)
from analytics_pipeline.db import (
    InMemoryPipelineRepository,
    MongoPipelineRepository,
    PipelineRepository,
)
from analytics_pipeline.permissions import (
    InMemoryPermissionClient,
    PermissionClient,
    PermissionsConfig,
    PermissionsV2Client,
)
from analytics_pipeline.service import Registry

logger = logging.getLogger(__name__)


@lru_cache()
def get_settings() -> AppSettings:
    """
    Get application settings from the config file and environment.

    Uses lru_cache for singleton pattern.
    """
    return load_settings()


@dataclass
class Services:
    """Collaborators owned by one application instance."""

    repository: PipelineRepository
    permissions: PermissionClient
    registry: Registry

    async def close(self) -> None:
        """Release connections held by the collaborators."""
        if isinstance(self.repository, MongoPipelineRepository):
            await self.repository.close()
        if isinstance(self.permissions, PermissionsV2Client):
            await self.permissions.close()


def build_repository(settings: AppSettings) -> PipelineRepository:
    if settings.mongo_url == MEMORY_MONGO_URL:
        logger.warning("[dependencies] Using in-memory pipeline store")
        return InMemoryPipelineRepository()
    return MongoPipelineRepository(
        settings.mongo_url,
        database_name=settings.mongo_database,
        collection_name=settings.mongo_collection,
    )


def build_permission_client(settings: AppSettings) -> PermissionClient:
    if settings.permissions_url == MOCK_PERMISSIONS_URL:
        logger.warning("[dependencies] Using mock permissions")
        return InMemoryPermissionClient()
    return PermissionsV2Client(
        PermissionsConfig(
            base_url=settings.permissions_url,
            timeout=settings.permissions_timeout,
            log_requests=settings.debug,
            log_responses=settings.debug,
        )
    )


async def initialize_services(settings: AppSettings) -> Services:
    """
    Connect the collaborators and register the pipeline topic.

    Raises:
        StorageError: MongoDB is unreachable
        PermissionServiceError: The topic could not be registered
    """
    repository = build_repository(settings)
    if isinstance(repository, MongoPipelineRepository):
        await repository.connect()

    permissions = build_permission_client(settings)
    registry = Registry(
        repository,
        permissions,
        admin_token=settings.permissions_admin_token.get_secret_value(),
    )
    services = Services(repository=repository, permissions=permissions, registry=registry)

    try:
        await registry.ensure_topic()
    except Exception:
        await services.close()
        raise

    return services


def get_registry(request: Request) -> Registry:
    """FastAPI dependency: the registry of the running application."""
    return request.app.state.registry
