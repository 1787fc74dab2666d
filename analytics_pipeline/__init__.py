"""
Analytics Pipeline - record management for analytics pipeline definitions.

Stores pipeline descriptions (graphs of operators with topic and mapping
metadata) per owning user and gates access to them through an external
permission service. Pipelines are never executed here.

- **Registry**: save/get/update/delete/list with capability checks
- **Repositories**: MongoDB (motor) and in-memory document stores
- **Permission clients**: permissions-v2 over HTTP (httpx) and in-process
- **Reconciliation**: repairs drift between stored pipelines and permission records
- **API client**: `analytics_pipeline.client.PipelineClient` for other services

Quick Start:
    >>> from analytics_pipeline import Registry, Pipeline
    >>> from analytics_pipeline.db import InMemoryPipelineRepository
    >>> from analytics_pipeline.permissions import InMemoryPermissionClient
    >>>
    >>> registry = Registry(InMemoryPipelineRepository(), InMemoryPermissionClient())
    >>> pipeline_id = await registry.save(Pipeline(name="p1"), "u1")
"""

__version__ = "0.1.0"
__license__ = "Apache-2.0"

from analytics_pipeline.errors import (
    AuthorizationError,
    NotFoundError,
    PermissionServiceError,
    PipelineApiError,
    PipelineError,
    StorageError,
    ValidationError,
)
from analytics_pipeline.models import Operator, Pipeline, PipelinesResponse
from analytics_pipeline.service import ReconcileReport, Registry

__all__ = [
    "__version__",
    "__license__",
    "AuthorizationError",
    "NotFoundError",
    "Operator",
    "PermissionServiceError",
    "Pipeline",
    "PipelineApiError",
    "PipelineError",
    "PipelinesResponse",
    "ReconcileReport",
    "Registry",
    "StorageError",
    "ValidationError",
]
