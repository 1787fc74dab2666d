"""
Admin routes.

The admin role is checked here; the registry's admin operations bypass
per-pipeline permission checks.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends, Request, Response, status

from analytics_pipeline.app.api.pipelines import query_mapping
from analytics_pipeline.app.dependencies import get_registry
from analytics_pipeline.app.identity import Caller, require_admin
from analytics_pipeline.models import OperatorUsage, PipelinesResponse, PipelineUserCount
from analytics_pipeline.service import Registry

router = APIRouter(prefix="/admin/pipeline", tags=["admin"])


@router.get("", response_model=PipelinesResponse)
async def get_pipelines_admin(
    request: Request,
    caller: Caller = Depends(require_admin),
    registry: Registry = Depends(get_registry),
) -> PipelinesResponse:
    """List every pipeline."""
    return await registry.list_admin(caller.user_id, query_mapping(request))


@router.delete("/{pipeline_id}")
async def delete_pipeline_admin(
    pipeline_id: str,
    caller: Caller = Depends(require_admin),
    registry: Registry = Depends(get_registry),
) -> Response:
    """Delete any pipeline."""
    await registry.delete_admin(pipeline_id, caller.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/statistics/usercount", response_model=list[PipelineUserCount])
async def get_pipeline_user_count(
    caller: Caller = Depends(require_admin),
    registry: Registry = Depends(get_registry),
) -> list[PipelineUserCount]:
    """Pipelines per owning user."""
    return await registry.pipeline_user_count()


@router.get("/statistics/operatorusage", response_model=list[OperatorUsage])
async def get_operator_usage(
    caller: Caller = Depends(require_admin),
    registry: Registry = Depends(get_registry),
) -> list[OperatorUsage]:
    """Pipelines per operator id."""
    return await registry.operator_usage()


@router.post("/permissions/reconcile")
async def reconcile_permissions(
    caller: Caller = Depends(require_admin),
    registry: Registry = Depends(get_registry),
) -> dict[str, Any]:
    """Repair drift between stored pipelines and permission records."""
    report = await registry.reconcile_permissions()
    return asdict(report)
