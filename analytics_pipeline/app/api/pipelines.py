"""
Pipeline routes for regular users.

Every route resolves the caller first; capability checks happen in the
registry.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response, status

from analytics_pipeline.app.dependencies import get_registry
from analytics_pipeline.app.identity import Caller, resolve_caller
from analytics_pipeline.models import Pipeline, PipelineResponse, PipelinesResponse
from analytics_pipeline.service import Registry

router = APIRouter(tags=["pipelines"])

PIPELINE_PATH = "/pipeline"


def query_mapping(request: Request) -> dict[str, list[str]]:
    """Raw query parameters, repeated keys kept as lists."""
    params = request.query_params
    return {key: params.getlist(key) for key in params.keys()}


@router.post(PIPELINE_PATH, response_model=PipelineResponse)
async def post_pipeline(
    pipeline: Pipeline,
    caller: Caller = Depends(resolve_caller),
    registry: Registry = Depends(get_registry),
) -> PipelineResponse:
    """Save a new pipeline owned by the caller."""
    pipeline_id = await registry.save(pipeline, caller.user_id)
    return PipelineResponse(id=pipeline_id)


@router.put(PIPELINE_PATH, response_model=PipelineResponse)
async def put_pipeline(
    pipeline: Pipeline,
    caller: Caller = Depends(resolve_caller),
    registry: Registry = Depends(get_registry),
) -> PipelineResponse:
    """Update a pipeline the caller may write."""
    pipeline_id = await registry.update(pipeline, caller.user_id, caller.token)
    return PipelineResponse(id=pipeline_id)


@router.get(PIPELINE_PATH, response_model=PipelinesResponse)
async def get_pipelines(
    request: Request,
    caller: Caller = Depends(resolve_caller),
    registry: Registry = Depends(get_registry),
) -> PipelinesResponse:
    """List pipelines the caller owns or may read (limit, offset, order, search)."""
    return await registry.list(caller.user_id, query_mapping(request), caller.token)


@router.get(PIPELINE_PATH + "/{pipeline_id}", response_model=Pipeline)
async def get_pipeline(
    pipeline_id: str,
    caller: Caller = Depends(resolve_caller),
    registry: Registry = Depends(get_registry),
) -> Pipeline:
    """Retrieve a pipeline the caller may read."""
    return await registry.get(pipeline_id, caller.user_id, caller.token)


@router.delete(PIPELINE_PATH + "/{pipeline_id}")
async def delete_pipeline(
    pipeline_id: str,
    caller: Caller = Depends(resolve_caller),
    registry: Registry = Depends(get_registry),
) -> Response:
    """Delete a pipeline the caller administrates."""
    await registry.delete(pipeline_id, caller.user_id, caller.token)
    return Response(status_code=status.HTTP_200_OK)
