"""
In-memory pipeline repository.

Same selection, ordering and paging rules as MongoPipelineRepository,
without a database. Used by the test-suite and when the service is started
with ``mongo_url = "memory"``. Data is lost on restart.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from collections.abc import Iterable
from typing import Any

from analytics_pipeline.db.query import QueryArgs
from analytics_pipeline.errors import NotFoundError, StorageError
from analytics_pipeline.models import (
    OperatorUsage,
    Pipeline,
    PipelinesResponse,
    PipelineUserCount,
)

logger = logging.getLogger(__name__)


class InMemoryPipelineRepository:
    """
    PipelineRepository kept in a dict, in insertion order.

    Stored and returned pipelines are deep copies, so callers can't mutate
    what's stored.

    Example:
        repo = InMemoryPipelineRepository()
        await repo.insert(Pipeline(id="p1", user_id="u1", name="demo"))
        page = await repo.list("u1", admin=False, args=QueryArgs())
    """

    def __init__(self) -> None:
        self._pipelines: dict[str, Pipeline] = {}

    async def insert(self, pipeline: Pipeline) -> None:
        if pipeline.id in self._pipelines:
            raise StorageError(f"duplicate pipeline id {pipeline.id}")
        self._pipelines[pipeline.id] = pipeline.model_copy(deep=True)
        logger.debug(f"[memory] Inserted pipeline {pipeline.id}")

    async def replace(self, pipeline: Pipeline) -> None:
        if pipeline.id in self._pipelines:
            self._pipelines[pipeline.id] = pipeline.model_copy(deep=True)

    async def find(self, pipeline_id: str) -> Pipeline:
        stored = self._pipelines.get(pipeline_id)
        if stored is None:
            raise NotFoundError(f"pipeline {pipeline_id} not found")
        return stored.model_copy(deep=True)

    async def delete(self, pipeline_id: str) -> None:
        if self._pipelines.pop(pipeline_id, None) is None:
            raise NotFoundError(f"pipeline {pipeline_id} not found")

    async def list(
        self,
        user_id: str,
        *,
        admin: bool,
        args: QueryArgs,
        accessible_ids: Iterable[str] = (),
    ) -> PipelinesResponse:
        accessible = set(accessible_ids)
        pattern = re.compile(args.search, re.IGNORECASE) if args.search is not None else None

        matches = [
            p
            for p in self._pipelines.values()
            if (admin or p.user_id == user_id or p.id in accessible)
            and (pattern is None or pattern.search(p.name))
        ]
        total = len(matches)

        if args.sort is not None:
            field = args.sort.field
            matches = sorted(
                matches,
                key=lambda p: _sort_key(p.to_document().get(field)),
                reverse=args.sort.descending,
            )

        start = args.offset or 0
        end = start + args.limit if args.limit else None
        page = [p.model_copy(deep=True) for p in matches[start:end]]

        return PipelinesResponse(data=page, total=total)

    async def pipeline_user_count(self) -> list[PipelineUserCount]:
        counts: dict[str, int] = defaultdict(int)
        for pipeline in self._pipelines.values():
            counts[pipeline.user_id] += 1

        ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        return [PipelineUserCount(user_id=user, count=count) for user, count in ordered]

    async def operator_usage(self) -> list[OperatorUsage]:
        usage: dict[str, set[str]] = defaultdict(set)
        for pipeline in self._pipelines.values():
            for operator in pipeline.operators:
                if operator.id:
                    usage[operator.id].add(pipeline.id)

        ordered = sorted(usage.items(), key=lambda item: (-len(item[1]), item[0]))
        return [
            OperatorUsage(
                operator_id=operator_id,
                count=len(pipeline_ids),
                pipeline_ids=sorted(pipeline_ids),
            )
            for operator_id, pipeline_ids in ordered
        ]

    def count(self) -> int:
        """Number of stored pipelines (for testing)."""
        return len(self._pipelines)


def _sort_key(value: Any) -> tuple[bool, Any]:
    # Missing values sort first, like nulls in MongoDB
    return (value is not None, value)
