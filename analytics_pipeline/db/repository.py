"""
Pipeline repository protocol.

The registry depends on this capability set only; MongoPipelineRepository
is the production backend and InMemoryPipelineRepository the test one.
Admin mode and the accessible-id set are explicit arguments of ``list``.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from analytics_pipeline.db.query import QueryArgs
from analytics_pipeline.models import (
    OperatorUsage,
    Pipeline,
    PipelinesResponse,
    PipelineUserCount,
)


class PipelineRepository(Protocol):
    """Storage for pipeline documents, keyed by ``id`` (not the store's own key)."""

    async def insert(self, pipeline: Pipeline) -> None:
        """
        Persist a new pipeline.

        Raises:
            StorageError: On connectivity or write failure
        """
        ...

    async def replace(self, pipeline: Pipeline) -> None:
        """
        Overwrite the document whose ``id`` matches.

        A replace that matches nothing is not an error at this layer.

        Raises:
            StorageError: On write failure
        """
        ...

    async def find(self, pipeline_id: str) -> Pipeline:
        """
        Load a pipeline by id.

        Raises:
            NotFoundError: No document has this id
            StorageError: On read failure
        """
        ...

    async def delete(self, pipeline_id: str) -> None:
        """
        Remove a pipeline by id.

        Raises:
            NotFoundError: No document has this id
            StorageError: On write failure
        """
        ...

    async def list(
        self,
        user_id: str,
        *,
        admin: bool,
        args: QueryArgs,
        accessible_ids: Iterable[str] = (),
    ) -> PipelinesResponse:
        """
        Return one page of pipelines and the total count before paging.

        In user mode the page holds pipelines owned by ``user_id`` or whose id
        is in ``accessible_ids``; in admin mode every pipeline qualifies.
        """
        ...

    async def pipeline_user_count(self) -> list[PipelineUserCount]:
        """Pipelines per owning user, most first."""
        ...

    async def operator_usage(self) -> list[OperatorUsage]:
        """Pipelines per operator id, most first."""
        ...
