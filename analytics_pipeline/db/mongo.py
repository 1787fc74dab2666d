"""
MongoDB pipeline repository.

Stores one document per pipeline in a single collection, keyed by the
``id`` field and indexed on ``userId`` for ownership queries. The store's
own ``_id`` never leaves this module.

Usage:
    repo = MongoPipelineRepository("mongodb://localhost:27017")
    await repo.connect()
    await repo.insert(pipeline)
    page = await repo.list("user-1", admin=False, args=QueryArgs(limit=10))
    await repo.close()
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING
from pymongo.errors import OperationFailure, PyMongoError

from analytics_pipeline.db.query import QueryArgs, build_filter
from analytics_pipeline.errors import NotFoundError, StorageError, ValidationError
from analytics_pipeline.models import (
    OperatorUsage,
    Pipeline,
    PipelinesResponse,
    PipelineUserCount,
)

logger = logging.getLogger(__name__)

_NO_OBJECT_ID = {"_id": False}

# Server codes for a $regex the server cannot compile
_REGEX_ERROR_CODES = {2, 51091}


class MongoPipelineRepository:
    """
    PipelineRepository backed by MongoDB through motor.

    The connection is opened lazily on first use; ``connect()`` can be
    called at startup to fail fast and create the indexes.
    """

    def __init__(
        self,
        mongodb_url: str,
        database_name: str = "service",
        collection_name: str = "pipelines",
    ):
        """
        Initialize the repository.

        Args:
            mongodb_url: MongoDB connection URL
            database_name: Database name
            collection_name: Collection holding pipeline documents
        """
        self._mongodb_url = mongodb_url
        self._database_name = database_name
        self._collection_name = collection_name
        self._client: AsyncIOMotorClient | None = None
        self._collection: Any = None

    async def connect(self) -> None:
        """Connect to MongoDB and make sure the lookup indexes exist."""
        self._client = AsyncIOMotorClient(self._mongodb_url, tz_aware=True)
        self._collection = self._client[self._database_name][self._collection_name]
        try:
            await self._collection.create_index([("id", ASCENDING)], unique=True)
            await self._collection.create_index([("userId", ASCENDING)])
        except PyMongoError as e:
            raise StorageError(f"could not prepare collection: {e}", cause=e) from e
        logger.info(
            f"[mongo] Connected to {self._database_name}.{self._collection_name}"
        )

    async def close(self) -> None:
        """Close the MongoDB connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._collection = None

    async def _ensure_connected(self) -> Any:
        if self._collection is None:
            await self.connect()
        return self._collection

    # ==================== Writes ====================

    async def insert(self, pipeline: Pipeline) -> None:
        collection = await self._ensure_connected()
        try:
            await collection.insert_one(pipeline.to_document())
        except PyMongoError as e:
            logger.error(f"[mongo] Insert of pipeline {pipeline.id} failed: {e}")
            raise StorageError(f"could not insert pipeline: {e}", cause=e) from e

    async def replace(self, pipeline: Pipeline) -> None:
        collection = await self._ensure_connected()
        try:
            await collection.replace_one({"id": pipeline.id}, pipeline.to_document())
        except PyMongoError as e:
            logger.error(f"[mongo] Replace of pipeline {pipeline.id} failed: {e}")
            raise StorageError(f"could not replace pipeline: {e}", cause=e) from e

    async def delete(self, pipeline_id: str) -> None:
        collection = await self._ensure_connected()
        try:
            result = await collection.delete_one({"id": pipeline_id})
        except PyMongoError as e:
            raise StorageError(f"could not delete pipeline: {e}", cause=e) from e
        if result.deleted_count == 0:
            raise NotFoundError(f"pipeline {pipeline_id} not found")

    # ==================== Reads ====================

    async def find(self, pipeline_id: str) -> Pipeline:
        collection = await self._ensure_connected()
        try:
            doc = await collection.find_one({"id": pipeline_id}, _NO_OBJECT_ID)
        except PyMongoError as e:
            raise StorageError(f"could not load pipeline: {e}", cause=e) from e
        if doc is None:
            raise NotFoundError(f"pipeline {pipeline_id} not found")
        return Pipeline.from_document(doc)

    async def list(
        self,
        user_id: str,
        *,
        admin: bool,
        args: QueryArgs,
        accessible_ids: Iterable[str] = (),
    ) -> PipelinesResponse:
        collection = await self._ensure_connected()
        query = build_filter(
            user_id,
            admin=admin,
            accessible_ids=accessible_ids,
            search=args.search,
        )

        cursor = collection.find(query, _NO_OBJECT_ID)
        if args.sort is not None:
            cursor = cursor.sort(args.sort.field, args.sort.direction)
        if args.offset:
            cursor = cursor.skip(args.offset)
        if args.limit:
            cursor = cursor.limit(args.limit)

        try:
            data = [Pipeline.from_document(doc) async for doc in cursor]
            total = await collection.count_documents(query)
        except OperationFailure as e:
            if args.search and _is_regex_error(e):
                raise ValidationError(f"invalid search expression: {e}", cause=e) from e
            raise StorageError(f"could not list pipelines: {e}", cause=e) from e
        except PyMongoError as e:
            raise StorageError(f"could not list pipelines: {e}", cause=e) from e

        return PipelinesResponse(data=data, total=total)

    # ==================== Statistics ====================

    async def pipeline_user_count(self) -> list[PipelineUserCount]:
        stages = [
            # Documents without an owner count under ""
            {"$group": {"_id": {"$ifNull": ["$userId", ""]}, "count": {"$sum": 1}}},
            {"$sort": {"count": -1, "_id": 1}},
        ]
        docs = await self._aggregate(stages)
        return [PipelineUserCount(user_id=doc["_id"], count=doc["count"]) for doc in docs]

    async def operator_usage(self) -> list[OperatorUsage]:
        stages = [
            {"$unwind": "$operators"},
            {"$match": {"operators.id": {"$nin": ["", None]}}},
            {"$group": {"_id": "$operators.id", "pipelineIds": {"$addToSet": "$id"}}},
            {"$project": {"pipelineIds": 1, "count": {"$size": "$pipelineIds"}}},
            {"$sort": {"count": -1, "_id": 1}},
        ]
        docs = await self._aggregate(stages)
        return [
            OperatorUsage(
                operator_id=doc["_id"],
                count=doc["count"],
                pipeline_ids=sorted(doc["pipelineIds"]),
            )
            for doc in docs
        ]

    async def _aggregate(self, stages: list[dict[str, Any]]) -> list[dict[str, Any]]:
        collection = await self._ensure_connected()
        try:
            cursor = collection.aggregate(stages)
            return await cursor.to_list(length=None)
        except PyMongoError as e:
            raise StorageError(f"could not aggregate statistics: {e}", cause=e) from e


def _is_regex_error(error: OperationFailure) -> bool:
    return error.code in _REGEX_ERROR_CODES and "regular expression" in str(error).lower()
