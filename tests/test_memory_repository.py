"""
Tests for the in-memory pipeline repository.

Tests cover:
- Insert/find/replace/delete and copy isolation
- Listing: ownership filter, search, sort, paging, total count
- Statistics aggregation and tie ordering
"""

from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio

from analytics_pipeline.db import InMemoryPipelineRepository, QueryArgs
from analytics_pipeline.errors import NotFoundError, StorageError
from analytics_pipeline.models import Operator, Pipeline


def _pipeline(pipeline_id, user_id="u1", name="", minutes=0, operators=()):
    created = datetime(2026, 1, 1, tzinfo=UTC) + timedelta(minutes=minutes)
    return Pipeline(
        id=pipeline_id,
        user_id=user_id,
        name=name or pipeline_id,
        created_at=created,
        updated_at=created,
        operators=[Operator(id=op) for op in operators],
    )


@pytest_asyncio.fixture
async def filled():
    repo = InMemoryPipelineRepository()
    await repo.insert(_pipeline("p1", "u1", "Temperature", minutes=3))
    await repo.insert(_pipeline("p2", "u1", "humidity", minutes=1))
    await repo.insert(_pipeline("p3", "u2", "temp-alerts", minutes=2))
    await repo.insert(_pipeline("p4", "u3", "pressure", minutes=4))
    return repo


class TestWrites:
    """Tests for insert/replace/delete."""

    @pytest.mark.asyncio
    async def test_insert_then_find(self, repository):
        await repository.insert(_pipeline("p1"))

        found = await repository.find("p1")

        assert found.id == "p1"
        assert repository.count() == 1

    @pytest.mark.asyncio
    async def test_duplicate_insert_rejected(self, repository):
        await repository.insert(_pipeline("p1"))

        with pytest.raises(StorageError):
            await repository.insert(_pipeline("p1"))

    @pytest.mark.asyncio
    async def test_stored_copy_is_isolated(self, repository):
        pipeline = _pipeline("p1", name="before")
        await repository.insert(pipeline)
        pipeline.name = "after"

        found = await repository.find("p1")
        found.name = "changed"

        assert (await repository.find("p1")).name == "before"

    @pytest.mark.asyncio
    async def test_replace(self, repository):
        await repository.insert(_pipeline("p1", name="old"))

        await repository.replace(_pipeline("p1", name="new"))

        assert (await repository.find("p1")).name == "new"

    @pytest.mark.asyncio
    async def test_replace_missing_is_noop(self, repository):
        await repository.replace(_pipeline("ghost"))

        assert repository.count() == 0

    @pytest.mark.asyncio
    async def test_delete(self, repository):
        await repository.insert(_pipeline("p1"))

        await repository.delete("p1")

        with pytest.raises(NotFoundError):
            await repository.find("p1")

    @pytest.mark.asyncio
    async def test_delete_missing(self, repository):
        with pytest.raises(NotFoundError):
            await repository.delete("ghost")


class TestList:
    """Tests for InMemoryPipelineRepository.list."""

    @pytest.mark.asyncio
    async def test_owned_plus_accessible(self, filled):
        page = await filled.list("u1", admin=False, args=QueryArgs(), accessible_ids={"p3"})

        assert [p.id for p in page.data] == ["p1", "p2", "p3"]
        assert page.total == 3

    @pytest.mark.asyncio
    async def test_admin_sees_all(self, filled):
        page = await filled.list("nobody", admin=True, args=QueryArgs())

        assert page.total == 4

    @pytest.mark.asyncio
    async def test_search_is_case_insensitive_on_name(self, filled):
        page = await filled.list("", admin=True, args=QueryArgs(search="TEMP"))

        assert {p.id for p in page.data} == {"p1", "p3"}
        assert page.total == 2

    @pytest.mark.asyncio
    async def test_search_respects_ownership(self, filled):
        page = await filled.list("u1", admin=False, args=QueryArgs(search="temp"))

        assert [p.id for p in page.data] == ["p1"]

    @pytest.mark.asyncio
    async def test_sort_by_created_at(self, filled):
        args = QueryArgs.from_query({"order": "createdat:asc"})

        page = await filled.list("", admin=True, args=args)

        assert [p.id for p in page.data] == ["p2", "p3", "p1", "p4"]

    @pytest.mark.asyncio
    async def test_sort_descending_by_name(self, filled):
        args = QueryArgs.from_query({"order": "name:desc"})

        page = await filled.list("", admin=True, args=args)

        assert [p.name for p in page.data] == ["temp-alerts", "pressure", "humidity", "Temperature"]

    @pytest.mark.asyncio
    async def test_paging_keeps_total(self, filled):
        args = QueryArgs.from_query({"order": "id:asc", "limit": "2", "offset": "1"})

        page = await filled.list("", admin=True, args=args)

        assert [p.id for p in page.data] == ["p2", "p3"]
        assert page.total == 4

    @pytest.mark.asyncio
    async def test_offset_past_end(self, filled):
        page = await filled.list("", admin=True, args=QueryArgs(offset=10))

        assert page.data == []
        assert page.total == 4

    @pytest.mark.asyncio
    async def test_zero_limit_means_unbounded(self, filled):
        page = await filled.list("", admin=True, args=QueryArgs(limit=0))

        assert len(page.data) == 4

    @pytest.mark.asyncio
    async def test_missing_sort_values_come_first(self, repository):
        await repository.insert(_pipeline("dated", minutes=5))
        await repository.insert(Pipeline(id="undated", user_id="u1"))

        page = await repository.list(
            "", admin=True, args=QueryArgs.from_query({"order": "createdat:asc"})
        )

        assert [p.id for p in page.data] == ["undated", "dated"]


class TestStatistics:
    """Tests for user counts and operator usage."""

    @pytest.mark.asyncio
    async def test_empty_store(self, repository):
        assert await repository.pipeline_user_count() == []
        assert await repository.operator_usage() == []

    @pytest.mark.asyncio
    async def test_user_count_ordering(self, filled):
        counts = await filled.pipeline_user_count()

        assert [(c.user_id, c.count) for c in counts] == [("u1", 2), ("u2", 1), ("u3", 1)]

    @pytest.mark.asyncio
    async def test_operator_usage(self, repository):
        await repository.insert(_pipeline("p1", operators=["adder", "filter"]))
        await repository.insert(_pipeline("p2", operators=["adder", "adder"]))
        await repository.insert(_pipeline("p3", operators=["", "sink"]))

        usage = await repository.operator_usage()

        assert [(u.operator_id, u.count, u.pipeline_ids) for u in usage] == [
            ("adder", 2, ["p1", "p2"]),
            ("filter", 1, ["p1"]),
            ("sink", 1, ["p3"]),
        ]
