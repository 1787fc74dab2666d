"""
Tests for listing query parsing and filter construction.
"""

import pytest

from analytics_pipeline.db.query import (
    ASCENDING,
    DESCENDING,
    QueryArgs,
    SortSpec,
    build_filter,
    parse_order,
)
from analytics_pipeline.errors import ValidationError

# =============================================================================
# Order parsing
# =============================================================================


class TestParseOrder:
    """Tests for parse_order."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("name:asc", SortSpec("name", ASCENDING)),
            ("name:desc", SortSpec("name", DESCENDING)),
            ("id:desc", SortSpec("id", DESCENDING)),
            ("createdat:asc", SortSpec("createdAt", ASCENDING)),
            ("UpdatedAt:DESC", SortSpec("updatedAt", DESCENDING)),
        ],
    )
    def test_allowed_fields(self, raw, expected):
        assert parse_order(raw) == expected

    def test_unknown_direction_is_ascending(self):
        assert parse_order("name:sideways") == SortSpec("name", ASCENDING)
        assert parse_order("name") == SortSpec("name", ASCENDING)

    @pytest.mark.parametrize("raw", ["", None, "bogus:asc", "userId:desc", "operators:asc"])
    def test_unsupported_fields_ignored(self, raw):
        assert parse_order(raw) is None

    def test_descending_property(self):
        assert SortSpec("name", DESCENDING).descending
        assert not SortSpec("name").descending


# =============================================================================
# QueryArgs
# =============================================================================


class TestQueryArgs:
    """Tests for QueryArgs.from_query."""

    def test_empty(self):
        assert QueryArgs.from_query(None) == QueryArgs()
        assert QueryArgs.from_query({}) == QueryArgs()

    def test_parses_all_arguments(self):
        args = QueryArgs.from_query(
            {"limit": "10", "offset": "20", "order": "name:desc", "search": "temp"}
        )

        assert args.limit == 10
        assert args.offset == 20
        assert args.sort == SortSpec("name", DESCENDING)
        assert args.search == "temp"

    def test_first_value_of_repeated_parameter_wins(self):
        args = QueryArgs.from_query({"limit": ["5", "50"], "search": ["a", "b"]})

        assert args.limit == 5
        assert args.search == "a"

    def test_empty_values_mean_not_given(self):
        args = QueryArgs.from_query({"limit": "", "offset": []})

        assert args.limit is None
        assert args.offset is None

    @pytest.mark.parametrize("key", ["limit", "offset"])
    def test_non_integer_rejected(self, key):
        with pytest.raises(ValidationError):
            QueryArgs.from_query({key: "ten"})

    @pytest.mark.parametrize("key", ["limit", "offset"])
    def test_negative_rejected(self, key):
        with pytest.raises(ValidationError):
            QueryArgs.from_query({key: "-1"})

    def test_zero_accepted(self):
        args = QueryArgs.from_query({"limit": "0", "offset": "0"})

        assert args.limit == 0
        assert args.offset == 0

    def test_invalid_search_rejected(self):
        with pytest.raises(ValidationError):
            QueryArgs.from_query({"search": "("})

    def test_bogus_order_is_dropped(self):
        assert QueryArgs.from_query({"order": "color:asc"}).sort is None


# =============================================================================
# Filters
# =============================================================================


class TestBuildFilter:
    """Tests for build_filter."""

    def test_user_mode(self):
        query = build_filter("u1", admin=False, accessible_ids=["b", "a", "b"])

        assert query == {"$or": [{"userId": "u1"}, {"id": {"$in": ["a", "b"]}}]}

    def test_user_mode_without_shares(self):
        query = build_filter("u1", admin=False)

        assert query == {"$or": [{"userId": "u1"}, {"id": {"$in": []}}]}

    def test_admin_mode(self):
        assert build_filter("u1", admin=True, accessible_ids=["a"]) == {}

    def test_search_in_user_mode(self):
        query = build_filter("u1", admin=False, accessible_ids=["a"], search="temp")

        assert query == {
            "$and": [
                {"$or": [{"userId": "u1"}, {"id": {"$in": ["a"]}}]},
                {"name": {"$regex": "temp", "$options": "i"}},
            ]
        }

    def test_search_in_admin_mode(self):
        assert build_filter("", admin=True, search="x") == {
            "name": {"$regex": "x", "$options": "i"}
        }
