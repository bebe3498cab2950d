"""Unit tests for in-process query evaluation."""

import pytest
from factories.providers import make_document, make_documents

from infrastructure.resilience import InvalidArgumentError
from modules.providers.models import (
    FilterOperator,
    OrderBy,
    QueryFilter,
    QueryOptions,
)
from modules.providers.query import apply_query, match_filter, sort_documents, split_filters


@pytest.mark.unit
class TestMatchFilter:
    @pytest.mark.parametrize(
        "operator,value,expected",
        [
            ("=", 5, True),
            ("!=", 5, False),
            ("<", 6, True),
            ("<=", 5, True),
            (">", 5, False),
            (">=", 5, True),
            ("in", [1, 5], True),
            ("not-in", [1, 5], False),
        ],
    )
    def test_scalar_operators(self, operator, value, expected):
        assert match_filter({"age": 5}, QueryFilter("age", operator, value)) is expected

    def test_contains_is_substring(self):
        assert match_filter({"name": "Ada Lovelace"}, QueryFilter("name", "contains", "Love"))

    def test_array_contains(self):
        document = {"tags": ["a", "b"]}

        assert match_filter(document, QueryFilter("tags", "array-contains", "b"))
        assert not match_filter({"tags": "ab"}, QueryFilter("tags", "array-contains", "b"))

    def test_dotted_field_path(self):
        document = {"profile": {"country": "CA"}}

        assert match_filter(document, QueryFilter("profile.country", "=", "CA"))

    @pytest.mark.parametrize(
        "operator,value,expected",
        [
            ("=", None, False),
            ("!=", 1, True),
            ("not-in", [1], True),
            ("in", [1], False),
            (">", 0, False),
        ],
    )
    def test_missing_field(self, operator, value, expected):
        assert match_filter({}, QueryFilter("age", operator, value)) is expected

    def test_incomparable_types_do_not_match(self):
        assert not match_filter({"age": "five"}, QueryFilter("age", ">", 3))

    def test_none_never_matches_range(self):
        assert not match_filter({"age": None}, QueryFilter("age", "<", 3))

    def test_unknown_operator_rejected_at_construction(self):
        with pytest.raises(ValueError):
            QueryFilter("age", "like", 1)


@pytest.mark.unit
class TestSortDocuments:
    def test_multi_key_sort(self):
        documents = [
            make_document("a", team="red", score=2),
            make_document("b", team="blue", score=9),
            make_document("c", team="red", score=7),
        ]

        ordered = sort_documents(
            documents, [OrderBy("team"), OrderBy("score", "desc")]
        )

        assert [d["id"] for d in ordered] == ["b", "c", "a"]

    def test_missing_values_sort_first(self):
        documents = [make_document("a", score=1), make_document("b")]

        assert [d["id"] for d in sort_documents(documents, [OrderBy("score")])] == ["b", "a"]


@pytest.mark.unit
class TestApplyQuery:
    def test_no_options_returns_everything(self):
        result = apply_query(make_documents(3))

        assert len(result.items) == 3
        assert result.total == 3
        assert result.next_cursor is None

    def test_filter_sort_limit(self):
        documents = make_documents(10)

        result = apply_query(
            documents,
            QueryOptions(
                filters=[QueryFilter("rank", FilterOperator.GTE, 4)],
                order_by=[OrderBy("rank", "desc")],
                limit=3,
            ),
        )

        assert [d["rank"] for d in result.items] == [9, 8, 7]
        assert result.total == 6
        assert result.next_cursor == "3"

    def test_offset_and_cursor_paging(self):
        documents = make_documents(5)
        options = QueryOptions(order_by=[OrderBy("rank")], limit=2, offset=1)

        first = apply_query(documents, options)
        options.cursor = first.next_cursor
        second = apply_query(documents, options)

        assert [d["rank"] for d in first.items] == [1, 2]
        assert [d["rank"] for d in second.items] == [3, 4]
        assert second.next_cursor is None
        assert first.next_cursor == "3"

    def test_limit_zero(self):
        result = apply_query(make_documents(3), QueryOptions(limit=0))

        assert result.items == []
        assert result.total == 3

    def test_offset_past_end(self):
        result = apply_query(make_documents(3), QueryOptions(offset=10))

        assert result.items == []
        assert result.total == 3

    def test_invalid_cursor(self):
        with pytest.raises(InvalidArgumentError):
            apply_query(make_documents(3), QueryOptions(cursor="page-2"))

    def test_returned_items_are_copies(self):
        documents = make_documents(1)

        apply_query(documents).items[0]["rank"] = 99

        assert documents[0]["rank"] == 0

    def test_rejects_negative_paging(self):
        with pytest.raises(ValueError):
            QueryOptions(limit=-1)
        with pytest.raises(ValueError):
            QueryOptions(offset=-1)


@pytest.mark.unit
class TestSplitFilters:
    def test_partitions_by_operator(self):
        eq = QueryFilter("a", "=", 1)
        contains = QueryFilter("b", "contains", "x")

        native, residual = split_filters([eq, contains], {FilterOperator.EQ})

        assert native == [eq]
        assert residual == [contains]
