"""In-process evaluation of uniform queries.

Used natively by the local backend and for the residual filters that a
document store dialect cannot express server-side.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from infrastructure.resilience.errors import InvalidArgumentError
from modules.providers.models import (
    FilterOperator,
    OrderBy,
    QueryFilter,
    QueryOptions,
    QueryResult,
    SortDirection,
)

_MISSING = object()


def get_field(document: Dict[str, Any], path: str) -> Any:
    """Resolve a dotted field path; returns ``_MISSING`` when absent."""
    current: Any = document
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _compare(left: Any, right: Any, operator: FilterOperator) -> bool:
    try:
        if operator == FilterOperator.LT:
            return left < right
        if operator == FilterOperator.LTE:
            return left <= right
        if operator == FilterOperator.GT:
            return left > right
        return left >= right
    except TypeError:
        return False


def match_filter(document: Dict[str, Any], query_filter: QueryFilter) -> bool:
    """Check one filter against a document.

    Documents missing the field only match ``!=`` and ``not-in``.
    """
    value = get_field(document, query_filter.field)
    operator = query_filter.operator
    expected = query_filter.value

    if value is _MISSING:
        return operator in (FilterOperator.NE, FilterOperator.NOT_IN)

    if operator == FilterOperator.EQ:
        return value == expected
    if operator == FilterOperator.NE:
        return value != expected
    if operator in (
        FilterOperator.LT,
        FilterOperator.LTE,
        FilterOperator.GT,
        FilterOperator.GTE,
    ):
        if value is None or expected is None:
            return False
        return _compare(value, expected, operator)
    if operator == FilterOperator.IN:
        return isinstance(expected, (list, tuple, set)) and value in expected
    if operator == FilterOperator.NOT_IN:
        return isinstance(expected, (list, tuple, set)) and value not in expected
    if operator == FilterOperator.CONTAINS:
        return str(expected) in str(value)
    if operator == FilterOperator.ARRAY_CONTAINS:
        return isinstance(value, list) and expected in value
    raise ValueError(f"Unsupported filter operator: {operator}")


def matches_all(document: Dict[str, Any], filters: Iterable[QueryFilter]) -> bool:
    return all(match_filter(document, f) for f in filters)


def _sort_key(value: Any) -> Tuple[int, Any]:
    # Missing and None sort first; mixed types fall back to their string form
    if value is _MISSING or value is None:
        return (0, "")
    if isinstance(value, bool):
        return (1, int(value))
    if isinstance(value, (int, float)):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    return (3, str(value))


def sort_documents(
    documents: List[Dict[str, Any]], order_by: Sequence[OrderBy]
) -> List[Dict[str, Any]]:
    """Stable multi-key sort; later keys are applied first."""
    result = list(documents)
    for order in reversed(order_by):
        result.sort(
            key=lambda doc, f=order.field: _sort_key(get_field(doc, f)),
            reverse=order.direction == SortDirection.DESC,
        )
    return result


def apply_query(
    documents: Iterable[Dict[str, Any]], options: Optional[QueryOptions] = None
) -> QueryResult:
    """Filter, sort and page documents under the offset model.

    The cursor is the stringified absolute position of the next page; when
    present it replaces ``offset``, so a caller can resend the same options
    with only the cursor changed.
    """
    options = options or QueryOptions()
    matched = [dict(doc) for doc in documents if matches_all(doc, options.filters)]
    if options.order_by:
        matched = sort_documents(matched, options.order_by)

    total = len(matched)
    start = options.offset
    if options.cursor:
        try:
            start = int(options.cursor)
        except ValueError as e:
            raise InvalidArgumentError(f"Invalid cursor: {options.cursor!r}") from e

    end = total if options.limit is None else start + options.limit
    items = matched[start:end]
    next_cursor = str(end) if end < total else None
    return QueryResult(items=items, total=total, next_cursor=next_cursor)


def split_filters(
    filters: Sequence[QueryFilter], native_operators: Set[FilterOperator]
) -> Tuple[List[QueryFilter], List[QueryFilter]]:
    """Partition filters into (native, residual) by operator support."""
    native: List[QueryFilter] = []
    residual: List[QueryFilter] = []
    for query_filter in filters:
        target = native if query_filter.operator in native_operators else residual
        target.append(query_filter)
    return native, residual
