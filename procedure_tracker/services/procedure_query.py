"""
Procedure view rules — status filter, free-text search, sort order and the
acknowledgment completion percentage.

These are pure functions over anything shaped like a procedure (ORM rows on
the server, ``ProcedureRecord`` on the client) so the API's query parameters
and the client's list controller give identical results.
"""

import unicodedata
from datetime import date
from enum import Enum
from typing import Any, Iterable, List, Sequence, TypeVar

T = TypeVar("T")


class StatusFilter(str, Enum):
    ALL = "all"
    ACTIVE = "active"
    ARCHIVED = "archived"
    REPLACED = "replaced"


class SortKey(str, Enum):
    DATE_DESC = "date-desc"     # Newest effective date first
    DATE_ASC = "date-asc"       # Oldest effective date first
    TITLE = "title"             # Title A-Z


DEFAULT_STATUS_FILTER = StatusFilter.ACTIVE
DEFAULT_SORT_KEY = SortKey.DATE_DESC

SEARCH_FIELDS = ("title", "description", "source")


def _value(v: Any) -> Any:
    return v.value if isinstance(v, Enum) else v


def _effective_date(item: Any) -> date:
    d = item.effective_date
    if isinstance(d, str):
        return date.fromisoformat(d)
    return d


def title_collation_key(title: str):
    """Accent- and case-insensitive primary key, original text as tie-break."""
    decomposed = unicodedata.normalize("NFKD", title or "")
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return (base.casefold(), title or "")


def matches_query(item: Any, query: str) -> bool:
    """
    Case-insensitive substring match against title, description or source.
    The query is used as typed; surrounding whitespace is part of it.
    """
    needle = (query or "").lower()
    if not needle:
        return True
    return any(needle in (getattr(item, f) or "").lower() for f in SEARCH_FIELDS)


def filter_procedures(
    items: Iterable[T],
    status_filter: StatusFilter | str = DEFAULT_STATUS_FILTER,
    query: str = "",
) -> List[T]:
    """Status filter first, then search. Returns a new list."""
    wanted = StatusFilter(_value(status_filter))
    result = list(items)
    if wanted != StatusFilter.ALL:
        result = [p for p in result if _value(p.status) == wanted.value]
    return [p for p in result if matches_query(p, query)]


def sort_procedures(items: Iterable[T], sort_key: SortKey | str = DEFAULT_SORT_KEY) -> List[T]:
    """Stable sort into a new list."""
    key = SortKey(_value(sort_key))
    if key == SortKey.TITLE:
        return sorted(items, key=lambda p: title_collation_key(p.title))
    return sorted(items, key=_effective_date, reverse=key == SortKey.DATE_DESC)


def apply_view(
    items: Sequence[T],
    status_filter: StatusFilter | str = DEFAULT_STATUS_FILTER,
    query: str = "",
    sort_key: SortKey | str = DEFAULT_SORT_KEY,
) -> List[T]:
    """Filter by status, then by query, then sort. ``items`` is left untouched."""
    return sort_procedures(filter_procedures(items, status_filter, query), sort_key)


def completion_percentage(acknowledged_count: int, total_profiles: int) -> int:
    """round(100 * acknowledged / total), half-up, clamped to [0, 100]; 0 when total is 0."""
    if total_profiles <= 0 or acknowledged_count <= 0:
        return 0
    pct = (200 * acknowledged_count + total_profiles) // (2 * total_profiles)
    return min(100, pct)
