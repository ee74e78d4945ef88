# symtex_ledger/query/filters.py
"""
Query parameter types: LedgerFilter, LedgerSort, Pagination and the Page result.

Bad parameters raise QueryError at construction, before any entry is read.
Mappings from the dashboard may use its camelCase keys (actorType, dateRange...).
"""

import hashlib
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, FrozenSet, List, Mapping, Optional, Tuple, Type, TypeVar, Union

from symtex_ledger.core.canon import canonical_json
from symtex_ledger.core.errors import QueryError, ValidationError
from symtex_ledger.core.types import (
    ActionStatus,
    ActorType,
    Category,
    LedgerEntry,
    Severity,
    coerce_enum,
    format_timestamp,
    parse_timestamp,
)
from symtex_ledger.index.manager import Dimension

E = TypeVar("E", bound=Enum)


def _values(raw: Any) -> Tuple[Any, ...]:
    if raw is None:
        return ()
    if isinstance(raw, (str, Enum)):
        return (raw,)
    return tuple(raw)


def _enum_set(enum_cls: Type[E], raw: Any, name: str) -> FrozenSet[E]:
    try:
        return frozenset(coerce_enum(enum_cls, v, name) for v in _values(raw))
    except ValidationError as e:
        raise QueryError(str(e)) from None


def _text_set(raw: Any, name: str) -> FrozenSet[str]:
    values = _values(raw)
    for v in values:
        if not isinstance(v, str) or not v:
            raise QueryError(f"{name}: expected non-empty strings, got {v!r}")
    return frozenset(values)


def _timestamp(raw: Any, name: str) -> datetime:
    try:
        return parse_timestamp(raw, name)
    except ValidationError as e:
        raise QueryError(str(e)) from None


@dataclass(frozen=True)
class DateRange:
    """Inclusive on both ends."""

    start: datetime
    end: datetime

    def __post_init__(self):
        object.__setattr__(self, "start", _timestamp(self.start, "date_range.from"))
        object.__setattr__(self, "end", _timestamp(self.end, "date_range.to"))
        if self.start > self.end:
            raise QueryError("date_range: 'from' is after 'to'")

    def __contains__(self, when: datetime) -> bool:
        return self.start <= when <= self.end


@dataclass(frozen=True)
class LedgerFilter:
    """
    Predicates are AND-combined; the values inside one predicate are OR-combined.
    Empty predicates match everything.
    """

    actor_type: FrozenSet[ActorType] = frozenset()
    actor_id: FrozenSet[str] = frozenset()
    category: FrozenSet[Category] = frozenset()
    severity: FrozenSet[Severity] = frozenset()
    status: FrozenSet[ActionStatus] = frozenset()
    space_id: FrozenSet[str] = frozenset()
    project_id: FrozenSet[str] = frozenset()
    tags: FrozenSet[str] = frozenset()
    flagged_only: bool = False
    date_range: Optional[DateRange] = None
    search: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "actor_type", _enum_set(ActorType, self.actor_type, "actor_type"))
        object.__setattr__(self, "category", _enum_set(Category, self.category, "category"))
        object.__setattr__(self, "severity", _enum_set(Severity, self.severity, "severity"))
        object.__setattr__(self, "status", _enum_set(ActionStatus, self.status, "status"))
        for name in ("actor_id", "space_id", "project_id", "tags"):
            object.__setattr__(self, name, _text_set(getattr(self, name), name))
        if isinstance(self.date_range, Mapping):
            object.__setattr__(self, "date_range", DateRange(
                self.date_range.get("from", self.date_range.get("start")),
                self.date_range.get("to", self.date_range.get("end")),
            ))
        elif isinstance(self.date_range, (tuple, list)):
            object.__setattr__(self, "date_range", DateRange(*self.date_range))
        if self.search is not None:
            if not isinstance(self.search, str):
                raise QueryError("search: expected a string")
            object.__setattr__(self, "search", self.search.strip() or None)
        object.__setattr__(self, "flagged_only", bool(self.flagged_only))

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "LedgerFilter":
        data = data or {}
        known = {
            "actor_type": ("actor_type", "actorType"),
            "actor_id": ("actor_id", "actorId"),
            "category": ("category",),
            "severity": ("severity",),
            "status": ("status",),
            "space_id": ("space_id", "spaceId"),
            "project_id": ("project_id", "projectId"),
            "tags": ("tags",),
            "flagged_only": ("flagged_only", "flaggedOnly"),
            "date_range": ("date_range", "dateRange"),
            "search": ("search",),
        }
        aliases = {alias: name for name, names in known.items() for alias in names}
        unknown = sorted(set(data) - set(aliases))
        if unknown:
            raise QueryError(f"unknown filter field(s): {', '.join(unknown)}")
        return cls(**{aliases[key]: value for key, value in data.items()})

    # ── evaluation ──

    def indexed_predicates(self) -> List[Tuple[Dimension, FrozenSet[str]]]:
        """Predicates the IndexManager can answer, as (dimension, values)."""
        pairs = [
            (Dimension.ACTOR_TYPE, frozenset(v.value for v in self.actor_type)),
            (Dimension.ACTOR_ID, self.actor_id),
            (Dimension.CATEGORY, frozenset(v.value for v in self.category)),
            (Dimension.SEVERITY, frozenset(v.value for v in self.severity)),
            (Dimension.STATUS, frozenset(v.value for v in self.status)),
            (Dimension.SPACE_ID, self.space_id),
            (Dimension.PROJECT_ID, self.project_id),
            (Dimension.TAG, self.tags),
        ]
        return [(dimension, values) for dimension, values in pairs if values]

    def matches_indexed(self, entry: LedgerEntry) -> bool:
        """Only the predicates over immutable, indexed fields."""
        if self.actor_type and entry.who.type not in self.actor_type:
            return False
        if self.actor_id and entry.who.id not in self.actor_id:
            return False
        if self.category and entry.what.category not in self.category:
            return False
        if self.severity and entry.what.severity not in self.severity:
            return False
        if self.status and entry.what.status not in self.status:
            return False
        if self.space_id and entry.where.space_id not in self.space_id:
            return False
        if self.project_id and entry.where.project_id not in self.project_id:
            return False
        if self.tags and self.tags.isdisjoint(entry.tags):
            return False
        return True

    def matches(self, entry: LedgerEntry) -> bool:
        if not self.matches_indexed(entry):
            return False
        if self.flagged_only and not entry.is_flagged:
            return False
        if self.date_range is not None and entry.when not in self.date_range:
            return False
        if self.search:
            needle = self.search.casefold()
            if not (
                needle in entry.what.description.casefold()
                or needle in entry.who.name.casefold()
                or any(needle in tag.casefold() for tag in entry.tags)
            ):
                return False
        return True

    def to_dict(self) -> dict:
        return {
            "actor_type": sorted(v.value for v in self.actor_type),
            "actor_id": sorted(self.actor_id),
            "category": sorted(v.value for v in self.category),
            "severity": sorted(v.value for v in self.severity),
            "status": sorted(v.value for v in self.status),
            "space_id": sorted(self.space_id),
            "project_id": sorted(self.project_id),
            "tags": sorted(self.tags),
            "flagged_only": self.flagged_only,
            "date_range": (
                {"from": format_timestamp(self.date_range.start), "to": format_timestamp(self.date_range.end)}
                if self.date_range else None
            ),
            "search": self.search,
        }

    def fingerprint(self) -> str:
        return hashlib.sha256(canonical_json(self.to_dict())).hexdigest()[:16]


class SortField(str, Enum):
    WHEN = "when"
    SEQUENCE = "sequence"
    SEVERITY = "severity"
    CATEGORY = "category"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class LedgerSort:
    """Primary key plus direction. Ties always fall back to sequence ascending."""

    field: SortField = SortField.WHEN
    direction: SortDirection = SortDirection.DESC

    def __post_init__(self):
        try:
            object.__setattr__(self, "field", coerce_enum(SortField, self.field, "sort.field"))
            object.__setattr__(self, "direction", coerce_enum(SortDirection, self.direction, "sort.direction"))
        except ValidationError as e:
            raise QueryError(str(e)) from None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "LedgerSort":
        data = data or {}
        return cls(field=data.get("field", SortField.WHEN), direction=data.get("direction", SortDirection.DESC))

    @property
    def descending(self) -> bool:
        return self.direction is SortDirection.DESC

    def key(self, entry: LedgerEntry) -> Any:
        if self.field is SortField.WHEN:
            return entry.when
        if self.field is SortField.SEQUENCE:
            return entry.sequence
        if self.field is SortField.SEVERITY:
            return entry.what.severity.rank
        return entry.what.category.value

    def key_value(self, entry: LedgerEntry) -> Union[str, int]:
        """JSON-safe form of key(), for cursors."""
        if self.field is SortField.WHEN:
            return format_timestamp(entry.when)
        return self.key(entry)

    def parse_key(self, raw: Any) -> Any:
        if self.field is SortField.WHEN:
            return _timestamp(raw, "cursor")
        if self.field in (SortField.SEQUENCE, SortField.SEVERITY):
            if isinstance(raw, bool) or not isinstance(raw, int):
                raise QueryError("malformed cursor key")
            return raw
        if not isinstance(raw, str):
            raise QueryError("malformed cursor key")
        return raw


@dataclass(frozen=True)
class Pagination:
    """
    Page-number pagination by default; pass `cursor` (a Page.next_cursor) to
    continue after the last entry of a previous page instead.
    """

    page: int = 1
    page_size: Optional[int] = None
    cursor: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.page, bool) or not isinstance(self.page, int) or self.page < 1:
            raise QueryError(f"page must be an integer >= 1, got {self.page!r}")
        if self.page_size is not None and (
            isinstance(self.page_size, bool) or not isinstance(self.page_size, int) or self.page_size < 1
        ):
            raise QueryError(f"page_size must be an integer >= 1, got {self.page_size!r}")
        if self.cursor is not None and (not isinstance(self.cursor, str) or not self.cursor):
            raise QueryError("cursor must be a non-empty string")

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "Pagination":
        data = data or {}
        return cls(
            page=data.get("page", 1),
            page_size=data.get("page_size", data.get("pageSize")),
            cursor=data.get("cursor"),
        )


@dataclass(frozen=True)
class Page:
    entries: Tuple[LedgerEntry, ...]
    total_count: int
    page: Optional[int]  # None for cursor pages
    page_size: int
    total_pages: int
    has_more: bool
    next_cursor: Optional[str] = None
    degraded: bool = False  # served by full scan after an index problem
    warnings: Tuple[str, ...] = ()

    @property
    def sequences(self) -> List[int]:
        return [entry.sequence for entry in self.entries]

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)
