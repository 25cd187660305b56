from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cursorgrid.core.exceptions.exceptions import InvalidQueryValueError

T = TypeVar("T")

# rowCount sentinel until the cursor chain has been walked to its end
UNKNOWN_ROW_COUNT = -1


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class SortSpec(BaseModel):
    """A single sort column, rendered as `"<field> <direction>"` on the wire."""

    model_config = ConfigDict(frozen=True)

    field: str
    direction: SortDirection = SortDirection.ASC

    @classmethod
    def parse(cls, raw: Optional[str]) -> Optional["SortSpec"]:
        """Parse `"created_at desc"` / `"email"` / `""`; empty means no sort."""
        if raw is None:
            return None
        parts = raw.split()
        if not parts:
            return None
        if len(parts) > 2:
            raise InvalidQueryValueError("sort", raw)

        direction = parts[1].lower() if len(parts) == 2 else SortDirection.ASC.value
        if direction not in (SortDirection.ASC.value, SortDirection.DESC.value):
            raise InvalidQueryValueError("sort", raw)
        return cls(field=parts[0], direction=SortDirection(direction))

    def __str__(self) -> str:
        return f"{self.field} {self.direction.value}"


class ListParams(BaseModel):
    """Filter, sort and page size; equality of this tuple is the cache identity."""

    model_config = ConfigDict(frozen=True)

    filter: Dict[str, str] = Field(default_factory=dict)
    sort: Optional[SortSpec] = None
    page_size: int = Field(default=20, gt=0)

    @field_validator("filter")
    @classmethod
    def _drop_empty_values(cls, value: Dict[str, str]) -> Dict[str, str]:
        # {"state": ""} and {} select the same rows
        return {k: v for k, v in value.items() if v is not None and v != ""}

    def replace(self, **changes: Any) -> "ListParams":
        data = {"filter": self.filter, "sort": self.sort, "page_size": self.page_size}
        data.update(changes)
        return ListParams(**data)


class ServerPage(BaseModel, Generic[T]):
    """One response unit of a list endpoint: `{items, cursor?}`."""

    items: List[T] = Field(default_factory=list)
    cursor: Optional[str] = None

    @field_validator("cursor", mode="before")
    @classmethod
    def _normalize_cursor(cls, value: Any) -> Optional[str]:
        # servers omit the cursor or send "" for the terminal page
        if value is None or value == "":
            return None
        return value

    @property
    def is_terminal(self) -> bool:
        return self.cursor is None


class PageRequest(BaseModel):
    """The request for one server page.

    A first page request carries filter, sort and limit. A continuation
    request sends nothing but the cursor; `params` is kept only so callers
    can resolve path parameters of the endpoint.
    """

    model_config = ConfigDict(frozen=True)

    params: ListParams
    cursor: Optional[str] = None

    @classmethod
    def first_page(cls, params: ListParams) -> "PageRequest":
        return cls(params=params)

    @classmethod
    def continuation(cls, params: ListParams, cursor: str) -> "PageRequest":
        return cls(params=params, cursor=cursor)

    @property
    def is_first_page(self) -> bool:
        return self.cursor is None

    def to_query(self, exclude_filters=()) -> Dict[str, Any]:
        if self.cursor is not None:
            return {"cursor": self.cursor}

        query: Dict[str, Any] = {}
        if self.params.sort is not None:
            query["order_by"] = str(self.params.sort)
        for key, value in self.params.filter.items():
            if key not in exclude_filters:
                query[key] = value
        query["limit"] = self.params.page_size
        return query


class PaginationView(BaseModel):
    """State handed to the grid widget."""

    rows: List[Any] = Field(default_factory=list)
    target_page: int = Field(default=0, ge=0)
    page_size: int = Field(default=20, gt=0)
    has_next_page: bool = False
    row_count: int = UNKNOWN_ROW_COUNT
    loading: bool = False
    error: Optional[str] = None
