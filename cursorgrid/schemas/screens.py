from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from cursorgrid.schemas.pagination import PaginationView


class ScreenInfo(BaseModel):
    name: str
    filters: Dict[str, Optional[List[str]]]
    sortable_fields: List[str]
    default_page_size: int
    page_size_options: List[int]


class ScreenResponse(BaseModel):
    """Grid state plus the canonical query string to show in the address bar."""
    view: PaginationView
    query: str = Field(..., description="Persisted query with defaults omitted")


class PageUpdate(BaseModel):
    page: int = Field(..., description="Zero-based page index as reported by the grid")


class PageSizeUpdate(BaseModel):
    page_size: int


class SortUpdate(BaseModel):
    sort: Optional[str] = Field(None, description="'<field> asc|desc', empty or null to clear")


class FilterUpdate(BaseModel):
    filter: Dict[str, Optional[str]] = Field(default_factory=dict)
