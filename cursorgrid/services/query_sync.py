from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Union
from urllib.parse import parse_qsl, urlencode

from pydantic import BaseModel, ConfigDict, Field

from cursorgrid.core.exceptions.exceptions import InvalidQueryValueError
from cursorgrid.middleware.security import Security
from cursorgrid.schemas.pagination import ListParams, SortSpec
from cursorgrid.services.pagination_cache import PaginationCache
from cursorgrid.utils.log import app_logger

PAGE_KEY = "page"
PAGE_SIZE_KEY = "page_size"
SORT_KEY = "sort"


class QueryState(BaseModel):
    """Canonical `{page, page_size, sort, filter}` of one list screen.

    `page` is zero-based here; the persisted query value is one-based.
    """

    model_config = ConfigDict(frozen=True)

    page: int = Field(default=0, ge=0)
    page_size: int = Field(gt=0)
    sort: Optional[SortSpec] = None
    filter: Dict[str, str] = Field(default_factory=dict)

    def list_params(self) -> ListParams:
        return ListParams(filter=self.filter, sort=self.sort, page_size=self.page_size)


@dataclass(frozen=True)
class QuerySchema:
    """Keys, defaults and allowed values of a screen's persisted query.

    `filters` maps a filter name to its allowed values, or to None for free text.
    """

    default_page_size: int
    page_size_options: Sequence[int]
    sortable_fields: Sequence[str] = ()
    filters: Mapping[str, Optional[Sequence[str]]] = field(default_factory=dict)

    def check_page(self, page: int) -> int:
        if not isinstance(page, int) or page < 0:
            raise InvalidQueryValueError(PAGE_KEY, page)
        return page

    def check_page_size(self, page_size: int) -> int:
        if page_size not in self.page_size_options:
            raise InvalidQueryValueError(PAGE_SIZE_KEY, page_size)
        return page_size

    def check_sort(self, sort: Union[SortSpec, str, None]) -> Optional[SortSpec]:
        spec = SortSpec.parse(sort) if isinstance(sort, str) or sort is None else sort
        if spec is not None and spec.field not in self.sortable_fields:
            raise InvalidQueryValueError(SORT_KEY, str(spec))
        return spec

    def check_filter(self, criteria: Mapping[str, Optional[str]]) -> Dict[str, str]:
        checked: Dict[str, str] = {}
        for key, value in criteria.items():
            if key not in self.filters:
                raise InvalidQueryValueError(key, value)
            if value is None or value == "":
                continue
            choices = self.filters[key]
            if choices is not None and value not in choices:
                raise InvalidQueryValueError(key, value)
            if not Security().is_safe_filter_value(value):
                raise InvalidQueryValueError(key, value)
            checked[key] = value
        return checked

    def decode(self, query: Mapping[str, str]) -> QueryState:
        """Read persisted values; anything unusable falls back to its default."""
        page = 0
        raw_page = query.get(PAGE_KEY)
        if raw_page:
            try:
                page = self.check_page(int(raw_page) - 1)
            except (ValueError, InvalidQueryValueError):
                app_logger.warning("sync.bad_value", key=PAGE_KEY, value=raw_page)

        page_size = self.default_page_size
        raw_size = query.get(PAGE_SIZE_KEY)
        if raw_size:
            try:
                page_size = self.check_page_size(int(raw_size))
            except (ValueError, InvalidQueryValueError):
                app_logger.warning("sync.bad_value", key=PAGE_SIZE_KEY, value=raw_size)

        sort = None
        raw_sort = query.get(SORT_KEY)
        if raw_sort:
            try:
                sort = self.check_sort(raw_sort)
            except InvalidQueryValueError:
                app_logger.warning("sync.bad_value", key=SORT_KEY, value=raw_sort)

        criteria: Dict[str, str] = {}
        for key in self.filters:
            raw_value = query.get(key)
            if not raw_value:
                continue
            try:
                criteria.update(self.check_filter({key: raw_value}))
            except InvalidQueryValueError:
                app_logger.warning("sync.bad_value", key=key, value=raw_value)

        return QueryState(page=page, page_size=page_size, sort=sort, filter=criteria)

    def encode(self, state: QueryState) -> Dict[str, str]:
        """Persisted form of `state` with every default left out."""
        query: Dict[str, str] = {}
        if state.page != 0:
            query[PAGE_KEY] = str(state.page + 1)
        if state.page_size != self.default_page_size:
            query[PAGE_SIZE_KEY] = str(state.page_size)
        if state.sort is not None:
            query[SORT_KEY] = str(state.sort)
        for key in self.filters:
            if state.filter.get(key):
                query[key] = state.filter[key]
        return query


class NavigationHistory:
    """In-process stand-in for the address bar and its back/forward stack."""

    def __init__(self, initial: str = ""):
        self._entries: List[Dict[str, str]] = [self.parse(initial)]
        self._index = 0

    @staticmethod
    def parse(query_string: str) -> Dict[str, str]:
        return dict(parse_qsl(query_string.lstrip("?"), keep_blank_values=False))

    @property
    def query_string(self) -> str:
        return urlencode(self._entries[self._index])

    @property
    def entries(self) -> List[str]:
        return [urlencode(entry) for entry in self._entries]

    def get(self) -> Dict[str, str]:
        return dict(self._entries[self._index])

    def push(self, query: Mapping[str, str]) -> None:
        # a new entry drops whatever was ahead of the current position
        del self._entries[self._index + 1:]
        self._entries.append(dict(query))
        self._index += 1

    def navigate(self, query_string: str) -> bool:
        """A URL typed or linked by the user; re-entering the current one is a no-op."""
        query = self.parse(query_string)
        if query == self._entries[self._index]:
            return False
        self.push(query)
        return True

    def back(self) -> bool:
        if self._index == 0:
            return False
        self._index -= 1
        return True

    def forward(self) -> bool:
        if self._index >= len(self._entries) - 1:
            return False
        self._index += 1
        return True


class QueryStringSynchronizer:
    """Mirrors a `PaginationCache`'s state into a `NavigationHistory` and back.

    Both directions only act when values differ, so reading a query and then
    writing the same state produces no new history entry.
    """

    def __init__(self, cache: PaginationCache, schema: QuerySchema, history: NavigationHistory):
        self.cache = cache
        self.schema = schema
        self.history = history

    @property
    def state(self) -> QueryState:
        params = self.cache.params
        return QueryState(
            page=self.cache.target_page,
            page_size=params.page_size,
            sort=params.sort,
            filter=params.filter,
        )

    def push(self) -> bool:
        """Outbound: write the canonical state if it differs from the persisted one."""
        query = self.schema.encode(self.state)
        if query == self.history.get():
            return False
        app_logger.debug("sync.outbound", screen=self.cache.name, query=query)
        self.history.push(query)
        return True

    async def pull(self, force: bool = False) -> bool:
        """Inbound: apply the persisted state to the cache.

        Differing params reset the cache before the page is fetched; a
        differing page alone is a plain page fetch. `force` fetches the page
        even when nothing changed, e.g. for the first load of a screen.
        Re-reading the current state after a failed load retries the walk.
        """
        wanted = self.schema.decode(self.history.get())
        current = self.state
        if wanted == current and not force and not self._needs_fetch(wanted.page):
            return False

        app_logger.debug("sync.inbound", screen=self.cache.name, page=wanted.page,
                         page_size=wanted.page_size, sort=str(wanted.sort or ""), filter=wanted.filter)
        params = wanted.list_params()
        if params != self.cache.params:
            first = await self.cache.set_params(params)
            # a failed first page stays on screen until the user asks again
            if wanted.page != 0 and first is not None and self.cache.view.error is None:
                await self.cache.fetch_page(wanted.page)
        else:
            await self.cache.fetch_page(wanted.page)
        return True

    def _needs_fetch(self, page: int) -> bool:
        if self.cache.view.error is not None:
            return True
        pages = self.cache.pages
        if page < len(pages):
            return False
        return not pages or pages[-1].cursor is not None
