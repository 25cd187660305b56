from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Union

from cursorgrid.clients.authproxy_client import AuthProxyClient
from cursorgrid.config.settings import settings
from cursorgrid.core.exceptions.exceptions import UnknownScreenError
from cursorgrid.schemas.pagination import ListParams, PaginationView, SortSpec
from cursorgrid.services.list_sources import LIST_SOURCES, ListSource
from cursorgrid.services.pagination_cache import FetchPage, PaginationCache
from cursorgrid.services.query_sync import NavigationHistory, QueryStringSynchronizer
from cursorgrid.utils.log import app_logger


class ListScreen:
    """What a grid widget binds to for one list screen.

    Exposes `rows`, `row_count`, `has_next_page`, `loading` and `error`
    plus the `set_page`, `set_page_size`, `set_sort` and `set_filter`
    interaction handlers. Handlers write the new state to the navigation
    history; `navigate`, `back` and `forward` read it back.
    """

    def __init__(self, source: ListSource, fetch: FetchPage,
                 history: Optional[NavigationHistory] = None,
                 default_page_size: Optional[int] = None,
                 page_size_options: Optional[Sequence[int]] = None):
        self.source = source
        self.schema = source.query_schema(
            default_page_size or settings.DEFAULT_PAGE_SIZE,
            page_size_options or settings.PAGE_SIZE_OPTIONS,
        )
        self.cache = PaginationCache(fetch, ListParams(page_size=self.schema.default_page_size), name=source.name)
        self.history = history if history is not None else NavigationHistory()
        self.sync = QueryStringSynchronizer(self.cache, self.schema, self.history)
        self._opened = False

    @property
    def name(self) -> str:
        return self.source.name

    @property
    def view(self) -> PaginationView:
        return self.cache.view

    @property
    def rows(self) -> List:
        return self.cache.view.rows

    @property
    def row_count(self) -> int:
        return self.cache.view.row_count

    @property
    def has_next_page(self) -> bool:
        return self.cache.view.has_next_page

    @property
    def loading(self) -> bool:
        return self.cache.view.loading

    @property
    def error(self) -> Optional[str]:
        return self.cache.view.error

    @property
    def query_string(self) -> str:
        return self.history.query_string

    async def open(self) -> PaginationView:
        """First load: apply whatever the history holds and fetch that page."""
        await self.sync.pull(force=not self._opened)
        self._opened = True
        return self.view

    async def navigate(self, query_string: str) -> PaginationView:
        self.history.navigate(query_string)
        return await self.open()

    async def back(self) -> PaginationView:
        if self.history.back():
            await self.sync.pull()
        return self.view

    async def forward(self) -> PaginationView:
        if self.history.forward():
            await self.sync.pull()
        return self.view

    async def set_page(self, page: int) -> PaginationView:
        """Show zero-based `page`, walking forward to it when needed."""
        self.schema.check_page(page)
        await self.cache.fetch_page(page)
        self.sync.push()
        return self.view

    async def set_page_size(self, page_size: int) -> PaginationView:
        self.schema.check_page_size(page_size)
        await self.cache.set_params(self.cache.params.replace(page_size=page_size))
        self.sync.push()
        return self.view

    async def set_sort(self, sort: Union[SortSpec, str, None]) -> PaginationView:
        spec = self.schema.check_sort(sort)
        await self.cache.set_params(self.cache.params.replace(sort=spec))
        self.sync.push()
        return self.view

    async def set_filter(self, criteria: Mapping[str, Optional[str]]) -> PaginationView:
        checked = self.schema.check_filter(criteria)
        await self.cache.set_params(self.cache.params.replace(filter=checked))
        self.sync.push()
        return self.view


class ScreenRegistry:
    """One `ListScreen` per list source, all sharing one API client.

    Screens and their navigation history are per process, not per caller:
    every HTTP client of the app drives the same pages and back/forward stack.
    """

    def __init__(self, client: AuthProxyClient, sources: Optional[Mapping[str, ListSource]] = None):
        self.client = client
        self._screens: Dict[str, ListScreen] = {}
        for name, source in (sources or LIST_SOURCES).items():
            self._screens[name] = ListScreen(source, source.fetcher(client))
        app_logger.info("screens.ready", screens=sorted(self._screens))

    def get(self, name: str) -> ListScreen:
        screen = self._screens.get(name)
        if screen is None:
            raise UnknownScreenError(name)
        return screen

    def __iter__(self) -> Iterator[ListScreen]:
        return iter(self._screens.values())

    def close(self) -> None:
        self.client.close()
