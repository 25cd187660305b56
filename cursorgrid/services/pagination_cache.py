from typing import Awaitable, Callable, FrozenSet, Generic, List, Optional, Sequence, Set, TypeVar

from cursorgrid.core.exceptions.exceptions import InvalidPageError
from cursorgrid.schemas.pagination import (
    UNKNOWN_ROW_COUNT,
    ListParams,
    PageRequest,
    PaginationView,
    ServerPage,
)
from cursorgrid.utils.log import app_logger

T = TypeVar("T")

FetchPage = Callable[[PageRequest], Awaitable[ServerPage[T]]]


def derive_row_count(pages: Sequence[ServerPage]) -> int:
    """Total rows once the chain has reached a page without cursor, else unknown."""
    if not pages or pages[-1].cursor is not None:
        return UNKNOWN_ROW_COUNT
    return sum(len(page.items) for page in pages)


def derive_has_next_page(pages: Sequence[ServerPage], target: int) -> bool:
    if target >= len(pages):
        return False
    return pages[target].cursor is not None


class PaginationCache(Generic[T]):
    """Presents a forward-only cursor list API as a page-numbered grid.

    Server pages are kept in a contiguous, zero-based prefix indexed by page
    number. Asking for page N returns the cached page or walks forward from the
    last cached page, one fetch per unknown page, passing each page's cursor
    into the next request. Going back never touches the network.

    The cache is valid for one `ListParams` value only. Changing filter, sort
    or page size starts a new generation with an empty cache and in-flight set;
    results of fetches dispatched under an older generation are dropped when
    they arrive.

    Mutations happen only between awaits on a single event loop, so no lock is
    held. Concurrent walks are kept from fetching the same index twice by the
    in-flight set: a walk that finds its next index already being fetched
    returns None, and the walk that owns it publishes the most recently
    requested page when it finishes.
    """

    def __init__(self, fetch: FetchPage, params: ListParams, name: str = "list"):
        self._fetch = fetch
        self.name = name
        self._params = params
        self._generation = 0
        self._pages: List[ServerPage[T]] = []
        self._in_flight: Set[int] = set()
        self._view = PaginationView(page_size=params.page_size)

    @property
    def params(self) -> ListParams:
        return self._params

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def pages(self) -> Sequence[ServerPage[T]]:
        return tuple(self._pages)

    @property
    def in_flight(self) -> FrozenSet[int]:
        return frozenset(self._in_flight)

    @property
    def target_page(self) -> int:
        return self._view.target_page

    @property
    def view(self) -> PaginationView:
        return self._view.model_copy(deep=True)

    def reset(self, params: Optional[ListParams] = None) -> None:
        """Drop every cached page and cursor, optionally switching to new params."""
        if params is not None:
            self._params = params
        self._generation += 1
        self._pages = []
        self._in_flight = set()
        self._view = PaginationView(page_size=self._params.page_size)
        app_logger.info("cache.reset", screen=self.name, generation=self._generation,
                        filter=self._params.filter, sort=str(self._params.sort or ""),
                        page_size=self._params.page_size)

    async def set_params(self, params: ListParams) -> Optional[ServerPage[T]]:
        """Switch to `params`; a no-op when they equal the current ones."""
        if params == self._params:
            return None
        self.reset(params)
        return await self.fetch_page(0)

    async def fetch_page(self, target: int) -> Optional[ServerPage[T]]:
        """Materialize page `target` and publish it to the view.

        Returns the page, the terminal page when the chain ends before
        `target`, or None when the walk was aborted (duplicate in-flight
        index, fetch failure, or the params changed underneath it).
        """
        if target < 0:
            raise InvalidPageError(target)

        self._view.target_page = target
        self._view.error = None

        pages = self._pages
        if target < len(pages):
            return self._publish(target)

        generation = self._generation
        in_flight = self._in_flight
        params = self._params
        self._view.loading = True

        while len(pages) <= target and (not pages or pages[-1].cursor is not None):
            index = len(pages)
            if index in in_flight:
                app_logger.debug("walk.in_flight", screen=self.name, index=index, target=target)
                return None
            in_flight.add(index)

            if index == 0:
                request = PageRequest.first_page(params)
            else:
                request = PageRequest.continuation(params, pages[index - 1].cursor)

            app_logger.debug("walk.fetch", screen=self.name, index=index, target=target,
                             generation=generation, first_page=request.is_first_page)
            try:
                page = await self._fetch(request)
            except Exception as e:
                if generation == self._generation:
                    self._fail(index, e)
                else:
                    app_logger.info("walk.stale_error_ignored", screen=self.name, index=index,
                                    generation=generation)
                return None
            finally:
                in_flight.discard(index)

            if generation != self._generation:
                app_logger.info("walk.stale_discarded", screen=self.name, index=index,
                                generation=generation, current=self._generation)
                return None

            # a duplicate that slipped through lands on the same index
            if index < len(pages):
                pages[index] = page
            else:
                pages.append(page)

        resolved = pages[target] if target < len(pages) else pages[-1]

        latest = self._view.target_page
        if latest == target:
            self._publish(target)
        elif latest < len(pages) or pages[-1].cursor is None:
            self._publish(latest)
        else:
            await self.fetch_page(latest)
        return resolved

    def _publish(self, target: int) -> Optional[ServerPage[T]]:
        pages = self._pages
        view = self._view
        view.target_page = target
        view.page_size = self._params.page_size
        view.rows = list(pages[target].items) if target < len(pages) else []
        view.has_next_page = derive_has_next_page(pages, target)
        view.row_count = derive_row_count(pages)
        view.loading = False
        view.error = None

        if target < len(pages):
            return pages[target]
        return pages[-1] if pages else None

    def _fail(self, index: int, error: Exception) -> None:
        message = getattr(error, "message", None) or str(error) or f"Failed to load {self.name}"
        app_logger.error("walk.failed", screen=self.name, index=index, exc_type=type(error).__name__,
                         error=message, cached_pages=len(self._pages))
        self._view.error = message
        self._view.loading = False
