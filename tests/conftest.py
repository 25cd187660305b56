"""Shared fixtures: an in-memory cursor-paginated list API."""

import asyncio
from typing import Dict, List, Optional
from unittest.mock import Mock

import pytest
from pydantic import BaseModel

from cursorgrid.core.exceptions.exceptions import ExternalAPIError
from cursorgrid.schemas.pagination import ListParams, PageRequest, ServerPage
from cursorgrid.services.list_sources import ListSource


class Row(BaseModel):
    id: int
    state: str = "connected"


ROW_SOURCE = ListSource(
    name="connections",
    path="/api/v1/connections",
    row_model=Row,
    filters={"state": ("connected", "failed")},
    sortable_fields=("id", "created_at"),
)


class FakeListAPI:
    """Serves `rows` the way the real list endpoints do.

    The cursor is `<offset>|<limit>|<state>|<order_by>`; it alone determines the next
    page, so a continuation request carrying any other parameter fails.
    `hold` (an asyncio.Event) parks every async call until set; `failures`
    makes the next N calls raise.
    """

    def __init__(self, rows: List[Row]):
        self.rows = rows
        self.queries: List[Dict] = []
        self.requests: List[PageRequest] = []
        self.hold: Optional[asyncio.Event] = None
        self.failures = 0

    def serve(self, path: str, query: Dict, row_model=Row) -> ServerPage:
        self.queries.append(dict(query))
        if self.failures:
            self.failures -= 1
            raise ExternalAPIError("authproxy", "failed to fetch page of results from server (HTTP 500)",
                                   status_code=500)

        if "cursor" in query:
            assert set(query) == {"cursor"}, f"continuation resent params: {query}"
            offset, limit, state, order = query["cursor"].split("|")
            offset, limit = int(offset), int(limit)
        else:
            offset, limit = 0, int(query["limit"])
            state, order = query.get("state", ""), query.get("order_by", "")

        matching = [r for r in self.rows if not state or r.state == state]
        if order == "id desc":
            matching = list(reversed(matching))
        items = matching[offset:offset + limit]
        nxt = offset + limit
        cursor = f"{nxt}|{limit}|{state}|{order}" if nxt < len(matching) else ""
        return ServerPage[Row](items=items, cursor=cursor)

    async def __call__(self, request: PageRequest) -> ServerPage:
        self.requests.append(request)
        if self.hold is not None:
            await self.hold.wait()
        return self.serve("/api/v1/connections", request.to_query())

    @property
    def calls(self) -> int:
        return len(self.queries)


class ScriptedFetch:
    """Returns fixed pages keyed by the cursor sent (None for the first page)."""

    def __init__(self, pages: Dict[Optional[str], ServerPage]):
        self.pages = pages
        self.requests: List[PageRequest] = []

    async def __call__(self, request: PageRequest) -> ServerPage:
        self.requests.append(request)
        return self.pages[request.cursor]


def make_rows(count: int, failed_every: int = 0) -> List[Row]:
    rows = []
    for i in range(count):
        state = "failed" if failed_every and i % failed_every == 0 else "connected"
        rows.append(Row(id=i, state=state))
    return rows


@pytest.fixture
def rows() -> List[Row]:
    return make_rows(45, failed_every=3)


@pytest.fixture
def api(rows) -> FakeListAPI:
    return FakeListAPI(rows)


@pytest.fixture
def params() -> ListParams:
    return ListParams(page_size=20)


@pytest.fixture
def fake_client(api) -> Mock:
    """Stands in for AuthProxyClient; list_page is served by the fake API."""
    client = Mock()
    client.list_page = Mock(side_effect=api.serve)
    return client


async def settle(rounds: int = 5) -> None:
    """Let pending tasks run up to their next suspension point."""
    for _ in range(rounds):
        await asyncio.sleep(0)
