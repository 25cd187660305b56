"""Tests for query-string persistence of list screen state."""

import pytest

from cursorgrid.core.exceptions.exceptions import InvalidQueryValueError
from cursorgrid.schemas.pagination import ListParams, SortSpec
from cursorgrid.services.pagination_cache import PaginationCache
from cursorgrid.services.query_sync import (
    NavigationHistory,
    QuerySchema,
    QueryState,
    QueryStringSynchronizer,
)


@pytest.fixture
def schema() -> QuerySchema:
    return QuerySchema(
        default_page_size=20,
        page_size_options=(5, 10, 20, 50),
        sortable_fields=("id", "created_at"),
        filters={"state": ("connected", "failed"), "email": None},
    )


@pytest.fixture
def cache(api) -> PaginationCache:
    return PaginationCache(api, ListParams(page_size=20), name="connections")


@pytest.fixture
def history() -> NavigationHistory:
    return NavigationHistory()


@pytest.fixture
def sync(cache, schema, history) -> QueryStringSynchronizer:
    return QueryStringSynchronizer(cache, schema, history)


# =============================================================================
# QuerySchema
# =============================================================================

class TestQuerySchema:

    def test_decode_full_query(self, schema):
        state = schema.decode({"page": "3", "page_size": "50", "sort": "id desc", "state": "failed"})

        assert state == QueryState(
            page=2,
            page_size=50,
            sort=SortSpec.parse("id desc"),
            filter={"state": "failed"},
        )

    def test_decode_empty_query_gives_defaults(self, schema):
        state = schema.decode({})
        assert state == QueryState(page=0, page_size=20)

    @pytest.mark.parametrize("query", [
        {"page": "0"},
        {"page": "-4"},
        {"page": "two"},
        {"page_size": "7"},
        {"page_size": "lots"},
        {"sort": "email asc"},
        {"sort": "id sideways"},
        {"state": "paused"},
        {"unknown": "value"},
    ])
    def test_decode_falls_back_to_defaults_on_bad_values(self, schema, query):
        assert schema.decode(query) == QueryState(page=0, page_size=20)

    def test_decode_keeps_good_values_next_to_bad_ones(self, schema):
        state = schema.decode({"page": "2", "page_size": "7", "email": "ada@example.com"})
        assert state.page == 1
        assert state.page_size == 20
        assert state.filter == {"email": "ada@example.com"}

    def test_encode_omits_defaults(self, schema):
        assert schema.encode(QueryState(page=0, page_size=20)) == {}

    def test_encode_is_one_based(self, schema):
        query = schema.encode(QueryState(page=1, page_size=50, sort=SortSpec.parse("created_at"),
                                         filter={"state": "connected"}))
        assert query == {"page": "2", "page_size": "50", "sort": "created_at asc", "state": "connected"}

    def test_encoded_query_decodes_to_same_state(self, schema):
        state = QueryState(page=4, page_size=10, sort=SortSpec.parse("id desc"), filter={"email": "x"})
        assert schema.decode(schema.encode(state)) == state

    def test_check_filter_rejects_unknown_keys_and_choices(self, schema):
        with pytest.raises(InvalidQueryValueError):
            schema.check_filter({"color": "red"})
        with pytest.raises(InvalidQueryValueError):
            schema.check_filter({"state": "paused"})
        with pytest.raises(InvalidQueryValueError):
            schema.check_filter({"email": "bad\x00value"})

    def test_check_filter_drops_cleared_values(self, schema):
        assert schema.check_filter({"state": "", "email": None}) == {}

    def test_check_sort(self, schema):
        assert schema.check_sort("") is None
        assert schema.check_sort(None) is None
        assert schema.check_sort("id") == SortSpec.parse("id asc")
        with pytest.raises(InvalidQueryValueError):
            schema.check_sort("email desc")

    def test_check_page_size(self, schema):
        assert schema.check_page_size(10) == 10
        with pytest.raises(InvalidQueryValueError):
            schema.check_page_size(0)


# =============================================================================
# NavigationHistory
# =============================================================================

class TestNavigationHistory:

    def test_initial_query_string(self):
        history = NavigationHistory("?page=2&state=failed")
        assert history.get() == {"page": "2", "state": "failed"}

    def test_push_truncates_forward_entries(self):
        history = NavigationHistory()
        history.push({"page": "2"})
        history.push({"page": "3"})
        assert history.back() is True

        history.push({"page": "5"})

        assert history.entries == ["", "page=2", "page=5"]
        assert history.forward() is False

    def test_navigate_to_current_query_is_noop(self):
        history = NavigationHistory("page=2")
        assert history.navigate("page=2") is False
        assert history.navigate("?page=2") is False
        assert history.entries == ["page=2"]

        assert history.navigate("page=3") is True
        assert history.query_string == "page=3"

    def test_back_and_forward_stop_at_the_ends(self):
        history = NavigationHistory()
        assert history.back() is False
        history.push({"page": "2"})
        assert history.forward() is False
        assert history.back() is True
        assert history.query_string == ""
        assert history.forward() is True
        assert history.query_string == "page=2"


# =============================================================================
# QueryStringSynchronizer
# =============================================================================

class TestSynchronizer:

    def test_default_state_writes_nothing(self, sync, history):
        assert sync.push() is False
        assert history.entries == [""]

    @pytest.mark.asyncio
    async def test_outbound_writes_once_per_change(self, sync, cache, history):
        await cache.fetch_page(2)

        assert sync.push() is True
        assert history.query_string == "page=3"
        assert sync.push() is False
        assert len(history.entries) == 2

    @pytest.mark.asyncio
    async def test_page_only_change_keeps_the_cache(self, sync, cache, history, api):
        await cache.fetch_page(0)
        history.navigate("page=2")

        assert await sync.pull() is True

        assert cache.generation == 0
        assert cache.view.target_page == 1
        assert api.calls == 2

    @pytest.mark.asyncio
    async def test_param_change_resets_then_fetches_page(self, sync, cache, history, api):
        await cache.fetch_page(1)
        history.navigate("state=failed&page_size=5&page=2")

        await sync.pull()

        assert cache.generation == 1
        assert cache.params == ListParams(filter={"state": "failed"}, page_size=5)
        assert api.queries[2] == {"state": "failed", "limit": 5}
        assert [r.id for r in cache.view.rows] == [15, 18, 21, 24, 27]

    @pytest.mark.asyncio
    async def test_unchanged_query_does_nothing(self, sync, cache, api):
        await cache.fetch_page(0)
        assert await sync.pull() is False
        assert api.calls == 1

    @pytest.mark.asyncio
    async def test_forced_pull_loads_first_page(self, sync, cache, api):
        assert await sync.pull(force=True) is True
        assert api.calls == 1
        assert len(cache.view.rows) == 20

    @pytest.mark.asyncio
    async def test_inbound_then_outbound_does_not_loop(self, sync, history):
        history.navigate("page=2&state=connected")
        await sync.pull()

        assert sync.push() is False
        assert history.entries == ["", "page=2&state=connected"]

    @pytest.mark.asyncio
    async def test_unchanged_query_retries_after_failure(self, sync, cache, api):
        api.failures = 1
        await cache.fetch_page(0)
        assert cache.view.error is not None

        assert await sync.pull() is True

        assert api.calls == 2
        assert cache.view.error is None
        assert len(cache.pages) == 1

    @pytest.mark.asyncio
    async def test_unchanged_query_past_the_end_fetches_nothing(self, sync, cache, history, api):
        await cache.fetch_page(5)
        history.navigate("page=6")
        calls = api.calls

        assert await sync.pull() is False
        assert api.calls == calls

    @pytest.mark.asyncio
    async def test_bad_persisted_values_load_defaults(self, sync, cache, history, api):
        history.navigate("page=zero&page_size=3&sort=nope")

        await sync.pull(force=True)

        assert cache.params == ListParams(page_size=20)
        assert cache.view.target_page == 0
        assert api.calls == 1
