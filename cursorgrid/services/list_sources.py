import asyncio
from urllib.parse import quote
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Sequence, Type

from pydantic import BaseModel

from cursorgrid.clients.authproxy_client import AuthProxyClient
from cursorgrid.core.exceptions.exceptions import InvalidQueryValueError
from cursorgrid.schemas.entities import (
    Actor,
    Connection,
    ConnectionState,
    Connector,
    ConnectorVersionState,
    MonitoringTaskInfo,
    MonitoringTaskState,
    RequestEntryRecord,
    RequestType,
)
from cursorgrid.schemas.pagination import PageRequest, ServerPage
from cursorgrid.services.pagination_cache import FetchPage
from cursorgrid.services.query_sync import QuerySchema
from cursorgrid.utils.log import app_logger

BOOLEAN_CHOICES = ("true", "false")


def _values(enum_cls) -> Sequence[str]:
    return tuple(member.value for member in enum_cls)


@dataclass(frozen=True)
class ListSource:
    """One list endpoint: where it lives, its row type, filters and sortable columns.

    Filters named in `path_params` are substituted into `path` (falling back
    to `path_defaults`) and never sent as query parameters.
    """

    name: str
    path: str
    row_model: Type[BaseModel]
    filters: Mapping[str, Optional[Sequence[str]]] = field(default_factory=dict)
    sortable_fields: Sequence[str] = ()
    path_params: Sequence[str] = ()
    path_defaults: Mapping[str, str] = field(default_factory=dict)

    def query_schema(self, default_page_size: int, page_size_options: Sequence[int]) -> QuerySchema:
        return QuerySchema(
            default_page_size=default_page_size,
            page_size_options=tuple(page_size_options),
            sortable_fields=tuple(self.sortable_fields),
            filters=dict(self.filters),
        )

    def build_path(self, request: PageRequest) -> str:
        if not self.path_params:
            return self.path
        values: Dict[str, str] = {**self.path_defaults, **request.params.filter}
        missing = [key for key in self.path_params if not values.get(key)]
        if missing:
            raise InvalidQueryValueError(missing[0], None)
        return self.path.format(**{key: quote(values[key], safe="") for key in self.path_params})

    def build_query(self, request: PageRequest) -> Dict[str, object]:
        return request.to_query(exclude_filters=self.path_params)

    def fetcher(self, client: AuthProxyClient) -> FetchPage:
        """Adapt the blocking client call to the cache's async fetch contract."""

        async def fetch(request: PageRequest) -> ServerPage:
            path = self.build_path(request)
            query = self.build_query(request)
            app_logger.debug("source.fetch", source=self.name, path=path, first_page=request.is_first_page)
            return await asyncio.to_thread(client.list_page, path, query, self.row_model)

        return fetch


ACTORS = ListSource(
    name="actors",
    path="/api/v1/actors",
    row_model=Actor,
    filters={
        "external_id": None,
        "email": None,
        "admin": BOOLEAN_CHOICES,
        "super_admin": BOOLEAN_CHOICES,
    },
    sortable_fields=("id", "external_id", "email", "admin", "super_admin", "created_at", "updated_at"),
)

CONNECTORS = ListSource(
    name="connectors",
    path="/api/v1/connectors",
    row_model=Connector,
    filters={"state": _values(ConnectorVersionState), "type": None},
    sortable_fields=("id", "type", "display_name", "created_at", "updated_at"),
)

CONNECTIONS = ListSource(
    name="connections",
    path="/api/v1/connections",
    row_model=Connection,
    filters={"state": _values(ConnectionState)},
    sortable_fields=("id", "state", "created_at", "updated_at"),
)

REQUESTS = ListSource(
    name="requests",
    path="/api/v1/request-log",
    row_model=RequestEntryRecord,
    filters={"type": _values(RequestType)},
    sortable_fields=("timestamp", "duration", "method", "host", "path", "response_status_code"),
)

TASKS = ListSource(
    name="tasks",
    path="/api/v1/task-monitoring/queues/{queue}/tasks/{state}",
    row_model=MonitoringTaskInfo,
    filters={"queue": None, "state": _values(MonitoringTaskState)},
    path_params=("queue", "state"),
    path_defaults={"state": MonitoringTaskState.PENDING.value},
)

LIST_SOURCES: Dict[str, ListSource] = {
    source.name: source for source in (ACTORS, CONNECTORS, CONNECTIONS, REQUESTS, TASKS)
}
