from typing import Any, Dict, Optional, Type, TypeVar

import requests
from pydantic import ValidationError

from cursorgrid.clients.base_http_client import BaseHTTPClient
from cursorgrid.clients.xsrf import XsrfTokenStore
from cursorgrid.config.settings import settings
from cursorgrid.core.exceptions.exceptions import ExternalAPIError
from cursorgrid.schemas.pagination import ServerPage
from cursorgrid.utils.log import app_logger

T = TypeVar("T")

SERVICE_NAME = "authproxy"


class AuthProxyClient(BaseHTTPClient):
    """Client for the cursor-paginated list endpoints of the API.

    Every list endpoint answers `GET <path>` with `{items, cursor?}`; anything
    other than HTTP 200 is a failed page.
    """

    def __init__(self, base_url: Optional[str] = None, xsrf: Optional[XsrfTokenStore] = None,
                 timeout: Optional[int] = None, max_retries: Optional[int] = None):
        super().__init__(
            base_url=base_url or settings.API_BASE_URL,
            xsrf=xsrf if xsrf is not None else XsrfTokenStore(settings.XSRF_EXCLUDE_PATHS),
            timeout=timeout if timeout is not None else settings.API_TIMEOUT,
            max_retries=max_retries if max_retries is not None else settings.API_MAX_RETRIES,
            retry_delay=settings.API_RETRY_DELAY,
        )

    def list_page(self, path: str, params: Dict[str, Any], row_model: Type[T]) -> ServerPage[T]:
        try:
            response = self.get(endpoint=path, params=params)
        except requests.exceptions.RequestException as e:
            raise ExternalAPIError(SERVICE_NAME, f"{type(e).__name__} while listing {path}") from e

        if response.status_code != 200:
            app_logger.warning("list.bad_status", path=path, status_code=response.status_code)
            raise ExternalAPIError(
                SERVICE_NAME,
                f"failed to fetch page of results from server (HTTP {response.status_code})",
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise ExternalAPIError(SERVICE_NAME, f"invalid JSON in list response for {path}") from e

        try:
            page = ServerPage[row_model].model_validate(body)
        except ValidationError as e:
            app_logger.error("list.invalid_body", path=path, errors=e.error_count())
            raise ExternalAPIError(SERVICE_NAME, f"unexpected list response shape for {path}") from e

        app_logger.debug("list.page", path=path, items=len(page.items), has_cursor=page.cursor is not None)
        return page
