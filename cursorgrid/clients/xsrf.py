from typing import Iterable, Mapping, Optional

from cursorgrid.utils.log import app_logger

XSRF_HEADER = 'X-XSRF-TOKEN'


class XsrfTokenStore:
    """Holds the XSRF token captured from API responses.

    One store is created per client and injected into it; nothing reads or
    writes the token through module globals.
    """

    def __init__(self, exclude_paths: Optional[Iterable[str]] = None, token: Optional[str] = None):
        self._token = token
        self.exclude_paths = set(exclude_paths or ())

    def get(self) -> Optional[str]:
        return self._token

    def set(self, token: Optional[str]) -> None:
        self._token = token or None

    def should_send(self, path: str) -> bool:
        """Exact path match against the exclusion set."""
        return self._token is not None and path not in self.exclude_paths

    def capture(self, headers: Optional[Mapping[str, str]]) -> None:
        """Replace the stored token with one found in response headers, if any."""
        if not headers:
            return
        # requests' CaseInsensitiveDict handles any casing; plain dicts need both
        token = headers.get(XSRF_HEADER) or headers.get(XSRF_HEADER.lower())
        if token and token != self._token:
            app_logger.debug("xsrf.captured")
            self._token = token
