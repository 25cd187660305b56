# clients/base_http_client.py
import requests
import time
import re

from typing import Dict, Optional
from urllib.parse import urljoin, urlsplit
from abc import ABC
from cursorgrid.clients.xsrf import XsrfTokenStore, XSRF_HEADER
from cursorgrid.core.exceptions.exceptions import ConfigurationError
from cursorgrid.middleware.security import Security
from cursorgrid.utils.log import app_logger

class BaseHTTPClient(ABC):
    """Base HTTP client with default headers, XSRF handling, retries and error logging"""

    USER_AGENT = "cursorgrid/0.1 (+requests)"

    def __init__(self,
                 base_url: str,
                 xsrf: Optional[XsrfTokenStore] = None,
                 timeout: int = 30, max_retries: int = 3,
                 retry_delay: float = 1.5,
                 content_type: Optional[str] = 'application/json',
                 accept: Optional[str] = 'application/json'
                 ):
        if not Security().is_valid_base_url(base_url):
            raise ConfigurationError(f"invalid API base URL: {base_url!r}")

        self.base_url = base_url.rstrip('/')
        self.xsrf = xsrf if xsrf is not None else XsrfTokenStore()
        self.timeout = timeout
        self.content_type = content_type
        self.accept = accept
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.session = requests.Session()

        # setup default headers
        self._setup_default_headers()

    def _setup_default_headers(self):
        """setup default headers for the client"""
        self.session.headers.update({
            'User-Agent': self.USER_AGENT,
            'Accept': self.accept,
            'Content-Type': self.content_type,
        })

    def _build_url(self, endpoint: str) -> str:
        """build full URL"""
        return urljoin(f"{self.base_url}/", endpoint.lstrip('/'))

    @staticmethod
    def _request_path(endpoint: str) -> str:
        return '/' + urlsplit(endpoint).path.lstrip('/')

    def _make_request(self, method: str, endpoint: str,
                     params: Optional[Dict] = None,
                     headers: Optional[Dict] = None) -> requests.Response:
        """do HTTP request with retries, returns the raw response whatever its status"""
        url = self._build_url(endpoint)
        request_headers = dict(headers or {})

        for attempt in range(self.max_retries + 1):
            token = self.xsrf.get()
            if self.xsrf.should_send(self._request_path(endpoint)):
                request_headers[XSRF_HEADER] = token
            else:
                request_headers.pop(XSRF_HEADER, None)

            try:
                response = self.session.request(
                    method=method,
                    url=url,
                    params=params,
                    headers=request_headers,
                    timeout=self.timeout
                )
            except requests.exceptions.RequestException as e:
                # sanitize message to remove memory addresses like <HTTPConnection(...) at 0x...>
                raw = str(e)
                sanitized = re.sub(r'0x[0-9a-fA-F]+', '<ptr>', raw)
                exc_type = type(e).__name__
                app_logger.error("request.failed", method=method, url=url, attempt=attempt + 1, exc_type=exc_type, error=sanitized)

                if attempt == self.max_retries:
                    raise

                # exponential backoff
                wait_time = self.retry_delay * (2 ** attempt)
                time.sleep(wait_time)
                continue

            # error responses may rotate the token as well
            self.xsrf.capture(response.headers)

            # check rate limiting
            if response.status_code == 429 and attempt < self.max_retries:
                retry_after = int(response.headers.get('Retry-After', 60))
                app_logger.warning("request.rate_limited", url=url, attempt=attempt + 1, wait=retry_after)
                time.sleep(retry_after)
                continue

            if response.status_code >= 400:
                app_logger.debug("request.status", method=method, url=url, status_code=response.status_code)

            return response

        raise RuntimeError(f"Failed to make request after {self.max_retries} attempts")

    def get(self, endpoint: str, params: Optional[Dict] = None,
            headers: Optional[Dict] = None) -> requests.Response:
        """do GET request"""
        return self._make_request('GET', endpoint, params=params, headers=headers)

    def close(self):
        """close HTTP session"""
        self.session.close()
