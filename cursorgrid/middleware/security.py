import re

from validators import url as validate_url
from validators.utils import ValidationError


class Security:
    """Input validator for configuration and user supplied grid parameters.

    Behavior:
    - `is_valid_base_url` accepts absolute http(s) URLs, including simple hosts
      such as `localhost` and explicit ports, and rejects credentials in the URL.
    - `is_safe_filter_value` accepts short free-text filter values without
      control characters; they are forwarded verbatim as query parameters.
    """

    MAX_FILTER_VALUE_LEN = 256
    _CONTROL_CHARS = re.compile(r'[\x00-\x1f\x7f]')

    def is_valid_base_url(self, base_url: str) -> bool:
        if not base_url or not isinstance(base_url, str):
            return False

        raw = base_url.strip()
        if not raw.lower().startswith(('http://', 'https://')):
            return False

        # Reject credentials (user:pass@host), they would leak into logs
        if '@' in raw:
            return False

        try:
            return validate_url(raw, simple_host=True) is True
        except (ValidationError, UnicodeError):
            return False

    def is_safe_filter_value(self, value: str) -> bool:
        if not isinstance(value, str):
            return False
        if len(value) > self.MAX_FILTER_VALUE_LEN:
            return False
        return not self._CONTROL_CHARS.search(value)
