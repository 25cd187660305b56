class AppError(Exception):
    """Base class for all application-level errors."""
    pass


class DomainError(AppError):
    """Base for pagination and query-state errors."""
    pass

class InvalidPageError(DomainError):
    def __init__(self, page) -> None:
        self.page = page
        self.message = f"Invalid page index: {page}"
        super().__init__(self.message)

class InvalidQueryValueError(DomainError):
    def __init__(self, key: str, value) -> None:
        self.key = key
        self.value = value
        self.message = f"Invalid value for '{key}': {value!r}"
        super().__init__(self.message)

class UnknownScreenError(DomainError):
    def __init__(self, name: str):
        self.name = name
        self.message = f"Unknown list screen '{name}'"
        super().__init__(self.message)



class InfrastructureError(AppError):
    """Base for infrastructure-related errors (config, upstream API)."""
    pass

class ConfigurationError(InfrastructureError):
    def __init__(self, detail: str):
        self.message = f"Invalid configuration: {detail}"
        super().__init__(self.message)

class ExternalAPIError(InfrastructureError):
    def __init__(self, service: str, detail: str = "", status_code=None):
        self.service = service
        self.status_code = status_code
        self.message = f"Error with external service '{service}': {detail}"
        super().__init__(self.message)
