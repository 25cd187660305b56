from pydantic_settings import BaseSettings
from dotenv import load_dotenv, find_dotenv
from typing import List

_env_path = find_dotenv(usecwd=True)  # locate a .env file in the cwd or parent folders
if _env_path:
    load_dotenv(_env_path)


class Settings(BaseSettings):
    # Upstream list API
    API_BASE_URL: str = 'http://localhost:8080'
    API_TIMEOUT: int = 10
    API_MAX_RETRIES: int = 0
    API_RETRY_DELAY: float = 1.5

    # Paths that never receive the X-XSRF-TOKEN header
    XSRF_EXCLUDE_PATHS: List[str] = ['/api/v1/session/_initiate']

    # Grid defaults
    DEFAULT_PAGE_SIZE: int = 20
    PAGE_SIZE_OPTIONS: List[int] = [2, 5, 10, 20, 50, 100]

    LOG_LEVEL: str = 'INFO'


settings = Settings()
