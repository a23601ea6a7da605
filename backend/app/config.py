from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    data_path: Path = Path.home() / "JobSearchCache"
    # Upstream provider. A missing key is reported per request, not at startup.
    serp_api_key: str | None = None
    serp_api_url: str = "https://serpapi.com/search"
    serp_country: str = "us"
    serp_language: str = "en"
    cache_ttl_hours: int = 24
    upstream_max_pages: int = 5
    upstream_page_size: int = 10
    upstream_page_delay_seconds: float = 0.2
    upstream_timeout_seconds: float = 15.0
    api_prefix: str = "/api/v1"
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"

    @property
    def db_path(self) -> Path:
        return self.data_path / "jobsearch.sqlite"

    model_config = {"env_prefix": "JOBSEARCH_"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
