from pathlib import Path
from typing import List

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Search engine
    elasticsearch_url: AnyHttpUrl = "http://localhost:9200"
    index_name: str = "rspamd-docs"

    # Content sources
    site_url: AnyHttpUrl = "http://localhost:3000"
    docs_path: Path = Path("../docs")

    # Scheduler (seconds)
    reindex_interval: int = Field(default=3600, ge=1)
    initial_delay: int = Field(default=60, ge=0)

    # Rendered-page crawler navigation timeout (seconds)
    render_timeout: float = 30.0

    # Gateway
    host: str = "0.0.0.0"
    port: int = 3001
    search_timeout: float = 5.0
    status_timeout: float = 3.0
    max_body_bytes: int = 1024 * 1024

    search_rate_limit: str = "30/minute"
    status_rate_limit: str = "10/minute"
    slowdown_window: float = 60.0
    slowdown_after: int = 10
    slowdown_step_ms: int = 100
    slowdown_max_ms: int = 2000
    trust_proxy_headers: bool = False

    cors_origins: List[str] = [
        "http://localhost:3000",
        "https://docs.rspamd.com",
    ]
    cors_origin_regex: str = r"^https://(.*\.rspamd\.com|rspamd\.github\.io)$"

    # Changelog artifacts
    changelogs_dir: Path = Path("changelogs")
    changelog_data_path: Path = Path("src/data/changelogData.js")
    changelog_rss_path: Path = Path("static/rss/changelog.xml")
    changelog_rss_limit: int = 20
    feed_site_url: str = "https://rspamd.com"
    product_name: str = "Rspamd"

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

    @property
    def engine_url(self) -> str:
        return str(self.elasticsearch_url).rstrip("/")

    @property
    def site_base_url(self) -> str:
        return str(self.site_url).rstrip("/")


settings = Settings()
