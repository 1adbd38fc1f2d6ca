"""
Configuration settings for the Entscheidsuche service
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Service
    service_name: str = "entscheidsuche-service"
    service_version: str = "1.0.0"
    log_level: str = "INFO"

    # entscheidsuche.ch
    base_url: str = "https://entscheidsuche.ch"
    search_url: str = "https://entscheidsuche.ch/_search.php"
    elastic_url: str = Field(
        default="https://entscheidsuche.pansoft.de:9200/entscheidsuche-*/_search",
        description="Direct Elasticsearch endpoint (used when search_dialect=elasticsearch)",
    )
    search_dialect: str = Field(
        default="fulltext",
        description="Upstream search dialect: fulltext (_search.php) or elasticsearch",
    )

    # Outbound HTTP
    request_delay_ms: int = 500  # minimum spacing between upstream requests
    http_timeout: float = 30.0

    # Search
    default_page_size: int = 10
    max_page_size: int = 50

    # Document bodies returned to callers are cut to this length
    max_content_chars: int = 5000

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_reload: bool = False

    @property
    def docs_base_url(self) -> str:
        """Root of the upstream document store"""
        return f"{self.base_url.rstrip('/')}/docs"

    @property
    def status_url(self) -> str:
        """Scraper status page (HTML)"""
        return f"{self.base_url.rstrip('/')}/status"


# Global settings instance
settings = Settings()
