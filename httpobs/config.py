import logging
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    client_observation_name: str = Field(default="http.client.requests", alias="CLIENT_OBSERVATION_NAME")
    server_observation_name: str = Field(default="http.server.requests", alias="SERVER_OBSERVATION_NAME")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    enable_metrics_endpoint: bool = Field(default=True, alias="ENABLE_METRICS_ENDPOINT")
    # pydantic-settings parses list fields from JSON, e.g. '["/metrics"]'
    metrics_excluded_paths: list[str] = Field(
        default_factory=lambda: ["/api/metrics", "/metrics"],
        alias="METRICS_EXCLUDED_PATHS",
    )

    @property
    def log_level_number(self) -> int:
        level = logging.getLevelName(self.log_level.upper())
        return level if isinstance(level, int) else logging.INFO


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
