from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Opportunity types that only change the author environment. Fix entities for
# these are created DEPLOYED and never move on to PUBLISHED.
AUTHOR_ONLY_OPPORTUNITY_TYPES = (
    "security-permissions-redundant",
    "security-permissions",
)


class Settings(BaseSettings):
    environment: str = "dev"
    log_level: str = "INFO"
    max_concurrent_checks: int = Field(default=5, ge=1)
    author_only_opportunity_types: list[str] = Field(default_factory=lambda: list(AUTHOR_ONLY_OPPORTUNITY_TYPES))
    system_actor: str = "system"
    log_sample_size: int = Field(default=10, ge=1)
    error_detail_limit: int = Field(default=5, ge=1)
    verification_timeout_seconds: float = 10.0
    verification_user_agent: str = "suggestion-sync-verifier/1.0"
    otel_enabled: bool = True
    otel_service_name: str = "suggestion-sync"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0
    otel_log_correlation: bool = True

    model_config = SettingsConfigDict(env_prefix="SUGGESTION_SYNC_", extra="ignore")

    def is_author_only(self, opportunity_type: str | None) -> bool:
        return opportunity_type is not None and opportunity_type in self.author_only_opportunity_types


@lru_cache
def get_settings() -> Settings:
    return Settings()
