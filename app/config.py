from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Every.org partners API
    EVERY_ORG_API_KEY: str | None = None
    EVERY_ORG_BASE_URL: str = "https://partners.every.org/v0.2"
    EVERY_ORG_REQUEST_TIMEOUT: float = 10.0
    EVERY_ORG_MAX_RETRIES: int = 3
    EVERY_ORG_RETRY_BACKOFF: float = 1.0  # seconds, doubled per attempt

    # =================================================================
    # CACHE SETTINGS - in-process only, TTLs in seconds
    # =================================================================
    CACHE_MAX_SIZE: int = 1000
    CACHE_RECOMMENDATION_TTL: int = 3600  # 1 hour
    CACHE_SEARCH_TTL: int = 21600  # 6 hours
    CACHE_NONPROFIT_TTL: int = 86400  # 24 hours

    # Pipeline tuning
    MAX_CANDIDATES: int = 200
    SEARCH_TAKE: int = 50
    ENRICHMENT_CONCURRENCY: int = 5
    ENRICHMENT_TOP_N: int = 20
    PROVIDER_TIMEOUT: float = 5.0

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def get_cache_ttls(self) -> dict[str, int]:
        """
        TTL class per cache key prefix.
        Search and browse responses share the medium-lived class.
        """
        return {
            "recommendation": self.CACHE_RECOMMENDATION_TTL,
            "search": self.CACHE_SEARCH_TTL,
            "browse": self.CACHE_SEARCH_TTL,
            "nonprofit": self.CACHE_NONPROFIT_TTL,
        }

    def directory_configured(self) -> bool:
        return bool(self.EVERY_ORG_API_KEY)


settings = Settings()
