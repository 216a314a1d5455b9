from typing import Any

from pydantic import PostgresDsn, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "cardano-gov-tracker"

    # Database
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "governance"
    SQLALCHEMY_DATABASE_URI: PostgresDsn | None = None

    @field_validator("SQLALCHEMY_DATABASE_URI", mode="before")
    def assemble_db_connection(cls, v: str | None, info: Any) -> Any:
        if isinstance(v, str):
            return v
        return PostgresDsn.build(
            scheme="postgresql+asyncpg",
            username=info.data.get("POSTGRES_USER"),
            password=info.data.get("POSTGRES_PASSWORD"),
            host=info.data.get("POSTGRES_HOST"),
            port=info.data.get("POSTGRES_PORT"),
            path=f"{info.data.get('POSTGRES_DB') or ''}",
        )

    # Redis (Celery broker and result backend)
    REDIS_HOST: str = "localhost"
    REDIS_PORT: str = "6379"
    REDIS_PASSWORD: str = ""
    REDIS_URL: str | None = None

    @field_validator("REDIS_URL", mode="before")
    def assemble_redis_connection(cls, v: str | None, info: Any) -> Any:
        if isinstance(v, str):
            return v
        password = f":{info.data.get('REDIS_PASSWORD')}@" if info.data.get("REDIS_PASSWORD") else ""
        return f"redis://{password}{info.data.get('REDIS_HOST')}:{info.data.get('REDIS_PORT')}/0"

    # Koios ledger index
    KOIOS_BASE_URL: str = "https://api.koios.rest/api/v1"
    KOIOS_API_KEY: str | None = None
    KOIOS_TIMEOUT: float = 30.0
    KOIOS_PAGE_SIZE: int = 1000
    # POST bodies to /drep_info and /pool_info are capped by the service
    KOIOS_INFO_BATCH_SIZE: int = 50
    KOIOS_MAX_RETRIES: int = 5
    KOIOS_RETRY_BASE_DELAY: float = 3.0
    KOIOS_RETRY_MAX_DELAY: float = 30.0

    # Off-chain metadata documents
    IPFS_GATEWAY_URL: str = "https://ipfs.io/ipfs/"
    METADATA_FETCH_TIMEOUT: float = 10.0

    # Scheduled jobs
    ENABLE_CRON_JOBS: bool = True
    PROPOSAL_SYNC_INTERVAL_SECONDS: int = 900
    VOTER_POWER_SYNC_INTERVAL_SECONDS: int = 21600

    # Sync-on-read
    OVERVIEW_SYNC_COOLDOWN_SECONDS: float = 60.0
    PROPOSAL_SYNC_COOLDOWN_SECONDS: float = 30.0

    # Constitutional Committee
    CC_SEAT_COUNT: int = 7

    # Test Database - SQLite in-memory for tests
    TEST_DATABASE_URL: str = "sqlite+aiosqlite:///:memory:"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="allow",
    )


settings = Settings()
