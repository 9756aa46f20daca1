from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # --- Runtime ---
    ENV: str = "dev"  # dev|prod
    DB_URL: str = "sqlite+aiosqlite:///./sellerscore.db"
    LOG_LEVEL: str = "INFO"

    # Send: X-API-Key: <key>
    API_KEY: str | None = None

    # --- Property / market data provider (RentCast contract) ---
    RENTCAST_API_KEY: str | None = None
    RENTCAST_BASE_URL: str = "https://api.rentcast.io/v1"

    # --- Permit provider (Shovels contract) ---
    SHOVELS_API_KEY: str | None = None
    SHOVELS_BASE_URL: str = "https://api.shovels.ai/v2"
    PERMIT_LOOKBACK_YEARS: int = 3

    # --- AI adjustment collaborator ---
    # Unset URL => in-process heuristic adjuster is used instead.
    AI_ADJUSTER_URL: str | None = None
    AI_ADJUSTER_API_KEY: str | None = None
    IQ_TIMEOUT_S: float = 10.0
    IQ_ADJUSTMENT_CAP: int = 15
    IQ_MAX_ADJUSTMENTS: int = 8

    # --- Signal cache ---
    SIGNAL_CACHE_TTL_S: int = 3600

    # --- Batch scoring ---
    BATCH_CONCURRENCY: int = 5

    # --- Outbound HTTP resilience ---
    HTTP_TIMEOUT_S: float = 20.0
    HTTP_MAX_RETRIES: int = 2
    HTTP_BACKOFF_BASE_S: float = 0.5
    HTTP_RATE_LIMIT_RPS: float = 0.0  # 0 disables the limiter
    HTTP_CIRCUIT_FAIL_THRESHOLD: int = 5
    HTTP_CIRCUIT_RESET_S: float = 60.0

    # --- Scheduler tuning ---
    SCHED_CACHE_PURGE_INTERVAL_MINUTES: int = 60


settings = Settings()
