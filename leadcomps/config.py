from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # --- Runtime ---
    ENV: str = "dev"  # dev|test|prod
    LEADCOMPS_DB_URL: str = "sqlite+aiosqlite:///./leadcomps.db"
    LOG_LEVEL: str = "INFO"

    # --- Comparables provider ---
    # propertydata | stub_json
    COMPARABLES_SOURCE: str = "propertydata"
    PROPERTYDATA_API_KEY: str | None = None
    PROPERTYDATA_BASE_URL: str = "https://api.propertydata.co.uk"

    # Offline fixtures: <dir>/<OUTCODE>.json
    STUB_COMPARABLES_DIR: str = "data/stub_comparables"

    # --- Comparables search defaults (per-owner config overrides these) ---
    COMPS_FRESHNESS_HOURS: int = 24
    COMPS_DEFAULT_RADIUS_MILES: float = 3.0
    COMPS_DEFAULT_MAX_RESULTS: int = 20
    COMPS_DEFAULT_MAX_AGE_MONTHS: int = 12

    # --- Outbound HTTP resilience ---
    HTTP_TIMEOUT_S: float = 20.0
    HTTP_MAX_RETRIES: int = 2
    HTTP_BACKOFF_BASE_S: float = 0.5
    HTTP_RATE_LIMIT_RPS: float = 2.0  # 0 disables
    HTTP_CIRCUIT_FAIL_THRESHOLD: int = 5
    HTTP_CIRCUIT_RESET_S: float = 60.0


settings = Settings()
