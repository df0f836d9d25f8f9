from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_env: str = "development"
    app_debug: bool = False
    app_host: str = "0.0.0.0"
    app_port: int = 8000

    # Database: PostgreSQL (primary) or SQLite (local dev fallback)
    database_url: str = ""
    use_sqlite: bool = True  # Set False to use the POSTGRES_* settings below

    # PostgreSQL settings (only used if database_url not set and use_sqlite=False)
    postgres_user: str = "eurohazard"
    postgres_password: str = ""
    postgres_db: str = "eurohazard"
    db_host: str = "localhost"
    db_port: int = 5432

    @property
    def effective_database_url(self) -> str:
        """Return the async database URL to use."""
        if self.database_url:
            url = self.database_url
            if url.startswith("sqlite"):
                return url
            # Convert postgres:// to postgresql+asyncpg://
            if url.startswith("postgres://"):
                url = "postgresql+asyncpg://" + url[len("postgres://"):]
            elif url.startswith("postgresql://"):
                url = "postgresql+asyncpg://" + url[len("postgresql://"):]
            elif not url.startswith("postgresql+asyncpg://"):
                url = "postgresql+asyncpg://" + url
            return url
        if self.use_sqlite:
            db_path = Path(__file__).parent.parent / "data" / "eurohazard.db"
            db_path.parent.mkdir(parents=True, exist_ok=True)
            return f"sqlite+aiosqlite:///{db_path}"
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.db_host}:{self.db_port}/{self.postgres_db}"
        )

    @property
    def is_sqlite(self) -> bool:
        return self.effective_database_url.startswith("sqlite")

    # CORS: allowed origins (comma-separated)
    cors_origins: str = "http://localhost:3002,http://localhost:3001"

    # Upstream feeds
    usgs_base_url: str = "https://earthquake.usgs.gov"
    usgs_feed_path: str = "/earthquakes/feed/v1.0/summary/all_day.geojson"
    usgs_timeout: float = 10.0

    eonet_base_url: str = "https://eonet.gsfc.nasa.gov"
    eonet_timeout: float = 15.0
    eonet_limit: int = 30
    eonet_days: int = 30

    openweather_base_url: str = "https://api.openweathermap.org"
    openweather_api_key: str = ""
    openweather_timeout: float = 5.0

    # Connection-level retries inside a single fetch (status errors never retried)
    http_max_attempts: int = 2

    # Scheduler (seconds between runs of each task)
    scheduler_enabled: bool = True
    seismic_interval_seconds: float = 300.0
    natural_event_interval_seconds: float = 600.0
    weather_interval_seconds: float = 1800.0
    risk_interval_seconds: float = 3600.0
    reaper_interval_seconds: float = 1800.0

    # Area of interest (Europe)
    aoi_min_lat: float = 35.0
    aoi_max_lat: float = 70.0
    aoi_min_lon: float = -10.0
    aoi_max_lon: float = 40.0

    # Ingestion
    seismic_min_magnitude: float = 2.5
    dedup_window_minutes: float = 30.0
    weather_retention_hours: float = 2.0

    # Risk model
    risk_history_limit: int = 100
    high_risk_threshold: float = 70.0
    risk_squash_center: float = 40.0
    risk_squash_slope: float = 15.0
    risk_score_ceiling: float = 80.0
    baseline_confidence: float = 0.3

    # Broadcast
    broadcast_queue_size: int = 100

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def validate_production(self) -> list[str]:
        """Check critical env vars for production. Returns list of warnings."""
        warnings = []
        if self.app_env == "production":
            if self.is_sqlite:
                warnings.append("DATABASE_URL (or USE_SQLITE=false with POSTGRES_*) is required in production")
            if not self.openweather_api_key:
                warnings.append("OPENWEATHER_API_KEY recommended, weather alerts are disabled without it")
            if self.app_debug:
                warnings.append("APP_DEBUG should be off in production")
        return warnings


settings = Settings()
