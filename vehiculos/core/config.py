from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Vehiculos Usados API"
    app_version: str = "1.0.0"
    env: str = "dev"
    api_version: str = "v1"
    log_level: str = "INFO"
    database_url: str = Field(default="sqlite:///./vehiculos.db")
    redis_url: str = Field(default="redis://localhost:6379/0")
    cache_enabled: bool = True
    cache_schema_version: str = "1"
    vehicle_cache_ttl_seconds: int = 300
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000", "http://localhost:3001"])
    seed_on_startup: bool = False

    jwt_secret: str = "dev-jwt-secret"
    jwt_refresh_secret: str = "dev-jwt-refresh-secret"
    access_token_minutes: int = 15
    refresh_token_days: int = 7

    aws_region: str = "us-east-1"
    aws_s3_bucket: str | None = None
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None

    price_feed_prefix: str = "price-updates/"
    price_feed_extension: str = ".csv"
    price_feed_id_column: str = "vehicle_id"
    price_feed_price_column: str = "new_price"
    price_feed_local_filename: str = "price-updates.csv"
    price_feed_interval_seconds: int = 60
    data_dir: Path = Path("./data")
    scheduler_enabled: bool = True

    model_config = SettingsConfigDict(env_file=".env", env_prefix="VEHICULOS_")

    @property
    def api_prefix(self) -> str:
        return f"/api/{self.api_version}"

    @property
    def price_feed_local_path(self) -> Path:
        return self.data_dir / self.price_feed_local_filename


@lru_cache
def get_settings() -> Settings:
    return Settings()
