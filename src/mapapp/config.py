"""Configuration management using Pydantic settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Criteria Map"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Annotation archive (path or http(s) URL), loaded once at startup.
    # Empty string disables ingestion.
    annotation_source: str = "data/annotations.kmz"

    # Criteria catalog: transport, land use, cadastral and buildings
    include_extended_criteria: bool = True

    # Legend requests
    legend_fetch_timeout: float = 5.0   # seconds per GetLegendGraphic candidate
    legend_min_pixels: int = 5          # smaller images are placeholders

    # Outbound HTTP
    user_agent: str = "criteria-map/0.1.0"


settings = Settings()
