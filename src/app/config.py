"""Configuration management using Pydantic settings."""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from mapcore.layers.ingest import PREDEFINED_COLORS
from mapcore.layers.layer import normalize_color


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "GIS app 4 u"
    debug: bool = False
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Map client defaults (center is lng/lat)
    map_style_url: str = "mapbox://styles/mapbox/streets-v11"
    map_access_token: str = ""
    map_center_lng: float = 10.3951
    map_center_lat: float = 63.4305
    map_zoom: float = 10.0

    # Rendering
    primitive_opacity: float = 0.6   # opacity of visible layers

    # Geometry operations
    buffer_quad_segs: int = 8        # segments per quarter circle

    # Uploads
    max_upload_bytes: int = 50 * 1024 * 1024
    layer_palette: list[str] = list(PREDEFINED_COLORS)

    @field_validator("layer_palette")
    @classmethod
    def _check_palette(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("layer_palette must not be empty")
        return [normalize_color(c) for c in value]


settings = Settings()
