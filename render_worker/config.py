import tempfile
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # object storage (R2 / any S3-compatible endpoint)
    r2_endpoint: str = ""                  # https://<account>.r2.cloudflarestorage.com
    r2_access_key_id: str = ""
    r2_secret_access_key: str = ""
    r2_bucket: str = "videos"
    r2_cdn_url: str = ""
    r2_region: str = "auto"

    mapbox_api_key: str | None = None
    chrome_gl_mode: str = "swiftshader"    # hardware backends: "egl", "angle"
    ffmpeg_bin: str = "ffmpeg"

    work_root: Path = Field(default_factory=lambda: Path(tempfile.gettempdir()))

    # timings, in seconds
    min_render_duration: float = 15
    library_timeout: float = 10
    webhook_timeout: float = 10

    # capture
    device_scale_factor: int = 2
    jpeg_quality: int = 80
    frame_queue_size: int = 8

    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
