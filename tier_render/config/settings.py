"""
Application Settings
===================

Run settings and environment configuration using Pydantic Settings.
Supports development, testing, and production environments.
"""

from typing import Optional, List, Union
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import json
from pathlib import Path


class Settings(BaseSettings):
    """Main application settings with environment variable support."""

    # Application Configuration
    app_name: str = Field(default="Tier Render", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(
        default="development", description="Environment: development, testing, production"
    )
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Logging level")

    # Input / Output Configuration
    dataset_dir: Path = Field(default=Path("./dataset"), description="Tiered dataset directory")
    html_extension: str = Field(default=".html", description="Extension of input documents")
    output_dir: Path = Field(default=Path("./output"), description="Output directory")
    output_filename: str = Field(default="output_pool.json", description="Result file name")
    screenshot_dirname: str = Field(default="screenshots", description="Screenshot subdirectory")
    error_log_filename: str = Field(default="error_log.txt", description="Error log file name")
    clusters_filename: str = Field(default="clusters.json", description="Cluster file name")

    # Pool Configuration
    max_concurrency: int = Field(default=8, description="Number of concurrent render sessions")
    page_timeout_ms: int = Field(default=15000, description="Page load timeout in milliseconds")
    screenshot_timeout_ms: int = Field(
        default=5000, description="Screenshot timeout in milliseconds"
    )
    task_timeout_s: float = Field(default=60.0, description="Hard per-task deadline in seconds")
    text_max_chars: Optional[int] = Field(
        default=None, description="Truncate extracted text to this many characters"
    )

    # Progress Configuration
    progress_update_interval_s: float = Field(
        default=0.25, description="Minimum seconds between progress line writes"
    )
    progress_bar_width: int = Field(default=20, description="Progress bar width in characters")

    # Clustering Configuration
    cluster_threshold: float = Field(
        default=0.8, ge=0.0, le=1.0, description="Minimum cosine similarity to join a cluster"
    )

    # Browser Configuration
    playwright_headless: bool = Field(default=True, description="Run browser in headless mode")
    browser_args: List[str] = Field(
        default=[
            "--disable-gpu",
            "--disable-dev-shm-usage",
            "--disable-setuid-sandbox",
            "--no-sandbox",
        ],
        description="Extra Chromium launch arguments",
    )
    blocked_resource_types: List[str] = Field(
        default=["image", "stylesheet", "font", "media"],
        description="Request resource types aborted by every session",
    )
    viewport_width: int = Field(default=800, description="Viewport width")
    viewport_height: int = Field(default=600, description="Viewport height")
    device_scale_factor: float = Field(default=0.5, description="Device scale factor")
    screenshot_type: str = Field(default="jpeg", description="Screenshot format: jpeg or png")
    screenshot_quality: int = Field(default=80, description="JPEG quality (ignored for png)")

    # API Configuration
    host: str = Field(default="127.0.0.1", description="Render API host")
    port: int = Field(default=3000, description="Render API port")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed = {"development", "testing", "production"}
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @field_validator("screenshot_type")
    @classmethod
    def validate_screenshot_type(cls, v: str) -> str:
        """Validate screenshot format."""
        v = v.lower()
        if v not in {"jpeg", "png"}:
            raise ValueError("Screenshot type must be 'jpeg' or 'png'")
        return v

    @field_validator("max_concurrency")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        """Validate worker count."""
        if v < 1:
            raise ValueError("max_concurrency must be at least 1")
        return v

    @field_validator("browser_args", "blocked_resource_types", mode="before")
    @classmethod
    def parse_list(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse a list from a JSON or comma-separated string."""
        if isinstance(v, str):
            v = v.strip()
            if v.startswith("[") and v.endswith("]"):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @model_validator(mode="after")
    def validate_timeouts(self) -> "Settings":
        """The screenshot step must time out before the page load does."""
        if self.screenshot_timeout_ms >= self.page_timeout_ms:
            raise ValueError("screenshot_timeout_ms must be shorter than page_timeout_ms")
        return self

    @property
    def output_file(self) -> Path:
        return self.output_dir / self.output_filename

    @property
    def screenshot_dir(self) -> Path:
        return self.output_dir / self.screenshot_dirname

    @property
    def error_log_file(self) -> Path:
        return self.output_dir / self.error_log_filename

    @property
    def clusters_file(self) -> Path:
        return self.output_dir / self.clusters_filename

    @property
    def screenshot_extension(self) -> str:
        return ".jpg" if self.screenshot_type == "jpeg" else ".png"

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, env_prefix="TIER_RENDER_"
    )


# Global settings instance - will be initialized when needed
settings = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global settings
    settings = Settings()
    return settings
