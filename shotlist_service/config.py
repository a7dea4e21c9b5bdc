"""
Shot List Service Configuration Module

Centralized configuration management with Pydantic validation.
All environment variables are validated at startup to catch misconfigurations early.
"""

import os
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ShotListSettings(BaseSettings):
    """
    Shot list service configuration with validation.

    All settings can be overridden via environment variables.
    Validation happens at startup to fail fast on misconfiguration.
    """

    model_config = SettingsConfigDict(
        env_prefix="",  # No prefix, use exact env var names
        case_sensitive=False,  # OUTPUT_DIR = output_dir
    )

    # === Service ===
    port: int = Field(default=8080, ge=1, le=65535, description="HTTP port")
    environment: str = Field(
        default="development",
        description="Environment: development, staging, production"
    )
    log_level: str = Field(default="INFO", description="Root log level")
    log_format: str = Field(default="simple", description="Log format: simple or json")
    expose_error_details: Optional[bool] = Field(
        default=None,
        description="Include exception messages in 500 responses (default: off in production)"
    )

    # === Output ===
    output_dir: str = Field(default="pdfs", description="Directory for generated PDFs")
    public_base_url: str = Field(
        default="http://localhost:8080",
        description="Base URL under which /pdfs is publicly reachable"
    )

    # === Input ===
    join_separator: str = Field(
        default="|||",
        min_length=1,
        description="Separator used to pack a list into a single string field"
    )

    # === Page geometry (PDF points) ===
    page_size: str = Field(default="a4", description="Page size: 'a4' or 'letter'")
    page_margin: float = Field(default=40.0, ge=0, description="Margin on every side")
    header_height: float = Field(default=30.0, ge=0, description="Scene header band height")

    # === Layout ===
    layout_mode: str = Field(default="grid", description="Layout mode: 'grid' or 'flow'")
    grid_rows: int = Field(default=4, ge=1, le=20, description="Grid rows per page")
    grid_cols: int = Field(default=2, ge=1, le=6, description="Cells per row")
    caption_height: float = Field(
        default=30.0, ge=0, description="Caption block height inside a grid cell"
    )
    image_height: float = Field(default=150.0, description="Image block height in flow mode")
    text_height: float = Field(default=60.0, description="Caption block height in flow mode")
    row_spacing: float = Field(default=12.0, ge=0, description="Gap between flow rows")
    overflow_policy: str = Field(
        default="overflow",
        description="Caption overflow policy: 'overflow', 'clip' or 'grow'"
    )
    new_page_per_scene: bool = Field(
        default=False, description="Start every scene group on a fresh page"
    )
    header_font_path: Optional[str] = Field(
        default=None, description="Optional TTF file for scene headers"
    )

    # === Images ===
    image_fetch_timeout: float = Field(
        default=15.0, gt=0, le=120, description="Per-image fetch timeout in seconds"
    )
    image_max_width: int = Field(
        default=1200, ge=16, description="Images wider than this are downscaled"
    )
    jpeg_quality: int = Field(default=80, ge=10, le=95, description="JPEG re-encode quality")
    image_max_bytes: int = Field(
        default=20 * 1024 * 1024, ge=1024, description="Largest image body accepted per download"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is a known value."""
        allowed = {"development", "staging", "production"}
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"environment must be one of: {', '.join(sorted(allowed))}")
        return v_lower

    @field_validator("page_size")
    @classmethod
    def validate_page_size(cls, v: str) -> str:
        v_lower = v.lower()
        if v_lower not in {"a4", "letter"}:
            raise ValueError("page_size must be 'a4' or 'letter'")
        return v_lower

    @field_validator("layout_mode")
    @classmethod
    def validate_layout_mode(cls, v: str) -> str:
        v_lower = v.lower()
        if v_lower not in {"grid", "flow"}:
            raise ValueError("layout_mode must be 'grid' or 'flow'")
        return v_lower

    @field_validator("overflow_policy")
    @classmethod
    def validate_overflow_policy(cls, v: str) -> str:
        v_lower = v.lower()
        if v_lower not in {"overflow", "clip", "grow"}:
            raise ValueError("overflow_policy must be 'overflow', 'clip' or 'grow'")
        return v_lower

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v_lower = v.lower()
        if v_lower not in {"simple", "json"}:
            raise ValueError("log_format must be 'simple' or 'json'")
        return v_lower

    @field_validator("public_base_url")
    @classmethod
    def validate_url_format(cls, v: str) -> str:
        """Basic URL format validation."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Invalid URL format: {v}")
        return v.rstrip("/")

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def show_error_details(self) -> bool:
        """Whether 500 responses carry the exception message."""
        if self.expose_error_details is not None:
            return self.expose_error_details
        return not self.is_production

    def pdf_url(self, filename: str) -> str:
        """Public URL for a generated file."""
        return f"{self.public_base_url}/pdfs/{filename}"

    def validate_production_config(self) -> List[str]:
        """
        Validate configuration is suitable for production.

        Returns list of warning/error messages.
        """
        issues = []

        if self.is_production:
            if "localhost" in self.public_base_url:
                issues.append("WARNING: PUBLIC_BASE_URL points at localhost in production")
            if self.expose_error_details:
                issues.append("WARNING: EXPOSE_ERROR_DETAILS enabled in production")

        if self.header_font_path and not os.path.isfile(self.header_font_path):
            issues.append(
                f"WARNING: HEADER_FONT_PATH {self.header_font_path} not found, "
                "falling back to Helvetica-Bold"
            )

        return issues


@lru_cache()
def get_settings() -> ShotListSettings:
    """
    Get cached settings instance.

    Settings are loaded once and cached for performance.
    Use this function to access configuration throughout the app.
    """
    return ShotListSettings()


def validate_config_on_startup() -> None:
    """
    Validate configuration at application startup.

    Raises ValueError with details if config is invalid.
    Logs warnings for non-critical issues.
    """
    import logging
    logger = logging.getLogger(__name__)

    try:
        settings = get_settings()
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")

    for issue in settings.validate_production_config():
        if issue.startswith("CRITICAL"):
            raise ValueError(issue)
        else:
            logger.warning(issue)

    logger.info(f"Configuration loaded: environment={settings.environment}")
    logger.info(f"  output_dir={settings.output_dir}")
    logger.info(f"  public_base_url={settings.public_base_url}")
    logger.info(
        f"  layout_mode={settings.layout_mode} grid={settings.grid_rows}x{settings.grid_cols} "
        f"overflow={settings.overflow_policy}"
    )
