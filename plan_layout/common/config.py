"""
Configuration for the session plan layout engine and PDF service.

Centralized configuration management with Pydantic validation.
Page geometry is supplied here rather than hard-coded so the same engine
can serve other document templates.
"""

from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file
load_dotenv()


class LayoutSettings(BaseSettings):
    """
    Layout and service configuration with validation.

    All settings can be overridden via environment variables
    (PAGE_HEIGHT_PX, FOOTER_HEIGHT_FINAL_PX, ...). Lengths are CSS pixels
    at 96 dpi, so the A4 defaults are 794 x 1123.
    """

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        populate_by_name=True,
    )

    # === Page Geometry ===
    page_width_px: float = Field(default=794, gt=0, alias="PAGE_WIDTH_PX")
    page_height_px: float = Field(default=1123, gt=0, alias="PAGE_HEIGHT_PX")
    header_height_px: float = Field(default=110, ge=0, alias="HEADER_HEIGHT_PX")

    # The final-page footer graphic is shorter than the middle one
    footer_height_middle_px: float = Field(default=150, ge=0, alias="FOOTER_HEIGHT_MIDDLE_PX")
    footer_height_final_px: float = Field(default=70, ge=0, alias="FOOTER_HEIGHT_FINAL_PX")
    footer_height_note_px: float = Field(default=70, ge=0, alias="FOOTER_HEIGHT_NOTE_PX")

    inter_block_spacing_px: float = Field(default=24, ge=0, alias="INTER_BLOCK_SPACING_PX")
    first_block_top_margin_px: float = Field(default=24, ge=0, alias="FIRST_BLOCK_TOP_MARGIN_PX")
    note_safety_margin_px: float = Field(
        default=20,
        ge=0,
        alias="NOTE_SAFETY_MARGIN_PX",
        description="Buffer against font metric rounding when fitting the note inline",
    )

    # === Concurrency & Limits ===
    max_concurrent_pdfs: int = Field(
        default=5,
        ge=1,
        le=20,
        alias="MAX_CONCURRENT_PDFS",
        description="Maximum concurrent generation requests (1-20)",
    )
    playwright_timeout: int = Field(
        default=30000,
        ge=1000,
        alias="PLAYWRIGHT_TIMEOUT",
        description="Playwright operation timeout in milliseconds",
    )
    playwright_headless: bool = Field(default=True, alias="PLAYWRIGHT_HEADLESS")
    generation_timeout_seconds: float = Field(
        default=60,
        gt=0,
        le=600,
        alias="GENERATION_TIMEOUT_SECONDS",
        description="Timeout for one full document generation request",
    )

    # === Delivery ===
    delivery_webhook_url: Optional[str] = Field(
        default=None,
        alias="DELIVERY_WEBHOOK_URL",
        description="Automation webhook receiving finished PDFs (optional)",
    )

    # === Logging ===
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="simple", alias="LOG_FORMAT")

    @field_validator("delivery_webhook_url")
    @classmethod
    def validate_url_format(cls, v: Optional[str]) -> Optional[str]:
        """Basic URL format validation."""
        if not v:
            return None
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Invalid URL format: {v}")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format is a known value."""
        allowed = {"simple", "json"}
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"log_format must be one of: {', '.join(sorted(allowed))}")
        return v_lower

    @property
    def delivery_enabled(self) -> bool:
        """Check if finished PDFs can be dispatched to a webhook."""
        return self.delivery_webhook_url is not None


@lru_cache()
def get_settings() -> LayoutSettings:
    """
    Get cached settings instance.

    Settings are loaded once and cached for performance.
    """
    return LayoutSettings()
