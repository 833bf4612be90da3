# File: smart_parking/config.py
"""
Configuration settings for the Smart Parking engine.

Values can be overridden through environment variables prefixed with
SMART_PARKING_ (for example SMART_PARKING_SEED=7) or through a local .env file.
"""

from decimal import Decimal
from functools import lru_cache
from typing import Optional, Tuple

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ParkingSettings(BaseSettings):
    """Lot layout, tariff and logging settings"""

    model_config = SettingsConfigDict(
        env_prefix="SMART_PARKING_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Layout
    seed: int = Field(default=42, description="Seed for the slot distance generator")
    vip_ratio: Decimal = Field(default=Decimal("0.1"), ge=0, le=1)
    ev_ratio: Decimal = Field(default=Decimal("0.2"), ge=0, le=1)

    # Distance ranges are half-open: [low, high)
    vip_distance_range: Tuple[int, int] = (5, 25)
    ev_distance_range: Tuple[int, int] = (15, 45)
    regular_distance_range: Tuple[int, int] = (25, 75)

    # Hourly base rates
    regular_rate: Decimal = Field(default=Decimal("50.00"), gt=0)
    vip_rate: Decimal = Field(default=Decimal("100.00"), gt=0)
    ev_rate: Decimal = Field(default=Decimal("80.00"), gt=0)
    currency: str = Field(default="INR", min_length=3, max_length=3)

    # Reporting
    nearest_report_size: int = Field(default=5, ge=1)

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @field_validator("vip_distance_range", "ev_distance_range", "regular_distance_range")
    @classmethod
    def validate_distance_range(cls, value: Tuple[int, int]) -> Tuple[int, int]:
        low, high = value
        if low < 0:
            raise ValueError("Distance range cannot start below 0")
        if high <= low:
            raise ValueError(f"Distance range upper bound must exceed lower bound: {value}")
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @model_validator(mode="after")
    def validate_ratios(self) -> "ParkingSettings":
        if self.vip_ratio + self.ev_ratio > 1:
            raise ValueError("VIP and EV ratios together cannot exceed 1")
        return self


@lru_cache(maxsize=1)
def get_settings() -> ParkingSettings:
    """Return the process-wide settings instance"""
    return ParkingSettings()
