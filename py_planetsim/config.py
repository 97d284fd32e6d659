"""Configuration management."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings pulled from environment variables (PLANETSIM_*)."""

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Logging format (json or console)")

    # Planet Generation
    subdivisions: int = Field(default=5, ge=0, le=8, description="Icosphere subdivision depth")
    radius_km: float = Field(default=6371.0, gt=0, description="Planet radius in km")
    seed: str = Field(default="planet", description="Master seed for noise and lifeforms")

    # Assets
    assets_dir: Optional[str] = Field(
        default=None, description="Root of lifeform assets; unset runs headless"
    )

    # Simulation defaults
    solar_constant: float = Field(default=1361.0, ge=0, description="Solar constant in W/m²")
    conductivity: float = Field(default=1.0, ge=0, description="Thermal conductivity in W/m/K")
    time_scale: float = Field(default=1.0, gt=0, description="Simulation speed multiplier")

    class Config:
        env_prefix = "PLANETSIM_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
