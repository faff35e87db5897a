# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

"""
Configuration management for flightdeck.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Target configuration using environment variables.
    """

    model_config = SettingsConfigDict(
        env_prefix="FLIGHTDECK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    target: str = Field(default="default", description="Name of the target, used in re-attach hints.")
    api_url: Optional[str] = Field(default=None, description="Base URL of the orchestration service.")
    team: str = Field(default="main", description="Team used when no --team flag is given.")
    insecure: bool = Field(default=False, description="Skip TLS certificate verification.")
    request_timeout: float = Field(default=30.0, description="Timeout for non-streaming requests, in seconds.")
    log_level: Literal["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING", description="Minimum level of diagnostics written to stderr."
    )

    # Secrets
    token: Optional[SecretStr] = Field(default=None, description="Bearer token for the service.")

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, v: Optional[str]) -> Optional[str]:
        """
        Normalise the API URL and reject non-HTTP schemes.
        """
        if v is None or not v.strip():
            return None
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError("api_url must start with http:// or https://")
        return v

    @field_validator("team")
    @classmethod
    def validate_team(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("team must not be empty.")
        return v.strip()


@lru_cache
def get_settings() -> Settings:
    """
    Returns a cached instance of the Settings class.
    """
    return Settings()
