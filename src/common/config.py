"""
Configuration module for the media extraction client.

This module centralizes the loading and validation of all configuration
parameters from environment variables. It provides a single `Settings`
class that acts as a container for all configurable values, ensuring
that they are defined in one place and can be easily imported and used
throughout the application.
"""

import os
from typing import Literal


class Settings:
    """
    A container for all configuration settings, loaded from environment variables.

    This class centralizes configuration, providing default values for optional
    settings and raising errors for invalid values.
    """

    # --- Extraction API Configuration ---
    API_URL: str
    REQUEST_TIMEOUT: float

    # --- Job Polling ---
    POLL_INTERVAL_SECONDS: float
    MAX_POLL_ATTEMPTS: int

    # --- Logging ---
    LOG_LEVEL: str
    LOG_FORMAT: Literal["console", "json"]

    def __init__(self):
        """
        Loads settings from environment variables and performs validation.
        """
        # --- Extraction API Configuration ---
        self.API_URL = os.getenv("EXTRACTION_API_URL", "http://localhost:8000").rstrip(
            "/"
        )
        self.REQUEST_TIMEOUT = self._get_float("REQUEST_TIMEOUT", 60)

        # --- Job Polling ---
        self.POLL_INTERVAL_SECONDS = self._get_float("POLL_INTERVAL_SECONDS", 10)
        if self.POLL_INTERVAL_SECONDS <= 0:
            raise ValueError("POLL_INTERVAL_SECONDS must be > 0")
        # 0 disables the bound and polls until the job completes.
        self.MAX_POLL_ATTEMPTS = self._get_int("MAX_POLL_ATTEMPTS", 360)
        if self.MAX_POLL_ATTEMPTS < 0:
            raise ValueError("MAX_POLL_ATTEMPTS must be >= 0")

        # --- Logging ---
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self.LOG_FORMAT = os.getenv("LOG_FORMAT", "console").lower()
        if self.LOG_FORMAT not in ("console", "json"):
            raise ValueError("LOG_FORMAT must be 'console' or 'json'")

    @staticmethod
    def _get_int(var_name: str, default: int) -> int:
        """
        Reads an integer environment variable, raising a readable error on bad input.
        """
        raw = os.getenv(var_name)
        if raw is None or raw.strip() == "":
            return default
        try:
            return int(raw)
        except ValueError:
            raise ValueError(
                f"Environment variable '{var_name}' must be an integer, got {raw!r}."
            ) from None

    @staticmethod
    def _get_float(var_name: str, default: float) -> float:
        raw = os.getenv(var_name)
        if raw is None or raw.strip() == "":
            return float(default)
        try:
            return float(raw)
        except ValueError:
            raise ValueError(
                f"Environment variable '{var_name}' must be a number, got {raw!r}."
            ) from None
