"""Environment settings accessors."""

import os
from typing import Optional

from ..errors import ConfigError


class Settings:
    """Application settings from environment variables."""

    @staticmethod
    def get(key: str, default: Optional[str] = None, required: bool = False) -> str:
        """
        Get environment variable value.

        Empty values count as unset.

        Args:
            key: Environment variable name
            default: Default value if not set
            required: Whether the variable is required

        Returns:
            str: Environment variable value

        Raises:
            ConfigError: If required variable is not set
        """
        value = os.getenv(key) or default
        if required and not value:
            raise ConfigError(f"Required environment variable not set: {key}")
        return value or ""

    @staticmethod
    def get_bool(key: str, default: bool = False) -> bool:
        """Only the literal string "true" enables a flag."""
        value = os.getenv(key)
        if not value:
            return default
        return value == "true"

    @staticmethod
    def get_int(key: str, default: int) -> int:
        """
        Get integer environment variable value.

        Raises:
            ConfigError: If the value is not a number
        """
        value = os.getenv(key)
        if not value:
            return default
        try:
            return int(value)
        except ValueError:
            raise ConfigError(f"Error converting env {key} value {value} to number") from None

    @staticmethod
    def get_float(key: str, default: float) -> float:
        """
        Get float environment variable value.

        Raises:
            ConfigError: If the value is not a number
        """
        value = os.getenv(key)
        if not value:
            return default
        try:
            return float(value)
        except ValueError:
            raise ConfigError(f"Error converting env {key} value {value} to number") from None
