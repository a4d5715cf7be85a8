"""Configuration error definitions."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when configuration values are invalid (for example an unknown network)."""


class MissingConfigurationError(ConfigurationError):
    """Raised when provider credentials or other required values are absent or blank."""
