"""Configuration defaults, YAML/env loading and validation."""

from .defaults import DefaultConfig, get_default_config
from .loader import ConfigLoader
from .validation import ConfigValidator, ValidationError

__all__ = [
    "ConfigLoader",
    "ConfigValidator",
    "DefaultConfig",
    "ValidationError",
    "get_default_config",
]
