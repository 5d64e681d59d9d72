"""Configuration loader with 3-tier parameter precedence."""

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional

import structlog
import yaml

from ..errors import ConfigurationError
from .defaults import DefaultConfig, get_default_config

logger = structlog.get_logger(__name__)

# Environment variable -> (section, field, converter)
ENV_OVERRIDES: dict[str, tuple[str, str, type]] = {
    "TELEGRAM_BOT_TOKEN": ("telegram", "bot_token", str),
    "TELEGRAM_CHAT_ID": ("telegram", "chat_id", str),
    "LEVERAGE": ("account", "leverage", float),
    "SENTINEL_PROXY": ("data_source", "proxy", str),
    "SENTINEL_INTERVAL_SECONDS": ("schedule", "interval_seconds", int),
}


@dataclass(frozen=True)
class ConfigLoader:
    """Manages configuration loading with 3-tier precedence."""

    config_path: Path
    defaults: DefaultConfig

    @classmethod
    def create(cls, config_path: Optional[Path] = None) -> "ConfigLoader":
        """Create a ConfigLoader instance."""
        if config_path is None:
            config_path = Path(__file__).parent.parent.parent / "config" / "sentinel.yaml"

        return cls(
            config_path=Path(config_path),
            defaults=get_default_config(),
        )

    def load_file_config(self) -> dict[str, Any]:
        """Load overrides from the YAML config file, if present."""
        if not self.config_path.exists():
            return {}

        try:
            with open(self.config_path) as f:
                file_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Failed to parse config file {self.config_path}: {e}",
                field=str(self.config_path)
            ) from e

        if file_config is None:
            return {}
        if not isinstance(file_config, dict):
            raise ConfigurationError(
                f"Config file {self.config_path} must contain a mapping",
                field=str(self.config_path)
            )
        return file_config

    def load_env_config(self, environ: Optional[dict[str, str]] = None) -> dict[str, Any]:
        """Collect overrides from environment variables."""
        environ = os.environ if environ is None else environ
        env_config: dict[str, Any] = {}

        for name, (section, field_name, converter) in ENV_OVERRIDES.items():
            raw = environ.get(name)
            if not raw:
                continue
            try:
                value = converter(raw)
            except ValueError:
                logger.warning(
                    "Ignoring unparsable environment override",
                    variable=name,
                    value=raw
                )
                continue
            env_config.setdefault(section, {})[field_name] = value

        return env_config

    def merge_config(
        self,
        overrides: Optional[dict[str, Any]] = None,
        environ: Optional[dict[str, str]] = None
    ) -> dict[str, Any]:
        """
        Merge configuration with 3-tier precedence.

        Priority order:
        1. Environment variables and explicit overrides (highest priority)
        2. YAML config file
        3. Global defaults (lowest priority)
        """
        config = self._dataclass_to_dict(self.defaults)

        config = self._deep_merge(config, self.load_file_config())
        config = self._deep_merge(config, self.load_env_config(environ))

        if overrides:
            config = self._deep_merge(config, overrides)

        return config

    def load(
        self,
        overrides: Optional[dict[str, Any]] = None,
        environ: Optional[dict[str, str]] = None
    ) -> DefaultConfig:
        """Load the merged configuration as typed dataclasses."""
        merged = self.merge_config(overrides, environ)

        sections = {}
        for section_field in fields(self.defaults):
            section_default = getattr(self.defaults, section_field.name)
            section_values = merged.get(section_field.name) or {}
            if not isinstance(section_values, dict):
                raise ConfigurationError(
                    f"Config section '{section_field.name}' must be a mapping",
                    field=section_field.name
                )
            known = {f.name for f in fields(section_default)}
            unknown = set(section_values) - known
            if unknown:
                logger.warning(
                    "Ignoring unknown config keys",
                    section=section_field.name,
                    keys=sorted(unknown)
                )
            sections[section_field.name] = replace(
                section_default,
                **{k: v for k, v in section_values.items() if k in known}
            )

        return DefaultConfig(**sections)

    def _dataclass_to_dict(self, obj: Any) -> dict[str, Any]:
        """Convert nested dataclasses to dictionary."""
        if hasattr(obj, '__dataclass_fields__'):
            result = {}
            for field_name in obj.__dataclass_fields__:
                value = getattr(obj, field_name)
                if hasattr(value, '__dataclass_fields__'):
                    result[field_name] = self._dataclass_to_dict(value)
                else:
                    result[field_name] = value
            return result
        return obj  # type: ignore[no-any-return]

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result
