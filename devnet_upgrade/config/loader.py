"""Configuration loader with 3-tier parameter precedence."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from .defaults import (
    DefaultConfig,
    DetectorParams,
    LoggingParams,
    StoreParams,
    get_default_config,
)
from .validation import ConfigValidator

CONFIG_FILENAME = "upgrade.yaml"


@dataclass(frozen=True)
class ConfigLoader:
    """Manages configuration loading with 3-tier precedence."""

    home_dir: Path
    defaults: DefaultConfig

    @classmethod
    def create(cls, home_dir: Union[str, Path]) -> "ConfigLoader":
        """Create a ConfigLoader for a deployment home directory."""
        return cls(
            home_dir=Path(home_dir),
            defaults=get_default_config(),
        )

    @property
    def config_path(self) -> Path:
        return self.home_dir / CONFIG_FILENAME

    def load_file_config(self) -> dict[str, Any]:
        """Load per-deployment overrides from <home>/upgrade.yaml."""
        if not self.config_path.exists():
            return {}

        with open(self.config_path) as f:
            file_config = yaml.safe_load(f)

        if not file_config:
            return {}
        if not isinstance(file_config, dict):
            raise ValueError(f"{self.config_path} must contain a mapping")
        return file_config

    def merge_config(self, overrides: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """
        Merge configuration with 3-tier precedence.

        Priority order:
        1. Explicit overrides (highest priority)
        2. Deployment config file
        3. Global defaults (lowest priority)
        """
        config = self._dataclass_to_dict(self.defaults)

        config = self._deep_merge(config, self.load_file_config())

        if overrides:
            config = self._deep_merge(config, overrides)

        return config

    def build_store_params(self, overrides: Optional[dict[str, Any]] = None) -> StoreParams:
        return StoreParams(**self._validated_section("store", overrides))

    def build_detector_params(self, overrides: Optional[dict[str, Any]] = None) -> DetectorParams:
        return DetectorParams(**self._validated_section("detector", overrides))

    def build_logging_params(self, overrides: Optional[dict[str, Any]] = None) -> LoggingParams:
        return LoggingParams(**self._validated_section("logging", overrides))

    def _validated_section(self, section: str, overrides: Optional[dict[str, Any]]) -> dict[str, Any]:
        """
        Merge one config section and reject invalid values.

        Raises:
            ValueError: Listing every validation error in the section
        """
        params = self.merge_config(overrides).get(section, {})
        validation_errors = ConfigValidator.validate_config({section: params})
        if validation_errors:
            error_msgs = [f"{err.field}: {err.message} (got: {err.value})" for err in validation_errors]
            raise ValueError(f"invalid {section} configuration: " + "; ".join(error_msgs))
        return params

    def _dataclass_to_dict(self, obj: Any) -> dict[str, Any]:
        """Convert nested dataclasses to dictionary."""
        if hasattr(obj, '__dataclass_fields__'):
            result = {}
            for field_name, _field in obj.__dataclass_fields__.items():
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
