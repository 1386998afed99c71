"""Configuration validation utilities."""

from dataclasses import dataclass
from typing import Any

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_store_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate state file parameters."""
        errors = []

        for name in ("state_filename", "lock_filename"):
            if name in params:
                value = params[name]
                if not isinstance(value, str) or not value or "/" in value or "\\" in value:
                    errors.append(ValidationError(
                        field=name,
                        message="Must be a non-empty file name without path separators",
                        value=value
                    ))

        # The lock must never be taken on the file that gets atomically replaced
        if params.get("state_filename") and params.get("state_filename") == params.get("lock_filename"):
            errors.append(ValidationError(
                field="lock_filename",
                message="Must differ from state_filename",
                value=params["lock_filename"]
            ))

        if "file_mode" in params:
            value = params["file_mode"]
            if isinstance(value, bool) or not isinstance(value, int) or value < 0 or value > 0o777:
                errors.append(ValidationError(
                    field="file_mode",
                    message="Must be a permission mode between 0 and 0o777",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_detector_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate chain detection parameters."""
        errors = []

        if "chain_sample_seconds" in params:
            value = params["chain_sample_seconds"]
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                errors.append(ValidationError(
                    field="chain_sample_seconds",
                    message="Must be a positive number",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_logging_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate logging parameters."""
        errors = []

        if "level" in params:
            value = params["level"]
            if not isinstance(value, str) or value.upper() not in VALID_LOG_LEVELS:
                errors.append(ValidationError(
                    field="level",
                    message=f"Must be one of {', '.join(VALID_LOG_LEVELS)}",
                    value=value
                ))

        for name in ("format_json", "include_timestamp", "include_caller"):
            if name in params and not isinstance(params[name], bool):
                errors.append(ValidationError(
                    field=name,
                    message="Must be a boolean",
                    value=params[name]
                ))

        return errors

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ValidationError]:
        """Validate complete configuration."""
        errors = []

        if "store" in config:
            errors.extend(ConfigValidator.validate_store_params(config["store"]))

        if "detector" in config:
            errors.extend(ConfigValidator.validate_detector_params(config["detector"]))

        if "logging" in config:
            errors.extend(ConfigValidator.validate_logging_params(config["logging"]))

        return errors
