"""Default configuration parameters for upgrade state tracking."""

from dataclasses import dataclass


@dataclass(frozen=True)
class StoreParams:
    """State file layout inside the deployment home directory."""
    state_filename: str = ".upgrade-state.json"
    lock_filename: str = ".upgrade-state.lock"
    file_mode: int = 0o600                       # State may hold node addresses


@dataclass(frozen=True)
class DetectorParams:
    """Chain observation parameters."""
    chain_sample_seconds: float = 2.0            # Gap between block height samples


@dataclass(frozen=True)
class LoggingParams:
    """Logging output parameters."""
    level: str = "INFO"
    format_json: bool = False
    include_timestamp: bool = True
    include_caller: bool = False


@dataclass(frozen=True)
class DefaultConfig:
    """Complete default configuration."""
    store: StoreParams
    detector: DetectorParams
    logging: LoggingParams


def get_default_config() -> DefaultConfig:
    """Get the default configuration instance."""
    return DefaultConfig(
        store=StoreParams(),
        detector=DetectorParams(),
        logging=LoggingParams(),
    )
