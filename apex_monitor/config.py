"""Apex fleet monitor configuration loaded from environment variables."""
import os
from dataclasses import dataclass
from typing import List, Optional, Tuple
from pathlib import Path
from dotenv import load_dotenv

from apex_monitor.errors import ConfigurationError

# Load .env file if it exists
env_path = Path(__file__).parent.parent / '.env'
if env_path.exists():
    load_dotenv(env_path)

# ============================================================================
# Fleet Configuration
# ============================================================================

FLEET_NAME = os.getenv('FLEET_NAME', 'apex')
FLEET_SIZE = os.getenv('FLEET_SIZE', '450')
BASE_ALLOCATION = os.getenv('BASE_ALLOCATION', '1000')
VOLATILITY_MIN = os.getenv('VOLATILITY_MIN', '0.01')
VOLATILITY_MAX = os.getenv('VOLATILITY_MAX', '0.06')

# Strategies known to degrade structurally; they bleed PnL every tick
DEGRADING_STRATEGY_IDS = os.getenv('DEGRADING_STRATEGY_IDS', '1,5')
DEGRADATION_MAX = os.getenv('DEGRADATION_MAX', '20')

# ============================================================================
# Risk Thresholds
# ============================================================================

CRITICAL_LOSS_THRESHOLD = os.getenv('CRITICAL_LOSS_THRESHOLD', '-2000')
DERISK_PNL_THRESHOLD = os.getenv('DERISK_PNL_THRESHOLD', '-500')
DERISK_MULTIPLIER = os.getenv('DERISK_MULTIPLIER', '0.8')

# ============================================================================
# Failover Configuration
# ============================================================================

FAILING_STRATEGY_ID = os.getenv('FAILING_STRATEGY_ID', '1')
# Empty means the last strategy in the fleet
BACKUP_STRATEGY_ID = os.getenv('BACKUP_STRATEGY_ID', '')

VAULT_API_URL = os.getenv('VAULT_API_URL', '')
ORACLE_ADDRESS = os.getenv('ORACLE_ADDRESS', '0xApexBackendOracleAddress123')
VAULT_TIMEOUT_SECONDS = os.getenv('VAULT_TIMEOUT_SECONDS', '10')

# ============================================================================
# Loop Configuration
# ============================================================================

TICK_INTERVAL_MS = os.getenv('TICK_INTERVAL_MS', '1000')
RANDOM_SEED = os.getenv('RANDOM_SEED', '')
SNAPSHOT_BUFFER_SIZE = os.getenv('SNAPSHOT_BUFFER_SIZE', '5000')

# ============================================================================
# Logging Configuration
# ============================================================================

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
LOG_FILE = os.getenv('LOG_FILE', '')
LOG_FORMAT = os.getenv('LOG_FORMAT', 'detailed')


@dataclass(frozen=True)
class MonitorConfig:
    """Startup parameters for one monitored fleet. Never mutated at runtime."""

    fleet_name: str = 'apex'
    fleet_size: int = 450
    critical_loss_threshold: float = -2000.0
    tick_interval_ms: int = 1000
    degrading_strategy_ids: Tuple[int, ...] = (1, 5)
    failing_strategy_id: int = 1
    backup_strategy_id: int = 450
    base_allocation: float = 1000.0
    volatility_min: float = 0.01
    volatility_max: float = 0.06
    degradation_max: float = 20.0
    derisk_pnl_threshold: float = -500.0
    derisk_multiplier: float = 0.8
    vault_api_url: str = ''
    oracle_address: str = '0xApexBackendOracleAddress123'
    vault_timeout_seconds: float = 10.0
    random_seed: Optional[int] = None
    snapshot_buffer_size: int = 5000

    @property
    def tick_interval_seconds(self) -> float:
        return self.tick_interval_ms / 1000.0


# ============================================================================
# Parsing
# ============================================================================

def _parse_int(name: str, raw: str, errors: List[str]) -> Optional[int]:
    try:
        return int(str(raw).strip())
    except ValueError:
        errors.append(f"{name} must be an integer (got {raw!r})")
        return None


def _parse_float(name: str, raw: str, errors: List[str]) -> Optional[float]:
    try:
        return float(str(raw).strip())
    except ValueError:
        errors.append(f"{name} must be a number (got {raw!r})")
        return None


def _parse_id_list(name: str, raw: str, errors: List[str]) -> Tuple[int, ...]:
    ids = []
    for part in str(raw).split(','):
        part = part.strip()
        if not part:
            continue
        value = _parse_int(name, part, errors)
        if value is not None:
            ids.append(value)
    return tuple(ids)


def _raise_if_errors(errors: List[str]) -> None:
    if errors:
        raise ConfigurationError(
            "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        )


def load_config(**overrides) -> MonitorConfig:
    """
    Build a validated MonitorConfig from environment-backed module values.

    Args:
        **overrides: MonitorConfig fields that take precedence over the
            environment (None values are ignored).

    Returns:
        Validated MonitorConfig

    Raises:
        ConfigurationError: If any value is malformed or out of range.
    """
    errors: List[str] = []

    seed = None
    if RANDOM_SEED.strip():
        seed = _parse_int('RANDOM_SEED', RANDOM_SEED, errors)

    values = dict(
        fleet_name=FLEET_NAME,
        fleet_size=_parse_int('FLEET_SIZE', FLEET_SIZE, errors),
        critical_loss_threshold=_parse_float('CRITICAL_LOSS_THRESHOLD', CRITICAL_LOSS_THRESHOLD, errors),
        tick_interval_ms=_parse_int('TICK_INTERVAL_MS', TICK_INTERVAL_MS, errors),
        degrading_strategy_ids=_parse_id_list('DEGRADING_STRATEGY_IDS', DEGRADING_STRATEGY_IDS, errors),
        failing_strategy_id=_parse_int('FAILING_STRATEGY_ID', FAILING_STRATEGY_ID, errors),
        base_allocation=_parse_float('BASE_ALLOCATION', BASE_ALLOCATION, errors),
        volatility_min=_parse_float('VOLATILITY_MIN', VOLATILITY_MIN, errors),
        volatility_max=_parse_float('VOLATILITY_MAX', VOLATILITY_MAX, errors),
        degradation_max=_parse_float('DEGRADATION_MAX', DEGRADATION_MAX, errors),
        derisk_pnl_threshold=_parse_float('DERISK_PNL_THRESHOLD', DERISK_PNL_THRESHOLD, errors),
        derisk_multiplier=_parse_float('DERISK_MULTIPLIER', DERISK_MULTIPLIER, errors),
        vault_api_url=VAULT_API_URL,
        oracle_address=ORACLE_ADDRESS,
        vault_timeout_seconds=_parse_float('VAULT_TIMEOUT_SECONDS', VAULT_TIMEOUT_SECONDS, errors),
        random_seed=seed,
        snapshot_buffer_size=_parse_int('SNAPSHOT_BUFFER_SIZE', SNAPSHOT_BUFFER_SIZE, errors),
    )
    if BACKUP_STRATEGY_ID.strip():
        values['backup_strategy_id'] = _parse_int('BACKUP_STRATEGY_ID', BACKUP_STRATEGY_ID, errors)
    _raise_if_errors(errors)

    values.update({k: v for k, v in overrides.items() if v is not None})
    values.setdefault('backup_strategy_id', values['fleet_size'])
    config = MonitorConfig(**values)
    validate_config(config)
    return config


# ============================================================================
# Validation
# ============================================================================

def validate_config(config: MonitorConfig) -> None:
    """Validate configuration values."""
    errors = []

    # Validate fleet shape
    if config.fleet_size <= 0:
        errors.append("FLEET_SIZE must be positive")

    if config.base_allocation <= 0:
        errors.append("BASE_ALLOCATION must be positive")

    if not (0 < config.volatility_min < config.volatility_max):
        errors.append("VOLATILITY_MIN and VOLATILITY_MAX must satisfy 0 < min < max")

    if config.degradation_max <= 0:
        errors.append("DEGRADATION_MAX must be positive")

    # Validate thresholds
    if config.critical_loss_threshold >= 0:
        errors.append("CRITICAL_LOSS_THRESHOLD must be negative")

    if not (0 < config.derisk_multiplier <= 1):
        errors.append("DERISK_MULTIPLIER must be between 0 (exclusive) and 1")

    if config.tick_interval_ms <= 0:
        errors.append("TICK_INTERVAL_MS must be a positive integer")

    if config.snapshot_buffer_size <= 0:
        errors.append("SNAPSHOT_BUFFER_SIZE must be positive")

    if config.vault_timeout_seconds <= 0:
        errors.append("VAULT_TIMEOUT_SECONDS must be positive")

    # Validate strategy identifiers
    valid_ids = range(1, max(config.fleet_size, 0) + 1)
    for strategy_id in config.degrading_strategy_ids:
        if strategy_id not in valid_ids:
            errors.append(f"DEGRADING_STRATEGY_IDS contains unknown strategy {strategy_id}")

    if config.failing_strategy_id not in valid_ids:
        errors.append(f"FAILING_STRATEGY_ID {config.failing_strategy_id} is outside the fleet")

    if config.backup_strategy_id not in valid_ids:
        errors.append(f"BACKUP_STRATEGY_ID {config.backup_strategy_id} is outside the fleet")

    if config.failing_strategy_id == config.backup_strategy_id:
        errors.append("BACKUP_STRATEGY_ID must differ from FAILING_STRATEGY_ID")

    if config.backup_strategy_id in config.degrading_strategy_ids:
        errors.append("BACKUP_STRATEGY_ID must not be a degrading strategy")

    _raise_if_errors(errors)


# ============================================================================
# Logging Setup
# ============================================================================

def setup_logging() -> None:
    """Configure logging based on config settings."""
    import logging
    import sys

    # Map log level string to logging constant
    level = getattr(logging, LOG_LEVEL, logging.INFO)

    # Configure format
    if LOG_FORMAT == 'json':
        # JSON format for structured logging
        format_string = '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "name": "%(name)s", "message": "%(message)s"}'
    elif LOG_FORMAT == 'detailed':
        format_string = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    else:  # simple
        format_string = '%(levelname)s: %(message)s'

    handlers = []

    # Always log to stdout
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(logging.Formatter(format_string))
    handlers.append(stdout_handler)

    # Optionally log to file
    if LOG_FILE:
        file_handler = logging.FileHandler(LOG_FILE)
        file_handler.setFormatter(logging.Formatter(format_string))
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        handlers=handlers,
        force=True
    )

    logging.getLogger('apex_monitor').setLevel(level)

    # Reduce noise from third-party libraries
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)
