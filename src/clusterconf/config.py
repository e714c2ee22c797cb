"""Configuration loading from environment variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Valid log levels
VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

# Port validation bounds
MIN_PORT = 1
MAX_PORT = 65535

# Name of the config store document inside the config directory
CONFIG_FILE_NAME = "clusters.json"


@dataclass(frozen=True)
class Config:
    """Application configuration loaded from environment.

    This dataclass is frozen (immutable) to prevent accidental modification
    after creation. CLI arguments are applied on top with
    ``dataclasses.replace``.
    """

    # Directory holding clusters.json
    config_dir: Path = Path("./config")

    # Reverse proxy in front of every backend service
    gateway_url: str = "http://localhost:8080"

    # Dashboard backend admin credentials, used for API key management
    dashboard_admin_user: str = "admin"
    dashboard_admin_password: str = "admin"

    # Plugin type of the datasources created in the dashboard backend
    datasource_type: str = "couchbase-datasource"

    # HTTP surface
    server_host: str = "0.0.0.0"
    server_port: int = 3300

    # Sweep run once after process start
    startup_sweep_enabled: bool = True
    startup_sweep_delay: float = 2.0  # seconds

    # Outbound request timeout (seconds)
    request_timeout: float = 30.0

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Readiness probe timeout (seconds)
    health_check_timeout: float = 5.0

    @property
    def config_file(self) -> Path:
        """Path of the config store document."""
        return self.config_dir / CONFIG_FILE_NAME


def _parse_port(value: str, name: str, default: int) -> int:
    """Parse a string as a valid TCP port number with range validation.

    Args:
        value: The string value to parse.
        name: The name of the setting (for error messages).
        default: The default value to use if parsing fails.

    Returns:
        The parsed port number (MIN_PORT-MAX_PORT), or the default if invalid.

    Logs a warning if the value is invalid or out of range.
    """
    try:
        parsed = int(value)
        if parsed < MIN_PORT or parsed > MAX_PORT:
            logging.warning(
                "Invalid %s: %d is not a valid port (must be %d-%d), using default %d",
                name,
                parsed,
                MIN_PORT,
                MAX_PORT,
                default,
            )
            return default
        return parsed
    except ValueError:
        logging.warning(
            "Invalid %s: '%s' is not a valid integer, using default %d",
            name,
            value,
            default,
        )
        return default


def _validate_log_level(value: str, default: str = "INFO") -> str:
    """Validate and normalize a log level string.

    Args:
        value: The log level string to validate.
        default: The default value to use if invalid.

    Returns:
        The validated log level (uppercase), or the default if invalid.
    """
    normalized = value.upper()
    if normalized not in VALID_LOG_LEVELS:
        logging.warning(
            "Invalid CLUSTERCONF_LOG_LEVEL: '%s' is not valid, using default '%s'. Valid values: %s",
            value,
            default,
            ", ".join(sorted(VALID_LOG_LEVELS)),
        )
        return default
    return normalized


def _parse_bool(value: str) -> bool:
    """Parse a string as a boolean.

    Returns:
        True if value is "true", "1", or "yes" (case-insensitive), False otherwise.
    """
    return value.lower() in ("true", "1", "yes")


def _parse_non_negative_float(value: str, name: str, default: float) -> float:
    """Parse a string as a non-negative float with validation.

    Args:
        value: The string value to parse.
        name: The name of the setting (for error messages).
        default: The default value to use if parsing fails.

    Returns:
        The parsed non-negative float, or the default if invalid.
    """
    try:
        parsed = float(value)
        if parsed < 0:
            logging.warning(
                "Invalid %s: %f is negative, using default %f",
                name,
                parsed,
                default,
            )
            return default
        return parsed
    except ValueError:
        logging.warning(
            "Invalid %s: '%s' is not a valid number, using default %f",
            name,
            value,
            default,
        )
        return default


def _parse_positive_float(value: str, name: str, default: float) -> float:
    """Parse a string as a strictly positive float, falling back to ``default``."""
    parsed = _parse_non_negative_float(value, name, default)
    if parsed == 0:
        logging.warning("Invalid %s: must be positive, using default %f", name, default)
        return default
    return parsed


def _normalize_gateway_url(value: str, default: str) -> str:
    """Strip trailing slashes and require an http(s) scheme."""
    value = value.strip().rstrip("/")
    if not value.startswith(("http://", "https://")):
        logging.warning(
            "Invalid CLUSTERCONF_GATEWAY_URL: '%s' must start with http:// or https://, "
            "using default '%s'",
            value,
            default,
        )
        return default
    return value


def load_config(env_file: Path | None = None) -> Config:
    """Load configuration from environment variables.

    Args:
        env_file: Optional path to .env file. If not provided,
                  looks for .env in current directory.

    Returns:
        Config object with loaded values.

    Values are validated and defaults are used for invalid inputs.
    """
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    defaults = Config()

    server_port = _parse_port(
        os.getenv("CLUSTERCONF_PORT", str(defaults.server_port)),
        "CLUSTERCONF_PORT",
        defaults.server_port,
    )

    startup_sweep_delay = _parse_non_negative_float(
        os.getenv("CLUSTERCONF_STARTUP_SWEEP_DELAY", str(defaults.startup_sweep_delay)),
        "CLUSTERCONF_STARTUP_SWEEP_DELAY",
        defaults.startup_sweep_delay,
    )

    request_timeout = _parse_positive_float(
        os.getenv("CLUSTERCONF_REQUEST_TIMEOUT", str(defaults.request_timeout)),
        "CLUSTERCONF_REQUEST_TIMEOUT",
        defaults.request_timeout,
    )

    health_check_timeout = _parse_positive_float(
        os.getenv("CLUSTERCONF_HEALTH_CHECK_TIMEOUT", str(defaults.health_check_timeout)),
        "CLUSTERCONF_HEALTH_CHECK_TIMEOUT",
        defaults.health_check_timeout,
    )

    gateway_url = _normalize_gateway_url(
        os.getenv("CLUSTERCONF_GATEWAY_URL", defaults.gateway_url),
        defaults.gateway_url,
    )

    return Config(
        config_dir=Path(os.getenv("CLUSTERCONF_CONFIG_DIR", str(defaults.config_dir))),
        gateway_url=gateway_url,
        dashboard_admin_user=os.getenv(
            "CLUSTERCONF_DASHBOARD_ADMIN_USER", defaults.dashboard_admin_user
        ),
        dashboard_admin_password=os.getenv(
            "CLUSTERCONF_DASHBOARD_ADMIN_PASSWORD", defaults.dashboard_admin_password
        ),
        datasource_type=os.getenv("CLUSTERCONF_DATASOURCE_TYPE", defaults.datasource_type),
        server_host=os.getenv("CLUSTERCONF_HOST", defaults.server_host),
        server_port=server_port,
        startup_sweep_enabled=_parse_bool(os.getenv("CLUSTERCONF_STARTUP_SWEEP_ENABLED", "true")),
        startup_sweep_delay=startup_sweep_delay,
        request_timeout=request_timeout,
        log_level=_validate_log_level(os.getenv("CLUSTERCONF_LOG_LEVEL", defaults.log_level)),
        log_json=_parse_bool(os.getenv("CLUSTERCONF_LOG_JSON", "")),
        health_check_timeout=health_check_timeout,
    )
