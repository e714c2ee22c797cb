"""Command-line interface argument parsing for the cluster configuration service.

This module provides the CLI argument parser that handles:
- Configuration directory (positional, holds clusters.json)
- Dashboard admin credentials (positional, optional)
- Listen host and port overrides
- Gateway URL override
- Log level override
- Environment file specification
"""

from __future__ import annotations

import argparse
from pathlib import Path


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        args: Optional list of arguments to parse. If None, uses sys.argv.

    Returns:
        Parsed arguments namespace with the following attributes:
        - config_dir: Directory holding clusters.json
        - admin_user: Dashboard admin user
        - admin_password: Dashboard admin password
        - host: Listen address
        - port: Listen port
        - gateway_url: Base URL of the gateway
        - log_level: Logging level
        - env_file: Path to .env file
    """
    parser = argparse.ArgumentParser(
        description="Cluster configuration service - registers clusters with the monitoring stack",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "config_dir",
        type=Path,
        nargs="?",
        default=None,
        help="Directory holding clusters.json (overrides CLUSTERCONF_CONFIG_DIR)",
    )

    parser.add_argument(
        "admin_user",
        nargs="?",
        default=None,
        help="Dashboard admin user (overrides CLUSTERCONF_DASHBOARD_ADMIN_USER)",
    )

    parser.add_argument(
        "admin_password",
        nargs="?",
        default=None,
        help="Dashboard admin password (overrides CLUSTERCONF_DASHBOARD_ADMIN_PASSWORD)",
    )

    parser.add_argument(
        "--host",
        default=None,
        help="Listen address (overrides CLUSTERCONF_HOST)",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Listen port (overrides CLUSTERCONF_PORT)",
    )

    parser.add_argument(
        "--gateway-url",
        default=None,
        help="Gateway base URL, e.g. http://localhost:8080 (overrides CLUSTERCONF_GATEWAY_URL)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Log level (overrides CLUSTERCONF_LOG_LEVEL)",
    )

    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to .env file (default: ./.env)",
    )

    return parser.parse_args(args)


__all__ = ["parse_args"]
