"""Cluster configuration service - wires clusters into the monitoring stack."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("clusterconf")
except PackageNotFoundError:
    # Package is not installed (e.g., running from source without pip install)
    __version__ = "0.0.0.dev0"

# Re-export core public API
from clusterconf.app import main
from clusterconf.orchestrator import BatchOrchestrator

# NOTE: Update this list when adding new exports to this module.
__all__ = [
    "__version__",
    "BatchOrchestrator",
    "main",
]
