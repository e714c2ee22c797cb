"""HTTP surface of the cluster configuration service.

Key components:
- create_app: FastAPI application factory with lifespan-managed startup sweep
- create_routes: Registration, sweep and health endpoints
- ClusterDescriptorRequest: Request body model for registration endpoints
"""

from clusterconf.server.app import create_app
from clusterconf.server.models import ClusterDescriptorRequest
from clusterconf.server.routes import create_routes

# NOTE: Update this list when adding new exports to this module.
__all__ = [
    "ClusterDescriptorRequest",
    "create_app",
    "create_routes",
]
