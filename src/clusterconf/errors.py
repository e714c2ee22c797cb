"""Error taxonomy for cluster provisioning.

The hierarchy separates failures by how callers react to them:

- ``PersistenceError``: the config store could not be read or written. Fatal
  for the HTTP request that triggered it.
- ``ProvisioningError`` and subclasses: a pipeline stage failed. These abort
  the remaining stages for one descriptor and end up in the batch result.

``ConflictError`` is the typed form of a backend saying "this already exists".
The request executor classifies responses into a ``ConflictKind`` so pipeline
stages can decide on idempotent success without looking at response text.
"""

from __future__ import annotations

from enum import Enum


class ClusterConfError(Exception):
    """Base class for all clusterconf errors."""

    pass


class PersistenceError(ClusterConfError):
    """Raised when the config store file cannot be read or written."""

    pass


class ProvisioningError(ClusterConfError):
    """Base class for failures of a provisioning stage."""

    pass


class TransportError(ProvisioningError):
    """Raised when a backend service cannot be reached.

    Covers refused connections, timeouts and protocol errors, i.e. every case
    where no HTTP status was received.
    """

    pass


class RemoteCallError(ProvisioningError):
    """Raised when a backend service answers with a non-2xx status.

    Attributes:
        status: HTTP status code of the response.
        body: Fully buffered response body.
    """

    def __init__(self, status: int, body: str, message: str | None = None) -> None:
        self.status = status
        self.body = body
        super().__init__(message or f"Request failed with status code {status}: {body.strip()}")


class ConflictKind(Enum):
    """Known "resource already exists" signatures of the backends."""

    DATASOURCE_EXISTS = "datasource_exists"
    CLUSTER_ALREADY_REGISTERED = "cluster_already_registered"
    API_KEY_EXISTS = "api_key_exists"
    TARGET_EXISTS = "target_exists"


class ConflictError(RemoteCallError):
    """A ``RemoteCallError`` recognised as a conflict on an existing resource.

    Attributes:
        kind: Which known conflict this response represents.
    """

    def __init__(self, kind: ConflictKind, status: int, body: str) -> None:
        self.kind = kind
        super().__init__(status, body, f"Conflict ({kind.value}) with status code {status}")


class CacheMissError(ProvisioningError):
    """Raised when the remote side reports an API key the local cache lacks."""

    pass


__all__ = [
    "CacheMissError",
    "ClusterConfError",
    "ConflictError",
    "ConflictKind",
    "PersistenceError",
    "ProvisioningError",
    "RemoteCallError",
    "TransportError",
]
