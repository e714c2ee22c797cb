"""Outbound HTTP calls to the backend services.

Every call to the cluster-monitor, metrics and dashboard backends goes through
``RequestExecutor.execute``, which applies one classification to all of them:

- 2xx: the fully buffered response text is returned.
- Known "already exists" responses: ``ConflictError`` carrying a ``ConflictKind``.
- Any other status: ``RemoteCallError``.
- No response at all (refused, timeout, protocol error): ``TransportError``.

The executor never retries. Whether a failure is worth another attempt is
decided by the caller (in practice: the next sweep).
"""

from __future__ import annotations

import base64
import json
import shlex
from dataclasses import dataclass, field
from typing import Any, Self
from urllib.parse import urlsplit

import httpx

from clusterconf.errors import ConflictError, ConflictKind, RemoteCallError, TransportError
from clusterconf.logging import get_logger

logger = get_logger(__name__)

# Default timeout for HTTP requests (connect, read, write, pool)
DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=10.0)

# Lower-cased response body fragments that signal an existing resource
CONFLICT_SIGNATURES = (
    "already exists",
    "unique constraint failed",
    "must be unique",
    "duplicate",
)

# Path prefix -> conflict kind, checked in order
_CONFLICT_KINDS_BY_PATH: tuple[tuple[str, ConflictKind], ...] = (
    ("/grafana/api/datasources", ConflictKind.DATASOURCE_EXISTS),
    ("/grafana/api/auth/keys", ConflictKind.API_KEY_EXISTS),
    ("/couchbase/api/v1/clusters", ConflictKind.CLUSTER_ALREADY_REGISTERED),
    ("/config/api/v1/", ConflictKind.TARGET_EXISTS),
)

_REDACTED = "********"


def basic_auth_header(username: str, password: str) -> str:
    """Build an ``Authorization`` header value for HTTP basic auth."""
    token = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")
    return f"Basic {token}"


def bearer_auth_header(token: str) -> str:
    """Build an ``Authorization`` header value for a bearer token."""
    return f"Bearer {token}"


@dataclass(frozen=True)
class RequestSpec:
    """Description of one outbound request.

    Attributes:
        method: HTTP method.
        host: Target host.
        port: Target port.
        path: Request path including any query string.
        headers: Extra request headers.
        scheme: ``http`` or ``https``.
    """

    method: str
    host: str
    port: int
    path: str
    headers: dict[str, str] = field(default_factory=dict)
    scheme: str = "http"

    @property
    def url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}{self.path}"


@dataclass(frozen=True)
class Gateway:
    """The reverse proxy in front of all backend services."""

    host: str
    port: int
    scheme: str = "http"

    @classmethod
    def from_url(cls, url: str) -> Gateway:
        """Parse a gateway base URL such as ``http://localhost:8080``.

        Raises:
            ValueError: If the URL has no host.
        """
        parts = urlsplit(url)
        if not parts.hostname:
            raise ValueError(f"Gateway URL has no host: {url!r}")
        scheme = parts.scheme or "http"
        port = parts.port or (443 if scheme == "https" else 80)
        return cls(host=parts.hostname, port=port, scheme=scheme)

    def request(
        self, method: str, path: str, headers: dict[str, str] | None = None
    ) -> RequestSpec:
        """Build a ``RequestSpec`` for a path behind this gateway."""
        return RequestSpec(
            method=method,
            host=self.host,
            port=self.port,
            path=path,
            headers=dict(headers or {}),
            scheme=self.scheme,
        )


def classify_conflict(spec: RequestSpec, status: int, body: str) -> ConflictKind | None:
    """Map a failed response to a known conflict kind.

    A response counts as a conflict when it has status 409 or its body carries
    one of ``CONFLICT_SIGNATURES``; the request path then decides which
    resource already exists. Returns ``None`` for anything else.
    """
    text = body.lower()
    if status != httpx.codes.CONFLICT and not any(sig in text for sig in CONFLICT_SIGNATURES):
        return None
    for prefix, kind in _CONFLICT_KINDS_BY_PATH:
        if spec.path.startswith(prefix):
            return kind
    return None


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            k: (_REDACTED if "password" in k.lower() and v else _redact(v))
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [_redact(v) for v in value]
    return value


def to_curl(spec: RequestSpec, body: Any = None) -> str:
    """Render an equivalent ``curl`` command with credentials redacted."""
    parts = ["curl", "-X", spec.method, spec.url]
    for name, value in spec.headers.items():
        shown = _REDACTED if name.lower() == "authorization" else value
        parts += ["-H", f"{name}: {shown}"]
    if body is not None:
        if isinstance(body, (dict, list)):
            parts += ["-d", json.dumps(_redact(body))]
        else:
            parts += ["-d", body.decode() if isinstance(body, bytes) else str(body)]
    return shlex.join(parts)


class RequestExecutor:
    """Issues outbound requests over a shared ``httpx.AsyncClient``.

    The client is created lazily and reused for connection pooling. Tests can
    pass a client built on ``httpx.MockTransport``.
    """

    def __init__(
        self,
        timeout: httpx.Timeout | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            timeout: Transport timeout applied to every request.
            client: Optional pre-built client. The executor does not close a
                client it did not create.
        """
        self.timeout = timeout or DEFAULT_TIMEOUT
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def execute(self, spec: RequestSpec, body: Any = None) -> str:
        """Send a request and return the response body.

        Args:
            spec: Target and headers of the request.
            body: Optional payload. ``dict``/``list`` values are sent as JSON;
                ``str``/``bytes`` are sent as-is.

        Returns:
            The response text of a 2xx response.

        Raises:
            ConflictError: If the backend reports a known existing resource.
            RemoteCallError: If the backend answers with any other non-2xx status.
            TransportError: If no response was received.
        """
        headers = dict(spec.headers)
        content: bytes | None = None
        if isinstance(body, (dict, list)):
            content = json.dumps(body).encode("utf-8")
            headers.setdefault("Content-Type", "application/json")
        elif isinstance(body, str):
            content = body.encode("utf-8")
        elif isinstance(body, bytes):
            content = body

        logger.debug("Equivalent curl command: %s", to_curl(spec, body))

        try:
            response = await self._get_client().request(
                spec.method, spec.url, headers=headers, content=content
            )
        except httpx.TimeoutException as e:
            raise TransportError(f"{spec.method} {spec.url} timed out: {e}") from e
        except httpx.RequestError as e:
            raise TransportError(f"{spec.method} {spec.url} failed: {e}") from e

        text = response.text
        if response.is_success:
            logger.debug("%s %s -> %d", spec.method, spec.url, response.status_code)
            return text

        kind = classify_conflict(spec, response.status_code, text)
        if kind is not None:
            logger.debug(
                "%s %s -> %d classified as %s",
                spec.method,
                spec.url,
                response.status_code,
                kind.value,
            )
            raise ConflictError(kind, response.status_code, text)

        logger.warning("%s %s failed with status %d", spec.method, spec.url, response.status_code)
        raise RemoteCallError(response.status_code, text)

    async def close(self) -> None:
        """Close the underlying client if this executor created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


__all__ = [
    "CONFLICT_SIGNATURES",
    "DEFAULT_TIMEOUT",
    "Gateway",
    "RequestExecutor",
    "RequestSpec",
    "basic_auth_header",
    "bearer_auth_header",
    "classify_conflict",
    "to_curl",
]
