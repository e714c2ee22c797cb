"""Health checks for the service and the backends it provisions.

Health Check Types:
- Liveness: the service process is up and serving requests.
- Readiness: the dashboard and metrics backends answer through the gateway.

Usage:
    checker = HealthChecker(gateway_url="http://localhost:8080", timeout=5.0)

    liveness = checker.check_liveness()
    readiness = await checker.check_readiness()
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx

from clusterconf.logging import get_logger

logger = get_logger(__name__)

# Backend name -> lightweight endpoint behind the gateway
READINESS_ENDPOINTS: dict[str, str] = {
    "dashboard": "/grafana/api/health",
    "metrics": "/prometheus/-/ready",
}


class HealthStatus(Enum):
    """Health status values for service checks."""

    UP = "up"
    DOWN = "down"


@dataclass
class ServiceHealth:
    """Health status for an individual backend.

    Attributes:
        status: The health status (up, down).
        latency_ms: Latency in milliseconds for the health check.
        error: Optional error message if the check failed.
    """

    status: HealthStatus
    latency_ms: float
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "status": self.status.value,
            "latency_ms": round(self.latency_ms, 2),
        }
        if self.error:
            result["error"] = self.error
        return result


@dataclass
class HealthCheckResult:
    """Result of a health check operation.

    Attributes:
        status: Overall health status ("healthy", "unhealthy", "degraded").
        checks: Dictionary of individual backend health checks.
        timestamp: Unix timestamp of the health check.
    """

    status: str
    checks: dict[str, ServiceHealth] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "timestamp": self.timestamp,
            "checks": {name: check.to_dict() for name, check in self.checks.items()},
        }


class HealthChecker:
    """Liveness and readiness checks for the provisioning service."""

    def __init__(self, gateway_url: str, timeout: float = 5.0) -> None:
        """Initialize the health checker.

        Args:
            gateway_url: Base URL of the gateway fronting the backends.
            timeout: Timeout in seconds for each backend check.
        """
        self.gateway_url = gateway_url.rstrip("/")
        self.timeout = timeout

    def check_liveness(self) -> HealthCheckResult:
        """Return a healthy result; reaching this code means the service is up."""
        return HealthCheckResult(status="healthy")

    async def check_readiness(self) -> HealthCheckResult:
        """Check every backend concurrently and combine the results.

        Returns:
            "healthy" when all backends are up, "unhealthy" when all are down,
            "degraded" otherwise.
        """
        names = list(READINESS_ENDPOINTS)
        results = await asyncio.gather(*(self._check(READINESS_ENDPOINTS[n]) for n in names))
        checks = dict(zip(names, results, strict=True))

        if all(check.status == HealthStatus.UP for check in checks.values()):
            status = "healthy"
        elif all(check.status == HealthStatus.DOWN for check in checks.values()):
            status = "unhealthy"
        else:
            status = "degraded"

        return HealthCheckResult(status=status, checks=checks)

    async def _check(self, path: str) -> ServiceHealth:
        url = f"{self.gateway_url}{path}"
        start_time = time.perf_counter()
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout)) as client:
                response = await client.get(url)
                response.raise_for_status()

            latency_ms = (time.perf_counter() - start_time) * 1000
            logger.debug("Health check of %s succeeded in %.2fms", url, latency_ms)
            return ServiceHealth(status=HealthStatus.UP, latency_ms=latency_ms)

        except httpx.TimeoutException:
            latency_ms = (time.perf_counter() - start_time) * 1000
            logger.warning("Health check of %s timed out after %.2fms", url, latency_ms)
            return ServiceHealth(
                status=HealthStatus.DOWN,
                latency_ms=latency_ms,
                error="Connection timed out",
            )
        except httpx.HTTPStatusError as e:
            latency_ms = (time.perf_counter() - start_time) * 1000
            error_msg = f"HTTP {e.response.status_code}"
            logger.warning("Health check of %s failed: %s", url, error_msg)
            return ServiceHealth(
                status=HealthStatus.DOWN,
                latency_ms=latency_ms,
                error=error_msg,
            )
        except httpx.RequestError as e:
            latency_ms = (time.perf_counter() - start_time) * 1000
            logger.warning("Health check of %s failed due to request error: %s", url, e)
            return ServiceHealth(
                status=HealthStatus.DOWN,
                latency_ms=latency_ms,
                error=str(e),
            )


__all__ = [
    "READINESS_ENDPOINTS",
    "HealthCheckResult",
    "HealthChecker",
    "HealthStatus",
    "ServiceHealth",
]
