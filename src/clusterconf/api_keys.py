"""API key cache for the dashboard backend.

The dashboard backend can create API keys but offers no "get or create". The
``ApiKeyManager`` keeps the keys it created for the lifetime of the process so
that repeated sweeps do not ask for a new key per alias each time, and it can
wipe every remote key to start over.

Mutations are serialized explicitly rather than relying on the event loop:

- Each alias has at most one creation in flight. Concurrent callers for the
  same alias await the same task, so the backend sees exactly one create.
- ``reset_all`` holds a lock for its whole run and first waits for creations
  already in flight. Creations cannot start while a reset is running.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import Any

from clusterconf.errors import CacheMissError, ConflictError, ConflictKind, ProvisioningError
from clusterconf.http_executor import Gateway, RequestExecutor, basic_auth_header
from clusterconf.logging import get_logger

logger = get_logger(__name__)

KEYS_PATH = "/grafana/api/auth/keys"

# Role granted to provisioning keys; datasource creation needs admin rights
DEFAULT_KEY_ROLE = "Admin"


def _parse_json(body: str, what: str) -> Any:
    try:
        return json.loads(body)
    except json.JSONDecodeError as e:
        raise ProvisioningError(f"Dashboard backend returned invalid JSON for {what}: {e}") from e


class ApiKeyManager:
    """Process-lifetime cache mapping a cluster alias to a dashboard API key."""

    def __init__(
        self,
        executor: RequestExecutor,
        gateway: Gateway,
        admin_user: str,
        admin_password: str,
        role: str = DEFAULT_KEY_ROLE,
    ) -> None:
        """Initialize the key manager.

        Args:
            executor: Executor used for all key lifecycle calls.
            gateway: Gateway fronting the dashboard backend.
            admin_user: Dashboard admin user for basic auth.
            admin_password: Dashboard admin password for basic auth.
            role: Role assigned to created keys.
        """
        self._executor = executor
        self._gateway = gateway
        self._auth_header = basic_auth_header(admin_user, admin_password)
        self._role = role
        self._keys: dict[str, str] = {}
        self._pending: dict[str, asyncio.Task[str]] = {}
        self._lock = asyncio.Lock()

    def cached_aliases(self) -> list[str]:
        """Aliases with a cached key, sorted."""
        return sorted(self._keys)

    def _headers(self) -> dict[str, str]:
        return {"Authorization": self._auth_header}

    async def create_or_get_key(self, alias: str) -> str:
        """Return the key for ``alias``, creating it remotely on first use.

        Raises:
            CacheMissError: If the backend reports the key already exists but
                this process never cached it.
            ProvisioningError: If the remote call fails for any other reason.
        """
        async with self._lock:
            cached = self._keys.get(alias)
            if cached is not None:
                logger.debug("Using cached API key for alias '%s'", alias)
                return cached

            task = self._pending.get(alias)
            if task is None or task.done():
                task = asyncio.create_task(self._create(alias), name=f"api-key-{alias}")
                self._pending[alias] = task
                task.add_done_callback(self._forget_pending(alias))

        # One caller being cancelled must not cancel the shared creation
        return await asyncio.shield(task)

    def _forget_pending(self, alias: str) -> Callable[[asyncio.Task[str]], None]:
        def callback(task: asyncio.Task[str]) -> None:
            if self._pending.get(alias) is task:
                del self._pending[alias]

        return callback

    async def _create(self, alias: str) -> str:
        spec = self._gateway.request("POST", KEYS_PATH, self._headers())
        try:
            body = await self._executor.execute(spec, {"name": alias, "role": self._role})
        except ConflictError as e:
            if e.kind is not ConflictKind.API_KEY_EXISTS:
                raise
            cached = self._keys.get(alias)
            if cached is None:
                raise CacheMissError(
                    f"API key '{alias}' already exists in the dashboard backend "
                    "but is not cached locally; reset the keys to reconcile"
                ) from e
            logger.info("API key for alias '%s' already exists, using cached key", alias)
            return cached

        data = _parse_json(body, f"API key '{alias}'")
        key = data.get("key") if isinstance(data, dict) else None
        if not isinstance(key, str) or not key:
            raise ProvisioningError(f"Dashboard backend returned no key for alias '{alias}'")

        self._keys[alias] = key
        logger.info("Created API key for alias '%s'", alias)
        return key

    async def reset_all(self) -> None:
        """Delete every remote API key and clear the cache.

        Deletions run concurrently; a failed deletion is logged and does not
        stop the others. The cache is cleared once the listing succeeded.

        Raises:
            ProvisioningError: If the keys cannot be listed. The cache is left
                untouched in that case.
        """
        async with self._lock:
            in_flight = [t for t in self._pending.values() if not t.done()]
            if in_flight:
                logger.debug("Waiting for %d API key creation(s) before reset", len(in_flight))
                await asyncio.gather(*in_flight, return_exceptions=True)

            body = await self._executor.execute(
                self._gateway.request("GET", KEYS_PATH, self._headers())
            )
            listed = _parse_json(body, "API key listing")
            if not isinstance(listed, list):
                raise ProvisioningError(
                    f"Dashboard backend returned {type(listed).__name__} for API key listing"
                )

            key_ids = [entry["id"] for entry in listed if isinstance(entry, dict) and "id" in entry]
            results = await asyncio.gather(
                *(self._delete(key_id) for key_id in key_ids),
                return_exceptions=True,
            )

            failures = 0
            for key_id, result in zip(key_ids, results, strict=True):
                if isinstance(result, ProvisioningError):
                    failures += 1
                    logger.warning("Failed to delete API key %s: %s", key_id, result)
                elif isinstance(result, BaseException):
                    raise result

            self._keys.clear()
            logger.info(
                "Reset API keys: %d deleted, %d failed",
                len(key_ids) - failures,
                failures,
            )

    async def _delete(self, key_id: Any) -> None:
        await self._executor.execute(
            self._gateway.request("DELETE", f"{KEYS_PATH}/{key_id}", self._headers())
        )


__all__ = ["ApiKeyManager", "DEFAULT_KEY_ROLE", "KEYS_PATH"]
