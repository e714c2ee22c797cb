"""Batch orchestration of the provisioning pipeline.

A sweep reads every distinct descriptor from the config store, resets the
dashboard API keys once, and then runs the step pipeline for all descriptors
concurrently. Every descriptor gets a verdict: one failing cluster never
cancels or skips the others. The aggregate ``BatchResult`` is computed once
all pipelines have settled.

Sweeps are triggered in two places:

- ``POST /api/loadAllClusters`` runs one and returns the result to the caller.
- ``StartupSweep`` runs one shortly after process start to reconcile clusters
  registered while the service was down. Its result is only logged.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable
from dataclasses import dataclass

from clusterconf.api_keys import ApiKeyManager
from clusterconf.descriptor import ClusterDescriptor
from clusterconf.errors import PersistenceError, ProvisioningError
from clusterconf.logging import get_logger
from clusterconf.pipeline import ProvisionOutcome, StepPipeline
from clusterconf.store import ConfigStore

logger = get_logger(__name__)

ALL_CONFIGURED_MESSAGE = "All clusters configured successfully"


@dataclass(frozen=True)
class BatchResult:
    """Aggregate of one sweep.

    Attributes:
        outcomes: One outcome per distinct descriptor, in store order.
        error: Set when the sweep could not start (e.g. unreadable store).
    """

    outcomes: tuple[ProvisionOutcome, ...] = ()
    error: str | None = None

    @property
    def success(self) -> bool:
        """True when the sweep ran and every descriptor succeeded."""
        return self.error is None and all(o.success for o in self.outcomes)

    @property
    def failures(self) -> tuple[ProvisionOutcome, ...]:
        return tuple(o for o in self.outcomes if not o.success)

    @property
    def message(self) -> str:
        if self.error is not None:
            return f"Error loading and configuring clusters: {self.error}"
        if self.success:
            return ALL_CONFIGURED_MESSAGE
        joined = ", ".join(f.message for f in self.failures)
        return f"Some clusters failed to configure: {joined}"


class BatchOrchestrator:
    """Runs the step pipeline over the whole config store."""

    def __init__(
        self,
        store: ConfigStore,
        pipeline: StepPipeline,
        key_manager: ApiKeyManager,
    ) -> None:
        self._store = store
        self._pipeline = pipeline
        self._key_manager = key_manager
        # Overlapping sweeps would interleave key resets with key creation
        self._sweep_lock = asyncio.Lock()

    @property
    def store(self) -> ConfigStore:
        return self._store

    async def run_sweep(self) -> BatchResult:
        """Provision every distinct descriptor in the store.

        Never raises; failures of any kind are reported in the result.
        """
        async with self._sweep_lock:
            try:
                descriptors = self._store.distinct()
            except PersistenceError as e:
                logger.error("Sweep aborted: %s", e)
                return BatchResult(error=str(e))

            if not descriptors:
                logger.info("Sweep found no clusters to configure")
                return BatchResult()

            logger.info("Starting sweep over %d cluster(s)", len(descriptors))

            try:
                await self._key_manager.reset_all()
            except ProvisioningError as e:
                logger.error("API key reset failed, skipping sweep: %s", e)
                return BatchResult(
                    outcomes=tuple(
                        ProvisionOutcome.failed(d, f"API key reset failed: {e}")
                        for d in descriptors
                    )
                )

            results = await asyncio.gather(
                *(self._pipeline.run(d) for d in descriptors),
                return_exceptions=True,
            )

        outcomes: list[ProvisionOutcome] = []
        for descriptor, result in zip(descriptors, results, strict=True):
            if isinstance(result, ProvisionOutcome):
                outcomes.append(result)
            elif isinstance(result, asyncio.CancelledError):
                raise result
            else:
                logger.error(
                    "Unexpected error provisioning %s",
                    descriptor.identity,
                    exc_info=result,
                    extra={"cluster": descriptor.identity},
                )
                outcomes.append(ProvisionOutcome.failed(descriptor, result))

        batch = BatchResult(outcomes=tuple(outcomes))
        self._log_result(batch)
        return batch

    async def configure_one(self, descriptor: ClusterDescriptor) -> ProvisionOutcome:
        """Persist one descriptor and provision it right away.

        The API keys are not reset; that only happens for whole sweeps.

        Raises:
            PersistenceError: If the descriptor cannot be saved.
        """
        self._store.upsert(descriptor)
        outcome = await self._pipeline.run(descriptor)
        if not outcome.success:
            logger.error("%s", outcome.message, extra={"cluster": descriptor.identity})
        return outcome

    @staticmethod
    def _log_result(batch: BatchResult) -> None:
        if batch.success:
            logger.info(
                "Sweep finished: %d cluster(s) configured",
                len(batch.outcomes),
                extra={"status": "success"},
            )
        else:
            logger.error(
                "Sweep finished with %d failure(s) out of %d: %s",
                len(batch.failures),
                len(batch.outcomes),
                batch.message,
                extra={"status": "failure", "failures": [f.identity for f in batch.failures]},
            )


SweepHook = Callable[[BatchResult | None], None]


class StartupSweep:
    """One sweep run in the background after a fixed delay.

    The result is only logged. ``on_complete`` is called with the result (or
    ``None`` when there was no config file to sweep), and ``wait()`` lets tests
    and shutdown code await the sweep instead of sleeping.
    """

    def __init__(
        self,
        orchestrator: BatchOrchestrator,
        delay: float,
        on_complete: SweepHook | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._delay = delay
        self._on_complete = on_complete
        self._task: asyncio.Task[BatchResult | None] | None = None

    @property
    def started(self) -> bool:
        return self._task is not None

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def start(self) -> asyncio.Task[BatchResult | None]:
        """Schedule the sweep on the running event loop. Idempotent."""
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name="startup-sweep")
            logger.info("Startup sweep scheduled in %.1fs", self._delay)
        return self._task

    async def _run(self) -> BatchResult | None:
        if self._delay > 0:
            await asyncio.sleep(self._delay)

        result: BatchResult | None = None
        if not self._orchestrator.store.exists():
            logger.info(
                "Startup sweep skipped: configuration file %s not found",
                self._orchestrator.store.path,
            )
        else:
            result = await self._orchestrator.run_sweep()
            level_method = logger.info if result.success else logger.error
            level_method("Startup sweep result: %s", result.message)

        if self._on_complete is not None:
            self._on_complete(result)
        return result

    async def wait(self) -> BatchResult | None:
        """Wait for the sweep to finish and return its result.

        Raises:
            RuntimeError: If the sweep was never started.
        """
        if self._task is None:
            raise RuntimeError("Startup sweep was not started")
        return await self._task

    async def cancel(self) -> None:
        """Cancel the sweep if it is still pending and wait for it to stop."""
        if self._task is None or self._task.done():
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        logger.info("Startup sweep cancelled")


__all__ = [
    "ALL_CONFIGURED_MESSAGE",
    "BatchOrchestrator",
    "BatchResult",
    "StartupSweep",
]
