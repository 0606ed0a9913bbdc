"""Durable transfer, describe and index pipeline run by the worker."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol

from acc_importer.domain.imports import (
    STEP_DESCRIBE,
    STEP_ORDER,
    STEP_TRANSFER,
    ImportRun,
    TransferRequest,
)
from acc_importer.domain.storage import BlobDescriptor
from acc_importer.services.indexing import IndexWriter
from acc_importer.services.steps import (
    POLICIES,
    FatalStepError,
    RetryableStepError,
    run_step,
)
from acc_importer.services.storage import BlobStorage
from acc_importer.services.vision import DescriptionService

DEFAULT_RETRY_SECONDS = 5
DEFAULT_LEASE_SECONDS = 300

_logger = logging.getLogger(__name__)


class RunQueue(Protocol):
    """Durable queue of import runs shared by the API and the worker."""

    def enqueue(self, payload: dict[str, object]) -> str:
        """Persist a new run at its first step and return the run id."""

    def claim_due(
        self, now: datetime, limit: int, lease_until: datetime
    ) -> list[ImportRun]:
        """Lease due runs until ``lease_until``.

        Pending runs whose ``run_after`` has passed are due, and so are running
        runs whose lease has expired. A reclaimed run counts as a new attempt.
        """

    def get(self, run_id: str) -> ImportRun | None:
        """Return a run by id, if present."""

    def advance(self, run_id: str, step: str, result: dict[str, object]) -> None:
        """Move a run to its next step, resetting the attempt counter."""

    def reschedule(
        self, run_id: str, attempt: int, run_after: datetime, error: str
    ) -> None:
        """Schedule another attempt of the current step."""

    def complete(self, run_id: str, result: dict[str, object]) -> None:
        """Mark a run as completed."""

    def fail(self, run_id: str, error: str) -> None:
        """Mark a run as permanently failed."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class ImportWorker:
    """Executes queued runs one step at a time under each step's retry policy."""

    queue: RunQueue
    storage: BlobStorage
    description_service: DescriptionService
    index_writer: IndexWriter
    batch_size: int = 10
    default_retry_seconds: int = DEFAULT_RETRY_SECONDS
    lease_seconds: int = DEFAULT_LEASE_SECONDS
    clock: Callable[[], datetime] = field(default=_utcnow)

    async def run_once(self) -> int:
        """Execute every due run once and return how many were processed."""
        now = self.clock()
        lease_until = now + timedelta(seconds=self.lease_seconds)
        runs = self.queue.claim_due(now, self.batch_size, lease_until=lease_until)
        for run in runs:
            try:
                await self.execute(run)
            except Exception:
                # The run stays leased and is claimed again once the lease expires.
                _logger.exception("Run execution failed", extra={"run_id": run.id})
        return len(runs)

    async def run_forever(self, poll_seconds: float) -> None:
        """Poll the queue until cancelled."""
        while True:
            try:
                processed = await self.run_once()
            except Exception:
                _logger.exception("Worker poll failed")
                processed = 0
            if not processed:
                await asyncio.sleep(poll_seconds)

    async def execute(self, run: ImportRun) -> None:
        """Run the current step of ``run`` and record what happens next."""
        policy = POLICIES.get(run.step)
        if policy is None:
            _logger.error("Run has unknown step", extra={"run_id": run.id})
            self.queue.fail(run.id, f"Unknown step: {run.step}")
            return
        step_id = f"{run.id}:{run.step}"
        if run.attempt > policy.max_attempts:
            _logger.error("Run lease expired too often", extra={"run_id": run.id})
            self.queue.fail(
                run.id,
                f"[{step_id}] Step lease expired "
                f"(gave up after {policy.max_attempts} attempts)",
            )
            return
        started_at = run.step_started_at or self.clock()
        try:
            output = await run_step(
                policy,
                lambda: self._perform(run),
                step_id=step_id,
                attempt=run.attempt,
                started_at=started_at,
            )
        except FatalStepError as exc:
            _logger.error("Run failed", extra={"run_id": run.id, "step": run.step})
            self.queue.fail(run.id, str(exc))
            return
        except RetryableStepError as exc:
            self._retry_or_fail(run, policy.max_attempts, exc)
            return

        result = {**run.result, **output}
        next_step = _next_step(run.step)
        if next_step is None:
            self.queue.complete(run.id, result)
            _logger.info("Run completed", extra={"run_id": run.id})
        else:
            self.queue.advance(run.id, next_step, result)

    def _retry_or_fail(
        self, run: ImportRun, max_attempts: int, exc: RetryableStepError
    ) -> None:
        if run.attempt >= max_attempts:
            self.queue.fail(
                run.id, f"{exc} (gave up after {run.attempt} attempts)"
            )
            return
        delay = exc.retry_after_seconds or self.default_retry_seconds
        _logger.warning(
            "Step will be retried",
            extra={"run_id": run.id, "step": run.step, "delay_seconds": delay},
        )
        self.queue.reschedule(
            run.id,
            attempt=run.attempt + 1,
            run_after=self.clock() + timedelta(seconds=delay),
            error=str(exc),
        )

    async def _perform(self, run: ImportRun) -> dict[str, object]:
        request = TransferRequest.from_payload(run.payload)
        if run.step == STEP_TRANSFER:
            blob = self.storage.put(
                request.pathname,
                request.data,
                request.content_type,
                add_random_suffix=request.add_random_suffix,
                allow_overwrite=request.allow_overwrite,
            )
            return {"blob": blob.to_dict()}
        if run.step == STEP_DESCRIBE:
            acc = request.metadata.get("acc")
            acc = acc if isinstance(acc, dict) else {}
            text = await self.description_service.describe(
                request.data,
                title=str(acc.get("title") or ""),
                notes=str(acc.get("description") or ""),
            )
            return {"description": text}
        blob_data = run.result.get("blob")
        blob = BlobDescriptor.from_dict(
            blob_data if isinstance(blob_data, dict) else {}
        )
        self.index_writer.index_image(
            blob,
            str(run.result.get("description", "")),
            extra_metadata=request.metadata,
        )
        return {"indexed": True}


def _next_step(step: str) -> str | None:
    position = STEP_ORDER.index(step)
    if position + 1 < len(STEP_ORDER):
        return STEP_ORDER[position + 1]
    return None
