"""Domain models for import batches and durable runs."""

import base64
from dataclasses import dataclass, field
from datetime import datetime

ACC_PREFIX = "acc/"

STEP_TRANSFER = "transfer"
STEP_DESCRIBE = "describe"
STEP_INDEX = "index"
STEP_ORDER = (STEP_TRANSFER, STEP_DESCRIBE, STEP_INDEX)

STATUS_PENDING = "pending"
STATUS_RUNNING = "running"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"


def pathname_for(photo_id: str) -> str:
    """Return the deterministic storage pathname for an ACC photo id."""
    return f"{ACC_PREFIX}{photo_id}"


@dataclass(frozen=True)
class ImportStarted:
    """Photo handed to the durable pipeline."""

    id: str
    run_id: str


@dataclass(frozen=True)
class ImportSkipped:
    """Photo already present in storage."""

    id: str


@dataclass(frozen=True)
class ImportFailed:
    """Photo rejected or failed before it could be scheduled."""

    id: str
    message: str


ImportOutcome = ImportStarted | ImportSkipped | ImportFailed


@dataclass
class BatchReport:
    """Three-way partition of per-photo outcomes."""

    started: list[ImportStarted] = field(default_factory=list)
    skipped_ids: list[str] = field(default_factory=list)
    errors: list[ImportFailed] = field(default_factory=list)

    def add(self, outcome: ImportOutcome) -> None:
        """Place an outcome into its partition."""
        if isinstance(outcome, ImportStarted):
            self.started.append(outcome)
        elif isinstance(outcome, ImportSkipped):
            self.skipped_ids.append(outcome.id)
        else:
            self.errors.append(outcome)

    def __len__(self) -> int:
        return len(self.started) + len(self.skipped_ids) + len(self.errors)

    def to_dict(self) -> dict[str, object]:
        """Serialize into the batch import response body."""
        return {
            "started": [{"id": item.id, "runId": item.run_id} for item in self.started],
            "skippedIds": list(self.skipped_ids),
            "errors": [{"id": item.id, "error": item.message} for item in self.errors],
        }


@dataclass(frozen=True)
class TransferRequest:
    """Validated bytes plus metadata waiting to be transferred to storage."""

    data: bytes
    name: str
    pathname: str
    content_type: str
    size: int
    add_random_suffix: bool = False
    allow_overwrite: bool = True
    metadata: dict[str, object] = field(default_factory=dict)

    def to_payload(self) -> dict[str, object]:
        """Serialize for the durable queue."""
        return {
            "data": base64.b64encode(self.data).decode("ascii"),
            "name": self.name,
            "pathname": self.pathname,
            "contentType": self.content_type,
            "size": self.size,
            "addRandomSuffix": self.add_random_suffix,
            "allowOverwrite": self.allow_overwrite,
            "metadata": self.metadata,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, object]) -> "TransferRequest":
        """Inverse of ``to_payload``."""
        metadata = payload.get("metadata")
        return cls(
            data=base64.b64decode(str(payload.get("data", ""))),
            name=str(payload.get("name", "")),
            pathname=str(payload.get("pathname", "")),
            content_type=str(payload.get("contentType", "")),
            size=int(payload.get("size", 0)),
            add_random_suffix=bool(payload.get("addRandomSuffix", False)),
            allow_overwrite=bool(payload.get("allowOverwrite", True)),
            metadata=metadata if isinstance(metadata, dict) else {},
        )


@dataclass(frozen=True)
class ImportRun:
    """Durable record of one photo's transfer/describe/index pipeline."""

    id: str
    status: str
    step: str
    attempt: int
    payload: dict[str, object]
    result: dict[str, object]
    run_after: datetime
    step_started_at: datetime | None = None
    last_error: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Return the public tracking view of the run."""
        return {
            "id": self.id,
            "status": self.status,
            "step": self.step,
            "attempt": self.attempt,
            "error": self.last_error,
            "result": self.result,
        }
