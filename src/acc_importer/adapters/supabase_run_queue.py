"""Supabase-backed durable run queue."""

from dataclasses import dataclass, replace
from datetime import UTC, datetime

from supabase import Client

from acc_importer.domain.imports import (
    STATUS_COMPLETED,
    STATUS_FAILED,
    STATUS_PENDING,
    STATUS_RUNNING,
    STEP_TRANSFER,
    ImportRun,
)
from acc_importer.services.pipeline import RunQueue

_COLUMNS = (
    "id, status, step, attempt, payload, result, run_after, "
    "step_started_at, last_error"
)


@dataclass
class SupabaseRunQueue(RunQueue):
    """Import runs stored in the ``import_runs`` table."""

    client: Client

    def enqueue(self, payload: dict[str, object]) -> str:
        """Insert a pending run at its first step and return its id."""
        response = (
            self.client.table("import_runs")
            .insert(
                {
                    "status": STATUS_PENDING,
                    "step": STEP_TRANSFER,
                    "attempt": 1,
                    "payload": payload,
                    "result": {},
                    "run_after": _now().isoformat(),
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to enqueue import run")
        return str(response.data[0]["id"])

    def claim_due(
        self, now: datetime, limit: int, lease_until: datetime
    ) -> list[ImportRun]:
        """Lease due runs and return the ones this call won.

        A claimed row keeps its lease expiry in ``run_after``. A ``running`` row
        whose lease has lapsed was abandoned by its worker and is claimed
        again as its next attempt. The update is conditional on the status and
        ``run_after`` read here, so only one worker wins each row.
        """
        response = (
            self.client.table("import_runs")
            .select(_COLUMNS)
            .in_("status", [STATUS_PENDING, STATUS_RUNNING])
            .lte("run_after", now.isoformat())
            .order("run_after")
            .limit(limit)
            .execute()
        )
        claimed: list[ImportRun] = []
        for row in response.data or []:
            run = _run_from_row(row)
            started_at = run.step_started_at or now
            attempt = run.attempt + 1 if run.status == STATUS_RUNNING else run.attempt
            update = (
                self.client.table("import_runs")
                .update(
                    {
                        "status": STATUS_RUNNING,
                        "attempt": attempt,
                        "run_after": lease_until.isoformat(),
                        "step_started_at": started_at.isoformat(),
                        "updated_at": now.isoformat(),
                    }
                )
                .eq("id", run.id)
                .eq("status", run.status)
                .eq("run_after", row["run_after"])
                .execute()
            )
            if update.data:
                claimed.append(
                    replace(
                        run,
                        status=STATUS_RUNNING,
                        attempt=attempt,
                        run_after=lease_until,
                        step_started_at=started_at,
                    )
                )
        return claimed

    def get(self, run_id: str) -> ImportRun | None:
        """Return a run by id, if present."""
        response = (
            self.client.table("import_runs")
            .select(_COLUMNS)
            .eq("id", run_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _run_from_row(response.data[0])

    def advance(self, run_id: str, step: str, result: dict[str, object]) -> None:
        """Move a run to its next step with a fresh attempt counter."""
        self._update(
            run_id,
            {
                "status": STATUS_PENDING,
                "step": step,
                "attempt": 1,
                "result": result,
                "run_after": _now().isoformat(),
                "step_started_at": None,
                "last_error": None,
            },
        )

    def reschedule(
        self, run_id: str, attempt: int, run_after: datetime, error: str
    ) -> None:
        """Put a run back in the queue for another attempt of the same step."""
        self._update(
            run_id,
            {
                "status": STATUS_PENDING,
                "attempt": attempt,
                "run_after": run_after.isoformat(),
                "step_started_at": None,
                "last_error": error,
            },
        )

    def complete(self, run_id: str, result: dict[str, object]) -> None:
        """Finish a run and drop its transfer payload."""
        self._update(
            run_id,
            {"status": STATUS_COMPLETED, "result": result, "payload": {}},
        )

    def fail(self, run_id: str, error: str) -> None:
        """Fail a run permanently and drop its transfer payload."""
        self._update(
            run_id,
            {"status": STATUS_FAILED, "last_error": error, "payload": {}},
        )

    def _update(self, run_id: str, values: dict[str, object]) -> None:
        self.client.table("import_runs").update(
            {**values, "updated_at": _now().isoformat()}
        ).eq("id", run_id).execute()


def _now() -> datetime:
    return datetime.now(tz=UTC)


def _run_from_row(row: dict[str, object]) -> ImportRun:
    step_started_at = row.get("step_started_at")
    return ImportRun(
        id=str(row["id"]),
        status=str(row["status"]),
        step=str(row["step"]),
        attempt=int(row["attempt"]),
        payload=row.get("payload") or {},
        result=row.get("result") or {},
        run_after=datetime.fromisoformat(str(row["run_after"])),
        step_started_at=(
            datetime.fromisoformat(str(step_started_at)) if step_started_at else None
        ),
        last_error=row.get("last_error"),
    )
