"""Batch import and run tracking endpoints."""

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError as PydanticValidationError

from acc_importer.api.deps import get_container, read_json, require_session
from acc_importer.api.models import ImportRequest
from acc_importer.errors import NotFoundError, ValidationError

router = APIRouter(
    prefix="/api/upload", tags=["upload"], dependencies=[Depends(require_session)]
)


@router.post("/from-acc")
async def import_from_acc(request: Request) -> dict[str, object]:
    """Schedule up to 25 ACC photos for transfer and indexing."""
    body = await read_json(request)
    if not isinstance(body, dict):
        raise ValidationError("Invalid request body")
    try:
        payload = ImportRequest.model_validate(body)
    except PydanticValidationError as exc:
        raise ValidationError("Invalid photos") from exc

    photos = payload.candidate_photos()
    if not photos:
        raise ValidationError("No photos provided")

    report = await get_container(request).import_service.import_batch(
        photos, hub_id=payload.hub(), project_id=payload.project()
    )
    return report.to_dict()


@router.get("/runs/{run_id}")
async def get_run(run_id: str, request: Request) -> dict[str, object]:
    """Return the tracking view of a scheduled run."""
    run = get_container(request).run_queue.get(run_id)
    if run is None:
        raise NotFoundError("Run not found")
    return run.to_dict()
