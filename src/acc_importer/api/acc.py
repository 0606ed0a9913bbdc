"""ACC catalog endpoints: hubs, projects, photos and the dedup check."""

from fastapi import APIRouter, Depends, Query, Request
from pydantic import ValidationError as PydanticValidationError

from acc_importer.api.deps import get_container, read_json, require_session
from acc_importer.api.models import PhotoCheckRequest, photo_to_dict
from acc_importer.domain.sessions import AccSession
from acc_importer.errors import ValidationError

router = APIRouter(prefix="/api/acc", tags=["acc"])


@router.get("/hubs")
async def list_hubs(
    request: Request, session: AccSession = Depends(require_session)
) -> dict[str, object]:
    """Return hubs visible to the signed-in actor."""
    hubs = await get_container(request).catalog_service.list_hubs(session)
    return {"hubs": [{"id": hub.id, "name": hub.name} for hub in hubs]}


@router.get("/projects")
async def list_projects(
    request: Request,
    hub_id: str | None = Query(default=None, alias="hubId"),
    session: AccSession = Depends(require_session),
) -> dict[str, object]:
    """Return projects of a hub."""
    if not hub_id:
        raise ValidationError("Missing hubId")
    projects = await get_container(request).catalog_service.list_projects(
        session, hub_id
    )
    return {
        "projects": [{"id": project.id, "name": project.name} for project in projects]
    }


@router.get("/photos")
async def list_photos(
    request: Request,
    project_id: str | None = Query(default=None, alias="projectId"),
    limit: str = "",
    session: AccSession = Depends(require_session),
) -> dict[str, object]:
    """Return photos of a project, following the upstream cursor chain."""
    if not project_id:
        raise ValidationError("Missing projectId")
    photos = await get_container(request).catalog_service.list_photos(
        session, project_id, int(limit) if limit.isdigit() else None
    )
    return {"photos": [photo_to_dict(photo) for photo in photos]}


@router.post("/photos/check", dependencies=[Depends(require_session)])
async def check_photos(request: Request) -> dict[str, object]:
    """Return which of the given photo ids are already stored."""
    try:
        payload = PhotoCheckRequest.model_validate(await read_json(request))
    except PydanticValidationError as exc:
        raise ValidationError("Invalid photoIds") from exc
    if not payload.photo_ids:
        return {"uploadedIds": []}
    uploaded = get_container(request).dedup_service.find_uploaded_ids(
        payload.photo_ids
    )
    return {"uploadedIds": uploaded}
