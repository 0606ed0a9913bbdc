"""Search over and deletion of imported images."""

from fastapi import APIRouter, Depends, Query, Request

from acc_importer.api.deps import get_container, require_session
from acc_importer.errors import ValidationError

router = APIRouter(
    prefix="/api/images", tags=["images"], dependencies=[Depends(require_session)]
)


@router.get("/search")
async def search_images(
    request: Request, q: str | None = Query(default=None)
) -> dict[str, object]:
    """Return metadata of the best matching images."""
    data = get_container(request).image_library_service.search(q)
    return {"data": data}


@router.delete("")
async def delete_image(
    request: Request, pathname: str | None = Query(default=None)
) -> dict[str, object]:
    """Delete an image from storage and the index."""
    if not pathname:
        raise ValidationError("Missing pathname")
    get_container(request).image_library_service.delete(pathname)
    return {"success": True}
