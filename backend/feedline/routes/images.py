"""
Feedline Backend - Stored Image Route
=======================================

What:  Serves files from the images bucket by their stored name.
How:   The name is resolved strictly inside the bucket; anything that would
       escape it, or does not exist, is a 404 in the error envelope.
       Content-Type comes from a fixed image map, never from a guess, and
       anything without an image extension is sent as an opaque download.
"""

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse

from feedline.services.upload_service import ImageStorage

router = APIRouter(tags=["Images"])

MEDIA_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
}

# Why: files are user-supplied; even a mislabelled one must not run script
# on the API origin.
IMAGE_RESPONSE_HEADERS = {
    "Cache-Control": "public, max-age=86400",
    "Content-Security-Policy": "default-src 'none'; sandbox",
}


@router.get(
    "/images/{name}",
    summary="Serve an uploaded image",
    responses={
        200: {"description": "Image file"},
        404: {"description": "Image not found"},
    },
)
async def serve_image(name: str, request: Request) -> FileResponse:
    storage: ImageStorage = request.app.state.storage
    path = storage.existing_path(name)
    media_type = MEDIA_TYPES.get(path.suffix.lower())
    if media_type is None:
        return FileResponse(
            path=str(path),
            media_type="application/octet-stream",
            filename=path.name,
            headers=IMAGE_RESPONSE_HEADERS,
        )
    return FileResponse(path=str(path), media_type=media_type, headers=IMAGE_RESPONSE_HEADERS)
