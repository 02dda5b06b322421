"""Storage backend routes: health probe and object serving."""

import mimetypes

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse, Response

from objectstore.base import ObjectNotFoundError, StorageError
from uploadserver.exceptions import StorageUnavailableError, UploadNotFoundError
from uploadserver.schemas.uploads import StorageHealthResponse
from uploadserver.service_locator import get_object_store

router = APIRouter(tags=["Storage"])


@router.get("/api/storage/health", response_model=StorageHealthResponse)
async def storage_health():
    """
    Check that the configured object store is reachable.

    Returns:
        - backend: Storage backend name
        - bucket: Bucket the uploads are written to
        - details: Backend-specific probe result

    Raises:
        - 503: Backend unreachable
    """
    store = get_object_store()
    try:
        details = await store.check()
    except StorageError as e:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "error": StorageUnavailableError.error,
                "details": str(e),
                "code": "STORAGE_UNAVAILABLE",
                "backend": store.backend_name,
                "bucket": store.bucket,
            }
        )

    return StorageHealthResponse(
        success=True,
        backend=store.backend_name,
        bucket=store.bucket,
        details=details,
    )


@router.get("/objects/{key:path}")
async def get_object(key: str):
    """
    Serve a stored object by key.

    Raises:
        - 404: Object does not exist
        - 503: Backend unreachable
    """
    store = get_object_store()
    try:
        data = await store.download(key)
    except ObjectNotFoundError:
        raise UploadNotFoundError(f"Object {key} not found", error="Object not found")
    except StorageError as e:
        raise StorageUnavailableError(str(e))

    media_type = mimetypes.guess_type(key)[0] or "application/octet-stream"
    return Response(content=data, media_type=media_type)
