"""Service layer for business logic."""

from uploadserver.services.manifest_service import ManifestService, UploadManifest
from uploadserver.services.upload_service import UploadService

__all__ = [
    "ManifestService",
    "UploadManifest",
    "UploadService",
]
