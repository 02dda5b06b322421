"""API routes package."""

from uploadserver.routes.storage_routes import router as storage_router
from uploadserver.routes.upload_routes import router as upload_router

__all__ = ["storage_router", "upload_router"]
