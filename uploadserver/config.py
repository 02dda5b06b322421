"""Configuration settings for the upload server."""

import math
import os

from common.constants import (
    CHUNK_SIZE_BYTES,
    CLEANUP_INTERVAL_SECONDS,
    DEFAULT_BUCKET,
    DEFAULT_OBJECT_STORAGE_PATH,
    DEFAULT_SERVER_PORT,
    MAX_DIRECT_UPLOAD_BYTES,
    MAX_UPLOAD_BYTES,
    ORPHAN_TTL_SECONDS,
)


SERVER_HOST = os.environ.get("REELPRESS_HOST", "0.0.0.0")

SERVER_PORT = int(os.environ.get("REELPRESS_PORT", str(DEFAULT_SERVER_PORT)))

STORAGE_BACKEND = os.environ.get("REELPRESS_STORAGE_BACKEND", "local")

STORAGE_BUCKET = os.environ.get("REELPRESS_STORAGE_BUCKET", DEFAULT_BUCKET)

STORAGE_PATH = os.environ.get("REELPRESS_STORAGE_PATH", DEFAULT_OBJECT_STORAGE_PATH)

PUBLIC_BASE_URL = os.environ.get("REELPRESS_PUBLIC_BASE_URL", f"http://localhost:{SERVER_PORT}")

SUPABASE_URL = os.environ.get("SUPABASE_URL")

SUPABASE_SERVICE_ROLE_KEY = os.environ.get("SUPABASE_SERVICE_ROLE_KEY")

MAX_DIRECT_UPLOAD_SIZE = int(os.environ.get("REELPRESS_MAX_DIRECT_UPLOAD_BYTES", str(MAX_DIRECT_UPLOAD_BYTES)))

MAX_UPLOAD_SIZE = int(os.environ.get("REELPRESS_MAX_UPLOAD_BYTES", str(MAX_UPLOAD_BYTES)))

MAX_TOTAL_CHUNKS = math.ceil(MAX_UPLOAD_SIZE / CHUNK_SIZE_BYTES)

ORPHAN_TTL = int(os.environ.get("REELPRESS_ORPHAN_TTL_SECONDS", str(ORPHAN_TTL_SECONDS)))

CLEANUP_INTERVAL = int(os.environ.get("REELPRESS_CLEANUP_INTERVAL_SECONDS", str(CLEANUP_INTERVAL_SECONDS)))

ORPHAN_LOG_PATH = os.environ.get("REELPRESS_ORPHAN_LOG_PATH", "./data/orphaned_objects.json")

CLEANUP_RETRY_BASE_DELAY = float(os.environ.get("REELPRESS_CLEANUP_RETRY_DELAY_SECONDS", "0.5"))
