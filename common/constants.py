"""Project-wide constants (chunk size, object key layout, limits)."""

CHUNK_SIZE_BYTES: int = 4 * 1024 * 1024  # 4 MiB, below the hosting platform's request-body ceiling

CHUNK_KEY_SEPARATOR: str = ".chunk."
MANIFEST_SUFFIX: str = ".manifest.json"

DEFAULT_BUCKET: str = "videos"
DEFAULT_OBJECT_STORAGE_PATH: str = "./data/objects"
DEFAULT_SERVER_PORT: int = 8000

MAX_DIRECT_UPLOAD_BYTES: int = 25 * 1024 * 1024
MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024 * 1024
ORPHAN_TTL_SECONDS: int = 24 * 3600
CLEANUP_INTERVAL_SECONDS: int = 6 * 3600
CLEANUP_DELETE_ATTEMPTS: int = 3
