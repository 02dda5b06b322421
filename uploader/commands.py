"""Command handler functions for uploader operations."""

import os
from pathlib import Path
from typing import Optional

from common.logging_config import get_logger
from uploader.config import Config
from uploader.models import (
    ResumeCommand,
    StatusCommand,
    StorageCommand,
    UploadCommand,
)
from uploader.pipeline import ChunkedUploader, UploadAbortedError, UploadResult
from uploader.upload_client import UploadClient, UploadRequestError
from uploader.utils import ProgressPrinter, format_file_size, format_index_ranges

logger = get_logger(__name__)


_config: Optional[Config] = None
_client: Optional[UploadClient] = None


def get_config() -> Config:
    """
    Get or create global Config instance.

    Returns:
        Config loaded from ~/.reelpress/config.json
    """
    global _config
    if _config is None:
        _config = Config(Path.home() / '.reelpress' / 'config.json')
    return _config


def get_client() -> UploadClient:
    """
    Get or create global UploadClient instance.

    Returns:
        UploadClient instance
    """
    global _client
    if _client is None:
        logger.debug("Creating new UploadClient instance")
        _client = UploadClient(get_config())
    return _client


def _format_result(result: UploadResult) -> str:
    lines = [
        "Upload complete!",
        f"File name: {result.file_name}",
        f"Size: {format_file_size(result.size)} in {result.total_chunks} chunks",
        f"SHA-256: {result.checksum}",
        f"URL: {result.url}",
    ]
    if result.cleanup_errors:
        lines.append(f"Warning: {len(result.cleanup_errors)} objects could not be deleted on the server:")
        for entry in result.cleanup_errors:
            lines.append(f"  {entry.get('key')}: {entry.get('error')}")
    return "\n".join(lines)


def _format_abort(e: UploadAbortedError) -> str:
    message = f"Upload failed: {e.reason}"
    if e.file_name:
        message += f"\nResume with: resume (upload name {e.file_name})"
    return message


def handle_upload(
    cmd: UploadCommand,
    client: Optional[UploadClient] = None,
    config: Optional[Config] = None
) -> str:
    """
    Handle 'upload' command.

    Args:
        cmd: UploadCommand with the local path
        client: Optional UploadClient for dependency injection (testing)
        config: Optional Config for dependency injection (testing)

    Returns:
        Success or error message
    """
    logger.info(f"Executing upload command: path={cmd.path}")
    if client is None:
        client = get_client()
    if config is None:
        config = get_config()

    if not os.path.isfile(cmd.path):
        return f"Error: File not found: {cmd.path}"

    uploader = ChunkedUploader(
        client,
        config=config,
        on_progress=ProgressPrinter(os.path.basename(cmd.path))
    )
    try:
        result = uploader.upload(cmd.path)
    except UploadAbortedError as e:
        return _format_abort(e)
    except Exception as e:
        logger.error(f"Unexpected error during upload: {e}", exc_info=True)
        return f"Unexpected error during upload: {e}"

    logger.debug("Upload command completed")
    return _format_result(result)


def handle_resume(
    cmd: ResumeCommand,
    client: Optional[UploadClient] = None,
    config: Optional[Config] = None
) -> str:
    """
    Handle 'resume' command.

    Without arguments, resumes the pending upload recorded in the config.

    Returns:
        Success or error message
    """
    if client is None:
        client = get_client()
    if config is None:
        config = get_config()

    path, file_name = cmd.path, cmd.file_name
    if path is None:
        pending = config.get_pending_upload()
        if not pending:
            return "Nothing to resume: no interrupted upload recorded."
        path, file_name = pending['path'], pending['file_name']

    logger.info(f"Executing resume command: path={path} file_name={file_name}")

    if not os.path.isfile(path):
        return f"Error: File not found: {path}"

    uploader = ChunkedUploader(
        client,
        config=config,
        on_progress=ProgressPrinter(os.path.basename(path))
    )
    try:
        result = uploader.resume(path, file_name)
    except UploadAbortedError as e:
        return _format_abort(e)
    except Exception as e:
        logger.error(f"Unexpected error during resume: {e}", exc_info=True)
        return f"Unexpected error during resume: {e}"

    return f"{_format_result(result)}\nChunks sent this session: {result.chunks_sent}"


def handle_status(cmd: StatusCommand, client: Optional[UploadClient] = None) -> str:
    """
    Handle 'status' command.

    Returns:
        Received and missing chunk ranges, or an error message
    """
    if client is None:
        client = get_client()

    try:
        body = client.upload_status(cmd.file_name, cmd.total_chunks)
    except (UploadRequestError, ConnectionError) as e:
        return f"Error: {e}"
    except Exception as e:
        logger.error(f"Unexpected error during status: {e}", exc_info=True)
        return f"Unexpected error during status: {e}"

    state = "complete" if body.get('complete') else "incomplete"
    return (
        f"{body['fileName']}: {state} ({len(body['receivedChunks'])}/{body['totalChunks']} chunks)\n"
        f"Received: {format_index_ranges(body['receivedChunks'])}\n"
        f"Missing: {format_index_ranges(body['missingChunks'])}"
    )


def handle_storage(cmd: StorageCommand, client: Optional[UploadClient] = None) -> str:
    """
    Handle 'storage' command.

    Returns:
        Backend summary or an error message
    """
    if client is None:
        client = get_client()

    try:
        body = client.storage_health()
    except (UploadRequestError, ConnectionError) as e:
        return f"Storage check failed: {e}"
    except Exception as e:
        logger.error(f"Unexpected error during storage check: {e}", exc_info=True)
        return f"Storage check failed: {e}"

    return f"Storage OK: backend={body['backend']} bucket={body['bucket']}"
