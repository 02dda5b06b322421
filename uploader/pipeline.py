"""Chunked upload driver: split, send chunks in order, reassemble."""

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Set

from common.logging_config import get_logger
from common.types import UploadDescriptor
from uploader.config import Config
from uploader.splitter import EmptyFileError, describe_file, iter_chunks, read_chunk
from uploader.state import InvalidTransitionError, UploadState, UploadStateMachine
from uploader.upload_client import UploadClient, UploadRequestError

logger = get_logger(__name__)


@dataclass(frozen=True)
class UploadResult:
    file_name: str
    url: str
    size: int
    checksum: str
    total_chunks: int
    chunks_sent: int
    cleanup_errors: List[dict] = field(default_factory=list)


class UploadAbortedError(Exception):
    """
    Raised when a chunked upload stops before reassembly succeeds.

    Attributes:
        state: Final failed(reason) state of the upload
        file_name: Upload name, if splitting got far enough to generate one
    """

    def __init__(self, reason: str, state: UploadState, file_name: Optional[str] = None):
        super().__init__(reason)
        self.reason = reason
        self.state = state
        self.file_name = file_name


class ChunkedUploader:
    """
    Uploads one file at a time through the chunk endpoints.

    Chunks go strictly in index order, one request at a time; the first
    failure aborts and reassembly is requested only after every chunk
    succeeded.
    """

    def __init__(
        self,
        client: UploadClient,
        config: Optional[Config] = None,
        on_progress: Optional[Callable[[float], None]] = None,
        on_state_change: Optional[Callable[[UploadState], None]] = None,
    ):
        self.client = client
        self.config = config
        self.on_progress = on_progress
        self.on_state_change = on_state_change
        self.machine: Optional[UploadStateMachine] = None

    def upload(self, path: str) -> UploadResult:
        """
        Split path into chunks, upload all of them and reassemble.

        Raises:
            UploadAbortedError: On an empty or unreadable file, a file that changed
                while uploading, or any failed request
        """
        self.machine = UploadStateMachine(self.on_state_change)
        descriptor = self._split(path)
        logger.info(f"Uploading {path} as {descriptor.file_name} in {descriptor.total_chunks} chunks")

        self._remember(path, descriptor)
        self.machine.start_uploading(descriptor.total_chunks)

        try:
            with open(path, 'rb') as f:
                for index, data in iter_chunks(f, descriptor.chunk_size):
                    self._send_chunk(descriptor, index, data)
        except (UploadRequestError, ConnectionError, OSError) as e:
            self._abort(str(e), descriptor)

        return self._assemble(descriptor, chunks_sent=descriptor.total_chunks)

    def resume(self, path: str, file_name: str) -> UploadResult:
        """
        Continue an interrupted upload under its original upload name.

        Asks the server which chunks it holds and sends only the missing ones.

        Raises:
            UploadAbortedError: On a failed request or a chunk-count conflict
        """
        self.machine = UploadStateMachine(self.on_state_change)
        descriptor = self._split(path, file_name=file_name)

        try:
            status = self.client.upload_status(file_name, descriptor.total_chunks)
        except (UploadRequestError, ConnectionError) as e:
            self._abort(str(e), descriptor)

        received: Set[int] = set(status.get('receivedChunks', []))
        missing = [i for i in range(descriptor.total_chunks) if i not in received]
        logger.info(f"Resuming {file_name}: {len(received)} chunks on server, {len(missing)} to send")

        self._remember(path, descriptor)
        self.machine.start_uploading(descriptor.total_chunks)

        try:
            with open(path, 'rb') as f:
                for index in range(descriptor.total_chunks):
                    if index in received:
                        self.machine.skip_to(index + 1)
                        self._report_progress()
                        continue
                    self._send_chunk(descriptor, index, read_chunk(f, descriptor, index))
        except (UploadRequestError, ConnectionError, OSError) as e:
            self._abort(str(e), descriptor)

        return self._assemble(descriptor, chunks_sent=len(missing))

    def _split(self, path: str, file_name: Optional[str] = None) -> UploadDescriptor:
        self.machine.start_splitting()
        try:
            descriptor = describe_file(path, file_name=file_name)
        except EmptyFileError:
            reason = f"File is empty: {path}"
        except ValueError as e:
            reason = f"Cannot upload {path}: {e}"
        except OSError as e:
            reason = f"Cannot read {path}: {e}"
        else:
            return descriptor

        self.machine.fail(reason)
        raise UploadAbortedError(reason, self.machine.state, file_name)

    def _send_chunk(self, descriptor: UploadDescriptor, index: int, data: bytes) -> None:
        if index >= descriptor.total_chunks or len(data) != descriptor.chunk_length(index):
            self._abort(self._changed_reason(descriptor), descriptor)
        self.client.upload_chunk(descriptor.file_name, index, descriptor.total_chunks, data)
        self.machine.chunk_uploaded(index)
        self._report_progress()

    def _assemble(self, descriptor: UploadDescriptor, chunks_sent: int) -> UploadResult:
        try:
            self.machine.start_assembling()
        except InvalidTransitionError:
            self._abort(self._changed_reason(descriptor), descriptor)

        try:
            body = self.client.complete_upload(
                descriptor.file_name, descriptor.total_chunks, checksum=descriptor.checksum
            )
        except (UploadRequestError, ConnectionError) as e:
            self._abort(str(e), descriptor)

        self.machine.complete()
        if self.config is not None:
            self.config.clear_pending_upload()

        cleanup_errors = body.get('cleanupErrors', [])
        if cleanup_errors:
            logger.warning(f"{len(cleanup_errors)} objects were left behind after reassembling {descriptor.file_name}")

        return UploadResult(
            file_name=body['fileName'],
            url=body['url'],
            size=body['size'],
            checksum=body.get('checksum', descriptor.checksum),
            total_chunks=descriptor.total_chunks,
            chunks_sent=chunks_sent,
            cleanup_errors=cleanup_errors,
        )

    def _remember(self, path: str, descriptor: UploadDescriptor) -> None:
        if self.config is not None:
            self.config.set_pending_upload(path, descriptor.file_name, descriptor.total_chunks)

    def _report_progress(self) -> None:
        if self.on_progress is not None:
            self.on_progress(self.machine.state.progress)

    @staticmethod
    def _changed_reason(descriptor: UploadDescriptor) -> str:
        return f"File changed during upload: expected {descriptor.file_size} bytes in {descriptor.total_chunks} chunks"

    def _abort(self, reason: str, descriptor: UploadDescriptor) -> None:
        logger.error(f"Upload of {descriptor.file_name} failed in state {self.machine.state}: {reason}")
        self.machine.fail(reason)
        raise UploadAbortedError(reason, self.machine.state, descriptor.file_name)
