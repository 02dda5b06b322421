"""HTTP client for communicating with the upload server."""

import time
import uuid
from typing import Optional

import httpx

from common.logging_config import get_logger
from uploader.config import Config

logger = get_logger(__name__)


ERROR_MESSAGES = {
    'INVALID_REQUEST': 'The server rejected the request fields.',
    'CHUNK_NOT_FOUND': 'A chunk is missing on the server. Run: resume',
    'UPLOAD_NOT_FOUND': 'The server has no record of this upload.',
    'UPLOAD_CONFLICT': 'The upload name was started with a different chunk count.',
    'FILE_TOO_LARGE': 'File too large for this endpoint.',
    'UNSUPPORTED_MEDIA_TYPE': 'Only video files are accepted.',
    'CHECKSUM_MISMATCH': 'File integrity check failed during reassembly.',
    'STORAGE_ERROR': 'The object store rejected the write.',
    'CHUNK_FETCH_FAILED': 'The server could not read a chunk back from storage.',
    'STORAGE_UNAVAILABLE': 'Storage is currently unavailable. Please try again later.',
}


class UploadRequestError(Exception):
    """
    Raised when the upload server answers with an error status.

    Attributes:
        status_code: HTTP status of the response
        error: Short error summary from the response body
        details: Underlying detail from the response body
        code: Stable error code, or "UNKNOWN"
    """

    def __init__(self, status_code: int, error: str, details: str = "", code: str = "UNKNOWN"):
        self.status_code = status_code
        self.error = error
        self.details = details
        self.code = code
        super().__init__(self.message)

    @property
    def message(self) -> str:
        hint = ERROR_MESSAGES.get(self.code)
        text = f"{self.error}: {self.details}" if self.details else self.error
        if hint:
            text = f"{text} ({hint})"
        return f"{text} [HTTP {self.status_code}]"


class UploadClient:
    """HTTP client for the upload API with retry logic and error handling."""

    def __init__(self, config: Config, session: Optional[httpx.Client] = None):
        """
        Initialize upload client.

        Args:
            config: Configuration instance
            session: Preconfigured httpx client (tests pass one with a mock transport)
        """
        self.config = config
        self.session = session or httpx.Client(
            base_url=config.get_base_url(),
            timeout=config.get_timeout()
        )
        self.request_id = None
        logger.info(f"Initialized UploadClient [base_url={config.get_base_url()}]")

    def close(self) -> None:
        self.session.close()

    def _request_with_retry(
        self,
        method: str,
        endpoint: str,
        max_retries: Optional[int] = None,
        **kwargs
    ) -> httpx.Response:
        """
        Make HTTP request with retry logic on 5xx errors and network failures.

        Args:
            method: HTTP method (GET, POST, DELETE, etc.)
            endpoint: API endpoint path
            max_retries: Max retry attempts (uses config default if None)
            **kwargs: Additional arguments to pass to httpx request

        Returns:
            HTTP response object

        Raises:
            ConnectionError: If max retries exceeded or the transport fails
        """
        retry_config = self.config.get_retry_config()
        max_retries = max_retries if max_retries is not None else retry_config['max_retries']
        backoff = retry_config['retry_backoff_multiplier']

        last_exception = None

        self.request_id = str(uuid.uuid4())
        if 'headers' not in kwargs:
            kwargs['headers'] = {}
        kwargs['headers']['X-Request-ID'] = self.request_id

        logger.debug(
            f"Making request: {method} {endpoint} [request_id={self.request_id}]"
        )

        for attempt in range(max_retries + 1):
            try:
                response = self.session.request(method, endpoint, **kwargs)

                logger.debug(
                    f"Response received: {method} {endpoint} status={response.status_code} [request_id={self.request_id}]"
                )

                if 400 <= response.status_code < 500:
                    logger.warning(
                        f"Client error: {method} {endpoint} status={response.status_code} [request_id={self.request_id}]"
                    )
                    return response

                if response.status_code >= 500 and attempt < max_retries:
                    delay = backoff ** attempt
                    logger.warning(
                        f"Server error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} status={response.status_code}, retrying in {delay}s [request_id={self.request_id}]"
                    )
                    time.sleep(delay)
                    continue

                return response

            except httpx.RequestError as e:
                last_exception = e
                if attempt < max_retries:
                    delay = backoff ** attempt
                    logger.warning(
                        f"Network error (attempt {attempt + 1}/{max_retries + 1}): "
                        f"{method} {endpoint} error={type(e).__name__}, retrying in {delay}s [request_id={self.request_id}]"
                    )
                    time.sleep(delay)
                    continue
                else:
                    logger.error(
                        f"Network error (max retries exceeded): {method} {endpoint} error={e} [request_id={self.request_id}]"
                    )

        if isinstance(last_exception, httpx.TimeoutException):
            raise ConnectionError("Request timed out. Server may be overloaded.")
        if not isinstance(last_exception, httpx.ConnectError):
            raise ConnectionError(f"Connection to upload server failed: {type(last_exception).__name__}: {last_exception}")
        raise ConnectionError("Cannot connect to upload server. Is it running?")

    def _raise_for_error(self, response: httpx.Response) -> None:
        """
        Map an error response to UploadRequestError.

        Raises:
            UploadRequestError: If the response status is 400 or above
        """
        if response.status_code < 400:
            return

        try:
            error_data = response.json()
            error = error_data.get('error', 'Request failed')
            details = error_data.get('details', '')
            code = error_data.get('code', 'UNKNOWN')
        except (ValueError, AttributeError):
            error = response.reason_phrase or 'Request failed'
            details = response.text or ''
            code = 'UNKNOWN'

        raise UploadRequestError(response.status_code, error, details, code)

    @staticmethod
    def _json_body(response: httpx.Response) -> dict:
        """
        Decode a success body.

        Raises:
            UploadRequestError: If the body is not a JSON object
        """
        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            logger.error(f"Unexpected response body: status={response.status_code} body={response.text[:200]!r}")
            raise UploadRequestError(
                response.status_code, 'Invalid response from server', response.text[:200], 'INVALID_RESPONSE'
            )
        return body

    def upload_chunk(self, file_name: str, chunk_index: int, total_chunks: int, data: bytes) -> dict:
        """
        Send one chunk.

        Returns:
            Response body with chunkFileName, size and checksum

        Raises:
            UploadRequestError: Server rejected the chunk
            ConnectionError: Server unreachable
        """
        response = self._request_with_retry(
            'POST',
            '/api/upload-chunk',
            files={'chunk': (f"{file_name}.chunk.{chunk_index}", data, 'application/octet-stream')},
            data={
                'fileName': file_name,
                'chunkIndex': str(chunk_index),
                'totalChunks': str(total_chunks),
            }
        )
        self._raise_for_error(response)
        return self._json_body(response)

    def complete_upload(self, file_name: str, total_chunks: int, checksum: Optional[str] = None) -> dict:
        """
        Ask the server to reassemble the chunks.

        Returns:
            Response body with fileName, url, size, checksum and cleanupErrors
        """
        payload = {'fileName': file_name, 'totalChunks': total_chunks}
        if checksum:
            payload['checksum'] = checksum

        response = self._request_with_retry('POST', '/api/upload-complete', json=payload)
        self._raise_for_error(response)
        return self._json_body(response)

    def upload_status(self, file_name: str, total_chunks: Optional[int] = None) -> dict:
        """
        Fetch which chunk indices the server holds.

        Returns:
            Response body with receivedChunks, missingChunks and complete
        """
        params = {'fileName': file_name}
        if total_chunks is not None:
            params['totalChunks'] = str(total_chunks)

        response = self._request_with_retry('GET', '/api/upload-status', params=params)
        self._raise_for_error(response)
        return self._json_body(response)

    def storage_health(self) -> dict:
        response = self._request_with_retry('GET', '/api/storage/health')
        self._raise_for_error(response)
        return self._json_body(response)
