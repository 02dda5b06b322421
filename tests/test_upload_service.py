"""Tests for the upload service layer."""

import pytest

from common.checksum import compute_checksum
from common.constants import CHUNK_SIZE_BYTES
from common.keys import chunk_key, manifest_key
from objectstore.base import StorageError
from objectstore.memory_store import InMemoryObjectStore
from uploadserver.exceptions import (
    ChecksumMismatchError,
    ChunkFetchError,
    ChunkNotFoundError,
    FileTooLargeError,
    InvalidRequestError,
    StorageWriteError,
    UnsupportedMediaTypeError,
    UploadConflictError,
    UploadNotFoundError,
)
from uploadserver.services.upload_service import UploadService


class FlakyStore(InMemoryObjectStore):
    """In-memory store whose failures can be switched on per operation."""

    def __init__(self):
        super().__init__('videos', public_base_url='http://testserver')
        self.fail_remove_keys = set()
        self.fail_download_keys = set()
        self.fail_uploads = False
        self.remove_calls = []

    async def upload(self, key, data, content_type=None):
        if self.fail_uploads:
            raise StorageError('Bucket not found', key=key)
        return await super().upload(key, data, content_type)

    async def download(self, key):
        if key in self.fail_download_keys:
            raise StorageError('connection reset', key=key)
        return await super().download(key)

    async def remove(self, keys):
        self.remove_calls.append(list(keys))
        if any(key in self.fail_remove_keys for key in keys):
            raise StorageError('permission denied')
        await super().remove(keys)


@pytest.fixture
def store():
    return FlakyStore()


@pytest.fixture
def service(store, orphan_log):
    return UploadService(store=store, orphan_log=orphan_log, retry_base_delay=0)


@pytest.mark.asyncio
async def test_store_chunk_writes_key_and_manifest(service, store):
    """A chunk lands under its derived key and is recorded in the manifest."""
    stored = await service.store_chunk('abc', 0, 2, b'hello')

    assert stored.key == 'abc.chunk.0'
    assert stored.record.size == 5
    assert stored.record.checksum == compute_checksum(b'hello')
    assert await store.download('abc.chunk.0') == b'hello'

    manifest = await service.manifests.load('abc')
    assert manifest.total_chunks == 2
    assert manifest.received_indices() == [0]
    assert manifest.missing_indices() == [1]


@pytest.mark.asyncio
@pytest.mark.parametrize('file_name,index,total', [
    ('abc', 3, 3),
    ('abc', 5, 3),
    ('abc', -1, 3),
    ('abc', 0, 0),
    ('', 0, 1),
    ('../etc', 0, 1),
    ('abc', 0, 10 ** 7),
    ('1700000000000-trailer.chunk.2', 0, 1),
    ('abc.manifest.json', 0, 1),
])
async def test_store_chunk_rejects_bad_coordinates(service, store, file_name, index, total):
    """Out-of-range indices and unusable names fail before any store access."""
    with pytest.raises(InvalidRequestError):
        await service.store_chunk(file_name, index, total, b'data')
    assert await store.list_objects() == []


@pytest.mark.asyncio
async def test_store_chunk_rejects_empty_and_oversized(service):
    """Chunks must be between 1 byte and 4 MiB."""
    with pytest.raises(InvalidRequestError):
        await service.store_chunk('abc', 0, 1, b'')
    with pytest.raises(FileTooLargeError):
        await service.store_chunk('abc', 0, 1, b'x' * (CHUNK_SIZE_BYTES + 1))


@pytest.mark.asyncio
async def test_store_chunk_conflicting_total(service, store):
    """A second totalChunks for the same name is a conflict and writes nothing."""
    await service.store_chunk('abc', 0, 3, b'a')

    with pytest.raises(UploadConflictError):
        await service.store_chunk('abc', 1, 4, b'b')
    assert not await store.exists('abc.chunk.1')


@pytest.mark.asyncio
async def test_store_chunk_write_failure(service, store):
    """Store write failures surface the store's message."""
    store.fail_uploads = True

    with pytest.raises(StorageWriteError) as exc_info:
        await service.store_chunk('abc', 0, 1, b'a')
    assert exc_info.value.error == 'Chunk upload failed'
    assert 'Bucket not found' in exc_info.value.details


@pytest.mark.asyncio
async def test_complete_upload_concatenates_in_index_order(service, store):
    """Chunks uploaded out of order are joined by ascending index."""
    await service.store_chunk('abc', 2, 3, b'CC')
    await service.store_chunk('abc', 0, 3, b'AAAA')
    await service.store_chunk('abc', 1, 3, b'BBBB')

    assembled = await service.complete_upload('abc', 3)

    assert assembled.size == 10
    assert assembled.checksum == compute_checksum(b'AAAABBBBCC')
    assert assembled.url == 'http://testserver/objects/abc'
    assert assembled.cleanup_errors == []
    assert await store.download('abc') == b'AAAABBBBCC'
    assert [obj.key for obj in await store.list_objects()] == ['abc']


@pytest.mark.asyncio
async def test_complete_upload_last_write_wins(service, store):
    """Re-uploading chunk 0 keeps only the second payload."""
    await service.store_chunk('abc', 0, 2, b'first')
    await service.store_chunk('abc', 0, 2, b'second')
    await service.store_chunk('abc', 1, 2, b'-tail')

    await service.complete_upload('abc', 2)

    assert await store.download('abc') == b'second-tail'


@pytest.mark.asyncio
async def test_complete_upload_missing_chunk(service, store):
    """A gap fails naming the index, writes nothing and keeps the chunks."""
    await service.store_chunk('abc', 0, 3, b'a')
    await service.store_chunk('abc', 2, 3, b'c')

    with pytest.raises(ChunkNotFoundError) as exc_info:
        await service.complete_upload('abc', 3)

    assert exc_info.value.chunk_index == 1
    assert 'Chunk 1' in exc_info.value.details
    assert not await store.exists('abc')
    assert await store.exists('abc.chunk.0')
    assert await store.exists('abc.chunk.2')


@pytest.mark.asyncio
async def test_complete_upload_fetch_failure(service, store):
    """Store errors while reading a chunk are distinguished from a missing chunk."""
    await service.store_chunk('abc', 0, 2, b'a')
    await service.store_chunk('abc', 1, 2, b'b')
    store.fail_download_keys.add('abc.chunk.1')

    with pytest.raises(ChunkFetchError) as exc_info:
        await service.complete_upload('abc', 2)
    assert exc_info.value.chunk_index == 1
    assert not await store.exists('abc')


@pytest.mark.asyncio
async def test_complete_upload_without_manifest(service, store):
    """Chunks written straight to the store still reassemble."""
    await store.upload(chunk_key('raw', 0), b'12')
    await store.upload(chunk_key('raw', 1), b'34')

    assembled = await service.complete_upload('raw', 2)

    assert assembled.size == 4
    assert await store.download('raw') == b'1234'


@pytest.mark.asyncio
async def test_complete_upload_expected_checksum(service, store):
    """A matching whole-file digest passes; a wrong one writes nothing and keeps chunks."""
    await service.store_chunk('abc', 0, 1, b'video')

    with pytest.raises(ChecksumMismatchError):
        await service.complete_upload('abc', 1, expected_checksum='0' * 64)
    assert not await store.exists('abc')
    assert await store.exists('abc.chunk.0')

    assembled = await service.complete_upload('abc', 1, expected_checksum=compute_checksum(b'video').upper())
    assert assembled.checksum == compute_checksum(b'video')


@pytest.mark.asyncio
async def test_complete_upload_detects_corrupted_chunk(service, store):
    """A chunk whose bytes changed since upload fails the manifest check."""
    await service.store_chunk('abc', 0, 1, b'original')
    await store.upload('abc.chunk.0', b'tampered')

    with pytest.raises(ChecksumMismatchError):
        await service.complete_upload('abc', 1)


@pytest.mark.asyncio
async def test_complete_upload_conflicting_total(service):
    """Reassembly with a different chunk count than the manifest is a conflict."""
    await service.store_chunk('abc', 0, 2, b'a')

    with pytest.raises(UploadConflictError):
        await service.complete_upload('abc', 3)


@pytest.mark.asyncio
async def test_cleanup_failures_are_reported_and_logged(service, store, orphan_log):
    """Keys that cannot be deleted are retried, returned and written to the orphan log."""
    await service.store_chunk('abc', 0, 2, b'a')
    await service.store_chunk('abc', 1, 2, b'b')
    store.fail_remove_keys.add('abc.chunk.1')

    assembled = await service.complete_upload('abc', 2)

    assert await store.download('abc') == b'ab'
    assert assembled.cleanup_errors == [{'key': 'abc.chunk.1', 'error': 'permission denied'}]
    assert store.remove_calls.count(['abc.chunk.1']) == service.delete_attempts
    assert not await store.exists('abc.chunk.0')
    assert not await store.exists(manifest_key('abc'))
    assert [entry['key'] for entry in orphan_log.load()] == ['abc.chunk.1']


@pytest.mark.asyncio
async def test_upload_status_from_manifest(service):
    """Status lists received and missing indices."""
    await service.store_chunk('abc', 0, 4, b'a')
    await service.store_chunk('abc', 2, 4, b'c')

    status = await service.upload_status('abc')

    assert status.total_chunks == 4
    assert status.received_chunks == [0, 2]
    assert status.missing_chunks == [1, 3]
    assert not status.complete


@pytest.mark.asyncio
async def test_upload_status_checks_chunk_keys_without_manifest(service, store):
    """Without a manifest, totalChunks lets the service check each chunk key."""
    await store.upload(chunk_key('raw', 1), b'x')

    status = await service.upload_status('raw', total_chunks=2)
    assert status.received_chunks == [1]
    assert status.missing_chunks == [0]

    with pytest.raises(UploadNotFoundError):
        await service.upload_status('raw')


@pytest.mark.asyncio
async def test_direct_upload(service, store):
    """Small videos are stored in one write under a timestamped name."""
    uploaded = await service.direct_upload('clips/intro.mp4', 'video/mp4', b'movie')

    assert uploaded.file_name.endswith('-intro.mp4')
    assert uploaded.size == 5
    assert uploaded.content_type == 'video/mp4'
    assert await store.download(uploaded.file_name) == b'movie'


@pytest.mark.asyncio
async def test_direct_upload_rejections(service, monkeypatch):
    """Non-videos, empty files and oversized files are refused."""
    from uploadserver import config

    with pytest.raises(UnsupportedMediaTypeError):
        await service.direct_upload('notes.txt', 'text/plain', b'text')
    with pytest.raises(InvalidRequestError):
        await service.direct_upload('intro.mp4', 'video/mp4', b'')

    monkeypatch.setattr(config, 'MAX_DIRECT_UPLOAD_SIZE', 4)
    with pytest.raises(FileTooLargeError):
        await service.direct_upload('intro.mp4', 'video/mp4', b'12345')


@pytest.mark.asyncio
async def test_total_chunks_limit_follows_config(service, store, monkeypatch):
    """totalChunks above the configured ceiling is refused by every entry point."""
    from uploadserver import config

    monkeypatch.setattr(config, 'MAX_TOTAL_CHUNKS', 4)

    await service.store_chunk('abc', 3, 4, b'ok')
    with pytest.raises(InvalidRequestError, match='exceeds the limit'):
        await service.store_chunk('abc', 0, 5, b'data')
    with pytest.raises(InvalidRequestError, match='exceeds the limit'):
        await service.complete_upload('abc', 5)
    with pytest.raises(InvalidRequestError, match='exceeds the limit'):
        await service.upload_status('raw', total_chunks=5)


@pytest.mark.asyncio
async def test_direct_upload_rejects_chunk_shaped_names(service, store):
    """A direct upload cannot take a name the stale sweep would treat as a chunk."""
    with pytest.raises(InvalidRequestError):
        await service.direct_upload('trailer.chunk.2', 'video/mp4', b'movie')
    with pytest.raises(InvalidRequestError):
        await service.direct_upload('trailer.manifest.json', 'video/mp4', b'movie')
    assert await store.list_objects() == []
