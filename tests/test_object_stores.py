"""Tests for the object store backends."""

import json
import os

import httpx
import pytest

from objectstore.base import ObjectNotFoundError, StorageError
from objectstore.factory import create_object_store
from objectstore.local_store import LocalObjectStore
from objectstore.memory_store import InMemoryObjectStore
from objectstore.supabase_store import SupabaseObjectStore


@pytest.fixture(params=['memory', 'local'])
def store(request, tmp_path):
    """Each contract test runs against both in-process backends."""
    if request.param == 'memory':
        return InMemoryObjectStore('videos', public_base_url='http://localhost:8000')
    return LocalObjectStore(str(tmp_path / 'objects'), 'videos', 'http://localhost:8000')


@pytest.mark.asyncio
async def test_upload_overwrites(store):
    """Last write wins per key."""
    await store.upload('abc.chunk.0', b'first')
    await store.upload('abc.chunk.0', b'second')

    assert await store.download('abc.chunk.0') == b'second'


@pytest.mark.asyncio
async def test_download_missing_raises_not_found(store):
    """Absent keys raise ObjectNotFoundError."""
    with pytest.raises(ObjectNotFoundError):
        await store.download('missing')


@pytest.mark.asyncio
async def test_remove_ignores_absent_keys(store):
    """Removing a mix of present and absent keys succeeds."""
    await store.upload('a', b'1')
    await store.remove(['a', 'never-there'])

    assert not await store.exists('a')


@pytest.mark.asyncio
async def test_list_objects_by_prefix(store):
    """Listing filters by prefix and reports sizes and timestamps."""
    await store.upload('abc.chunk.0', b'12345')
    await store.upload('abc.chunk.1', b'12')
    await store.upload('other', b'x')

    listed = await store.list_objects('abc')

    assert sorted((obj.key, obj.size) for obj in listed) == [('abc.chunk.0', 5), ('abc.chunk.1', 2)]
    assert all(obj.updated_at is not None and obj.updated_at.tzinfo is not None for obj in listed)


@pytest.mark.asyncio
async def test_public_url_points_at_object_route(store):
    """In-process backends serve objects through the upload server."""
    assert store.get_public_url('1700-my clip.mp4') == 'http://localhost:8000/objects/1700-my%20clip.mp4'


@pytest.mark.asyncio
async def test_check_reports_details(store):
    """check() returns a dict when the backend is usable."""
    assert isinstance(await store.check(), dict)


@pytest.mark.asyncio
async def test_local_store_rejects_path_keys(tmp_path):
    """Keys with separators cannot escape the bucket directory."""
    store = LocalObjectStore(str(tmp_path), 'videos', 'http://localhost:8000')

    with pytest.raises(StorageError):
        await store.upload('../escape', b'x')


@pytest.mark.asyncio
async def test_local_store_leaves_no_temp_files(tmp_path):
    """Writes go through a temp file that is renamed into place."""
    store = LocalObjectStore(str(tmp_path), 'videos', 'http://localhost:8000')
    await store.upload('clip.mp4', b'data')

    assert os.listdir(tmp_path / 'videos') == ['clip.mp4']


def test_factory_builds_backends(tmp_path):
    """Backend names map to store classes."""
    local = create_object_store('local', 'videos', str(tmp_path), 'http://localhost:8000')
    memory = create_object_store('MEMORY', 'videos', str(tmp_path), 'http://localhost:8000')
    supabase = create_object_store(
        'supabase', 'videos', str(tmp_path), 'http://localhost:8000',
        supabase_url='https://proj.supabase.co', supabase_key='service-key'
    )

    assert isinstance(local, LocalObjectStore)
    assert isinstance(memory, InMemoryObjectStore)
    assert isinstance(supabase, SupabaseObjectStore)


def test_factory_rejects_bad_config(tmp_path):
    """Unknown backends and missing Supabase credentials raise ValueError."""
    with pytest.raises(ValueError):
        create_object_store('s3', 'videos', str(tmp_path), 'http://localhost:8000')
    with pytest.raises(ValueError):
        create_object_store('supabase', 'videos', str(tmp_path), 'http://localhost:8000')


def _supabase_store(handler) -> SupabaseObjectStore:
    store = SupabaseObjectStore('https://proj.supabase.co', 'service-key', 'videos')
    store._client = httpx.AsyncClient(transport=httpx.MockTransport(handler), headers=store._headers)
    return store


@pytest.mark.asyncio
async def test_supabase_upload_uses_upsert():
    """Uploads POST to the object path with x-upsert and the service key."""
    seen = {}

    def handler(request):
        seen['method'] = request.method
        seen['path'] = request.url.path
        seen['upsert'] = request.headers.get('x-upsert')
        seen['auth'] = request.headers.get('authorization')
        seen['body'] = request.content
        return httpx.Response(200, json={'Key': 'videos/abc.chunk.0'})

    store = _supabase_store(handler)
    stored = await store.upload('abc.chunk.0', b'payload')
    await store.close()

    assert stored == 'abc.chunk.0'
    assert seen['method'] == 'POST'
    assert seen['path'] == '/storage/v1/object/videos/abc.chunk.0'
    assert seen['upsert'] == 'true'
    assert seen['auth'] == 'Bearer service-key'
    assert seen['body'] == b'payload'


@pytest.mark.asyncio
async def test_supabase_download_not_found_in_body():
    """A 400 whose body says statusCode 404 means the object is missing."""
    def handler(request):
        return httpx.Response(400, json={'statusCode': '404', 'error': 'not_found', 'message': 'Object not found'})

    store = _supabase_store(handler)
    with pytest.raises(ObjectNotFoundError):
        await store.download('abc.chunk.5')
    await store.close()


@pytest.mark.asyncio
async def test_supabase_errors_carry_store_message():
    """Other failures raise StorageError with the store's own message."""
    def handler(request):
        return httpx.Response(500, json={'message': 'Bucket not found'})

    store = _supabase_store(handler)
    with pytest.raises(StorageError, match='Bucket not found'):
        await store.upload('abc.chunk.0', b'x')
    await store.close()


@pytest.mark.asyncio
async def test_supabase_network_error_becomes_storage_error():
    """Transport failures are wrapped in StorageError."""
    def handler(request):
        raise httpx.ConnectError('connection refused', request=request)

    store = _supabase_store(handler)
    with pytest.raises(StorageError):
        await store.download('abc')
    await store.close()


@pytest.mark.asyncio
async def test_supabase_remove_sends_prefixes():
    """Deletion is one DELETE with the keys as prefixes."""
    seen = {}

    def handler(request):
        seen['method'] = request.method
        seen['json'] = json.loads(request.content)
        return httpx.Response(200, json=[])

    store = _supabase_store(handler)
    await store.remove(['abc.chunk.0', 'abc.chunk.1'])
    await store.close()

    assert seen['method'] == 'DELETE'
    assert seen['json'] == {'prefixes': ['abc.chunk.0', 'abc.chunk.1']}


@pytest.mark.asyncio
async def test_supabase_list_parses_entries():
    """Listing skips folder placeholders and parses timestamps."""
    def handler(request):
        return httpx.Response(200, json=[
            {'name': 'abc.chunk.0', 'id': '1', 'updated_at': '2024-01-01T00:00:00Z', 'metadata': {'size': 4}},
            {'name': 'folder', 'id': None},
        ])

    store = _supabase_store(handler)
    listed = await store.list_objects('abc')
    await store.close()

    assert len(listed) == 1
    assert listed[0].key == 'abc.chunk.0'
    assert listed[0].size == 4
    assert listed[0].updated_at.year == 2024


def test_supabase_public_url():
    """Public locators use Supabase's public object path."""
    store = SupabaseObjectStore('https://proj.supabase.co/', 'service-key', 'videos')
    assert store.get_public_url('abc.mp4') == 'https://proj.supabase.co/storage/v1/object/public/videos/abc.mp4'
