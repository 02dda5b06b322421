"""Tests for uploader command handlers."""

from unittest.mock import Mock

from uploader.commands import handle_resume, handle_status, handle_storage, handle_upload
from uploader.models import ResumeCommand, StatusCommand, StorageCommand, UploadCommand
from uploader.upload_client import UploadClient, UploadRequestError
from uploader.utils import format_file_size, format_index_ranges


def _complete_body(file_name='1700-clip.mp4', cleanup_errors=None):
    return {
        'success': True,
        'fileName': file_name,
        'url': f'http://localhost:8000/objects/{file_name}',
        'size': 11,
        'checksum': 'ab' * 32,
        'cleanupErrors': cleanup_errors or [],
    }


def test_handle_upload(temp_config, tmp_path):
    """Upload command reports the locator and clears the pending record."""
    path = tmp_path / 'clip.mp4'
    path.write_bytes(b'hello video')
    mock_client = Mock(spec=UploadClient)
    mock_client.upload_chunk.return_value = {'success': True}
    mock_client.complete_upload.return_value = _complete_body()

    result = handle_upload(UploadCommand(path=str(path)), client=mock_client, config=temp_config)

    assert 'Upload complete' in result
    assert 'http://localhost:8000/objects/1700-clip.mp4' in result
    mock_client.upload_chunk.assert_called_once()
    file_name, index, total, data = mock_client.upload_chunk.call_args.args
    assert file_name.endswith('-clip.mp4')
    assert (index, total, data) == (0, 1, b'hello video')
    assert temp_config.get_pending_upload() is None


def test_handle_upload_reports_cleanup_errors(temp_config, tmp_path):
    """Leftover objects are listed as a warning."""
    path = tmp_path / 'clip.mp4'
    path.write_bytes(b'hello video')
    mock_client = Mock(spec=UploadClient)
    mock_client.complete_upload.return_value = _complete_body(
        cleanup_errors=[{'key': '1700-clip.mp4.chunk.0', 'error': 'permission denied'}]
    )

    result = handle_upload(UploadCommand(path=str(path)), client=mock_client, config=temp_config)

    assert 'could not be deleted' in result
    assert '1700-clip.mp4.chunk.0: permission denied' in result


def test_handle_upload_missing_file(temp_config, tmp_path):
    """A missing path is reported without contacting the server."""
    mock_client = Mock(spec=UploadClient)

    result = handle_upload(UploadCommand(path=str(tmp_path / 'nope.mp4')), client=mock_client, config=temp_config)

    assert result.startswith('Error: File not found')
    mock_client.upload_chunk.assert_not_called()


def test_handle_upload_failure_suggests_resume(temp_config, tmp_path):
    """A failed chunk keeps the pending record and points at resume."""
    path = tmp_path / 'clip.mp4'
    path.write_bytes(b'hello video')
    mock_client = Mock(spec=UploadClient)
    mock_client.upload_chunk.side_effect = UploadRequestError(500, 'Chunk upload failed', 'Bucket not found', 'STORAGE_ERROR')

    result = handle_upload(UploadCommand(path=str(path)), client=mock_client, config=temp_config)

    assert result.startswith('Upload failed')
    assert 'Bucket not found' in result
    assert 'resume' in result
    assert temp_config.get_pending_upload()['path'] == str(path)
    mock_client.complete_upload.assert_not_called()


def test_handle_resume_uses_pending_upload(temp_config, tmp_path):
    """resume without arguments picks up the recorded upload."""
    path = tmp_path / 'clip.mp4'
    path.write_bytes(b'hello video')
    temp_config.set_pending_upload(str(path), '1700-clip.mp4', 1)
    mock_client = Mock(spec=UploadClient)
    mock_client.upload_status.return_value = {'receivedChunks': [0], 'missingChunks': [], 'complete': True}
    mock_client.complete_upload.return_value = _complete_body()

    result = handle_resume(ResumeCommand(), client=mock_client, config=temp_config)

    assert 'Upload complete' in result
    assert 'Chunks sent this session: 0' in result
    mock_client.upload_status.assert_called_once_with('1700-clip.mp4', 1)
    mock_client.upload_chunk.assert_not_called()


def test_handle_resume_nothing_pending(temp_config):
    mock_client = Mock(spec=UploadClient)

    result = handle_resume(ResumeCommand(), client=mock_client, config=temp_config)

    assert 'Nothing to resume' in result


def test_handle_status():
    """Status shows received and missing ranges."""
    mock_client = Mock(spec=UploadClient)
    mock_client.upload_status.return_value = {
        'fileName': 'abc',
        'totalChunks': 6,
        'receivedChunks': [0, 1, 2, 5],
        'missingChunks': [3, 4],
        'complete': False,
    }

    result = handle_status(StatusCommand(file_name='abc'), client=mock_client)

    assert 'abc: incomplete (4/6 chunks)' in result
    assert 'Received: 0-2, 5' in result
    assert 'Missing: 3-4' in result
    mock_client.upload_status.assert_called_once_with('abc', None)


def test_handle_status_error():
    mock_client = Mock(spec=UploadClient)
    mock_client.upload_status.side_effect = UploadRequestError(404, 'Upload not found', 'No upload manifest', 'UPLOAD_NOT_FOUND')

    result = handle_status(StatusCommand(file_name='abc'), client=mock_client)

    assert result.startswith('Error: Upload not found')


def test_handle_storage():
    mock_client = Mock(spec=UploadClient)
    mock_client.storage_health.return_value = {'success': True, 'backend': 'supabase', 'bucket': 'videos'}

    assert handle_storage(StorageCommand(), client=mock_client) == 'Storage OK: backend=supabase bucket=videos'


def test_handle_storage_unreachable():
    mock_client = Mock(spec=UploadClient)
    mock_client.storage_health.side_effect = ConnectionError('Cannot connect to upload server. Is it running?')

    result = handle_storage(StorageCommand(), client=mock_client)

    assert result == 'Storage check failed: Cannot connect to upload server. Is it running?'


def test_format_helpers():
    assert format_file_size(512) == '512 B'
    assert format_file_size(10 * 1024 * 1024) == '10.00 MiB'
    assert format_index_ranges([]) == 'none'
    assert format_index_ranges([0, 1, 2, 5, 7, 8]) == '0-2, 5, 7-8'


def test_handle_upload_unexpected_error(temp_config, tmp_path):
    """Unexpected failures become a message instead of crashing the REPL."""
    path = tmp_path / 'clip.mp4'
    path.write_bytes(b'hello video')
    mock_client = Mock(spec=UploadClient)
    mock_client.upload_chunk.side_effect = RuntimeError('boom')

    result = handle_upload(UploadCommand(path=str(path)), client=mock_client, config=temp_config)

    assert result == 'Unexpected error during upload: boom'
