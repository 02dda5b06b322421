"""Tests for the uploader command parser."""

import pytest

from uploader.models import ResumeCommand, StatusCommand, StorageCommand, UploadCommand
from uploader.parser import ParseError, parse_command


def test_parse_upload():
    """upload takes one path; quoted paths keep their spaces."""
    assert parse_command('upload clip.mp4') == UploadCommand(path='clip.mp4')
    assert parse_command('upload "my videos/clip one.mp4"') == UploadCommand(path='my videos/clip one.mp4')


def test_parse_upload_requires_one_path():
    with pytest.raises(ParseError):
        parse_command('upload')
    with pytest.raises(ParseError):
        parse_command('upload a.mp4 b.mp4')


def test_parse_resume():
    """resume takes no arguments or a path and an upload name."""
    assert parse_command('resume') == ResumeCommand()
    assert parse_command('resume clip.mp4 1700-clip.mp4') == ResumeCommand(path='clip.mp4', file_name='1700-clip.mp4')
    with pytest.raises(ParseError):
        parse_command('resume clip.mp4')


def test_parse_status():
    """status takes an upload name and an optional chunk count."""
    assert parse_command('status 1700-clip.mp4') == StatusCommand(file_name='1700-clip.mp4')
    assert parse_command('status 1700-clip.mp4 3') == StatusCommand(file_name='1700-clip.mp4', total_chunks=3)


@pytest.mark.parametrize('line', ['status', 'status a b', 'status a 0', 'status a 1 2'])
def test_parse_status_errors(line):
    with pytest.raises(ParseError):
        parse_command(line)


def test_parse_storage():
    assert parse_command('storage') == StorageCommand()
    with pytest.raises(ParseError):
        parse_command('storage now')


@pytest.mark.parametrize('line', ['', '   ', 'download x', 'upload "unterminated'])
def test_parse_invalid(line):
    """Empty, unknown and malformed input raise ParseError."""
    with pytest.raises(ParseError):
        parse_command(line)
