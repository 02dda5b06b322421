"""Command parser for uploader REPL input."""

import shlex

from uploader.models import (
    CommandRequest,
    ResumeCommand,
    StatusCommand,
    StorageCommand,
    UploadCommand,
)


class ParseError(Exception):
    """Raised when command parsing fails."""

    pass


def parse_command(input_line: str) -> CommandRequest:
    """Parse user input into a CommandRequest object.

    Args:
        input_line: Raw user input from REPL

    Returns:
        CommandRequest object (one of Upload/Resume/Status/Storage)

    Raises:
        ParseError: If command syntax is invalid
    """
    if not input_line.strip():
        raise ParseError("Empty command")

    try:
        tokens = shlex.split(input_line)
    except ValueError as e:
        raise ParseError(f"Invalid syntax: {e}")

    if not tokens:
        raise ParseError("Empty command")

    command_name = tokens[0]

    if command_name == "upload":
        return _parse_upload(tokens[1:])
    elif command_name == "resume":
        return _parse_resume(tokens[1:])
    elif command_name == "status":
        return _parse_status(tokens[1:])
    elif command_name == "storage":
        return _parse_storage(tokens[1:])
    else:
        raise ParseError(f"Unknown command: {command_name}")


def _parse_upload(args: list[str]) -> UploadCommand:
    """Parse 'upload <path>' command."""
    if len(args) != 1:
        raise ParseError("upload requires exactly 1 argument: <path>")

    return UploadCommand(path=args[0])


def _parse_resume(args: list[str]) -> ResumeCommand:
    """Parse 'resume [<path> <fileName>]' command."""
    if not args:
        return ResumeCommand()
    if len(args) != 2:
        raise ParseError("resume takes no arguments or exactly 2: <path> <fileName>")

    path, file_name = args
    return ResumeCommand(path=path, file_name=file_name)


def _parse_status(args: list[str]) -> StatusCommand:
    """Parse 'status <fileName> [totalChunks]' command."""
    if not 1 <= len(args) <= 2:
        raise ParseError("status requires 1 or 2 arguments: <fileName> [totalChunks]")

    total_chunks = None
    if len(args) == 2:
        try:
            total_chunks = int(args[1])
        except ValueError:
            raise ParseError(f"totalChunks must be an integer, got '{args[1]}'")
        if total_chunks < 1:
            raise ParseError("totalChunks must be at least 1")

    return StatusCommand(file_name=args[0], total_chunks=total_chunks)


def _parse_storage(args: list[str]) -> StorageCommand:
    """Parse 'storage' command."""
    if args:
        raise ParseError("storage takes no arguments")

    return StorageCommand()
