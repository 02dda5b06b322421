"""Custom completer for the uploader REPL with video file autocompletion."""

from pathlib import Path
from typing import Iterable

from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from uploader.constants import COMMANDS, VIDEO_FILE_EXTENSIONS


class ReelPressCompleter(Completer):
    """
    Custom completer that provides:
    - Command name completion for the first token
    - Video file path completion for 'upload' and the first 'resume' argument
    """

    def get_completions(
        self, document: Document, complete_event
    ) -> Iterable[Completion]:
        """
        Generate completions based on cursor position and context.
        """
        text = document.text_before_cursor
        tokens = text.split()

        is_typing_new_token = text.endswith(" ") or not tokens

        if not tokens or (len(tokens) == 1 and not is_typing_new_token):
            yield from self._complete_commands(tokens[0] if tokens else "")
            return

        command = tokens[0].lower()
        if command not in ("upload", "resume"):
            return

        argument_position = len(tokens) if is_typing_new_token else len(tokens) - 1
        if argument_position != 1:
            return

        current_word = "" if is_typing_new_token else tokens[-1]
        yield from self._complete_video_files(current_word)

    def _complete_commands(self, partial: str) -> Iterable[Completion]:
        """Complete command names matching the partial input."""
        partial_lower = partial.lower()
        for cmd in COMMANDS:
            if cmd.startswith(partial_lower):
                yield Completion(cmd, start_position=-len(partial))

    def _complete_video_files(self, partial: str) -> Iterable[Completion]:
        """
        Complete paths of video files and directories relative to the working directory.
        """
        partial_path = Path(partial) if partial else Path(".")
        if partial and not partial.endswith("/"):
            directory, prefix = partial_path.parent, partial_path.name
        else:
            directory, prefix = partial_path, ""

        search_dir = Path.cwd() / directory
        if not search_dir.is_dir():
            return

        candidates = []
        for item in search_dir.iterdir():
            if item.name.startswith(".") or not item.name.startswith(prefix):
                continue
            if item.is_dir():
                candidates.append(f"{item.name}/")
            elif item.name.lower().endswith(VIDEO_FILE_EXTENSIONS):
                candidates.append(item.name)

        base = "" if str(directory) == "." else f"{directory}/"
        for name in sorted(candidates):
            yield Completion(f"{base}{name}", start_position=-len(partial))
