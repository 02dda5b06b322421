"""Utility functions for uploader output."""

import sys

from uploader.constants import GREEN, RESET


class ProgressPrinter:
    """Callable that redraws a single progress line on stdout."""

    def __init__(self, label: str, stream=None):
        """
        Args:
            label: Text shown before the percentage (usually the file name)
            stream: Output stream (defaults to sys.stdout)
        """
        self.label = label
        self.stream = stream or sys.stdout
        self._finished = False

    def __call__(self, progress: float) -> None:
        self.stream.write(f"\rUploading {self.label}: {GREEN}{progress * 100:.1f}%{RESET}")
        self.stream.flush()
        if progress >= 1.0 and not self._finished:
            self._finished = True
            self.stream.write('\n')
            self.stream.flush()


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in bytes to human-readable format with appropriate unit.

    Uses binary units (1024-based) and automatically selects the most
    appropriate unit (B, KiB, MiB, GiB, TiB).

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted string with size and unit (e.g., "1.50 MiB", "512 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"

    units = ['KiB', 'MiB', 'GiB', 'TiB']
    size = size_bytes / 1024.0

    for unit in units:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0

    return f"{size:.2f} PiB"


def format_index_ranges(indices: list[int]) -> str:
    """
    Collapse sorted chunk indices into ranges, e.g. [0, 1, 2, 5] -> "0-2, 5".
    """
    if not indices:
        return "none"

    ranges = []
    start = prev = indices[0]
    for index in indices[1:]:
        if index == prev + 1:
            prev = index
            continue
        ranges.append(f"{start}-{prev}" if start != prev else str(start))
        start = prev = index
    ranges.append(f"{start}-{prev}" if start != prev else str(start))
    return ", ".join(ranges)
