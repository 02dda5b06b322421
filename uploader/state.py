"""Upload progress as an explicit state machine."""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional


class UploadPhase(str, Enum):
    IDLE = "idle"
    SPLITTING = "splitting"
    UPLOADING = "uploading"
    ASSEMBLING = "assembling"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class UploadState:
    """
    Snapshot of an upload's progress.

    chunk_index is set only while uploading; reason only once failed.
    """
    phase: UploadPhase
    chunk_index: Optional[int] = None
    total_chunks: Optional[int] = None
    reason: Optional[str] = None

    @property
    def progress(self) -> float:
        """Fraction of chunks confirmed, in [0, 1]."""
        if self.phase in (UploadPhase.ASSEMBLING, UploadPhase.COMPLETED):
            return 1.0
        if self.phase != UploadPhase.UPLOADING or not self.total_chunks:
            return 0.0
        return self.chunk_index / self.total_chunks

    def __str__(self) -> str:
        if self.phase == UploadPhase.UPLOADING:
            return f"uploading({self.chunk_index})"
        if self.phase == UploadPhase.FAILED:
            return f"failed({self.reason})"
        return self.phase.value


class InvalidTransitionError(Exception):
    """Raised when an event is not allowed in the current state."""

    pass


TERMINAL_PHASES = (UploadPhase.COMPLETED, UploadPhase.FAILED)


class UploadStateMachine:
    """
    Drives idle -> splitting -> uploading(i) -> assembling -> completed.

    Any non-terminal state may move to failed(reason). Listeners are called
    with the new state after every transition.
    """

    def __init__(self, on_change: Optional[Callable[[UploadState], None]] = None):
        self.state = UploadState(UploadPhase.IDLE)
        self.history: List[UploadState] = [self.state]
        self._listeners: List[Callable[[UploadState], None]] = []
        if on_change is not None:
            self._listeners.append(on_change)

    def start_splitting(self) -> UploadState:
        self._require(UploadPhase.IDLE)
        return self._move(UploadState(UploadPhase.SPLITTING))

    def start_uploading(self, total_chunks: int, first_index: int = 0) -> UploadState:
        self._require(UploadPhase.SPLITTING)
        if total_chunks < 1:
            raise InvalidTransitionError(f"total_chunks must be at least 1, got {total_chunks}")
        return self._move(UploadState(UploadPhase.UPLOADING, chunk_index=first_index, total_chunks=total_chunks))

    def chunk_uploaded(self, chunk_index: int) -> UploadState:
        """Record that chunk_index was confirmed; moves to the next index."""
        self._require(UploadPhase.UPLOADING)
        if chunk_index != self.state.chunk_index:
            raise InvalidTransitionError(
                f"Expected confirmation of chunk {self.state.chunk_index}, got {chunk_index}"
            )
        return self._move(
            UploadState(UploadPhase.UPLOADING, chunk_index=chunk_index + 1, total_chunks=self.state.total_chunks)
        )

    def skip_to(self, chunk_index: int) -> UploadState:
        """Jump forward past chunks the server already holds (resume)."""
        self._require(UploadPhase.UPLOADING)
        if chunk_index < self.state.chunk_index or chunk_index > self.state.total_chunks:
            raise InvalidTransitionError(
                f"Cannot skip from chunk {self.state.chunk_index} to {chunk_index}"
            )
        return self._move(
            UploadState(UploadPhase.UPLOADING, chunk_index=chunk_index, total_chunks=self.state.total_chunks)
        )

    def start_assembling(self) -> UploadState:
        self._require(UploadPhase.UPLOADING)
        if self.state.chunk_index != self.state.total_chunks:
            raise InvalidTransitionError(
                f"Cannot assemble: {self.state.total_chunks - self.state.chunk_index} chunks not confirmed"
            )
        return self._move(UploadState(UploadPhase.ASSEMBLING, total_chunks=self.state.total_chunks))

    def complete(self) -> UploadState:
        self._require(UploadPhase.ASSEMBLING)
        return self._move(UploadState(UploadPhase.COMPLETED, total_chunks=self.state.total_chunks))

    def fail(self, reason: str) -> UploadState:
        if self.state.phase in TERMINAL_PHASES:
            raise InvalidTransitionError(f"Cannot fail from terminal state {self.state}")
        return self._move(
            UploadState(
                UploadPhase.FAILED,
                chunk_index=None,
                total_chunks=self.state.total_chunks,
                reason=reason,
            )
        )

    def _require(self, phase: UploadPhase) -> None:
        if self.state.phase != phase:
            raise InvalidTransitionError(f"Expected state {phase.value}, current state is {self.state}")

    def _move(self, new_state: UploadState) -> UploadState:
        self.state = new_state
        self.history.append(new_state)
        for listener in self._listeners:
            listener(new_state)
        return new_state
