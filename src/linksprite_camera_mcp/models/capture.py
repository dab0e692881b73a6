"""Result types and the chunk sink signature for camera operations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable

# (chunk bytes, delivered length, is final)
ChunkSink = Callable[[bytes, int, bool], None]


class FailureReason(Enum):
    """Why a camera operation did not succeed."""

    READ_TIMEOUT = "read_timeout"
    ACK_MISMATCH = "ack_mismatch"
    TRAILER_RETRIES_EXHAUSTED = "trailer_retries_exhausted"
    END_MARKER_MISSING = "end_marker_missing"
    UNSUPPORTED_PARAMETER = "unsupported_parameter"
    SINK_ERROR = "sink_error"


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a single acknowledged command."""

    success: bool
    reason: FailureReason | None = None

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls) -> CommandResult:
        return cls(success=True)

    @classmethod
    def failed(cls, reason: FailureReason) -> CommandResult:
        return cls(success=False, reason=reason)


@dataclass
class CaptureResult:
    """Outcome of a full image capture."""

    success: bool
    reason: FailureReason | None = None
    file_size: int = 0
    chunks_delivered: int = 0
    bytes_delivered: int = 0

    def __bool__(self) -> bool:
        return self.success

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "reason": self.reason.value if self.reason else None,
            "advisory_size": self.file_size,
            "chunks": self.chunks_delivered,
            "bytes": self.bytes_delivered,
        }
