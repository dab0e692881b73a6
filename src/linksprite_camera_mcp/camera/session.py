"""Chunked image retrieval as an explicit state machine.

One :class:`CaptureSession` drives one capture::

    IDLE -> SNAPPING -> AWAITING_SNAP_ACK
         -> QUERYING_SIZE -> AWAITING_SIZE_ACK -> READING_SIZE
         -> FETCHING_CHUNK -> AWAITING_CHUNK_ACK -> READING_CHUNK_DATA
         -> AWAITING_CHUNK_TRAILER -> FETCHING_CHUNK | COMPLETE | FAILED

The size the camera reports is advisory. Once the bytes fetched reach
it, the current chunk is scanned for the JPEG end marker and only the
bytes up to and including the marker are delivered.
"""

from __future__ import annotations

import logging
import time
from enum import Enum

from ..models.capture import CaptureResult, ChunkSink, FailureReason
from ..protocol.commands import (
    CHUNK_ACK,
    IMAGE_SIZE_ACK,
    SNAP_ACK,
    build_query_image_size,
    build_read_chunk,
    build_snap,
)
from ..protocol.parser import find_end_marker, parse_image_size
from ..transport.base import Transport
from .reader import READ_ATTEMPTS, RETRY_DELAY, RetryingReader

logger = logging.getLogger(__name__)

CHUNK_SIZE = 256
MAX_CHUNK_RETRIES = 2
COMMAND_DELAY = 0.05  # seconds between a command and its response
IMAGE_SIZE_LENGTH = 2


class SessionState(Enum):
    IDLE = "idle"
    SNAPPING = "snapping"
    AWAITING_SNAP_ACK = "awaiting_snap_ack"
    QUERYING_SIZE = "querying_size"
    AWAITING_SIZE_ACK = "awaiting_size_ack"
    READING_SIZE = "reading_size"
    FETCHING_CHUNK = "fetching_chunk"
    AWAITING_CHUNK_ACK = "awaiting_chunk_ack"
    READING_CHUNK_DATA = "reading_chunk_data"
    AWAITING_CHUNK_TRAILER = "awaiting_chunk_trailer"
    COMPLETE = "complete"
    FAILED = "failed"


TERMINAL_STATES = frozenset({SessionState.COMPLETE, SessionState.FAILED})


def validate_chunk_size(chunk_size: int) -> int:
    """Check ``chunk_size`` is a positive multiple of 8 that fits in 16 bits."""
    if not 0 < chunk_size <= 0xFFFF or chunk_size % 8:
        raise ValueError(
            f"Chunk size must be a positive multiple of 8 up to 65535, got {chunk_size}"
        )
    return chunk_size


class CaptureSession:
    """State for a single image capture.

    The session owns its receive buffer and assumes exclusive use of the
    transport until :meth:`run` returns. Sessions are single-use.

    Args:
        transport: An open transport.
        sink: Called as ``sink(chunk, length, final)`` once per accepted chunk.
        chunk_size: Bytes requested per chunk.
        max_chunk_retries: Trailer failures tolerated per chunk.
        read_attempts: Transport reads allowed per exact-length read.
        retry_delay: Seconds between read attempts and chunk retries.
        command_delay: Seconds to wait after writing a command.
    """

    def __init__(
        self,
        transport: Transport,
        sink: ChunkSink,
        chunk_size: int = CHUNK_SIZE,
        max_chunk_retries: int = MAX_CHUNK_RETRIES,
        read_attempts: int = READ_ATTEMPTS,
        retry_delay: float = RETRY_DELAY,
        command_delay: float = COMMAND_DELAY,
    ) -> None:
        self._transport = transport
        self._sink = sink
        self._chunk_size = validate_chunk_size(chunk_size)
        self._max_chunk_retries = max_chunk_retries
        self._retry_delay = retry_delay
        self._command_delay = command_delay
        self._reader = RetryingReader(transport, read_attempts, retry_delay)
        self._buffer = bytearray(self._chunk_size)
        self._chunk = b""

        self.state = SessionState.IDLE
        self.reason: FailureReason | None = None
        self.file_size = 0
        self.cursor = 0
        self.chunk_retry_count = 0
        self.finished = False
        self.chunks_delivered = 0
        self.bytes_delivered = 0

        self._handlers = {
            SessionState.IDLE: self._start,
            SessionState.SNAPPING: self._snap,
            SessionState.AWAITING_SNAP_ACK: self._await_snap_ack,
            SessionState.QUERYING_SIZE: self._query_size,
            SessionState.AWAITING_SIZE_ACK: self._await_size_ack,
            SessionState.READING_SIZE: self._read_size,
            SessionState.FETCHING_CHUNK: self._fetch_chunk,
            SessionState.AWAITING_CHUNK_ACK: self._await_chunk_ack,
            SessionState.READING_CHUNK_DATA: self._read_chunk_data,
            SessionState.AWAITING_CHUNK_TRAILER: self._await_chunk_trailer,
        }

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    def run(self) -> CaptureResult:
        """Drive the capture to completion or failure.

        Raises:
            RuntimeError: If the session has already been run.
        """
        if self.state is not SessionState.IDLE:
            raise RuntimeError(f"Capture session already {self.state.value}")

        while self.state not in TERMINAL_STATES:
            next_state = self._handlers[self.state]()
            logger.debug("%s -> %s", self.state.value, next_state.value)
            self.state = next_state

        return self.result()

    def result(self) -> CaptureResult:
        return CaptureResult(
            success=self.state is SessionState.COMPLETE,
            reason=self.reason,
            file_size=self.file_size,
            chunks_delivered=self.chunks_delivered,
            bytes_delivered=self.bytes_delivered,
        )

    # ─── helpers ──────────────────────────────────────────────────────

    def _send(self, frame: bytes) -> None:
        self._transport.write(frame)
        self._transport.flush_output()
        time.sleep(self._command_delay)

    def _fail(self, reason: FailureReason) -> SessionState:
        self.reason = reason
        logger.warning(
            "Capture failed in %s at address %d: %s",
            self.state.value,
            self.cursor,
            reason.value,
        )
        return SessionState.FAILED

    def _expect(self, expected: bytes, next_state: SessionState) -> SessionState:
        reason = self._reader.expect(self._buffer, expected)
        if reason is not None:
            return self._fail(reason)
        return next_state

    # ─── state handlers ───────────────────────────────────────────────

    def _start(self) -> SessionState:
        return SessionState.SNAPPING

    def _snap(self) -> SessionState:
        self._send(build_snap())
        return SessionState.AWAITING_SNAP_ACK

    def _await_snap_ack(self) -> SessionState:
        return self._expect(SNAP_ACK, SessionState.QUERYING_SIZE)

    def _query_size(self) -> SessionState:
        self._send(build_query_image_size())
        return SessionState.AWAITING_SIZE_ACK

    def _await_size_ack(self) -> SessionState:
        return self._expect(IMAGE_SIZE_ACK, SessionState.READING_SIZE)

    def _read_size(self) -> SessionState:
        if not self._reader.read_exact(self._buffer, IMAGE_SIZE_LENGTH):
            return self._fail(FailureReason.READ_TIMEOUT)
        self.file_size = parse_image_size(self._buffer)
        logger.debug("Camera reports %d bytes", self.file_size)
        return SessionState.FETCHING_CHUNK

    def _fetch_chunk(self) -> SessionState:
        self._send(build_read_chunk(self.cursor, self._chunk_size))
        return SessionState.AWAITING_CHUNK_ACK

    def _await_chunk_ack(self) -> SessionState:
        # A rejected request won't succeed if repeated verbatim
        return self._expect(CHUNK_ACK, SessionState.READING_CHUNK_DATA)

    def _read_chunk_data(self) -> SessionState:
        if not self._reader.read_exact(self._buffer, self._chunk_size):
            return self._fail(FailureReason.READ_TIMEOUT)
        self._chunk = bytes(self._buffer)
        return SessionState.AWAITING_CHUNK_TRAILER

    def _await_chunk_trailer(self) -> SessionState:
        if self._reader.expect(self._buffer, CHUNK_ACK) is not None:
            return self._retry_chunk()
        self.chunk_retry_count = 0

        length = self._chunk_size
        if self.cursor + self._chunk_size >= self.file_size:
            end = find_end_marker(self._chunk)
            if end is None:
                return self._fail(FailureReason.END_MARKER_MISSING)
            length = end
            self.finished = True

        self._deliver(length)
        if self.finished:
            logger.info(
                "Capture complete: %d bytes in %d chunks",
                self.bytes_delivered,
                self.chunks_delivered,
            )
            return SessionState.COMPLETE
        self.cursor += self._chunk_size
        return SessionState.FETCHING_CHUNK

    def _retry_chunk(self) -> SessionState:
        self._transport.discard_pending_input()
        self.chunk_retry_count += 1
        if self.chunk_retry_count > self._max_chunk_retries:
            return self._fail(FailureReason.TRAILER_RETRIES_EXHAUSTED)
        logger.warning(
            "Bad trailer for chunk at %d, retry %d/%d",
            self.cursor,
            self.chunk_retry_count,
            self._max_chunk_retries,
        )
        time.sleep(self._retry_delay)
        return SessionState.FETCHING_CHUNK

    def _deliver(self, length: int) -> None:
        try:
            self._sink(self._chunk[:length], length, self.finished)
        except Exception:
            self.reason = FailureReason.SINK_ERROR
            self.state = SessionState.FAILED
            logger.exception("Chunk sink raised at address %d", self.cursor)
            raise
        self.chunks_delivered += 1
        self.bytes_delivered += length
        logger.debug("Delivered %d bytes from %d (final=%s)", length, self.cursor, self.finished)
