"""High-level driver for the LinkSprite JPEG serial camera.

Usage::

    conn = SerialConnection("/dev/ttyUSB0")
    camera = LinkspriteCamera(conn)
    camera.initialize()
    result = camera.capture_image(JpegFileWriter("snap.jpg"))
    if not result:
        camera.reset()
"""

from __future__ import annotations

import logging
import time

from ..models.capture import CaptureResult, ChunkSink, CommandResult, FailureReason
from ..protocol.commands import (
    RESET_ACK,
    SET_BAUD_RATE_ACK,
    SET_COMPRESSION_ACK,
    SET_IMAGE_SIZE_ACK,
    STOP_ACK,
    build_reset,
    build_set_baud_rate,
    build_set_compression_ratio,
    build_set_image_size,
    build_stop,
)
from ..transport.base import Transport
from .reader import READ_ATTEMPTS, RETRY_DELAY, RetryingReader
from .session import (
    CHUNK_SIZE,
    COMMAND_DELAY,
    MAX_CHUNK_RETRIES,
    CaptureSession,
    validate_chunk_size,
)

logger = logging.getLogger(__name__)

SETTLE_DELAY = 0.1  # seconds between a configuration command and its ack
POST_RESET_QUIET = 3.0  # seconds the camera must be left alone after reset


class LinkspriteCamera:
    """Command/response driver for the camera.

    The driver holds no per-capture state; every :meth:`capture_image`
    call runs a fresh :class:`CaptureSession`. Not thread-safe: only one
    operation may use the transport at a time.
    """

    def __init__(
        self,
        transport: Transport,
        chunk_size: int = CHUNK_SIZE,
        max_chunk_retries: int = MAX_CHUNK_RETRIES,
        read_attempts: int = READ_ATTEMPTS,
        retry_delay: float = RETRY_DELAY,
        command_delay: float = COMMAND_DELAY,
        settle_delay: float = SETTLE_DELAY,
    ) -> None:
        self._transport = transport
        self._chunk_size = validate_chunk_size(chunk_size)
        self._max_chunk_retries = max_chunk_retries
        self._read_attempts = read_attempts
        self._retry_delay = retry_delay
        self._command_delay = command_delay
        self._settle_delay = settle_delay
        self._reader = RetryingReader(transport, read_attempts, retry_delay)

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    def initialize(self) -> None:
        """Open the transport if needed and discard anything already buffered."""
        if not self._transport.is_open:
            self._transport.open()
        self.flush_input()

    def flush_input(self) -> None:
        """Discard pending serial input."""
        self._transport.discard_pending_input()

    def _send(self, frame: bytes) -> None:
        logger.debug("-> %s", frame.hex(" "))
        self._transport.write(frame)
        self._transport.flush_output()

    def _command(self, frame: bytes, expected: bytes) -> CommandResult:
        """Send ``frame``, wait for the device to settle, and check its ack."""
        self._send(frame)
        time.sleep(self._settle_delay)
        reason = self._reader.expect(bytearray(len(expected)), expected)
        if reason is not None:
            logger.warning("Command %02X failed: %s", frame[2], reason.value)
            return CommandResult.failed(reason)
        return CommandResult.ok()

    def reset(self) -> CommandResult:
        """Reset the camera.

        On success the caller must not send another command for
        :data:`POST_RESET_QUIET` seconds.
        """
        result = self._command(build_reset(), RESET_ACK)
        if result:
            self.flush_input()
            logger.info("Camera reset")
        return result

    def stop(self) -> CommandResult:
        """Release the frozen frame, cancelling a capture on the device side."""
        return self._command(build_stop(), STOP_ACK)

    def set_image_size(self, size: int) -> CommandResult:
        """Select the capture resolution. The camera must be reset afterwards.

        Args:
            size: An :class:`~linksprite_camera_mcp.protocol.commands.ImageSize` code.
        """
        try:
            frame = build_set_image_size(size)
        except ValueError as e:
            logger.warning("%s", e)
            return CommandResult.failed(FailureReason.UNSUPPORTED_PARAMETER)
        result = self._command(frame, SET_IMAGE_SIZE_ACK)
        if result:
            self.flush_input()
        return result

    def set_compression_ratio(self, level: int) -> CommandResult:
        """Set the JPEG compression ratio (0-255, higher compresses more)."""
        try:
            frame = build_set_compression_ratio(level)
        except ValueError as e:
            logger.warning("%s", e)
            return CommandResult.failed(FailureReason.UNSUPPORTED_PARAMETER)
        return self._command(frame, SET_COMPRESSION_ACK)

    def set_baud_rate(self, baud_rate: int) -> CommandResult:
        """Switch the camera and the transport to ``baud_rate``.

        The transport is only reopened at the new rate once the camera has
        acknowledged the change; otherwise it is left untouched.
        """
        try:
            frame = build_set_baud_rate(baud_rate)
        except ValueError as e:
            logger.warning("%s", e)
            return CommandResult.failed(FailureReason.UNSUPPORTED_PARAMETER)
        result = self._command(frame, SET_BAUD_RATE_ACK)
        if result:
            self.flush_input()
            self._transport.reconfigure_baud_rate(baud_rate)
            self.flush_input()
            logger.info("Baud rate changed to %d", baud_rate)
        return result

    def capture_image(self, sink: ChunkSink) -> CaptureResult:
        """Snap an image and stream it to ``sink`` chunk by chunk.

        ``sink(chunk, length, final)`` is called once per accepted chunk;
        ``final`` is True exactly once, and only when the capture succeeds.
        """
        session = CaptureSession(
            self._transport,
            sink,
            chunk_size=self._chunk_size,
            max_chunk_retries=self._max_chunk_retries,
            read_attempts=self._read_attempts,
            retry_delay=self._retry_delay,
            command_delay=self._command_delay,
        )
        return session.run()
