"""Exact-length reads over a timeout-based transport."""

from __future__ import annotations

import logging
import time

from ..models.capture import FailureReason
from ..protocol.framing import starts_with
from ..transport.base import Transport

logger = logging.getLogger(__name__)

READ_ATTEMPTS = 3
RETRY_DELAY = 0.05  # seconds


class RetryingReader:
    """Accumulates short reads until exactly ``length`` bytes have arrived.

    A single transport read may time out (``b""``) or return only part
    of what was asked for. The reader keeps asking for the remainder, up
    to ``attempts`` reads with ``delay`` seconds between them.
    """

    def __init__(
        self,
        transport: Transport,
        attempts: int = READ_ATTEMPTS,
        delay: float = RETRY_DELAY,
    ) -> None:
        if attempts < 1:
            raise ValueError(f"attempts must be at least 1, got {attempts}")
        self._transport = transport
        self._attempts = attempts
        self._delay = delay

    def read_exact(self, buffer: bytearray, length: int) -> bool:
        """Fill ``buffer[:length]`` from the transport.

        Returns:
            True once ``length`` bytes have been read. False if the
            attempt budget ran out first, in which case the buffer
            contents are undefined.
        """
        if length > len(buffer):
            raise ValueError(f"Buffer holds {len(buffer)} bytes, asked for {length}")
        received = 0
        for attempt in range(self._attempts):
            data = self._transport.read(length - received)[: length - received]
            if data:
                buffer[received : received + len(data)] = data
                received += len(data)
            if received == length:
                return True
            if attempt < self._attempts - 1:
                time.sleep(self._delay)
        logger.debug("Short read: %d of %d bytes", received, length)
        return False

    def expect(self, buffer: bytearray, expected: bytes) -> FailureReason | None:
        """Read ``len(expected)`` bytes and check they match ``expected``.

        Returns:
            None on a match, otherwise the reason it failed.
        """
        if not self.read_exact(buffer, len(expected)):
            return FailureReason.READ_TIMEOUT
        if not starts_with(buffer, expected):
            logger.debug(
                "Expected %s, got %s",
                expected.hex(" "),
                bytes(buffer[: len(expected)]).hex(" "),
            )
            return FailureReason.ACK_MISMATCH
        return None
