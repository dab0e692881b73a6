"""Serial (UART) connection to the LinkSprite camera.

The camera talks 8N1 at 38400 baud out of reset. Reads are bounded by a
short timeout so the protocol layer can retry instead of hanging.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import serial

logger = logging.getLogger(__name__)

DEFAULT_PORT = "/dev/ttyUSB0"
DEFAULT_BAUD_RATE = 38400
READ_TIMEOUT = 0.25  # seconds
SUPPORTED_BAUD_RATES = (9600, 19200, 38400, 57600, 115200)
DISCARD_READ_SIZE = 256


@dataclass
class SerialSettings:
    """Line settings for the camera's serial port."""

    port: str = DEFAULT_PORT
    baud_rate: int = DEFAULT_BAUD_RATE
    timeout: float = READ_TIMEOUT
    bytesize: int = serial.EIGHTBITS
    parity: str = serial.PARITY_NONE
    stopbits: float = serial.STOPBITS_ONE


class SerialConnection:
    """Manages the serial port the camera is attached to.

    Usage::

        conn = SerialConnection("/dev/ttyUSB0")
        conn.open()
        conn.write(frame_bytes)
        data = conn.read(5)
        conn.close()
    """

    def __init__(
        self,
        port: str = DEFAULT_PORT,
        baud_rate: int = DEFAULT_BAUD_RATE,
        timeout: float = READ_TIMEOUT,
    ) -> None:
        if baud_rate not in SUPPORTED_BAUD_RATES:
            raise ValueError(
                f"Unsupported baud rate {baud_rate}. Valid: {list(SUPPORTED_BAUD_RATES)}"
            )
        self._settings = SerialSettings(port=port, baud_rate=baud_rate, timeout=timeout)
        self._serial: serial.Serial | None = None

    @property
    def settings(self) -> SerialSettings:
        return self._settings

    @property
    def is_open(self) -> bool:
        return self._serial is not None and self._serial.is_open

    @property
    def baud_rate(self) -> int:
        return self._settings.baud_rate

    def open(self) -> None:
        """Open the serial port with the current settings.

        Raises:
            ConnectionError: If the port cannot be opened.
        """
        if self.is_open:
            return
        s = self._settings
        try:
            self._serial = serial.Serial(
                port=s.port,
                baudrate=s.baud_rate,
                bytesize=s.bytesize,
                parity=s.parity,
                stopbits=s.stopbits,
                timeout=s.timeout,
            )
        except serial.SerialException as e:
            raise ConnectionError(
                f"Could not open serial port {s.port} at {s.baud_rate} baud. "
                f"Ensure the camera is connected and you have permissions. "
                f"Last error: {e}"
            ) from e
        logger.info("Opened %s at %d baud", s.port, s.baud_rate)

    def close(self) -> None:
        """Close the serial port."""
        if self._serial is None:
            return
        try:
            self._serial.close()
        except serial.SerialException as e:
            logger.warning("Error closing port: %s", e)
        finally:
            self._serial = None
            logger.info("Closed %s", self._settings.port)

    def _port(self) -> serial.Serial:
        if not self.is_open:
            raise ConnectionError("Serial port is not open")
        return self._serial

    def write(self, data: bytes) -> int:
        """Write raw bytes to the camera.

        Returns:
            Number of bytes written.

        Raises:
            ConnectionError: If the port is not open.
        """
        return self._port().write(data)

    def flush_output(self) -> None:
        """Block until all written bytes have left the port."""
        self._port().flush()

    def read(self, size: int) -> bytes:
        """Read up to ``size`` bytes; returns ``b""`` if the timeout elapses."""
        return self._port().read(size)

    def discard_pending_input(self) -> None:
        """Drop buffered input and drain anything still arriving."""
        port = self._port()
        port.reset_input_buffer()
        discarded = 0
        while True:
            data = port.read(DISCARD_READ_SIZE)
            if not data:
                break
            discarded += len(data)
        if discarded:
            logger.debug("Discarded %d pending bytes", discarded)

    def reconfigure_baud_rate(self, baud_rate: int) -> None:
        """Close and reopen the port at ``baud_rate``."""
        if baud_rate not in SUPPORTED_BAUD_RATES:
            raise ValueError(
                f"Unsupported baud rate {baud_rate}. Valid: {list(SUPPORTED_BAUD_RATES)}"
            )
        was_open = self.is_open
        self.close()
        self._settings.baud_rate = baud_rate
        if was_open:
            self.open()
        logger.info("Baud rate now %d", baud_rate)
