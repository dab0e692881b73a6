"""Command and acknowledgment frame layout for the LinkSprite serial camera.

Frame layout::

    +---------+---------+---------+-------------+------------------+
    |  Sign   | Serial  | Opcode  | Param count |      Params      |
    | 1 byte  | 1 byte  | 1 byte  |   1 byte    | variable length  |
    +---------+---------+---------+-------------+------------------+

- Sign: 0x56 for host-to-device commands, 0x76 for device acknowledgments
- Serial: camera serial number, always 0x00
- Param count: number of parameter bytes that follow (commands only)

An acknowledgment echoes the opcode and carries a 0x00 status byte in
place of the parameter count. Acks are only ever compared as prefixes
of what the device sends back.
"""

from __future__ import annotations

COMMAND_SIGN = 0x56
RESPONSE_SIGN = 0x76
SERIAL_NUMBER = 0x00
STATUS_OK = 0x00


def build_frame(opcode: int, params: bytes = b"") -> bytes:
    """Build a command frame.

    Args:
        opcode: Single-byte command opcode.
        params: Command-specific parameter bytes.

    Returns:
        A fresh ``bytes`` object ready to write to the serial port.
    """
    if len(params) > 0xFF:
        raise ValueError(f"Too many parameters: {len(params)}")
    return bytes([COMMAND_SIGN, SERIAL_NUMBER, opcode, len(params)]) + params


def build_ack(opcode: int, trailing: bytes = b"") -> bytes:
    """Build the acknowledgment prefix the device sends for ``opcode``."""
    return bytes([RESPONSE_SIGN, SERIAL_NUMBER, opcode, STATUS_OK]) + trailing


def starts_with(data: bytes | bytearray | memoryview, expected: bytes) -> bool:
    """Return True if ``data`` begins with exactly the bytes in ``expected``.

    Never raises: a buffer shorter than ``expected`` is simply a mismatch.
    """
    size = len(expected)
    if len(data) < size:
        return False
    return bytes(data[:size]) == expected


def encode_u16(value: int) -> bytes:
    """Encode ``value`` as a 2-byte big-endian field."""
    if not 0 <= value <= 0xFFFF:
        raise ValueError(f"Value must fit in 16 bits, got {value}")
    return value.to_bytes(2, "big")
