"""Command opcodes, expected acknowledgments, and command builders.

Every builder returns a fresh frame; nothing here mutates shared state.
Unsupported parameters raise ``ValueError`` before any frame exists.
"""

from __future__ import annotations

from enum import IntEnum

from .framing import build_ack, build_frame, encode_u16


class Command(IntEnum):
    """Command opcodes."""

    SET_COMPRESSION = 0x31
    READ_FBUF = 0x32
    GET_FBUF_LEN = 0x34
    FBUF_CTRL = 0x36
    SET_BAUD_RATE = 0x24
    RESET = 0x26
    SET_IMAGE_SIZE = 0x54


class ImageSize(IntEnum):
    """Capture resolution codes."""

    VGA = 0x00  # 640x480
    QVGA = 0x11  # 320x240
    QQVGA = 0x22  # 160x120


IMAGE_SIZE_NAMES: dict[str, ImageSize] = {
    "640x480": ImageSize.VGA,
    "320x240": ImageSize.QVGA,
    "160x120": ImageSize.QQVGA,
}

# Baud rate -> two-byte divisor sent in the set-baud-rate command
BAUD_RATE_DIVISORS: dict[int, bytes] = {
    9600: b"\xAE\xC8",
    19200: b"\x56\xE4",
    38400: b"\x2A\xF2",
    57600: b"\x1C\x4C",
    115200: b"\x0D\xA6",
}

# FBUF_CTRL sub-commands
SNAP_CURRENT_FRAME = 0x00
RESUME_FRAME = 0x03

# READ_FBUF parameter layout (offsets within the full 16-byte frame)
READ_FBUF_MODE = 0x0A
CHUNK_ADDRESS_OFFSET = 8
CHUNK_LENGTH_OFFSET = 12
CHUNK_DELAY = 0x000A
READ_FBUF_FRAME_SIZE = 16

RESET_ACK = build_ack(Command.RESET)
SET_BAUD_RATE_ACK = build_ack(Command.SET_BAUD_RATE, b"\x00")
SET_IMAGE_SIZE_ACK = build_ack(Command.SET_IMAGE_SIZE, b"\x00")
SET_COMPRESSION_ACK = build_ack(Command.SET_COMPRESSION, b"\x00")
SNAP_ACK = build_ack(Command.FBUF_CTRL, b"\x00")
STOP_ACK = SNAP_ACK
IMAGE_SIZE_ACK = build_ack(Command.GET_FBUF_LEN, b"\x04\x00\x00")
CHUNK_ACK = build_ack(Command.READ_FBUF, b"\x00")


def build_reset() -> bytes:
    """Build a Reset command. The camera must be left alone for ~3s afterwards."""
    return build_frame(Command.RESET)


def build_set_baud_rate(baud_rate: int) -> bytes:
    """Build a command switching the camera's serial baud rate.

    Args:
        baud_rate: One of 9600, 19200, 38400, 57600, 115200.
    """
    if baud_rate not in BAUD_RATE_DIVISORS:
        raise ValueError(
            f"Unsupported baud rate {baud_rate}. Valid: {sorted(BAUD_RATE_DIVISORS)}"
        )
    return build_frame(Command.SET_BAUD_RATE, b"\x01" + BAUD_RATE_DIVISORS[baud_rate])


def build_set_image_size(size: int) -> bytes:
    """Build a command selecting the capture resolution.

    Args:
        size: An :class:`ImageSize` code.
    """
    try:
        code = ImageSize(size)
    except ValueError:
        raise ValueError(
            f"Unsupported image size code {size:#04x}. "
            f"Valid: {[f'{s.value:#04x}' for s in ImageSize]}"
        ) from None
    return build_frame(Command.SET_IMAGE_SIZE, bytes([code]))


def build_set_compression_ratio(level: int) -> bytes:
    """Build a command setting the JPEG compression ratio (0-255)."""
    if not 0 <= level <= 0xFF:
        raise ValueError(f"Compression ratio must be 0-255, got {level}")
    return build_frame(Command.SET_COMPRESSION, bytes([0x01, 0x01, 0x12, 0x04, level]))


def build_snap() -> bytes:
    """Build a command freezing the current frame for retrieval."""
    return build_frame(Command.FBUF_CTRL, bytes([SNAP_CURRENT_FRAME]))


def build_stop() -> bytes:
    """Build a command releasing the frozen frame, cancelling a capture."""
    return build_frame(Command.FBUF_CTRL, bytes([RESUME_FRAME]))


def build_query_image_size() -> bytes:
    """Build a command asking for the size of the frozen image."""
    return build_frame(Command.GET_FBUF_LEN, b"\x00")


def build_read_chunk(address: int, length: int) -> bytes:
    """Build a command fetching ``length`` image bytes starting at ``address``.

    Both fields are big-endian; the upper halves of the 4-byte address
    and length slots stay zero.
    """
    if length <= 0:
        raise ValueError(f"Chunk length must be positive, got {length}")
    params = (
        bytes([0x00, READ_FBUF_MODE, 0x00, 0x00])
        + encode_u16(address)
        + b"\x00\x00"
        + encode_u16(length)
        + encode_u16(CHUNK_DELAY)
    )
    return build_frame(Command.READ_FBUF, params)
