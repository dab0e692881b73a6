"""Parsing helpers for data the camera sends back."""

from __future__ import annotations

END_OF_IMAGE = b"\xFF\xD9"


def parse_image_size(data: bytes | bytearray) -> int:
    """Decode the 2-byte big-endian advisory image size."""
    if len(data) < 2:
        raise ValueError(f"Image size needs 2 bytes, got {len(data)}")
    return (data[0] << 8) | data[1]


def find_end_marker(chunk: bytes | bytearray, length: int | None = None) -> int | None:
    """Find the JPEG end-of-image marker within a chunk.

    Args:
        chunk: The chunk data.
        length: Number of meaningful bytes in ``chunk`` (defaults to all).

    Returns:
        The offset immediately after the ``FF D9`` marker, or ``None``
        if the marker does not occur in the first ``length`` bytes.
    """
    if length is None:
        length = len(chunk)
    index = chunk.find(END_OF_IMAGE, 0, length)
    if index < 0:
        return None
    return index + len(END_OF_IMAGE)
