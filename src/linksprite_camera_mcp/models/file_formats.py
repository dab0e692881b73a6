"""JPEG file output for captured images.

:class:`JpegFileWriter` is a chunk sink: hand it to
``LinkspriteCamera.capture_image`` and it appends every delivered chunk
to a file, closing the file when the final chunk arrives.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO

logger = logging.getLogger(__name__)

JPEG_START = b"\xFF\xD8"


class JpegFileWriter:
    """Writes delivered image chunks to ``path``.

    The file is created on the first chunk, so a capture that fails
    before any data arrives leaves nothing behind.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._handle: BinaryIO | None = None
        self.bytes_written = 0
        self.complete = False

    def __call__(self, chunk: bytes, length: int, final: bool) -> None:
        if self.complete:
            raise RuntimeError(f"{self.path} is already complete")
        if self._handle is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._handle = self.path.open("wb")
            logger.debug("Created %s", self.path)
        self._handle.write(chunk[:length])
        self._handle.flush()
        self.bytes_written += length
        if final:
            self._handle.close()
            self._handle = None
            self.complete = True
            logger.info("Wrote %d bytes to %s", self.bytes_written, self.path)

    def abort(self) -> None:
        """Close and delete a partially written file."""
        if self._handle is not None:
            self._handle.close()
            self._handle = None
        if not self.complete and self.path.exists():
            self.path.unlink()
            logger.info("Removed partial image %s", self.path)


def looks_like_jpeg(path: str | Path) -> bool:
    """Return True if the file starts with the JPEG start-of-image marker."""
    with Path(path).open("rb") as f:
        return f.read(len(JPEG_START)) == JPEG_START
