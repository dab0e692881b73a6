"""Interface the camera driver expects from a byte-stream transport."""

from __future__ import annotations

from typing import Protocol


class Transport(Protocol):
    """Blocking byte stream with a bounded read timeout.

    ``read`` returns at most ``size`` bytes and an empty ``bytes`` when
    the read timeout elapses with nothing received. It never blocks past
    the configured timeout.
    """

    @property
    def is_open(self) -> bool: ...

    @property
    def baud_rate(self) -> int: ...

    def open(self) -> None: ...

    def close(self) -> None: ...

    def write(self, data: bytes) -> int: ...

    def flush_output(self) -> None: ...

    def read(self, size: int) -> bytes: ...

    def discard_pending_input(self) -> None: ...

    def reconfigure_baud_rate(self, baud_rate: int) -> None: ...
