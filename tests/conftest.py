"""Shared fixtures: scripted transports and a simulated camera."""

from __future__ import annotations

import time

import pytest

from linksprite_camera_mcp.protocol.commands import (
    CHUNK_ACK,
    IMAGE_SIZE_ACK,
    RESET_ACK,
    SET_BAUD_RATE_ACK,
    SET_COMPRESSION_ACK,
    SET_IMAGE_SIZE_ACK,
    SNAP_ACK,
    Command,
)

BAD_TRAILER = b"\x76\x00\x32\x00\x01"


def make_jpeg(length: int) -> bytes:
    """Synthetic image: FF D8, filler that never contains 0xFF, FF D9."""
    if length < 4:
        raise ValueError("JPEG needs at least 4 bytes")
    filler = bytes(i % 200 for i in range(length - 4))
    return b"\xFF\xD8" + filler + b"\xFF\xD9"


class ScriptedTransport:
    """Returns one scripted value per read call, then times out forever."""

    def __init__(self, reads: list[bytes] | None = None, baud_rate: int = 38400) -> None:
        self.reads = list(reads or [])
        self.read_sizes: list[int] = []
        self.written: list[bytes] = []
        self.discards = 0
        self.reconfigured: list[int] = []
        self.is_open = True
        self.baud_rate = baud_rate

    def open(self) -> None:
        self.is_open = True

    def close(self) -> None:
        self.is_open = False

    def write(self, data: bytes) -> int:
        self.written.append(bytes(data))
        return len(data)

    def flush_output(self) -> None:
        pass

    def read(self, size: int) -> bytes:
        self.read_sizes.append(size)
        if not self.reads:
            return b""
        return self.reads.pop(0)

    def discard_pending_input(self) -> None:
        self.discards += 1

    def reconfigure_baud_rate(self, baud_rate: int) -> None:
        self.reconfigured.append(baud_rate)
        self.baud_rate = baud_rate


class FakeCamera:
    """A LinkSprite camera simulated at the byte level.

    Args:
        image: The JPEG the camera holds; reads past its end return zeros.
        advisory_size: Size reported by the size query (defaults to ``len(image)``).
        bad_trailers: Map of chunk address -> number of corrupted trailers to send.
        silent: Opcodes the camera never answers.
        rejected: Opcodes answered with a non-zero status byte.
        max_read: Cap on bytes returned per read call.
    """

    def __init__(
        self,
        image: bytes = b"",
        advisory_size: int | None = None,
        bad_trailers: dict[int, int] | None = None,
        silent: set[int] | None = None,
        rejected: set[int] | None = None,
        max_read: int | None = None,
        baud_rate: int = 38400,
    ) -> None:
        self.image = image or make_jpeg(1000)
        self.advisory_size = len(self.image) if advisory_size is None else advisory_size
        self.bad_trailers = dict(bad_trailers or {})
        self.silent = set(silent or ())
        self.rejected = set(rejected or ())
        self.max_read = max_read
        self.baud_rate = baud_rate
        self.is_open = True
        self.pending = bytearray()
        self.written: list[bytes] = []
        self.addresses: list[int] = []
        self.lengths: list[int] = []
        self.discards = 0
        self.reconfigured: list[int] = []

    def open(self) -> None:
        self.is_open = True

    def close(self) -> None:
        self.is_open = False

    def flush_output(self) -> None:
        pass

    def write(self, data: bytes) -> int:
        frame = bytes(data)
        self.written.append(frame)
        opcode = frame[2]
        if opcode in self.silent:
            return len(frame)
        self.pending += self._respond(opcode, frame)
        return len(frame)

    def _ack(self, opcode: int, ack: bytes) -> bytes:
        if opcode in self.rejected:
            return ack[:3] + b"\x01" + ack[4:]
        return ack

    def _respond(self, opcode: int, frame: bytes) -> bytes:
        if opcode == Command.RESET:
            return self._ack(opcode, RESET_ACK)
        if opcode == Command.SET_BAUD_RATE:
            return self._ack(opcode, SET_BAUD_RATE_ACK)
        if opcode == Command.SET_IMAGE_SIZE:
            return self._ack(opcode, SET_IMAGE_SIZE_ACK)
        if opcode == Command.SET_COMPRESSION:
            return self._ack(opcode, SET_COMPRESSION_ACK)
        if opcode == Command.FBUF_CTRL:
            return self._ack(opcode, SNAP_ACK)
        if opcode == Command.GET_FBUF_LEN:
            return self._ack(opcode, IMAGE_SIZE_ACK) + self.advisory_size.to_bytes(2, "big")
        if opcode == Command.READ_FBUF:
            address = int.from_bytes(frame[8:10], "big")
            length = int.from_bytes(frame[12:14], "big")
            self.addresses.append(address)
            self.lengths.append(length)
            data = self.image[address : address + length]
            data += b"\x00" * (length - len(data))
            trailer = CHUNK_ACK
            if self.bad_trailers.get(address, 0) > 0:
                self.bad_trailers[address] -= 1
                trailer = BAD_TRAILER
            return self._ack(opcode, CHUNK_ACK) + data + trailer
        raise AssertionError(f"Unexpected opcode {opcode:#04x}")

    def read(self, size: int) -> bytes:
        if self.max_read is not None:
            size = min(size, self.max_read)
        data = bytes(self.pending[:size])
        del self.pending[:size]
        return data

    def discard_pending_input(self) -> None:
        self.discards += 1
        self.pending.clear()

    def reconfigure_baud_rate(self, baud_rate: int) -> None:
        self.reconfigured.append(baud_rate)
        self.baud_rate = baud_rate


class ChunkRecorder:
    """Chunk sink that remembers every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[bytes, int, bool]] = []

    def __call__(self, chunk: bytes, length: int, final: bool) -> None:
        self.calls.append((bytes(chunk), length, final))

    @property
    def data(self) -> bytes:
        return b"".join(chunk[:length] for chunk, length, _ in self.calls)


@pytest.fixture(autouse=True)
def sleeps(monkeypatch) -> list[float]:
    """Skip real delays and record the requested durations."""
    calls: list[float] = []
    monkeypatch.setattr(time, "sleep", calls.append)
    return calls


@pytest.fixture
def scripted():
    """Factory for :class:`ScriptedTransport`."""
    return ScriptedTransport


@pytest.fixture
def fake_camera():
    """Factory for :class:`FakeCamera`."""
    return FakeCamera


@pytest.fixture
def jpeg():
    """Factory for synthetic JPEG payloads."""
    return make_jpeg


@pytest.fixture
def recorder() -> ChunkRecorder:
    return ChunkRecorder()
