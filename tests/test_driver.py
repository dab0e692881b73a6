"""Tests for the camera driver's configuration commands and capture entry point."""

import pytest

from linksprite_camera_mcp.camera.driver import SETTLE_DELAY, LinkspriteCamera
from linksprite_camera_mcp.models.capture import FailureReason
from linksprite_camera_mcp.protocol.commands import (
    Command,
    ImageSize,
    build_reset,
    build_set_baud_rate,
    build_set_image_size,
    build_stop,
)


def test_initialize_opens_and_flushes(fake_camera):
    """Initialize opens a closed transport and discards stale input."""
    device = fake_camera()
    device.is_open = False
    device.pending += b"boot noise"
    LinkspriteCamera(device).initialize()
    assert device.is_open
    assert device.pending == b""


def test_reset(fake_camera, sleeps):
    """Reset waits, checks the ack, then flushes."""
    device = fake_camera()
    result = LinkspriteCamera(device).reset()
    assert result
    assert device.written == [build_reset()]
    assert device.discards == 1
    assert SETTLE_DELAY in sleeps


def test_reset_unanswered(fake_camera):
    """No ack is a read timeout and leaves input alone."""
    device = fake_camera(silent={Command.RESET})
    result = LinkspriteCamera(device).reset()
    assert not result
    assert result.reason is FailureReason.READ_TIMEOUT
    assert device.discards == 0


def test_stop(fake_camera):
    """Stop sends the resume-frame command."""
    device = fake_camera()
    assert LinkspriteCamera(device).stop()
    assert device.written == [build_stop()]


def test_set_image_size(fake_camera):
    """A supported resolution is sent and acknowledged."""
    device = fake_camera()
    assert LinkspriteCamera(device).set_image_size(ImageSize.QVGA)
    assert device.written == [build_set_image_size(ImageSize.QVGA)]


def test_set_image_size_unsupported_sends_nothing(fake_camera):
    """Unsupported codes are rejected before any byte is written."""
    device = fake_camera()
    result = LinkspriteCamera(device).set_image_size(0x33)
    assert result.reason is FailureReason.UNSUPPORTED_PARAMETER
    assert device.written == []


def test_set_image_size_rejected(fake_camera):
    """A non-zero status is an ack mismatch."""
    device = fake_camera(rejected={Command.SET_IMAGE_SIZE})
    result = LinkspriteCamera(device).set_image_size(ImageSize.VGA)
    assert result.reason is FailureReason.ACK_MISMATCH


def test_set_compression_ratio(fake_camera):
    """Compression ratio is acknowledged; out-of-range is unsupported."""
    device = fake_camera()
    camera = LinkspriteCamera(device)
    assert camera.set_compression_ratio(0x36)
    result = camera.set_compression_ratio(300)
    assert result.reason is FailureReason.UNSUPPORTED_PARAMETER
    assert len(device.written) == 1


def test_set_baud_rate_success(fake_camera):
    """On ack the transport is reopened at the new rate."""
    device = fake_camera()
    result = LinkspriteCamera(device).set_baud_rate(115200)
    assert result
    assert device.written == [build_set_baud_rate(115200)]
    assert device.reconfigured == [115200]
    assert device.baud_rate == 115200
    assert device.discards == 2


@pytest.mark.parametrize(
    "device_kwargs",
    [{"silent": {Command.SET_BAUD_RATE}}, {"rejected": {Command.SET_BAUD_RATE}}],
)
def test_set_baud_rate_failure_leaves_transport(fake_camera, device_kwargs):
    """Without an ack the transport keeps its rate."""
    device = fake_camera(**device_kwargs)
    result = LinkspriteCamera(device).set_baud_rate(57600)
    assert not result
    assert device.baud_rate == 38400
    assert device.reconfigured == []


def test_set_baud_rate_unsupported(fake_camera):
    """Unsupported rates send nothing and keep the transport."""
    device = fake_camera()
    result = LinkspriteCamera(device).set_baud_rate(14400)
    assert result.reason is FailureReason.UNSUPPORTED_PARAMETER
    assert device.written == []
    assert device.baud_rate == 38400


def test_capture_image(fake_camera, jpeg, recorder):
    """Each capture runs a fresh session with the driver's chunk size."""
    device = fake_camera(jpeg(600))
    camera = LinkspriteCamera(device, chunk_size=256)
    first = camera.capture_image(recorder)
    second = camera.capture_image(recorder)
    assert first and second
    assert device.addresses == [0, 256, 512, 0, 256, 512]
    assert [final for _, _, final in recorder.calls].count(True) == 2


def test_capture_after_failed_capture(fake_camera, jpeg, recorder):
    """A failure leaves nothing behind for the next capture."""
    device = fake_camera(jpeg(302), advisory_size=300, bad_trailers={0: 3})
    camera = LinkspriteCamera(device, chunk_size=128)
    assert not camera.capture_image(recorder)
    assert camera.capture_image(recorder)
    assert recorder.calls[-1][1:] == (46, True)


def test_invalid_chunk_size(fake_camera):
    """Chunk size is validated up front."""
    with pytest.raises(ValueError):
        LinkspriteCamera(fake_camera(), chunk_size=10)
