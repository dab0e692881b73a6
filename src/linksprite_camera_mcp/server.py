"""MCP server entry point for the LinkSprite serial JPEG camera.

Exposes tools and resources via the Model Context Protocol using the
official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any

from mcp.server.fastmcp import FastMCP

from .camera.driver import POST_RESET_QUIET, LinkspriteCamera
from .models.file_formats import JpegFileWriter, looks_like_jpeg
from .protocol.commands import BAUD_RATE_DIVISORS, IMAGE_SIZE_NAMES
from .transport.serial_connection import (
    DEFAULT_BAUD_RATE,
    DEFAULT_PORT,
    SerialConnection,
)

logger = logging.getLogger(__name__)

mcp = FastMCP("linksprite-camera")

# Global connection state
_connection: SerialConnection | None = None
_camera: LinkspriteCamera | None = None


def _get_camera() -> LinkspriteCamera:
    """Get the active camera driver, raising if not connected."""
    if _camera is None or _connection is None or not _connection.is_open:
        raise RuntimeError(
            "Not connected to camera. Use the 'connect' tool first."
        )
    return _camera


def _command_response(result, **extra: Any) -> dict[str, Any]:
    if not result:
        return {"error": f"Camera command failed: {result.reason.value}"}
    return {"ok": True, **extra}


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(port: str = DEFAULT_PORT, baud_rate: int = DEFAULT_BAUD_RATE) -> dict[str, Any]:
    """Open the serial port the camera is attached to.

    Args:
        port: Serial device path (default /dev/ttyUSB0).
        baud_rate: Current camera baud rate (38400 out of reset).
    """
    global _connection, _camera
    if _connection is not None and _connection.is_open:
        return {
            "connected": True,
            "message": "Already connected",
            "port": _connection.settings.port,
            "baud_rate": _connection.baud_rate,
        }

    try:
        _connection = SerialConnection(port, baud_rate)
    except ValueError as e:
        return {"error": str(e)}
    _camera = LinkspriteCamera(_connection)
    _camera.initialize()

    return {"connected": True, "port": port, "baud_rate": baud_rate}


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Close the serial port."""
    global _connection, _camera
    if _connection is not None:
        _connection.close()
    _connection = None
    _camera = None
    return {"disconnected": True}


# ─── CAMERA CONFIGURATION TOOLS ───────────────────────────────────────

@mcp.tool()
def reset_camera(wait: bool = True) -> dict[str, Any]:
    """Reset the camera.

    Args:
        wait: Block for the post-reset quiet period before returning.
    """
    camera = _get_camera()
    result = camera.reset()
    if result and wait:
        time.sleep(POST_RESET_QUIET)
    return _command_response(result, waited=bool(result) and wait)


@mcp.tool()
def stop_capture() -> dict[str, Any]:
    """Release the camera's frozen frame buffer."""
    return _command_response(_get_camera().stop())


@mcp.tool()
def set_image_size(size: str) -> dict[str, Any]:
    """Select the capture resolution. Reset the camera afterwards.

    Args:
        size: One of "640x480", "320x240", "160x120".
    """
    if size not in IMAGE_SIZE_NAMES:
        return {"error": f"Unknown size '{size}'. Valid: {list(IMAGE_SIZE_NAMES)}"}
    result = _get_camera().set_image_size(IMAGE_SIZE_NAMES[size])
    return _command_response(result, size=size)


@mcp.tool()
def set_compression_ratio(level: int) -> dict[str, Any]:
    """Set the JPEG compression ratio.

    Args:
        level: 0-255, higher values give smaller files.
    """
    return _command_response(_get_camera().set_compression_ratio(level), level=level)


@mcp.tool()
def set_baud_rate(baud_rate: int) -> dict[str, Any]:
    """Switch the camera and the serial port to a new baud rate.

    Args:
        baud_rate: One of 9600, 19200, 38400, 57600, 115200.
    """
    camera = _get_camera()
    result = camera.set_baud_rate(baud_rate)
    return _command_response(result, baud_rate=camera.transport.baud_rate)


# ─── CAPTURE TOOLS ────────────────────────────────────────────────────

@mcp.tool()
def capture_image(path: str) -> dict[str, Any]:
    """Snap an image and save it as a JPEG file.

    On failure any partial file is removed; reset the camera before
    trying again.

    Args:
        path: Output .jpg file path.
    """
    camera = _get_camera()
    writer = JpegFileWriter(path)
    try:
        result = camera.capture_image(writer)
    except Exception:
        writer.abort()
        raise
    if not result:
        writer.abort()
        return {"error": f"Capture failed: {result.reason.value}", **result.to_dict()}

    out = result.to_dict()
    out["path"] = str(Path(path))
    out["jpeg"] = looks_like_jpeg(path)
    return out


# ─── MCP RESOURCES ───────────────────────────────────────────────────

@mcp.resource("linksprite://catalog/image-sizes")
def resource_image_sizes() -> str:
    """Supported capture resolutions."""
    return json.dumps({
        "image_sizes": {name: f"{code.value:#04x}" for name, code in IMAGE_SIZE_NAMES.items()}
    })


@mcp.resource("linksprite://catalog/baud-rates")
def resource_baud_rates() -> str:
    """Supported serial baud rates."""
    return json.dumps({"baud_rates": sorted(BAUD_RATE_DIVISORS)})


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
