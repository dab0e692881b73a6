"""Transport layer: serial connection to the camera."""

from .base import Transport
from .serial_connection import SerialConnection, SerialSettings
