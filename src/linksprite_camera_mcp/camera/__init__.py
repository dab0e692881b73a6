"""Camera driver: exact reads, capture sessions, and device commands."""

from .driver import LinkspriteCamera
from .reader import RetryingReader
from .session import CaptureSession, SessionState
