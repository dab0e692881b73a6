"""Protocol layer: frame layout, command builders, and response parsing."""

from .framing import build_frame, build_ack, starts_with
from .commands import Command, ImageSize
from .parser import find_end_marker, parse_image_size
