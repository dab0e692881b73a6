"""Data models for capture results and image output."""

from .capture import CaptureResult, ChunkSink, CommandResult, FailureReason
from .file_formats import JpegFileWriter
