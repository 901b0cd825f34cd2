"""Pixel formats, camera frames and the conversion error type."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

__all__ = ["PixFormat", "Frame", "ConversionError"]


class ConversionError(ValueError):
    """Raised when an image cannot be converted."""


class PixFormat(Enum):
    """Source pixel layouts understood by the converters."""

    RGB565 = "rgb565"
    YUV422 = "yuv422"
    GRAYSCALE = "grayscale"
    JPEG = "jpeg"
    RGB888 = "rgb888"

    def bytes_per_pixel(self) -> int:
        """Bytes one pixel takes in this layout; JPEG has no fixed size."""
        try:
            return _BYTES_PER_PIXEL[self]
        except KeyError:
            raise ConversionError(
                f"{self.name} has no fixed number of bytes per pixel"
            ) from None


_BYTES_PER_PIXEL = {
    PixFormat.RGB565: 2,
    PixFormat.YUV422: 2,
    PixFormat.GRAYSCALE: 1,
    PixFormat.RGB888: 3,
}


@dataclass(frozen=True)
class Frame:
    """A captured frame: raw bytes plus their geometry and layout."""

    buf: bytes
    width: int
    height: int
    format: PixFormat

    @property
    def len(self) -> int:
        """Length of the frame data in bytes."""
        return len(self.buf)