"""Encode raw camera pixel buffers as baseline JPEG."""

from __future__ import annotations

from collections.abc import Callable

from camconv.jpeg_encoder import EncoderParams, JpegEncoder, OutputStream
from camconv.jpeg_tables import Subsampling
from camconv.pixformat import ConversionError, Frame, PixFormat
from camconv.yuv import yuv_to_rgb

__all__ = [
    "JPEG_BUFFER_SIZE",
    "CallbackStream",
    "MemoryStream",
    "convert_line",
    "convert_image",
    "fmt_to_jpeg_cb",
    "frame_to_jpeg_cb",
    "fmt_to_jpeg",
    "frame_to_jpeg",
]

JPEG_BUFFER_SIZE = 128 * 1024
"""Capacity of the in-memory buffer used by :func:`fmt_to_jpeg`."""

OutputCallback = Callable[[int, "bytes | None"], "int | None"]


class CallbackStream:
    """Hands every encoded chunk to ``callback(index, data)``.

    ``index`` is the running byte offset; the callback returns how many bytes
    it accepted. ``data`` is ``None`` once, at the end of the image.
    """

    def __init__(self, callback: OutputCallback) -> None:
        self._callback = callback
        self._index = 0

    def put_buf(self, data: bytes | None) -> bool:
        written = self._callback(self._index, data)
        self._index += written or 0
        return True

    @property
    def size(self) -> int:
        """Total number of bytes the callback accepted."""
        return self._index


class MemoryStream:
    """Collects encoded bytes in memory, silently dropping what does not fit."""

    def __init__(self, capacity: int = JPEG_BUFFER_SIZE) -> None:
        if capacity < 0:
            raise ValueError(f"capacity must not be negative, got {capacity}")
        self._capacity = capacity
        self._buf = bytearray()

    def put_buf(self, data: bytes | None) -> bool:
        if data is None:
            return True
        room = self._capacity - len(self._buf)
        if room > 0:
            self._buf += bytes(data[:room])
        return True

    def getvalue(self) -> bytes:
        """The bytes collected so far."""
        return bytes(self._buf)

    @property
    def size(self) -> int:
        return len(self._buf)


def _slice(src: bytes, start: int, length: int) -> bytes:
    if len(src) < start + length:
        raise ConversionError(
            f"source holds {len(src)} bytes, need at least {start + length}"
        )
    return bytes(src[start:start + length])


def convert_line(src: bytes, format: PixFormat, width: int, line: int) -> bytes:
    """Return source row ``line`` as greyscale bytes or packed R, G, B bytes."""
    if format is PixFormat.GRAYSCALE:
        return _slice(src, line * width, width)
    if format is PixFormat.RGB888:
        row = _slice(src, line * width * 3, width * 3)
        out = bytearray(len(row))
        out[0::3] = row[2::3]
        out[1::3] = row[1::3]
        out[2::3] = row[0::3]
        return bytes(out)
    if format is PixFormat.RGB565:
        row = _slice(src, line * width * 2, width * 2)
        out = bytearray()
        for hb, lb in zip(row[0::2], row[1::2]):
            out += bytes((hb & 0xF8, (hb & 0x07) << 5 | (lb & 0xE0) >> 3, (lb & 0x1F) << 3))
        return bytes(out)
    if format is PixFormat.YUV422:
        start = line * width * 2
        _slice(src, start, width * 2)
        pairs = (width + 1) // 2
        row = bytes(src[start:start + pairs * 4]).ljust(pairs * 4, b"\x00")
        out = bytearray()
        for offset in range(0, len(row), 4):
            y0, u, y1, v = row[offset:offset + 4]
            out += bytes(yuv_to_rgb(y0, u, v))
            out += bytes(yuv_to_rgb(y1, u, v))
        return bytes(out[: width * 3])
    raise ConversionError(f"cannot convert {format.name} scanlines")


def convert_image(
    src: bytes,
    width: int,
    height: int,
    format: PixFormat,
    quality: int,
    stream: OutputStream,
) -> None:
    """Encode a raw image into ``stream``; quality is clamped to 1..100."""
    if format is PixFormat.JPEG:
        raise ConversionError("source is already JPEG")
    if format is PixFormat.GRAYSCALE:
        channels, subsampling = 1, Subsampling.Y_ONLY
    else:
        channels, subsampling = 3, Subsampling.H2V2
    quality = min(max(quality, 1), 100)

    encoder = JpegEncoder(
        stream, width, height, channels, EncoderParams(quality, subsampling)
    )
    for line in range(height):
        encoder.process_scanline(convert_line(src, format, width, line))
    encoder.finish()


def fmt_to_jpeg_cb(
    src: bytes,
    width: int,
    height: int,
    format: PixFormat,
    quality: int,
    callback: OutputCallback,
) -> None:
    """Encode a raw image, passing the output to ``callback(index, data)``."""
    convert_image(src, width, height, format, quality, CallbackStream(callback))


def frame_to_jpeg_cb(frame: Frame, quality: int, callback: OutputCallback) -> None:
    """Encode a frame, passing the output to ``callback(index, data)``."""
    fmt_to_jpeg_cb(frame.buf, frame.width, frame.height, frame.format, quality, callback)


def fmt_to_jpeg(
    src: bytes, width: int, height: int, format: PixFormat, quality: int
) -> bytes:
    """Encode a raw image and return the JPEG bytes (at most 128 KiB)."""
    stream = MemoryStream(JPEG_BUFFER_SIZE)
    convert_image(src, width, height, format, quality, stream)
    return stream.getvalue()


def frame_to_jpeg(frame: Frame, quality: int) -> bytes:
    """Encode a frame and return the JPEG bytes."""
    return fmt_to_jpeg(frame.buf, frame.width, frame.height, frame.format, quality)