"""Convert raw camera pixel buffers to BGR888 and BMP files."""

from __future__ import annotations

import struct

from camconv.pixformat import ConversionError, Frame, PixFormat
from camconv.yuv import yuv_to_rgb

__all__ = ["BMP_HEADER_LEN", "fmt_to_rgb888", "fmt_to_bmp", "frame_to_bmp"]

BMP_HEADER_LEN = 54
_DIB_HEADER_LEN = 40
_PIXELS_PER_METRE = 0x0B13  # 72 DPI
_HEADER = struct.Struct("<2sIIIIiiHHIIIIII")


def _rgb565_to_bgr(data: bytes) -> bytes:
    out = bytearray()
    for hb, lb in zip(data[0::2], data[1::2]):
        out += bytes(((lb & 0x1F) << 3, (hb & 0x07) << 5 | (lb & 0xE0) >> 3, hb & 0xF8))
    return bytes(out)


def _yuv422_to_bgr(data: bytes) -> bytes:
    out = bytearray()
    for offset in range(0, len(data) - 3, 4):
        y0, u, y1, v = data[offset:offset + 4]
        for y in (y0, y1):
            r, g, b = yuv_to_rgb(y, u, v)
            out += bytes((b, g, r))
    return bytes(out)


def _grey_to_bgr(data: bytes) -> bytes:
    return bytes(value for value in data for _ in range(3))


def fmt_to_rgb888(src: bytes, format: PixFormat) -> bytes:
    """Expand a whole raw buffer to three bytes per pixel in B, G, R order."""
    data = bytes(src)
    if format is PixFormat.JPEG:
        raise ConversionError("JPEG decoding is not available")
    if format is PixFormat.RGB888:
        return data
    if format is PixFormat.RGB565:
        return _rgb565_to_bgr(data[: (len(data) // 2) * 2])
    if format is PixFormat.GRAYSCALE:
        return _grey_to_bgr(data)
    if format is PixFormat.YUV422:
        pairs = len(data) // 4
        return _yuv422_to_bgr(data[: pairs * 4])
    raise ConversionError(f"cannot convert {format.name} data")


def fmt_to_bmp(src: bytes, width: int, height: int, format: PixFormat) -> bytes:
    """Build a top-down BMP: 8-bit paletted for greyscale, else 24-bit."""
    if format is PixFormat.JPEG:
        raise ConversionError("JPEG decoding is not available")
    if width < 0 or height < 0:
        raise ConversionError(f"invalid image size {width}x{height}")

    data = bytes(src)
    pix_count = width * height
    grey = format is PixFormat.GRAYSCALE
    bpp = 1 if grey else 3
    palette_size = 4 * 256 if grey else 0

    if format is PixFormat.YUV422:
        needed = (pix_count // 2) * 4
    else:
        needed = pix_count * format.bytes_per_pixel()
    if len(data) < needed:
        raise ConversionError(f"source holds {len(data)} bytes, need {needed}")
    data = data[:needed]

    if format is PixFormat.RGB888 or grey:
        pixels = data
    elif format is PixFormat.RGB565:
        pixels = _rgb565_to_bgr(data)
    else:
        pixels = _yuv422_to_bgr(data).ljust(pix_count * 3, b"\x00")

    image_size = pix_count * bpp
    out_size = image_size + BMP_HEADER_LEN + palette_size
    header = _HEADER.pack(
        b"BM",
        out_size,
        0,
        BMP_HEADER_LEN + palette_size,
        _DIB_HEADER_LEN,
        width,
        -height,
        1,
        bpp * 8,
        0,
        image_size,
        _PIXELS_PER_METRE,
        _PIXELS_PER_METRE,
        0,
        0,
    )
    palette = b"".join(bytes((i, i, i, 0)) for i in range(256)) if grey else b""
    return header + palette + pixels


def frame_to_bmp(frame: Frame) -> bytes:
    """Build a BMP from a captured frame."""
    return fmt_to_bmp(frame.buf, frame.width, frame.height, frame.format)