import struct

import pytest

from camconv.pixformat import ConversionError, Frame, PixFormat
from camconv.to_bmp import BMP_HEADER_LEN, fmt_to_bmp, fmt_to_rgb888, frame_to_bmp
from camconv.yuv import yuv_to_rgb

_HEADER = struct.Struct("<2sIIIIiiHHIIIIII")


def _header(data):
    return _HEADER.unpack(data[:BMP_HEADER_LEN])


def test_rgb888_header_fields():
    src = bytes(range(2 * 3 * 3))
    out = fmt_to_bmp(src, 3, 2, PixFormat.RGB888)
    (magic, filesize, reserved, offset, dib, width, height, planes, bits,
     compression, imagesize, ypm, xpm, colours, important) = _header(out)
    assert magic == b"BM"
    assert filesize == len(out)
    assert reserved == 0
    assert offset == BMP_HEADER_LEN
    assert dib == 40
    assert (width, height) == (3, -2)
    assert planes == 1
    assert bits == 24
    assert compression == 0
    assert imagesize == 18
    assert ypm == xpm == 0x0B13
    assert colours == important == 0


def test_rgb888_pixels_copied():
    src = bytes(range(2 * 2 * 3))
    out = fmt_to_bmp(src, 2, 2, PixFormat.RGB888)
    assert out[BMP_HEADER_LEN:] == src


def test_grayscale_has_palette():
    src = bytes([0, 50, 100, 200])
    out = fmt_to_bmp(src, 2, 2, PixFormat.GRAYSCALE)
    fields = _header(out)
    assert fields[3] == BMP_HEADER_LEN + 1024
    assert fields[8] == 8
    assert fields[1] == len(out)
    palette = out[BMP_HEADER_LEN:BMP_HEADER_LEN + 1024]
    assert palette[77 * 4:77 * 4 + 4] == bytes([77, 77, 77, 0])
    assert out[BMP_HEADER_LEN + 1024:] == src


def test_rgb565_pixels_in_bgr_order():
    src = bytes([0xF8, 0x00, 0x00, 0x1F])
    out = fmt_to_bmp(src, 2, 1, PixFormat.RGB565)
    assert out[BMP_HEADER_LEN:] == bytes([0, 0, 0xF8, 0xF8, 0, 0])


def test_yuv422_pixels_match_yuv_conversion():
    src = bytes([60, 110, 180, 140])
    out = fmt_to_bmp(src, 2, 1, PixFormat.YUV422)
    r0, g0, b0 = yuv_to_rgb(60, 110, 140)
    r1, g1, b1 = yuv_to_rgb(180, 110, 140)
    assert out[BMP_HEADER_LEN:] == bytes([b0, g0, r0, b1, g1, r1])


def test_jpeg_rejected():
    with pytest.raises(ConversionError):
        fmt_to_bmp(b"\xff\xd8", 1, 1, PixFormat.JPEG)
    with pytest.raises(ConversionError):
        fmt_to_rgb888(b"\xff\xd8", PixFormat.JPEG)


def test_short_source_rejected():
    with pytest.raises(ConversionError):
        fmt_to_bmp(bytes(5), 2, 2, PixFormat.RGB888)


def test_frame_to_bmp_matches():
    src = bytes(range(8))
    frame = Frame(src, 4, 2, PixFormat.GRAYSCALE)
    assert frame_to_bmp(frame) == fmt_to_bmp(src, 4, 2, PixFormat.GRAYSCALE)


def test_rgb888_identity():
    src = bytes(range(9))
    assert fmt_to_rgb888(src, PixFormat.RGB888) == src


def test_grayscale_expands_to_triples():
    assert fmt_to_rgb888(bytes([5, 200]), PixFormat.GRAYSCALE) == bytes([5, 5, 5, 200, 200, 200])


def test_rgb565_to_rgb888_length_and_values():
    out = fmt_to_rgb888(bytes([0x07, 0xE0, 0xF8, 0x00, 0x12]), PixFormat.RGB565)
    assert len(out) == 6
    assert out == bytes([0, 0xFC, 0, 0, 0, 0xF8])


def test_yuv422_to_rgb888():
    out = fmt_to_rgb888(bytes([128, 128, 128, 128]), PixFormat.YUV422)
    r, g, b = yuv_to_rgb(128, 128, 128)
    assert out == bytes([b, g, r, b, g, r])
    assert fmt_to_rgb888(bytes([1, 2, 3]), PixFormat.YUV422) == b""


def test_bmp_size_matches_dimensions():
    out = fmt_to_bmp(bytes(5 * 3 * 2), 5, 3, PixFormat.RGB565)
    assert len(out) == BMP_HEADER_LEN + 5 * 3 * 3
    assert _header(out)[10] == 5 * 3 * 3