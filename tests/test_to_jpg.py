import itertools
import struct

import pytest

from camconv.pixformat import ConversionError, Frame, PixFormat
from camconv.to_jpg import (
    CallbackStream,
    MemoryStream,
    convert_image,
    convert_line,
    fmt_to_jpeg,
    fmt_to_jpeg_cb,
    frame_to_jpeg,
    frame_to_jpeg_cb,
)
from camconv.yuv import yuv_to_rgb


def _rgb(width, height):
    return bytes(
        (x * 37 + y * 11 + c * 53) % 256
        for y in range(height)
        for x in range(width)
        for c in range(3)
    )


def _grey(width, height):
    return bytes((x * 13 + y * 29) % 256 for y in range(height) for x in range(width))


def _sof(data):
    pos = data.index(b"\xff\xc0")
    _, _, height, width, components = struct.unpack(">HBHHB", data[pos + 2:pos + 10])
    return height, width, components


def test_markers_at_both_ends():
    out = fmt_to_jpeg(_rgb(16, 16), 16, 16, PixFormat.RGB888, 80)
    assert out[:2] == b"\xff\xd8"
    assert out[-2:] == b"\xff\xd9"


def test_jfif_header_follows_soi():
    out = fmt_to_jpeg(_grey(8, 8), 8, 8, PixFormat.GRAYSCALE, 50)
    assert out[2:4] == b"\xff\xe0"
    assert out[6:11] == b"JFIF\x00"


def test_sof_carries_size_and_components():
    colour = fmt_to_jpeg(_rgb(20, 12), 20, 12, PixFormat.RGB888, 70)
    grey = fmt_to_jpeg(_grey(20, 12), 20, 12, PixFormat.GRAYSCALE, 70)
    assert _sof(colour) == (12, 20, 3)
    assert _sof(grey) == (12, 20, 1)


@pytest.mark.parametrize("fmt", [PixFormat.RGB565, PixFormat.YUV422])
def test_two_byte_formats_encode(fmt):
    src = bytes((i * 7) % 256 for i in range(10 * 6 * 2))
    out = fmt_to_jpeg(src, 10, 6, fmt, 60)
    assert out[:2] == b"\xff\xd8" and out[-2:] == b"\xff\xd9"
    assert _sof(out) == (6, 10, 3)


def test_callback_receives_same_bytes_in_order():
    src = _rgb(16, 16)
    calls = []

    def callback(index, data):
        calls.append((index, data))
        return 0 if data is None else len(data)

    fmt_to_jpeg_cb(src, 16, 16, PixFormat.RGB888, 75, callback)
    chunks = [data for _, data in calls if data is not None]
    assert b"".join(chunks) == fmt_to_jpeg(src, 16, 16, PixFormat.RGB888, 75)
    assert calls[-1][1] is None
    data_calls = calls[:-1]
    assert len(data_calls) > 0
    indices = [index for index, _ in data_calls]
    lengths = [len(data) for _, data in data_calls]
    expected = list(itertools.accumulate(lengths, initial=0))[:-1]
    assert indices == expected


def test_quality_is_clamped():
    src = _rgb(16, 16)
    assert fmt_to_jpeg(src, 16, 16, PixFormat.RGB888, 0) == fmt_to_jpeg(
        src, 16, 16, PixFormat.RGB888, 1
    )
    assert fmt_to_jpeg(src, 16, 16, PixFormat.RGB888, 250) == fmt_to_jpeg(
        src, 16, 16, PixFormat.RGB888, 100
    )


def test_higher_quality_gives_more_bytes():
    src = _rgb(32, 32)
    low = fmt_to_jpeg(src, 32, 32, PixFormat.RGB888, 5)
    high = fmt_to_jpeg(src, 32, 32, PixFormat.RGB888, 95)
    assert len(low) < len(high)


def test_frame_wrappers_match():
    src = _grey(8, 8)
    frame = Frame(src, 8, 8, PixFormat.GRAYSCALE)
    expected = fmt_to_jpeg(src, 8, 8, PixFormat.GRAYSCALE, 40)
    assert frame_to_jpeg(frame, 40) == expected
    parts = []
    frame_to_jpeg_cb(frame, 40, lambda index, data: parts.append(data) or (len(data) if data else 0))
    assert b"".join(p for p in parts if p) == expected


def test_jpeg_source_rejected():
    with pytest.raises(ConversionError):
        fmt_to_jpeg(b"\xff\xd8\xff\xd9", 1, 1, PixFormat.JPEG, 80)


def test_zero_width_rejected():
    with pytest.raises(ConversionError):
        fmt_to_jpeg(b"", 0, 4, PixFormat.GRAYSCALE, 80)


def test_short_source_rejected():
    with pytest.raises(ConversionError):
        fmt_to_jpeg(bytes(10), 8, 8, PixFormat.RGB888, 80)


def test_convert_line_rgb888_swaps_order():
    src = bytes([1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11, 12])
    assert convert_line(src, PixFormat.RGB888, 2, 1) == bytes([9, 8, 7, 12, 11, 10])


def test_convert_line_rgb565():
    src = bytes([0xF8, 0x00, 0x07, 0xE0, 0x00, 0x1F])
    assert convert_line(src, PixFormat.RGB565, 3, 0) == bytes(
        [0xF8, 0, 0, 0, 0xFC, 0, 0, 0, 0xF8]
    )


def test_convert_line_grayscale_selects_row():
    src = bytes(range(12))
    assert convert_line(src, PixFormat.GRAYSCALE, 4, 2) == bytes([8, 9, 10, 11])


def test_convert_line_yuv422():
    src = bytes([100, 90, 150, 200])
    expected = bytes(yuv_to_rgb(100, 90, 200) + yuv_to_rgb(150, 90, 200))
    assert convert_line(src, PixFormat.YUV422, 2, 0) == expected


def test_memory_stream_truncates():
    stream = MemoryStream(4)
    assert stream.put_buf(b"abcdef") is True
    assert stream.put_buf(b"gh") is True
    assert stream.put_buf(None) is True
    assert stream.getvalue() == b"abcd"


def test_memory_stream_receives_image():
    stream = MemoryStream()
    convert_image(_grey(8, 8), 8, 8, PixFormat.GRAYSCALE, 50, stream)
    assert stream.getvalue() == fmt_to_jpeg(_grey(8, 8), 8, 8, PixFormat.GRAYSCALE, 50)


def test_callback_stream_counts_accepted_bytes():
    stream = CallbackStream(lambda index, data: 0 if data is None else len(data) - 1)
    stream.put_buf(b"abc")
    stream.put_buf(b"de")
    stream.put_buf(None)
    assert stream.size == 3