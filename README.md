# camconv

camconv converts raw camera frames in pure Python. It takes frames in RGB565,
RGB888, YUV422 (YUYV) or 8-bit grayscale and turns them into baseline JPEG
or BMP files. It can also expand those formats into plain three-byte-per-pixel
data. It needs nothing outside the standard library.

## Installation

```
pip install .
```

## Pixel formats and frames

`camconv.pixformat.PixFormat` names the layouts: `RGB565`, `YUV422`,
`GRAYSCALE`, `JPEG` and `RGB888`. `PixFormat.bytes_per_pixel()` gives the size
of one pixel in a raw buffer. It raises `ConversionError` for `JPEG`, because
JPEG has no fixed pixel size.

`camconv.pixformat.Frame` holds a buffer (`buf`) together with its `width`,
`height` and `format`. Its `len` property gives the buffer length.

Failed conversions raise `camconv.pixformat.ConversionError`, which is a
subclass of `ValueError`.

## Encoding JPEG

```python
from camconv.pixformat import PixFormat, Frame
from camconv.to_jpg import fmt_to_jpeg, frame_to_jpeg, fmt_to_jpeg_cb

width, height = 16, 16
gray = bytes(range(256))

jpeg = fmt_to_jpeg(gray, width, height, PixFormat.GRAYSCALE, 80)

frame = Frame(buf=gray, width=width, height=height, format=PixFormat.GRAYSCALE)
jpeg = frame_to_jpeg(frame, 80)
```

Quality is clamped to the range 1..100, so a quality of 0 is treated as 1.
Grayscale sources produce single-component JPEGs. Colour sources are encoded
with 2x2 chroma subsampling. A source buffer that is too short raises
`ConversionError`.

`fmt_to_jpeg` collects its output in a `MemoryStream` with a capacity of
`JPEG_BUFFER_SIZE` (128 KiB). Any output past that limit is silently dropped.

To stream the encoded bytes with no size limit, use `fmt_to_jpeg_cb` or
`frame_to_jpeg_cb`. Each is called with `callback(index, data)`:

- `index` is the running byte offset.
- The callback returns how many bytes it accepted.
- `data` is `None` once, at the end of the image.

```python
chunks = []

def collect(index, data):
    if data is None:
        return 0
    chunks.append(data)
    return len(data)

fmt_to_jpeg_cb(gray, width, height, PixFormat.GRAYSCALE, 80, collect)
jpeg = b"".join(chunks)
```

`camconv.to_jpg.convert_line(src, format, width, line)` returns one source row
in the form the encoder takes. That is greyscale bytes for grayscale sources
and packed R, G, B bytes for the others. `convert_image` encodes a whole image
into any stream.

### The encoder

For finer control, use `camconv.jpeg_encoder.JpegEncoder(stream, width,
height, channels, params)`.

- `stream` is any object with a `put_buf(data)` method, such as
  `camconv.to_jpg.CallbackStream` or `camconv.to_jpg.MemoryStream`. A
  `put_buf` that returns `False` reports a failed write, which the encoder
  raises as `ConversionError`.
- `channels` is 1, 3 or 4.
- `params` is an `EncoderParams`, which holds `quality` (default 85) and a
  `camconv.jpeg_tables.Subsampling` (default `H2V2`).
  `EncoderParams.check()` tells whether the parameters are valid.

The headers are written when the encoder is constructed. Feed it one row at a
time with `process_scanline` and end with `finish()`; passing `None` to
`process_scanline` also finishes the image.

`camconv.jpeg_tables` holds the building blocks the encoder uses:

- the standard quantization and Huffman tables;
- the colour conversions `rgb_to_ycc`, `rgb_to_y` and `y_to_ycc`;
- the integer `forward_dct`;
- `quantization_table(quality, base)`;
- `huffman_table(bits, values)`.

## Producing BMP and RGB888

```python
from camconv.to_bmp import fmt_to_bmp, frame_to_bmp, fmt_to_rgb888

bmp = fmt_to_bmp(gray, width, height, PixFormat.GRAYSCALE)
pixels = fmt_to_rgb888(gray, PixFormat.GRAYSCALE)
```

BMP files are stored top-down, with a negative height. Grayscale images are
written as 8-bit bitmaps with a grey palette. All other formats are written as
24-bit pixels in B, G, R order.

`fmt_to_rgb888` expands RGB565, YUV422 and grayscale buffers to three bytes
per pixel in B, G, R order. It returns RGB888 input unchanged.

## YUV

`camconv.yuv.yuv_to_rgb(y, u, v)` converts one YUV sample to an `(r, g, b)`
tuple. It uses the same fixed-point tables as the frame converters. Values
outside 0..255 raise `ValueError`.

## What it does not do

camconv encodes JPEG but does not decode it. Passing `PixFormat.JPEG` to
`fmt_to_rgb888`, `fmt_to_bmp` or `frame_to_bmp` raises `ConversionError`.
Passing a JPEG source to the JPEG encoders raises `ConversionError` too.

camconv does not talk to cameras. It works only on buffers you already have.