"""Streaming baseline JPEG encoder fed one scanline at a time."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from camconv.jpeg_tables import (
    AC_CHROMA_BITS,
    AC_CHROMA_VALUES,
    AC_LUM_BITS,
    AC_LUM_VALUES,
    DC_CHROMA_BITS,
    DC_CHROMA_VALUES,
    DC_LUM_BITS,
    DC_LUM_VALUES,
    STD_CHROMA_QUANT,
    STD_LUM_QUANT,
    ZIGZAG,
    Subsampling,
    forward_dct,
    huffman_table,
    quantization_table,
    rgb_to_y,
    rgb_to_ycc,
    y_to_ycc,
)
from camconv.pixformat import ConversionError

__all__ = ["OutputStream", "EncoderParams", "JpegEncoder"]

_OUT_BUF_SIZE = 512

_M_SOF0 = 0xC0
_M_DHT = 0xC4
_M_SOI = 0xD8
_M_EOI = 0xD9
_M_SOS = 0xDA
_M_DQT = 0xDB
_M_APP0 = 0xE0


class OutputStream(Protocol):
    """Receives encoded bytes; ``None`` marks the end of the image.

    Returning ``False`` reports a failed write.
    """

    def put_buf(self, data: bytes | None) -> bool | None: ...


@dataclass
class EncoderParams:
    """Compression parameters: quality 1..100 and chroma subsampling."""

    quality: int = 85
    subsampling: Subsampling = Subsampling.H2V2

    def check(self) -> bool:
        """Whether the parameters are within their valid ranges."""
        if not 1 <= self.quality <= 100:
            return False
        try:
            Subsampling(self.subsampling)
        except ValueError:
            return False
        return True


@dataclass(frozen=True)
class _HuffTable:
    bits: tuple[int, ...]
    values: tuple[int, ...]
    codes: tuple[int, ...]
    sizes: tuple[int, ...]


def _make_table(bits: Sequence[int], values: Sequence[int]) -> _HuffTable:
    codes, sizes = huffman_table(bits, values)
    return _HuffTable(tuple(bits), tuple(values), codes, sizes)


_DC_TABLES = (
    _make_table(DC_LUM_BITS, DC_LUM_VALUES),
    _make_table(DC_CHROMA_BITS, DC_CHROMA_VALUES),
)
_AC_TABLES = (
    _make_table(AC_LUM_BITS, AC_LUM_VALUES),
    _make_table(AC_CHROMA_BITS, AC_CHROMA_VALUES),
)

_LAYOUTS = {
    # subsampling: (components, luma h samp, luma v samp, mcu_x, mcu_y)
    Subsampling.Y_ONLY: (1, 1, 1, 8, 8),
    Subsampling.H1V1: (3, 1, 1, 8, 8),
    Subsampling.H2V1: (3, 2, 1, 16, 8),
    Subsampling.H2V2: (3, 2, 2, 16, 16),
}


class JpegEncoder:
    """Encodes an image into a stream, scanline by scanline.

    Headers are written on construction. Call :meth:`process_scanline` once
    per source row (``width * channels`` bytes), then :meth:`finish`.
    """

    def __init__(
        self,
        stream: OutputStream,
        width: int,
        height: int,
        channels: int,
        params: EncoderParams | None = None,
    ) -> None:
        params = params if params is not None else EncoderParams()
        if stream is None:
            raise ConversionError("an output stream is required")
        if width < 1 or height < 1:
            raise ConversionError(f"invalid image size {width}x{height}")
        if channels not in (1, 3, 4):
            raise ConversionError(f"channels must be 1, 3 or 4, got {channels}")
        if not params.check():
            raise ConversionError(f"invalid encoder parameters: {params}")

        self._stream = stream
        self._params = params
        subsampling = Subsampling(params.subsampling)
        self._subsampling = subsampling
        (
            self._num_components,
            self._h_samp,
            self._v_samp,
            self._mcu_x,
            self._mcu_y,
        ) = _LAYOUTS[subsampling]

        self._width = width
        self._height = height
        self._channels = channels
        self._width_mcu = (width + self._mcu_x - 1) & ~(self._mcu_x - 1)
        self._bpl_mcu = self._width_mcu * self._num_components
        self._mcus_per_row = self._width_mcu // self._mcu_x
        self._mcu_lines = [bytearray(self._bpl_mcu) for _ in range(self._mcu_y)]
        self._mcu_y_ofs = 0

        self._quant = (
            quantization_table(params.quality, STD_LUM_QUANT),
            quantization_table(params.quality, STD_CHROMA_QUANT),
        )

        self._out = bytearray()
        self._bit_buffer = 0
        self._bits_in = 0
        self._last_dc = [0, 0, 0]
        self._writes_ok = True
        self._finished = False

        self._emit_marker(_M_SOI)
        self._emit_jfif_app0()
        self._emit_dqt()
        self._emit_sof()
        self._emit_dhts()
        self._emit_sos()
        self._check_writes()

    # -- public interface -------------------------------------------------

    def process_scanline(self, scanline: bytes | bytearray | memoryview | None) -> None:
        """Feed one source row; ``None`` finishes the image."""
        if scanline is None:
            self.finish()
            return
        if self._finished:
            raise ConversionError("the image has already been finished")
        self._check_writes()
        data = bytes(scanline)
        needed = self._width * self._channels
        if len(data) < needed:
            raise ValueError(f"scanline holds {len(data)} bytes, expected {needed}")
        self._load_mcu(data)
        self._check_writes()

    def finish(self) -> None:
        """Flush the last MCU row, write the end marker and close the stream."""
        if self._finished:
            raise ConversionError("the image has already been finished")
        self._check_writes()
        if self._mcu_y_ofs:
            last = self._mcu_lines[self._mcu_y_ofs - 1]
            for i in range(self._mcu_y_ofs, self._mcu_y):
                self._mcu_lines[i] = bytearray(last)
            self._process_mcu_row()
        self._put_bits(0x7F, 7)
        self._emit_marker(_M_EOI)
        self._flush()
        self._put(None)
        self._finished = True
        self._check_writes()

    # -- output -----------------------------------------------------------

    def _put(self, data: bytes | None) -> None:
        if self._writes_ok and self._stream.put_buf(data) is False:
            self._writes_ok = False

    def _check_writes(self) -> None:
        if not self._writes_ok:
            raise ConversionError("writing to the output stream failed")

    def _flush(self) -> None:
        if self._out:
            self._put(bytes(self._out))
        self._out.clear()

    def _emit_byte(self, value: int) -> None:
        self._out.append(value & 0xFF)
        if len(self._out) == _OUT_BUF_SIZE:
            self._flush()

    def _emit_bytes(self, values: Sequence[int]) -> None:
        for value in values:
            self._emit_byte(value)

    def _emit_word(self, value: int) -> None:
        self._emit_byte(value >> 8)
        self._emit_byte(value & 0xFF)

    def _emit_marker(self, marker: int) -> None:
        self._emit_byte(0xFF)
        self._emit_byte(marker)

    def _put_bits(self, bits: int, length: int) -> None:
        self._bits_in += length
        self._bit_buffer |= (bits << (24 - self._bits_in)) & 0xFFFFFFFF
        while self._bits_in >= 8:
            c = (self._bit_buffer >> 16) & 0xFF
            self._emit_byte(c)
            if c == 0xFF:
                self._emit_byte(0)
            self._bit_buffer = (self._bit_buffer << 8) & 0xFFFFFFFF
            self._bits_in -= 8

    # -- headers ----------------------------------------------------------

    def _emit_jfif_app0(self) -> None:
        self._emit_marker(_M_APP0)
        self._emit_word(2 + 4 + 1 + 2 + 1 + 2 + 2 + 1 + 1)
        self._emit_bytes(b"JFIF\x00")
        self._emit_bytes((1, 1, 0))
        self._emit_word(1)
        self._emit_word(1)
        self._emit_bytes((0, 0))

    def _emit_dqt(self) -> None:
        for index in range(2 if self._num_components == 3 else 1):
            self._emit_marker(_M_DQT)
            self._emit_word(64 + 1 + 2)
            self._emit_byte(index)
            self._emit_bytes(self._quant[index])

    def _emit_sof(self) -> None:
        n = self._num_components
        self._emit_marker(_M_SOF0)
        self._emit_word(3 * n + 2 + 5 + 1)
        self._emit_byte(8)
        self._emit_word(self._height)
        self._emit_word(self._width)
        self._emit_byte(n)
        for i in range(n):
            h, v = (self._h_samp, self._v_samp) if i == 0 else (1, 1)
            self._emit_byte(i + 1)
            self._emit_byte((h << 4) + v)
            self._emit_byte(1 if i > 0 else 0)

    def _emit_dht(self, table: _HuffTable, index: int, ac: bool) -> None:
        self._emit_marker(_M_DHT)
        length = sum(table.bits[1:17])
        self._emit_word(length + 2 + 1 + 16)
        self._emit_byte(index + (16 if ac else 0))
        self._emit_bytes(table.bits[1:17])
        self._emit_bytes(table.values[:length])

    def _emit_dhts(self) -> None:
        self._emit_dht(_DC_TABLES[0], 0, False)
        self._emit_dht(_AC_TABLES[0], 0, True)
        if self._num_components == 3:
            self._emit_dht(_DC_TABLES[1], 1, False)
            self._emit_dht(_AC_TABLES[1], 1, True)

    def _emit_sos(self) -> None:
        n = self._num_components
        self._emit_marker(_M_SOS)
        self._emit_word(2 * n + 2 + 1 + 3)
        self._emit_byte(n)
        for i in range(n):
            self._emit_byte(i + 1)
            self._emit_byte(0x00 if i == 0 else 0x11)
        self._emit_bytes((0, 63, 0))

    # -- sample loading ---------------------------------------------------

    def _load_mcu(self, data: bytes) -> None:
        width = self._width
        if self._num_components == 1:
            row = rgb_to_y(data[: width * 3]) if self._channels == 3 else data[:width]
        elif self._channels == 3:
            row = rgb_to_ycc(data[: width * 3])
        else:
            row = y_to_ycc(data[:width])
        pad_pixels = self._width_mcu - width
        pixel = row[-self._num_components:]
        self._mcu_lines[self._mcu_y_ofs] = bytearray(row + pixel * pad_pixels)
        self._mcu_y_ofs += 1
        if self._mcu_y_ofs == self._mcu_y:
            self._process_mcu_row()
            self._mcu_y_ofs = 0

    def _block_grey(self, x: int) -> list[int]:
        start = x << 3
        return [
            value - 128
            for line in self._mcu_lines[:8]
            for value in line[start:start + 8]
        ]

    def _block_8_8(self, x: int, y: int, c: int) -> list[int]:
        start = x * 24 + c
        lines = self._mcu_lines[y * 8:y * 8 + 8]
        return [value - 128 for line in lines for value in line[start:start + 24:3]]

    def _block_16_8(self, x: int, c: int) -> list[int]:
        start = x * 48 + c
        block = []
        a, b = 0, 2
        for row in range(8):
            top = self._mcu_lines[2 * row][start:start + 48:3]
            bottom = self._mcu_lines[2 * row + 1][start:start + 48:3]
            for k in range(8):
                bias = a if k % 2 == 0 else b
                total = top[2 * k] + top[2 * k + 1] + bottom[2 * k] + bottom[2 * k + 1]
                block.append(((total + bias) >> 2) - 128)
            a, b = b, a
        return block

    def _block_16_8_8(self, x: int, c: int) -> list[int]:
        start = x * 48 + c
        block = []
        for line in self._mcu_lines[:8]:
            samples = line[start:start + 48:3]
            block.extend(
                ((samples[2 * k] + samples[2 * k + 1]) >> 1) - 128 for k in range(8)
            )
        return block

    # -- coding -----------------------------------------------------------

    def _quantize(self, samples: list[int], component: int) -> list[int]:
        table = self._quant[1 if component > 0 else 0]
        coefficients = []
        for zz, q in zip(ZIGZAG, table):
            j = samples[zz]
            magnitude = abs(j) + (q >> 1)
            if magnitude < q:
                coefficients.append(0)
            else:
                coefficients.append(-(magnitude // q) if j < 0 else magnitude // q)
        return coefficients

    def _code_coefficients(self, coefficients: list[int], component: int) -> None:
        table_index = 0 if component == 0 else 1
        dc_table = _DC_TABLES[table_index]
        ac_table = _AC_TABLES[table_index]

        diff = coefficients[0] - self._last_dc[component]
        self._last_dc[component] = coefficients[0]
        nbits = abs(diff).bit_length()
        extra = diff - 1 if diff < 0 else diff
        self._put_bits(dc_table.codes[nbits], dc_table.sizes[nbits])
        if nbits:
            self._put_bits(extra & ((1 << nbits) - 1), nbits)

        run_len = 0
        for value in coefficients[1:]:
            if value == 0:
                run_len += 1
                continue
            while run_len >= 16:
                self._put_bits(ac_table.codes[0xF0], ac_table.sizes[0xF0])
                run_len -= 16
            nbits = max(abs(value).bit_length(), 1)
            extra = value - 1 if value < 0 else value
            symbol = (run_len << 4) + nbits
            self._put_bits(ac_table.codes[symbol], ac_table.sizes[symbol])
            self._put_bits(extra & ((1 << nbits) - 1), nbits)
            run_len = 0
        if run_len:
            self._put_bits(ac_table.codes[0], ac_table.sizes[0])

    def _code_block(self, samples: list[int], component: int) -> None:
        coefficients = self._quantize(forward_dct(samples), component)
        self._code_coefficients(coefficients, component)

    def _process_mcu_row(self) -> None:
        for i in range(self._mcus_per_row):
            if self._num_components == 1:
                self._code_block(self._block_grey(i), 0)
            elif self._h_samp == 1 and self._v_samp == 1:
                for c in range(3):
                    self._code_block(self._block_8_8(i, 0, c), c)
            elif self._h_samp == 2 and self._v_samp == 1:
                self._code_block(self._block_8_8(i * 2, 0, 0), 0)
                self._code_block(self._block_8_8(i * 2 + 1, 0, 0), 0)
                self._code_block(self._block_16_8_8(i, 1), 1)
                self._code_block(self._block_16_8_8(i, 2), 2)
            else:
                self._code_block(self._block_8_8(i * 2, 0, 0), 0)
                self._code_block(self._block_8_8(i * 2 + 1, 0, 0), 0)
                self._code_block(self._block_8_8(i * 2, 1, 0), 0)
                self._code_block(self._block_8_8(i * 2 + 1, 1, 0), 0)
                self._code_block(self._block_16_8(i, 1), 1)
                self._code_block(self._block_16_8(i, 2), 2)