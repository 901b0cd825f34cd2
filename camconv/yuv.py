"""Fixed-point YUV to RGB conversion."""

from __future__ import annotations

from typing import NamedTuple

__all__ = ["yuv_to_rgb"]


class _Row(NamedTuple):
    y: int
    vr: int
    vg: int
    ug: int
    ub: int


def _scaled(coefficient_milli: int, delta: int) -> int:
    """Multiply by a coefficient given in thousandths, truncating toward zero."""
    product = coefficient_milli * delta
    magnitude = abs(product) // 1000
    return -magnitude if product < 0 else magnitude


def _build_table() -> tuple[_Row, ...]:
    return tuple(
        _Row(
            y=_scaled(1164, i - 16),
            vr=_scaled(1596, i - 128),
            vg=_scaled(-391, i - 128),
            ug=_scaled(-813, i - 128),
            ub=_scaled(2018, i - 128),
        )
        for i in range(256)
    )


_TABLE = _build_table()


def _clamp(value: int) -> int:
    return 0 if value < 0 else 255 if value > 255 else value


def _check_byte(name: str, value: int) -> None:
    if not 0 <= value <= 255:
        raise ValueError(f"{name} must be in 0..255, got {value}")


def yuv_to_rgb(y: int, u: int, v: int) -> tuple[int, int, int]:
    """Convert one Y, U, V sample triple to an (r, g, b) tuple of bytes."""
    _check_byte("y", y)
    _check_byte("u", u)
    _check_byte("v", v)
    luma = _TABLE[y].y
    red = luma + _TABLE[v].vr
    green = luma + _TABLE[u].ug + _TABLE[v].vg
    blue = luma + _TABLE[u].ub
    return _clamp(red), _clamp(green), _clamp(blue)