"""Conversions of raw camera frames to baseline JPEG, BMP and RGB888."""

__version__ = "0.1.0"
__all__ = ["jpeg_encoder", "jpeg_tables", "pixformat", "to_bmp", "to_jpg", "yuv"]