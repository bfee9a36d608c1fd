"""Rasterizer module for converting SVG to PNG images.

This module provides the NumpyRasterizer, the built-in renderer that paints
parsed scenes with numpy and encodes them with Pillow, and optionally the
ResvgRasterizer backed by the resvg rendering engine.
"""

from typing import Any

from .base_rasterizer import BaseRasterizer
from .numpy_rasterizer import NumpyRasterizer, paint_scene, render
from .pixel_buffer import PixelBuffer
from .resvg_rasterizer import ResvgRasterizer

RASTERIZERS: dict[str, type[BaseRasterizer]] = {
    "numpy": NumpyRasterizer,
    "resvg": ResvgRasterizer,
}


def create_rasterizer(name: str = "numpy", **kwargs: Any) -> BaseRasterizer:
    """Create a rasterizer by name.

    Args:
        name: One of "numpy" (default) or "resvg".
        **kwargs: Passed to the rasterizer constructor.

    Raises:
        ValueError: If the name is unknown.
    """
    try:
        rasterizer_class = RASTERIZERS[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown rasterizer {name!r}, expected one of {sorted(RASTERIZERS)}"
        ) from None
    return rasterizer_class(**kwargs)


__all__ = [
    "BaseRasterizer",
    "NumpyRasterizer",
    "PixelBuffer",
    "ResvgRasterizer",
    "create_rasterizer",
    "paint_scene",
    "render",
]
