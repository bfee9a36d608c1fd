import logging
from typing import Optional

import numpy as np

from svg2png.color_utils import Paint
from svg2png.errors import AllocationError, EncodingError
from svg2png.image_utils import EncodedImage, encode_png
from svg2png.resource_limits import ResourceLimits

logger = logging.getLogger(__name__)


class PixelBuffer:
    """Grid of premultiplied RGBA pixels.

    Pixels are stored as a float64 array of shape (height, width, 4) with
    channels in the range [0.0, 1.0]. Pixel (x, y) covers the device-space
    square [x, x + 1) x [y, y + 1).
    """

    def __init__(self, pixels: np.ndarray) -> None:
        self.pixels = pixels

    @classmethod
    def allocate(
        cls,
        width: int,
        height: int,
        limits: Optional[ResourceLimits] = None,
        background: Optional[Paint] = None,
    ) -> "PixelBuffer":
        """Allocate a buffer, transparent unless a background is given.

        Raises:
            AllocationError: If the size is non-positive, exceeds the limits,
                or the memory cannot be allocated.
        """
        limits = limits if limits is not None else ResourceLimits.default()
        limits.check_canvas(width, height)
        try:
            pixels = np.zeros((height, width, 4), dtype=np.float64)
        except MemoryError as e:
            raise AllocationError(
                f"Failed to allocate {width}x{height} pixel buffer"
            ) from e
        if background is not None:
            pixels[...] = background.premultiplied()
        logger.debug("Allocated %dx%d pixel buffer", width, height)
        return cls(pixels)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)

    def composite(
        self, x: int, y: int, coverage: np.ndarray, color: np.ndarray
    ) -> None:
        """Paint a premultiplied color source-over at the given coverage.

        Args:
            x: Left edge of the covered region in device pixels.
            y: Top edge of the covered region in device pixels.
            coverage: (rows, columns) array of coverage alpha in [0, 1].
            color: Premultiplied RGBA color.
        """
        rows, columns = coverage.shape
        region = self.pixels[y : y + rows, x : x + columns]
        source = coverage[..., None] * color
        region[...] = source + region * (1.0 - source[..., 3:4])

    def to_rgba8(self) -> np.ndarray:
        """Convert to straight-alpha 8-bit RGBA, as stored in the encoded image.

        Raises:
            EncodingError: If the buffer holds values that are not finite.
        """
        if self.pixels.ndim != 3 or self.pixels.shape[2] != 4:
            raise EncodingError(f"Corrupt pixel buffer shape: {self.pixels.shape}")
        if not np.isfinite(self.pixels).all():
            raise EncodingError("Pixel buffer contains non-finite values")
        pixels = np.clip(self.pixels, 0.0, 1.0)
        alpha = pixels[..., 3:4]
        safe_alpha = np.where(alpha > 0, alpha, 1.0)
        rgb = np.where(alpha > 0, np.minimum(pixels[..., :3] / safe_alpha, 1.0), 0.0)
        straight = np.concatenate([rgb, alpha], axis=2)
        return np.round(straight * 255.0).astype(np.uint8)

    def pixel(self, x: int, y: int) -> tuple[int, int, int, int]:
        """Straight-alpha 8-bit RGBA value of a single pixel."""
        single = PixelBuffer(self.pixels[y : y + 1, x : x + 1])
        return tuple(int(v) for v in single.to_rgba8()[0, 0])  # type: ignore[return-value]

    def encode(self) -> EncodedImage:
        """Serialize the buffer as PNG.

        Raises:
            EncodingError: If the buffer is corrupt or encoding fails.
        """
        data = encode_png(self.to_rgba8())
        logger.debug("Encoded %dx%d buffer into %d bytes", self.width, self.height, len(data))
        return EncodedImage(data=data, width=self.width, height=self.height)
