import dataclasses
import io
import logging

import numpy as np
from PIL import Image

from svg2png.errors import EncodingError

logger = logging.getLogger(__name__)

PNG_CONTENT_TYPE = "image/png"

# Fixed zlib level, so identical pixels always produce identical bytes.
PNG_COMPRESS_LEVEL = 6


@dataclasses.dataclass(frozen=True)
class EncodedImage:
    """Encoded raster image bytes and their MIME content type."""

    data: bytes
    width: int
    height: int
    content_type: str = PNG_CONTENT_TYPE

    def save(self, filepath: str) -> None:
        """Write the encoded bytes to a file."""
        with open(filepath, "wb") as f:
            f.write(self.data)


def encode_png(rgba: np.ndarray) -> bytes:
    """Encode an (height, width, 4) uint8 straight-alpha array as PNG.

    Raises:
        EncodingError: If the array is not an RGBA8 image or Pillow fails.
    """
    if rgba.dtype != np.uint8 or rgba.ndim != 3 or rgba.shape[2] != 4:
        raise EncodingError(
            f"Expected (height, width, 4) uint8 array, got {rgba.shape} {rgba.dtype}"
        )
    try:
        image = Image.fromarray(np.ascontiguousarray(rgba))
        with io.BytesIO() as output:
            image.save(output, format="PNG", compress_level=PNG_COMPRESS_LEVEL)
            return output.getvalue()
    except (OSError, ValueError) as e:
        raise EncodingError(f"Failed to encode PNG: {e}") from e


def decode_image(data: bytes, mode: str | None = None) -> Image.Image:
    """Decode image data from bytes to a PIL image."""
    with io.BytesIO(data) as input:
        image = Image.open(input)
        image.load()
    if mode is not None:
        return image.convert(mode)
    return image
