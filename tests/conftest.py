import logging
from typing import Callable

import numpy as np
import pytest

from svg2png.image_utils import decode_image

logger = logging.getLogger(__name__)


def _decode_png(data: bytes) -> np.ndarray:
    assert data.startswith(b"\x89PNG\r\n\x1a\n")
    return np.asarray(decode_image(data, mode="RGBA"))


@pytest.fixture
def decode_png() -> Callable[[bytes], np.ndarray]:
    """Decoder of PNG bytes to an (height, width, 4) uint8 array."""
    return _decode_png


@pytest.fixture
def simple_svg() -> str:
    """100x100 canvas with a red square inset by 10 pixels."""
    return """<?xml version="1.0" encoding="UTF-8"?>
<svg xmlns="http://www.w3.org/2000/svg" width="100" height="100" viewBox="0 0 100 100">
    <rect x="10" y="10" width="80" height="80" fill="red"/>
</svg>"""


@pytest.fixture
def circle_svg() -> str:
    """800x600 canvas with a black circle of radius 50 at (50, 50)."""
    return """<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 800 600" width="800" height="600">
    <circle cx="50" cy="50" r="50"/>
</svg>"""
