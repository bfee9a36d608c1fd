import logging
import re
from dataclasses import dataclass
from typing import Optional

import numpy as np
from PIL import ImageColor

logger = logging.getLogger(__name__)

FUNCIRI_RE = re.compile(r"^url\(\s*[^)]*\)\s*(?P<fallback>.*)$")
RGB_FUNCTION_RE = re.compile(r"^rgba?\(\s*(?P<args>[^)]*)\)$")


@dataclass(frozen=True)
class Paint:
    """A solid color with straight (non-premultiplied) alpha.

    Channels are floats in the range [0.0, 1.0] in the sRGB color space.
    """

    red: float
    green: float
    blue: float
    alpha: float = 1.0

    def with_opacity(self, opacity: float) -> "Paint":
        """Return a copy with alpha multiplied by the given opacity."""
        return Paint(self.red, self.green, self.blue, clip_unit(self.alpha * opacity))

    def premultiplied(self) -> np.ndarray:
        """Return the premultiplied RGBA color as a float64 array."""
        return np.array(
            [
                self.red * self.alpha,
                self.green * self.alpha,
                self.blue * self.alpha,
                self.alpha,
            ],
            dtype=np.float64,
        )

    @property
    def is_transparent(self) -> bool:
        return self.alpha <= 0.0


BLACK = Paint(0.0, 0.0, 0.0, 1.0)
TRANSPARENT = Paint(0.0, 0.0, 0.0, 0.0)


def clip_unit(value: float) -> float:
    """Clip a float value to the range [0.0, 1.0]."""
    return max(0.0, min(1.0, float(value)))


def parse_opacity(value: Optional[str], default: float = 1.0) -> float:
    """Parse an opacity value such as "0.5" or "50%", clipped to [0, 1]."""
    if value is None:
        return default
    value = value.strip()
    try:
        if value.endswith("%"):
            return clip_unit(float(value[:-1]) / 100.0)
        return clip_unit(float(value))
    except ValueError:
        logger.warning("Invalid opacity value: %r", value)
        return default


def _parse_rgb_function(args: str) -> Paint:
    """Parse the arguments of CSS rgb() or rgba() with float and % support."""
    channels = [arg.strip() for arg in re.split(r"[\s,/]+", args.strip()) if arg]
    if len(channels) not in (3, 4):
        raise ValueError(f"rgb() expects 3 or 4 arguments, got {len(channels)}")
    rgb = []
    for channel in channels[:3]:
        if channel.endswith("%"):
            rgb.append(clip_unit(float(channel[:-1]) / 100.0))
        else:
            rgb.append(clip_unit(float(channel) / 255.0))
    alpha = 1.0
    if len(channels) == 4:
        alpha_str = channels[3]
        if alpha_str.endswith("%"):
            alpha = clip_unit(float(alpha_str[:-1]) / 100.0)
        else:
            alpha = clip_unit(float(alpha_str))
    return Paint(rgb[0], rgb[1], rgb[2], alpha)


def parse_color(value: str) -> Paint:
    """Parse a CSS color into a Paint.

    Supports hex notation (#rgb, #rgba, #rrggbb, #rrggbbaa), rgb()/rgba()
    functional notation, hsl() and named colors.

    Raises:
        ValueError: If the color is not recognized.
    """
    value = value.strip()
    if value.lower() == "transparent":
        return TRANSPARENT
    match = RGB_FUNCTION_RE.match(value.lower())
    if match is not None:
        return _parse_rgb_function(match.group("args"))
    channels = ImageColor.getrgb(value)
    alpha = channels[3] / 255.0 if len(channels) == 4 else 1.0
    return Paint(channels[0] / 255.0, channels[1] / 255.0, channels[2] / 255.0, alpha)


def parse_paint(
    value: Optional[str],
    current_color: Optional[Paint] = None,
    inherited: Optional[Paint] = None,
) -> Optional[Paint]:
    """Resolve an SVG paint value.

    Args:
        value: The 'fill' or 'stroke' value, or None when unspecified.
        current_color: The resolved 'color' property, used for currentColor.
        inherited: Paint used when the value is unspecified or invalid.

    Returns:
        The resolved Paint, or None for 'none'.

    Note:
        Paint servers (gradients, patterns) are not supported. A url()
        reference falls back to its declared fallback color, or to none.
    """
    if value is None:
        return inherited
    value = value.strip()
    if value == "none":
        return None
    if value == "inherit":
        return inherited
    if value == "currentColor":
        return current_color if current_color is not None else BLACK

    match = FUNCIRI_RE.match(value)
    if match is not None:
        fallback = match.group("fallback").strip()
        logger.warning("Unsupported paint server %r, using fallback", value)
        if not fallback:
            return None
        return parse_paint(fallback, current_color, inherited)

    try:
        return parse_color(value)
    except ValueError:
        logger.warning("Unsupported color mode: %s", value)
        return inherited
