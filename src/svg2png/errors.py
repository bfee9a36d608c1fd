"""Error taxonomy of the rendering pipeline.

Every failure of the parser, rasterizer or encoder surfaces as a subclass of
:class:`SVG2PNGError`, so callers can translate core failures into a generic
response with a single ``except`` clause.
"""


class SVG2PNGError(Exception):
    """Base class for all svg2png errors."""


class ParseError(SVG2PNGError, ValueError):
    """The scene descriptor is malformed or structurally invalid."""


class AllocationError(SVG2PNGError, ValueError):
    """The canvas is empty, negative or larger than the configured limits."""


class EncodingError(SVG2PNGError, RuntimeError):
    """The pixel buffer could not be serialized into an image."""
