"""Resource limits for DoS prevention.

This module provides configurable resource limits to prevent denial-of-service
attacks from oversized or malicious scene descriptors.
"""

import logging
import os
from dataclasses import dataclass

from svg2png.errors import AllocationError

logger = logging.getLogger(__name__)

DEFAULT_MAX_DESCRIPTOR_SIZE = 10 * 1024 * 1024  # 10MB
DEFAULT_MAX_IMAGE_DIMENSION = 16384
DEFAULT_MAX_CANVAS_AREA = 64 * 1024 * 1024  # 64 megapixels
DEFAULT_MAX_ELEMENTS = 10000


@dataclass
class ResourceLimits:
    """Resource limits for parsing and rendering operations.

    These limits help prevent denial-of-service attacks by constraining:
    - Descriptor size (prevents parser memory exhaustion)
    - Canvas width and height (prevents memory exhaustion)
    - Canvas area (caps memory and CPU spent per render)
    - Number of elements (prevents unbounded painting work)

    Limits can be configured via environment variables or constructor parameters.
    Constructor parameters take precedence over environment variables.

    Environment variables:
        SVG2PNG_MAX_DESCRIPTOR_SIZE: Maximum descriptor size in bytes
            (default: 10485760 = 10MB)
        SVG2PNG_MAX_IMAGE_DIMENSION: Maximum canvas width or height in pixels
            (default: 16384)
        SVG2PNG_MAX_CANVAS_AREA: Maximum canvas area in pixels
            (default: 67108864 = 64 megapixels)
        SVG2PNG_MAX_ELEMENTS: Maximum number of elements in a descriptor
            (default: 10000)

    Example:
        >>> # Use default limits
        >>> limits = ResourceLimits.default()
        >>>
        >>> # Customize limits
        >>> limits = ResourceLimits(
        ...     max_descriptor_size=64 * 1024,  # 64KB
        ...     max_image_dimension=4096,
        ...     max_canvas_area=4096 * 4096,
        ...     max_elements=500,
        ... )
        >>>
        >>> # Disable specific limits (set to 0)
        >>> limits = ResourceLimits(max_elements=0)  # No element limit
    """

    max_descriptor_size: int = DEFAULT_MAX_DESCRIPTOR_SIZE
    max_image_dimension: int = DEFAULT_MAX_IMAGE_DIMENSION
    max_canvas_area: int = DEFAULT_MAX_CANVAS_AREA
    max_elements: int = DEFAULT_MAX_ELEMENTS

    @classmethod
    def default(cls) -> "ResourceLimits":
        """Create ResourceLimits with default values from environment variables.

        Returns:
            ResourceLimits instance with values from environment variables,
            falling back to hardcoded defaults if not set.

        Raises:
            ValueError: If environment variable contains invalid integer value.

        Note:
            Negative values are treated as 0 (disabled limit) with a warning logged.
            Non-integer values raise ValueError. For intentionally disabling all
            limits, use ResourceLimits.unlimited() instead of negative values.
        """

        def parse_env_int(key: str, default: int) -> int:
            """Parse integer from environment variable with validation.

            Args:
                key: Environment variable name.
                default: Default value if not set.

            Returns:
                Parsed integer value, or 0 if negative.

            Raises:
                ValueError: If value is not a valid integer.
            """
            value_str = os.environ.get(key)
            if value_str is None:
                return default

            try:
                value = int(value_str)
            except ValueError as e:
                raise ValueError(
                    f"Environment variable {key}={value_str!r} is not a valid integer"
                ) from e

            if value < 0:
                logger.warning(
                    f"Environment variable {key}={value} is negative, "
                    f"treating as 0 (disabled limit). "
                    f"Consider using ResourceLimits.unlimited() instead."
                )
                return 0

            return value

        return cls(
            max_descriptor_size=parse_env_int(
                "SVG2PNG_MAX_DESCRIPTOR_SIZE", DEFAULT_MAX_DESCRIPTOR_SIZE
            ),
            max_image_dimension=parse_env_int(
                "SVG2PNG_MAX_IMAGE_DIMENSION", DEFAULT_MAX_IMAGE_DIMENSION
            ),
            max_canvas_area=parse_env_int(
                "SVG2PNG_MAX_CANVAS_AREA", DEFAULT_MAX_CANVAS_AREA
            ),
            max_elements=parse_env_int("SVG2PNG_MAX_ELEMENTS", DEFAULT_MAX_ELEMENTS),
        )

    @classmethod
    def unlimited(cls) -> "ResourceLimits":
        """Create ResourceLimits with all limits disabled.

        Returns:
            ResourceLimits instance with all limits set to 0 (disabled).

        Warning:
            Only use this for trusted descriptors in controlled environments.
        """
        return cls(
            max_descriptor_size=0,
            max_image_dimension=0,
            max_canvas_area=0,
            max_elements=0,
        )

    def is_descriptor_size_limited(self) -> bool:
        """Check if descriptor size limit is enabled."""
        return self.max_descriptor_size > 0

    def is_image_dimension_limited(self) -> bool:
        """Check if image dimension limit is enabled."""
        return self.max_image_dimension > 0

    def is_canvas_area_limited(self) -> bool:
        """Check if canvas area limit is enabled."""
        return self.max_canvas_area > 0

    def is_element_count_limited(self) -> bool:
        """Check if element count limit is enabled."""
        return self.max_elements > 0

    def check_canvas(self, width: int, height: int) -> None:
        """Validate canvas dimensions against these limits.

        Args:
            width: Canvas width in pixels.
            height: Canvas height in pixels.

        Raises:
            AllocationError: If either dimension is non-positive, or if the
                canvas exceeds the dimension or area limits.
        """
        if width <= 0 or height <= 0:
            raise AllocationError(
                f"Canvas size must be positive, got {width}x{height}"
            )
        if self.is_image_dimension_limited() and max(width, height) > (
            self.max_image_dimension
        ):
            raise AllocationError(
                f"Canvas size {width}x{height} exceeds maximum dimension "
                f"{self.max_image_dimension}. "
                f"To process: set SVG2PNG_MAX_IMAGE_DIMENSION environment variable, "
                f"or use ResourceLimits(max_image_dimension=...) in Python API."
            )
        if self.is_canvas_area_limited() and width * height > self.max_canvas_area:
            raise AllocationError(
                f"Canvas area {width * height} exceeds maximum area "
                f"{self.max_canvas_area}. "
                f"To process: set SVG2PNG_MAX_CANVAS_AREA environment variable, "
                f"or use ResourceLimits(max_canvas_area=...) in Python API."
            )
