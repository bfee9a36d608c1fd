import logging
import math
import re
import xml.etree.ElementTree as ET
from re import Pattern
from typing import Any, Optional, Sequence

from svg2png.errors import ParseError

logger = logging.getLogger(__name__)

NAMESPACE = "http://www.w3.org/2000/svg"

ILLEGAL_XML_RE: Pattern[str] = re.compile(
    "[\x00-\x08\x0b-\x1f\x7f-\x84\x86-\x9f\ud800-\udfff\ufdd0-\ufddf\ufffe-\uffff]"
)
FLOAT_RE: Pattern[str] = re.compile(
    r"[-+]?(?:(?:\d*\.\d+)|(?:\d+\.?))(?:[Ee][-+]?\d+)?"
)

DEFAULT_NUMBER_DIGITS = 2
DEFAULT_DPI = 96.0

# Absolute units per inch.
UNITS_PER_INCH = {
    "in": 1.0,
    "cm": 2.54,
    "mm": 25.4,
    "pt": 72.0,
    "pc": 6.0,
}


def safe_utf8(text: str) -> str:
    """Remove illegal XML characters from text."""
    return ILLEGAL_XML_RE.sub(" ", text)


def num2str(num: int | float | bool, digit: int = DEFAULT_NUMBER_DIGITS) -> str:
    """Convert a number to a string, using the specified format for floats."""
    if isinstance(num, bool):
        return "true" if num else "false"
    if isinstance(num, int):
        return str(num)
    if isinstance(num, float):
        if num.is_integer():
            return str(int(num))
        # Format float with specified number of digits, and trim trailing zeros
        number = f"{num:.{digit}f}"
        return f"{number[0]}{number[1:].rstrip('0').rstrip('.')}"
    raise ValueError(f"Unsupported type: {type(num)}")


def seq2str(
    seq: Sequence[int | float | bool],
    sep: str = ",",
    digit: int = DEFAULT_NUMBER_DIGITS,
) -> str:
    """Convert a sequence of numbers to a string, using the specified format for floats."""
    return sep.join(num2str(n, digit) for n in seq)


def create_node(
    tag: str,
    parent: Optional[ET.Element] = None,
    text: str = "",
    **kwargs: Any,
) -> ET.Element:
    """Create an XML node with attributes.

    Keyword arguments become attributes. A trailing underscore is stripped to
    allow Python keywords, and underscores are converted to hyphens, so
    ``fill_opacity=0.5`` becomes ``fill-opacity="0.5"``. ``None`` values are
    skipped.
    """
    node = ET.Element(tag)
    for key, value in kwargs.items():
        if value is None:
            continue
        key = key.rstrip("_")  # allow trailing underscore for keywords
        key = key.replace("_", "-")  # convert underscores to hyphens
        set_attribute(node, key, value)
    if text:
        node.text = safe_utf8(text)
    if parent is not None:
        parent.append(node)
    return node


def set_attribute(node: ET.Element, key: str, value: Any) -> None:
    """Add an attribute to an XML node."""
    if isinstance(value, (int, float, bool)):
        node.set(key, num2str(value))
    elif isinstance(value, (list, tuple)) and all(
        isinstance(v, (int, float, bool)) for v in value
    ):
        node.set(key, seq2str(value, sep=" "))
    else:
        node.set(key, str(value))


def tostring(node: ET.Element) -> str:
    """Convert an XML node to a string."""
    return ET.tostring(node, encoding="unicode", xml_declaration=False)


def fromstring(data: str | bytes) -> ET.Element:
    """Parse an XML string to an Element.

    Raises:
        ParseError: If the data is empty, declares entities, or is not
            well-formed XML.
    """
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ParseError(f"Descriptor is not valid UTF-8: {e}") from e
    if not data.strip():
        raise ParseError("Descriptor is empty")
    # Entity expansion is never needed for a scene and is a classic XML bomb.
    if "<!ENTITY" in data:
        raise ParseError("Entity declarations are not supported")
    try:
        return ET.fromstring(data)
    except ET.ParseError as e:
        raise ParseError(f"Malformed descriptor: {e}") from e


def local_name(tag: Any) -> str:
    """Return the tag name without its namespace, or '' for comments."""
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def parse_style(style: Optional[str]) -> dict[str, str]:
    """Parse a CSS declaration list from a 'style' attribute.

    Example:
        >>> parse_style("fill: red; stroke-width: 2")
        {'fill': 'red', 'stroke-width': '2'}
    """
    declarations: dict[str, str] = {}
    if not style:
        return declarations
    for declaration in style.split(";"):
        if ":" not in declaration:
            if declaration.strip():
                logger.debug("Ignoring malformed style declaration: %r", declaration)
            continue
        key, value = declaration.split(":", 1)
        value = value.replace("!important", "").strip()
        if key.strip() and value:
            declarations[key.strip().lower()] = value
    return declarations


def parse_numbers(text: Optional[str]) -> list[float]:
    """Parse a whitespace and/or comma separated list of numbers.

    Numbers may be packed without separators as in path data, e.g. "1-2.5.5".

    Raises:
        ParseError: If the list contains anything other than numbers.
    """
    if not text:
        return []
    values = []
    position = 0
    for match in FLOAT_RE.finditer(text):
        gap = text[position : match.start()]
        if gap.replace(",", " ").strip():
            raise ParseError(f"Invalid number list: {text!r}")
        values.append(float(match.group(0)))
        position = match.end()
    if text[position:].replace(",", " ").strip():
        raise ParseError(f"Invalid number list: {text!r}")
    return values


def parse_length(
    text: Optional[str],
    default: Optional[float] = None,
    reference: Optional[float] = None,
    dpi: float = DEFAULT_DPI,
) -> Optional[float]:
    """Parse an SVG length into user units (pixels).

    Args:
        text: Length value such as "10", "2.5mm" or "50%".
        default: Value returned when the attribute is absent.
        reference: Length that percentages are relative to.
        dpi: Resolution used to convert absolute units.

    Returns:
        The length in pixels, or ``default`` when ``text`` is None.

    Raises:
        ParseError: If the value is not a valid length, or is a percentage
            without a reference length.
    """
    if text is None:
        return default
    text = text.strip()
    match = FLOAT_RE.match(text)
    if match is None:
        raise ParseError(f"Invalid length: {text!r}")
    value = float(match.group(0))
    if not math.isfinite(value):
        raise ParseError(f"Invalid length: {text!r}")
    unit = text[match.end() :].strip().lower()
    if unit in ("", "px"):
        return value
    if unit in UNITS_PER_INCH:
        return value * dpi / UNITS_PER_INCH[unit]
    if unit == "%":
        if reference is None:
            raise ParseError(f"Percentage length without reference: {text!r}")
        return value * reference / 100.0
    raise ParseError(f"Unsupported length unit: {text!r}")
