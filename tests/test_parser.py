"""Tests for the scene parser."""

import numpy as np
import pytest

from svg2png import ParseError, ResourceLimits, parse
from svg2png.color_utils import BLACK, Paint
from svg2png.geometry import FILL_EVENODD, Circle, Line, PathShape, Rect
from svg2png.parser import to_screen_size, view_box_transform
from svg2png.transform import Transform


def svg(body: str = "", **attributes: str) -> str:
    """Wrap body markup in an <svg> root with the given attributes."""
    attrs = " ".join(f'{key.replace("_", "-")}="{value}"' for key, value in attributes.items())
    return f'<svg xmlns="http://www.w3.org/2000/svg" {attrs}>{body}</svg>'


class TestCanvasSize:
    """Tests for canvas size resolution."""

    def test_width_and_height(self) -> None:
        scene = parse(svg(width="80", height="60"))
        assert scene.canvas_size == (80, 60)
        assert scene.primitives == ()

    def test_view_box_only(self) -> None:
        scene = parse(svg(viewBox="0 0 200 150"))
        assert scene.canvas_size == (200, 150)

    def test_width_with_view_box_keeps_aspect_ratio(self) -> None:
        scene = parse(svg(width="100", viewBox="0 0 200 150"))
        assert scene.canvas_size == (100, 75)

    def test_percent_width_relative_to_view_box(self) -> None:
        scene = parse(svg(width="50%", viewBox="0 0 200 100"))
        assert scene.canvas_size == (100, 50)

    def test_default_size(self) -> None:
        scene = parse(svg())
        assert scene.canvas_size == (100, 100)

    def test_fractional_size_rounds_up(self) -> None:
        scene = parse(svg(width="10.5", height="3.2"))
        assert scene.canvas_size == (11, 4)

    def test_float_noise_is_ignored(self) -> None:
        scene = parse(svg(width="10.0000001", height="20"))
        assert scene.canvas_size == (10, 20)

    def test_absolute_units(self) -> None:
        scene = parse(svg(width="1in", height="2.54cm"))
        assert scene.canvas_size == (96, 96)

    @pytest.mark.parametrize(
        "attributes",
        [
            {"width": "0", "height": "10"},
            {"width": "10", "height": "-5"},
            {"viewBox": "0 0 0 10"},
            {"viewBox": "0 0 10"},
            {"width": "50%"},
            {"width": "ten"},
        ],
    )
    def test_invalid_size(self, attributes: dict) -> None:
        with pytest.raises(ParseError):
            parse(svg(**attributes))


class TestParseErrors:
    """Tests for malformed descriptors."""

    @pytest.mark.parametrize(
        "descriptor",
        [
            "",
            "   ",
            b"",
            "<svg",
            "not xml at all",
            "<svg><rect></svg>",
        ],
    )
    def test_malformed(self, descriptor) -> None:
        with pytest.raises(ParseError):
            parse(descriptor)

    def test_wrong_root(self) -> None:
        with pytest.raises(ParseError, match="Root element"):
            parse('<html width="10" height="10"/>')

    def test_foreign_namespace_root(self) -> None:
        with pytest.raises(ParseError):
            parse('<x:svg xmlns:x="urn:example" width="10" height="10"/>')

    def test_entity_declaration(self) -> None:
        descriptor = (
            '<?xml version="1.0"?><!DOCTYPE svg [<!ENTITY a "aaaa">]>'
            '<svg width="10" height="10"><desc>&a;</desc></svg>'
        )
        with pytest.raises(ParseError, match="Entity"):
            parse(descriptor)

    def test_not_a_string(self) -> None:
        with pytest.raises(ParseError):
            parse(123)  # type: ignore[arg-type]

    def test_parse_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            parse("")

    def test_bytes_input(self) -> None:
        scene = parse(svg(width="5", height="6").encode("utf-8"))
        assert scene.canvas_size == (5, 6)

    @pytest.mark.parametrize(
        "body",
        [
            '<circle cx="5" cy="5" r="-1"/>',
            '<rect width="-1" height="5"/>',
            '<ellipse rx="-1" ry="2"/>',
            '<polygon points="0 0 10 0 10"/>',
            '<rect width="5" height="5" stroke-width="-2"/>',
            '<rect width="5" height="5" transform="rotate(1, 2)"/>',
            '<path d="L 10 10"/>',
        ],
    )
    def test_invalid_geometry(self, body: str) -> None:
        with pytest.raises(ParseError):
            parse(svg(body, width="10", height="10"))


class TestPrimitives:
    """Tests for primitive extraction."""

    def test_circle(self, circle_svg: str) -> None:
        scene = parse(circle_svg)
        assert scene.canvas_size == (800, 600)
        assert len(scene.primitives) == 1
        primitive = scene.primitives[0]
        assert primitive.shape == Circle(cx=50, cy=50, r=50)
        assert primitive.fill == BLACK
        assert primitive.stroke is None
        assert primitive.transform == Transform()

    def test_paint_order(self) -> None:
        scene = parse(
            svg(
                '<rect width="5" height="5"/><circle r="2"/><line x2="5" stroke="red"/>',
                width="10",
                height="10",
            )
        )
        assert [type(p.shape) for p in scene.primitives] == [Rect, Circle, Line]

    def test_transform_composition(self) -> None:
        scene = parse(
            svg(
                '<g transform="translate(10, 20)">'
                '<rect width="5" height="5" transform="scale(2)"/>'
                "</g>",
                width="100",
                height="100",
            )
        )
        (primitive,) = scene.primitives
        assert np.allclose(primitive.transform.apply(np.array([[1.0, 1.0]])), [[12, 22]])

    def test_view_box_transform_applied(self) -> None:
        scene = parse(svg('<rect width="5" height="5"/>', width="20", viewBox="0 0 10 10"))
        (primitive,) = scene.primitives
        assert np.allclose(primitive.transform.apply(np.array([[5.0, 5.0]])), [[10, 10]])

    @pytest.mark.parametrize(
        "body",
        [
            '<rect width="5" height="5" display="none"/>',
            '<rect width="5" height="5" style="display: none"/>',
            '<g display="none"><rect width="5" height="5"/></g>',
            '<rect width="5" height="5" visibility="hidden"/>',
            '<rect width="5" height="5" fill="none"/>',
            '<rect width="5" height="5" opacity="0"/>',
            '<defs><rect id="r" width="5" height="5"/></defs>',
            '<text x="1" y="5">Hello</text>',
            '<circle cx="5" cy="5" r="0"/>',
            '<rect width="0" height="5"/>',
            '<rect width="5" height="5" transform="scale(0)"/>',
            '<foo:bar xmlns:foo="urn:example"/>',
        ],
    )
    def test_skipped(self, body: str) -> None:
        scene = parse(svg(body, width="10", height="10"))
        assert scene.primitives == ()

    def test_visibility_override(self) -> None:
        scene = parse(
            svg(
                '<g visibility="hidden"><rect width="5" height="5" visibility="visible"/></g>',
                width="10",
                height="10",
            )
        )
        assert len(scene.primitives) == 1

    def test_opacity_is_folded(self) -> None:
        scene = parse(
            svg(
                '<g opacity="0.5"><rect width="5" height="5" fill="red" fill-opacity="0.5"/></g>',
                width="10",
                height="10",
            )
        )
        (primitive,) = scene.primitives
        assert primitive.fill == Paint(1.0, 0.0, 0.0, 0.25)

    def test_style_overrides_attribute(self) -> None:
        scene = parse(
            svg('<rect width="5" height="5" fill="red" style="fill: blue"/>', width="10", height="10")
        )
        assert scene.primitives[0].fill == Paint(0.0, 0.0, 1.0, 1.0)

    def test_inherited_fill(self) -> None:
        scene = parse(
            svg('<g fill="red"><rect width="5" height="5"/></g>', width="10", height="10")
        )
        assert scene.primitives[0].fill == Paint(1.0, 0.0, 0.0, 1.0)

    def test_current_color(self) -> None:
        scene = parse(
            svg(
                '<g color="#00ff00"><rect width="5" height="5" fill="currentColor"/></g>',
                width="10",
                height="10",
            )
        )
        assert scene.primitives[0].fill == Paint(0.0, 1.0, 0.0, 1.0)

    def test_stroke(self) -> None:
        scene = parse(
            svg(
                '<rect width="5" height="5" fill="none" stroke="black" stroke-width="4"/>',
                width="10",
                height="10",
            )
        )
        (primitive,) = scene.primitives
        assert primitive.fill is None
        assert primitive.stroke == BLACK
        assert primitive.stroke_width == 4.0

    def test_fill_rule(self) -> None:
        scene = parse(
            svg('<path d="M0 0 H5 V5 Z" fill-rule="evenodd"/>', width="10", height="10")
        )
        assert scene.primitives[0].fill_rule == FILL_EVENODD

    def test_rect_corner_radii_are_clamped(self) -> None:
        scene = parse(svg('<rect width="10" height="20" rx="100"/>', width="30", height="30"))
        shape = scene.primitives[0].shape
        assert isinstance(shape, Rect)
        assert (shape.rx, shape.ry) == (5.0, 10.0)

    def test_path(self) -> None:
        scene = parse(svg('<path d="M0 0 L10 0 L10 10 Z"/>', width="10", height="10"))
        assert scene.primitives[0].shape == PathShape(
            subpaths=(((0.0, 0.0), (10.0, 0.0), (10.0, 10.0)),), closed=(True,)
        )

    def test_polyline_is_open(self) -> None:
        scene = parse(svg('<polyline points="0,0 10,0 10,10"/>', width="10", height="10"))
        shape = scene.primitives[0].shape
        assert isinstance(shape, PathShape)
        assert shape.closed == (False,)

    def test_polygon_is_closed(self) -> None:
        scene = parse(svg('<polygon points="0,0 10,0 10,10"/>', width="10", height="10"))
        shape = scene.primitives[0].shape
        assert isinstance(shape, PathShape)
        assert shape.closed == (True,)

    def test_background(self) -> None:
        scene = parse(svg(width="10", height="10", style="background-color: white"))
        assert scene.background == Paint(1.0, 1.0, 1.0, 1.0)

    def test_unsupported_paint_server_falls_back(self) -> None:
        scene = parse(
            svg('<rect width="5" height="5" fill="url(#gradient) red"/>', width="10", height="10")
        )
        assert scene.primitives[0].fill == Paint(1.0, 0.0, 0.0, 1.0)

    def test_parse_is_pure(self, circle_svg: str) -> None:
        assert parse(circle_svg) == parse(circle_svg)

    def test_missing_lengths_use_defaults(self) -> None:
        scene = parse(svg('<rect width="5" height="4"/><circle r="2"/>', width="10", height="10"))
        assert scene.primitives[0].shape == Rect(x=0.0, y=0.0, width=5.0, height=4.0)
        assert scene.primitives[1].shape == Circle(cx=0.0, cy=0.0, r=2.0)

    def test_percentage_of_huge_view_box(self) -> None:
        scene = parse(
            svg(
                '<g stroke-width="1%"><line x2="1e200" stroke="red"/></g>',
                viewBox="0 0 1e200 1e200",
                width="10",
                height="10",
            )
        )
        assert scene.primitives[0].stroke_width == pytest.approx(1e198)

    def test_huge_arc_radius(self) -> None:
        scene = parse(svg('<path d="M0 0 A1e200 1 0 0 1 10 0 Z"/>', width="20", height="20"))
        assert len(scene.primitives) == 1

    def test_small_view_box_scale(self) -> None:
        scene = parse(
            svg('<rect width="2e7" height="2e7"/>', viewBox="0 0 2e7 2e7", width="2", height="2")
        )
        assert len(scene.primitives) == 1
        assert scene.primitives[0].transform.max_scale() == pytest.approx(1e-7)


class TestLimits:
    """Tests for resource limits enforced while parsing."""

    def test_descriptor_size(self) -> None:
        limits = ResourceLimits(max_descriptor_size=10)
        with pytest.raises(ParseError, match="SVG2PNG_MAX_DESCRIPTOR_SIZE"):
            parse(svg(width="10", height="10"), limits=limits)

    def test_element_count(self) -> None:
        limits = ResourceLimits(max_elements=2)
        with pytest.raises(ParseError, match="SVG2PNG_MAX_ELEMENTS"):
            parse(svg('<g><rect width="1" height="1"/></g>', width="10", height="10"), limits=limits)

    def test_unlimited(self) -> None:
        scene = parse(
            svg('<g><rect width="1" height="1"/></g>', width="10", height="10"),
            limits=ResourceLimits.unlimited(),
        )
        assert len(scene.primitives) == 1


class TestViewBoxTransform:
    """Tests for viewBox to viewport mapping."""

    def apply(self, transform: Transform, x: float, y: float) -> list:
        return transform.apply(np.array([[x, y]], dtype=np.float64))[0].tolist()

    def test_meet_centers(self) -> None:
        transform = view_box_transform((0, 0, 100, 100), 200, 100)
        assert self.apply(transform, 0, 0) == pytest.approx([50, 0])
        assert self.apply(transform, 100, 100) == pytest.approx([150, 100])

    def test_x_min(self) -> None:
        transform = view_box_transform((0, 0, 100, 100), 200, 100, "xMinYMin meet")
        assert self.apply(transform, 0, 0) == pytest.approx([0, 0])

    def test_x_max(self) -> None:
        transform = view_box_transform((0, 0, 100, 100), 200, 100, "xMaxYMax")
        assert self.apply(transform, 0, 0) == pytest.approx([100, 0])

    def test_slice(self) -> None:
        transform = view_box_transform((0, 0, 100, 100), 200, 100, "xMidYMid slice")
        assert self.apply(transform, 0, 0) == pytest.approx([0, -50])

    def test_none_stretches(self) -> None:
        transform = view_box_transform((0, 0, 100, 100), 200, 100, "none")
        assert self.apply(transform, 100, 100) == pytest.approx([200, 100])

    def test_offset(self) -> None:
        transform = view_box_transform((10, 10, 100, 100), 100, 100)
        assert self.apply(transform, 10, 10) == pytest.approx([0, 0])

    @pytest.mark.parametrize("value", ["foo", "xMidYMid cover", "yMidxMid", "xMid YMid meet"])
    def test_invalid(self, value: str) -> None:
        with pytest.raises(ParseError):
            view_box_transform((0, 0, 10, 10), 10, 10, value)


def test_to_screen_size() -> None:
    assert to_screen_size(10.0) == 10
    assert to_screen_size(10.2) == 11
    assert to_screen_size(9.9999999) == 10
