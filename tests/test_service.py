"""Tests for the image service boundary."""

import logging

import pytest

from svg2png import EncodingError, __version__
from svg2png.image_utils import EncodedImage
from svg2png.rasterizer import BaseRasterizer
from svg2png.service import DefaultSceneResolver, ImageService, TEXT_CONTENT_TYPE


class FailingRasterizer(BaseRasterizer):
    def from_string(self, svg_content):
        raise EncodingError("encoder exploded")


class TestDefaultSceneResolver:
    def test_scene(self) -> None:
        descriptor = DefaultSceneResolver()("anything")
        assert descriptor.startswith("<svg")
        assert 'viewBox="0 0 800 600"' in descriptor
        assert '<circle cx="50" cy="50" r="50" />' in descriptor

    def test_identifier_does_not_select_content(self) -> None:
        resolver = DefaultSceneResolver()
        assert resolver("a") == resolver("b")


class TestImageService:
    def test_success(self, decode_png) -> None:
        response = ImageService().handle("hello")
        assert response.status == 200
        assert response.content_type == "image/png"

        decoded = decode_png(response.body)
        assert decoded.shape == (600, 800, 4)
        assert tuple(decoded[50, 50]) == (0, 0, 0, 255)
        assert decoded[580, 780, 3] == 0

    def test_missing_identifier(self) -> None:
        response = ImageService().handle(None)
        assert response.status == 404
        assert response.content_type == TEXT_CONTENT_TYPE

    def test_empty_identifier(self, decode_png) -> None:
        response = ImageService().handle("")
        assert response.status == 200
        assert decode_png(response.body).shape == (600, 800, 4)

    def test_custom_resolver(self, decode_png) -> None:
        service = ImageService(
            resolver=lambda identifier: f'<svg width="{len(identifier)}" height="3"/>'
        )
        response = service.handle("abcd")
        assert response.status == 200
        assert decode_png(response.body).shape == (3, 4, 4)

    def test_parse_failure(self, caplog: pytest.LogCaptureFixture) -> None:
        service = ImageService(resolver=lambda identifier: "<svg")
        with caplog.at_level(logging.ERROR):
            response = service.handle("broken")
        assert response.status == 500
        assert response.body == b"Internal error"
        assert "broken" in caplog.text

    def test_invalid_canvas(self) -> None:
        service = ImageService(resolver=lambda identifier: '<svg width="0" height="0"/>')
        assert service.handle("empty").status == 500

    def test_encoding_failure_does_not_leak(self) -> None:
        service = ImageService(rasterizer=FailingRasterizer())
        response = service.handle("hello")
        assert response.status == 500
        assert b"exploded" not in response.body

    def test_deterministic(self) -> None:
        service = ImageService()
        assert service.handle("a").body == service.handle("a").body

    def test_version(self) -> None:
        response = ImageService().version()
        assert response.status == 200
        assert response.body.decode("utf-8") == __version__


def test_encoded_image_defaults() -> None:
    image = EncodedImage(data=b"", width=1, height=1)
    assert image.content_type == "image/png"
