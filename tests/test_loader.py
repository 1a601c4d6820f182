"""
Tests for image loading and native error translation.
"""

import tempfile
from pathlib import Path

import cv2
import numpy as np
import pytest
import requests

from colormatch import DecodeError, Image, SegmentationError, load_image
from colormatch.errors import describe_native_error, raise_native_error


def native_error() -> cv2.error:
    """Provoke a real OpenCV error."""
    try:
        cv2.cvtColor(np.zeros((4, 4), dtype=np.uint8), cv2.COLOR_BGR2GRAY)
    except cv2.error as e:
        return e
    msg = "cvtColor did not fail"
    raise AssertionError(msg)


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, content: bytes, status: int = 200):
        self.content = content
        self.status = status

    def raise_for_status(self) -> None:
        if self.status >= 400:
            msg = f"{self.status} error"
            raise requests.HTTPError(msg)


class TestLoadImage:
    """Test decoding from the supported sources."""

    def test_png_bgr_to_rgba(self):
        """Test that OpenCV's BGR files come back as RGBA."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "red.png"
            bgr = np.zeros((5, 7, 3), dtype=np.uint8)
            bgr[:, :] = (0, 0, 255)
            cv2.imwrite(str(path), bgr)

            img = load_image(path)

            assert (img.width, img.height) == (7, 5)
            assert img.pixel(0, 0) == (255, 0, 0, 255)
            assert img.excluded_count == 0

    def test_png_with_alpha(self):
        """Test that an alpha channel survives decoding."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "alpha.png"
            bgra = np.zeros((4, 4, 4), dtype=np.uint8)
            bgra[:, :] = (255, 0, 0, 128)
            cv2.imwrite(str(path), bgra)

            img = load_image(str(path))

            assert img.pixel(1, 1) == (0, 0, 255, 128)

    def test_grayscale_png(self):
        """Test that grayscale files expand to RGBA."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "gray.png"
            cv2.imwrite(str(path), np.full((3, 3), 90, dtype=np.uint8))

            img = load_image(path)

            assert img.pixel(2, 2) == (90, 90, 90, 255)

    def test_encoded_bytes(self):
        """Test decoding an in-memory PNG."""
        ok, encoded = cv2.imencode(".png", np.zeros((6, 6, 3), dtype=np.uint8))
        assert ok

        img = load_image(encoded.tobytes())

        assert (img.width, img.height) == (6, 6)

    def test_array_and_image_passthrough(self):
        """Test that arrays are wrapped and Images returned unchanged."""
        img = load_image(np.zeros((2, 3, 3), dtype=np.uint8))
        assert isinstance(img, Image)
        assert load_image(img) is img

    def test_bad_array(self):
        """Test that an unusable array raises DecodeError."""
        with pytest.raises(DecodeError):
            load_image(np.zeros((2, 3, 7), dtype=np.uint8))

    def test_missing_file(self):
        """Test that a missing path raises DecodeError."""
        with pytest.raises(DecodeError, match="not found"):
            load_image("/definitely/not/here.png")

    def test_garbage_bytes(self):
        """Test that undecodable data raises DecodeError."""
        with pytest.raises(DecodeError, match="Could not decode"):
            load_image(b"not an image at all")

    def test_corrupt_file(self):
        """Test that a corrupt file on disk raises DecodeError."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "broken.png"
            path.write_bytes(b"\x89PNG garbage")

            with pytest.raises(DecodeError):
                load_image(path)

    def test_unreadable_file(self, monkeypatch):
        """Test that an OS error while reading raises DecodeError."""
        def deny(self):
            raise PermissionError(13, "Permission denied", str(self))

        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "locked.png"
            path.write_bytes(b"")
            monkeypatch.setattr(Path, "read_bytes", deny)

            with pytest.raises(DecodeError, match="Could not read") as excinfo:
                load_image(path)

        assert isinstance(excinfo.value.__cause__, PermissionError)

    def test_url(self, monkeypatch):
        """Test fetching an image over HTTP."""
        _, encoded = cv2.imencode(".png", np.zeros((8, 9, 3), dtype=np.uint8))
        calls = []

        def fake_get(url, timeout):
            calls.append((url, timeout))
            return FakeResponse(encoded.tobytes())

        monkeypatch.setattr("colormatch.loader.requests.get", fake_get)

        img = load_image("https://example.com/target.png")

        assert (img.width, img.height) == (9, 8)
        assert calls == [("https://example.com/target.png", 10)]

    def test_url_failure(self, monkeypatch):
        """Test that HTTP errors surface as DecodeError."""
        monkeypatch.setattr(
            "colormatch.loader.requests.get",
            lambda url, timeout: FakeResponse(b"", status=404),
        )

        with pytest.raises(DecodeError, match="Could not fetch"):
            load_image("http://example.com/missing.png")


class TestNativeErrors:
    """Test translation of OpenCV errors."""

    def test_describe_cv2_error(self):
        """Test that cv2.error attributes make up the message."""
        err = native_error()

        message = describe_native_error(err)

        assert message
        assert "cvtColor" in message or "channels" in message.lower()

    def test_describe_plain_error(self):
        """Test that other exceptions fall back to str()."""
        assert describe_native_error(ValueError("plain")) == "plain"

    def test_raise_translates_cv2_error(self):
        """Test that cv2.error is rewritten for the given stage."""
        err = native_error()

        with pytest.raises(SegmentationError) as excinfo:
            raise_native_error(err, "segmentation")

        assert excinfo.value.__cause__ is err

    def test_raise_decode_stage(self):
        """Test the decode stage mapping."""
        with pytest.raises(DecodeError):
            raise_native_error(native_error(), "decode")

    def test_raise_passes_other_errors(self):
        """Test that non-native errors are re-raised untouched."""
        original = OSError("disk gone")

        with pytest.raises(OSError) as excinfo:
            raise_native_error(original, "decode")

        assert excinfo.value is original
