"""Image abstraction with pluggable pixel backends."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Protocol

import cv2
import numpy as np
import numpy.typing as npt

from .models import Rect

# Constants for magic values
_GRAYSCALE_DIMS = 2
_COLOR_DIMS = 3
_RGB_CHANNELS = 3
_RGBA_CHANNELS = 4

Pixel = tuple[int, int, int, int]


def _check_bounds(x: int, y: int, width: int, height: int) -> None:
    if not (0 <= x < width and 0 <= y < height):
        msg = f"Pixel ({x}, {y}) outside {width}x{height} image"
        raise IndexError(msg)


class PixelSource(Protocol):
    """Protocol defining random access to an image's pixels."""

    @property
    def width(self) -> int:
        ...

    @property
    def height(self) -> int:
        ...

    def pixel(self, x: int, y: int) -> Pixel:
        """Read the RGBA value at ``(x, y)``."""
        ...

    def rgba(self) -> npt.NDArray[np.uint8]:
        """Return the full image as an ``(H, W, 4)`` uint8 RGBA array."""
        ...

    def crop(self, rect: Rect) -> PixelSource:
        """Copy ``rect`` into a new source of the same kind."""
        ...


class ArrayPixels:
    """Pixels backed by a native OpenCV matrix (numpy array).

    Accepts grayscale ``(H, W)``, RGB ``(H, W, 3)`` or RGBA ``(H, W, 4)``
    arrays in RGB channel order.
    """

    def __init__(self, array: npt.NDArray[np.uint8]):
        is_color = array.ndim == _COLOR_DIMS and array.shape[2] in (_RGB_CHANNELS, _RGBA_CHANNELS)
        if array.ndim != _GRAYSCALE_DIMS and not is_color:
            msg = f"Unsupported pixel array shape: {array.shape}"
            raise ValueError(msg)
        self._array = np.array(array, dtype=np.uint8, order="C", copy=True)

    @property
    def width(self) -> int:
        return int(self._array.shape[1])

    @property
    def height(self) -> int:
        return int(self._array.shape[0])

    @property
    def channels(self) -> int:
        if self._array.ndim == _GRAYSCALE_DIMS:
            return 1
        return int(self._array.shape[2])

    def pixel(self, x: int, y: int) -> Pixel:
        _check_bounds(x, y, self.width, self.height)
        value = self._array[y, x]
        if self._array.ndim == _GRAYSCALE_DIMS:
            return (int(value), int(value), int(value), 255)
        if value.shape[0] == _RGB_CHANNELS:
            return (int(value[0]), int(value[1]), int(value[2]), 255)
        return (int(value[0]), int(value[1]), int(value[2]), int(value[3]))

    def rgba(self) -> npt.NDArray[np.uint8]:
        if self._array.size == 0:
            return np.zeros((self.height, self.width, _RGBA_CHANNELS), dtype=np.uint8)
        if self._array.ndim == _GRAYSCALE_DIMS:
            return cv2.cvtColor(self._array, cv2.COLOR_GRAY2RGBA)
        if self._array.shape[2] == _RGB_CHANNELS:
            return cv2.cvtColor(self._array, cv2.COLOR_RGB2RGBA)
        return self._array

    def crop(self, rect: Rect) -> ArrayPixels:
        region = self._array[rect.y:rect.bottom, rect.x:rect.right]
        return ArrayPixels(region)


class BufferPixels:
    """Pixels backed by a flat RGBA byte buffer, row-major, 4 bytes per pixel."""

    def __init__(self, data: bytes | bytearray | memoryview, width: int, height: int):
        expected = width * height * _RGBA_CHANNELS
        if width < 0 or height < 0 or len(data) != expected:
            msg = (f"Buffer of {len(data)} bytes does not hold a "
                   f"{width}x{height} RGBA image ({expected} bytes)")
            raise ValueError(msg)
        self._data = bytes(data)
        self._width = width
        self._height = height

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def pixel(self, x: int, y: int) -> Pixel:
        _check_bounds(x, y, self._width, self._height)
        i = (x + y * self._width) * _RGBA_CHANNELS
        r, g, b, a = self._data[i:i + _RGBA_CHANNELS]
        return (r, g, b, a)

    def rgba(self) -> npt.NDArray[np.uint8]:
        flat = np.frombuffer(self._data, dtype=np.uint8)
        return flat.reshape(self._height, self._width, _RGBA_CHANNELS)

    def crop(self, rect: Rect) -> BufferPixels:
        region = self.rgba()[rect.y:rect.bottom, rect.x:rect.right]
        return BufferPixels(region.tobytes(), rect.width, rect.height)


class Image:
    """Decoded image with uniform pixel access and an excluded-pixel bitmap.

    The backing representation (native matrix or raw buffer) is chosen at
    construction and hidden behind :class:`PixelSource` afterwards. The
    excluded bitmap marks background pixels that fingerprinting must skip;
    it is only consulted by :func:`colormatch.fingerprint.color_fingerprint`.
    """

    def __init__(
        self,
        source: PixelSource | npt.NDArray[np.uint8],
        excluded: npt.NDArray[np.bool_] | None = None,
    ):
        """Wrap a pixel source.

        Args:
            source: Pixel backend, or a numpy array (wrapped in ArrayPixels).
            excluded: Optional ``(height, width)`` boolean background mask.

        Raises:
            ValueError: If the mask shape does not match the image.
        """
        if isinstance(source, np.ndarray):
            source = ArrayPixels(source)
        self._source = source
        self._rgba: npt.NDArray[np.uint8] | None = None

        shape = (source.height, source.width)
        if excluded is None:
            excluded = np.zeros(shape, dtype=bool)
        elif excluded.shape != shape:
            msg = f"Excluded mask shape {excluded.shape} does not match image {shape}"
            raise ValueError(msg)
        self._excluded = np.array(excluded, dtype=bool, copy=True)

    @classmethod
    def from_buffer(cls, data: bytes | bytearray | memoryview, width: int, height: int) -> Image:
        """Create an image over a raw RGBA buffer."""
        return cls(BufferPixels(data, width, height))

    @property
    def width(self) -> int:
        return self._source.width

    @property
    def height(self) -> int:
        return self._source.height

    @property
    def source(self) -> PixelSource:
        return self._source

    @property
    def excluded(self) -> npt.NDArray[np.bool_]:
        """Read-only view of the excluded-pixel bitmap."""
        view = self._excluded.view()
        view.flags.writeable = False
        return view

    @property
    def excluded_count(self) -> int:
        return int(self._excluded.sum())

    def is_excluded(self, x: int, y: int) -> bool:
        _check_bounds(x, y, self.width, self.height)
        return bool(self._excluded[y, x])

    def with_excluded(self, excluded: npt.NDArray[np.bool_]) -> Image:
        """Return an image over the same pixels carrying ``excluded`` as its mask."""
        return Image(self._source, excluded)

    def pixel(self, x: int, y: int) -> Pixel:
        return self._source.pixel(x, y)

    def rgba(self) -> npt.NDArray[np.uint8]:
        """Full image as a read-only ``(H, W, 4)`` RGBA array (cached)."""
        if self._rgba is None:
            rgba = self._source.rgba().view()
            rgba.flags.writeable = False
            self._rgba = rgba
        return self._rgba

    def rgb(self) -> npt.NDArray[np.uint8]:
        """Writable ``(H, W, 3)`` RGB copy with alpha discarded."""
        return self.rgba()[:, :, :_RGB_CHANNELS].copy()

    def points(self, stride: int = 1) -> Iterator[tuple[int, int]]:
        """Yield ``(x, y)`` coordinates in row-major order.

        Args:
            stride: Step between coordinates on both axes.

        Yields:
            Coordinates from ``(0, 0)`` up to (excluding) ``(width, height)``.
        """
        if stride < 1:
            msg = f"stride must be >= 1, got {stride}"
            raise ValueError(msg)
        for y in range(0, self.height, stride):
            for x in range(0, self.width, stride):
                yield x, y

    def pixels(self) -> Iterator[tuple[int, int, Pixel]]:
        """Yield ``(x, y, (r, g, b, a))`` for every pixel."""
        rgba = self.rgba()
        for x, y in self.points():
            r, g, b, a = rgba[y, x]
            yield x, y, (int(r), int(g), int(b), int(a))

    def blocks(
        self, block_width: int, block_height: int, stride: int | None = None
    ) -> Iterator[Rect]:
        """Yield fixed-size windows walking the image.

        Windows whose right or bottom edge would overhang the image are
        pulled back inside it, so every window is full-size and in bounds.
        A window larger than the image shrinks to the image. Positions that
        clamp onto an already yielded window are skipped.

        Args:
            block_width: Window width.
            block_height: Window height.
            stride: Step between window origins (default ``block_width // 4``).

        Yields:
            Window rectangles in row-major scan order.
        """
        if block_width < 1 or block_height < 1:
            msg = f"block size must be positive, got {block_width}x{block_height}"
            raise ValueError(msg)
        if stride is None:
            stride = max(1, block_width // 4)

        width = min(block_width, self.width)
        height = min(block_height, self.height)
        max_x = self.width - width
        max_y = self.height - height

        seen: set[tuple[int, int]] = set()
        for x, y in self.points(stride):
            origin = (min(x, max_x), min(y, max_y))
            if origin in seen:
                continue
            seen.add(origin)
            yield Rect(x=origin[0], y=origin[1], width=width, height=height)

    def crop(self, rect: Rect) -> Image:
        """Copy ``rect`` (clamped to the image) into a new image.

        The excluded bitmap is not carried over.
        """
        rect = rect.clamp(self.width, self.height)
        return Image(self._source.crop(rect))

    def __repr__(self) -> str:
        backend = type(self._source).__name__
        return f"Image({self.width}x{self.height}, {backend}, excluded={self.excluded_count})"
