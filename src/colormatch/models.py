"""Pydantic models for type-safe data structures."""


from pydantic import BaseModel, ConfigDict, Field


class Rect(BaseModel):
    """Integer image region.

    Attributes:
        x: Left edge in pixels.
        y: Top edge in pixels.
        width: Region width in pixels.
        height: Region height in pixels.
    """
    model_config = ConfigDict(frozen=True)

    x: int = Field(ge=0)
    y: int = Field(ge=0)
    width: int = Field(ge=0)
    height: int = Field(ge=0)

    @property
    def right(self) -> int:
        """Exclusive right edge."""
        return self.x + self.width

    @property
    def bottom(self) -> int:
        """Exclusive bottom edge."""
        return self.y + self.height

    @property
    def area(self) -> int:
        return self.width * self.height

    def clamp(self, width: int, height: int) -> "Rect":
        """Clamp this region so it lies inside a ``width`` x ``height`` image.

        Args:
            width: Bounding image width.
            height: Bounding image height.

        Returns:
            Region with ``x + width <= width`` and ``y + height <= height``.
        """
        x = min(self.x, width)
        y = min(self.y, height)
        return Rect(
            x=x,
            y=y,
            width=min(self.width, width - x),
            height=min(self.height, height - y),
        )

    @classmethod
    def centered(cls, size: int, width: int, height: int) -> "Rect":
        """Square of side ``size`` centred in a ``width`` x ``height`` image, clamped."""
        return cls(
            x=max(0, (width - size) // 2),
            y=max(0, (height - size) // 2),
            width=size,
            height=size,
        ).clamp(width, height)

    def as_tuple(self) -> tuple[int, int, int, int]:
        """Return ``(x, y, width, height)`` as OpenCV expects it."""
        return (self.x, self.y, self.width, self.height)


class MatchResult(BaseModel):
    """Best window found by the matcher.

    Attributes:
        rect: Matched target region, or None if no window scored above 0.
        value: Cosine similarity of the matched window (0.0 when rect is None).
    """
    rect: Rect | None = None
    value: float = 0.0

    @property
    def found(self) -> bool:
        return self.rect is not None
