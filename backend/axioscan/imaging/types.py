# backend/axioscan/imaging/types.py
import enum
import math
from dataclasses import dataclass


@dataclass(frozen=True)
class Size:
    width: int
    height: int

    @property
    def diagonal(self) -> float:
        return math.hypot(self.width, self.height)

    @property
    def min_side(self) -> int:
        return min(self.width, self.height)

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    def as_tuple(self) -> tuple[int, int]:
        return self.width, self.height


@dataclass(frozen=True)
class Rect:
    """Axis-aligned pixel rectangle; (x, y) is the top-left corner"""
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def area(self) -> int:
        return self.width * self.height

    def fits_within(self, size: Size) -> bool:
        return self.x >= 0 and self.y >= 0 and self.right <= size.width and self.bottom <= size.height

    def as_box(self) -> tuple[int, int, int, int]:
        """Pillow box form (left, upper, right, lower)"""
        return self.x, self.y, self.right, self.bottom


class FlipAxis(str, enum.Enum):
    HORIZONTAL = "horizontal"  # mirror left/right
    VERTICAL = "vertical"  # mirror top/bottom


class FilterKind(str, enum.Enum):
    ORIGINAL = "original"
    BLACK_WHITE = "black_white"
    VINTAGE = "vintage"
    COOL = "cool"
    WARM = "warm"
    SEPIA = "sepia"
    DRAMATIC = "dramatic"
    NOIR = "noir"


class CropAspect(str, enum.Enum):
    FREE = "free"
    SQUARE = "1:1"
    FOUR_THREE = "4:3"
    SIXTEEN_NINE = "16:9"
    THREE_FOUR = "3:4"

    @property
    def ratio(self) -> float | None:
        return {
            CropAspect.FREE: None,
            CropAspect.SQUARE: 1.0,
            CropAspect.FOUR_THREE: 4.0 / 3.0,
            CropAspect.SIXTEEN_NINE: 16.0 / 9.0,
            CropAspect.THREE_FOUR: 3.0 / 4.0,
        }[self]
