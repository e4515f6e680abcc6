"""
Geometry Types
Shared rectangle and dimension types for the three coordinate spaces:

  1. Pixel space:      viewer pixels, top-left origin, Y down
  2. Fractional space: fractions of the viewport, top-left origin, Y down
  3. Page-unit space:  PDF points (1/72 inch), bottom-left origin, Y up
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional


def is_positive(value: Any) -> bool:
    """True for a finite number strictly greater than zero."""
    if value is None or isinstance(value, bool):
        return False
    try:
        number = float(value)
    except (TypeError, ValueError):
        return False
    return math.isfinite(number) and number > 0


def is_finite(value: Any) -> bool:
    """True for any finite number, including zero and negatives."""
    if value is None or isinstance(value, bool):
        return False
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


@dataclass(frozen=True)
class PixelRect:
    """Rectangle in viewer pixels (top-left origin)."""

    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class FractionRect:
    """Rectangle as fractions of the viewport (top-left origin)."""

    x_norm: float
    y_norm: float
    width_norm: float
    height_norm: float


@dataclass(frozen=True)
class PageGeometry:
    """
    Physical size of one page in PDF points, origin bottom-left.
    Set once per page load, replaced wholesale on reload.
    """

    width_pts: Optional[float]
    height_pts: Optional[float]

    @property
    def is_ready(self) -> bool:
        return is_positive(self.width_pts) and is_positive(self.height_pts)

    def to_dict(self) -> Dict[str, Optional[float]]:
        return {"widthPts": self.width_pts, "heightPts": self.height_pts}


@dataclass(frozen=True)
class Viewport:
    """Current size of the rendering area; either side may be unknown during layout."""

    width: Optional[float] = None
    height: Optional[float] = None

    @property
    def is_ready(self) -> bool:
        return is_positive(self.width) and is_positive(self.height)

    @classmethod
    def for_page(cls, width: Optional[float], page: Optional[PageGeometry]) -> "Viewport":
        """
        Viewport of the given width whose height keeps the page aspect ratio,
        the way the viewer sizes its overlay: height = width * heightPts / widthPts.
        """
        if not is_positive(width) or page is None or not page.is_ready:
            return cls(width=width if is_positive(width) else None, height=None)
        return cls(width=width, height=width * page.height_pts / page.width_pts)


@dataclass(frozen=True)
class PlacementRect:
    """Page-unit rectangle a field maps to; ``y`` is measured from the page bottom."""

    x: float
    y: float
    width: float
    height: float
    page: int = 1

    @property
    def is_valid(self) -> bool:
        return is_positive(self.width) and is_positive(self.height)

    def to_dict(self) -> Dict[str, float]:
        return {
            "page": self.page,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }


@dataclass(frozen=True)
class DrawRect:
    """Final rectangle an image is drawn at, in page units (bottom-left origin)."""

    x: float
    y: float
    width: float
    height: float

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}
