"""
Coordinate Transformation
Maps fractional field geometry into PDF page units and fits images into the
resulting boxes.
"""

import logging
from typing import Optional

from errors import InvalidPlacementError, MalformedImageError
from geometry import DrawRect, PageGeometry, PlacementRect, is_positive

logger = logging.getLogger(__name__)


# ==========================================
# COORDINATE TRANSFORMATION
# ==========================================
#
# Forward pipeline (viewer):
#   1. Pixels -> fractions:  x_norm = x_px / viewport_w,  y_norm = y_px / viewport_h
#      (top-left origin, Y down; see anchoring.py)
#
# Burn pipeline (what we need for compositing):
#   2. Fractions -> page points:  x = x_norm * width_pts
#                                 y_top = y_norm * height_pts
#   3. Flip the vertical axis:    y = height_pts - y_top - height
#      (PDF points use a bottom-left origin, Y up)
#   4. Fit the image inside the box, centered, never stretched or cropped
#
# The flip subtracts the field's OWN height: a field at y_norm=0 lands at
# y = height_pts - height, and a field touching the bottom lands at y = 0.
# ==========================================


def to_placement_rect(field, page_geometry: Optional[PageGeometry]) -> Optional[PlacementRect]:
    """
    Convert a field's fractional geometry into a page-unit placement rectangle.

    Args:
        field: Anything with x_norm, y_norm, width_norm, height_norm and page
        page_geometry: Size of the target page in points

    Returns:
        PlacementRect with a bottom-left origin, or None when the field or the
        page geometry is not available
    """
    if field is None or page_geometry is None or not page_geometry.is_ready:
        return None

    width_pts = float(page_geometry.width_pts)
    height_pts = float(page_geometry.height_pts)

    x = field.x_norm * width_pts
    height = field.height_norm * height_pts
    y_top = field.y_norm * height_pts

    return PlacementRect(
        x=x,
        y=height_pts - y_top - height,
        width=field.width_norm * width_pts,
        height=height,
        page=getattr(field, "page", 1),
    )


def fit_image(placement: PlacementRect, image_width: float, image_height: float) -> DrawRect:
    """
    Scale an image to fit inside a placement rectangle and center it.

    The scale factor is the smaller of the two axis ratios, so one side fills
    the box exactly and the image aspect ratio is kept.

    Args:
        placement: Target box in page units
        image_width: Intrinsic image width in pixels
        image_height: Intrinsic image height in pixels

    Returns:
        DrawRect contained in the placement rectangle

    Raises:
        MalformedImageError: image has zero or missing dimensions
        InvalidPlacementError: placement has non-positive width or height
    """
    if not is_positive(image_width) or not is_positive(image_height):
        raise MalformedImageError(
            f"Image has unusable dimensions ({image_width}x{image_height})"
        )
    if not placement.is_valid:
        raise InvalidPlacementError(
            f"Placement has non-positive size ({placement.width}x{placement.height})"
        )

    scale = min(placement.width / image_width, placement.height / image_height)
    draw_width = image_width * scale
    draw_height = image_height * scale

    return DrawRect(
        x=placement.x + (placement.width - draw_width) / 2,
        y=placement.y + (placement.height - draw_height) / 2,
        width=draw_width,
        height=draw_height,
    )
