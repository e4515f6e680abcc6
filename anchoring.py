"""
Anchoring Model
Keeps placed fields anchored to the same relative document location across
viewport sizes.

Fractional coordinates are the source of truth. Pixel geometry is derived on
every layout pass from the CURRENT viewport, never stored.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from coordinates import to_placement_rect
from geometry import FractionRect, PageGeometry, PixelRect, PlacementRect, Viewport, is_finite, is_positive
from images import ImageBlob

logger = logging.getLogger(__name__)


class FieldType(str, Enum):
    SIGNATURE = "signature"
    TEXT = "text"
    DATE = "date"
    RADIO = "radio"
    IMAGE = "image"


IMAGE_FIELD_TYPES = (FieldType.SIGNATURE, FieldType.IMAGE)

# Size of newly added fields, as fractions of the viewport
SIGNATURE_BOX = (0.32, 0.12)
DEFAULT_BOX = (0.24, 0.08)

# New fields cascade down-right so they don't stack exactly
CASCADE_ORIGIN = (0.12, 0.10)
CASCADE_STEP = 0.02


# ==========================================
# FIELD VALUES (one payload shape per field type)
# ==========================================

@dataclass(frozen=True)
class TextValue:
    text: str


@dataclass(frozen=True)
class DateValue:
    iso_date: str

    def __post_init__(self):
        # Raises ValueError for anything that is not YYYY-MM-DD
        date.fromisoformat(self.iso_date)


@dataclass(frozen=True)
class RadioValue:
    selected: bool


@dataclass(frozen=True)
class ImageValue:
    blob: ImageBlob


FieldValue = Union[TextValue, DateValue, RadioValue, ImageValue]

_TRUTHY = {"yes", "true", "1", "on", "checked", "selected"}


def coerce_value(field_type: FieldType, raw: Any) -> Optional[FieldValue]:
    """
    Turn a raw UI value into the variant for ``field_type``.

    Empty values (None, "") mean "not set" and return None.

    Raises:
        ValueError: raw value does not fit the field type
        MalformedImageError: image payload is not a data URL / base64 blob
    """
    if raw is None or (isinstance(raw, str) and raw == ""):
        return None

    if field_type in IMAGE_FIELD_TYPES:
        if isinstance(raw, ImageValue):
            return raw
        if isinstance(raw, ImageBlob):
            return ImageValue(raw)
        if isinstance(raw, str):
            return ImageValue(ImageBlob.from_data_url(raw))
    elif field_type == FieldType.TEXT:
        if isinstance(raw, TextValue):
            return raw
        if isinstance(raw, str):
            return TextValue(raw)
    elif field_type == FieldType.DATE:
        if isinstance(raw, DateValue):
            return raw
        if isinstance(raw, date):
            return DateValue(raw.isoformat())
        if isinstance(raw, str):
            return DateValue(raw.strip())
    elif field_type == FieldType.RADIO:
        if isinstance(raw, RadioValue):
            return raw
        if isinstance(raw, bool):
            return RadioValue(raw)
        if isinstance(raw, str):
            return RadioValue(raw.strip().lower() in _TRUTHY)
    else:
        raise ValueError(f"Unknown field type: {field_type!r}")

    raise ValueError(f"{type(raw).__name__} is not a valid {field_type.value} value")


# ==========================================
# PIXEL <-> FRACTION CONVERSION
# ==========================================

def pixels_to_fraction(x_px: float, y_px: float, w_px: float, h_px: float,
                       viewport_w: Optional[float], viewport_h: Optional[float]) -> Optional[FractionRect]:
    """
    Convert a pixel rectangle into viewport fractions.

    Returns None when either viewport side is zero or unknown, so callers keep
    their previous fractions instead of storing NaN or Infinity.
    """
    if not is_positive(viewport_w) or not is_positive(viewport_h):
        return None
    return FractionRect(
        x_norm=x_px / viewport_w,
        y_norm=y_px / viewport_h,
        width_norm=w_px / viewport_w,
        height_norm=h_px / viewport_h,
    )


def fraction_to_pixels(x_norm: float, y_norm: float, w_norm: float, h_norm: float,
                       viewport_w: Optional[float], viewport_h: Optional[float]) -> Optional[PixelRect]:
    """Inverse of pixels_to_fraction. Pure: nothing is mutated."""
    if not is_positive(viewport_w) or not is_positive(viewport_h):
        return None
    return PixelRect(
        x=x_norm * viewport_w,
        y=y_norm * viewport_h,
        width=w_norm * viewport_w,
        height=h_norm * viewport_h,
    )


@dataclass
class Field:
    """A placed element. ``id`` and ``type`` never change after creation."""

    id: str
    type: FieldType
    page: int
    x_norm: float
    y_norm: float
    width_norm: float
    height_norm: float
    value: Optional[FieldValue] = None

    @property
    def fraction_rect(self) -> FractionRect:
        return FractionRect(self.x_norm, self.y_norm, self.width_norm, self.height_norm)

    @property
    def has_value(self) -> bool:
        return self.value is not None

    def image(self) -> Optional[ImageBlob]:
        if isinstance(self.value, ImageValue):
            return self.value.blob
        return None


class AnchoringModel:
    """
    Owns the ordered, id-keyed collection of fields and the injected viewport.

    Position and size updates arrive as pixel values from drag/resize-stop
    gestures and are stored as fractions of the current viewport. Updates for
    unknown ids are no-ops that return False.
    """

    def __init__(self, viewport: Optional[Viewport] = None):
        self._viewport = viewport or Viewport()
        self._fields: Dict[str, Field] = {}

    @property
    def viewport(self) -> Viewport:
        return self._viewport

    def set_viewport(self, width: Optional[float], height: Optional[float]) -> None:
        self._viewport = Viewport(width=width, height=height)

    @property
    def fields(self) -> List[Field]:
        return list(self._fields.values())

    def get(self, field_id: str) -> Optional[Field]:
        return self._fields.get(field_id)

    def add_field(self, field_type: Union[FieldType, str], page: int = 1,
                  rect: Optional[FractionRect] = None, value: Any = None,
                  field_id: Optional[str] = None) -> Field:
        """
        Append a new field and return it.

        Without ``rect`` the field gets the default box for its type, offset
        a little from the previously added field. Date fields default to today.
        """
        field_type = FieldType(field_type)
        field_id = field_id or uuid.uuid4().hex
        if field_id in self._fields:
            raise ValueError(f"Field id already exists: {field_id}")
        if page < 1:
            raise ValueError(f"Page index is 1-based, got {page}")

        if rect is None:
            offset = len(self._fields) * CASCADE_STEP
            width_norm, height_norm = SIGNATURE_BOX if field_type == FieldType.SIGNATURE else DEFAULT_BOX
            rect = FractionRect(
                x_norm=CASCADE_ORIGIN[0] + offset,
                y_norm=CASCADE_ORIGIN[1] + offset,
                width_norm=width_norm,
                height_norm=height_norm,
            )
        if not is_positive(rect.width_norm) or not is_positive(rect.height_norm):
            raise ValueError(f"Field size must be positive, got {rect.width_norm}x{rect.height_norm}")

        if value is None and field_type == FieldType.DATE:
            value = date.today().isoformat()

        field = Field(
            id=field_id,
            type=field_type,
            page=page,
            x_norm=rect.x_norm,
            y_norm=rect.y_norm,
            width_norm=rect.width_norm,
            height_norm=rect.height_norm,
            value=coerce_value(field_type, value),
        )
        self._fields[field_id] = field
        logger.debug(f"Added {field_type.value} field {field_id} on page {page}")
        return field

    def update_position(self, field_id: str, x_px: float, y_px: float,
                        viewport_height: Optional[float]) -> bool:
        """
        Store a new top-left position given in pixels.

        Uses the model's current viewport width and the supplied height.
        Returns True when the field was updated.
        """
        field = self._lookup(field_id)
        if field is None:
            return False
        if not is_finite(x_px) or not is_finite(y_px):
            logger.debug(f"Ignoring non-finite position ({x_px}, {y_px}) for {field_id}")
            return False
        fractions = pixels_to_fraction(x_px, y_px, 0.0, 0.0, self._viewport.width, viewport_height)
        if fractions is None:
            logger.debug(f"Viewport not ready; keeping position of {field_id}")
            return False
        field.x_norm = fractions.x_norm
        field.y_norm = fractions.y_norm
        return True

    def update_size(self, field_id: str, width_px: float, height_px: float,
                    viewport_height: Optional[float]) -> bool:
        """
        Store a new size given in pixels. Returns True when the field was updated.

        Zero, negative and non-finite sizes are refused; the field keeps its size.
        """
        field = self._lookup(field_id)
        if field is None:
            return False
        if not is_positive(width_px) or not is_positive(height_px):
            logger.debug(f"Ignoring unusable size {width_px}x{height_px} for {field_id}")
            return False
        fractions = pixels_to_fraction(0.0, 0.0, width_px, height_px, self._viewport.width, viewport_height)
        if fractions is None:
            logger.debug(f"Viewport not ready; keeping size of {field_id}")
            return False
        field.width_norm = fractions.width_norm
        field.height_norm = fractions.height_norm
        return True

    def set_value(self, field_id: str, raw: Any) -> bool:
        field = self._lookup(field_id)
        if field is None:
            return False
        field.value = coerce_value(field.type, raw)
        return True

    def pixel_rect(self, field_id: str) -> Optional[PixelRect]:
        """On-screen geometry of a field for the current viewport, or None."""
        field = self._fields.get(field_id)
        if field is None:
            return None
        return fraction_to_pixels(
            field.x_norm, field.y_norm, field.width_norm, field.height_norm,
            self._viewport.width, self._viewport.height,
        )

    def placement_for(self, field_id: str, page_geometry: Optional[PageGeometry]) -> Optional[PlacementRect]:
        return to_placement_rect(self._fields.get(field_id), page_geometry)

    def _lookup(self, field_id: str) -> Optional[Field]:
        field = self._fields.get(field_id)
        if field is None:
            logger.debug(f"Field not found: {field_id}")
        return field
