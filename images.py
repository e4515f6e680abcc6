"""
Image Blobs
Self-describing image payloads (data URLs) for signature and image fields.
"""

import base64
import binascii
import io
import logging
from dataclasses import dataclass, field
from typing import Tuple

from PIL import Image, UnidentifiedImageError

from errors import MalformedImageError

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/png"


@dataclass(frozen=True)
class ImageBlob:
    """Raw image bytes plus the MIME type they were tagged with."""

    mime_type: str
    data: bytes = field(repr=False)

    @classmethod
    def from_data_url(cls, value: str) -> "ImageBlob":
        """
        Parse a ``data:<mime>;base64,<payload>`` string.

        A bare base64 payload without the ``data:`` prefix is accepted and
        tagged as PNG, matching what signature pads send when the prefix is
        stripped client-side.

        Raises:
            MalformedImageError: empty value or payload that is not base64
        """
        if not isinstance(value, str) or not value.strip():
            raise MalformedImageError("Image value is empty")

        text = value.strip()
        mime_type = DEFAULT_MIME_TYPE
        if text.startswith("data:"):
            header, _, payload = text.partition(",")
            media = header[len("data:"):].split(";")[0].strip()
            if media:
                mime_type = media.lower()
        else:
            payload = text.split(",")[-1]

        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise MalformedImageError(f"Image payload is not valid base64: {e}")
        if not data:
            raise MalformedImageError("Image payload is empty")
        return cls(mime_type=mime_type, data=data)

    def to_data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"

    def dimensions(self) -> Tuple[int, int]:
        """
        Decode the image header and return its intrinsic (width, height) in pixels.

        Raises:
            MalformedImageError: bytes are not a readable image, or a side is zero
        """
        try:
            with Image.open(io.BytesIO(self.data)) as img:
                width, height = img.size
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise MalformedImageError(f"Cannot decode {self.mime_type} image: {e}")
        if not width or not height:
            raise MalformedImageError(f"Image has zero dimensions ({width}x{height})")
        return width, height
