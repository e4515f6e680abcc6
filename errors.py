"""
Signing Errors
Error taxonomy for the placement and burning pipeline.

Every error carries a short machine-readable ``reason`` so callers can tell
"nothing to sign" apart from "one or more placements invalid" and from
"processing failed".
"""

from typing import Any, Dict, List, Optional


class SigningError(Exception):
    """Base class for all placement / burning failures."""

    reason = "processing_failed"
    status_code = 500

    def __init__(self, message: str, *, field_id: Optional[str] = None,
                 rejected: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.field_id = field_id
        self.rejected = rejected or []

    def to_detail(self) -> Dict[str, Any]:
        detail = {
            "success": False,
            "reason": self.reason,
            "error": self.message,
        }
        if self.field_id is not None:
            detail["field_id"] = self.field_id
        if self.rejected:
            detail["rejected"] = self.rejected
        return detail


class MissingDimensionError(SigningError):
    """Viewport or page geometry not available yet."""

    reason = "missing_dimensions"
    status_code = 422


class InvalidPlacementError(SigningError):
    """Placement that cannot be drawn: non-positive size or a page outside the document."""

    reason = "invalid_placement"
    status_code = 422


class MalformedImageError(SigningError):
    """Source image cannot be decoded or has no usable dimensions."""

    reason = "malformed_image"
    status_code = 422


class EmptyBatchError(SigningError):
    """No placement in the batch carries anything to draw."""

    reason = "nothing_to_sign"
    status_code = 400


class DocumentNotFoundError(SigningError):
    reason = "document_not_found"
    status_code = 404


class ProcessingError(SigningError):
    """Drawing or saving the output document failed; nothing was produced."""

    reason = "processing_failed"
    status_code = 500
