"""
Compositor
Plans where each signature / image placement is drawn.

Each placement is planned on its own against the original document, so the
outcome does not depend on the other placements. Placements without an image
are skipped; invalid ones are rejected with a reason and the rest of the batch
proceeds. A batch with nothing left to draw is refused before anything is drawn.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from anchoring import IMAGE_FIELD_TYPES, AnchoringModel
from coordinates import fit_image, to_placement_rect
from errors import EmptyBatchError, InvalidPlacementError, MissingDimensionError, SigningError
from geometry import DrawRect, PageGeometry, PlacementRect
from images import ImageBlob

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Placement:
    """One image to burn: target rectangle in page units plus its source image."""

    field_id: str
    page: int
    rect: Optional[PlacementRect]
    image: Optional[ImageBlob]


@dataclass(frozen=True)
class DrawOperation:
    field_id: str
    page: int
    draw_rect: DrawRect
    image: ImageBlob

    @property
    def page_index(self) -> int:
        return self.page - 1


@dataclass
class BurnPlan:
    operations: List[DrawOperation] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    rejected: List[Dict[str, Any]] = field(default_factory=list)


def rejection(field_id: str, error: SigningError) -> Dict[str, Any]:
    return {"field_id": field_id, "reason": error.reason, "error": error.message}


def collect_placements(model: AnchoringModel, page_geometries: Mapping[int, PageGeometry],
                       field_types: Iterable = IMAGE_FIELD_TYPES) -> List[Placement]:
    """
    Build placements for the model's image-bearing fields, in field order.

    Args:
        model: Fields to burn
        page_geometries: 1-based page number -> page size in points
        field_types: Field types that carry an image to burn

    Returns:
        One Placement per matching field; ``rect`` is None where the page
        geometry is missing
    """
    wanted = set(field_types)
    placements = []
    for f in model.fields:
        if f.type not in wanted:
            continue
        placements.append(Placement(
            field_id=f.id,
            page=f.page,
            rect=to_placement_rect(f, page_geometries.get(f.page)),
            image=f.image(),
        ))
    return placements


def plan_placement(placement: Placement, page_count: Optional[int] = None) -> DrawOperation:
    """
    Compute the draw operation for a single placement.

    Raises:
        MissingDimensionError: page geometry was not available
        InvalidPlacementError: page out of range or non-positive placement size
        MalformedImageError: image cannot be decoded or has zero dimensions
    """
    # A page outside the document has no geometry either; report the range first
    if page_count is not None and not 1 <= placement.page <= page_count:
        raise InvalidPlacementError(
            f"Page {placement.page} is outside the document (1-{page_count})",
            field_id=placement.field_id,
        )
    if placement.rect is None:
        raise MissingDimensionError(
            f"No page geometry for page {placement.page}", field_id=placement.field_id
        )

    image_width, image_height = placement.image.dimensions()
    draw_rect = fit_image(placement.rect, image_width, image_height)
    return DrawOperation(
        field_id=placement.field_id,
        page=placement.page,
        draw_rect=draw_rect,
        image=placement.image,
    )


def plan_batch(placements: Sequence[Placement], page_count: Optional[int] = None,
               rejected: Optional[List[Dict[str, Any]]] = None) -> BurnPlan:
    """
    Plan a whole batch in the order supplied.

    Args:
        placements: Placements to burn
        page_count: Number of pages in the target document, when known
        rejected: Rejections already found upstream (e.g. undecodable values)

    Returns:
        BurnPlan with at least one draw operation

    Raises:
        EmptyBatchError: nothing in the batch carries an image
        InvalidPlacementError: every placement carrying an image was rejected
    """
    plan = BurnPlan(rejected=list(rejected or []))

    for placement in placements:
        if placement.image is None:
            logger.debug(f"Skipping {placement.field_id}: no image value")
            plan.skipped.append(placement.field_id)
            continue
        try:
            plan.operations.append(plan_placement(placement, page_count))
        except SigningError as e:
            logger.warning(f"Rejected placement {placement.field_id}: {e.reason} ({e.message})")
            plan.rejected.append(rejection(placement.field_id, e))

    if not plan.operations:
        if plan.rejected:
            raise InvalidPlacementError(
                f"All {len(plan.rejected)} placement(s) are invalid", rejected=plan.rejected
            )
        raise EmptyBatchError("Nothing to sign: no placement carries an image")

    logger.info(f"Planned {len(plan.operations)} draw(s), "
                f"{len(plan.skipped)} skipped, {len(plan.rejected)} rejected")
    return plan
