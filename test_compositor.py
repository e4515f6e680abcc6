from __future__ import annotations

import pytest

from anchoring import AnchoringModel, FieldType
from compositor import Placement, collect_placements, plan_batch, plan_placement
from errors import EmptyBatchError, InvalidPlacementError, MalformedImageError, MissingDimensionError
from geometry import FractionRect, PageGeometry, PlacementRect
from images import ImageBlob


@pytest.fixture
def blob(signature_png):
    return ImageBlob(mime_type="image/png", data=signature_png)


def _placement(field_id, blob, rect=PlacementRect(x=50, y=100, width=200, height=80), page=1):
    return Placement(field_id=field_id, page=page, rect=rect, image=blob)


def test_plan_placement_fits_image(blob):
    operation = plan_placement(_placement("sig", blob))
    assert operation.page_index == 0
    rect = operation.draw_rect
    assert (rect.x, rect.y, rect.width, rect.height) == pytest.approx((70, 100, 160, 80))


def test_batch_skips_placement_without_image(blob):
    plan = plan_batch([
        _placement("a", blob),
        _placement("b", None),
        _placement("c", blob),
    ])
    assert [op.field_id for op in plan.operations] == ["a", "c"]
    assert plan.skipped == ["b"]
    assert plan.rejected == []


def test_empty_batch_is_rejected(blob):
    with pytest.raises(EmptyBatchError) as excinfo:
        plan_batch([_placement("a", None), _placement("b", None)])
    assert excinfo.value.reason == "nothing_to_sign"

    with pytest.raises(EmptyBatchError):
        plan_batch([])


def test_invalid_placement_does_not_abort_batch(blob):
    plan = plan_batch([
        _placement("bad", blob, rect=PlacementRect(x=0, y=0, width=0, height=80)),
        _placement("good", blob),
    ])
    assert [op.field_id for op in plan.operations] == ["good"]
    assert plan.rejected == [{
        "field_id": "bad",
        "reason": "invalid_placement",
        "error": "Placement has non-positive size (0x80)",
    }]


def test_malformed_image_is_reported(blob):
    broken = ImageBlob(mime_type="image/png", data=b"definitely not a png")
    plan = plan_batch([_placement("broken", broken), _placement("good", blob)])
    assert [r["reason"] for r in plan.rejected] == ["malformed_image"]

    with pytest.raises(MalformedImageError):
        plan_placement(_placement("broken", broken))


def test_all_rejected_batch_reports_invalid_placement(blob):
    with pytest.raises(InvalidPlacementError) as excinfo:
        plan_batch([_placement("p9", blob, page=9)], page_count=2)
    assert excinfo.value.reason == "invalid_placement"
    assert excinfo.value.rejected[0]["field_id"] == "p9"


def test_upstream_rejections_are_kept(blob):
    upstream = [{"field_id": "x", "reason": "malformed_image", "error": "bad"}]
    plan = plan_batch([_placement("good", blob)], rejected=upstream)
    assert plan.rejected == upstream


def test_missing_page_geometry_is_rejected(blob):
    with pytest.raises(MissingDimensionError):
        plan_placement(_placement("sig", blob, rect=None))


def test_plan_keeps_supplied_order(blob):
    ids = ["c", "a", "b"]
    plan = plan_batch([_placement(i, blob) for i in ids])
    assert [op.field_id for op in plan.operations] == ids


def test_collect_placements_from_model(signature_data_url):
    model = AnchoringModel()
    sig = model.add_field(FieldType.SIGNATURE, rect=FractionRect(0, 0, 0.5, 0.25), value=signature_data_url)
    model.add_field(FieldType.TEXT, value="not burned")
    empty = model.add_field(FieldType.IMAGE, page=2)
    orphan = model.add_field(FieldType.SIGNATURE, page=5, value=signature_data_url)

    pages = {1: PageGeometry(600, 800), 2: PageGeometry(400, 300)}
    placements = collect_placements(model, pages)

    assert [p.field_id for p in placements] == [sig.id, empty.id, orphan.id]
    assert placements[0].rect == PlacementRect(x=0, y=600, width=300, height=200, page=1)
    assert placements[1].image is None
    assert placements[2].rect is None

    plan = plan_batch(placements)
    assert [op.field_id for op in plan.operations] == [sig.id]
    assert plan.skipped == [empty.id]
    assert [r["reason"] for r in plan.rejected] == ["missing_dimensions"]


def test_page_outside_document_is_invalid_even_without_geometry(blob):
    with pytest.raises(InvalidPlacementError):
        plan_placement(_placement("far", blob, rect=None, page=5), page_count=2)
    # Without a page count the missing geometry is all that can be reported
    with pytest.raises(MissingDimensionError):
        plan_placement(_placement("far", blob, rect=None, page=5))
