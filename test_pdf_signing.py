from __future__ import annotations

import base64
import hashlib

import fitz
import pytest

from anchoring import AnchoringModel, FieldType
from compositor import Placement
from errors import EmptyBatchError, ProcessingError
from geometry import DrawRect, FractionRect, PlacementRect
from images import ImageBlob
from pdf_signing import read_page_geometries, sign_fields, sign_pdf, to_fitz_rect


def _image_boxes(pdf_bytes, page_number=1):
    doc = fitz.open(stream=pdf_bytes, filetype="pdf")
    try:
        return [tuple(info["bbox"]) for info in doc[page_number - 1].get_image_info()]
    finally:
        doc.close()


def test_to_fitz_rect_flips_vertical_axis():
    rect = to_fitz_rect(DrawRect(x=70, y=100, width=160, height=80), page_height=800)
    assert (rect.x0, rect.y0, rect.x1, rect.y1) == pytest.approx((70, 620, 230, 700))


def test_read_page_geometries(pdf_factory):
    pages = read_page_geometries(pdf_factory([(600, 800), (842, 595)]))
    assert sorted(pages) == [1, 2]
    assert (pages[1].width_pts, pages[1].height_pts) == pytest.approx((600, 800))
    assert (pages[2].width_pts, pages[2].height_pts) == pytest.approx((842, 595))


def test_read_page_geometries_rejects_garbage():
    with pytest.raises(ProcessingError):
        read_page_geometries(b"%PDF-nope")


def test_sign_pdf_draws_at_fitted_rect(blank_pdf, signature_png):
    placement = Placement(
        field_id="sig",
        page=1,
        rect=PlacementRect(x=50, y=100, width=200, height=80),
        image=ImageBlob(mime_type="image/png", data=signature_png),
    )
    signed = sign_pdf(blank_pdf, [placement])

    assert signed.original_hash == hashlib.sha256(blank_pdf).hexdigest()
    assert signed.signed_hash == hashlib.sha256(signed.pdf_bytes).hexdigest()
    assert signed.signed_hash != signed.original_hash

    boxes = _image_boxes(signed.pdf_bytes)
    assert len(boxes) == 1
    assert boxes[0] == pytest.approx((70, 620, 230, 700), abs=0.5)
    # Input is left alone
    assert _image_boxes(blank_pdf) == []


def test_sign_fields_skips_empty_signature(pdf_factory, png_factory):
    pdf = pdf_factory([(600, 800), (600, 800)])
    red = "data:image/png;base64," + base64.b64encode(png_factory(100, 50, (255, 0, 0, 255))).decode()
    blue = "data:image/png;base64," + base64.b64encode(png_factory(100, 50, (0, 0, 255, 255))).decode()

    model = AnchoringModel()
    model.add_field(FieldType.SIGNATURE, rect=FractionRect(0, 0, 0.5, 0.25), value=red)
    unsigned = model.add_field(FieldType.SIGNATURE, rect=FractionRect(0.5, 0.5, 0.2, 0.1))
    model.add_field(FieldType.IMAGE, page=2, rect=FractionRect(0.1, 0.75, 0.5, 0.25), value=blue)

    signed = sign_fields(pdf, model)

    assert len(signed.plan.operations) == 2
    assert signed.summary()["skipped"] == [unsigned.id]
    # Page 1: box (0, 600, 300, 200) in points -> image 2:1 fills width, 150 tall
    page_one = _image_boxes(signed.pdf_bytes, 1)
    assert len(page_one) == 1
    assert page_one[0] == pytest.approx((0, 25, 300, 175), abs=0.5)
    # Page 2: bottom-touching field; 300x200 box -> 300x150 image centered vertically
    page_two = _image_boxes(signed.pdf_bytes, 2)
    assert len(page_two) == 1
    assert page_two[0] == pytest.approx((60, 625, 360, 775), abs=0.5)


def test_sign_fields_with_nothing_to_sign(blank_pdf):
    model = AnchoringModel()
    model.add_field(FieldType.SIGNATURE)
    model.add_field(FieldType.TEXT, value="hello")
    with pytest.raises(EmptyBatchError):
        sign_fields(blank_pdf, model)


def test_draw_failure_produces_no_document(blank_pdf, signature_png, monkeypatch):
    import pdf_signing

    def _boom(page, operation):
        raise RuntimeError("rasterizer crashed")

    monkeypatch.setattr(pdf_signing, "draw_image_on_pdf", _boom)
    placement = Placement(
        field_id="sig",
        page=1,
        rect=PlacementRect(x=50, y=100, width=200, height=80),
        image=ImageBlob(mime_type="image/png", data=signature_png),
    )
    with pytest.raises(ProcessingError) as excinfo:
        sign_pdf(blank_pdf, [placement])
    assert excinfo.value.reason == "processing_failed"
    assert excinfo.value.field_id == "sig"
