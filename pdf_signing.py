"""
PDF Signing Module
Burns signature and image field values into PDFs.
"""

import hashlib
import io
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import fitz  # PyMuPDF for page geometry and image insertion
import httpx

from anchoring import AnchoringModel
from compositor import BurnPlan, DrawOperation, Placement, collect_placements, plan_batch
from errors import ProcessingError
from geometry import DrawRect, PageGeometry

logger = logging.getLogger(__name__)


# ==========================================
# PAGE-UNIT -> PyMuPDF RECT
# ==========================================
#
# Draw rectangles use standard PDF coordinates (bottom-left origin, Y up).
# PyMuPDF uses a top-left origin (Y down), so the vertical axis is flipped
# once more when handing the rectangle to insert_image:
#
#   x0 = x                      x1 = x + width
#   y0 = page_h - y - height    y1 = page_h - y
# ==========================================

def to_fitz_rect(draw_rect: DrawRect, page_height: float) -> fitz.Rect:
    """Convert a bottom-left-origin draw rectangle into a PyMuPDF rect."""
    y0 = page_height - draw_rect.y - draw_rect.height
    return fitz.Rect(
        draw_rect.x,
        y0,
        draw_rect.x + draw_rect.width,
        y0 + draw_rect.height,
    )


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def open_pdf(pdf_bytes: bytes) -> fitz.Document:
    """
    Open PDF bytes as an in-memory working copy.

    Raises:
        ProcessingError: bytes cannot be opened as a PDF
    """
    try:
        return fitz.open(stream=pdf_bytes, filetype="pdf")
    except Exception as e:
        logger.error(f"Cannot open PDF ({len(pdf_bytes)} bytes): {e}")
        raise ProcessingError(f"Cannot open PDF: {e}")


def page_geometries(doc: fitz.Document) -> Dict[int, PageGeometry]:
    """1-based page number -> page size in points."""
    return {
        number + 1: PageGeometry(width_pts=page.rect.width, height_pts=page.rect.height)
        for number, page in enumerate(doc)
    }


def read_page_geometries(pdf_bytes: bytes) -> Dict[int, PageGeometry]:
    doc = open_pdf(pdf_bytes)
    try:
        return page_geometries(doc)
    finally:
        doc.close()


def draw_image_on_pdf(page: fitz.Page, operation: DrawOperation) -> None:
    """
    Draw one image at its exact draw rectangle.

    Args:
        page: PyMuPDF page object
        operation: Planned draw (rectangle in page units, bottom-left origin)
    """
    rect = to_fitz_rect(operation.draw_rect, page.rect.height)
    logger.info(f"  Field {operation.field_id} -> page {operation.page}, "
                f"PDF rect ({rect.x0:.2f}, {rect.y0:.2f}, {rect.x1:.2f}, {rect.y1:.2f})")
    # The rect already has the image aspect ratio; don't let PyMuPDF re-fit it
    page.insert_image(rect, stream=operation.image.data, keep_proportion=False)


def burn_images(doc: fitz.Document, operations: Sequence[DrawOperation]) -> bytes:
    """
    Draw all operations into ``doc`` in order and return the saved bytes.

    Raises:
        ProcessingError: any draw or the save failed; no output is produced
    """
    for i, operation in enumerate(operations):
        try:
            logger.info(f"--- Draw {i + 1}/{len(operations)} ---")
            draw_image_on_pdf(doc[operation.page_index], operation)
        except Exception as e:
            logger.error(f"Error drawing field {operation.field_id}: {str(e)}", exc_info=True)
            raise ProcessingError(
                f"Failed to draw field {operation.field_id}: {e}", field_id=operation.field_id
            )

    try:
        output = io.BytesIO()
        doc.save(output)
    except Exception as e:
        logger.error(f"Error saving signed PDF: {str(e)}", exc_info=True)
        raise ProcessingError(f"Failed to save signed PDF: {e}")
    return output.getvalue()


@dataclass
class SignedDocument:
    pdf_bytes: bytes
    original_hash: str
    signed_hash: str
    plan: BurnPlan = field(default_factory=BurnPlan)

    def summary(self) -> Dict[str, Any]:
        return {
            "originalHash": self.original_hash,
            "signedHash": self.signed_hash,
            "drawn": [op.field_id for op in self.plan.operations],
            "skipped": list(self.plan.skipped),
            "rejected": list(self.plan.rejected),
        }


def sign_pdf(pdf_bytes: bytes, placements: Sequence[Placement],
             rejected: Optional[List[Dict[str, Any]]] = None) -> SignedDocument:
    """
    Burn placements into a PDF.

    The batch is planned completely before anything is drawn; drawing happens
    on a working copy, so ``pdf_bytes`` is never altered and a failure yields
    no document at all.

    Args:
        pdf_bytes: Original PDF content
        placements: Placements in processing order
        rejected: Rejections already found while reading the request

    Returns:
        SignedDocument with the output bytes and SHA-256 of input and output

    Raises:
        EmptyBatchError, InvalidPlacementError: nothing drawable in the batch
        ProcessingError: the PDF could not be opened, drawn or saved
    """
    original_hash = sha256_hex(pdf_bytes)
    doc = open_pdf(pdf_bytes)
    try:
        logger.info("=" * 80)
        logger.info("PDF SIGNING")
        logger.info("=" * 80)
        logger.info(f"Pages: {doc.page_count}, placements: {len(placements)}")

        plan = plan_batch(placements, page_count=doc.page_count, rejected=rejected)
        signed_bytes = burn_images(doc, plan.operations)
    finally:
        doc.close()

    signed_hash = sha256_hex(signed_bytes)
    logger.info(f"COMPLETE: {len(plan.operations)}/{len(placements)} placements drawn")
    logger.info(f"Original hash: {original_hash}")
    logger.info(f"Signed hash:   {signed_hash}")
    return SignedDocument(
        pdf_bytes=signed_bytes,
        original_hash=original_hash,
        signed_hash=signed_hash,
        plan=plan,
    )


def sign_fields(pdf_bytes: bytes, model: AnchoringModel,
                rejected: Optional[List[Dict[str, Any]]] = None) -> SignedDocument:
    """Burn every signature / image field of ``model`` using the PDF's own page sizes."""
    geometries = read_page_geometries(pdf_bytes)
    return sign_pdf(pdf_bytes, collect_placements(model, geometries), rejected=rejected)


async def download_file(url: str) -> bytes:
    """
    Download a file from a URL.

    Args:
        url: File URL to download

    Returns:
        File content as bytes
    """
    async with httpx.AsyncClient(timeout=60.0) as client:
        response = await client.get(url)
        response.raise_for_status()
        return response.content
