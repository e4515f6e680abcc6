"""
Sample Contract Generator
Builds a one-page service agreement with two signature boxes for testing.

Usage:
    python sample_contract.py [output.pdf]
"""

import io
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

import fitz  # PyMuPDF

logger = logging.getLogger(__name__)

A4_SIZE = (595.28, 842)  # points
MARGIN = 50
SIGNATURE_BOX = (220, 80)  # points

TERMS = [
    "1. Scope of Services: The Service Provider agrees to deliver the services as described in this agreement.",
    "2. Term: This agreement shall commence on the date of execution and continue until completion of services.",
    "3. Compensation: The Client agrees to pay the Service Provider according to the payment terms specified herein.",
    "4. Confidentiality: Both parties agree to maintain confidentiality of all proprietary information.",
    "5. Termination: Either party may terminate this agreement with 30 days written notice.",
    "6. Governing Law: This agreement shall be governed by the laws of the jurisdiction specified.",
]

REGULAR = "helv"
BOLD = "hebo"
GREY = (0.3, 0.3, 0.3)
BOX_COLOR = (0.5, 0.5, 0.5)


def generate_contract(output_path: Optional[Union[str, Path]] = None) -> bytes:
    """
    Render the sample contract.

    Args:
        output_path: Where to write the PDF (optional)

    Returns:
        PDF content as bytes
    """
    doc = fitz.open()
    page_width, page_height = A4_SIZE
    page = doc.new_page(width=page_width, height=page_height)

    # PyMuPDF measures from the top, so y grows down the page
    y = MARGIN + 24

    page.insert_text((MARGIN, y), "SERVICE AGREEMENT", fontsize=24, fontname=BOLD)
    y += 40

    today = datetime.now()
    page.insert_text((MARGIN, y), f"Date: {today:%B} {today.day}, {today.year}",
                     fontsize=11, fontname=REGULAR, color=GREY)
    y += 30

    page.insert_text((MARGIN, y), "PARTIES", fontsize=14, fontname=BOLD)
    y += 20
    for label, placeholder in (("Service Provider:", "[Service Provider Name]"),
                               ("Client:", "[Client Name]")):
        page.insert_text((MARGIN, y), label, fontsize=11, fontname=BOLD)
        y += 16
        page.insert_text((MARGIN + 20, y), placeholder, fontsize=11, fontname=REGULAR)
        y += 20
    y += 10

    page.insert_text((MARGIN, y), "TERMS AND CONDITIONS", fontsize=14, fontname=BOLD)
    y += 10

    for term in TERMS:
        # Start a new page when the signature block would no longer fit
        if y > page_height - 200:
            page = doc.new_page(width=page_width, height=page_height)
            y = MARGIN
        page.insert_textbox(
            fitz.Rect(MARGIN, y, page_width - MARGIN, y + 28),
            term,
            fontsize=10,
            fontname=REGULAR,
        )
        y += 28

    y += 30
    page.insert_text((MARGIN, y), "SIGNATURES", fontsize=14, fontname=BOLD)
    y += 30

    box_width, box_height = SIGNATURE_BOX
    for label, x in (("Service Provider:", MARGIN),
                     ("Client:", page_width - MARGIN - box_width)):
        page.insert_text((x, y - 5), label, fontsize=10, fontname=BOLD)
        page.draw_rect(fitz.Rect(x, y, x + box_width, y + box_height), color=BOX_COLOR, width=1)

    output = io.BytesIO()
    doc.save(output)
    doc.close()
    pdf_bytes = output.getvalue()

    if output_path is not None:
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(pdf_bytes)
        logger.info(f"Contract PDF generated at {path}")

    return pdf_bytes


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    generate_contract(sys.argv[1] if len(sys.argv) > 1 else Path("documents") / "default.pdf")
