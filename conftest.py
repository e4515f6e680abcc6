from __future__ import annotations

import base64
import io

import fitz
import pytest
from PIL import Image


def _png(width: int, height: int, color=(0, 0, 0, 255)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGBA", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


def _pdf(page_sizes=((600, 800),)) -> bytes:
    doc = fitz.open()
    for width, height in page_sizes:
        doc.new_page(width=width, height=height)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def png_factory():
    return _png


@pytest.fixture
def pdf_factory():
    return _pdf


@pytest.fixture
def signature_png():
    return _png(400, 200)


@pytest.fixture
def signature_data_url(signature_png):
    return "data:image/png;base64," + base64.b64encode(signature_png).decode("ascii")


@pytest.fixture
def blank_pdf():
    return _pdf()
