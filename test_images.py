from __future__ import annotations

import base64

import pytest

from errors import MalformedImageError
from images import ImageBlob


def test_data_url_keeps_mime_type(signature_png):
    encoded = base64.b64encode(signature_png).decode("ascii")
    blob = ImageBlob.from_data_url(f"data:image/JPEG;base64,{encoded}")
    assert blob.mime_type == "image/jpeg"
    assert blob.data == signature_png


def test_bare_base64_is_treated_as_png(signature_png):
    blob = ImageBlob.from_data_url(base64.b64encode(signature_png).decode("ascii"))
    assert blob.mime_type == "image/png"
    assert blob.dimensions() == (400, 200)


def test_data_url_round_trip(signature_data_url):
    assert ImageBlob.from_data_url(signature_data_url).to_data_url() == signature_data_url


@pytest.mark.parametrize("value", ["", "   ", "data:image/png;base64,", "data:image/png;base64,%%%"])
def test_unusable_payloads_are_malformed(value):
    with pytest.raises(MalformedImageError):
        ImageBlob.from_data_url(value)


def test_undecodable_bytes_have_no_dimensions():
    blob = ImageBlob(mime_type="image/png", data=b"\x89PNG but not really")
    with pytest.raises(MalformedImageError):
        blob.dimensions()
