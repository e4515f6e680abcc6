from __future__ import annotations

import json
from types import SimpleNamespace

import pytest
from azure.core.exceptions import ResourceNotFoundError

import storage
from errors import DocumentNotFoundError
from storage import BlobSignedStore, DocumentCatalog, LocalSignedStore, audit_entry


class _UploadedBlob:
    def __init__(self, container, name):
        self.url = f"https://account.blob.core.windows.net/{container}/{name}"


class _FakeContainer:
    def __init__(self, name, exists=True):
        self.name = name
        self.exists = exists
        self.uploads = {}

    def get_container_properties(self):
        if not self.exists:
            raise ResourceNotFoundError("The specified container does not exist.")
        return {"name": self.name}

    def upload_blob(self, name, data, overwrite=False, content_settings=None):
        self.uploads[name] = (data, content_settings.content_type)
        return _UploadedBlob(self.name, name)


class _FakeBlobService:
    def __init__(self, container_exists=True):
        self.container_exists = container_exists
        self.created = []

    def get_container_client(self, name):
        return _FakeContainer(name, exists=self.container_exists)

    def create_container(self, name, public_access=None):
        self.created.append((name, public_access))
        return _FakeContainer(name)


def _entry(file_name="signed-1234.pdf"):
    return audit_entry(pdf_id="default", file_name=file_name,
                       original_hash="aa", signed_hash="bb", drawn=2)


def _patch_blob_service(monkeypatch, container_exists=True):
    service = _FakeBlobService(container_exists)
    monkeypatch.setattr(storage, "BlobServiceClient",
                        SimpleNamespace(from_connection_string=lambda conn: service))
    return service


def test_blob_store_uploads_pdf_and_audit(monkeypatch):
    service = _patch_blob_service(monkeypatch)
    store = BlobSignedStore("UseDevelopmentStorage=true", container="signed-pdfs")

    url = store.save("signed-1234.pdf", b"%PDF-1.7")
    store.record_audit(_entry())

    assert url == "https://account.blob.core.windows.net/signed-pdfs/signed-1234.pdf"
    assert service.created == []
    uploads = store.container_client.uploads
    assert uploads["signed-1234.pdf"] == (b"%PDF-1.7", "application/pdf")
    audit_json, content_type = uploads["audit/signed-1234.json"]
    assert content_type == "application/json"
    assert json.loads(audit_json)["signedHash"] == "bb"
    # Blob outputs are never served from local disk
    assert store.path_for("signed-1234.pdf") is None


def test_blob_store_creates_missing_container(monkeypatch):
    service = _patch_blob_service(monkeypatch, container_exists=False)
    store = BlobSignedStore("UseDevelopmentStorage=true", container="outputs")

    assert service.created == [("outputs", "blob")]
    assert store.save("signed-1.pdf", b"%PDF").endswith("/outputs/signed-1.pdf")


def test_local_store_serves_only_signed_pdfs(tmp_path):
    store = LocalSignedStore(tmp_path / "signed", "http://localhost:4000/")
    url = store.save("signed-1234.pdf", b"%PDF-1.7")
    store.record_audit(_entry())

    assert url == "http://localhost:4000/signed/signed-1234.pdf"
    assert store.path_for("signed-1234.pdf") == tmp_path / "signed" / "signed-1234.pdf"
    assert (tmp_path / "signed" / "audit.jsonl").exists()
    for name in ["audit.jsonl", "../signed-1234.pdf", "signed-1234.pdf.bak", "other.pdf"]:
        assert store.path_for(name) is None


def test_catalog_falls_back_to_generated_default(tmp_path):
    catalog = DocumentCatalog(tmp_path / "documents")
    pdf_id, data = catalog.load("unknown")
    assert pdf_id == "default"
    assert data.startswith(b"%PDF")
    assert (tmp_path / "documents" / "default.pdf").exists()


def test_catalog_without_default_reports_not_found(tmp_path):
    catalog = DocumentCatalog(tmp_path / "documents", generate_default=False)
    with pytest.raises(DocumentNotFoundError):
        catalog.resolve("missing")
