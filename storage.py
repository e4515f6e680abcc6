"""
Document Storage
Source PDF catalog, signed-output stores and the signing audit trail.
"""

import json
import logging
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from azure.core.exceptions import ResourceNotFoundError
from azure.storage.blob import BlobServiceClient, ContentSettings

from errors import DocumentNotFoundError
from sample_contract import generate_contract

logger = logging.getLogger(__name__)

_SAFE_NAME = re.compile(r"^[A-Za-z0-9_.-]+$")
_SIGNED_NAME = re.compile(r"^signed-[A-Za-z0-9-]+\.pdf$")


def _is_safe_name(name: str) -> bool:
    return bool(name) and bool(_SAFE_NAME.match(name)) and ".." not in name


def new_signed_file_name() -> str:
    return f"signed-{uuid.uuid4()}.pdf"


class DocumentCatalog:
    """
    Maps pdf ids to ``<documents_dir>/<pdf_id>.pdf``.
    Unknown ids fall back to the default document.
    """

    def __init__(self, documents_dir: Path, default_id: str = "default", generate_default: bool = True):
        self.documents_dir = Path(documents_dir)
        self.default_id = default_id
        self.generate_default = generate_default

    def ensure_default(self) -> Path:
        path = self.documents_dir / f"{self.default_id}.pdf"
        if not path.exists() and self.generate_default:
            logger.info(f"Default document missing, generating sample contract at {path}")
            generate_contract(path)
        return path

    def resolve(self, pdf_id: Optional[str]) -> Tuple[str, Path]:
        """
        Returns:
            (resolved_id, path) for the requested id or the default

        Raises:
            DocumentNotFoundError: neither the requested nor the default PDF exists
        """
        if pdf_id and _is_safe_name(pdf_id):
            path = self.documents_dir / f"{pdf_id}.pdf"
            if path.exists():
                return pdf_id, path

        path = self.ensure_default()
        if not path.exists():
            raise DocumentNotFoundError("PDF not found")
        if pdf_id and pdf_id != self.default_id:
            logger.info(f"Unknown pdf id '{pdf_id}', using '{self.default_id}'")
        return self.default_id, path

    def load(self, pdf_id: Optional[str]) -> Tuple[str, bytes]:
        resolved_id, path = self.resolve(pdf_id)
        return resolved_id, path.read_bytes()


def audit_entry(pdf_id: str, file_name: str, original_hash: str, signed_hash: str,
                drawn: int) -> Dict[str, Any]:
    return {
        "pdfId": pdf_id,
        "originalHash": original_hash,
        "signedHash": signed_hash,
        "signedFile": file_name,
        "drawn": drawn,
        "createdAt": datetime.now(timezone.utc).isoformat(),
    }


class LocalSignedStore:
    """Signed PDFs on local disk, served by the app under /signed/."""

    def __init__(self, directory: Path, base_url: str):
        self.directory = Path(directory)
        self.base_url = base_url.rstrip("/")

    def save(self, file_name: str, pdf_bytes: bytes) -> str:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / file_name
        path.write_bytes(pdf_bytes)
        logger.info(f"Stored signed PDF: {path} ({len(pdf_bytes)} bytes)")
        return f"{self.base_url}/signed/{file_name}"

    def path_for(self, file_name: str) -> Optional[Path]:
        # Only signed outputs are served; audit.jsonl lives in the same directory
        if not _SIGNED_NAME.match(file_name):
            return None
        path = self.directory / file_name
        return path if path.is_file() else None

    def record_audit(self, entry: Dict[str, Any]) -> None:
        logger.info(f"Audit log: {json.dumps(entry)}")
        self.directory.mkdir(parents=True, exist_ok=True)
        with (self.directory / "audit.jsonl").open("a", encoding="utf-8") as f:
            f.write(json.dumps(entry) + "\n")


class BlobSignedStore:
    """
    Signed PDFs in Azure Blob Storage.
    Structure: <container>/
                   ├── signed-<uuid>.pdf
                   └── audit/signed-<uuid>.json
    """

    def __init__(self, connection_string: str, container: str = "signed-pdfs"):
        self.container = container
        self.blob_service = BlobServiceClient.from_connection_string(connection_string)
        self.container_client = self.blob_service.get_container_client(container)
        try:
            self.container_client.get_container_properties()
            logger.info(f"Using existing container: {container}")
        except ResourceNotFoundError:
            self.container_client = self.blob_service.create_container(container, public_access="blob")
            logger.info(f"Created container: {container}")

    def save(self, file_name: str, pdf_bytes: bytes) -> str:
        blob_client = self.container_client.upload_blob(
            file_name,
            pdf_bytes,
            overwrite=True,
            content_settings=ContentSettings(content_type="application/pdf"),
        )
        logger.info(f"Uploaded signed PDF: {self.container}/{file_name}")
        return blob_client.url

    def path_for(self, file_name: str) -> Optional[Path]:
        # Blob outputs are served by storage, not by this app
        return None

    def record_audit(self, entry: Dict[str, Any]) -> None:
        logger.info(f"Audit log: {json.dumps(entry)}")
        audit_name = f"audit/{Path(entry['signedFile']).stem}.json"
        self.container_client.upload_blob(
            audit_name,
            json.dumps(entry, indent=2),
            overwrite=True,
            content_settings=ContentSettings(content_type="application/json"),
        )
