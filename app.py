"""
FastAPI application for the signature injection service.
Burns drawn signatures into PDFs at viewport-independent field positions.
"""
from fastapi import FastAPI, HTTPException
from fastapi.responses import FileResponse
from pydantic import BaseModel, ConfigDict, Field as PydanticField
import logging
import httpx
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
import os
import uvicorn

from anchoring import IMAGE_FIELD_TYPES, AnchoringModel, Field, FieldType
from compositor import Placement, rejection
from errors import (
    EmptyBatchError,
    InvalidPlacementError,
    MissingDimensionError,
    ProcessingError,
    SigningError,
)
from geometry import FractionRect, PlacementRect
from images import ImageBlob
from pdf_signing import SignedDocument, download_file, read_page_geometries, sign_fields, sign_pdf
from storage import BlobSignedStore, DocumentCatalog, LocalSignedStore, audit_entry, new_signed_file_name

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    documents_dir: Path
    default_pdf_id: str
    signed_dir: Path
    public_base_url: str
    azure_connection_string: Optional[str]
    signed_container: str
    port: int

    @classmethod
    def from_env(cls) -> "Settings":
        port = int(os.environ.get("PORT", 4000))
        return cls(
            documents_dir=Path(os.environ.get("DOCUMENTS_DIR", "documents")),
            default_pdf_id=os.environ.get("DEFAULT_PDF_ID", "default"),
            signed_dir=Path(os.environ.get("SIGNED_DIR", "signed")),
            public_base_url=os.environ.get("PUBLIC_BASE_URL", f"http://localhost:{port}"),
            azure_connection_string=os.environ.get("AZURE_STORAGE_CONNECTION_STRING") or None,
            signed_container=os.environ.get("SIGNED_CONTAINER", "signed-pdfs"),
            port=port,
        )


# Initialize FastAPI app
app = FastAPI(
    title="Signature Injection Service",
    description="Anchors form fields to PDF pages and burns drawn signatures into the document",
    version="1.0.0"
)


def configure(settings: Settings) -> None:
    """Attach the document catalog and signed-output store for ``settings``."""
    app.state.settings = settings
    app.state.catalog = DocumentCatalog(settings.documents_dir, default_id=settings.default_pdf_id)
    if settings.azure_connection_string:
        logger.info(f"Signed PDFs go to blob container '{settings.signed_container}'")
        app.state.store = BlobSignedStore(settings.azure_connection_string, settings.signed_container)
    else:
        logger.info(f"Signed PDFs go to {settings.signed_dir}")
        app.state.store = LocalSignedStore(settings.signed_dir, settings.public_base_url)


configure(Settings.from_env())


# Request models
class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Coordinates(CamelModel):
    """Placement in PDF points, bottom-left origin."""
    page: Optional[int] = 1
    x: float
    y: float
    width: float
    height: float


class SignPdfRequest(CamelModel):
    pdf_id: str = PydanticField("default", alias="pdfId")
    signature_data_url: Optional[str] = PydanticField(None, alias="signatureDataUrl")
    coordinates: Optional[Coordinates] = None


class FieldPayload(CamelModel):
    id: Optional[str] = None
    type: FieldType
    page: int = 1
    x_norm: float = PydanticField(alias="xNorm")
    y_norm: float = PydanticField(alias="yNorm")
    width_norm: float = PydanticField(alias="widthNorm")
    height_norm: float = PydanticField(alias="heightNorm")
    value: Optional[Union[bool, str]] = None

    @property
    def fraction_rect(self) -> FractionRect:
        return FractionRect(self.x_norm, self.y_norm, self.width_norm, self.height_norm)


class BurnRequest(CamelModel):
    pdf_id: Optional[str] = PydanticField(None, alias="pdfId")
    file_url: Optional[str] = PydanticField(None, alias="fileUrl")
    fields: List[FieldPayload] = []


class PlacementPreviewRequest(CamelModel):
    pdf_id: Optional[str] = PydanticField(None, alias="pdfId")
    field: FieldPayload


def signing_http_error(error: SigningError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.to_detail())


def unexpected_http_error(e: Exception) -> HTTPException:
    logger.error(f"❌ Unexpected error: {str(e)}", exc_info=True)
    return signing_http_error(ProcessingError(f"Failed to sign PDF: {e}"))


async def load_document(pdf_id: Optional[str], file_url: Optional[str] = None) -> Tuple[str, bytes]:
    """Fetch the source PDF either from ``file_url`` or from the catalog."""
    if file_url:
        logger.info(f"⬇️ Downloading PDF: {file_url}")
        try:
            pdf_bytes = await download_file(file_url)
        except httpx.HTTPError as e:
            logger.error(f"❌ Download error: {str(e)}")
            raise HTTPException(
                status_code=400,
                detail={"success": False, "reason": "download_failed",
                        "error": f"Failed to download file: {str(e)}"}
            )
        name = pdf_id or file_url.split("/")[-1].rsplit(".", 1)[0]
        return name, pdf_bytes
    return app.state.catalog.load(pdf_id)


def build_model(payloads: List[FieldPayload]) -> Tuple[AnchoringModel, List[Dict[str, Any]]]:
    """
    Load request fields into an anchoring model.

    Image-bearing fields whose geometry or value is unusable are left out and
    reported as rejections. Other unusable fields are only logged, since they
    are never burned.
    """
    model = AnchoringModel()
    rejected = []
    for i, payload in enumerate(payloads):
        label = payload.id or f"#{i}"
        try:
            model.add_field(payload.type, page=payload.page, rect=payload.fraction_rect,
                            value=payload.value, field_id=payload.id or None)
            continue
        except SigningError as e:
            error = e
        except ValueError as e:
            error = InvalidPlacementError(str(e))

        if payload.type in IMAGE_FIELD_TYPES:
            rejected.append(rejection(label, error))
        else:
            logger.warning(f"Ignoring {payload.type.value} field {label}: {error.message}")
    return model, rejected


def store_signed(pdf_id: str, signed: SignedDocument) -> Dict[str, Any]:
    """Persist the signed PDF, write the audit record and build the response body."""
    store = app.state.store
    file_name = new_signed_file_name()
    signed_url = store.save(file_name, signed.pdf_bytes)
    store.record_audit(audit_entry(
        pdf_id=pdf_id,
        file_name=file_name,
        original_hash=signed.original_hash,
        signed_hash=signed.signed_hash,
        drawn=len(signed.plan.operations),
    ))
    logger.info(f"✅ Signed PDF ready: {signed_url}")
    return {"success": True, "signedUrl": signed_url, **signed.summary()}


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": "Signature Injection Service",
        "version": "1.0.0",
        "status": "running",
        "endpoints": {
            "health": "/health",
            "pages": "/api/documents/{pdf_id}/pages",
            "placement_preview": "/api/placement-preview",
            "sign_pdf": "/sign-pdf",
            "burn": "/api/burn",
        }
    }


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/api/documents/{pdf_id}/pages")
async def get_pages(pdf_id: str):
    """Page sizes in points, one entry per page."""
    try:
        resolved_id, pdf_bytes = app.state.catalog.load(pdf_id)
        geometries = read_page_geometries(pdf_bytes)
    except SigningError as e:
        raise signing_http_error(e)
    return {
        "pdfId": resolved_id,
        "pages": [{"page": number, **geometry.to_dict()} for number, geometry in geometries.items()],
    }


@app.post("/api/placement-preview")
async def placement_preview(request: PlacementPreviewRequest):
    """Where a field lands on the page, in points with a bottom-left origin."""
    try:
        resolved_id, pdf_bytes = app.state.catalog.load(request.pdf_id)
        geometries = read_page_geometries(pdf_bytes)
        model = AnchoringModel()
        try:
            # Geometry only; the value does not affect where the field lands
            field: Field = model.add_field(request.field.type, page=request.field.page,
                                           rect=request.field.fraction_rect,
                                           field_id=request.field.id or None)
        except ValueError as e:
            raise InvalidPlacementError(str(e), field_id=request.field.id)
        page_geometry = geometries.get(field.page)
        placement = model.placement_for(field.id, page_geometry)
        if placement is None:
            raise MissingDimensionError(f"No page {field.page} in document '{resolved_id}'", field_id=field.id)
    except SigningError as e:
        raise signing_http_error(e)
    return {
        "pdfId": resolved_id,
        "placement": placement.to_dict(),
        "pageWidth": page_geometry.width_pts,
        "pageHeight": page_geometry.height_pts,
    }


@app.post("/sign-pdf")
async def sign_single(request: SignPdfRequest):
    """
    Burn one signature at a placement given directly in PDF points.

    Request body:
    {
        "pdfId": "default",
        "signatureDataUrl": "data:image/png;base64,...",
        "coordinates": {"page": 1, "x": 50, "y": 100, "width": 200, "height": 80}
    }

    Returns:
    {
        "success": true,
        "signedUrl": "http://localhost:4000/signed/signed-<uuid>.pdf",
        "originalHash": "...",
        "signedHash": "..."
    }
    """
    try:
        if not request.signature_data_url or request.coordinates is None:
            raise EmptyBatchError("signatureDataUrl and coordinates are required")

        coords = request.coordinates
        page = max(1, coords.page or 1)
        logger.info(f"📝 Signing '{request.pdf_id}' page {page} at "
                    f"({coords.x:.1f}, {coords.y:.1f}) {coords.width:.1f}x{coords.height:.1f} pt")

        pdf_id, pdf_bytes = app.state.catalog.load(request.pdf_id)
        placement = Placement(
            field_id="signature",
            page=page,
            rect=PlacementRect(x=coords.x, y=coords.y, width=coords.width,
                               height=coords.height, page=page),
            image=ImageBlob.from_data_url(request.signature_data_url),
        )
        signed = sign_pdf(pdf_bytes, [placement])
        return store_signed(pdf_id, signed)
    except SigningError as e:
        raise signing_http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        raise unexpected_http_error(e)


@app.post("/api/burn")
async def burn_fields(request: BurnRequest):
    """
    Burn every signature and image field of a document in one batch.

    Fields use fractional coordinates (top-left origin); page sizes come from
    the PDF itself. Fields without an image are skipped, invalid ones are
    reported under "rejected" and the rest are still drawn.
    """
    try:
        logger.info(f"📝 Burn request: {len(request.fields)} field(s)")
        model, rejected = build_model(request.fields)
        if not rejected and not any(f.image() is not None for f in model.fields):
            # Refused before the document is fetched or opened
            raise EmptyBatchError("Nothing to sign: no field carries an image")
        pdf_id, pdf_bytes = await load_document(request.pdf_id, request.file_url)
        signed = sign_fields(pdf_bytes, model, rejected=rejected)
        return store_signed(pdf_id, signed)
    except SigningError as e:
        raise signing_http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        raise unexpected_http_error(e)


@app.get("/signed/{file_name}")
async def get_signed(file_name: str):
    path = app.state.store.path_for(file_name)
    if path is None:
        raise HTTPException(status_code=404, detail="Signed PDF not found")
    return FileResponse(path, media_type="application/pdf", filename=file_name)


if __name__ == "__main__":
    # For local development
    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
