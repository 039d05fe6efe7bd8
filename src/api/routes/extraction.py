"""Text extraction endpoints."""

import base64
import binascii
import logging
import re

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from starlette.concurrency import run_in_threadpool

from src.api.deps import AppSettings, DB, Pipeline, TextRepo
from src.core.config import Settings
from src.db.repository import DocumentNotFoundError
from src.extraction.diagnostics import diagnose_pdf, recommendations
from src.extraction.models import ExtractionFailure, ExtractionResult, SourceFile

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================
# Request/Response Models
# ============================================


class CamelModel(BaseModel):
    """Wire models use camelCase, matching the deal-room frontend."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExtractRequest(CamelModel):
    """File to extract text from."""

    file_base64: str = Field(..., min_length=1, description="File content, optionally as a data URL")
    mime_type: str = Field(..., min_length=1)
    file_name: str | None = Field(None, max_length=500)
    file_size: int | None = Field(None, ge=0, description="Declared size in bytes, checked against the payload")


class StoreExtractRequest(ExtractRequest):
    """File to extract and persist against a document version."""

    version_id: str | None = Field(None, description="Defaults to the latest version")


class DiagnoseRequest(CamelModel):
    """PDF to diagnose."""

    file_base64: str = Field(..., min_length=1)
    file_name: str | None = Field(None, max_length=500)


class ExtractionMetadata(CamelModel):
    extraction_method: str
    original_length: int
    truncated: bool = False
    pages_processed: int | None = None
    page_count: int | None = None


class ExtractResponse(CamelModel):
    """Successful extraction."""

    success: bool = True
    text: str
    extracted_length: int
    file_name: str | None = None
    document_id: str | None = None
    version_id: str | None = None
    metadata: ExtractionMetadata


class DiagnoseResponse(CamelModel):
    success: bool = True
    diagnostics: dict
    recommendations: list[str]


# ============================================
# Helpers
# ============================================

_DATA_URL_PREFIX = re.compile(r"^data:[^,]*,")
_WHITESPACE = re.compile(r"\s+")


def decode_file(file_base64: str, settings: Settings) -> bytes:
    """Decode the transport payload, rejecting bad encodings and oversize files."""
    payload = _WHITESPACE.sub("", _DATA_URL_PREFIX.sub("", file_base64))

    # Cheap upper bound before allocating the decoded buffer
    if len(payload) * 3 // 4 > settings.max_file_size_bytes + 2:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds the {settings.max_file_size_bytes // (1024 * 1024)} MB limit",
        )

    try:
        content = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid file encoding"
        ) from None

    if len(content) > settings.max_file_size_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds the {settings.max_file_size_bytes // (1024 * 1024)} MB limit",
        )
    return content


def failure_response(result: ExtractionFailure) -> JSONResponse:
    status_code = (
        status.HTTP_422_UNPROCESSABLE_ENTITY
        if result.kind.is_client_error
        else status.HTTP_500_INTERNAL_SERVER_ERROR
    )
    return JSONResponse(status_code=status_code, content={"success": False, "error": result.reason})


def success_response(result: ExtractionResult, body: ExtractRequest, **ids) -> ExtractResponse:
    return ExtractResponse(
        text=result.text,
        extracted_length=result.extracted_length,
        file_name=body.file_name,
        metadata=ExtractionMetadata(
            extraction_method=result.method.value,
            original_length=result.original_length,
            truncated=result.truncated,
            pages_processed=result.pages_processed,
            page_count=result.page_count,
        ),
        **ids,
    )


async def run_extraction(body: ExtractRequest, pipeline: Pipeline, settings: Settings) -> ExtractionResult:
    source = SourceFile(
        content=decode_file(body.file_base64, settings),
        mime_type=body.mime_type,
        file_name=body.file_name,
        declared_size=body.file_size,
    )
    # Parsing is CPU-bound; keep it off the event loop
    return await run_in_threadpool(pipeline.extract, source)


# ============================================
# Extraction Endpoints
# ============================================


@router.post("/extract", response_model=ExtractResponse, response_model_exclude_none=True)
async def extract_text(body: ExtractRequest, pipeline: Pipeline, settings: AppSettings):
    """Extract text from a base64-encoded PDF, DOCX, RTF or plain text file.

    Returns 422 when the file cannot yield text (unsupported type, header
    mismatch, encrypted or image-only PDF) and 500 on unexpected errors.
    """
    result = await run_extraction(body, pipeline, settings)
    if not result.success:
        return failure_response(result)
    return success_response(result, body)


@router.post(
    "/documents/{document_id}/extract",
    response_model=ExtractResponse,
    response_model_exclude_none=True,
)
async def extract_and_store(
    document_id: str,
    body: StoreExtractRequest,
    pipeline: Pipeline,
    settings: AppSettings,
    repo: TextRepo,
    db: DB,
):
    """Extract text and save it on the document version for later analysis."""
    version = await repo.get_version(document_id, body.version_id)
    if version is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Document version not found"
        )

    result = await run_extraction(body, pipeline, settings)
    if not result.success:
        return failure_response(result)

    try:
        await repo.update_document_text(
            document_id,
            result.text,
            version_id=version.id,
            extraction_method=result.method.value,
        )
        await db.commit()
    except DocumentNotFoundError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Document version not found"
        ) from None
    except Exception as e:
        await db.rollback()
        logger.error(f"Failed to save extracted text for document {document_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save extracted text to database",
        ) from None

    return success_response(result, body, document_id=document_id, version_id=version.id)


@router.post("/pdf/diagnose", response_model=DiagnoseResponse)
async def diagnose(body: DiagnoseRequest, settings: AppSettings):
    """Report on the raw structure of a PDF that fails to extract."""
    content = decode_file(body.file_base64, settings)
    diagnostics = diagnose_pdf(content, body.file_name)
    return DiagnoseResponse(
        diagnostics=diagnostics.to_dict(),
        recommendations=recommendations(diagnostics),
    )
