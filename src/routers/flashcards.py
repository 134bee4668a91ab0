import logging
from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, Query, Response, UploadFile, status

from src.dependencies import IngestionServiceDep
from src.schemas.api.flashcards import ErrorDetail, ExportFormat, GenerateRequest
from src.schemas.flashcards import FlashcardSet
from src.schemas.ingestion import ErrorKind, ImportKind, IngestionError, IngestionResult, IngestionSuccess
from src.services.exporters import export_csv, export_filename, export_json

router = APIRouter(prefix="/flashcards", tags=["flashcards"])
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ErrorKind.BUSY: status.HTTP_409_CONFLICT,
    ErrorKind.FETCH_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.EXTRACTION_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.UNKNOWN: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

EXTENSION_KINDS = {
    ".json": ImportKind.JSON,
    ".csv": ImportKind.CSV,
    ".tsv": ImportKind.CSV,
}


@router.post(
    "/generate",
    response_model=FlashcardSet,
    responses={400: {"model": ErrorDetail}, 409: {"model": ErrorDetail}, 502: {"model": ErrorDetail}},
)
async def generate_flashcards(payload: GenerateRequest, service: IngestionServiceDep):
    """Generate flashcards from a Wikipedia article or pasted text."""
    result = await service.submit(payload.input, payload.is_url_mode)
    return _unwrap(result)


@router.post(
    "/import",
    response_model=FlashcardSet,
    responses={400: {"model": ErrorDetail}, 409: {"model": ErrorDetail}},
)
async def import_flashcards(
    service: IngestionServiceDep,
    file: UploadFile = File(..., description="Previously exported JSON or CSV file"),
    kind: Optional[ImportKind] = Form(None, description="File kind; inferred from the extension when omitted"),
):
    """Import flashcards from an uploaded JSON or CSV file."""
    file_name = file.filename or "upload"
    kind = kind or _kind_from_name(file_name)
    if kind is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=ErrorDetail(
                kind=ErrorKind.VALIDATION_ERROR,
                message=f"Unsupported file type: {file_name}. Use a .json or .csv file",
            ).model_dump(mode="json"),
        )

    result = await service.import_file(file, file_name, kind)
    return _unwrap(result)


@router.post("/export")
def export_flashcards(
    flashcard_set: FlashcardSet,
    format: ExportFormat = Query(ExportFormat.JSON, description="Export format"),
):
    """Download a flashcard set in a format the import endpoint accepts."""
    if format is ExportFormat.CSV:
        content, media_type = export_csv(flashcard_set), "text/csv"
    else:
        content, media_type = export_json(flashcard_set), "application/json"

    filename = export_filename(flashcard_set, format.value)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _unwrap(result: IngestionResult) -> FlashcardSet:
    if isinstance(result, IngestionSuccess):
        return result.flashcard_set
    raise _http_error(result.error)


def _http_error(error: IngestionError) -> HTTPException:
    status_code = ERROR_STATUS.get(error.kind, status.HTTP_400_BAD_REQUEST)
    if status_code >= 500:
        logger.error(f"Ingestion failed: {error.message}")
    detail = ErrorDetail(kind=error.kind, message=error.message, position=error.position)
    return HTTPException(status_code=status_code, detail=detail.model_dump(mode="json"))


def _kind_from_name(file_name: str) -> Optional[ImportKind]:
    lowered = file_name.lower()
    for extension, kind in EXTENSION_KINDS.items():
        if lowered.endswith(extension):
            return kind
    return None
