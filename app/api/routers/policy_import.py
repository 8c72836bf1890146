"""
app/api/routers/policy_import.py

Carrier policy import HTTP endpoints.

Parsing and database work run in FastAPI's worker threadpool (sync
handlers). Service failure results are translated into HTTP errors here.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_caller_context, get_policy_upload, read_upload_content
from app.config import get_policy_import_settings
from app.domain.policy_import import CallerContext, ImportResult
from app.parsers.workbook import DocumentReadError, UnsupportedFileTypeError
from app.schemas.policy_import import (
    ConfirmBatchRequest,
    ConfirmImportRequest,
    DetectFormatResponse,
    ImportHistoryResponse,
    ImportPreviewResponse,
    ImportResultResponse,
    SupportedFormatResponse,
)
from app.services.policy_import_service import (
    ImportErrorCode,
    ImportPersistenceError,
    ImportSessionNotFoundError,
    ImportSessionOwnershipError,
    PolicyImportService,
    get_policy_import_service,
)
from db.session import get_db

router = APIRouter(prefix="/policy-import", tags=["policy-import"])

_STATUS_BY_ERROR_CODE: dict[str, int] = {
    ImportErrorCode.SESSION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ImportErrorCode.SESSION_FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ImportErrorCode.SESSION_STATE: status.HTTP_409_CONFLICT,
    ImportErrorCode.INVALID_WINDOW: status.HTTP_400_BAD_REQUEST,
    ImportErrorCode.CANCELLED: status.HTTP_409_CONFLICT,
    ImportErrorCode.PERSISTENCE: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ImportErrorCode.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _raise_for_failure(result: ImportResult) -> None:
    if result.success:
        return
    raise HTTPException(
        status_code=_STATUS_BY_ERROR_CODE.get(result.error_code or "", status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail={"code": result.error_code, "message": result.error_message},
    )


@router.post("/upload", response_model=ImportPreviewResponse)
def upload_policy_file(
    file: UploadFile = Depends(get_policy_upload),
    carrier_id: int | None = Form(default=None, ge=1, description="Optional explicit carrier id"),
    caller: CallerContext = Depends(get_caller_context),
    db: Session = Depends(get_db),
    import_service: PolicyImportService = Depends(get_policy_import_service),
) -> ImportPreviewResponse:
    """
    Parse one carrier export and open an import session for confirmation.
    """

    try:
        content = read_upload_content(file)
        preview = import_service.parse_upload(
            file_name=file.filename or "",
            content=content,
            caller=caller,
            db=db,
            carrier_id=carrier_id,
        )
    except (UnsupportedFileTypeError, DocumentReadError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except ImportPersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to stage the parsed file.",
        ) from exc
    finally:
        file.file.close()

    if preview.error_code is not None:
        raise HTTPException(
            status_code=_STATUS_BY_ERROR_CODE.get(preview.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR),
            detail={"code": preview.error_code, "message": preview.message},
        )
    return ImportPreviewResponse.from_preview(preview)


@router.post("/confirm", response_model=ImportResultResponse)
def confirm_import(
    payload: ConfirmImportRequest,
    caller: CallerContext = Depends(get_caller_context),
    db: Session = Depends(get_db),
    import_service: PolicyImportService = Depends(get_policy_import_service),
) -> ImportResultResponse:
    """
    Commit every valid row of a session in one transaction.
    """

    result = import_service.confirm_full(session_id=payload.session_id, caller=caller, db=db)
    _raise_for_failure(result)
    return ImportResultResponse.from_result(result)


@router.post("/confirm-batch", response_model=ImportResultResponse)
def confirm_import_batch(
    payload: ConfirmBatchRequest,
    caller: CallerContext = Depends(get_caller_context),
    db: Session = Depends(get_db),
    import_service: PolicyImportService = Depends(get_policy_import_service),
) -> ImportResultResponse:
    """
    Commit one window of valid rows; repeat with increasing ``skip``.
    """

    take = payload.take or get_policy_import_settings().default_batch_size
    result = import_service.confirm_batch(
        session_id=payload.session_id,
        caller=caller,
        skip=payload.skip,
        take=take,
        db=db,
    )
    _raise_for_failure(result)
    return ImportResultResponse.from_result(result)


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def abandon_import_session(
    session_id: str,
    caller: CallerContext = Depends(get_caller_context),
    import_service: PolicyImportService = Depends(get_policy_import_service),
) -> None:
    try:
        import_service.abandon(session_id=session_id, caller=caller)
    except ImportSessionNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ImportSessionOwnershipError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc


@router.post("/detect-format", response_model=DetectFormatResponse)
def detect_policy_format(
    file: UploadFile = File(...),
    carrier_id: int | None = Form(default=None, ge=1),
    db: Session = Depends(get_db),
    import_service: PolicyImportService = Depends(get_policy_import_service),
) -> DetectFormatResponse:
    """
    Report which carrier layout an upload matches without parsing rows.
    """

    try:
        file = get_policy_upload(file)
        content = read_upload_content(file)
        detection = import_service.detect_format(
            file_name=file.filename or "",
            content=content,
            db=db,
            carrier_id=carrier_id,
        )
    except (UnsupportedFileTypeError, DocumentReadError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    finally:
        file.file.close()

    return DetectFormatResponse.from_detection(detection)


@router.get("/formats", response_model=list[SupportedFormatResponse])
def list_supported_formats(
    import_service: PolicyImportService = Depends(get_policy_import_service),
) -> list[SupportedFormatResponse]:
    return [SupportedFormatResponse.from_format(item) for item in import_service.supported_formats()]


@router.get("/history", response_model=ImportHistoryResponse)
def get_import_history(
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=200),
    caller: CallerContext = Depends(get_caller_context),
    db: Session = Depends(get_db),
    import_service: PolicyImportService = Depends(get_policy_import_service),
) -> ImportHistoryResponse:
    history = import_service.import_history(caller=caller, db=db, page=page, page_size=page_size)
    return ImportHistoryResponse.from_page(history, page=page, page_size=page_size)
