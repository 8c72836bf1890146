"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation.
"""

from __future__ import annotations

from pathlib import PurePath

from fastapi import File, Header, HTTPException, UploadFile, status

from app.config import get_policy_import_settings
from app.domain.policy_import import CallerContext
from app.parsers.workbook import SUPPORTED_EXTENSIONS


def get_policy_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file has a supported spreadsheet/XML extension.
    """

    filename = (file.filename or "").strip()
    extension = PurePath(filename).suffix.lower()
    if not filename or extension not in SUPPORTED_EXTENSIONS:
        allowed = ", ".join(sorted(SUPPORTED_EXTENSIONS))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported file type. Allowed extensions: {allowed}.",
        )

    return file


def read_upload_content(file: UploadFile) -> bytes:
    """
    Read the upload fully, rejecting empty files and files over the size limit.
    """

    max_bytes = get_policy_import_settings().max_upload_bytes
    content = file.file.read(max_bytes + 1)
    if not content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file is empty.",
        )
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Uploaded file exceeds the {max_bytes} byte limit.",
        )
    return content


def get_caller_context(
    x_firm_id: int = Header(..., alias="X-Firm-Id", ge=1),
    x_branch_id: int | None = Header(default=None, alias="X-Branch-Id"),
    x_user_id: int | None = Header(default=None, alias="X-User-Id"),
) -> CallerContext:
    """
    Build the owner scope of the current request from identity headers.
    """

    return CallerContext(firm_id=x_firm_id, branch_id=x_branch_id, user_id=x_user_id)
