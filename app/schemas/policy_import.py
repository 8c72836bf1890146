"""
app/schemas/policy_import.py

Request and response schemas for policy import endpoints.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from app.domain.policy_import import (
    DetectionResult,
    ImportHistoryPage,
    ImportPreview,
    ImportResult,
    ParsedRow,
    SupportedFormat,
)


class ConfirmImportRequest(BaseModel):
    session_id: str = Field(..., min_length=1, max_length=64)


class ConfirmBatchRequest(BaseModel):
    session_id: str = Field(..., min_length=1, max_length=64)
    skip: int = Field(default=0, ge=0)
    take: int | None = Field(default=None, gt=0, description="Defaults to the configured batch size")


class ParsedRowResponse(BaseModel):
    """
    API response model for one parsed policy row.
    """

    row_number: int = Field(..., ge=0)
    policy_no: str | None = None
    renewal_no: str | None = None
    endorsement_no: int = 0
    branch_code: str | None = None
    branch_name: str | None = None
    branch_id: int | None = None
    kind: str
    issue_date: datetime | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    gross_premium: Decimal | None = None
    net_premium: Decimal | None = None
    commission: Decimal | None = None
    tax: Decimal | None = None
    insured_name: str | None = None
    insured_surname: str | None = None
    national_id: str | None = None
    tax_id: str | None = None
    plate: str | None = None
    agent_code: str | None = None
    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    customer_id: int | None = None
    match_confidence: str
    match_signal: str
    match_candidates: list[int] = Field(default_factory=list)
    customer_auto_created: bool = False
    customer_pending_creation: bool = False

    @classmethod
    def from_row(cls, row: ParsedRow) -> ParsedRowResponse:
        return cls(
            row_number=row.row_number,
            policy_no=row.policy_no,
            renewal_no=row.renewal_no,
            endorsement_no=row.endorsement_no,
            branch_code=row.branch_code,
            branch_name=row.branch_name,
            branch_id=row.branch_id,
            kind=row.kind,
            issue_date=row.issue_date,
            start_date=row.start_date,
            end_date=row.end_date,
            gross_premium=row.gross_premium,
            net_premium=row.net_premium,
            commission=row.commission,
            tax=row.tax,
            insured_name=row.insured_name,
            insured_surname=row.insured_surname,
            national_id=row.national_id,
            tax_id=row.tax_id,
            plate=row.plate,
            agent_code=row.agent_code,
            is_valid=row.is_valid,
            errors=list(row.errors),
            customer_id=row.customer_id,
            match_confidence=row.match_confidence,
            match_signal=row.match_signal,
            match_candidates=list(row.match_candidates),
            customer_auto_created=row.customer_auto_created,
            customer_pending_creation=row.customer_pending_creation,
        )


class ImportPreviewResponse(BaseModel):
    """
    API response model for a parsed upload.
    """

    total_rows: int = Field(..., ge=0)
    valid_rows: int = Field(..., ge=0)
    invalid_rows: int = Field(..., ge=0)
    session_id: str | None = None
    file_name: str | None = None
    carrier_id: int | None = None
    carrier_name: str | None = None
    detected_format: str
    detection_method: str | None = None
    message: str | None = None
    rows: list[ParsedRowResponse] = Field(default_factory=list)

    @classmethod
    def from_preview(cls, preview: ImportPreview) -> ImportPreviewResponse:
        return cls(
            total_rows=preview.total_rows,
            valid_rows=preview.valid_rows,
            invalid_rows=preview.invalid_rows,
            session_id=preview.session_id,
            file_name=preview.file_name,
            carrier_id=preview.carrier_id,
            carrier_name=preview.carrier_name,
            detected_format=preview.detected_format,
            detection_method=preview.detection_method,
            message=preview.message,
            rows=[ParsedRowResponse.from_row(row) for row in preview.rows],
        )


class ImportRowErrorResponse(BaseModel):
    row_number: int = Field(..., ge=0)
    message: str
    policy_no: str | None = None


class ImportResultResponse(BaseModel):
    """
    API response model for a full or batched confirmation.
    """

    success: bool
    total_processed: int = Field(..., ge=0)
    success_count: int = Field(..., ge=0)
    failed_count: int = Field(..., ge=0)
    duplicate_count: int = Field(..., ge=0)
    new_customers_created: int = Field(..., ge=0)
    errors: list[ImportRowErrorResponse] = Field(default_factory=list)
    total_valid_rows: int = Field(default=0, ge=0)
    processed_so_far: int = Field(default=0, ge=0)
    is_completed: bool = False
    has_more_batches: bool = False

    @classmethod
    def from_result(cls, result: ImportResult) -> ImportResultResponse:
        return cls(
            success=result.success,
            total_processed=result.total_processed,
            success_count=result.success_count,
            failed_count=result.failed_count,
            duplicate_count=result.duplicate_count,
            new_customers_created=result.new_customers_created,
            errors=[
                ImportRowErrorResponse(row_number=error.row_number, message=error.message, policy_no=error.policy_no)
                for error in result.errors
            ],
            total_valid_rows=result.total_valid_rows,
            processed_so_far=result.processed_so_far,
            is_completed=result.is_completed,
            has_more_batches=result.has_more_batches,
        )


class DetectFormatResponse(BaseModel):
    detected: bool
    carrier_id: int | None = None
    carrier_name: str | None = None
    method: str | None = None
    message: str | None = None

    @classmethod
    def from_detection(cls, detection: DetectionResult) -> DetectFormatResponse:
        return cls(
            detected=detection.detected,
            carrier_id=detection.carrier_id,
            carrier_name=detection.carrier_name,
            method=detection.method,
            message=detection.message,
        )


class SupportedFormatResponse(BaseModel):
    carrier_id: int
    carrier_name: str
    file_kinds: list[str] = Field(default_factory=list)
    required_columns: list[str] = Field(default_factory=list)
    signature_columns: list[str] = Field(default_factory=list)
    notes: str | None = None

    @classmethod
    def from_format(cls, item: SupportedFormat) -> SupportedFormatResponse:
        return cls(
            carrier_id=item.carrier_id,
            carrier_name=item.carrier_name,
            file_kinds=list(item.file_kinds),
            required_columns=list(item.required_columns),
            signature_columns=list(item.signature_columns),
            notes=item.notes,
        )


class ImportHistoryItemResponse(BaseModel):
    id: int
    session_id: str
    file_name: str
    carrier_id: int
    carrier_name: str | None = None
    total_rows: int = Field(..., ge=0)
    success_count: int = Field(..., ge=0)
    duplicate_count: int = Field(..., ge=0)
    failed_count: int = Field(..., ge=0)
    status: str
    started_at: datetime | None = None
    completed_at: datetime | None = None
    user_id: int | None = None


class ImportHistoryResponse(BaseModel):
    items: list[ImportHistoryItemResponse] = Field(default_factory=list)
    total_count: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)

    @classmethod
    def from_page(cls, history: ImportHistoryPage, *, page: int, page_size: int) -> ImportHistoryResponse:
        return cls(
            items=[
                ImportHistoryItemResponse(
                    id=item.id,
                    session_id=item.session_id,
                    file_name=item.file_name,
                    carrier_id=item.carrier_id,
                    carrier_name=item.carrier_name,
                    total_rows=item.total_rows,
                    success_count=item.success_count,
                    duplicate_count=item.duplicate_count,
                    failed_count=item.failed_count,
                    status=item.status,
                    started_at=item.started_at,
                    completed_at=item.completed_at,
                    user_id=item.user_id,
                )
                for item in history.items
            ],
            total_count=history.total_count,
            page=page,
            page_size=page_size,
        )
