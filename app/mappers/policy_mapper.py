"""
app/mappers/policy_mapper.py

Mapping from parsed carrier rows to staged policy insert payloads.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from app.domain.policy_import import CallerContext, ParsedRow
from app.parsers.text import add_years
from db.models.staged_policy import EXCEL_IMPORT_SOURCE, StagedPolicyStatus

_ZERO = Decimal("0")
_POLICY_NO_MAX = 50
_RENEWAL_NO_MAX = 20
_PLATE_MAX = 20
_INSURED_NAME_MAX = 200
_AGENT_CODE_MAX = 50
_FILE_NAME_MAX = 255


def _clip(value: str | None, limit: int) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value[:limit] if value else None


@dataclass(frozen=True)
class StagingContext:
    """
    Per-import values stamped on every staged row.
    """

    caller: CallerContext
    carrier_id: int
    session_id: str
    file_name: str
    now: datetime


class PolicyMapper:
    """
    Builds staged policy payloads, filling absent fields with defaults.

    Dates: issue <- issue, start or now; start <- start or now; end <- end,
    or start + 1 year. Amounts: net <- net or gross; everything else 0.
    """

    def to_staged_payload(
        self,
        row: ParsedRow,
        context: StagingContext,
        *,
        customer_id: int | None = None,
    ) -> dict[str, Any]:
        now = context.now.replace(tzinfo=None)
        start_date = row.start_date or now
        issue_date = row.issue_date or row.start_date or now
        end_date = row.end_date or add_years(start_date, 1)

        gross = row.gross_premium if row.gross_premium is not None else _ZERO
        net = row.net_premium if row.net_premium is not None else (row.gross_premium or _ZERO)

        return {
            "firm_id": context.caller.firm_id,
            "branch_id": context.caller.branch_id,
            "user_id": context.caller.user_id,
            "carrier_id": context.carrier_id,
            "policy_no": _clip(row.policy_no, _POLICY_NO_MAX),
            "endorsement_no": row.endorsement_no,
            "renewal_no": _clip(row.renewal_no, _RENEWAL_NO_MAX),
            "policy_kind": row.kind,
            "plate": _clip(row.plate, _PLATE_MAX),
            "issue_date": issue_date,
            "start_date": start_date,
            "end_date": end_date,
            "gross_premium": gross,
            "net_premium": net,
            "tax": row.tax if row.tax is not None else _ZERO,
            "commission": row.commission if row.commission is not None else _ZERO,
            "product_branch_id": row.branch_id if row.branch_id is not None else 0,
            "customer_id": customer_id if customer_id is not None else row.customer_id,
            "national_id": _clip(row.national_id, 11),
            "tax_id": _clip(row.tax_id, 10),
            "insured_name": _clip(row.insured_full_name, _INSURED_NAME_MAX),
            "agent_code": _clip(row.agent_code, _AGENT_CODE_MAX),
            "detection_source": EXCEL_IMPORT_SOURCE,
            "source_file_name": _clip(context.file_name, _FILE_NAME_MAX),
            "import_session_id": context.session_id,
            "record_status": StagedPolicyStatus.PENDING,
        }
