"""
app/validators/policy_row_validator.py

Row-level validation for normalized carrier policy rows.

Validation never raises: it returns human-readable reasons, and an empty
list means the row is valid.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal


class PolicyRowValidator:
    """
    Applies the shared acceptance rules to one decoded row.
    """

    def validate(
        self,
        *,
        policy_no: str | None,
        issue_date: datetime | None,
        start_date: datetime | None,
        gross_premium: Decimal | None,
        net_premium: Decimal | None,
        endorsement_no: int,
    ) -> list[str]:
        errors: list[str] = []

        if not policy_no or not policy_no.strip():
            errors.append("Policy number is required.")

        if issue_date is None and start_date is None:
            errors.append("Issue date or start date is required.")

        # Endorsements may carry zero or negative premium deltas.
        if endorsement_no <= 0 and self._is_zero_or_missing(gross_premium) and self._is_zero_or_missing(net_premium):
            errors.append("Gross or net premium must be present and non-zero.")

        return errors

    @staticmethod
    def _is_zero_or_missing(value: Decimal | None) -> bool:
        return value is None or value == 0
