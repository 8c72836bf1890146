from __future__ import annotations

import unittest
from datetime import datetime, timezone
from decimal import Decimal

from app.domain.policy_import import CallerContext, ParsedRow
from app.mappers.policy_mapper import PolicyMapper, StagingContext


class TestPolicyMapper(unittest.TestCase):
    def setUp(self) -> None:
        self.mapper = PolicyMapper()
        self.context = StagingContext(
            caller=CallerContext(firm_id=1, branch_id=10, user_id=7),
            carrier_id=3,
            session_id="abc123",
            file_name="hepiyi_uretim.xlsx",
            now=datetime(2024, 10, 1, 12, 0, tzinfo=timezone.utc),
        )

    def payload(self, **values) -> dict:
        values.setdefault("row_number", 2)
        values.setdefault("policy_no", "HP-1")
        return self.mapper.to_staged_payload(ParsedRow(**values), self.context)

    def test_explicit_zero_net_premium_is_kept(self) -> None:
        payload = self.payload(gross_premium=Decimal("0"), net_premium=Decimal("0"), endorsement_no=1)

        self.assertEqual(payload["net_premium"], Decimal("0"))

    def test_zero_net_premium_is_not_replaced_by_gross(self) -> None:
        payload = self.payload(gross_premium=Decimal("120.00"), net_premium=Decimal("0"))

        self.assertEqual(payload["net_premium"], Decimal("0"))
        self.assertEqual(payload["gross_premium"], Decimal("120.00"))

    def test_missing_net_premium_falls_back_to_gross(self) -> None:
        payload = self.payload(gross_premium=Decimal("120.00"))

        self.assertEqual(payload["net_premium"], Decimal("120.00"))

    def test_missing_dates_default_to_now_and_one_year_term(self) -> None:
        payload = self.payload(gross_premium=Decimal("10"))

        self.assertEqual(payload["start_date"], datetime(2024, 10, 1, 12, 0))
        self.assertEqual(payload["issue_date"], datetime(2024, 10, 1, 12, 0))
        self.assertEqual(payload["end_date"], datetime(2025, 10, 1, 12, 0))
        self.assertEqual(payload["tax"], Decimal("0"))
        self.assertEqual(payload["product_branch_id"], 0)


if __name__ == "__main__":
    unittest.main()
