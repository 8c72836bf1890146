from __future__ import annotations

import unittest
from datetime import datetime
from decimal import Decimal

from app.validators.policy_row_validator import PolicyRowValidator


class TestPolicyRowValidator(unittest.TestCase):
    def setUp(self) -> None:
        self.validator = PolicyRowValidator()

    def validate(self, **overrides) -> list[str]:
        values = {
            "policy_no": "POL-1001",
            "issue_date": None,
            "start_date": datetime(2025, 1, 10),
            "gross_premium": Decimal("1500.00"),
            "net_premium": None,
            "endorsement_no": 0,
        }
        values.update(overrides)
        return self.validator.validate(**values)

    def test_complete_new_business_row_is_valid(self) -> None:
        self.assertEqual(self.validate(), [])

    def test_endorsement_with_zero_premium_is_valid(self) -> None:
        self.assertEqual(self.validate(endorsement_no=1, gross_premium=Decimal("0")), [])

    def test_endorsement_with_negative_premium_is_valid(self) -> None:
        self.assertEqual(self.validate(endorsement_no=2, gross_premium=Decimal("-40.00")), [])

    def test_zero_premium_on_a_base_policy_is_rejected(self) -> None:
        errors = self.validate(gross_premium=Decimal("0"), net_premium=Decimal("0"))

        self.assertEqual(errors, ["Gross or net premium must be present and non-zero."])

    def test_net_premium_alone_is_enough(self) -> None:
        self.assertEqual(self.validate(gross_premium=None, net_premium=Decimal("900")), [])

    def test_every_missing_field_is_reported(self) -> None:
        errors = self.validate(policy_no="  ", start_date=None, gross_premium=None)

        self.assertEqual(
            errors,
            [
                "Policy number is required.",
                "Issue date or start date is required.",
                "Gross or net premium must be present and non-zero.",
            ],
        )

    def test_issue_date_alone_satisfies_the_date_rule(self) -> None:
        self.assertEqual(self.validate(issue_date=datetime(2025, 1, 9), start_date=None), [])


if __name__ == "__main__":
    unittest.main()
