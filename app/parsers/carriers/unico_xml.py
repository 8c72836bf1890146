"""
app/parsers/carriers/unico_xml.py

Unico Sigorta policy XML. Policies may sit at any depth; the insured block
falls back to the client block when empty, and the agent commission is one
entry of the policy deduction list.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from decimal import Decimal
from types import MappingProxyType
from typing import Iterable

from app.domain.policy_import import RowKind
from app.parsers.base import CarrierFormat, PolicyDraft
from app.parsers.branches import Branch, branch_from_keywords, branch_name
from app.parsers.carriers import unico
from app.parsers.text import fold_upper, parse_date, parse_decimal, parse_endorsement_number
from app.parsers.xml_base import XmlCarrierParser, child, child_text, children, descendants

PRODUCT_CODES = MappingProxyType(
    {
        "408": Branch.TRAFFIC,
        "499": Branch.MOTOR_OWN_DAMAGE,
        "137": Branch.EARTHQUAKE,
        "318": Branch.EARTHQUAKE,
        "598": Branch.PERSONAL_ACCIDENT,
        "100": Branch.HOME,
        "599": Branch.HEALTH,
        "517": Branch.ROAD_ASSISTANCE,
        "521": Branch.ROAD_ASSISTANCE,
    }
)

FORMAT = CarrierFormat(
    carrier_id=unico.FORMAT.carrier_id,
    name="Unico Sigorta (XML)",
    filename_patterns=("unico", "aviva", "unicoxml"),
    required_columns=(),
    branch_codes=PRODUCT_CODES,
    file_kinds=("xml",),
    notes="Policy elements with PolicyNo; commission from PolicyDeductions.",
)

_COMMISSION_MARKERS = ("ACENTE", "KOMISYON")


def product_branch(product_name: str | None) -> int:
    value = fold_upper(product_name)
    if "KRITIK" in value or "HASTALIK" in value:
        return Branch.HEALTH
    return branch_from_keywords(product_name)


def _identity(value: str | None, length: int) -> str | None:
    if value and len(value) == length:
        return value
    return None


class UnicoXmlParser(XmlCarrierParser):
    def sniff(self, root: ET.Element) -> bool:
        return any(child(policy, "PolicyNo") is not None for policy in descendants(root, "Policy"))

    def policy_elements(self, root: ET.Element) -> Iterable[ET.Element]:
        return list(descendants(root, "Policy"))

    def _commission(self, element: ET.Element) -> Decimal | None:
        for deduction in children(child(element, "PolicyDeductions"), "PolicyDeduction"):
            label = fold_upper(child_text(deduction, "Name"))
            if any(marker in label for marker in _COMMISSION_MARKERS):
                return parse_decimal(child_text(deduction, "Amount"))
        return None

    def map_element(self, element: ET.Element, root: ET.Element) -> PolicyDraft | None:
        policy_no = child_text(element, "PolicyNo")
        if policy_no is None:
            return None

        product_no = child_text(element, "ProductNo")
        product_name = child_text(element, "Product", "ProductName")
        if product_no and product_no in PRODUCT_CODES:
            branch_id = PRODUCT_CODES[product_no]
            label = branch_name(branch_id)
        else:
            branch_id = product_branch(product_name)
            label = branch_name(branch_id) if branch_id != Branch.UNCLASSIFIED else product_name

        name = child_text(element, "Insured", "InsuredName")
        surname = child_text(element, "Insured", "InsuredSurName")
        if not name:
            name = child_text(element, "Client", "Name")
            surname = child_text(element, "Client", "SurName")
        national_id = child_text(element, "Insured", "CitizenshipNumber") or child_text(
            element, "Client", "CitizenshipNumber"
        )
        tax_id = child_text(element, "Insured", "TaxNo") or child_text(element, "Client", "TaxNo")
        firm_name = child_text(element, "Insured", "InsuredFirmName") or child_text(element, "Client", "FirmName")
        if firm_name and not name:
            name = firm_name

        endorsement_no = parse_endorsement_number(child_text(element, "Endors", "EndorsNo"))
        gross = parse_decimal(child_text(element, "GrossPremium"))
        cancelled = fold_upper(child_text(element, "IsCancelled")) == "YES"
        if gross is not None and gross < 0:
            cancelled = True

        return PolicyDraft(
            policy_no=policy_no,
            renewal_no=child_text(element, "RenewalNo"),
            endorsement_no=endorsement_no,
            endorsement_type_code=child_text(element, "Endors", "EndorsType"),
            branch_code=product_no,
            branch_name=label,
            branch_id=branch_id,
            kind=RowKind.CANCELLATION if cancelled else RowKind.NEW_BUSINESS,
            issue_date=parse_date(child_text(element, "IssueDate")),
            start_date=parse_date(child_text(element, "BegDate") or child_text(element, "PolBegDate")),
            end_date=parse_date(child_text(element, "EndDate") or child_text(element, "PolEndDate")),
            endorsement_approval_date=(
                parse_date(child_text(element, "ConfirmDate")) if endorsement_no > 0 else None
            ),
            gross_premium=gross,
            net_premium=parse_decimal(child_text(element, "NetPremium")),
            commission=self._commission(element),
            insured_name=name,
            insured_surname=surname,
            national_id=_identity(national_id, 11),
            tax_id=_identity(tax_id, 10),
            address=child_text(element, "Client", "Address"),
            plate=child_text(element, "Plate"),
            agent_code=child_text(element, "Channel"),
        )


PARSER = UnicoXmlParser(FORMAT)
