"""
app/parsers/carriers/quick_xml.py

Quick Sigorta policy transfer XML (``PoliceTransferDto``).
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Iterable

from app.domain.policy_import import RowKind
from app.parsers.base import CarrierFormat, PolicyDraft
from app.parsers.carriers import quick
from app.parsers.text import fold_upper, parse_date, parse_decimal, parse_endorsement_number, split_person_name
from app.parsers.xml_base import XmlCarrierParser, child, child_text, children, local_name

FORMAT = CarrierFormat(
    carrier_id=quick.FORMAT.carrier_id,
    name="Quick Sigorta (XML)",
    filename_patterns=quick.FORMAT.filename_patterns,
    required_columns=(),
    file_kinds=("xml",),
    notes="PoliceTransferDto documents; plate is assembled from product questions.",
)

PLATE_NUMBER_QUESTION = "10225"
PLATE_PROVINCE_QUESTION = "10226"


def plate_from_questions(police: ET.Element) -> str | None:
    number: str | None = None
    province: str | None = None
    for question in children(child(police, "UrunSorular"), "Soru"):
        code = child_text(question, "SoruKodu")
        answer = child_text(question, "SoruCevap")
        if code == PLATE_NUMBER_QUESTION:
            number = answer
        elif code == PLATE_PROVINCE_QUESTION and answer:
            province = answer.lstrip("0") or None
    if not number:
        return None
    return f"{province} {number}" if province else number


class QuickXmlParser(XmlCarrierParser):
    def sniff(self, root: ET.Element) -> bool:
        return (
            local_name(root.tag) == "PoliceTransferDto"
            or child(root, "Policeler") is not None
            or child(root, "AcenteBilgiler") is not None
        )

    def policy_elements(self, root: ET.Element) -> Iterable[ET.Element]:
        return children(child(root, "Policeler"), "Police")

    def map_element(self, element: ET.Element, root: ET.Element) -> PolicyDraft | None:
        policy_no = child_text(element, "PoliceNo")
        if policy_no is None:
            return None

        endorsement_no = parse_endorsement_number(child_text(element, "ZeyilNo"))
        product = child_text(element, "UrunAd")
        insured = child(element, "Sigortalilar", "Sigortali")
        name, surname = split_person_name(child_text(insured, "SigortaliAd"))

        gross = parse_decimal(child_text(element, "BrutPrimTL") or child_text(element, "BrutPrim"))
        net = parse_decimal(child_text(element, "NetPrimTL") or child_text(element, "NetPrim"))
        if endorsement_no <= 0 and not gross and net is not None:
            gross = net

        cancelled = "IPTAL" in fold_upper(child_text(element, "ZeyilTipAd"))
        if gross is not None and gross < 0:
            cancelled = True

        return PolicyDraft(
            policy_no=policy_no,
            renewal_no=child_text(element, "YenilemeNo"),
            endorsement_no=endorsement_no,
            endorsement_type_code=child_text(element, "ZeyilTipKodu"),
            branch_name=product,
            branch_id=self.format.lookup_branch(None, product),
            kind=RowKind.CANCELLATION if cancelled else RowKind.NEW_BUSINESS,
            issue_date=parse_date(child_text(element, "TanzimTarihi")),
            start_date=parse_date(child_text(element, "BaslamaTarihi")),
            end_date=parse_date(child_text(element, "BitisTarihi")),
            gross_premium=gross,
            net_premium=net,
            commission=parse_decimal(
                child_text(element, "AcenteKomisyonTL") or child_text(element, "AcenteKomisyon")
            ),
            insured_name=name,
            insured_surname=surname,
            national_id=child_text(insured, "Tckn"),
            tax_id=child_text(insured, "Vkn"),
            address=child_text(insured, "Adres"),
            plate=plate_from_questions(element),
            agent_code=child_text(root, "AcenteBilgiler", "AcenteNo"),
        )


PARSER = QuickXmlParser(FORMAT)
