"""
app/parsers/carriers/quick.py

Quick Sigorta spreadsheet export.

The workbook has two sheets: ``PoliceListesi`` holds one row per policy or
endorsement, and ``Sigortalilar`` holds the insured party for each
(policy, endorsement) pair. Insured columns are short ("Ad", "Adres") and
overlap by substring, so they are read with exact header matching.
"""

from __future__ import annotations

from typing import Any, Mapping

from app.domain.policy_import import RowKind
from app.parsers.base import CarrierFormat, CarrierParser, ColumnIndex, ParseState, PolicyDraft, RowReader
from app.parsers.text import fold_upper, parse_endorsement_number
from app.parsers.workbook import SheetRows

INSURED_SHEET = "Sigortalilar"

FORMAT = CarrierFormat(
    carrier_id=110,
    name="Quick Sigorta",
    filename_patterns=("quick", "quıck", "qck"),
    required_columns=("Police", "Prim", "Tarih"),
    policy_columns=("PoliceNo", "POLICE_NO"),
    signature_columns=("UrunAd", "AcenteKomisyon"),
    main_sheet="PoliceListesi",
    extra_sheets=(INSURED_SHEET,),
    notes="Insured details are joined from the Sigortalilar sheet.",
)

_GROSS = ("BrutPrimTL", "BrutPrim", "PRIM_TL")
_NET = ("NetPrimTL", "NetPrim", "NET_PRIM_TL")
_ENDORSEMENT = ("ZeyilNo", "SIRA_NO", "EKBELGE_NO")
_INSURED_FIELDS = ("Tckn", "Vkn", "Ad", "Soyad", "FirmaAd", "Adres")


def build_insured_lookup(extra_sheets: Mapping[str, SheetRows]) -> dict[str, Any]:
    """
    Index the insured sheet by (policy number, endorsement number).

    The first row seen for a key wins.
    """

    sheet = extra_sheets.get(INSURED_SHEET)
    insured: dict[tuple[str, int], dict[str, str | None]] = {}
    if sheet is None:
        return {"insured": insured}

    index = ColumnIndex(sheet.headers)
    for raw, row_number in zip(sheet.rows, sheet.row_numbers):
        reader = RowReader(raw, index, row_number)
        policy_no = reader.text("PoliceNo")
        if policy_no is None:
            continue
        key = (policy_no, parse_endorsement_number(reader.first_value("ZeyilNo")))
        if key in insured:
            continue
        insured[key] = {name: reader.text(name, exact=True) for name in _INSURED_FIELDS}
    return {"insured": insured}


def _row_kind(reader: RowReader) -> str:
    for columns in (("POLICE_TIP", "POLICE_TIPI"), ("ZeyilAd", "EKBELGE_AD")):
        if "IPTAL" in fold_upper(reader.text(*columns)):
            return RowKind.CANCELLATION
    gross = reader.decimal(*_GROSS)
    return RowKind.CANCELLATION if gross is not None and gross < 0 else RowKind.NEW_BUSINESS


def map_row(reader: RowReader, fmt: CarrierFormat, state: ParseState) -> PolicyDraft | None:
    policy_no = reader.text(*fmt.policy_columns)
    if policy_no is None:
        return None

    endorsement_no = parse_endorsement_number(reader.first_value(*_ENDORSEMENT))
    product = reader.text("UrunAd", "MODELLEME_URUN_AD", "URUN_ADI", "URUN")
    info = state.lookups.get("insured", {}).get((policy_no, endorsement_no), {})

    name = info.get("Ad")
    surname = info.get("Soyad")
    if not name and not surname:
        name = info.get("FirmaAd") or reader.text("SigortaliAdi", "SIGORTALI_AD_SOYAD")

    gross = reader.decimal(*_GROSS)
    net = reader.decimal(*_NET)
    if endorsement_no <= 0 and not gross and net is not None:
        gross = net

    return PolicyDraft(
        policy_no=policy_no,
        renewal_no=reader.text("YenilemeNo", "YENILEME_NO"),
        endorsement_no=endorsement_no,
        endorsement_type_code=reader.text("ZeyilTipKodu", "EKBELGE_KOD"),
        branch_name=product,
        branch_id=fmt.lookup_branch(None, product),
        kind=_row_kind(reader),
        issue_date=reader.date("TanzimTarihi", "POLICE_TANZIM_TARIH", "TANZIM_TARIH"),
        start_date=reader.date("BaslamaTarihi", "POLICE_BASLAMA_TARIH", "BASLAMA_TARIH"),
        end_date=reader.date("BitisTarihi", "POLICE_BITIS_TARIH", "BITIS_TARIH"),
        gross_premium=gross,
        net_premium=net,
        commission=reader.decimal("AcenteKomisyonTL", "AcenteKomisyon"),
        insured_name=name,
        insured_surname=surname,
        national_id=info.get("Tckn"),
        tax_id=info.get("Vkn"),
        address=info.get("Adres"),
        plate=reader.text("Plaka"),
        agent_code=reader.text("AcenteNo", "ACENTE_KOD"),
    )


PARSER = CarrierParser(FORMAT, map_row, prepare=build_insured_lookup)
