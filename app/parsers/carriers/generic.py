"""
app/parsers/carriers/generic.py

Column-list driven row mapping shared by carriers whose exports follow the
common "Poliçe No / Brüt Prim / Başlangıç" layout (Hepiyi, Neova, Unico).
"""

from __future__ import annotations

from dataclasses import dataclass

from app.domain.policy_import import RowKind
from app.parsers.base import CarrierFormat, ParseState, PolicyDraft, RowMapper, RowReader, split_identity
from app.parsers.text import add_years, fold_upper, parse_endorsement_number

_KIND_COLUMNS: tuple[str, ...] = ("PoliceTipi", "Tipi", "İşlem", "Durum", "HareketTipi")
_PRODUCT_COLUMNS: tuple[str, ...] = ("UrunAdi", "Ürün Adı", "Urun", "Branş", "BransAdi", "PoliceTuru")


@dataclass(frozen=True)
class GenericColumns:
    """
    Candidate header names per field, tried in order.
    """

    policy_no: tuple[str, ...]
    issue_date: tuple[str, ...]
    start_date: tuple[str, ...]
    gross_premium: tuple[str, ...]
    end_date: tuple[str, ...] = ("Bitiş Tarihi", "Son Geçerlilik")
    endorsement_no: tuple[str, ...] = ("Zeyil No",)
    renewal_no: tuple[str, ...] = ("Yenileme No",)
    plate: tuple[str, ...] = ("Plaka", "Araç Plaka")
    net_premium: tuple[str, ...] = ("Net Prim",)
    commission: tuple[str, ...] = ("Komisyon", "Komisyon Tutarı")
    tax: tuple[str, ...] = ("Vergi", "Vergi Tutarı")
    insured_name: tuple[str, ...] = ("Sigortalı Adı", "Sigortalı", "Müşteri")
    identity: tuple[str, ...] = ("TC Kimlik", "TC", "VKN", "Vergi No")
    agent: tuple[str, ...] = ("Acente", "Acente Adı")


def _row_kind(reader: RowReader) -> str | None:
    value = fold_upper(reader.text(*_KIND_COLUMNS))
    if "IPTAL" in value or "CANCEL" in value:
        return RowKind.CANCELLATION
    return None


def make_generic_mapper(columns: GenericColumns, *, default_term_years: int | None = None) -> RowMapper:
    """
    Build a row mapper over ``columns``.

    When ``default_term_years`` is set, a missing end date is derived from
    the start date.
    """

    def map_row(reader: RowReader, fmt: CarrierFormat, state: ParseState) -> PolicyDraft | None:
        policy_no = reader.text(*columns.policy_no)
        if policy_no is None:
            return None

        product = reader.text(*_PRODUCT_COLUMNS)
        national_id, tax_id = split_identity(reader.text(*columns.identity))
        start_date = reader.date(*columns.start_date)
        end_date = reader.date(*columns.end_date)
        if end_date is None and start_date is not None and default_term_years:
            end_date = add_years(start_date, default_term_years)

        return PolicyDraft(
            policy_no=policy_no,
            renewal_no=reader.text(*columns.renewal_no),
            endorsement_no=parse_endorsement_number(reader.first_value(*columns.endorsement_no)),
            branch_name=product,
            branch_id=fmt.lookup_branch(None, product),
            kind=_row_kind(reader),
            issue_date=reader.date(*columns.issue_date),
            start_date=start_date,
            end_date=end_date,
            gross_premium=reader.decimal(*columns.gross_premium),
            net_premium=reader.decimal(*columns.net_premium),
            commission=reader.decimal(*columns.commission),
            tax=reader.decimal(*columns.tax),
            insured_name=reader.text(*columns.insured_name),
            national_id=national_id,
            tax_id=tax_id,
            plate=reader.text(*columns.plate),
            agent_code=reader.text(*columns.agent),
        )

    return map_row
