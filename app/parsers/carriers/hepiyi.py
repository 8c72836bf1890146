"""
app/parsers/carriers/hepiyi.py

Hepiyi Sigorta production export.
"""

from __future__ import annotations

from app.parsers.base import CarrierFormat, CarrierParser
from app.parsers.carriers.generic import GenericColumns, make_generic_mapper

FORMAT = CarrierFormat(
    carrier_id=3,
    name="Hepiyi Sigorta",
    filename_patterns=("hepiyi", "hepİyİ"),
    required_columns=("Poliçe No", "Brüt Prim", "Poliçe Tarih"),
    notes="Single policy date column; end date defaults to one year after start.",
)

COLUMNS = GenericColumns(
    policy_no=("Poliçe No",),
    issue_date=("Poliçe Tarih", "Tanzim Tarihi"),
    start_date=("Poliçe Tarih", "Başlangıç Tarihi"),
    gross_premium=("Brüt Prim",),
    insured_name=("Sigortalı Adı", "Sigortalı", "Müşteri"),
    identity=("TC Kimlik", "TC", "VKN"),
)

map_row = make_generic_mapper(COLUMNS, default_term_years=1)

PARSER = CarrierParser(FORMAT, map_row)
