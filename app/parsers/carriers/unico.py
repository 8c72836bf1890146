"""
app/parsers/carriers/unico.py

Unico Sigorta (formerly Aviva) spreadsheet export.
"""

from __future__ import annotations

from app.parsers.base import CarrierFormat, CarrierParser
from app.parsers.carriers.generic import GenericColumns, make_generic_mapper

FORMAT = CarrierFormat(
    carrier_id=5,
    name="Unico Sigorta",
    filename_patterns=("unico", "aviva"),
    required_columns=("Poliçe No", "Brüt Prim", "Başlama Tarihi"),
)

COLUMNS = GenericColumns(
    policy_no=("Poliçe No",),
    issue_date=("Tanzim Tarihi", "Düzenleme Tarihi"),
    start_date=("Başlama Tarihi", "Başlangıç Tarihi"),
    gross_premium=("Brüt Prim",),
    insured_name=("Sigortalı Adı", "Sigortalı", "Müşteri Adı"),
    identity=("TC Kimlik No", "TC", "VKN", "Vergi No"),
    agent=("Acente", "Acente Adı"),
)

map_row = make_generic_mapper(COLUMNS)

PARSER = CarrierParser(FORMAT, map_row)
