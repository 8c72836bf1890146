"""
app/parsers/carriers/neova.py

Neova Sigorta production export. National and tax ids share one column and
are told apart by digit count.
"""

from __future__ import annotations

from app.parsers.base import CarrierFormat, CarrierParser
from app.parsers.carriers.generic import GenericColumns, make_generic_mapper

FORMAT = CarrierFormat(
    carrier_id=4,
    name="Neova Sigorta",
    filename_patterns=("neova", "neo"),
    required_columns=("POLİÇE NO", "BRÜT PRİM", "BAŞLANGIÇ TARİHİ"),
    policy_columns=("POLİÇE NO",),
)

COLUMNS = GenericColumns(
    policy_no=("POLİÇE NO",),
    issue_date=("TANZİM TARİHİ",),
    start_date=("BAŞLANGIÇ TARİHİ",),
    gross_premium=("BRÜT PRİM",),
    end_date=("BİTİŞ TARİHİ",),
    endorsement_no=("ZEYİL NO",),
    renewal_no=("YENİLEME NO",),
    plate=("PLAKA", "ARAÇ PLAKA"),
    net_premium=("NET PRİM",),
    commission=("KOMİSYON",),
    tax=("VERGİ",),
    insured_name=("SİGORTALI ADI", "MÜŞTERİ"),
    identity=("TC KİMLİK NO", "TC", "VKN", "VERGİ NO"),
    agent=("ACENTE", "ACENTE ADI"),
)

map_row = make_generic_mapper(COLUMNS)

PARSER = CarrierParser(FORMAT, map_row)
