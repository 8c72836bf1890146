"""
app/parsers/carriers/koru.py

Koru Sigorta uses the Doğa report layout with its own product codes and an
extra "Sepet Id" column.
"""

from __future__ import annotations

from types import MappingProxyType

from app.parsers.base import CarrierFormat, CarrierParser
from app.parsers.branches import Branch
from app.parsers.carriers import doga

BRANCH_CODES = MappingProxyType(
    {
        "310": Branch.TRAFFIC,
        "344": Branch.MOTOR_OWN_DAMAGE,
        "355": Branch.MOTOR_OWN_DAMAGE,
        "356": Branch.MOTOR_OWN_DAMAGE,
        "359": Branch.MOTOR_OWN_DAMAGE,
        "370": Branch.MOTOR_OWN_DAMAGE,
        "375": Branch.MOTOR_OWN_DAMAGE,
        "199": Branch.EARTHQUAKE,
        "253": Branch.PERSONAL_ACCIDENT,
        "260": Branch.PERSONAL_ACCIDENT,
        "261": Branch.PERSONAL_ACCIDENT,
        "282": Branch.PERSONAL_ACCIDENT,
        "289": Branch.PERSONAL_ACCIDENT,
        "293": Branch.PERSONAL_ACCIDENT,
        "297": Branch.PERSONAL_ACCIDENT,
        "354": Branch.HOME,
        "400": Branch.TRANSPORT,
        "416": Branch.TRANSPORT,
        "417": Branch.TRANSPORT,
        "421": Branch.TRANSPORT,
        "424": Branch.TRANSPORT,
        "298": Branch.TRAVEL,
        "152": Branch.WORKPLACE,
        "325": Branch.EXCESS_LIABILITY,
        "200": Branch.LEGAL_PROTECTION,
        "450": Branch.HULL,
        "510": Branch.ENGINEERING,
        "530": Branch.ENGINEERING,
        "540": Branch.ENGINEERING,
        "251": Branch.LIABILITY,
        "252": Branch.LIABILITY,
        "281": Branch.LIABILITY,
        "385": Branch.EDUCATION,
    }
)

FORMAT = CarrierFormat(
    carrier_id=96,
    name="Koru Sigorta",
    filename_patterns=("koru",),
    required_columns=doga.FORMAT.required_columns,
    signature_columns=("İpt/Kay", "Vade Başlangıç", "Sbm Havuz", "Sepet Id"),
    branch_codes=BRANCH_CODES,
)

PARSER = CarrierParser(FORMAT, doga.map_row)
