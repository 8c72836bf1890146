"""
app/parsers/branches.py

Canonical insurance branch ids and the keyword fallback used when a carrier
code is missing from its lookup table.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from app.parsers.text import fold_upper


class Branch:
    TRAFFIC = 0
    MOTOR_OWN_DAMAGE = 1
    EARTHQUAKE = 2
    PERSONAL_ACCIDENT = 3
    SEAT_ACCIDENT = 4
    HOME = 5
    TRANSPORT = 6
    HEALTH = 7
    TRAVEL = 8
    WORKPLACE = 9
    ZKTM = 10
    EXCESS_LIABILITY = 12
    FOREIGNER_HEALTH = 15
    SUPPLEMENTARY_HEALTH = 16
    RECEIPT = 17
    NATURAL_DISASTER = 19
    AGRICULTURE = 20
    FIRE = 21
    LEGAL_PROTECTION = 24
    HULL = 25
    LIFE = 26
    GREEN_CARD = 27
    ENGINEERING = 28
    LIABILITY = 29
    ROAD_ASSISTANCE = 30
    EDUCATION = 33
    UNCLASSIFIED = 255


BRANCH_NAMES: Mapping[int, str] = MappingProxyType(
    {
        Branch.TRAFFIC: "TRAFİK",
        Branch.MOTOR_OWN_DAMAGE: "KASKO",
        Branch.EARTHQUAKE: "DASK",
        Branch.PERSONAL_ACCIDENT: "FERDİ KAZA",
        Branch.SEAT_ACCIDENT: "KOLTUK",
        Branch.HOME: "KONUT",
        Branch.TRANSPORT: "NAKLİYAT",
        Branch.HEALTH: "SAĞLIK",
        Branch.TRAVEL: "SEYAHAT",
        Branch.WORKPLACE: "İŞYERİ",
        Branch.ZKTM: "ZKTM",
        Branch.EXCESS_LIABILITY: "İMM",
        Branch.FOREIGNER_HEALTH: "YABANCI SAĞLIK",
        Branch.SUPPLEMENTARY_HEALTH: "TAMAMLAYICI SAĞLIK",
        Branch.RECEIPT: "MAKBUZ",
        Branch.NATURAL_DISASTER: "DOĞAL KORUMA",
        Branch.AGRICULTURE: "TARIM",
        Branch.FIRE: "YANGIN",
        Branch.LEGAL_PROTECTION: "HUKUKSAL KORUMA",
        Branch.HULL: "TEKNE",
        Branch.LIFE: "HAYAT",
        Branch.GREEN_CARD: "YEŞİL KART",
        Branch.ENGINEERING: "MÜHENDİSLİK",
        Branch.LIABILITY: "SORUMLULUK",
        Branch.ROAD_ASSISTANCE: "YOL DESTEK",
        Branch.EDUCATION: "EĞİTİM",
        Branch.UNCLASSIFIED: "SINIFLANDIRILMAMIŞ",
    }
)

# Order matters: compound labels ("YABANCI SAGLIK", "FERDI KAZA") must win
# over their generic components.
_KEYWORD_RULES: tuple[tuple[tuple[str, ...], int], ...] = (
    (("TRAFIK", "ZMSS", "ZORUNLU MALI SORUMLULUK"), Branch.TRAFFIC),
    (("KASKO",), Branch.MOTOR_OWN_DAMAGE),
    (("DASK", "DEPREM"), Branch.EARTHQUAKE),
    (("SEYAHAT",), Branch.TRAVEL),
    (("TAMAMLAYICI", "AYAKTA", "YATARAK"), Branch.SUPPLEMENTARY_HEALTH),
    (("FERDI KAZA", "FERDIKAZA"), Branch.PERSONAL_ACCIDENT),
    (("KOLTUK",), Branch.SEAT_ACCIDENT),
    (("KONUT", "MESKEN"), Branch.HOME),
    (("NAKLIYAT", "EMTEA"), Branch.TRANSPORT),
    (("ISYERI",), Branch.WORKPLACE),
    (("ZKTM",), Branch.ZKTM),
    (("IMM",), Branch.EXCESS_LIABILITY),
    (("MAKBUZ",), Branch.RECEIPT),
    (("DOGAL KORUMA",), Branch.NATURAL_DISASTER),
    (("TARIM", "HAYVAN"), Branch.AGRICULTURE),
    (("YANGIN",), Branch.FIRE),
    (("HUKUKSAL",), Branch.LEGAL_PROTECTION),
    (("TEKNE",), Branch.HULL),
    (("HAYAT",), Branch.LIFE),
    (("YESIL KART",), Branch.GREEN_CARD),
    (("MUHENDISLIK",), Branch.ENGINEERING),
    (("SORUMLULUK",), Branch.LIABILITY),
    (("YOL DESTEK", "YOL YARDIM", "ASSIST"), Branch.ROAD_ASSISTANCE),
)


def branch_from_keywords(label: str | None) -> int:
    """
    Classify a free-text product/branch label, or return UNCLASSIFIED.
    """

    value = fold_upper(label)
    if not value:
        return Branch.UNCLASSIFIED

    if "YABANCI" in value and "SAGLIK" in value:
        return Branch.FOREIGNER_HEALTH
    for keywords, branch_id in _KEYWORD_RULES:
        if any(keyword in value for keyword in keywords):
            return branch_id
    if "SAGLIK" in value:
        return Branch.HEALTH
    if value == "FK" or value.startswith("FK "):
        return Branch.PERSONAL_ACCIDENT
    return Branch.UNCLASSIFIED


def branch_name(branch_id: int | None) -> str | None:
    if branch_id is None:
        return None
    return BRANCH_NAMES.get(branch_id)
