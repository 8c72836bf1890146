"""
app/parsers/text.py

Locale-aware text, number and date coercion shared by every carrier parser.

Carrier exports mix Turkish and ASCII spellings of the same header, use both
thousands-separator conventions, and store dates as real cells, OLE serial
numbers or free text. Everything here is pure and stateless.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

_TURKISH_FOLD = str.maketrans(
    {
        "İ": "i",
        "I": "i",
        "ı": "i",
        "Ğ": "g",
        "ğ": "g",
        "Ü": "u",
        "ü": "u",
        "Ş": "s",
        "ş": "s",
        "Ö": "o",
        "ö": "o",
        "Ç": "c",
        "ç": "c",
    }
)

_UPPER_FOLD = str.maketrans(
    {
        "İ": "I",
        "ı": "I",
        "i": "I",
        "Ğ": "G",
        "ğ": "G",
        "Ü": "U",
        "ü": "U",
        "Ş": "S",
        "ş": "S",
        "Ö": "O",
        "ö": "O",
        "Ç": "C",
        "ç": "C",
    }
)

_COLUMN_NOISE = re.compile(r"[\s_\-/.]+")
_CURRENCY_NOISE = re.compile(r"(₺|TRY|TL|\s| )", re.IGNORECASE)
_BLANK_MARKERS = frozenset({"", "-", "nan", "none", "null"})

OLE_EPOCH = datetime(1899, 12, 30)
_OLE_MIN = 1
_OLE_MAX = 73050

# Exact formats are tried in this order before the day-first fallback.
DATE_FORMATS: tuple[str, ...] = (
    "%d.%m.%Y",
    "%d/%m/%Y",
    "%Y-%m-%d",
    "%d.%m.%Y %H:%M:%S",
    "%d/%m/%Y %H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%d.%m.%y",
    "%d/%m/%y",
    "%m/%d/%Y",
    "%m/%d/%Y %I:%M:%S %p",
)

_LOOSE_DATE = re.compile(r"^(\d{1,2})[./\-](\d{1,2})[./\-](\d{2,4})")


def fold_column(value: str) -> str:
    """
    Normalize a header or column fragment for tolerant matching.

    Turkish letters fold to ASCII, case is dropped, and separators
    (spaces, ``_``, ``-``, ``/``, ``.``) are removed.
    """

    return _COLUMN_NOISE.sub("", value.translate(_TURKISH_FOLD).lower())


def fold_upper(value: str | None) -> str:
    """
    Fold free text (names, product labels) to canonical uppercase ASCII.
    """

    if not value:
        return ""
    folded = value.strip().translate(_UPPER_FOLD).upper()
    return " ".join(folded.split())


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and value != value:
        return True
    if isinstance(value, str):
        return value.strip().lower() in _BLANK_MARKERS
    return False


def clean_text(value: Any) -> str | None:
    """
    Return trimmed text, or None for blank cells and dash placeholders.
    """

    if is_blank(value):
        return None
    if isinstance(value, float) and value.is_integer():
        text = str(int(value))
    elif isinstance(value, datetime):
        text = value.isoformat()
    else:
        text = str(value)
    text = text.replace(" ", " ").strip()
    if text in {"-", " - "}:
        return None
    return text or None


def clean_code(value: Any) -> str | None:
    """
    Like clean_text, but also drops a spreadsheet ``.0`` suffix from numeric codes.
    """

    text = clean_text(value)
    if text is None:
        return None
    if text.endswith(".0") and text[:-2].lstrip("-").isdigit():
        return text[:-2]
    return text


def parse_decimal(value: Any) -> Decimal | None:
    """
    Parse a monetary amount written in either thousands-separator convention.

    ``1.234,56`` and ``1,234.56`` both yield ``Decimal("1234.56")``; a lone
    comma is treated as the decimal separator. Currency markers (``₺``,
    ``TL``, ``TRY``) and whitespace are stripped first, and a parenthesized
    value is negative.
    """

    if is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))

    text = _CURRENCY_NOISE.sub("", str(value))
    if not text or text in {"-", "--"}:
        return None

    negative = False
    if text.startswith("(") and text.endswith(")"):
        negative = True
        text = text[1:-1]

    last_comma = text.rfind(",")
    last_dot = text.rfind(".")
    if last_comma >= 0 and last_dot >= 0:
        if last_comma > last_dot:
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif last_comma >= 0:
        if text.count(",") > 1:
            text = text.replace(",", "")
        else:
            text = text.replace(",", ".")

    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return -amount if negative else amount


def parse_date(value: Any, formats: tuple[str, ...] = DATE_FORMATS) -> datetime | None:
    """
    Parse a cell into a naive datetime.

    Accepts native datetime/date cells, OLE serial numbers, and text in the
    given exact formats followed by a day-first ``d.m.y`` fallback.
    """

    if is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float, Decimal)):
        return _from_ole_serial(float(value))

    text = str(value).strip()
    if not text:
        return None

    for fmt in formats:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    numeric = parse_decimal(text) if text.replace(".", "", 1).isdigit() else None
    if numeric is not None:
        return _from_ole_serial(float(numeric))

    match = _LOOSE_DATE.match(text)
    if match is None:
        return None
    day, month, year = (int(part) for part in match.groups())
    if year < 100:
        year += 2000 if year < 70 else 1900
    try:
        return datetime(year, month, day)
    except ValueError:
        return None


def _from_ole_serial(serial: float) -> datetime | None:
    if not _OLE_MIN < serial < _OLE_MAX:
        return None
    return OLE_EPOCH + timedelta(days=serial)


def parse_endorsement_number(value: Any) -> int:
    """
    Return the endorsement number, treating blanks and junk as 0.

    Accepts ``"1"``, ``"1.0"`` and ``"1,0"`` spellings.
    """

    amount = parse_decimal(value)
    if amount is None:
        return 0
    try:
        return int(amount)
    except (ValueError, OverflowError):
        return 0


def parse_optional_int(value: Any) -> int | None:
    amount = parse_decimal(value)
    if amount is None:
        return None
    try:
        return int(amount)
    except (ValueError, OverflowError):
        return None


def add_years(moment: datetime, years: int) -> datetime:
    """
    Shift a datetime by whole years, clamping 29 February to the 28th.
    """

    try:
        return moment.replace(year=moment.year + years)
    except ValueError:
        return moment.replace(year=moment.year + years, day=28)


def digits_only(value: str | None) -> str | None:
    if not value:
        return None
    digits = "".join(ch for ch in value if ch.isdigit())
    return digits or None


def split_person_name(name: str | None, surname: str | None = None) -> tuple[str | None, str | None]:
    """
    Split an insured name into (first name, surname).

    A separate surname is used as-is; otherwise the last word of ``name``
    becomes the surname.
    """

    if surname and surname.strip():
        return (name.strip() if name and name.strip() else None), surname.strip()
    if not name or not name.strip():
        return None, None
    parts = name.split()
    if len(parts) < 2:
        return name.strip(), None
    return " ".join(parts[:-1]), parts[-1]
