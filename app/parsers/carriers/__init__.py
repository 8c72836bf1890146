"""
app/parsers/carriers package marker.

Each module describes one carrier export and exposes a shared ``PARSER``.
"""

from app.parsers.carriers import (
    ak_skay,
    ankara,
    corpus,
    doga,
    hdi,
    hepiyi,
    koru,
    neova,
    quick,
    quick_xml,
    sompo,
    unico,
    unico_xml,
)

# Signature-rich layouts first; generic "Poliçe No / Brüt Prim" layouts last.
TABULAR_PARSERS = (
    koru.PARSER,
    doga.PARSER,
    quick.PARSER,
    ak_skay.PARSER,
    sompo.PARSER,
    hdi.PARSER,
    corpus.PARSER,
    ankara.PARSER,
    neova.PARSER,
    hepiyi.PARSER,
    unico.PARSER,
)

XML_PARSERS = (
    quick_xml.PARSER,
    unico_xml.PARSER,
)

__all__ = [
    "TABULAR_PARSERS",
    "XML_PARSERS",
]
