"""
app/parsers/xml_base.py

Base class for carriers that deliver policy transfers as XML documents.

Subclasses locate their policy elements and map one element to a
``PolicyDraft``; backfill, kind derivation and validation are shared with
the tabular parsers through ``finalize_draft``. Element lookups match on
local names so namespaced exports parse the same as plain ones.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from typing import Any, Iterable, Iterator

from app.domain.policy_import import ParsedRow
from app.parsers.base import CarrierFormat, PolicyDraft, broken_row, finalize_draft
from app.parsers.text import clean_text, fold_column
from app.parsers.workbook import Workbook
from app.validators.policy_row_validator import PolicyRowValidator

logger = logging.getLogger(__name__)


def local_name(tag: Any) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def child(element: ET.Element | None, *path: str) -> ET.Element | None:
    """
    Follow ``path`` through direct children by local name.
    """

    current = element
    for name in path:
        if current is None:
            return None
        current = next((item for item in current if local_name(item.tag) == name), None)
    return current


def children(element: ET.Element | None, name: str) -> Iterator[ET.Element]:
    if element is None:
        return iter(())
    return (item for item in element if local_name(item.tag) == name)


def descendants(element: ET.Element, name: str) -> Iterator[ET.Element]:
    return (item for item in element.iter() if local_name(item.tag) == name)


def child_text(element: ET.Element | None, *path: str) -> str | None:
    node = child(element, *path)
    if node is None:
        return None
    return clean_text(node.text)


class XmlCarrierParser(ABC):
    """
    XML document parser for one carrier.
    """

    def __init__(self, carrier_format: CarrierFormat, *, validator: PolicyRowValidator | None = None) -> None:
        self.format = carrier_format
        self._validator = validator or PolicyRowValidator()
        self._folded_patterns = tuple(fold_column(p) for p in carrier_format.filename_patterns)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(carrier_id={self.carrier_id!r}, name={self.name!r})"

    @property
    def carrier_id(self) -> int:
        return self.format.carrier_id

    @property
    def name(self) -> str:
        return self.format.name

    @property
    def is_xml(self) -> bool:
        return True

    def matches_filename(self, file_name: str) -> bool:
        folded = fold_column(file_name)
        return any(pattern and pattern in folded for pattern in self._folded_patterns)

    def has_required_columns(self, headers: Iterable[str]) -> bool:
        return True

    def can_parse(self, headers: Iterable[str]) -> bool:
        return False

    @abstractmethod
    def sniff(self, root: ET.Element) -> bool:
        """
        True when the document structure belongs to this carrier.
        """

    @abstractmethod
    def policy_elements(self, root: ET.Element) -> Iterable[ET.Element]:
        ...

    @abstractmethod
    def map_element(self, element: ET.Element, root: ET.Element) -> PolicyDraft | None:
        ...

    def parse_workbook(self, workbook: Workbook, **_: Any) -> list[ParsedRow]:
        if workbook.xml_root is None:
            return []
        return self.parse_root(workbook.xml_root)

    def parse_root(self, root: ET.Element) -> list[ParsedRow]:
        """
        Decode every policy element, isolating per-element failures.

        Row numbers are 1-based positions among the policy elements.
        """

        parsed: list[ParsedRow] = []
        for row_number, element in enumerate(self.policy_elements(root), start=1):
            try:
                draft = self.map_element(element, root)
            except Exception as exc:  # noqa: BLE001
                policy_no = child_text(element, "PolicyNo") or child_text(element, "PoliceNo")
                logger.warning(
                    "XML policy element mapping failed carrier_id=%s element=%s policy_no=%r: %s",
                    self.carrier_id,
                    row_number,
                    policy_no,
                    exc,
                )
                parsed.append(broken_row(row_number, policy_no, exc))
                continue

            if draft is None or not draft.policy_no:
                continue
            parsed.append(finalize_draft(draft, row_number=row_number, validator=self._validator))
        return parsed
