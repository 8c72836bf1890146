"""
app/parsers package marker.
"""

from app.parsers.registry import DetectionMethod, FormatMatch, ParserRegistry, get_parser_registry
from app.parsers.workbook import (
    SUPPORTED_EXTENSIONS,
    DocumentReadError,
    UnsupportedFileTypeError,
    Workbook,
    read_workbook,
)

__all__ = [
    "DetectionMethod",
    "DocumentReadError",
    "FormatMatch",
    "ParserRegistry",
    "SUPPORTED_EXTENSIONS",
    "UnsupportedFileTypeError",
    "Workbook",
    "get_parser_registry",
    "read_workbook",
]
