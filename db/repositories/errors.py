"""
Repository-layer exceptions for import persistence and scratch storage.
"""

from __future__ import annotations


class ImportRepositoryError(Exception):
    """Base exception for import repository failures."""


class ScratchStorageError(ImportRepositoryError):
    """Raised when writing, reading or deleting a session's scratch payload fails."""
