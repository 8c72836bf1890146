"""
Scratch storage backends for parsed import payloads.

A parsed upload is written here once at parse time and read back lazily by
the first batch confirmation, so the row list does not have to stay resident
between requests.
"""

from __future__ import annotations

import hashlib
import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from db.repositories.errors import ScratchStorageError
from db.repositories.types import StoredPayloadMetadata

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


class ScratchStorageBackend(Protocol):
    """
    Abstract storage backend used by the import session store.
    """

    def save(self, *, session_id: str, payload: list[dict[str, Any]]) -> StoredPayloadMetadata:
        ...

    def load(self, *, storage_path: str) -> list[dict[str, Any]]:
        ...

    def delete(self, *, storage_path: str) -> None:
        ...


def _sanitize_session_id(session_id: str) -> str:
    safe_id = (session_id or "").strip()
    if not _SAFE_KEY.match(safe_id):
        raise ScratchStorageError("Invalid session id for scratch storage.")
    return safe_id


class LocalScratchStorage:
    """
    Local filesystem scratch storage holding one JSON document per session.
    """

    def __init__(self, root_dir: str | Path = "data/import_sessions") -> None:
        self._root_dir = Path(root_dir)

    @property
    def root_dir(self) -> Path:
        return self._root_dir

    def save(self, *, session_id: str, payload: list[dict[str, Any]]) -> StoredPayloadMetadata:
        safe_id = _sanitize_session_id(session_id)
        stored_at = datetime.now(timezone.utc)
        relative_path = Path(stored_at.strftime("%Y%m%d")) / f"{safe_id}.json"
        absolute_path = self._root_dir / relative_path
        content = json.dumps(payload, ensure_ascii=False, separators=(",", ":")).encode("utf-8")

        tmp_path = absolute_path.with_suffix(".json.tmp")
        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("wb") as handle:
                handle.write(content)
            tmp_path.replace(absolute_path)
        except OSError as exc:
            raise ScratchStorageError("Failed to write import payload to scratch storage.") from exc
        finally:
            if tmp_path.exists():
                try:
                    tmp_path.unlink()
                except OSError:
                    pass

        return StoredPayloadMetadata(
            storage_path=relative_path.as_posix(),
            size_bytes=len(content),
            checksum=hashlib.sha256(content).hexdigest(),
            stored_at=stored_at,
        )

    def load(self, *, storage_path: str) -> list[dict[str, Any]]:
        target = self._root_dir / Path(storage_path)
        try:
            with target.open("rb") as handle:
                data = json.load(handle)
        except FileNotFoundError as exc:
            raise ScratchStorageError("Import payload is no longer available in scratch storage.") from exc
        except (OSError, ValueError) as exc:
            raise ScratchStorageError("Failed to read import payload from scratch storage.") from exc

        if not isinstance(data, list):
            raise ScratchStorageError("Scratch payload has an unexpected shape.")
        return data

    def delete(self, *, storage_path: str) -> None:
        target = self._root_dir / Path(storage_path)
        if not target.exists():
            return
        try:
            target.unlink()
        except OSError as exc:
            raise ScratchStorageError("Failed to delete import payload from scratch storage.") from exc
