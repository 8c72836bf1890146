"""
tests/conftest.py

Shared fixtures: an in-memory SQLite database with the full schema, a
controllable clock, a scratch-storage directory and spreadsheet builders.
"""

from __future__ import annotations

import io
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterator, Sequence

import openpyxl
import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import db.models  # noqa: F401 - registers all ORM models on Base.metadata
from app.domain.policy_import import CallerContext
from app.parsers.registry import get_parser_registry
from app.services.import_session_store import ImportSessionStore
from app.services.policy_import_service import PolicyImportService
from db.base import Base
from db.repositories.storage import LocalScratchStorage

Grid = Sequence[Sequence[Any]]


class FakeClock:
    """
    Deterministic clock that only moves when a test advances it.
    """

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


def build_xlsx(rows: Grid, *, title: str = "Sheet1", extra_sheets: dict[str, Grid] | None = None) -> bytes:
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.title = title
    for row in rows:
        sheet.append(list(row))
    for name, extra_rows in (extra_sheets or {}).items():
        extra = workbook.create_sheet(name)
        for row in extra_rows:
            extra.append(list(row))
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def build_csv(rows: Grid, *, delimiter: str = ";") -> bytes:
    lines = [delimiter.join("" if cell is None else str(cell) for cell in row) for row in rows]
    return ("\n".join(lines) + "\n").encode("utf-8")


HEPIYI_HEADER = (
    "Poliçe No",
    "Zeyil No",
    "Poliçe Tarih",
    "Brüt Prim",
    "Net Prim",
    "Sigortalı Adı",
    "TC Kimlik",
    "Plaka",
    "Ürün Adı",
)


def hepiyi_row(
    policy_no: str,
    *,
    endorsement: str = "0",
    date: str = "15.03.2024",
    gross: str = "1.250,50",
    net: str = "1.000,00",
    name: str = "Ali Veli",
    national_id: str = "",
    plate: str = "",
    product: str = "Trafik Sigortası",
) -> tuple[str, ...]:
    return (policy_no, endorsement, date, gross, net, name, national_id, plate, product)


@pytest.fixture()
def engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 10, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture()
def caller() -> CallerContext:
    return CallerContext(firm_id=1, branch_id=10, user_id=7)


@pytest.fixture()
def scratch_storage(tmp_path) -> LocalScratchStorage:
    return LocalScratchStorage(tmp_path / "scratch")


@pytest.fixture()
def session_store(scratch_storage: LocalScratchStorage, clock: FakeClock) -> ImportSessionStore:
    return ImportSessionStore(storage=scratch_storage, ttl=timedelta(minutes=30), clock=clock)


@pytest.fixture()
def import_service(session_store: ImportSessionStore, clock: FakeClock) -> PolicyImportService:
    return PolicyImportService(
        store=session_store,
        registry=get_parser_registry(),
        clock=clock,
        insert_chunk_size=2,
        commit_max_retries=1,
    )


@pytest.fixture()
def make_xlsx() -> Callable[..., bytes]:
    return build_xlsx


@pytest.fixture()
def make_csv() -> Callable[..., bytes]:
    return build_csv


@pytest.fixture()
def hepiyi_file() -> Callable[..., bytes]:
    """
    Builder for a Hepiyi export: ``hepiyi_file(row, row, ...)``.
    """

    def build(*rows: Sequence[Any]) -> bytes:
        return build_xlsx([HEPIYI_HEADER, *rows])

    return build


@pytest.fixture(name="hepiyi_row")
def hepiyi_row_fixture() -> Callable[..., tuple[str, ...]]:
    return hepiyi_row
