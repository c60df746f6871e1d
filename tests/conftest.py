"""Pytest configuration and shared fixtures."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from src.config import FieldType, StatusGroupName
from src.fields.domain import Field
from src.fields.infrastructure import (
    CurrencyOptionModel, FieldModel, FieldOptionModel, SQLAlchemyFieldRepository,
    StatusGroupModel, StatusOptionModel,
)
from src.infrastructure.database import build_session_maker, create_tables
from src.matters.infrastructure import MatterModel, SQLAlchemyMatterRepository, UserModel

ACCOUNT_ID = 1
SLA_THRESHOLD_MS = 8 * 60 * 60 * 1000


class FakeClock:
    """Controllable "now" for cycle-time and history timestamps."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@dataclass
class SeededBoard:
    """Field schema seeded for an account."""
    board_id: UUID
    fields: Dict[FieldType, Field] = field(default_factory=dict)
    statuses: Dict[str, UUID] = field(default_factory=dict)
    priorities: Dict[str, UUID] = field(default_factory=dict)
    users: Dict[str, int] = field(default_factory=dict)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc))


@pytest_asyncio.fixture
async def engine():
    """In-memory SQLite engine with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return build_session_maker(engine)


@pytest_asyncio.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def board(session) -> SeededBoard:
    """
    Seed users, workflow phases, currencies and one field per logical type.

    Statuses: Open (To Do), Working (In Progress), Closed (Done).
    Priorities: Low, Medium, High.
    """
    session.add_all([
        UserModel(id=1, email="ada@example.com", first_name="Ada", last_name="Lovelace"),
        UserModel(id=2, email="grace@example.com", first_name="Grace", last_name="Hopper"),
        UserModel(id=3, email="alan@example.com", first_name="Alan", last_name="Turing"),
    ])

    groups = {
        phase: StatusGroupModel(id=uuid4(), account_id=ACCOUNT_ID, name=phase.value, sequence=i)
        for i, phase in enumerate(StatusGroupName)
    }
    session.add_all(groups.values())
    session.add_all([
        CurrencyOptionModel(account_id=ACCOUNT_ID, code="USD", name="US Dollar", symbol="$", sequence=0),
        CurrencyOptionModel(account_id=ACCOUNT_ID, code="EUR", name="Euro", symbol="€", sequence=1),
    ])

    field_models = {
        FieldType.TEXT: "Subject",
        FieldType.NUMBER: "Estimate",
        FieldType.DATE: "Due Date",
        FieldType.BOOLEAN: "Billable",
        FieldType.CURRENCY: "Fee",
        FieldType.STATUS: "Status",
        FieldType.SELECT: "Priority",
        FieldType.USER: "Assignee",
    }
    models = {
        ft: FieldModel(id=uuid4(), account_id=ACCOUNT_ID, name=name, field_type=ft.value)
        for ft, name in field_models.items()
    }
    session.add_all(models.values())
    await session.flush()

    statuses = [
        ("Open", StatusGroupName.TODO),
        ("Working", StatusGroupName.IN_PROGRESS),
        ("Closed", StatusGroupName.DONE),
    ]
    status_models = [
        StatusOptionModel(
            id=uuid4(), field_id=models[FieldType.STATUS].id,
            group_id=groups[phase].id, label=label, sequence=i,
        )
        for i, (label, phase) in enumerate(statuses)
    ]
    priority_models = [
        FieldOptionModel(id=uuid4(), field_id=models[FieldType.SELECT].id, label=label, sequence=i)
        for i, label in enumerate(["Low", "Medium", "High"])
    ]
    session.add_all(status_models + priority_models)
    await session.commit()

    field_repo = SQLAlchemyFieldRepository(session)
    seeded = SeededBoard(board_id=uuid4())
    for ft, model in models.items():
        seeded.fields[ft] = await field_repo.get_field(model.id)
    seeded.statuses = {m.label: m.id for m in status_models}
    seeded.priorities = {m.label: m.id for m in priority_models}
    seeded.users = {"Lovelace": 1, "Hopper": 2, "Turing": 3}
    return seeded


@pytest.fixture
def matter_repo(session, clock) -> SQLAlchemyMatterRepository:
    return SQLAlchemyMatterRepository(session, SLA_THRESHOLD_MS, clock=clock)


@pytest.fixture
def make_matter(session, board, clock):
    """Insert a bare matter; returns its id."""

    async def _make(created_at: Optional[datetime] = None) -> UUID:
        created_at = created_at or clock()
        matter = MatterModel(id=uuid4(), board_id=board.board_id, created_at=created_at, updated_at=created_at)
        session.add(matter)
        await session.commit()
        return matter.id

    return _make
