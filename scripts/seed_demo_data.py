#!/usr/bin/env python3
"""
Seed Demo Data
==============

Creates the tables and a demo board: users, status groups, one field of
every logical type, currencies and a set of matters with field values and
status history spread over the last weeks.

Usage:
    DATABASE_URL=sqlite+aiosqlite:///./matters.db python scripts/seed_demo_data.py --matters 50
"""

import argparse
import asyncio
import random
import sys
from datetime import date, timedelta
from pathlib import Path
from uuid import uuid4

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.config import FieldType, StatusGroupName, settings
from src.fields.infrastructure import (
    CurrencyOptionModel, FieldModel, FieldOptionModel, SQLAlchemyFieldRepository,
    StatusGroupModel, StatusOptionModel,
)
from src.infrastructure.database import (
    close_database, create_tables, get_session_context, init_database,
)
from src.matters.domain import (
    BooleanValue, CurrencyValue, DateValue, NumberValue, SelectRef,
    StatusRef, TextValue, UserRef,
)
from src.matters.domain.value_objects import utcnow
from src.matters.infrastructure import MatterModel, SQLAlchemyMatterRepository, UserModel
from src.shared.infrastructure.logging import get_logger, setup_logging

logger = get_logger(__name__)

USERS = [
    ("ada@example.com", "Ada", "Lovelace"),
    ("grace@example.com", "Grace", "Hopper"),
    ("alan@example.com", "Alan", "Turing"),
    ("edsger@example.com", "Edsger", "Dijkstra"),
]

STATUSES = [
    ("Backlog", StatusGroupName.TODO),
    ("Open", StatusGroupName.TODO),
    ("Working", StatusGroupName.IN_PROGRESS),
    ("Review", StatusGroupName.IN_PROGRESS),
    ("Closed", StatusGroupName.DONE),
]

PRIORITIES = ["Low", "Medium", "High", "Urgent"]

SUBJECTS = [
    "Contract review", "Trademark filing", "Lease renewal", "NDA request",
    "Vendor dispute", "Employment question", "Privacy assessment",
]


async def seed_schema(session, account_id: int) -> dict:
    """Insert users, status groups, currencies and one field per type."""
    users = [UserModel(id=i + 1, email=e, first_name=f, last_name=l) for i, (e, f, l) in enumerate(USERS)]
    session.add_all(users)

    groups = {
        name: StatusGroupModel(id=uuid4(), account_id=account_id, name=name.value, sequence=i)
        for i, name in enumerate(StatusGroupName)
    }
    session.add_all(groups.values())

    session.add_all([
        CurrencyOptionModel(account_id=account_id, code="USD", name="US Dollar", symbol="$", sequence=0),
        CurrencyOptionModel(account_id=account_id, code="EUR", name="Euro", symbol="€", sequence=1),
    ])

    fields = {}
    for name, field_type in [
        ("Subject", FieldType.TEXT),
        ("Hours Estimate", FieldType.NUMBER),
        ("Due Date", FieldType.DATE),
        ("Billable", FieldType.BOOLEAN),
        ("Fee", FieldType.CURRENCY),
        ("Status", FieldType.STATUS),
        ("Priority", FieldType.SELECT),
        ("Assigned To", FieldType.USER),
    ]:
        fields[field_type] = FieldModel(
            id=uuid4(), account_id=account_id, name=name, field_type=field_type.value,
            system_field=field_type is FieldType.STATUS,
        )
    session.add_all(fields.values())
    await session.flush()

    session.add_all([
        StatusOptionModel(
            field_id=fields[FieldType.STATUS].id, group_id=groups[group].id, label=label, sequence=i,
        )
        for i, (label, group) in enumerate(STATUSES)
    ])
    session.add_all([
        FieldOptionModel(field_id=fields[FieldType.SELECT].id, label=label, sequence=i)
        for i, label in enumerate(PRIORITIES)
    ])
    await session.commit()

    return {field_type: model.id for field_type, model in fields.items()}


async def seed_matters(session, field_ids: dict, count: int, rng: random.Random) -> None:
    """Create matters and write their values through the repository."""
    field_repo = SQLAlchemyFieldRepository(session)
    fields = {ft: await field_repo.get_field(fid) for ft, fid in field_ids.items()}
    board_id = uuid4()
    now = utcnow()

    for i in range(count):
        created_at = now - timedelta(days=rng.randint(1, 30), minutes=rng.randint(0, 600))
        matter = MatterModel(id=uuid4(), board_id=board_id, created_at=created_at, updated_at=created_at)
        session.add(matter)
        await session.commit()

        # Each write happens "at" a point after the matter was created
        moment = {"at": created_at}
        repo = SQLAlchemyMatterRepository(session, settings.sla_threshold_ms, clock=lambda: moment["at"])
        actor = rng.randint(1, len(USERS))

        values = [
            (FieldType.TEXT, TextValue(text=f"{rng.choice(SUBJECTS)} #{i + 1}")),
            (FieldType.NUMBER, NumberValue(number=round(rng.uniform(0.5, 40), 1))),
            (FieldType.DATE, DateValue(day=date.today() + timedelta(days=rng.randint(-10, 30)))),
            (FieldType.BOOLEAN, BooleanValue(flag=rng.random() < 0.6)),
            (FieldType.CURRENCY, CurrencyValue(amount=round(rng.uniform(100, 25000), 2),
                                               currency_code=rng.choice(["USD", "EUR"]))),
            (FieldType.SELECT, SelectRef(option_id=rng.choice(fields[FieldType.SELECT].options).id)),
            (FieldType.USER, UserRef(user_id=rng.randint(1, len(USERS)))),
        ]
        for field_type, value in values:
            if rng.random() < 0.15:
                continue  # leave some fields empty
            await repo.update_field(matter.id, fields[field_type], value, actor)

        # Walk part of the workflow
        statuses = fields[FieldType.STATUS].status_options
        steps = rng.randint(0, len(statuses))
        for option in statuses[:steps]:
            moment["at"] = moment["at"] + timedelta(minutes=rng.randint(10, 900))
            if moment["at"] > now:
                break
            await repo.update_field(matter.id, fields[FieldType.STATUS], StatusRef(option_id=option.id), actor)


async def main() -> None:
    parser = argparse.ArgumentParser(description="Seed demo matters")
    parser.add_argument("--matters", type=int, default=40, help="Number of matters to create")
    parser.add_argument("--seed", type=int, default=7, help="Random seed")
    args = parser.parse_args()

    setup_logging(settings.log_level, settings.environment)
    engine = init_database()
    await create_tables(engine)

    rng = random.Random(args.seed)
    try:
        async with get_session_context() as session:
            field_ids = await seed_schema(session, settings.default_account_id)
            await seed_matters(session, field_ids, args.matters, rng)
    finally:
        await close_database()

    logger.info("Seeded demo data", extra={"matters": args.matters})


if __name__ == "__main__":
    asyncio.run(main())
