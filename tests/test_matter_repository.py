"""Tests for the SQLAlchemy matter repository against SQLite."""

from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from src.config import FieldType, SortOrder, SortType
from src.core import ResourceNotFoundException, UnsupportedFieldTypeException
from src.fields.domain import Field
from src.fields.infrastructure import (
    FieldModel, SQLAlchemyFieldRepository, StatusGroupModel, StatusOptionModel,
)
from src.matters.domain import (
    BooleanValue, CurrencyValue, DateValue, NumberValue, SelectRef, StatusRef,
    TextValue, UserRef,
)
from src.matters.infrastructure import FieldValueModel, TransitionHistoryModel


async def _list_all(repo, sort_key, sort_type, order=SortOrder.ASC, search=None):
    records, total = await repo.list_matters(sort_key, sort_type, order, 1, 100, search)
    return [r.id for r in records], total


class TestUpdateField:
    """Typed upserts and transition history."""

    @pytest.mark.asyncio
    async def test_value_round_trip(self, matter_repo, board, make_matter):
        matter_id = await make_matter()
        subject = board.fields[FieldType.TEXT]

        await matter_repo.update_field(matter_id, subject, TextValue(text="First"), actor_id=1)
        await matter_repo.update_field(matter_id, subject, TextValue(text="Second"), actor_id=2)

        rows = await matter_repo.get_field_values([matter_id])
        assert len(rows) == 1
        assert rows[0].text_value == "Second"
        assert rows[0].field_name == "Subject"

    @pytest.mark.asyncio
    async def test_upsert_keeps_one_row_per_field(self, session, matter_repo, board, make_matter):
        matter_id = await make_matter()
        estimate = board.fields[FieldType.NUMBER]

        for n in (1.0, 2.0, 3.0):
            await matter_repo.update_field(matter_id, estimate, NumberValue(number=n), actor_id=1)

        count = (await session.execute(
            select(func.count()).select_from(FieldValueModel).where(FieldValueModel.matter_id == matter_id)
        )).scalar_one()
        assert count == 1

    @pytest.mark.asyncio
    async def test_every_type_round_trips(self, matter_repo, board, make_matter):
        matter_id = await make_matter()
        values = {
            FieldType.TEXT: TextValue(text="Lease renewal"),
            FieldType.NUMBER: NumberValue(number=12.5),
            FieldType.DATE: DateValue(day=date(2024, 6, 30)),
            FieldType.BOOLEAN: BooleanValue(flag=True),
            FieldType.CURRENCY: CurrencyValue(amount=1999.99, currency_code="EUR"),
            FieldType.USER: UserRef(user_id=2),
            FieldType.SELECT: SelectRef(option_id=board.priorities["High"]),
            FieldType.STATUS: StatusRef(option_id=board.statuses["Open"]),
        }
        for field_type, value in values.items():
            await matter_repo.update_field(matter_id, board.fields[field_type], value, actor_id=1)

        rows = {r.field_name: r for r in await matter_repo.get_field_values([matter_id])}

        assert list(rows) == sorted(rows)
        assert rows["Subject"].text_value == "Lease renewal"
        assert rows["Estimate"].number_value == 12.5
        assert rows["Due Date"].date_value == date(2024, 6, 30)
        assert rows["Billable"].boolean_value is True
        assert (rows["Fee"].currency_amount, rows["Fee"].currency_code) == (1999.99, "EUR")
        assert rows["Assignee"].user_last_name == "Hopper"
        assert rows["Priority"].select_option_label == "High"
        assert rows["Status"].status_option_label == "Open"
        assert rows["Status"].status_group_name == "To Do"

    @pytest.mark.asyncio
    async def test_status_changes_append_history(self, matter_repo, board, make_matter, clock):
        matter_id = await make_matter()
        status = board.fields[FieldType.STATUS]

        await matter_repo.update_field(matter_id, status, StatusRef(option_id=board.statuses["Open"]), 1)
        clock.advance(hours=1)
        await matter_repo.update_field(matter_id, status, StatusRef(option_id=board.statuses["Working"]), 1)

        history = await matter_repo.get_transition_history(matter_id)

        assert len(history) == 2
        assert history[0].from_status_id is None
        assert history[0].to_status_id == board.statuses["Open"]
        assert history[1].from_status_id == board.statuses["Open"]
        assert history[1].to_status_id == board.statuses["Working"]
        assert all(h.status_field_id == status.id for h in history)

    @pytest.mark.asyncio
    async def test_non_status_updates_leave_history_alone(self, matter_repo, board, make_matter):
        matter_id = await make_matter()
        await matter_repo.update_field(matter_id, board.fields[FieldType.TEXT], TextValue(text="x"), 1)

        assert await matter_repo.get_transition_history(matter_id) == []

    @pytest.mark.asyncio
    async def test_none_removes_the_value(self, matter_repo, board, make_matter):
        matter_id = await make_matter()
        billable = board.fields[FieldType.BOOLEAN]

        await matter_repo.update_field(matter_id, billable, BooleanValue(flag=True), 1)
        await matter_repo.update_field(matter_id, billable, None, 1)

        assert await matter_repo.get_field_values([matter_id]) == []

    @pytest.mark.asyncio
    async def test_update_touches_matter(self, matter_repo, board, make_matter, clock):
        matter_id = await make_matter()
        clock.advance(minutes=5)

        await matter_repo.update_field(matter_id, board.fields[FieldType.TEXT], TextValue(text="x"), 1)

        record = await matter_repo.get_matter(matter_id)
        assert record.updated_at.replace(tzinfo=None) == clock().replace(tzinfo=None)

    @pytest.mark.asyncio
    async def test_missing_matter(self, matter_repo, board):
        with pytest.raises(ResourceNotFoundException):
            await matter_repo.update_field(uuid4(), board.fields[FieldType.TEXT], TextValue(text="x"), 1)

    @pytest.mark.asyncio
    async def test_unsupported_type_writes_nothing(self, matter_repo, board, make_matter):
        matter_id = await make_matter()
        rating = Field(id=uuid4(), account_id=1, name="Rating", field_type="rating")

        with pytest.raises(UnsupportedFieldTypeException):
            await matter_repo.update_field(matter_id, rating, NumberValue(number=4), 1)

        assert await matter_repo.get_field_values([matter_id]) == []

    @pytest.mark.asyncio
    async def test_failed_status_update_rolls_back_history(
        self, session, matter_repo, board, make_matter, monkeypatch
    ):
        matter_id = await make_matter()

        def broken_assign(self, field_type, stored):
            raise RuntimeError("disk full")

        monkeypatch.setattr(FieldValueModel, "assign", broken_assign)

        with pytest.raises(RuntimeError):
            await matter_repo.update_field(
                matter_id, board.fields[FieldType.STATUS], StatusRef(option_id=board.statuses["Open"]), 1
            )

        count = (await session.execute(
            select(func.count()).select_from(TransitionHistoryModel)
        )).scalar_one()
        assert count == 0


class TestReads:

    @pytest.mark.asyncio
    async def test_get_missing_matter(self, matter_repo):
        assert await matter_repo.get_matter(uuid4()) is None

    @pytest.mark.asyncio
    async def test_phase_boundaries(self, matter_repo, board, make_matter, clock):
        matter_id = await make_matter()
        status = board.fields[FieldType.STATUS]
        started = clock()

        await matter_repo.update_field(matter_id, status, StatusRef(option_id=board.statuses["Open"]), 1)
        clock.advance(hours=3)
        await matter_repo.update_field(matter_id, status, StatusRef(option_id=board.statuses["Closed"]), 1)

        record = await matter_repo.get_matter(matter_id)
        assert record.transitioned_first.replace(tzinfo=None) == started.replace(tzinfo=None)
        assert record.transitioned_last.replace(tzinfo=None) == clock().replace(tzinfo=None)

    @pytest.mark.asyncio
    async def test_field_values_are_loaded_for_the_whole_page(self, matter_repo, board, make_matter):
        first, second, other = await make_matter(), await make_matter(), await make_matter()
        subject = board.fields[FieldType.TEXT]
        for matter_id in (first, second, other):
            await matter_repo.update_field(matter_id, subject, TextValue(text=str(matter_id)), 1)

        rows = await matter_repo.get_field_values([first, second])

        assert {r.matter_id for r in rows} == {first, second}

    @pytest.mark.asyncio
    async def test_no_ids_no_query(self, matter_repo):
        assert await matter_repo.get_field_values([]) == []


class TestListing:
    """Sorting, paging and search."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("page_size", [1, 2, 3, 7])
    async def test_pages_add_up_to_total(self, matter_repo, make_matter, clock, page_size):
        for _ in range(7):
            clock.advance(minutes=1)
            await make_matter()

        seen = []
        page = 1
        while True:
            records, total = await matter_repo.list_matters(
                None, SortType.CREATED_AT, SortOrder.DESC, page, page_size
            )
            if not records:
                break
            seen.extend(r.id for r in records)
            page += 1

        assert total == 7
        assert len(seen) == total
        assert len(set(seen)) == total

    @pytest.mark.asyncio
    async def test_created_at_desc_by_default(self, matter_repo, make_matter, clock):
        older = await make_matter()
        clock.advance(hours=1)
        newer = await make_matter()

        ids, _ = await _list_all(matter_repo, None, SortType.CREATED_AT, SortOrder.DESC)
        assert ids == [newer, older]

    @pytest.mark.asyncio
    async def test_number_sort_ascending_nulls_last(self, matter_repo, board, make_matter):
        estimate = board.fields[FieldType.NUMBER]
        big, empty, small = await make_matter(), await make_matter(), await make_matter()
        await matter_repo.update_field(big, estimate, NumberValue(number=40), 1)
        await matter_repo.update_field(small, estimate, NumberValue(number=2.5), 1)

        ids, _ = await _list_all(matter_repo, estimate.id, SortType.NUMBER, SortOrder.ASC)
        assert ids == [small, big, empty]

        ids, _ = await _list_all(matter_repo, estimate.id, SortType.NUMBER, SortOrder.DESC)
        assert ids == [big, small, empty]

    @pytest.mark.asyncio
    async def test_text_sort_uses_short_column_fallback(self, session, matter_repo, board, make_matter):
        subject = board.fields[FieldType.TEXT]
        b, a, c = await make_matter(), await make_matter(), await make_matter()
        await matter_repo.update_field(b, subject, TextValue(text="Bravo"), 1)
        await matter_repo.update_field(c, subject, TextValue(text="Charlie"), 1)
        session.add(FieldValueModel(matter_id=a, field_id=subject.id, string_value="Alpha"))
        await session.commit()

        ids, _ = await _list_all(matter_repo, subject.id, SortType.TEXT)
        assert ids == [a, b, c]

    @pytest.mark.asyncio
    async def test_currency_sorts_by_amount_only(self, matter_repo, board, make_matter):
        fee = board.fields[FieldType.CURRENCY]
        eur, usd = await make_matter(), await make_matter()
        await matter_repo.update_field(eur, fee, CurrencyValue(amount=500, currency_code="EUR"), 1)
        await matter_repo.update_field(usd, fee, CurrencyValue(amount=100, currency_code="USD"), 1)

        ids, _ = await _list_all(matter_repo, fee.id, SortType.CURRENCY)
        assert ids == [usd, eur]

    @pytest.mark.asyncio
    async def test_date_and_boolean_sorts(self, matter_repo, board, make_matter):
        due, billable = board.fields[FieldType.DATE], board.fields[FieldType.BOOLEAN]
        late, early = await make_matter(), await make_matter()
        await matter_repo.update_field(late, due, DateValue(day=date(2024, 9, 1)), 1)
        await matter_repo.update_field(early, due, DateValue(day=date(2024, 2, 1)), 1)
        await matter_repo.update_field(late, billable, BooleanValue(flag=False), 1)
        await matter_repo.update_field(early, billable, BooleanValue(flag=True), 1)

        ids, _ = await _list_all(matter_repo, due.id, SortType.DATE)
        assert ids == [early, late]

        ids, _ = await _list_all(matter_repo, billable.id, SortType.BOOLEAN)
        assert ids == [late, early]

    @pytest.mark.asyncio
    async def test_status_and_select_sort_by_option_sequence(self, matter_repo, board, make_matter):
        status, priority = board.fields[FieldType.STATUS], board.fields[FieldType.SELECT]
        closed, open_, working = await make_matter(), await make_matter(), await make_matter()
        for matter_id, label in ((closed, "Closed"), (open_, "Open"), (working, "Working")):
            await matter_repo.update_field(matter_id, status, StatusRef(option_id=board.statuses[label]), 1)
        for matter_id, label in ((closed, "Low"), (open_, "High"), (working, "Medium")):
            await matter_repo.update_field(matter_id, priority, SelectRef(option_id=board.priorities[label]), 1)

        ids, _ = await _list_all(matter_repo, status.id, SortType.STATUS)
        assert ids == [open_, working, closed]

        ids, _ = await _list_all(matter_repo, priority.id, SortType.SELECT, SortOrder.DESC)
        assert ids == [open_, working, closed]

    @pytest.mark.asyncio
    async def test_user_sort_by_last_name(self, matter_repo, board, make_matter):
        assignee = board.fields[FieldType.USER]
        turing, lovelace, hopper, nobody = (
            await make_matter(), await make_matter(), await make_matter(), await make_matter()
        )
        for matter_id, name in ((turing, "Turing"), (lovelace, "Lovelace"), (hopper, "Hopper")):
            await matter_repo.update_field(matter_id, assignee, UserRef(user_id=board.users[name]), 1)

        ids, _ = await _list_all(matter_repo, assignee.id, SortType.USER)
        assert ids == [hopper, lovelace, turing, nobody]

    @pytest.mark.asyncio
    async def test_resolution_time_sort(self, matter_repo, board, make_matter, clock):
        status = board.fields[FieldType.STATUS]
        quick, slow, untouched = await make_matter(), await make_matter(), await make_matter()

        # quick: done after 1h
        await matter_repo.update_field(quick, status, StatusRef(option_id=board.statuses["Open"]), 1)
        clock.advance(hours=1)
        await matter_repo.update_field(quick, status, StatusRef(option_id=board.statuses["Closed"]), 1)

        # slow: started now, still in progress 10h later
        await matter_repo.update_field(slow, status, StatusRef(option_id=board.statuses["Working"]), 1)
        clock.advance(hours=10)

        ids, _ = await _list_all(matter_repo, "resolution_time", SortType.RESOLUTION_TIME)
        assert ids == [quick, slow, untouched]

        ids, _ = await _list_all(matter_repo, "resolution_time", SortType.RESOLUTION_TIME, SortOrder.DESC)
        assert ids == [slow, quick, untouched]

    @pytest.mark.asyncio
    async def test_sla_sort_orders_met_in_progress_breached(self, matter_repo, board, make_matter, clock):
        status = board.fields[FieldType.STATUS]
        met, breached, open_ = await make_matter(), await make_matter(), await make_matter()

        await matter_repo.update_field(breached, status, StatusRef(option_id=board.statuses["Open"]), 1)
        await matter_repo.update_field(met, status, StatusRef(option_id=board.statuses["Open"]), 1)
        await matter_repo.update_field(open_, status, StatusRef(option_id=board.statuses["Working"]), 1)
        clock.advance(hours=2)
        await matter_repo.update_field(met, status, StatusRef(option_id=board.statuses["Closed"]), 1)
        clock.advance(hours=10)
        await matter_repo.update_field(breached, status, StatusRef(option_id=board.statuses["Closed"]), 1)

        ids, _ = await _list_all(matter_repo, "sla", SortType.SLA)
        assert ids == [met, open_, breached]

    @pytest.mark.asyncio
    async def test_search_filters_page_and_total(self, matter_repo, board, make_matter):
        subject, assignee = board.fields[FieldType.TEXT], board.fields[FieldType.USER]
        lease, nda, other = await make_matter(), await make_matter(), await make_matter()
        await matter_repo.update_field(lease, subject, TextValue(text="Office LEASE renewal"), 1)
        await matter_repo.update_field(nda, subject, TextValue(text="NDA request"), 1)
        await matter_repo.update_field(nda, assignee, UserRef(user_id=board.users["Hopper"]), 1)
        await matter_repo.update_field(other, subject, TextValue(text="50% discount"), 1)

        ids, total = await _list_all(matter_repo, None, SortType.CREATED_AT, search="lease")
        assert (ids, total) == ([lease], 1)

        ids, total = await _list_all(matter_repo, None, SortType.CREATED_AT, search="hopp")
        assert (ids, total) == ([nda], 1)

        ids, total = await _list_all(matter_repo, None, SortType.CREATED_AT, search="%")
        assert (ids, total) == ([other], 1)

    @pytest.mark.asyncio
    async def test_search_matches_option_labels(self, matter_repo, board, make_matter):
        status = board.fields[FieldType.STATUS]
        working, closed = await make_matter(), await make_matter()
        await matter_repo.update_field(working, status, StatusRef(option_id=board.statuses["Working"]), 1)
        await matter_repo.update_field(closed, status, StatusRef(option_id=board.statuses["Closed"]), 1)

        ids, total = await _list_all(matter_repo, None, SortType.CREATED_AT, search="work")
        assert (ids, total) == ([working], 1)

    @pytest.mark.asyncio
    async def test_sorting_does_not_change_total(self, matter_repo, board, make_matter):
        estimate = board.fields[FieldType.NUMBER]
        with_value, _ = await make_matter(), await make_matter()
        await matter_repo.update_field(with_value, estimate, NumberValue(number=1), 1)

        _, total = await _list_all(matter_repo, estimate.id, SortType.NUMBER)
        assert total == 2

    @pytest.mark.asyncio
    async def test_search_matches_numbers_and_amounts(self, matter_repo, board, make_matter):
        estimate, fee = board.fields[FieldType.NUMBER], board.fields[FieldType.CURRENCY]
        case_number, billed, other = await make_matter(), await make_matter(), await make_matter()
        await matter_repo.update_field(case_number, estimate, NumberValue(number=2033984), 1)
        await matter_repo.update_field(billed, fee, CurrencyValue(amount=5000, currency_code="USD"), 1)
        await matter_repo.update_field(other, estimate, NumberValue(number=12), 1)

        ids, total = await _list_all(matter_repo, None, SortType.CREATED_AT, search="2033984")
        assert (ids, total) == ([case_number], 1)

        ids, total = await _list_all(matter_repo, None, SortType.CREATED_AT, search="5000")
        assert (ids, total) == ([billed], 1)

    @pytest.mark.asyncio
    async def test_resolution_sort_reads_the_same_status_field_as_the_engine(
        self, session, matter_repo, board, make_matter, clock
    ):
        # A second status field sorting after "Status" whose latest change lands in Done
        done_group = (await session.execute(
            select(StatusGroupModel.id).where(StatusGroupModel.name == "Done")
        )).scalar_one()
        review = FieldModel(id=uuid4(), account_id=1, name="Zeta Review", field_type="status")
        session.add(review)
        await session.flush()
        approved = StatusOptionModel(id=uuid4(), field_id=review.id, group_id=done_group, label="Approved")
        session.add(approved)
        await session.commit()
        review_field = await SQLAlchemyFieldRepository(session).get_field(review.id)
        status = board.fields[FieldType.STATUS]

        still_working, closed = await make_matter(), await make_matter()
        await matter_repo.update_field(still_working, status, StatusRef(option_id=board.statuses["Working"]), 1)
        await matter_repo.update_field(closed, status, StatusRef(option_id=board.statuses["Open"]), 1)
        clock.advance(hours=1)
        await matter_repo.update_field(still_working, review_field, StatusRef(option_id=approved.id), 1)
        clock.advance(hours=4)
        await matter_repo.update_field(closed, status, StatusRef(option_id=board.statuses["Closed"]), 1)
        clock.advance(hours=6)

        # still_working: in progress for 11h; closed: done after 5h
        ids, _ = await _list_all(matter_repo, "resolution_time", SortType.RESOLUTION_TIME)
        assert ids == [closed, still_working]

        ids, _ = await _list_all(matter_repo, "sla", SortType.SLA)
        assert ids == [closed, still_working]
