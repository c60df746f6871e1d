"""Tests for the Query Plan Compiler."""

from datetime import datetime, timezone
from uuid import uuid4

import pytest
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.dialects import postgresql, sqlite

from src.config import SortOrder, SortType
from src.matters.infrastructure.query_plan import (
    NOW_PARAM, SLA_THRESHOLD_PARAM, SORT_FIELD_PARAM, SORT_FRAGMENTS, QueryPlanCompiler,
    search_filter, sort_fragment,
)

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def _sql(element, dialect=None) -> str:
    if hasattr(element, "__clause_element__"):
        element = element.__clause_element__()
    return str(element.compile(dialect=dialect or postgresql.dialect())).replace('"', "")


@pytest.fixture
def compiler() -> QueryPlanCompiler:
    return QueryPlanCompiler(8 * 60 * 60 * 1000, clock=lambda: NOW)


class TestSortFragments:
    """Per-type join/select fragments."""

    @pytest.mark.parametrize("sort_type", list(SortType))
    def test_fragment_depends_on_type_only(self, compiler, sort_type):
        key = None if sort_type in (SortType.CREATED_AT, SortType.RESOLUTION_TIME, SortType.SLA) else uuid4()
        asc_plan = compiler.compile(key, sort_type, SortOrder.ASC, 1, 10)
        desc_plan = compiler.compile(key, sort_type, SortOrder.DESC, 7, 3)

        assert _sql(asc_plan.sort_value) == _sql(desc_plan.sort_value)
        assert [_sql(on) for _, on in asc_plan.joins] == [_sql(on) for _, on in desc_plan.joins]

    @pytest.mark.parametrize("sort_type", [SortType.TEXT, SortType.NUMBER, SortType.DATE,
                                           SortType.BOOLEAN, SortType.CURRENCY])
    def test_direct_columns_need_only_the_value_row(self, sort_type):
        fragment = sort_fragment(sort_type)
        assert fragment.needs_field_value
        assert fragment.joins == ()

    def test_text_coalesces_long_and_short_columns(self):
        sql = _sql(sort_fragment(SortType.TEXT).select)
        assert "coalesce(sort_field_value.text_value, sort_field_value.string_value)" in sql

    def test_currency_sorts_by_amount(self):
        assert _sql(sort_fragment(SortType.CURRENCY).select) == "sort_field_value.currency_amount"

    @pytest.mark.parametrize("sort_type, expected", [
        (SortType.STATUS, "sort_status_option.sequence"),
        (SortType.SELECT, "sort_select_option.sequence"),
        (SortType.USER, "sort_user.last_name"),
    ])
    def test_reference_types_join_their_table(self, sort_type, expected):
        fragment = sort_fragment(sort_type)
        assert _sql(fragment.select) == expected
        assert len(fragment.joins) == 1

    def test_created_at_needs_no_join(self):
        fragment = sort_fragment(SortType.CREATED_AT)
        assert not fragment.needs_field_value
        assert fragment.joins == ()

    def test_resolution_time_is_derived_from_history(self):
        sql = _sql(sort_fragment(SortType.RESOLUTION_TIME).select)
        assert "ticketing_cycle_time_histories" in sql
        assert "EXTRACT(EPOCH FROM" in sql

    def test_resolution_time_on_sqlite_uses_julianday(self):
        sql = _sql(sort_fragment(SortType.RESOLUTION_TIME).select, sqlite.dialect())
        assert "julianday(" in sql

    def test_sla_is_a_real_ordinal(self):
        sql = _sql(sort_fragment(SortType.SLA).select)
        assert "CASE" in sql
        assert SLA_THRESHOLD_PARAM in sql


class TestCompile:

    def test_field_sort_binds_field_id(self, compiler):
        field_id = uuid4()
        plan = compiler.compile(str(field_id), SortType.NUMBER, SortOrder.ASC, 1, 25)

        assert plan.sort_type is SortType.NUMBER
        assert plan.params == {SORT_FIELD_PARAM: field_id}
        assert len(plan.joins) == 1

    def test_status_sort_joins_value_row_then_options(self, compiler):
        plan = compiler.compile(uuid4(), SortType.STATUS, SortOrder.ASC, 1, 25)
        assert [sa_inspect(target).name for target, _ in plan.joins] == [
            "sort_field_value", "sort_status_option",
        ]

    def test_resolution_time_binds_now(self, compiler):
        plan = compiler.compile("resolution_time", SortType.RESOLUTION_TIME, SortOrder.DESC, 1, 25)
        assert plan.params == {NOW_PARAM: NOW.timestamp()}
        assert plan.joins == []

    def test_sla_binds_now_and_threshold(self, compiler):
        plan = compiler.compile("sla", SortType.SLA, SortOrder.ASC, 1, 25)
        assert plan.params == {NOW_PARAM: NOW.timestamp(), SLA_THRESHOLD_PARAM: 8 * 60 * 60.0}

    def test_order_is_nulls_last_with_id_tiebreaker(self, compiler):
        plan = compiler.compile(uuid4(), SortType.TEXT, SortOrder.DESC, 1, 25)
        order_sql = [_sql(o) for o in plan.order_by]

        assert order_sql[0].endswith("DESC NULLS LAST")
        assert order_sql[1] == "ticketing_matters.id ASC"

    def test_ascending_is_also_nulls_last(self, compiler):
        plan = compiler.compile(uuid4(), SortType.NUMBER, SortOrder.ASC, 1, 25)
        assert _sql(plan.order_by[0]).endswith("ASC NULLS LAST")

    @pytest.mark.parametrize("page, page_size, offset", [(1, 25, 0), (2, 25, 25), (4, 7, 21), (0, 10, 0)])
    def test_pagination(self, compiler, page, page_size, offset):
        plan = compiler.compile(None, SortType.CREATED_AT, SortOrder.DESC, page, page_size)
        assert plan.limit == page_size
        assert plan.offset == offset

    def test_unknown_sort_type_falls_back_to_created_at(self, compiler, caplog):
        plan = compiler.compile("x", "priority_score", SortOrder.ASC, 1, 25)

        assert plan.sort_type is SortType.CREATED_AT
        assert plan.sort_order is SortOrder.DESC
        assert plan.params == {}
        assert "Unknown sort type" in caplog.text

    def test_field_sort_without_field_id_falls_back(self, compiler):
        plan = compiler.compile("not-a-uuid", SortType.TEXT, SortOrder.ASC, 1, 25)
        assert plan.sort_type is SortType.CREATED_AT
        assert plan.joins == []

    def test_no_sort_is_newest_first(self, compiler):
        plan = compiler.compile(None, None, None, 1, 25)
        assert plan.sort_type is SortType.CREATED_AT
        assert plan.sort_order is SortOrder.DESC

    def test_unknown_sort_order_uses_default(self, compiler):
        plan = compiler.compile(None, SortType.CREATED_AT, "sideways", 1, 25)
        assert plan.sort_order is SortOrder.DESC


class TestSearchFilter:

    @pytest.mark.parametrize("term", [None, "", "   "])
    def test_blank_search_is_no_filter(self, term):
        assert search_filter(term) is None

    def test_search_covers_labels_and_names(self):
        sql = _sql(search_filter("acme"))
        assert "EXISTS" in sql
        for column in ("text_value", "string_value", "number_value", "currency_amount",
                       "search_select_option.label",
                       "search_status_option.label", "first_name", "last_name"):
            assert column in sql


def test_every_sort_type_has_a_fragment():
    assert set(SORT_FRAGMENTS) == set(SortType)
