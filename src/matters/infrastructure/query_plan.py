"""
Query Plan Compiler
===================

Turns a logical sort request into the SQL fragments needed to page
through matters whose sort key lives in a type-specific EAV column.

Each sort type maps to a ``SortFragment``: the joins it needs and the
expression that is actually compared. The expression is always labelled
``sort_value`` so the ORDER BY clause does not depend on the type.

Fragments are built once per sort type and never look at the order,
page or clock. Everything that varies per request is a bound parameter
of the plan.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy import (
    Float, String, Uuid, and_, bindparam, case, cast, exists, func, nulls_last,
    or_, select,
)
from sqlalchemy.orm import aliased
from sqlalchemy.sql.elements import ColumnElement, Label

from src.config import (
    DEFAULT_SORT_ORDER, DEFAULT_SORT_TYPE, PSEUDO_SORT_TYPES, FieldType,
    SLAStatus, SortOrder, SortType, StatusGroupName,
)
from src.fields.infrastructure.models import (
    FieldModel, FieldOptionModel, StatusGroupModel, StatusOptionModel,
)
from src.infrastructure.database.expressions import epoch_seconds
from src.matters.domain.value_objects import utcnow
from src.matters.infrastructure.models import (
    FieldValueModel, MatterModel, TransitionHistoryModel, UserModel,
)
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

SORT_VALUE_LABEL = "sort_value"

# Bound parameter names
SORT_FIELD_PARAM = "sort_field_id"
NOW_PARAM = "now_epoch"
SLA_THRESHOLD_PARAM = "sla_threshold_seconds"

# EAV row holding the sort key, joined once per plan
sort_field_value = aliased(FieldValueModel, name="sort_field_value")
sort_status_option = aliased(StatusOptionModel, name="sort_status_option")
sort_select_option = aliased(FieldOptionModel, name="sort_select_option")
sort_user = aliased(UserModel, name="sort_user")

JoinSpec = Tuple[Any, ColumnElement]


@dataclass(frozen=True)
class SortFragment:
    """SQL needed to sort by one sort type."""
    select: ColumnElement
    joins: Tuple[JoinSpec, ...] = ()
    needs_field_value: bool = False
    params: Tuple[str, ...] = ()


@dataclass
class QueryPlan:
    """
    Compiled plan for one page of matters.

    ``joins`` are outer joins applied after ``ticketing_matters``;
    ``params`` must be bound when the statement is executed.
    """
    sort_type: SortType
    sort_order: SortOrder
    sort_value: Label
    joins: List[JoinSpec]
    order_by: List[ColumnElement]
    params: Dict[str, Any] = field(default_factory=dict)
    page: int = 1
    limit: int = 25
    offset: int = 0


# ========== Phase boundaries ==========

def transitioned_first_expression():
    """Earliest transition timestamp of the outer matter."""
    return (
        select(func.min(TransitionHistoryModel.transitioned_at))
        .where(TransitionHistoryModel.matter_id == MatterModel.id)
        .correlate(MatterModel)
        .scalar_subquery()
    )


def transitioned_last_expression():
    """Latest transition timestamp of the outer matter."""
    return (
        select(func.max(TransitionHistoryModel.transitioned_at))
        .where(TransitionHistoryModel.matter_id == MatterModel.id)
        .correlate(MatterModel)
        .scalar_subquery()
    )


def current_phase_expression():
    """
    Group name of the outer matter's current status value.

    Reads the same status field that ``Matter.current_phase`` reads: the
    first live status field by name, then field id, that has a value.
    """
    return (
        select(StatusGroupModel.name)
        .select_from(FieldValueModel)
        .join(FieldModel, FieldModel.id == FieldValueModel.field_id)
        .join(StatusOptionModel, StatusOptionModel.id == FieldValueModel.status_option_id)
        .join(StatusGroupModel, StatusGroupModel.id == StatusOptionModel.group_id)
        .where(
            FieldValueModel.matter_id == MatterModel.id,
            FieldModel.field_type == FieldType.STATUS.value,
            FieldModel.deleted_at.is_(None),
        )
        .correlate(MatterModel)
        .order_by(FieldModel.name, FieldValueModel.field_id)
        .limit(1)
        .scalar_subquery()
    )


def resolution_seconds_expression() -> ColumnElement:
    """
    Resolution time in seconds, computed the same way as CycleTimeCalculator.

    The effective end is "now" when only one transition exists or the
    matter is in progress, otherwise the latest transition. NULL when the
    matter has no history, since every branch then involves a NULL bound.
    The phase comes from the current status value, as it does for the
    engine, not from the latest transition.
    """
    first = transitioned_first_expression()
    last = transitioned_last_expression()
    phase = current_phase_expression()
    now_epoch = bindparam(NOW_PARAM, type_=Float)

    return case(
        (
            or_(first == last, phase == StatusGroupName.IN_PROGRESS.value),
            now_epoch - epoch_seconds(first),
        ),
        else_=epoch_seconds(last) - epoch_seconds(first),
    )


def sla_ordinal_expression() -> ColumnElement:
    """SLA verdict as its sortable ordinal (Met < In Progress < Breached)."""
    resolution = resolution_seconds_expression()
    phase = current_phase_expression()
    threshold = bindparam(SLA_THRESHOLD_PARAM, type_=Float)
    is_done = phase == StatusGroupName.DONE.value

    return case(
        (
            and_(is_done, resolution >= 0, resolution <= threshold),
            SLAStatus.MET.ordinal,
        ),
        (and_(is_done, resolution > threshold), SLAStatus.BREACHED.ordinal),
        else_=SLAStatus.IN_PROGRESS.ordinal,
    )


# ========== Fragments ==========

def _value_fragment(column: ColumnElement) -> SortFragment:
    return SortFragment(select=column, needs_field_value=True, params=(SORT_FIELD_PARAM,))


def _text_fragment() -> SortFragment:
    # Some text fields were written to the short column
    return _value_fragment(func.coalesce(sort_field_value.text_value, sort_field_value.string_value))


def _number_fragment() -> SortFragment:
    return _value_fragment(sort_field_value.number_value)


def _date_fragment() -> SortFragment:
    return _value_fragment(sort_field_value.date_value)


def _boolean_fragment() -> SortFragment:
    return _value_fragment(sort_field_value.boolean_value)


def _currency_fragment() -> SortFragment:
    # Amount only; the currency code is ignored
    return _value_fragment(sort_field_value.currency_amount)


def _status_fragment() -> SortFragment:
    return SortFragment(
        select=sort_status_option.sequence,
        joins=((sort_status_option, sort_status_option.id == sort_field_value.status_option_id),),
        needs_field_value=True,
        params=(SORT_FIELD_PARAM,),
    )


def _select_fragment() -> SortFragment:
    return SortFragment(
        select=sort_select_option.sequence,
        joins=((sort_select_option, sort_select_option.id == sort_field_value.select_option_id),),
        needs_field_value=True,
        params=(SORT_FIELD_PARAM,),
    )


def _user_fragment() -> SortFragment:
    return SortFragment(
        select=sort_user.last_name,
        joins=((sort_user, sort_user.id == sort_field_value.user_id),),
        needs_field_value=True,
        params=(SORT_FIELD_PARAM,),
    )


def _created_at_fragment() -> SortFragment:
    return SortFragment(select=MatterModel.created_at)


def _resolution_time_fragment() -> SortFragment:
    return SortFragment(select=resolution_seconds_expression(), params=(NOW_PARAM,))


def _sla_fragment() -> SortFragment:
    return SortFragment(select=sla_ordinal_expression(), params=(NOW_PARAM, SLA_THRESHOLD_PARAM))


SORT_FRAGMENTS: Dict[SortType, Callable[[], SortFragment]] = {
    SortType.TEXT: _text_fragment,
    SortType.NUMBER: _number_fragment,
    SortType.DATE: _date_fragment,
    SortType.BOOLEAN: _boolean_fragment,
    SortType.CURRENCY: _currency_fragment,
    SortType.STATUS: _status_fragment,
    SortType.SELECT: _select_fragment,
    SortType.USER: _user_fragment,
    SortType.CREATED_AT: _created_at_fragment,
    SortType.RESOLUTION_TIME: _resolution_time_fragment,
    SortType.SLA: _sla_fragment,
}

if set(SORT_FRAGMENTS) != set(SortType):
    raise RuntimeError("every SortType needs a sort fragment")


def sort_fragment(sort_type: SortType) -> SortFragment:
    """Fragment for a sort type."""
    return SORT_FRAGMENTS[sort_type]()


def field_value_join() -> JoinSpec:
    """Outer join of the EAV row of the sort field."""
    return (
        sort_field_value,
        and_(
            sort_field_value.matter_id == MatterModel.id,
            sort_field_value.field_id == bindparam(SORT_FIELD_PARAM, type_=Uuid),
        ),
    )


# ========== Search ==========

def search_filter(search: Optional[str]) -> Optional[ColumnElement]:
    """
    Case-insensitive substring match over a matter's field values.

    Matches text values, numbers and currency amounts rendered as text,
    select/status option labels and user names.
    Returns None when there is nothing to filter on.
    """
    if search is None or not search.strip():
        return None
    term = search.strip()

    value = aliased(FieldValueModel, name="search_field_value")
    option = aliased(FieldOptionModel, name="search_select_option")
    status_option = aliased(StatusOptionModel, name="search_status_option")
    user = aliased(UserModel, name="search_user")

    return exists(
        select(value.id)
        .outerjoin(option, option.id == value.select_option_id)
        .outerjoin(status_option, status_option.id == value.status_option_id)
        .outerjoin(user, user.id == value.user_id)
        .where(
            value.matter_id == MatterModel.id,
            or_(
                value.text_value.icontains(term, autoescape=True),
                value.string_value.icontains(term, autoescape=True),
                cast(value.number_value, String).icontains(term, autoescape=True),
                cast(value.currency_amount, String).icontains(term, autoescape=True),
                option.label.icontains(term, autoescape=True),
                status_option.label.icontains(term, autoescape=True),
                user.first_name.icontains(term, autoescape=True),
                user.last_name.icontains(term, autoescape=True),
            ),
        )
        .correlate(MatterModel)
    )


# ========== Compiler ==========

class QueryPlanCompiler:
    """
    Compiles sort/page requests into a ``QueryPlan``.

    Args:
        sla_threshold_ms: threshold used when sorting by SLA
        clock: source of "now" for resolution-time sorts
    """

    def __init__(self, sla_threshold_ms: int, clock: Callable[[], datetime] = utcnow):
        self._sla_threshold_ms = sla_threshold_ms
        self._clock = clock

    def compile(
        self,
        sort_key: Optional[Union[str, UUID]],
        sort_type: Optional[Union[SortType, str]],
        sort_order: Optional[Union[SortOrder, str]],
        page: int,
        page_size: int,
    ) -> QueryPlan:
        """
        Build the plan for one page.

        Args:
            sort_key: pseudo-column name or field id
            sort_type: logical sort type of ``sort_key``
            sort_order: asc or desc
            page: 1-based page number
            page_size: matters per page

        Returns:
            QueryPlan; unusable sort input falls back to the default sort
        """
        resolved_type, order, field_id = self._resolve(sort_key, sort_type, sort_order)
        fragment = sort_fragment(resolved_type)

        joins: List[JoinSpec] = []
        if fragment.needs_field_value:
            joins.append(field_value_join())
        joins.extend(fragment.joins)

        sort_value = fragment.select.label(SORT_VALUE_LABEL)
        direction = sort_value.asc() if order is SortOrder.ASC else sort_value.desc()

        page = max(page, 1)
        page_size = max(page_size, 1)

        return QueryPlan(
            sort_type=resolved_type,
            sort_order=order,
            sort_value=sort_value,
            joins=joins,
            order_by=[nulls_last(direction), MatterModel.id.asc()],
            params=self._params(fragment, field_id),
            page=page,
            limit=page_size,
            offset=(page - 1) * page_size,
        )

    def _resolve(
        self,
        sort_key: Optional[Union[str, UUID]],
        sort_type: Optional[Union[SortType, str]],
        sort_order: Optional[Union[SortOrder, str]],
    ) -> Tuple[SortType, SortOrder, Optional[UUID]]:
        try:
            order = SortOrder(sort_order) if sort_order else DEFAULT_SORT_ORDER
        except ValueError:
            logger.warning("Unknown sort order, using default", extra={"sort_order": str(sort_order)})
            order = DEFAULT_SORT_ORDER

        if sort_type is None and sort_key is None:
            return DEFAULT_SORT_TYPE, order, None

        try:
            resolved = SortType(sort_type)
        except ValueError:
            logger.warning(
                "Unknown sort type, falling back to default sort",
                extra={"sort_type": str(sort_type), "sort_key": str(sort_key)}
            )
            return DEFAULT_SORT_TYPE, DEFAULT_SORT_ORDER, None

        if resolved in PSEUDO_SORT_TYPES:
            return resolved, order, None

        try:
            field_id = sort_key if isinstance(sort_key, UUID) else UUID(str(sort_key))
        except ValueError:
            logger.warning(
                "Sort key is not a field id, falling back to default sort",
                extra={"sort_type": resolved.value, "sort_key": str(sort_key)}
            )
            return DEFAULT_SORT_TYPE, DEFAULT_SORT_ORDER, None

        return resolved, order, field_id

    def _params(self, fragment: SortFragment, field_id: Optional[UUID]) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if SORT_FIELD_PARAM in fragment.params:
            params[SORT_FIELD_PARAM] = field_id
        if NOW_PARAM in fragment.params:
            params[NOW_PARAM] = self._clock().timestamp()
        if SLA_THRESHOLD_PARAM in fragment.params:
            params[SLA_THRESHOLD_PARAM] = self._sla_threshold_ms / 1000.0
        return params
