"""
Matter Assembler
================

Composes a matter's EAV rows into a keyed field map, normalising each value
and its display rendering by logical type.
"""

from collections import defaultdict
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from src.config import FieldType
from src.matters.application.dto import FieldValueRecord, MatterRecord
from src.matters.domain import (
    CurrencyValue, CycleTimeCalculator, FieldValue, Matter, StatusValue, UserValue,
)
from src.matters.domain.entities import DisplayableValue
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

CHECK_MARK = "✓"
CROSS_MARK = "✗"

Normalized = Tuple[DisplayableValue, Optional[str]]


def format_number(value: float) -> str:
    """Render like en-US ``toLocaleString``: grouped, at most 3 decimals."""
    text = f"{value:,.3f}".rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def format_date(value: date) -> str:
    """Render as en-US short date, e.g. ``3/7/2024``."""
    return f"{value.month}/{value.day}/{value.year}"


# ========== Per-type normalisation ==========

def _text(row: FieldValueRecord) -> Normalized:
    value = row.text_value if row.text_value is not None else row.string_value
    return value, value


def _number(row: FieldValueRecord) -> Normalized:
    if row.number_value is None:
        return None, None
    return row.number_value, format_number(row.number_value)


def _date(row: FieldValueRecord) -> Normalized:
    if row.date_value is None:
        return None, None
    return row.date_value, format_date(row.date_value)


def _boolean(row: FieldValueRecord) -> Normalized:
    if row.boolean_value is None:
        return None, None
    return row.boolean_value, CHECK_MARK if row.boolean_value else CROSS_MARK


def _currency(row: FieldValueRecord) -> Normalized:
    if row.currency_amount is None or row.currency_code is None:
        return None, None
    value = CurrencyValue(amount=row.currency_amount, currency_code=row.currency_code)
    return value, f"{format_number(value.amount)} {value.currency_code}"


def _user(row: FieldValueRecord) -> Normalized:
    if row.user_id is None:
        return None, None
    user = UserValue(
        id=row.user_id,
        email=row.user_email or "",
        first_name=row.user_first_name or "",
        last_name=row.user_last_name or "",
    )
    return user, user.display_name


def _select(row: FieldValueRecord) -> Normalized:
    return row.select_option_id, row.select_option_label


def _status(row: FieldValueRecord) -> Normalized:
    if row.status_option_id is None:
        return None, None
    value = StatusValue(status_id=row.status_option_id, group_name=row.status_group_name)
    return value, row.status_option_label


_NORMALIZERS: Dict[FieldType, Callable[[FieldValueRecord], Normalized]] = {
    FieldType.TEXT: _text,
    FieldType.NUMBER: _number,
    FieldType.DATE: _date,
    FieldType.BOOLEAN: _boolean,
    FieldType.CURRENCY: _currency,
    FieldType.USER: _user,
    FieldType.SELECT: _select,
    FieldType.STATUS: _status,
}

if set(_NORMALIZERS) != set(FieldType):
    raise RuntimeError("every FieldType needs a normaliser")


class MatterAssembler:
    """
    Builds ``Matter`` entities from repository records.

    When a ``CycleTimeCalculator`` is given, cycle time and SLA are filled
    in from the assembled current phase and the record's phase boundaries.
    """

    def __init__(self, calculator: Optional[CycleTimeCalculator] = None):
        self._calculator = calculator

    def assemble(self, record: MatterRecord, rows: Iterable[FieldValueRecord]) -> Matter:
        matter = Matter(
            id=record.id,
            board_id=record.board_id,
            created_at=record.created_at,
            updated_at=record.updated_at,
            fields=self.build_fields(rows),
            transitioned_first=record.transitioned_first,
            transitioned_last=record.transitioned_last,
        )
        if self._calculator is not None:
            self._calculator.apply(matter)
        return matter

    def assemble_many(
        self,
        records: Iterable[MatterRecord],
        rows: Iterable[FieldValueRecord],
    ) -> List[Matter]:
        """Assemble a page of matters, keeping the order of ``records``."""
        rows_by_matter: Dict = defaultdict(list)
        for row in rows:
            rows_by_matter[row.matter_id].append(row)
        return [self.assemble(record, rows_by_matter.get(record.id, [])) for record in records]

    def build_fields(self, rows: Iterable[FieldValueRecord]) -> Dict[str, FieldValue]:
        """
        Keyed field map of one matter.

        Fields without a row are simply absent. Rows of a type this service
        does not know are skipped.
        """
        fields: Dict[str, FieldValue] = {}
        for row in rows:
            try:
                field_type = FieldType(row.field_type)
            except ValueError:
                logger.warning(
                    "Skipping field value of unknown type",
                    extra={
                        "matter_id": str(row.matter_id),
                        "field_id": str(row.field_id),
                        "field_type": row.field_type,
                    }
                )
                continue

            value, display_value = _NORMALIZERS[field_type](row)
            fields[row.field_name] = FieldValue(
                field_id=row.field_id,
                field_name=row.field_name,
                field_type=field_type,
                value=value,
                display_value=display_value,
            )
        return fields
