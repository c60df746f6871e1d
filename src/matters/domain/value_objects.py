"""
Cycle Time Value Objects
========================

Derives a matter's resolution time, its human-readable rendering and its
SLA verdict from the first/last status transition and the current phase.

Nothing here is persisted: the verdict is recomputed from current data on
every read, so moving a matter back out of "Done" is reflected at once.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Tuple, Union
from uuid import UUID

from src.config import SLAStatus, StatusGroupName
from src.matters.domain.entities import CycleTime, Matter
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS
YEAR_MS = 365 * DAY_MS

IN_PROGRESS_PREFIX = "In Progress: "
NOT_AVAILABLE = "N/A"

_DURATION_UNITS = ((YEAR_MS, "y"), (DAY_MS, "d"), (HOUR_MS, "h"), (MINUTE_MS, "m"))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive timestamps (as returned by SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


PhaseLike = Union[StatusGroupName, str, None]


def _as_phase(phase: PhaseLike) -> Optional[StatusGroupName]:
    if isinstance(phase, StatusGroupName):
        return phase
    return StatusGroupName.parse(phase)


class CycleTimeCalculator:
    """
    Cycle-time and SLA engine.

    Args:
        sla_threshold_ms: resolution time a done matter may take and still
            meet its SLA (inclusive)
        clock: source of "now", injectable for tests
    """

    def __init__(self, sla_threshold_ms: int, clock: Callable[[], datetime] = utcnow):
        if sla_threshold_ms <= 0:
            raise ValueError("sla_threshold_ms must be positive")
        self._sla_threshold_ms = sla_threshold_ms
        self._clock = clock

    @property
    def sla_threshold_ms(self) -> int:
        return self._sla_threshold_ms

    def calculate(
        self,
        transitioned_first: Optional[datetime],
        transitioned_last: Optional[datetime],
        current_phase: PhaseLike,
        matter_id: Optional[UUID] = None,
    ) -> Tuple[CycleTime, SLAStatus]:
        """
        Compute cycle time and SLA verdict.

        Args:
            transitioned_first: earliest transition of the matter
            transitioned_last: latest transition of the matter
            current_phase: phase of the matter's current status
            matter_id: only used to give log lines context

        Returns:
            Tuple of (CycleTime, SLAStatus)
        """
        phase = _as_phase(current_phase)

        if transitioned_first is None or transitioned_last is None:
            if phase is not None:
                logger.warning(
                    "Matter has a status but no transition history",
                    extra={
                        "integrity_issue": "phase_without_history",
                        "matter_id": str(matter_id) if matter_id else None,
                        "phase": phase.value,
                    }
                )
            return self._not_available(), SLAStatus.IN_PROGRESS

        first = ensure_utc(transitioned_first)
        last = ensure_utc(transitioned_last)

        # A single transition, or an in-progress matter, keeps accruing time
        # even though no newer history row exists.
        if first == last or phase is StatusGroupName.IN_PROGRESS:
            effective_last = self._clock()
        else:
            effective_last = last

        resolution_time_ms = (effective_last - first) // timedelta(milliseconds=1)
        if resolution_time_ms < 0:
            logger.warning(
                "Negative resolution time, transition clocks are inconsistent",
                extra={
                    "integrity_issue": "negative_resolution_time",
                    "matter_id": str(matter_id) if matter_id else None,
                    "resolution_time_ms": resolution_time_ms,
                }
            )
            return self._not_available(), SLAStatus.IN_PROGRESS

        is_in_progress = phase is StatusGroupName.IN_PROGRESS
        cycle_time = CycleTime(
            resolution_time_ms=resolution_time_ms,
            resolution_time_formatted=self.format_duration(resolution_time_ms, is_in_progress),
            is_in_progress=is_in_progress,
            started_at=first,
            completed_at=effective_last if phase is StatusGroupName.DONE else None,
        )
        return cycle_time, self.sla_status(phase, resolution_time_ms)

    def apply(self, matter: Matter) -> Matter:
        """Fill in ``cycle_time`` and ``sla`` on an assembled matter."""
        matter.cycle_time, matter.sla = self.calculate(
            matter.transitioned_first,
            matter.transitioned_last,
            matter.current_phase,
            matter_id=matter.id,
        )
        return matter

    def sla_status(self, current_phase: PhaseLike, resolution_time_ms: float) -> SLAStatus:
        """
        SLA verdict for a phase and resolution time.

        Only done matters are judged; every other phase, including an
        unrecognised one, is still in progress.
        """
        if _as_phase(current_phase) is not StatusGroupName.DONE:
            return SLAStatus.IN_PROGRESS
        if resolution_time_ms <= self._sla_threshold_ms:
            return SLAStatus.MET
        return SLAStatus.BREACHED

    @staticmethod
    def format_duration(duration_ms: float, is_in_progress: bool = False) -> str:
        """
        Render a duration as e.g. ``"1y 1d 2h 30m"``.

        Units are floored and zero units skipped; anything under a minute
        renders as an empty string, without the in-progress prefix.
        """
        remaining = int(duration_ms)
        parts = []
        for unit_ms, suffix in _DURATION_UNITS:
            count, remaining = divmod(remaining, unit_ms)
            if count:
                parts.append(f"{count}{suffix}")

        formatted = " ".join(parts)
        if is_in_progress and formatted:
            return IN_PROGRESS_PREFIX + formatted
        return formatted

    @staticmethod
    def _not_available() -> CycleTime:
        return CycleTime(
            resolution_time_ms=None,
            resolution_time_formatted=NOT_AVAILABLE,
            is_in_progress=True,
            started_at=None,
            completed_at=None,
        )
