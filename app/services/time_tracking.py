"""
Time-tracking engine.

One row per work session. Elapsed time is split into ``accumulated_minutes``
(banked from finished running segments) and a live segment measured from
``resumed_at`` (or ``start_time`` before the first resume). Totals are
computed on read; nothing ticks in the background.

Functions here flush but never commit; the caller owns the transaction.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app import crud
from app.core.exceptions import ConflictError
from app.models.time_tracking import CalculationMethod, TimeTracking

logger = logging.getLogger(__name__)


@dataclass
class FinalDuration:
    """Outcome of closing a session."""
    total_minutes: int
    calculation_method: CalculationMethod
    adjustment_reason: str = ""
    adjustment_minutes: int = 0


def elapsed_minutes(since: datetime, now: datetime) -> int:
    """Whole minutes between two instants, never negative."""
    return max(0, int((now - since).total_seconds() // 60))


def live_segment_minutes(entry: TimeTracking, now: datetime) -> int:
    if entry.is_paused:
        return 0
    return elapsed_minutes(entry.segment_started_at, now)


def current_total_minutes(entry: TimeTracking, now: datetime) -> int:
    """Banked minutes plus the running segment (zero while paused)."""
    return (entry.accumulated_minutes or 0) + live_segment_minutes(entry, now)


def compute_final_duration(
    entry: TimeTracking,
    now: datetime,
    manual_duration_minutes: Optional[int] = None,
    time_adjustment_minutes: int = 0,
    adjustment_reason: str = "",
) -> FinalDuration:
    """
    Work out the recorded duration for a session being closed.

    A manual duration replaces the measured total; otherwise a signed
    adjustment is applied to it, floored at zero. Both carry a reason,
    defaulted when the engineer gave none.
    """
    if manual_duration_minutes is not None and manual_duration_minutes >= 0:
        return FinalDuration(
            total_minutes=manual_duration_minutes,
            calculation_method=CalculationMethod.manual_override,
            adjustment_reason=adjustment_reason or "Manual time entry by engineer",
        )

    measured = current_total_minutes(entry, now)
    if time_adjustment_minutes:
        return FinalDuration(
            total_minutes=max(0, measured + time_adjustment_minutes),
            calculation_method=CalculationMethod.adjusted,
            adjustment_reason=adjustment_reason or f"Time adjusted by {time_adjustment_minutes} minutes",
            adjustment_minutes=time_adjustment_minutes,
        )
    return FinalDuration(total_minutes=measured, calculation_method=CalculationMethod.automatic)


def open_session(
    db: Session,
    *,
    job_id: int,
    engineer_id: str,
    now: datetime,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
) -> TimeTracking:
    """
    Insert a fresh open session.

    The partial unique index rejects a second open row for the same
    (job, engineer); that surfaces as a Conflict.
    """
    entry = TimeTracking(
        job_id=job_id,
        engineer_id=engineer_id,
        start_time=now,
        accumulated_minutes=0,
        is_paused=False,
        start_latitude=latitude,
        start_longitude=longitude,
    )
    try:
        with db.begin_nested():
            db.add(entry)
    except IntegrityError:
        logger.warning(f"Duplicate open session for job {job_id}, engineer {engineer_id}")
        raise ConflictError("Time tracking already active for this job")
    return entry


def pause_session(db: Session, entry: TimeTracking, now: datetime) -> int:
    """
    Bank the running segment and mark the session paused.

    Returns the minutes banked by this pause.
    """
    session_minutes = live_segment_minutes(entry, now)
    applied = crud.time_tracking.update_open_if(
        db,
        entry_id=entry.id,
        expected_paused=False,
        values={
            "accumulated_minutes": (entry.accumulated_minutes or 0) + session_minutes,
            "is_paused": True,
            "paused_at": now,
        },
    )
    if not applied:
        raise ConflictError("Job is already paused", details={"accumulated_minutes": entry.accumulated_minutes})
    db.refresh(entry)
    return session_minutes


def resume_session(db: Session, entry: TimeTracking, now: datetime) -> None:
    """Clear the paused flag and restart the live segment from ``now``."""
    applied = crud.time_tracking.update_open_if(
        db,
        entry_id=entry.id,
        expected_paused=True,
        values={"is_paused": False, "paused_at": None, "resumed_at": now},
    )
    if not applied:
        raise ConflictError("Job is not paused", details={"accumulated_minutes": entry.accumulated_minutes})
    db.refresh(entry)


def close_session(db: Session, entry: TimeTracking, final: FinalDuration, now: datetime) -> None:
    """Write the end time and final duration; a session is closed exactly once."""
    applied = crud.time_tracking.update_open_if(
        db,
        entry_id=entry.id,
        values={
            "end_time": now,
            "duration_minutes": final.total_minutes,
            "accumulated_minutes": final.total_minutes,
            "is_paused": False,
            "calculation_method": final.calculation_method,
            "adjustment_reason": final.adjustment_reason,
            "adjustment_minutes": final.adjustment_minutes,
        },
    )
    if not applied:
        raise ConflictError("Time entry has already been closed")
    db.refresh(entry)
