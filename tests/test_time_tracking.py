from datetime import timedelta

import pytest

from app.core.exceptions import ConflictError
from app.models.time_tracking import CalculationMethod, TimeTracking
from app.services import time_tracking
from tests.conftest import ENGINEER_ID, NOW


def minutes(n):
    return NOW + timedelta(minutes=n)


@pytest.fixture
def job(make_job):
    return make_job()


@pytest.fixture
def entry(db, job):
    entry = time_tracking.open_session(db, job_id=job.id, engineer_id=ENGINEER_ID, now=NOW)
    db.commit()
    return entry


def open_rows(db, job_id):
    return (
        db.query(TimeTracking)
        .filter(TimeTracking.job_id == job_id, TimeTracking.end_time.is_(None))
        .count()
    )


def test_elapsed_minutes_floors_and_never_goes_negative():
    assert time_tracking.elapsed_minutes(NOW, NOW + timedelta(seconds=119)) == 1
    assert time_tracking.elapsed_minutes(NOW, NOW - timedelta(minutes=5)) == 0


def test_open_session_stamps_start(db, job):
    entry = time_tracking.open_session(
        db, job_id=job.id, engineer_id=ENGINEER_ID, now=NOW, latitude=51.5, longitude=-0.12
    )
    db.commit()

    assert entry.id is not None
    assert entry.start_time == NOW
    assert entry.accumulated_minutes == 0
    assert entry.is_paused is False
    assert entry.start_latitude == 51.5


def test_second_open_session_for_same_job_and_engineer_conflicts(db, job, entry):
    with pytest.raises(ConflictError):
        time_tracking.open_session(db, job_id=job.id, engineer_id=ENGINEER_ID, now=minutes(5))
    db.commit()

    assert open_rows(db, job.id) == 1


def test_new_session_allowed_once_previous_is_closed(db, job, entry):
    final = time_tracking.compute_final_duration(entry, minutes(30))
    time_tracking.close_session(db, entry, final, minutes(30))
    db.commit()

    time_tracking.open_session(db, job_id=job.id, engineer_id=ENGINEER_ID, now=minutes(60))
    db.commit()

    assert open_rows(db, job.id) == 1
    assert db.query(TimeTracking).filter(TimeTracking.job_id == job.id).count() == 2


def test_pause_banks_running_segment(db, entry):
    banked = time_tracking.pause_session(db, entry, minutes(25))
    db.commit()

    assert banked == 25
    assert entry.accumulated_minutes == 25
    assert entry.is_paused is True
    assert entry.paused_at == minutes(25)


def test_pause_resume_pause_sums_both_segments(db, entry):
    time_tracking.pause_session(db, entry, minutes(25))
    time_tracking.resume_session(db, entry, minutes(40))
    banked = time_tracking.pause_session(db, entry, minutes(55))
    db.commit()

    assert banked == 15
    assert entry.accumulated_minutes == 25 + 15


def test_resume_moves_segment_start(db, entry):
    time_tracking.pause_session(db, entry, minutes(10))
    time_tracking.resume_session(db, entry, minutes(30))

    assert entry.resumed_at == minutes(30)
    assert entry.paused_at is None
    assert entry.segment_started_at == minutes(30)
    assert time_tracking.current_total_minutes(entry, minutes(45)) == 10 + 15


def test_total_is_frozen_while_paused(db, entry):
    time_tracking.pause_session(db, entry, minutes(20))

    assert time_tracking.current_total_minutes(entry, minutes(20)) == 20
    assert time_tracking.current_total_minutes(entry, minutes(120)) == 20


def test_pause_twice_conflicts(db, entry):
    time_tracking.pause_session(db, entry, minutes(10))
    with pytest.raises(ConflictError, match="already paused"):
        time_tracking.pause_session(db, entry, minutes(12))


def test_resume_running_session_conflicts(db, entry):
    with pytest.raises(ConflictError, match="not paused"):
        time_tracking.resume_session(db, entry, minutes(5))


def test_final_duration_automatic(db, entry):
    time_tracking.pause_session(db, entry, minutes(20))
    time_tracking.resume_session(db, entry, minutes(30))

    final = time_tracking.compute_final_duration(entry, minutes(70))

    assert final.total_minutes == 20 + 40
    assert final.calculation_method == CalculationMethod.automatic
    assert final.adjustment_reason == ""


def test_final_duration_manual_override(entry):
    final = time_tracking.compute_final_duration(entry, minutes(70), manual_duration_minutes=45)

    assert final.total_minutes == 45
    assert final.calculation_method == CalculationMethod.manual_override
    assert final.adjustment_reason == "Manual time entry by engineer"


def test_final_duration_zero_manual_is_still_an_override(entry):
    final = time_tracking.compute_final_duration(entry, minutes(70), manual_duration_minutes=0)

    assert final.total_minutes == 0
    assert final.calculation_method == CalculationMethod.manual_override


def test_final_duration_adjustment_keeps_reason(entry):
    final = time_tracking.compute_final_duration(
        entry, minutes(60), time_adjustment_minutes=15, adjustment_reason="Parts run"
    )

    assert final.total_minutes == 75
    assert final.calculation_method == CalculationMethod.adjusted
    assert final.adjustment_reason == "Parts run"
    assert final.adjustment_minutes == 15


def test_final_duration_adjustment_is_floored_at_zero(entry):
    final = time_tracking.compute_final_duration(entry, minutes(30), time_adjustment_minutes=-100)

    assert final.total_minutes == 0
    assert final.adjustment_reason == "Time adjusted by -100 minutes"


def test_close_session_writes_final_values(db, entry):
    final = time_tracking.compute_final_duration(entry, minutes(50))
    time_tracking.close_session(db, entry, final, minutes(50))
    db.commit()

    assert entry.end_time == minutes(50)
    assert entry.duration_minutes == 50
    assert entry.calculation_method == CalculationMethod.automatic
    assert entry.is_open is False


def test_session_closes_only_once(db, entry):
    final = time_tracking.compute_final_duration(entry, minutes(50))
    time_tracking.close_session(db, entry, final, minutes(50))

    with pytest.raises(ConflictError):
        time_tracking.close_session(db, entry, final, minutes(55))


def test_closed_session_cannot_be_paused(db, entry):
    final = time_tracking.compute_final_duration(entry, minutes(50))
    time_tracking.close_session(db, entry, final, minutes(50))

    with pytest.raises(ConflictError):
        time_tracking.pause_session(db, entry, minutes(55))

