from datetime import date, datetime

import pytest

from app import crud
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.customer import Customer, CustomerStatus
from app.models.job import Job, JobStatus
from app.models.route import Route, RouteStatus
from app.schemas.route import AssignRouteRequest
from app.services import time_tracking
from app.services.route_service import RouteService, route_stats
from tests.conftest import ENGINEER_ID, NOW

ROUTE_DAY = date(2026, 10, 19)


@pytest.fixture
def service():
    return RouteService()


def assign_request(*stops, **kwargs):
    return AssignRouteRequest(
        engineer_id=kwargs.pop("engineer_id", ENGINEER_ID),
        date=ROUTE_DAY,
        jobs=list(stops),
        **kwargs,
    )


# Stats

def test_route_stats_counts_billing_states_as_completed():
    jobs = [
        Job(job_status=JobStatus.completed),
        Job(job_status=JobStatus.paid),
        Job(job_status=JobStatus.in_progress),
        Job(job_status=JobStatus.assigned),
    ]

    stats = route_stats(jobs)

    assert stats.total_jobs == 4
    assert stats.completed_jobs == 2
    assert stats.in_progress_jobs == 1
    assert stats.pending_jobs == 1
    assert stats.completion_percentage == 50


def test_route_stats_empty_route():
    stats = route_stats([])

    assert stats.total_jobs == 0
    assert stats.completion_percentage == 0


def test_route_stats_rounds_percentage():
    jobs = [Job(job_status=JobStatus.completed), Job(job_status=JobStatus.assigned), Job(job_status=JobStatus.new)]

    assert route_stats(jobs).completion_percentage == 33


# Assignment

def test_assign_route_creates_jobs_in_order(db, service, make_engineer, make_customer):
    make_engineer()
    first = make_customer(business_name="First")
    second = make_customer(business_name="Second")

    response = service.assign_route(db, assign_request(
        {"customer_id": first.id, "order": 1, "arrivalTime": "09:10"},
        {"customer_id": second.id, "order": 2},
        total_distance=12500.0,
        polyLine="abc~def",
    ))

    assert response.jobs_assigned == 2
    assert response.errors is None
    assert response.message == "Successfully assigned 2 jobs to Sam Fielding"
    assert [j.route_order for j in response.assigned_jobs] == [1, 2]
    assert all(j.schedule_time == datetime(2026, 10, 19, 8, 0) for j in response.assigned_jobs)

    route = db.get(Route, response.route_id)
    assert route.status == RouteStatus.scheduled
    assert route.polyline == "abc~def"
    assert route.jobs[0]["arrivalTime"] == "09:10"

    customer = db.get(Customer, first.id)
    assert customer.status == CustomerStatus.assigned
    assert customer.assigned_engineer == ENGINEER_ID
    assert customer.scheduled_time == datetime(2026, 10, 19, 8, 0)


def test_assign_route_defaults_order_to_position(db, service, make_engineer, make_customer):
    make_engineer()
    customers = [make_customer(), make_customer()]

    response = service.assign_route(db, assign_request(*({"customer_id": c.id} for c in customers)))

    assert [j.route_order for j in response.assigned_jobs] == [1, 2]


def test_assign_route_reports_missing_customers(db, service, make_engineer, make_customer):
    make_engineer()
    customer = make_customer()

    response = service.assign_route(db, assign_request(
        {"customer_id": customer.id, "order": 1},
        {"customer_id": 9999, "order": 2},
    ))

    assert response.jobs_assigned == 1
    assert len(response.errors) == 1
    assert response.errors[0].customer_id == 9999
    assert response.errors[0].error == "Customer not found"
    assert db.query(Job).filter(Job.route_id == response.route_id).count() == 1


def test_assign_route_with_no_valid_stops_saves_nothing(db, service, make_engineer):
    make_engineer()

    with pytest.raises(ValidationError) as exc_info:
        service.assign_route(db, assign_request({"customer_id": 9998}, {"customer_id": 9999}))

    assert len(exc_info.value.details["errors"]) == 2
    assert db.query(Route).count() == 0
    assert db.query(Job).count() == 0


def test_assign_route_unknown_engineer(db, service, make_customer):
    customer = make_customer()

    with pytest.raises(NotFoundError, match="Engineer not found"):
        service.assign_route(db, assign_request({"customer_id": customer.id}))

    assert db.query(Route).count() == 0


# Reads

def test_summary_flags_for_scheduled_route(db, service, make_route):
    route = make_route(statuses=(JobStatus.assigned, JobStatus.completed))

    summary = service.get_for_engineer(db, ENGINEER_ID, route.id)

    assert summary.can_start is True
    assert summary.can_cancel is False
    assert summary.can_complete is False
    assert summary.stats.completion_percentage == 50
    assert [j.route_order for j in summary.route_jobs] == [1, 2]


def test_summary_can_complete_when_all_jobs_done(db, service, make_route):
    route = make_route(statuses=(JobStatus.completed, JobStatus.invoiced), status=RouteStatus.in_progress)

    summary = service.get_for_engineer(db, ENGINEER_ID, route.id)

    assert summary.can_complete is True
    assert summary.can_start is False
    assert summary.can_cancel is False


def test_route_of_another_engineer_is_not_found(db, service, make_route):
    route = make_route(engineer_id="someone-else")

    with pytest.raises(NotFoundError):
        service.get_for_engineer(db, ENGINEER_ID, route.id)


def test_list_for_engineer_filters_by_date_and_status(db, service, make_route):
    scheduled = make_route()
    make_route(status=RouteStatus.completed)

    by_status = service.list_for_engineer(db, ENGINEER_ID, on_date=ROUTE_DAY, status=RouteStatus.scheduled)
    other_day = service.list_for_engineer(db, ENGINEER_ID, on_date=date(2026, 10, 20))
    everything = service.list_for_engineer(db, ENGINEER_ID)

    assert [r.id for r in by_status] == [scheduled.id]
    assert other_day == []
    assert len(everything) == 2


def test_list_routes_and_detail(db, service, make_route):
    route = make_route(statuses=(JobStatus.assigned, JobStatus.assigned))

    listing = service.list_routes(db, on_date=ROUTE_DAY)
    detail = service.get_route_detail(db, route.id)

    assert [r.id for r in listing.routes] == [route.id]
    assert listing.routes[0].engineer.eng_name == "Sam Fielding"
    assert len(detail.jobs) == 2


def test_route_detail_not_found(db, service):
    with pytest.raises(NotFoundError):
        service.get_route_detail(db, 404)


# Lifecycle

def test_start_route(db, service, make_route):
    route = make_route()

    response = service.start_route(db, ENGINEER_ID, route.id, now=NOW)

    assert response.route.status == RouteStatus.in_progress
    assert response.route.started_at == NOW
    assert response.route.can_start is False


def test_start_route_twice_conflicts(db, service, make_route):
    route = make_route()
    service.start_route(db, ENGINEER_ID, route.id, now=NOW)

    with pytest.raises(ConflictError):
        service.start_route(db, ENGINEER_ID, route.id, now=NOW)


def test_complete_route_with_pending_jobs_conflicts(db, service, make_route):
    route = make_route(statuses=(JobStatus.completed, JobStatus.in_progress), status=RouteStatus.in_progress)

    with pytest.raises(ConflictError) as exc_info:
        service.complete_route(db, ENGINEER_ID, route.id, now=NOW)

    details = exc_info.value.details
    assert details["total_jobs"] == 2
    assert details["completed_jobs"] == 1
    assert details["pending_jobs"] == 1
    assert details["incomplete_statuses"][0]["status"] == "In Progress"
    db.expire_all()
    assert db.get(Route, route.id).status == RouteStatus.in_progress


def test_complete_route_without_jobs_conflicts(db, service, make_route):
    route = make_route(statuses=(), status=RouteStatus.in_progress)

    with pytest.raises(ConflictError, match="no jobs"):
        service.complete_route(db, ENGINEER_ID, route.id, now=NOW)


def test_complete_route_requires_in_progress(db, service, make_route):
    route = make_route(statuses=(JobStatus.completed,))

    with pytest.raises(ConflictError):
        service.complete_route(db, ENGINEER_ID, route.id, now=NOW)


def test_complete_route(db, service, make_route):
    route = make_route(statuses=(JobStatus.completed, JobStatus.paid), status=RouteStatus.in_progress)

    response = service.complete_route(db, ENGINEER_ID, route.id, now=NOW)

    assert response.route.status == RouteStatus.completed
    assert response.route.completed_at == NOW
    assert response.route.stats.completion_percentage == 100


def test_cancel_route_returns_customers_to_pool(db, service, make_route):
    route = make_route(statuses=(JobStatus.assigned, JobStatus.assigned, JobStatus.assigned))
    customer_ids = [j.customer_id for j in db.query(Job).filter(Job.route_id == route.id)]

    response = service.cancel_route(db, ENGINEER_ID, route.id, reason="Van broke down", now=NOW)

    assert response.jobs_cancelled == 3
    assert response.route.status == RouteStatus.cancelled
    assert response.route.cancellation_reason == "Van broke down"
    db.expire_all()
    jobs = db.query(Job).all()
    assert all(j.job_status == JobStatus.cancelled for j in jobs)
    assert all(j.route_id is None and j.route_order is None for j in jobs)
    for customer_id in customer_ids:
        customer = db.get(Customer, customer_id)
        assert customer.status == CustomerStatus.new
        assert customer.assigned_engineer is None
        assert customer.scheduled_time is None


def test_cancel_route_without_reason_stores_none(db, service, make_route):
    route = make_route()

    response = service.cancel_route(db, ENGINEER_ID, route.id, now=NOW)

    assert response.route.cancellation_reason is None
    db.expire_all()
    assert db.get(Route, route.id).cancellation_reason is None


def test_cancel_started_route_conflicts(db, service, make_route):
    route = make_route(status=RouteStatus.in_progress)

    with pytest.raises(ConflictError, match="Only scheduled routes"):
        service.cancel_route(db, ENGINEER_ID, route.id, now=NOW)

    db.expire_all()
    assert db.query(Job).filter(Job.route_id == route.id).count() == 1


def test_cancel_route_with_started_job_conflicts(db, service, make_route):
    route = make_route(statuses=(JobStatus.assigned, JobStatus.assigned))
    started = db.query(Job).filter(Job.route_id == route.id, Job.route_order == 1).one()
    time_tracking.open_session(db, job_id=started.id, engineer_id=ENGINEER_ID, now=NOW)
    started.job_status = JobStatus.in_progress
    db.commit()

    with pytest.raises(ConflictError, match="work on its jobs has begun") as exc_info:
        service.cancel_route(db, ENGINEER_ID, route.id, now=NOW)

    assert exc_info.value.details["started_jobs"] == [{"job_id": started.id, "status": "In Progress"}]
    assert exc_info.value.details["open_sessions"] == [started.id]
    db.expire_all()
    assert db.get(Route, route.id).status == RouteStatus.scheduled
    assert db.get(Job, started.id).job_status == JobStatus.in_progress
    assert db.query(Job).filter(Job.route_id == route.id).count() == 2


def test_cancel_route_with_open_session_conflicts(db, service, make_route):
    route = make_route()
    job = db.query(Job).filter(Job.route_id == route.id).one()
    time_tracking.open_session(db, job_id=job.id, engineer_id=ENGINEER_ID, now=NOW)
    db.commit()

    with pytest.raises(ConflictError) as exc_info:
        service.cancel_route(db, ENGINEER_ID, route.id, now=NOW)

    assert exc_info.value.details["started_jobs"] == []
    assert exc_info.value.details["open_sessions"] == [job.id]


@pytest.mark.parametrize("status", [JobStatus.quoted, JobStatus.working, JobStatus.completed])
def test_cancel_route_after_work_began_conflicts(db, service, make_route, status):
    route = make_route(statuses=(JobStatus.assigned, status))

    with pytest.raises(ConflictError):
        service.cancel_route(db, ENGINEER_ID, route.id, now=NOW)

    db.expire_all()
    assert db.get(Route, route.id).status == RouteStatus.scheduled


def test_cancel_route_job_started_concurrently_rolls_back(db, service, make_route, monkeypatch):
    route = make_route(statuses=(JobStatus.assigned, JobStatus.assigned))
    # One job left the cancellable set between the read and the conditional update
    monkeypatch.setattr(crud.job, "detach_from_route", lambda *args, **kwargs: 1)

    with pytest.raises(ConflictError, match="changed while cancelling"):
        service.cancel_route(db, ENGINEER_ID, route.id, now=NOW)

    db.expire_all()
    assert db.get(Route, route.id).status == RouteStatus.scheduled
    assert db.get(Route, route.id).cancelled_at is None


def test_cancel_route_of_another_engineer(db, service, make_route):
    route = make_route(engineer_id="someone-else")

    with pytest.raises(NotFoundError):
        service.cancel_route(db, ENGINEER_ID, route.id, now=NOW)


def test_cancelled_route_cannot_start(db, service, make_route):
    route = make_route()
    service.cancel_route(db, ENGINEER_ID, route.id, now=NOW)

    with pytest.raises(ConflictError):
        service.start_route(db, ENGINEER_ID, route.id, now=NOW)
