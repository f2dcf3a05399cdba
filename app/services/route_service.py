"""
Route assignment and lifecycle.

A route moves scheduled -> in_progress -> completed, and may be cancelled
only while still scheduled. Each move is a conditional update on the
route's current status. The stats and ``can_*`` flags are derived from
the live job rows on every read and never stored.
"""
import logging
from datetime import date, datetime
from typing import List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app import crud
from app.core.clock import service_local_now, utcnow
from app.core.config import settings
from app.core.exceptions import ConflictError, DispatchError, NotFoundError, ValidationError
from app.models.customer import CustomerStatus
from app.models.job import Job, JobStatus
from app.models.route import Route, RouteStatus
from app.schemas.job import Job as JobSchema
from app.schemas.route import (
    AssignRouteRequest,
    AssignRouteResponse,
    Route as RouteSchema,
    RouteDetailResponse,
    RouteJobError,
    RouteListResponse,
    RouteStats,
    RouteSummary,
    RouteTransitionResponse,
    RouteWithEngineer,
)
from app.services.job_status import ROUTE_CANCELLABLE_STATUSES, is_job_completed, is_job_in_progress

logger = logging.getLogger(__name__)


def route_stats(jobs: Sequence[Job]) -> RouteStats:
    total = len(jobs)
    completed = sum(1 for j in jobs if is_job_completed(j.job_status))
    in_progress = sum(1 for j in jobs if is_job_in_progress(j.job_status))
    return RouteStats(
        total_jobs=total,
        completed_jobs=completed,
        in_progress_jobs=in_progress,
        pending_jobs=total - completed - in_progress,
        completion_percentage=round(completed / total * 100) if total else 0,
    )


def route_day_start(on_date: date) -> datetime:
    """Scheduled time stamped on every job of a route day."""
    return datetime.combine(on_date, settings.ROUTE_DAY_START_TIME)


class RouteService:
    def __init__(self):
        self.logger = logging.getLogger(__name__)

    # Reads

    def today(self) -> date:
        return service_local_now().date()

    def build_summary(self, db: Session, route: Route) -> RouteSummary:
        jobs = crud.job.get_by_route(db, route_id=route.id)
        stats = route_stats(jobs)
        all_done = stats.total_jobs > 0 and stats.completed_jobs == stats.total_jobs
        return RouteSummary(
            **RouteSchema.model_validate(route).model_dump(),
            route_jobs=[JobSchema.model_validate(j) for j in jobs],
            stats=stats,
            can_start=route.status == RouteStatus.scheduled,
            can_complete=route.status == RouteStatus.in_progress and all_done,
            can_cancel=route.status == RouteStatus.scheduled and all(
                JobStatus.parse(j.job_status) in ROUTE_CANCELLABLE_STATUSES for j in jobs
            ),
        )

    def _get_engineer_route(self, db: Session, engineer_id: str, route_id: int) -> Route:
        route = crud.route.get_for_engineer(db, route_id=route_id, engineer_id=engineer_id)
        if route is None:
            raise NotFoundError("Route not found")
        return route

    def get_for_engineer(self, db: Session, engineer_id: str, route_id: int) -> RouteSummary:
        return self.build_summary(db, self._get_engineer_route(db, engineer_id, route_id))

    def list_for_engineer(
        self,
        db: Session,
        engineer_id: str,
        on_date: Optional[date] = None,
        status: Optional[RouteStatus] = None,
    ) -> List[RouteSummary]:
        routes = crud.route.get_multi_for_engineer(db, engineer_id=engineer_id, on_date=on_date, status=status)
        return [self.build_summary(db, r) for r in routes]

    def list_routes(self, db: Session, on_date: Optional[date] = None) -> RouteListResponse:
        routes = crud.route.get_multi_by_date(db, on_date=on_date)
        return RouteListResponse(routes=[RouteWithEngineer.model_validate(r) for r in routes])

    def get_route_detail(self, db: Session, route_id: int) -> RouteDetailResponse:
        route = crud.route.get(db, route_id)
        if route is None:
            raise NotFoundError("Route not found")
        jobs = crud.job.get_by_route(db, route_id=route.id)
        return RouteDetailResponse(
            route=RouteWithEngineer.model_validate(route),
            jobs=[JobSchema.model_validate(j) for j in jobs],
        )

    # Assignment

    def assign_route(self, db: Session, request: AssignRouteRequest) -> AssignRouteResponse:
        """
        Persist a sequenced route and create one job per stop.

        A stop that fails is recorded in ``errors`` and the rest are still
        assigned. If no stop can be assigned nothing is saved.

        Raises:
            NotFoundError: Unknown engineer
            ValidationError: None of the stops could be assigned
        """
        engineer = crud.engineer.get(db, request.engineer_id)
        if engineer is None:
            raise NotFoundError("Engineer not found")

        route = crud.route.create(db, obj_in={
            "engineer_id": request.engineer_id,
            "date": request.date,
            "status": RouteStatus.scheduled,
            "jobs": [stop.model_dump() for stop in request.jobs],
            "total_distance": request.total_distance,
            "polyline": request.polyline,
        })

        scheduled_time = route_day_start(request.date)
        assigned: List[Job] = []
        errors: List[RouteJobError] = []

        for index, stop in enumerate(request.jobs):
            try:
                with db.begin_nested():
                    customer = crud.customer.get(db, stop.customer_id)
                    if customer is None:
                        raise NotFoundError("Customer not found")
                    job = crud.job.create(db, obj_in={
                        "customer_id": customer.id,
                        "engineer_uuid": engineer.id,
                        "engineer_name": engineer.eng_name,
                        "description": customer.description_of_fault or "Route job",
                        "site_location": customer.site_location,
                        "customer_latitude": customer.latitude,
                        "customer_longitude": customer.longitude,
                        "site_contact_name": customer.site_contact_name,
                        "site_contact_number": customer.site_contact_number,
                        "business_name": customer.business_name,
                        "system_details": customer.system_details,
                        "job_status": JobStatus.assigned,
                        "open_time": customer.opening_hours or "N/A",
                        "schedule_time": scheduled_time,
                        "route_id": route.id,
                        "route_order": stop.order or index + 1,
                    })
                    crud.customer.update(db, db_obj=customer, obj_in={
                        "status": CustomerStatus.assigned,
                        "assigned_engineer": engineer.id,
                        "scheduled_time": scheduled_time,
                    })
                assigned.append(job)
            except (DispatchError, SQLAlchemyError) as e:
                message = e.message if isinstance(e, DispatchError) else str(e)
                self.logger.warning(f"Could not assign customer {stop.customer_id} to route {route.id}: {message}")
                errors.append(RouteJobError(customer_id=stop.customer_id, error=message))

        if not assigned:
            db.rollback()
            raise ValidationError(
                "No jobs could be assigned",
                details={"errors": [e.model_dump() for e in errors]},
            )

        db.commit()
        self.logger.info(
            f"Route {route.id} assigned to {engineer.eng_name} for {request.date}: "
            f"{len(assigned)} jobs, {len(errors)} errors"
        )
        return AssignRouteResponse(
            route_id=route.id,
            jobs_assigned=len(assigned),
            assigned_jobs=[JobSchema.model_validate(j) for j in assigned],
            errors=errors or None,
            message=f"Successfully assigned {len(assigned)} jobs to {engineer.eng_name}",
        )

    # Lifecycle

    def _transition(
        self,
        db: Session,
        route: Route,
        expected: RouteStatus,
        values: dict,
    ) -> Route:
        updated = crud.route.update_status_if(db, route_id=route.id, expected=expected, values=values)
        if updated is None:
            db.rollback()
            raise ConflictError("Route status changed concurrently, please retry")
        return updated

    def start_route(
        self, db: Session, engineer_id: str, route_id: int, now: Optional[datetime] = None
    ) -> RouteTransitionResponse:
        now = now or utcnow()
        route = self._get_engineer_route(db, engineer_id, route_id)
        if route.status != RouteStatus.scheduled:
            raise ConflictError(
                f"Route cannot be started. Current status: {route.status.value}",
                details={"status": route.status.value},
            )

        route = self._transition(db, route, RouteStatus.scheduled, {
            "status": RouteStatus.in_progress,
            "started_at": now,
        })
        db.commit()
        self.logger.info(f"Route {route_id} started by engineer {engineer_id}")
        return RouteTransitionResponse(message="Route started successfully", route=self.build_summary(db, route))

    def complete_route(
        self, db: Session, engineer_id: str, route_id: int, now: Optional[datetime] = None
    ) -> RouteTransitionResponse:
        """
        Close a route once every one of its jobs is done.

        Raises:
            NotFoundError: No such route for this engineer
            ConflictError: Route not in progress, has no jobs, or has jobs pending
        """
        now = now or utcnow()
        route = self._get_engineer_route(db, engineer_id, route_id)
        if route.status != RouteStatus.in_progress:
            raise ConflictError(
                f"Route must be in progress to complete. Current status: {route.status.value}",
                details={"status": route.status.value},
            )

        jobs = crud.job.get_by_route(db, route_id=route.id)
        if not jobs:
            raise ConflictError("Route has no jobs to complete")

        pending = [j for j in jobs if not is_job_completed(j.job_status)]
        if pending:
            raise ConflictError(
                "Cannot complete route. Some jobs are not completed yet.",
                details={
                    "total_jobs": len(jobs),
                    "completed_jobs": len(jobs) - len(pending),
                    "pending_jobs": len(pending),
                    "incomplete_statuses": [
                        {"job_id": j.id, "status": JobStatus.parse(j.job_status).value} for j in pending
                    ],
                },
            )

        route = self._transition(db, route, RouteStatus.in_progress, {
            "status": RouteStatus.completed,
            "completed_at": now,
        })
        db.commit()
        self.logger.info(f"Route {route_id} completed by engineer {engineer_id}")
        return RouteTransitionResponse(message="Route completed successfully", route=self.build_summary(db, route))

    def cancel_route(
        self,
        db: Session,
        engineer_id: str,
        route_id: int,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> RouteTransitionResponse:
        """
        Cancel a route that has not started and return its customers to the pool.

        Linked jobs become Cancelled and lose their route linkage; linked
        customers go back to ``new`` with no engineer or scheduled time.
        A route is refused once any of its jobs has been started, even
        while the route itself is still scheduled.

        Raises:
            NotFoundError: No such route for this engineer
            ConflictError: The route is no longer scheduled, or work on one of its jobs has begun
        """
        now = now or utcnow()
        route = self._get_engineer_route(db, engineer_id, route_id)
        if route.status != RouteStatus.scheduled:
            raise ConflictError(
                f"Only scheduled routes can be cancelled. Current status: {route.status.value}",
                details={"status": route.status.value},
            )

        jobs = crud.job.get_by_route(db, route_id=route.id)
        started = [j for j in jobs if JobStatus.parse(j.job_status) not in ROUTE_CANCELLABLE_STATUSES]
        open_sessions = crud.time_tracking.get_open_for_jobs(db, job_ids=[j.id for j in jobs])
        if started or open_sessions:
            raise ConflictError(
                "Route cannot be cancelled once work on its jobs has begun",
                details={
                    "started_jobs": [{"job_id": j.id, "status": j.job_status.value} for j in started],
                    "open_sessions": sorted({e.job_id for e in open_sessions}),
                },
            )
        customer_ids = [j.customer_id for j in jobs]

        route = self._transition(db, route, RouteStatus.scheduled, {
            "status": RouteStatus.cancelled,
            "cancelled_at": now,
            "cancellation_reason": reason,
        })
        cancelled = crud.job.detach_from_route(
            db, route_id=route.id, status=JobStatus.cancelled, expected=ROUTE_CANCELLABLE_STATUSES
        )
        if cancelled != len(jobs):
            db.rollback()
            raise ConflictError("Route jobs changed while cancelling, please retry")
        crud.customer.reset_to_unassigned(db, ids=customer_ids)
        db.commit()

        self.logger.info(f"Route {route_id} cancelled: {cancelled} jobs cancelled, reason: {reason or 'n/a'}")
        return RouteTransitionResponse(
            message="Route cancelled successfully",
            route=self.build_summary(db, route),
            jobs_cancelled=cancelled,
        )
