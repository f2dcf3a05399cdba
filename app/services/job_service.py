import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app import crud
from app.core.clock import utcnow
from app.core.config import settings
from app.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.models.customer import Customer, CustomerStatus
from app.models.job import Job, JobStatus
from app.models.time_tracking import TimeTracking
from app.schemas.customer import Customer as CustomerSchema, DeleteCustomerResponse
from app.schemas.job import (
    ActiveJobResponse,
    EndJobRequest,
    EndJobResponse,
    EngineerJob,
    EngineerJobCounts,
    EngineerJobsResponse,
    Job as JobSchema,
    JobAssignRequest,
    PauseJobResponse,
    ResumeJobResponse,
    StartJobRequest,
    StartJobResponse,
    SubmitQuoteRequest,
    SubmitQuoteResponse,
    VerifyLocationRequest,
    VerifyLocationResponse,
)
from app.schemas.time_tracking import TimeEntry
from app.services import time_tracking
from app.services.clients.google_maps import GoogleMapsClient, LatLng
from app.services.clients.webhook import WebhookSender
from app.services.geo import haversine_distance, is_within_opening_hours
from app.services.job_status import (
    ADMIN_TARGETS,
    ENDABLE_STATUSES,
    STARTABLE_STATUSES,
    ensure_transition,
    is_job_completed,
)

logger = logging.getLogger(__name__)


class JobService:
    """
    Job lifecycle as driven by engineers in the field and by admins.

    Every status change is a conditional update against the status that
    was read, so two requests racing on the same job cannot both win.
    """

    def __init__(self, maps_client: GoogleMapsClient, webhook_sender: WebhookSender):
        self.maps_client = maps_client
        self.webhooks = webhook_sender
        self.logger = logging.getLogger(__name__)

    # Lookups

    def _get_job(self, db: Session, job_id: int) -> Job:
        job = crud.job.get(db, job_id)
        if job is None:
            raise NotFoundError("Job not found")
        return job

    def _get_open_session(self, db: Session, job_id: int, engineer_id: str) -> TimeTracking:
        entry = crud.time_tracking.get_open(db, job_id=job_id, engineer_id=engineer_id)
        if entry is None:
            raise NotFoundError("No active time entry found")
        return entry

    @staticmethod
    def _site_coordinates(job: Job, customer: Optional[Customer]) -> Optional[LatLng]:
        if job.customer_latitude is not None and job.customer_longitude is not None:
            return job.customer_latitude, job.customer_longitude
        if customer is not None and customer.has_coordinates():
            return customer.latitude, customer.longitude
        return None

    def _rollback(self, db: Session, operation: str) -> None:
        try:
            db.rollback()
        except SQLAlchemyError as e:
            self.logger.error(f"Rollback failed during {operation}: {str(e)}")

    async def measure_distance(self, origin: LatLng, destination: LatLng) -> float:
        """
        Driving distance in meters, falling back to great-circle distance.

        Points closer than ``COINCIDENT_DEGREES`` on both axes are treated
        as the same place without asking the routing service.
        """
        if (
            abs(origin[0] - destination[0]) < settings.COINCIDENT_DEGREES
            and abs(origin[1] - destination[1]) < settings.COINCIDENT_DEGREES
        ):
            return 0.0

        distance = await self.maps_client.get_driving_distance(origin, destination)
        if distance is None:
            self.logger.warning("Driving distance unavailable, using straight-line distance")
            distance = haversine_distance(origin[0], origin[1], destination[0], destination[1])
        return distance

    # Assignment

    def assign_job(self, db: Session, request: JobAssignRequest, now: Optional[datetime] = None) -> Job:
        """
        Create an Assigned job for a customer and mark the customer assigned.

        Raises:
            NotFoundError: Unknown customer
        """
        now = now or utcnow()
        customer = crud.customer.get(db, request.customer_id)
        if customer is None:
            raise NotFoundError("Customer not found")

        open_time = request.open_time or request.opening_hours or customer.opening_hours or "N/A"
        latitude = request.customer_latitude if request.customer_latitude is not None else customer.latitude
        longitude = request.customer_longitude if request.customer_longitude is not None else customer.longitude

        job = crud.job.create(db, obj_in={
            "customer_id": customer.id,
            "engineer_uuid": request.engineer_uuid,
            "engineer_name": request.engineer_name,
            "description": request.description or customer.description_of_fault or "Job assignment",
            "site_location": request.site_location or customer.site_location,
            "customer_latitude": latitude,
            "customer_longitude": longitude,
            "site_contact_name": request.site_contact_name or customer.site_contact_name,
            "site_contact_number": request.site_contact_number or customer.site_contact_number,
            "business_name": request.business_name or customer.business_name,
            "system_details": request.system_details or customer.system_details,
            "job_status": JobStatus.assigned,
            "open_time": open_time,
            "schedule_time": customer.scheduled_time or now,
        })
        crud.customer.update(db, db_obj=customer, obj_in={
            "status": CustomerStatus.assigned,
            "assigned_engineer": request.engineer_uuid,
        })
        db.commit()
        db.refresh(job)
        self.logger.info(f"Assigned customer {customer.id} to engineer {request.engineer_uuid} as job {job.id}")
        return job

    # Engineer actions

    async def start_job(
        self, db: Session, request: StartJobRequest, now: Optional[datetime] = None
    ) -> StartJobResponse:
        """
        Start (or resume) the timer on a job once the engineer is on site.

        Checks, in order: the job exists and is startable, no running
        session, the engineer's position is given and within
        ``START_JOB_MAX_DISTANCE_M`` of the site, and the site is open.

        Raises:
            NotFoundError: Unknown job or customer
            ForbiddenError: The job is waiting for quote approval
            ConflictError: Wrong status, or a session is already running
            ValidationError: Missing location, site too far, or site closed
        """
        now = now or utcnow()
        job = self._get_job(db, request.job_id)
        status = JobStatus.parse(job.job_status)

        if status == JobStatus.quoted:
            raise ForbiddenError(
                "Cannot start job with Quoted status. Please wait for admin approval.",
                details={"job_status": status.value},
            )
        if status not in STARTABLE_STATUSES:
            raise ConflictError(
                f"Cannot start job with status '{status.value}'",
                details={"job_status": status.value},
            )

        entry = crud.time_tracking.get_open(db, job_id=job.id, engineer_id=request.engineer_id)
        if entry is not None and not entry.is_paused:
            raise ConflictError("Time tracking already active for this job")

        if request.engineer_latitude is None or request.engineer_longitude is None:
            raise ValidationError(
                "Location required",
                details={"message": "Please enable location services to start the job."},
            )

        customer = crud.customer.get(db, job.customer_id)
        if customer is None:
            raise NotFoundError("Customer not found")

        site = self._site_coordinates(job, customer)
        if site is None:
            raise ValidationError(
                "Customer location missing",
                details={
                    "message": f"Customer location not available for {job.site_location or 'this site'}. "
                               "Please contact admin to geocode this address.",
                },
            )

        engineer_position = (request.engineer_latitude, request.engineer_longitude)
        distance = await self.measure_distance(engineer_position, site)
        if distance > settings.START_JOB_MAX_DISTANCE_M:
            raise ValidationError(
                "Location verification failed",
                details={
                    "message": f"You must be within {settings.START_JOB_MAX_DISTANCE_M / 1000:g}km "
                               f"of the job site. You are {distance / 1000:.2f}km away.",
                    "distance": round(distance),
                    "threshold": settings.START_JOB_MAX_DISTANCE_M,
                },
            )

        opening_hours = customer.opening_hours or job.open_time
        if not is_within_opening_hours(opening_hours, now):
            raise ValidationError(
                "Time verification failed",
                details={"message": f"Job can only be started during opening hours: {opening_hours}"},
            )

        target = JobStatus.in_progress
        if entry is not None:
            time_tracking.resume_session(db, entry, now)
            message = "Job resumed"
        else:
            entry = time_tracking.open_session(
                db,
                job_id=job.id,
                engineer_id=request.engineer_id,
                now=now,
                latitude=request.engineer_latitude,
                longitude=request.engineer_longitude,
            )
            message = "Job started"

        if crud.job.update_status_if(db, job_id=job.id, expected=status, values={"job_status": target}) is None:
            self._rollback(db, "start job")
            raise ConflictError("Job status changed while starting, please retry")

        db.commit()
        db.refresh(entry)
        self.logger.info(f"{message}: job {job.id} by engineer {request.engineer_id} ({round(distance)}m from site)")
        return StartJobResponse(
            message=message,
            time_entry=TimeEntry.model_validate(entry),
            job_status=target,
        )

    def pause_job(
        self, db: Session, job_id: int, engineer_id: str, now: Optional[datetime] = None
    ) -> PauseJobResponse:
        """
        Bank the running segment and pause the session.

        Raises:
            NotFoundError: No open session for this job and engineer
            ConflictError: The session is already paused
        """
        now = now or utcnow()
        entry = self._get_open_session(db, job_id, engineer_id)
        if entry.is_paused:
            raise ConflictError("Job is already paused", details={"accumulated_minutes": entry.accumulated_minutes})

        session_minutes = time_tracking.pause_session(db, entry, now)
        db.commit()
        self.logger.info(f"Paused job {job_id} for engineer {engineer_id}: +{session_minutes} min")
        return PauseJobResponse(
            paused_at=now,
            session_minutes=session_minutes,
            total_minutes=entry.accumulated_minutes,
            accumulated_minutes=entry.accumulated_minutes,
        )

    def resume_job(
        self, db: Session, job_id: int, engineer_id: str, now: Optional[datetime] = None
    ) -> ResumeJobResponse:
        """
        Restart the live segment of a paused session.

        A job resumed after its quote was approved moves to Working.

        Raises:
            NotFoundError: No open session for this job and engineer
            ConflictError: The session is not paused
        """
        now = now or utcnow()
        entry = self._get_open_session(db, job_id, engineer_id)
        if not entry.is_paused:
            raise ConflictError("Job is not paused", details={"accumulated_minutes": entry.accumulated_minutes})

        time_tracking.resume_session(db, entry, now)

        job = self._get_job(db, job_id)
        status = JobStatus.parse(job.job_status)
        if status == JobStatus.approved:
            updated = crud.job.update_status_if(
                db, job_id=job_id, expected=JobStatus.approved, values={"job_status": JobStatus.working}
            )
            if updated is not None:
                status = JobStatus.working

        db.commit()
        self.logger.info(f"Resumed job {job_id} for engineer {engineer_id}")
        return ResumeJobResponse(
            resumed_at=now,
            accumulated_minutes=entry.accumulated_minutes,
            job_status=status,
        )

    async def submit_quote(
        self, db: Session, request: SubmitQuoteRequest, now: Optional[datetime] = None
    ) -> SubmitQuoteResponse:
        """
        Stop the clock and hand the job to an admin for quote approval.

        The status precondition is checked before any time is banked, and
        the banking and the In Progress -> Quoted move share one
        transaction.

        Raises:
            NotFoundError: Unknown job
            ConflictError: The job is not In Progress (or was quoted concurrently)
        """
        now = now or utcnow()
        job = self._get_job(db, request.job_id)
        status = JobStatus.parse(job.job_status)

        if status in (JobStatus.quoted, JobStatus.approved):
            raise ConflictError(
                "Quote already submitted",
                details={"message": f'This job already has status "{status.value}".'},
            )
        if status != JobStatus.in_progress:
            raise ConflictError(
                "Cannot submit quote",
                details={"message": "This job is not in 'In Progress' status.", "job_status": status.value},
            )

        paused_minutes = 0
        entry = crud.time_tracking.get_open(db, job_id=job.id, engineer_id=request.engineer_id)
        try:
            if entry is not None:
                if not entry.is_paused:
                    time_tracking.pause_session(db, entry, now)
                paused_minutes = entry.accumulated_minutes or 0
        except ConflictError:
            self._rollback(db, "quote submission")
            raise

        updated = crud.job.update_status_if(
            db,
            job_id=job.id,
            expected=JobStatus.in_progress,
            values={
                "job_status": JobStatus.quoted,
                "image_urls": request.image_urls,
                "product_names": request.product_names,
                "notes": request.notes,
            },
        )
        if updated is None:
            self._rollback(db, "quote submission")
            raise ConflictError(
                "Quote already submitted",
                details={"message": "This job is not in 'In Progress' status."},
            )

        db.commit()
        self.logger.info(f"Quote submitted for job {job.id} by engineer {request.engineer_id}")

        await self.webhooks.send(settings.WEBHOOK_JOB_QUOTE_URL, {
            "job_id": job.id,
            "engineer_id": request.engineer_id,
            "image_urls": request.image_urls,
            "product_names": request.product_names,
            "notes": request.notes,
            "status": "Quote",
            "time_paused_at_minutes": paused_minutes,
            "timestamp": now.isoformat(),
        })

        return SubmitQuoteResponse(job=JobSchema.model_validate(updated), time_paused_at_minutes=paused_minutes)

    async def end_job(
        self, db: Session, request: EndJobRequest, now: Optional[datetime] = None
    ) -> EndJobResponse:
        """
        Close the session, complete the job and notify the end-job webhook.

        Raises:
            NotFoundError: No open session, or unknown job
            ConflictError: The job cannot be completed from its current status
        """
        now = now or utcnow()
        entry = self._get_open_session(db, request.job_id, request.engineer_id)
        job = self._get_job(db, request.job_id)
        status = JobStatus.parse(job.job_status)
        if status not in ENDABLE_STATUSES:
            raise ConflictError(
                f"Cannot end job with status '{status.value}'",
                details={"job_status": status.value},
            )
        ensure_transition(status, JobStatus.completed)

        final = time_tracking.compute_final_duration(
            entry,
            now,
            manual_duration_minutes=request.manual_duration_minutes,
            time_adjustment_minutes=request.time_adjustment_minutes,
            adjustment_reason=request.adjustment_reason,
        )
        time_tracking.close_session(db, entry, final, now)

        if crud.job.update_status_if(
            db, job_id=job.id, expected=status, values={"job_status": JobStatus.completed}
        ) is None:
            self._rollback(db, "end job")
            raise ConflictError("Job status changed while ending, please retry")

        customer = crud.customer.get(db, job.customer_id)
        if customer is not None:
            crud.customer.update(db, db_obj=customer, obj_in={"status": CustomerStatus.completed})

        db.commit()
        self.logger.info(
            f"Ended job {job.id}: {final.total_minutes} min ({final.calculation_method.value})"
        )

        await self.webhooks.send(settings.WEBHOOK_END_JOB_URL, {
            "job_id": job.id,
            "engineer_id": request.engineer_id,
            "duration_minutes": final.total_minutes,
            "calculation_method": final.calculation_method.value,
            "adjustment_reason": final.adjustment_reason,
            "end_time": now.isoformat(),
            "image_url": request.image_data,
            "products_used": request.products,
        })

        return EndJobResponse(
            total_duration_minutes=final.total_minutes,
            calculation_method=final.calculation_method,
            image_url=request.image_data,
            products_count=len(request.products),
        )

    def verify_location(self, db: Session, request: VerifyLocationRequest) -> VerifyLocationResponse:
        """Straight-line proximity check; a site without coordinates always passes."""
        job = self._get_job(db, request.job_id)
        customer = crud.customer.get(db, job.customer_id)
        threshold = settings.VERIFY_LOCATION_THRESHOLD_M

        site = self._site_coordinates(job, customer)
        if site is None:
            return VerifyLocationResponse(within_range=True, threshold=threshold)

        distance = haversine_distance(request.engineer_latitude, request.engineer_longitude, site[0], site[1])
        return VerifyLocationResponse(
            within_range=distance <= threshold,
            distance=round(distance),
            threshold=threshold,
        )

    def get_active_job(
        self, db: Session, engineer_id: str, now: Optional[datetime] = None
    ) -> ActiveJobResponse:
        now = now or utcnow()
        entry = crud.time_tracking.get_latest_open_for_engineer(db, engineer_id=engineer_id)
        if entry is None:
            raise NotFoundError("No active job found")
        job = crud.job.get(db, entry.job_id)
        if job is None:
            raise NotFoundError("No active job found")

        return ActiveJobResponse(
            job_id=job.id,
            engineer_id=engineer_id,
            start_time=entry.start_time,
            accumulated_minutes=entry.accumulated_minutes or 0,
            is_paused=entry.is_paused,
            paused_at=entry.paused_at,
            resumed_at=entry.resumed_at,
            current_total_minutes=time_tracking.current_total_minutes(entry, now),
            job_status=JobStatus.parse(job.job_status),
            image_urls=job.image_urls,
        )

    def list_engineer_jobs(
        self,
        db: Session,
        engineer_id: str,
        skip: int = 0,
        limit: int = 100,
        now: Optional[datetime] = None,
    ) -> EngineerJobsResponse:
        """
        The field app's job board: unassigned customers, then the engineer's
        own jobs split into active and completed.

        Each of the three lists is paged with the same ``skip``/``limit``;
        ``counts`` carries the unpaged totals.
        """
        now = now or utcnow()
        jobs = crud.job.get_by_engineer(db, engineer_id=engineer_id)
        entries = crud.time_tracking.get_for_jobs(db, job_ids=[j.id for j in jobs])

        tracked: Dict[int, int] = {}
        paused: Dict[int, bool] = {}
        for entry in entries:
            if entry.end_time is None:
                minutes = time_tracking.current_total_minutes(entry, now)
                paused[entry.job_id] = entry.is_paused
            else:
                minutes = entry.duration_minutes or 0
            tracked[entry.job_id] = tracked.get(entry.job_id, 0) + minutes

        active: List[EngineerJob] = []
        completed: List[EngineerJob] = []
        for job in jobs:
            card = EngineerJob(
                **JobSchema.model_validate(job).model_dump(),
                tracked_minutes=tracked.get(job.id, 0),
                is_paused=paused.get(job.id, False),
            )
            (completed if is_job_completed(job.job_status) else active).append(card)

        return EngineerJobsResponse(
            available_jobs=[
                CustomerSchema.model_validate(c) for c in crud.customer.get_available(db, skip=skip, limit=limit)
            ],
            active_jobs=active[skip:skip + limit],
            completed_jobs=completed[skip:skip + limit],
            counts=EngineerJobCounts(
                available=crud.customer.count_available(db),
                active=len(active),
                completed=len(completed),
            ),
        )

    # Admin actions

    def update_status(self, db: Session, job_id: int, target: JobStatus) -> Job:
        """
        Move a job along the admin-owned part of the lifecycle.

        Raises:
            NotFoundError: Unknown job
            ValidationError: The target is only reachable through an engineer action
            ConflictError: The move is not allowed from the current status
        """
        if target not in ADMIN_TARGETS:
            raise ValidationError(
                f"Status '{target.value}' is set by engineer actions",
                details={"allowed": sorted(s.value for s in ADMIN_TARGETS)},
            )
        job = self._get_job(db, job_id)
        current = JobStatus.parse(job.job_status)
        ensure_transition(current, target)

        updated = crud.job.update_status_if(db, job_id=job_id, expected=current, values={"job_status": target})
        if updated is None:
            self._rollback(db, "status update")
            raise ConflictError("Job status changed concurrently, please retry")

        db.commit()
        db.refresh(updated)
        self.logger.info(f"Job {job_id} moved from {current.value} to {target.value}")
        return updated

    def delete_customer(self, db: Session, customer_id: int) -> DeleteCustomerResponse:
        """Delete a customer with its jobs and their time entries."""
        customer = crud.customer.get(db, customer_id)
        if customer is None:
            raise NotFoundError("Customer not found")

        job_ids = [j.id for j in crud.job.get_by_customer(db, customer_id=customer_id)]
        entries_deleted = crud.time_tracking.delete_for_jobs(db, job_ids=job_ids)
        jobs_deleted = crud.job.delete_many(db, ids=job_ids)
        crud.customer.remove(db, id=customer_id)
        db.commit()

        self.logger.info(
            f"Deleted customer {customer_id} with {jobs_deleted} jobs and {entries_deleted} time entries"
        )
        return DeleteCustomerResponse(
            message="Customer and related data deleted successfully",
            jobs_deleted=jobs_deleted,
            time_entries_deleted=entries_deleted,
        )

