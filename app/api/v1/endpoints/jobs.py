import logging
from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app import crud, schemas
from app.api import deps
from app.core.security import Principal, ensure_engineer_access
from app.services.job_service import JobService

router = APIRouter(tags=["jobs"])
logger = logging.getLogger(__name__)

@router.post("/assign-job", response_model=schemas.AssignJobResponse, status_code=status.HTTP_201_CREATED)
def assign_job(
    *,
    db: Session = Depends(deps.get_db),
    request: schemas.JobAssignRequest,
    service: JobService = Depends(deps.get_job_service),
    _: Principal = Depends(deps.require_admin),
):
    """
    Assign a customer to an engineer as a new job.
    """
    job = service.assign_job(db, request)
    return schemas.AssignJobResponse(job=schemas.Job.model_validate(job))

@router.get("/jobs/available", response_model=List[schemas.Customer])
def read_available_jobs(
    db: Session = Depends(deps.get_db),
    skip: int = 0,
    limit: int = 100,
    _: Principal = Depends(deps.get_current_principal),
):
    """
    Retrieve customers waiting for an engineer.
    """
    return crud.customer.get_available(db, skip=skip, limit=limit)

@router.post("/start-job", response_model=schemas.StartJobResponse)
async def start_job(
    *,
    db: Session = Depends(deps.get_db),
    request: schemas.StartJobRequest,
    service: JobService = Depends(deps.get_job_service),
    principal: Principal = Depends(deps.get_current_principal),
):
    """
    Start or resume the timer on a job.

    The engineer must be within range of the site during its opening hours.
    """
    ensure_engineer_access(principal, request.engineer_id)
    return await service.start_job(db, request)

@router.post("/pause-job", response_model=schemas.PauseJobResponse)
def pause_job(
    *,
    db: Session = Depends(deps.get_db),
    request: schemas.JobActionRequest,
    service: JobService = Depends(deps.get_job_service),
    principal: Principal = Depends(deps.get_current_principal),
):
    ensure_engineer_access(principal, request.engineer_id)
    return service.pause_job(db, request.job_id, request.engineer_id)

@router.post("/resume-job", response_model=schemas.ResumeJobResponse)
def resume_job(
    *,
    db: Session = Depends(deps.get_db),
    request: schemas.JobActionRequest,
    service: JobService = Depends(deps.get_job_service),
    principal: Principal = Depends(deps.get_current_principal),
):
    ensure_engineer_access(principal, request.engineer_id)
    return service.resume_job(db, request.job_id, request.engineer_id)

@router.post("/verify-location", response_model=schemas.VerifyLocationResponse)
def verify_location(
    *,
    db: Session = Depends(deps.get_db),
    request: schemas.VerifyLocationRequest,
    service: JobService = Depends(deps.get_job_service),
    principal: Principal = Depends(deps.get_current_principal),
):
    """
    Check whether the engineer is close enough to the site.
    """
    ensure_engineer_access(principal, request.engineer_id)
    return service.verify_location(db, request)

@router.post("/submit-job-quote", response_model=schemas.SubmitQuoteResponse)
async def submit_job_quote(
    *,
    db: Session = Depends(deps.get_db),
    request: schemas.SubmitQuoteRequest,
    service: JobService = Depends(deps.get_job_service),
    principal: Principal = Depends(deps.get_current_principal),
):
    """
    Pause the timer and send the job for quote approval.
    """
    ensure_engineer_access(principal, request.engineer_id)
    return await service.submit_quote(db, request)

@router.post("/end-job", response_model=schemas.EndJobResponse)
async def end_job(
    *,
    db: Session = Depends(deps.get_db),
    request: schemas.EndJobRequest,
    service: JobService = Depends(deps.get_job_service),
    principal: Principal = Depends(deps.get_current_principal),
):
    """
    Close the time entry and mark the job completed.
    """
    ensure_engineer_access(principal, request.engineer_id)
    return await service.end_job(db, request)

@router.patch("/jobs/{job_id}/status", response_model=schemas.Job)
def update_job_status(
    *,
    db: Session = Depends(deps.get_db),
    job_id: int,
    status_in: schemas.JobStatusUpdate,
    service: JobService = Depends(deps.get_job_service),
    _: Principal = Depends(deps.require_admin),
):
    """
    Move a job to its next status (quote approval, invoicing, payment).
    """
    return service.update_status(db, job_id, status_in.status)
