from datetime import date
from typing import Optional
from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from app import crud, schemas
from app.api import deps
from app.core.exceptions import NotFoundError, ValidationError
from app.core.security import Principal, ensure_engineer_access
from app.models.route import RouteStatus
from app.services.job_service import JobService
from app.services.route_service import RouteService

router = APIRouter(prefix="/engineers", tags=["engineers"])

ALL = "all"

def _parse_date_filter(value: Optional[str], default: date) -> Optional[date]:
    if value is None:
        return default
    if value == ALL:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"Invalid date: {value}")

def _parse_status_filter(value: Optional[str]) -> Optional[RouteStatus]:
    if value is None or value == ALL:
        return None
    try:
        return RouteStatus(value)
    except ValueError:
        raise ValidationError(f"Invalid route status: {value}")

@router.get("/{engineer_id}/active-job", response_model=schemas.ActiveJobResponse)
def read_active_job(
    engineer_id: str,
    db: Session = Depends(deps.get_db),
    service: JobService = Depends(deps.get_job_service),
    principal: Principal = Depends(deps.get_current_principal),
):
    """
    The engineer's open time entry with its running total.
    """
    ensure_engineer_access(principal, engineer_id)
    return service.get_active_job(db, engineer_id)

@router.get("/{engineer_id}/jobs", response_model=schemas.EngineerJobsResponse)
def read_engineer_jobs(
    engineer_id: str,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(deps.get_db),
    service: JobService = Depends(deps.get_job_service),
    principal: Principal = Depends(deps.get_current_principal),
):
    """
    Customers waiting for an engineer, plus this engineer's active and completed jobs.
    """
    ensure_engineer_access(principal, engineer_id)
    return service.list_engineer_jobs(db, engineer_id, skip=skip, limit=limit)

@router.put("/{engineer_id}/location", response_model=schemas.EngineerLocationResponse)
def update_engineer_location(
    *,
    engineer_id: str,
    db: Session = Depends(deps.get_db),
    location_in: schemas.EngineerLocationUpdate,
    principal: Principal = Depends(deps.get_current_principal),
):
    ensure_engineer_access(principal, engineer_id)
    engineer = crud.engineer.get(db, engineer_id)
    if engineer is None:
        raise NotFoundError("Engineer not found")
    engineer = crud.engineer.update(db, db_obj=engineer, obj_in=location_in)
    db.commit()
    db.refresh(engineer)
    return schemas.EngineerLocationResponse(engineer=schemas.Engineer.model_validate(engineer))

@router.get("/{engineer_id}/routes", response_model=schemas.EngineerRoutesResponse)
def read_engineer_routes(
    engineer_id: str,
    date_filter: Optional[str] = Query(None, alias="date"),
    status_filter: Optional[str] = Query(None, alias="status"),
    db: Session = Depends(deps.get_db),
    service: RouteService = Depends(deps.get_route_service),
    principal: Principal = Depends(deps.get_current_principal),
):
    """
    Routes for one engineer. The date defaults to today; pass `all` to list every date.
    """
    ensure_engineer_access(principal, engineer_id)
    routes = service.list_for_engineer(
        db,
        engineer_id,
        on_date=_parse_date_filter(date_filter, service.today()),
        status=_parse_status_filter(status_filter),
    )
    return schemas.EngineerRoutesResponse(routes=routes, count=len(routes))

@router.get("/{engineer_id}/routes/{route_id}", response_model=schemas.EngineerRouteResponse)
def read_engineer_route(
    engineer_id: str,
    route_id: int,
    db: Session = Depends(deps.get_db),
    service: RouteService = Depends(deps.get_route_service),
    principal: Principal = Depends(deps.get_current_principal),
):
    ensure_engineer_access(principal, engineer_id)
    return schemas.EngineerRouteResponse(route=service.get_for_engineer(db, engineer_id, route_id))

@router.put("/{engineer_id}/routes/{route_id}/start", response_model=schemas.RouteTransitionResponse)
def start_route(
    engineer_id: str,
    route_id: int,
    db: Session = Depends(deps.get_db),
    service: RouteService = Depends(deps.get_route_service),
    principal: Principal = Depends(deps.get_current_principal),
):
    ensure_engineer_access(principal, engineer_id)
    return service.start_route(db, engineer_id, route_id)

@router.put("/{engineer_id}/routes/{route_id}/complete", response_model=schemas.RouteTransitionResponse)
def complete_route(
    engineer_id: str,
    route_id: int,
    db: Session = Depends(deps.get_db),
    service: RouteService = Depends(deps.get_route_service),
    principal: Principal = Depends(deps.get_current_principal),
):
    """
    Complete a route once all of its jobs are done.
    """
    ensure_engineer_access(principal, engineer_id)
    return service.complete_route(db, engineer_id, route_id)

@router.put("/{engineer_id}/routes/{route_id}/cancel", response_model=schemas.RouteTransitionResponse)
def cancel_route(
    engineer_id: str,
    route_id: int,
    cancel_in: Optional[schemas.RouteCancelRequest] = Body(None),
    db: Session = Depends(deps.get_db),
    service: RouteService = Depends(deps.get_route_service),
    principal: Principal = Depends(deps.get_current_principal),
):
    """
    Cancel a scheduled route and release its customers.
    """
    ensure_engineer_access(principal, engineer_id)
    reason = cancel_in.reason if cancel_in else None
    return service.cancel_route(db, engineer_id, route_id, reason=reason)
