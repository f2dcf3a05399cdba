import logging
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app import schemas
from app.api import deps
from app.core.security import Principal
from app.services.route_optimizer import RouteOptimizer
from app.services.route_service import RouteService

router = APIRouter(prefix="/routes", tags=["routes"])
logger = logging.getLogger(__name__)

@router.post("/optimize", response_model=schemas.OptimizeRouteResponse)
async def optimize_route(
    *,
    db: Session = Depends(deps.get_db),
    request: schemas.OptimizeRouteRequest,
    optimizer: RouteOptimizer = Depends(deps.get_route_optimizer),
    _: Principal = Depends(deps.require_admin),
):
    """
    Sequence an engineer's day in the given stop order.

    Stops without coordinates are skipped; the route ends at the last stop.
    """
    logger.info(f"Sequencing {len(request.job_ids)} jobs for engineer {request.engineer_id}")
    return await optimizer.optimize_route(db, request)

@router.post("/assign", response_model=schemas.AssignRouteResponse, status_code=status.HTTP_201_CREATED)
def assign_route(
    *,
    db: Session = Depends(deps.get_db),
    request: schemas.AssignRouteRequest,
    service: RouteService = Depends(deps.get_route_service),
    _: Principal = Depends(deps.require_admin),
):
    """
    Save a sequenced route and create a job for every stop.
    """
    return service.assign_route(db, request)

@router.get("", response_model=schemas.RouteListResponse)
def read_routes(
    on_date: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(deps.get_db),
    service: RouteService = Depends(deps.get_route_service),
    _: Principal = Depends(deps.require_admin),
):
    return service.list_routes(db, on_date=on_date)

@router.get("/{route_id}", response_model=schemas.RouteDetailResponse)
def read_route(
    route_id: int,
    db: Session = Depends(deps.get_db),
    service: RouteService = Depends(deps.get_route_service),
    _: Principal = Depends(deps.require_admin),
):
    return service.get_route_detail(db, route_id)
