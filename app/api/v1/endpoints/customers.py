from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app import crud, schemas
from app.api import deps
from app.core.config import settings
from app.core.security import Principal
from app.models.customer import Customer
from app.services.geocoding import GeocodingService
from app.services.job_service import JobService

router = APIRouter(tags=["customers"])

def _as_unscheduled_job(customer: Customer) -> schemas.UnscheduledJob:
    return schemas.UnscheduledJob(
        id=str(customer.id),
        reference=f"JOB-{customer.id}",
        client_name=customer.business_name,
        address=customer.site_location,
        latitude=customer.latitude,
        longitude=customer.longitude,
        duration=settings.DEFAULT_JOB_DURATION_MINUTES,
        priority=(customer.priority or "normal").lower(),
        post_code=customer.post_code,
        opening_hours=customer.opening_hours,
        description=customer.description_of_fault,
        scheduled_time=customer.scheduled_time,
    )

@router.post("/geocode", response_model=schemas.GeocodeResponse)
async def geocode_address(
    *,
    db: Session = Depends(deps.get_db),
    request: schemas.GeocodeRequest,
    service: GeocodingService = Depends(deps.get_geocoding_service),
    _: Principal = Depends(deps.get_current_principal),
):
    """
    Geocode a site address, reusing stored or cached coordinates when available.
    """
    return await service.geocode(
        db,
        address=request.address,
        postcode=request.postcode,
        customer_id=request.customer_id,
    )

@router.get("/customers/unscheduled", response_model=List[schemas.UnscheduledJob])
def read_unscheduled_customers(
    on_date: Optional[date] = Query(None, alias="date"),
    priority: Optional[str] = None,
    db: Session = Depends(deps.get_db),
    _: Principal = Depends(deps.require_admin),
):
    """
    Customers not yet on any route, as job cards for planning.
    """
    customers = crud.customer.get_unscheduled(db, on_date=on_date, priority=priority)
    return [_as_unscheduled_job(c) for c in customers]

@router.delete("/customers/{customer_id}", response_model=schemas.DeleteCustomerResponse)
def delete_customer(
    customer_id: int,
    db: Session = Depends(deps.get_db),
    service: JobService = Depends(deps.get_job_service),
    _: Principal = Depends(deps.require_admin),
):
    """
    Delete a customer together with its jobs and their time entries.
    """
    return service.delete_customer(db, customer_id)
