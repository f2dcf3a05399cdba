from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Optional

from app.models.customer import CustomerStatus

class CustomerUpdate(BaseModel):
    status: Optional[CustomerStatus] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    formatted_address: Optional[str] = None
    assigned_engineer: Optional[str] = None
    scheduled_time: Optional[datetime] = None

class Customer(BaseModel):
    id: int
    status: CustomerStatus
    business_name: Optional[str] = None
    site_location: Optional[str] = None
    post_code: Optional[str] = None
    description_of_fault: Optional[str] = None
    site_contact_name: Optional[str] = None
    site_contact_number: Optional[str] = None
    priority: Optional[str] = None
    opening_hours: Optional[str] = None
    scheduled_time: Optional[datetime] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    formatted_address: Optional[str] = None
    assigned_engineer: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class UnscheduledJob(BaseModel):
    """A `new` customer presented as a job card for route planning."""
    id: str
    reference: str
    client_name: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    duration: int
    priority: str
    post_code: Optional[str] = None
    opening_hours: Optional[str] = None
    description: Optional[str] = None
    scheduled_time: Optional[datetime] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class GeocodeRequest(BaseModel):
    customer_id: Optional[int] = None
    address: Optional[str] = None
    postcode: Optional[str] = None

class GeocodeResponse(BaseModel):
    latitude: float
    longitude: float
    formatted_address: Optional[str] = None
    cached: bool = False

class DeleteCustomerResponse(BaseModel):
    success: bool = True
    message: str
    jobs_deleted: int
    time_entries_deleted: int
