from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import Any, List, Optional

from app.models.job import JobStatus
from app.models.time_tracking import CalculationMethod
from app.schemas.customer import Customer
from app.schemas.time_tracking import TimeEntry

class JobBase(BaseModel):
    customer_id: int
    engineer_uuid: Optional[str] = None
    engineer_name: Optional[str] = None
    description: Optional[str] = None
    site_location: Optional[str] = None
    customer_latitude: Optional[float] = None
    customer_longitude: Optional[float] = None
    site_contact_name: Optional[str] = None
    site_contact_number: Optional[str] = None
    business_name: Optional[str] = None
    system_details: Optional[str] = None
    open_time: Optional[str] = None
    schedule_time: Optional[datetime] = None

class JobUpdate(BaseModel):
    description: Optional[str] = None
    site_location: Optional[str] = None
    site_contact_name: Optional[str] = None
    site_contact_number: Optional[str] = None
    business_name: Optional[str] = None
    system_details: Optional[str] = None

class Job(JobBase):
    id: int
    job_status: JobStatus
    route_id: Optional[int] = None
    route_order: Optional[int] = None
    image_urls: Optional[List[str]] = None
    product_names: Optional[List[str]] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

# Requests

class JobAssignRequest(BaseModel):
    customer_id: int
    engineer_uuid: str
    engineer_name: Optional[str] = None
    description: Optional[str] = None
    site_location: Optional[str] = None
    customer_latitude: Optional[float] = None
    customer_longitude: Optional[float] = None
    site_contact_name: Optional[str] = None
    site_contact_number: Optional[str] = None
    open_time: Optional[str] = None
    opening_hours: Optional[str] = None
    business_name: Optional[str] = None
    system_details: Optional[str] = None

class JobActionRequest(BaseModel):
    job_id: int
    engineer_id: str = Field(..., min_length=1)

class StartJobRequest(JobActionRequest):
    # Optional here so a missing fix is reported as "Location required"
    engineer_latitude: Optional[float] = None
    engineer_longitude: Optional[float] = None

class VerifyLocationRequest(JobActionRequest):
    engineer_latitude: float = Field(..., ge=-90, le=90)
    engineer_longitude: float = Field(..., ge=-180, le=180)

class EndJobRequest(JobActionRequest):
    image_data: Optional[str] = None
    products: List[Any] = Field(default_factory=list)
    manual_duration_minutes: Optional[int] = Field(None, ge=0)
    time_adjustment_minutes: int = 0
    adjustment_reason: str = ""

class SubmitQuoteRequest(JobActionRequest):
    image_urls: List[str] = Field(default_factory=list)
    product_names: List[str] = Field(default_factory=list)
    notes: str = ""

class JobStatusUpdate(BaseModel):
    status: JobStatus

    @field_validator('status', mode='before')
    def parse_legacy_status(cls, v):
        parsed = JobStatus.parse(v)
        if parsed is None:
            raise ValueError(f"Unknown job status: {v}")
        return parsed

# Responses

class AssignJobResponse(BaseModel):
    success: bool = True
    job: Job

class StartJobResponse(BaseModel):
    success: bool = True
    message: str
    time_entry: TimeEntry
    job_status: JobStatus

class PauseJobResponse(BaseModel):
    success: bool = True
    paused_at: datetime
    session_minutes: int
    total_minutes: int
    accumulated_minutes: int

class ResumeJobResponse(BaseModel):
    success: bool = True
    resumed_at: datetime
    accumulated_minutes: int
    job_status: JobStatus

class VerifyLocationResponse(BaseModel):
    within_range: bool
    distance: Optional[int] = None
    threshold: float

class EndJobResponse(BaseModel):
    success: bool = True
    total_duration_minutes: int
    calculation_method: CalculationMethod
    image_url: Optional[str] = None
    products_count: int = 0

class SubmitQuoteResponse(BaseModel):
    success: bool = True
    job: Job
    time_paused_at_minutes: int = 0

class ActiveJobResponse(BaseModel):
    job_id: int
    engineer_id: str
    start_time: datetime
    accumulated_minutes: int
    is_paused: bool
    paused_at: Optional[datetime] = None
    resumed_at: Optional[datetime] = None
    current_total_minutes: int
    job_status: JobStatus
    image_urls: Optional[List[str]] = None

class EngineerJob(Job):
    tracked_minutes: int = 0
    is_paused: bool = False

class EngineerJobCounts(BaseModel):
    available: int = 0
    active: int = 0
    completed: int = 0

class EngineerJobsResponse(BaseModel):
    available_jobs: List[Customer]
    active_jobs: List[EngineerJob]
    completed_jobs: List[EngineerJob]
    counts: EngineerJobCounts
