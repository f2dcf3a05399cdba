from datetime import date, datetime
from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.models.route import RouteStatus
from app.schemas.engineer import Engineer
from app.schemas.job import Job

# Sequencing

class OptimizeRouteRequest(BaseModel):
    """Request model for sequencing an engineer's day."""
    engineer_id: str
    job_ids: List[int] = Field(..., description="Customer ids in visiting order")
    consider_traffic: bool = True

    @field_validator('job_ids')
    def validate_job_ids(cls, v):
        if not v:
            raise ValueError("At least one job must be provided")
        return v

class OptimizedJob(BaseModel):
    """One stop of a sequenced route, with the leg that reaches it."""
    id: str
    reference: str
    client_name: Optional[str] = None
    address: Optional[str] = None
    latitude: float
    longitude: float
    duration: int = Field(..., description="Expected time on site in minutes")
    priority: str = "normal"
    arrival_time: str = "--:--"
    departure_time: str = "--:--"
    order: int
    travel_time_from_previous: int = Field(0, description="Minutes driving from the previous stop")
    distance_from_previous: float = Field(0, description="Meters driving from the previous stop")

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class OptimizeRouteResponse(BaseModel):
    optimized_jobs: List[OptimizedJob]
    total_distance: float = Field(..., description="Meters")
    total_time: int = Field(..., description="Driving minutes")
    estimated_finish: str = "--:--"
    polyline: Optional[str] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

# Assignment

class RouteJobIn(BaseModel):
    """A stop as submitted for assignment; extra keys are kept in the route snapshot."""
    customer_id: int
    order: int = 0

    model_config = ConfigDict(extra="allow")

class AssignRouteRequest(BaseModel):
    engineer_id: str
    date: date
    jobs: List[RouteJobIn]
    total_distance: Optional[float] = None
    polyline: Optional[str] = Field(None, alias="polyLine")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator('jobs')
    def validate_jobs(cls, v):
        if not v:
            raise ValueError("At least one job must be provided")
        return v

class RouteCreate(BaseModel):
    engineer_id: str
    date: date
    jobs: List[Any]
    total_distance: Optional[float] = None
    polyline: Optional[str] = None
    status: RouteStatus = RouteStatus.scheduled

class RouteJobError(BaseModel):
    customer_id: Any
    error: str

class AssignRouteResponse(BaseModel):
    success: bool = True
    route_id: int
    jobs_assigned: int
    assigned_jobs: List[Job]
    errors: Optional[List[RouteJobError]] = None
    message: str

# Lifecycle

class RouteCancelRequest(BaseModel):
    reason: Optional[str] = None

class RouteStats(BaseModel):
    total_jobs: int = 0
    completed_jobs: int = 0
    in_progress_jobs: int = 0
    pending_jobs: int = 0
    completion_percentage: int = 0

class Route(BaseModel):
    id: int
    engineer_id: str
    date: date
    status: RouteStatus
    jobs: List[Any] = Field(default_factory=list, description="Stop snapshot taken at assignment")
    total_distance: Optional[float] = None
    polyline: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class RouteSummary(Route):
    """A route with its live job rows and the derived, never-stored flags."""
    route_jobs: List[Job] = Field(default_factory=list)
    stats: RouteStats
    can_start: bool
    can_complete: bool
    can_cancel: bool

class RouteWithEngineer(Route):
    engineer: Optional[Engineer] = None

class RouteDetailResponse(BaseModel):
    route: RouteWithEngineer
    jobs: List[Job]

class RouteListResponse(BaseModel):
    routes: List[RouteWithEngineer]

class EngineerRoutesResponse(BaseModel):
    routes: List[RouteSummary]
    count: int

class EngineerRouteResponse(BaseModel):
    route: RouteSummary

class RouteTransitionResponse(BaseModel):
    success: bool = True
    message: str
    route: RouteSummary
    jobs_cancelled: Optional[int] = None
