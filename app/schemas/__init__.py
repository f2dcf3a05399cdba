from .job import (
    Job, JobUpdate, JobAssignRequest, JobActionRequest, StartJobRequest, VerifyLocationRequest,
    EndJobRequest, SubmitQuoteRequest, JobStatusUpdate, AssignJobResponse, StartJobResponse,
    PauseJobResponse, ResumeJobResponse, VerifyLocationResponse, EndJobResponse,
    SubmitQuoteResponse, ActiveJobResponse, EngineerJob, EngineerJobCounts, EngineerJobsResponse,
)
from .time_tracking import TimeEntry, TimeEntryUpdate
from .customer import (
    Customer, CustomerUpdate, UnscheduledJob, GeocodeRequest, GeocodeResponse, DeleteCustomerResponse,
)
from .engineer import Engineer, EngineerLocationUpdate, EngineerLocationResponse
from .route import (
    OptimizeRouteRequest, OptimizedJob, OptimizeRouteResponse, RouteJobIn, AssignRouteRequest,
    RouteCreate, RouteJobError, AssignRouteResponse, RouteCancelRequest, RouteStats, Route,
    RouteSummary, RouteWithEngineer, RouteDetailResponse, RouteListResponse,
    EngineerRoutesResponse, EngineerRouteResponse, RouteTransitionResponse,
)

__all__ = [
    'Job', 'JobUpdate', 'JobAssignRequest', 'JobActionRequest', 'StartJobRequest', 'VerifyLocationRequest',
    'EndJobRequest', 'SubmitQuoteRequest', 'JobStatusUpdate', 'AssignJobResponse', 'StartJobResponse',
    'PauseJobResponse', 'ResumeJobResponse', 'VerifyLocationResponse', 'EndJobResponse',
    'SubmitQuoteResponse', 'ActiveJobResponse', 'EngineerJob', 'EngineerJobCounts', 'EngineerJobsResponse',
    'TimeEntry', 'TimeEntryUpdate',
    'Customer', 'CustomerUpdate', 'UnscheduledJob', 'GeocodeRequest', 'GeocodeResponse', 'DeleteCustomerResponse',
    'Engineer', 'EngineerLocationUpdate', 'EngineerLocationResponse',
    'OptimizeRouteRequest', 'OptimizedJob', 'OptimizeRouteResponse', 'RouteJobIn', 'AssignRouteRequest',
    'RouteCreate', 'RouteJobError', 'AssignRouteResponse', 'RouteCancelRequest', 'RouteStats', 'Route',
    'RouteSummary', 'RouteWithEngineer', 'RouteDetailResponse', 'RouteListResponse',
    'EngineerRoutesResponse', 'EngineerRouteResponse', 'RouteTransitionResponse',
]
