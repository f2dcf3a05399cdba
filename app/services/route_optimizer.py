import logging
import math
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from app import crud
from app.core.config import settings
from app.core.exceptions import ExternalServiceError, NotFoundError, ValidationError
from app.models.customer import Customer
from app.schemas.route import OptimizedJob, OptimizeRouteRequest, OptimizeRouteResponse
from app.services.clients.google_maps import GoogleMapsClient, GoogleMapsClientError

# Type aliases
Location = Tuple[float, float]  # (latitude, longitude)

logger = logging.getLogger(__name__)


class RouteOptimizationError(Exception):
    """Custom exception for route optimization errors"""
    pass


class RouteOptimizer:
    """Sequences an engineer's day through the Google Directions API.

    Stops are visited in the order the dispatcher chose; the routing
    service only fills in the leg-by-leg distance and drive time. The
    route ends at the last stop rather than returning to the origin.
    """

    def __init__(self, maps_client: GoogleMapsClient):
        """
        Initialize the route optimizer.

        Args:
            maps_client: Shared GoogleMapsClient instance
        """
        self.maps_client = maps_client
        self.logger = logging.getLogger(__name__)

    async def sequence(
        self,
        origin: Location,
        stops: Sequence[Customer],
        consider_traffic: bool = True,
    ) -> OptimizeRouteResponse:
        """
        Compute legs for ``stops`` visited in order from ``origin``.

        Args:
            origin: Engineer's current position
            stops: Geocoded customers in visiting order
            consider_traffic: Ask for a live-traffic estimate

        Returns:
            One OptimizedJob per stop plus route totals and the overview polyline

        Raises:
            RouteOptimizationError: If the directions request fails or finds no route
        """
        if not stops:
            raise RouteOptimizationError("No stops to sequence")

        points = [(c.latitude, c.longitude) for c in stops]
        try:
            data = await self.maps_client.get_directions(
                origin=origin,
                destination=points[-1],
                waypoints=points[:-1],
                consider_traffic=consider_traffic,
            )
        except GoogleMapsClientError as e:
            raise RouteOptimizationError(f"Route calculation failed: {str(e)}")

        status = data.get('status')
        if status != 'OK' or not data.get('routes'):
            self.logger.error(f"Directions API returned {status}: {data.get('error_message')}")
            raise RouteOptimizationError(f"Route calculation failed: {status}")

        route = data['routes'][0]
        legs: List[Dict[str, Any]] = route.get('legs') or []

        optimized_jobs = []
        total_distance = 0.0
        total_time = 0
        for index, customer in enumerate(stops):
            leg = legs[index] if index < len(legs) else {}
            distance = float((leg.get('distance') or {}).get('value') or 0)
            travel_time = math.ceil(((leg.get('duration') or {}).get('value') or 0) / 60)
            total_distance += distance
            total_time += travel_time

            optimized_jobs.append(OptimizedJob(
                id=str(customer.id),
                reference=f"JOB-{customer.id}",
                client_name=customer.business_name,
                address=customer.site_location,
                latitude=customer.latitude,
                longitude=customer.longitude,
                duration=settings.DEFAULT_JOB_DURATION_MINUTES,
                priority=(customer.priority or "normal").lower(),
                order=index + 1,
                travel_time_from_previous=travel_time,
                distance_from_previous=distance,
            ))

        self.logger.info(
            f"Route calculated: {len(optimized_jobs)} stops, {total_distance / 1000:.1f}km total"
        )
        return OptimizeRouteResponse(
            optimized_jobs=optimized_jobs,
            total_distance=total_distance,
            total_time=total_time,
            polyline=(route.get('overview_polyline') or {}).get('points'),
        )

    async def optimize_route(self, db: Session, request: OptimizeRouteRequest) -> OptimizeRouteResponse:
        """
        Look up the engineer and customers, then sequence them.

        Customers without coordinates are left out silently; at least one
        geocoded stop is required.

        Raises:
            NotFoundError: Unknown engineer, or none of the customers exist
            ValidationError: Engineer has no position, or no stop is geocoded
            ExternalServiceError: The directions request failed
        """
        engineer = crud.engineer.get(db, request.engineer_id)
        if engineer is None:
            raise NotFoundError("Engineer not found")
        if engineer.latitude is None or engineer.longitude is None:
            raise ValidationError(
                "Engineer location not available. Please update engineer's GPS location."
            )

        customers = crud.customer.get_many(db, ids=request.job_ids)
        if not customers:
            raise NotFoundError("Jobs not found")

        by_id = {c.id: c for c in customers if c.has_coordinates()}
        if not by_id:
            raise ValidationError("No jobs have valid coordinates. Please geocode addresses first.")

        ordered = self._in_requested_order(request.job_ids, by_id)
        skipped = len(customers) - len(by_id)
        if skipped:
            self.logger.info(f"Skipping {skipped} job(s) without coordinates")

        self.logger.info(f"Calculating route for {engineer.eng_name} with {len(ordered)} jobs")
        try:
            return await self.sequence(
                (engineer.latitude, engineer.longitude),
                ordered,
                consider_traffic=request.consider_traffic,
            )
        except RouteOptimizationError as e:
            raise ExternalServiceError(str(e))

    @staticmethod
    def _in_requested_order(job_ids: List[int], by_id: Dict[int, Customer]) -> List[Customer]:
        ordered: List[Customer] = []
        seen: set = set()
        for job_id in job_ids:
            customer: Optional[Customer] = by_id.get(job_id)
            if customer is not None and job_id not in seen:
                ordered.append(customer)
                seen.add(job_id)
        return ordered
