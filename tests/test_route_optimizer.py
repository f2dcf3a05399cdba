import pytest

from app.core.exceptions import ExternalServiceError, NotFoundError, ValidationError
from app.models.customer import Customer
from app.schemas.route import OptimizeRouteRequest
from app.services.clients.google_maps import GoogleMapsClientError
from app.services.route_optimizer import RouteOptimizationError, RouteOptimizer
from tests.conftest import ENGINEER_ID

# Test data
ORIGIN = (51.534377, -0.087891)  # Islington
TEST_STOPS = [
    (51.5074, -0.1278),   # Central London
    (51.4613, -0.1156),   # Brixton
    (51.5413, -0.0032),   # Stratford
]

def directions_response(legs, status="OK", polyline="enc0ded~line"):
    return {
        'status': status,
        'routes': [{
            'legs': [
                {'distance': {'value': meters}, 'duration': {'value': seconds}}
                for meters, seconds in legs
            ],
            'overview_polyline': {'points': polyline},
        }] if status == "OK" else [],
    }

# Fixtures
@pytest.fixture
def route_optimizer(maps_client):
    maps_client.get_directions.return_value = directions_response(
        [(5200, 900), (6100, 1230), (9800, 1501)]
    )
    return RouteOptimizer(maps_client)

@pytest.fixture
def stops():
    return [
        Customer(id=index + 1, business_name=f"Site {index + 1}", site_location=f"{index + 1} High Street",
                 latitude=lat, longitude=lng, priority=priority)
        for index, ((lat, lng), priority) in enumerate(zip(TEST_STOPS, ["High", None, "LOW"]))
    ]

@pytest.fixture
def geocoded_customers(make_engineer, make_customer):
    make_engineer(latitude=ORIGIN[0], longitude=ORIGIN[1])
    return [
        make_customer(business_name=f"Site {index + 1}", latitude=lat, longitude=lng)
        for index, (lat, lng) in enumerate(TEST_STOPS)
    ]

# Tests
@pytest.mark.asyncio
async def test_sequence_keeps_stop_order(route_optimizer, stops, maps_client):
    """Stops are sent as waypoints in order, ending at the last one."""
    await route_optimizer.sequence(ORIGIN, stops, consider_traffic=False)

    maps_client.get_directions.assert_awaited_once_with(
        origin=ORIGIN,
        destination=TEST_STOPS[-1],
        waypoints=TEST_STOPS[:-1],
        consider_traffic=False,
    )

@pytest.mark.asyncio
async def test_sequence_builds_legs(route_optimizer, stops):
    """Each stop carries the leg that reaches it, with drive time rounded up."""
    result = await route_optimizer.sequence(ORIGIN, stops)

    assert [job.id for job in result.optimized_jobs] == ["1", "2", "3"]
    assert [job.order for job in result.optimized_jobs] == [1, 2, 3]
    assert [job.travel_time_from_previous for job in result.optimized_jobs] == [15, 21, 26]
    assert [job.distance_from_previous for job in result.optimized_jobs] == [5200, 6100, 9800]
    assert result.total_distance == 21100
    assert result.total_time == 15 + 21 + 26
    assert result.polyline == "enc0ded~line"

@pytest.mark.asyncio
async def test_sequence_job_defaults(route_optimizer, stops):
    """Job cards get a reference, default duration and lower-cased priority."""
    result = await route_optimizer.sequence(ORIGIN, stops)

    first, second, third = result.optimized_jobs
    assert first.reference == "JOB-1"
    assert first.duration == 120
    assert first.priority == "high"
    assert second.priority == "normal"
    assert third.priority == "low"
    assert first.client_name == "Site 1"

@pytest.mark.asyncio
async def test_sequence_single_stop(route_optimizer, stops, maps_client):
    """A single stop is the destination with no waypoints."""
    maps_client.get_directions.return_value = directions_response([(1200, 240)])

    result = await route_optimizer.sequence(ORIGIN, stops[:1])

    assert maps_client.get_directions.await_args.kwargs['waypoints'] == []
    assert result.total_time == 4
    assert len(result.optimized_jobs) == 1

@pytest.mark.asyncio
async def test_sequence_no_route(route_optimizer, stops, maps_client):
    """A non-OK status is reported with the status text."""
    maps_client.get_directions.return_value = directions_response([], status="ZERO_RESULTS")

    with pytest.raises(RouteOptimizationError, match="ZERO_RESULTS"):
        await route_optimizer.sequence(ORIGIN, stops)

@pytest.mark.asyncio
async def test_sequence_client_error(route_optimizer, stops, maps_client):
    """Transport failures surface as optimization errors."""
    maps_client.get_directions.side_effect = GoogleMapsClientError("timed out")

    with pytest.raises(RouteOptimizationError, match="timed out"):
        await route_optimizer.sequence(ORIGIN, stops)

@pytest.mark.asyncio
async def test_optimize_route_in_requested_order(db, route_optimizer, geocoded_customers, maps_client):
    """Customers are visited in the order they were requested, duplicates dropped."""
    third, first, second = geocoded_customers[2], geocoded_customers[0], geocoded_customers[1]
    maps_client.get_directions.return_value = directions_response([(100, 60), (200, 60), (300, 60)])

    result = await route_optimizer.optimize_route(db, OptimizeRouteRequest(
        engineer_id=ENGINEER_ID,
        job_ids=[third.id, first.id, third.id, second.id],
    ))

    assert [job.id for job in result.optimized_jobs] == [str(third.id), str(first.id), str(second.id)]
    kwargs = maps_client.get_directions.await_args.kwargs
    assert kwargs['origin'] == ORIGIN
    assert kwargs['destination'] == TEST_STOPS[1]

@pytest.mark.asyncio
async def test_optimize_route_skips_ungeocoded(db, route_optimizer, geocoded_customers, make_customer, maps_client):
    """Customers without coordinates are left out of the route."""
    pending = make_customer(latitude=None, longitude=None)
    maps_client.get_directions.return_value = directions_response([(100, 60)])

    result = await route_optimizer.optimize_route(db, OptimizeRouteRequest(
        engineer_id=ENGINEER_ID,
        job_ids=[pending.id, geocoded_customers[0].id],
    ))

    assert [job.id for job in result.optimized_jobs] == [str(geocoded_customers[0].id)]

@pytest.mark.asyncio
async def test_optimize_route_unknown_engineer(db, route_optimizer, make_customer):
    customer = make_customer()

    with pytest.raises(NotFoundError, match="Engineer not found"):
        await route_optimizer.optimize_route(db, OptimizeRouteRequest(engineer_id=ENGINEER_ID, job_ids=[customer.id]))

@pytest.mark.asyncio
async def test_optimize_route_engineer_without_position(db, route_optimizer, make_engineer, make_customer):
    make_engineer(latitude=None, longitude=None)
    customer = make_customer()

    with pytest.raises(ValidationError):
        await route_optimizer.optimize_route(db, OptimizeRouteRequest(engineer_id=ENGINEER_ID, job_ids=[customer.id]))

@pytest.mark.asyncio
async def test_optimize_route_unknown_customers(db, route_optimizer, make_engineer):
    make_engineer()

    with pytest.raises(NotFoundError, match="Jobs not found"):
        await route_optimizer.optimize_route(db, OptimizeRouteRequest(engineer_id=ENGINEER_ID, job_ids=[404]))

@pytest.mark.asyncio
async def test_optimize_route_nothing_geocoded(db, route_optimizer, make_engineer, make_customer):
    make_engineer()
    customer = make_customer(latitude=None, longitude=None)

    with pytest.raises(ValidationError, match="valid coordinates"):
        await route_optimizer.optimize_route(db, OptimizeRouteRequest(engineer_id=ENGINEER_ID, job_ids=[customer.id]))

@pytest.mark.asyncio
async def test_optimize_route_api_error(db, route_optimizer, geocoded_customers, maps_client):
    """A failed directions call is reported to the caller as a 400."""
    maps_client.get_directions.return_value = {'status': 'REQUEST_DENIED', 'routes': []}

    with pytest.raises(ExternalServiceError) as exc_info:
        await route_optimizer.optimize_route(db, OptimizeRouteRequest(
            engineer_id=ENGINEER_ID, job_ids=[geocoded_customers[0].id],
        ))

    assert exc_info.value.status_code == 400

# Run tests
if __name__ == "__main__":
    pytest.main(["-v", "tests/test_route_optimizer.py"])
