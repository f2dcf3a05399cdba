import httpx
import logging
from typing import List, Dict, Any, Optional, Tuple
from app.core.config import settings

logger = logging.getLogger(__name__)

LatLng = Tuple[float, float]

class GoogleMapsClientError(Exception):
    """Custom exception for Google Maps client errors"""
    pass

def _point(location: LatLng) -> str:
    return f"{location[0]},{location[1]}"

class GoogleMapsClient:
    """
    A client for the Google Maps web services used by dispatch:
    geocoding, distance matrix and directions.

    One instance is created at startup and shared; it owns a pooled
    ``httpx.AsyncClient`` that is closed on shutdown.
    """

    def __init__(
        self,
        api_key: str = None,
        base_url: str = None,
        timeout: int = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the Google Maps client.

        Args:
            api_key: Google Maps API key
            base_url: Base URL for the Maps web services
            timeout: Request timeout in seconds
            http_client: Optional pre-built httpx client (for testing)
        """
        self.api_key = api_key or settings.GOOGLE_MAPS_API_KEY
        self.base_url = base_url or settings.GOOGLE_MAPS_BASE_URL
        self.timeout = timeout or settings.GOOGLE_MAPS_TIMEOUT

        if not self.api_key:
            raise ValueError("Google Maps API key is required")
        if not self.base_url:
            raise ValueError("Google Maps base URL is required")

        self._http = http_client or httpx.AsyncClient(timeout=self.timeout)

    async def close(self) -> None:
        await self._http.aclose()

    async def _make_request(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Make a GET request to a Maps web service.

        Args:
            endpoint: API endpoint (without base URL), e.g. ``geocode/json``
            params: Query parameters; the API key is added here

        Returns:
            JSON response from the API

        Raises:
            GoogleMapsClientError: If the request fails
        """
        url = f"{self.base_url.rstrip('/')}/{endpoint.lstrip('/')}"
        params = dict(params)
        params['key'] = self.api_key

        try:
            response = await self._http.get(url, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            error_msg = f"Google Maps API error ({e.response.status_code}): {e.response.text}"
            logger.error(error_msg)
            raise GoogleMapsClientError(error_msg)
        except Exception as e:
            error_msg = f"Error making request to Google Maps API: {str(e)}"
            logger.error(error_msg)
            raise GoogleMapsClientError(error_msg)

    async def geocode(self, query: str) -> Optional[Dict[str, Any]]:
        """
        Geocode a free-text address.

        Returns:
            ``{"lat", "lng", "formatted_address"}`` or None when nothing matched

        Raises:
            GoogleMapsClientError: If the request fails
        """
        data = await self._make_request('geocode/json', {'address': query})
        if data.get('status') != 'OK' or not data.get('results'):
            logger.info(f"No geocoding result for '{query}' (status={data.get('status')})")
            return None
        result = data['results'][0]
        location = result['geometry']['location']
        return {
            'lat': location['lat'],
            'lng': location['lng'],
            'formatted_address': result.get('formatted_address'),
        }

    async def get_driving_distance(self, origin: LatLng, destination: LatLng) -> Optional[float]:
        """
        Driving distance between two points from the Distance Matrix API.

        Never raises: any failure yields None so callers can fall back to
        a straight-line distance. ``ZERO_RESULTS`` is also reported as
        None, since the API returns it for unroutable pairs as well as
        for coincident points.

        Returns:
            Distance in meters, or None if unavailable
        """
        try:
            data = await self._make_request(
                'distancematrix/json',
                {'origins': _point(origin), 'destinations': _point(destination)},
            )
        except GoogleMapsClientError as e:
            logger.warning(f"Driving distance unavailable: {str(e)}")
            return None

        rows = data.get('rows') or []
        if not rows or not rows[0].get('elements'):
            logger.error("Google API returned invalid data structure")
            return None

        element = rows[0]['elements'][0]
        status = element.get('status')
        if status == 'OK' and element.get('distance', {}).get('value') is not None:
            return float(element['distance']['value'])
        if status == 'ZERO_RESULTS':
            logger.info("Distance Matrix returned ZERO_RESULTS")
            return None
        logger.error(f"Google API element status: {status}")
        return None

    async def get_directions(
        self,
        origin: LatLng,
        destination: LatLng,
        waypoints: Optional[List[LatLng]] = None,
        consider_traffic: bool = True,
    ) -> Dict[str, Any]:
        """
        Driving directions through ``waypoints`` in the given order.

        Args:
            origin: Start point
            destination: Final stop
            waypoints: Intermediate stops, visited in order (never reordered)
            consider_traffic: Ask for a live-traffic estimate departing now

        Returns:
            The raw Directions API response

        Raises:
            GoogleMapsClientError: If the request fails
        """
        params = {
            'origin': _point(origin),
            'destination': _point(destination),
            'mode': 'driving',
        }
        if waypoints:
            params['waypoints'] = '|'.join(_point(w) for w in waypoints)
        if consider_traffic:
            params['departure_time'] = 'now'
            params['traffic_model'] = 'best_guess'

        return await self._make_request('directions/json', params)
