import hashlib
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app import crud
from app.core.cache import RedisCache
from app.core.config import settings
from app.core.exceptions import ExternalServiceError, NotFoundError, ValidationError
from app.schemas.customer import GeocodeResponse
from app.services.clients.google_maps import GoogleMapsClient, GoogleMapsClientError

logger = logging.getLogger(__name__)


class GeocodingService:
    """Resolve site addresses to coordinates, avoiding repeat lookups.

    Lookup order: coordinates already stored on the customer, then the
    Redis cache, then the Geocoding API.
    """

    def __init__(self, maps_client: GoogleMapsClient, cache: Optional[RedisCache] = None):
        self.maps_client = maps_client
        self.cache = cache
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def build_query(address: Optional[str], postcode: Optional[str]) -> str:
        parts = [p.strip() for p in (address, postcode) if p and p.strip()]
        parts.append(settings.GEOCODE_REGION_SUFFIX)
        return ", ".join(parts)

    @staticmethod
    def _cache_key(query: str) -> str:
        digest = hashlib.sha1(query.lower().encode("utf-8")).hexdigest()
        return f"geocode:{digest}"

    async def geocode(
        self,
        db: Session,
        *,
        address: Optional[str] = None,
        postcode: Optional[str] = None,
        customer_id: Optional[int] = None,
    ) -> GeocodeResponse:
        """
        Geocode an address, caching the result on the customer when given.

        Raises:
            ValidationError: Neither address nor postcode given
            NotFoundError: The geocoder found nothing
            ExternalServiceError: The geocoder could not be reached
        """
        if not address and not postcode:
            raise ValidationError("Missing address/postcode")

        customer = crud.customer.get(db, customer_id) if customer_id is not None else None
        if customer is not None and customer.has_coordinates():
            self.logger.info(f"Using stored coordinates for customer {customer_id}")
            return GeocodeResponse(
                latitude=customer.latitude,
                longitude=customer.longitude,
                formatted_address=customer.formatted_address or ", ".join(p for p in (address, postcode) if p),
                cached=True,
            )

        query = self.build_query(address, postcode)
        result = None
        if self.cache is not None:
            result = await self.cache.get(self._cache_key(query))

        if result is None:
            self.logger.info(f"Geocoding address for customer {customer_id or 'unknown'}: {query}")
            try:
                result = await self.maps_client.geocode(query)
            except GoogleMapsClientError as e:
                raise ExternalServiceError("Geocoding failed", details={"details": str(e)}, status_code=500)
            if result is None:
                raise NotFoundError("Location not found")
            if self.cache is not None:
                await self.cache.set(self._cache_key(query), result, expire=settings.GEOCODE_CACHE_TTL)

        if customer is not None:
            try:
                crud.customer.update(
                    db,
                    db_obj=customer,
                    obj_in={
                        "latitude": result["lat"],
                        "longitude": result["lng"],
                        "formatted_address": result.get("formatted_address"),
                    },
                )
                db.commit()
                self.logger.info(f"Stored coordinates for customer {customer_id}")
            except SQLAlchemyError as e:
                db.rollback()
                self.logger.error(f"Failed to cache geocode data for customer {customer_id}: {str(e)}")

        return GeocodeResponse(
            latitude=result["lat"],
            longitude=result["lng"],
            formatted_address=result.get("formatted_address"),
            cached=False,
        )
