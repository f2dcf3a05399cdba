from typing import Generator, Optional
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app import crud
from app.core.cache import RedisCache
from app.core.exceptions import ForbiddenError, UnauthorizedError
from app.core.security import ADMIN_ROLE, Principal, decode_token
from app.db.session import SessionLocal
from app.services.clients.google_maps import GoogleMapsClient
from app.services.clients.webhook import WebhookSender
from app.services.geocoding import GeocodingService
from app.services.job_service import JobService
from app.services.route_optimizer import RouteOptimizer
from app.services.route_service import RouteService

http_bearer = HTTPBearer(auto_error=False)

def get_db() -> Generator:
    """
    Dependency that provides a database session.
    """
    try:
        db = SessionLocal()
        yield db
    finally:
        db.close()

# Shared handles, created in the application lifespan

def get_maps_client(request: Request) -> GoogleMapsClient:
    return request.app.state.maps_client

def get_webhook_sender(request: Request) -> WebhookSender:
    return request.app.state.webhook_sender

def get_cache(request: Request) -> Optional[RedisCache]:
    return getattr(request.app.state, "cache", None)

def get_job_service(
    maps_client: GoogleMapsClient = Depends(get_maps_client),
    webhook_sender: WebhookSender = Depends(get_webhook_sender),
) -> JobService:
    return JobService(maps_client, webhook_sender)

def get_route_optimizer(maps_client: GoogleMapsClient = Depends(get_maps_client)) -> RouteOptimizer:
    return RouteOptimizer(maps_client)

def get_route_service() -> RouteService:
    return RouteService()

def get_geocoding_service(
    maps_client: GoogleMapsClient = Depends(get_maps_client),
    cache: Optional[RedisCache] = Depends(get_cache),
) -> GeocodingService:
    return GeocodingService(maps_client, cache)

# Auth

def get_current_principal(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    db: Session = Depends(get_db),
) -> Principal:
    """
    Resolve the bearer token to a caller.

    Admin capability comes from a ``user_roles`` row, not from the token.
    """
    if creds is None:
        raise UnauthorizedError("Missing or invalid authorization header")
    payload = decode_token(creds.credentials)
    user_id = payload.get("sub")
    if not user_id:
        raise UnauthorizedError("Invalid token")
    return Principal(
        user_id=str(user_id),
        email=payload.get("email"),
        is_admin=crud.engineer.has_role(db, user_id=str(user_id), role=ADMIN_ROLE),
    )

def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_admin:
        raise ForbiddenError("Access denied. Admin privileges required.")
    return principal
