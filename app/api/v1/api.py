from fastapi import APIRouter

from app.api.v1.endpoints import jobs, engineers, routes, customers

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(jobs.router)
api_router.include_router(engineers.router)
api_router.include_router(routes.router)
api_router.include_router(customers.router)
