from .base import CRUDBase
from .crud_customer import customer
from .crud_engineer import engineer
from .crud_job import job
from .crud_route import route
from .crud_time_tracking import time_tracking

__all__ = [
    'CRUDBase',
    'customer',
    'engineer',
    'job',
    'route',
    'time_tracking',
]
