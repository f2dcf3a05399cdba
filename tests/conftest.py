import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("GOOGLE_MAPS_API_KEY", "test_api_key")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("ENABLE_REDIS", "false")
os.environ.setdefault("SERVICE_TIMEZONE", "Europe/London")

from datetime import date, datetime
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.base import Base
from app.models.customer import Customer, CustomerStatus
from app.models.engineer import Engineer, UserRole
from app.models.job import Job, JobStatus
from app.models.route import Route, RouteStatus
from app.services.clients.google_maps import GoogleMapsClient
from app.services.clients.webhook import WebhookSender

ENGINEER_ID = "7b0c6a52-2f9e-4d8a-9a51-0c3f1e2d4b11"
ADMIN_ID = "c4e1f0a3-88d2-4b7e-a1c9-5d2e7f901a22"

# 12:00 in London (BST) on a Monday
NOW = datetime(2026, 10, 19, 11, 0, 0)

SITE = (51.5074, -0.1278)  # Central London

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# pysqlite's own transaction handling breaks SAVEPOINT; let SQLAlchemy emit BEGIN
@event.listens_for(engine, "connect")
def _do_connect(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None

@event.listens_for(engine, "begin")
def _do_begin(conn):
    conn.exec_driver_sql("BEGIN")

TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def maps_client():
    client = AsyncMock(spec=GoogleMapsClient)
    # No routing result by default, so distances fall back to haversine
    client.get_driving_distance.return_value = None
    return client


@pytest.fixture
def webhook_sender():
    sender = AsyncMock(spec=WebhookSender)
    sender.send.return_value = True
    return sender


# Factories

@pytest.fixture
def make_engineer(db):
    def _make(id=ENGINEER_ID, eng_name="Sam Fielding", latitude=51.5033, longitude=-0.1195, **kwargs):
        engineer = Engineer(id=id, eng_name=eng_name, latitude=latitude, longitude=longitude, **kwargs)
        db.add(engineer)
        db.commit()
        return engineer
    return _make


@pytest.fixture
def make_admin(db):
    def _make(user_id=ADMIN_ID):
        db.add(UserRole(user_id=user_id, role="admin"))
        db.commit()
        return user_id
    return _make


@pytest.fixture
def make_customer(db):
    def _make(**kwargs):
        values = {
            "business_name": "Riverside Dental",
            "site_location": "10 Strand, London",
            "post_code": "WC2N 5HR",
            "description_of_fault": "Air conditioning unit leaking",
            "priority": "High",
            "opening_hours": "9 AM - 6 PM",
            "latitude": SITE[0],
            "longitude": SITE[1],
            "status": CustomerStatus.new,
        }
        values.update(kwargs)
        customer = Customer(**values)
        db.add(customer)
        db.commit()
        return customer
    return _make


@pytest.fixture
def make_job(db, make_customer):
    def _make(customer=None, job_status=JobStatus.assigned, engineer_uuid=ENGINEER_ID, **kwargs):
        customer = customer or make_customer()
        job = Job(
            customer_id=customer.id,
            engineer_uuid=engineer_uuid,
            engineer_name="Sam Fielding",
            job_status=job_status,
            site_location=customer.site_location,
            customer_latitude=customer.latitude,
            customer_longitude=customer.longitude,
            open_time=customer.opening_hours,
            **kwargs,
        )
        db.add(job)
        db.commit()
        return job
    return _make


@pytest.fixture
def make_route(db, make_engineer, make_customer):
    """A route with one linked job per status given."""
    def _make(statuses=(JobStatus.assigned,), status=RouteStatus.scheduled, engineer_id=ENGINEER_ID):
        if db.get(Engineer, engineer_id) is None:
            make_engineer(id=engineer_id)
        route = Route(engineer_id=engineer_id, date=date(2026, 10, 19), status=status, jobs=[])
        db.add(route)
        db.flush()
        for order, job_status in enumerate(statuses, start=1):
            customer = make_customer(
                business_name=f"Site {order}",
                status=CustomerStatus.assigned,
                assigned_engineer=engineer_id,
                scheduled_time=datetime(2026, 10, 19, 8, 0),
            )
            db.add(Job(
                customer_id=customer.id,
                engineer_uuid=engineer_id,
                job_status=job_status,
                route_id=route.id,
                route_order=order,
            ))
        db.commit()
        return route
    return _make
