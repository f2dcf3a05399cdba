from sqlalchemy import Column, String, DateTime, Integer, Enum, Float, JSON, ForeignKey
from sqlalchemy.orm import relationship
from app.db.base_class import Base
import enum
from datetime import datetime
from typing import Optional, Union

class JobStatus(str, enum.Enum):
    new = "New"
    assigned = "Assigned"
    in_progress = "In Progress"
    quoted = "Quoted"
    approved = "Approved"
    working = "Working"
    completed = "Completed"
    invoiced = "Invoiced"
    first_reminder = "1stReminder"
    second_reminder = "2ndReminder"
    paid = "Paid"
    cancelled = "Cancelled"

    @classmethod
    def parse(cls, value: Union["JobStatus", str, None]) -> Optional["JobStatus"]:
        """Map legacy free-text statuses ("inprogress", "COMPLETED") onto the enum."""
        if value is None or isinstance(value, cls):
            return value
        key = str(value).replace(" ", "").replace("_", "").lower()
        for member in cls:
            if member.value.replace(" ", "").lower() == key:
                return member
        return None

def _enum_values(enum_cls):
    return [member.value for member in enum_cls]

class Job(Base):
    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    engineer_uuid = Column(String(36), nullable=True, index=True)
    engineer_name = Column(String, nullable=True)

    job_status = Column(
        Enum(JobStatus, native_enum=False, length=20, values_callable=_enum_values),
        nullable=False,
        default=JobStatus.assigned,
    )

    # Site details copied from the customer at assignment
    description = Column(String, nullable=True)
    site_location = Column(String, nullable=True)
    customer_latitude = Column(Float, nullable=True)
    customer_longitude = Column(Float, nullable=True)
    site_contact_name = Column(String, nullable=True)
    site_contact_number = Column(String, nullable=True)
    business_name = Column(String, nullable=True)
    system_details = Column(String, nullable=True)
    open_time = Column(String, nullable=True)
    schedule_time = Column(DateTime, nullable=True)

    # Route linkage, null unless part of a sequenced route
    route_id = Column(Integer, ForeignKey("routes.id"), nullable=True, index=True)
    route_order = Column(Integer, nullable=True)

    # Quote payload
    image_urls = Column(JSON, nullable=True)
    product_names = Column(JSON, nullable=True)
    notes = Column(String, nullable=True)

    # Relationships
    customer = relationship("Customer")
    route = relationship("Route", back_populates="route_jobs")

    def __repr__(self):
        return f"<Job {self.id} ({self.job_status})>"
