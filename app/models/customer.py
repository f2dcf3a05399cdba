from sqlalchemy import Column, String, DateTime, Integer, Enum, Float
from app.db.base_class import Base
import enum
from datetime import datetime

class CustomerStatus(str, enum.Enum):
    new = "new"
    assigned = "assigned"
    completed = "completed"

class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    status = Column(Enum(CustomerStatus, native_enum=False, length=20), nullable=False, default=CustomerStatus.new, index=True)

    # Site details
    business_name = Column(String, nullable=True)
    site_location = Column(String, nullable=True)
    post_code = Column(String, nullable=True)
    description_of_fault = Column(String, nullable=True)
    site_contact_name = Column(String, nullable=True)
    site_contact_number = Column(String, nullable=True)
    email_address = Column(String, nullable=True)
    system_details = Column(String, nullable=True)
    priority = Column(String, nullable=True)

    # Free text such as "9 AM - 6 PM"
    opening_hours = Column(String, nullable=True)
    scheduled_time = Column(DateTime, nullable=True)

    # Geocoding, null until geocoded
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    formatted_address = Column(String, nullable=True)

    assigned_engineer = Column(String(36), nullable=True)

    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None
