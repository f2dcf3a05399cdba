from sqlalchemy import Column, String, DateTime, Integer, Enum, Float, Date, JSON, ForeignKey
from sqlalchemy.orm import relationship
from app.db.base_class import Base
import enum
from datetime import datetime

class RouteStatus(str, enum.Enum):
    scheduled = "scheduled"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"

class Route(Base):
    __tablename__ = "routes"

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    engineer_id = Column(String(36), ForeignKey("engineers.id"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    status = Column(Enum(RouteStatus, native_enum=False, length=20), nullable=False, default=RouteStatus.scheduled)

    # Ordered stop list as submitted at assignment time
    jobs = Column(JSON, nullable=False, default=list)
    total_distance = Column(Float, nullable=True)  # in meters
    polyline = Column(String, nullable=True)

    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    cancellation_reason = Column(String, nullable=True)

    # Relationships
    engineer = relationship("Engineer", back_populates="routes")
    route_jobs = relationship("Job", back_populates="route", order_by="Job.route_order")

    def __repr__(self):
        return f"<Route {self.id} {self.date} ({self.status.value})>"
