from sqlalchemy import Column, String, DateTime, Integer, Enum, Float, Boolean, ForeignKey, Index
from app.db.base_class import Base
import enum
from datetime import datetime

class CalculationMethod(str, enum.Enum):
    automatic = "automatic"
    adjusted = "adjusted"
    manual_override = "manual_override"

class TimeTracking(Base):
    __tablename__ = "time_tracking"

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    job_id = Column(Integer, ForeignKey("jobs.id"), nullable=False, index=True)
    engineer_id = Column(String(36), nullable=False, index=True)

    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=True)  # null while the session is open
    duration_minutes = Column(Integer, nullable=True)

    # Minutes banked from finished running segments
    accumulated_minutes = Column(Integer, nullable=False, default=0)
    is_paused = Column(Boolean, nullable=False, default=False)
    paused_at = Column(DateTime, nullable=True)
    resumed_at = Column(DateTime, nullable=True)

    start_latitude = Column(Float, nullable=True)
    start_longitude = Column(Float, nullable=True)

    calculation_method = Column(Enum(CalculationMethod, native_enum=False, length=20), nullable=True)
    adjustment_reason = Column(String, nullable=True)
    adjustment_minutes = Column(Integer, nullable=True)

    __table_args__ = (
        # At most one open session per (job, engineer)
        Index(
            "uq_time_tracking_open_session",
            "job_id",
            "engineer_id",
            unique=True,
            postgresql_where=end_time.is_(None),
            sqlite_where=end_time.is_(None),
        ),
    )

    @property
    def segment_started_at(self) -> datetime:
        """Start of the live segment: the last resume, or the session start."""
        return self.resumed_at or self.start_time

    @property
    def is_open(self) -> bool:
        return self.end_time is None

    def __repr__(self):
        return f"<TimeTracking job={self.job_id} engineer={self.engineer_id} open={self.is_open}>"
