from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional

from app.models.time_tracking import CalculationMethod

class TimeEntryUpdate(BaseModel):
    accumulated_minutes: Optional[int] = None
    is_paused: Optional[bool] = None
    paused_at: Optional[datetime] = None
    resumed_at: Optional[datetime] = None

class TimeEntry(BaseModel):
    id: int
    job_id: int
    engineer_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    accumulated_minutes: int
    is_paused: bool
    paused_at: Optional[datetime] = None
    resumed_at: Optional[datetime] = None
    start_latitude: Optional[float] = None
    start_longitude: Optional[float] = None
    calculation_method: Optional[CalculationMethod] = None
    adjustment_reason: Optional[str] = None
    adjustment_minutes: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)
