from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime, time
from typing import Optional

class EngineerLocationUpdate(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

class Engineer(BaseModel):
    id: str
    eng_name: str
    email: Optional[str] = None
    area: Optional[str] = None
    speciality: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    work_start_time: Optional[time] = None
    work_end_time: Optional[time] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class EngineerLocationResponse(BaseModel):
    success: bool = True
    engineer: Engineer
    message: str = "Location updated successfully"
