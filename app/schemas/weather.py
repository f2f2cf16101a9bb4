# app/schemas/weather.py
from typing import List, Optional
from pydantic import BaseModel
from datetime import datetime


class WeatherAlertResponse(BaseModel):
    """Active alert near the requested point."""
    id: int
    alert_id: str
    title: str
    description: Optional[str] = None
    severity: str
    alert_type: Optional[str] = None
    source: Optional[str] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    is_active: bool
    created_at: datetime
    distance_miles: float


class WeatherAlertList(BaseModel):
    items: List[WeatherAlertResponse]
    radius_miles: float
