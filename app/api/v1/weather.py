# app/api/v1/weather.py
from fastapi import APIRouter, Depends, Query

from app.api.auth import get_current_user
from app.api.dependencies import get_service
from app.models.user import User
from app.schemas import WeatherAlertList
from app.services.weather_alert_service import WeatherAlertService

router = APIRouter()


@router.get("/alerts", response_model=WeatherAlertList)
async def list_alerts_near(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    radius: float = Query(25.0, ge=0, le=500),
    current_user: User = Depends(get_current_user),
    alert_service: WeatherAlertService = Depends(get_service(WeatherAlertService))
):
    """Get active weather alerts around a point, most severe first."""
    alerts = alert_service.find_alerts_near(latitude, longitude, radius_miles=radius)
    return {"items": alerts, "radius_miles": radius}
