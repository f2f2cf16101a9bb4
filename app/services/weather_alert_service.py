# app/services/weather_alert_service.py
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.exceptions import QueryFailed, ValidationFailure
from app.models.enums import SEVERITY_RANK
from app.models.mixins import utcnow
from app.models.weather_alert import WeatherAlert
from app.services.distance import DistanceFunction, distance_or_zero, get_distance_function

logger = logging.getLogger(__name__)


class WeatherAlertService:
    """Service for stored weather alerts"""

    def __init__(self, db: Session, distance: Optional[DistanceFunction] = None):
        self.db = db
        self.distance = distance or get_distance_function()

    def find_alerts_near(
        self,
        lat: float,
        lng: float,
        radius_miles: float = 25.0,
        now: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        """
        Get active alerts within radius_miles of a point.

        Alerts without a reference point cover everyone and are always
        included with a distance of 0.
        """
        if radius_miles < 0:
            raise ValidationFailure("radius_miles must be non-negative")

        now = now or utcnow()
        try:
            alerts = self.db.query(WeatherAlert).filter(
                WeatherAlert.is_active.is_(True),
                or_(WeatherAlert.end_time.is_(None), WeatherAlert.end_time > now),
            ).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Weather alerts query failed: {str(e)}")
            raise QueryFailed("Weather alerts query failed") from e

        result = []
        for alert in alerts:
            distance_miles = distance_or_zero(self.distance, lat, lng, alert.latitude, alert.longitude)
            if distance_miles > radius_miles:
                continue
            result.append({
                "id": alert.id,
                "alert_id": alert.alert_id,
                "title": alert.title,
                "description": alert.description,
                "severity": alert.severity,
                "alert_type": alert.alert_type,
                "source": alert.source,
                "start_time": alert.start_time,
                "end_time": alert.end_time,
                "is_active": alert.is_active,
                "created_at": alert.created_at,
                "distance_miles": distance_miles,
            })

        # Most severe first, newest first within a severity
        result.sort(key=lambda a: a["start_time"], reverse=True)
        result.sort(key=lambda a: SEVERITY_RANK.get(a["severity"], len(SEVERITY_RANK) + 1))
        return result

    def upsert_alert(self, alert_data: Dict[str, Any]) -> WeatherAlert:
        """Insert an alert or update the stored one with the same alert_id"""
        if alert_data.get("severity") not in SEVERITY_RANK:
            raise ValidationFailure(f"Unknown severity: {alert_data.get('severity')}")

        alert = self.db.query(WeatherAlert).filter(
            WeatherAlert.alert_id == alert_data["alert_id"]
        ).first()
        if alert:
            for key, value in alert_data.items():
                if hasattr(alert, key):
                    setattr(alert, key, value)
        else:
            alert = WeatherAlert(**alert_data)
            self.db.add(alert)

        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to store weather alert {alert_data['alert_id']}: {str(e)}")
            raise QueryFailed("Failed to store weather alert") from e

        self.db.refresh(alert)
        return alert
