# app/models/enums.py
import enum


class PostPriority(str, enum.Enum):
    URGENT = "urgent"
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


# Lower rank sorts first
PRIORITY_RANK = {
    PostPriority.URGENT.value: 1,
    PostPriority.HIGH.value: 2,
    PostPriority.NORMAL.value: 3,
    PostPriority.LOW.value: 4,
}


class PostType(str, enum.Enum):
    GENERAL = "general"
    SAFETY = "safety"
    WEATHER = "weather"
    LOST_FOUND = "lost_found"
    EVENT = "event"
    QUESTION = "question"
    HELP_REQUEST = "help_request"
    HELP_OFFER = "help_offer"


class MessageType(str, enum.Enum):
    TEXT = "text"
    IMAGE = "image"


class AlertSeverity(str, enum.Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MODERATE = "MODERATE"
    LOW = "LOW"


SEVERITY_RANK = {
    AlertSeverity.CRITICAL.value: 1,
    AlertSeverity.HIGH.value: 2,
    AlertSeverity.MODERATE.value: 3,
    AlertSeverity.LOW.value: 4,
}
