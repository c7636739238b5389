from .models import TrackEvent
from .reporter import EventReporter
from .types import EventType

__all__ = [
    "EventReporter",
    "EventType",
    "TrackEvent",
]
