from enum import Enum


class EventType(str, Enum):
    IMPRESSION = "impression"
    CLICK = "click"
    CLOSE = "close"
