"""User-visible notification models"""

from enum import Enum

from pydantic import BaseModel


class NotificationKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


class Notification(BaseModel):
    """A transient message for the shopper (a toast)"""
    kind: NotificationKind
    message: str
