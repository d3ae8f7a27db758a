"""
Advisory Models

Insights are rule-based advice derived from the computed tax state.
Notifications are transient user-facing messages raised by workflows.
"""

import datetime as dt
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from livetax.models.transaction import utcnow


class InsightType(str, Enum):
    WARNING = "warning"
    INFO = "info"
    SUCCESS = "success"


class InsightPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Insight(BaseModel):
    """
    One advisory notice.

    Titles are unique within the set of held insights.
    """

    id: UUID = Field(default_factory=uuid4)
    type: InsightType
    title: str = Field(..., min_length=1, max_length=120)
    message: str
    action: Optional[str] = None
    priority: InsightPriority
    created_at: dt.datetime = Field(default_factory=utcnow)
    is_read: bool = False


class NotificationType(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class Notification(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    type: NotificationType
    title: str
    message: str
    created_at: dt.datetime = Field(default_factory=utcnow)
