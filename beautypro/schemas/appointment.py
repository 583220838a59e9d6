from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import AwareDatetime, BaseModel, Field

AppointmentStatus = Literal["scheduled", "confirmed", "completed", "cancelled"]
ChangeType = Literal["INSERT", "UPDATE", "DELETE"]


class Appointment(BaseModel):
    id: str
    title: str
    start: datetime
    end: datetime
    client_name: str
    stylist_name: str
    service_name: str
    status: AppointmentStatus
    notes: Optional[str] = None
    service_price: float = 0
    client_phone: Optional[str] = None


class ChangeEvent(BaseModel):
    """A row-level change pushed by the realtime channel."""

    event_type: ChangeType
    schema_name: str = "public"
    table: str
    record: Dict[str, Any] = Field(default_factory=dict)
    old_record: Dict[str, Any] = Field(default_factory=dict)
    commit_timestamp: Optional[str] = None


class AppointmentPatch(BaseModel):
    status: Optional[AppointmentStatus] = None
    notes: Optional[str] = None
    start_time: Optional[AwareDatetime] = None
    end_time: Optional[AwareDatetime] = None
