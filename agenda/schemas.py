# agenda/schemas.py

from datetime import date as Date, datetime, time
from enum import Enum
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PlainSerializer, field_validator, model_validator

from agenda import config


def _whole_minutes(value: time) -> time:
    if value.second or value.microsecond:
        raise ValueError("times must be given as HH:MM")
    if value.tzinfo is not None:
        raise ValueError("times must be local wall-clock times without an offset")
    return value


# "HH:MM" on the wire in both directions
ClockTime = Annotated[
    time,
    AfterValidator(_whole_minutes),
    PlainSerializer(lambda value: value.strftime("%H:%M"), return_type=str),
]


def _clean_notes(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    normalized = value.strip()
    if not normalized:
        return None
    if len(normalized) > config.MAX_NOTES_LENGTH:
        raise ValueError(f"Notes must be {config.MAX_NOTES_LENGTH} characters or fewer.")
    return normalized


class AppointmentStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    completed = "completed"
    cancelled = "cancelled"


class CollaboratorPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    role: str


class SlotPublic(BaseModel):
    time: ClockTime
    available: bool
    collaborator_ids: List[int]


class AvailabilityResponse(BaseModel):
    date: Date
    service_id: int
    collaborator_id: Optional[int] = None
    duration_minutes: int
    granularity_minutes: int
    available_times: List[ClockTime]
    slots: List[SlotPublic]


class BookingCreate(BaseModel):
    client_id: int
    service_id: int
    collaborator_id: Optional[int] = None
    date: Date
    time: ClockTime
    duration_minutes: Optional[int] = Field(default=None, ge=1, le=24 * 60)
    notes: Optional[str] = None

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, value: Optional[str]) -> Optional[str]:
        return _clean_notes(value)


class AppointmentUpdate(BaseModel):
    time: Optional[ClockTime] = None
    duration_minutes: Optional[int] = Field(default=None, ge=1, le=24 * 60)
    collaborator_id: Optional[int] = None
    notes: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, value: Optional[str]) -> Optional[str]:
        return _clean_notes(value)


class TransitionRequest(BaseModel):
    new_status: AppointmentStatus
    notes: Optional[str] = None

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, value: Optional[str]) -> Optional[str]:
        return _clean_notes(value)


class AppointmentPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    organization_id: int
    collaborator_id: Optional[int]
    service_id: int
    client_id: int
    scheduled_date: Date
    scheduled_time: ClockTime
    duration_minutes: int
    status: AppointmentStatus
    notes: Optional[str] = None
    price: Optional[float] = None
    created_at: datetime
    updated_at: datetime


class WorkingHourRuleIn(BaseModel):
    day_of_week: int = Field(ge=0, le=6)  # 0 = Sunday ... 6 = Saturday
    start_time: ClockTime
    end_time: ClockTime
    is_active: bool = True

    @model_validator(mode="after")
    def validate_range(self):
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class WorkingHoursReplace(BaseModel):
    rules: List[WorkingHourRuleIn]

    @field_validator("rules")
    @classmethod
    def validate_one_rule_per_day(cls, rules: List[WorkingHourRuleIn]) -> List[WorkingHourRuleIn]:
        days = [rule.day_of_week for rule in rules]
        if len(days) != len(set(days)):
            raise ValueError("only one working hour rule per weekday is allowed")
        return rules


class WorkingHourRulePublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    collaborator_id: int
    day_of_week: int
    start_time: ClockTime
    end_time: ClockTime
    is_active: bool


class BlockCreate(BaseModel):
    date: Date
    start_time: Optional[ClockTime] = None
    end_time: Optional[ClockTime] = None
    is_all_day: bool = False
    reason: Optional[str] = Field(default=None, max_length=255)

    @model_validator(mode="after")
    def validate_range(self):
        if self.is_all_day:
            self.start_time = None
            self.end_time = None
            return self
        if self.start_time is None or self.end_time is None:
            raise ValueError("partial blocks need both start_time and end_time")
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class BlockPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    collaborator_id: int
    date: Date
    start_time: Optional[ClockTime] = None
    end_time: Optional[ClockTime] = None
    is_all_day: bool
    reason: Optional[str] = None


class MemberServicesReplace(BaseModel):
    service_ids: List[int]
