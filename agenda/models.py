# agenda/models.py

from typing import Optional
from datetime import datetime, date as Date, time, timezone

from sqlalchemy import Index, UniqueConstraint, text
from sqlmodel import SQLModel, Field

# Statuses that hold a collaborator's time. Mirrors AppointmentStatus in schemas.
ACTIVE_STATUSES = ("pending", "confirmed")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Collaborator(SQLModel, table=True):
    __tablename__ = "collaborators"

    id: Optional[int] = Field(default=None, primary_key=True)
    organization_id: int = Field(index=True)
    name: str
    role: str = "collaborator"  # collaborator or admin
    is_active: bool = True


class Service(SQLModel, table=True):
    __tablename__ = "services"

    id: Optional[int] = Field(default=None, primary_key=True)
    organization_id: int = Field(index=True)
    name: str
    duration_minutes: int
    price: Optional[float] = None
    is_active: bool = True


class MemberService(SQLModel, table=True):
    __tablename__ = "member_services"
    __table_args__ = (
        UniqueConstraint("collaborator_id", "service_id", name="uq_member_service"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    organization_id: int = Field(index=True)
    collaborator_id: int = Field(foreign_key="collaborators.id", index=True)
    service_id: int = Field(foreign_key="services.id", index=True)


class WorkingHourRule(SQLModel, table=True):
    __tablename__ = "working_hours"

    id: Optional[int] = Field(default=None, primary_key=True)
    organization_id: int = Field(index=True)
    collaborator_id: int = Field(foreign_key="collaborators.id", index=True)
    day_of_week: int  # 0 = Sunday ... 6 = Saturday
    start_time: time
    end_time: time
    is_active: bool = True


class ScheduleBlock(SQLModel, table=True):
    __tablename__ = "schedule_blocks"

    id: Optional[int] = Field(default=None, primary_key=True)
    organization_id: int = Field(index=True)
    collaborator_id: int = Field(foreign_key="collaborators.id", index=True)
    date: Date = Field(index=True)
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_all_day: bool = False
    reason: Optional[str] = None


class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    __table_args__ = (
        # Backstop for the overlap check: two live bookings can never share a
        # start time for the same collaborator, even if two guards race.
        Index(
            "uq_collaborator_active_start",
            "collaborator_id",
            "scheduled_date",
            "scheduled_time",
            unique=True,
            sqlite_where=text("status IN ('pending', 'confirmed')"),
            postgresql_where=text("status IN ('pending', 'confirmed')"),
        ),
        Index("ix_appointments_partition", "organization_id", "collaborator_id", "scheduled_date"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    organization_id: int = Field(index=True)
    collaborator_id: Optional[int] = Field(default=None, foreign_key="collaborators.id")
    service_id: int = Field(foreign_key="services.id")
    client_id: int = Field(index=True)

    scheduled_date: Date
    scheduled_time: time
    duration_minutes: int
    status: str = "pending"
    notes: Optional[str] = None
    price: Optional[float] = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
