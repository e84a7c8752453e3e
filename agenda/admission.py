# agenda/admission.py

"""Write path: admit or reject a booking.

Availability is computed ahead of time and may be stale by the time the
client submits, so every admission re-checks the requested interval inside
the transaction that inserts the row. Two mechanisms keep concurrent guards
from double-booking a collaborator:

* the transaction holds a write lock for the whole check-then-insert
  (``BEGIN IMMEDIATE`` on SQLite, ``SELECT ... FOR UPDATE`` on the
  collaborator rows elsewhere);
* a partial unique index on ``(collaborator_id, scheduled_date,
  scheduled_time)`` for live appointments, whose violations are reported
  as ``member_busy`` conflicts instead of storage failures.
"""

import logging
from datetime import date, time
from typing import List, Optional, Sequence

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, col, select

from agenda.catalog import eligible_collaborator_ids, get_collaborator, get_service, offers_service
from agenda.core import MINUTES_PER_DAY, Interval, contains, overlaps, to_minutes
from agenda.errors import ConflictError, ConflictType, StorageError, ValidationError
from agenda.models import Appointment, Collaborator, utc_now
from agenda.resolvers import block_intervals, occupied_intervals, working_intervals

logger = logging.getLogger(__name__)

SLOT_INDEX_NAME = "uq_collaborator_active_start"

MEMBER_BUSY_MESSAGE = "This time is already taken for the selected professional. Please choose another time."
MEMBER_UNAVAILABLE_MESSAGE = "The selected professional does not work at this time."
NO_AVAILABILITY_MESSAGE = "No professional is available for this slot."
SERVICE_NOT_OFFERED_MESSAGE = "The selected professional does not offer this service."


def requested_interval(start_time: time, duration_minutes: int) -> Interval:
    start = to_minutes(start_time)
    if duration_minutes < 1:
        raise ValidationError("duration_minutes must be positive")
    if start + duration_minutes > MINUTES_PER_DAY:
        raise ValidationError("Appointment must end on the same day it starts")
    return Interval(start, start + duration_minutes)


def lock_collaborators(session: Session, collaborator_ids: Sequence[int]) -> None:
    # Row locks in id order so two guards never wait on each other in a cycle.
    # SQLite drops FOR UPDATE; there the transaction already holds the write lock.
    if not collaborator_ids:
        return
    session.exec(
        select(Collaborator.id)
        .where(col(Collaborator.id).in_(list(collaborator_ids)))
        .order_by(Collaborator.id)
        .with_for_update()
    ).all()


def check_collaborator_free(
    session: Session,
    organization_id: int,
    collaborator_id: int,
    on_date: date,
    interval: Interval,
    exclude_appointment_id: Optional[int] = None,
) -> Optional[str]:
    """Return None when the collaborator can take ``interval``, else the reason they cannot."""
    working = working_intervals(session, organization_id, collaborator_id, on_date)
    if not any(contains(window, interval) for window in working):
        return MEMBER_UNAVAILABLE_MESSAGE

    if any(overlaps(block, interval) for block in block_intervals(session, organization_id, collaborator_id, on_date)):
        return MEMBER_UNAVAILABLE_MESSAGE

    occupied = occupied_intervals(
        session, organization_id, collaborator_id, on_date,
        exclude_appointment_id=exclude_appointment_id,
    )
    if any(overlaps(taken, interval) for taken in occupied):
        return MEMBER_BUSY_MESSAGE

    return None


def select_collaborator(
    session: Session,
    organization_id: int,
    candidates: List[int],
    on_date: date,
    interval: Interval,
    explicit: bool,
    exclude_appointment_id: Optional[int] = None,
) -> int:
    lock_collaborators(session, candidates)

    for candidate in candidates:
        reason = check_collaborator_free(
            session, organization_id, candidate, on_date, interval,
            exclude_appointment_id=exclude_appointment_id,
        )
        if reason is None:
            return candidate
        if explicit:
            raise ConflictError(reason, ConflictType.member_busy, collaborator_id=candidate)

    raise ConflictError(NO_AVAILABILITY_MESSAGE, ConflictType.no_availability)


def is_slot_collision(exc: IntegrityError) -> bool:
    text = str(getattr(exc, "orig", exc))
    if SLOT_INDEX_NAME in text:
        return True
    # SQLite names the columns instead of the index
    return "appointments.collaborator_id" in text and "appointments.scheduled_time" in text


def commit_appointment(session: Session, appointment: Appointment) -> Appointment:
    session.add(appointment)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        if is_slot_collision(exc):
            logger.info(
                "Slot collision caught by unique index collaborator=%s date=%s time=%s",
                appointment.collaborator_id, appointment.scheduled_date, appointment.scheduled_time,
            )
            raise ConflictError(
                MEMBER_BUSY_MESSAGE, ConflictType.member_busy, collaborator_id=appointment.collaborator_id,
            ) from exc
        logger.exception("Appointment insert violated an unrelated constraint")
        raise StorageError("Could not save the appointment") from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Appointment insert failed")
        raise StorageError("Could not save the appointment") from exc

    session.refresh(appointment)
    return appointment


def admit_booking(
    session: Session,
    organization_id: int,
    client_id: int,
    service_id: int,
    on_date: date,
    start_time: time,
    collaborator_id: Optional[int] = None,
    duration_minutes: Optional[int] = None,
    notes: Optional[str] = None,
) -> Appointment:
    """Create a pending appointment or raise ConflictError.

    With ``collaborator_id=None`` ("no preference") the first eligible
    collaborator, by id, who is free for the whole interval is assigned.
    """
    # 1) Validate input
    if client_id is None:
        raise ValidationError("client_id is required")
    if on_date is None or start_time is None:
        raise ValidationError("date and time are required")

    service = get_service(session, organization_id, service_id)
    duration = duration_minutes if duration_minutes is not None else service.duration_minutes
    interval = requested_interval(start_time, duration)

    # 2) Resolve candidates
    if collaborator_id is not None:
        collaborator = get_collaborator(session, organization_id, collaborator_id)
        if not collaborator.is_active:
            raise ValidationError("Collaborator is not active")
        if not offers_service(session, organization_id, collaborator_id, service.id):
            raise ValidationError(SERVICE_NOT_OFFERED_MESSAGE)
        candidates = [collaborator_id]
    else:
        candidates = eligible_collaborator_ids(session, organization_id, service.id, on_date)

    # 3) Re-check availability under the lock
    try:
        chosen = select_collaborator(
            session, organization_id, candidates, on_date, interval,
            explicit=collaborator_id is not None,
        )
    except ConflictError as exc:
        session.rollback()
        logger.info(
            "Booking rejected org=%s service=%s date=%s time=%s collaborator=%s conflict=%s",
            organization_id, service.id, on_date, start_time, collaborator_id, exc.conflict_type.value,
        )
        raise

    # 4) Insert as pending
    appointment = Appointment(
        organization_id=organization_id,
        collaborator_id=chosen,
        service_id=service.id,
        client_id=client_id,
        scheduled_date=on_date,
        scheduled_time=start_time,
        duration_minutes=duration,
        status="pending",
        notes=notes,
        price=service.price,
    )
    appointment = commit_appointment(session, appointment)

    logger.info(
        "Booking admitted id=%s org=%s collaborator=%s date=%s time=%s duration=%s",
        appointment.id, organization_id, chosen, on_date, start_time, duration,
    )
    return appointment


def reschedule_appointment(
    session: Session,
    appointment: Appointment,
    start_time: Optional[time] = None,
    duration_minutes: Optional[int] = None,
    collaborator_id: Optional[int] = None,
) -> Appointment:
    """Move or reassign an existing appointment through the same checks as a new booking.

    The caller commits nothing beforehand; the appointment itself is excluded
    from the overlap check so shortening or nudging it does not collide with
    its old interval.
    """
    new_time = start_time if start_time is not None else appointment.scheduled_time
    new_duration = duration_minutes if duration_minutes is not None else appointment.duration_minutes
    new_collaborator = collaborator_id if collaborator_id is not None else appointment.collaborator_id
    if new_collaborator is None:
        raise ValidationError("A collaborator must be assigned explicitly")

    collaborator = get_collaborator(session, appointment.organization_id, new_collaborator)
    if not collaborator.is_active:
        raise ValidationError("Collaborator is not active")
    reassigned = new_collaborator != appointment.collaborator_id
    if reassigned and not offers_service(session, appointment.organization_id, new_collaborator, appointment.service_id):
        raise ValidationError(SERVICE_NOT_OFFERED_MESSAGE)

    interval = requested_interval(new_time, new_duration)
    try:
        select_collaborator(
            session, appointment.organization_id, [new_collaborator],
            appointment.scheduled_date, interval,
            explicit=True, exclude_appointment_id=appointment.id,
        )
    except ConflictError:
        session.rollback()
        raise

    appointment.scheduled_time = new_time
    appointment.duration_minutes = new_duration
    appointment.collaborator_id = new_collaborator
    appointment.updated_at = utc_now()
    return commit_appointment(session, appointment)
