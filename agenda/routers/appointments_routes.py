# agenda/routers/appointments_routes.py

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from agenda.admission import admit_booking, commit_appointment, reschedule_appointment
from agenda.db import get_session
from agenda.errors import IllegalTransitionError
from agenda.lifecycle import get_appointment, is_terminal, list_appointments, transition_appointment
from agenda.models import utc_now
from agenda.schemas import (
    AppointmentPublic,
    AppointmentStatus,
    AppointmentUpdate,
    BookingCreate,
    TransitionRequest,
)

router = APIRouter(
    prefix="/organizations/{organization_id}/appointments",
    tags=["appointments"],
)


@router.post("", response_model=AppointmentPublic, status_code=201)
def create_appointment(
    organization_id: int,
    booking: BookingCreate,
    session: Session = Depends(get_session),
):
    # Conflicts surface as 409 {error, conflict_type}; notification is the caller's job
    return admit_booking(
        session,
        organization_id=organization_id,
        client_id=booking.client_id,
        service_id=booking.service_id,
        on_date=booking.date,
        start_time=booking.time,
        collaborator_id=booking.collaborator_id,
        duration_minutes=booking.duration_minutes,
        notes=booking.notes,
    )


@router.get("", response_model=List[AppointmentPublic])
def list_organization_appointments(
    organization_id: int,
    on_date: Optional[date] = Query(default=None, alias="date"),
    collaborator_id: Optional[int] = None,
    status: Optional[AppointmentStatus] = None,
    session: Session = Depends(get_session),
):
    return list_appointments(
        session, organization_id,
        on_date=on_date, collaborator_id=collaborator_id, status=status,
    )


@router.get("/{appointment_id}", response_model=AppointmentPublic)
def read_appointment(
    organization_id: int,
    appointment_id: int,
    session: Session = Depends(get_session),
):
    return get_appointment(session, organization_id, appointment_id)


@router.patch("/{appointment_id}", response_model=AppointmentPublic)
def update_appointment(
    organization_id: int,
    appointment_id: int,
    changes: AppointmentUpdate,
    session: Session = Depends(get_session),
):
    # 1) Only live appointments can be edited
    appointment = get_appointment(session, organization_id, appointment_id, for_update=True)
    current = AppointmentStatus(appointment.status)
    if is_terminal(current):
        raise IllegalTransitionError(
            current.value, current.value,
            message=f"A {current.value} appointment can no longer be edited",
        )

    # 2) Plain fields
    if changes.notes is not None:
        appointment.notes = changes.notes
    if changes.price is not None:
        appointment.price = changes.price

    # 3) Anything that moves the occupied interval goes back through the guard
    moves = (
        changes.time is not None
        or changes.duration_minutes is not None
        or (changes.collaborator_id is not None and changes.collaborator_id != appointment.collaborator_id)
    )
    if moves:
        return reschedule_appointment(
            session, appointment,
            start_time=changes.time,
            duration_minutes=changes.duration_minutes,
            collaborator_id=changes.collaborator_id,
        )

    appointment.updated_at = utc_now()
    return commit_appointment(session, appointment)


@router.post("/{appointment_id}/transition", response_model=AppointmentPublic)
def change_appointment_status(
    organization_id: int,
    appointment_id: int,
    request: TransitionRequest,
    session: Session = Depends(get_session),
):
    return transition_appointment(
        session, organization_id, appointment_id,
        new_status=request.new_status,
        notes=request.notes,
    )
