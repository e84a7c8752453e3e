# agenda/lifecycle.py

import logging
from datetime import date
from typing import Callable, Dict, FrozenSet, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from agenda.errors import IllegalTransitionError, NotFoundError, StorageError
from agenda.models import Appointment, utc_now
from agenda.schemas import AppointmentStatus

logger = logging.getLogger(__name__)

TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    AppointmentStatus.pending: frozenset({AppointmentStatus.confirmed, AppointmentStatus.cancelled}),
    AppointmentStatus.confirmed: frozenset({AppointmentStatus.completed, AppointmentStatus.cancelled}),
    AppointmentStatus.completed: frozenset(),
    AppointmentStatus.cancelled: frozenset(),
}

CompletionHook = Callable[[Appointment, Optional[str]], None]

_completion_hooks: List[CompletionHook] = []


def register_completion_hook(hook: CompletionHook) -> CompletionHook:
    """Run ``hook(appointment, notes)`` after an appointment is completed.

    Hooks record service history, accrue loyalty points and so on. They run
    after the status change is committed; a failing hook is logged and does
    not undo the transition.
    """
    _completion_hooks.append(hook)
    return hook


def clear_completion_hooks() -> None:
    _completion_hooks.clear()


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return target in TRANSITIONS[current]


def is_terminal(status: AppointmentStatus) -> bool:
    return not TRANSITIONS[status]


def get_appointment(session: Session, organization_id: int, appointment_id: int, for_update: bool = False) -> Appointment:
    stmt = (
        select(Appointment)
        .where(Appointment.id == appointment_id)
        .where(Appointment.organization_id == organization_id)
    )
    if for_update:
        stmt = stmt.with_for_update()
    appointment = session.exec(stmt).first()
    if appointment is None:
        raise NotFoundError("Appointment not found")
    return appointment


def list_appointments(
    session: Session,
    organization_id: int,
    on_date: Optional[date] = None,
    collaborator_id: Optional[int] = None,
    status: Optional[AppointmentStatus] = None,
) -> List[Appointment]:
    stmt = select(Appointment).where(Appointment.organization_id == organization_id)
    if on_date is not None:
        stmt = stmt.where(Appointment.scheduled_date == on_date)
    if collaborator_id is not None:
        stmt = stmt.where(Appointment.collaborator_id == collaborator_id)
    if status is not None:
        stmt = stmt.where(Appointment.status == status.value)
    stmt = stmt.order_by(Appointment.scheduled_date, Appointment.scheduled_time, Appointment.id)
    return list(session.exec(stmt).all())


def transition_appointment(
    session: Session,
    organization_id: int,
    appointment_id: int,
    new_status: AppointmentStatus,
    notes: Optional[str] = None,
) -> Appointment:
    appointment = get_appointment(session, organization_id, appointment_id, for_update=True)
    current = AppointmentStatus(appointment.status)

    if not can_transition(current, new_status):
        session.rollback()
        raise IllegalTransitionError(current.value, new_status.value)

    appointment.status = new_status.value
    if notes is not None:
        appointment.notes = notes
    appointment.updated_at = utc_now()

    session.add(appointment)
    try:
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Status change failed for appointment %s", appointment_id)
        raise StorageError("Could not update the appointment") from exc
    session.refresh(appointment)

    logger.info("Appointment %s moved %s -> %s", appointment.id, current.value, new_status.value)

    if new_status == AppointmentStatus.completed:
        _run_completion_hooks(appointment, notes)

    return appointment


def _run_completion_hooks(appointment: Appointment, notes: Optional[str]) -> None:
    for hook in list(_completion_hooks):
        try:
            hook(appointment, notes)
        except Exception:
            logger.exception(
                "Completion hook %s failed for appointment %s",
                getattr(hook, "__name__", hook), appointment.id,
            )
