# agenda/resolvers.py

import logging
from datetime import date
from typing import Iterable, List, Optional

from sqlmodel import Session, col, select

from agenda.core import Interval, day_interval, merge, subtract_all, to_minutes
from agenda.models import ACTIVE_STATUSES, Appointment, ScheduleBlock, WorkingHourRule

logger = logging.getLogger(__name__)


def weekday_index(on_date: date) -> int:
    """Weekday number used by working-hour rules: 0 = Sunday ... 6 = Saturday."""
    return (on_date.weekday() + 1) % 7


def working_intervals(
    session: Session,
    organization_id: int,
    collaborator_id: int,
    on_date: date,
) -> List[Interval]:
    rules = session.exec(
        select(WorkingHourRule)
        .where(WorkingHourRule.organization_id == organization_id)
        .where(WorkingHourRule.collaborator_id == collaborator_id)
        .where(WorkingHourRule.day_of_week == weekday_index(on_date))
        .where(WorkingHourRule.is_active == True)  # noqa: E712
    ).all()

    intervals = []
    for rule in rules:
        start, end = to_minutes(rule.start_time), to_minutes(rule.end_time)
        if start >= end:
            logger.warning("Ignoring working hour rule %s with empty range", rule.id)
            continue
        intervals.append(Interval(start, end))

    if len(intervals) > 1:
        # one rule per weekday is expected; union duplicates instead of failing
        logger.warning(
            "Collaborator %s has %d active rules on weekday %d",
            collaborator_id, len(intervals), weekday_index(on_date),
        )
    return merge(intervals)


def block_intervals(
    session: Session,
    organization_id: int,
    collaborator_id: int,
    on_date: date,
) -> List[Interval]:
    blocks = session.exec(
        select(ScheduleBlock)
        .where(ScheduleBlock.organization_id == organization_id)
        .where(ScheduleBlock.collaborator_id == collaborator_id)
        .where(ScheduleBlock.date == on_date)
    ).all()

    intervals = []
    for block in blocks:
        if block.is_all_day:
            return [day_interval()]
        if block.start_time is None or block.end_time is None:
            logger.warning("Ignoring partial block %s without start/end", block.id)
            continue
        start, end = to_minutes(block.start_time), to_minutes(block.end_time)
        if start >= end:
            logger.warning("Ignoring block %s with empty range", block.id)
            continue
        intervals.append(Interval(start, end))
    return merge(intervals)


def occupied_intervals(
    session: Session,
    organization_id: int,
    collaborator_id: int,
    on_date: date,
    statuses: Iterable[str] = ACTIVE_STATUSES,
    exclude_appointment_id: Optional[int] = None,
) -> List[Interval]:
    """One interval per appointment of the collaborator on that date, in start order."""
    stmt = (
        select(Appointment)
        .where(Appointment.organization_id == organization_id)
        .where(Appointment.collaborator_id == collaborator_id)
        .where(Appointment.scheduled_date == on_date)
        .where(col(Appointment.status).in_(list(statuses)))
        .order_by(Appointment.scheduled_time)
    )
    if exclude_appointment_id is not None:
        stmt = stmt.where(Appointment.id != exclude_appointment_id)

    intervals = []
    for appt in session.exec(stmt).all():
        start = to_minutes(appt.scheduled_time)
        intervals.append(Interval(start, start + appt.duration_minutes))
    return intervals


def free_intervals(
    session: Session,
    organization_id: int,
    collaborator_id: int,
    on_date: date,
    exclude_appointment_id: Optional[int] = None,
) -> List[Interval]:
    """Working hours minus blocks minus occupancy."""
    working = working_intervals(session, organization_id, collaborator_id, on_date)
    if not working:
        return []
    blocked = block_intervals(session, organization_id, collaborator_id, on_date)
    occupied = occupied_intervals(
        session, organization_id, collaborator_id, on_date,
        exclude_appointment_id=exclude_appointment_id,
    )
    return subtract_all(working, blocked + occupied)
