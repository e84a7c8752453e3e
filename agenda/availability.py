# agenda/availability.py

"""Read path: which start times are bookable for a service on a date.

The result is computed from a plain read of working hours, blocks and
appointments. It is allowed to go stale; the admission guard re-checks
everything inside its own transaction before inserting.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, time
from typing import Dict, List, Optional, Set

from sqlmodel import Session

from agenda import config
from agenda.catalog import eligible_collaborator_ids, get_collaborator, get_service, offers_service
from agenda.core import MINUTES_PER_DAY, aligned_starts, from_minutes, subtract_all
from agenda.errors import ValidationError
from agenda.models import Collaborator
from agenda.resolvers import block_intervals, occupied_intervals, working_intervals

logger = logging.getLogger(__name__)


@dataclass
class Slot:
    minutes: int
    collaborator_ids: List[int] = field(default_factory=list)

    @property
    def available(self) -> bool:
        return bool(self.collaborator_ids)

    @property
    def time(self) -> time:
        return from_minutes(self.minutes)


@dataclass
class Availability:
    on_date: date
    service_id: int
    duration_minutes: int
    granularity_minutes: int
    collaborator_id: Optional[int]
    slots: List[Slot]

    @property
    def available_slots(self) -> List[Slot]:
        return [slot for slot in self.slots if slot.available]

    @property
    def available_minutes(self) -> List[int]:
        return [slot.minutes for slot in self.available_slots]

    def free_collaborators_at(self, minutes: int) -> List[int]:
        for slot in self.slots:
            if slot.minutes == minutes:
                return list(slot.collaborator_ids)
        return []


def compute_availability(
    session: Session,
    organization_id: int,
    service_id: int,
    on_date: date,
    collaborator_id: Optional[int] = None,
    duration_minutes: Optional[int] = None,
    granularity_minutes: int = config.SLOT_GRANULARITY_MINUTES,
) -> Availability:
    if granularity_minutes < 1:
        raise ValidationError("granularity_minutes must be positive")

    # 1) Resolve service and duration
    service = get_service(session, organization_id, service_id)
    duration = duration_minutes if duration_minutes is not None else service.duration_minutes
    if duration < 1 or duration > MINUTES_PER_DAY:
        raise ValidationError("duration_minutes must fit within a single day")

    # 2) Resolve candidate collaborators
    if collaborator_id is not None:
        collaborator = get_collaborator(session, organization_id, collaborator_id)
        # inactive or not offering the service: no slots
        if collaborator.is_active and offers_service(session, organization_id, collaborator_id, service.id):
            candidates = [collaborator_id]
        else:
            candidates = []
    else:
        candidates = eligible_collaborator_ids(session, organization_id, service.id, on_date)

    # 3) Per candidate: theoretical grid over working hours, then the free subset
    theoretical: Set[int] = set()
    free_by_start: Dict[int, List[int]] = {}

    for candidate in candidates:
        working = working_intervals(session, organization_id, candidate, on_date)
        if not working:
            continue

        for interval in working:
            theoretical.update(aligned_starts(interval, duration, granularity_minutes))

        cuts = block_intervals(session, organization_id, candidate, on_date)
        cuts += occupied_intervals(session, organization_id, candidate, on_date)
        for free in subtract_all(working, cuts):
            if free.length < duration:
                continue
            for start in aligned_starts(free, duration, granularity_minutes):
                free_by_start.setdefault(start, []).append(candidate)

    # 4) One entry per theoretical start time, tagged with whoever is free
    slots = [
        Slot(minutes=start, collaborator_ids=sorted(free_by_start.get(start, [])))
        for start in sorted(theoretical)
    ]

    logger.debug(
        "Availability org=%s service=%s date=%s candidates=%s free=%d/%d",
        organization_id, service.id, on_date, candidates,
        sum(1 for slot in slots if slot.available), len(slots),
    )

    return Availability(
        on_date=on_date,
        service_id=service.id,
        duration_minutes=duration,
        granularity_minutes=granularity_minutes,
        collaborator_id=collaborator_id,
        slots=slots,
    )


def available_slots(
    session: Session,
    organization_id: int,
    service_id: int,
    on_date: date,
    collaborator_id: Optional[int] = None,
) -> List[time]:
    """Bookable start times (``datetime.time``), ascending and deduplicated."""
    availability = compute_availability(session, organization_id, service_id, on_date, collaborator_id)
    return [slot.time for slot in availability.available_slots]


def available_collaborators(
    session: Session,
    organization_id: int,
    service_id: int,
    on_date: date,
) -> List[Collaborator]:
    """Eligible collaborators with at least one free start for the service on that date."""
    availability = compute_availability(session, organization_id, service_id, on_date)

    free_ids: Set[int] = set()
    for slot in availability.available_slots:
        free_ids.update(slot.collaborator_ids)

    return [get_collaborator(session, organization_id, collaborator_id) for collaborator_id in sorted(free_ids)]
