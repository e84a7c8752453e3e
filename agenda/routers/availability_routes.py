# agenda/routers/availability_routes.py

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from agenda.availability import available_collaborators, compute_availability
from agenda.db import get_session
from agenda.schemas import AvailabilityResponse, CollaboratorPublic, SlotPublic

router = APIRouter(
    prefix="/organizations/{organization_id}",
    tags=["availability"],
)


@router.get("/availability", response_model=AvailabilityResponse)
def get_availability(
    organization_id: int,
    service_id: int,
    on_date: date = Query(alias="date"),
    collaborator_id: Optional[int] = None,
    session: Session = Depends(get_session),
):
    availability = compute_availability(
        session,
        organization_id=organization_id,
        service_id=service_id,
        on_date=on_date,
        collaborator_id=collaborator_id,
    )
    # read-only: release the transaction before serializing
    session.rollback()

    return AvailabilityResponse(
        date=availability.on_date,
        service_id=availability.service_id,
        collaborator_id=availability.collaborator_id,
        duration_minutes=availability.duration_minutes,
        granularity_minutes=availability.granularity_minutes,
        available_times=[slot.time for slot in availability.available_slots],
        slots=[
            SlotPublic(time=slot.time, available=slot.available, collaborator_ids=slot.collaborator_ids)
            for slot in availability.slots
        ],
    )


@router.get("/availability/collaborators", response_model=List[CollaboratorPublic])
def get_available_collaborators(
    organization_id: int,
    service_id: int,
    on_date: date = Query(alias="date"),
    session: Session = Depends(get_session),
):
    # Professionals step of the booking wizard: only those with a free start that day
    return available_collaborators(session, organization_id, service_id, on_date)
