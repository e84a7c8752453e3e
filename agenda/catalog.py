# agenda/catalog.py

from datetime import date
from typing import List

from sqlmodel import Session, col, select

from agenda.errors import NotFoundError, ValidationError
from agenda.models import Collaborator, MemberService, Service, WorkingHourRule
from agenda.resolvers import weekday_index


def get_service(session: Session, organization_id: int, service_id: int, require_active: bool = True) -> Service:
    service = session.get(Service, service_id)
    if service is None or service.organization_id != organization_id:
        raise NotFoundError("Service not found")
    if require_active and not service.is_active:
        raise ValidationError("Service is not active")
    return service


def get_collaborator(session: Session, organization_id: int, collaborator_id: int) -> Collaborator:
    collaborator = session.get(Collaborator, collaborator_id)
    if collaborator is None or collaborator.organization_id != organization_id:
        raise NotFoundError("Collaborator not found")
    return collaborator


def eligible_collaborator_ids(session: Session, organization_id: int, service_id: int, on_date: date) -> List[int]:
    """Active collaborators who offer the service and have an active rule on that weekday."""
    rows = session.exec(
        select(Collaborator.id)
        .join(MemberService, col(MemberService.collaborator_id) == col(Collaborator.id))
        .join(WorkingHourRule, col(WorkingHourRule.collaborator_id) == col(Collaborator.id))
        .where(Collaborator.organization_id == organization_id)
        .where(Collaborator.is_active == True)  # noqa: E712
        .where(MemberService.organization_id == organization_id)
        .where(MemberService.service_id == service_id)
        .where(WorkingHourRule.organization_id == organization_id)
        .where(WorkingHourRule.day_of_week == weekday_index(on_date))
        .where(WorkingHourRule.is_active == True)  # noqa: E712
        .distinct()
        .order_by(Collaborator.id)
    ).all()
    return list(rows)


def offers_service(session: Session, organization_id: int, collaborator_id: int, service_id: int) -> bool:
    row = session.exec(
        select(MemberService.id)
        .where(MemberService.organization_id == organization_id)
        .where(MemberService.collaborator_id == collaborator_id)
        .where(MemberService.service_id == service_id)
    ).first()
    return row is not None
