# agenda/routers/collaborators_routes.py

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlmodel import Session, col, select

from agenda.catalog import get_collaborator
from agenda.db import get_session
from agenda.errors import NotFoundError
from agenda.models import MemberService, ScheduleBlock, Service, WorkingHourRule
from agenda.schemas import (
    BlockCreate,
    BlockPublic,
    MemberServicesReplace,
    WorkingHourRulePublic,
    WorkingHoursReplace,
)

router = APIRouter(
    prefix="/organizations/{organization_id}/collaborators/{collaborator_id}",
    tags=["collaborators"],
)


@router.put("/working-hours", response_model=List[WorkingHourRulePublic])
def replace_working_hours(
    organization_id: int,
    collaborator_id: int,
    payload: WorkingHoursReplace,
    session: Session = Depends(get_session),
):
    get_collaborator(session, organization_id, collaborator_id)

    # Full replace: drop every rule, then insert the new week in the same transaction
    existing = session.exec(
        select(WorkingHourRule)
        .where(WorkingHourRule.organization_id == organization_id)
        .where(WorkingHourRule.collaborator_id == collaborator_id)
    ).all()
    for rule in existing:
        session.delete(rule)
    session.flush()
    rules = [
        WorkingHourRule(
            organization_id=organization_id,
            collaborator_id=collaborator_id,
            day_of_week=rule.day_of_week,
            start_time=rule.start_time,
            end_time=rule.end_time,
            is_active=rule.is_active,
        )
        for rule in payload.rules
    ]
    session.add_all(rules)
    session.commit()

    for rule in rules:
        session.refresh(rule)
    return sorted(rules, key=lambda rule: rule.day_of_week)


@router.get("/working-hours", response_model=List[WorkingHourRulePublic])
def list_working_hours(
    organization_id: int,
    collaborator_id: int,
    session: Session = Depends(get_session),
):
    get_collaborator(session, organization_id, collaborator_id)

    return session.exec(
        select(WorkingHourRule)
        .where(WorkingHourRule.organization_id == organization_id)
        .where(WorkingHourRule.collaborator_id == collaborator_id)
        .order_by(WorkingHourRule.day_of_week, WorkingHourRule.start_time)
    ).all()


@router.post("/blocks", response_model=BlockPublic, status_code=201)
def create_block(
    organization_id: int,
    collaborator_id: int,
    block: BlockCreate,
    session: Session = Depends(get_session),
):
    get_collaborator(session, organization_id, collaborator_id)

    db_block = ScheduleBlock(
        organization_id=organization_id,
        collaborator_id=collaborator_id,
        date=block.date,
        start_time=block.start_time,
        end_time=block.end_time,
        is_all_day=block.is_all_day,
        reason=block.reason,
    )
    session.add(db_block)
    session.commit()
    session.refresh(db_block)

    return db_block


@router.get("/blocks", response_model=List[BlockPublic])
def list_blocks(
    organization_id: int,
    collaborator_id: int,
    on_date: Optional[date] = Query(default=None, alias="date"),
    session: Session = Depends(get_session),
):
    get_collaborator(session, organization_id, collaborator_id)

    stmt = (
        select(ScheduleBlock)
        .where(ScheduleBlock.organization_id == organization_id)
        .where(ScheduleBlock.collaborator_id == collaborator_id)
    )
    if on_date is not None:
        stmt = stmt.where(ScheduleBlock.date == on_date)

    return session.exec(stmt.order_by(ScheduleBlock.date, ScheduleBlock.start_time)).all()


@router.delete("/blocks/{block_id}", status_code=204)
def delete_block(
    organization_id: int,
    collaborator_id: int,
    block_id: int,
    session: Session = Depends(get_session),
):
    block = session.get(ScheduleBlock, block_id)
    if (
        block is None
        or block.organization_id != organization_id
        or block.collaborator_id != collaborator_id
    ):
        raise NotFoundError("Schedule block not found")

    session.delete(block)
    session.commit()
    return Response(status_code=204)


@router.put("/services", response_model=List[int])
def replace_member_services(
    organization_id: int,
    collaborator_id: int,
    payload: MemberServicesReplace,
    session: Session = Depends(get_session),
):
    get_collaborator(session, organization_id, collaborator_id)

    service_ids = sorted(set(payload.service_ids))
    if service_ids:
        known = session.exec(
            select(Service.id)
            .where(Service.organization_id == organization_id)
            .where(col(Service.id).in_(service_ids))
        ).all()
        missing = sorted(set(service_ids) - set(known))
        if missing:
            raise NotFoundError(f"Unknown services: {missing}")

    existing = session.exec(
        select(MemberService)
        .where(MemberService.organization_id == organization_id)
        .where(MemberService.collaborator_id == collaborator_id)
    ).all()
    for member_service in existing:
        session.delete(member_service)
    session.flush()
    session.add_all(
        MemberService(organization_id=organization_id, collaborator_id=collaborator_id, service_id=service_id)
        for service_id in service_ids
    )
    session.commit()

    return service_ids


@router.get("/services", response_model=List[int])
def list_member_services(
    organization_id: int,
    collaborator_id: int,
    session: Session = Depends(get_session),
):
    get_collaborator(session, organization_id, collaborator_id)

    return session.exec(
        select(MemberService.service_id)
        .where(MemberService.organization_id == organization_id)
        .where(MemberService.collaborator_id == collaborator_id)
        .order_by(MemberService.service_id)
    ).all()
