from datetime import date, time
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from agenda.db import build_engine, get_session
from agenda.lifecycle import clear_completion_hooks
from agenda.main import app
from agenda.models import Appointment, Collaborator, MemberService, ScheduleBlock, Service, WorkingHourRule

MONDAY = date(2024, 6, 10)
SUNDAY = date(2024, 6, 9)


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'agenda-test.db'}")
    SQLModel.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def seed(engine):
    return seed_organization(engine)


@pytest.fixture
def client(engine):
    def override_get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def no_completion_hooks():
    clear_completion_hooks()
    yield
    clear_completion_hooks()


def seed_organization(engine, organization_id: int = 1) -> SimpleNamespace:
    """Two collaborators working Mon-Fri 09:00-18:00, both offering both services.

    Ids are read before commit so no session keeps a transaction open afterwards.
    """
    with Session(engine) as session:
        haircut = Service(organization_id=organization_id, name="Haircut", duration_minutes=30, price=50.0)
        beard = Service(organization_id=organization_id, name="Beard trim", duration_minutes=15, price=25.0)
        alice = Collaborator(organization_id=organization_id, name="Alice")
        bruno = Collaborator(organization_id=organization_id, name="Bruno")
        session.add_all([haircut, beard, alice, bruno])
        session.flush()

        for collaborator in (alice, bruno):
            for service in (haircut, beard):
                session.add(MemberService(
                    organization_id=organization_id,
                    collaborator_id=collaborator.id,
                    service_id=service.id,
                ))
            for day in range(1, 6):
                session.add(WorkingHourRule(
                    organization_id=organization_id,
                    collaborator_id=collaborator.id,
                    day_of_week=day,
                    start_time=time(9, 0),
                    end_time=time(18, 0),
                ))

        ids = SimpleNamespace(
            organization_id=organization_id,
            haircut=haircut.id,
            beard=beard.id,
            alice=alice.id,
            bruno=bruno.id,
        )
        session.commit()
    return ids


def add_appointment(
    engine,
    seed,
    collaborator_id,
    start: time,
    duration_minutes: int = 30,
    status: str = "confirmed",
    on_date: date = MONDAY,
    client_id: int = 900,
) -> int:
    with Session(engine) as session:
        appointment = Appointment(
            organization_id=seed.organization_id,
            collaborator_id=collaborator_id,
            service_id=seed.haircut,
            client_id=client_id,
            scheduled_date=on_date,
            scheduled_time=start,
            duration_minutes=duration_minutes,
            status=status,
        )
        session.add(appointment)
        session.flush()
        appointment_id = appointment.id
        session.commit()
    return appointment_id


def add_block(engine, seed, collaborator_id, on_date=MONDAY, start=None, end=None, is_all_day=False) -> int:
    with Session(engine) as session:
        block = ScheduleBlock(
            organization_id=seed.organization_id,
            collaborator_id=collaborator_id,
            date=on_date,
            start_time=start,
            end_time=end,
            is_all_day=is_all_day,
        )
        session.add(block)
        session.flush()
        block_id = block.id
        session.commit()
    return block_id
