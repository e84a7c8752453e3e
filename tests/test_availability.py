from datetime import time

import pytest
from sqlmodel import Session, select

from agenda.availability import available_collaborators, available_slots, compute_availability
from agenda.errors import NotFoundError, ValidationError
from agenda.models import Collaborator, MemberService, WorkingHourRule

from conftest import MONDAY, SUNDAY, add_appointment, add_block, seed_organization


def test_open_day_offers_every_aligned_start(engine, seed) -> None:
    with Session(engine) as session:
        times = available_slots(session, seed.organization_id, seed.haircut, MONDAY, seed.alice)

    assert len(times) == 35
    assert times[0] == time(9, 0)
    assert times[-1] == time(17, 30)
    assert times == sorted(set(times))


def test_booked_interval_hides_overlapping_starts(engine, seed) -> None:
    add_appointment(engine, seed, seed.alice, time(10, 0))

    with Session(engine) as session:
        times = available_slots(session, seed.organization_id, seed.haircut, MONDAY, seed.alice)

    assert time(9, 30) in times
    assert time(9, 45) not in times
    assert time(10, 0) not in times
    assert time(10, 15) not in times
    assert time(10, 30) in times
    assert len(times) == 32


def test_cancelled_appointment_frees_its_slot(engine, seed) -> None:
    add_appointment(engine, seed, seed.alice, time(10, 0), status="cancelled")

    with Session(engine) as session:
        times = available_slots(session, seed.organization_id, seed.haircut, MONDAY, seed.alice)

    assert time(10, 0) in times


def test_all_day_block_empties_the_day(engine, seed) -> None:
    add_block(engine, seed, seed.alice, is_all_day=True)

    with Session(engine) as session:
        assert available_slots(session, seed.organization_id, seed.haircut, MONDAY, seed.alice) == []


def test_partial_block_removes_overlapping_starts(engine, seed) -> None:
    add_block(engine, seed, seed.alice, start=time(12, 0), end=time(13, 0))

    with Session(engine) as session:
        times = available_slots(session, seed.organization_id, seed.haircut, MONDAY, seed.alice)

    assert time(11, 30) in times
    assert time(11, 45) not in times
    assert time(12, 30) not in times
    assert time(13, 0) in times


def test_day_without_working_hours_has_no_slots(engine, seed) -> None:
    with Session(engine) as session:
        availability = compute_availability(session, seed.organization_id, seed.haircut, SUNDAY)

    assert availability.slots == []


def test_no_preference_tags_each_slot_with_free_collaborators(engine, seed) -> None:
    add_appointment(engine, seed, seed.alice, time(10, 0))
    add_appointment(engine, seed, seed.bruno, time(14, 0))

    with Session(engine) as session:
        availability = compute_availability(session, seed.organization_id, seed.haircut, MONDAY)

    assert availability.free_collaborators_at(540) == [seed.alice, seed.bruno]
    assert availability.free_collaborators_at(600) == [seed.bruno]
    assert availability.free_collaborators_at(840) == [seed.alice]
    assert len(availability.available_slots) == 35


def test_no_preference_skips_inactive_collaborators(engine, seed) -> None:
    with Session(engine) as session:
        bruno = session.get(Collaborator, seed.bruno)
        bruno.is_active = False
        session.add(bruno)
        session.commit()

        availability = compute_availability(session, seed.organization_id, seed.haircut, MONDAY)

    assert availability.free_collaborators_at(540) == [seed.alice]


def test_duration_override_and_shorter_service(engine, seed) -> None:
    with Session(engine) as session:
        beard = compute_availability(session, seed.organization_id, seed.beard, MONDAY, seed.alice)
        long_visit = compute_availability(
            session, seed.organization_id, seed.haircut, MONDAY, seed.alice, duration_minutes=120,
        )

    assert beard.available_minutes[-1] == 17 * 60 + 45
    assert len(beard.available_slots) == 36
    assert long_visit.available_minutes[-1] == 16 * 60


def test_availability_is_repeatable(engine, seed) -> None:
    add_appointment(engine, seed, seed.alice, time(11, 0))

    with Session(engine) as session:
        first = available_slots(session, seed.organization_id, seed.haircut, MONDAY)
        second = available_slots(session, seed.organization_id, seed.haircut, MONDAY)

    assert first == second


def test_other_organization_data_is_invisible(engine, seed) -> None:
    other = seed_organization(engine, organization_id=2)
    add_appointment(engine, other, other.alice, time(10, 0))
    add_block(engine, other, other.bruno, is_all_day=True)

    with Session(engine) as session:
        availability = compute_availability(session, seed.organization_id, seed.haircut, MONDAY)
        assert availability.free_collaborators_at(600) == [seed.alice, seed.bruno]

        with pytest.raises(NotFoundError):
            compute_availability(session, other.organization_id, seed.haircut, MONDAY)
        with pytest.raises(NotFoundError):
            compute_availability(session, seed.organization_id, seed.haircut, MONDAY, other.alice)


def drop_member_service(engine, seed, collaborator_id, service_id) -> None:
    with Session(engine) as session:
        for row in session.exec(
            select(MemberService)
            .where(MemberService.collaborator_id == collaborator_id)
            .where(MemberService.service_id == service_id)
        ).all():
            session.delete(row)
        session.commit()


def test_named_collaborator_must_offer_the_service(engine, seed) -> None:
    drop_member_service(engine, seed, seed.alice, seed.haircut)

    with Session(engine) as session:
        assert available_slots(session, seed.organization_id, seed.haircut, MONDAY, seed.alice) == []
        assert len(available_slots(session, seed.organization_id, seed.beard, MONDAY, seed.alice)) == 36


def test_inactive_named_collaborator_has_no_slots(engine, seed) -> None:
    with Session(engine) as session:
        session.get(Collaborator, seed.alice).is_active = False
        session.commit()

        assert available_slots(session, seed.organization_id, seed.haircut, MONDAY, seed.alice) == []


def test_explicit_zero_duration_is_rejected(engine, seed) -> None:
    with Session(engine) as session:
        with pytest.raises(ValidationError):
            compute_availability(session, seed.organization_id, seed.haircut, MONDAY, seed.alice, duration_minutes=0)


def test_grid_is_anchored_at_midnight(engine, seed) -> None:
    with Session(engine) as session:
        rule = session.exec(
            select(WorkingHourRule)
            .where(WorkingHourRule.collaborator_id == seed.alice)
            .where(WorkingHourRule.day_of_week == 1)
        ).one()
        rule.start_time = time(9, 10)
        session.commit()

        times = available_slots(session, seed.organization_id, seed.haircut, MONDAY, seed.alice)

    assert times[0] == time(9, 15)
    assert all(start.minute % 15 == 0 for start in times)


def test_available_collaborators_skip_blocked_ones(engine, seed) -> None:
    add_block(engine, seed, seed.bruno, is_all_day=True)

    with Session(engine) as session:
        collaborators = available_collaborators(session, seed.organization_id, seed.haircut, MONDAY)
        assert [collaborator.id for collaborator in collaborators] == [seed.alice]

        assert available_collaborators(session, seed.organization_id, seed.haircut, SUNDAY) == []


def test_available_collaborators_require_a_fitting_start(engine, seed) -> None:
    for hour in range(9, 18):
        add_appointment(engine, seed, seed.alice, time(hour, 0), duration_minutes=60)

    with Session(engine) as session:
        collaborators = available_collaborators(session, seed.organization_id, seed.haircut, MONDAY)

    assert [collaborator.id for collaborator in collaborators] == [seed.bruno]
