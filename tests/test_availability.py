"""Tests for the availability resolver (pure functions and service wrappers)."""

import uuid
from datetime import date, datetime, timezone
from types import SimpleNamespace

import pytest

from app.core.errors import InvalidArgumentError, NotFoundError
from app.modules.doctors.availability import (
    available_slots,
    is_on_leave,
    is_service_day,
    normalize_day_name,
    weekday_name,
)
from app.modules.doctors.repository import add_leave
from app.modules.doctors.service import (
    available_slots_svc,
    check_doctor_availability_svc,
)
from tests.conftest import COLOMBO, booking


def make_doctor(days=("Monday", "Wednesday", "Friday"), leaves=()):
    return SimpleNamespace(
        available_days=list(days),
        leaves=[SimpleNamespace(start_date=s, end_date=e) for s, e in leaves],
    )


# 2025-06-09 Monday, 06-10 Tuesday, 06-11 Wednesday
MONDAY = date(2025, 6, 9)
TUESDAY = date(2025, 6, 10)
WEDNESDAY = date(2025, 6, 11)


class TestServiceDay:
    def test_listed_weekday(self):
        assert is_service_day(make_doctor(), MONDAY)

    def test_unlisted_weekday(self):
        assert not is_service_day(make_doctor(), TUESDAY)

    def test_day_names_are_case_insensitive(self):
        assert is_service_day(make_doctor(days=["monday"]), MONDAY)

    def test_aware_datetime_uses_hospital_timezone(self):
        # Monday 20:00 UTC is already Tuesday 01:30 in Colombo
        late_monday_utc = datetime(2025, 6, 9, 20, 0, tzinfo=timezone.utc)
        assert weekday_name(late_monday_utc, COLOMBO) == "Tuesday"
        assert not is_service_day(make_doctor(), late_monday_utc, COLOMBO)

    def test_normalize_day_name(self):
        assert normalize_day_name(" friday ") == "Friday"
        with pytest.raises(ValueError):
            normalize_day_name("Funday")


class TestOnLeave:
    def test_bounds_are_inclusive(self):
        doctor = make_doctor(leaves=[(date(2025, 6, 9), date(2025, 6, 11))])
        assert is_on_leave(doctor, date(2025, 6, 9))
        assert is_on_leave(doctor, date(2025, 6, 10))
        assert is_on_leave(doctor, date(2025, 6, 11))

    def test_outside_leave(self):
        doctor = make_doctor(leaves=[(date(2025, 6, 9), date(2025, 6, 11))])
        assert not is_on_leave(doctor, date(2025, 6, 8))
        assert not is_on_leave(doctor, date(2025, 6, 12))

    def test_no_leaves(self):
        assert not is_on_leave(make_doctor(), MONDAY)


class TestAvailableSlots:
    def test_wrong_weekday_is_empty_regardless_of_bookings(self):
        doctor = make_doctor()
        assert available_slots(doctor, TUESDAY, []) == []
        assert available_slots(doctor, TUESDAY, ["09:00", "09:15"]) == []

    def test_on_leave_is_empty(self):
        doctor = make_doctor(leaves=[(MONDAY, MONDAY)])
        assert available_slots(doctor, MONDAY, []) == []

    def test_booked_starts_removed(self):
        slots = available_slots(
            make_doctor(), MONDAY, ["09:15"], day_start="09:00", day_end="10:00"
        )
        assert slots == ["09:00", "09:30", "09:45"]

    def test_full_default_day(self):
        slots = available_slots(make_doctor(), WEDNESDAY, [])
        assert len(slots) == 32
        assert slots == sorted(slots)


class TestAvailabilityService:
    async def test_unknown_doctor(self, session, rules, world):
        with pytest.raises(NotFoundError):
            await available_slots_svc(
                session, uuid.uuid4(), MONDAY, rules, day_start="09:00", day_end="17:00"
            )

    async def test_missing_date(self, session, rules, world):
        with pytest.raises(InvalidArgumentError):
            await available_slots_svc(
                session, world.doctor.id, None, rules, day_start="09:00", day_end="17:00"
            )

    async def test_booked_slot_disappears(self, session, scheduler, rules, world, patient_actor):
        # Wednesday 2025-06-11 10:00 in Colombo, with the seeded doctor
        await scheduler.create(
            booking(world, "2025-06-11T10:00", doctor=str(world.doctor.id)), patient_actor
        )
        slots = await available_slots_svc(
            session, world.doctor.id, WEDNESDAY, rules, day_start="09:00", day_end="17:00"
        )
        assert "10:00" not in slots
        assert "09:45" in slots and "10:15" in slots

    async def test_leave_added_after_load_is_seen(self, session, rules, world):
        await add_leave(session, world.doctor, start_date=WEDNESDAY, end_date=WEDNESDAY)
        slots = await available_slots_svc(
            session, world.doctor.id, WEDNESDAY, rules, day_start="09:00", day_end="17:00"
        )
        assert slots == []


class TestAvailabilityCheck:
    async def test_wrong_weekday_message(self, session, rules, world):
        result = await check_doctor_availability_svc(session, world.doctor.id, TUESDAY, "10:00", rules)
        assert result == {"available": False, "message": "Doctor not available on Tuesday"}

    async def test_on_leave_message(self, session, rules, world):
        await add_leave(session, world.doctor, start_date=MONDAY, end_date=WEDNESDAY, reason="Conference")
        result = await check_doctor_availability_svc(session, world.doctor.id, WEDNESDAY, "10:00", rules)
        assert result == {"available": False, "message": "Doctor is on leave on this date"}

    async def test_booked_message(self, session, scheduler, rules, world, patient_actor):
        await scheduler.create(
            booking(world, "2025-06-11T10:00", doctor=str(world.doctor.id)), patient_actor
        )
        result = await check_doctor_availability_svc(session, world.doctor.id, WEDNESDAY, "10:00", rules)
        assert result == {"available": False, "message": "Doctor already booked at this time slot"}

    async def test_available(self, session, rules, world):
        result = await check_doctor_availability_svc(session, world.doctor.id, WEDNESDAY, "10:00", rules)
        assert result == {"available": True, "message": "Doctor available for this slot"}

    async def test_bad_time_slot(self, session, rules, world):
        with pytest.raises(InvalidArgumentError):
            await check_doctor_availability_svc(session, world.doctor.id, WEDNESDAY, "25:00", rules)
