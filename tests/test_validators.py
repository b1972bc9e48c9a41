"""Tests for the booking validator."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from app.core.errors import ErrorKind
from app.modules.appointments.validators import (
    BookingRules,
    FieldCheck,
    validate_appointment_date,
    validate_booking_request,
    validate_fields,
    validate_reference,
    validate_text_length,
)
from tests.conftest import COLOMBO, NOW

RULES = BookingRules(tz=COLOMBO)


def at(days: float = 0, hours: float = 0, minutes: float = 0) -> datetime:
    return NOW + timedelta(days=days, hours=hours, minutes=minutes)


class TestValidateReference:
    def test_valid_uuid(self):
        value = uuid.uuid4()
        check = validate_reference(str(value), "Hospital ID")
        assert check.valid and check.value == value

    def test_missing_required(self):
        check = validate_reference(None, "Hospital ID")
        assert not check.valid
        assert check.kind is ErrorKind.REQUIRED_FIELD
        assert check.error == "Hospital ID is required"

    def test_malformed(self):
        check = validate_reference("abc123", "Department ID")
        assert check.kind is ErrorKind.INVALID_REFERENCE
        assert check.error == "Invalid Department ID format"

    def test_missing_optional_is_valid(self):
        check = validate_reference("", "Doctor ID", required=False)
        assert check.valid and check.value is None


class TestValidateAppointmentDate:
    @pytest.mark.parametrize(
        "offset",
        [timedelta(days=2), timedelta(days=30), timedelta(days=60, hours=3), timedelta(hours=25)],
    )
    def test_valid_dates(self, offset):
        check = validate_appointment_date((NOW + offset).isoformat(), NOW, RULES)
        assert check.valid, check.error

    def test_missing(self):
        check = validate_appointment_date(None, NOW, RULES)
        assert check.kind is ErrorKind.REQUIRED_FIELD
        assert check.error == "Appointment date is required"

    def test_unparseable(self):
        check = validate_appointment_date("next tuesday", NOW, RULES)
        assert check.kind is ErrorKind.INVALID_DATE
        assert check.error == "Invalid date format"

    @pytest.mark.parametrize("offset", [timedelta(0), timedelta(days=-1), timedelta(minutes=-1)])
    def test_past_or_now(self, offset):
        check = validate_appointment_date((NOW + offset).isoformat(), NOW, RULES)
        assert check.kind is ErrorKind.PAST_DATE
        assert check.error == "Cannot book appointments in the past"

    @pytest.mark.parametrize("offset", [timedelta(minutes=1), timedelta(hours=5), timedelta(hours=23, minutes=59)])
    def test_insufficient_notice(self, offset):
        check = validate_appointment_date((NOW + offset).isoformat(), NOW, RULES)
        assert check.kind is ErrorKind.INSUFFICIENT_NOTICE
        assert check.error == "Appointments must be booked at least 24 hours in advance"

    def test_exactly_24_hours_is_enough(self):
        assert validate_appointment_date(at(hours=24).isoformat(), NOW, RULES).valid

    def test_beyond_three_months(self):
        # NOW is 2025-06-01 09:00; the window closes 2025-09-01 09:00
        check = validate_appointment_date("2025-09-01T10:00", NOW, RULES)
        assert check.kind is ErrorKind.BOOKING_WINDOW_EXCEEDED
        assert check.error == "Cannot book appointments more than 3 months in advance"

    def test_exactly_three_months_is_allowed(self):
        assert validate_appointment_date("2025-09-01T09:00", NOW, RULES).valid

    @pytest.mark.parametrize("local_time", ["07:59", "20:00", "23:30", "03:00"])
    def test_outside_business_hours(self, local_time):
        check = validate_appointment_date(f"2025-06-10T{local_time}", NOW, RULES)
        assert check.kind is ErrorKind.OUTSIDE_BUSINESS_HOURS
        assert check.error == "Appointments must be between 8:00 AM and 8:00 PM"

    @pytest.mark.parametrize("local_time", ["08:00", "12:30", "19:59"])
    def test_inside_business_hours(self, local_time):
        assert validate_appointment_date(f"2025-06-10T{local_time}", NOW, RULES).valid

    def test_hour_is_checked_in_hospital_timezone(self):
        # 03:00 UTC == 08:30 Colombo, 15:00 UTC == 20:30 Colombo
        assert validate_appointment_date("2025-06-10T03:00:00Z", NOW, RULES).valid
        check = validate_appointment_date("2025-06-10T15:00:00Z", NOW, RULES)
        assert check.kind is ErrorKind.OUTSIDE_BUSINESS_HOURS

    def test_naive_value_read_as_local_time(self):
        check = validate_appointment_date("2025-06-10T10:00", NOW, RULES)
        assert check.value == datetime(2025, 6, 10, 4, 30, tzinfo=timezone.utc)

    def test_first_failing_rule_wins(self):
        # In the past and outside business hours: only the past rule is reported
        check = validate_appointment_date("2025-05-01T22:00", NOW, RULES)
        assert check.kind is ErrorKind.PAST_DATE


class TestValidateTextLength:
    def test_at_limit(self):
        assert validate_text_length("x" * 500, 500).valid

    def test_over_limit(self):
        check = validate_text_length("x" * 501, 500)
        assert check.kind is ErrorKind.TEXT_TOO_LONG
        assert check.error == "Notes must be less than 500 characters"

    def test_length_measured_after_strip(self):
        assert validate_text_length("   " + "x" * 500 + "   ", 500).valid

    def test_absent(self):
        assert validate_text_length(None, 500).valid


class TestValidateFields:
    def test_collects_every_failure(self):
        errors = validate_fields(
            {
                "a": FieldCheck.ok(),
                "b": FieldCheck.fail(ErrorKind.REQUIRED_FIELD, "B is required"),
                "c": FieldCheck.fail(ErrorKind.TEXT_TOO_LONG, "C too long"),
            }
        )
        assert set(errors) == {"b", "c"}
        assert errors["c"].kind is ErrorKind.TEXT_TOO_LONG

    def test_booking_request_reports_all_fields_at_once(self):
        errors, _ = validate_booking_request(
            {"hospital": "bad-id", "date": "2025-06-10T22:00", "notes": "x" * 600},
            NOW,
            RULES,
            patient_required=True,
        )
        assert errors["hospital"].kind is ErrorKind.INVALID_REFERENCE
        assert errors["department"].kind is ErrorKind.REQUIRED_FIELD
        assert errors["patient"].kind is ErrorKind.REQUIRED_FIELD
        assert errors["date"].kind is ErrorKind.OUTSIDE_BUSINESS_HOURS
        assert errors["notes"].kind is ErrorKind.TEXT_TOO_LONG
        assert "doctor" not in errors

    def test_clean_request(self):
        hospital, department = uuid.uuid4(), uuid.uuid4()
        errors, cleaned = validate_booking_request(
            {"hospital": str(hospital), "department": str(department), "date": "2025-06-10T10:00", "notes": "  cough "},
            NOW,
            RULES,
            patient_required=False,
        )
        assert errors == {}
        assert cleaned["hospital"] == hospital
        assert cleaned["notes"] == "cough"
        assert "patient" not in cleaned
