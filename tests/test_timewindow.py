"""Tests for app.modules.scheduling.timewindow."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from app.modules.scheduling.timewindow import (
    TimeSlot,
    compute_slot_end,
    format_hhmm,
    generate_daily_slots,
    parse_hhmm,
    slot_for_instant,
)


class TestParseAndFormat:
    def test_parse_hhmm(self):
        assert parse_hhmm("00:00") == 0
        assert parse_hhmm("09:30") == 570
        assert parse_hhmm("23:59") == 1439

    @pytest.mark.parametrize("value", ["24:00", "9:30", "09:60", "", "noon", None])
    def test_parse_rejects_malformed(self, value):
        with pytest.raises(ValueError):
            parse_hhmm(value)

    def test_format_wraps_past_midnight(self):
        assert format_hhmm(1440 + 5) == "00:05"
        assert format_hhmm(570) == "09:30"


class TestComputeSlotEnd:
    def test_regular_slot(self):
        assert compute_slot_end("09:00", 15) == "09:15"

    def test_wraps_around_midnight(self):
        assert compute_slot_end("23:50", 15) == "00:05"

    def test_default_duration_is_fifteen_minutes(self):
        assert compute_slot_end("10:45") == "11:00"


class TestGenerateDailySlots:
    def test_two_slots_in_half_hour(self):
        assert generate_daily_slots("09:00", "09:30", 15) == [
            TimeSlot("09:00", "09:15"),
            TimeSlot("09:15", "09:30"),
        ]

    def test_empty_when_start_equals_end(self):
        assert generate_daily_slots("09:00", "09:00", 15) == []

    def test_empty_when_start_after_end(self):
        assert generate_daily_slots("17:00", "09:00", 15) == []

    def test_partial_trailing_slot_is_dropped(self):
        slots = generate_daily_slots("09:00", "09:40", 15)
        assert [s.start for s in slots] == ["09:00", "09:15"]

    def test_default_grid_has_32_slots(self):
        slots = generate_daily_slots("09:00", "17:00")
        assert len(slots) == 32
        assert slots[0] == TimeSlot("09:00", "09:15")
        assert slots[-1] == TimeSlot("16:45", "17:00")

    def test_slots_are_contiguous(self):
        slots = generate_daily_slots("08:00", "12:00", 20)
        for left, right in zip(slots, slots[1:]):
            assert left.end == right.start

    @pytest.mark.parametrize("step", [0, -15])
    def test_non_positive_step_rejected(self, step):
        with pytest.raises(ValueError):
            generate_daily_slots("09:00", "10:00", step)


class TestSlotForInstant:
    def test_uses_hospital_wall_clock(self):
        colombo = ZoneInfo("Asia/Colombo")
        # 04:30 UTC is 10:00 in Colombo (+05:30)
        instant = datetime(2025, 6, 10, 4, 30, tzinfo=timezone.utc)
        assert slot_for_instant(instant, colombo) == TimeSlot("10:00", "10:15")

    def test_seconds_are_truncated(self):
        instant = datetime(2025, 6, 10, 10, 20, 45, tzinfo=timezone.utc)
        assert slot_for_instant(instant, timezone.utc).start == "10:20"
