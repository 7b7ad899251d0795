"""Tests for 12-hour slot parsing and interval arithmetic."""

import itertools

import pytest

from app.utils import time_slots
from app.utils.time_slots import MalformedTimeError


class TestToMinutes:
    """Parsing "HH:MM AM/PM" strings."""

    @pytest.mark.parametrize(
        "slot,expected",
        [
            ("09:15 AM", 555),
            ("9:15 am", 555),
            ("12:00 AM", 0),
            ("12:30 AM", 30),
            ("12:00 PM", 720),
            ("12:15 PM", 735),
            ("01:00 PM", 780),
            ("07:00 PM", 1140),
            ("11:59 PM", 1439),
        ],
    )
    def test_parses_valid_times(self, slot, expected):
        """Midnight and noon follow the 12-hour clock convention."""
        assert time_slots.to_minutes(slot) == expected

    @pytest.mark.parametrize(
        "slot",
        ["", "0915 AM", "09:15", "ab:cd AM", "09:15 XM", "13:00 PM", "00:30 AM", "09:60 AM", None],
    )
    def test_rejects_malformed_times(self, slot):
        """Unparseable input raises MalformedTimeError carrying the value."""
        with pytest.raises(MalformedTimeError) as exc_info:
            time_slots.to_minutes(slot)
        assert exc_info.value.value == slot

    def test_malformed_time_is_a_value_error(self):
        with pytest.raises(ValueError):
            time_slots.to_minutes("noon")


class TestIntervals:
    """Duration and half-open overlap."""

    def test_duration_of_canonical_slot(self):
        assert time_slots.duration("09:15 AM", "10:00 AM") == 45

    def test_duration_can_be_negative(self):
        """Reversed intervals are reported, not rejected, by the utility."""
        assert time_slots.duration("10:00 AM", "09:15 AM") == -45

    def test_partial_overlap(self):
        """[555,600) and [585,630) overlap."""
        assert time_slots.overlaps("09:15 AM", "10:00 AM", "09:45 AM", "10:30 AM")

    def test_adjacent_slots_do_not_overlap(self):
        assert not time_slots.overlaps("09:15 AM", "10:00 AM", "10:00 AM", "10:45 AM")

    def test_containment_overlaps(self):
        assert time_slots.overlaps("09:00 AM", "12:00 PM", "10:00 AM", "10:45 AM")

    def test_overlap_is_symmetric_over_catalog(self):
        """Swapping the two intervals never changes the answer."""
        intervals = [(slot, time_slots.slot_end(slot)) for slot in time_slots.SLOT_LABELS]
        intervals += [("09:45 AM", "10:30 AM"), ("12:00 PM", "02:00 PM"), ("06:30 PM", "07:45 PM")]

        for a, b in itertools.product(intervals, repeat=2):
            assert time_slots.overlaps(*a, *b) == time_slots.overlaps(*b, *a)

    def test_overlap_propagates_malformed_time(self):
        with pytest.raises(MalformedTimeError):
            time_slots.overlaps("09:15 AM", "10:00", "09:45 AM", "10:30 AM")


class TestSlotCatalog:
    def test_catalog_has_fourteen_slots_45_minutes_apart(self):
        minutes = [time_slots.to_minutes(slot) for slot in time_slots.SLOT_LABELS]
        assert len(minutes) == 14
        assert minutes[0] == time_slots.to_minutes("09:15 AM")
        assert minutes[-1] == time_slots.to_minutes("07:00 PM")
        assert all(b - a == 45 for a, b in zip(minutes, minutes[1:]))

    def test_slot_end_matches_next_label(self):
        for current, following in zip(time_slots.SLOT_LABELS, time_slots.SLOT_LABELS[1:]):
            assert time_slots.slot_end(current) == following

    def test_from_minutes_formats_noon_and_midnight(self):
        assert time_slots.from_minutes(0) == "12:00 AM"
        assert time_slots.from_minutes(720) == "12:00 PM"
        assert time_slots.from_minutes(1185) == "07:45 PM"

    def test_is_canonical_slot(self):
        assert time_slots.is_canonical_slot("12:15 PM")
        assert not time_slots.is_canonical_slot("09:45 AM")
