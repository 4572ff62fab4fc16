# algorithms/availability/tests/test_conflict_detector.py
import time as timer
from datetime import date, datetime, time, timedelta, timezone
from unittest.mock import patch
from zoneinfo import ZoneInfo

from django.test import SimpleTestCase
from hypothesis import given, settings
from hypothesis import strategies as st

from algorithms.availability.business_hours import safe_local_datetime
from algorithms.availability.calculate import AvailabilityCalculator
from algorithms.availability.conflict_detector import (
    ConflictDetector,
    TimeRange,
    date_has_slots_with_events,
    filter_available_slots,
    has_conflict,
    has_conflict_with_events,
    prefilter_events,
)
from algorithms.availability.events import normalize_events
from algorithms.availability.schedule import BookingPolicy
from algorithms.availability.time_slots import parse_slot
from utils.exceptions import InvalidTimeFormatError

UTC = timezone.utc
NOW = datetime(2025, 6, 1, 6, 0, tzinfo=UTC)
MONDAY = date(2025, 6, 16)
TUESDAY = date(2025, 6, 17)

TIMEZONES = [
    "UTC",
    "America/New_York",
    "Europe/London",
    "Europe/Kyiv",
    "Asia/Tokyo",
    "Australia/Sydney",
    "Pacific/Auckland",
]
EXTREME_TIMEZONES = TIMEZONES + ["Pacific/Kiritimati", "Pacific/Niue", "Etc/GMT+12"]


def at(day, hour, minute=0, zone=UTC):
    return datetime.combine(day, time(hour, minute), tzinfo=zone)


def event(day, start, end, zone=UTC):
    return {"start": at(day, *start, zone=zone), "end": at(day, *end, zone=zone)}


def policy(**kwargs):
    values = {
        "duration_minutes": 30,
        "buffer_minutes": 0,
        "min_advance_hours": 0,
        "max_advance_booking_days": 90,
    }
    values.update(kwargs)
    return BookingPolicy(**values)


class TimeRangeTest(SimpleTestCase):
    """Test cases for the TimeRange helper"""

    def test_overlaps(self):
        morning = TimeRange(at(MONDAY, 9), at(MONDAY, 10))

        self.assertTrue(morning.overlaps(TimeRange(at(MONDAY, 9, 30), at(MONDAY, 11))))
        self.assertTrue(morning.overlaps(TimeRange(at(MONDAY, 8), at(MONDAY, 12))))
        self.assertFalse(morning.overlaps(TimeRange(at(MONDAY, 10), at(MONDAY, 11))))
        self.assertFalse(morning.overlaps(TimeRange(at(MONDAY, 8), at(MONDAY, 9))))

    def test_overlaps_across_timezones(self):
        """Ranges in different timezones compare by instant"""
        tokyo = safe_local_datetime(MONDAY, time(18, 0), "Asia/Tokyo")  # 09:00 UTC
        utc_range = TimeRange(at(MONDAY, 8, 30), at(MONDAY, 9, 30))

        self.assertTrue(utc_range.overlaps(TimeRange(tokyo, tokyo + timedelta(hours=1))))

    def test_contains(self):
        morning = TimeRange(at(MONDAY, 9), at(MONDAY, 10))

        self.assertTrue(morning.contains(at(MONDAY, 9)))
        self.assertTrue(morning.contains(at(MONDAY, 9, 59)))
        self.assertFalse(morning.contains(at(MONDAY, 10)))
        self.assertTrue(morning.contains_range(TimeRange(at(MONDAY, 9), at(MONDAY, 10))))
        self.assertFalse(morning.contains_range(TimeRange(at(MONDAY, 9), at(MONDAY, 10, 1))))

    def test_time_of_day_ranges(self):
        lunch = TimeRange(time(12, 0), time(13, 0))

        self.assertTrue(lunch.overlaps(TimeRange(time(12, 30), time(14, 0))))
        self.assertTrue(lunch.contains(time(12, 0)))
        self.assertEqual(str(lunch), "12:00 - 13:00")

    def test_buffered(self):
        padded = TimeRange(at(MONDAY, 10), at(MONDAY, 11)).buffered(15)

        self.assertEqual(padded.start, at(MONDAY, 9, 45))
        self.assertEqual(padded.end, at(MONDAY, 11, 15))

    def test_buffered_uses_absolute_time_across_dst(self):
        """Padding an event right after a spring-forward jump stays 30 real minutes"""
        start = safe_local_datetime(date(2025, 3, 9), time(3, 0), "America/New_York")
        padded = TimeRange(start, start + timedelta(hours=1)).buffered(30)

        self.assertEqual(padded.start, datetime(2025, 3, 9, 6, 30, tzinfo=UTC))


class HasConflictTest(SimpleTestCase):
    """Test cases for the buffered conflict predicate"""

    def test_boundaries_do_not_conflict_without_buffer(self):
        slot = (at(MONDAY, 10), at(MONDAY, 10, 30))

        self.assertFalse(has_conflict(*slot, at(MONDAY, 10, 30), at(MONDAY, 11)))
        self.assertFalse(has_conflict(*slot, at(MONDAY, 9, 30), at(MONDAY, 10)))
        self.assertTrue(has_conflict(*slot, at(MONDAY, 10, 15), at(MONDAY, 10, 45)))
        self.assertTrue(has_conflict(*slot, at(MONDAY, 9), at(MONDAY, 12)))

    def test_buffer_pads_both_sides(self):
        slot = (at(MONDAY, 10), at(MONDAY, 10, 30))

        # Padded event starts exactly when the slot ends
        self.assertFalse(has_conflict(*slot, at(MONDAY, 10, 45), at(MONDAY, 11), 15))
        self.assertTrue(has_conflict(*slot, at(MONDAY, 10, 44), at(MONDAY, 11), 15))
        # Padded event ends exactly when the slot starts
        self.assertFalse(has_conflict(*slot, at(MONDAY, 9), at(MONDAY, 9, 45), 15))
        self.assertTrue(has_conflict(*slot, at(MONDAY, 9), at(MONDAY, 9, 46), 15))

    def test_has_conflict_with_events(self):
        events = [event(MONDAY, (8, 0), (9, 0)), event(MONDAY, (12, 0), (13, 0))]

        self.assertFalse(has_conflict_with_events(at(MONDAY, 10), at(MONDAY, 11), events, 30))
        self.assertTrue(has_conflict_with_events(at(MONDAY, 10), at(MONDAY, 11, 1), events, 60))
        self.assertFalse(has_conflict_with_events(at(MONDAY, 10), at(MONDAY, 11), [], 60))

    def test_conflicting_events(self):
        first = event(MONDAY, (10, 0), (10, 30))
        first["uid"] = "first"
        second = event(MONDAY, (11, 0), (12, 0))
        detector = ConflictDetector([first, second], buffer_minutes=10)

        self.assertEqual(detector.conflicting_events(at(MONDAY, 10, 35), at(MONDAY, 10, 55)), [first, second])
        self.assertEqual(detector.conflicting_events(at(MONDAY, 10, 40), at(MONDAY, 10, 50)), [])

    def test_available_starts(self):
        detector = ConflictDetector([event(MONDAY, (10, 0), (11, 0))], buffer_minutes=0)
        starts = [at(MONDAY, hour) for hour in (8, 9, 10, 11)]

        self.assertEqual(
            detector.available_starts(starts, 60, earliest=at(MONDAY, 9)),
            [at(MONDAY, 9), at(MONDAY, 11)],
        )


class FilterAvailableSlotsTest(SimpleTestCase):
    """Test cases for filtering slot labels"""

    labels = ["9:00 AM", "9:30 AM", "10:00 AM", "10:30 AM", "11:00 AM"]

    def filter(self, events, target_date=MONDAY, now=NOW, **kwargs):
        return filter_available_slots(
            self.labels, events, 30, "UTC", target_date, policy(**kwargs), now=now
        )

    def test_no_events_keeps_everything(self):
        self.assertEqual(self.filter([]), self.labels)

    def test_conflicting_slot_is_dropped(self):
        events = [event(MONDAY, (10, 0), (10, 30))]

        self.assertEqual(self.filter(events), ["9:00 AM", "9:30 AM", "10:30 AM", "11:00 AM"])

    def test_buffer_drops_neighbours(self):
        events = [event(MONDAY, (10, 0), (10, 30))]

        self.assertEqual(self.filter(events, buffer_minutes=15), ["9:00 AM", "11:00 AM"])

    def test_multiple_events(self):
        events = [event(MONDAY, (9, 0), (9, 30)), event(MONDAY, (10, 30), (11, 30))]

        self.assertEqual(self.filter(events), ["9:30 AM", "10:00 AM"])

    def test_min_advance_drops_early_slots(self):
        now = at(MONDAY, 7, 0)

        self.assertEqual(
            self.filter([], now=now, min_advance_hours=3), ["10:00 AM", "10:30 AM", "11:00 AM"]
        )

    def test_max_advance_booking_days(self):
        today = NOW.date()

        self.assertEqual(self.filter([], target_date=today + timedelta(days=90)), self.labels)
        self.assertEqual(self.filter([], target_date=today + timedelta(days=91)), [])
        self.assertEqual(
            self.filter([], target_date=today + timedelta(days=400), max_advance_booking_days=None),
            self.labels,
        )

    def test_empty_labels(self):
        self.assertEqual(
            filter_available_slots([], [], 30, "UTC", MONDAY, policy(), now=NOW), []
        )

    def test_labels_are_local_to_timezone(self):
        """9:00 AM in Kyiv is 06:00 UTC"""
        events = [event(MONDAY, (6, 0), (6, 30))]

        self.assertEqual(
            filter_available_slots(
                ["9:00 AM", "9:30 AM"], events, 30, "Europe/Kyiv", MONDAY, policy(), now=NOW
            ),
            ["9:30 AM"],
        )

    def test_bad_label_raises(self):
        with self.assertRaises(InvalidTimeFormatError):
            filter_available_slots(["soon"], [], 30, "UTC", MONDAY, policy(), now=NOW)

    @patch("django.utils.timezone.now")
    def test_now_defaults_to_django_timezone_now(self, mock_now):
        mock_now.return_value = at(MONDAY, 9, 45)

        result = filter_available_slots(
            self.labels, [], 30, "UTC", MONDAY, policy(min_advance_hours=0)
        )

        self.assertEqual(result, ["10:00 AM", "10:30 AM", "11:00 AM"])


class PrefilterEventsTest(SimpleTestCase):
    """Test cases for the +/- 2 day pre-filter"""

    def test_keeps_events_within_two_days(self):
        events = normalize_events(
            [
                event(MONDAY - timedelta(days=3), (10, 0), (11, 0)),
                event(MONDAY - timedelta(days=2), (10, 0), (11, 0)),
                event(MONDAY, (10, 0), (11, 0)),
                event(MONDAY + timedelta(days=2), (10, 0), (11, 0)),
                event(MONDAY + timedelta(days=3), (10, 0), (11, 0)),
            ],
            "UTC",
        )

        kept = prefilter_events(events, MONDAY, "UTC")

        self.assertEqual([item["start"].day for item in kept], [14, 16, 18])

    def test_long_event_spanning_the_window_is_kept(self):
        events = normalize_events(
            [{"start": date(2025, 6, 1), "end": date(2025, 6, 30)}], "UTC"
        )

        self.assertEqual(len(prefilter_events(events, MONDAY, "UTC")), 1)

    @settings(deadline=None)
    @given(
        zone=st.sampled_from(EXTREME_TIMEZONES),
        target_offset=st.integers(min_value=5, max_value=60),
        event_offset=st.integers(min_value=0, max_value=70),
        hour=st.integers(min_value=0, max_value=23),
        minute=st.integers(min_value=0, max_value=59),
        duration=st.integers(min_value=1, max_value=1440),
    )
    def test_excluded_events_never_reach_evaluation_window(
        self, zone, target_offset, event_offset, hour, minute, duration
    ):
        """Anything the pre-filter drops misses [date - 1 00:00, date + 1 23:59:59]"""
        target_date = NOW.date() + timedelta(days=target_offset)
        start = at(NOW.date() + timedelta(days=event_offset), hour, minute)
        events = normalize_events(
            [{"start": start, "end": start + timedelta(minutes=duration)}], "UTC", zone
        )

        if prefilter_events(events, target_date, zone):
            return

        window = TimeRange(
            safe_local_datetime(target_date - timedelta(days=1), time.min, zone),
            safe_local_datetime(target_date + timedelta(days=1), time(23, 59, 59), zone),
        )
        self.assertFalse(window.overlaps(TimeRange.from_event(events[0])))


class ProbeTest(SimpleTestCase):
    """Test cases for date_has_slots_with_events"""

    def probe(self, target_date, events, now=NOW, zone="UTC", **kwargs):
        return date_has_slots_with_events(
            target_date, zone, zone, events, policy(**kwargs), now=now
        )

    def test_true_without_events(self):
        self.assertTrue(self.probe(MONDAY, []))

    def test_false_on_closed_day(self):
        self.assertFalse(self.probe(MONDAY + timedelta(days=5), []))

    def test_true_when_events_leave_a_gap(self):
        events = [event(MONDAY, (11, 0), (14, 0)), event(MONDAY, (15, 0), (19, 30))]

        self.assertTrue(self.probe(MONDAY, events))

    def test_false_when_event_covers_business_hours(self):
        events = [event(MONDAY, (10, 0), (20, 0))]

        self.assertFalse(self.probe(MONDAY, events))

    def test_boundary_gap_needs_duration_plus_buffer(self):
        # 11:00-11:45 is free; the event at 11:45 is padded back to 11:30
        events = [event(MONDAY, (11, 45), (20, 0))]

        self.assertTrue(self.probe(MONDAY, events, buffer_minutes=15))
        self.assertFalse(self.probe(MONDAY, events, buffer_minutes=16))

    def test_different_timezones(self):
        events = [event(MONDAY, (0, 0), (23, 59), zone=ZoneInfo("Asia/Tokyo"))]

        self.assertFalse(self.probe(MONDAY, events, zone="Asia/Tokyo"))
        self.assertTrue(self.probe(MONDAY, [], zone="Asia/Tokyo"))

    def test_false_for_today_after_business_hours(self):
        self.assertFalse(self.probe(MONDAY, [], now=at(MONDAY, 20, 0)))

    def test_true_for_today_before_business_hours_end(self):
        self.assertTrue(self.probe(MONDAY, [], now=at(MONDAY, 18, 0)))

    def test_min_advance_pushes_past_business_hours(self):
        self.assertFalse(self.probe(MONDAY, [], now=at(MONDAY, 17, 0), min_advance_hours=3))

    def test_false_for_past_dates(self):
        self.assertFalse(self.probe(MONDAY - timedelta(days=7), [], now=at(MONDAY, 9, 0)))

    def test_false_beyond_booking_window(self):
        far = NOW.date() + timedelta(days=120)
        while far.isoweekday() > 5:
            far += timedelta(days=1)

        self.assertFalse(self.probe(far, []))
        self.assertTrue(self.probe(far, [], max_advance_booking_days=None))

    def test_noisy_calendar_stays_fast(self):
        """500 unrelated events do not slow the probe down"""
        events = []
        for index in range(1, 501):
            start = at(date(2026, 6, index % 28 + 1), index % 24)
            events.append({"start": start, "end": start + timedelta(minutes=30)})

        timings = []
        for _ in range(5):
            started = timer.perf_counter()
            result = date_has_slots_with_events(
                date(2026, 6, 15),
                "UTC",
                "UTC",
                events,
                policy(buffer_minutes=15),
                now=datetime(2026, 6, 1, tzinfo=UTC),
            )
            timings.append(timer.perf_counter() - started)

        self.assertIsInstance(result, bool)
        # Best of five runs
        self.assertLess(min(timings), 0.1)


class AllDayEventPropertyTest(SimpleTestCase):
    """All-day events block their own day only"""

    @settings(deadline=None)
    @given(
        zone=st.sampled_from(TIMEZONES),
        slot_hour=st.integers(min_value=0, max_value=23),
        slot_minute=st.sampled_from([0, 15, 30, 45]),
        duration=st.sampled_from([15, 30, 60, 120]),
    )
    def test_monday_event_does_not_block_tuesday(self, zone, slot_hour, slot_minute, duration):
        events = normalize_events(
            [{"start": MONDAY, "end": TUESDAY, "uid": "all-day-monday"}], zone, zone
        )

        tuesday_start = safe_local_datetime(TUESDAY, time(slot_hour, slot_minute), zone)
        self.assertFalse(
            has_conflict_with_events(
                tuesday_start, tuesday_start + timedelta(minutes=duration), events, 0
            )
        )

        monday_start = safe_local_datetime(MONDAY, time(slot_hour, slot_minute), zone)
        self.assertTrue(
            has_conflict_with_events(
                monday_start, monday_start + timedelta(minutes=duration), events, 0
            )
        )

    @settings(deadline=None)
    @given(organizer=st.sampled_from(EXTREME_TIMEZONES), viewer=st.sampled_from(EXTREME_TIMEZONES))
    def test_anchor_is_organizer_timezone_for_any_viewer(self, organizer, viewer):
        """Slots of the organizer's Monday are blocked and its Tuesday is free, seen from anywhere"""
        booking_policy = policy(min_advance_hours=0, max_advance_booking_days=None)
        events = [{"start": "2025-06-16", "end": "2025-06-17"}]
        normalized = normalize_events(events, organizer, viewer)

        for hour in range(24):
            monday = safe_local_datetime(MONDAY, time(hour), organizer)
            tuesday = safe_local_datetime(TUESDAY, time(hour), organizer)
            self.assertTrue(
                has_conflict_with_events(monday, monday + timedelta(minutes=30), normalized)
            )
            self.assertFalse(
                has_conflict_with_events(tuesday, tuesday + timedelta(minutes=30), normalized)
            )

        blocked = TimeRange(
            safe_local_datetime(MONDAY, time.min, organizer),
            safe_local_datetime(TUESDAY, time.min, organizer),
        )
        tuesday_hours = TimeRange(
            safe_local_datetime(TUESDAY, time(11, 0), organizer),
            safe_local_datetime(TUESDAY, time(19, 30), organizer),
        )

        def slot_instants(busy):
            starts = []
            for offset in range(-1, 3):
                viewer_date = MONDAY + timedelta(days=offset)
                for label in AvailabilityCalculator.available_slots(
                    viewer_date, 30, viewer, organizer, busy, booking_policy, now=NOW
                ):
                    starts.append(safe_local_datetime(viewer_date, parse_slot(label), viewer))
            return starts

        with_event = slot_instants(events)
        without_event = slot_instants([])

        self.assertFalse(any(blocked.contains(start) for start in with_event))
        self.assertTrue(any(blocked.contains(start) for start in without_event))
        self.assertEqual(
            [start for start in with_event if tuesday_hours.contains(start)],
            [start for start in without_event if tuesday_hours.contains(start)],
        )
        self.assertTrue(any(tuesday_hours.contains(start) for start in with_event))
