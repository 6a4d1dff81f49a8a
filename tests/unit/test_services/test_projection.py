"""
Unit tests for calendar view projection.

Tests month grids, week/day hour lanes, navigation and hit targets.
"""

from datetime import date, datetime
from unittest.mock import MagicMock

import pytest
from freezegun import freeze_time

from src.services.event_types import HouseholdCalendarEvent, PersonalCalendarEvent
from src.services.projection import (
    CalendarCallbacks,
    HitTarget,
    dispatch_click,
    enumerate_days,
    month_grid_days,
    place_timed_event,
    project_day,
    project_month,
    project_week,
    start_of_week,
    step_anchor,
    today_anchor,
    visible_days,
    week_days,
)
from src.services.classifier import classify_events


def _event(event_id: str, start: str, end: str, title: str = None, cls=PersonalCalendarEvent, **kwargs):
    return cls(
        id=event_id,
        title=title or f"Event {event_id}",
        start_date=start,
        end_date=end,
        **kwargs,
    )


class TestDayEnumeration:
    """Test grid and week day enumeration."""

    def test_start_of_week_is_sunday(self):
        """Test weeks start on Sunday."""
        assert start_of_week(date(2026, 3, 11)) == date(2026, 3, 8)
        assert start_of_week(date(2026, 3, 8)) == date(2026, 3, 8)

    def test_enumerate_days_inclusive(self):
        """Test enumeration includes both ends."""
        assert enumerate_days(date(2026, 3, 1), date(2026, 3, 3)) == [
            date(2026, 3, 1), date(2026, 3, 2), date(2026, 3, 3),
        ]

    def test_month_grid_six_weeks(self):
        """Test March 2024 (starts Friday) needs six weeks."""
        days = month_grid_days(date(2024, 3, 15))

        assert len(days) == 42
        assert days[0] == date(2024, 2, 25)
        assert days[-1] == date(2024, 4, 6)

    def test_month_grid_four_weeks(self):
        """Test February 2026 (starts Sunday, 28 days) fits four weeks."""
        days = month_grid_days(date(2026, 2, 10))

        assert len(days) == 28
        assert days[0] == date(2026, 2, 1)
        assert days[-1] == date(2026, 2, 28)

    def test_week_days(self):
        """Test the week view shows Sunday to Saturday."""
        days = week_days(date(2026, 3, 11))

        assert days[0] == date(2026, 3, 8)
        assert days[-1] == date(2026, 3, 14)
        assert len(days) == 7

    def test_visible_days_for_day_view(self):
        """Test the day view shows only its anchor."""
        assert visible_days(date(2026, 3, 11), "day") == [date(2026, 3, 11)]

    def test_visible_days_unknown_view(self):
        """Test an unknown view is rejected."""
        with pytest.raises(ValueError):
            visible_days(date(2026, 3, 11), "year")


class TestNavigation:
    """Test step_anchor and today_anchor."""

    def test_month_step_clamps_day(self):
        """Test Jan 31 plus one month is the end of February."""
        assert step_anchor(date(2026, 1, 31), "month", 1) == date(2026, 2, 28)

    def test_month_step_backwards_across_year(self):
        """Test stepping back from January lands in December."""
        assert step_anchor(date(2026, 1, 15), "month", -1) == date(2025, 12, 15)

    def test_week_step(self):
        """Test week navigation moves seven days."""
        assert step_anchor(date(2026, 3, 11), "week", -1) == date(2026, 3, 4)

    def test_day_step(self):
        """Test day navigation moves one day."""
        assert step_anchor(date(2026, 2, 28), "day", 1) == date(2026, 3, 1)

    @freeze_time("2026-03-15 08:30:00")
    def test_today_anchor(self):
        """Test jump-to-today uses the current date."""
        assert today_anchor() == date(2026, 3, 15)


class TestProjectMonth:
    """Test project_month."""

    def test_multi_day_event_in_every_covered_cell(self):
        """Test an event appears in each cell from its start to end date."""
        event = _event("trip", "2024-03-01T00:00:00", "2024-03-03T23:59:00")

        projection = project_month([event], date(2024, 3, 1), today=date(2024, 3, 20))

        with_event = [cell.day for cell in projection.cells if cell.events]
        assert with_event == [date(2024, 3, 1), date(2024, 3, 2), date(2024, 3, 3)]

        first = projection.cell(date(2024, 3, 1)).events[0]
        middle = projection.cell(date(2024, 3, 2)).events[0]
        last = projection.cell(date(2024, 3, 3)).events[0]
        assert first.is_first_day and not first.is_last_day
        assert not middle.is_first_day and not middle.is_last_day
        assert last.is_last_day and not last.is_first_day

    def test_cell_flags(self):
        """Test in-month and today flags."""
        projection = project_month([], date(2024, 3, 10), today=date(2024, 3, 10))

        assert not projection.cell(date(2024, 2, 25)).in_current_month
        assert projection.cell(date(2024, 3, 1)).in_current_month
        assert projection.cell(date(2024, 3, 10)).is_today
        assert len(projection.weeks) == 6
        assert all(len(week) == 7 for week in projection.weeks)

    def test_hidden_count_beyond_max_visible(self):
        """Test only max_visible events are listed with a '+N more' remainder."""
        events = [
            _event(str(i), f"2026-03-10T{8 + i:02d}:00:00", f"2026-03-10T{9 + i:02d}:00:00")
            for i in range(5)
        ]

        cell = project_month(events, date(2026, 3, 1), max_visible=3, today=date(2026, 3, 1)).cell(date(2026, 3, 10))

        assert [e.event.id for e in cell.events] == ["0", "1", "2"]
        assert cell.hidden_count == 2
        assert cell.total_events == 5
        assert cell.more_label == "+2 more"

    def test_all_day_events_listed_first(self):
        """Test spanning events sort ahead of timed events within a cell."""
        timed = _event("t", "2026-03-10T07:00:00", "2026-03-10T08:00:00")
        all_day = _event("a", "2026-03-10T00:00:00", "2026-03-10T23:59:00")

        cell = project_month([timed, all_day], date(2026, 3, 1), today=date(2026, 3, 1)).cell(date(2026, 3, 10))

        assert [e.event.id for e in cell.events] == ["a", "t"]

    def test_recurring_event_expanded_in_grid(self):
        """Test a weekly event shows on each matching day of the grid."""
        event = _event(
            "soccer", "2026-03-07T10:00:00", "2026-03-07T11:00:00",
            recurrence_rule="FREQ=WEEKLY;BYDAY=SA", cls=HouseholdCalendarEvent,
        )

        projection = project_month([event], date(2026, 3, 1), today=date(2026, 3, 1))

        days = [cell.day for cell in projection.cells if cell.events]
        assert days == [date(2026, 3, 7), date(2026, 3, 14), date(2026, 3, 21), date(2026, 3, 28), date(2026, 4, 4)]

    def test_malformed_event_still_rendered(self):
        """Test an unparseable event is shown at the fallback anchor."""
        event = _event("bad", "not-a-date", "also-bad")

        projection = project_month(
            [event], date(2026, 3, 1),
            today=date(2026, 3, 15), now=datetime(2026, 3, 15, 12, 0),
        )

        assert [e.event.id for e in projection.cell(date(2026, 3, 15)).events] == ["bad"]

    @freeze_time("2026-03-15")
    def test_today_defaults_to_system_date(self):
        """Test today is taken from the clock when not given."""
        projection = project_month([], date(2026, 3, 1))

        assert [cell.day for cell in projection.cells if cell.is_today] == [date(2026, 3, 15)]


class TestProjectWeek:
    """Test project_week."""

    def test_timed_event_placement(self):
        """Test 14:30-15:15 is placed in lane 14 at half height and clipped to the hour."""
        event = _event("e", "2026-03-10T14:30:00", "2026-03-10T15:15:00")

        projection = project_week([event], date(2026, 3, 10), hour_height_px=60, today=date(2026, 3, 10))
        column = projection.column(date(2026, 3, 10))
        placed = column.hours[14].events[0]

        assert placed.hour == 14
        assert placed.offset_minutes == 30
        assert placed.visible_minutes == 30
        assert placed.top_px == 30.0
        assert placed.height_px == 30.0
        assert column.hours[15].events == []
        assert column.all_day == []

    def test_short_event_gets_minimum_block(self):
        """Test a 5 minute event renders at the minimum block size."""
        event = _event("e", "2026-03-10T09:00:00", "2026-03-10T09:05:00")

        projection = project_week([event], date(2026, 3, 10), hour_height_px=120, today=date(2026, 3, 10))
        placed = projection.column(date(2026, 3, 10)).hours[9].events[0]

        assert placed.visible_minutes == 20
        assert placed.height_px == pytest.approx(40.0)

    def test_minimum_block_still_clipped_to_hour(self):
        """Test a block starting at :50 never crosses into the next lane."""
        event = _event("e", "2026-03-10T09:50:00", "2026-03-10T09:55:00")

        placed = project_week([event], date(2026, 3, 10), today=date(2026, 3, 10)).column(
            date(2026, 3, 10)
        ).hours[9].events[0]

        assert placed.visible_minutes == 10

    def test_all_day_event_in_all_day_lane(self):
        """Test all-day events go to the all-day lane, not an hour lane."""
        event = _event("holiday", "2026-03-09T00:00:00", "2026-03-09T23:59:00")

        column = project_week([event], date(2026, 3, 10), today=date(2026, 3, 10)).column(date(2026, 3, 9))

        assert [e.event.id for e in column.all_day] == ["holiday"]
        assert all(slot.events == [] for slot in column.hours)

    def test_overnight_timed_event_in_all_day_lane_of_both_days(self):
        """Test a timed event crossing midnight shows as a banner on each day."""
        event = _event("sleepover", "2026-03-13T22:00:00", "2026-03-14T02:00:00")

        projection = project_week([event], date(2026, 3, 10), today=date(2026, 3, 10))

        assert [e.event.id for e in projection.column(date(2026, 3, 13)).all_day] == ["sleepover"]
        assert [e.event.id for e in projection.column(date(2026, 3, 14)).all_day] == ["sleepover"]
        assert projection.column(date(2026, 3, 13)).hours[22].events == []

    def test_same_hour_events_stack(self):
        """Test events in one hour lane get increasing stack indexes."""
        first = _event("a", "2026-03-10T09:00:00", "2026-03-10T10:00:00")
        second = _event("b", "2026-03-10T09:15:00", "2026-03-10T09:45:00")

        slot = project_week([second, first], date(2026, 3, 10), today=date(2026, 3, 10)).column(
            date(2026, 3, 10)
        ).hours[9]

        assert [(p.event.id, p.stack_index) for p in slot.events] == [("a", 0), ("b", 1)]

    def test_events_outside_week_ignored(self):
        """Test events in other weeks do not appear."""
        event = _event("e", "2026-03-20T09:00:00", "2026-03-20T10:00:00")

        projection = project_week([event], date(2026, 3, 10), today=date(2026, 3, 10))

        assert all(not slot.events for column in projection.columns for slot in column.hours)
        assert len(projection.columns) == 7


class TestProjectDay:
    """Test project_day."""

    def test_single_column(self):
        """Test the day view has one column with 24 hour lanes."""
        event = _event("e", "2026-03-10T14:30:00", "2026-03-10T15:15:00")

        projection = project_day([event], date(2026, 3, 10), today=date(2026, 3, 10))

        assert projection.view == "day"
        assert len(projection.columns) == 1
        assert len(projection.columns[0].hours) == 24
        assert projection.columns[0].is_today
        assert projection.columns[0].hours[14].events[0].top_px == 30.0

    def test_column_lookup_outside_view(self):
        """Test looking up a day outside the view raises KeyError."""
        projection = project_day([], date(2026, 3, 10), today=date(2026, 3, 10))

        with pytest.raises(KeyError):
            projection.column(date(2026, 3, 11))


class TestHitTargets:
    """Test hit targets and click dispatch."""

    def test_event_click_dispatches_event(self):
        """Test clicking an event calls the event callback only."""
        event = _event("e", "2026-03-10T09:00:00", "2026-03-10T10:00:00")
        cell = project_month([event], date(2026, 3, 1), today=date(2026, 3, 1)).cell(date(2026, 3, 10))
        callbacks = CalendarCallbacks(on_event_click=MagicMock(), on_day_click=MagicMock())

        handled = dispatch_click(cell.events[0].hit_target, callbacks)

        assert handled
        callbacks.on_event_click.assert_called_once_with(event)
        callbacks.on_day_click.assert_not_called()

    def test_day_click_dispatches_day(self):
        """Test clicking empty cell space selects the day."""
        cell = project_month([], date(2026, 3, 1), today=date(2026, 3, 1)).cell(date(2026, 3, 10))
        callbacks = CalendarCallbacks(on_event_click=MagicMock(), on_day_click=MagicMock())

        assert dispatch_click(cell.day_target, callbacks)
        callbacks.on_day_click.assert_called_once_with(date(2026, 3, 10))
        callbacks.on_event_click.assert_not_called()

    def test_time_slot_click_dispatches_slot(self):
        """Test clicking an empty hour lane passes day and hour."""
        column = project_week([], date(2026, 3, 10), today=date(2026, 3, 10)).column(date(2026, 3, 10))
        callbacks = CalendarCallbacks(on_time_slot_click=MagicMock())

        assert dispatch_click(column.hours[15].hit_target, callbacks)
        callbacks.on_time_slot_click.assert_called_once_with(date(2026, 3, 10), 15)

    def test_missing_callback_not_handled(self):
        """Test a click with no matching callback reports unhandled."""
        target = HitTarget(kind="day", day=date(2026, 3, 10))
        assert not dispatch_click(target, CalendarCallbacks())

    def test_targets_are_disjoint_by_kind(self):
        """Test a cell lists one event target per event plus one day target."""
        events = [
            _event("a", "2026-03-10T09:00:00", "2026-03-10T10:00:00"),
            _event("b", "2026-03-10T11:00:00", "2026-03-10T12:00:00"),
        ]
        cell = project_month(events, date(2026, 3, 1), today=date(2026, 3, 1)).cell(date(2026, 3, 10))

        kinds = [target.kind for target in cell.hit_targets()]

        assert kinds == ["event", "event", "day"]

    def test_week_column_targets(self):
        """Test a week column exposes header, slot and event targets."""
        event = _event("e", "2026-03-10T09:00:00", "2026-03-10T10:00:00")
        column = project_week([event], date(2026, 3, 10), today=date(2026, 3, 10)).column(date(2026, 3, 10))

        targets = column.hit_targets()

        assert targets[0].kind == "day"
        assert sum(1 for t in targets if t.kind == "time_slot") == 24
        assert [t.item.event.id for t in targets if t.kind == "event"] == ["e"]


def test_place_timed_event_scales_with_hour_height():
    """Test pixel placement is proportional to the hour height."""
    item = classify_events([_event("e", "2026-03-10T08:15:00", "2026-03-10T08:45:00")])[0]

    placed = place_timed_event(item, hour_height_px=80, min_block_minutes=20)

    assert placed.top_px == pytest.approx(20.0)
    assert placed.height_px == pytest.approx(40.0)
