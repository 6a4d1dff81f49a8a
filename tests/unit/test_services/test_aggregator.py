"""
Unit tests for event aggregation and person filtering.
"""

from src.services.aggregator import (
    SourceResult,
    aggregate_events,
    filter_events_by_people,
    matches_people,
)
from src.services.event_types import (
    EventSource,
    HouseholdCalendarEvent,
    PersonalCalendarEvent,
)
from src.services.exceptions import EventFetchError


def _household(event_id: str, **kwargs) -> HouseholdCalendarEvent:
    return HouseholdCalendarEvent(
        id=event_id, title=f"Household {event_id}",
        start_date="2026-03-10T18:00:00", end_date="2026-03-10T19:00:00",
        **kwargs,
    )


def _personal(event_id: str, **kwargs) -> PersonalCalendarEvent:
    return PersonalCalendarEvent(
        id=event_id, title=f"Personal {event_id}",
        start_date="2026-03-11T09:00:00", end_date="2026-03-11T10:00:00",
        **kwargs,
    )


class TestAggregateEvents:
    """Test aggregate_events function."""

    def test_source_order_is_household_personal_shared(self):
        """Test events are merged in fixed source order regardless of input order."""
        results = [
            SourceResult(EventSource.SHARED, [_personal("s1")]),
            SourceResult(EventSource.HOUSEHOLD, [_household("h1"), _household("h2")]),
            SourceResult(EventSource.PERSONAL, [_personal("p1")]),
        ]

        aggregated = aggregate_events(results)

        assert [e.id for e in aggregated.events] == ["h1", "h2", "p1", "s1"]
        assert not aggregated.is_partial

    def test_same_id_in_different_tables_both_kept(self):
        """Test identity is namespaced by owning table."""
        aggregated = aggregate_events([
            SourceResult(EventSource.HOUSEHOLD, [_household("42")]),
            SourceResult(EventSource.PERSONAL, [_personal("42")]),
        ])

        assert [e.key for e in aggregated.events] == [("household", "42"), ("personal", "42")]

    def test_duplicate_key_keeps_first(self):
        """Test a repeated (kind, id) key is only listed once."""
        first = _personal("p1", title="First")
        again = _personal("p1", title="Again")

        aggregated = aggregate_events([
            SourceResult(EventSource.PERSONAL, [first]),
            SourceResult(EventSource.SHARED, [again]),
        ])

        assert aggregated.events == [first]

    def test_failed_source_is_reported_not_hidden(self):
        """Test a failed source marks the result partial and keeps the rest."""
        error = EventFetchError("household", "Failed to fetch household events")

        aggregated = aggregate_events([
            SourceResult(EventSource.HOUSEHOLD, error=error),
            SourceResult(EventSource.PERSONAL, [_personal("p1")]),
        ])

        assert aggregated.is_partial
        assert aggregated.failed_sources == [EventSource.HOUSEHOLD]
        assert aggregated.errors == {"household": "Failed to fetch household events"}
        assert [e.id for e in aggregated.events] == ["p1"]

    def test_empty_results(self):
        """Test no sources gives an empty, complete result."""
        aggregated = aggregate_events([])

        assert aggregated.events == []
        assert not aggregated.is_partial


class TestPersonFilter:
    """Test matches_people and filter_events_by_people."""

    def test_household_events_always_pass(self):
        """Test household events survive any person filter."""
        event = _household("h1", assigned_to_member="someone-else")
        assert matches_people(event, {"unrelated"})

    def test_personal_event_matches_owner(self):
        """Test a personal event matches its owner."""
        event = _personal("p1", created_by="alice")
        assert matches_people(event, {"alice"})

    def test_personal_event_matches_assigned_child(self):
        """Test a personal event matches its assigned child."""
        event = _personal("p1", created_by="alice", assigned_to_child="sam")
        assert matches_people(event, {"sam"})

    def test_personal_event_matches_assigned_member(self):
        """Test a personal event matches its assigned member."""
        event = _personal("p1", created_by="alice", assigned_to_member="bob")
        assert matches_people(event, {"bob"})

    def test_personal_event_excluded_when_nobody_selected_matches(self):
        """Test a personal event is dropped when no related id is selected."""
        event = _personal("p1", created_by="alice", assigned_to_member="bob")
        assert not matches_people(event, {"carol"})

    def test_empty_selection_keeps_everything(self):
        """Test no selection means no filtering."""
        events = [_household("h1"), _personal("p1", created_by="alice")]

        assert filter_events_by_people(events, []) == events
        assert filter_events_by_people(events, None) == events

    def test_uuid_selection_matches_any_spelling(self):
        """Test uppercase and braced UUIDs select the same person."""
        owner = "6f1c2a4e-9b3d-4e8f-a2c1-0d5e7b9f3a12"
        events = [_personal("p1", created_by=owner), _personal("p2", created_by="someone-else")]

        assert [e.id for e in filter_events_by_people(events, [owner.upper()])] == ["p1"]
        assert [e.id for e in filter_events_by_people(events, ["{" + owner + "}"])] == ["p1"]
        assert [e.id for e in filter_events_by_people(events, [owner.replace("-", "")])] == ["p1"]

    def test_unparseable_selection_matches_nothing(self):
        """Test a garbage person id filters out every personal event."""
        events = [_household("h1"), _personal("p1", created_by="6f1c2a4e-9b3d-4e8f-a2c1-0d5e7b9f3a12")]

        assert [e.id for e in filter_events_by_people(events, ["not-a-person"])] == ["h1"]

    def test_filter_preserves_order(self):
        """Test filtering keeps the merged order."""
        events = [
            _household("h1"),
            _personal("p1", created_by="alice"),
            _personal("p2", created_by="bob"),
            _personal("p3", created_by="alice"),
        ]

        filtered = filter_events_by_people(events, ["alice"])

        assert [e.id for e in filtered] == ["h1", "p1", "p3"]
