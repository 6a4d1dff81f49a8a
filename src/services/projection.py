"""
Calendar view projection.

Places classified events onto month, week and day grids:
- Month: every grid day lists the events whose date range covers it,
  capped per cell with a "+N more" remainder
- Week: an all-day lane per column for all-day or multi-day events, and
  24 hourly lanes for timed events positioned by start minute
- Day: the week model restricted to one column

Timed blocks are clipped to the hour they start in, even when the event
runs longer. Weeks start on Sunday.

Each projection emits explicit hit targets (event, day, time slot) so a
click never has to be disambiguated after the fact.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any, Callable, Literal, Optional, Sequence

from dateutil.relativedelta import relativedelta

from src.services.classifier import ClassifiedEvent, classify_events, display_minutes
from src.services.event_types import CalendarEvent
from src.services.recurrence import expand_occurrences

ViewType = Literal["month", "week", "day"]

HOURS_PER_DAY = 24


# =============================================================================
# Day enumeration and navigation
# =============================================================================


def start_of_week(day: date) -> date:
    """Sunday on or before the given day."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def enumerate_days(first: date, last: date) -> list[date]:
    """Every calendar day from first to last inclusive."""
    return [first + timedelta(days=offset) for offset in range((last - first).days + 1)]


def month_grid_days(anchor: date) -> list[date]:
    """
    Days of the month grid containing anchor, expanded to full weeks.

    Returns:
        35 or 42 days (28 for a Sunday-starting February in a common year)
    """
    first = anchor.replace(day=1)
    last = first + relativedelta(months=1) - timedelta(days=1)
    grid_start = start_of_week(first)
    grid_end = start_of_week(last) + timedelta(days=6)
    return enumerate_days(grid_start, grid_end)


def week_days(anchor: date) -> list[date]:
    """Sunday through Saturday of the week containing anchor."""
    first = start_of_week(anchor)
    return enumerate_days(first, first + timedelta(days=6))


def visible_days(anchor: date, view: ViewType) -> list[date]:
    """Ordered days a view displays for an anchor date."""
    if view == "month":
        return month_grid_days(anchor)
    if view == "week":
        return week_days(anchor)
    if view == "day":
        return [anchor]
    raise ValueError(f"Unknown calendar view: {view}")


def step_anchor(anchor: date, view: ViewType, direction: int) -> date:
    """
    Move the anchor by the view's own unit.

    Depends only on the anchor; month steps clamp the day of month
    (Jan 31 + 1 month = Feb 28/29).

    Args:
        anchor: Current anchor date
        view: 'month', 'week' or 'day'
        direction: +1 for next, -1 for previous (any integer is accepted)

    Returns:
        New anchor date
    """
    if view == "month":
        return anchor + relativedelta(months=direction)
    if view == "week":
        return anchor + timedelta(weeks=direction)
    if view == "day":
        return anchor + timedelta(days=direction)
    raise ValueError(f"Unknown calendar view: {view}")


def today_anchor() -> date:
    """Anchor for jump-to-today."""
    return date.today()


def view_window(days: Sequence[date]) -> tuple[datetime, datetime]:
    """First and last instant covered by a run of days."""
    return datetime.combine(days[0], time.min), datetime.combine(days[-1], time.max)


# =============================================================================
# Hit targets
# =============================================================================


HitKind = Literal["event", "day", "time_slot"]


@dataclass(frozen=True)
class HitTarget:
    """A clickable region. Event regions never overlap day or slot regions."""

    kind: HitKind
    day: date
    hour: Optional[int] = None
    item: Optional[ClassifiedEvent] = None


@dataclass
class CalendarCallbacks:
    """Callbacks toward the rendering layer."""

    on_event_click: Optional[Callable[[CalendarEvent], Any]] = None
    on_day_click: Optional[Callable[[date], Any]] = None
    on_time_slot_click: Optional[Callable[[date, int], Any]] = None


def dispatch_click(target: HitTarget, callbacks: CalendarCallbacks) -> bool:
    """
    Route a click on a hit target to the matching callback.

    Returns:
        True if a callback handled it
    """
    if target.kind == "event" and target.item is not None and callbacks.on_event_click:
        callbacks.on_event_click(target.item.event)
        return True
    if target.kind == "time_slot" and target.hour is not None and callbacks.on_time_slot_click:
        callbacks.on_time_slot_click(target.day, target.hour)
        return True
    if target.kind == "day" and callbacks.on_day_click:
        callbacks.on_day_click(target.day)
        return True
    return False


# =============================================================================
# Projection output types
# =============================================================================


@dataclass
class CellEvent:
    """An event as drawn in one day cell or all-day lane."""

    item: ClassifiedEvent
    day: date

    @property
    def event(self) -> CalendarEvent:
        return self.item.event

    @property
    def is_first_day(self) -> bool:
        return self.day == self.item.start.date()

    @property
    def is_last_day(self) -> bool:
        return self.day >= self.item.end.date()

    @property
    def hit_target(self) -> HitTarget:
        return HitTarget(kind="event", day=self.day, item=self.item)


@dataclass
class MonthCell:
    day: date
    in_current_month: bool
    is_today: bool
    events: list[CellEvent] = field(default_factory=list)
    hidden_count: int = 0

    @property
    def total_events(self) -> int:
        return len(self.events) + self.hidden_count

    @property
    def more_label(self) -> Optional[str]:
        return f"+{self.hidden_count} more" if self.hidden_count else None

    @property
    def day_target(self) -> HitTarget:
        # Empty cell space and the "+N more" affordance both select the day
        return HitTarget(kind="day", day=self.day)

    def hit_targets(self) -> list[HitTarget]:
        return [cell_event.hit_target for cell_event in self.events] + [self.day_target]


@dataclass
class MonthProjection:
    anchor: date
    weeks: list[list[MonthCell]]

    @property
    def cells(self) -> list[MonthCell]:
        return [cell for week in self.weeks for cell in week]

    def cell(self, day: date) -> MonthCell:
        for cell in self.cells:
            if cell.day == day:
                return cell
        raise KeyError(f"{day} is not in the month grid for {self.anchor}")


@dataclass
class PlacedEvent:
    """A timed event positioned inside one hour lane."""

    item: ClassifiedEvent
    day: date
    hour: int
    offset_minutes: int
    visible_minutes: int
    top_px: float
    height_px: float
    stack_index: int = 0

    @property
    def event(self) -> CalendarEvent:
        return self.item.event

    @property
    def hit_target(self) -> HitTarget:
        return HitTarget(kind="event", day=self.day, hour=self.hour, item=self.item)


@dataclass
class HourSlot:
    day: date
    hour: int
    events: list[PlacedEvent] = field(default_factory=list)

    @property
    def hit_target(self) -> HitTarget:
        return HitTarget(kind="time_slot", day=self.day, hour=self.hour)


@dataclass
class DayColumn:
    day: date
    is_today: bool
    all_day: list[CellEvent]
    hours: list[HourSlot]

    @property
    def header_target(self) -> HitTarget:
        return HitTarget(kind="day", day=self.day)

    def hit_targets(self) -> list[HitTarget]:
        targets = [self.header_target]
        targets.extend(cell_event.hit_target for cell_event in self.all_day)
        for slot in self.hours:
            targets.append(slot.hit_target)
            targets.extend(placed.hit_target for placed in slot.events)
        return targets


@dataclass
class TimeGridProjection:
    """Week or day view: all-day lane plus hourly lanes per column."""

    view: ViewType
    anchor: date
    hour_height_px: int
    columns: list[DayColumn]

    def column(self, day: date) -> DayColumn:
        for column in self.columns:
            if column.day == day:
                return column
        raise KeyError(f"{day} is not shown in this {self.view} view")


# =============================================================================
# Projectors
# =============================================================================


def prepare_events(
    events: Sequence[CalendarEvent],
    days: Sequence[date],
    now: Optional[datetime] = None,
    display_tz: Optional[str] = None,
    max_instances: int = 100,
) -> list[ClassifiedEvent]:
    """
    Classify events and expand recurrences over the displayed days.

    Returns:
        Classified instances sorted for display
    """
    window_start, window_end = view_window(days)
    classified = classify_events(events, now=now, display_tz=display_tz)
    expanded = expand_occurrences(classified, window_start, window_end, max_instances=max_instances)
    return sorted(expanded, key=lambda item: item.sort_key)


def events_for_day(items: Sequence[ClassifiedEvent], day: date) -> list[ClassifiedEvent]:
    """Events whose [start date, end date] range contains the day."""
    return [item for item in items if item.classification.covers(day)]


def place_timed_event(
    item: ClassifiedEvent,
    hour_height_px: int = 60,
    min_block_minutes: int = 20,
    stack_index: int = 0,
) -> PlacedEvent:
    """
    Position a timed event inside the lane of its start hour.

    The block is offset by the start minute and clipped so it never crosses
    into the next hour's lane, however long the event really is.
    """
    start = item.start
    offset = start.minute
    visible = min(display_minutes(item.classification, min_block_minutes), 60 - offset)
    return PlacedEvent(
        item=item,
        day=start.date(),
        hour=start.hour,
        offset_minutes=offset,
        visible_minutes=visible,
        top_px=offset / 60 * hour_height_px,
        height_px=visible / 60 * hour_height_px,
        stack_index=stack_index,
    )


def project_month(
    events: Sequence[CalendarEvent],
    anchor: date,
    *,
    max_visible: int = 3,
    today: Optional[date] = None,
    now: Optional[datetime] = None,
    display_tz: Optional[str] = None,
) -> MonthProjection:
    """
    Project events onto the month grid containing anchor.

    Args:
        events: Aggregated events (any order)
        anchor: Any date in the month to show
        max_visible: Events listed per cell before the "+N more" remainder
        today: Date to flag as today (default: system date)
        now: Anchor for events with unparseable dates
        display_tz: Timezone for offset-bearing dates

    Returns:
        MonthProjection with 4 to 6 weeks of cells
    """
    today = today or date.today()
    days = month_grid_days(anchor)
    items = prepare_events(events, days, now=now, display_tz=display_tz)

    cells = []
    for day in days:
        day_items = events_for_day(items, day)
        cells.append(
            MonthCell(
                day=day,
                in_current_month=(day.year, day.month) == (anchor.year, anchor.month),
                is_today=day == today,
                events=[CellEvent(item=item, day=day) for item in day_items[:max_visible]],
                hidden_count=max(len(day_items) - max_visible, 0),
            )
        )

    weeks = [cells[i:i + 7] for i in range(0, len(cells), 7)]
    return MonthProjection(anchor=anchor, weeks=weeks)


def _project_time_grid(
    view: ViewType,
    events: Sequence[CalendarEvent],
    anchor: date,
    days: list[date],
    hour_height_px: int,
    min_block_minutes: int,
    today: Optional[date],
    now: Optional[datetime],
    display_tz: Optional[str],
) -> TimeGridProjection:
    today = today or date.today()
    items = prepare_events(events, days, now=now, display_tz=display_tz)

    spanning = [item for item in items if item.classification.spans_days]
    timed = [item for item in items if not item.classification.spans_days]

    columns = []
    for day in days:
        slots = [HourSlot(day=day, hour=hour) for hour in range(HOURS_PER_DAY)]
        for item in timed:
            if item.start.date() != day:
                continue
            slot = slots[item.start.hour]
            slot.events.append(
                place_timed_event(
                    item,
                    hour_height_px=hour_height_px,
                    min_block_minutes=min_block_minutes,
                    stack_index=len(slot.events),
                )
            )

        columns.append(
            DayColumn(
                day=day,
                is_today=day == today,
                all_day=[CellEvent(item=item, day=day) for item in events_for_day(spanning, day)],
                hours=slots,
            )
        )

    return TimeGridProjection(
        view=view,
        anchor=anchor,
        hour_height_px=hour_height_px,
        columns=columns,
    )


def project_week(
    events: Sequence[CalendarEvent],
    anchor: date,
    *,
    hour_height_px: int = 60,
    min_block_minutes: int = 20,
    today: Optional[date] = None,
    now: Optional[datetime] = None,
    display_tz: Optional[str] = None,
) -> TimeGridProjection:
    """
    Project events onto the Sunday-to-Saturday week containing anchor.

    All-day and multi-day events go to each covered column's all-day lane
    regardless of their clock times. Timed events go to the hour lane of
    their start on their start date only.
    """
    return _project_time_grid(
        "week", events, anchor, week_days(anchor),
        hour_height_px, min_block_minutes, today, now, display_tz,
    )


def project_day(
    events: Sequence[CalendarEvent],
    anchor: date,
    *,
    hour_height_px: int = 60,
    min_block_minutes: int = 20,
    today: Optional[date] = None,
    now: Optional[datetime] = None,
    display_tz: Optional[str] = None,
) -> TimeGridProjection:
    """Project events onto a single day using the week-view lane model."""
    return _project_time_grid(
        "day", events, anchor, [anchor],
        hour_height_px, min_block_minutes, today, now, display_tz,
    )
