"""
nudgekit - Daily Time Windows

Pure functions that pick one randomized AM and one PM engagement slot.

All times are naive local wall-clock datetimes. Given the same `now` and an
identically seeded random.Random, the result is reproducible.

Rules:
    - A window that has not closed yet gets a slot in its remaining part today,
      otherwise a slot in tomorrow's window.
    - A today-slot closer than `min_lead` to now is dropped and recomputed in
      the same window tomorrow.
    - Same-day slots closer than `min_spacing` move PM to AM + min_spacing;
      if that reaches the PM close, PM is recomputed in tomorrow's PM window.
      AM is never moved.
"""
import random
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Iterator, Optional, Tuple


class SlotKind(str, Enum):
    """Engagement slot label."""
    AM = "am"
    PM = "pm"


@dataclass(frozen=True)
class TimeWindow:
    """Half-open local hour range [start_hour, end_hour)."""
    start_hour: int
    end_hour: int

    def __post_init__(self):
        if not 0 <= self.start_hour < self.end_hour <= 24:
            raise ValueError(f"Invalid window {self.start_hour}-{self.end_hour}")

    def bounds(self, day: date) -> Tuple[datetime, datetime]:
        """Start and end of the window on a given day."""
        start = datetime.combine(day, time(self.start_hour))
        end = datetime.combine(day, time()) + timedelta(hours=self.end_hour)
        return start, end

    def contains(self, moment: datetime) -> bool:
        start, end = self.bounds(moment.date())
        return start <= moment < end


AM_WINDOW = TimeWindow(10, 13)
PM_WINDOW = TimeWindow(14, 20)
MIN_LEAD = timedelta(minutes=5)
MIN_SPACING = timedelta(minutes=30)


@dataclass(frozen=True)
class DailySlots:
    """One day's engagement slots. Either may be absent."""
    am: Optional[datetime] = None
    pm: Optional[datetime] = None

    def ordered(self) -> Iterator[Tuple[SlotKind, datetime]]:
        """Present slots, AM first regardless of absolute order."""
        if self.am is not None:
            yield SlotKind.AM, self.am
        if self.pm is not None:
            yield SlotKind.PM, self.pm

    def __len__(self) -> int:
        return sum(1 for _ in self.ordered())


def _ceil_minute(moment: datetime) -> datetime:
    floored = moment.replace(second=0, microsecond=0)
    return floored if floored == moment else floored + timedelta(minutes=1)


def pick_in_window(
    window: TimeWindow,
    day: date,
    rng: random.Random,
    not_before: Optional[datetime] = None,
) -> Optional[datetime]:
    """
    Uniformly random whole minute inside the window on `day`.

    Args:
        window: Hour range
        day: Calendar day
        rng: Random source
        not_before: Restrict to the part of the window from this moment on

    Returns:
        Slot time, or None if nothing of the window remains
    """
    start, end = window.bounds(day)
    if not_before is not None and not_before > start:
        start = _ceil_minute(not_before)

    minutes = int((end - start).total_seconds() // 60)
    if minutes <= 0:
        return None
    return start + timedelta(minutes=rng.randrange(minutes))


def slot_for_window(
    window: TimeWindow,
    now: datetime,
    rng: random.Random,
    min_lead: timedelta = MIN_LEAD,
    roll_closed_windows: bool = True,
) -> Optional[datetime]:
    """Pick the next slot for one window relative to `now`."""
    today = now.date()
    tomorrow = today + timedelta(days=1)
    _, close = window.bounds(today)

    if now < close:
        slot = pick_in_window(window, today, rng, not_before=now)
        if slot is not None and slot - now >= min_lead:
            return slot
        return pick_in_window(window, tomorrow, rng)

    if not roll_closed_windows:
        return None
    return pick_in_window(window, tomorrow, rng)


def compute_daily_slots(
    now: datetime,
    rng: Optional[random.Random] = None,
    am_window: TimeWindow = AM_WINDOW,
    pm_window: TimeWindow = PM_WINDOW,
    min_lead: timedelta = MIN_LEAD,
    min_spacing: timedelta = MIN_SPACING,
    roll_closed_windows: bool = True,
) -> DailySlots:
    """
    Compute the AM and PM engagement slots for `now`.

    Args:
        now: Current naive local time
        rng: Random source (a fresh random.Random if omitted)
        am_window: Morning window
        pm_window: Afternoon window
        min_lead: Minimum distance between now and a today-slot
        min_spacing: Minimum distance between same-day slots
        roll_closed_windows: Move closed windows to tomorrow instead of leaving them empty

    Returns:
        DailySlots
    """
    rng = rng or random.Random()

    am = slot_for_window(am_window, now, rng, min_lead, roll_closed_windows)
    pm = slot_for_window(pm_window, now, rng, min_lead, roll_closed_windows)

    if am is not None and pm is not None and am.date() == pm.date():
        if abs(pm - am) < min_spacing:
            shifted = am + min_spacing
            _, pm_close = pm_window.bounds(am.date())
            if shifted >= pm_close:
                pm = pick_in_window(pm_window, am.date() + timedelta(days=1), rng)
            else:
                pm = shifted

    return DailySlots(am=am, pm=pm)
