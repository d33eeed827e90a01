from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from datetime import datetime
from datetime import time
from datetime import timedelta

from contrib_calendar.errors import BadRequestError
from contrib_calendar.errors import InvalidWindowError


Clock = Callable[[], date]

DEFAULT_DAYS_TO_SHOW = 167
WEEK_STARTS = (0, 1)


def system_clock() -> date:
    """Return today's date in the local time zone."""

    return date.today()


@dataclass(frozen=True)
class DateWindow:
    """Inclusive range of calendar days requested from GitHub."""

    from_day: date
    to_day: date

    @property
    def length(self) -> int:
        return (self.to_day - self.from_day).days + 1

    def iter_days(self):
        current_day = self.from_day
        while current_day <= self.to_day:
            yield current_day
            current_day += timedelta(days=1)


def week_day(day: date) -> int:
    """Weekday number with Sunday as 0 and Saturday as 6."""

    return (day.weekday() + 1) % 7


def align_to_week_start(day: date, week_start: int) -> date:
    """Move `day` back to the closest preceding `week_start` weekday."""

    shift = (week_day(day) - week_start + 7) % 7
    return day - timedelta(days=shift)


def one_year_before(day: date) -> date:
    try:
        return day.replace(year=day.year - 1)
    except ValueError:
        # Feb 29 has no counterpart in the previous year.
        return day.replace(year=day.year - 1, day=28)


def resolve_window(
    today: date,
    *,
    from_day: date | None = None,
    to_day: date | None = None,
    days: int | None = None,
    week_start: int | None = None,
) -> DateWindow:
    """Compute the day window for a calendar request.

    A positive `days` count wins over `from_day`; the start is then aligned to
    `week_start` when it is 0 (Sunday) or 1 (Monday). Without either, the
    window covers one year back from `to_day`.

    Raises:
        InvalidWindowError: If the resolved start falls after the end.
    """

    end = to_day or today

    if days is not None and days > 0:
        start = end - timedelta(days=days - 1)
        if week_start in WEEK_STARTS:
            start = align_to_week_start(start, week_start)
    elif from_day is not None:
        start = from_day
    else:
        start = one_year_before(end)

    if start > end:
        raise InvalidWindowError("from must be before or equal to to")

    return DateWindow(from_day=start, to_day=end)


def coerce_days_to_show(raw_value: object) -> int:
    """Return a usable day count, falling back to the default for bad values."""

    try:
        days = int(raw_value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return DEFAULT_DAYS_TO_SHOW
    return days if days > 0 else DEFAULT_DAYS_TO_SHOW


def coerce_week_start(raw_value: object) -> int:
    """Return 0 (Sunday) or 1 (Monday); anything else means Sunday."""

    try:
        week_start = int(raw_value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return 0
    return week_start if week_start in WEEK_STARTS else 0


def parse_optional_int(raw_value: str | None) -> int | None:
    if raw_value is None or not raw_value.strip():
        return None
    try:
        return int(raw_value)
    except ValueError:
        return None


def parse_instant(raw_value: str) -> date:
    """Parse an ISO date or instant into a local calendar date.

    Raises:
        BadRequestError: If the value is not ISO 8601.
    """

    try:
        parsed = datetime.fromisoformat(raw_value.strip().replace("Z", "+00:00"))
    except ValueError as exc:
        raise BadRequestError(f"invalid date value: {raw_value!r}") from exc

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    return parsed.date()


def local_midnight_iso(day: date) -> str:
    """Serialize the start of `day` in the local time zone as an ISO instant."""

    return datetime.combine(day, time.min).astimezone().isoformat()
