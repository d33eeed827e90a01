from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from datetime import timedelta
from html import escape

from contrib_calendar.window import align_to_week_start


GITHUB_LOGO_PATH = (
    "M12 0c-6.626 0-12 5.373-12 12 0 5.302 3.438 9.8 8.207 11.387.599.111.793-.261"
    ".793-.577v-2.234c-3.338.726-4.033-1.416-4.033-1.416-.546-1.387-1.333-1.756-1.333"
    "-1.756-1.089-.745.083-.729.083-.729 1.205.084 1.839 1.237 1.839 1.237 1.07 1.834 "
    "2.807 1.304 3.492.997.107-.775.418-1.305.762-1.604-2.665-.305-5.467-1.334-5.467"
    "-5.931 0-1.311.469-2.381 1.236-3.221-.124-.303-.535-1.524.117-3.176 0 0 1.008-.322 "
    "3.301 1.23.957-.266 1.983-.399 3.003-.404 1.02.005 2.047.138 3.006.404 2.291-1.552 "
    "3.297-1.23 3.297-1.23.653 1.653.242 2.874.118 3.176.77.84 1.235 1.911 1.235 3.221 "
    "0 4.609-2.807 5.624-5.479 5.921.43.372.823 1.102.823 2.222v3.293c0 .319.192.694"
    ".801.576 4.765-1.589 8.199-6.086 8.199-11.386 0-6.627-5.373-12-12-12z"
)

LEGEND_TITLES = ("0", "low", "medium", "high", "very high")


@dataclass(frozen=True)
class CalendarCell:
    """One slot of a week row; `day` is None for dates after today."""

    day: date | None = None
    count: int = 0
    level: int = 0

    @property
    def is_empty(self) -> bool:
        return self.day is None


def contribution_level(count: int | None, max_count: int | None) -> int:
    """Map a daily count to a level in 0..4 relative to the window maximum."""

    if not count:
        return 0
    if not max_count:
        return 1

    ratio = count / max_count
    if ratio <= 0.25:
        return 1
    if ratio <= 0.5:
        return 2
    if ratio <= 0.75:
        return 3
    return 4


def build_week_rows(
    days: Iterable[dict[str, str | int]],
    today: date,
    week_start: int = 0,
) -> list[list[CalendarCell]]:
    """Lay out contribution days as 7-slot week rows ending with today's week."""

    ordered_days = sorted(days, key=lambda day: str(day["date"]))
    if not ordered_days:
        return []

    counts_by_date = {str(day["date"]): int(day["count"]) for day in ordered_days}
    max_count = max(counts_by_date.values(), default=0)

    first_day = date.fromisoformat(str(ordered_days[0]["date"]))
    week_begin = align_to_week_start(first_day, week_start)

    rows: list[list[CalendarCell]] = []
    while week_begin <= today:
        row: list[CalendarCell] = []
        for offset in range(7):
            current_day = week_begin + timedelta(days=offset)
            if current_day > today:
                row.append(CalendarCell())
                continue
            count = counts_by_date.get(current_day.isoformat(), 0)
            row.append(
                CalendarCell(
                    day=current_day,
                    count=count,
                    level=contribution_level(count, max_count),
                )
            )
        rows.append(row)
        week_begin += timedelta(days=7)

    return rows


def _card(body: str, modifier: str = "") -> str:
    css_class = f"github-calendar-card {modifier}".strip()
    return (
        f'<div class="{css_class}">'
        '<div class="github-calendar-header"><div class="github-logo">'
        '<svg width="20" height="20" viewBox="0 0 24 24" fill="currentColor">'
        f'<path d="{GITHUB_LOGO_PATH}"/></svg>'
        "<span>My GitHub activity</span>"
        "</div></div>"
        f"{body}"
        "</div>"
    )


def render_loading() -> str:
    return _card(
        '<div class="github-calendar-status">Loading activity...</div>', "loading"
    )


def render_error(message: str | None = None) -> str:
    text = message or "Failed to load GitHub activity."
    return _card(f'<div class="error-message"><p>{escape(text)}</p></div>', "error")


def _render_cell(cell: CalendarCell) -> str:
    if cell.is_empty:
        return '<div class="contribution-square empty"></div>'

    label = escape(f"{cell.day.isoformat()}: {cell.count} contributions")
    return (
        f'<div class="contribution-square level-{cell.level}" role="button" '
        f'tabindex="0" data-date="{cell.day.isoformat()}" '
        f'data-count="{cell.count}" aria-label="{label}" title="{label}"></div>'
    )


def render_grid(rows: list[list[CalendarCell]]) -> str:
    if not rows:
        return '<div class="github-calendar-status">No contributions recorded.</div>'
    return "".join(
        '<div class="calendar-week">'
        + "".join(_render_cell(cell) for cell in row)
        + "</div>"
        for row in rows
    )


def render_legend() -> str:
    squares = "".join(
        f'<div class="legend-square level-{level}" title="{title}"></div>'
        for level, title in enumerate(LEGEND_TITLES)
    )
    return (
        '<div class="github-calendar-footer">'
        '<span class="legend-text">less</span>'
        f'<div class="legend-squares">{squares}</div>'
        '<span class="legend-text">more</span>'
        "</div>"
    )


def render_calendar(
    days: Iterable[dict[str, str | int]],
    today: date,
    week_start: int = 0,
) -> str:
    """Render the contribution calendar card as an HTML fragment."""

    rows = build_week_rows(days, today=today, week_start=week_start)
    grid = (
        '<div class="github-calendar-grid" role="grid" '
        'aria-label="Contribution calendar">'
        f"{render_grid(rows)}"
        "</div>"
    )
    return _card(grid + render_legend())
