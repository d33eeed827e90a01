from datetime import date
from datetime import timedelta

import pytest

from contrib_calendar.services.contributions_service import sort_days
from contrib_calendar.widget.render import build_week_rows
from contrib_calendar.widget.render import contribution_level
from contrib_calendar.widget.render import render_calendar
from contrib_calendar.widget.render import render_error
from contrib_calendar.widget.render import render_loading


TODAY = date(2024, 1, 10)


def dense_days(start: date, end: date, count: int = 1) -> list[dict[str, str | int]]:
    days: list[dict[str, str | int]] = []
    current_day = start
    while current_day <= end:
        days.append({"date": current_day.isoformat(), "count": count})
        current_day += timedelta(days=1)
    return days


@pytest.mark.parametrize(
    ("count", "max_count", "expected"),
    [
        (0, 12, 0),
        (0, 0, 0),
        (None, None, 0),
        (5, 0, 1),
        (5, None, 1),
        (3, 12, 1),
        (6, 12, 2),
        (7, 12, 3),
        (9, 12, 3),
        (10, 12, 4),
        (12, 12, 4),
    ],
)
def test_contribution_level(count, max_count, expected: int) -> None:
    assert contribution_level(count, max_count) == expected


def test_contribution_level_is_monotonic() -> None:
    max_count = 37
    levels = [contribution_level(count, max_count) for count in range(max_count + 1)]

    assert levels == sorted(levels)
    assert levels[0] == 0
    assert levels[-1] == 4


def test_sort_days_is_idempotent_on_sorted_input() -> None:
    days = dense_days(date(2024, 1, 1), date(2024, 1, 5))

    assert sort_days(days) == days
    assert sort_days(list(reversed(days))) == days


def test_build_week_rows_leaves_future_slots_empty() -> None:
    days = dense_days(date(2023, 12, 31), TODAY)

    rows = build_week_rows(days, today=TODAY, week_start=0)

    assert len(rows) == 2
    assert all(len(row) == 7 for row in rows)
    assert rows[0][0].day == date(2023, 12, 31)
    assert [cell.day for cell in rows[1][:4]] == [
        date(2024, 1, 7),
        date(2024, 1, 8),
        date(2024, 1, 9),
        date(2024, 1, 10),
    ]
    assert all(cell.is_empty for cell in rows[1][4:])
    assert all(cell.level == 4 for row in rows for cell in row if not cell.is_empty)


def test_build_week_rows_aligns_first_day_to_monday() -> None:
    days = dense_days(date(2024, 1, 3), TODAY)

    rows = build_week_rows(days, today=TODAY, week_start=1)

    assert rows[0][0].day == date(2024, 1, 1)
    assert rows[0][0].count == 0
    assert rows[0][0].level == 0


def test_build_week_rows_sorts_unordered_input() -> None:
    days = dense_days(date(2023, 12, 31), TODAY)
    days[3]["count"] = 8

    assert build_week_rows(list(reversed(days)), today=TODAY) == build_week_rows(
        days, today=TODAY
    )


def test_build_week_rows_uses_levels_relative_to_max() -> None:
    days = [
        {"date": "2024-01-08", "count": 3},
        {"date": "2024-01-09", "count": 7},
        {"date": "2024-01-10", "count": 12},
    ]

    rows = build_week_rows(days, today=TODAY, week_start=0)
    cells = {cell.day: cell for row in rows for cell in row if not cell.is_empty}

    assert cells[date(2024, 1, 7)].level == 0
    assert cells[date(2024, 1, 8)].level == 1
    assert cells[date(2024, 1, 9)].level == 3
    assert cells[date(2024, 1, 10)].level == 4


def test_build_week_rows_empty_input() -> None:
    assert build_week_rows([], today=TODAY) == []


def test_render_calendar_outputs_cells_and_legend() -> None:
    html = render_calendar(
        [{"date": "2024-01-10", "count": 2}], today=TODAY, week_start=0
    )

    assert 'data-date="2024-01-10"' in html
    assert 'data-count="2"' in html
    assert "contribution-square level-4" in html
    assert "contribution-square empty" in html
    assert "legend-square level-0" in html


def test_render_calendar_without_days_shows_placeholder() -> None:
    html = render_calendar([], today=TODAY)

    assert "No contributions recorded." in html
    assert "contribution-square" not in html


def test_render_error_escapes_message() -> None:
    html = render_error("<b>boom</b>")

    assert "&lt;b&gt;boom&lt;/b&gt;" in html
    assert "github-calendar-card error" in html


def test_render_error_uses_generic_message() -> None:
    assert "Failed to load GitHub activity." in render_error(None)


def test_render_loading() -> None:
    assert "Loading activity..." in render_loading()
