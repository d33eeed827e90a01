import logging
from collections.abc import Iterable
from collections.abc import Mapping
from typing import Any

import httpx

from contrib_calendar.clients.github_client import fetch_contribution_weeks
from contrib_calendar.errors import UnconfiguredError
from contrib_calendar.window import DateWindow


logger = logging.getLogger(__name__)


def flatten_weeks(weeks: Iterable[Any]) -> list[dict[str, str | int]]:
    """Flatten GraphQL calendar weeks into `{date, count}` items."""

    days: list[dict[str, str | int]] = []
    for week in weeks:
        if not isinstance(week, Mapping):
            continue
        contribution_days = week.get("contributionDays")
        if not isinstance(contribution_days, list):
            continue
        for item in contribution_days:
            if not isinstance(item, Mapping):
                continue
            raw_date = item.get("date")
            raw_count = item.get("contributionCount")
            if isinstance(raw_date, str) and isinstance(raw_count, int):
                days.append({"date": raw_date, "count": raw_count})
    return days


def sort_days(days: Iterable[dict[str, str | int]]) -> list[dict[str, str | int]]:
    return sorted(days, key=lambda day: str(day["date"]))


def keep_last_days(
    days: list[dict[str, str | int]], wanted: int | None
) -> list[dict[str, str | int]]:
    """Keep only the most recent `wanted` days of an ascending list."""

    if wanted is None or wanted <= 0 or len(days) <= wanted:
        return days
    return days[len(days) - wanted :]


def get_contribution_days(
    username: str,
    window: DateWindow,
    days: int | None,
    token: str | None,
    graphql_url: str,
    client: httpx.Client,
) -> list[dict[str, str | int]]:
    """Fetch, flatten, sort and trim the contribution calendar of a user.

    Raises:
        UnconfiguredError: If no GitHub token is configured.
    """

    if not token:
        raise UnconfiguredError("GITHUB_TOKEN is not configured")

    weeks = fetch_contribution_weeks(
        username=username,
        window=window,
        token=token,
        graphql_url=graphql_url,
        client=client,
    )
    contribution_days = keep_last_days(sort_days(flatten_weeks(weeks)), days)
    logger.info(
        "Returning %d contribution days for %s", len(contribution_days), username
    )
    return contribution_days
