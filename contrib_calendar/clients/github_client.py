import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any

import httpx

from contrib_calendar.errors import ForbiddenError
from contrib_calendar.errors import NotFoundError
from contrib_calendar.errors import RateLimitedError
from contrib_calendar.errors import UpstreamGraphQLError
from contrib_calendar.errors import UpstreamHTTPError
from contrib_calendar.window import DateWindow


logger = logging.getLogger(__name__)

USER_AGENT = "contrib-calendar"

CONTRIBUTIONS_QUERY = """
query($login: String!, $from: DateTime!, $to: DateTime!) {
  user(login: $login) {
    contributionsCollection(from: $from, to: $to) {
      contributionCalendar {
        weeks {
          contributionDays {
            date
            contributionCount
          }
        }
      }
    }
  }
}
"""


def fetch_contribution_weeks(
    username: str,
    window: DateWindow,
    token: str,
    graphql_url: str,
    client: httpx.Client,
) -> list[Any]:
    """Fetch the contribution calendar weeks for a user from GitHub GraphQL API.

    Raises:
        UpstreamHTTPError: If GitHub answers with a non-2xx status.
        UpstreamGraphQLError: If the payload carries errors or lacks the calendar.
    """

    variables = {
        "login": username,
        "from": f"{window.from_day.isoformat()}T00:00:00Z",
        "to": f"{window.to_day.isoformat()}T00:00:00Z",
    }
    headers = {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
        "User-Agent": USER_AGENT,
    }

    logger.debug(
        "Querying contributions for %s from %s to %s",
        username,
        variables["from"],
        variables["to"],
    )
    response = client.post(
        graphql_url,
        json={"query": CONTRIBUTIONS_QUERY, "variables": variables},
        headers=headers,
    )
    if not response.is_success:
        raise UpstreamHTTPError(
            f"GitHub GraphQL error: {response.text}",
            status_code=response.status_code,
            body=response.text,
        )

    payload: Any = response.json()
    if not isinstance(payload, Mapping):
        raise UpstreamGraphQLError("GitHub GraphQL response is invalid")

    errors = payload.get("errors")
    if errors:
        raise UpstreamGraphQLError("GitHub GraphQL error", details=errors)

    data = payload.get("data")
    if not isinstance(data, Mapping):
        raise UpstreamGraphQLError("GitHub GraphQL data is missing")

    user = data.get("user")
    if not isinstance(user, Mapping):
        raise UpstreamGraphQLError("GitHub user not found")

    collection = user.get("contributionsCollection")
    if not isinstance(collection, Mapping):
        raise UpstreamGraphQLError("GitHub contributionsCollection is missing")

    calendar = collection.get("contributionCalendar")
    if not isinstance(calendar, Mapping):
        raise UpstreamGraphQLError("GitHub contributionCalendar is missing")

    weeks = calendar.get("weeks")
    if not isinstance(weeks, list):
        return []
    return weeks


def format_reset_time(raw_reset: str | None) -> datetime | None:
    if not raw_reset:
        return None
    try:
        return datetime.fromtimestamp(int(raw_reset))
    except (ValueError, OverflowError, OSError):
        return None


def check_rate_limit(response: httpx.Response) -> None:
    """Abort pagination when GitHub reports an exhausted quota.

    Raises:
        RateLimitedError: If `X-RateLimit-Remaining` is exactly 0.
    """

    remaining = response.headers.get("X-RateLimit-Remaining")
    if remaining is None or remaining.strip() != "0":
        return

    reset_at = format_reset_time(response.headers.get("X-RateLimit-Reset"))
    reset_message = (
        f" (resets at {reset_at.strftime('%Y-%m-%d %H:%M:%S')})" if reset_at else ""
    )
    raise RateLimitedError(f"API rate limit reached.{reset_message}", reset_at)


def fetch_public_events(
    username: str,
    client: httpx.Client,
    per_page: int = 100,
    max_pages: int = 10,
    api_base_url: str = "https://api.github.com",
) -> list[dict[str, Any]]:
    """Collect public events for a user by walking REST pages in order.

    Pagination stops at the first empty or short page, or after `max_pages`.
    """

    url = f"{api_base_url.rstrip('/')}/users/{username}/events/public"
    events: list[dict[str, Any]] = []

    for page in range(1, max_pages + 1):
        response = client.get(
            url,
            params={"per_page": per_page, "page": page},
            headers={
                "Accept": "application/vnd.github.v3+json",
                "User-Agent": USER_AGENT,
            },
        )

        check_rate_limit(response)

        if response.status_code == 404:
            raise NotFoundError("GitHub user not found (404).")
        if response.status_code == 403:
            raise ForbiddenError("Access denied / API rate limit reached (403).")
        if not response.is_success:
            raise UpstreamHTTPError(
                "Failed to fetch GitHub events: "
                f"{response.status_code} {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        page_events = response.json()
        if not isinstance(page_events, list) or not page_events:
            break

        events.extend(item for item in page_events if isinstance(item, Mapping))
        logger.debug("Fetched %d events from page %d", len(page_events), page)
        if len(page_events) < per_page:
            break

    return events
