import logging
from collections.abc import Callable
from collections.abc import Iterable
from collections.abc import Mapping
from dataclasses import dataclass
from dataclasses import replace
from datetime import date
from datetime import datetime
from typing import Any
from urllib.parse import quote

import httpx

from contrib_calendar.clients.github_client import fetch_public_events
from contrib_calendar.errors import CalendarError
from contrib_calendar.errors import MalformedResponseError
from contrib_calendar.errors import UpstreamHTTPError
from contrib_calendar.services.contributions_service import sort_days
from contrib_calendar.widget.render import render_calendar
from contrib_calendar.widget.render import render_error
from contrib_calendar.widget.render import render_loading
from contrib_calendar.window import Clock
from contrib_calendar.window import DateWindow
from contrib_calendar.window import coerce_days_to_show
from contrib_calendar.window import coerce_week_start
from contrib_calendar.window import local_midnight_iso
from contrib_calendar.window import resolve_window
from contrib_calendar.window import system_clock


logger = logging.getLogger(__name__)

# Called with the resolved window and day count; returns raw `{date, count}` items.
ProxySource = Callable[[DateWindow, int], Any]


@dataclass(frozen=True)
class WidgetOptions:
    """Per-instance widget configuration."""

    week_start: int = 0
    days_to_show: int = 167
    per_page: int = 100
    max_pages: int = 10
    proxy_base_url: str = "/contributions"
    api_base_url: str = "https://api.github.com"


def aggregate_events(events: Iterable[Mapping[str, Any]]) -> dict[str, int]:
    """Count events per UTC calendar day of their `created_at` timestamp."""

    counts: dict[str, int] = {}
    for event in events:
        created_at = event.get("created_at")
        if not isinstance(created_at, str) or not created_at:
            continue
        try:
            created = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
        except ValueError:
            continue
        day = created.date().isoformat()
        counts[day] = counts.get(day, 0) + 1
    return counts


def fill_days(
    window: DateWindow, counts: Mapping[str, int]
) -> list[dict[str, str | int]]:
    """Build a dense day list for `window`, defaulting missing dates to 0."""

    return [
        {"date": day.isoformat(), "count": counts.get(day.isoformat(), 0)}
        for day in window.iter_days()
    ]


def normalize_proxy_days(payload: Any) -> list[dict[str, str | int]]:
    """Validate a proxy payload and return its days sorted by date.

    Raises:
        MalformedResponseError: If `days` is missing, empty or has bad items.
    """

    raw_days = payload.get("days") if isinstance(payload, Mapping) else None
    if not isinstance(raw_days, list) or not raw_days:
        raise MalformedResponseError("Proxy returned invalid or empty data.")

    days: list[dict[str, str | int]] = []
    for item in raw_days:
        if not isinstance(item, Mapping):
            raise MalformedResponseError("Proxy returned invalid or empty data.")
        raw_date = item.get("date")
        raw_count = item.get("count")
        if (
            not isinstance(raw_date, str)
            or not isinstance(raw_count, int)
            or isinstance(raw_count, bool)
            or raw_count < 0
        ):
            raise MalformedResponseError("Proxy returned invalid or empty data.")
        try:
            day = date.fromisoformat(raw_date)
        except ValueError as exc:
            raise MalformedResponseError(
                f"Proxy returned an invalid date: {raw_date!r}"
            ) from exc
        days.append({"date": day.isoformat(), "count": raw_count})
    return sort_days(days)


class ContributionCalendar:
    """Fetch a user's contribution days and render them as an HTML calendar.

    The proxy is tried first; any failure there falls back to counting public
    REST events. Only a failure of both paths is rendered as an error. When
    `proxy_source` is given it replaces the HTTP call to `proxy_base_url`.
    """

    def __init__(
        self,
        username: str,
        client: httpx.Client,
        options: WidgetOptions | None = None,
        clock: Clock = system_clock,
        proxy_source: ProxySource | None = None,
    ) -> None:
        options = options or WidgetOptions()
        self.username = username
        self.client = client
        self.options = replace(
            options,
            week_start=coerce_week_start(options.week_start),
            days_to_show=coerce_days_to_show(options.days_to_show),
        )
        self.clock = clock
        self.proxy_source = proxy_source
        self.contributions: list[dict[str, str | int]] = []
        self.state = "loading"
        self.html = render_loading()

    def window(self, today: date) -> DateWindow:
        return resolve_window(
            today,
            days=self.options.days_to_show,
            week_start=self.options.week_start,
        )

    def proxy_url(self) -> str:
        base_url = self.options.proxy_base_url.rstrip("/")
        return f"{base_url}/{quote(self.username, safe='')}"

    def fetch_from_proxy(self, window: DateWindow) -> list[dict[str, str | int]]:
        """Call the contributions proxy for `window`.

        Raises:
            httpx.HTTPError: On network failures.
            CalendarError: If the proxy fails or answers with a non-2xx status.
            MalformedResponseError: If the body has no usable days.
        """

        if self.proxy_source is not None:
            raw_days = self.proxy_source(window, self.options.days_to_show)
            return normalize_proxy_days({"days": raw_days})

        response = self.client.get(
            self.proxy_url(),
            params={
                "from": local_midnight_iso(window.from_day),
                "to": local_midnight_iso(window.to_day),
                "days": self.options.days_to_show,
                "weekStart": self.options.week_start,
            },
        )
        if not response.is_success:
            raise UpstreamHTTPError(
                f"Proxy unavailable: {response.status_code} {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise MalformedResponseError("Proxy returned invalid JSON.") from exc
        return normalize_proxy_days(payload)

    def fetch_from_events(self, window: DateWindow) -> list[dict[str, str | int]]:
        events = fetch_public_events(
            self.username,
            client=self.client,
            per_page=self.options.per_page,
            max_pages=self.options.max_pages,
            api_base_url=self.options.api_base_url,
        )
        return fill_days(window, aggregate_events(events))

    def fetch_contributions(self) -> str:
        """Load contributions and return the rendered HTML."""

        self.contributions = []
        self.state = "loading"
        self.html = render_loading()

        today = self.clock()
        window = self.window(today)

        try:
            self.contributions = self.fetch_from_proxy(window)
        except (httpx.HTTPError, CalendarError, ValueError) as proxy_exc:
            logger.warning(
                "Contributions proxy failed, falling back to REST events: %s",
                proxy_exc,
            )
            try:
                self.contributions = self.fetch_from_events(window)
            except (httpx.HTTPError, CalendarError, ValueError) as rest_exc:
                logger.error("REST events fallback failed as well: %s", rest_exc)
                self.state = "error"
                self.html = render_error(str(rest_exc) or None)
                return self.html

        self.render(today)
        return self.html

    def render(self, today: date | None = None) -> str:
        self.state = "success"
        self.html = render_calendar(
            self.contributions,
            today=today or self.clock(),
            week_start=self.options.week_start,
        )
        return self.html
