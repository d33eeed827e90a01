import logging
from collections.abc import Generator
from collections.abc import Mapping
from html import escape

import httpx
from fastapi import APIRouter
from fastapi import Depends
from fastapi import Query
from fastapi import Request
from fastapi import Response
from fastapi.responses import HTMLResponse
from fastapi.responses import JSONResponse

from contrib_calendar.api.schemas.contributions import ContributionsResponse
from contrib_calendar.api.schemas.contributions import ErrorResponse
from contrib_calendar.errors import BadRequestError
from contrib_calendar.errors import CalendarError
from contrib_calendar.services.contributions_service import get_contribution_days
from contrib_calendar.settings import Settings
from contrib_calendar.settings import get_settings
from contrib_calendar.widget.calendar import ContributionCalendar
from contrib_calendar.widget.calendar import ProxySource
from contrib_calendar.widget.calendar import WidgetOptions
from contrib_calendar.window import Clock
from contrib_calendar.window import DateWindow
from contrib_calendar.window import parse_instant
from contrib_calendar.window import parse_optional_int
from contrib_calendar.window import resolve_window
from contrib_calendar.window import system_clock


logger = logging.getLogger(__name__)

router = APIRouter()

CONTRIBUTIONS_PATH = "/contributions"


def get_http_client(
    settings: Settings = Depends(get_settings),
) -> Generator[httpx.Client, None, None]:
    with httpx.Client(timeout=settings.github_timeout_seconds) as client:
        yield client


def get_clock() -> Clock:
    return system_clock


def resolve_username(
    path_username: str | None,
    query_params: Mapping[str, str],
    path: str,
    mount_path: str = CONTRIBUTIONS_PATH,
) -> str:
    """Pick the username from path, `username`, `user` or the trailing segment.

    Raises:
        BadRequestError: If none of the sources carries a username.
    """

    candidates = [
        path_username,
        query_params.get("username"),
        query_params.get("user"),
    ]
    if path.startswith(f"{mount_path}/"):
        candidates.append(path.rstrip("/").rsplit("/", 1)[-1])

    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate.strip()

    raise BadRequestError("username is required in the path or as a query parameter")


def error_response(
    status_code: int, error: str, details: object | None = None
) -> JSONResponse:
    if details is None:
        payload = ErrorResponse(error=error)
    else:
        payload = ErrorResponse(error=error, details=details)
    return JSONResponse(
        status_code=status_code, content=payload.model_dump(exclude_unset=True)
    )


@router.get("/health/live")
def health_live() -> dict[str, str]:
    """Return liveness status for health checks."""

    return {"status": "ok"}


@router.get(CONTRIBUTIONS_PATH, response_model=ContributionsResponse)
@router.get(f"{CONTRIBUTIONS_PATH}/{{username}}", response_model=ContributionsResponse)
def get_contributions(
    request: Request,
    response: Response,
    from_value: str | None = Query(default=None, alias="from"),
    to_value: str | None = Query(default=None, alias="to"),
    days_value: str | None = Query(default=None, alias="days"),
    week_start_value: str | None = Query(default=None, alias="weekStart"),
    settings: Settings = Depends(get_settings),
    client: httpx.Client = Depends(get_http_client),
    clock: Clock = Depends(get_clock),
) -> object:
    """Return contribution days for a user from GitHub GraphQL API."""

    username = resolve_username(
        request.path_params.get("username"),
        request.query_params,
        request.url.path,
    )
    days = parse_optional_int(days_value)
    window = resolve_window(
        clock(),
        from_day=parse_instant(from_value) if from_value else None,
        to_day=parse_instant(to_value) if to_value else None,
        days=days,
        week_start=parse_optional_int(week_start_value),
    )

    try:
        contribution_days = get_contribution_days(
            username=username,
            window=window,
            days=days,
            token=settings.github_token,
            graphql_url=settings.github_graphql_url,
            client=client,
        )
    except CalendarError:
        raise
    except Exception as exc:
        logger.exception("Contributions proxy failed for %s", username)
        return error_response(500, "Internal error in contributions proxy", str(exc))

    response.headers["Cache-Control"] = f"public, max-age={settings.cache_ttl_seconds}"
    return {"days": contribution_days}


@router.get("/calendar/{username}", response_class=HTMLResponse)
def get_calendar_page(
    username: str,
    settings: Settings = Depends(get_settings),
    client: httpx.Client = Depends(get_http_client),
    clock: Clock = Depends(get_clock),
) -> HTMLResponse:
    """Render the contribution calendar card for a user as HTML.

    A relative `proxy_base_url` points at this app, so the proxy runs
    in-process instead of over HTTP.
    """

    def contributions_in_process(
        window: DateWindow, days: int
    ) -> list[dict[str, str | int]]:
        return get_contribution_days(
            username=username,
            window=window,
            days=days,
            token=settings.github_token,
            graphql_url=settings.github_graphql_url,
            client=client,
        )

    proxy_source: ProxySource | None = None
    if settings.proxy_base_url.startswith("/"):
        proxy_source = contributions_in_process

    calendar = ContributionCalendar(
        username,
        client=client,
        options=WidgetOptions(
            week_start=settings.week_start,
            days_to_show=settings.days_to_show,
            per_page=settings.events_per_page,
            max_pages=settings.events_max_pages,
            proxy_base_url=settings.proxy_base_url,
            api_base_url=settings.github_api_base_url,
        ),
        clock=clock,
        proxy_source=proxy_source,
    )
    calendar.fetch_contributions()
    return HTMLResponse(
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        f"<title>{escape(calendar.username)} GitHub activity</title></head>"
        f"<body>{calendar.html}</body></html>"
    )
