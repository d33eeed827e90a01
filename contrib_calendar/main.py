import logging

from fastapi import FastAPI
from fastapi import Request
from fastapi.responses import PlainTextResponse
from fastapi.responses import Response

from contrib_calendar.api.routes.contributions import error_response
from contrib_calendar.api.routes.contributions import router
from contrib_calendar.core.middleware import AllowAllOriginsMiddleware
from contrib_calendar.core.middleware import ProxyRateLimitMiddleware
from contrib_calendar.core.observability import init_logging
from contrib_calendar.core.observability import init_sentry
from contrib_calendar.errors import BadRequestError
from contrib_calendar.errors import CalendarError
from contrib_calendar.errors import UnconfiguredError
from contrib_calendar.errors import UpstreamGraphQLError
from contrib_calendar.errors import UpstreamHTTPError
from contrib_calendar.settings import Settings


logger = logging.getLogger(__name__)


async def calendar_error_handler(request: Request, exc: Exception) -> Response:
    """Translate proxy errors into the JSON or pass-through text responses."""

    if isinstance(exc, UpstreamHTTPError):
        logger.warning("GitHub answered %s: %s", exc.status_code, exc.body)
        return PlainTextResponse(
            f"GitHub GraphQL error: {exc.body}", status_code=exc.status_code
        )
    if isinstance(exc, UpstreamGraphQLError):
        logger.warning("GitHub GraphQL returned errors: %s", exc.details)
        return error_response(500, exc.message, exc.details or None)
    if isinstance(exc, BadRequestError):
        return error_response(400, exc.message)
    if isinstance(exc, UnconfiguredError):
        logger.error("Contributions proxy is not configured: %s", exc.message)
        return error_response(500, exc.message)

    message = exc.message if isinstance(exc, CalendarError) else str(exc)
    return error_response(502, message)


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI application with middleware and routes."""

    app_settings = app_settings or Settings()
    init_logging(app_settings)
    init_sentry(app_settings)

    app = FastAPI(title="contrib-calendar")
    app.add_middleware(
        ProxyRateLimitMiddleware,
        requests_per_window=app_settings.rate_limit_per_minute,
        window_seconds=app_settings.rate_limit_window_seconds,
    )
    app.add_middleware(AllowAllOriginsMiddleware)
    app.add_exception_handler(CalendarError, calendar_error_handler)
    app.include_router(router)
    return app


app = create_app()
