from datetime import date
from typing import Any

from pydantic import BaseModel
from pydantic import Field


class ContributionDay(BaseModel):
    """Single day item returned by the contributions proxy."""

    date: date
    count: int = Field(ge=0)


class ContributionsResponse(BaseModel):
    """Contributions proxy success payload."""

    days: list[ContributionDay]


class ErrorResponse(BaseModel):
    """Error payload shared by all proxy failures."""

    error: str
    details: Any = None
