"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
controller handlers and tests.
"""

from datetime import date, datetime
from pydantic import BaseModel, Field
from typing import Any, List, Optional

from .entities import Series


class RegisterIn(BaseModel):
    """Payload for user registration/login endpoints."""
    username: str
    password: str


class TokenOut(BaseModel):
    """Authentication response containing an access token."""
    access_token: str


class CountryIn(BaseModel):
    """Payload for adding a country."""
    name: str = Field(max_length=50)


class CountryOut(BaseModel):
    id: int
    name: str


class AddSeriesForm(BaseModel):
    """Raw input of the "add series" form.

    Every field is optional so that `SeriesService.add` can tell a missing
    value apart from a supplied one. Catalog number fields hold comma
    separated codes, e.g. ``"1,2"``. `image` is the uploaded file object
    handed to the image service as is.
    """
    country: Optional[int] = None
    year: Optional[int] = Field(default=None, ge=1840)
    quantity: Optional[int] = Field(default=None, ge=1, le=50)
    perforated: Optional[bool] = None
    michel_numbers: Optional[str] = None
    scott_numbers: Optional[str] = None
    yvert_numbers: Optional[str] = None
    gibbons_numbers: Optional[str] = None
    image: Optional[Any] = None
    comment: Optional[str] = Field(default=None, max_length=1024)


class SeriesOut(BaseModel):
    """Response format for a stored series."""
    id: int
    country: Optional[CountryOut] = None
    year: Optional[int] = None
    quantity: int
    perforated: bool
    michel_numbers: Optional[List[str]] = None
    scott_numbers: Optional[List[str]] = None
    yvert_numbers: Optional[List[str]] = None
    gibbons_numbers: Optional[List[str]] = None
    image_url: str
    comment: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    created_by: str
    updated_by: str

    @classmethod
    def from_entity(cls, series: Series) -> 'SeriesOut':
        def codes(numbers):
            return sorted(n.code for n in numbers) if numbers is not None else None
        released: Optional[date] = series.released_at
        return cls(
            id=series.id,
            country=CountryOut(id=series.country.id, name=series.country.name) if series.country else None,
            year=released.year if released else None,
            quantity=series.quantity,
            perforated=series.perforated,
            michel_numbers=codes(series.michel),
            scott_numbers=codes(series.scott),
            yvert_numbers=codes(series.yvert),
            gibbons_numbers=codes(series.gibbons),
            image_url=series.image_url,
            comment=series.comment,
            created_at=series.created_at,
            updated_at=series.updated_at,
            created_by=series.created_by.username,
            updated_by=series.updated_by.username
        )
