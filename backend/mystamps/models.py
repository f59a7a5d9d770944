"""SQLModel data models.

This module defines the application's database tables using SQLModel.
`User` and `Country` are used as entities directly; series and their
catalog numbers are stored as rows that `repositories.SeriesRepository`
maps to and from `entities.Series`.
"""

from typing import Optional
from sqlmodel import SQLModel, Field
from sqlalchemy import UniqueConstraint
from datetime import datetime, date, timezone


class User(SQLModel, table=True):
    """A registered user.

    Fields:
    - `username`: unique login name
    - `password_hash`: hashed password string (never store plaintext)
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, nullable=False, unique=True)
    password_hash: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Country(SQLModel, table=True):
    """A stamp issuing country, referenced by series."""
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, nullable=False, unique=True, max_length=50)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SeriesRow(SQLModel, table=True):
    """Stored scalar columns of a series."""
    __tablename__ = 'series'

    id: Optional[int] = Field(default=None, primary_key=True)
    country_id: Optional[int] = Field(default=None, foreign_key='country.id')
    released_at: Optional[date] = None
    quantity: int
    perforated: bool
    image_url: str = Field(max_length=255)
    comment: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    created_by_id: int = Field(foreign_key='user.id')
    updated_by_id: int = Field(foreign_key='user.id')


class CatalogNumberRow(SQLModel, table=True):
    """A number known in one catalog (`michel`, `scott`, `yvert` or `gibbons`)."""
    __tablename__ = 'catalog_number'
    __table_args__ = (UniqueConstraint('catalog', 'code'),)

    id: Optional[int] = Field(default=None, primary_key=True)
    catalog: str = Field(index=True, max_length=10)
    code: str = Field(max_length=20)


class SeriesCatalogLink(SQLModel, table=True):
    """Association between a series and one of its catalog numbers."""
    __tablename__ = 'series_catalog_number'

    series_id: int = Field(foreign_key='series.id', primary_key=True)
    catalog_number_id: int = Field(foreign_key='catalog_number.id', primary_key=True)
