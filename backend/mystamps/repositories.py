"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (users,
countries, catalog numbers, series) and implements the matching contract
from `dao`. Repositories add and flush but never commit: the caller's
transaction scope decides whether the unit of work is kept.
"""

from collections import defaultdict
from typing import Dict, List, Optional, Set
from sqlmodel import Session, select
from . import models
from .dao import CatalogDao, CountryDao, SeriesDao
from .entities import CATALOG_TYPES, CatalogNumber, Series


def _get_or_create_number(session: Session, catalog: str, code: str) -> models.CatalogNumberRow:
    """Return the stored row for `catalog`/`code`, inserting it when missing."""
    stmt = select(models.CatalogNumberRow).where(
        models.CatalogNumberRow.catalog == catalog,
        models.CatalogNumberRow.code == code
    )
    row = session.exec(stmt).first()
    if row is None:
        row = models.CatalogNumberRow(catalog=catalog, code=code)
        session.add(row)
        session.flush()
    return row


class UserRepository:
    """CRUD operations for `User` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, user: models.User) -> models.User:
        """Stage a new user and return the instance with its id assigned."""
        self.session.add(user)
        self.session.flush()
        self.session.refresh(user)
        return user

    def get_by_username(self, username: str) -> Optional[models.User]:
        """Return a `User` by username or `None` if not found."""
        stmt = select(models.User).where(models.User.username == username)
        return self.session.exec(stmt).first()

    def get(self, user_id: int) -> Optional[models.User]:
        """Get a `User` by primary key."""
        return self.session.get(models.User, user_id)


class CountryRepository(CountryDao):
    """CRUD operations for `Country` objects."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, country: models.Country) -> models.Country:
        self.session.add(country)
        self.session.flush()
        self.session.refresh(country)
        return country

    def find_one(self, country_id: int) -> Optional[models.Country]:
        return self.session.get(models.Country, country_id)

    def find_by_name(self, name: str) -> Optional[models.Country]:
        stmt = select(models.Country).where(models.Country.name == name)
        return self.session.exec(stmt).first()

    def list_all(self) -> List[models.Country]:
        """Return all countries ordered by name."""
        stmt = select(models.Country).order_by(models.Country.name)
        return self.session.exec(stmt).all()


class CatalogRepository(CatalogDao):
    """Stores the numbers of one catalog, identified by `number_cls.catalog`."""
    def __init__(self, session: Session, number_cls: type):
        self.session = session
        self.number_cls = number_cls

    def save(self, numbers: Set[CatalogNumber]) -> Set[CatalogNumber]:
        """Insert the numbers not stored yet; known numbers are left untouched."""
        for number in numbers:
            if not isinstance(number, self.number_cls):
                raise ValueError(f"{number!r} does not belong to the {self.number_cls.catalog} catalog")
            _get_or_create_number(self.session, self.number_cls.catalog, number.code)
        return numbers

    def list_codes(self) -> List[str]:
        stmt = select(models.CatalogNumberRow.code).where(
            models.CatalogNumberRow.catalog == self.number_cls.catalog
        ).order_by(models.CatalogNumberRow.code)
        return self.session.exec(stmt).all()


class SeriesRepository(SeriesDao):
    """Maps `entities.Series` to the series table and its catalog links."""
    def __init__(self, session: Session):
        self.session = session

    def save(self, series: Series) -> Series:
        """Store the series row, then link each supplied catalog number.

        The series must carry `created_by`/`updated_by` users that are
        already stored.
        """
        row = models.SeriesRow(
            country_id=series.country.id if series.country else None,
            released_at=series.released_at,
            quantity=series.quantity,
            perforated=series.perforated,
            image_url=series.image_url,
            comment=series.comment,
            created_at=series.created_at,
            updated_at=series.updated_at,
            created_by_id=series.created_by.id,
            updated_by_id=series.updated_by.id
        )
        self.session.add(row)
        self.session.flush()
        for numbers in (series.michel, series.scott, series.yvert, series.gibbons):
            if numbers is None:
                continue
            for number in numbers:
                number_row = _get_or_create_number(self.session, number.catalog, number.code)
                self.session.add(models.SeriesCatalogLink(series_id=row.id, catalog_number_id=number_row.id))
        self.session.flush()
        series.id = row.id
        return series

    def find_one(self, series_id: int) -> Optional[Series]:
        """Load a series with its country, users and catalog numbers.

        A catalog without linked numbers is reported as `None`.
        """
        row = self.session.get(models.SeriesRow, series_id)
        if row is None:
            return None
        numbers = self._numbers_for(row.id)
        return Series(
            id=row.id,
            country=self.session.get(models.Country, row.country_id) if row.country_id else None,
            released_at=row.released_at,
            quantity=row.quantity,
            perforated=row.perforated,
            michel=numbers.get('michel'),
            scott=numbers.get('scott'),
            yvert=numbers.get('yvert'),
            gibbons=numbers.get('gibbons'),
            image_url=row.image_url,
            comment=row.comment,
            created_at=row.created_at,
            updated_at=row.updated_at,
            created_by=self.session.get(models.User, row.created_by_id),
            updated_by=self.session.get(models.User, row.updated_by_id)
        )

    def _numbers_for(self, series_id: int) -> Dict[str, Set[CatalogNumber]]:
        stmt = select(models.CatalogNumberRow).join(
            models.SeriesCatalogLink,
            models.SeriesCatalogLink.catalog_number_id == models.CatalogNumberRow.id
        ).where(models.SeriesCatalogLink.series_id == series_id)
        out = defaultdict(set)
        for number_row in self.session.exec(stmt).all():
            out[number_row.catalog].add(CATALOG_TYPES[number_row.catalog](number_row.code))
        return dict(out)
