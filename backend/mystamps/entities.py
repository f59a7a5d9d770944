"""Domain entities handled by the series service.

`Series` is a plain dataclass rather than a table model so that an
absent catalog association (`None`) stays distinguishable from an empty
one until it reaches the repository. Catalog numbers are frozen value
objects, equal and hashable by their code.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import ClassVar, Optional, Set

from .models import Country, User


@dataclass(frozen=True)
class CatalogNumber:
    """A single number in one of the stamp catalogs."""
    code: str

    catalog: ClassVar[str] = ''

    def __str__(self) -> str:
        return self.code


@dataclass(frozen=True)
class MichelCatalog(CatalogNumber):
    catalog: ClassVar[str] = 'michel'


@dataclass(frozen=True)
class ScottCatalog(CatalogNumber):
    catalog: ClassVar[str] = 'scott'


@dataclass(frozen=True)
class YvertCatalog(CatalogNumber):
    catalog: ClassVar[str] = 'yvert'


@dataclass(frozen=True)
class GibbonsCatalog(CatalogNumber):
    catalog: ClassVar[str] = 'gibbons'


CATALOG_TYPES = {cls.catalog: cls for cls in (MichelCatalog, ScottCatalog, YvertCatalog, GibbonsCatalog)}


@dataclass
class Series:
    """A group of stamps released together.

    The four catalog sets are `None` when the submitter did not provide
    them. `image_url` never exceeds `IMAGE_URL_LENGTH` characters.
    """
    IMAGE_URL_LENGTH: ClassVar[int] = 255

    id: Optional[int] = None
    country: Optional[Country] = None
    released_at: Optional[date] = None
    quantity: Optional[int] = None
    perforated: Optional[bool] = None
    michel: Optional[Set[MichelCatalog]] = None
    scott: Optional[Set[ScottCatalog]] = None
    yvert: Optional[Set[YvertCatalog]] = None
    gibbons: Optional[Set[GibbonsCatalog]] = None
    image_url: Optional[str] = None
    comment: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: Optional[User] = None
    updated_by: Optional[User] = None
