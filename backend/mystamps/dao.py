"""Collaborator contracts consumed by the services.

`SeriesService` depends only on these abstract classes. The SQL-backed
implementations live in `repositories` and `database`; tests provide
their own in-memory fakes.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Any, Optional, Set

from .entities import CatalogNumber, Series
from .models import Country, User


class CountryDao(ABC):

    @abstractmethod
    def find_one(self, country_id: int) -> Optional[Country]:
        """Return the country with `country_id` or `None`."""


class SeriesDao(ABC):

    @abstractmethod
    def save(self, series: Series) -> Series:
        """Persist `series` and return the stored entity (with its id)."""

    @abstractmethod
    def find_one(self, series_id: int) -> Optional[Series]:
        """Return the series with `series_id` or `None`."""


class CatalogDao(ABC):
    """Storage for the numbers of a single catalog."""

    @abstractmethod
    def save(self, numbers: Set[CatalogNumber]) -> Set[CatalogNumber]:
        """Persist every number in `numbers` and return the set."""


class ImageService(ABC):

    @abstractmethod
    def save(self, upload: Any) -> Optional[str]:
        """Store an uploaded image and return the URL it is served from."""


class UserService(ABC):

    @abstractmethod
    def get_current_user(self) -> Optional[User]:
        """Return the user performing the current request, if known."""


class TransactionManager(ABC):

    @abstractmethod
    def transaction(self) -> AbstractContextManager:
        """Return a context manager that commits on exit and rolls back on error."""
