"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories,
parsers and auxiliary logic. Services are intentionally thin: they
perform validation, assemble entities and persist them via the
collaborator contracts declared in `dao`.

Invalid caller input raises `ValueError`; a collaborator that breaks
its contract raises `RuntimeError`.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any, List, Optional

import jwt
from passlib.context import CryptContext
from sqlmodel import Session

from . import models, repositories
from .config import settings
from .dao import CatalogDao, CountryDao, ImageService, SeriesDao, TransactionManager, UserService
from .database import SessionTransactionManager
from .entities import GibbonsCatalog, MichelCatalog, ScottCatalog, Series, YvertCatalog
from .schemas import AddSeriesForm
from .utils.catalog_numbers import parse_catalog_numbers
from .utils.images import resolve_image, store_image

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

logger = logging.getLogger("mystamps.services")


class AuthService:
    """Authentication related operations (register + authenticate)."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)
        self.tx = SessionTransactionManager(session)

    def register(self, username: str, password: str) -> models.User:
        """Create a new user with a hashed password.

        Returns the persisted `User` instance.
        """
        if not username or not username.strip():
            raise ValueError("username must not be blank")
        if not password:
            raise ValueError("password must not be empty")
        hashed = PWD_CTX.hash(password)
        with self.tx.transaction():
            u = self.user_repo.create(models.User(username=username.strip(), password_hash=hashed))
        return u

    def authenticate(self, username: str, password: str) -> Optional[str]:
        """Verify credentials and return a signed JWT token on success.

        Returns `None` if authentication fails.
        """
        user = self.user_repo.get_by_username(username)
        if not user:
            return None
        if not PWD_CTX.verify(password, user.password_hash):
            return None
        expire = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRE_HOURS)
        payload = {"user_id": user.id, "username": user.username, "exp": int(expire.timestamp())}
        return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


class CurrentUserService(UserService):
    """`UserService` answering with the user authenticated for this request."""
    def __init__(self, user: Optional[models.User]):
        self.user = user

    def get_current_user(self) -> Optional[models.User]:
        return self.user


class FilesystemImageService(ImageService):
    """Store uploaded images as files under `root` and serve them from `/image/`."""
    def __init__(self, root: Optional[Path] = None, max_bytes: Optional[int] = None):
        self.root = root if root is not None else settings.IMAGE_DIR
        self.max_bytes = max_bytes if max_bytes is not None else settings.MAX_IMAGE_BYTES

    def save(self, upload: Any) -> str:
        """Validate and store `upload` (an object exposing a binary `.file`)."""
        if upload is None:
            raise ValueError("image must be provided")
        payload = upload.file.read(self.max_bytes + 1)
        if not payload:
            raise ValueError("image must not be empty")
        if len(payload) > self.max_bytes:
            raise ValueError("image too large")
        name = store_image(payload, self.root)
        logging.getLogger("mystamps.images").info("stored image %s (%d bytes)", name, len(payload))
        return f"/image/{name}"

    def path_for(self, name: str) -> Optional[Path]:
        """Return the stored file for `name`, or `None`."""
        return resolve_image(self.root, name)


class CountryService:
    """Manage the countries series can refer to."""
    def __init__(self, session: Session):
        self.session = session
        self.country_repo = repositories.CountryRepository(session)
        self.tx = SessionTransactionManager(session)

    def add(self, name: Optional[str]) -> models.Country:
        """Store a new country; names are trimmed and must be unique."""
        if name is None or not name.strip():
            raise ValueError("country name must not be blank")
        name = name.strip()
        with self.tx.transaction():
            if self.country_repo.find_by_name(name):
                raise ValueError(f"country already exists: {name}")
            country = self.country_repo.create(models.Country(name=name))
        return country

    def find_all(self) -> List[models.Country]:
        return self.country_repo.list_all()

    def find_by_id(self, country_id: Optional[int]) -> Optional[models.Country]:
        if country_id is None:
            raise ValueError("country id must be non null")
        return self.country_repo.find_one(country_id)


class SeriesService:
    """Create and look up stamp series.

    All collaborators are injected; `for_session` wires the SQL-backed
    implementations for a request.
    """
    def __init__(
        self,
        country_dao: CountryDao,
        series_dao: SeriesDao,
        michel_dao: CatalogDao,
        scott_dao: CatalogDao,
        yvert_dao: CatalogDao,
        gibbons_dao: CatalogDao,
        image_service: ImageService,
        user_service: UserService,
        tx: TransactionManager,
    ):
        self.country_dao = country_dao
        self.series_dao = series_dao
        self.michel_dao = michel_dao
        self.scott_dao = scott_dao
        self.yvert_dao = yvert_dao
        self.gibbons_dao = gibbons_dao
        self.image_service = image_service
        self.user_service = user_service
        self.tx = tx

    @classmethod
    def for_session(cls, session: Session, user_service: UserService, image_service: ImageService) -> 'SeriesService':
        return cls(
            country_dao=repositories.CountryRepository(session),
            series_dao=repositories.SeriesRepository(session),
            michel_dao=repositories.CatalogRepository(session, MichelCatalog),
            scott_dao=repositories.CatalogRepository(session, ScottCatalog),
            yvert_dao=repositories.CatalogRepository(session, YvertCatalog),
            gibbons_dao=repositories.CatalogRepository(session, GibbonsCatalog),
            image_service=image_service,
            user_service=user_service,
            tx=SessionTransactionManager(session),
        )

    def add(self, form: Optional[AddSeriesForm]) -> Series:
        """Validate `form`, assemble a `Series` and save it.

        Catalog numbers are saved first, then the image, then the series,
        all inside one transaction. A catalog field that was not supplied
        leaves the association `None` rather than an empty set.
        """
        self._validate_form(form)

        with self.tx.transaction():
            series = Series(quantity=form.quantity, perforated=form.perforated)

            if form.country is not None:
                country = self.country_dao.find_one(form.country)
                if country is None:
                    raise ValueError(f"country not found: {form.country}")
                series.country = country

            if form.year is not None:
                series.released_at = date(form.year, 1, 1)

            series.michel = self._save_numbers(form.michel_numbers, MichelCatalog, self.michel_dao)
            series.scott = self._save_numbers(form.scott_numbers, ScottCatalog, self.scott_dao)
            series.yvert = self._save_numbers(form.yvert_numbers, YvertCatalog, self.yvert_dao)
            series.gibbons = self._save_numbers(form.gibbons_numbers, GibbonsCatalog, self.gibbons_dao)

            image_url = self.image_service.save(form.image)
            if image_url is None:
                raise RuntimeError("image service returned no URL")
            if len(image_url) > Series.IMAGE_URL_LENGTH:
                raise RuntimeError(f"image URL exceeds {Series.IMAGE_URL_LENGTH} characters")
            series.image_url = image_url

            if form.comment is not None:
                series.comment = form.comment

            user = self.user_service.get_current_user()
            if user is None:
                raise RuntimeError("cannot determine current user")

            now = datetime.now(timezone.utc)
            series.created_at = now
            series.updated_at = now
            series.created_by = user
            series.updated_by = user

            saved = self.series_dao.save(series)

        logger.info("series #%s created by %s", saved.id, getattr(user, "username", user))
        return saved

    def find_by_id(self, series_id: Optional[int]) -> Optional[Series]:
        """Return the series with `series_id`, or `None` if there is none."""
        if series_id is None:
            raise ValueError("series id must be non null")
        return self.series_dao.find_one(series_id)

    @staticmethod
    def _validate_form(form: Optional[AddSeriesForm]):
        if form is None:
            raise ValueError("form must be non null")
        if form.quantity is None:
            raise ValueError("quantity must be non null")
        if form.perforated is None:
            raise ValueError("perforated must be non null")
        if form.comment is not None and not form.comment.strip():
            raise ValueError("comment must not be blank")

    @staticmethod
    def _save_numbers(raw: Optional[str], number_cls: type, dao: CatalogDao):
        numbers = parse_catalog_numbers(raw, number_cls)
        if numbers is None:
            return None
        dao.save(numbers)
        return numbers
