from contextlib import contextmanager
from datetime import date, datetime, timedelta, timezone

import pytest

from mystamps import models
from mystamps.dao import CatalogDao, CountryDao, ImageService, SeriesDao, TransactionManager, UserService
from mystamps.entities import GibbonsCatalog, MichelCatalog, ScottCatalog, Series, YvertCatalog
from mystamps.schemas import AddSeriesForm
from mystamps.services import SeriesService


class FakeCountryDao(CountryDao):
    def __init__(self, calls, countries=None):
        self.calls = calls
        self.countries = countries or {}
        self.requested = []

    def find_one(self, country_id):
        self.calls.append('country.find_one')
        self.requested.append(country_id)
        return self.countries.get(country_id)


class FakeSeriesDao(SeriesDao):
    def __init__(self, calls):
        self.calls = calls
        self.saved = []
        self.stored = {}
        self.requested = []

    def save(self, series):
        self.calls.append('series.save')
        self.saved.append(series)
        series.id = len(self.saved)
        return series

    def find_one(self, series_id):
        self.requested.append(series_id)
        return self.stored.get(series_id)


class FakeCatalogDao(CatalogDao):
    def __init__(self, calls, name):
        self.calls = calls
        self.name = name
        self.saved = []

    def save(self, numbers):
        self.calls.append(f'{self.name}.save')
        self.saved.append(numbers)
        return numbers


class FakeImageService(ImageService):
    def __init__(self, calls, url='/fake/path/to/image'):
        self.calls = calls
        self.url = url
        self.received = []

    def save(self, upload):
        self.calls.append('image.save')
        self.received.append(upload)
        return self.url


class FakeUserService(UserService):
    def __init__(self, user):
        self.user = user

    def get_current_user(self):
        return self.user


class FakeTransactionManager(TransactionManager):
    def __init__(self):
        self.committed = 0
        self.rolled_back = 0

    @contextmanager
    def transaction(self):
        try:
            yield
        except Exception:
            self.rolled_back += 1
            raise
        self.committed += 1


def _user():
    return models.User(id=1, username='test', password_hash='hash')


def _country():
    return models.Country(id=1, name='Italy')


@pytest.fixture
def env():
    calls = []
    deps = {
        'calls': calls,
        'country_dao': FakeCountryDao(calls, {1: _country()}),
        'series_dao': FakeSeriesDao(calls),
        'michel_dao': FakeCatalogDao(calls, 'michel'),
        'scott_dao': FakeCatalogDao(calls, 'scott'),
        'yvert_dao': FakeCatalogDao(calls, 'yvert'),
        'gibbons_dao': FakeCatalogDao(calls, 'gibbons'),
        'image_service': FakeImageService(calls),
        'user_service': FakeUserService(_user()),
        'tx': FakeTransactionManager(),
    }
    return deps


def _service(env):
    return SeriesService(**{k: v for k, v in env.items() if k != 'calls'})


@pytest.fixture
def form():
    return AddSeriesForm(quantity=2, perforated=False)


def _saved(env) -> Series:
    assert len(env['series_dao'].saved) == 1
    return env['series_dao'].saved[0]


# add()

def test_add_rejects_missing_form(env):
    with pytest.raises(ValueError):
        _service(env).add(None)
    assert env['series_dao'].saved == []


def test_add_rejects_missing_quantity(env, form):
    form.quantity = None
    with pytest.raises(ValueError):
        _service(env).add(form)
    assert env['series_dao'].saved == []
    assert env['calls'] == []


def test_add_rejects_missing_perforated(env, form):
    form.perforated = None
    with pytest.raises(ValueError):
        _service(env).add(form)
    assert env['series_dao'].saved == []


def test_add_rejects_blank_comment(env, form):
    form.comment = '  '
    with pytest.raises(ValueError):
        _service(env).add(form)
    assert env['series_dao'].saved == []


def test_add_passes_entity_to_series_dao(env, form):
    result = _service(env).add(form)
    assert _saved(env) is result
    assert result.id == 1
    assert env['tx'].committed == 1


def test_add_loads_country_when_present(env, form):
    form.country = 1
    _service(env).add(form)
    assert env['country_dao'].requested == [1]
    country = _saved(env).country
    assert country is not None
    assert country.id == 1
    assert country.name == 'Italy'


def test_add_leaves_country_unset_without_id(env, form):
    _service(env).add(form)
    assert env['country_dao'].requested == []
    assert _saved(env).country is None


def test_add_rejects_unknown_country(env, form):
    form.country = 42
    with pytest.raises(ValueError):
        _service(env).add(form)
    assert env['series_dao'].saved == []
    assert env['tx'].rolled_back == 1


def test_add_sets_release_year(env, form):
    form.year = 2000
    _service(env).add(form)
    assert _saved(env).released_at == date(2000, 1, 1)


def test_add_passes_quantity_and_perforated(env, form):
    form.quantity = 3
    form.perforated = True
    _service(env).add(form)
    assert _saved(env).quantity == 3
    assert _saved(env).perforated is True


def test_add_keeps_catalogs_none_when_not_supplied(env, form):
    _service(env).add(form)
    series = _saved(env)
    assert series.michel is None
    assert series.scott is None
    assert series.yvert is None
    assert series.gibbons is None
    for name in ('michel_dao', 'scott_dao', 'yvert_dao', 'gibbons_dao'):
        assert env[name].saved == []


@pytest.mark.parametrize('field, dao, attr, number_cls', [
    ('michel_numbers', 'michel_dao', 'michel', MichelCatalog),
    ('scott_numbers', 'scott_dao', 'scott', ScottCatalog),
    ('yvert_numbers', 'yvert_dao', 'yvert', YvertCatalog),
    ('gibbons_numbers', 'gibbons_dao', 'gibbons', GibbonsCatalog),
])
def test_add_saves_catalog_numbers(env, form, field, dao, attr, number_cls):
    expected = {number_cls('1'), number_cls('2')}
    setattr(form, field, '1,2')
    _service(env).add(form)
    assert env[dao].saved == [expected]
    assert getattr(_saved(env), attr) == expected
    assert getattr(_saved(env), attr) is env[dao].saved[0]


def test_add_treats_blank_catalog_field_as_absent(env, form):
    form.michel_numbers = ' , '
    _service(env).add(form)
    assert _saved(env).michel is None
    assert env['michel_dao'].saved == []


def test_add_passes_image_to_image_service(env, form):
    upload = object()
    form.image = upload
    _service(env).add(form)
    assert env['image_service'].received == [upload]


def test_add_fails_when_image_url_is_none(env, form):
    env['image_service'].url = None
    with pytest.raises(RuntimeError):
        _service(env).add(form)
    assert env['series_dao'].saved == []
    assert env['tx'].rolled_back == 1


def test_add_fails_when_image_url_too_long(env, form):
    env['image_service'].url = 'x' * (Series.IMAGE_URL_LENGTH + 1)
    with pytest.raises(RuntimeError):
        _service(env).add(form)
    assert env['series_dao'].saved == []


def test_add_accepts_image_url_of_maximum_length(env, form):
    env['image_service'].url = 'x' * Series.IMAGE_URL_LENGTH
    _service(env).add(form)
    assert _saved(env).image_url == 'x' * Series.IMAGE_URL_LENGTH


def test_add_passes_image_url_to_series_dao(env, form):
    env['image_service'].url = 'http://example.org/example.jpg'
    _service(env).add(form)
    assert _saved(env).image_url == 'http://example.org/example.jpg'


def test_add_passes_comment(env, form):
    form.comment = 'Some text'
    _service(env).add(form)
    assert _saved(env).comment == 'Some text'


def test_add_assigns_timestamps_to_now(env, form):
    before = datetime.now(timezone.utc)
    _service(env).add(form)
    after = datetime.now(timezone.utc)
    series = _saved(env)
    assert before <= series.created_at <= after
    assert series.updated_at == series.created_at
    assert after - series.created_at < timedelta(seconds=5)


def test_add_fails_without_current_user(env, form):
    env['user_service'].user = None
    with pytest.raises(RuntimeError):
        _service(env).add(form)
    assert env['series_dao'].saved == []
    assert env['tx'].rolled_back == 1
    assert env['tx'].committed == 0


def test_add_assigns_current_user(env, form):
    user = _user()
    env['user_service'].user = user
    _service(env).add(form)
    assert _saved(env).created_by is user
    assert _saved(env).updated_by is user


def test_add_calls_collaborators_in_order(env, form):
    form.country = 1
    form.michel_numbers = '1'
    form.gibbons_numbers = '7'
    _service(env).add(form)
    assert env['calls'] == ['country.find_one', 'michel.save', 'gibbons.save', 'image.save', 'series.save']


# find_by_id()

def test_find_by_id_rejects_none(env):
    with pytest.raises(ValueError):
        _service(env).find_by_id(None)


def test_find_by_id_passes_id_to_series_dao(env):
    _service(env).find_by_id(3)
    assert env['series_dao'].requested == [3]


def test_find_by_id_returns_value_from_series_dao(env):
    expected = Series(id=1)
    env['series_dao'].stored[1] = expected
    assert _service(env).find_by_id(1) is expected


def test_find_by_id_returns_none_for_unknown_id(env):
    assert _service(env).find_by_id(99) is None
