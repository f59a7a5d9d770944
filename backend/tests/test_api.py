import io

from fastapi.testclient import TestClient
from PIL import Image

from mystamps.main import app

client = TestClient(app)


def _make_png() -> bytes:
    img = Image.new("RGB", (60, 40), "white")
    bio = io.BytesIO()
    img.save(bio, format="PNG")
    return bio.getvalue()


def _token(username='apiuser', password='pass123'):
    client.post('/auth/register', json={'username': username, 'password': password})
    r = client.post('/auth/login', json={'username': username, 'password': password})
    assert r.status_code == 200
    return r.json()['access_token']


def _headers():
    return {'Authorization': f'Bearer {_token()}'}


def _country_id(headers, name):
    r = client.post('/countries', json={'name': name}, headers=headers)
    if r.status_code == 201:
        return r.json()['id']
    for c in client.get('/countries').json():
        if c['name'] == name:
            return c['id']
    raise AssertionError(f'country {name} missing')


def test_login_rejects_bad_password():
    _token('someone', 'right')
    r = client.post('/auth/login', json={'username': 'someone', 'password': 'wrong'})
    assert r.status_code == 401


def test_countries_flow():
    headers = _headers()
    r = client.post('/countries', json={'name': 'Malta'})
    assert r.status_code in (401, 403)
    r = client.post('/countries', json={'name': 'Malta'}, headers=headers)
    assert r.status_code == 201
    country_id = r.json()['id']
    dup = client.post('/countries', json={'name': 'Malta'}, headers=headers)
    assert dup.status_code == 400
    info = client.get(f'/country/{country_id}')
    assert info.status_code == 200
    assert info.json()['name'] == 'Malta'
    assert client.get('/country/99999').status_code == 404
    assert 'Malta' in [c['name'] for c in client.get('/countries').json()]


def test_add_series_and_fetch_it():
    headers = _headers()
    country_id = _country_id(headers, 'Italy')
    files = {'image': ('stamp.png', _make_png(), 'image/png')}
    data = {
        'quantity': '3',
        'perforated': 'true',
        'country': str(country_id),
        'year': '1998',
        'michel_numbers': '10, 11',
        'gibbons_numbers': '5',
        'comment': 'First day cover',
    }
    r = client.post('/series/add', data=data, files=files, headers=headers)
    assert r.status_code == 201, r.text
    body = r.json()
    assert body['quantity'] == 3
    assert body['perforated'] is True
    assert body['country']['name'] == 'Italy'
    assert body['year'] == 1998
    assert body['michel_numbers'] == ['10', '11']
    assert body['gibbons_numbers'] == ['5']
    assert body['scott_numbers'] is None
    assert body['yvert_numbers'] is None
    assert body['created_by'] == 'apiuser'
    assert r.headers.get('X-Request-ID')

    fetched = client.get(f"/series/{body['id']}")
    assert fetched.status_code == 200
    assert fetched.json()['michel_numbers'] == ['10', '11']
    assert fetched.json()['image_url'] == body['image_url']

    image = client.get(body['image_url'])
    assert image.status_code == 200
    assert image.content == _make_png()


def test_add_series_rejects_invalid_input():
    headers = _headers()
    files = {'image': ('stamp.png', _make_png(), 'image/png')}
    r = client.post('/series/add', data={'perforated': 'false'}, files=files, headers=headers)
    assert r.status_code == 400
    r = client.post('/series/add', data={'quantity': '1', 'perforated': 'false', 'comment': '   '}, files=files, headers=headers)
    assert r.status_code == 400
    r = client.post('/series/add', data={'quantity': '1', 'perforated': 'false', 'country': '99999'}, files=files, headers=headers)
    assert r.status_code == 400
    bad = {'image': ('stamp.png', b'not an image', 'image/png')}
    r = client.post('/series/add', data={'quantity': '1', 'perforated': 'false'}, files=bad, headers=headers)
    assert r.status_code == 400


def test_add_series_requires_authentication():
    files = {'image': ('stamp.png', _make_png(), 'image/png')}
    r = client.post('/series/add', data={'quantity': '1', 'perforated': 'false'}, files=files)
    assert r.status_code in (401, 403)


def test_unknown_series_and_image_are_404():
    assert client.get('/series/99999').status_code == 404
    assert client.get('/image/missing.png').status_code == 404


def test_health():
    assert client.get('/health').json() == {'status': 'ok'}
