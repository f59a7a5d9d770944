"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the stamp catalog backend.
Controllers are intentionally thin: they accept requests, delegate to
services, and return JSON responses.

Endpoints implemented:
- POST /auth/register
- POST /auth/login
- GET /countries
- POST /countries
- GET /country/{country_id}
- POST /series/add
- GET /series/{series_id}
- GET /image/{name}
- GET /health
"""

from fastapi import FastAPI, Depends, UploadFile, File, HTTPException, Form, Request
from fastapi.responses import FileResponse, HTMLResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session
from typing import Optional
import json
import logging
import time
import uuid
from .database import create_db_and_tables, get_session
from . import services, repositories, models
from .auth import get_current_user
from .schemas import AddSeriesForm, CountryIn, CountryOut, RegisterIn, SeriesOut, TokenOut
from .config import settings

app = FastAPI(title="MyStamps Catalog API")
logger = logging.getLogger("mystamps.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

create_db_and_tables()


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    if request.url.path.startswith("/series"):
        logger.info(
            "request_done %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "status_code": response.status_code,
                    "duration_ms": elapsed_ms,
                },
                ensure_ascii=True,
            ),
        )
    return response


def get_image_service() -> services.FilesystemImageService:
    """Dependency returning the image store configured in settings."""
    return services.FilesystemImageService()


@app.post('/auth/register')
def register(payload: RegisterIn, db: Session = Depends(get_session)):
    """Register a new user (idempotent).

    Returns the existing user if the username is already taken so the
    operation can be repeated by automation and tests.
    """
    existing = repositories.UserRepository(db).get_by_username(payload.username)
    if existing:
        return {'id': existing.id, 'username': existing.username}
    try:
        user = services.AuthService(db).register(payload.username, payload.password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {'id': user.id, 'username': user.username}


@app.post('/auth/login', response_model=TokenOut)
def login(payload: RegisterIn, db: Session = Depends(get_session)):
    """Authenticate a user and return a short-lived JWT token."""
    token = services.AuthService(db).authenticate(payload.username, payload.password)
    if not token:
        raise HTTPException(status_code=401, detail='invalid credentials')
    return {'access_token': token}


@app.get('/countries', response_model=list[CountryOut])
def list_countries(db: Session = Depends(get_session)):
    """List all countries ordered by name."""
    return [CountryOut(id=c.id, name=c.name) for c in services.CountryService(db).find_all()]


@app.post('/countries', response_model=CountryOut, status_code=201)
def add_country(payload: CountryIn, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Add a country. Requires authentication."""
    try:
        country = services.CountryService(db).add(payload.name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info("country %r added by %s", country.name, user.username)
    return CountryOut(id=country.id, name=country.name)


@app.get('/country/{country_id}', response_model=CountryOut)
def country_info(country_id: int, db: Session = Depends(get_session)):
    """Return a single country or 404."""
    country = services.CountryService(db).find_by_id(country_id)
    if not country:
        raise HTTPException(status_code=404, detail='country not found')
    return CountryOut(id=country.id, name=country.name)


@app.post('/series/add', response_model=SeriesOut, status_code=201)
def add_series(
    image: UploadFile = File(...),
    quantity: Optional[int] = Form(default=None),
    perforated: Optional[bool] = Form(default=None),
    country: Optional[int] = Form(default=None),
    year: Optional[int] = Form(default=None),
    michel_numbers: Optional[str] = Form(default=None),
    scott_numbers: Optional[str] = Form(default=None),
    yvert_numbers: Optional[str] = Form(default=None),
    gibbons_numbers: Optional[str] = Form(default=None),
    comment: Optional[str] = Form(default=None),
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
    image_service: services.FilesystemImageService = Depends(get_image_service),
):
    """Create a series from a multipart form. Requires authentication.

    Catalog number fields take comma separated codes; the `image` part
    must be a PNG or JPEG file.
    """
    svc = services.SeriesService.for_session(db, services.CurrentUserService(user), image_service)
    try:
        form = AddSeriesForm(
            country=country,
            year=year,
            quantity=quantity,
            perforated=perforated,
            michel_numbers=michel_numbers,
            scott_numbers=scott_numbers,
            yvert_numbers=yvert_numbers,
            gibbons_numbers=gibbons_numbers,
            image=image,
            comment=comment,
        )
        series = svc.add(form)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return SeriesOut.from_entity(series)


@app.get('/series/{series_id}', response_model=SeriesOut)
def series_info(series_id: int, db: Session = Depends(get_session)):
    """Return a stored series or 404."""
    svc = services.SeriesService.for_session(db, services.CurrentUserService(None), get_image_service())
    series = svc.find_by_id(series_id)
    if series is None:
        raise HTTPException(status_code=404, detail='series not found')
    return SeriesOut.from_entity(series)


@app.get('/image/{name}')
def get_image(name: str, image_service: services.FilesystemImageService = Depends(get_image_service)):
    """Serve a stored series image."""
    path = image_service.path_for(name)
    if path is None:
        raise HTTPException(status_code=404, detail='image not found')
    return FileResponse(path)


@app.get("/", response_class=HTMLResponse)
def home():
    """Minimal homepage for quick manual testing."""
    return """
    <!DOCTYPE html>
    <html>
    <head>
      <meta charset="UTF-8" />
      <title>MyStamps</title>
    </head>
    <body>
      <h1>MyStamps catalog API</h1>
      <ul>
        <li><a href="/docs">Swagger UI</a></li>
        <li><a href="/countries">Countries</a></li>
      </ul>
      <p>Use <code>/auth/register</code> + <code>/auth/login</code> to get a token, then try <code>/series/add</code>.</p>
    </body>
    </html>
    """


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}
