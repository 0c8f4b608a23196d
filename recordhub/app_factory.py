import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from . import settings
from .auth import AuthProvider
from .errors import ErrorKind, RecordHubError
from .firebase_client import firebase_client
from .http_routes import http_router, public_router
from .invoicing import InvoiceService
from .repository import Repositories
from .store import LocalStore

logger = logging.getLogger(__name__)

STATUS_CODES = {
    ErrorKind.VALIDATION: 422,
    ErrorKind.PERSISTENCE: 503,
    ErrorKind.EMPTY_COHORT: 404,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.AUTHENTICATION: 401,
}


def _setup_logging():
    level = logging.getLevelName(settings.LOG_LEVEL)
    fmt = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    logging.basicConfig(level=level, format=fmt, datefmt=datefmt)
    logging.getLogger("uvicorn.access").setLevel(logging.INFO)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    _setup_logging()
    logger.info("Server starting (store=%s, auth_required=%s)",
                type(app.state.repos.store).__name__, settings.AUTH_REQUIRED)
    try:
        yield
    finally:
        logger.info("Server shutting down")


def _default_store():
    if settings.STORE_BACKEND == "local":
        logger.info("Using local JSON store at %s", settings.LOCAL_STORE_PATH)
        return LocalStore(settings.LOCAL_STORE_PATH)

    # Initialize Firebase once at startup
    firebase_client.init_app(
        service_account_path=settings.FIREBASE_SERVICE_ACCOUNT_PATH,
        service_account_json=settings.FIREBASE_SERVICE_ACCOUNT_JSON,
        project_id=settings.FIREBASE_PROJECT_ID,
    )
    return firebase_client


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def _handle_error(request: Request, exc: RecordHubError):
    status = STATUS_CODES.get(exc.kind, 500)
    if status >= 500:
        logger.error("%s %s -> %s: %s", request.method, request.url.path, exc.kind.value, exc.message)
    else:
        logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.kind.value, exc.message)
    return JSONResponse(status_code=status, content=exc.to_dict())


def create_app(store=None, auth_provider: Optional[AuthProvider] = None,
               clock: Optional[Callable[[], datetime]] = None) -> FastAPI:
    """
    Build the API. `store` defaults to Firestore (or the local JSON store when
    STORE_BACKEND=local); `clock` returns the current UTC datetime.
    """
    app = FastAPI(title="RecordHub", lifespan=lifespan)

    store = store if store is not None else _default_store()
    repos = Repositories(store)
    app.state.repos = repos
    app.state.invoices = InvoiceService(repos)
    app.state.auth = auth_provider or AuthProvider(app=getattr(store, "app", None))
    app.state.clock = clock or _utcnow

    app.add_exception_handler(RecordHubError, _handle_error)

    # Register your routers
    app.include_router(public_router)
    app.include_router(http_router)

    return app
