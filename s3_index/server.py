"""FastAPI application serving a bucket as a browsable directory tree."""

import logging
from typing import Callable, Optional
from urllib.parse import quote

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .listing import ListingAggregator
from .models import ListingResult, NotFound, Redirect, Resolution, ResolutionError
from .profiles import ProfileStorage
from .resolver import PathResolver
from .services import S3ObjectStore
from .settings import ServerSettings
from .templates import ListingRenderer, TemplateError
from .ui_utils import load_package_info

LOGGER = logging.getLogger(__name__)

TRUE_VALUES = frozenset({"", "1", "true", "yes", "on"})

STATUS_MESSAGES = {
    400: "BAD_REQUEST",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    500: "UNHANDLED_ERROR",
}


def _plain(status_code: int) -> Response:
    return PlainTextResponse(STATUS_MESSAGES.get(status_code, "ERROR"), status_code=status_code)


def _raw_path(request: Request) -> bytes | str:
    """Return the request path exactly as the client sent it (no query string)."""
    raw = request.scope.get("raw_path")
    if raw:
        return raw.partition(b"?")[0]
    return quote(request.scope["path"])


def _nodir(request: Request) -> bool:
    value = request.query_params.get("nodir")
    if value is None:
        return False
    return value.strip().lower() in TRUE_VALUES


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(resolver: PathResolver, renderer: Optional[ListingRenderer] = None) -> FastAPI:
    """Create the FastAPI app around an already configured resolver.

    Interactive docs are disabled so that every path belongs to the bucket.
    """
    package_info = load_package_info()
    app = FastAPI(
        title=package_info.name,
        version=package_info.version or "0.0.0",
        description=package_info.summary,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.resolver = resolver
    app.state.renderer = renderer or ListingRenderer()

    _register_exception_handlers(app)

    @app.api_route("/{path:path}", methods=["GET", "HEAD"])
    def browse(request: Request) -> Response:
        """Answer with a redirect, a listing page or an error status."""
        resolution = request.app.state.resolver.resolve(_raw_path(request), nodir=_nodir(request))
        return _respond(request.app.state.renderer, resolution)

    return app


def _respond(renderer: ListingRenderer, resolution: Resolution) -> Response:
    if isinstance(resolution, Redirect):
        return RedirectResponse(resolution.url, status_code=307)
    if isinstance(resolution, ListingResult):
        try:
            body = renderer.render(resolution.listing)
        except TemplateError:
            LOGGER.exception("Rendering listing for '%s' failed", resolution.listing.prefix)
            return _plain(500)
        return HTMLResponse(content=body)
    if isinstance(resolution, NotFound):
        return _plain(404)
    if isinstance(resolution, ResolutionError):
        # Detail was logged by the resolver; the client only sees the class.
        return _plain(400 if resolution.kind.is_client_error else 500)
    LOGGER.error("Unhandled resolution: %r", resolution)
    return _plain(500)


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


def _register_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the FastAPI app."""

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> Response:
        return _plain(exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> Response:
        return _plain(400)

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception) -> Response:
        """Log the full error, answer with a generic 500."""
        LOGGER.exception("Unhandled exception in request handler")
        return _plain(500)


# ---------------------------------------------------------------------------
# Wiring from settings
# ---------------------------------------------------------------------------


def build_store(
    settings: ServerSettings,
    *,
    client_factory: Optional[Callable[..., object]] = None,
    profile_storage: Optional[ProfileStorage] = None,
) -> S3ObjectStore:
    """Create the shared store client, from a saved profile when one is named."""
    endpoint_url = settings.endpoint_url or None
    region = settings.region or None
    access_key = secret_key = None
    if settings.profile:
        profile = (profile_storage or ProfileStorage()).get(settings.profile)
        endpoint_url = endpoint_url or profile.endpoint_url or None
        region = region or profile.region or None
        access_key = profile.access_key
        secret_key = profile.secret_key
        LOGGER.info("Using connection profile '%s'", profile.name)
    return S3ObjectStore(
        settings.bucket,
        client_factory,
        endpoint_url=endpoint_url,
        region_name=region,
        access_key=access_key,
        secret_key=secret_key,
    )


def build_app(settings: ServerSettings, store: S3ObjectStore) -> FastAPI:
    resolver = PathResolver(
        store,
        ListingAggregator(store),
        presign_expiry=settings.presign_expiry,
        directory_fallback=settings.directory_fallback,
    )
    return create_app(resolver)
