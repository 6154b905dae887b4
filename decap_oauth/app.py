"""GitHub OAuth proxy for Decap CMS.

A single ``/auth`` route drives both halves of the flow. Without a ``code``
it redirects the popup to GitHub; with one it checks the state cookie,
exchanges the code and renders a page that hands the result to the CMS.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from urllib.parse import urlencode

import httpx
from litestar import Litestar, Request, Response, get
from litestar.datastructures import State
from litestar.enums import MediaType
from litestar.logging.config import LoggingConfig
from litestar.response import Redirect
from litestar.status_codes import HTTP_200_OK, HTTP_302_FOUND, HTTP_400_BAD_REQUEST, HTTP_500_INTERNAL_SERVER_ERROR

from decap_oauth.config import Settings, load_env_file, log_level
from decap_oauth.cookies import COOKIE_MAX_AGE_SECONDS, COOKIE_NAME, build_set_cookie, parse_cookie_header
from decap_oauth.errors import ConfigurationError, StateValidationError
from decap_oauth.exchange import TokenError, exchange_code
from decap_oauth.origins import derive_request_origin, resolve_allowed_origins
from decap_oauth.popup import render_popup_page
from decap_oauth.state import OAuthState, decode_state, encode_state, new_state

load_env_file()

logger = logging.getLogger(__name__)

PROVIDER = "github"
AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
SCOPE = "repo,user:email"
EXCHANGE_TIMEOUT = 10.0


def validate_state(cookie_token: str | None, incoming_token: str | None) -> OAuthState:
    """Return the stored state if the callback's ``state`` carries the same nonce."""
    stored = decode_state(cookie_token)
    incoming = decode_state(incoming_token)
    if stored is None or incoming is None or stored.nonce != incoming.nonce:
        raise StateValidationError(requested_origin=stored.origin if stored else None)
    return stored


def _handler_url(request: Request) -> str:
    url = request.url
    return f"{url.scheme}://{url.netloc}{url.path}"


def _settings(request: Request) -> Settings:
    return request.app.state.settings or Settings.from_env()


def _popup_response(
    request: Request,
    settings: Settings,
    *,
    requested_origin: str | None,
    token: str | None = None,
    error: str | None = None,
) -> Response[str]:
    origins = resolve_allowed_origins(requested_origin, _handler_url(request), settings.allowed_return_origins)
    payload = {"message": error} if error else {"token": token}
    return Response(
        content=render_popup_page(origins, PROVIDER, payload, error=error),
        status_code=HTTP_400_BAD_REQUEST if error else HTTP_200_OK,
        media_type=MediaType.HTML,
        headers={
            "Cache-Control": "no-store",
            "Set-Cookie": build_set_cookie(COOKIE_NAME, "", request.url.path, 0),
        },
    )


def begin_authorization(request: Request, settings: Settings) -> Redirect:
    handler_url = _handler_url(request)
    origin = derive_request_origin(
        request.headers.get("origin"),
        request.headers.get("referer"),
        fallback=f"{request.url.scheme}://{request.url.netloc}",
    )
    state_token = encode_state(new_state(origin))

    params = urlencode(
        {
            "client_id": settings.client_id,
            "redirect_uri": handler_url,
            "scope": SCOPE,
            "state": state_token,
            "allow_signup": "false",
        }
    )
    logger.info("Starting GitHub authorization for %s", origin)
    return Redirect(
        f"{AUTHORIZE_URL}?{params}",
        status_code=HTTP_302_FOUND,
        headers={
            "Cache-Control": "no-store",
            "Set-Cookie": build_set_cookie(COOKIE_NAME, state_token, request.url.path, COOKIE_MAX_AGE_SECONDS),
        },
    )


async def complete_authorization(request: Request, settings: Settings, code: str) -> Response[str]:
    incoming_state = request.query_params.get("state")
    cookies = parse_cookie_header(request.headers.get("cookie"))

    try:
        stored = validate_state(cookies.get(COOKIE_NAME), incoming_state)
    except StateValidationError as exc:
        logger.warning("Rejected GitHub callback: %s", exc.message)
        return _popup_response(request, settings, requested_origin=exc.requested_origin, error=exc.message)

    client: httpx.AsyncClient = request.app.state.http_client
    result = await exchange_code(
        client,
        code=code,
        client_id=settings.client_id,
        client_secret=settings.client_secret,
        redirect_uri=_handler_url(request),
        state=incoming_state,
    )

    if isinstance(result, TokenError):
        logger.warning("GitHub token exchange failed: %s", result.error)
        return _popup_response(request, settings, requested_origin=stored.origin, error=result.message)

    logger.info("GitHub token exchange succeeded for %s", stored.origin)
    return _popup_response(request, settings, requested_origin=stored.origin, token=result.access_token)


@get("/_health/")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@get("/auth")
async def auth(request: Request) -> Response:
    settings = _settings(request)
    code = request.query_params.get("code")
    if not code:
        return begin_authorization(request, settings)
    return await complete_authorization(request, settings, code)


def configuration_error_handler(request: Request, exc: ConfigurationError) -> Response[str]:
    logger.error("%s Set GITHUB_CLIENT_ID and GITHUB_CLIENT_SECRET.", exc)
    return Response(content=str(exc), status_code=HTTP_500_INTERNAL_SERVER_ERROR, media_type=MediaType.TEXT)


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Litestar:
    """Build the proxy app.

    With ``settings=None`` the environment is read on every request, so a
    missing secret answers 500 instead of failing at import time.
    """

    @asynccontextmanager
    async def http_client(app: Litestar) -> AsyncIterator[None]:
        async with httpx.AsyncClient(transport=transport, timeout=EXCHANGE_TIMEOUT) as client:
            app.state.http_client = client
            yield

    return Litestar(
        route_handlers=[health, auth],
        state=State({"settings": settings}),
        lifespan=[http_client],
        exception_handlers={ConfigurationError: configuration_error_handler},
        logging_config=LoggingConfig(
            root={"level": log_level(), "handlers": ["queue_listener"]},
        ),
    )


app = create_app()
