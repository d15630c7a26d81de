# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from loguru import logger
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from gatehouse.auth.session import CookieSigner, SessionRecord, SessionStore
from gatehouse.auth.users import UserDirectory
from gatehouse.config import Settings
from gatehouse.errors import FormValidationError, InvalidCredentials, SignupFailed, StoreUnavailable, UserNotFound
from gatehouse.infra import db
from gatehouse.logs import configure_logging
from gatehouse.permissions import load_session_from_request, require_role, require_user
from gatehouse.services.account_service import AccountService

BASE_DIR = Path(__file__).resolve().parent

templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

GALLERY = ["img1.svg", "img2.svg", "img3.svg"]


@dataclass(frozen=True)
class Services:
    """Process-wide collaborators, built once at startup."""

    settings: Settings
    directory: UserDirectory
    sessions: SessionStore
    signer: CookieSigner
    accounts: AccountService


def build_services(settings: Settings) -> Services:
    directory = UserDirectory()
    sessions = SessionStore(ttl=settings.session_ttl)
    return Services(
        settings=settings,
        directory=directory,
        sessions=sessions,
        signer=CookieSigner(settings.session_secret, max_age=settings.session_ttl),
        accounts=AccountService(directory, sessions),
    )


def _render(request: Request, template_name: str, ctx: Optional[dict] = None, status_code: int = 200):
    """TemplateResponse wrapper injecting the current session."""
    base_ctx = {"current_user": getattr(request.state, "session", None)}
    merged = {**base_ctx, **(ctx or {})}
    return templates.TemplateResponse(request, template_name, merged, status_code=status_code)


def _services(request: Request) -> Services:
    return request.app.state.services


def _cookie_token(request: Request) -> Optional[str]:
    services = _services(request)
    return services.signer.unsign(request.cookies.get(services.settings.cookie_name, ""))


def _start_session_response(request: Request, sess: SessionRecord) -> RedirectResponse:
    services = _services(request)
    resp = RedirectResponse(url="/members", status_code=303)
    resp.set_cookie(
        services.settings.cookie_name,
        services.signer.sign(sess.token),
        **services.settings.cookie_settings(),
    )
    return resp


def create_app(settings: Optional[Settings] = None, *, services: Optional[Services] = None) -> FastAPI:
    """Build the application.

    When ``services`` is given the caller owns the database connection;
    otherwise the app connects on startup and disconnects on shutdown.
    """
    if services is None:
        settings = settings or Settings.from_env()
        services = build_services(settings)
        owns_connection = True
    else:
        settings = services.settings
        owns_connection = False

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        if owns_connection:
            db.connect(settings)
        logger.info("gatehouse ready (session ttl {}s)", settings.session_ttl)
        yield
        if owns_connection:
            db.disconnect()

    app = FastAPI(lifespan=lifespan)
    app.state.services = services
    app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")

    @app.middleware("http")
    async def _session_middleware(request: Request, call_next):
        request.state.session = None
        if not request.url.path.startswith("/static/"):
            try:
                request.state.session = await load_session_from_request(request)
            except StoreUnavailable as exc:
                logger.error("Session store unavailable: {}", exc)
                return _render(request, "unavailable.html", status_code=503)
        return await call_next(request)

    # ------------------ Error handlers ------------------

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return _render(request, "404.html", status_code=404)
        if exc.status_code == 403:
            return PlainTextResponse(f"403 Forbidden: {exc.detail}", status_code=403)
        return await http_exception_handler(request, exc)

    @app.exception_handler(UserNotFound)
    async def _user_not_found(request: Request, exc: UserNotFound):
        return _render(request, "404.html", status_code=404)

    @app.exception_handler(StoreUnavailable)
    async def _store_unavailable(request: Request, exc: StoreUnavailable):
        logger.error("Database unavailable while serving {}: {}", request.url.path, exc)
        return _render(request, "unavailable.html", status_code=503)

    # ------------------ Routes ------------------

    @app.get("/", response_class=HTMLResponse)
    async def home(request: Request):
        sess = request.state.session
        return _render(request, "home.html", {"user": sess.user_name if sess else None})

    @app.get("/signup", response_class=HTMLResponse)
    async def signup_get(request: Request):
        return _render(request, "signup.html", {"message": None})

    @app.post("/signup")
    async def signup_post(request: Request):
        form = await request.form()
        try:
            sess = await _services(request).accounts.signup(form, previous_token=_cookie_token(request))
        except (FormValidationError, SignupFailed) as exc:
            return _render(request, "signup.html", {"message": exc.message})
        return _start_session_response(request, sess)

    @app.get("/login", response_class=HTMLResponse)
    async def login_get(request: Request):
        if request.state.session:
            return RedirectResponse(url="/members", status_code=303)
        return _render(request, "login.html", {"message": None})

    @app.post("/login")
    async def login_post(request: Request):
        form = await request.form()
        try:
            sess = await _services(request).accounts.login(form, previous_token=_cookie_token(request))
        except (FormValidationError, InvalidCredentials) as exc:
            return _render(request, "login.html", {"message": exc.message})
        return _start_session_response(request, sess)

    @app.get("/members", response_class=HTMLResponse)
    async def members(request: Request, sess: SessionRecord = Depends(require_user)):
        return _render(request, "members.html", {"name": sess.user_name, "images": GALLERY})

    @app.get("/admin", response_class=HTMLResponse)
    async def admin(request: Request, sess: SessionRecord = Depends(require_role("admin"))):
        users = await _services(request).directory.list_all()
        return _render(request, "admin.html", {"users": users, "current": sess})

    @app.get("/promote/{user_id}")
    async def promote(request: Request, user_id: str, sess: SessionRecord = Depends(require_role("admin"))):
        await _services(request).accounts.promote(user_id, actor=sess)
        return RedirectResponse(url="/admin", status_code=303)

    @app.get("/demote/{user_id}")
    async def demote(request: Request, user_id: str, sess: SessionRecord = Depends(require_role("admin"))):
        await _services(request).accounts.demote(user_id, actor=sess)
        return RedirectResponse(url="/admin", status_code=303)

    @app.get("/logout")
    async def logout(request: Request):
        services = _services(request)
        await services.accounts.logout(_cookie_token(request))
        resp = RedirectResponse(url="/", status_code=303)
        resp.delete_cookie(services.settings.cookie_name)
        return resp

    @app.get("/healthz")
    async def healthz():
        if await run_in_threadpool(db.ping):
            return {"status": "ok"}
        return JSONResponse({"status": "unavailable"}, status_code=503)

    return app
