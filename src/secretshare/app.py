# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fastapi import Depends, FastAPI, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from secretshare.auth.authenticator import Authenticator
from secretshare.auth.identity import IdentityResolver
from secretshare.auth.models import Provider, User
from secretshare.auth.providers import (
    STATE_COOKIE,
    STATE_MAX_AGE,
    OAuthClient,
    build_clients,
    check_state,
    sign_state,
)
from secretshare.auth.session import SessionManager
from secretshare.auth.store import CredentialStore
from secretshare.auth.util import random_token, sanitize_next_path
from secretshare.config import Settings, load_settings
from secretshare.db import Database
from secretshare.errors import (
    AuthError,
    DuplicateUsername,
    InvalidCredential,
    PersistenceConflict,
    ProviderError,
    Unauthenticated,
    UserNotFound,
)
from secretshare.permissions import (
    current_user_optional,
    get_authenticator,
    login_redirect_url,
    require_user,
    session_token,
)

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent

templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

ERROR_MESSAGES = {
    "invalid": "Invalid username or password.",
    "taken": "That username is already registered. Pick another one.",
    "missing": "Username and password are required.",
    "provider": "Sign-in with the provider failed. Please try again.",
}


def _render(request: Request, template_name: str, ctx: Optional[dict] = None, *, user: Optional[User] = None):
    """TemplateResponse wrapper injecting the shared page context."""
    base_ctx = {
        "current_user": user,
        "providers": sorted(request.app.state.oauth_clients, key=lambda p: p.value),
        "error": ERROR_MESSAGES.get(request.query_params.get("error", ""), ""),
    }
    return templates.TemplateResponse(request, template_name, {**base_ctx, **(ctx or {})})


def _with_session(resp: RedirectResponse, request: Request, token: str) -> RedirectResponse:
    sessions: SessionManager = request.app.state.sessions
    resp.set_cookie(**sessions.cookie_kwargs(token))
    return resp


def _oauth_client(request: Request, provider: str) -> OAuthClient:
    try:
        p = Provider(provider)
    except ValueError:
        raise HTTPException(status_code=404, detail="Unknown provider") from None
    client = request.app.state.oauth_clients.get(p)
    if client is None:
        raise HTTPException(status_code=404, detail=f"{p.label} login is not configured")
    return client


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    settings = settings or load_settings()
    if database is None:
        database = Database(settings.database_url)
        database.create_all()

    store = CredentialStore(database)
    sessions = SessionManager(database, store, settings)
    authenticator = Authenticator(store, IdentityResolver(database), sessions)

    app = FastAPI(title="secretshare")
    app.state.settings = settings
    app.state.database = database
    app.state.store = store
    app.state.sessions = sessions
    app.state.authenticator = authenticator
    app.state.oauth_clients = build_clients(settings)

    app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")

    @app.exception_handler(Unauthenticated)
    async def _unauthenticated(request: Request, exc: Unauthenticated):
        return RedirectResponse(url=login_redirect_url(request), status_code=303)

    @app.exception_handler(PersistenceConflict)
    async def _persistence(request: Request, exc: PersistenceConflict):
        logger.error("Request %s failed: %s", request.url.path, exc)
        return PlainTextResponse("Service temporarily unavailable", status_code=503)

    @app.exception_handler(AuthError)
    async def _auth_error(request: Request, exc: AuthError):
        logger.warning("Unhandled auth error on %s: %s", request.url.path, exc.__class__.__name__)
        return RedirectResponse(url="/login", status_code=303)

    # ------------------ Routes ------------------

    @app.get("/", response_class=HTMLResponse)
    def home(request: Request, user=Depends(current_user_optional)):
        return _render(request, "home.html", user=user)

    @app.get("/login", response_class=HTMLResponse)
    def login_get(request: Request, next: str = "/secrets", user=Depends(current_user_optional)):
        if user:
            return RedirectResponse(url=sanitize_next_path(next), status_code=303)
        return _render(request, "login.html", {"next": next})

    @app.post("/login")
    def login_post(
        request: Request,
        username: str = Form(""),
        password: str = Form(""),
        next: str = Form("/secrets"),
        auth: Authenticator = Depends(get_authenticator),
    ):
        if not username.strip() or not password:
            return RedirectResponse(url="/login?error=missing", status_code=303)
        try:
            token = auth.login_local(username, password)
        except (UserNotFound, InvalidCredential):
            return RedirectResponse(url="/login?error=invalid", status_code=303)
        return _with_session(RedirectResponse(url=sanitize_next_path(next), status_code=303), request, token)

    @app.get("/register", response_class=HTMLResponse)
    def register_get(request: Request, user=Depends(current_user_optional)):
        if user:
            return RedirectResponse(url="/secrets", status_code=303)
        return _render(request, "register.html")

    @app.post("/register")
    def register_post(
        request: Request,
        username: str = Form(""),
        password: str = Form(""),
        auth: Authenticator = Depends(get_authenticator),
    ):
        if not username.strip() or not password:
            return RedirectResponse(url="/register?error=missing", status_code=303)
        try:
            token = auth.register(username, password)
        except DuplicateUsername:
            return RedirectResponse(url="/register?error=taken", status_code=303)
        return _with_session(RedirectResponse(url="/secrets", status_code=303), request, token)

    @app.get("/logout")
    def logout(request: Request, auth: Authenticator = Depends(get_authenticator)):
        auth.logout(session_token(request))
        resp = RedirectResponse(url="/", status_code=303)
        resp.set_cookie(**request.app.state.sessions.clear_cookie_kwargs())
        return resp

    @app.get("/auth/{provider}")
    def oauth_start(request: Request, provider: str):
        client = _oauth_client(request, provider)
        state = random_token()
        resp = RedirectResponse(url=client.authorize_url(state), status_code=303)
        resp.set_cookie(
            STATE_COOKIE,
            sign_state(settings, client.provider, state),
            max_age=STATE_MAX_AGE,
            httponly=True,
            secure=settings.cookie_secure,
            samesite="lax",
            path="/",
        )
        return resp

    @app.get("/auth/{provider}/secrets")
    def oauth_callback(
        request: Request,
        provider: str,
        code: str = "",
        state: str = "",
        error: str = "",
        auth: Authenticator = Depends(get_authenticator),
    ):
        client = _oauth_client(request, provider)
        try:
            if error:
                raise ProviderError(f"{client.provider.label} denied access: {error}")
            check_state(settings, client.provider, request.cookies.get(STATE_COOKIE), state)
            subject_id = client.exchange(code)
            token = auth.login_federated(client.provider, subject_id)
        except ProviderError as exc:
            logger.warning("Federated login failed: %s", exc)
            resp = RedirectResponse(url="/login?error=provider", status_code=303)
        except PersistenceConflict as exc:
            logger.error("Federated login failed: %s", exc)
            resp = PlainTextResponse("Service temporarily unavailable", status_code=503)
        else:
            resp = _with_session(RedirectResponse(url="/secrets", status_code=303), request, token)
        resp.delete_cookie(STATE_COOKIE, path="/")
        return resp

    @app.get("/secrets", response_class=HTMLResponse)
    def secrets_page(request: Request, user=Depends(current_user_optional)):
        users = request.app.state.store.list_users_with_secrets()
        return _render(request, "secrets.html", {"users_with_secrets": users}, user=user)

    @app.get("/submit", response_class=HTMLResponse)
    def submit_get(request: Request, user=Depends(require_user)):
        return _render(request, "submit.html", user=user)

    @app.post("/submit")
    def submit_post(request: Request, secret: str = Form(""), user=Depends(require_user)):
        if secret.strip():
            request.app.state.store.append_secret(user.id, secret)
        return RedirectResponse(url="/secrets", status_code=303)

    return app
