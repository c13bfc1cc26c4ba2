import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select

from secretshare.app import create_app
from secretshare.auth.authenticator import Authenticator
from secretshare.auth.identity import IdentityResolver
from secretshare.auth.session import SessionManager
from secretshare.auth.store import CredentialStore
from secretshare.config import ProviderCredentials, Settings
from secretshare.db import Database


def make_settings(tmp_path: Path, **overrides) -> Settings:
    values = dict(
        secret_key="test-secret-key",
        database_url=f"sqlite:///{tmp_path / 'secretshare.db'}",
        cookie_name="secretshare_session",
        cookie_secure=False,
        session_max_age=3600,
        host="127.0.0.1",
        port=3000,
        log_level="INFO",
        reload=False,
        public_base_url="http://testserver",
        google=ProviderCredentials(
            client_id="google-client",
            client_secret="google-secret",
            callback_url="http://testserver/auth/google/secrets",
        ),
        facebook=ProviderCredentials(
            client_id=None,
            client_secret=None,
            callback_url="http://testserver/auth/facebook/secrets",
        ),
    )
    values.update(overrides)
    return Settings(**values)


def count_rows(db: Database, model) -> int:
    with db.transaction() as session:
        return session.execute(select(func.count()).select_from(model)).scalar_one()


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture()
def db(settings: Settings):
    database = Database(settings.database_url)
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture()
def store(db: Database) -> CredentialStore:
    return CredentialStore(db)


@pytest.fixture()
def resolver(db: Database) -> IdentityResolver:
    return IdentityResolver(db)


@pytest.fixture()
def sessions(db: Database, store: CredentialStore, settings: Settings) -> SessionManager:
    return SessionManager(db, store, settings)


@pytest.fixture()
def authenticator(store, resolver, sessions) -> Authenticator:
    return Authenticator(store, resolver, sessions)


@pytest.fixture()
def client(settings: Settings, db: Database):
    app = create_app(settings, db)
    with TestClient(app, follow_redirects=False) as c:
        yield c
