import pytest

from secretshare.auth.models import Provider
from secretshare.errors import DuplicateUsername, InvalidCredential, Unauthenticated, UserNotFound
from secretshare.models import DBSession, DBUser

from conftest import count_rows


def test_register_logs_the_user_in(authenticator):
    token = authenticator.register("alice", "pw")
    user = authenticator.require_authenticated(token)
    assert user.username == "alice"


def test_duplicate_registration_issues_no_session(authenticator, db):
    authenticator.register("alice", "pw")
    with pytest.raises(DuplicateUsername):
        authenticator.register("alice", "other")
    assert count_rows(db, DBSession) == 1
    assert count_rows(db, DBUser) == 1


def test_login_local(authenticator):
    authenticator.register("alice", "pw")
    token = authenticator.login_local("alice", "pw")
    assert authenticator.current_user(token).username == "alice"


@pytest.mark.parametrize(
    "username,password,error",
    [("alice", "wrong", InvalidCredential), ("nobody", "pw", UserNotFound)],
)
def test_failed_local_login_issues_no_session(authenticator, db, username, password, error):
    authenticator.register("alice", "pw")
    with pytest.raises(error):
        authenticator.login_local(username, password)
    assert count_rows(db, DBSession) == 1


def test_login_federated_reuses_account(authenticator):
    first = authenticator.require_authenticated(authenticator.login_federated(Provider.GOOGLE, "g-1"))
    second = authenticator.require_authenticated(authenticator.login_federated(Provider.GOOGLE, "g-1"))
    assert first.id == second.id
    assert first.google_id == "g-1"


def test_login_federated_ignores_existing_session(authenticator, resolver):
    bob = resolver.find_or_create(Provider.GOOGLE, "g-bob")
    alice_token = authenticator.register("alice", "pw")
    alice = authenticator.require_authenticated(alice_token)

    token = authenticator.login_federated(Provider.GOOGLE, "g-bob")
    assert authenticator.require_authenticated(token).id == bob.id

    token = authenticator.login_federated(Provider.FACEBOOK, "fb-new")
    newcomer = authenticator.require_authenticated(token)
    assert newcomer.id not in (alice.id, bob.id)
    assert newcomer.facebook_id == "fb-new"
    assert authenticator.store.get_user(alice.id).facebook_id is None
    assert authenticator.require_authenticated(alice_token).id == alice.id


def test_require_authenticated_after_logout(authenticator):
    token = authenticator.register("alice", "pw")
    authenticator.logout(token)
    with pytest.raises(Unauthenticated):
        authenticator.require_authenticated(token)
    with pytest.raises(Unauthenticated):
        authenticator.require_authenticated(None)
    assert authenticator.current_user(token) is None
