"""Tests for the Firebase SDK wrappers, with the SDK modules monkeypatched."""
from unittest.mock import MagicMock

import pytest
from firebase_admin import auth
from firebase_admin import exceptions as firebase_exceptions
from google.api_core import exceptions as google_exceptions

from schedule_admin.core.firebase import store as store_module
from schedule_admin.core.firebase.exceptions import (
    EmailAlreadyExistsError,
    InvalidProviderArgumentError,
    ProviderError,
    TokenVerificationError,
    UserNotFoundError,
)
from schedule_admin.core.firebase.store import ProfileStore, chunked
from schedule_admin.core.firebase.users import UserService


@pytest.fixture
def client(mocker):
    return mocker.Mock(app="sdk-app", timeout=5.0, db=MagicMock())


@pytest.fixture
def sdk(mocker):
    """Patch one function of the real ``firebase_admin.auth`` module."""
    def _patch(name, **kwargs):
        return mocker.patch.object(auth, name, **kwargs)
    return _patch


# ─────────────────────────────────────────────────────────────────────────────
# UserService
# ─────────────────────────────────────────────────────────────────────────────
def test_verify_id_token_checks_revocation(sdk, client):
    verify_id_token = sdk("verify_id_token", return_value={
        "uid": "u1", "email": "U1@Example.com", "role": "admin", "orgId": "org1", "iss": "x", "firebase": {},
    })
    identity = UserService(client).verify_id_token("tok")

    verify_id_token.assert_called_once_with("tok", app="sdk-app", check_revoked=True)
    assert identity.email == "u1@example.com"
    assert identity.claims == {"role": "admin", "orgId": "org1"}


@pytest.mark.parametrize("error", [
    ValueError("malformed"),
    auth.RevokedIdTokenError("revoked"),
    auth.ExpiredIdTokenError("expired", cause=None),
])
def test_verify_id_token_failures(sdk, client, error):
    sdk("verify_id_token", side_effect=error)
    with pytest.raises(TokenVerificationError):
        UserService(client).verify_id_token("tok")


def test_verify_id_token_key_fetch_failure_is_provider_error(sdk, client):
    sdk("verify_id_token", side_effect=auth.CertificateFetchError("fetch failed", cause=None))
    with pytest.raises(ProviderError, match="verify_id_token"):
        UserService(client).verify_id_token("tok")


def test_get_user_missing_returns_none(sdk, client):
    sdk("get_user", side_effect=auth.UserNotFoundError("no user"))
    assert UserService(client).get_user("ghost") is None


def test_get_user_maps_record(sdk, client):
    record = MagicMock(uid="u1", email="u1@example.com", display_name="U", custom_claims=None, disabled=False)
    sdk("get_user", return_value=record)
    account = UserService(client).get_user("u1")
    assert account.custom_claims == {}
    assert account.display_name == "U"


def test_create_user_passes_account_flags(sdk, client):
    create_user = sdk("create_user", return_value=MagicMock(uid="new-uid"))
    assert UserService(client).create_user("a@x.com", "secret-pw", "A") == "new-uid"
    create_user.assert_called_once_with(
        email="a@x.com", password="secret-pw", display_name="A",
        email_verified=False, disabled=False, app="sdk-app",
    )


@pytest.mark.parametrize("error, expected", [
    (auth.EmailAlreadyExistsError("exists", None, None), EmailAlreadyExistsError),
    (ValueError("Password must be a string at least 6 characters long."), InvalidProviderArgumentError),
    (firebase_exceptions.InvalidArgumentError("bad"), InvalidProviderArgumentError),
    (firebase_exceptions.UnavailableError("down"), ProviderError),
])
def test_create_user_error_mapping(sdk, client, error, expected):
    sdk("create_user", side_effect=error)
    with pytest.raises(expected):
        UserService(client).create_user("a@x.com", "pw", "A")


def test_update_user_sends_only_supplied_fields(sdk, client):
    update_user = sdk("update_user")
    UserService(client).update_user("u1", display_name="New")
    update_user.assert_called_once_with("u1", app="sdk-app", display_name="New")


def test_update_user_nothing_to_do(sdk, client):
    update_user = sdk("update_user")
    UserService(client).update_user("u1")
    update_user.assert_not_called()


def test_update_user_not_found(sdk, client):
    sdk("update_user", side_effect=auth.UserNotFoundError("no user"))
    with pytest.raises(UserNotFoundError):
        UserService(client).update_user("u1", password="secret-pw")


def test_delete_user_not_found(sdk, client):
    sdk("delete_user", side_effect=auth.UserNotFoundError("no user"))
    with pytest.raises(UserNotFoundError):
        UserService(client).delete_user("u1")


def test_set_custom_claims(sdk, client):
    set_custom_user_claims = sdk("set_custom_user_claims")
    UserService(client).set_custom_claims("u1", {"role": "admin", "orgId": "org1"})
    set_custom_user_claims.assert_called_once_with("u1", {"role": "admin", "orgId": "org1"}, app="sdk-app")


# ─────────────────────────────────────────────────────────────────────────────
# ProfileStore
# ─────────────────────────────────────────────────────────────────────────────
def document(client):
    return client.db.collection.return_value.document.return_value


def test_get_profile_missing(client, cfg):
    document(client).get.return_value = MagicMock(exists=False)
    assert ProfileStore(client, cfg).get_profile("u1") is None
    document(client).get.assert_called_once_with(timeout=5.0)


def test_get_profile_maps_document(client, cfg):
    document(client).get.return_value = MagicMock(
        exists=True, to_dict=MagicMock(return_value={"email": "a@x.com", "role": "admin", "orgId": "org1"}),
    )
    profile = ProfileStore(client, cfg).get_profile("u1")
    assert (profile.uid, profile.role, profile.org_id) == ("u1", "admin", "org1")


def test_merge_profile_adds_update_timestamp(client, cfg):
    ProfileStore(client, cfg).merge_profile("u1", {"fullName": "A"})
    document(client).set.assert_called_once_with(
        {"fullName": "A", "updatedAt": store_module.SERVER_TIMESTAMP}, merge=True, timeout=5.0,
    )


def test_create_profile_adds_both_timestamps(client, cfg):
    ProfileStore(client, cfg).create_profile("u1", {"email": "a@x.com"})
    payload = document(client).set.call_args.args[0]
    assert payload["uid"] == "u1"
    assert payload["createdAt"] is store_module.SERVER_TIMESTAMP
    assert payload["updatedAt"] is store_module.SERVER_TIMESTAMP


def test_delete_profile_missing_is_noop(client, cfg):
    document(client).delete.side_effect = google_exceptions.NotFound("gone")
    ProfileStore(client, cfg).delete_profile("u1")


def test_store_errors_become_provider_errors(client, cfg):
    document(client).get.side_effect = google_exceptions.DeadlineExceeded("slow")
    with pytest.raises(ProviderError):
        ProfileStore(client, cfg).get_profile("u1")


def test_get_department(client, cfg):
    document(client).get.return_value = MagicMock(exists=True, to_dict=MagicMock(return_value={"orgId": "org1"}))
    department = ProfileStore(client, cfg).get_department("d1")
    assert department.org_id == "org1"
    client.db.collection.assert_called_with("departments")


def _schedule_snaps(count):
    return [MagicMock(reference=f"ref-{index}") for index in range(count)]


def test_cascade_commits_400_400_100(client, cfg):
    client.db.collection.return_value.where.return_value.get.return_value = _schedule_snaps(900)
    batches = []

    def new_batch():
        batch = MagicMock()
        batches.append(batch)
        return batch

    client.db.batch.side_effect = new_batch

    assert ProfileStore(client, cfg).delete_schedules_created_by("u1") == 900
    assert [batch.delete.call_count for batch in batches] == [400, 400, 100]
    for batch in batches:
        batch.commit.assert_called_once_with(timeout=5.0)


def test_cascade_nothing_to_delete(client, cfg):
    client.db.collection.return_value.where.return_value.get.return_value = []
    assert ProfileStore(client, cfg).delete_schedules_created_by("u1") == 0
    client.db.batch.assert_not_called()


def test_cascade_commit_failure_raises(client, cfg):
    client.db.collection.return_value.where.return_value.get.return_value = _schedule_snaps(10)
    client.db.batch.return_value.commit.side_effect = google_exceptions.ServiceUnavailable("down")
    with pytest.raises(ProviderError, match="batch_commit"):
        ProfileStore(client, cfg).delete_schedules_created_by("u1")


def test_chunked():
    assert [len(chunk) for chunk in chunked(list(range(9)), 4)] == [4, 4, 1]


# ─────────────────────────────────────────────────────────────────────────────
# FirebaseClient
# ─────────────────────────────────────────────────────────────────────────────
def test_client_initialises_named_app_once(mocker, cfg):
    from schedule_admin.core.firebase import client as client_module

    mocker.patch.object(client_module, "_client", None)
    mocker.patch.object(client_module.firebase_admin, "get_app", side_effect=ValueError("no app"))
    certificate = mocker.patch.object(client_module.credentials, "Certificate", return_value="cred")
    initialize = mocker.patch.object(client_module.firebase_admin, "initialize_app", return_value="sdk-app")

    first = client_module.get_firebase_client(cfg)
    second = client_module.get_firebase_client(cfg)

    assert first is second
    assert first.app == "sdk-app"
    assert first.timeout == cfg.provider_timeout_seconds
    certificate.assert_called_once_with(cfg.firebase_credentials)
    initialize.assert_called_once_with(
        "cred",
        options={"projectId": "demo-project", "httpTimeout": cfg.provider_timeout_seconds},
        name=client_module.APP_NAME,
    )


def test_client_reuses_existing_app(mocker, cfg):
    from schedule_admin.core.firebase import client as client_module

    mocker.patch.object(client_module.firebase_admin, "get_app", return_value="existing")
    initialize = mocker.patch.object(client_module.firebase_admin, "initialize_app")
    assert client_module.FirebaseClient.from_config(cfg).app == "existing"
    initialize.assert_not_called()


def test_client_db_is_lazy(mocker):
    from schedule_admin.core.firebase import client as client_module

    factory = mocker.patch.object(client_module.firestore, "client", return_value="db")
    handle = client_module.FirebaseClient("sdk-app", 3.0)
    factory.assert_not_called()
    assert handle.db == "db"
    assert handle.db == "db"
    factory.assert_called_once_with(app="sdk-app")
