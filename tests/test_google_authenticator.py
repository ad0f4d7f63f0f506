"""
Tests for the Google OAuth token store.
"""

import stat
from unittest.mock import MagicMock, patch

import pytest
from google.auth.exceptions import RefreshError
from keyring.errors import KeyringError, PasswordDeleteError

from syllacal.adapters.google_authenticator import KEYRING_SERVICE_NAME, GoogleAuthenticator
from syllacal.domain.exceptions import AuthenticationError

MODULE = "syllacal.adapters.google_authenticator"


def make_credentials(valid=True, token="cached-token", refresh_token="refresh-token"):
    credentials = MagicMock()
    credentials.valid = valid
    credentials.token = token
    credentials.refresh_token = refresh_token
    credentials.to_json.return_value = f'{{"token": "{token}"}}'
    return credentials


@pytest.fixture
def keyring_mock():
    with patch(f"{MODULE}.keyring") as mocked:
        mocked.get_password.return_value = None
        yield mocked


@pytest.fixture
def credentials_cls():
    with patch(f"{MODULE}.Credentials") as mocked:
        yield mocked


@pytest.fixture
def flow_cls():
    with patch(f"{MODULE}.InstalledAppFlow") as mocked:
        yield mocked


@pytest.fixture(autouse=True)
def no_transport():
    with patch(f"{MODULE}.Request"):
        yield


def make_authenticator(tmp_path, client_id="client-id", client_secret="secret"):
    return GoogleAuthenticator(client_id, client_secret, cache_file=tmp_path / "token.json")


class TestGetCredentials:
    """Tests for the token lookup order."""

    def test_uses_valid_cached_token(self, tmp_path, keyring_mock, credentials_cls, flow_cls):
        keyring_mock.get_password.return_value = '{"token": "cached-token"}'
        credentials_cls.from_authorized_user_info.return_value = make_credentials()
        auth = make_authenticator(tmp_path)

        assert auth.get_access_token() == "cached-token"
        keyring_mock.get_password.assert_called_once_with(KEYRING_SERVICE_NAME, "client-id")
        flow_cls.from_client_config.assert_not_called()

    def test_refreshes_expired_token(self, tmp_path, keyring_mock, credentials_cls, flow_cls):
        keyring_mock.get_password.return_value = '{"token": "stale"}'
        credentials = make_credentials(valid=False, token="fresh-token")
        credentials_cls.from_authorized_user_info.return_value = credentials
        auth = make_authenticator(tmp_path)

        assert auth.get_access_token() == "fresh-token"
        credentials.refresh.assert_called_once()
        keyring_mock.set_password.assert_called_once_with(
            KEYRING_SERVICE_NAME, "client-id", '{"token": "fresh-token"}'
        )
        flow_cls.from_client_config.assert_not_called()

    def test_failed_refresh_falls_back_to_consent(self, tmp_path, keyring_mock, credentials_cls, flow_cls):
        keyring_mock.get_password.return_value = '{"token": "stale"}'
        credentials = make_credentials(valid=False)
        credentials.refresh.side_effect = RefreshError("invalid_grant")
        credentials_cls.from_authorized_user_info.return_value = credentials
        flow_cls.from_client_config.return_value.run_local_server.return_value = make_credentials(token="consented")
        auth = make_authenticator(tmp_path)

        assert auth.get_access_token() == "consented"
        flow_cls.from_client_config.assert_called_once_with(auth.client_config(), scopes=GoogleAuthenticator.SCOPES)

    def test_force_refresh_skips_cache(self, tmp_path, keyring_mock, credentials_cls, flow_cls):
        flow_cls.from_client_config.return_value.run_local_server.return_value = make_credentials(token="consented")
        auth = make_authenticator(tmp_path)

        assert auth.get_access_token(force_refresh=True) == "consented"
        credentials_cls.from_authorized_user_info.assert_not_called()

    def test_unconfigured_client_raises(self, tmp_path, keyring_mock, credentials_cls, flow_cls):
        auth = make_authenticator(tmp_path, client_id="", client_secret="")

        with pytest.raises(AuthenticationError, match="not configured"):
            auth.get_credentials()

    def test_refresh_without_refresh_token(self, tmp_path, keyring_mock, credentials_cls):
        auth = make_authenticator(tmp_path)

        with pytest.raises(AuthenticationError, match="No refresh token"):
            auth.refresh()


class TestTokenCache:
    """Tests for keyring and file storage."""

    def test_falls_back_to_file_when_keyring_fails(self, tmp_path, keyring_mock, credentials_cls):
        keyring_mock.get_password.side_effect = KeyringError("locked")
        keyring_mock.set_password.side_effect = KeyringError("locked")
        cache_file = tmp_path / "token.json"
        cache_file.write_text('{"token": "stale"}', encoding="utf-8")
        credentials = make_credentials(valid=False, token="fresh-token")
        credentials_cls.from_authorized_user_info.return_value = credentials
        auth = make_authenticator(tmp_path)

        assert auth.get_access_token() == "fresh-token"
        assert auth.cache_backend == "file"
        assert "plaintext" in auth.insecure_storage_warning
        assert cache_file.read_text(encoding="utf-8") == '{"token": "fresh-token"}'
        assert stat.S_IMODE(cache_file.stat().st_mode) == 0o600

    def test_corrupt_cache_is_ignored(self, tmp_path, keyring_mock, flow_cls):
        keyring_mock.get_password.return_value = "{not json"
        flow_cls.from_client_config.return_value.run_local_server.return_value = make_credentials(token="consented")
        auth = make_authenticator(tmp_path)

        assert auth.get_access_token() == "consented"

    def test_clear_cache(self, tmp_path, keyring_mock):
        cache_file = tmp_path / "token.json"
        cache_file.write_text("{}", encoding="utf-8")
        auth = make_authenticator(tmp_path)

        auth.clear_cache()

        assert not cache_file.exists()
        keyring_mock.delete_password.assert_called_once_with(KEYRING_SERVICE_NAME, "client-id")

    def test_clear_cache_without_keyring_entry(self, tmp_path, keyring_mock):
        keyring_mock.delete_password.side_effect = PasswordDeleteError("not found")
        auth = make_authenticator(tmp_path)

        auth.clear_cache()

        keyring_mock.delete_password.assert_called_once()
