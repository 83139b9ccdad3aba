"""Tests for keychain-backed token storage."""

from unittest.mock import patch

from keyring.errors import KeyringError, PasswordDeleteError

from ascella.keychain import TokenStore


class TestTokenStore:
    """Tests for TokenStore."""

    @patch("ascella.keychain.keyring")
    def test_store(self, mock_keyring):
        assert TokenStore().store("secret") is True
        mock_keyring.set_password.assert_called_once_with("Ascella", "api_key", "secret")

    @patch("ascella.keychain.keyring")
    def test_store_failure(self, mock_keyring):
        mock_keyring.set_password.side_effect = KeyringError("locked")
        assert TokenStore().store("secret") is False

    @patch("ascella.keychain.keyring")
    def test_load(self, mock_keyring):
        mock_keyring.get_password.return_value = "secret"
        assert TokenStore("Custom").load() == "secret"
        mock_keyring.get_password.assert_called_once_with("Custom", "api_key")

    @patch("ascella.keychain.keyring")
    def test_load_failure(self, mock_keyring):
        mock_keyring.get_password.side_effect = KeyringError("no backend")
        assert TokenStore().load() is None

    @patch("ascella.keychain.keyring")
    def test_delete_missing_is_ok(self, mock_keyring):
        mock_keyring.delete_password.side_effect = PasswordDeleteError("missing")
        assert TokenStore().delete() is True

    @patch("ascella.keychain.keyring")
    def test_delete_failure(self, mock_keyring):
        mock_keyring.delete_password.side_effect = KeyringError("locked")
        assert TokenStore().delete() is False
