"""Keep the upload token in the system keychain instead of the config file."""

import logging
from typing import Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

__all__ = ["TokenStore"]

logger = logging.getLogger(__name__)

SERVICE_NAME = "Ascella"
ACCOUNT_NAME = "api_key"


class TokenStore:
    """Reads and writes the Ascella API key through ``keyring``."""

    def __init__(self, service_name: str = SERVICE_NAME):
        self.service_name = service_name

    def store(self, token: str) -> bool:
        """Store the token.

        Returns:
            True if stored successfully
        """
        try:
            keyring.set_password(self.service_name, ACCOUNT_NAME, token)
            logger.info("API key stored in keychain")
            return True
        except KeyringError as e:
            logger.error(f"Failed to store API key: {e}")
            return False

    def load(self) -> Optional[str]:
        """Load the token, or None if missing or the keychain is unusable."""
        try:
            return keyring.get_password(self.service_name, ACCOUNT_NAME)
        except KeyringError as e:
            logger.error(f"Failed to load API key: {e}")
            return None

    def delete(self) -> bool:
        """Delete the stored token.

        Returns:
            True if deleted (or didn't exist)
        """
        try:
            keyring.delete_password(self.service_name, ACCOUNT_NAME)
            logger.info("API key removed from keychain")
            return True
        except PasswordDeleteError:
            return True
        except KeyringError as e:
            logger.error(f"Failed to delete API key: {e}")
            return False
