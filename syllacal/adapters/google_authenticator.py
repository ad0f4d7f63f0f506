"""
Google OAuth 2.0 authentication for the Calendar API (installed-app flow).
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import keyring
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from keyring.errors import KeyringError, PasswordDeleteError
from rich.console import Console

from ..domain.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

console = Console()


KEYRING_SERVICE_NAME = "syllacal"

GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


class GoogleAuthenticator:
    """
    Holds the user's OAuth tokens and keeps them fresh.

    Token lookup order:
    1. Cached token (keyring, or plaintext file when keyring is unusable)
    2. Refresh with the cached refresh token when the access token expired
    3. Browser consent via a local redirect server
    """

    SCOPES = ["https://www.googleapis.com/auth/calendar"]

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        cache_file: Path | None = None,
    ):
        """
        Initialize the authenticator.

        Args:
            client_id: OAuth client ID of the Desktop app
            client_secret: OAuth client secret of the Desktop app
            cache_file: Optional path to the plaintext token cache file
        """
        self.client_id = client_id
        self.client_secret = client_secret

        self.cache_file = cache_file or Path.home() / ".syllacal_token_cache.json"
        self._key_identifier = self.client_id
        self._keyring_supported = True
        self._cache_backend = "keyring"
        self._insecure_storage_warning: Optional[str] = None
        self._credentials: Optional[Credentials] = None

    @property
    def cache_backend(self) -> str:
        """Return the active cache backend (keyring or file)."""
        return self._cache_backend

    @property
    def insecure_storage_warning(self) -> Optional[str]:
        """Provide a warning message when the cache falls back to plaintext storage."""
        return self._insecure_storage_warning

    def client_config(self) -> Dict[str, Any]:
        """Client secrets in the layout expected by ``InstalledAppFlow``."""
        return {
            "installed": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": GOOGLE_AUTH_URI,
                "token_uri": GOOGLE_TOKEN_URI,
                "redirect_uris": ["http://localhost"],
            }
        }

    def get_credentials(self, force_refresh: bool = False) -> Credentials:
        """
        Get valid credentials, using the cache, a refresh or a new consent.

        Args:
            force_refresh: Ignore the cache and ask for consent again

        Raises:
            AuthenticationError: If no valid credentials can be obtained
        """
        if not force_refresh:
            credentials = self._credentials or self._load_cached_credentials()

            if credentials is not None and credentials.valid:
                self._credentials = credentials
                return credentials

            if credentials is not None and credentials.refresh_token:
                self._credentials = credentials
                try:
                    return self.refresh()
                except AuthenticationError as exc:
                    logger.warning("Token refresh failed, falling back to consent flow: %s", exc)

        return self._authenticate_installed_app_flow()

    def get_access_token(self, force_refresh: bool = False) -> str:
        """Return a current access token."""
        return self.get_credentials(force_refresh=force_refresh).token

    def refresh(self) -> Credentials:
        """
        Exchange the refresh token for a new access token and persist it.

        Raises:
            AuthenticationError: If there is nothing to refresh or Google rejects it
        """
        credentials = self._credentials or self._load_cached_credentials()
        if credentials is None or not credentials.refresh_token:
            raise AuthenticationError("No refresh token available. Please log in again.")

        try:
            credentials.refresh(Request())
        except GoogleAuthError as exc:
            raise AuthenticationError(f"Failed to refresh access token: {exc}") from exc

        logger.info("Access token refreshed")
        self._credentials = credentials
        self._save_cache(credentials.to_json())
        return credentials

    def _authenticate_installed_app_flow(self) -> Credentials:
        """
        Run the browser consent flow.

        Raises:
            AuthenticationError: If the client is not configured or consent fails
        """
        if not self.client_id or not self.client_secret:
            raise AuthenticationError(
                "Google OAuth client is not configured. Set google.client_id and "
                "google.client_secret in config.yaml."
            )

        console.print("\n[bold cyan]Google Authentication Required[/bold cyan]")
        console.print("A browser window will open so you can grant calendar access.\n")

        flow = InstalledAppFlow.from_client_config(self.client_config(), scopes=self.SCOPES)
        try:
            credentials = flow.run_local_server(port=0)
        except (GoogleAuthError, ValueError, OSError) as exc:
            raise AuthenticationError(f"Authentication failed: {exc}") from exc

        console.print("[bold green]Authentication successful![/bold green]\n")

        self._credentials = credentials
        self._save_cache(credentials.to_json())
        return credentials

    def _load_cached_credentials(self) -> Optional[Credentials]:
        """Load credentials from keyring or disk if present."""
        serialized = self._load_cache_from_keyring()
        if serialized is None:
            serialized = self._load_cache_from_file()

        if not serialized:
            return None

        try:
            info = json.loads(serialized)
            return Credentials.from_authorized_user_info(info, self.SCOPES)
        except (json.JSONDecodeError, ValueError, KeyError) as exc:
            logger.warning("Could not deserialize token cache: %s", exc)
            return None

    def _load_cache_from_keyring(self) -> Optional[str]:
        if not self._keyring_supported:
            return None

        try:
            return keyring.get_password(KEYRING_SERVICE_NAME, self._key_identifier)
        except KeyringError as exc:
            self._handle_keyring_failure(f"reading credentials failed: {exc}")
            return None

    def _load_cache_from_file(self) -> Optional[str]:
        if self.cache_file.exists():
            try:
                with open(self.cache_file, "r", encoding="utf-8") as file_handle:
                    return file_handle.read()
            except OSError as exc:
                logger.warning("Could not load token cache file %s: %s", self.cache_file, exc)
        return None

    def _save_cache(self, serialized: str) -> None:
        """Save the token cache to the configured backend."""
        if self._keyring_supported and self._save_cache_to_keyring(serialized):
            return

        self._save_cache_to_file(serialized)

    def _save_cache_to_keyring(self, serialized: str) -> bool:
        try:
            keyring.set_password(
                KEYRING_SERVICE_NAME,
                self._key_identifier,
                serialized,
            )
            self._cache_backend = "keyring"
            return True
        except KeyringError as exc:
            self._handle_keyring_failure(f"writing credentials failed: {exc}")
            return False

    def _save_cache_to_file(self, serialized: str) -> None:
        try:
            self.cache_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.cache_file, "w", encoding="utf-8") as file_handle:
                file_handle.write(serialized)
            self.cache_file.chmod(0o600)
        except OSError as exc:
            logger.warning("Could not save token cache to %s: %s", self.cache_file, exc)

    def _handle_keyring_failure(self, reason: str) -> None:
        if self._keyring_supported:
            logger.warning(
                "Secure credential storage unavailable (%s). Falling back to plaintext cache.",
                reason,
            )
        self._keyring_supported = False
        self._cache_backend = "file"
        if not self._insecure_storage_warning:
            self._insecure_storage_warning = (
                f"Secure credential storage unavailable ({reason}). "
                f"Falling back to plaintext cache at {self.cache_file}."
            )

    def clear_cache(self) -> None:
        """Clear the token cache (force re-authentication next time)."""
        if self.cache_file.exists():
            self.cache_file.unlink()
        try:
            keyring.delete_password(KEYRING_SERVICE_NAME, self._key_identifier)
        except PasswordDeleteError:
            logger.debug("No keyring entry to remove for %s", self._key_identifier)
        except KeyringError as exc:
            logger.warning("Could not remove credentials from keyring: %s", exc)
        self._credentials = None
