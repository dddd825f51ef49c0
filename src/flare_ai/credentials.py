"""API key storage."""

from __future__ import annotations

import contextlib
from typing import Protocol

import keyring
from keyring.errors import PasswordDeleteError

KEYRING_SERVICE = "flare-ai"
KEYRING_USERNAME = "openrouter_api_key"


class CredentialStore(Protocol):
    def get(self) -> str | None: ...

    def set(self, token: str) -> None: ...

    def delete(self) -> None: ...


class KeyringCredentialStore:
    """Credential store backed by the system keyring, keyed by a fixed service/account pair."""

    def __init__(self, service: str = KEYRING_SERVICE, username: str = KEYRING_USERNAME) -> None:
        self.service = service
        self.username = username

    def get(self) -> str | None:
        return keyring.get_password(self.service, self.username) or None

    def set(self, token: str) -> None:
        keyring.set_password(self.service, self.username, token)

    def delete(self) -> None:
        with contextlib.suppress(PasswordDeleteError):
            keyring.delete_password(self.service, self.username)


class StaticCredentialStore:
    """In-process credential, used when the key comes from the environment."""

    def __init__(self, token: str | None = None) -> None:
        self._token = token

    def get(self) -> str | None:
        return self._token or None

    def set(self, token: str) -> None:
        self._token = token

    def delete(self) -> None:
        self._token = None


def default_credential_store(api_key: str | None = None) -> CredentialStore:
    if api_key:
        return StaticCredentialStore(api_key)
    return KeyringCredentialStore()
