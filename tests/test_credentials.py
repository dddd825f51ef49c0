import pytest
from keyring.errors import PasswordDeleteError

from flare_ai import credentials
from flare_ai.credentials import KeyringCredentialStore, StaticCredentialStore, default_credential_store


class _FakeKeyring:
    def __init__(self) -> None:
        self.entries: dict[tuple[str, str], str] = {}

    def get_password(self, service: str, username: str) -> str | None:
        return self.entries.get((service, username))

    def set_password(self, service: str, username: str, password: str) -> None:
        self.entries[(service, username)] = password

    def delete_password(self, service: str, username: str) -> None:
        if (service, username) not in self.entries:
            raise PasswordDeleteError("missing")
        del self.entries[(service, username)]


@pytest.fixture
def fake_keyring(monkeypatch: pytest.MonkeyPatch) -> _FakeKeyring:
    fake = _FakeKeyring()
    monkeypatch.setattr(credentials.keyring, "get_password", fake.get_password)
    monkeypatch.setattr(credentials.keyring, "set_password", fake.set_password)
    monkeypatch.setattr(credentials.keyring, "delete_password", fake.delete_password)
    return fake


def test_keyring_store_round_trip(fake_keyring: _FakeKeyring) -> None:
    store = KeyringCredentialStore()

    assert store.get() is None
    store.set("sk-live")
    assert store.get() == "sk-live"
    assert fake_keyring.entries == {("flare-ai", "openrouter_api_key"): "sk-live"}

    store.delete()
    store.delete()
    assert store.get() is None


def test_static_store() -> None:
    store = StaticCredentialStore("sk-env")

    assert store.get() == "sk-env"
    store.delete()
    assert store.get() is None
    assert StaticCredentialStore("").get() is None


def test_default_store_prefers_explicit_key() -> None:
    assert isinstance(default_credential_store("sk-env"), StaticCredentialStore)
    assert isinstance(default_credential_store(None), KeyringCredentialStore)
