"""Shared test fixtures for the Signable test suite."""

from __future__ import annotations

from unittest.mock import Mock, patch

import pytest

from signable.core.models import Document, Signer, SignerRole
from signable.network.protocol import CreatedRequest, ProviderStatus
from signable.storage.memory import InMemoryDocumentStore

LEASE_BODY = (
    "<h2>1. Parties</h2>"
    "<p>This lease is made between the Landlord and the Tenant named below.</p>"
    "<h2>2. Rent</h2>"
    "<p>Rent of <strong>$1,200</strong> is due on the first day of each month.</p>"
    "<ul><li>Late fee: $50</li><li>Grace period: 5 days</li></ul>"
)


class FakeKeyring:
    """In-memory stand-in for the ``keyring`` module API used by credentials."""

    def __init__(self):
        self.store: dict[tuple[str, str], str] = {}

    def get_password(self, service, username):
        return self.store.get((service, username))

    def set_password(self, service, username, password):
        self.store[(service, username)] = password

    def delete_password(self, service, username):
        from keyring.errors import PasswordDeleteError

        if (service, username) not in self.store:
            raise PasswordDeleteError("not found")
        del self.store[(service, username)]

    def get_keyring(self):
        return self


@pytest.fixture
def lease_body():
    return LEASE_BODY


@pytest.fixture
def landlord():
    return Signer(name="Ann Lee", email="ann@example.com", role=SignerRole.LANDLORD)


@pytest.fixture
def tenant():
    return Signer(name="Bo Park", email="bo@example.com", role=SignerRole.TENANT)


@pytest.fixture
def signers(landlord, tenant):
    return [landlord, tenant]


@pytest.fixture
def document():
    return Document(id="doc-1", title="Residential Lease", body=LEASE_BODY)


@pytest.fixture
def store(document):
    return InMemoryDocumentStore([document])


@pytest.fixture
def mock_provider():
    """Mock provider that accepts every request."""
    from signable.network.signwell import SignWellClient

    provider = Mock(spec=SignWellClient)
    provider.create_signing_request.return_value = CreatedRequest(request_id="req-1")
    provider.get_status.return_value = ProviderStatus(overall_state="pending")
    provider.cancel.return_value = None
    provider.remind.return_value = None
    provider.download_completed_pdf.return_value = b"%PDF-1.7 signed"
    return provider


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    """Redirect config to a temp directory and replace the system keyring.

    The fake keyring keeps tests from touching the real keychain.
    """
    from signable.constants import (
        ENV_API_KEY,
        ENV_API_URL,
        ENV_PROVIDER,
        ENV_TEST_MODE,
        ENV_TIMEOUT,
        ENV_WEBHOOK_SECRET,
    )

    for var in (
        ENV_API_KEY, ENV_API_URL, ENV_PROVIDER, ENV_TEST_MODE, ENV_TIMEOUT, ENV_WEBHOOK_SECRET
    ):
        monkeypatch.delenv(var, raising=False)

    config_file = tmp_path / "config.json"
    fake = FakeKeyring()
    with (
        patch("signable.config._storage.CONFIG_DIR", tmp_path),
        patch("signable.config._storage.CONFIG_FILE", config_file),
        patch("signable.config.credentials.keyring", fake),
    ):
        yield tmp_path, config_file, fake
