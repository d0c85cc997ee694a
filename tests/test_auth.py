"""Tests for client certificate identity resolution."""

import pytest

from disapatch.core.auth import CertificateAuth, CertificateIdentity, compute_thumbprint
from disapatch.core.exceptions import AuthenticationError, CredentialAmbiguityError

FIRST = "1111111111111111111111111111111111111111"
SECOND = "2222222222222222222222222222222222222222"


@pytest.fixture
def cert_store(tmp_path, monkeypatch):
    """A store whose files contain their own thumbprint."""
    monkeypatch.setattr("disapatch.core.auth.compute_thumbprint", lambda text: text.strip() or None)
    store = tmp_path / "certs"
    store.mkdir()
    return store


def add_cert(store, name: str, thumbprint: str, with_key: bool = False):
    (store / f"{name}.pem").write_text(thumbprint)
    if with_key:
        (store / f"{name}.key").write_text("key")


def test_compute_thumbprint_without_certificate():
    assert compute_thumbprint("not a certificate") is None


class TestDiscovery:
    def test_missing_store(self, tmp_path):
        assert CertificateAuth(str(tmp_path / "nowhere")).discover_certificates() == {}

    def test_finds_certificates_and_keys(self, cert_store):
        add_cert(cert_store, "alice", FIRST, with_key=True)
        add_cert(cert_store, "bob", SECOND)
        (cert_store / "notes.txt").write_text(FIRST)

        found = CertificateAuth(str(cert_store)).discover_certificates()

        assert list(found) == [FIRST, SECOND]
        assert found[FIRST].key_file == cert_store / "alice.key"
        assert found[SECOND].key_file is None


class TestResolveIdentity:
    def test_single_certificate_is_chosen(self, cert_store):
        add_cert(cert_store, "alice", FIRST)
        auth = CertificateAuth(str(cert_store))

        identity = auth.resolve_identity()

        assert identity.thumbprint == FIRST
        assert auth.selected == identity

    def test_empty_store(self, cert_store):
        with pytest.raises(CredentialAmbiguityError, match="No client certificates"):
            CertificateAuth(str(cert_store)).resolve_identity()

    def test_several_certificates_without_thumbprint(self, cert_store):
        add_cert(cert_store, "alice", FIRST)
        add_cert(cert_store, "bob", SECOND)
        with pytest.raises(CredentialAmbiguityError, match="Multiple client certificates"):
            CertificateAuth(str(cert_store)).resolve_identity()

    def test_explicit_thumbprint(self, cert_store):
        add_cert(cert_store, "alice", FIRST)
        add_cert(cert_store, "bob", SECOND)
        identity = CertificateAuth(str(cert_store)).resolve_identity(SECOND.lower())
        assert identity.cert_file == cert_store / "bob.pem"

    def test_configured_thumbprint(self, cert_store):
        add_cert(cert_store, "alice", FIRST)
        add_cert(cert_store, "bob", SECOND)
        auth = CertificateAuth(str(cert_store), default_thumbprint=FIRST)
        assert auth.resolve_identity().thumbprint == FIRST

    def test_unknown_thumbprint(self, cert_store):
        add_cert(cert_store, "alice", FIRST)
        with pytest.raises(CredentialAmbiguityError, match="No certificate with thumbprint"):
            CertificateAuth(str(cert_store)).resolve_identity(SECOND)

    def test_previous_selection_is_reused(self, cert_store):
        add_cert(cert_store, "alice", FIRST)
        add_cert(cert_store, "bob", SECOND)
        auth = CertificateAuth(str(cert_store))
        auth.resolve_identity(SECOND)

        # Without a thumbprint the earlier choice wins over the ambiguity
        assert auth.resolve_identity().thumbprint == SECOND


def test_ssl_context_load_failure(tmp_path):
    identity = CertificateIdentity(thumbprint=FIRST, cert_file=tmp_path / "missing.pem")
    with pytest.raises(AuthenticationError, match="Failed to load client certificate"):
        CertificateAuth(str(tmp_path)).build_ssl_context(identity)
