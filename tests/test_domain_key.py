"""
Tests for checking the published DKIM domain key.
"""

import base64
import logging
from types import SimpleNamespace
from unittest.mock import MagicMock

import dns.exception
import dns.resolver
import pytest
from cryptography.hazmat.primitives import serialization

from dkim_mailer.errors import DomainKeyError
from dkim_mailer.properties import SigningAlgorithm
from dkim_mailer.signing import DkimSigner, check_domain_key, fetch_domain_key


def _resolver(*records):
    """Resolver stub answering with TXT records split into 255-byte strings."""
    answers = [
        SimpleNamespace(strings=tuple(record[i:i + 255] for i in range(0, len(record), 255)))
        for record in records
    ]
    resolver = MagicMock()
    resolver.resolve.return_value = answers
    return resolver


@pytest.fixture
def public_key(rsa_pem):
    return DkimSigner('example.com', 'mail', rsa_pem).public_key


class TestFetchDomainKey:
    """Test TXT lookups."""

    def test_joins_split_strings(self, rsa_public_b64):
        record = b'v=DKIM1; k=rsa; p=' + rsa_public_b64.encode('ascii')
        resolver = _resolver(record)

        tags = fetch_domain_key('mail', 'example.com', resolver=resolver)

        resolver.resolve.assert_called_once_with('mail._domainkey.example.com', 'TXT')
        assert tags[b'p'] == rsa_public_b64.encode('ascii')

    def test_nxdomain(self):
        resolver = MagicMock()
        resolver.resolve.side_effect = dns.resolver.NXDOMAIN()

        with pytest.raises(DomainKeyError, match="No DKIM domain key published"):
            fetch_domain_key('mail', 'example.com', resolver=resolver)

    def test_timeout(self):
        resolver = MagicMock()
        resolver.resolve.side_effect = dns.exception.Timeout()

        with pytest.raises(DomainKeyError, match="DNS lookup"):
            fetch_domain_key('mail', 'example.com', resolver=resolver)


class TestCheckDomainKey:
    """Test comparing the published key with the private key."""

    def test_match(self, public_key, rsa_public_b64):
        resolver = _resolver(b'v=DKIM1; k=rsa; h=sha256; s=email; p=' + rsa_public_b64.encode('ascii'))

        tags = check_domain_key('mail', 'example.com', public_key, SigningAlgorithm.SHA256_WITH_RSA,
                                resolver=resolver)

        assert tags[b'v'] == b'DKIM1'

    def test_mismatch(self, public_key, other_public_b64):
        resolver = _resolver(b'v=DKIM1; k=rsa; p=' + other_public_b64.encode('ascii'))

        with pytest.raises(DomainKeyError, match="does not match"):
            check_domain_key('mail', 'example.com', public_key, SigningAlgorithm.SHA256_WITH_RSA,
                             resolver=resolver)

    def test_revoked(self, public_key):
        resolver = _resolver(b'v=DKIM1; k=rsa; p=')

        with pytest.raises(DomainKeyError, match="revoked"):
            check_domain_key('mail', 'example.com', public_key, SigningAlgorithm.SHA256_WITH_RSA,
                             resolver=resolver)

    def test_key_type_mismatch(self, public_key, rsa_public_b64):
        resolver = _resolver(b'v=DKIM1; k=ed25519; p=' + rsa_public_b64.encode('ascii'))

        with pytest.raises(DomainKeyError, match="k=ed25519"):
            check_domain_key('mail', 'example.com', public_key, SigningAlgorithm.SHA256_WITH_RSA,
                             resolver=resolver)

    def test_hash_not_allowed(self, public_key, rsa_public_b64):
        resolver = _resolver(b'v=DKIM1; h=sha256; p=' + rsa_public_b64.encode('ascii'))

        with pytest.raises(DomainKeyError, match="does not allow sha1"):
            check_domain_key('mail', 'example.com', public_key, SigningAlgorithm.SHA1_WITH_RSA,
                             resolver=resolver)

    def test_service_not_email(self, public_key, rsa_public_b64):
        resolver = _resolver(b'v=DKIM1; s=tlsrpt; p=' + rsa_public_b64.encode('ascii'))

        with pytest.raises(DomainKeyError, match="not for email"):
            check_domain_key('mail', 'example.com', public_key, SigningAlgorithm.SHA256_WITH_RSA,
                             resolver=resolver)

    def test_signer_check_is_cached(self, rsa_pem, rsa_public_b64):
        resolver = _resolver(b'v=DKIM1; p=' + rsa_public_b64.encode('ascii'))
        signer = DkimSigner('example.com', 'mail', rsa_pem)

        signer.verify_domain_key(resolver=resolver)
        signer.verify_domain_key(resolver=resolver)

        assert resolver.resolve.call_count == 1

    def test_ed25519_match_logged(self, fixtures_dir, caplog):
        signer = DkimSigner('example.com', 'ed', (fixtures_dir / 'ed25519_private.key').read_bytes())
        raw = signer.public_key.public_bytes(serialization.Encoding.Raw, serialization.PublicFormat.Raw)
        resolver = _resolver(b'v=DKIM1; k=ed25519; p=' + base64.b64encode(raw))

        with caplog.at_level(logging.INFO, logger='DkimMailer'):
            check_domain_key('ed', 'example.com', signer.public_key, SigningAlgorithm.ED25519_SHA256,
                             resolver=resolver)

        assert "Domain key ed._domainkey.example.com matches the private key" in caplog.text

    def test_ed25519_mismatch(self, fixtures_dir):
        signer = DkimSigner('example.com', 'ed', (fixtures_dir / 'ed25519_private.key').read_bytes())
        resolver = _resolver(b'v=DKIM1; k=ed25519; p=' + base64.b64encode(b'\x00' * 32))

        with pytest.raises(DomainKeyError, match="does not match"):
            check_domain_key('ed', 'example.com', signer.public_key, SigningAlgorithm.ED25519_SHA256,
                             resolver=resolver)
