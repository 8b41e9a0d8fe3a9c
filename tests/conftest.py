"""
Pytest configuration and fixtures for all tests.
"""

import os
import sys
from pathlib import Path

import pytest

# Add the repository root to the Python path before any imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

FIXTURES_DIR = Path(__file__).parent / 'fixtures'


@pytest.fixture
def fixtures_dir():
    """Directory holding the key fixtures."""
    return FIXTURES_DIR


@pytest.fixture
def rsa_pem():
    """PKCS#1 PEM RSA private key bytes."""
    return (FIXTURES_DIR / 'dkim_private.pem').read_bytes()


@pytest.fixture
def rsa_public_b64():
    """Base64 SubjectPublicKeyInfo of the fixture key, as published in DNS."""
    return (FIXTURES_DIR / 'dkim_public.txt').read_text().strip()


@pytest.fixture
def other_public_b64():
    """Base64 public key of an unrelated RSA key."""
    return (FIXTURES_DIR / 'other_public.txt').read_text().strip()


@pytest.fixture
def sample_message():
    """Minimal RFC 5322 message with CRLF line endings."""
    return (
        b"From: Alice <alice@example.com>\r\n"
        b"To: bob@example.org\r\n"
        b"Subject: Hello\r\n"
        b"Date: Mon, 19 Oct 2026 10:00:00 +0000\r\n"
        b"Message-ID: <1@example.com>\r\n"
        b"\r\n"
        b"Hi Bob,\r\n"
        b"see you tomorrow.\r\n"
    )


@pytest.fixture
def dkim_properties():
    """Complete dkim.* bundle pointing at the fixture key through the classpath."""
    return {
        'dkim.selector': 'mail',
        'dkim.signing-domain': 'example.com',
        'dkim.private-key': 'classpath:dkim_private.pem',
        'dkim.signer.check-domain-key': 'false',
    }
