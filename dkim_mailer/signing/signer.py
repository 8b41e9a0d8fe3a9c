"""
DKIM signer built on dkimpy
"""
import base64
import binascii
import importlib.util

import dkim
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519, rsa
from dkim.crypto import HASH_ALGORITHMS

from ..errors import InvalidKeyError, InvalidPropertyError, SigningError, UnsupportedAlgorithmError
from ..properties import Canonicalization, SigningAlgorithm
from ..utils.log import get_logger
from .domain_key import check_domain_key

logger = get_logger('signer')

# dkimpy writes its own debug output here
dkim_logger = get_logger('dkimpy')

PRIVATE_KEY_PROPERTY = 'dkim.private-key'


def load_private_key(data):
    """Parse PEM, DER (PKCS#1 or PKCS#8) or a base64 ed25519 seed.

    Returns ``(key_type, private_key)`` where ``private_key`` is a
    cryptography key object.
    """
    data = data.strip()
    if not data:
        raise InvalidKeyError("Private key is empty", PRIVATE_KEY_PROPERTY)

    try:
        if data.startswith(b'-----BEGIN'):
            key = serialization.load_pem_private_key(data, password=None)
        else:
            key = _load_seed(data) or serialization.load_der_private_key(data, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise InvalidKeyError(f"Private key could not be parsed: {e}", PRIVATE_KEY_PROPERTY)

    if isinstance(key, rsa.RSAPrivateKey):
        return 'rsa', key
    if isinstance(key, ed25519.Ed25519PrivateKey):
        return 'ed25519', key
    raise UnsupportedAlgorithmError(
        f"{type(key).__name__} keys cannot be used for DKIM, use an RSA or ed25519 key",
        PRIVATE_KEY_PROPERTY,
    )


def _load_seed(data):
    # dkimpy stores ed25519 private keys as a base64 32-byte seed
    try:
        seed = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        return None
    if len(seed) != 32:
        return None
    return ed25519.Ed25519PrivateKey.from_private_bytes(seed)


def _dkimpy_key(key_type, key):
    if key_type == 'ed25519':
        raw = key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )
        return base64.b64encode(raw)
    # dkimpy only parses PKCS#1 PEM
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )


def ensure_algorithm_available(algorithm):
    """Raise UnsupportedAlgorithmError if dkimpy cannot sign with algorithm here"""
    algorithm = SigningAlgorithm.parse(algorithm, 'dkim.signer.signing-algorithm')
    if algorithm.tag not in HASH_ALGORITHMS:
        raise UnsupportedAlgorithmError(
            f"Signing algorithm {algorithm.value} is not supported by the installed dkimpy",
            'dkim.signer.signing-algorithm',
        )
    if algorithm.key_type == 'ed25519' and importlib.util.find_spec('nacl') is None:
        raise UnsupportedAlgorithmError(
            f"Signing algorithm {algorithm.value} requires PyNaCl, which is not installed",
            'dkim.signer.signing-algorithm',
        )
    return algorithm


class DkimSigner:
    """Signs raw RFC 5322 messages for one signing domain and selector.

    Options are set once, right after construction, and read back
    unchanged afterwards.
    """

    def __init__(self, signing_domain, selector, private_key):
        if not signing_domain or not str(signing_domain).strip():
            raise InvalidPropertyError("Signing domain must not be empty", 'dkim.signing-domain')
        if not selector or not str(selector).strip():
            raise InvalidPropertyError("Selector must not be empty", 'dkim.selector')

        # dkimpy compares i= and d= case-sensitively
        self.signing_domain = str(signing_domain).strip().lower()
        self.selector = str(selector).strip()

        if hasattr(private_key, 'read'):
            private_key = private_key.read()
        if isinstance(private_key, str):
            private_key = private_key.encode('ascii', 'replace')

        self.key_type, self._private_key = load_private_key(private_key)
        self._dkim_key = _dkimpy_key(self.key_type, self._private_key)

        self._identity = None
        self._header_canonicalization = Canonicalization.RELAXED
        self._body_canonicalization = Canonicalization.SIMPLE
        self._check_domain_key = True
        if self.key_type == 'ed25519':
            self._signing_algorithm = SigningAlgorithm.ED25519_SHA256
        else:
            self._signing_algorithm = SigningAlgorithm.SHA256_WITH_RSA
        self._length_param = True
        self._copy_header_fields = False
        self._domain_key_checked = False

        logger.info(f"DKIM signer ready for d={self.signing_domain}, s={self.selector} ({self.key_type} key)")

    @property
    def public_key(self):
        return self._private_key.public_key()

    @property
    def identity(self):
        return self._identity

    @identity.setter
    def identity(self, value):
        if value is None or not str(value).strip():
            self._identity = None
            return
        value = str(value).strip()
        local, at, domain = value.rpartition('@')
        domain = domain.lower()
        if not at or not (domain == self.signing_domain or domain.endswith('.' + self.signing_domain)):
            raise InvalidPropertyError(
                f"Identity {value!r} must be in the signing domain {self.signing_domain} or one of its subdomains",
                'dkim.signer.identity',
            )
        self._identity = f"{local}@{domain}"

    @property
    def header_canonicalization(self):
        return self._header_canonicalization

    @header_canonicalization.setter
    def header_canonicalization(self, value):
        self._header_canonicalization = Canonicalization.parse(value, 'dkim.signer.header-canonicalization')

    @property
    def body_canonicalization(self):
        return self._body_canonicalization

    @body_canonicalization.setter
    def body_canonicalization(self, value):
        self._body_canonicalization = Canonicalization.parse(value, 'dkim.signer.body-canonicalization')

    @property
    def check_domain_key(self):
        return self._check_domain_key

    @check_domain_key.setter
    def check_domain_key(self, value):
        self._check_domain_key = bool(value)

    @property
    def signing_algorithm(self):
        return self._signing_algorithm

    @signing_algorithm.setter
    def signing_algorithm(self, value):
        algorithm = ensure_algorithm_available(value)
        if algorithm.key_type != self.key_type:
            raise InvalidKeyError(
                f"Private key is an {self.key_type} key and cannot sign with {algorithm.value}",
                PRIVATE_KEY_PROPERTY,
            )
        self._signing_algorithm = algorithm

    @property
    def length_param(self):
        return self._length_param

    @length_param.setter
    def length_param(self, value):
        self._length_param = bool(value)

    @property
    def copy_header_fields(self):
        return self._copy_header_fields

    @copy_header_fields.setter
    def copy_header_fields(self, value):
        value = bool(value)
        if value and not self._copy_header_fields:
            logger.warning("copy-header-fields is enabled but dkimpy does not write the z= tag; ignoring it")
        self._copy_header_fields = value

    def verify_domain_key(self, resolver=None):
        """Compare the published domain key with ours; cached after the first success"""
        if self._domain_key_checked:
            return
        check_domain_key(self.selector, self.signing_domain, self.public_key, self._signing_algorithm,
                         resolver=resolver)
        self._domain_key_checked = True

    def signature_header(self, message: bytes) -> bytes:
        """Return the DKIM-Signature header line (CRLF terminated) for message"""
        if self._check_domain_key:
            self.verify_domain_key()

        identity = self._identity.encode('utf-8') if self._identity else None
        try:
            return dkim.sign(
                message,
                self.selector.encode('ascii'),
                self.signing_domain.encode('idna'),
                self._dkim_key,
                identity=identity,
                canonicalize=(self._header_canonicalization.tag, self._body_canonicalization.tag),
                signature_algorithm=self._signing_algorithm.tag,
                length=self._length_param,
                logger=dkim_logger,
            )
        except dkim.DKIMException as e:
            raise SigningError(f"DKIM signing failed for d={self.signing_domain}: {e}")

    def sign(self, message: bytes) -> bytes:
        """Return message with its DKIM-Signature header prepended"""
        return self.signature_header(message) + message

    def __repr__(self):
        return (f"DkimSigner(signing_domain={self.signing_domain!r}, selector={self.selector!r}, "
                f"algorithm={self._signing_algorithm.value})")
