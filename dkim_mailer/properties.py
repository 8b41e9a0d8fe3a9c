"""
Typed views of the ``dkim.*`` and ``mail.*`` property namespaces
"""
import codecs
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Mapping, Optional

from .config import MAIL_PROPERTIES_PREFIX, normalize
from .errors import InvalidPropertyError
from .utils.log import get_logger

logger = get_logger('properties')

_TRUE = {'true', 'yes', 'on', '1'}
_FALSE = {'false', 'no', 'off', '0'}

SUPPORTED_PROTOCOLS = ('smtp', 'smtps')


def _loose(text):
    return text.replace('_', '').replace('-', '').lower()


class Canonicalization(Enum):
    SIMPLE = 'simple'
    RELAXED = 'relaxed'

    @property
    def tag(self) -> bytes:
        return self.value.encode('ascii')

    @classmethod
    def parse(cls, value, property_name=None):
        if isinstance(value, cls):
            return value
        for member in cls:
            if _loose(str(value)) in (_loose(member.name), _loose(member.value)):
                return member
        raise InvalidPropertyError(
            f"Unknown canonicalization {value!r}, expected one of {[m.name for m in cls]}",
            property_name,
        )


class SigningAlgorithm(Enum):
    SHA256_WITH_RSA = 'rsa-sha256'
    SHA1_WITH_RSA = 'rsa-sha1'
    ED25519_SHA256 = 'ed25519-sha256'

    @property
    def tag(self) -> bytes:
        return self.value.encode('ascii')

    @property
    def key_type(self) -> str:
        return self.value.split('-', 1)[0]

    @property
    def hash_name(self) -> str:
        return self.value.split('-', 1)[1]

    @classmethod
    def parse(cls, value, property_name=None):
        if isinstance(value, cls):
            return value
        for member in cls:
            # SHA256_WITH_RSA, SHA256withRSA and rsa-sha256 all name the same thing
            if _loose(str(value)) in (_loose(member.name), _loose(member.value)):
                return member
        raise InvalidPropertyError(
            f"Unknown signing algorithm {value!r}, expected one of {[m.name for m in cls]}",
            property_name,
        )


def parse_bool(value, property_name=None):
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise InvalidPropertyError(f"Expected a boolean, got {value!r}", property_name)


def parse_port(value, property_name='mail.port'):
    if value is None or value == '':
        return None
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise InvalidPropertyError(f"Expected a port number, got {value!r}", property_name)
    if not 0 < port < 65536:
        raise InvalidPropertyError(f"Port out of range: {port}", property_name)
    return port


def _text(properties, key):
    value = properties.get(key)
    if value is None:
        return None
    return str(value).strip()


@dataclass
class SigningConfig:
    """Settings bound from ``dkim.*``.

    ``selector``, ``signing_domain`` and ``private_key`` must all be
    non-empty before a signer is built; the rest are signer options.
    """

    selector: Optional[str] = None
    signing_domain: Optional[str] = None
    private_key: Optional[str] = None
    identity: Optional[str] = None
    header_canonicalization: Canonicalization = Canonicalization.RELAXED
    body_canonicalization: Canonicalization = Canonicalization.SIMPLE
    check_domain_key: bool = True
    signing_algorithm: Optional[SigningAlgorithm] = None
    length_param: bool = True
    copy_header_fields: bool = False

    def __post_init__(self):
        self.header_canonicalization = Canonicalization.parse(
            self.header_canonicalization, 'dkim.signer.header-canonicalization')
        self.body_canonicalization = Canonicalization.parse(
            self.body_canonicalization, 'dkim.signer.body-canonicalization')
        # None lets the signer pick from the key type
        if self.signing_algorithm is not None:
            self.signing_algorithm = SigningAlgorithm.parse(
                self.signing_algorithm, 'dkim.signer.signing-algorithm')

    @classmethod
    def from_properties(cls, properties: Mapping[str, str]) -> 'SigningConfig':
        props = normalize(properties)
        config = cls(
            selector=_text(props, 'dkim.selector'),
            signing_domain=_text(props, 'dkim.signing-domain'),
            private_key=_text(props, 'dkim.private-key'),
            identity=_text(props, 'dkim.signer.identity') or None,
            header_canonicalization=props.get('dkim.signer.header-canonicalization', Canonicalization.RELAXED),
            body_canonicalization=props.get('dkim.signer.body-canonicalization', Canonicalization.SIMPLE),
            check_domain_key=parse_bool(props.get('dkim.signer.check-domain-key', True),
                                        'dkim.signer.check-domain-key'),
            signing_algorithm=_text(props, 'dkim.signer.signing-algorithm') or None,
            length_param=parse_bool(props.get('dkim.signer.length-param', True), 'dkim.signer.length-param'),
            copy_header_fields=parse_bool(props.get('dkim.signer.copy-header-fields', False),
                                          'dkim.signer.copy-header-fields'),
        )
        logger.debug(
            f"DKIM configured: selector={config.selector}, domain={config.signing_domain}, "
            f"algorithm={config.signing_algorithm.name if config.signing_algorithm else 'key default'}"
        )
        return config


@dataclass
class MailTransportConfig:
    """Settings bound from ``mail.*``; ``mail.properties.*`` lands in ``properties``"""

    host: Optional[str] = None
    port: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = None
    protocol: str = 'smtp'
    default_encoding: Optional[str] = None
    properties: Dict[str, str] = field(default_factory=dict)
    test_connection: bool = False

    def __post_init__(self):
        self.port = parse_port(self.port)
        self.protocol = (self.protocol or 'smtp').lower()
        if self.protocol not in SUPPORTED_PROTOCOLS:
            raise InvalidPropertyError(
                f"Unsupported protocol {self.protocol!r}, expected one of {SUPPORTED_PROTOCOLS}",
                'mail.protocol',
            )
        if self.default_encoding:
            try:
                codecs.lookup(self.default_encoding)
            except LookupError:
                raise InvalidPropertyError(f"Unknown encoding {self.default_encoding!r}",
                                           'mail.default-encoding')

    @classmethod
    def from_properties(cls, properties: Mapping[str, str]) -> 'MailTransportConfig':
        props = normalize(properties)
        extra = {
            key[len(MAIL_PROPERTIES_PREFIX):]: str(value)
            for key, value in props.items()
            if key.startswith(MAIL_PROPERTIES_PREFIX)
        }
        config = cls(
            host=_text(props, 'mail.host') or None,
            port=_text(props, 'mail.port'),
            username=_text(props, 'mail.username') or None,
            password=props.get('mail.password') or None,
            protocol=_text(props, 'mail.protocol') or 'smtp',
            default_encoding=_text(props, 'mail.default-encoding') or None,
            properties=extra,
            test_connection=parse_bool(props.get('mail.test-connection', False), 'mail.test-connection'),
        )
        logger.debug(f"Mail transport configured: {config.protocol}://{config.host}:{config.port}")
        return config
