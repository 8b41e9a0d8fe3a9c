"""
Conditional wiring of the DKIM signer and the signing mail sender

The pipeline runs once at startup:

1. bind ``dkim.*`` and ``mail.*`` from the property bundle
2. stop unless selector, signing domain and private key are all set
3. resolve the private key and build the signer (or reuse the one given)
4. build the mail sender around the signer

Every failure propagates; a misconfigured signer must never turn into
unsigned mail.
"""
from dataclasses import dataclass
from typing import Optional

from .config import load_properties, normalize
from .errors import ResourceNotFoundError
from .mail.sender import DkimMailSender
from .properties import MailTransportConfig, SigningConfig
from .signing.signer import DkimSigner
from .utils.log import TRACE, get_logger
from .utils.resources import ResourceLoader

logger = get_logger('autoconfigure')

PRIVATE_KEY_PROPERTY = 'dkim.private-key'
DEPRECATED_PATH_WARNING = (
    "Referencing property [dkim.private-key] with an absolute path is deprecated. "
    "You should use the classpath: or file: protocols."
)


@dataclass
class MailSigningContext:
    signing_config: SigningConfig
    transport_config: MailTransportConfig
    signer: Optional[DkimSigner] = None
    mail_sender: Optional[DkimMailSender] = None

    @property
    def active(self):
        return self.signer is not None


def should_activate(config):
    """True iff selector, signing domain and private key are all non-empty"""
    logger.log(TRACE, "Validating DKIM private key configuration property")
    if config.private_key is not None and not config.private_key.strip():
        logger.warning("Private key property must not be null")
        return False

    missing = [
        name for name, value in (
            ('dkim.selector', config.selector),
            ('dkim.signing-domain', config.signing_domain),
            (PRIVATE_KEY_PROPERTY, config.private_key),
        )
        if not value or not str(value).strip()
    ]
    if missing:
        logger.log(TRACE, f"DKIM signing inactive, missing {missing}")
        return False
    return True


def resolve_private_key(location, loader=None):
    """Open the private key, falling back to a raw filesystem path"""
    loader = loader or ResourceLoader()
    resource = loader.resolve(location, PRIVATE_KEY_PROPERTY)
    if resource.deprecated:
        logger.warning(DEPRECATED_PATH_WARNING)
    logger.debug(f"Loading DKIM private key from {resource.path}")
    return resource.open()


def build_signer(config, key_stream):
    signer = DkimSigner(config.signing_domain, config.selector, key_stream)
    signer.identity = config.identity
    signer.header_canonicalization = config.header_canonicalization
    signer.body_canonicalization = config.body_canonicalization
    signer.check_domain_key = config.check_domain_key
    if config.signing_algorithm is not None:
        signer.signing_algorithm = config.signing_algorithm
    signer.length_param = config.length_param
    signer.copy_header_fields = config.copy_header_fields
    return signer


def build_mail_sender(signer, transport_config):
    sender = DkimMailSender(signer)
    sender.host = transport_config.host
    if transport_config.port is not None:
        sender.port = transport_config.port
    sender.username = transport_config.username
    sender.password = transport_config.password
    sender.protocol = transport_config.protocol
    if transport_config.default_encoding is not None:
        sender.default_encoding = transport_config.default_encoding
    if transport_config.properties:
        sender.mail_properties = dict(transport_config.properties)

    if transport_config.test_connection:
        sender.test_connection()
    return sender


def configure(properties=None, signer=None, loader=None):
    """Run the whole pipeline and return what was built.

    ``properties`` defaults to ``config.load_properties()``. A ``signer``
    passed in replaces the one built from ``dkim.private-key``; the
    activation gate still applies.
    """
    if properties is None:
        properties = load_properties()
    properties = normalize(properties)

    signing_config = SigningConfig.from_properties(properties)
    transport_config = MailTransportConfig.from_properties(properties)
    context = MailSigningContext(signing_config, transport_config)

    if not should_activate(signing_config):
        logger.info("DKIM signing is not configured, no signing mail sender created")
        return context

    if signer is None:
        try:
            key_stream = resolve_private_key(signing_config.private_key, loader)
        except ResourceNotFoundError:
            logger.error(f"DKIM private key not found: {signing_config.private_key}")
            raise
        with key_stream:
            signer = build_signer(signing_config, key_stream)
    else:
        logger.info(f"Using provided DKIM signer {signer!r}")

    context.signer = signer
    context.mail_sender = build_mail_sender(signer, transport_config)
    logger.info(f"DKIM signing mail sender ready (d={signer.signing_domain}, s={signer.selector})")
    return context
