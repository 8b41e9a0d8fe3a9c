"""
dkim-mailer: DKIM signing for outgoing SMTP mail, wired from configuration
"""
from .autoconfigure import (
    MailSigningContext,
    build_mail_sender,
    build_signer,
    configure,
    resolve_private_key,
    should_activate,
)
from .errors import (
    ConfigurationError,
    DkimMailerError,
    DomainKeyError,
    InvalidKeyError,
    InvalidPropertyError,
    MailAuthenticationError,
    MailConnectionError,
    MailError,
    MailSendError,
    ResourceNotFoundError,
    SigningError,
    UnsupportedAlgorithmError,
)
from .mail import DkimMailSender
from .properties import Canonicalization, MailTransportConfig, SigningAlgorithm, SigningConfig
from .signing import DkimSigner

__version__ = '0.1.0'

__all__ = [
    'Canonicalization',
    'ConfigurationError',
    'DkimMailSender',
    'DkimMailerError',
    'DkimSigner',
    'DomainKeyError',
    'InvalidKeyError',
    'InvalidPropertyError',
    'MailAuthenticationError',
    'MailConnectionError',
    'MailError',
    'MailSendError',
    'MailSigningContext',
    'MailTransportConfig',
    'ResourceNotFoundError',
    'SigningAlgorithm',
    'SigningConfig',
    'SigningError',
    'UnsupportedAlgorithmError',
    'build_mail_sender',
    'build_signer',
    'configure',
    'resolve_private_key',
    'should_activate',
]
