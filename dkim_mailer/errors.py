"""
Exceptions raised while configuring DKIM signing and sending mail
"""


class DkimMailerError(Exception):
    """Base class for all dkim-mailer errors"""

    def __init__(self, message, property_name=None):
        self.property_name = property_name
        if property_name:
            message = f"{message} [{property_name}]"
        super().__init__(message)


class ConfigurationError(DkimMailerError):
    """Startup-time configuration fault"""


class ResourceNotFoundError(ConfigurationError):
    """The private key could not be located by any resolution strategy"""

    def __init__(self, location, property_name='dkim.private-key'):
        self.location = location
        super().__init__(f"Private key resource not found: {location!r}", property_name)


class InvalidKeyError(ConfigurationError):
    """The private key material could not be parsed"""


class UnsupportedAlgorithmError(ConfigurationError):
    """The requested signing algorithm is not available in this runtime"""


class InvalidPropertyError(ConfigurationError):
    """A configuration value has the wrong shape"""


class SigningError(DkimMailerError):
    """dkimpy refused to sign a message"""


class DomainKeyError(SigningError):
    """The published domain key does not fit the configured private key"""


class MailError(DkimMailerError):
    """Base class for transport errors"""


class MailConnectionError(MailError):
    pass


class MailAuthenticationError(MailError):
    pass


class MailSendError(MailError):
    """One or more messages could not be delivered.

    ``failed_messages`` holds ``(message, exception)`` pairs.
    """

    def __init__(self, message, failed_messages=None):
        self.failed_messages = list(failed_messages or [])
        super().__init__(message)
