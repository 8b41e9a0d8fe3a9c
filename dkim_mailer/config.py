"""
Configuration settings for dkim-mailer

Properties are a flat mapping of dotted keys (``dkim.selector``,
``mail.host``, ``mail.properties.mail.smtp.auth``...). They are assembled
from the defaults below, an optional JSON file and the environment, in that
order of precedence.
"""
import json
import logging
import os
import re
from pathlib import Path

from .errors import InvalidPropertyError
from .utils.log import get_logger

logger = get_logger('config')

# DKIM signer defaults
DKIM_DEFAULTS = {
    'dkim.signer.header-canonicalization': 'RELAXED',
    'dkim.signer.body-canonicalization': 'SIMPLE',
    'dkim.signer.check-domain-key': 'true',
    'dkim.signer.length-param': 'true',
    'dkim.signer.copy-header-fields': 'false',
}

# Mail transport defaults
MAIL_DEFAULTS = {
    'mail.protocol': 'smtp',
    'mail.test-connection': 'false',
}

# Environment variable -> property key
ENV_PROPERTIES = {
    'DKIM_SELECTOR': 'dkim.selector',
    'DKIM_SIGNING_DOMAIN': 'dkim.signing-domain',
    'DKIM_PRIVATE_KEY': 'dkim.private-key',
    'DKIM_SIGNER_IDENTITY': 'dkim.signer.identity',
    'DKIM_SIGNER_HEADER_CANONICALIZATION': 'dkim.signer.header-canonicalization',
    'DKIM_SIGNER_BODY_CANONICALIZATION': 'dkim.signer.body-canonicalization',
    'DKIM_SIGNER_CHECK_DOMAIN_KEY': 'dkim.signer.check-domain-key',
    'DKIM_SIGNER_SIGNING_ALGORITHM': 'dkim.signer.signing-algorithm',
    'DKIM_SIGNER_LENGTH_PARAM': 'dkim.signer.length-param',
    'DKIM_SIGNER_COPY_HEADER_FIELDS': 'dkim.signer.copy-header-fields',
    'MAIL_HOST': 'mail.host',
    'MAIL_PORT': 'mail.port',
    'MAIL_USERNAME': 'mail.username',
    'MAIL_PASSWORD': 'mail.password',
    'MAIL_PROTOCOL': 'mail.protocol',
    'MAIL_DEFAULT_ENCODING': 'mail.default-encoding',
    'MAIL_TEST_CONNECTION': 'mail.test-connection',
}

# Where main() looks for the JSON config and the log directory
CONFIG_PATH_ENV = 'DKIM_MAILER_CONFIG'
LOG_DIR_ENV = 'DKIM_MAILER_LOG_DIR'
LOG_LEVEL_ENV = 'DKIM_MAILER_LOG_LEVEL'
DEFAULT_LOG_LEVEL = 'INFO'

MAIL_PROPERTIES_PREFIX = 'mail.properties.'

_CAMEL_RE = re.compile(r'(?<=[a-z0-9])(?=[A-Z])')


def canonical_key(key):
    """Relaxed binding: signingDomain, signing_domain and SIGNING-DOMAIN are signing-domain.

    Keys below mail.properties. are transport properties and stay verbatim.
    """
    if key[:len(MAIL_PROPERTIES_PREFIX)].lower() == MAIL_PROPERTIES_PREFIX:
        return MAIL_PROPERTIES_PREFIX + key[len(MAIL_PROPERTIES_PREFIX):]
    segments = (_CAMEL_RE.sub('-', segment).replace('_', '-').lower() for segment in key.split('.'))
    return '.'.join(segments)


def flatten(data, prefix=''):
    """Flatten nested mappings into dotted keys with string values"""
    flat = {}
    for key, value in data.items():
        name = f'{prefix}.{key}' if prefix else str(key)
        if isinstance(value, dict):
            flat.update(flatten(value, name))
        elif value is None:
            continue
        elif isinstance(value, bool):
            flat[name] = 'true' if value else 'false'
        else:
            flat[name] = str(value)
    return flat


def load_json_properties(path):
    """Load a JSON config file (nested or already dotted) as properties"""
    path = Path(path)
    try:
        with path.open('r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidPropertyError(f"Malformed config file {path}: {e}")

    if not isinstance(data, dict):
        raise InvalidPropertyError(f"Config file {path} must contain a JSON object")

    properties = flatten(data)
    logger.debug(f"Loaded {len(properties)} properties from {path}")
    return properties


def environment_properties(environ=None):
    environ = os.environ if environ is None else environ
    return {key: environ[var] for var, key in ENV_PROPERTIES.items() if var in environ}


def normalize(properties):
    return {canonical_key(key): value for key, value in properties.items()}


def load_properties(path=None, environ=None, overrides=None):
    """Assemble the property bundle.

    Precedence, lowest first: built-in defaults, the JSON file at ``path``
    (or ``$DKIM_MAILER_CONFIG``), environment variables, ``overrides``.
    """
    environ = os.environ if environ is None else environ

    properties = {}
    properties.update(DKIM_DEFAULTS)
    properties.update(MAIL_DEFAULTS)

    path = path or environ.get(CONFIG_PATH_ENV)
    if path:
        properties.update(normalize(load_json_properties(path)))

    properties.update(environment_properties(environ))

    if overrides:
        properties.update(normalize(flatten(overrides)))

    return properties


def log_level(environ=None):
    environ = os.environ if environ is None else environ
    name = environ.get(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL).upper()
    # TRACE is registered by utils.log
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO
