"""
Check the published DKIM domain key against the local private key
"""
import base64

import dns.exception
import dns.resolver
from cryptography.hazmat.primitives import serialization
from dkim.crypto import UnparsableKeyError, parse_public_key
from dkim.util import InvalidTagValueList, parse_tag_value

from ..errors import DomainKeyError
from ..utils.log import get_logger

logger = get_logger('domain_key')

DNS_TIMEOUT = 5.0


def domain_key_name(selector, domain):
    return f"{selector}._domainkey.{domain}"


def fetch_domain_key(selector, domain, resolver=None):
    """Look up and parse the TXT record at <selector>._domainkey.<domain>"""
    name = domain_key_name(selector, domain)
    try:
        if resolver is None:
            answers = dns.resolver.resolve(name, 'TXT', lifetime=DNS_TIMEOUT)
        else:
            answers = resolver.resolve(name, 'TXT')
    except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer):
        raise DomainKeyError(f"No DKIM domain key published at {name}")
    except dns.exception.DNSException as e:
        raise DomainKeyError(f"DNS lookup for {name} failed: {e}")

    # A key may be split across several character strings
    records = [b''.join(rdata.strings) for rdata in answers]
    if not records:
        raise DomainKeyError(f"No DKIM domain key published at {name}")
    if len(records) > 1:
        logger.warning(f"{len(records)} TXT records at {name}, using the first")

    try:
        tags = parse_tag_value(records[0])
    except InvalidTagValueList as e:
        raise DomainKeyError(f"Malformed domain key at {name}: {e}")

    logger.debug(f"Fetched domain key {name}: tags={sorted(t.decode() for t in tags)}")
    return tags


def check_domain_key(selector, domain, public_key, algorithm, resolver=None):
    """Raise DomainKeyError unless the published key can verify our signatures.

    ``public_key`` is the cryptography public key of the signing key.
    """
    name = domain_key_name(selector, domain)
    tags = fetch_domain_key(selector, domain, resolver=resolver)

    public = tags.get(b'p')
    if public is None:
        raise DomainKeyError(f"Domain key at {name} has no p= tag")
    if not public.strip():
        raise DomainKeyError(f"Domain key at {name} has been revoked")

    key_type = tags.get(b'k', b'rsa').decode('ascii', 'replace').strip().lower()
    if key_type != algorithm.key_type:
        raise DomainKeyError(
            f"Domain key at {name} is k={key_type}, signing algorithm is {algorithm.value}")

    hashes = tags.get(b'h')
    if hashes is not None:
        allowed = [h.strip().lower() for h in hashes.decode('ascii', 'replace').split(':')]
        if algorithm.hash_name not in allowed:
            raise DomainKeyError(f"Domain key at {name} does not allow {algorithm.hash_name} (h={hashes.decode()})")

    services = tags.get(b's')
    if services is not None:
        allowed = [s.strip().lower() for s in services.decode('ascii', 'replace').split(':')]
        if not ({'email', '*'} & set(allowed)):
            raise DomainKeyError(f"Domain key at {name} is not for email (s={services.decode()})")

    try:
        public_bytes = base64.b64decode(b''.join(public.split()))
    except ValueError as e:
        raise DomainKeyError(f"Domain key at {name} is not valid base64: {e}")

    if algorithm.key_type == 'ed25519':
        raw = public_key.public_bytes(serialization.Encoding.Raw, serialization.PublicFormat.Raw)
        if public_bytes != raw:
            raise DomainKeyError(f"Domain key at {name} does not match the private key")
        logger.info(f"Domain key {name} matches the private key")
        return tags

    try:
        published = parse_public_key(public_bytes)
    except UnparsableKeyError as e:
        raise DomainKeyError(f"Domain key at {name} could not be parsed: {e}")

    numbers = public_key.public_numbers()
    if published['modulus'] != numbers.n or published['publicExponent'] != numbers.e:
        raise DomainKeyError(f"Domain key at {name} does not match the private key")

    logger.info(f"Domain key {name} matches the private key")
    return tags
