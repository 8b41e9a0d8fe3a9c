"""
DKIM signing package
"""
from .domain_key import check_domain_key, fetch_domain_key
from .signer import DkimSigner, ensure_algorithm_available, load_private_key

__all__ = ['DkimSigner', 'check_domain_key', 'ensure_algorithm_available', 'fetch_domain_key', 'load_private_key']
