"""
Utilities package
"""
from .log import TRACE, get_logger, setup_logging
from .resources import Resource, ResourceLoader

__all__ = ['TRACE', 'get_logger', 'setup_logging', 'Resource', 'ResourceLoader']
