"""
Mail transport package
"""
from .sender import DkimMailSender

__all__ = ['DkimMailSender']
