"""
Resolve configured resource locations to readable files

Locations follow the usual prefixes:

- ``classpath:keys/dkim.pem`` is looked up relative to each ``sys.path`` entry
- ``file:keys/dkim.pem``, ``file:/etc/dkim.pem`` and ``file:///etc/dkim.pem``
  are filesystem paths
- a location without a prefix is a classpath-relative lookup

If none of those match, the raw string is tried as a plain filesystem path.
That last strategy is deprecated and flagged on the returned ``Resource``.
"""
import re
import sys
from pathlib import Path
from urllib.parse import unquote, urlparse
from urllib.request import url2pathname

from ..errors import ResourceNotFoundError
from .log import TRACE, get_logger

logger = get_logger('resources')

CLASSPATH_PREFIX = 'classpath:'
FILE_PREFIX = 'file:'

# Single letters are Windows drive names, not schemes
_SCHEME_RE = re.compile(r'^[A-Za-z][A-Za-z0-9+.-]+:')


class Resource:
    def __init__(self, location, path, deprecated=False):
        self.location = location
        self.path = Path(path)
        self.deprecated = deprecated

    def open(self):
        """Open the resource for binary reading"""
        return self.path.open('rb')

    def __repr__(self):
        return f"Resource(location={self.location!r}, path='{self.path}', deprecated={self.deprecated})"


class ResourceLoader:
    """Ordered chain of resolution strategies; the first match wins"""

    def __init__(self, search_path=None):
        self.search_path = list(search_path) if search_path is not None else None
        self.strategies = [
            ('classpath', self._from_classpath_prefix, False),
            ('file', self._from_file_url, False),
            ('classpath-relative', self._from_plain_location, False),
            ('filesystem', self._from_raw_path, True),
        ]

    def _roots(self):
        if self.search_path is not None:
            return [Path(entry or '.') for entry in self.search_path]
        # The working directory is not a classpath root
        return [Path(entry) for entry in sys.path if entry]

    def _find_on_classpath(self, relative):
        relative = relative.lstrip('/')
        if not relative:
            return None
        for root in self._roots():
            candidate = root / relative
            if candidate.is_file():
                return candidate
        return None

    def _from_classpath_prefix(self, location):
        if not location.startswith(CLASSPATH_PREFIX):
            return None
        return self._find_on_classpath(location[len(CLASSPATH_PREFIX):])

    def _from_file_url(self, location):
        if not location.startswith(FILE_PREFIX):
            return None
        path = url2pathname(unquote(urlparse(location).path))
        if not path:
            return None
        candidate = Path(path)
        return candidate if candidate.is_file() else None

    def _from_plain_location(self, location):
        if _SCHEME_RE.match(location):
            return None
        return self._find_on_classpath(location)

    def _from_raw_path(self, location):
        candidate = Path(location)
        return candidate if candidate.is_file() else None

    def resolve(self, location, property_name=None):
        """Return the first Resource any strategy finds for location"""
        if not location:
            raise ResourceNotFoundError(location, property_name)

        for name, strategy, deprecated in self.strategies:
            path = strategy(location)
            logger.log(TRACE, f"Strategy {name} for {location!r}: {path}")
            if path is not None:
                return Resource(location, path, deprecated=deprecated)

        raise ResourceNotFoundError(location, property_name)

    def open(self, location, property_name=None):
        return self.resolve(location, property_name).open()
