"""
Discovery of managed images referenced by diary HTML

``ImageReferenceScanner`` walks the markup with ``html.parser``. Anything
implementing ``ReferenceScanner`` can replace it without touching the
rotation sweep.
"""

from abc import ABC, abstractmethod
from html.parser import HTMLParser
from typing import Iterable, List, Optional, Sequence
from urllib.parse import unquote, urlsplit

from diary_vault.errors import InvalidIdentifierError
from diary_vault.storage.base import validate_identifier

DEFAULT_MANAGED_PREFIX = "/api/uploads/"


class _ImageSourceCollector(HTMLParser):
    """Collects the src of every img tag, entity-decoded."""

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.sources: List[str] = []

    def handle_starttag(self, tag, attrs):
        if tag != "img":
            return
        for name, value in attrs:
            if name == "src":
                if value:
                    self.sources.append(value.strip())
                return


class ReferenceScanner(ABC):
    """Finds blob identifiers referenced by a piece of diary content."""

    @abstractmethod
    def extract(self, content: str) -> List[str]:
        """Deduplicated identifiers in first-seen order."""

    def scan_all(self, contents: Iterable[str]) -> List[str]:
        """Identifiers referenced by any of ``contents``, each listed once."""
        seen = {}
        for content in contents:
            for identifier in self.extract(content or ""):
                seen.setdefault(identifier, None)
        return list(seen)


class ImageReferenceScanner(ReferenceScanner):
    """
    Extract ``src`` values of ``<img>`` tags that point at managed storage.

    A src is managed when its path starts with ``managed_prefix`` and it
    is either relative or hosted on one of ``managed_hosts``. Query
    strings and fragments are ignored; the identifier is the
    percent-decoded remainder of the path and must be a single file name.
    A src that does not parse as a URL is not managed.
    """

    def __init__(self, managed_prefix: str = DEFAULT_MANAGED_PREFIX, managed_hosts: Sequence[str] = ()):
        if not managed_prefix.endswith("/"):
            managed_prefix += "/"
        self.managed_prefix = managed_prefix
        self.managed_hosts = frozenset(h.lower() for h in managed_hosts)

    @classmethod
    def from_config(cls, config) -> "ImageReferenceScanner":
        return cls(config.managed_url_prefix, config.managed_hosts)

    def image_sources(self, content: str) -> List[str]:
        """Raw src values of every img tag, in document order."""
        collector = _ImageSourceCollector()
        collector.feed(content)
        collector.close()
        return collector.sources

    def identifier_for(self, src: str) -> Optional[str]:
        """Identifier referenced by ``src``, or None if it is not managed."""
        try:
            parts = urlsplit(src)
            hostname = parts.hostname or ""
        except ValueError:
            return None

        if parts.scheme or parts.netloc:
            if parts.scheme not in ("http", "https", ""):
                return None
            if hostname not in self.managed_hosts:
                return None
        if not parts.path.startswith(self.managed_prefix):
            return None

        try:
            return validate_identifier(unquote(parts.path[len(self.managed_prefix):]))
        except InvalidIdentifierError:
            return None

    def extract(self, content: str) -> List[str]:
        found = {}
        for src in self.image_sources(content):
            identifier = self.identifier_for(src)
            if identifier is not None:
                found.setdefault(identifier, None)
        return list(found)
