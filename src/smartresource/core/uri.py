"""Structured resource identifiers (source of truth).

``UriString`` is the only uri type flowing through the routing core. It is
parsed once and never mutated.

Parsing
-------
``UriString(value)`` accepts a string or another ``UriString`` (copied).

- Backslashes become forward slashes; surrounding whitespace is dropped.
  Empty input raises ``ValueError``; ``None`` raises ``TypeError``.
- A leading drive letter (``c:/temp``) is a rooted file path, not a scheme:
  it is read as ``file:///c:/temp``.
- Components come from ``urllib.parse.urlsplit``: ``scheme`` (lower-cased),
  ``authority``, ``path``, ``query`` and ``fragment``.
- ``query`` is an immutable mapping built with ``parse_qsl`` (blank values
  kept). A repeated key raises ``ValueError``.

Rendering
---------
``str(uri)`` is canonical: ``scheme:`` when present, ``//authority`` when an
authority exists or an absolute uri has a rooted path, the path, the query
sorted by key and the fragment. Equality and hashing use the canonical form,
so two uris differing only in query-parameter order are the same resource.

``to_string(scheme=False)`` renders the same form without the scheme; backends
that ignore schemes key their items with it.

Invariants
----------
- ``is_absolute`` is true exactly when a scheme is present.
- ``path_decoded`` is the percent-decoded path.
"""

from __future__ import annotations

import re
from types import MappingProxyType
from typing import Any, Mapping, Optional
from urllib.parse import parse_qsl, quote, unquote, urlencode, urlsplit

__all__ = ["UriString"]

_DRIVE_PATTERN = re.compile(r"^[a-zA-Z]:/")


class UriString:
    """Parsed, canonical resource identifier."""

    __slots__ = ("scheme", "authority", "path", "query", "fragment")

    def __init__(self, value: Any) -> None:
        if isinstance(value, UriString):
            for slot in self.__slots__:
                object.__setattr__(self, slot, getattr(value, slot))
            return
        if value is None:
            raise TypeError("UriString requires a value")
        text = str(value).strip().replace("\\", "/")
        if not text:
            raise ValueError("Uri cannot be empty")
        if _DRIVE_PATTERN.match(text):
            text = f"file:///{text}"
        parts = urlsplit(text)
        object.__setattr__(self, "scheme", parts.scheme.lower())
        object.__setattr__(self, "authority", parts.netloc)
        object.__setattr__(self, "path", parts.path)
        query: dict = {}
        for key, item in parse_qsl(parts.query, keep_blank_values=True):
            if key in query:
                raise ValueError(f"Uri '{text}' repeats query key '{key}'")
            query[key] = item
        object.__setattr__(self, "query", MappingProxyType(query))
        object.__setattr__(self, "fragment", parts.fragment)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"UriString is immutable (cannot set {name!r})")

    @classmethod
    def create_query(
        cls, scheme: str, path: str, query: Optional[Mapping[str, Any]] = None
    ) -> "UriString":
        """Build ``scheme:path?query`` from parts, quoting the path."""
        text = f"{scheme}:{quote(path.strip('/'))}" if scheme else quote(path)
        if query:
            text += "?" + urlencode({key: str(value) for key, value in query.items()})
        return cls(text)

    @property
    def is_absolute(self) -> bool:
        return bool(self.scheme)

    @property
    def is_relative(self) -> bool:
        return not self.scheme

    @property
    def path_decoded(self) -> str:
        return unquote(self.path)

    def to_string(self, *, scheme: bool = True) -> str:
        chunks = []
        use_scheme = self.scheme if scheme else ""
        if use_scheme:
            chunks.append(f"{use_scheme}:")
        if self.authority or (use_scheme and self.path.startswith("/")):
            chunks.append(f"//{self.authority}")
        chunks.append(self.path)
        if self.query:
            chunks.append("?" + urlencode(sorted(self.query.items())))
        if self.fragment:
            chunks.append(f"#{self.fragment}")
        return "".join(chunks)

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"UriString({self.to_string()!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, str):
            try:
                other = UriString(other)
            except ValueError:
                return False
        if not isinstance(other, UriString):
            return NotImplemented
        return self.to_string() == other.to_string()

    def __hash__(self) -> int:
        return hash(self.to_string())
