"""Manifest index parsing.

The manifest (``index.json``) maps product identifiers to the latest
published version and the digest of its artifact::

    {"nebula-standalone": {"length": 10,
                           "hashes": {"sha256": "..."},
                           "version": "2024.01.01-00.00.00"}}
"""

from __future__ import annotations

import json
import string
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from nebula_updater.errors import ParseError


@dataclass(frozen=True)
class IndexEntry:
    """One product record in the manifest.

    The default instance is the empty record returned for unknown products;
    an empty ``version`` means "no data" and must never be compared.
    """

    length: int = 0
    sha256: str = ""
    version: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.version

    @classmethod
    def from_dict(cls, product_id: str, data: Any) -> IndexEntry:
        if not isinstance(data, dict):
            raise ParseError(f"manifest entry for {product_id!r} is not an object")

        length = data.get("length", 0)
        if isinstance(length, bool) or not isinstance(length, int):
            raise ParseError(f"manifest entry for {product_id!r} has non-integer length")

        hashes = data.get("hashes", {})
        if not isinstance(hashes, dict):
            raise ParseError(f"manifest entry for {product_id!r} has malformed hashes")
        sha256 = hashes.get("sha256", "")

        version = data.get("version", "")
        if not isinstance(sha256, str) or not isinstance(version, str):
            raise ParseError(f"manifest entry for {product_id!r} has non-string fields")
        if not all(ch in string.hexdigits for ch in sha256):
            raise ParseError(f"manifest entry for {product_id!r} has a non-hex sha256")

        return cls(length=length, sha256=sha256, version=version)

    def to_dict(self) -> dict[str, Any]:
        return {
            "length": self.length,
            "hashes": {"sha256": self.sha256},
            "version": self.version,
        }


_EMPTY = IndexEntry()


class ManifestIndex:
    """Immutable view over a parsed manifest."""

    def __init__(self, entries: Mapping[str, IndexEntry]) -> None:
        self._entries = MappingProxyType(dict(entries))

    @classmethod
    def parse(cls, content: bytes | str) -> ManifestIndex:
        """Parse raw manifest bytes.

        Raises:
            ParseError: If the payload is not a JSON object of product records.
        """
        try:
            data = json.loads(content)
        except (ValueError, UnicodeDecodeError) as exc:
            raise ParseError(f"manifest is not valid JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise ParseError("manifest top level must be a JSON object")

        return cls({key: IndexEntry.from_dict(key, value) for key, value in data.items()})

    @property
    def entries(self) -> Mapping[str, IndexEntry]:
        return self._entries

    def lookup(self, product_id: str) -> IndexEntry:
        """Return the record for *product_id*, or the empty record."""
        return self._entries.get(product_id, _EMPTY)

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
