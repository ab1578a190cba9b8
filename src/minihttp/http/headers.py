"""
=============================================================================
HTTP HEADER MAP
=============================================================================

Case-insensitive, multi-valued header storage shared by requests and
responses.

=============================================================================
WHY NOT A PLAIN DICT?
=============================================================================

Two rules from RFC 7230 make a plain dict awkward:

    1. Header NAMES are case-insensitive:
           "Content-Type", "content-type" and "CONTENT-TYPE" are one header.

    2. A header may appear MORE THAN ONCE:
           Accept-Encoding: gzip\r\n
           Accept-Encoding: br\r\n

We keep every value, in the order received, under one canonical key:

    ┌───────────────────────────┬───────────────────────────────────────┐
    │  Received                 │  Stored                                │
    ├───────────────────────────┼───────────────────────────────────────┤
    │  user-agent: curl/8.0     │  "User-Agent"      → ["curl/8.0"]      │
    │  X-TAG: a                 │  "X-Tag"           → ["a", "b"]        │
    │  x-tag: b                 │                                        │
    └───────────────────────────┴───────────────────────────────────────┘

The canonical form capitalizes each dash-separated word, so serialized
output is stable no matter how a handler spelled the name.

=============================================================================
"""

from typing import Dict, Iterator, List, Optional, Tuple


def canonical_name(name: str) -> str:
    """
    Canonicalize a header name.

    Example:
        canonical_name("content-LENGTH")  # "Content-Length"
    """
    return "-".join(part.capitalize() for part in name.split("-"))


class Headers:
    """
    Case-insensitive mapping of header name → list of values.

    Usage:
        headers = Headers()
        headers.add("Accept", "text/html")
        headers.add("accept", "application/json")

        headers.get("ACCEPT")       # "text/html" (first value)
        headers.get_all("accept")   # ["text/html", "application/json"]

        headers["Content-Type"] = "text/plain"   # replaces all values
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, List[str]] = {}
        if initial:
            for name, value in initial.items():
                self.add(name, value)

    # =========================================================================
    # MUTATION
    # =========================================================================

    def add(self, name: str, value: str) -> None:
        """Append a value, keeping any values already stored under name."""
        self._values.setdefault(canonical_name(name), []).append(value)

    def set(self, name: str, value: str) -> None:
        """Replace every value of name with a single value."""
        self._values[canonical_name(name)] = [value]

    def extend_last(self, name: str, continuation: str) -> None:
        """
        Append text to the most recent value of name.

        Used for obsolete line folding, where a header line starting with
        whitespace continues the previous header's value.
        """
        values = self._values[canonical_name(name)]
        values[-1] = f"{values[-1]} {continuation}" if values[-1] else continuation

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Return the first value of name, or default when absent."""
        values = self._values.get(canonical_name(name))
        return values[0] if values else default

    def get_all(self, name: str) -> List[str]:
        """Return every value of name in insertion order (a copy)."""
        return list(self._values.get(canonical_name(name), []))

    def items(self) -> Iterator[Tuple[str, str]]:
        """Yield (canonical name, first value) pairs."""
        for name, values in self._values.items():
            if values:
                yield name, values[0]

    # =========================================================================
    # MAPPING PROTOCOL
    # =========================================================================

    def __getitem__(self, name: str) -> str:
        value = self.get(name)
        if value is None:
            raise KeyError(name)
        return value

    def __setitem__(self, name: str, value: str) -> None:
        self.set(name, value)

    def __delitem__(self, name: str) -> None:
        del self._values[canonical_name(name)]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and canonical_name(name) in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._values))

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Headers({self._values!r})"
