"""Structural markup events produced by the streaming scanner.

The scanner reduces raw XML to two event kinds, delivered in document order:
an element was opened (with its attributes) or an element was closed.
Names and attribute keys are lower-cased before delivery because Apple Health
exports are inconsistent about casing (``startDate`` vs ``startdate``).
"""

from dataclasses import dataclass, field
from typing import Iterator, Mapping, Optional, Union


class AttributeMap(Mapping[str, str]):
    """Read-only, case-insensitive view over an element's attributes.

    Lookups are normalized to lower case, so ``attrs["startDate"]`` and
    ``attrs["startdate"]`` are the same key. ``text`` and ``optional`` remove
    the missing-key ambiguity for callers that only care about values.
    """

    __slots__ = ("_items",)

    def __init__(self, items: Optional[Mapping[str, str]] = None):
        self._items = {key.lower(): value for key, value in (items or {}).items()}

    def __getitem__(self, key: str) -> str:
        return self._items[key.lower()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._items

    def __repr__(self) -> str:
        return f"AttributeMap({self._items!r})"

    def text(self, key: str) -> str:
        """Return the attribute value, or an empty string when absent."""
        return self._items.get(key.lower(), "")

    def optional(self, key: str) -> Optional[str]:
        """Return the attribute value, or None when absent or empty."""
        return self._items.get(key.lower()) or None


@dataclass(frozen=True)
class ElementOpened:
    """A start tag with its fully resolved attribute mapping."""

    name: str
    attributes: AttributeMap = field(default_factory=AttributeMap)


@dataclass(frozen=True)
class ElementClosed:
    """An end tag matching a previously opened element."""

    name: str


ElementEvent = Union[ElementOpened, ElementClosed]
