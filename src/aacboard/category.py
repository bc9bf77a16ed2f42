from __future__ import annotations

import logging
from typing import Iterator, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


class NotFoundError(LookupError):
    """Raised when a selected category or image is not on the current page."""

    def __init__(self, kind: str, image_id: str | None) -> None:
        self.kind = kind
        self.image_id = image_id
        super().__init__(f"{kind.capitalize()} not found: {image_id}")


ITEM_MARKER = ">"
FIELD_SEPARATOR = " "
_LINE_BREAKS = ("\n", "\r")


class InvalidKeyError(ValueError):
    """Raised for an image identifier the mapping file cannot hold."""


class InvalidTextError(ValueError):
    """Raised for a name or spoken text that spans more than one line."""


@runtime_checkable
class AACPage(Protocol):
    def select(self, image_id: str) -> str: ...

    def image_ids(self) -> list[str]: ...

    def has_image(self, image_id: str) -> bool: ...

    def add_item(self, image_id: str, text: str) -> None: ...

    def category_name(self) -> str: ...


def validate_image_id(image_id: object) -> str:
    if not isinstance(image_id, str) or not image_id:
        raise InvalidKeyError(f"Image id must be a non-empty string, got {image_id!r}")
    if image_id.startswith(ITEM_MARKER):
        raise InvalidKeyError(f"Image id must not start with {ITEM_MARKER!r}: {image_id!r}")
    if FIELD_SEPARATOR in image_id or any(brk in image_id for brk in _LINE_BREAKS):
        raise InvalidKeyError(f"Image id must not contain spaces or line breaks: {image_id!r}")
    return image_id


def validate_text(text: object) -> str:
    if text is None:
        return ""
    if not isinstance(text, str):
        raise InvalidTextError(f"Text must be a string, got {text!r}")
    if any(brk in text for brk in _LINE_BREAKS):
        raise InvalidTextError(f"Text must be a single line: {text!r}")
    return text


class AACCategory:
    """The image -> spoken text mappings of a single category.

    Items keep insertion order; re-adding an image replaces its text but keeps
    its position.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._items: dict[str, str] = {}

    def __repr__(self) -> str:
        return f"AACCategory({self._name!r}, items={len(self._items)})"

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, image_id: object) -> bool:
        return image_id in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    @property
    def name(self) -> str:
        return self._name

    def category_name(self) -> str:
        return self._name

    def add_item(self, image_id: str, text: str) -> None:
        try:
            key = validate_image_id(image_id)
            value = validate_text(text)
        except (InvalidKeyError, InvalidTextError) as exc:
            logger.warning("Skipping item in category %r: %s", self._name, exc)
            return
        self._items[key] = value

    def image_ids(self) -> list[str]:
        return list(self._items)

    def items(self) -> list[tuple[str, str]]:
        return list(self._items.items())

    def has_image(self, image_id: str) -> bool:
        return image_id in self._items

    def select(self, image_id: str) -> str:
        try:
            return self._items[image_id]
        except KeyError:
            raise NotFoundError("image", image_id) from None


__all__ = [
    "AACCategory",
    "AACPage",
    "FIELD_SEPARATOR",
    "ITEM_MARKER",
    "InvalidKeyError",
    "InvalidTextError",
    "NotFoundError",
    "validate_image_id",
    "validate_text",
]
