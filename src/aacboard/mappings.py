from __future__ import annotations

import logging
from pathlib import Path

from .category import (
    AACCategory,
    InvalidKeyError,
    InvalidTextError,
    NotFoundError,
    validate_image_id,
    validate_text,
)
from .mapping_io import (
    MappingFileError,
    format_mapping_text,
    parse_mapping_text,
    read_mapping_file,
    write_mapping_file,
)

logger = logging.getLogger(__name__)


class AACMappings:
    """Two-level AAC board: categories on top, image -> text items inside.

    The board is either at the top level, where the selectable images are the
    categories, or inside one category, where selecting an image yields the
    text to speak. Both levels are driven through the same calls so a
    presentation layer never needs to know which one it is looking at.

    The mapping file holds one record per line::

        img/food/plate.png food
        >img/food/fries.png french fries
        >img/food/watermelon.png watermelon
        img/clothing/hanger.png clothing
        >img/clothing/shirt.png collared shirt

    A load failure is logged and leaves the board empty.
    """

    def __init__(self, path: Path | str | None = None) -> None:
        self._categories: dict[str, AACCategory] = {}
        self._active_id: str | None = None
        if path is not None:
            self.load(path)

    @classmethod
    def from_text(cls, text: str) -> "AACMappings":
        mappings = cls()
        mappings._categories = parse_mapping_text(text)
        return mappings

    def __repr__(self) -> str:
        return (
            f"AACMappings(categories={len(self._categories)}, "
            f"active={self._active_id!r})"
        )

    def load(self, path: Path | str) -> bool:
        """Replace the categories with those read from ``path``.

        Returns ``False`` (board left empty) when the file cannot be read.
        """
        self._categories = {}
        self._active_id = None
        try:
            self._categories = read_mapping_file(Path(path))
        except MappingFileError as exc:
            logger.error("%s", exc)
            return False
        logger.debug("Loaded %d categories from %s", len(self._categories), path)
        return True

    @property
    def active_category_id(self) -> str | None:
        return self._active_id

    @property
    def at_top_level(self) -> bool:
        return self._active_id is None

    def _active(self) -> AACCategory | None:
        if self._active_id is None:
            return None
        return self._categories[self._active_id]

    def categories(self) -> list[tuple[str, AACCategory]]:
        return list(self._categories.items())

    def category(self, category_id: str) -> AACCategory:
        try:
            return self._categories[category_id]
        except KeyError:
            raise NotFoundError("category", category_id) from None

    def select(self, image_id: str) -> str:
        """Press an image.

        At the top level this opens the category keyed by ``image_id`` and
        returns ``""``. Inside a category it returns the text to speak.
        Raises :class:`NotFoundError` when the image is not on the current
        page; the navigation state is left untouched in that case.
        """
        active = self._active()
        if active is None:
            if image_id not in self._categories:
                raise NotFoundError("category", image_id)
            self._active_id = image_id
            return ""
        if not active.has_image(image_id):
            raise NotFoundError("image", image_id)
        return active.select(image_id)

    def image_ids(self) -> list[str]:
        active = self._active()
        if active is None:
            return list(self._categories)
        return active.image_ids()

    def has_image(self, image_id: str) -> bool:
        active = self._active()
        if active is None:
            return image_id in self._categories
        return active.has_image(image_id)

    def reset(self) -> None:
        self._active_id = None

    def add_item(self, image_id: str, text: str) -> None:
        """Add to the current page.

        At the top level this creates a new, empty category named ``text``
        under ``image_id`` (replacing any category already there); it does not
        add an image item. Inside a category the item is added to it.
        """
        active = self._active()
        if active is not None:
            active.add_item(image_id, text)
            return
        try:
            key = validate_image_id(image_id)
            name = validate_text(text)
        except (InvalidKeyError, InvalidTextError) as exc:
            logger.warning("Skipping category: %s", exc)
            return
        self._categories[key] = AACCategory(name)

    def category_name(self) -> str:
        active = self._active()
        return active.name if active is not None else ""

    def to_text(self) -> str:
        return format_mapping_text(self._categories)

    def save(self, path: Path | str) -> Path | None:
        try:
            written = write_mapping_file(Path(path), self._categories)
        except MappingFileError as exc:
            logger.error("%s", exc)
            return None
        logger.debug("Saved %d categories to %s", len(self._categories), written)
        return written


__all__ = ["AACMappings"]
