from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Mapping

from .category import FIELD_SEPARATOR, ITEM_MARKER, AACCategory, InvalidKeyError, validate_image_id

logger = logging.getLogger(__name__)

MAPPING_ENCODING = "utf-8"


class MappingFileError(OSError):
    """Raised when a mapping file cannot be read or written."""

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        super().__init__(f"{message}: {path}")


def _split_record(record: str) -> tuple[str, str]:
    key, _, text = record.partition(FIELD_SEPARATOR)
    return key, text


def parse_mapping_lines(lines: Iterable[str]) -> dict[str, AACCategory]:
    """Build categories from mapping-file lines.

    Category records look like ``<image> <name>``; item records are prefixed
    with ``>`` and belong to the most recent category record. Only the first
    space separates the fields.
    """
    categories: dict[str, AACCategory] = {}
    current: AACCategory | None = None
    for lineno, raw in enumerate(lines, start=1):
        line = raw.rstrip("\r\n")
        if not line.strip():
            continue
        if line.startswith(ITEM_MARKER):
            if current is None:
                logger.debug("Line %d: item without a category, dropped", lineno)
                continue
            image_id, text = _split_record(line[len(ITEM_MARKER):])
            current.add_item(image_id, text)
            continue
        image_id, name = _split_record(line)
        try:
            key = validate_image_id(image_id)
        except InvalidKeyError as exc:
            logger.warning("Line %d: skipping category record: %s", lineno, exc)
            current = None
            continue
        current = AACCategory(name)
        categories[key] = current
    return categories


def parse_mapping_text(text: str) -> dict[str, AACCategory]:
    return parse_mapping_lines(text.split("\n"))


def format_mapping_lines(categories: Mapping[str, AACCategory]) -> list[str]:
    lines: list[str] = []
    for key, category in categories.items():
        lines.append(f"{key}{FIELD_SEPARATOR}{category.name}")
        for image_id, text in category.items():
            lines.append(f"{ITEM_MARKER}{image_id}{FIELD_SEPARATOR}{text}")
    return lines


def format_mapping_text(categories: Mapping[str, AACCategory]) -> str:
    return "".join(line + "\n" for line in format_mapping_lines(categories))


def read_mapping_file(path: Path) -> dict[str, AACCategory]:
    try:
        text = Path(path).read_text(encoding=MAPPING_ENCODING)
    except FileNotFoundError as exc:
        raise MappingFileError(Path(path), "Mapping file not found") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise MappingFileError(Path(path), f"Unable to read mapping file ({exc})") from exc
    return parse_mapping_text(text)


def write_mapping_file(path: Path, categories: Mapping[str, AACCategory]) -> Path:
    target = Path(path)
    payload = format_mapping_text(categories)
    try:
        with target.open("w", encoding=MAPPING_ENCODING, newline="\n") as fh:
            fh.write(payload)
    except OSError as exc:
        raise MappingFileError(target, f"Unable to write mapping file ({exc})") from exc
    return target


__all__ = [
    "ITEM_MARKER",
    "MappingFileError",
    "format_mapping_lines",
    "format_mapping_text",
    "parse_mapping_lines",
    "parse_mapping_text",
    "read_mapping_file",
    "write_mapping_file",
]
