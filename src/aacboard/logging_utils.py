from __future__ import annotations

import logging
from copy import copy, deepcopy
from typing import Any
from urllib.parse import unquote

from rich.console import Console
from rich.logging import RichHandler
from uvicorn.config import LOGGING_CONFIG
from uvicorn.logging import AccessFormatter as UvicornAccessFormatter

PACKAGE_LOGGER = "aacboard"


def configure_logging(debug: bool = False, *, console: Console | None = None) -> logging.Logger:
    """Attach a rich handler to the package logger (idempotent)."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=False,
        show_path=debug,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    return logger


IMAGE_ROUTE = "/images/"


def decode_image_request(path: str) -> str:
    """Percent-decode the image id of an ``/images/...`` request path.

    API paths and query strings are returned unchanged.
    """
    route, sep, query = path.partition("?")
    if not route.startswith(IMAGE_ROUTE):
        return path
    image_id = unquote(route[len(IMAGE_ROUTE):], encoding="utf-8", errors="replace")
    return f"{IMAGE_ROUTE}{image_id}{sep}{query}"


class ImageAccessFormatter(UvicornAccessFormatter):
    """Access log formatter that shows image ids the way the mapping file spells them."""

    def formatMessage(self, record: logging.LogRecord) -> str:
        args = record.args
        if not isinstance(args, tuple) or len(args) != 5 or not isinstance(args[2], str):
            return super().formatMessage(record)
        decoded = decode_image_request(args[2])
        if decoded == args[2]:
            return super().formatMessage(record)
        new_record = copy(record)
        new_record.args = (*args[:2], decoded, *args[3:])
        return super().formatMessage(new_record)


def build_uvicorn_log_config() -> dict[str, Any]:
    """Uvicorn logging config using :class:`ImageAccessFormatter` for access lines."""
    config = deepcopy(LOGGING_CONFIG)
    config["formatters"]["access"]["()"] = f"{__name__}.ImageAccessFormatter"
    return config


__all__ = [
    "IMAGE_ROUTE",
    "ImageAccessFormatter",
    "PACKAGE_LOGGER",
    "build_uvicorn_log_config",
    "configure_logging",
    "decode_image_request",
]
