from __future__ import annotations

import argparse
import sys
from importlib import metadata
from pathlib import Path

import tomllib
import uvicorn
from rich.console import Console
from rich.text import Text

from .category import (
    InvalidKeyError,
    InvalidTextError,
    NotFoundError,
    validate_image_id,
    validate_text,
)
from .logging_utils import build_uvicorn_log_config, configure_logging
from .mapping_io import MappingFileError, format_mapping_text, read_mapping_file
from .mappings import AACMappings
from .web import BoardConfig, create_app

RESET_TOKEN = "-"

console = Console(highlight=False, soft_wrap=True)
err_console = Console(stderr=True, highlight=False, soft_wrap=True)


def _package_version() -> str:
    """Installed distribution version, else the one in a source checkout's pyproject."""
    try:
        return metadata.version("aacboard")
    except metadata.PackageNotFoundError:
        pass
    pyproject_path = Path(__file__).resolve().parents[2] / "pyproject.toml"
    try:
        data = tomllib.loads(pyproject_path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError):
        return "0.0.0+unknown"
    return data.get("project", {}).get("version", "0.0.0+unknown")


__version__ = _package_version()


def _emit(text: str) -> None:
    console.print(text, markup=False)


def _error(text: str) -> None:
    err_console.print(Text.assemble(("error: ", "bold red"), text))


def _add_common_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"aacboard {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable verbose debug logging.",
    )


def _add_mapping_file(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "mapping_file",
        help="Path to the board mapping file (one category or '>' item per line).",
    )


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="aacboard",
        description=(
            "Two-level AAC board mappings. Commands: show, select, add, check, web. "
            "Use `aacboard <command> --help` for details."
        ),
    )
    _add_common_flags(ap)
    return ap


def build_show_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="aacboard show",
        description="List the categories of a board, or the items of one category.",
    )
    _add_common_flags(ap)
    _add_mapping_file(ap)
    ap.add_argument(
        "-c",
        "--category",
        help="Image id of the category whose items should be listed.",
    )
    return ap


def build_select_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="aacboard select",
        description=(
            "Replay a sequence of image presses starting from the top level and print "
            f"the spoken text. Use '{RESET_TOKEN}' to return to the top level."
        ),
    )
    _add_common_flags(ap)
    _add_mapping_file(ap)
    ap.add_argument(
        "images",
        nargs="+",
        help="Image ids to press, in order.",
    )
    return ap


def build_add_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="aacboard add",
        description=(
            "Add a category (default) or, with --category, an item inside that "
            "category, then save the board."
        ),
    )
    _add_common_flags(ap)
    _add_mapping_file(ap)
    ap.add_argument("image", help="Image id of the new category or item.")
    ap.add_argument("text", help="Category name, or the text spoken for the item.")
    ap.add_argument(
        "-c",
        "--category",
        help="Add an item to this category instead of creating a category.",
    )
    ap.add_argument(
        "-o",
        "--output",
        help="Write the updated board here instead of overwriting the input file.",
    )
    return ap


def build_check_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="aacboard check",
        description="Load a board file and report whether it is in canonical form.",
    )
    _add_common_flags(ap)
    _add_mapping_file(ap)
    ap.add_argument(
        "--write",
        action="store_true",
        help="Rewrite the file in canonical form when it differs.",
    )
    return ap


def build_web_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="aacboard web",
        description="Serve the board in a browser.",
    )
    _add_common_flags(ap)
    _add_mapping_file(ap)
    ap.add_argument(
        "--host",
        default="0.0.0.0",
        help="Host interface for the web server (default: 0.0.0.0).",
    )
    ap.add_argument(
        "--port",
        type=int,
        default=2047,
        help="Port for the web server (default: 2047).",
    )
    ap.add_argument(
        "--image-root",
        help="Directory that image ids are resolved against (default: the mapping file's folder).",
    )
    ap.add_argument(
        "--autosave",
        action="store_true",
        help="Save the board after every added category or item.",
    )
    return ap


def _load_or_exit(path: Path) -> AACMappings:
    if not path.is_file():
        raise SystemExit(f"Mapping file not found: {path}")
    return AACMappings(path)


def _run_show(args: argparse.Namespace) -> int:
    mappings = _load_or_exit(Path(args.mapping_file).expanduser())
    if args.category:
        try:
            mappings.select(args.category)
        except NotFoundError as exc:
            _error(str(exc))
            return 1
        _emit(f"{mappings.category_name()} ({args.category})")
        for image_id in mappings.image_ids():
            _emit(f"  {image_id}  {mappings.select(image_id)}")
        return 0
    for category_id, category in mappings.categories():
        _emit(f"{category_id}  {category.name}  ({len(category)} items)")
    return 0


def _run_select(args: argparse.Namespace) -> int:
    mappings = _load_or_exit(Path(args.mapping_file).expanduser())
    for image_id in args.images:
        if image_id == RESET_TOKEN:
            mappings.reset()
            continue
        opening = mappings.at_top_level
        try:
            text = mappings.select(image_id)
        except NotFoundError as exc:
            _error(str(exc))
            return 1
        if not opening:
            _emit(text)
        else:
            _emit(f"[{mappings.category_name()}]")
    return 0


def _run_add(args: argparse.Namespace) -> int:
    source = Path(args.mapping_file).expanduser()
    output = Path(args.output).expanduser() if args.output else source
    if any(ch.isspace() for ch in args.image):
        _error("Image ids must not contain whitespace.")
        return 1
    try:
        validate_image_id(args.image)
        validate_text(args.text)
    except (InvalidKeyError, InvalidTextError) as exc:
        _error(str(exc))
        return 1
    mappings = AACMappings(source) if source.exists() else AACMappings()
    if args.category:
        try:
            mappings.select(args.category)
        except NotFoundError as exc:
            _error(str(exc))
            return 1
    mappings.add_item(args.image, args.text)
    if mappings.save(output) is None:
        _error(f"Unable to save {output}")
        return 1
    where = f"category {args.category}" if args.category else "top level"
    _emit(f"Added {args.image} to {where}; saved {output}")
    return 0


def _run_check(args: argparse.Namespace) -> int:
    path = Path(args.mapping_file).expanduser()
    try:
        categories = read_mapping_file(path)
        original = path.read_bytes().decode("utf-8")
    except (MappingFileError, OSError, UnicodeDecodeError) as exc:
        _error(str(exc))
        return 1
    canonical = format_mapping_text(categories)
    item_total = sum(len(category) for category in categories.values())
    _emit(f"{len(categories)} categories, {item_total} items")
    if original == canonical:
        _emit("Canonical: yes")
        return 0
    if not args.write:
        _emit("Canonical: no (use --write to rewrite)")
        return 1
    mappings = AACMappings.from_text(original)
    if mappings.save(path) is None:
        _error(f"Unable to save {path}")
        return 1
    _emit(f"Rewrote {path}")
    return 0


def _display_host(host: str) -> str:
    """Host to print in the board URL; wildcard binds are reachable via localhost."""
    if host in {"", "0.0.0.0", "::"}:
        return "localhost"
    if ":" in host and not host.startswith("["):
        return f"[{host}]"
    return host


def _run_web(args: argparse.Namespace) -> None:
    mapping_path = Path(args.mapping_file).expanduser().resolve()
    image_root = (
        Path(args.image_root).expanduser().resolve()
        if args.image_root
        else mapping_path.parent
    )
    config = BoardConfig(
        mappings_path=mapping_path,
        image_root=image_root,
        autosave=args.autosave,
    )
    app = create_app(config)
    url = f"http://{_display_host(args.host)}:{args.port}/"
    _emit(f"Serving board from {mapping_path}")
    _emit(f"Web URL: {url}")
    _emit("Press Ctrl+C to stop.\n")
    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        log_level="debug" if args.debug else "info",
        log_config=build_uvicorn_log_config(),
    )


_COMMANDS = {
    "show": (build_show_parser, _run_show),
    "select": (build_select_parser, _run_select),
    "add": (build_add_parser, _run_add),
    "check": (build_check_parser, _run_check),
}


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    if argv and argv[0] in _COMMANDS:
        build, run = _COMMANDS[argv[0]]
        args = build().parse_args(argv[1:])
        configure_logging(args.debug)
        return run(args)
    if argv and argv[0] == "web":
        web_args = build_web_parser().parse_args(argv[1:])
        configure_logging(web_args.debug)
        _run_web(web_args)
        return 0

    parser = build_parser()
    if not argv:
        parser.print_help()
        return 0
    parser.parse_args(argv)
    parser.error(f"unknown command: {argv[0]}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
