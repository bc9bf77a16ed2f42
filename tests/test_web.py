from __future__ import annotations

import json
from pathlib import Path

import pytest
from fastapi import HTTPException

from aacboard.mappings import AACMappings
from aacboard.web import BoardConfig, board_payload, create_app


def _find_route(app, path: str, method: str):
    method = method.upper()
    for route in app.router.routes:
        if getattr(route, "path", None) == path and method in getattr(route, "methods", set()):
            return route.endpoint
    raise RuntimeError(f"Route {method} {path} not found")


def _json(response) -> dict:
    return json.loads(response.body)


def test_board_starts_at_top_level(board_file: Path) -> None:
    app = create_app(BoardConfig(mappings_path=board_file))
    payload = _json(_find_route(app, "/api/board", "GET")())
    assert payload == {
        "category": "",
        "category_id": None,
        "images": [
            {"id": "img/food/plate.png", "label": "food"},
            {"id": "img/clothing/hanger.png", "label": "clothing"},
        ],
    }


def test_select_opens_category_then_speaks(board_file: Path) -> None:
    app = create_app(BoardConfig(mappings_path=board_file))
    select = _find_route(app, "/api/select", "POST")

    opened = _json(select({"image": "img/food/plate.png"}))
    assert opened["text"] == ""
    assert opened["board"]["category"] == "food"
    assert [image["id"] for image in opened["board"]["images"]] == [
        "img/food/fries.png",
        "img/food/watermelon.png",
    ]

    spoken = _json(select({"image": "img/food/fries.png"}))
    assert spoken["text"] == "french fries"
    assert spoken["board"]["category_id"] == "img/food/plate.png"


def test_select_unknown_image_is_404(board_file: Path) -> None:
    app = create_app(BoardConfig(mappings_path=board_file))
    select = _find_route(app, "/api/select", "POST")
    with pytest.raises(HTTPException) as excinfo:
        select({"image": "img/none.png"})
    assert excinfo.value.status_code == 404
    assert app.state.mappings.at_top_level


def test_select_requires_image(board_file: Path) -> None:
    app = create_app(BoardConfig(mappings_path=board_file))
    select = _find_route(app, "/api/select", "POST")
    with pytest.raises(HTTPException) as excinfo:
        select({})
    assert excinfo.value.status_code == 400


def test_reset_returns_top_level(board_file: Path) -> None:
    app = create_app(BoardConfig(mappings_path=board_file))
    _find_route(app, "/api/select", "POST")({"image": "img/clothing/hanger.png"})
    payload = _json(_find_route(app, "/api/reset", "POST")())
    assert payload["category"] == ""
    assert payload["category_id"] is None
    assert len(payload["images"]) == 2


def test_add_item_with_autosave_writes_file(board_file: Path) -> None:
    app = create_app(BoardConfig(mappings_path=board_file, autosave=True))
    _find_route(app, "/api/select", "POST")({"image": "img/clothing/hanger.png"})
    payload = _json(_find_route(app, "/api/items", "POST")({"image": "img/clothing/sock.png", "text": "socks"}))

    assert payload["images"][-1] == {"id": "img/clothing/sock.png", "label": "socks"}
    assert board_file.read_text(encoding="utf-8").endswith(">img/clothing/sock.png socks\n")


def test_add_item_without_autosave_keeps_file(board_file: Path) -> None:
    original = board_file.read_text(encoding="utf-8")
    app = create_app(BoardConfig(mappings_path=board_file))
    _find_route(app, "/api/items", "POST")({"image": "img/toys/box.png", "text": "toys"})
    assert board_file.read_text(encoding="utf-8") == original

    saved = _json(_find_route(app, "/api/save", "POST")())
    assert saved["saved"] is True
    assert board_file.read_text(encoding="utf-8").endswith("img/toys/box.png toys\n")


@pytest.mark.parametrize(
    "payload",
    [
        {"text": "no image"},
        {"image": "img/my toy.png", "text": "toy"},
        {"image": ">img/toys/box.png", "text": "toys"},
        {"image": "img/toy.png\r", "text": "toy"},
        {"image": "img/toy.png", "text": "two\nlines"},
        {"image": "img/toy.png", "text": 5},
    ],
)
def test_add_item_rejects_bad_payload(board_file: Path, payload: dict) -> None:
    app = create_app(BoardConfig(mappings_path=board_file))
    with pytest.raises(HTTPException) as excinfo:
        _find_route(app, "/api/items", "POST")(payload)
    assert excinfo.value.status_code == 400


def test_add_item_with_item_marker_leaves_file_alone(board_file: Path) -> None:
    original = board_file.read_text(encoding="utf-8")
    app = create_app(BoardConfig(mappings_path=board_file, autosave=True))
    with pytest.raises(HTTPException) as excinfo:
        _find_route(app, "/api/items", "POST")({"image": ">img/toys/box.png", "text": "toys"})
    assert "'>'" in excinfo.value.detail
    assert board_file.read_text(encoding="utf-8") == original
    board = _json(_find_route(app, "/api/board", "GET")())
    assert [image["id"] for image in board["images"]] == ["img/food/plate.png", "img/clothing/hanger.png"]


def test_save_failure_is_500(tmp_path: Path) -> None:
    config = BoardConfig(mappings_path=tmp_path / "missing-dir" / "board.txt")
    app = create_app(config, mappings=AACMappings())
    with pytest.raises(HTTPException) as excinfo:
        _find_route(app, "/api/save", "POST")()
    assert excinfo.value.status_code == 500


def test_image_file_served_from_root(board_file: Path, tmp_path: Path) -> None:
    image = tmp_path / "img" / "food" / "plate.png"
    image.parent.mkdir(parents=True)
    image.write_bytes(b"\x89PNG")
    app = create_app(BoardConfig(mappings_path=board_file, image_root=tmp_path))
    serve = _find_route(app, "/images/{image_id:path}", "GET")

    response = serve("img/food/plate.png")
    assert Path(response.path) == image.resolve()

    for bad in ("img/food/missing.png", "../outside.png"):
        with pytest.raises(HTTPException) as excinfo:
            serve(bad)
        assert excinfo.value.status_code == 404


def test_image_file_without_root_is_404(board_file: Path) -> None:
    app = create_app(BoardConfig(mappings_path=board_file))
    with pytest.raises(HTTPException) as excinfo:
        _find_route(app, "/images/{image_id:path}", "GET")("img/food/plate.png")
    assert excinfo.value.status_code == 404


def test_board_payload_inside_category(sample_text: str) -> None:
    mappings = AACMappings.from_text(sample_text)
    mappings.select("img/clothing/hanger.png")
    assert board_payload(mappings) == {
        "category": "clothing",
        "category_id": "img/clothing/hanger.png",
        "images": [{"id": "img/clothing/shirt.png", "label": "collared shirt"}],
    }


def test_missing_mapping_file_serves_empty_board(tmp_path: Path) -> None:
    app = create_app(BoardConfig(mappings_path=tmp_path / "missing.txt"))
    payload = _json(_find_route(app, "/api/board", "GET")())
    assert payload["images"] == []
    index = _find_route(app, "/", "GET")()
    assert b"AAC Board" in index.body
