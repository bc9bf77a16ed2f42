from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path

from fastapi import Body, FastAPI, HTTPException
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse

from .category import (
    InvalidKeyError,
    InvalidTextError,
    NotFoundError,
    validate_image_id,
    validate_text,
)
from .mappings import AACMappings


@dataclass(slots=True)
class BoardConfig:
    mappings_path: Path
    image_root: Path | None = None
    autosave: bool = False


INDEX_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>AAC Board</title>
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <style>
    :root {
      color-scheme: dark;
      font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", sans-serif;
      --bg: #090b12;
      --panel: #141724;
      --text: #f5f5f5;
      --muted: #9aa0b5;
      --accent: #3b82f6;
    }
    body {
      margin: 0;
      background: var(--bg);
      color: var(--text);
    }
    header {
      display: flex;
      align-items: center;
      gap: 1rem;
      padding: 1rem 1.5rem;
    }
    header h1 {
      margin: 0;
      font-size: 1.3rem;
    }
    #spoken {
      color: var(--accent);
      font-size: 1.4rem;
      min-height: 1.6rem;
      padding: 0 1.5rem;
    }
    #grid {
      display: grid;
      grid-template-columns: repeat(auto-fill, minmax(140px, 1fr));
      gap: 1rem;
      padding: 1.5rem;
    }
    .tile {
      background: var(--panel);
      border: none;
      border-radius: 14px;
      color: var(--text);
      cursor: pointer;
      padding: 0.8rem;
      text-align: center;
    }
    .tile img {
      max-width: 96px;
      max-height: 96px;
    }
    .tile span {
      display: block;
      color: var(--muted);
      margin-top: 0.4rem;
    }
  </style>
</head>
<body>
  <header>
    <button id="home" class="tile">Home</button>
    <h1 id="title">AAC Board</h1>
  </header>
  <div id="spoken"></div>
  <main id="grid"></main>
  <script>
    (() => {
      const grid = document.getElementById('grid');
      const title = document.getElementById('title');
      const spoken = document.getElementById('spoken');

      function speak(text) {
        spoken.textContent = text;
        if (text && window.speechSynthesis) {
          window.speechSynthesis.speak(new SpeechSynthesisUtterance(text));
        }
      }

      function render(board) {
        title.textContent = board.category || 'AAC Board';
        grid.innerHTML = '';
        for (const image of board.images) {
          const tile = document.createElement('button');
          tile.className = 'tile';
          const img = document.createElement('img');
          img.src = '/images/' + encodeURI(image.id);
          img.alt = image.label;
          const label = document.createElement('span');
          label.textContent = image.label;
          tile.append(img, label);
          tile.addEventListener('click', () => select(image.id));
          grid.appendChild(tile);
        }
      }

      async function call(path, payload) {
        const res = await fetch(path, {
          method: payload === undefined ? 'GET' : 'POST',
          headers: { 'Content-Type': 'application/json' },
          body: payload === undefined ? undefined : JSON.stringify(payload),
        });
        if (!res.ok) {
          throw new Error((await res.json()).detail || res.statusText);
        }
        return res.json();
      }

      async function select(id) {
        try {
          const result = await call('/api/select', { image: id });
          speak(result.text);
          render(result.board);
        } catch (err) {
          spoken.textContent = err.message;
        }
      }

      document.getElementById('home').addEventListener('click', async () => {
        speak('');
        render(await call('/api/reset', {}));
      });

      call('/api/board').then(render);
    })();
  </script>
</body>
</html>
"""


def board_payload(mappings: AACMappings) -> dict[str, object]:
    images: list[dict[str, str]] = []
    if mappings.at_top_level:
        for category_id, category in mappings.categories():
            images.append({"id": category_id, "label": category.name})
    else:
        category = mappings.category(mappings.active_category_id or "")
        for image_id, text in category.items():
            images.append({"id": image_id, "label": text})
    return {
        "category": mappings.category_name(),
        "category_id": mappings.active_category_id,
        "images": images,
    }


def _required_text(payload: object, field: str) -> str:
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid payload.")
    value = payload.get(field)
    if not isinstance(value, str) or not value:
        raise HTTPException(status_code=400, detail=f"{field} is required.")
    return value


def _image_id(payload: object) -> str:
    image_id = _required_text(payload, "image")
    if any(ch.isspace() for ch in image_id):
        raise HTTPException(status_code=400, detail="image must not contain whitespace.")
    try:
        return validate_image_id(image_id)
    except InvalidKeyError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def create_app(config: BoardConfig, mappings: AACMappings | None = None) -> FastAPI:
    mappings_path = config.mappings_path.expanduser()
    image_root = config.image_root.expanduser().resolve() if config.image_root else None
    board = mappings if mappings is not None else AACMappings(mappings_path)

    app = FastAPI(title="AAC Board")
    app.state.config = config
    app.state.mappings = board
    # AACMappings is not synchronized; every request goes through this lock.
    board_lock = threading.Lock()

    def _save() -> Path:
        written = board.save(mappings_path)
        if written is None:
            raise HTTPException(status_code=500, detail=f"Unable to save {mappings_path}")
        return written

    @app.get("/", response_class=HTMLResponse)
    def index() -> HTMLResponse:
        return HTMLResponse(INDEX_HTML)

    @app.get("/api/board")
    def api_board() -> JSONResponse:
        with board_lock:
            return JSONResponse(board_payload(board))

    @app.post("/api/select")
    def api_select(payload: dict[str, object] = Body(...)) -> JSONResponse:
        image_id = _required_text(payload, "image")
        with board_lock:
            try:
                text = board.select(image_id)
            except NotFoundError as exc:
                raise HTTPException(status_code=404, detail=str(exc)) from exc
            return JSONResponse({"text": text, "board": board_payload(board)})

    @app.post("/api/reset")
    def api_reset() -> JSONResponse:
        with board_lock:
            board.reset()
            return JSONResponse(board_payload(board))

    @app.post("/api/items")
    def api_add_item(payload: dict[str, object] = Body(...)) -> JSONResponse:
        image_id = _image_id(payload)
        try:
            text = validate_text(payload.get("text"))
        except InvalidTextError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        with board_lock:
            board.add_item(image_id, text)
            if config.autosave:
                _save()
            return JSONResponse(board_payload(board))

    @app.post("/api/save")
    def api_save() -> JSONResponse:
        with board_lock:
            written = _save()
        return JSONResponse({"saved": True, "path": written.as_posix()})

    @app.get("/images/{image_id:path}")
    def image_file(image_id: str) -> FileResponse:
        if image_root is None:
            raise HTTPException(status_code=404, detail="No image root configured")
        candidate = (image_root / image_id).resolve()
        try:
            candidate.relative_to(image_root)
        except ValueError:
            raise HTTPException(status_code=404, detail="Image not found")
        if not candidate.is_file():
            raise HTTPException(status_code=404, detail="Image not found")
        return FileResponse(candidate)

    return app


__all__ = ["BoardConfig", "board_payload", "create_app"]
