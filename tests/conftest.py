from __future__ import annotations

from pathlib import Path

import pytest

SAMPLE_BOARD = (
    "img/food/plate.png food\n"
    ">img/food/fries.png french fries\n"
    ">img/food/watermelon.png watermelon\n"
    "img/clothing/hanger.png clothing\n"
    ">img/clothing/shirt.png collared shirt\n"
)


@pytest.fixture
def sample_text() -> str:
    return SAMPLE_BOARD


@pytest.fixture
def board_file(tmp_path: Path) -> Path:
    path = tmp_path / "board.txt"
    path.write_text(SAMPLE_BOARD, encoding="utf-8")
    return path
