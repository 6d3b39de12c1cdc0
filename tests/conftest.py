import pytest
from PIL import Image


def make_pattern(width, height, mode="RGB"):
    """Deterministic image with distinct-ish pixels so misplaced pastes show up."""
    image = Image.new("RGBA", (width, height))
    image.putdata(
        [
            ((x * 37 + y * 11) % 256, (x * 5 + y * 53) % 256, (x * y * 7) % 256, 255 - (x + y) % 128)
            for y in range(height)
            for x in range(width)
        ]
    )
    return image if mode == "RGBA" else image.convert(mode)


@pytest.fixture
def pattern():
    return make_pattern


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep a real ~/.config/squareblur/config.yaml out of the tests."""
    monkeypatch.setenv("SQUAREBLUR_CONFIG", str(tmp_path / "no-such-config.yaml"))
