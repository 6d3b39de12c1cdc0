import io

import pytest
from PIL import Image

from squareblur import __version__, cli, clipboard
from squareblur.compose import foreground_box
from squareblur.errors import ClipboardError


@pytest.fixture
def source(tmp_path, pattern):
    path = tmp_path / "in.png"
    pattern(40, 20).save(path)
    return path


def test_file_to_file(source, tmp_path, pattern, capsys):
    out = tmp_path / "out.png"
    assert cli.main(["-i", str(source), "-o", str(out)]) == 0

    result = Image.open(out)
    assert result.size == (40, 40)
    assert result.crop(foreground_box((40, 20))).tobytes() == pattern(40, 20).tobytes()
    assert "Saved image to" in capsys.readouterr().out


def test_existing_output_is_backed_up(source, tmp_path, pattern, capsys):
    out = tmp_path / "out.png"
    pattern(3, 3).save(out)
    before = out.read_bytes()
    backups = tmp_path / "backups"

    assert cli.main(["--input-path", str(source), "--output-path", str(out), "--backup-dir", str(backups)]) == 0

    (backup,) = backups.iterdir()
    assert backup.read_bytes() == before
    assert Image.open(out).size == (40, 40)
    assert "backed up to" in capsys.readouterr().out


def test_quiet(source, tmp_path, capsys):
    assert cli.main(["-i", str(source), "-o", str(tmp_path / "out.png"), "--quiet"]) == 0
    assert capsys.readouterr().out == ""


def test_missing_input(tmp_path, capsys):
    code = cli.main(["-i", str(tmp_path / "missing.png"), "-o", str(tmp_path / "out.png")])
    assert code == 3
    assert "ERROR" in capsys.readouterr().err
    assert not (tmp_path / "out.png").exists()


def test_undecodable_input(tmp_path, capsys):
    bad = tmp_path / "bad.png"
    bad.write_bytes(b"nope")
    assert cli.main(["-i", str(bad), "-o", str(tmp_path / "out.png")]) == 4


def test_output_is_directory(source, tmp_path):
    target = tmp_path / "dir.png"
    target.mkdir()
    assert cli.main(["-i", str(source), "-o", str(target)]) == 3


def test_clipboard_round_trip(monkeypatch, pattern, capsys):
    copied = []
    monkeypatch.setattr(clipboard, "grab_image", lambda: pattern(10, 30))
    monkeypatch.setattr(clipboard, "copy_image", copied.append)

    assert cli.main([]) == 0

    (image,) = copied
    assert image.size == (30, 30)
    out = capsys.readouterr().out
    assert "Read clipboard image" in out
    assert "copied to clipboard" in out


def test_clipboard_error(monkeypatch, capsys):
    def empty():
        raise ClipboardError("No image on the clipboard")

    monkeypatch.setattr(clipboard, "grab_image", empty)
    assert cli.main([]) == 5
    assert "No image on the clipboard" in capsys.readouterr().err


def test_blur_radius_flag(monkeypatch, source):
    seen = {}

    def fake_compose(image, blur_radius, resample):
        seen.update(blur_radius=blur_radius, resample=resample)
        return image

    monkeypatch.setattr(cli, "compose", fake_compose)
    monkeypatch.setattr(clipboard, "copy_image", lambda image: None)

    assert cli.main(["-i", str(source), "--blur-radius", "3", "--resample", "lanczos"]) == 0
    assert seen == {"blur_radius": 3.0, "resample": "lanczos"}


def test_negative_blur_radius_is_usage_error(source):
    with pytest.raises(SystemExit) as exc:
        cli.main(["-i", str(source), "--blur-radius", "-2"])
    assert exc.value.code == 2


def test_version(capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main(["--version"])
    assert exc.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_invalid_config(source, tmp_path):
    cfg = tmp_path / "cfg.yaml"
    cfg.write_text("blur_radius: -5\n", encoding="utf-8")
    assert cli.main(["-i", str(source), "-o", str(tmp_path / "o.png"), "--config", str(cfg)]) == 6


class TestConfirm:
    def test_declined_file_keeps_original(self, source, tmp_path, pattern, monkeypatch, capsys):
        out = tmp_path / "out.png"
        pattern(3, 3).save(out)
        before = out.read_bytes()
        monkeypatch.setattr("sys.stdin", io.StringIO("maybe\nn\n"))

        assert cli.main(["-i", str(source), "-o", str(out), "--confirm"]) == 0

        assert out.read_bytes() == before
        text = capsys.readouterr().out
        assert text.count("replace? [y/n]") == 2
        assert "different output path" in text

    def test_accepted_file_is_replaced(self, source, tmp_path, pattern, monkeypatch):
        out = tmp_path / "out.png"
        pattern(3, 3).save(out)
        monkeypatch.setattr("sys.stdin", io.StringIO("YES\n"))

        assert cli.main(["-i", str(source), "-o", str(out), "--confirm", "--backup-dir", str(tmp_path / "b")]) == 0
        assert Image.open(out).size == (40, 40)

    def test_new_file_needs_no_answer(self, source, tmp_path, monkeypatch):
        monkeypatch.setattr("sys.stdin", io.StringIO(""))
        assert cli.main(["-i", str(source), "-o", str(tmp_path / "fresh.png"), "--confirm"]) == 0

    def test_clipboard_declined(self, source, monkeypatch):
        copied = []
        monkeypatch.setattr(clipboard, "copy_image", copied.append)
        monkeypatch.setattr("sys.stdin", io.StringIO("no\n"))

        assert cli.main(["-i", str(source), "--confirm"]) == 0
        assert copied == []

    def test_eof_is_io_error(self, source, monkeypatch):
        monkeypatch.setattr(clipboard, "copy_image", lambda image: None)
        monkeypatch.setattr("sys.stdin", io.StringIO(""))
        assert cli.main(["-i", str(source), "--confirm"]) == 3

    def test_yes_overrides_config(self, source, tmp_path, monkeypatch):
        cfg = tmp_path / "cfg.yaml"
        cfg.write_text("confirm: true\n", encoding="utf-8")
        copied = []
        monkeypatch.setattr(clipboard, "copy_image", copied.append)
        monkeypatch.setattr("sys.stdin", io.StringIO(""))

        assert cli.main(["-i", str(source), "--config", str(cfg), "--yes"]) == 0
        assert len(copied) == 1


def test_bad_extension_rejected_before_work(source, tmp_path, capsys):
    out = tmp_path / "out.xyz"
    out.write_bytes(b"keep me")

    assert cli.main(["-i", str(source), "-o", str(out), "--confirm"]) == 3

    captured = capsys.readouterr()
    assert "replace? [y/n]" not in captured.out
    assert "Opened image" not in captured.out
    assert "unsupported extension" in captured.err
    assert out.read_bytes() == b"keep me"
