"""Reading source images from disk and writing results back, with backups."""

from __future__ import annotations

import io
import os
import shutil
import tempfile
import time
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from .errors import DecodeError, IoError

# Modes to write for formats that cannot hold an alpha channel.
FORMAT_MODES = {
    "JPEG": "RGB",
    "PPM": "RGB",
    "PCX": "RGB",
    "EPS": "RGB",
    "XBM": "1",
}


def decode(image: Image.Image, source: str) -> Image.Image:
    """Force ``image`` to read its pixel data now, so corrupt data fails here."""
    try:
        image.load()
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeError(f"Could not decode image {source}: {e}") from e
    return image


def open_image(path: str | os.PathLike) -> Image.Image:
    """Open and fully decode the image at ``path``."""
    src = Path(path)
    try:
        image = Image.open(src)
    except UnidentifiedImageError as e:
        raise DecodeError(f"Could not decode image {str(src)!r}: {e}") from e
    except Image.DecompressionBombError as e:
        raise DecodeError(f"Refusing to decode image {str(src)!r}: {e}") from e
    except OSError as e:
        raise IoError(f"Could not open image {str(src)!r}: {e}") from e
    return decode(image, repr(str(src)))


def output_format(path: str | os.PathLike) -> str:
    """Pillow format name for the extension of ``path``."""
    dst = Path(path)
    fmt = Image.registered_extensions().get(dst.suffix.lower())
    if fmt is None or fmt not in Image.SAVE:
        raise IoError(f"Cannot pick an image format for {str(dst)!r} (unsupported extension {dst.suffix!r})")
    return fmt


def check_output_path(path: str | os.PathLike) -> Path:
    """Refuse directories, symlinks and extensions Pillow cannot write."""
    dst = Path(path)
    if dst.is_symlink() or dst.is_dir():
        raise IoError(f"{str(dst)!r} is a directory or a symbolic link, cannot proceed")
    output_format(dst)
    return dst


def encode_image(image: Image.Image, fmt: str) -> bytes:
    """Encode ``image`` as ``fmt`` in memory, converting to a mode the format can hold."""
    out = image
    mode = FORMAT_MODES.get(fmt)
    if mode is not None and out.mode != mode:
        out = out.convert(mode)
    buf = io.BytesIO()
    try:
        out.save(buf, format=fmt)
    except (OSError, ValueError, KeyError) as e:
        raise IoError(f"Could not encode {out.mode} image as {fmt}: {e}") from e
    return buf.getvalue()


def _backup_name(dst: Path, backup_dir: Path) -> Path:
    stem = f"BACKUP-{time.time_ns() // 1_000_000}"
    candidate = backup_dir / f"{stem}{dst.suffix}"
    n = 1
    while candidate.exists():
        candidate = backup_dir / f"{stem}-{n}{dst.suffix}"
        n += 1
    return candidate


def backup_file(path: str | os.PathLike, backup_dir: str | os.PathLike | None = None) -> Path:
    """Copy ``path`` into ``backup_dir`` (temp dir by default) and return the copy's path."""
    src = Path(path)
    target_dir = Path(backup_dir) if backup_dir is not None else Path(tempfile.gettempdir())
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        backup_path = _backup_name(src, target_dir)
        shutil.copy2(src, backup_path)
    except OSError as e:
        raise IoError(f"Could not back up original file at {str(src)!r}: {e}") from e
    return backup_path


def save_image(
    image: Image.Image,
    path: str | os.PathLike,
    backup_dir: str | os.PathLike | None = None,
) -> Path | None:
    """Write ``image`` to ``path``; an existing file is backed up first.

    The image is encoded before anything on disk is touched, so an encoding
    failure leaves neither a backup nor a half-written file behind.

    Returns the backup path, or ``None`` when nothing was overwritten.
    """
    dst = check_output_path(path)
    data = encode_image(image, output_format(dst))

    backup_path = backup_file(dst, backup_dir) if dst.is_file() else None
    try:
        dst.parent.mkdir(parents=True, exist_ok=True)
        dst.write_bytes(data)
    except OSError as e:
        raise IoError(f"Could not save image to {str(dst)!r}: {e}") from e
    return backup_path
