from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Iterable

from PIL import Image

from . import __version__, clipboard
from .compose import RESAMPLE_FILTERS, compose, square_side
from .config import Settings, load_settings
from .errors import IoError, SquareBlurError
from .image_io import check_output_path, open_image, save_image


class Declined(Exception):
    pass


def confirm(message: str) -> bool:
    """Ask a yes/no question on stdin until it gets an answer."""
    while True:
        print(message, end="", flush=True)
        line = sys.stdin.readline()
        if not line:
            raise IoError("stdin closed while waiting for an answer")
        answer = line.strip().lower()
        if answer in ("y", "yes"):
            return True
        if answer in ("n", "no"):
            return False


def _parse_radius(value: str) -> float:
    try:
        radius = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"blur radius must be a number, got {value!r}")
    if radius < 0:
        raise argparse.ArgumentTypeError("blur radius must be >= 0")
    return radius


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="squareblur",
        description=(
            "Create a square frame with a blurred background for any image, "
            "to match the aspect ratio 1:1."
        ),
    )
    parser.add_argument("-i", "--input-path", help="Input file path, defaults to clipboard")
    parser.add_argument("-o", "--output-path", help="Output file path, defaults to clipboard")
    parser.add_argument("--blur-radius", type=_parse_radius, help="Gaussian blur radius for the background (default 16)")
    parser.add_argument("--resample", choices=sorted(RESAMPLE_FILTERS), help="Filter used to scale the background")
    parser.add_argument("--backup-dir", type=Path, help="Where to back up an overwritten output file (default: temp dir)")
    prompt = parser.add_mutually_exclusive_group()
    prompt.add_argument("--confirm", action="store_true", default=None, help="Ask before replacing a file or the clipboard")
    prompt.add_argument("-y", "--yes", action="store_true", help="Never ask, even if the config says so")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only print errors")
    parser.add_argument("--config", type=Path, help="Settings file (default: $SQUAREBLUR_CONFIG or ~/.config/squareblur/config.yaml)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def run(args: argparse.Namespace, settings: Settings) -> None:
    log = (lambda *a: None) if args.quiet else print

    # Reject a bad output target before any decoding or prompting.
    dst = check_output_path(args.output_path) if args.output_path else None

    if args.input_path:
        image = open_image(args.input_path)
        log(f"Opened image from {args.input_path}")
    else:
        image = clipboard.grab_image()
        log("Read clipboard image")
    log(f"Decoded {image.width}x{image.height} {image.mode} image")

    log(f"Creating blurred background (radius {settings.blur_radius:g}, {settings.resample})...")
    result = compose(image, blur_radius=settings.blur_radius, resample=settings.resample)
    log(f"Constructed {square_side(image.size)}x{square_side(image.size)} image")

    if dst is not None:
        _emit_file(result, dst, settings, log)
    else:
        _emit_clipboard(result, settings, log)


def _emit_file(result: Image.Image, dst: Path, settings: Settings, log) -> None:
    if dst.is_file() and settings.confirm:
        if not confirm(f"{str(dst)!r} is an existing file. replace? [y/n]: "):
            raise Declined(
                "Please rerun with a different output path, or without an output path "
                "(to copy the result to the clipboard)"
            )
    backup = save_image(result, dst, backup_dir=settings.backup_dir)
    if backup is not None:
        log(f"Original file at {dst} backed up to: {backup}")
    log(f"✅ Saved image to {dst}")


def _emit_clipboard(result: Image.Image, settings: Settings, log) -> None:
    if settings.confirm and not confirm("Overwrite clipboard content with edited image? [y/n]: "):
        raise Declined(
            "Please rerun with the clipboard content backed up, or with an output path specified (see '--help')"
        )
    clipboard.copy_image(result)
    log("✅ Edited image copied to clipboard")


def main(argv: Iterable[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        settings = load_settings(args.config).override(
            blur_radius=args.blur_radius,
            resample=args.resample,
            backup_dir=args.backup_dir,
            confirm=False if args.yes else args.confirm,
        )
        run(args, settings)
    except Declined as e:
        print(e)
        return 0
    except SquareBlurError as e:
        print(f"❌ ERROR: {e}", file=sys.stderr)
        return e.exit_code
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
