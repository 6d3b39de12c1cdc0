"""
Clipboard access for images.

Reading goes through Pillow's ``ImageGrab.grabclipboard``. Pillow has no
writer, so copying shells out to the platform's clipboard tool, trying each
available method in turn:

- Linux: wl-copy (Wayland), then xclip
- macOS: osascript
- Windows: PowerShell + System.Windows.Forms

Every failure is collected so the final ClipboardError can list what was
tried and how to fix it.
"""

from __future__ import annotations

import io
import os
import shutil
import subprocess
import sys
import tempfile
from typing import Callable, List, Tuple

from PIL import Image, ImageGrab

from .errors import ClipboardError
from .image_io import decode

TIMEOUT_SECONDS = 10

Result = Tuple[bool, str]


def _get_platform() -> str:
    if sys.platform.startswith("win"):
        return "windows"
    if sys.platform == "darwin":
        return "macos"
    return "linux"


def _is_wayland() -> bool:
    return (
        os.environ.get("XDG_SESSION_TYPE", "").lower() == "wayland"
        or bool(os.environ.get("WAYLAND_DISPLAY"))
    )


# =============================================================================
# Reading
# =============================================================================

def _first_image_file(filenames: List[str]) -> Image.Image | None:
    for name in filenames:
        try:
            image = Image.open(name)
            image.load()
            return image
        except (OSError, SyntaxError, ValueError, Image.DecompressionBombError):
            continue
    return None


def grab_image() -> Image.Image:
    """Return the image currently on the clipboard.

    Copied files are accepted too: the first one that decodes is used.
    """
    try:
        content = ImageGrab.grabclipboard()
    except NotImplementedError as e:
        raise ClipboardError(
            "Clipboard images are not supported here",
            [("ImageGrab.grabclipboard", str(e))],
            _remediation(),
        ) from e
    except OSError as e:
        raise ClipboardError(
            "Could not read clipboard image",
            [("ImageGrab.grabclipboard", str(e))],
            _remediation(),
        ) from e

    if isinstance(content, Image.Image):
        # macOS and Windows backends return a lazily opened image.
        return decode(content, "from clipboard")
    if isinstance(content, list):
        image = _first_image_file(content)
        if image is not None:
            return image
        raise ClipboardError(
            "Clipboard holds files, but none of them is a readable image",
            remediation="Copy an image (or an image file) and try again, or pass --input-path",
        )
    raise ClipboardError(
        "No image on the clipboard (perhaps it is empty?)",
        remediation="Copy an image and try again, or pass --input-path",
    )


# =============================================================================
# Writing
# =============================================================================

def _run(cmd: List[str], data: bytes | None = None) -> Result:
    # Clipboard owners like xclip fork and keep serving, so their output is not captured.
    try:
        proc = subprocess.run(
            cmd,
            input=data,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            timeout=TIMEOUT_SECONDS,
        )
    except FileNotFoundError:
        return False, f"{cmd[0]} not found"
    except subprocess.TimeoutExpired:
        return False, f"{cmd[0]} timed out"
    except OSError as e:
        return False, f"{cmd[0]} exception: {e}"
    if proc.returncode != 0:
        return False, f"{cmd[0]} returned {proc.returncode}"
    return True, ""


def _png_bytes(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


def _with_png_file(image: Image.Image, action: Callable[[str], Result]) -> Result:
    fd, path = tempfile.mkstemp(prefix="squareblur-", suffix=".png")
    os.close(fd)
    try:
        try:
            image.save(path, format="PNG")
        except OSError as e:
            return False, f"could not write temporary PNG: {e}"
        return action(path)
    finally:
        os.remove(path)


def _linux_methods(image: Image.Image) -> List[Tuple[str, Callable[[], Result]]]:
    methods = []
    if _is_wayland() and shutil.which("wl-copy"):
        methods.append(("wl-copy", lambda: _run(["wl-copy", "--type", "image/png"], _png_bytes(image))))
    if shutil.which("xclip"):
        methods.append(
            ("xclip", lambda: _run(["xclip", "-selection", "clipboard", "-t", "image/png", "-i"], _png_bytes(image)))
        )
    return methods


def _macos_methods(image: Image.Image) -> List[Tuple[str, Callable[[], Result]]]:
    def osascript(path: str) -> Result:
        script = f'set the clipboard to (read (POSIX file "{path}") as «class PNGf»)'
        return _run(["osascript", "-e", script])

    return [("osascript", lambda: _with_png_file(image, osascript))]


def _windows_methods(image: Image.Image) -> List[Tuple[str, Callable[[], Result]]]:
    def powershell(path: str) -> Result:
        command = (
            "Add-Type -AssemblyName System.Windows.Forms; "
            "Add-Type -AssemblyName System.Drawing; "
            f"$img = [System.Drawing.Image]::FromFile('{path}'); "
            "[System.Windows.Forms.Clipboard]::SetImage($img); "
            "$img.Dispose()"
        )
        return _run(["powershell.exe", "-NoProfile", "-NonInteractive", "-STA", "-Command", command])

    return [("PowerShell", lambda: _with_png_file(image, powershell))]


def _remediation() -> str:
    system = _get_platform()
    if system == "linux":
        return "Install wl-clipboard (Wayland) or xclip (X11), or pass --input-path/--output-path"
    if system == "macos":
        return "Make sure osascript is available, or pass --input-path/--output-path"
    return "Make sure PowerShell is available, or pass --input-path/--output-path"


def copy_image(image: Image.Image) -> None:
    """Put ``image`` on the clipboard as PNG, or raise ClipboardError."""
    system = _get_platform()
    if system == "linux":
        methods = _linux_methods(image)
    elif system == "macos":
        methods = _macos_methods(image)
    else:
        methods = _windows_methods(image)

    tried: List[Tuple[str, str]] = []
    for name, method in methods:
        ok, error = method()
        if ok:
            return
        tried.append((name, error))

    if not tried:
        raise ClipboardError("No clipboard tool found", remediation=_remediation())
    raise ClipboardError("Could not copy image to clipboard", tried, _remediation())
