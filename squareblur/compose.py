"""Square framing with a blurred copy of the image as background fill.

The source is centered unchanged on an ``S x S`` canvas (``S`` being its
longer side). The uncovered bands show the same image, cover-scaled to the
canvas and Gaussian blurred.
"""

from __future__ import annotations

from typing import Tuple

from PIL import Image, ImageFilter, ImageOps

BLUR_RADIUS: float = 16
RESAMPLE: str = "bilinear"

RESAMPLE_FILTERS = {
    "nearest": Image.Resampling.NEAREST,
    "bilinear": Image.Resampling.BILINEAR,
    "bicubic": Image.Resampling.BICUBIC,
    "lanczos": Image.Resampling.LANCZOS,
}


def _has_alpha(image: Image.Image) -> bool:
    return image.mode in ("RGBA", "LA", "PA") or "transparency" in image.info


def _working_copy(image: Image.Image) -> Image.Image:
    mode = "RGBA" if _has_alpha(image) else "RGB"
    return image if image.mode == mode else image.convert(mode)


def square_side(size: Tuple[int, int]) -> int:
    width, height = size
    return max(width, height)


def foreground_box(size: Tuple[int, int]) -> Tuple[int, int, int, int]:
    """Box ``(left, top, right, bottom)`` covered by the source on its square canvas."""
    width, height = size
    side = square_side(size)
    left = (side - width) // 2
    top = (side - height) // 2
    return left, top, left + width, top + height


def blurred_background(
    image: Image.Image,
    side: int,
    blur_radius: float = BLUR_RADIUS,
    resample: str = RESAMPLE,
) -> Image.Image:
    """Cover-scale ``image`` to ``side x side`` (center crop) and blur it."""
    bg = ImageOps.fit(image, (side, side), method=RESAMPLE_FILTERS[resample], centering=(0.5, 0.5))
    if blur_radius > 0:
        bg = bg.filter(ImageFilter.GaussianBlur(radius=blur_radius))
    return bg


def compose(
    source: Image.Image,
    blur_radius: float = BLUR_RADIUS,
    resample: str = RESAMPLE,
) -> Image.Image:
    """Return a new square image: blurred background, ``source`` centered on top."""
    if blur_radius < 0:
        raise ValueError(f"blur_radius must be >= 0, got {blur_radius}")
    if resample not in RESAMPLE_FILTERS:
        raise ValueError(f"unknown resample filter {resample!r}, expected one of {sorted(RESAMPLE_FILTERS)}")

    fg = _working_copy(source)
    side = square_side(fg.size)
    if fg.width == fg.height:
        # Background would be fully hidden.
        return fg.copy()

    canvas = blurred_background(fg, side, blur_radius=blur_radius, resample=resample)
    left, top, _, _ = foreground_box(fg.size)
    # No mask: the foreground replaces the background pixels as-is, alpha included.
    canvas.paste(fg, (left, top))
    return canvas
