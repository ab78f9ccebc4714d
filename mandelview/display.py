"""Conversion of rendered buffers into displayable images."""

from __future__ import annotations

import math
from typing import Callable, Optional

import numpy as np
import PIL.Image

from .renderer import PixelBuffer

BASE_TONE = 32
MAX_OVERSAMPLE = 2.0


def device_dimensions(
    client_width: int,
    client_height: int,
    device_pixel_ratio: Optional[float] = 1.0,
    max_oversample: float = MAX_OVERSAMPLE,
) -> tuple[int, int]:
    """Scale a client size to device pixels, oversampling between 1x and ``max_oversample``."""

    if not device_pixel_ratio or not math.isfinite(device_pixel_ratio):
        device_pixel_ratio = 1.0
    oversample = min(max(device_pixel_ratio, 1.0), max_oversample)
    return int(client_width * oversample), int(client_height * oversample)


def to_rgba(buffer: PixelBuffer, base_tone: int = BASE_TONE) -> np.ndarray:
    """Build an RGBA frame with a flat base tone and the intensity as alpha."""

    rgba = np.full((buffer.height, buffer.width, 4), base_tone, dtype=np.uint8)
    rgba[..., 3] = buffer.as_array()
    return rgba


def to_image(
    buffer: PixelBuffer,
    colormap: Optional[Callable[[np.ndarray], np.ndarray]] = None,
) -> PIL.Image.Image:
    """Return ``buffer`` as a Pillow RGBA image.

    With a ``colormap`` (any callable taking values in ``[0, 1]`` and returning
    RGBA floats, such as a matplotlib colormap) the intensity is colorized into
    an opaque image instead of the translucent base-tone frame.
    """

    if len(buffer) == 0:
        return PIL.Image.new("RGBA", (buffer.width, buffer.height), (BASE_TONE, BASE_TONE, BASE_TONE, 0))

    if colormap is None:
        return PIL.Image.fromarray(to_rgba(buffer))

    values = buffer.as_array().astype(np.float64) / 255.0
    rgba = np.array(colormap(values), copy=True)
    rgba[..., 3] = 1.0
    return PIL.Image.fromarray(np.uint8(np.clip(rgba * 255, 0, 255)))
