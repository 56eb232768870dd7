"""
Copyright (c) 2025 Aaron Baca

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU Affero General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.

This program is distributed in the hope that it will be useful,
but WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
GNU Affero General Public License for more details.

You should have received a copy of the GNU Affero General Public License
along with this program.  If not, see <https://www.gnu.org/licenses/>.
"""

# pixel_buffer.py

"""
Shared RGBA pixel buffer used by every engine.
A buffer is a width, a height and a flat uint8 array of W*H*4 samples.
"""

import numpy as np
from typing import Tuple

# ITU-R BT.601 luma weights
LUMA_WEIGHTS = (0.299, 0.587, 0.114)


class InvalidInputError(ValueError):
    """Raised when a caller violates an input precondition."""


def clamp_round(values) -> np.ndarray:
    """Rounds half-up and clamps to [0, 255], returning uint8."""
    arr = np.asarray(values, dtype=np.float64)
    return np.clip(np.floor(arr + 0.5), 0, 255).astype(np.uint8)


class PixelBuffer:
    """
    A rectangular grid of RGBA samples.

    The sample array is always contiguous uint8 of length width*height*4.
    Transforms treat buffers as read-only and return new ones.
    """

    def __init__(self, width: int, height: int, data=None):
        try:
            integral = int(width) == width and int(height) == height
        except (TypeError, ValueError, OverflowError):
            integral = False
        if not integral:
            raise InvalidInputError(f"Buffer dimensions must be integers, got {width!r}x{height!r}.")
        width, height = int(width), int(height)
        if width <= 0 or height <= 0:
            raise InvalidInputError(f"Buffer dimensions must be positive, got {width}x{height}.")

        expected = width * height * 4
        if data is None:
            samples = np.zeros(expected, dtype=np.uint8)
        else:
            arr = np.asarray(data)
            if arr.size != expected:
                raise InvalidInputError(
                    f"Sample array length {arr.size} does not match {width}x{height}x4 = {expected}."
                )
            if arr.dtype == np.uint8:
                samples = np.ascontiguousarray(arr.reshape(-1)).copy()
            else:
                samples = clamp_round(arr.reshape(-1))

        self.width = width
        self.height = height
        self.data = samples

    @classmethod
    def blank(cls, width: int, height: int, fill: int = 0, alpha: int = 255) -> "PixelBuffer":
        buf = cls(width, height)
        pixels = buf.pixels
        pixels[..., :3] = clamp_round(fill)
        pixels[..., 3] = clamp_round(alpha)
        return buf

    @classmethod
    def from_array(cls, array: np.ndarray) -> "PixelBuffer":
        """
        Wraps an (H, W, 4) or (H, W, 3) array. Three-channel input gets an opaque alpha.
        """
        arr = np.asarray(array)
        if arr.ndim != 3 or arr.shape[2] not in (3, 4):
            raise InvalidInputError(f"Expected an (H, W, 3) or (H, W, 4) array, got shape {arr.shape}.")
        height, width = arr.shape[:2]
        if arr.shape[2] == 3:
            rgba = np.full((height, width, 4), 255, dtype=np.float64)
            rgba[..., :3] = arr
            arr = rgba
        return cls(width, height, arr)

    @property
    def pixels(self) -> np.ndarray:
        """An (H, W, 4) view sharing memory with `data`."""
        return self.data.reshape(self.height, self.width, 4)

    def clone(self) -> "PixelBuffer":
        return PixelBuffer(self.width, self.height, self.data.copy())

    def get_pixel(self, x: int, y: int) -> Tuple[int, int, int, int]:
        i = (y * self.width + x) * 4
        r, g, b, a = self.data[i:i + 4]
        return int(r), int(g), int(b), int(a)

    def set_pixel(self, x: int, y: int, r, g, b, a=255):
        i = (y * self.width + x) * 4
        self.data[i:i + 4] = clamp_round((r, g, b, a))

    def is_achromatic(self) -> bool:
        """True iff R == G == B at every pixel."""
        px = self.pixels
        return bool(np.all(px[..., 0] == px[..., 1]) and np.all(px[..., 1] == px[..., 2]))

    def rgb_planes(self) -> np.ndarray:
        """Returns the colour channels as a float64 (H, W, 3) copy."""
        return self.pixels[..., :3].astype(np.float64)

    def with_rgb(self, rgb) -> "PixelBuffer":
        """Returns a new buffer with this buffer's alpha and the given colour planes."""
        out = self.clone()
        out.pixels[..., :3] = clamp_round(rgb)
        return out

    def __eq__(self, other):
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return (self.width == other.width and self.height == other.height
                and np.array_equal(self.data, other.data))

    def __repr__(self):
        return f"PixelBuffer(width={self.width}, height={self.height})"


def luminance(buffer: PixelBuffer) -> np.ndarray:
    """Float luma plane (H, W), unrounded."""
    rgb = buffer.rgb_planes()
    wr, wg, wb = LUMA_WEIGHTS
    return wr * rgb[..., 0] + wg * rgb[..., 1] + wb * rgb[..., 2]


def to_grayscale(buffer: PixelBuffer) -> PixelBuffer:
    """Achromatic conversion. Alpha is preserved."""
    gray = clamp_round(luminance(buffer))
    return buffer.with_rgb(np.repeat(gray[..., np.newaxis], 3, axis=2))


def from_gray_plane(plane, alpha: int = 255) -> PixelBuffer:
    """Builds an achromatic buffer from a single (H, W) plane."""
    gray = clamp_round(plane)
    height, width = gray.shape
    rgba = np.empty((height, width, 4), dtype=np.uint8)
    rgba[..., :3] = gray[..., np.newaxis]
    rgba[..., 3] = alpha
    return PixelBuffer(width, height, rgba)


def require_odd_size(size: int, name: str = "kernel size") -> int:
    """Validates an odd, positive window size."""
    if int(size) != size or size < 1 or size % 2 == 0:
        raise InvalidInputError(f"{name} must be an odd positive integer, got {size}.")
    return int(size)
