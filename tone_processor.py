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

# tone_processor.py

"""
Histograms and histogram-driven tone mapping (min-max normalization and
CDF equalization). Remapping is done through 256-entry uint8 lookup tables.
"""

from dataclasses import dataclass
import numpy as np

from pixel_buffer import PixelBuffer, clamp_round, luminance

_IDENTITY_LUT = np.arange(256, dtype=np.uint8)


@dataclass
class Histogram:
    """Per-channel 256-bin counts plus a luminance histogram."""
    red: np.ndarray
    green: np.ndarray
    blue: np.ndarray
    luminance: np.ndarray
    is_achromatic: bool

    def to_dict(self) -> dict:
        return {
            "r": self.red.tolist(),
            "g": self.green.tolist(),
            "b": self.blue.tolist(),
            "gray": self.luminance.tolist(),
            "is_gray": self.is_achromatic,
        }


def _bincount256(values: np.ndarray) -> np.ndarray:
    return np.bincount(values.reshape(-1), minlength=256).astype(np.int64)


def compute_histogram(buffer: PixelBuffer) -> Histogram:
    px = buffer.pixels
    gray = clamp_round(luminance(buffer))
    return Histogram(
        red=_bincount256(px[..., 0]),
        green=_bincount256(px[..., 1]),
        blue=_bincount256(px[..., 2]),
        luminance=_bincount256(gray),
        is_achromatic=buffer.is_achromatic(),
    )


def apply_lut(channel: np.ndarray, lut: np.ndarray) -> np.ndarray:
    """Applies a 256-entry uint8 LUT to a uint8 channel."""
    if channel.dtype != np.uint8:
        raise TypeError("Channel passed to apply_lut must be of type np.uint8.")
    if lut.dtype != np.uint8 or lut.shape != (256,):
        raise ValueError("LUT must be a 256-entry NumPy array of dtype uint8.")
    return lut[channel]


def build_normalization_lut(channel: np.ndarray) -> np.ndarray:
    """Maps [min, max] of the channel linearly onto [0, 255]."""
    lo = int(channel.min())
    hi = int(channel.max())
    value_range = (hi - lo) or 1
    levels = np.arange(256, dtype=np.float64)
    return clamp_round((levels - lo) / value_range * 255.0)


def build_equalization_lut(channel: np.ndarray) -> np.ndarray:
    """
    CDF remap for one channel: round((CDF[s] - cdf_min) / (N - cdf_min) * 255).

    A constant channel gives N - cdf_min == 0; it is returned as an identity
    LUT so the channel passes through unchanged.
    """
    hist = _bincount256(channel)
    cdf = np.cumsum(hist)
    total = int(channel.size)
    cdf_min = int(cdf[np.flatnonzero(cdf)[0]])

    denominator = total - cdf_min
    if denominator == 0:
        return _IDENTITY_LUT.copy()

    return clamp_round((cdf - cdf_min) / denominator * 255.0)


def _remap_channels(buffer: PixelBuffer, lut_builder) -> PixelBuffer:
    out = buffer.clone()
    px = out.pixels
    for c in range(3):
        channel = np.ascontiguousarray(px[..., c])
        px[..., c] = apply_lut(channel, lut_builder(channel))
    return out


def normalize_image(buffer: PixelBuffer) -> PixelBuffer:
    """Independent per-channel min-max stretch. Alpha is kept."""
    return _remap_channels(buffer, build_normalization_lut)


def equalize_image(buffer: PixelBuffer) -> PixelBuffer:
    """Independent per-channel histogram equalization. Alpha is kept."""
    return _remap_channels(buffer, build_equalization_lut)
