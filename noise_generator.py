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

# noise_generator.py

"""
Synthetic noise for pixel buffers: uniform, Gaussian and salt-and-pepper.
Only the colour channels are perturbed; alpha is left untouched.
"""

import math
import numpy as np
from typing import Optional

from pixel_buffer import PixelBuffer, InvalidInputError

# Standard deviation at 100% Gaussian noise
GAUSSIAN_SIGMA_AT_FULL = 80.0


def _check_percentage(percentage: float) -> float:
    if not (0 < percentage <= 100):
        raise InvalidInputError(f"Noise percentage must be in (0, 100], got {percentage}.")
    return float(percentage)


def _open_unit_draws(rng: np.random.Generator, shape) -> np.ndarray:
    """Uniform draws in (0, 1). Zero draws are redrawn so log() stays finite."""
    u = rng.random(shape)
    zeros = u == 0.0
    while np.any(zeros):
        u[zeros] = rng.random(int(np.count_nonzero(zeros)))
        zeros = u == 0.0
    return u


def box_muller(rng: np.random.Generator, shape) -> np.ndarray:
    """Standard normal samples via the Box-Muller transform."""
    u = _open_unit_draws(rng, shape)
    v = _open_unit_draws(rng, shape)
    return np.sqrt(-2.0 * np.log(u)) * np.cos(2.0 * math.pi * v)


def add_uniform_noise(buffer: PixelBuffer, percentage: float,
                      rng: Optional[np.random.Generator] = None) -> PixelBuffer:
    """Shifts each channel by a uniform offset in [-p/100*255, +p/100*255]."""
    amount = _check_percentage(percentage) / 100.0 * 255.0
    rng = rng or np.random.default_rng()
    rgb = buffer.rgb_planes()
    offsets = (rng.random(rgb.shape) - 0.5) * 2.0 * amount
    return buffer.with_rgb(rgb + offsets)


def add_gaussian_noise(buffer: PixelBuffer, percentage: float,
                       rng: Optional[np.random.Generator] = None) -> PixelBuffer:
    """Shifts each channel by N(0, sigma) with sigma = p/100*80."""
    sigma = _check_percentage(percentage) / 100.0 * GAUSSIAN_SIGMA_AT_FULL
    rng = rng or np.random.default_rng()
    rgb = buffer.rgb_planes()
    return buffer.with_rgb(rgb + box_muller(rng, rgb.shape) * sigma)


def add_salt_pepper_noise(buffer: PixelBuffer, percentage: float,
                          rng: Optional[np.random.Generator] = None) -> PixelBuffer:
    """
    Forces whole pixels to black or white.

    A single draw r per pixel decides the outcome: r < p/200 gives pepper (0,0,0),
    p/200 <= r < p/100 gives salt (255,255,255), anything else is left alone.
    """
    prob = _check_percentage(percentage) / 100.0
    rng = rng or np.random.default_rng()
    draws = rng.random((buffer.height, buffer.width))

    out = buffer.clone()
    pixels = out.pixels
    pixels[draws < prob / 2.0, :3] = 0
    pixels[(draws >= prob / 2.0) & (draws < prob), :3] = 255
    return out


def add_noise(buffer: PixelBuffer, noise_type: str, percentage: float,
              rng: Optional[np.random.Generator] = None) -> PixelBuffer:
    noise_map = {
        "uniform": add_uniform_noise,
        "gaussian": add_gaussian_noise,
        "salt_pepper": add_salt_pepper_noise,
    }
    noise_func = noise_map.get(noise_type)
    if noise_func is None:
        raise InvalidInputError(f"Unknown noise type '{noise_type}'.")
    return noise_func(buffer, percentage, rng)
