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

# frequency_processor.py

"""
Frequency-domain processing on the luminance channel: a centred 2D FFT,
its inverse, a log-magnitude visualisation, radial low/high-pass masks
and hybrid-image composition.
"""

from dataclasses import dataclass
import numpy as np

import fft_core
from pixel_buffer import (
    PixelBuffer, InvalidInputError, to_grayscale, from_gray_plane
)

PASS_TYPES = ("low", "high")


@dataclass(frozen=True, eq=False)
class Spectrum:
    """
    Real and imaginary planes of shape (padded_height, padded_width), both
    powers of two, plus the unpadded size of the source buffer.
    """
    real: np.ndarray
    imag: np.ndarray
    original_width: int
    original_height: int

    def __post_init__(self):
        if self.real.shape != self.imag.shape or self.real.ndim != 2:
            raise InvalidInputError(
                f"Spectrum planes must be matching 2D arrays, got {self.real.shape} and {self.imag.shape}."
            )
        height, width = self.real.shape
        if not (fft_core.is_power_of_two(width) and fft_core.is_power_of_two(height)):
            raise InvalidInputError(f"Spectrum dimensions must be powers of two, got {width}x{height}.")
        if self.original_width <= 0 or self.original_height <= 0:
            raise InvalidInputError("Spectrum original dimensions must be positive.")

    @property
    def width(self) -> int:
        return self.real.shape[1]

    @property
    def height(self) -> int:
        return self.real.shape[0]

    def magnitude(self) -> np.ndarray:
        return np.hypot(self.real, self.imag)


@dataclass
class FrequencyResult:
    """Everything a frequency filter run produces, for display alongside each other."""
    spectrum: Spectrum
    spectrum_image: PixelBuffer
    filtered_spectrum: Spectrum
    filtered_spectrum_image: PixelBuffer
    image: PixelBuffer


def _checkerboard(height: int, width: int) -> np.ndarray:
    """(-1)^(x+y); multiplying by it moves the zero frequency to the centre."""
    yy, xx = np.indices((height, width))
    return np.where((xx + yy) % 2 == 0, 1.0, -1.0)


def forward_transform(buffer: PixelBuffer) -> Spectrum:
    """
    Grayscale, zero-pad to power-of-two dimensions, centre, then FFT rows and columns.

    Args:
        buffer (PixelBuffer): The source buffer. Only its luminance is used.

    Returns:
        Spectrum: The centred spectrum at padded dimensions.
    """
    gray = to_grayscale(buffer).pixels[..., 0].astype(np.float64)
    padded_w = fft_core.next_power_of_two(buffer.width)
    padded_h = fft_core.next_power_of_two(buffer.height)

    re = np.zeros((padded_h, padded_w), dtype=np.float64)
    re[:buffer.height, :buffer.width] = gray
    re *= _checkerboard(padded_h, padded_w)
    im = np.zeros_like(re)

    fft_core.fft_rows(re, im)
    fft_core.fft_columns(re, im)

    return Spectrum(re, im, buffer.width, buffer.height)


def inverse_transform(spectrum: Spectrum) -> PixelBuffer:
    """Inverse FFT (columns, then rows), cropped to the original size, as an achromatic buffer."""
    re = spectrum.real.copy()
    im = spectrum.imag.copy()

    fft_core.fft_columns(re, im, invert=True)
    fft_core.fft_rows(re, im, invert=True)

    oh, ow = spectrum.original_height, spectrum.original_width
    # The checkerboard sign is absorbed by taking the magnitude
    magnitude = np.hypot(re[:oh, :ow], im[:oh, :ow])
    return from_gray_plane(magnitude)


def spectrum_to_image(spectrum: Spectrum) -> PixelBuffer:
    """log(1 + |F|) scaled into [0, 255] over the padded dimensions."""
    log_mag = np.log1p(spectrum.magnitude())
    max_log = float(log_mag.max()) or 1.0
    return from_gray_plane(log_mag / max_log * 255.0)


def _check_pass_type(pass_type: str) -> str:
    if pass_type not in PASS_TYPES:
        raise InvalidInputError(f"Unknown pass type '{pass_type}', expected one of {PASS_TYPES}.")
    return pass_type


def radial_distance(height: int, width: int) -> np.ndarray:
    """Euclidean distance of every coordinate from (width / 2, height / 2)."""
    yy, xx = np.indices((height, width), dtype=np.float64)
    return np.hypot(xx - width / 2.0, yy - height / 2.0)


def radial_mask(spectrum: Spectrum, radius: float, pass_type: str) -> Spectrum:
    """
    Zeroes coefficients by distance from the spectrum centre.

    A low-pass mask keeps distance <= radius; a high-pass mask keeps distance >= radius.
    Coefficients exactly at the radius are kept by both.
    """
    _check_pass_type(pass_type)
    if radius <= 0:
        raise InvalidInputError(f"Mask radius must be positive, got {radius}.")

    dist = radial_distance(spectrum.height, spectrum.width)
    keep = dist <= radius if pass_type == "low" else dist >= radius
    return Spectrum(
        np.where(keep, spectrum.real, 0.0),
        np.where(keep, spectrum.imag, 0.0),
        spectrum.original_width,
        spectrum.original_height,
    )


def combine_spectra(first: Spectrum, second: Spectrum) -> Spectrum:
    """Adds two spectra over the region they have in common."""
    h = min(first.height, second.height)
    w = min(first.width, second.width)
    return Spectrum(
        first.real[:h, :w] + second.real[:h, :w],
        first.imag[:h, :w] + second.imag[:h, :w],
        min(first.original_width, second.original_width),
        min(first.original_height, second.original_height),
    )


def create_hybrid_image(first: Spectrum, second: Spectrum,
                        mode1: str, mode2: str,
                        radius1: float, radius2: float) -> PixelBuffer:
    """
    Masks each spectrum with its own radius and pass type, adds them in
    frequency space and transforms the sum back.
    """
    filtered1 = radial_mask(first, radius1, mode1)
    filtered2 = radial_mask(second, radius2, mode2)
    return inverse_transform(combine_spectra(filtered1, filtered2))


def apply_frequency_filter(buffer: PixelBuffer, pass_type: str, radius: float) -> FrequencyResult:
    spectrum = forward_transform(buffer)
    filtered = radial_mask(spectrum, radius, pass_type)
    return FrequencyResult(
        spectrum=spectrum,
        spectrum_image=spectrum_to_image(spectrum),
        filtered_spectrum=filtered,
        filtered_spectrum_image=spectrum_to_image(filtered),
        image=inverse_transform(filtered),
    )
