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

# spatial_filters.py

import math
import cv2
import numpy as np
import numba
from scipy import ndimage

import tone_processor
from pixel_buffer import (
    PixelBuffer, InvalidInputError, clamp_round, to_grayscale, require_odd_size
)

SOBEL_X = np.array([[-1, 0, 1], [-2, 0, 2], [-1, 0, 1]], dtype=np.float64)
SOBEL_Y = np.array([[-1, -2, -1], [0, 0, 0], [1, 2, 1]], dtype=np.float64)
PREWITT_X = np.array([[-1, 0, 1], [-1, 0, 1], [-1, 0, 1]], dtype=np.float64)
PREWITT_Y = np.array([[-1, -1, -1], [0, 0, 0], [1, 1, 1]], dtype=np.float64)

# Canny gradients come out of the clamped convolution; this is their neutral level.
CANNY_GRADIENT_BIAS = 128.0
CANNY_HIGH_RATIO = 0.15
CANNY_LOW_RATIO = 0.4

# --- Kernels ---

def box_kernel(size: int) -> np.ndarray:
    size = require_odd_size(size)
    return np.ones((size, size), dtype=np.float64)

def gaussian_kernel(size: int) -> np.ndarray:
    """Unnormalized 2D Gaussian over an odd window with sigma = size / 6."""
    size = require_odd_size(size)
    sigma = size / 6.0
    half = size // 2
    ax = np.arange(-half, half + 1, dtype=np.float64)
    xx, yy = np.meshgrid(ax, ax)
    return np.exp(-(xx ** 2 + yy ** 2) / (2.0 * sigma * sigma))

# --- Convolution primitive ---

def _convolve_rgb(rgb: np.ndarray, kernel: np.ndarray, normalize: bool) -> np.ndarray:
    """Edge-replicated correlation of float64 colour planes, before rounding."""
    sums = cv2.filter2D(rgb, -1, kernel, borderType=cv2.BORDER_REPLICATE)
    if normalize:
        ksum = float(kernel.sum())
        if ksum == 0:
            ksum = 1.0
        sums = sums / ksum
    return sums

def convolve(buffer: PixelBuffer, kernel, normalize: bool = True) -> PixelBuffer:
    """
    Applies a kernel to the colour channels of a buffer.

    Out-of-bounds samples are clamped to the nearest edge pixel. With `normalize`
    the weighted sum is divided by the kernel total (a zero total counts as 1).
    Results are rounded and clamped to [0, 255]; alpha is copied from the source.

    Args:
        buffer (PixelBuffer): The source buffer. It is not modified.
        kernel: A 2D array of weights with odd height and width.
        normalize (bool): Divide by the kernel's total weight.

    Returns:
        PixelBuffer: A new filtered buffer.
    """
    kernel = np.asarray(kernel, dtype=np.float64)
    if kernel.ndim != 2:
        raise InvalidInputError(f"Kernel must be 2D, got shape {kernel.shape}.")
    kh, kw = kernel.shape
    if kh % 2 == 0 or kw % 2 == 0:
        raise InvalidInputError(f"Kernel dimensions must be odd, got {kh}x{kw}.")
    return buffer.with_rgb(_convolve_rgb(buffer.rgb_planes(), kernel, normalize))

# --- Smoothing filters ---

def average_filter(buffer: PixelBuffer, size: int) -> PixelBuffer:
    return convolve(buffer, box_kernel(size))

def gaussian_filter(buffer: PixelBuffer, size: int) -> PixelBuffer:
    return convolve(buffer, gaussian_kernel(size))

def median_filter(buffer: PixelBuffer, size: int) -> PixelBuffer:
    """Per-channel median of the clamped size x size neighbourhood."""
    size = require_odd_size(size)
    rgb = buffer.pixels[..., :3]
    # size 1 on the channel axis keeps R, G and B independent
    filtered = ndimage.median_filter(rgb, size=(size, size, 1), mode="nearest")
    return buffer.with_rgb(filtered)

# --- Gradient edge detectors ---

def _gradient_magnitude(buffer: PixelBuffer, kx: np.ndarray, ky: np.ndarray) -> PixelBuffer:
    gray = to_grayscale(buffer)
    gx = convolve(gray, kx, normalize=False).pixels[..., 0].astype(np.float64)
    gy = convolve(gray, ky, normalize=False).pixels[..., 0].astype(np.float64)
    mag = np.minimum(255.0, np.sqrt(gx * gx + gy * gy))
    return buffer.with_rgb(np.repeat(mag[..., np.newaxis], 3, axis=2))

def sobel_filter(buffer: PixelBuffer) -> PixelBuffer:
    return _gradient_magnitude(buffer, SOBEL_X, SOBEL_Y)

def prewitt_filter(buffer: PixelBuffer) -> PixelBuffer:
    return _gradient_magnitude(buffer, PREWITT_X, PREWITT_Y)

def roberts_filter(buffer: PixelBuffer) -> PixelBuffer:
    """Roberts cross with edge-replicated right and bottom neighbours."""
    gray = to_grayscale(buffer).pixels[..., 0].astype(np.float64)
    padded = np.pad(gray, ((0, 1), (0, 1)), mode="edge")
    gx = padded[:-1, :-1] - padded[1:, 1:]
    gy = padded[:-1, 1:] - padded[1:, :-1]
    mag = np.minimum(255.0, np.sqrt(gx * gx + gy * gy))
    return buffer.with_rgb(np.repeat(mag[..., np.newaxis], 3, axis=2))

# --- Canny ---

@numba.jit(nopython=True, cache=True)
def _suppress_non_maxima(magnitude: np.ndarray, direction: np.ndarray) -> np.ndarray:
    """
    Keeps a magnitude only where it is a local maximum along the gradient direction.
    Directions are quantized into four 45-degree bins. Border pixels stay zero.
    """
    height, width = magnitude.shape
    suppressed = np.zeros_like(magnitude)

    for y in range(1, height - 1):
        for x in range(1, width - 1):
            angle = (direction[y, x] * 180.0 / math.pi + 180.0) % 180.0
            if angle < 22.5 or angle >= 157.5:
                n1 = magnitude[y, x - 1]
                n2 = magnitude[y, x + 1]
            elif angle < 67.5:
                n1 = magnitude[y - 1, x + 1]
                n2 = magnitude[y + 1, x - 1]
            elif angle < 112.5:
                n1 = magnitude[y - 1, x]
                n2 = magnitude[y + 1, x]
            else:
                n1 = magnitude[y - 1, x - 1]
                n2 = magnitude[y + 1, x + 1]

            m = magnitude[y, x]
            if m >= n1 and m >= n2:
                suppressed[y, x] = m

    return suppressed

def canny_edge_detector(buffer: PixelBuffer, size: int) -> PixelBuffer:
    """
    Simplified Canny: blur, Sobel gradients, non-maximum suppression and a
    double threshold. There is no hysteresis linking, so the output is a
    ternary map (0 = none, 128 = weak, 255 = strong) with opaque alpha.

    Args:
        buffer (PixelBuffer): The source buffer.
        size (int): Odd Gaussian kernel size used for the pre-blur.

    Returns:
        PixelBuffer: The edge map.
    """
    blurred = gaussian_filter(to_grayscale(buffer), size)
    gx = convolve(blurred, SOBEL_X, normalize=False).pixels[..., 0].astype(np.float64)
    gy = convolve(blurred, SOBEL_Y, normalize=False).pixels[..., 0].astype(np.float64)

    mx = gx - CANNY_GRADIENT_BIAS
    my = gy - CANNY_GRADIENT_BIAS
    magnitude = np.sqrt(mx * mx + my * my)
    direction = np.arctan2(my, mx)

    suppressed = _suppress_non_maxima(magnitude, direction)

    high_thresh = float(magnitude.max()) * CANNY_HIGH_RATIO
    low_thresh = high_thresh * CANNY_LOW_RATIO
    edges = np.where(suppressed >= high_thresh, 255.0,
                     np.where(suppressed >= low_thresh, 128.0, 0.0))

    out = buffer.with_rgb(np.repeat(edges[..., np.newaxis], 3, axis=2))
    out.pixels[..., 3] = 255
    return out

# --- Dispatch ---

def apply_spatial_filter(buffer: PixelBuffer, filter_type: str, kernel_size: int = 3) -> PixelBuffer:
    """Runs a named spatial filter. kernel_size is ignored where it does not apply."""
    sized_filters = {
        "average": average_filter,
        "gaussian": gaussian_filter,
        "median": median_filter,
        "canny": canny_edge_detector,
    }
    unsized_filters = {
        "sobel": sobel_filter,
        "roberts": roberts_filter,
        "prewitt": prewitt_filter,
        "equalize": tone_processor.equalize_image,
    }

    if filter_type in sized_filters:
        return sized_filters[filter_type](buffer, kernel_size)
    if filter_type in unsized_filters:
        return unsized_filters[filter_type](buffer)
    raise InvalidInputError(f"Unknown spatial filter type '{filter_type}'.")
