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

# fft_core.py

import math
import numpy as np
import numba

from pixel_buffer import InvalidInputError


def next_power_of_two(n: int) -> int:
    p = 1
    while p < n:
        p <<= 1
    return p


def is_power_of_two(n: int) -> bool:
    return n >= 1 and (n & (n - 1)) == 0


@numba.jit(nopython=True, cache=True)
def _fft_rows_inplace(re: np.ndarray, im: np.ndarray, invert: bool):
    """
    Iterative radix-2 Cooley-Tukey FFT applied to every row of (re, im).

    Rows are bit-reversal permuted, then combined with butterflies of
    doubling length. The forward twiddle angle is +2*pi/len; the inverse
    negates it and scales the result by 1/n.
    """
    rows, n = re.shape
    if n <= 1:
        return

    sign = -1.0 if invert else 1.0

    for r in range(rows):
        # Bit-reversal permutation
        j = 0
        for i in range(1, n):
            bit = n >> 1
            while j & bit:
                j ^= bit
                bit >>= 1
            j ^= bit
            if i < j:
                tmp = re[r, i]
                re[r, i] = re[r, j]
                re[r, j] = tmp
                tmp = im[r, i]
                im[r, i] = im[r, j]
                im[r, j] = tmp

        length = 2
        while length <= n:
            angle = sign * 2.0 * math.pi / length
            w_re = math.cos(angle)
            w_im = math.sin(angle)
            half = length // 2
            for start in range(0, n, length):
                cur_re = 1.0
                cur_im = 0.0
                for k in range(half):
                    a = start + k
                    b = a + half
                    v_re = re[r, b] * cur_re - im[r, b] * cur_im
                    v_im = re[r, b] * cur_im + im[r, b] * cur_re
                    u_re = re[r, a]
                    u_im = im[r, a]
                    re[r, a] = u_re + v_re
                    im[r, a] = u_im + v_im
                    re[r, b] = u_re - v_re
                    im[r, b] = u_im - v_im
                    next_re = cur_re * w_re - cur_im * w_im
                    cur_im = cur_re * w_im + cur_im * w_re
                    cur_re = next_re
            length <<= 1

        if invert:
            for i in range(n):
                re[r, i] /= n
                im[r, i] /= n


def fft_rows(re: np.ndarray, im: np.ndarray, invert: bool = False):
    """
    Transforms every row of a complex plane pair in place.

    Args:
        re (np.ndarray): 2D float64 real plane, modified in place.
        im (np.ndarray): 2D float64 imaginary plane of the same shape, modified in place.
        invert (bool): Run the inverse transform (negated angle, 1/n scaling).
    """
    if re.shape != im.shape or re.ndim != 2:
        raise InvalidInputError(f"Real and imaginary planes must be matching 2D arrays, got {re.shape} and {im.shape}.")
    if not is_power_of_two(re.shape[1]):
        raise InvalidInputError(f"FFT length must be a power of two, got {re.shape[1]}.")
    if re.dtype != np.float64 or im.dtype != np.float64:
        raise TypeError("FFT planes must be of type np.float64.")
    _fft_rows_inplace(re, im, invert)


def fft_columns(re: np.ndarray, im: np.ndarray, invert: bool = False):
    """Transforms every column of a complex plane pair in place."""
    re_t = np.ascontiguousarray(re.T)
    im_t = np.ascontiguousarray(im.T)
    fft_rows(re_t, im_t, invert)
    re[...] = re_t.T
    im[...] = im_t.T
