import sys
import os
import numpy as np
import pytest

# Add the root directory to the Python path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from pixel_buffer import PixelBuffer, InvalidInputError, to_grayscale
import fft_core
import frequency_processor
from frequency_processor import Spectrum

@pytest.fixture
def random_buffer():
    rng = np.random.default_rng(2024)
    return PixelBuffer(7, 5, rng.integers(0, 256, size=7 * 5 * 4, dtype=np.uint8))

def _ones_spectrum(height, width):
    return Spectrum(np.ones((height, width)), np.ones((height, width)), width, height)

@pytest.mark.parametrize("n,expected", [(0, 1), (1, 1), (2, 2), (5, 8), (8, 8), (200, 256)])
def test_next_power_of_two(n, expected):
    assert fft_core.next_power_of_two(n) == expected

def test_fft_rows_matches_reference():
    """
    The forward pass uses a +2*pi/len twiddle, which is n * ifft in NumPy's
    convention; the inverse pass is fft / n.
    """
    rng = np.random.default_rng(0)
    signal = rng.normal(size=(3, 16)) + 1j * rng.normal(size=(3, 16))

    re, im = signal.real.copy(), signal.imag.copy()
    fft_core.fft_rows(re, im)
    assert np.allclose(re + 1j * im, np.fft.ifft(signal, axis=1) * 16)

    re, im = signal.real.copy(), signal.imag.copy()
    fft_core.fft_rows(re, im, invert=True)
    assert np.allclose(re + 1j * im, np.fft.fft(signal, axis=1) / 16)

def test_fft_rows_rejects_non_power_of_two():
    with pytest.raises(InvalidInputError):
        fft_core.fft_rows(np.zeros((2, 6)), np.zeros((2, 6)))

def test_fft_columns_round_trip():
    rng = np.random.default_rng(1)
    re = rng.normal(size=(8, 4))
    im = np.zeros_like(re)
    original = re.copy()
    fft_core.fft_columns(re, im)
    fft_core.fft_columns(re, im, invert=True)
    assert np.allclose(re, original)
    assert np.allclose(im, 0)

def test_forward_transform_pads_to_power_of_two():
    buf = PixelBuffer.blank(5, 3, fill=10)
    spectrum = frequency_processor.forward_transform(buf)
    assert (spectrum.width, spectrum.height) == (8, 4)
    assert spectrum.real.shape == spectrum.imag.shape == (4, 8)
    assert (spectrum.original_width, spectrum.original_height) == (5, 3)

def test_zero_frequency_lands_at_center():
    buf = PixelBuffer.blank(4, 4, fill=50)
    spectrum = frequency_processor.forward_transform(buf)
    mag = spectrum.magnitude()
    assert mag[2, 2] == pytest.approx(50 * 16)
    mag[2, 2] = 0
    assert np.allclose(mag, 0, atol=1e-9)

def test_round_trip_reproduces_grayscale(random_buffer):
    spectrum = frequency_processor.forward_transform(random_buffer)
    restored = frequency_processor.inverse_transform(spectrum)
    expected = to_grayscale(random_buffer)
    assert (restored.width, restored.height) == (7, 5)
    diff = np.abs(restored.pixels[..., :3].astype(int) - expected.pixels[..., :3].astype(int))
    assert diff.max() <= 1
    assert restored.is_achromatic()
    assert np.all(restored.pixels[..., 3] == 255)

def test_inverse_does_not_mutate_spectrum(random_buffer):
    spectrum = frequency_processor.forward_transform(random_buffer)
    re, im = spectrum.real.copy(), spectrum.imag.copy()
    frequency_processor.inverse_transform(spectrum)
    assert np.array_equal(spectrum.real, re)
    assert np.array_equal(spectrum.imag, im)

def test_spectrum_to_image_scales_to_full_range(random_buffer):
    spectrum = frequency_processor.forward_transform(random_buffer)
    visual = frequency_processor.spectrum_to_image(spectrum)
    assert (visual.width, visual.height) == (8, 8)
    assert visual.pixels[..., 0].max() == 255
    assert visual.is_achromatic()

def test_spectrum_to_image_all_zero():
    spectrum = Spectrum(np.zeros((4, 4)), np.zeros((4, 4)), 4, 4)
    visual = frequency_processor.spectrum_to_image(spectrum)
    assert np.all(visual.pixels[..., :3] == 0)

def test_masks_partition_except_boundary():
    spectrum = _ones_spectrum(8, 8)
    low = frequency_processor.radial_mask(spectrum, 2, "low")
    high = frequency_processor.radial_mask(spectrum, 2, "high")
    in_low = low.real != 0
    in_high = high.real != 0

    dist = frequency_processor.radial_distance(8, 8)
    assert np.all(in_low | in_high)
    assert np.array_equal(in_low & in_high, dist == 2)
    # (4, 2), (2, 4), (6, 4) and (4, 6) sit exactly on the radius
    assert np.count_nonzero(in_low & in_high) == 4

def test_mask_does_not_mutate_input():
    spectrum = _ones_spectrum(4, 4)
    frequency_processor.radial_mask(spectrum, 1, "low")
    assert np.all(spectrum.real == 1) and np.all(spectrum.imag == 1)

def test_mask_rejects_bad_arguments():
    spectrum = _ones_spectrum(4, 4)
    with pytest.raises(InvalidInputError):
        frequency_processor.radial_mask(spectrum, 5, "band")
    with pytest.raises(InvalidInputError):
        frequency_processor.radial_mask(spectrum, 0, "low")

def test_spectrum_validates_shape():
    with pytest.raises(InvalidInputError):
        Spectrum(np.zeros((4, 4)), np.zeros((4, 8)), 4, 4)
    with pytest.raises(InvalidInputError):
        Spectrum(np.zeros((4, 6)), np.zeros((4, 6)), 4, 4)

def test_combine_spectra_uses_common_region():
    a = Spectrum(np.ones((8, 16)), np.zeros((8, 16)), 10, 7)
    b = Spectrum(np.full((16, 4), 2.0), np.ones((16, 4)), 3, 12)
    combined = frequency_processor.combine_spectra(a, b)
    assert combined.real.shape == (8, 4)
    assert np.all(combined.real == 3.0)
    assert np.all(combined.imag == 1.0)
    assert (combined.original_width, combined.original_height) == (3, 7)

def test_hybrid_with_pass_all_and_block_all(random_buffer):
    spectrum = frequency_processor.forward_transform(random_buffer)
    # Low-pass wider than the spectrum keeps everything; the high-pass drops everything
    hybrid = frequency_processor.create_hybrid_image(spectrum, spectrum, "low", "high", 1000, 1000)
    expected = to_grayscale(random_buffer)
    diff = np.abs(hybrid.pixels[..., :3].astype(int) - expected.pixels[..., :3].astype(int))
    assert diff.max() <= 1

def test_hybrid_output_size_is_common_region():
    first = frequency_processor.forward_transform(PixelBuffer.blank(20, 9, fill=100))
    second = frequency_processor.forward_transform(PixelBuffer.blank(6, 30, fill=30))
    hybrid = frequency_processor.create_hybrid_image(first, second, "low", "high", 5, 5)
    assert (hybrid.width, hybrid.height) == (6, 9)

def test_apply_frequency_filter_outputs(random_buffer):
    result = frequency_processor.apply_frequency_filter(random_buffer, "low", 3)
    assert (result.image.width, result.image.height) == (7, 5)
    assert (result.spectrum_image.width, result.spectrum_image.height) == (8, 8)
    assert (result.filtered_spectrum_image.width, result.filtered_spectrum_image.height) == (8, 8)
    dist = frequency_processor.radial_distance(8, 8)
    assert np.all(result.filtered_spectrum.real[dist > 3] == 0)
