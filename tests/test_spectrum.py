"""
Tests for pulsebars/spectrum.py — frame segmentation and DFT.

Uses synthetic tones from pulsebars/signals.py, so every expected bin is
known in advance. No audio files required.
"""

from unittest.mock import patch

import numpy as np
import pytest

from pulsebars.errors import ConfigurationError, TransformAllocationError
from pulsebars.signals import generate_sine
from pulsebars.spectrum import Spectrum

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class TestSpectrumConfig:
    @pytest.mark.parametrize("n", [2, 3, 4, 7, 1024, 2048, 4096])
    def test_num_bins(self, n):
        """num_bins == N/2 + 1 for all N > 1."""
        assert Spectrum(frame_size=n).num_bins == n // 2 + 1

    @pytest.mark.parametrize("n", [1, 0, -2048])
    def test_rejects_frame_size_below_two(self, n):
        with pytest.raises(ConfigurationError):
            Spectrum(frame_size=n)

    def test_rejects_non_positive_sample_rate(self):
        with pytest.raises(ConfigurationError):
            Spectrum(sample_rate=0)

    def test_defaults(self):
        spectrum = Spectrum()
        assert spectrum.frame_size == 2048
        assert spectrum.sample_rate == 44100

    def test_interval_ns(self):
        """2048 samples at 44.1kHz last 46439909 ns (truncated)."""
        spectrum = Spectrum(2048, 44100)
        assert spectrum.interval_ns == 46439909
        assert spectrum.get_interval() == spectrum.interval_ns

    def test_hz_to_bin(self):
        """60 Hz -> bin 2, 130 Hz -> bin 6 at N=2048, 44.1kHz."""
        spectrum = Spectrum(2048, 44100)
        assert spectrum.hz_to_bin(60) == 2
        assert spectrum.hz_to_bin(130) == 6

    def test_bin_to_hz(self):
        spectrum = Spectrum(2048, 44100)
        assert spectrum.bin_to_hz(64) == pytest.approx(1378.125)

    def test_timestamp_us(self):
        spectrum = Spectrum(2048, 44100)
        assert spectrum.timestamp_us(0) == 0
        assert spectrum.timestamp_us(1) == 46439
        assert spectrum.timestamp_us(4) == 4 * 46439909 // 1000

    def test_frame_at(self):
        spectrum = Spectrum(2048, 44100)
        assert spectrum.frame_at(0) == 0
        assert spectrum.frame_at(spectrum.interval_ns - 1) == 0
        assert spectrum.frame_at(spectrum.interval_ns) == 1
        assert spectrum.frame_at(10 * spectrum.interval_ns + 5) == 10


# ---------------------------------------------------------------------------
# Segmentation
# ---------------------------------------------------------------------------


class TestSegmentation:
    @pytest.mark.parametrize("length", [0, 1, 2047, 2048, 2049, 4096, 5000])
    def test_frame_count_is_floor(self, length):
        spectrum = Spectrum(2048)
        pcm = np.zeros(length, dtype=np.float32)
        f_bins = spectrum.dft(pcm)
        assert f_bins.shape == (length // 2048, 1025)
        assert spectrum.frame_count(length) == length // 2048

    def test_trailing_samples_are_ignored(self):
        """The last L mod N samples never influence any frame."""
        rng = np.random.default_rng(0)
        spectrum = Spectrum(2048)
        head = rng.standard_normal(4096).astype(np.float32)
        a = np.concatenate([head, rng.standard_normal(100).astype(np.float32)])
        b = np.concatenate([head, rng.standard_normal(100).astype(np.float32)])
        np.testing.assert_array_equal(spectrum.dft(a), spectrum.dft(b))

    def test_empty_input(self):
        f_bins = Spectrum(2048).dft(np.array([], dtype=np.float32))
        assert f_bins.shape == (0, 1025)

    def test_rejects_multichannel_input(self):
        with pytest.raises(ConfigurationError):
            Spectrum(2048).dft(np.zeros((4096, 2), dtype=np.float32))

    def test_source_buffer_not_modified(self):
        pcm = generate_sine(440.0, 4096)
        before = pcm.copy()
        Spectrum(2048).dft(pcm)
        np.testing.assert_array_equal(pcm, before)

    def test_accepts_read_only_buffer(self):
        pcm = generate_sine(440.0, 4096)
        pcm.flags.writeable = False
        assert Spectrum(2048).dft(pcm).shape == (2, 1025)

    def test_result_is_read_only(self):
        f_bins = Spectrum(2048).dft(generate_sine(440.0, 4096))
        assert not f_bins.flags.writeable


# ---------------------------------------------------------------------------
# Transform
# ---------------------------------------------------------------------------


class TestTransform:
    def test_pure_tone_on_bin_centre(self):
        """f = 64 * sr / N lands exactly on bin 64."""
        spectrum = Spectrum(2048, 44100)
        freq = 64 * 44100 / 2048
        f_bins = spectrum.dft(generate_sine(freq, 3 * 2048))
        assert f_bins.shape == (3, 1025)
        for row in f_bins:
            assert int(np.argmax(row)) == 64

    def test_440hz_end_to_end(self):
        """4096 samples of 440 Hz -> 2 frames, both peaking at bin 20."""
        spectrum = Spectrum(2048, 44100)
        f_bins = spectrum.dft(generate_sine(440.0, 4096))
        assert len(f_bins) == 2
        expected = round(440 * 2048 / 44100)
        assert expected == 20
        assert [int(np.argmax(row)) for row in f_bins] == [expected, expected]

    def test_amplitude_linearity(self):
        """Scaling the input by c scales every magnitude by c."""
        spectrum = Spectrum(1024)
        rng = np.random.default_rng(1)
        pcm = rng.uniform(-0.5, 0.5, 4096).astype(np.float32)
        base = spectrum.dft(pcm)
        scaled = spectrum.dft(pcm * np.float32(3.5))
        np.testing.assert_allclose(scaled, 3.5 * base, rtol=1e-4, atol=1e-3)

    def test_dc_magnitude_is_window_sum(self):
        """A constant 1.0 frame gives |X[0]| = sum(w) = (N-1)/2, unnormalized."""
        spectrum = Spectrum(2048)
        f_bins = spectrum.dft(np.ones(2048, dtype=np.float32))
        assert f_bins[0, 0] == pytest.approx(1023.5, rel=1e-4)

    def test_silence_is_zero(self):
        f_bins = Spectrum(512).dft(np.zeros(2048, dtype=np.float32))
        assert not f_bins.any()

    def test_magnitudes_are_non_negative(self):
        rng = np.random.default_rng(2)
        f_bins = Spectrum(256).dft(rng.standard_normal(2048).astype(np.float32))
        assert (f_bins >= 0).all()

    def test_frames_are_chronological(self):
        """A tone change between frames shows up in the matching rows."""
        spectrum = Spectrum(2048, 44100)
        low = generate_sine(10 * 44100 / 2048, 2048)
        high = generate_sine(100 * 44100 / 2048, 2048)
        f_bins = spectrum.dft(np.concatenate([low, high, low]))
        assert [int(np.argmax(row)) for row in f_bins] == [10, 100, 10]


# ---------------------------------------------------------------------------
# Parallel frames and failures
# ---------------------------------------------------------------------------


class TestWorkers:
    def test_threaded_matches_sequential(self):
        rng = np.random.default_rng(3)
        pcm = rng.standard_normal(20 * 1024).astype(np.float32)
        spectrum = Spectrum(1024)
        np.testing.assert_array_equal(spectrum.dft(pcm, workers=4), spectrum.dft(pcm))

    def test_rejects_zero_workers(self):
        with pytest.raises(ConfigurationError):
            Spectrum(1024).dft(np.zeros(2048, dtype=np.float32), workers=0)

    def test_allocation_failure_is_reported(self):
        """MemoryError inside the transform surfaces as TransformAllocationError."""
        spectrum = Spectrum(1024)
        with patch("numpy.fft.rfft", side_effect=MemoryError):
            with pytest.raises(TransformAllocationError) as exc_info:
                spectrum.dft(np.zeros(2048, dtype=np.float32))
        assert isinstance(exc_info.value, MemoryError)
        assert isinstance(exc_info.value.__cause__, MemoryError)

    def test_allocation_failure_in_worker_is_reported(self):
        spectrum = Spectrum(1024)
        with patch("numpy.fft.rfft", side_effect=MemoryError):
            with pytest.raises(TransformAllocationError):
                spectrum.dft(np.zeros(8192, dtype=np.float32), workers=2)
