"""
Band energy: collapsing each spectrogram row to one number.

A kick drum lives around 60-130 Hz, a snare around 300-750 Hz. Averaging the
magnitudes of just the bins inside such a band gives a per-frame "energy"
that rises sharply when that drum hits. The beat detector then compares each
frame's energy with the song-wide average.

Hz are mapped to bins with floor(f * N / sample_rate). The lower bin is
inclusive and the upper bin exclusive, so a band narrower than one bin maps
to an empty range and is rejected instead of averaging over zero bins.
"""

from dataclasses import dataclass

import numpy as np

from pulsebars.errors import BandError, ConfigurationError


@dataclass(frozen=True, eq=False)
class BandEnergy:
    """Per-frame energy in one frequency band, plus its summary statistics."""

    band_min: float
    band_max: float
    idx_min: int
    idx_max: int
    energy: np.ndarray
    mean: float
    variance: float

    @property
    def frame_count(self):
        return len(self.energy)

    @property
    def bin_count(self):
        return self.idx_max - self.idx_min


def band_indices(spectrum, band_min, band_max):
    """
    Map a [band_min, band_max) Hz band to a [idx_min, idx_max) bin range.

    Raises:
        BandError: if the range is empty or falls outside 0..num_bins.
    """
    idx_min = spectrum.hz_to_bin(band_min)
    idx_max = spectrum.hz_to_bin(band_max)

    if not 0 <= idx_min < idx_max <= spectrum.num_bins:
        raise BandError(band_min, band_max, idx_min, idx_max, spectrum.num_bins)

    return idx_min, idx_max


def band_energy(spectrogram, spectrum, band_min, band_max):
    """
    Average magnitude inside a frequency band, for every frame.

    Args:
        spectrogram: (frame_count, num_bins) array from Spectrum.dft()
        spectrum: The Spectrum that produced it (for N and the sample rate)
        band_min: Lower edge in Hz (inclusive)
        band_max: Upper edge in Hz (exclusive)

    Returns:
        BandEnergy. For an empty spectrogram the series is empty and both
        mean and variance are 0.0.
    """
    idx_min, idx_max = band_indices(spectrum, band_min, band_max)

    spectrogram = np.asarray(spectrogram)
    if spectrogram.ndim != 2 or spectrogram.shape[1] != spectrum.num_bins:
        raise ConfigurationError(
            f"Spectrogram shape {spectrogram.shape} does not match "
            f"{spectrum.num_bins} bins per frame"
        )

    energy = spectrogram[:, idx_min:idx_max].sum(axis=1, dtype=np.float64) / (idx_max - idx_min)

    if len(energy) == 0:
        mean = variance = 0.0
    else:
        mean = float(energy.mean())
        variance = float(np.mean((energy - mean) ** 2))

    return BandEnergy(
        band_min=band_min,
        band_max=band_max,
        idx_min=idx_min,
        idx_max=idx_max,
        energy=energy,
        mean=mean,
        variance=variance,
    )
