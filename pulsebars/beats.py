"""
Beat detection from band energy.

A frame is a beat when its band energy clearly exceeds the average energy of
the whole track:

    energy[i] > threshold * mean

The threshold shrinks slightly as the energy variance grows, so tracks with
strongly varying loudness need a smaller jump to count as a beat:

    threshold = THRESHOLD_SLOPE * variance / frame_count + THRESHOLD_INTERCEPT

Both constants are an empirical heuristic with no documented derivation.
They hold up on typical pop/rock material, may not elsewhere, and can be
overridden per detector.

Beats are reported as a set of frame start times in microseconds. Running the
detector over several bands (kick, snare, ...) and taking the union of the
sets combines them; repeated timestamps collapse.
"""

import logging

from pulsebars.config import THRESHOLD_INTERCEPT, THRESHOLD_SLOPE
from pulsebars.energy import band_energy
from pulsebars.errors import ConfigurationError

logger = logging.getLogger(__name__)


def beat_threshold(variance, frame_count, slope=THRESHOLD_SLOPE, intercept=THRESHOLD_INTERCEPT):
    """Energy multiplier a frame must exceed to count as a beat."""
    if frame_count <= 0:
        raise ConfigurationError(f"frame_count must be positive, got {frame_count}")
    return slope * variance / frame_count + intercept


class BeatDetector:
    """
    Detects beats in one frequency band at a time.

    Stateless apart from its configuration, so one detector can be reused
    for any number of spectrograms and bands.
    """

    def __init__(self, spectrum, slope=THRESHOLD_SLOPE, intercept=THRESHOLD_INTERCEPT):
        self.spectrum = spectrum
        self.slope = slope
        self.intercept = intercept

    def detect(self, spectrogram, band_min, band_max):
        """
        Detect beats in the [band_min, band_max) Hz band.

        Returns:
            set of beat timestamps in microseconds. Empty when the
            spectrogram has no frames.
        """
        band = band_energy(spectrogram, self.spectrum, band_min, band_max)
        if band.frame_count == 0:
            logger.info("No frames to search for beats in [%s, %s) Hz", band_min, band_max)
            return set()

        threshold = beat_threshold(band.variance, band.frame_count, self.slope, self.intercept)
        logger.debug(
            "Band [%s, %s) Hz -> bins [%d, %d): mean=%.4f variance=%.4f threshold=%.6f",
            band_min, band_max, band.idx_min, band.idx_max,
            band.mean, band.variance, threshold,
        )

        appeared_t = set()
        for i, e in enumerate(band.energy):
            if e > threshold * band.mean:
                appeared_t.add(self.spectrum.timestamp_us(i))

        logger.info("Detected %d beats in [%s, %s) Hz", len(appeared_t), band_min, band_max)
        return appeared_t

    def detect_bands(self, spectrogram, bands):
        """Union of detect() over several (band_min, band_max) pairs."""
        appeared_t = set()
        for band_min, band_max in bands:
            appeared_t |= self.detect(spectrogram, band_min, band_max)
        return appeared_t
