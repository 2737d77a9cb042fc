"""
Exceptions raised by the analysis engine and its collaborators.

Every error is raised to the immediate caller. Only the entry points
(the CLI and the streamlit app) decide whether a failure aborts the run.
"""


class PulseBarsError(Exception):
    """Base class for all PulseBars errors."""


class ConfigurationError(PulseBarsError, ValueError):
    """Invalid engine configuration or input shape (e.g. frame size <= 1)."""


class BandError(ConfigurationError):
    """Frequency band maps to an empty or out-of-range bin interval."""

    def __init__(self, band_min, band_max, idx_min, idx_max, num_bins):
        self.band_min = band_min
        self.band_max = band_max
        self.idx_min = idx_min
        self.idx_max = idx_max
        self.num_bins = num_bins
        super().__init__(
            f"Band [{band_min}, {band_max}) Hz maps to bins [{idx_min}, {idx_max}), "
            f"expected 0 <= min < max <= {num_bins}"
        )


class TransformAllocationError(PulseBarsError, MemoryError):
    """Scratch or transform memory could not be allocated."""


class DecodeError(PulseBarsError):
    """Audio file could not be opened, decoded or resampled."""

    def __init__(self, path, reason):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to decode '{path}': {reason}")


class PlaybackError(PulseBarsError):
    """Audio output device could not be opened or started."""
