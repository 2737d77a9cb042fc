"""
Turning one spectrogram row into drawable bars, and deciding when the beat
indicator lights up.

The visualizer draws the first DISPLAY_BINS bins as bars growing up and down
from the middle of the window (a mirror image), so each bar can be at most
half the window tall.
"""

import numpy as np

from pulsebars.config import DISPLAY_BINS, WINDOW_HEIGHT


def bar_heights(row, n_bars=DISPLAY_BINS, height=WINDOW_HEIGHT):
    """First `n_bars` magnitudes of a row, clipped to half the window height."""
    row = np.asarray(row, dtype=np.float32)[:n_bars]
    return np.clip(row, 0.0, height // 2)


def mirrored_bars(row, n_bars=DISPLAY_BINS, height=WINDOW_HEIGHT):
    """
    Bars mirrored around the centre line.

    Returns:
        dict with "upper" (positive heights) and "lower" (the same heights,
        negated), one entry per bin. Ready for st.bar_chart.
    """
    h = bar_heights(row, n_bars, height)
    return {"upper": h, "lower": -h}


def scrub_range(frame_count):
    """
    (first, last) frame a slider can move between, or None when there is
    nothing to scrub (zero or one frame).
    """
    if frame_count < 2:
        return None
    return 0, frame_count - 1


def beat_active_near(beats, elapsed_us, window_us):
    """True when a beat started at most `window_us` before `elapsed_us`."""
    # The render loop polls the clock, so it rarely lands on the exact microsecond
    return any(0 <= elapsed_us - t < window_us for t in beats)


def frame_is_beat(beats, spectrum, frame):
    """True when `frame` of the spectrogram was detected as a beat."""
    return spectrum.timestamp_us(frame) in beats
