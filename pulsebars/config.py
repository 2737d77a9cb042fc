# Beat detection bands: dict of { display_label: (band_min_hz, band_max_hz) }
# Each band is searched independently and the resulting beat sets are unioned.
BANDS = {
    "Kick": (60, 130),
    "Snare": (301, 750),
}

# Default bands used by the CLI and the app
DEFAULT_BANDS = list(BANDS.values())

# Audio settings
# Every decoded file is resampled to this rate, so the Hz -> bin mapping
# and the frame duration only ever read it from one place
SAMPLE_RATE = 44100

# Samples per analysis frame (~46ms at 44.1kHz)
# Frames do not overlap: one spectrogram row per FRAME_SIZE samples
FRAME_SIZE = 2048

# Samples handed to the audio device per output callback
BLOCK_SIZE = 2048

# Beat threshold: threshold = SLOPE * variance / frame_count + INTERCEPT
# Empirically calibrated on pop/rock material; not derived from a statistical
# model. Treat both as tunables.
THRESHOLD_SLOPE = -0.0000015
THRESHOLD_INTERCEPT = 1.5142857

# Display settings
WINDOW_HEIGHT = 480

# Only the low end of the spectrum is drawn: first 512 bins (~11kHz at N=2048)
DISPLAY_BINS = 512

BAR_COLOR = "#00FF7F"
BEAT_COLOR = "#FF4500"
