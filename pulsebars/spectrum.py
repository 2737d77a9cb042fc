"""
Frame segmentation and DFT: converting raw PCM into a spectrogram.

The sample buffer is cut into non-overlapping frames of `frame_size` samples.
Each frame is copied, windowed and transformed on its own, giving one row of
bin magnitudes per frame:

    PCM:     |---- frame 0 ----|---- frame 1 ----|---- frame 2 ----|--|
                     |                 |                 |           ^
                     v                 v                 v      dropped
    rows:      magnitudes[0]     magnitudes[1]     magnitudes[2]

Trailing samples that do not fill a whole frame are dropped. A row spans
`interval_ns` of wall-clock time, which is how the player maps its playback
clock back onto a row.

Magnitudes are raw |X[k]|: no 1/N scaling and no compensation for the energy
the window removes. The bars are drawn straight from these values.
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor, as_completed

import numpy as np

from pulsebars.config import FRAME_SIZE, SAMPLE_RATE
from pulsebars.errors import ConfigurationError, TransformAllocationError
from pulsebars.window import apply_hanning, hanning

logger = logging.getLogger(__name__)


class Spectrum:
    """
    Spectral analysis engine for one (frame_size, sample_rate) configuration.

    Args:
        frame_size: Samples per DFT frame (N). Must be > 1.
        sample_rate: Rate of the PCM handed to dft(), in Hz. Every Hz <-> bin
                     and frame <-> time conversion reads it from here.
    """

    def __init__(self, frame_size=FRAME_SIZE, sample_rate=SAMPLE_RATE):
        if frame_size <= 1:
            raise ConfigurationError(f"Frame size must be > 1, got {frame_size}")
        if sample_rate <= 0:
            raise ConfigurationError(f"Sample rate must be positive, got {sample_rate}")

        self.frame_size = int(frame_size)
        self.sample_rate = int(sample_rate)
        # A real-input DFT of length N has N/2 + 1 distinct bins (DC .. Nyquist)
        self.num_bins = self.frame_size // 2 + 1
        # Wall-clock span of one spectrogram row, in ns
        self.interval_ns = self.frame_size * 1_000_000_000 // self.sample_rate
        self._window = hanning(self.frame_size)

    def __repr__(self):
        return f"Spectrum(frame_size={self.frame_size}, sample_rate={self.sample_rate})"

    def get_interval(self):
        return self.interval_ns

    def frame_count(self, n_samples):
        """Number of whole frames in a buffer of `n_samples` samples."""
        return n_samples // self.frame_size

    def hz_to_bin(self, freq_hz):
        """Index of the bin containing `freq_hz` (floor of f * N / sample_rate)."""
        return math.floor(freq_hz * self.frame_size / self.sample_rate)

    def bin_to_hz(self, index):
        return index * self.sample_rate / self.frame_size

    def timestamp_us(self, frame_index):
        """Start time of a frame in whole microseconds (truncated)."""
        return frame_index * self.interval_ns // 1000

    def frame_at(self, elapsed_ns):
        """Row of the spectrogram that is playing `elapsed_ns` into the audio."""
        return elapsed_ns // self.interval_ns

    def dft(self, pcm, workers=1):
        """
        Compute the magnitude spectrogram of a mono PCM buffer.

        Args:
            pcm: 1D array-like of samples at self.sample_rate. Read only:
                 each frame is copied before it is windowed.
            workers: Number of threads to spread frames over. Frames are
                     independent, so any value >= 1 gives the same result.

        Returns:
            Read-only float32 array of shape (frame_count, num_bins).
            Row i holds the bin magnitudes of samples [i*N, (i+1)*N).

        Raises:
            ConfigurationError: pcm is not 1D, or workers < 1.
            TransformAllocationError: memory for the output, a scratch frame
                or a transform could not be allocated.
        """
        if workers < 1:
            raise ConfigurationError(f"workers must be >= 1, got {workers}")

        pcm = np.asarray(pcm, dtype=np.float32)
        if pcm.ndim != 1:
            raise ConfigurationError(f"Expected mono PCM (1D), got shape {pcm.shape}")

        duration = self.frame_count(len(pcm))
        logger.info(
            "Performing DFT: %d frames of %d samples (%d trailing samples dropped)",
            duration, self.frame_size, len(pcm) - duration * self.frame_size,
        )

        try:
            f_bins = np.zeros((duration, self.num_bins), dtype=np.float32)
        except MemoryError as exc:
            raise TransformAllocationError(
                f"Cannot allocate spectrogram of {duration} x {self.num_bins}"
            ) from exc

        if workers == 1 or duration < 2:
            for i in range(duration):
                f_bins[i] = self._frame_magnitudes(pcm, i)
        else:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                futures = {
                    pool.submit(self._frame_magnitudes, pcm, i): i
                    for i in range(duration)
                }
                for future in as_completed(futures):
                    f_bins[futures[future]] = future.result()

        f_bins.flags.writeable = False
        logger.info("DFT done")
        return f_bins

    def _frame_magnitudes(self, pcm, i):
        start = i * self.frame_size
        try:
            # Scratch copy: the window is applied in place
            buffer = pcm[start:start + self.frame_size].copy()
            apply_hanning(buffer, self._window)
            out = np.fft.rfft(buffer)
        except MemoryError as exc:
            raise TransformAllocationError(f"Cannot allocate transform for frame {i}") from exc

        return np.sqrt(out.real ** 2 + out.imag ** 2)
