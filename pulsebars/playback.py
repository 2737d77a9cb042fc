"""
Audio output and the playback clock.

The audio device pulls samples through a callback on its own thread while
the renderer polls the same PlaybackState to find out where playback is.
The state object is the only thing the two share.

sounddevice is imported when a Player starts, so the state and clock can be
used (and tested) on machines without PortAudio.
"""

import logging
import threading

import numpy as np

from pulsebars.config import BLOCK_SIZE, SAMPLE_RATE
from pulsebars.errors import PlaybackError

logger = logging.getLogger(__name__)


class PlaybackState:
    """Read cursor over a PCM buffer, shared by the audio callback and the renderer."""

    def __init__(self, pcm, sample_rate=SAMPLE_RATE):
        self._pcm = np.asarray(pcm, dtype=np.float32)
        self.sample_rate = sample_rate
        self._position = 0
        self._lock = threading.Lock()

    @property
    def total(self):
        return len(self._pcm)

    @property
    def position(self):
        with self._lock:
            return self._position

    @property
    def remaining(self):
        return self.total - self.position

    @property
    def finished(self):
        return self.remaining == 0

    def fill(self, out):
        """
        Copy the next block of samples into `out` and advance the cursor.

        `out` is either 1D or (frames, 1) as handed over by the audio device.
        Anything past the end of the PCM is filled with silence.

        Returns:
            Number of real samples written.
        """
        target = out[:, 0] if out.ndim == 2 else out
        with self._lock:
            start = self._position
            chunk = self._pcm[start:start + len(target)]
            self._position = start + len(chunk)

        target[:len(chunk)] = chunk
        target[len(chunk):] = 0.0
        return len(chunk)

    def elapsed_ns(self):
        """Time played so far, in ns."""
        return self.position * 1_000_000_000 // self.sample_rate

    def elapsed_us(self):
        return self.elapsed_ns() // 1000


class Player:
    """
    Plays a PlaybackState through the default (or given) output device.

    Usage:
        with Player(state) as player:
            while not state.finished:
                ...
    """

    def __init__(self, state, block_size=BLOCK_SIZE, device=None):
        self.state = state
        self.block_size = block_size
        self.device = device
        self._sd = None
        self._stream = None

    @property
    def active(self):
        return self._stream is not None and self._stream.active

    def _callback(self, outdata, frames, time_info, status):
        if status:
            logger.warning("Audio output status: %s", status)
        written = self.state.fill(outdata)
        if written < frames:
            # End of the PCM data: this block is played, then the stream stops
            raise self._sd.CallbackStop

    def start(self):
        try:
            import sounddevice as sd
        except OSError as exc:
            # Raised when the PortAudio shared library is missing
            raise PlaybackError(f"Audio output unavailable: {exc}") from exc

        self._sd = sd
        stream = None
        try:
            stream = sd.OutputStream(
                samplerate=self.state.sample_rate,
                blocksize=self.block_size,
                channels=1,
                dtype="float32",
                device=self.device,
                callback=self._callback,
            )
            stream.start()
        except sd.PortAudioError as exc:
            if stream is not None:
                stream.close()
            raise PlaybackError(f"Failed to open audio output: {exc}") from exc

        self._stream = stream

        logger.info(
            "Playback started: %d samples at %d Hz", self.state.total, self.state.sample_rate
        )

    def stop(self):
        if self._stream is None:
            return
        self._stream.stop()
        self._stream.close()
        self._stream = None
        logger.info("Playback stopped at sample %d", self.state.position)

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()


def end_playback(session, error=None):
    """
    Mark playback as over in the app's session state.

    `session` is st.session_state (or any mapping). A failure is stored as
    text under "play_error" so it can be shown after the rerun.
    """
    session["playing"] = False
    if error is not None:
        session["play_error"] = str(error)
