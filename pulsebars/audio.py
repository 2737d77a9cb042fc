"""
Decoding audio files into a mono PCM buffer at a fixed sample rate.

librosa does the heavy lifting: it reads anything soundfile/audioread can
open, downmixes to mono and resamples. The decoded samples are owned by a
PCMBuffer; the analysis engine and the player only ever see a read-only view.
"""

import logging

import librosa
import numpy as np
import soundfile

from pulsebars.config import FRAME_SIZE, SAMPLE_RATE
from pulsebars.errors import ConfigurationError, DecodeError

logger = logging.getLogger(__name__)


class PCMBuffer:
    """
    Growable float32 sample buffer.

    Capacity doubles whenever an append does not fit, so appending a long
    stream of decoded blocks costs amortized O(1) per sample.
    """

    def __init__(self, capacity=0):
        self._data = np.empty(max(int(capacity), 0), dtype=np.float32)
        self._len = 0

    @classmethod
    def from_array(cls, samples):
        samples = np.asarray(samples, dtype=np.float32)
        buf = cls(capacity=len(samples))
        buf.append(samples)
        return buf

    def __len__(self):
        return self._len

    @property
    def capacity(self):
        return len(self._data)

    def append(self, block):
        """Append a 1D block of samples, growing the storage if needed."""
        block = np.asarray(block, dtype=np.float32)
        if block.ndim != 1:
            raise ConfigurationError(f"Expected a mono (1D) block, got shape {block.shape}")

        needed = self._len + len(block)
        if needed > len(self._data):
            grown = np.empty(max(needed, 2 * len(self._data)), dtype=np.float32)
            grown[:self._len] = self._data[:self._len]
            self._data = grown

        self._data[self._len:needed] = block
        self._len = needed

    @property
    def samples(self):
        """Read-only view of the decoded samples."""
        view = self._data[:self._len]
        view.flags.writeable = False
        return view


def _native_rate(path):
    """Sample rate if libsndfile can open `path`, else None (e.g. m4a/AAC)."""
    try:
        return soundfile.info(path).samplerate
    except RuntimeError:
        # LibsndfileError: format not supported by libsndfile
        return None


def decode(path, sample_rate=SAMPLE_RATE, block_length=256):
    """
    Decode an audio file to mono float32 PCM at `sample_rate`.

    librosa.stream only reads through libsndfile, so only files libsndfile
    can open and that are already at the target rate are streamed block by
    block into the buffer. Everything else (other rates, or formats such as
    m4a that need the audioread/ffmpeg backend) goes through librosa.load.

    Args:
        path: Path to any audio file librosa can read
        sample_rate: Target rate in Hz
        block_length: Frames of FRAME_SIZE samples per streamed block

    Returns:
        PCMBuffer holding the decoded samples

    Raises:
        DecodeError: the file is missing, unreadable or cannot be resampled
    """
    logger.info("Decoding audio from %s", path)

    native_rate = _native_rate(path)
    try:
        if native_rate == sample_rate:
            pcm = PCMBuffer()
            for block in librosa.stream(
                path,
                block_length=block_length,
                frame_length=FRAME_SIZE,
                hop_length=FRAME_SIZE,
                mono=True,
            ):
                pcm.append(block)
        else:
            logger.debug("Loading %s with librosa (native rate %s Hz)", path, native_rate)
            y, _ = librosa.load(path, sr=sample_rate, mono=True)
            pcm = PCMBuffer.from_array(y)
    except Exception as exc:
        raise DecodeError(path, exc) from exc

    logger.info("Length of the decoded audio data: %d samples", len(pcm))
    return pcm
