"""
Synthetic signal generators for demos and tests.

WHY SYNTHETIC SIGNALS?
With a real song nobody knows exactly which frames hold a beat or which bin
a note should land in. A generated tone has a known frequency, and a pulse
train has beats at known frames, so the spectrum and the detector can be
checked against ground truth.
"""

import numpy as np

from pulsebars.config import FRAME_SIZE, SAMPLE_RATE


def generate_sine(freq, n_samples, sr=SAMPLE_RATE, amplitude=1.0):
    """
    Generate a pure sine tone.

    Args:
        freq: Frequency in Hz
        n_samples: Length in samples
        sr: Sample rate
        amplitude: Peak amplitude

    Returns:
        numpy array of audio samples (float32)
    """
    t = np.arange(n_samples) / sr
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def generate_pulse_train(period_frames, n_frames, frame_size=FRAME_SIZE, freq=100.0,
                         sr=SAMPLE_RATE, amplitude=1.0):
    """
    Generate a tone burst every `period_frames` frames, silence elsewhere.

    Each burst fills exactly one analysis frame, so the beats land on frames
    0, period_frames, 2 * period_frames, ... The default 100 Hz sits inside
    the kick band.

    Returns:
        (signal, beat_frames): float32 samples and the list of burst frames
    """
    signal = np.zeros(n_frames * frame_size, dtype=np.float32)
    burst = generate_sine(freq, frame_size, sr=sr, amplitude=amplitude)

    beat_frames = list(range(0, n_frames, period_frames))
    for frame in beat_frames:
        signal[frame * frame_size:(frame + 1) * frame_size] = burst

    return signal, beat_frames
