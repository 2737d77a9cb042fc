"""
Hanning window applied to each frame before the DFT.

WHY WINDOW AT ALL?
Cutting a frame out of a longer signal is the same as multiplying it by a
rectangle. The DFT then sees a hard jump at both edges, which smears energy
from one frequency into its neighbours ("spectral leakage"). Tapering the
frame to zero at both ends removes the jump.
"""

import numpy as np

from pulsebars.errors import ConfigurationError


def hanning(n):
    """
    Hanning window coefficients w(i) = 0.5 * (1 - cos(2*pi*i / (n-1))).

    w(0) and w(n-1) are both 0 and the window is symmetric.

    Raises:
        ConfigurationError: if n <= 1 (the denominator n-1 would be zero).
    """
    if n <= 1:
        raise ConfigurationError(f"Window length must be > 1, got {n}")

    i = np.arange(n, dtype=np.float64)
    return (0.5 * (1.0 - np.cos(2.0 * np.pi * i / (n - 1)))).astype(np.float32)


def apply_hanning(frame, window=None):
    """Multiply `frame` in place by the Hanning window and return it.

    Pass a precomputed `window` to avoid rebuilding coefficients per frame.
    Only ever call this on a scratch copy, never on the decoded buffer.
    """
    if window is None:
        window = hanning(len(frame))
    elif len(window) != len(frame):
        raise ConfigurationError(
            f"Window length {len(window)} does not match frame length {len(frame)}"
        )

    np.multiply(frame, window, out=frame)
    return frame
