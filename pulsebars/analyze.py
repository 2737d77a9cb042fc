"""
Offline analysis of an audio file: decode, spectrogram, beats.

Run with:  python -m pulsebars.analyze path/to/song.mp3

THE PIPELINE:
  1. Decode:       file -> mono float32 PCM at the engine's sample rate
  2. Spectrogram:  PCM -> one row of bin magnitudes per FRAME_SIZE samples
  3. Beats:        for each band, frames whose band energy beats the
                   threshold -> set of timestamps (us); all bands unioned
"""

import argparse
import logging
import sys
from dataclasses import dataclass, field

from pulsebars.audio import decode
from pulsebars.beats import BeatDetector
from pulsebars.config import BANDS, DEFAULT_BANDS, FRAME_SIZE, SAMPLE_RATE
from pulsebars.errors import PulseBarsError
from pulsebars.spectrum import Spectrum

logger = logging.getLogger(__name__)


@dataclass
class Analysis:
    """Everything the player and the renderer need for one track."""

    spectrum: Spectrum
    pcm: object
    spectrogram: object
    band_beats: dict = field(default_factory=dict)

    @property
    def beats(self):
        """Union of the beats of every analysed band."""
        appeared_t = set()
        for beats in self.band_beats.values():
            appeared_t |= beats
        return appeared_t

    @property
    def frame_count(self):
        return len(self.spectrogram)


def analyze_samples(pcm, bands=DEFAULT_BANDS, frame_size=FRAME_SIZE,
                    sample_rate=SAMPLE_RATE, workers=1):
    """Run the spectrogram and the beat detector over an in-memory PCM buffer."""
    spectrum = Spectrum(frame_size=frame_size, sample_rate=sample_rate)
    spectrogram = spectrum.dft(pcm, workers=workers)

    detector = BeatDetector(spectrum)
    band_beats = {}
    for band_min, band_max in bands:
        band_beats[(band_min, band_max)] = detector.detect(spectrogram, band_min, band_max)

    return Analysis(spectrum=spectrum, pcm=pcm, spectrogram=spectrogram, band_beats=band_beats)


def analyze_file(path, bands=DEFAULT_BANDS, frame_size=FRAME_SIZE,
                 sample_rate=SAMPLE_RATE, workers=1):
    """Decode `path` and analyse it. Raises DecodeError if the file is unreadable."""
    pcm = decode(path, sample_rate=sample_rate)
    return analyze_samples(
        pcm.samples, bands=bands, frame_size=frame_size,
        sample_rate=sample_rate, workers=workers,
    )


def _band_label(band):
    for name, known in BANDS.items():
        if tuple(known) == tuple(band):
            return name
    return f"{band[0]}-{band[1]} Hz"


def build_parser():
    parser = argparse.ArgumentParser(
        prog="pulsebars-analyze",
        description="Compute the spectrogram and beat timestamps of an audio file.",
    )
    parser.add_argument("path", help="path to the audio file")
    parser.add_argument("--frame-size", type=int, default=FRAME_SIZE,
                        help=f"samples per DFT frame (default {FRAME_SIZE})")
    parser.add_argument("--sample-rate", type=int, default=SAMPLE_RATE,
                        help=f"decode and analysis rate in Hz (default {SAMPLE_RATE})")
    parser.add_argument("--band", nargs=2, type=float, action="append", metavar=("MIN", "MAX"),
                        help="beat band in Hz; repeat for several bands (default: kick + snare)")
    parser.add_argument("--workers", type=int, default=1,
                        help="threads used for the per-frame DFT")
    parser.add_argument("--show", type=int, default=10,
                        help="number of beat timestamps to print")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    bands = [tuple(b) for b in args.band] if args.band else DEFAULT_BANDS

    try:
        analysis = analyze_file(
            args.path, bands=bands, frame_size=args.frame_size,
            sample_rate=args.sample_rate, workers=args.workers,
        )
    except PulseBarsError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    spectrum = analysis.spectrum
    print(f"Frames:          {analysis.frame_count}")
    print(f"Bins per frame:  {spectrum.num_bins} ({spectrum.bin_to_hz(1):.2f} Hz each)")
    print(f"Frame duration:  {spectrum.interval_ns / 1e6:.3f} ms")
    for band, beats in analysis.band_beats.items():
        print(f"  {_band_label(band):>16}: {len(beats)} beats")

    beats = sorted(analysis.beats)
    print(f"Total beats:     {len(beats)}")
    if beats and args.show > 0:
        shown = ", ".join(f"{t / 1e6:.3f}s" for t in beats[:args.show])
        print(f"First beats:     {shown}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
