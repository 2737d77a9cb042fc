"""
Streamlit app for PulseBars.

Run with:  streamlit run app.py

Play mode: starts audio output, then redraws the spectrum bars and the beat
indicator once per spectrogram frame until playback ends. The frame to draw
is derived from the player's clock, so the bars follow the audio even when a
redraw runs late.
"""

import tempfile
import time
from pathlib import Path

import numpy as np
import streamlit as st

from pulsebars.analyze import analyze_file
from pulsebars.config import (
    BANDS, BAR_COLOR, BEAT_COLOR, DISPLAY_BINS, FRAME_SIZE, WINDOW_HEIGHT,
)
from pulsebars.errors import PulseBarsError
from pulsebars.playback import PlaybackState, Player, end_playback
from pulsebars.render import beat_active_near, frame_is_beat, mirrored_bars, scrub_range

st.set_page_config(page_title="PulseBars", layout="wide")
st.title("PulseBars")
st.caption("Spectrum bars and beat detection for any audio file")

# --- Session state init ---
if "playing" not in st.session_state:
    st.session_state.playing = False

# --- Input and analysis settings ---
col_file, col_bands, col_frame = st.columns([3, 2, 1])
with col_file:
    uploaded = st.file_uploader("Audio file", type=["wav", "mp3", "flac", "ogg", "m4a"])
with col_bands:
    band_names = st.multiselect("Beat bands", list(BANDS.keys()), default=list(BANDS.keys()))
with col_frame:
    frame_size = st.selectbox("Frame size", [1024, 2048, 4096], index=[1024, 2048, 4096].index(FRAME_SIZE))

if uploaded is None:
    st.info("Upload an audio file to start.")
    st.stop()


@st.cache_data(show_spinner="Analyzing audio...")
def load_analysis(data, suffix, bands, frame_size):
    # librosa wants a path, so the upload goes through a temporary file
    with tempfile.NamedTemporaryFile(suffix=suffix) as tmp:
        tmp.write(data)
        tmp.flush()
        return analyze_file(tmp.name, bands=bands, frame_size=frame_size)


bands = tuple(BANDS[name] for name in band_names)
try:
    analysis = load_analysis(uploaded.getvalue(), Path(uploaded.name).suffix, bands, frame_size)
except PulseBarsError as exc:
    st.error(str(exc))
    st.stop()

spectrum = analysis.spectrum
beats = analysis.beats
shown_bins = min(DISPLAY_BINS, spectrum.num_bins)

# --- Summary ---
cols = st.columns(4)
cols[0].metric("Frames", analysis.frame_count)
cols[1].metric("Frame duration", f"{spectrum.interval_ns / 1e6:.1f} ms")
cols[2].metric("Beats", len(beats))
cols[3].metric("Bars up to", f"{spectrum.bin_to_hz(shown_bins) / 1000:.1f} kHz")

if analysis.frame_count == 0:
    st.warning("The file is shorter than one frame; nothing to show.")
    st.stop()

st.divider()

# Error from the last playback, shown once after the rerun that ends it
if "play_error" in st.session_state:
    st.error(st.session_state.pop("play_error"))


def draw(chart, indicator, frame, is_beat):
    chart.bar_chart(
        mirrored_bars(analysis.spectrogram[frame]),
        color=[BAR_COLOR, BAR_COLOR],
        height=WINDOW_HEIGHT,
    )
    if is_beat:
        indicator.markdown(f"<span style='color:{BEAT_COLOR};font-size:2em'>&#9679; beat</span>",
                           unsafe_allow_html=True)
    else:
        indicator.markdown("&nbsp;", unsafe_allow_html=True)


# --- Start / Stop toggle ---
def toggle_playing():
    st.session_state.playing = not st.session_state.playing


if st.session_state.playing:
    st.button("Stop", on_click=toggle_playing, type="primary")
else:
    st.button("Play", on_click=toggle_playing, type="primary")

indicator = st.empty()
chart = st.empty()

if not st.session_state.playing:
    bounds = scrub_range(analysis.frame_count)
    frame = st.slider("Frame", *bounds, 0) if bounds else 0
    st.caption(f"t = {spectrum.timestamp_us(frame) / 1e6:.3f} s")
    draw(chart, indicator, frame, frame_is_beat(beats, spectrum, frame))
    st.stop()

# --- Playback loop ---
state = PlaybackState(np.asarray(analysis.pcm), sample_rate=spectrum.sample_rate)
interval_us = spectrum.interval_ns // 1000
error = None
try:
    with Player(state):
        interval_s = spectrum.interval_ns / 1e9
        while not state.finished:
            frame = spectrum.frame_at(state.elapsed_ns())
            # End of the animation
            if frame >= analysis.frame_count:
                break
            draw(chart, indicator, frame, beat_active_near(beats, state.elapsed_us(), interval_us))

            # Sleep until the next frame starts
            next_ns = (frame + 1) * spectrum.interval_ns
            time.sleep(max(0.0, min(interval_s, (next_ns - state.elapsed_ns()) / 1e9)))
except PulseBarsError as exc:
    error = exc

# Rerun so the button flips back to "Play"
end_playback(st.session_state, error)
st.rerun()
