#!/usr/bin/env python3
"""Tests for the pitch model: note numbering, cent bending and track mapping."""

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent))

import pytest

from music.pitch import (
    NOTE_NAMES_7, NOTE_NAMES_12, PlayMode, Scale,
    cent_to_position, clamp_cent, frequency_of, midi_number, position_to_cent, semitone_of,
)


def test_a4_is_440_exactly():
    assert frequency_of("A", 4, 0, PlayMode.MOMENTARY) == 440.0


def test_middle_c_numbering():
    assert midi_number("C", 4) == 60
    assert midi_number("B", 3) == 59
    assert frequency_of("C", 4) == pytest.approx(261.6256, rel=1e-6)


def test_unknown_note_raises():
    with pytest.raises(ValueError):
        semitone_of("H")


@pytest.mark.parametrize("cent", [-100, -37.5, 0, 12.25, 50, 100])
def test_cent_bend_is_exponential(cent):
    assert frequency_of("E", 3, cent) == pytest.approx(frequency_of("E", 3, 0) * 2 ** (cent / 1200))


def test_frequency_increases_with_cent():
    freqs = [frequency_of("G", 5, c) for c in range(-100, 101, 10)]
    assert all(a < b for a, b in zip(freqs, freqs[1:]))


def test_plus_100_cent_reaches_next_semitone():
    assert frequency_of("C", 4, 100) == pytest.approx(frequency_of("C#", 4, 0))


def test_equal_tempered_ignores_cent():
    base = frequency_of("F#", 2, 0, PlayMode.EQUAL_TEMPERED)
    for cent in (-100, -3, 42, 100):
        assert frequency_of("F#", 2, cent, PlayMode.EQUAL_TEMPERED) == base


def test_noise_timbres_ignore_cent():
    assert frequency_of("A", 4, 75, timbre="noise_pink") == 440.0
    assert frequency_of("A", 4, 75, timbre="sine") > 440.0


def test_out_of_range_cent_is_clamped():
    assert clamp_cent(250) == 100.0
    assert clamp_cent(-1e6) == -100.0
    assert frequency_of("D", 4, 400) == frequency_of("D", 4, 100)


def test_track_mapping_edges_and_centre():
    assert position_to_cent(0, 0, 200) == (0.0, 100.0)
    assert position_to_cent(200, 0, 200) == (1.0, -100.0)
    assert position_to_cent(100, 0, 200) == (0.5, 0.0)


def test_track_mapping_clamps_outside_track():
    assert position_to_cent(-50, 10, 110)[1] == 100.0
    assert position_to_cent(500, 10, 110)[1] == -100.0


def test_degenerate_track_is_centred():
    assert position_to_cent(5, 20, 20) == (0.5, 0.0)


def test_cent_to_position_inverts_mapping():
    for cent in (-100, -50, 0, 25, 100):
        t = cent_to_position(cent)
        assert position_to_cent(t, 0, 1)[1] == pytest.approx(cent)


def test_scales():
    assert Scale("12").note_names == NOTE_NAMES_12
    assert Scale("7").note_names == NOTE_NAMES_7
    assert len(NOTE_NAMES_12) == 12 and len(NOTE_NAMES_7) == 7
