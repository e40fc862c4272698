#!/usr/bin/env python3
"""Tests for the note registry: one voice per note, retuning and session reads."""

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent))

import pytest

from music.note_registry import KeyboardSession, NoteRegistry
from music.pitch import PlayMode, frequency_of
from music.synth_engine import SynthEngine


@pytest.fixture
def session():
    return KeyboardSession()


@pytest.fixture
def registry(session):
    return NoteRegistry(SynthEngine(open_stream=False), session)


def test_start_is_idempotent(registry):
    assert registry.start_note("A", 0)
    first = registry.entry("A").voice
    assert not registry.start_note("A", 30)
    assert registry.entry("A").voice is first
    assert registry.cent_of("A") == 0
    assert registry.active_notes() == ["A"]


def test_engine_hears_one_voice_per_note(registry):
    for _ in range(3):
        registry.start_note("E")
    registry.start_note("G")
    registry.engine.render(64)
    assert registry.engine.active_voice_count == 2


def test_stop_inactive_note_is_noop(registry):
    assert not registry.stop_note("D")
    registry.start_note("D")
    assert registry.stop_note("D")
    assert not registry.stop_note("D")
    assert not registry.is_active("D")


def test_at_most_one_entry_after_mixed_calls(registry):
    for op in ("start", "start", "stop", "start", "stop", "stop", "start"):
        getattr(registry, f"{op}_note")("F")
    assert registry.active_notes().count("F") == 1


def test_a4_momentary_frequency(registry):
    registry.start_note("A", 0)
    assert registry.entry("A").voice.frequency == 440.0


def test_update_cent_retunes_voice(registry):
    registry.start_note("C")
    assert registry.update_cent("C", 100)
    assert registry.entry("C").voice.frequency == pytest.approx(frequency_of("C#", 4))
    assert registry.cent_of("C") == 100


def test_update_cent_clamps(registry):
    registry.start_note("C")
    registry.update_cent("C", 900)
    assert registry.cent_of("C") == 100.0


def test_update_cent_on_inactive_note_is_noop(registry):
    assert not registry.update_cent("B", 20)
    assert not registry.is_active("B")


def test_equal_tempered_ignores_bend(registry, session):
    session.play_mode = PlayMode.EQUAL_TEMPERED
    registry.start_note("A", 60)
    registry.update_cent("A", -40)
    assert registry.entry("A").voice.frequency == 440.0


def test_octave_is_cached_at_start(registry, session):
    registry.start_note("A")
    session.octave = 5
    registry.update_cent("A", 0)
    assert registry.entry("A").voice.frequency == 440.0
    registry.start_note("C")
    assert registry.entry("C").octave == 5


def test_timbre_is_read_at_start(registry, session):
    session.timbre = "fm_lead"
    registry.start_note("G")
    session.timbre = "sine"
    assert registry.entry("G").timbre == "fm_lead"


def test_unsupported_timbre_does_not_register(registry, session):
    session.timbre = "theremin"
    assert not registry.start_note("C")
    assert not registry.is_active("C")


def test_stop_all_empties_registry(registry):
    for note in ("C", "E", "G"):
        registry.start_note(note)
    registry.stop_all()
    assert registry.active_notes() == []
