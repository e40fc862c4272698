#!/usr/bin/env python3
"""Tests for the voice recipes and their envelope lifecycle."""

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent))

import numpy as np
import pytest

from music.voices import (
    SAMPLE_RATE, BasicVoice, BrownNoiseVoice, FmVoice, HollowVoice, NoiseVoice,
    PinkNoiseVoice, SupersawVoice, Timbre,
    UnsupportedTimbreError, build_voice, resolve_timbre,
)


class RecordingBus:
    def __init__(self):
        self.attached = []

    def attach(self, voice):
        self.attached.append(voice)


@pytest.mark.parametrize("timbre", [t.value for t in Timbre])
def test_every_timbre_renders_finite_blocks(timbre):
    v = build_voice(timbre, 330.0)
    v.start()
    for _ in range(4):
        block = v.render(256)
        assert block.dtype == np.float32
        assert block.shape == (256,)
        assert np.all(np.isfinite(block))


def test_unknown_timbre_is_rejected():
    with pytest.raises(UnsupportedTimbreError) as exc:
        build_voice("banjo", 220.0)
    assert exc.value.timbre == "banjo"
    assert isinstance(exc.value, ValueError)
    assert resolve_timbre("fm_ep") is Timbre.FM_EP


def test_start_attaches_once():
    bus = RecordingBus()
    v = build_voice("sine", 440.0)
    v.bind(bus)
    v.start()
    v.start()
    assert bus.attached == [v]


def test_attack_ramps_to_level():
    v = build_voice("square", 440.0)
    v.start()
    first = v.render(256)
    attack_samples = int(v.attack * SAMPLE_RATE)
    assert np.max(np.abs(first)) <= v.level * 256 / attack_samples + 1e-6
    v.render(attack_samples)
    steady = v.render(256)
    assert np.max(np.abs(steady)) == pytest.approx(v.level, rel=1e-5)


def test_stop_is_idempotent_and_release_runs_before_finish():
    v = build_voice("sine", 440.0)
    v.start()
    v.render(4800)
    v.stop()
    v.stop()
    assert v.stopping
    assert not v.finished
    release_samples = int(v.release * SAMPLE_RATE)
    v.render(release_samples // 2)
    assert not v.finished
    tail = v.render(release_samples - release_samples // 2)
    assert v.finished
    assert tail[-1] == pytest.approx(0.0, abs=1e-9)
    assert not np.any(v.render(64))


def test_stop_before_start_is_ignored():
    v = build_voice("sine", 440.0)
    v.stop()
    assert not v.stopping


def test_release_starts_from_reached_level():
    v = build_voice("sine", 440.0)
    v.start()
    v.render(240)  # a tenth of the attack
    v.stop()
    block = v.render(64)
    assert np.max(np.abs(block)) <= v.level * 0.1 + 1e-6


def test_fm_retune_keeps_ratio_and_index():
    v = build_voice("fm_bell", 440.0)
    assert isinstance(v, FmVoice)
    assert v.modulator_frequency == pytest.approx(880.0)
    assert v.depth == pytest.approx(660.0)
    v.set_frequency(220.0)
    assert v.modulator_frequency == pytest.approx(440.0)
    assert v.depth == pytest.approx(330.0)


def test_supersaw_layers_are_symmetric():
    v = build_voice("supersaw", 110.0)
    assert isinstance(v, SupersawVoice)
    assert len(v.detune) == 6
    assert v.detune[0] == -v.detune[-1]
    assert np.sum(v.detune) == pytest.approx(0.0)


def test_noise_ignores_retune():
    for timbre in ("noise_white", "noise_pink", "noise_brown"):
        v = build_voice(timbre, 440.0)
        assert isinstance(v, NoiseVoice)
        assert not v.pitched
        v.set_frequency(1000.0)
        assert v.frequency == 440.0


def test_retune_changes_pitch_mid_note():
    v = build_voice("sine", 440.0)
    assert isinstance(v, BasicVoice)
    v.start()
    v.render(128)
    v.set_frequency(466.16)
    assert v.frequency == pytest.approx(466.16)
    assert np.all(np.isfinite(v.render(128)))


def test_flute_retune_moves_breath_band():
    v = build_voice("flute_like", 440.0)
    before = v.band.b.copy()
    v.set_frequency(880.0)
    assert not np.allclose(before, v.band.b)


def leaky_sum_reference(white, poles, states):
    out = np.zeros(len(white))
    for n, w in enumerate(white):
        for i, (pole, gain) in enumerate(poles):
            states[i] = pole * states[i] + gain * w
            out[n] += states[i]
    return out


def test_pink_noise_matches_leaky_integrators():
    v = build_voice("noise_pink", 0.0)
    assert isinstance(v, PinkNoiseVoice)
    assert v.POLES == ((0.997, 0.029591), (0.985, 0.032534), (0.950, 0.048056))
    v.rng = np.random.default_rng(0)
    ref_rng = np.random.default_rng(0)
    states = [0.0, 0.0, 0.0]
    for _ in range(2):
        block = v._generate(128)
        expected = leaky_sum_reference(ref_rng.uniform(-1.0, 1.0, 128), v.POLES, states)
        assert np.allclose(block, expected)


def test_brown_noise_matches_leaky_walk():
    v = build_voice("noise_brown", 0.0)
    assert isinstance(v, BrownNoiseVoice)
    v.rng = np.random.default_rng(1)
    ref_rng = np.random.default_rng(1)
    last = 0.0
    for _ in range(2):
        block = v._generate(128)
        expected = []
        for step in ref_rng.uniform(-0.1, 0.1, 128):
            last = (last + step) / 1.02
            expected.append(last * 3.5)
        assert np.allclose(block, expected)


def test_white_noise_stays_in_unit_range():
    v = build_voice("noise_white", 0.0)
    v.rng = np.random.default_rng(2)
    block = v._generate(48000)
    assert np.all(block >= -1.0) and np.all(block <= 1.0)
    assert block.min() < -0.9 and block.max() > 0.9


def test_hollow_second_oscillator_tracks_retune():
    v = build_voice("hollow", 440.0)
    assert isinstance(v, HollowVoice)
    assert v.detuned_frequency == pytest.approx(444.4)
    v.set_frequency(300.0)
    assert v.detuned_frequency == 300.0 * 1.01


def test_render_empty_block_is_empty():
    for timbre in ("sine", "fm_ep", "supersaw", "noise_brown"):
        v = build_voice(timbre, 220.0)
        v.start()
        assert v.render(0).shape == (0,)
        assert v.render(16).shape == (16,)
