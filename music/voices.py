"""Voice recipes: one signal topology per timbre, rendered block by block."""
from enum import Enum
from typing import Callable, Dict, Optional

import numpy as np
import scipy.signal

SAMPLE_RATE = 48000
TWO_PI = 2.0 * np.pi


class UnsupportedTimbreError(ValueError):
    """Raised when a timbre name has no voice recipe."""

    def __init__(self, timbre):
        super().__init__(f"Unsupported timbre: {timbre!r}")
        self.timbre = timbre


class Timbre(str, Enum):
    SINE = "sine"
    SQUARE = "square"
    TRIANGLE = "triangle"
    SAWTOOTH = "sawtooth"
    SUPERSAW = "supersaw"
    PWM = "pwm"
    SOFTPAD = "softpad"
    FM_BELL = "fm_bell"
    FM_EP = "fm_ep"
    FM_BASS = "fm_bass"
    FM_LEAD = "fm_lead"
    FLUTE_LIKE = "flute_like"
    VIOLIN_LIKE = "violin_like"
    HOLLOW = "hollow"
    NOISE_WHITE = "noise_white"
    NOISE_PINK = "noise_pink"
    NOISE_BROWN = "noise_brown"


def oscillate(waveform: str, frequency: float, num_samples: int, start_phase: float,
              sample_rate: int = SAMPLE_RATE) -> tuple[np.ndarray, float]:
    """Render ``num_samples`` of a periodic waveform, returning the samples
    and the phase to resume from on the next block."""
    phase_inc = TWO_PI * frequency / sample_rate
    phases = start_phase + np.arange(num_samples) * phase_inc
    return _shape(waveform, phases), (start_phase + num_samples * phase_inc) % TWO_PI


def _shape(waveform: str, phases: np.ndarray) -> np.ndarray:
    t_norm = (phases / TWO_PI) % 1.0
    if waveform == "sine":
        return np.sin(phases)
    if waveform == "square":
        return np.where(np.sin(phases) >= 0, 1.0, -1.0)
    if waveform == "triangle":
        return 4.0 * np.abs(t_norm - 0.5) - 1.0
    return 2.0 * t_norm - 1.0  # sawtooth


class StatefulFilter:
    """Second-order Butterworth section that keeps its state between blocks."""

    def __init__(self, btype: str, cutoff, sample_rate: int = SAMPLE_RATE):
        self.btype = btype
        self.sample_rate = sample_rate
        self.b, self.a = self._design(cutoff)
        self.zi = np.zeros(max(len(self.a), len(self.b)) - 1)

    def _design(self, cutoff):
        order = 1 if self.btype == "band" else 2  # a 1st-order band design is already a biquad
        return scipy.signal.butter(order, cutoff, btype=self.btype, fs=self.sample_rate)

    def retune(self, cutoff):
        # Coefficient order is unchanged, so the running state stays valid
        self.b, self.a = self._design(cutoff)

    def process(self, samples: np.ndarray) -> np.ndarray:
        out, self.zi = scipy.signal.lfilter(self.b, self.a, samples, zi=self.zi)
        return out


def _band_edges(center: float, sample_rate: int) -> list:
    nyq = sample_rate / 2.0
    low = min(max(center / np.sqrt(2.0), 1.0), nyq * 0.98)
    high = min(max(center * np.sqrt(2.0), low + 1.0), nyq * 0.99)
    return [low, high]


class Voice:
    """One sounding note: a signal topology behind an attack/release envelope.

    The UI thread only calls ``start``, ``stop`` and ``set_frequency``; the
    audio thread calls ``render``. ``stop`` just flags the voice, the release
    ramp itself starts on the next rendered block from whatever level the
    envelope had reached, and ``finished`` turns true only once the last
    release sample has been produced.
    """

    attack = 0.05
    release = 0.05
    level = 0.3
    pitched = True

    def __init__(self, frequency: float, sample_rate: int = SAMPLE_RATE):
        self.sample_rate = sample_rate
        self.frequency = float(frequency)
        self.started = False
        self.stopping = False
        self.finished = False
        self._bus = None
        self._attack_pos = 0
        self._release_pos = 0
        self._release_from: Optional[float] = None
        self._env_level = 0.0

    def bind(self, bus):
        self._bus = bus

    def start(self):
        if self.started:
            return
        self.started = True
        if self._bus is not None:
            self._bus.attach(self)

    def stop(self):
        if not self.started or self.stopping:
            return
        self.stopping = True

    def set_frequency(self, frequency: float):
        self.frequency = float(frequency)

    def render(self, num_samples: int) -> np.ndarray:
        if self.finished or num_samples == 0:
            return np.zeros(num_samples, dtype=np.float32)
        signal = self._generate(num_samples)
        return (signal * self._envelope(num_samples)).astype(np.float32)

    def _envelope(self, num_samples: int) -> np.ndarray:
        if self.stopping:
            if self._release_from is None:
                self._release_from = self._env_level
            total = max(1, int(self.release * self.sample_rate))
            idx = self._release_pos + 1 + np.arange(num_samples)
            env = self._release_from * np.clip(1.0 - idx / total, 0.0, 1.0)
            self._release_pos += num_samples
            if self._release_pos >= total:
                self.finished = True
        else:
            total = max(1, int(self.attack * self.sample_rate))
            idx = self._attack_pos + 1 + np.arange(num_samples)
            env = self.level * np.minimum(idx / total, 1.0)
            self._attack_pos += num_samples
        self._env_level = float(env[-1])
        return env

    def _generate(self, num_samples: int) -> np.ndarray:
        raise NotImplementedError


class BasicVoice(Voice):
    """Single periodic oscillator."""

    def __init__(self, frequency, sample_rate=SAMPLE_RATE, waveform="sine"):
        super().__init__(frequency, sample_rate)
        self.waveform = waveform
        self.phase = 0.0

    def _generate(self, num_samples):
        samples, self.phase = oscillate(self.waveform, self.frequency, num_samples,
                                        self.phase, self.sample_rate)
        return samples


class SupersawVoice(Voice):
    """Six sawtooth layers spread symmetrically around the note."""

    LAYERS = 6
    SPREAD_CENTS = 24.0

    def __init__(self, frequency, sample_rate=SAMPLE_RATE):
        super().__init__(frequency, sample_rate)
        self.detune = np.linspace(-self.SPREAD_CENTS, self.SPREAD_CENTS, self.LAYERS)
        self.phases = [0.0] * self.LAYERS

    def _generate(self, num_samples):
        mix = np.zeros(num_samples)
        for i, cents in enumerate(self.detune):
            freq = self.frequency * 2.0 ** (cents / 1200.0)
            samples, self.phases[i] = oscillate("sawtooth", freq, num_samples,
                                                self.phases[i], self.sample_rate)
            mix += samples / self.LAYERS
        return mix


class PwmVoice(Voice):
    """Square oscillator whose amplitude is swept by a 2 Hz LFO."""

    LFO_HZ = 2.0

    def __init__(self, frequency, sample_rate=SAMPLE_RATE):
        super().__init__(frequency, sample_rate)
        self.phase = 0.0
        self.lfo_phase = 0.0

    def _generate(self, num_samples):
        tone, self.phase = oscillate("square", self.frequency, num_samples,
                                     self.phase, self.sample_rate)
        lfo, self.lfo_phase = oscillate("sine", self.LFO_HZ, num_samples,
                                        self.lfo_phase, self.sample_rate)
        return tone * (0.5 + 0.5 * lfo)


class SoftPadVoice(BasicVoice):
    """Low-passed sine with a slow swell and a long tail."""

    attack = 0.4
    release = 0.3

    def __init__(self, frequency, sample_rate=SAMPLE_RATE):
        super().__init__(frequency, sample_rate, "sine")
        self.lpf = StatefulFilter("low", 1200.0, sample_rate)

    def _generate(self, num_samples):
        return self.lpf.process(super()._generate(num_samples))


class FmVoice(Voice):
    """Two-operator FM: a modulator drives the carrier's frequency.

    Modulation depth is ``index * carrier_hz`` so the timbre stays the same
    when the note is bent.
    """

    def __init__(self, frequency, sample_rate=SAMPLE_RATE, ratio=1.0, index=1.0):
        super().__init__(frequency, sample_rate)
        self.ratio = ratio
        self.index = index
        self.phase = 0.0
        self.mod_phase = 0.0

    @property
    def modulator_frequency(self) -> float:
        return self.frequency * self.ratio

    @property
    def depth(self) -> float:
        return self.frequency * self.index

    def _generate(self, num_samples):
        mod, self.mod_phase = oscillate("sine", self.modulator_frequency, num_samples,
                                        self.mod_phase, self.sample_rate)
        inst_freq = self.frequency + self.depth * mod
        phases = self.phase + np.cumsum(TWO_PI * inst_freq / self.sample_rate)
        self.phase = float(phases[-1] % TWO_PI)
        return np.sin(phases)


class FluteVoice(BasicVoice):
    """Sine tone plus breath noise band-passed around the note."""

    def __init__(self, frequency, sample_rate=SAMPLE_RATE):
        super().__init__(frequency, sample_rate, "sine")
        self.band = StatefulFilter("band", _band_edges(frequency, sample_rate), sample_rate)
        self.rng = np.random.default_rng()

    def set_frequency(self, frequency):
        super().set_frequency(frequency)
        self.band.retune(_band_edges(self.frequency, self.sample_rate))

    def _generate(self, num_samples):
        tone = super()._generate(num_samples)
        breath = self.band.process(self.rng.uniform(-1.0, 1.0, num_samples) * 0.3)
        return 0.8 * tone + 0.2 * breath


class ViolinVoice(BasicVoice):
    """High-passed sawtooth with a bowed attack."""

    attack = 0.1

    def __init__(self, frequency, sample_rate=SAMPLE_RATE):
        super().__init__(frequency, sample_rate, "sawtooth")
        self.hpf = StatefulFilter("high", 500.0, sample_rate)

    def _generate(self, num_samples):
        return self.hpf.process(super()._generate(num_samples))


class HollowVoice(Voice):
    """Two sines 1% apart; the beating between them is the sound."""

    attack = 0.1
    DETUNE_RATIO = 1.01

    def __init__(self, frequency, sample_rate=SAMPLE_RATE):
        super().__init__(frequency, sample_rate)
        self.phase = 0.0
        self.phase2 = 0.0

    @property
    def detuned_frequency(self) -> float:
        return self.frequency * self.DETUNE_RATIO

    def _generate(self, num_samples):
        s1, self.phase = oscillate("sine", self.frequency, num_samples,
                                   self.phase, self.sample_rate)
        s2, self.phase2 = oscillate("sine", self.detuned_frequency, num_samples,
                                    self.phase2, self.sample_rate)
        return s1 + s2


class NoiseVoice(Voice):
    """Pitch-less generator; retuning does nothing."""

    pitched = False

    def __init__(self, frequency=0.0, sample_rate=SAMPLE_RATE):
        super().__init__(frequency, sample_rate)
        self.rng = np.random.default_rng()

    def set_frequency(self, frequency):
        pass

    def _white(self, num_samples):
        return self.rng.uniform(-1.0, 1.0, num_samples)

    def _generate(self, num_samples):
        return self._white(num_samples)


class PinkNoiseVoice(NoiseVoice):
    """Three leaky integrators over one white source."""

    POLES = ((0.997, 0.029591), (0.985, 0.032534), (0.950, 0.048056))

    def __init__(self, frequency=0.0, sample_rate=SAMPLE_RATE):
        super().__init__(frequency, sample_rate)
        self.states = [np.zeros(1) for _ in self.POLES]

    def _generate(self, num_samples):
        white = self._white(num_samples)
        out = np.zeros(num_samples)
        for i, (pole, gain) in enumerate(self.POLES):
            # b = pole * b + gain * w
            y, self.states[i] = scipy.signal.lfilter([gain], [1.0, -pole], white, zi=self.states[i])
            out += y
        return out


class BrownNoiseVoice(NoiseVoice):
    """Leaky random walk, scaled up to roughly match the other noises."""

    LEAK = 1.02
    GAIN = 3.5

    def __init__(self, frequency=0.0, sample_rate=SAMPLE_RATE):
        super().__init__(frequency, sample_rate)
        self.state = np.zeros(1)

    def _generate(self, num_samples):
        steps = self.rng.uniform(-0.1, 0.1, num_samples)
        # last = (last + w) / 1.02
        walk, self.state = scipy.signal.lfilter([1.0 / self.LEAK], [1.0, -1.0 / self.LEAK],
                                                steps, zi=self.state)
        return walk * self.GAIN


def _fm(ratio, index):
    return lambda f, sr: FmVoice(f, sr, ratio=ratio, index=index)


def _basic(waveform):
    return lambda f, sr: BasicVoice(f, sr, waveform)


VOICE_BUILDERS: Dict[Timbre, Callable[[float, int], Voice]] = {
    Timbre.SINE: _basic("sine"),
    Timbre.SQUARE: _basic("square"),
    Timbre.TRIANGLE: _basic("triangle"),
    Timbre.SAWTOOTH: _basic("sawtooth"),
    Timbre.SUPERSAW: SupersawVoice,
    Timbre.PWM: PwmVoice,
    Timbre.SOFTPAD: SoftPadVoice,
    Timbre.FM_BELL: _fm(2.0, 1.5),
    Timbre.FM_EP: _fm(1.0, 0.6),
    Timbre.FM_BASS: _fm(3.0, 0.8),
    Timbre.FM_LEAD: _fm(1.0, 1.2),
    Timbre.FLUTE_LIKE: FluteVoice,
    Timbre.VIOLIN_LIKE: ViolinVoice,
    Timbre.HOLLOW: HollowVoice,
    Timbre.NOISE_WHITE: NoiseVoice,
    Timbre.NOISE_PINK: PinkNoiseVoice,
    Timbre.NOISE_BROWN: BrownNoiseVoice,
}


def resolve_timbre(timbre) -> Timbre:
    try:
        return Timbre(timbre)
    except ValueError:
        raise UnsupportedTimbreError(timbre) from None


def build_voice(timbre, frequency: float, sample_rate: int = SAMPLE_RATE) -> Voice:
    """Instantiate the voice recipe registered for ``timbre``."""
    return VOICE_BUILDERS[resolve_timbre(timbre)](frequency, sample_rate)
