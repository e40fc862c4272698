"""Pitch model: note names, play modes and cent-accurate frequency math."""
from enum import Enum
from typing import Optional, Tuple


NOTE_NAMES_12 = ["C", "C#", "D", "Eb", "E", "F", "F#", "G", "G#", "A", "Bb", "B"]
NOTE_NAMES_7 = ["C", "D", "E", "F", "G", "A", "B"]

SEMITONES = {name: i for i, name in enumerate(NOTE_NAMES_12)}

MAX_CENT = 100.0

# Timbres whose generators have no pitch at all
NOISE_TIMBRES = frozenset({"noise_white", "noise_pink", "noise_brown"})


class PlayMode(str, Enum):
    """How a key reacts to press / drag / release."""

    MOMENTARY = "normal"
    TOGGLED = "chord"
    EQUAL_TEMPERED = "12tet"


class Scale(str, Enum):
    """Which scale degrees get a key."""

    CHROMATIC = "12"
    DIATONIC = "7"

    @property
    def note_names(self) -> list:
        return list(NOTE_NAMES_12 if self is Scale.CHROMATIC else NOTE_NAMES_7)


def semitone_of(note: str) -> int:
    try:
        return SEMITONES[note]
    except KeyError:
        raise ValueError(f"Unknown note name: {note!r}") from None


def midi_number(note: str, octave: int) -> int:
    return 12 * (octave + 1) + semitone_of(note)  # C4 = 60


def clamp_cent(cent: float) -> float:
    return max(-MAX_CENT, min(MAX_CENT, float(cent)))


def frequency_of(note: str, octave: int, cent: float = 0.0,
                 mode: PlayMode = PlayMode.MOMENTARY,
                 timbre: Optional[str] = None) -> float:
    """Return the frequency in Hz of ``note`` in ``octave`` bent by ``cent``.

    EqualTempered mode ignores the cent offset entirely, as do the noise
    timbres (the base frequency is still returned but a noise voice never
    reads it).
    """
    base = 440.0 * (2.0 ** ((midi_number(note, octave) - 69) / 12.0))  # A4 = 440 Hz
    if mode is PlayMode.EQUAL_TEMPERED or timbre in NOISE_TIMBRES:
        return base
    return base * (2.0 ** (clamp_cent(cent) / 1200.0))


def position_to_cent(y: float, top: float, bottom: float) -> Tuple[float, float]:
    """Map a vertical pointer position on a track to ``(t, cent)``.

    ``t`` is 0 at the top of the track and 1 at the bottom. Positions
    outside the track clamp to the nearest edge, so the top gives +100
    cent, the bottom -100 and the centre 0.
    """
    height = bottom - top
    if height <= 0:
        return 0.5, 0.0
    y = min(max(y, top), bottom)
    t = (y - top) / height
    cent = (0.5 - t) / 0.5 * MAX_CENT
    return t, clamp_cent(cent)


def cent_to_position(cent: float) -> float:
    """Inverse of :func:`position_to_cent` on a unit track."""
    t = 0.5 - 0.5 * (float(cent) / MAX_CENT)
    return min(1.0, max(0.0, t))
