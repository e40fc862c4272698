"""Session context and the note -> sounding voice registry."""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from music.pitch import PlayMode, Scale, clamp_cent, frequency_of
from music.voices import UnsupportedTimbreError, Voice

logger = logging.getLogger(__name__)


@dataclass
class KeyboardSession:
    """Performer-controlled settings, passed around instead of globals."""

    play_mode: PlayMode = PlayMode.MOMENTARY
    scale: Scale = Scale.CHROMATIC
    octave: int = 4
    timbre: str = "sine"


@dataclass
class ActiveVoice:
    note: str
    cent: float
    voice: Voice
    # Read once at start; a later octave change does not retune this note
    octave: int
    timbre: str
    mode: PlayMode = field(default=PlayMode.MOMENTARY)

    @property
    def frequency(self) -> float:
        return frequency_of(self.note, self.octave, self.cent, self.mode, self.timbre)


class NoteRegistry:
    """At most one sounding voice per note name.

    Starting an active note, or stopping / retuning an inactive one, is a
    silent no-op.
    """

    def __init__(self, engine, session: KeyboardSession):
        self.engine = engine
        self.session = session
        self._active: Dict[str, ActiveVoice] = {}

    def start_note(self, note: str, cent: float = 0.0) -> bool:
        if note in self._active:
            return False
        # First gesture unlocks the output device
        self.engine.ensure_running()
        s = self.session
        cent = clamp_cent(cent)
        freq = frequency_of(note, s.octave, cent, s.play_mode, s.timbre)
        try:
            voice = self.engine.create_voice(s.timbre, freq)
        except UnsupportedTimbreError as e:
            logger.warning("%s; note %s not started", e, note)
            return False
        self._active[note] = ActiveVoice(note, cent, voice, s.octave, s.timbre, s.play_mode)
        voice.start()
        return True

    def stop_note(self, note: str) -> bool:
        entry = self._active.pop(note, None)
        if entry is None:
            return False
        entry.voice.stop()
        return True

    def update_cent(self, note: str, cent: float) -> bool:
        entry = self._active.get(note)
        if entry is None:
            return False
        entry.cent = clamp_cent(cent)
        # EqualTempered is read live so the mode in force now wins
        entry.mode = self.session.play_mode
        entry.voice.set_frequency(entry.frequency)
        return True

    def stop_all(self):
        for note in list(self._active):
            self.stop_note(note)

    def is_active(self, note: str) -> bool:
        return note in self._active

    def cent_of(self, note: str) -> Optional[float]:
        entry = self._active.get(note)
        return entry.cent if entry else None

    def entry(self, note: str) -> Optional[ActiveVoice]:
        return self._active.get(note)

    def active_notes(self) -> List[str]:
        return list(self._active)
