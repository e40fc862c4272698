"""The keyboard as a whole: one gesture per scale degree plus global controls.

This is the surface the presentation shell talks to. It owns the session
settings, the note registry and the recorder, and rebuilds the per-key
gesture handlers whenever the play mode or the scale changes.
"""
import datetime
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional

from music.key_gesture import KeyGesture
from music.note_registry import KeyboardSession, NoteRegistry
from music.pitch import PlayMode, Scale
from music.voices import Timbre, UnsupportedTimbreError, resolve_timbre

logger = logging.getLogger(__name__)

TIMBRE_ORDER = [t.value for t in Timbre]


class MicrotonalKeyboard:
    """Row of pitch-bendable keys sharing one synth engine."""

    def __init__(self, engine, session: Optional[KeyboardSession] = None,
                 scheduler: Optional[Callable] = None,
                 listener: Optional[Callable[[KeyGesture], None]] = None):
        self.engine = engine
        self.session = session or KeyboardSession()
        self.registry = NoteRegistry(engine, self.session)
        self.recorder = engine.recorder
        self.scheduler = scheduler
        self.listener = listener
        # Toggled-mode cents survive rebuilds
        self._remembered_cents: Dict[str, float] = {}
        self.gestures: Dict[str, KeyGesture] = {}
        self.rebuild()

    @property
    def notes(self) -> List[str]:
        return self.session.scale.note_names

    def gesture(self, note: str) -> KeyGesture:
        return self.gestures[note]

    def rebuild(self):
        """Recreate every key's gesture handler for the current mode and scale.

        In-flight drags are cancelled first. Outside Toggled mode nothing may
        keep sounding without a finger on it, so all notes are stopped; in
        Toggled mode only notes that lost their key are.
        """
        for g in self.gestures.values():
            if g.rules.resume_last_cent:
                self._remembered_cents[g.note] = g.cent
            g.dispose()

        notes = self.notes
        if self.session.play_mode is PlayMode.TOGGLED:
            for note in self.registry.active_notes():
                if note not in notes:
                    self.registry.stop_note(note)
        else:
            self.registry.stop_all()

        self.gestures = {
            note: KeyGesture(note, self.registry, self.session.play_mode,
                             scheduler=self.scheduler, listener=self.listener,
                             cent=self._remembered_cents.get(note, 0.0))
            for note in notes
        }

    def set_play_mode(self, mode):
        self.session.play_mode = PlayMode(mode)
        self.rebuild()

    def set_scale(self, scale):
        self.session.scale = Scale(scale)
        self.rebuild()

    def octave_up(self) -> int:
        self.session.octave += 1
        return self.session.octave

    def octave_down(self) -> int:
        self.session.octave -= 1
        return self.session.octave

    def set_timbre(self, timbre) -> bool:
        """Select the timbre for notes started from now on."""
        try:
            self.session.timbre = resolve_timbre(timbre).value
        except UnsupportedTimbreError as e:
            logger.warning("%s; keeping %s", e, self.session.timbre)
            return False
        return True

    def cycle_timbre(self, step: int = 1) -> str:
        idx = TIMBRE_ORDER.index(self.session.timbre) if self.session.timbre in TIMBRE_ORDER else 0
        self.session.timbre = TIMBRE_ORDER[(idx + step) % len(TIMBRE_ORDER)]
        return self.session.timbre

    def panic(self):
        for g in self.gestures.values():
            g.dispose()
        self.registry.stop_all()
        self.engine.all_notes_off()

    # ── Recording ────────────────────────────────────────────────

    @property
    def is_recording(self) -> bool:
        return self.recorder.is_recording

    def start_recording(self):
        self.recorder.start()
        logger.info("Recording started")

    def stop_recording(self, directory=".") -> Path:
        """Stop capturing and write the take as ``recording_<timestamp>.wav``."""
        data = self.recorder.stop()
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        ts = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
        path = directory / f"recording_{ts}.wav"
        path.write_bytes(data)
        logger.info("Recording saved to %s (%d bytes)", path, len(data))
        return path

    def close(self):
        self.panic()
        self.engine.close()
