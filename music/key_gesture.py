"""Per-key pointer gesture handling: drag position -> cent offset -> note state."""
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from music.pitch import PlayMode, cent_to_position, position_to_cent

SETTLE_SECONDS = 0.18


class GestureState(Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


@dataclass(frozen=True)
class ModeRules:
    """What press, drag and release mean in one play mode."""

    press_toggles: bool      # pressing a sounding key stops it instead of dragging
    resume_last_cent: bool   # a new sound starts at the remembered cent, not 0
    drag_bends: bool
    release_stops: bool
    track_tap: bool          # a tap on the bare track starts a note there


MODE_RULES = {
    PlayMode.MOMENTARY: ModeRules(press_toggles=False, resume_last_cent=False,
                                  drag_bends=True, release_stops=True, track_tap=True),
    PlayMode.TOGGLED: ModeRules(press_toggles=True, resume_last_cent=True,
                                drag_bends=True, release_stops=False, track_tap=False),
    PlayMode.EQUAL_TEMPERED: ModeRules(press_toggles=False, resume_last_cent=False,
                                       drag_bends=False, release_stops=True, track_tap=True),
}


class KeyGesture:
    """State machine for one key, configured once for a play mode.

    Only the pointer that started a drag can move or end it; events from any
    other pointer are ignored until that drag is released or cancelled.

    ``scheduler(delay, callback)`` must return a handle with ``stop()`` (a
    Textual ``Timer`` fits). It drives the indicator's return to the centre
    after a release; a new press stops a pending return. Without a scheduler
    the return is immediate.
    """

    def __init__(self, note: str, registry, mode: PlayMode,
                 scheduler: Optional[Callable] = None,
                 listener: Optional[Callable[["KeyGesture"], None]] = None,
                 cent: float = 0.0):
        self.note = note
        self.registry = registry
        self.mode = PlayMode(mode)
        self.rules = MODE_RULES[self.mode]
        self.scheduler = scheduler
        self.listener = listener

        self.state = GestureState.IDLE
        self.pointer_id = None
        self.cent = float(cent) if self.rules.resume_last_cent else 0.0
        self.position = cent_to_position(self.cent)
        self.settling = False
        self._settle_timer = None

    @property
    def sounding(self) -> bool:
        return self.registry.is_active(self.note)

    @property
    def dragging(self) -> bool:
        return self.state is GestureState.DRAGGING

    def press(self, pointer_id) -> bool:
        """Pointer down on the key's thumb. Returns True if a drag began."""
        if self.dragging:
            return False
        self._cancel_settle()
        if self.rules.press_toggles and self.sounding:
            self.registry.stop_note(self.note)
            self._notify()
            return False
        if not self.rules.resume_last_cent:
            self.cent = 0.0
            self.position = 0.5
        self.registry.start_note(self.note, self.cent)
        self._begin_drag(pointer_id)
        return True

    def press_track(self, pointer_id, y: float, top: float, bottom: float) -> bool:
        """Pointer down on the bare track: sound straight away at that height."""
        if self.dragging or not self.rules.track_tap:
            return False
        self._cancel_settle()
        cent = 0.0
        if self.rules.drag_bends:
            self.position, cent = position_to_cent(y, top, bottom)
            self.cent = cent
        self.registry.start_note(self.note, cent)
        self._begin_drag(pointer_id)
        return True

    def move(self, pointer_id, y: float, top: float, bottom: float) -> bool:
        if not self.dragging or pointer_id != self.pointer_id:
            return False
        if not self.rules.drag_bends:
            return False
        self.position, self.cent = position_to_cent(y, top, bottom)
        self.registry.update_cent(self.note, self.cent)
        self._notify()
        return True

    def release(self, pointer_id) -> bool:
        if not self.dragging or pointer_id != self.pointer_id:
            return False
        self.state = GestureState.IDLE
        self.pointer_id = None
        if self.rules.release_stops:
            self.registry.stop_note(self.note)
            self.cent = 0.0
            if self.position != 0.5:
                self.position = 0.5
                self._start_settle()
        self._notify()
        return True

    def cancel(self, pointer_id) -> bool:
        return self.release(pointer_id)

    def dispose(self):
        """Settle everything before the key goes away."""
        if self.dragging:
            self.release(self.pointer_id)
        self._cancel_settle()

    def _begin_drag(self, pointer_id):
        self.state = GestureState.DRAGGING
        self.pointer_id = pointer_id
        self._notify()

    def _start_settle(self):
        if self.scheduler is None:
            return
        self.settling = True
        self._settle_timer = self.scheduler(SETTLE_SECONDS, self._finish_settle)

    def _finish_settle(self):
        self._settle_timer = None
        self.settling = False
        self._notify()

    def _cancel_settle(self):
        if self._settle_timer is not None:
            self._settle_timer.stop()
            self._settle_timer = None
        self.settling = False

    def _notify(self):
        if self.listener is not None:
            self.listener(self)
