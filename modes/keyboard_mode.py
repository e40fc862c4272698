"""Microtonal keyboard screen: a row of slider keys plus mode/octave/timbre controls."""
import logging
from typing import TYPE_CHECKING, Dict

from textual.binding import Binding
from textual.containers import Horizontal
from textual.widget import Widget
from textual.widgets import Static

from components.header_widget import HeaderWidget
from components.slider_key import SliderKey
from music.keyboard import MicrotonalKeyboard
from music.pitch import PlayMode, Scale

if TYPE_CHECKING:
    from config_manager import ConfigManager
    from music.synth_engine import SynthEngine

logger = logging.getLogger(__name__)

MODE_LABELS = {
    PlayMode.MOMENTARY: "Normal",
    PlayMode.TOGGLED: "Chord",
    PlayMode.EQUAL_TEMPERED: "12-TET",
}


class KeyboardMode(Widget):
    """Hosts the keyboard and rebuilds its keys when mode or scale change."""

    can_focus = True

    DEFAULT_CSS = """
    KeyboardMode {
        layout: vertical;
        height: 100%;
        width: 100%;
    }

    #keys {
        width: 100%;
        height: 1fr;
        align: center top;
        padding: 0 1;
    }

    #last-take {
        width: 100%;
        height: 1;
        text-align: center;
        color: #666666;
    }
    """

    BINDINGS = [
        Binding("1", "play_mode('normal')", "Normal", show=True),
        Binding("2", "play_mode('chord')", "Chord", show=True),
        Binding("3", "play_mode('12tet')", "12-TET", show=True),
        Binding("s", "toggle_scale", "12/7 keys", show=True),
        Binding("left_square_bracket", "octave('down')", "Oct-", show=True),
        Binding("right_square_bracket", "octave('up')", "Oct+", show=True),
        Binding("comma", "timbre(-1)", "Timbre ◄", show=True),
        Binding("full_stop", "timbre(1)", "Timbre ►", show=True),
        Binding("r", "toggle_recording", "Rec", show=True),
        Binding("space", "panic", "Panic", show=True),
    ]

    def __init__(self, synth_engine: 'SynthEngine', config_manager: 'ConfigManager', **kwargs):
        super().__init__(**kwargs)
        self.config_manager = config_manager
        self.keyboard = MicrotonalKeyboard(
            synth_engine,
            session=config_manager.load_session(),
            scheduler=self._schedule,
            listener=self._on_gesture_changed,
        )
        if not self.keyboard.set_timbre(self.keyboard.session.timbre):
            self.keyboard.set_timbre("sine")
        self._key_widgets: Dict[str, SliderKey] = {}
        self.header = HeaderWidget("M I C R O T O N A L   K E Y S", self._status_text())

    def compose(self):
        yield self.header
        with Horizontal(id="keys"):
            for note in self.keyboard.notes:
                key = SliderKey(self.keyboard.gesture(note))
                self._key_widgets[note] = key
                yield key
        yield Static("", id="last-take")

    def _schedule(self, delay, callback):
        return self.set_timer(delay, callback)

    def _on_gesture_changed(self, gesture):
        key = self._key_widgets.get(gesture.note)
        if key is not None and key.gesture is gesture:
            key.refresh()

    def _status_text(self) -> str:
        s = self.keyboard.session
        rec = "  ● REC" if self.keyboard.is_recording else ""
        return (f"Mode: {MODE_LABELS[s.play_mode]} | Keys: {s.scale.value} | "
                f"Octave: {s.octave} | Timbre: {s.timbre}{rec}")

    def _settings_changed(self):
        logger.debug("Session now %s", self.keyboard.session)
        self.header.update_subtitle(self._status_text())
        self.config_manager.save_session(self.keyboard.session)

    async def _rebuild_keys(self):
        container = self.query_one("#keys", Horizontal)
        await container.remove_children()
        self._key_widgets = {note: SliderKey(self.keyboard.gesture(note)) for note in self.keyboard.notes}
        await container.mount(*self._key_widgets.values())

    async def action_play_mode(self, mode: str):
        self.keyboard.set_play_mode(mode)
        await self._rebuild_keys()
        self._settings_changed()

    async def action_toggle_scale(self):
        current = self.keyboard.session.scale
        self.keyboard.set_scale(Scale.DIATONIC if current is Scale.CHROMATIC else Scale.CHROMATIC)
        await self._rebuild_keys()
        self._settings_changed()

    def action_octave(self, direction: str):
        if direction == "up":
            self.keyboard.octave_up()
        else:
            self.keyboard.octave_down()
        self._settings_changed()

    def action_timbre(self, step: int):
        self.keyboard.cycle_timbre(step)
        self._settings_changed()

    def action_toggle_recording(self):
        if self.keyboard.is_recording:
            path = self.keyboard.stop_recording(self.config_manager.get_recording_dir())
            self.query_one("#last-take", Static).update(f"Saved {path}")
        else:
            self.keyboard.start_recording()
            self.query_one("#last-take", Static).update("Recording…")
        self.header.update_subtitle(self._status_text())

    def action_panic(self):
        self.keyboard.panic()
        for key in self._key_widgets.values():
            key.refresh()

    def on_mount(self):
        self.focus()

    def on_unmount(self):
        self.keyboard.panic()
