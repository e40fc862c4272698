"""Vertical slider key: a note button that bends pitch when dragged."""
from rich.text import Text
from textual import events
from textual.widget import Widget

from music.key_gesture import KeyGesture

# A terminal has exactly one mouse
MOUSE_POINTER_ID = 1

IDLE_COLOR = "#9ad8ff"
SOUNDING_COLOR = "#66b6ff"


class SliderKey(Widget):
    """One column of the keyboard.

    The thumb sits at the gesture's position on the track (top = +100 cent,
    bottom = -100 cent). Pressing the thumb presses the key; pressing
    anywhere else on the track taps it at that height.
    """

    DEFAULT_CSS = """
    SliderKey {
        width: 8;
        height: 1fr;
        margin: 0 1 0 0;
        background: #1a1a1a;
    }
    """

    def __init__(self, gesture: KeyGesture, **kwargs):
        super().__init__(**kwargs)
        self.gesture = gesture

    @property
    def track_rows(self) -> int:
        # Last line holds the cent readout
        return max(1, self.size.height - 1)

    def _thumb_row(self) -> int:
        return round(self.gesture.position * (self.track_rows - 1))

    def render(self) -> Text:
        g = self.gesture
        width = max(1, self.size.width)
        rows = self.track_rows
        thumb = self._thumb_row()
        text = Text()
        for row in range(rows):
            if row == thumb:
                color = SOUNDING_COLOR if g.sounding else IDLE_COLOR
                style = f"bold #000000 on {color}"
                if g.settling:
                    style += " italic"
                text.append(g.note.center(width), style=style)
            elif row == (rows - 1) // 2:
                text.append("─" * width, style="#444444")
            else:
                text.append("│".center(width), style="#555555")
            text.append("\n")
        text.append(f"{g.cent:.1f}".center(width), style="#ffd700" if g.sounding else "#666666")
        return text

    def on_mouse_down(self, event: events.MouseDown) -> None:
        bottom = self.track_rows - 1
        if event.y == self._thumb_row():
            began = self.gesture.press(MOUSE_POINTER_ID)
        else:
            began = self.gesture.press_track(MOUSE_POINTER_ID, event.y, 0, bottom)
        if began:
            self.capture_mouse()
        self.refresh()

    def on_mouse_move(self, event: events.MouseMove) -> None:
        if self.gesture.move(MOUSE_POINTER_ID, event.y, 0, self.track_rows - 1):
            self.refresh()

    def on_mouse_up(self, event: events.MouseUp) -> None:
        self.gesture.release(MOUSE_POINTER_ID)
        self.release_mouse()
        self.refresh()
