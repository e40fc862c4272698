"""Title banner with a live status line."""
from rich.align import Align
from rich.console import Group
from rich.panel import Panel
from rich.text import Text
from textual.reactive import reactive
from textual.widget import Widget


class HeaderWidget(Widget):
    """Boxed title; ``status`` is redrawn whenever a mode changes it."""

    DEFAULT_CSS = """
    HeaderWidget {
        width: 100%;
        height: auto;
        margin-bottom: 1;
    }
    """

    status = reactive("")

    def __init__(self, title: str, status: str = "", **kwargs):
        super().__init__(**kwargs)
        self.title_text = title
        self.set_reactive(HeaderWidget.status, status)

    def render(self):
        banner = Panel(Text(self.title_text, style="bold #ffd700", justify="center"),
                       border_style="#ffd700", expand=False, padding=(0, 4))
        line = Text(self.status, style="italic #888888", justify="center")
        return Group(Align.center(banner), line)

    def update_subtitle(self, status: str):
        self.status = status
