#!/usr/bin/env python3
"""Microtonal Keys TUI Application - Main Entry Point."""
import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

from textual.app import App
from textual.binding import Binding
from textual.containers import Container
from textual.screen import Screen
from textual.widgets import Header, Footer

from config_manager import ConfigManager
from music.synth_engine import SynthEngine
from modes.keyboard_mode import KeyboardMode
from components.confirmation_dialog import ConfirmationDialog

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(log_dir=None) -> Path:
    """Send logs to a rotating file; the terminal belongs to the TUI."""
    log_dir = Path(log_dir) if log_dir else Path(__file__).parent / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / "app.log"

    root = logging.getLogger()
    if any(isinstance(h, RotatingFileHandler) for h in root.handlers):
        return log_path
    fh = RotatingFileHandler(log_path, maxBytes=2 * 1024 * 1024, backupCount=3, encoding="utf-8")
    fh.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(fh)
    root.setLevel(logging.INFO)
    return log_path


class MainScreen(Screen):
    """Single-mode screen holding the keyboard."""

    CSS = """
    MainScreen {
        layout: vertical;
    }

    #content-area {
        height: 1fr;
        width: 100%;
    }
    """

    BINDINGS = [
        Binding("escape", "quit_app", "Quit", show=True),
    ]

    def __init__(self, app_context):
        super().__init__()
        self.app_context = app_context

    def compose(self):
        yield Header()
        with Container(id="content-area"):
            yield KeyboardMode(self.app_context["synth_engine"], self.app_context["config_manager"])
        yield Footer()

    def action_quit_app(self):
        """Quit with confirmation, warning about anything that would be lost."""
        def check_quit(result):
            if result:
                self.app.exit()

        keyboard = self.query_one(KeyboardMode).keyboard
        held = len(keyboard.registry.active_notes())
        if keyboard.is_recording:
            detail = "The take being recorded will be discarded."
        elif held:
            detail = f"{held} note(s) still sounding."
        else:
            detail = ""
        self.app.push_screen(ConfirmationDialog("Quit Microtonal Keys?", detail), check_quit)


class MicrotonalApp(App):
    """Microtonal keyboard TUI application."""

    VERSION = "1.0.0"

    def __init__(self):
        super().__init__()
        self.title = f"Microtonal Keys v{self.VERSION}"
        self.config_manager = ConfigManager()
        # Output stream opens on the first key press
        self.synth_engine = SynthEngine()
        self.app_context = {
            "synth_engine": self.synth_engine,
            "config_manager": self.config_manager,
        }

    def on_mount(self):
        self.push_screen(MainScreen(self.app_context))
        self.sub_title = "Drag a key up or down to bend it ±100 cent"

    def on_unmount(self):
        """Clean up on exit."""
        self.synth_engine.close()
        # Clear the terminal screen
        os.system('cls' if os.name == 'nt' else 'clear')


def main():
    """Main entry point."""
    setup_logging()
    logging.getLogger(__name__).info("Starting Microtonal Keys")
    app = MicrotonalApp()
    app.run()


if __name__ == "__main__":
    main()
