"""Configuration file management."""
import json
import logging
from pathlib import Path
from typing import Optional

from music.note_registry import KeyboardSession
from music.pitch import PlayMode, Scale

logger = logging.getLogger(__name__)


class ConfigManager:
    """Manages application configuration."""

    def __init__(self, config_file: Optional[Path] = None):
        self.config_file = Path(config_file) if config_file else Path(__file__).parent / "config.json"
        self.config = self._load_config()

    def _load_config(self) -> dict:
        """Load configuration from file."""
        if self.config_file.exists():
            try:
                with open(self.config_file, 'r') as f:
                    return {**self._default_config(), **json.load(f)}
            except Exception as e:
                logger.warning("Ignoring unreadable config %s: %s", self.config_file, e)
                return self._default_config()
        return self._default_config()

    def _default_config(self) -> dict:
        """Return default configuration."""
        return {
            "play_mode": PlayMode.MOMENTARY.value,
            "scale": Scale.CHROMATIC.value,
            "octave": 4,
            "timbre": "sine",
            "recording_dir": "recordings",
        }

    def save_config(self):
        """Save configuration to file."""
        try:
            with open(self.config_file, 'w') as f:
                json.dump(self.config, f, indent=2)
        except Exception as e:
            logger.error("Error saving config: %s", e)

    # ── Keyboard session ─────────────────────────────────────────

    def load_session(self) -> KeyboardSession:
        """Build a session from the saved settings, skipping invalid values."""
        session = KeyboardSession()
        try:
            session.play_mode = PlayMode(self.config.get("play_mode"))
        except ValueError:
            pass
        try:
            session.scale = Scale(self.config.get("scale"))
        except ValueError:
            pass
        try:
            session.octave = int(self.config.get("octave", session.octave))
        except (TypeError, ValueError):
            pass
        session.timbre = str(self.config.get("timbre") or session.timbre)
        return session

    def save_session(self, session: KeyboardSession):
        """Persist the performer's current settings."""
        self.config.update({
            "play_mode": session.play_mode.value,
            "scale": session.scale.value,
            "octave": session.octave,
            "timbre": session.timbre,
        })
        self.save_config()

    # ── Recordings ───────────────────────────────────────────────

    def get_recording_dir(self) -> Path:
        """Directory that finished takes are written to."""
        path = Path(self.config.get("recording_dir") or "recordings")
        if not path.is_absolute():
            path = self.config_file.parent / path
        return path

    def set_recording_dir(self, directory):
        self.config["recording_dir"] = str(directory)
        self.save_config()
