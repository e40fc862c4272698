"""Mix bus and audio output for the microtonal keyboard."""
import logging
import queue
from typing import List, Optional

import numpy as np

from music.voices import SAMPLE_RATE, Voice, build_voice
from music.wav_recorder import WavRecorder

# Check for PyAudio availability
try:
    import pyaudio
    AUDIO_AVAILABLE = True
except ImportError:
    AUDIO_AVAILABLE = False
    pyaudio = None

logger = logging.getLogger(__name__)


class SynthEngine:
    """Sums every attached voice into one mono bus and feeds it to PyAudio.

    The output stream is opened lazily by ``ensure_running`` on the first
    gesture, mirroring a browser audio context that has to be unlocked by
    user input. Without a device the engine can still be driven block by
    block through ``render``.
    """

    def __init__(self, sample_rate: int = SAMPLE_RATE, buffer_size: int = 256,
                 master_volume: float = 0.3, open_stream: bool = True,
                 recorder: Optional[WavRecorder] = None):
        self.sample_rate = sample_rate
        self.buffer_size = buffer_size
        self.master_volume = master_volume
        self.open_stream = open_stream
        self.recorder = recorder or WavRecorder(sample_rate)

        self.audio = None
        self.stream = None
        self.running = False
        self._unlock_attempted = False

        # Audio-thread only
        self.voices: List[Voice] = []
        self.event_queue = queue.Queue()

    def ensure_running(self) -> bool:
        """Open the output stream once; later calls are free."""
        if self.running or self._unlock_attempted or not self.open_stream:
            return self.running
        self._unlock_attempted = True
        if not (AUDIO_AVAILABLE and pyaudio is not None):
            logger.error("PyAudio is not installed; audio output disabled")
            self.event_queue = queue.Queue()
            return False
        try:
            self.audio = pyaudio.PyAudio()
            default_output = self.audio.get_default_output_device_info()
            self.stream = self.audio.open(
                format=pyaudio.paInt16, channels=2, rate=self.sample_rate,
                output=True, output_device_index=default_output['index'],
                frames_per_buffer=self.buffer_size, stream_callback=self._audio_callback, start=False
            )
            self.stream.start_stream()
            self.running = True
            logger.info("Audio stream started at %d Hz", self.sample_rate)
        except Exception as e:
            logger.error("Audio initialization failed: %s", e)
            self.running = False
            self.event_queue = queue.Queue()
        return self.running

    def create_voice(self, timbre, frequency: float) -> Voice:
        """Build a voice for ``timbre`` already wired to this bus.

        Raises UnsupportedTimbreError for an unknown timbre.
        """
        voice = build_voice(timbre, frequency, self.sample_rate)
        voice.bind(self)
        return voice

    @property
    def output_failed(self) -> bool:
        """True once opening the device was tried and did not work."""
        return self.open_stream and self._unlock_attempted and not self.running

    def attach(self, voice: Voice):
        # Nothing drains the queue without a stream
        if self.output_failed:
            return
        self.event_queue.put({'type': 'attach', 'voice': voice})

    def all_notes_off(self):
        """Release every voice on the bus at the start of the next block."""
        if self.output_failed:
            return
        self.event_queue.put({'type': 'all_notes_off'})

    def _process_events(self):
        while True:
            try:
                e = self.event_queue.get_nowait()
            except queue.Empty:
                break
            if e['type'] == 'attach':
                if e['voice'] not in self.voices:
                    self.voices.append(e['voice'])
            elif e['type'] == 'all_notes_off':
                for v in self.voices:
                    v.stop()

    def render(self, frame_count: int) -> np.ndarray:
        """Mix one mono block, hand it to the recorder tap and return it."""
        self._process_events()
        mixed = np.zeros(frame_count, dtype=np.float32)
        for v in self.voices:
            mixed += v.render(frame_count)
        # A voice leaves the bus only after its release ramp has been rendered
        self.voices = [v for v in self.voices if not v.finished]
        mixed = np.clip(mixed * self.master_volume, -1.0, 1.0).astype(np.float32)
        self.recorder.capture(mixed)
        return mixed

    def _audio_callback(self, in_data, frame_count, time_info, status):
        try:
            mixed = self.render(frame_count)
            out = np.empty(frame_count * 2, dtype=np.int16)
            out[0::2] = mixed * 32767
            out[1::2] = mixed * 32767
            return (out.tobytes(), pyaudio.paContinue)
        except Exception:
            logger.exception("Audio callback failed; emitting silence")
            return (np.zeros(frame_count * 2, dtype=np.int16).tobytes(), pyaudio.paContinue)

    @property
    def active_voice_count(self) -> int:
        return len(self.voices)

    def close(self):
        self.running = False
        if self.stream: self.stream.stop_stream(); self.stream.close()
        if self.audio: self.audio.terminate()
        self.stream = None
        self.audio = None

    def is_available(self) -> bool: return AUDIO_AVAILABLE and self.running
