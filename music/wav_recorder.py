"""Capture tap on the mix bus and 16-bit mono WAV serialization."""
import struct
import threading
from pathlib import Path
from typing import Iterable, List

import numpy as np

from music.voices import SAMPLE_RATE

WAV_HEADER_SIZE = 44
BITS_PER_SAMPLE = 16


def float_to_pcm16(samples: np.ndarray) -> np.ndarray:
    """Clamp to [-1, 1] and scale asymmetrically so both -1 and +1 fit in int16.

    Values are truncated toward zero, the way a DataView int16 store does.
    """
    s = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
    scaled = np.where(s < 0, s * 32768.0, s * 32767.0)
    return np.trunc(scaled).astype("<i2")


def wav_header(num_samples: int, sample_rate: int) -> bytes:
    bytes_per_sample = BITS_PER_SAMPLE // 8
    data_size = num_samples * bytes_per_sample
    hdr = struct.pack("<4sI4s", b"RIFF", 36 + data_size, b"WAVE")
    fmt = struct.pack("<4sIHHIIHH",
                      b"fmt ", 16, 1, 1, sample_rate,
                      sample_rate * bytes_per_sample, bytes_per_sample, BITS_PER_SAMPLE)
    return hdr + fmt + struct.pack("<4sI", b"data", data_size)


def encode_wav(blocks: Iterable[np.ndarray], sample_rate: int = SAMPLE_RATE) -> bytes:
    """Serialize float sample blocks into a complete PCM/mono/16-bit WAV stream."""
    blocks = list(blocks)
    pcm = float_to_pcm16(np.concatenate(blocks)) if blocks else np.zeros(0, dtype="<i2")
    return wav_header(len(pcm), sample_rate) + pcm.tobytes()


class WavRecorder:
    """Accumulates mix-bus blocks between ``start`` and ``stop``.

    ``capture`` is called from the audio thread while ``start``/``stop`` come
    from the UI, so the block list is guarded by a lock.
    """

    def __init__(self, sample_rate: int = SAMPLE_RATE):
        self.sample_rate = sample_rate
        self.blocks: List[np.ndarray] = []
        self.is_recording = False
        self._lock = threading.Lock()

    def start(self):
        with self._lock:
            self.blocks = []
            self.is_recording = True

    def stop(self) -> bytes:
        with self._lock:
            self.is_recording = False
        return self.encode()

    def capture(self, block):
        if not self.is_recording:
            return
        with self._lock:
            if self.is_recording:
                self.blocks.append(np.array(block, dtype=np.float32))

    @property
    def sample_count(self) -> int:
        with self._lock:
            return sum(len(b) for b in self.blocks)

    def encode(self) -> bytes:
        with self._lock:
            blocks = list(self.blocks)
        return encode_wav(blocks, self.sample_rate)

    def save(self, path) -> Path:
        path = Path(path)
        path.write_bytes(self.encode())
        return path
