"""Audio effects applied before playback: pitch shift and level normalization."""

import math

import numpy as np
from pydub import AudioSegment

from scene_reader.constants import TARGET_DBFS

# pedalboard is optional; pitch falls back to the edge-tts offset without it
try:
    import pedalboard
    PEDALBOARD_AVAILABLE = True
except ImportError:
    PEDALBOARD_AVAILABLE = False


def pitch_to_semitones(pitch: float) -> float:
    """Pitch multiplier → semitones: 2.0 → +12, 0.5 → -12."""
    return 12.0 * math.log2(pitch)


def _to_float_samples(audio: AudioSegment) -> np.ndarray:
    """16-bit AudioSegment → float32 array shaped (channels, frames) in [-1, 1)."""
    raw = np.array(audio.set_sample_width(2).get_array_of_samples(), dtype=np.float32)
    return raw.reshape((-1, audio.channels)).T / 32768.0


def _from_float_samples(samples: np.ndarray, frame_rate: int) -> AudioSegment:
    """Inverse of _to_float_samples; clips to the 16-bit range."""
    pcm = np.clip(samples * 32768.0, -32768, 32767).astype(np.int16)
    return AudioSegment(
        data=pcm.T.tobytes(),
        sample_width=2,
        frame_rate=frame_rate,
        channels=pcm.shape[0],
    )


def apply_pitch(audio: AudioSegment, pitch: float) -> AudioSegment:
    """Shift audio by a pitch multiplier without changing its duration.

    Returns the original audio unchanged when pitch is 1.0 or pedalboard is
    not available.
    """
    if not PEDALBOARD_AVAILABLE or math.isclose(pitch, 1.0):
        return audio

    shift = pedalboard.PitchShift(semitones=pitch_to_semitones(pitch))
    processed = shift(_to_float_samples(audio), audio.frame_rate)
    return _from_float_samples(processed, audio.frame_rate)


def normalize_level(audio: AudioSegment, target_dbfs: float = TARGET_DBFS) -> AudioSegment:
    """Bring audio to target_dbfs. Silent audio (dBFS = -inf) is left unchanged."""
    if audio.dBFS == float("-inf"):
        return audio
    return audio + (target_dbfs - audio.dBFS)
