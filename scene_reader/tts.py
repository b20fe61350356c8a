"""Speech synthesis via edge-tts with retry logic."""

import asyncio
import os
import threading
import time

import edge_tts

from scene_reader.constants import PITCH_HZ_PER_UNIT, TTS_RETRY_BASE_DELAY, TTS_RETRY_COUNT
from scene_reader.models import Voice


def rate_to_edge(rate: float) -> str:
    """Rate multiplier → edge-tts relative rate: 1.5 → "+50%", 0.5 → "-50%"."""
    return f"{round((rate - 1.0) * 100):+d}%"


def pitch_to_edge(pitch: float) -> str:
    """Pitch multiplier → edge-tts pitch offset: 1.5 → "+50Hz"."""
    return f"{round((pitch - 1.0) * PITCH_HZ_PER_UNIT):+d}Hz"


class SynthesisCancelled(Exception):
    """Raised when synthesis is abandoned because its cancel event was set."""


def _backoff(attempt: int, cancel: threading.Event | None) -> None:
    delay = TTS_RETRY_BASE_DELAY * (2 ** attempt)
    if cancel is None:
        time.sleep(delay)
    elif cancel.wait(delay):
        raise SynthesisCancelled()


def synthesize(
    text: str,
    voice: str,
    output_path: str,
    rate: str = "+0%",
    pitch: str = "+0Hz",
    cancel: threading.Event | None = None,
) -> None:
    """Synthesize one utterance to an MP3 file with retry logic.

    Sync wrapper around edge_tts.Communicate(). Retries on network errors,
    HTTP errors, or 0-byte output files. Setting `cancel` abandons the
    remaining attempts and backoff with SynthesisCancelled.
    """
    last_error = None
    for attempt in range(TTS_RETRY_COUNT):
        if cancel is not None and cancel.is_set():
            raise SynthesisCancelled()
        try:
            communicate = edge_tts.Communicate(text, voice, rate=rate, pitch=pitch)
            asyncio.run(communicate.save(output_path))
        except Exception as e:
            last_error = e
        else:
            # 0-byte output counts as failure
            if os.path.exists(output_path) and os.path.getsize(output_path) > 0:
                return
            last_error = Exception(f"TTS produced 0-byte file for: {text[:50]}...")

        if attempt < TTS_RETRY_COUNT - 1:
            _backoff(attempt, cancel)

    raise last_error


def fetch_voices() -> list[Voice]:
    """Fetch the edge-tts voice list, sorted by language then identifier."""
    raw = asyncio.run(edge_tts.list_voices())
    voices = []
    for entry in raw:
        short_name = entry.get("ShortName")
        if not short_name:
            continue
        voices.append(Voice(
            identifier=short_name,
            name=entry.get("FriendlyName") or short_name,
            language=entry.get("Locale", ""),
            quality="Neural" if short_name.endswith("Neural") else None,
            gender=entry.get("Gender"),
        ))
    voices.sort(key=lambda v: (v.language, v.identifier))
    return voices
