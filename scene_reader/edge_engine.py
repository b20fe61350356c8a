"""Speech engine backed by edge-tts synthesis and an ffplay/avplay player process."""

import importlib.metadata
import logging
import os
import subprocess
import tempfile
import threading
from typing import Callable

from pydub import AudioSegment
from pydub.utils import get_player_name

from scene_reader import effects
from scene_reader.constants import DEFAULT_VOICE, PLAYER_POLL_SECONDS
from scene_reader.engine import SpeechEngine, truncate_text
from scene_reader.models import SpeakOptions, SpeechCallbacks, Voice
from scene_reader.tts import SynthesisCancelled, fetch_voices, pitch_to_edge, rate_to_edge, synthesize

logger = logging.getLogger(__name__)

Dispatch = Callable[..., None]


def _call_now(fn: Callable, *args) -> None:
    fn(*args)


class EdgeSpeechEngine(SpeechEngine):
    """
    One worker thread per utterance: synthesize, post-process, play.

    - Callbacks go through `dispatch` (an EventQueue.post in the CLI) so they
      run on the host thread, never on the worker.
    - stop() sets the utterance's stop event; the worker terminates the player
      and reports on_stopped.
    """

    def __init__(self, dispatch: Dispatch | None = None, player: str | None = None):
        self._dispatch = dispatch or _call_now
        self._player = player or get_player_name()
        self._lock = threading.Lock()
        self._initialized = False
        self._voices: list[Voice] = []
        self._languages: list[str] = []
        self._thread: threading.Thread | None = None
        self._stop_event: threading.Event | None = None

    # ---------- public API ----------

    def initialize(self) -> None:
        with self._lock:
            if self._initialized:
                return
            voices = fetch_voices()
            self._voices = voices
            self._languages = sorted({v.language for v in voices if v.language})
            self._initialized = True
        logger.info("Edge engine initialized with %d voices and %d languages", len(self._voices), len(self._languages))

    def list_voices(self) -> list[Voice]:
        self.initialize()
        return list(self._voices)

    def list_supported_language_codes(self) -> list[str]:
        self.initialize()
        return list(self._languages)

    def speak(self, text: str, options: SpeakOptions, callbacks: SpeechCallbacks) -> None:
        stop_event = threading.Event()
        thread = threading.Thread(
            target=self._run,
            args=(truncate_text(text), options, callbacks, stop_event),
            daemon=True,
            name="scene-reader-speech",
        )
        with self._lock:
            self._stop_event = stop_event
            self._thread = thread
        thread.start()

    def stop(self) -> None:
        with self._lock:
            stop_event = self._stop_event
        if stop_event is not None:
            stop_event.set()

    def is_speaking(self) -> bool:
        with self._lock:
            thread, stop_event = self._thread, self._stop_event
        return thread is not None and thread.is_alive() and not stop_event.is_set()

    @property
    def version(self) -> str:
        try:
            return f"edge-tts {importlib.metadata.version('edge-tts')}"
        except importlib.metadata.PackageNotFoundError:
            return "edge-tts (unknown version)"

    # ---------- internal ----------

    def _voice_for(self, options: SpeakOptions) -> str:
        if options.voice:
            return options.voice
        for voice in self._voices:
            if voice.language == options.language:
                return voice.identifier
        return DEFAULT_VOICE

    def _run(self, text: str, options: SpeakOptions, callbacks: SpeechCallbacks, stop_event: threading.Event):
        try:
            self.initialize()
            voice = self._voice_for(options)

            # Pitch is applied in post-processing when pedalboard is present
            pitch = "+0Hz" if effects.PEDALBOARD_AVAILABLE else pitch_to_edge(options.pitch)

            with tempfile.TemporaryDirectory(prefix="scene_reader_") as tmp:
                mp3_path = os.path.join(tmp, "utterance.mp3")
                synthesize(text, voice, mp3_path, rate=rate_to_edge(options.rate), pitch=pitch, cancel=stop_event)
                if stop_event.is_set():
                    self._dispatch(callbacks.on_stopped)
                    return

                audio = AudioSegment.from_file(mp3_path, format="mp3")
                audio = effects.normalize_level(effects.apply_pitch(audio, options.pitch))
                wav_path = os.path.join(tmp, "utterance.wav")
                audio.export(wav_path, format="wav")
                if stop_event.is_set():
                    self._dispatch(callbacks.on_stopped)
                    return

                self._dispatch(callbacks.on_start)
                completed = self._play(wav_path, stop_event)

            self._dispatch(callbacks.on_done if completed else callbacks.on_stopped)
        except SynthesisCancelled:
            self._dispatch(callbacks.on_stopped)
        except Exception as e:
            logger.warning("Utterance failed: %s", e)
            if stop_event.is_set():
                self._dispatch(callbacks.on_stopped)
            else:
                self._dispatch(callbacks.on_error, e)

    def _play(self, path: str, stop_event: threading.Event) -> bool:
        """Play a file to completion. Returns False if stopped first."""
        cmd = [self._player, "-nodisp", "-autoexit", "-hide_banner", "-loglevel", "error", path]
        proc = subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        while proc.poll() is None:
            if stop_event.wait(PLAYER_POLL_SECONDS):
                proc.terminate()
                proc.wait()
                return False
        if proc.returncode != 0:
            raise RuntimeError(f"{self._player} exited with status {proc.returncode}")
        return True
