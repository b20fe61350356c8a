"""Session controller: reconciles user settings with one in-flight utterance.

State machine:
  IDLE --speak()--> SPEAKING(request_id)
  SPEAKING --on_done / on_error / on_stopped (matching request_id)--> IDLE
  SPEAKING --stop() failure / engine.speak() raising--> IDLE (fail-safe)

Callbacks carry the request id they were issued for; any callback whose id is
not the outstanding one is ignored.
"""

import itertools
import logging
from typing import Callable

from scene_reader.catalog import derive_languages, find_scene, sentence_count
from scene_reader.engine import SpeechEngine
from scene_reader.errors import (
    EngineInitializationFailed,
    EngineSpeakFailed,
    EngineStopFailed,
    InvalidSettings,
    NoTextToSpeak,
    SessionError,
)
from scene_reader.models import (
    PlaybackState,
    Scene,
    SessionSnapshot,
    Settings,
    SpeakOptions,
    SpeechCallbacks,
    Voice,
)
from scene_reader.resolver import resolve_sentence
from scene_reader.settings import SettingsStore

logger = logging.getLogger(__name__)

Listener = Callable[[SessionSnapshot], None]


class SessionController:
    """Owns the playback state and is the only caller of engine.speak/stop."""

    def __init__(
        self,
        engine: SpeechEngine,
        scenes: tuple[Scene, ...],
        settings: Settings | None = None,
    ):
        self._engine = engine
        self._scenes = tuple(scenes)
        self._languages = derive_languages(self._scenes)
        self._store = SettingsStore(
            lambda scene_id, language: sentence_count(self._scenes, scene_id, language),
            initial=settings,
        )
        self._state = PlaybackState.IDLE
        self._request_id: int | None = None
        self._stop_requested = False
        self._request_ids = itertools.count(1)
        self._voices: tuple[Voice, ...] = ()
        self._engine_languages: tuple[str, ...] = ()
        self._loading = False
        self._error: SessionError | None = None
        self._listeners: list[Listener] = []
        self._store.subscribe(lambda old, new: self._changed())

    # ---------- read side ----------

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def is_speaking(self) -> bool:
        return self._state is PlaybackState.SPEAKING

    @property
    def settings(self) -> Settings:
        return self._store.get()

    @property
    def error(self) -> SessionError | None:
        return self._error

    @property
    def current_text(self) -> str:
        settings = self._store.get()
        scene = find_scene(self._scenes, settings.selected_scene)
        return resolve_sentence(scene, settings.language, settings.selected_sentence_index)

    def voices_for_language(self, language: str) -> list[Voice]:
        return [v for v in self._voices if v.language == language]

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            settings=self._store.get(),
            is_speaking=self.is_speaking,
            is_loading=self._loading,
            current_text=self.current_text,
            available_voices=self._voices,
            available_languages=self._languages,
            available_engine_languages=self._engine_languages,
            scenes=self._scenes,
            engine_version=self._engine.version,
            error=self._error,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call listener(snapshot) after every state or settings change."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ---------- engine setup ----------

    def initialize(self) -> bool:
        """Initialize the engine and load its voices. Returns False on failure."""
        self._loading = True
        self._error = None
        self._changed()
        try:
            self._engine.initialize()
            self._voices = tuple(self._engine.list_voices())
            self._engine_languages = tuple(self._engine.list_supported_language_codes())
        except Exception as e:
            logger.error("Failed to initialize speech engine: %s", e)
            self._error = EngineInitializationFailed(str(e))
            return False
        else:
            logger.info(
                "Speech engine initialized with %d voices and %d languages",
                len(self._voices), len(self._engine_languages),
            )
            self._auto_select_voice()
            return True
        finally:
            self._loading = False
            self._changed()

    # ---------- playback ----------

    def speak(self) -> bool:
        """Start speaking the current sentence. Returns True if a request was issued.

        Ignored while an utterance is outstanding.
        """
        if self.is_speaking:
            logger.debug("speak() ignored: request %s still outstanding", self._request_id)
            return False

        self._error = None
        text = self.current_text
        if not text.strip():
            self._error = NoTextToSpeak()
            self._changed()
            return False

        settings = self._store.get()
        request_id = next(self._request_ids)
        self._state = PlaybackState.SPEAKING
        self._request_id = request_id
        self._stop_requested = False
        self._changed()

        options = SpeakOptions(
            pitch=settings.pitch,
            rate=settings.rate,
            language=settings.language,
            voice=settings.voice,
        )
        callbacks = SpeechCallbacks(
            on_start=lambda: self._on_start(request_id),
            on_done=lambda: self._on_done(request_id),
            on_error=lambda exc: self._on_error(request_id, exc),
            on_stopped=lambda: self._on_stopped(request_id),
        )
        logger.info("Speaking request %d (%s, voice=%s)", request_id, settings.language, settings.voice)
        try:
            self._engine.speak(text, options, callbacks)
        except Exception as e:
            logger.error("Speech engine rejected request %d: %s", request_id, e)
            self._settle(request_id, EngineSpeakFailed(str(e)))
        return True

    def stop(self) -> None:
        """Ask the engine to stop. The state changes when on_stopped arrives."""
        self._error = None
        if not self.is_speaking:
            return
        if self._stop_requested:
            logger.debug("stop() already requested for request %s", self._request_id)
            return

        self._stop_requested = True
        request_id = self._request_id
        try:
            self._engine.stop()
        except Exception as e:
            logger.error("Failed to stop speech: %s", e)
            self._settle(request_id, EngineStopFailed(str(e)))

    # ---------- settings ----------

    def update_settings(self, **partial) -> Settings:
        """Merge partial settings, stopping first if the voice or language changes mid-utterance.

        Invalid updates raise InvalidSettings before anything else happens.
        A voice of None means the first voice listed for the language.
        """
        self._store.validate(partial)
        current = self._store.get()

        if "selected_scene" in partial and partial["selected_scene"] is not None:
            if find_scene(self._scenes, partial["selected_scene"]) is None:
                raise InvalidSettings(f"Unknown scene: {partial['selected_scene']}")

        language = partial.get("language", current.language)
        language_changed = language != current.language
        if language_changed and "voice" not in partial:
            partial["voice"] = None

        voice = partial.get("voice")
        if voice is not None and voice not in {v.identifier for v in self.voices_for_language(language)}:
            raise InvalidSettings(f"Voice {voice} is not available for {language}")
        if "voice" in partial and voice is None:
            partial["voice"] = self._first_voice(language)

        self._error = None
        voice_changed = "voice" in partial and partial["voice"] != current.voice
        if self.is_speaking and (language_changed or voice_changed):
            logger.info("Stopping speech for language/voice change")
            self.stop()

        self._store.update(**partial)
        self._auto_select_voice()
        return self._store.get()

    def select_scene(self, scene_id: str) -> Settings:
        """Switch scene and start again from its first sentence."""
        return self.update_settings(selected_scene=scene_id, selected_sentence_index=0)

    def next_sentence(self) -> Settings:
        settings = self._store.get()
        return self._store.update(selected_sentence_index=settings.selected_sentence_index + 1)

    def previous_sentence(self) -> Settings:
        settings = self._store.get()
        return self._store.update(selected_sentence_index=max(0, settings.selected_sentence_index - 1))

    # ---------- internal ----------

    def _first_voice(self, language: str) -> str | None:
        candidates = self.voices_for_language(language)
        return candidates[0].identifier if candidates else None

    def _auto_select_voice(self) -> None:
        settings = self._store.get()
        if settings.voice is not None:
            return
        voice = self._first_voice(settings.language)
        if voice is not None:
            logger.debug("Auto-selecting voice %s for %s", voice, settings.language)
            self._store.update(voice=voice)

    def _is_current(self, request_id: int, event: str) -> bool:
        if self._state is PlaybackState.SPEAKING and request_id == self._request_id:
            return True
        logger.debug("Ignoring %s for stale request %d", event, request_id)
        return False

    def _on_start(self, request_id: int) -> None:
        if self._is_current(request_id, "on_start"):
            logger.debug("Speech started (request %d)", request_id)

    def _on_done(self, request_id: int) -> None:
        if self._is_current(request_id, "on_done"):
            logger.info("Speech completed (request %d)", request_id)
            self._settle(request_id)

    def _on_error(self, request_id: int, exc: Exception) -> None:
        if self._is_current(request_id, "on_error"):
            logger.error("Speech error (request %d): %s", request_id, exc)
            self._settle(request_id, EngineSpeakFailed(str(exc)))

    def _on_stopped(self, request_id: int) -> None:
        if self._is_current(request_id, "on_stopped"):
            logger.info("Speech stopped (request %d)", request_id)
            self._settle(request_id)

    def _settle(self, request_id: int, error: SessionError | None = None) -> None:
        """Return to IDLE if request_id is still the outstanding request."""
        if request_id != self._request_id:
            return
        self._state = PlaybackState.IDLE
        self._request_id = None
        self._stop_requested = False
        if error is not None:
            self._error = error
        self._changed()

    def _changed(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Session listener failed")
