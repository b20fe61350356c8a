"""Speech engine contract used by the session controller.

An engine speaks one utterance at a time and reports its outcome only through
the callbacks handed to `speak()`: on_start, then exactly one of on_done,
on_error or on_stopped. The controller treats those callbacks as the source of
truth; `is_speaking()` is a best-effort poll for diagnostics.
"""

import abc
import logging

from scene_reader.constants import MAX_SPEECH_INPUT_LENGTH
from scene_reader.models import SpeakOptions, SpeechCallbacks, Voice

logger = logging.getLogger(__name__)


def truncate_text(text: str, limit: int = MAX_SPEECH_INPUT_LENGTH) -> str:
    """Cut text down to the engine's input limit instead of rejecting it."""
    if len(text) <= limit:
        return text
    logger.warning("Text exceeds maximum length (%d). It will be truncated.", limit)
    return text[:limit]


class SpeechEngine(abc.ABC):
    """
    Base class for speech engines.

    Abstract methods (must implement):
        initialize()
        list_voices() -> list[Voice]
        list_supported_language_codes() -> list[str]
        speak(text, options, callbacks)
        stop()
        is_speaking() -> bool

    Optional overrides:
        version
    """

    @abc.abstractmethod
    def initialize(self) -> None:
        """Prepare the engine. Safe to call repeatedly; later calls reuse the first result.

        Raises on failure.
        """
        ...

    @abc.abstractmethod
    def list_voices(self) -> list[Voice]:
        ...

    @abc.abstractmethod
    def list_supported_language_codes(self) -> list[str]:
        ...

    @abc.abstractmethod
    def speak(self, text: str, options: SpeakOptions, callbacks: SpeechCallbacks) -> None:
        """Start speaking and return immediately.

        The outcome is delivered through `callbacks` only. Text longer than the
        engine limit is truncated with `truncate_text`.
        """
        ...

    @abc.abstractmethod
    def stop(self) -> None:
        """Request that the current utterance stop; on_stopped confirms it."""
        ...

    @abc.abstractmethod
    def is_speaking(self) -> bool:
        ...

    @property
    def version(self) -> str:
        return "unknown"
