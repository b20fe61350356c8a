"""Data models for scene playback sessions."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Mapping

from scene_reader.constants import (
    DEFAULT_LANGUAGE,
    DEFAULT_PITCH,
    DEFAULT_RATE,
    DEFAULT_SCENE,
)


@dataclass(frozen=True)
class Scene:
    id: str
    title: str
    description: str
    sentences: Mapping[str, tuple[str, ...]]   # language code → ordered sentences
    tags: frozenset[str] = frozenset()


@dataclass(frozen=True)
class Voice:
    identifier: str
    name: str
    language: str
    quality: str | None = None
    gender: str | None = None


@dataclass(frozen=True)
class LanguageInfo:
    code: str
    name: str
    flag: str


@dataclass(frozen=True)
class Settings:
    """One complete, immutable view of the session configuration."""

    pitch: float = DEFAULT_PITCH
    rate: float = DEFAULT_RATE
    language: str = DEFAULT_LANGUAGE
    voice: str | None = None
    selected_scene: str | None = DEFAULT_SCENE
    selected_sentence_index: int = 0


class PlaybackState(Enum):
    IDLE = "idle"
    SPEAKING = "speaking"


@dataclass(frozen=True)
class SpeakOptions:
    pitch: float = DEFAULT_PITCH
    rate: float = DEFAULT_RATE
    language: str = DEFAULT_LANGUAGE
    voice: str | None = None


def _noop(*args) -> None:
    pass


@dataclass
class SpeechCallbacks:
    """Outcome hooks for one utterance. Exactly one of done/error/stopped is expected."""

    on_start: Callable[[], None] = _noop
    on_done: Callable[[], None] = _noop
    on_error: Callable[[Exception], None] = _noop
    on_stopped: Callable[[], None] = _noop


@dataclass(frozen=True)
class SessionSnapshot:
    settings: Settings
    is_speaking: bool
    is_loading: bool
    current_text: str
    available_voices: tuple[Voice, ...] = ()
    available_languages: tuple[LanguageInfo, ...] = ()
    available_engine_languages: tuple[str, ...] = ()
    scenes: tuple[Scene, ...] = field(default=(), repr=False)
    engine_version: str = "unknown"
    error: Exception | None = None
