"""Settings store: one mutable session configuration behind an atomic merge."""

import dataclasses
import logging
import threading
from typing import Callable

from scene_reader.constants import PITCH_MAX, PITCH_MIN, RATE_MAX, RATE_MIN
from scene_reader.errors import InvalidSettings
from scene_reader.models import Settings
from scene_reader.resolver import clamp_index

logger = logging.getLogger(__name__)

SETTINGS_FIELDS = frozenset(f.name for f in dataclasses.fields(Settings))

Listener = Callable[[Settings, Settings], None]


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(float(value), high))


class SettingsStore:
    """Holds the current Settings and swaps in a new snapshot on each update.

    `sentence_count(scene_id, language)` tells the store how many sentences
    the selected scene has, so the sentence index can be clamped. The store
    applies no other cross-field rules.
    """

    def __init__(
        self,
        sentence_count: Callable[[str | None, str], int],
        initial: Settings | None = None,
    ):
        self._sentence_count = sentence_count
        self._lock = threading.Lock()
        self._listeners: list[Listener] = []
        self._settings = self._normalized(initial or Settings())

    def get(self) -> Settings:
        return self._settings

    def validate(self, partial: dict) -> None:
        """Raise InvalidSettings if partial names a field Settings does not have."""
        unknown = set(partial) - SETTINGS_FIELDS
        if unknown:
            raise InvalidSettings(f"Unknown setting(s): {', '.join(sorted(unknown))}")

    def update(self, **partial) -> Settings:
        """Merge the given fields into the current settings and return the result.

        Raises InvalidSettings for unknown field names; nothing is applied then.
        """
        self.validate(partial)

        with self._lock:
            old = self._settings
            new = self._normalized(dataclasses.replace(old, **partial))
            self._settings = new

        if new != old:
            logger.debug("Settings changed: %s", new)
            self._notify(old, new)
        return new

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register listener(old, new); returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _normalized(self, settings: Settings) -> Settings:
        count = self._sentence_count(settings.selected_scene, settings.language)
        return dataclasses.replace(
            settings,
            pitch=_clamp(settings.pitch, PITCH_MIN, PITCH_MAX),
            rate=_clamp(settings.rate, RATE_MIN, RATE_MAX),
            selected_sentence_index=clamp_index(int(settings.selected_sentence_index), count),
        )

    def _notify(self, old: Settings, new: Settings) -> None:
        for listener in list(self._listeners):
            try:
                listener(old, new)
            except Exception:
                logger.exception("Settings listener failed")
