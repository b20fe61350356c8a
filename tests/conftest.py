"""Shared fixtures for scene reader tests."""

import pytest
from pydub import AudioSegment

from scene_reader.catalog import build_catalog, load_scenes
from scene_reader.engine import SpeechEngine
from scene_reader.models import Voice
from scene_reader.session import SessionController


class FakeSpeechEngine(SpeechEngine):
    """Records every call; tests fire the callbacks by hand."""

    def __init__(self, voices=None, fail_initialize=False, fail_speak=False, fail_stop=False):
        self.voices = list(voices or [])
        self.fail_initialize = fail_initialize
        self.fail_speak = fail_speak
        self.fail_stop = fail_stop
        self.initialize_calls = 0
        self.speak_calls = []   # (text, options, callbacks)
        self.stop_calls = 0

    def initialize(self):
        self.initialize_calls += 1
        if self.fail_initialize:
            raise RuntimeError("no speech service")

    def list_voices(self):
        return list(self.voices)

    def list_supported_language_codes(self):
        return sorted({v.language for v in self.voices})

    def speak(self, text, options, callbacks):
        self.speak_calls.append((text, options, callbacks))
        if self.fail_speak:
            raise RuntimeError("synthesizer busy")

    def stop(self):
        self.stop_calls += 1
        if self.fail_stop:
            raise RuntimeError("stop not supported")

    def is_speaking(self):
        return False

    @property
    def version(self):
        return "fake 1.0"

    @property
    def last_callbacks(self):
        return self.speak_calls[-1][2]


@pytest.fixture
def voices():
    return [
        Voice(identifier="en-US-AriaNeural", name="Aria", language="en-US", gender="Female"),
        Voice(identifier="en-US-GuyNeural", name="Guy", language="en-US", gender="Male"),
        Voice(identifier="ja-JP-NanamiNeural", name="Nanami", language="ja-JP", gender="Female"),
        Voice(identifier="ja-JP-KeitaNeural", name="Keita", language="ja-JP", gender="Male"),
        Voice(identifier="zh-CN-XiaoxiaoNeural", name="Xiaoxiao", language="zh-CN", gender="Female"),
    ]


@pytest.fixture
def scenes():
    return load_scenes()


@pytest.fixture
def engine(voices):
    return FakeSpeechEngine(voices=voices)


@pytest.fixture
def controller(engine, scenes):
    """Controller over the built-in scenes, engine initialized."""
    ctrl = SessionController(engine, scenes)
    ctrl.initialize()
    return ctrl


@pytest.fixture
def make_controller(voices, scenes):
    """Factory: (controller, engine) with engine failure flags and an optional catalog."""
    def factory(catalog=None, engine_voices=None, **engine_flags):
        fake = FakeSpeechEngine(
            voices=voices if engine_voices is None else engine_voices,
            **engine_flags,
        )
        ctrl = SessionController(fake, scenes if catalog is None else catalog)
        ctrl.initialize()
        return ctrl, fake
    return factory


@pytest.fixture
def sparse_scenes():
    """Scenes with missing and empty language entries."""
    return build_catalog([
        {
            "id": "partial",
            "title": "Partial",
            "description": "Only English",
            "sentences": {"en-US": ["One.", "Two."], "zh-CN": []},
        },
        {
            "id": "blank",
            "title": "Blank",
            "description": "Whitespace only",
            "sentences": {"en-US": ["   "]},
        },
    ])


@pytest.fixture
def tiny_mp3(tmp_path):
    """Generate a 100ms silent MP3 for testing."""
    path = tmp_path / "test.mp3"
    silence = AudioSegment.silent(duration=100)
    silence.export(str(path), format="mp3")
    return path
