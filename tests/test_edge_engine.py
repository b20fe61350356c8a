"""Tests for the edge-tts backed speech engine (synthesis and player patched out)."""

import shutil
import threading
from unittest.mock import patch, MagicMock

import pytest

from scene_reader.constants import DEFAULT_VOICE, MAX_SPEECH_INPUT_LENGTH
from scene_reader.edge_engine import EdgeSpeechEngine
from scene_reader.models import SpeakOptions, SpeechCallbacks


@pytest.fixture
def fake_synthesize(tiny_mp3):
    """Stand-in for tts.synthesize that copies a tiny MP3 into place."""
    calls = []

    def synth(text, voice, output_path, rate="+0%", pitch="+0Hz", cancel=None):
        calls.append({"text": text, "voice": voice, "rate": rate, "pitch": pitch})
        shutil.copy(tiny_mp3, output_path)

    synth.calls = calls
    return synth


def _finished_process(returncode=0):
    proc = MagicMock()
    proc.poll.return_value = returncode
    proc.returncode = returncode
    return proc


def _recording_callbacks(seen, started=None):
    def on_start():
        seen.append("start")
        if started is not None:
            started.set()

    return SpeechCallbacks(
        on_start=on_start,
        on_done=lambda: seen.append("done"),
        on_error=lambda exc: seen.append(("error", str(exc))),
        on_stopped=lambda: seen.append("stopped"),
    )


def _speak_and_wait(engine, text, options, callbacks):
    engine.speak(text, options, callbacks)
    engine._thread.join(timeout=10)


@patch("scene_reader.edge_engine.fetch_voices")
def test_initialize_is_cached(mock_fetch, voices):
    mock_fetch.return_value = voices
    engine = EdgeSpeechEngine(player="ffplay")
    engine.initialize()
    engine.initialize()
    assert engine.list_voices() == voices
    assert engine.list_supported_language_codes() == ["en-US", "ja-JP", "zh-CN"]
    assert mock_fetch.call_count == 1


@patch("scene_reader.edge_engine.fetch_voices")
def test_initialize_failure_not_cached(mock_fetch, voices):
    mock_fetch.side_effect = [OSError("offline"), voices]
    engine = EdgeSpeechEngine(player="ffplay")
    with pytest.raises(OSError):
        engine.initialize()
    engine.initialize()
    assert len(engine.list_voices()) == len(voices)


@patch("scene_reader.edge_engine.subprocess.Popen")
@patch("scene_reader.edge_engine.fetch_voices")
def test_speak_completes(mock_fetch, mock_popen, voices, fake_synthesize):
    mock_fetch.return_value = voices
    mock_popen.return_value = _finished_process()
    engine = EdgeSpeechEngine(player="ffplay")
    seen = []
    with patch("scene_reader.edge_engine.synthesize", fake_synthesize):
        _speak_and_wait(engine, "Hello.", SpeakOptions(language="ja-JP", rate=1.5), _recording_callbacks(seen))

    assert seen == ["start", "done"]
    assert fake_synthesize.calls[0]["voice"] == "ja-JP-NanamiNeural"
    assert fake_synthesize.calls[0]["rate"] == "+50%"
    cmd = mock_popen.call_args[0][0]
    assert cmd[0] == "ffplay"
    assert cmd[-1].endswith("utterance.wav")


@patch("scene_reader.edge_engine.subprocess.Popen")
@patch("scene_reader.edge_engine.fetch_voices")
def test_speak_uses_explicit_voice(mock_fetch, mock_popen, voices, fake_synthesize):
    mock_fetch.return_value = voices
    mock_popen.return_value = _finished_process()
    engine = EdgeSpeechEngine(player="ffplay")
    with patch("scene_reader.edge_engine.synthesize", fake_synthesize):
        _speak_and_wait(engine, "Hi.", SpeakOptions(voice="en-US-GuyNeural"), _recording_callbacks([]))
    assert fake_synthesize.calls[0]["voice"] == "en-US-GuyNeural"


@patch("scene_reader.edge_engine.subprocess.Popen")
@patch("scene_reader.edge_engine.fetch_voices")
def test_speak_default_voice_for_unknown_language(mock_fetch, mock_popen, voices, fake_synthesize):
    mock_fetch.return_value = voices
    mock_popen.return_value = _finished_process()
    engine = EdgeSpeechEngine(player="ffplay")
    with patch("scene_reader.edge_engine.synthesize", fake_synthesize):
        _speak_and_wait(engine, "Salut.", SpeakOptions(language="fr-FR"), _recording_callbacks([]))
    assert fake_synthesize.calls[0]["voice"] == DEFAULT_VOICE


@patch("scene_reader.edge_engine.subprocess.Popen")
@patch("scene_reader.edge_engine.fetch_voices")
def test_speak_truncates_long_text(mock_fetch, mock_popen, voices, fake_synthesize):
    mock_fetch.return_value = voices
    mock_popen.return_value = _finished_process()
    engine = EdgeSpeechEngine(player="ffplay")
    with patch("scene_reader.edge_engine.synthesize", fake_synthesize):
        _speak_and_wait(engine, "x" * (MAX_SPEECH_INPUT_LENGTH + 10), SpeakOptions(), _recording_callbacks([]))
    assert len(fake_synthesize.calls[0]["text"]) == MAX_SPEECH_INPUT_LENGTH


@patch("scene_reader.edge_engine.subprocess.Popen")
@patch("scene_reader.edge_engine.fetch_voices")
def test_stop_during_playback(mock_fetch, mock_popen, voices, fake_synthesize):
    mock_fetch.return_value = voices
    proc = MagicMock()
    proc.poll.return_value = None   # never finishes on its own
    mock_popen.return_value = proc
    engine = EdgeSpeechEngine(player="ffplay")
    seen = []
    started = threading.Event()
    with patch("scene_reader.edge_engine.synthesize", fake_synthesize):
        engine.speak("Hello.", SpeakOptions(), _recording_callbacks(seen, started))
        assert started.wait(timeout=10)
        assert engine.is_speaking()
        engine.stop()
        engine._thread.join(timeout=10)

    assert seen == ["start", "stopped"]
    proc.terminate.assert_called_once()
    assert not engine.is_speaking()


@patch("scene_reader.edge_engine.fetch_voices")
def test_synthesis_failure_reports_error(mock_fetch, voices):
    mock_fetch.return_value = voices
    engine = EdgeSpeechEngine(player="ffplay")
    seen = []
    with patch("scene_reader.edge_engine.synthesize", side_effect=ConnectionError("service unavailable")):
        _speak_and_wait(engine, "Hello.", SpeakOptions(), _recording_callbacks(seen))
    assert seen == [("error", "service unavailable")]


@patch("scene_reader.edge_engine.subprocess.Popen")
@patch("scene_reader.edge_engine.fetch_voices")
def test_player_failure_reports_error(mock_fetch, mock_popen, voices, fake_synthesize):
    mock_fetch.return_value = voices
    mock_popen.return_value = _finished_process(returncode=1)
    engine = EdgeSpeechEngine(player="ffplay")
    seen = []
    with patch("scene_reader.edge_engine.synthesize", fake_synthesize):
        _speak_and_wait(engine, "Hello.", SpeakOptions(), _recording_callbacks(seen))
    assert seen[0] == "start"
    assert seen[1][0] == "error"
    assert "status 1" in seen[1][1]


@patch("scene_reader.edge_engine.subprocess.Popen")
@patch("scene_reader.edge_engine.fetch_voices")
def test_callbacks_go_through_dispatch(mock_fetch, mock_popen, voices, fake_synthesize):
    mock_fetch.return_value = voices
    mock_popen.return_value = _finished_process()
    posted = []
    engine = EdgeSpeechEngine(dispatch=lambda fn, *args: posted.append((fn, args)), player="ffplay")
    seen = []
    with patch("scene_reader.edge_engine.synthesize", fake_synthesize):
        _speak_and_wait(engine, "Hello.", SpeakOptions(), _recording_callbacks(seen))

    assert seen == []
    assert len(posted) == 2
    for fn, args in posted:
        fn(*args)
    assert seen == ["start", "done"]


def test_stop_without_speech_is_harmless():
    engine = EdgeSpeechEngine(player="ffplay")
    engine.stop()
    assert not engine.is_speaking()


def test_version_names_edge_tts():
    assert EdgeSpeechEngine(player="ffplay").version.startswith("edge-tts")


@patch("scene_reader.tts.edge_tts.Communicate")
@patch("scene_reader.edge_engine.fetch_voices")
def test_stop_during_failing_synthesis_skips_retries(mock_fetch, mock_comm, voices):
    """A stop while synthesis is retrying reports on_stopped without further attempts."""
    mock_fetch.return_value = voices
    engine = EdgeSpeechEngine(player="ffplay")

    def fail_after_stop(text, voice, **kwargs):
        engine.stop()
        mock = MagicMock()
        async def fail_save(path):
            raise ConnectionError("service unavailable")
        mock.save = fail_save
        return mock

    mock_comm.side_effect = fail_after_stop
    seen = []
    _speak_and_wait(engine, "Hello.", SpeakOptions(), _recording_callbacks(seen))
    assert seen == ["stopped"]
    assert mock_comm.call_count == 1
