import threading
import time

import pytest

from voiceminutes.errors import RecognizerUnavailableError
from voiceminutes.recognizer import (
    WhisperRecognizer,
    select_preferred_device,
    whisper_language,
)


def test_select_preferred_device_prefers_name():
    candidates = [
        {"name": "Built-in Mic", "index": 1},
        {"name": "USB Headset Microphone", "index": 2},
    ]
    result = select_preferred_device(candidates, prefer_name="headset")
    assert result["name"] == "USB Headset Microphone"


def test_select_preferred_device_falls_back_to_first():
    candidates = [
        {"name": "Built-in Mic", "index": 1},
        {"name": "USB Mic", "index": 2},
    ]
    result = select_preferred_device(candidates, prefer_name="missing")
    assert result["index"] == 1


def test_select_preferred_device_without_devices():
    with pytest.raises(RecognizerUnavailableError):
        select_preferred_device([])


@pytest.mark.parametrize(
    "locale, expected", [("ja-JP", "ja"), ("en_US", "en"), ("ja", "ja"), (None, None)]
)
def test_whisper_language(locale, expected):
    assert whisper_language(locale) == expected


class FakeSegment:
    def __init__(self, text: str) -> None:
        self.text = text


class FakeModel:
    def __init__(self, texts) -> None:
        self.texts = texts
        self.languages = []

    def transcribe(self, audio, language=None):
        self.languages.append(language)
        return [FakeSegment(t) for t in self.texts], None


def _recognizer():
    return WhisperRecognizer(post=lambda fn: fn())


def _run(recognizer, events, stop_event=None):
    stop_event = stop_event or threading.Event()
    recognizer._run_attempt(stop_event, events.append)


def test_attempt_emits_stripped_results(monkeypatch):
    recognizer = _recognizer()
    model = FakeModel([" 売上は ", "  ", "好調です"])
    monkeypatch.setattr(recognizer, "_capture_utterance", lambda stop: [0.1, 0.2])
    monkeypatch.setattr(recognizer, "_load_model", lambda: model)
    events = []
    _run(recognizer, events)
    assert [e.kind for e in events] == ["results"]
    assert events[0].texts == ["売上は", "好調です"]
    assert model.languages == ["ja"]


def test_attempt_without_speech_emits_end_of_input(monkeypatch):
    recognizer = _recognizer()
    monkeypatch.setattr(recognizer, "_capture_utterance", lambda stop: None)
    events = []
    _run(recognizer, events)
    assert [e.kind for e in events] == ["end_of_input"]


def test_attempt_failure_emits_error(monkeypatch):
    recognizer = _recognizer()

    def _broken(stop):
        raise OSError("device lost")

    monkeypatch.setattr(recognizer, "_capture_utterance", _broken)
    events = []
    _run(recognizer, events)
    assert [e.kind for e in events] == ["error"]
    assert "device lost" in events[0].error


def test_transcription_failure_emits_error(monkeypatch):
    recognizer = _recognizer()

    def _broken(audio):
        raise RuntimeError("model failed")

    monkeypatch.setattr(recognizer, "_capture_utterance", lambda stop: [0.1])
    monkeypatch.setattr(recognizer, "_transcribe", _broken)
    events = []
    _run(recognizer, events)
    assert [e.kind for e in events] == ["error"]


def test_cancelled_attempt_emits_nothing(monkeypatch):
    recognizer = _recognizer()
    stop_event = threading.Event()
    recognizer._stop_event = stop_event

    def _capture_then_cancel(stop):
        recognizer.cancel()
        return [0.1]

    monkeypatch.setattr(recognizer, "_capture_utterance", _capture_then_cancel)
    monkeypatch.setattr(recognizer, "_transcribe", lambda audio: ["late"])
    events = []
    _run(recognizer, events, stop_event)
    assert stop_event.is_set()
    assert events == []


def test_cancel_during_transcription_suppresses_results(monkeypatch):
    recognizer = _recognizer()
    stop_event = threading.Event()
    recognizer._stop_event = stop_event

    def _transcribe_then_cancel(audio):
        recognizer.cancel()
        return ["late"]

    monkeypatch.setattr(recognizer, "_capture_utterance", lambda stop: [0.1])
    monkeypatch.setattr(recognizer, "_transcribe", _transcribe_then_cancel)
    events = []
    _run(recognizer, events, stop_event)
    assert events == []


def test_start_attempt_cancels_previous_attempt(monkeypatch):
    recognizer = _recognizer()
    started = []
    monkeypatch.setattr(
        recognizer, "_run_attempt", lambda stop, on_event: started.append(stop)
    )
    recognizer.start_attempt(lambda event: None)
    recognizer.start_attempt(lambda event: None)
    deadline = time.monotonic() + 5
    while len(started) < 2 and time.monotonic() < deadline:
        time.sleep(0.01)
    first, second = started
    assert first.is_set()
    assert not second.is_set()
    recognizer.cancel()
    assert second.is_set()
    recognizer.cancel()
