from datetime import date

from voiceminutes.models import RecognitionEvent
from voiceminutes.speech import SpeechSessionManager


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class FakeHandle:
    def __init__(self, due: float, callback) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.handles = []

    def call_later(self, delay, callback):
        handle = FakeHandle(self.clock.now + delay, callback)
        self.handles.append(handle)
        return handle

    def armed(self):
        return [h for h in self.handles if not h.cancelled and h.due is not None]

    def advance(self, seconds: float) -> None:
        self.clock.now += seconds
        for handle in self.armed():
            if handle.due <= self.clock.now:
                handle.due = None
                handle.callback()


class FakeRecognizer:
    def __init__(self, available: bool = True) -> None:
        self.available = available
        self.attempts = []
        self.cancels = 0

    def is_available(self) -> bool:
        return self.available

    def start_attempt(self, on_event) -> None:
        self.attempts.append(on_event)

    def cancel(self) -> None:
        self.cancels += 1

    def emit(self, kind, *texts, error=None) -> None:
        self.attempts[-1](RecognitionEvent(kind, texts=list(texts), error=error))


def _manager(available: bool = True):
    clock = FakeClock()
    scheduler = FakeScheduler(clock)
    recognizer = FakeRecognizer(available)
    manager = SpeechSessionManager(
        recognizer,
        scheduler=scheduler,
        clock=clock,
        today=lambda: date(2024, 1, 1),
    )
    return manager, recognizer, scheduler


def test_start_arms_one_watchdog_and_begins_attempt():
    manager, recognizer, scheduler = _manager()
    assert manager.start() is True
    assert manager.is_listening
    assert manager.start_date == date(2024, 1, 1)
    assert len(scheduler.armed()) == 1
    assert scheduler.armed()[0].due == 300
    assert len(recognizer.attempts) == 1


def test_fragments_are_joined_with_single_spaces():
    manager, recognizer, _scheduler = _manager()
    manager.start()
    recognizer.emit("results", "売上は", "")
    recognizer.emit("end_of_input")
    recognizer.emit("results", "   ")
    recognizer.emit("error", error="no match")
    recognizer.emit("results", "好調です")
    assert manager.recognized_text == "売上は 好調です"
    assert len(recognizer.attempts) == 6


def test_partial_results_are_not_accumulated_and_do_not_restart():
    manager, recognizer, _scheduler = _manager()
    manager.start()
    recognizer.emit("partial", "売上")
    assert manager.recognized_text == ""
    assert len(recognizer.attempts) == 1


def test_start_clears_previous_text():
    manager, recognizer, _scheduler = _manager()
    manager.start()
    recognizer.emit("results", "一回目")
    manager.stop()
    assert manager.recognized_text == "一回目"
    manager.start()
    assert manager.recognized_text == ""
    recognizer.emit("results", "二回目")
    assert manager.recognized_text == "二回目"


def test_stop_is_idempotent_and_disarms_watchdog():
    manager, recognizer, scheduler = _manager()
    manager.start()
    manager.stop()
    manager.stop()
    assert not manager.is_listening
    assert manager.session is None
    assert scheduler.armed() == []
    assert recognizer.cancels == 1


def test_events_after_stop_are_ignored():
    manager, recognizer, _scheduler = _manager()
    manager.start()
    manager.stop()
    recognizer.emit("results", "遅れて届いた")
    assert manager.recognized_text == ""
    assert len(recognizer.attempts) == 1


def test_stale_attempt_events_are_ignored():
    manager, recognizer, _scheduler = _manager()
    manager.start()
    first = recognizer.attempts[0]
    recognizer.emit("end_of_input")
    first(RecognitionEvent("results", texts=["古い"]))
    assert manager.recognized_text == ""
    assert len(recognizer.attempts) == 2


def test_watchdog_stops_session_despite_continuous_results():
    manager, recognizer, scheduler = _manager()
    manager.start()
    elapsed = 0
    while elapsed < 301:
        scheduler.advance(10)
        elapsed += 10
        if manager.is_listening:
            recognizer.emit("results", "継続")
    assert not manager.is_listening
    assert manager.session is None


def test_attempt_ending_after_deadline_stops_session():
    manager, recognizer, scheduler = _manager()
    manager.start()
    # Clock passes the deadline before the watchdog callback has run.
    scheduler.clock.now = 300
    recognizer.emit("results", "最後")
    assert not manager.is_listening
    assert manager.recognized_text == "最後"
    assert len(recognizer.attempts) == 1


def test_unavailable_recognizer_leaves_manager_idle():
    manager, recognizer, scheduler = _manager(available=False)
    assert manager.start() is False
    assert not manager.is_listening
    assert recognizer.attempts == []
    assert scheduler.armed() == []


def test_restart_while_listening_replaces_session():
    manager, recognizer, scheduler = _manager()
    manager.start()
    manager.start()
    assert manager.is_listening
    assert len(scheduler.armed()) == 1
