"""Speech capture session lifecycle.

A session keeps a recognizer busy for a bounded time. Recognizers stop after a
short silence, so every completed attempt immediately starts the next one
until the session deadline passes or the user stops listening.
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import date
from typing import Any, Callable, Optional

from .errors import RecognizerUnavailableError
from .models import EVENT_RESULTS, RecognitionEvent, Session
from .recognizer import Recognizer

logger = logging.getLogger("voiceminutes")

DEFAULT_SESSION_SECONDS = 5 * 60


class ThreadingScheduler:
    """Runs callbacks on timer threads, or hands them to ``post`` when given."""

    def __init__(self, post: Optional[Callable[[Callable[[], None]], None]] = None) -> None:
        self._post = post

    def call_later(self, delay: float, callback: Callable[[], None]) -> threading.Timer:
        target = (lambda: self._post(callback)) if self._post else callback
        timer = threading.Timer(delay, target)
        timer.daemon = True
        timer.start()
        return timer


class _TkHandle:
    def __init__(self, widget, after_id: str) -> None:
        self._widget = widget
        self._after_id = after_id

    def cancel(self) -> None:
        self._widget.after_cancel(self._after_id)


class TkScheduler:
    """Runs callbacks on the Tk main loop."""

    def __init__(self, widget) -> None:
        self._widget = widget

    def call_later(self, delay: float, callback: Callable[[], None]) -> _TkHandle:
        after_id = self._widget.after(int(delay * 1000), callback)
        return _TkHandle(self._widget, after_id)


class SpeechSessionManager:
    """Owns the capture session and the recognized text.

    States are Idle (``session is None``) and Listening. The watchdog handle
    and the attempt id live on the session so that callbacks from a finished
    session or a superseded attempt can be recognized and dropped.
    """

    def __init__(
        self,
        recognizer: Recognizer,
        scheduler: Any = None,
        clock: Callable[[], float] = time.monotonic,
        session_seconds: float = DEFAULT_SESSION_SECONDS,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._recognizer = recognizer
        self._scheduler = scheduler or ThreadingScheduler()
        self._clock = clock
        self._today = today
        self.session_seconds = session_seconds
        self._session: Optional[Session] = None
        self._text = ""
        self._start_date: Optional[date] = None
        self._next_attempt_id = 0

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def is_listening(self) -> bool:
        return self._session is not None and self._session.is_listening

    @property
    def recognized_text(self) -> str:
        return self._text

    @property
    def start_date(self) -> Optional[date]:
        return self._start_date

    def clear_text(self) -> None:
        self._text = ""

    def start(self) -> bool:
        if self._session is not None:
            self.stop()
        if not self._recognizer.is_available():
            logger.warning("Speech recognition is not available; session not started.")
            return False

        self._text = ""
        self._start_date = self._today()
        session = Session(
            is_listening=True,
            session_end_time=self._clock() + self.session_seconds,
            start_date=self._start_date,
        )
        self._session = session
        session.watchdog = self._scheduler.call_later(
            self.session_seconds, lambda: self._on_deadline(session)
        )
        logger.info(
            "Listening started (%s, limit %ss).", session.start_date, self.session_seconds
        )
        try:
            self._begin_attempt()
        except RecognizerUnavailableError as exc:
            logger.warning("Speech recognition is not available: %s", exc)
            self.stop()
            return False
        return True

    def stop(self) -> None:
        session = self._session
        if session is None:
            return
        self._session = None
        session.is_listening = False
        if session.watchdog is not None:
            session.watchdog.cancel()
            session.watchdog = None
        self._recognizer.cancel()
        logger.info("Listening stopped (%d characters).", len(self._text))

    def _within_session(self) -> bool:
        session = self._session
        return session is not None and self._clock() < session.session_end_time

    def _begin_attempt(self) -> None:
        session = self._session
        if session is None:
            return
        self._next_attempt_id += 1
        attempt_id = self._next_attempt_id
        session.attempt_id = attempt_id
        self._recognizer.start_attempt(
            lambda event: self._on_event(session, attempt_id, event)
        )

    def _on_event(self, session: Session, attempt_id: int, event: RecognitionEvent) -> None:
        if session is not self._session or attempt_id != session.attempt_id:
            return
        if event.kind == EVENT_RESULTS:
            self._append(event.texts)
        if not event.is_terminal:
            return
        if event.error:
            logger.debug("Recognition attempt %d ended with error: %s", attempt_id, event.error)
        if self.is_listening and self._within_session():
            self._begin_attempt()
        else:
            self.stop()

    def _on_deadline(self, session: Session) -> None:
        if session is self._session and session.is_listening:
            logger.info("Session time limit reached.")
            self.stop()

    def _append(self, fragments) -> None:
        for fragment in fragments:
            if not fragment or not fragment.strip():
                continue
            self._text = f"{self._text} {fragment}" if self._text else fragment
