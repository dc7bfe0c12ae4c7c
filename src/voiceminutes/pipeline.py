"""Minutes pipeline: recognized text to summary to PDF."""

from __future__ import annotations

import logging
import os
import threading
from datetime import date
from typing import Callable, Optional

from .config import Config, resolve_output_dir
from .errors import (
    EmptyCompletionError,
    MissingCredentialError,
    RemoteServiceError,
    RenderError,
    TransportError,
)
from .models import PageLayout
from .renderer import render_summary_pdf
from .speech import SpeechSessionManager
from .summarizer import SummaryGenerator

logger = logging.getLogger("voiceminutes")

MSG_SAVED = "PDF保存完了: {name}"
MSG_AI_FAILED = "AI通信でエラーが発生しました"
MSG_AI_EMPTY = "AIから議事録が返りませんでした"
MSG_PDF_FAILED = "PDF生成でエラーが発生しました"
MSG_NO_API_KEY = "APIキーが設定されていません"
MSG_NO_RECOGNIZER = "音声認識を利用できません"


def run_minutes(
    text: str,
    start_date: date,
    generator: SummaryGenerator,
    output_dir: str,
    layout: Optional[PageLayout] = None,
    renderer: Callable[..., str] = render_summary_pdf,
) -> str:
    summary = generator.generate(text, start_date)
    return renderer(summary, output_dir, layout)


def _start_thread(target: Callable[[], None]) -> None:
    threading.Thread(target=target, name="minutes-worker", daemon=True).start()


class MinutesController:
    """State shared by the front ends.

    ``notify`` receives one short user-facing message per finished action. It
    may be called from the worker thread.
    """

    def __init__(
        self,
        config: Config,
        speech: SpeechSessionManager,
        notify: Callable[[str], None],
        generator_factory: Callable[[Config], SummaryGenerator] = SummaryGenerator.from_config,
        renderer: Callable[..., str] = render_summary_pdf,
        run_in_background: Callable[[Callable[[], None]], None] = _start_thread,
    ) -> None:
        self.config = config
        self.speech = speech
        self.notify = notify
        self._generator_factory = generator_factory
        self._renderer = renderer
        self._run_in_background = run_in_background
        self._lock = threading.Lock()
        self._processing = False

    @property
    def is_processing(self) -> bool:
        return self._processing

    @property
    def is_listening(self) -> bool:
        return self.speech.is_listening

    @property
    def recognized_text(self) -> str:
        return self.speech.recognized_text

    @property
    def can_generate(self) -> bool:
        return (
            bool(self.recognized_text.strip())
            and not self.is_listening
            and not self.is_processing
        )

    def start_listening(self) -> bool:
        started = self.speech.start()
        if not started:
            self.notify(MSG_NO_RECOGNIZER)
        return started

    def stop_listening(self) -> None:
        self.speech.stop()

    def toggle_listening(self) -> None:
        if self.is_listening:
            self.stop_listening()
        else:
            self.start_listening()

    def delete_text(self) -> None:
        self.speech.clear_text()

    def generate_document(self) -> bool:
        text = self.recognized_text
        if not text.strip():
            return False
        with self._lock:
            if self._processing:
                return False
            try:
                generator = self._generator_factory(self.config)
            except MissingCredentialError as exc:
                logger.error("Summary not started: %s", exc)
                self.notify(MSG_NO_API_KEY)
                return False
            self._processing = True

        start_date = self.speech.start_date or date.today()
        output_dir = resolve_output_dir(self.config)
        layout = self.config.document.to_layout()
        self._run_in_background(
            lambda: self._worker(text, start_date, generator, output_dir, layout)
        )
        return True

    def _worker(self, text, start_date, generator, output_dir, layout) -> None:
        try:
            message = self._produce(text, start_date, generator, output_dir, layout)
        finally:
            with self._lock:
                self._processing = False
        self.notify(message)

    def _produce(self, text, start_date, generator, output_dir, layout) -> str:
        try:
            path = run_minutes(
                text, start_date, generator, output_dir, layout, renderer=self._renderer
            )
        except (RemoteServiceError, TransportError) as exc:
            logger.error("LLM request failed: %s", exc)
            return MSG_AI_FAILED
        except EmptyCompletionError as exc:
            logger.error("No minutes returned: %s", exc)
            return MSG_AI_EMPTY
        except RenderError as exc:
            logger.error("PDF generation failed: %s", exc)
            return MSG_PDF_FAILED
        except Exception:
            logger.exception("Minutes generation failed")
            return MSG_AI_FAILED
        return MSG_SAVED.format(name=os.path.basename(path))
