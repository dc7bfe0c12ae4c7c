"""Speech recognition engine built on sounddevice and Faster-Whisper."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Protocol

from .errors import RecognizerUnavailableError
from .models import (
    EVENT_END_OF_INPUT,
    EVENT_ERROR,
    EVENT_RESULTS,
    RecognitionEvent,
)

logger = logging.getLogger("voiceminutes")

EventCallback = Callable[[RecognitionEvent], None]


class Recognizer(Protocol):
    def is_available(self) -> bool: ...

    def start_attempt(self, on_event: EventCallback) -> None: ...

    def cancel(self) -> None: ...


def list_input_devices() -> List[Dict[str, Any]]:
    try:
        import sounddevice as sd
    except Exception as exc:  # pragma: no cover - environment-dependent
        raise RecognizerUnavailableError("sounddevice is required for capture.") from exc

    return [d for d in sd.query_devices() if d.get("max_input_channels", 0) > 0]


def select_preferred_device(
    candidates: List[Dict[str, Any]],
    prefer_name: Optional[str] = None,
) -> Dict[str, Any]:
    if not candidates:
        raise RecognizerUnavailableError("No input devices found.")
    if prefer_name:
        preferred = [
            d for d in candidates if prefer_name.lower() in d.get("name", "").lower()
        ]
        if preferred:
            return preferred[0]
    return candidates[0]


def find_input_device(prefer_name: Optional[str] = None) -> Dict[str, Any]:
    return select_preferred_device(list_input_devices(), prefer_name=prefer_name)


def whisper_language(language: Optional[str]) -> Optional[str]:
    """Map a locale such as ``ja-JP`` to the code Whisper expects."""
    if not language:
        return None
    return language.replace("_", "-").split("-", 1)[0].lower()


class WhisperRecognizer:
    """Captures one utterance per attempt and transcribes it.

    An attempt ends after trailing silence, after ``no_speech_seconds`` with
    nothing heard, after ``max_attempt_seconds``, or on :meth:`cancel`.
    Events are handed to ``post`` so callers can move them onto their own
    thread; cancelled attempts emit nothing.
    """

    def __init__(
        self,
        model_name: str = "small",
        language: Optional[str] = "ja-JP",
        device_name: Optional[str] = None,
        sample_rate_hz: int = 16000,
        silence_seconds: float = 1.5,
        no_speech_seconds: float = 8.0,
        max_attempt_seconds: float = 30.0,
        silence_threshold: float = 0.01,
        post: Optional[Callable[[Callable[[], None]], None]] = None,
    ) -> None:
        self.model_name = model_name
        self.language = whisper_language(language)
        self.device_name = device_name
        self.sample_rate_hz = sample_rate_hz
        self.silence_seconds = silence_seconds
        self.no_speech_seconds = no_speech_seconds
        self.max_attempt_seconds = max_attempt_seconds
        self.silence_threshold = silence_threshold
        self._post = post or (lambda fn: fn())
        self._model = None
        self._model_lock = threading.Lock()
        self._stop_event: Optional[threading.Event] = None

    @classmethod
    def from_config(cls, speech_config, post=None) -> "WhisperRecognizer":
        return cls(
            model_name=speech_config.whisper_model,
            language=speech_config.language,
            device_name=speech_config.device_name,
            sample_rate_hz=speech_config.sample_rate_hz,
            silence_seconds=speech_config.silence_seconds,
            no_speech_seconds=speech_config.no_speech_seconds,
            max_attempt_seconds=speech_config.max_attempt_seconds,
            silence_threshold=speech_config.silence_threshold,
            post=post,
        )

    def is_available(self) -> bool:
        try:
            import faster_whisper  # noqa: F401

            find_input_device(self.device_name)
        except Exception as exc:
            logger.warning("Recognizer unavailable: %s", exc)
            return False
        return True

    def start_attempt(self, on_event: EventCallback) -> None:
        self.cancel()
        stop_event = threading.Event()
        self._stop_event = stop_event
        worker = threading.Thread(
            target=self._run_attempt, args=(stop_event, on_event), daemon=True
        )
        worker.start()

    def cancel(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
            self._stop_event = None

    def _emit(self, stop_event: threading.Event, on_event: EventCallback, event) -> None:
        if stop_event.is_set():
            return
        self._post(lambda: on_event(event))

    def _run_attempt(self, stop_event: threading.Event, on_event: EventCallback) -> None:
        try:
            audio = self._capture_utterance(stop_event)
            if stop_event.is_set():
                return
            if audio is None:
                self._emit(stop_event, on_event, RecognitionEvent(EVENT_END_OF_INPUT))
                return
            texts = self._transcribe(audio)
            self._emit(stop_event, on_event, RecognitionEvent(EVENT_RESULTS, texts=texts))
        except Exception as exc:
            logger.debug("Recognition attempt failed", exc_info=True)
            self._emit(
                stop_event, on_event, RecognitionEvent(EVENT_ERROR, error=str(exc))
            )

    def _capture_utterance(self, stop_event: threading.Event):
        """Record until the speaker pauses. Returns None when nothing was said."""
        try:
            import numpy as np
            import sounddevice as sd
        except Exception as exc:  # pragma: no cover - environment-dependent
            raise RecognizerUnavailableError(
                "sounddevice and numpy are required for capture."
            ) from exc

        device = find_input_device(self.device_name)
        blocksize = int(self.sample_rate_hz * 0.1)
        chunks = []
        heard_speech = False
        silent_for = 0.0
        elapsed = 0.0
        block_seconds = blocksize / self.sample_rate_hz

        with sd.InputStream(
            samplerate=self.sample_rate_hz,
            channels=1,
            dtype="float32",
            device=device.get("index"),
            blocksize=blocksize,
        ) as stream:
            while not stop_event.is_set():
                data, _overflowed = stream.read(blocksize)
                mono = data[:, 0].copy()
                elapsed += block_seconds
                rms = float(np.sqrt(np.mean(mono**2))) if mono.size else 0.0
                if rms >= self.silence_threshold:
                    heard_speech = True
                    silent_for = 0.0
                else:
                    silent_for += block_seconds
                if heard_speech:
                    chunks.append(mono)
                    if silent_for >= self.silence_seconds:
                        break
                elif elapsed >= self.no_speech_seconds:
                    break
                if elapsed >= self.max_attempt_seconds:
                    break

        if not heard_speech or not chunks:
            return None
        return np.concatenate(chunks)

    def _load_model(self):
        with self._model_lock:
            if self._model is None:
                try:
                    from faster_whisper import WhisperModel
                except Exception as exc:  # pragma: no cover - optional dependency
                    raise RecognizerUnavailableError(
                        "faster-whisper is required for transcription."
                    ) from exc
                logger.info("Loading Whisper model %s", self.model_name)
                self._model = WhisperModel(self.model_name)
            return self._model

    def _transcribe(self, audio) -> List[str]:
        model = self._load_model()
        segments, _info = model.transcribe(audio, language=self.language)
        return [seg.text.strip() for seg in segments if seg.text.strip()]
