"""Error types raised by the minutes pipeline."""

from __future__ import annotations

from typing import Optional


class VoiceMinutesError(Exception):
    """Base class for all pipeline errors."""


class RecognizerUnavailableError(VoiceMinutesError):
    """No speech recognition engine can be used on this machine."""


class MissingCredentialError(VoiceMinutesError):
    """The LLM API key was not supplied."""


class SummaryError(VoiceMinutesError):
    """Summary generation failed."""


class RemoteServiceError(SummaryError):
    def __init__(self, status_code: int, body: Optional[str] = None) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"LLM API returned HTTP {status_code}: {body or ''}".strip())


class EmptyCompletionError(SummaryError):
    """The API answered but no usable completion text was found."""


class TransportError(SummaryError):
    """The request never produced an HTTP response."""


class RenderError(VoiceMinutesError):
    """Laying out or writing the PDF failed."""
