"""Data models for VoiceMinutes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, List, Optional, Tuple

EVENT_PARTIAL = "partial"
EVENT_RESULTS = "results"
EVENT_END_OF_INPUT = "end_of_input"
EVENT_ERROR = "error"

TERMINAL_EVENTS = (EVENT_RESULTS, EVENT_END_OF_INPUT, EVENT_ERROR)


@dataclass
class RecognitionEvent:
    kind: str
    texts: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.kind in TERMINAL_EVENTS


@dataclass
class Session:
    is_listening: bool
    session_end_time: float
    start_date: date
    watchdog: Any = None
    attempt_id: int = 0


@dataclass(frozen=True)
class PageLayout:
    page_width: int = 595
    page_height: int = 842
    margin: float = 40.0
    font_name: str = "HeiseiKakuGo-W5"
    heading_font_size: float = 20.0
    body_font_size: float = 14.0
    heading_spacing: float = 32.0
    body_spacing: float = 24.0
    sub_item_indent: float = 40.0

    @property
    def usable_width(self) -> float:
        return self.page_width - self.margin * 2

    @property
    def bottom_limit(self) -> float:
        return self.page_height - self.margin


@dataclass(frozen=True)
class PlacedLine:
    text: str
    x: float
    y: float
    font_size: float
    bold: bool
    style: str


@dataclass(frozen=True)
class RenderedPage:
    number: int
    lines: Tuple[PlacedLine, ...]
