"""Configuration handling."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, asdict
from typing import Optional
import yaml

from .errors import MissingCredentialError
from .models import PageLayout

API_KEY_ENV = "ANTHROPIC_API_KEY"


@dataclass
class SpeechConfig:
    language: str = "ja-JP"
    session_seconds: int = 300
    device_name: Optional[str] = None
    whisper_model: str = "small"
    sample_rate_hz: int = 16000
    silence_seconds: float = 1.5
    no_speech_seconds: float = 8.0
    max_attempt_seconds: float = 30.0
    silence_threshold: float = 0.01


@dataclass
class LLMConfig:
    api_key: Optional[str] = None
    api_url: str = "https://api.anthropic.com/v1/messages"
    api_version: str = "2023-06-01"
    model: str = "claude-3-haiku-20240307"
    max_tokens: int = 1024
    timeout_seconds: Optional[float] = None


@dataclass
class DocumentConfig:
    page_width: int = 595
    page_height: int = 842
    margin: float = 40.0
    font_name: str = "HeiseiKakuGo-W5"
    heading_font_size: float = 20.0
    body_font_size: float = 14.0
    heading_spacing: float = 32.0
    body_spacing: float = 24.0
    sub_item_indent: float = 40.0

    def to_layout(self) -> PageLayout:
        return PageLayout(**asdict(self))


@dataclass
class Config:
    output_dir: str = ""
    log_dir: str = ""
    speech: SpeechConfig = field(default_factory=SpeechConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    document: DocumentConfig = field(default_factory=DocumentConfig)


def default_output_dir() -> str:
    return os.path.join(os.path.expanduser("~"), "Documents")


def resolve_output_dir(config: Config) -> str:
    return config.output_dir or default_output_dir()


def resolve_api_key(config: Config) -> str:
    """Return the API key injected via the environment or the config file."""
    key = (os.environ.get(API_KEY_ENV) or config.llm.api_key or "").strip()
    if not key:
        raise MissingCredentialError(
            f"No LLM API key configured. Set {API_KEY_ENV} or llm.api_key."
        )
    return key


def load_config(path: str) -> Config:
    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    speech = SpeechConfig(**data.get("speech", {}))
    llm = LLMConfig(**data.get("llm", {}))
    document = DocumentConfig(**data.get("document", {}))

    return Config(
        output_dir=data.get("output_dir", ""),
        log_dir=data.get("log_dir", ""),
        speech=speech,
        llm=llm,
        document=document,
    )


def load_config_or_default(path: str) -> Config:
    if path and os.path.exists(path):
        return load_config(path)
    return Config()


def save_config(path: str, config: Config) -> None:
    data = {
        "output_dir": config.output_dir,
        "log_dir": config.log_dir,
        "speech": asdict(config.speech),
        # The key stays out of files written by the app; inject it at startup.
        "llm": {**asdict(config.llm), "api_key": None},
        "document": asdict(config.document),
    }
    with open(path, "w", encoding="utf-8") as handle:
        yaml.safe_dump(data, handle, sort_keys=False, allow_unicode=True)
