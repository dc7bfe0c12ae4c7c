"""Meeting summary generation through the Anthropic Messages API."""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

import requests

from .config import Config, resolve_api_key
from .errors import (
    EmptyCompletionError,
    MissingCredentialError,
    RemoteServiceError,
    TransportError,
)

logger = logging.getLogger("voiceminutes")

HEADING_MARK = "■"
SUB_ITEM_MARK = "・"

DEFAULT_API_URL = "https://api.anthropic.com/v1/messages"
DEFAULT_API_VERSION = "2023-06-01"
DEFAULT_MODEL = "claude-3-haiku-20240307"
DEFAULT_MAX_TOKENS = 1024


def format_date(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def build_template(date_str: str) -> str:
    return "\n".join(
        [
            "1. 議題",
            "2. 日時",
            f"   {date_str}",
            "3. 議事内容",
            "4. まとめ",
        ]
    )


def build_prompt(text: str, date_str: str) -> str:
    lines = [
        "以下のテンプレートに従い、議事録のみを日本語で出力してください。余計な説明や挨拶は不要です。",
        f"各項目の見出し（議題、日時、議事内容、まとめ）は必ず行頭に『{HEADING_MARK}』を付けてください。",
        f"サブ項目は『{SUB_ITEM_MARK}』で始めてください。",
        "見出しやサブ項目が分かりやすいように出力してください。",
        "---",
        build_template(date_str),
        "---",
        "",
        f"内容：{text}",
    ]
    return "\n".join(lines)


def build_request_body(prompt: str, model: str, max_tokens: int) -> dict:
    return {
        "model": model,
        "max_tokens": max_tokens,
        "messages": [{"role": "user", "content": prompt}],
    }


def extract_completion(payload) -> str:
    """Return the first text block of a Messages API response."""
    if not isinstance(payload, dict):
        raise EmptyCompletionError("Response body is not a JSON object.")
    content = payload.get("content")
    if not isinstance(content, list) or not content:
        raise EmptyCompletionError("Response has no content blocks.")
    first = content[0]
    text = first.get("text") if isinstance(first, dict) else None
    if not isinstance(text, str) or not text.strip():
        raise EmptyCompletionError("First content block has no text.")
    return text


class SummaryGenerator:
    def __init__(
        self,
        api_key: str,
        api_url: str = DEFAULT_API_URL,
        api_version: str = DEFAULT_API_VERSION,
        model: str = DEFAULT_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not api_key:
            raise MissingCredentialError("An API key is required for summaries.")
        self.api_key = api_key
        self.api_url = api_url
        self.api_version = api_version
        self.model = model
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config: Config) -> "SummaryGenerator":
        llm = config.llm
        return cls(
            api_key=resolve_api_key(config),
            api_url=llm.api_url,
            api_version=llm.api_version,
            model=llm.model,
            max_tokens=llm.max_tokens,
            timeout=llm.timeout_seconds,
        )

    def headers(self) -> dict:
        return {
            "x-api-key": self.api_key,
            "anthropic-version": self.api_version,
            "content-type": "application/json",
        }

    def generate(self, text: str, start_date: date) -> str:
        prompt = build_prompt(text, format_date(start_date))
        body = build_request_body(prompt, self.model, self.max_tokens)
        logger.info(
            "Requesting summary from %s (model=%s, %d characters).",
            self.api_url,
            self.model,
            len(text),
        )
        try:
            response = self.session.post(
                self.api_url,
                headers=self.headers(),
                json=body,
                timeout=self.timeout,
            )
        except (requests.RequestException, ValueError) as exc:
            raise TransportError(f"LLM request failed: {exc}") from exc

        if not response.ok:
            raise RemoteServiceError(response.status_code, response.text)

        try:
            payload = response.json()
        except ValueError as exc:
            raise EmptyCompletionError("Response body is not valid JSON.") from exc
        return extract_completion(payload)
