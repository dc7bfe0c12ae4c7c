"""CLI entry point."""

from __future__ import annotations

import argparse
import logging
import queue
from datetime import date, datetime

from .config import load_config_or_default, resolve_output_dir
from .errors import VoiceMinutesError
from .logging_utils import setup_logging
from .recognizer import WhisperRecognizer, list_input_devices
from .renderer import render_summary_pdf
from .speech import SpeechSessionManager, ThreadingScheduler
from .summarizer import SummaryGenerator
from .pipeline import run_minutes

DEFAULT_CONFIG = "voiceminutes_config.yml"


def _read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8") as handle:
        return handle.read()


def _parse_date(value: str | None) -> date:
    if not value:
        return date.today()
    return datetime.strptime(value, "%Y-%m-%d").date()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="voiceminutes")
    parser.add_argument("--config", default=DEFAULT_CONFIG, help="Config file.")
    parser.add_argument("--verbose", action="store_true", help="Debug logging.")
    sub = parser.add_subparsers(dest="command")

    devices_cmd = sub.add_parser("devices")
    devices_cmd.add_argument("--match", help="Filter device names by substring.")

    listen_cmd = sub.add_parser("listen")
    listen_cmd.add_argument(
        "--seconds", type=int, help="Session length. Defaults to the config value."
    )
    listen_cmd.add_argument("--out", help="Write the recognized text to a file.")

    summarize_cmd = sub.add_parser("summarize")
    summarize_cmd.add_argument("transcript", help="Text file with recognized speech.")
    summarize_cmd.add_argument("--date", help="Meeting date (YYYY-MM-DD).")
    summarize_cmd.add_argument("--out-dir", help="Directory for the PDF.")
    summarize_cmd.add_argument("--summary-out", help="Also save the summary text.")

    render_cmd = sub.add_parser("render")
    render_cmd.add_argument("summary", help="Text file with a finished summary.")
    render_cmd.add_argument("--out-dir", help="Directory for the PDF.")

    sub.add_parser("gui")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    config = load_config_or_default(args.config)
    logger, _log_path = setup_logging(
        log_dir=config.log_dir,
        level=logging.DEBUG if args.verbose else logging.INFO,
    )

    if args.command == "devices":
        try:
            devices = list_input_devices()
        except VoiceMinutesError as exc:
            print(exc)
            return 1
        if args.match:
            devices = [
                d for d in devices if args.match.lower() in d.get("name", "").lower()
            ]
        for device in devices:
            name = device.get("name", "Unknown")
            index = device.get("index", "?")
            channels = device.get("max_input_channels", 0)
            print(f"[{index}] {name} (inputs: {channels})")
        return 0

    if args.command == "listen":
        # Recognizer events and the watchdog run on this thread via the queue.
        pending: queue.Queue = queue.Queue()
        recognizer = WhisperRecognizer.from_config(config.speech, post=pending.put)
        speech = SpeechSessionManager(
            recognizer,
            scheduler=ThreadingScheduler(post=pending.put),
            session_seconds=args.seconds or config.speech.session_seconds,
        )
        if not speech.start():
            print("Speech recognition is not available.")
            return 1
        print("Listening... press Ctrl+C to stop.")
        try:
            while speech.is_listening:
                try:
                    callback = pending.get(timeout=0.2)
                except queue.Empty:
                    continue
                callback()
        except KeyboardInterrupt:
            speech.stop()
        text = speech.recognized_text
        if args.out:
            with open(args.out, "w", encoding="utf-8") as handle:
                handle.write(text)
            print(f"Wrote {args.out}")
        else:
            print(text)
        return 0

    if args.command == "summarize":
        text = _read_text(args.transcript).strip()
        if not text:
            print("Transcript is empty.")
            return 1
        output_dir = args.out_dir or resolve_output_dir(config)
        layout = config.document.to_layout()
        try:
            generator = SummaryGenerator.from_config(config)
            if args.summary_out:
                summary = generator.generate(text, _parse_date(args.date))
                with open(args.summary_out, "w", encoding="utf-8") as handle:
                    handle.write(summary)
                path = render_summary_pdf(summary, output_dir, layout)
            else:
                path = run_minutes(
                    text, _parse_date(args.date), generator, output_dir, layout
                )
        except VoiceMinutesError as exc:
            logger.error("Summarize failed: %s", exc)
            print(f"Error: {exc}")
            return 1
        except Exception as exc:
            logger.exception("Summarize failed")
            print(f"Error: {exc}")
            return 1
        print(f"PDF saved: {path}")
        return 0

    if args.command == "render":
        output_dir = args.out_dir or resolve_output_dir(config)
        try:
            path = render_summary_pdf(
                _read_text(args.summary), output_dir, config.document.to_layout()
            )
        except VoiceMinutesError as exc:
            print(f"Error: {exc}")
            return 1
        print(f"PDF saved: {path}")
        return 0

    if args.command == "gui":
        from .gui import launch_gui

        launch_gui(args.config)
        return 0

    parser.print_help()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
