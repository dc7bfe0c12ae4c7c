"""Tkinter front end: one window for capture and minutes."""

from __future__ import annotations

import logging
import os
import queue
import threading

from .config import Config, load_config
from .logging_utils import setup_logging
from .pipeline import MinutesController
from .recognizer import WhisperRecognizer
from .speech import SpeechSessionManager, TkScheduler

STATUS_CLEAR_MS = 4000


def launch_gui(config_path: str = "voiceminutes_config.yml") -> None:
    import tkinter as tk
    from tkinter import messagebox, ttk
    from tkinter.scrolledtext import ScrolledText

    root = tk.Tk()
    root.title("VoiceMinutes")
    root.geometry("420x640")
    root.configure(bg="#0b0f14")

    style = ttk.Style(root)
    try:
        style.theme_use("clam")
    except tk.TclError:
        pass
    style.configure("TFrame", background="#0b0f14")
    style.configure("TLabel", background="#0b0f14", foreground="#d8e1ff")
    style.configure(
        "TButton",
        background="#132033",
        foreground="#e6f1ff",
        borderwidth=1,
        relief="flat",
    )
    style.map(
        "TButton",
        background=[("active", "#1b2a44"), ("disabled", "#0f1a2a")],
        foreground=[("active", "#ffffff"), ("disabled", "#4a5568")],
    )

    if os.path.exists(config_path):
        try:
            config = load_config(config_path)
        except Exception:
            config = Config()
    else:
        config = Config()

    logger, _log_path = setup_logging(log_dir=config.log_dir, level=logging.INFO)

    def _thread_excepthook(args) -> None:
        logger.exception(
            "Thread exception",
            exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
        )

    threading.excepthook = _thread_excepthook

    # Worker threads only ever touch Tk through these queues.
    callbacks: queue.Queue = queue.Queue()
    notices: queue.Queue = queue.Queue()
    status = {"clear_id": None, "shown_text": None}

    recognizer = WhisperRecognizer.from_config(config.speech, post=callbacks.put)
    speech = SpeechSessionManager(
        recognizer,
        scheduler=TkScheduler(root),
        session_seconds=config.speech.session_seconds,
    )
    controller = MinutesController(config, speech, notify=notices.put)

    main = ttk.Frame(root, padding=12)
    main.pack(fill="both", expand=True)

    header = ttk.Frame(main)
    header.pack(fill="x")
    status_var = tk.StringVar(value="")
    ttk.Label(header, textvariable=status_var, foreground="#8bd3ff").pack(
        side="left", fill="x", expand=True
    )

    text_box = ScrolledText(
        main,
        wrap="char",
        height=20,
        background="#111827",
        foreground="#e6f1ff",
        insertbackground="#e6f1ff",
        relief="flat",
        font=("Yu Gothic UI", 12),
    )
    text_box.pack(fill="both", expand=True, pady=8)
    text_box.configure(state="disabled")

    def _show_status(text: str) -> None:
        status_var.set(text)
        if status["clear_id"] is not None:
            root.after_cancel(status["clear_id"])
        status["clear_id"] = root.after(STATUS_CLEAR_MS, lambda: status_var.set(""))

    def _confirm_delete() -> None:
        if messagebox.askokcancel(
            "テキストの削除",
            "入力済みのテキストを削除します。よろしいですか？",
            parent=root,
        ):
            controller.delete_text()
            logger.info("Recognized text deleted")

    def _generate() -> None:
        if controller.generate_document():
            logger.info("Minutes generation started")

    delete_btn = ttk.Button(header, text="削除", command=_confirm_delete)
    delete_btn.pack(side="right")
    generate_btn = ttk.Button(main, text="ファイル化", command=_generate)
    generate_btn.pack(fill="x", pady=(0, 4))
    listen_btn = ttk.Button(main, text="音声入力を開始", command=controller.toggle_listening)
    listen_btn.pack(fill="x")

    def _render_text() -> None:
        text = controller.recognized_text
        if text == status["shown_text"]:
            return
        status["shown_text"] = text
        text_box.configure(state="normal")
        text_box.delete("1.0", "end")
        text_box.insert("end", text or "ここに認識結果が表示されます")
        text_box.see("end")
        text_box.configure(state="disabled")

    def _refresh_controls() -> None:
        has_text = bool(controller.recognized_text.strip())
        delete_btn.configure(state="normal" if has_text else "disabled")
        listen_btn.configure(
            text="音声入力を停止" if controller.is_listening else "音声入力を開始"
        )
        if controller.is_processing:
            generate_btn.configure(text="処理中...", state="disabled")
        else:
            generate_btn.configure(
                text="ファイル化",
                state="normal" if controller.can_generate else "disabled",
            )

    def _poll() -> None:
        while True:
            try:
                callback = callbacks.get_nowait()
            except queue.Empty:
                break
            callback()
        while True:
            try:
                notice = notices.get_nowait()
            except queue.Empty:
                break
            _show_status(notice)
        _render_text()
        _refresh_controls()
        root.after(100, _poll)

    def _on_close() -> None:
        logger.info("GUI closing")
        controller.stop_listening()
        root.destroy()

    _poll()
    root.protocol("WM_DELETE_WINDOW", _on_close)
    root.mainloop()
