# core/debug.py
import os
import time
from pathlib import Path


_DEBUG = os.getenv("MDP_DEBUG") == "1"


def set_debug(enabled: bool) -> None:
    global _DEBUG
    _DEBUG = enabled


def log(tag: str, message: str) -> None:
    print(f"[{tag}] {message}")
    debug_log(f"{tag}: {message}", echo=False)


def debug_log(message: str, echo: bool = True) -> None:
    if not _DEBUG:
        return

    try:
        ts = time.strftime("%Y-%m-%d %H:%M:%S")
    except Exception:
        ts = "unknown-time"

    line = f"[{ts}] {message}\n"
    try:
        log_path = Path(__file__).resolve().parents[1] / "mdp_debug.log"
        with log_path.open("a", encoding="utf-8") as f:
            f.write(line)
    except OSError:
        pass

    if echo:
        print(f"[DEBUG] {message}")
