# core/elapsed.py
from typing import Optional, Tuple


def reconstruct_window(
    elapsed_seconds: Optional[float],
    sampled_at_ms: Optional[float],
    duration_seconds: Optional[float],
    now_ms: float,
    track_start_ms: Optional[float] = None,
) -> Tuple[int, Optional[int]]:
    """
    Return (start_ms, end_ms) for the Discord progress bar.

    elapsed_seconds is only true as of sampled_at_ms, so the time since the
    sample is added back. Players that report no elapsed time fall back to the
    moment we first saw the track (or now).
    """
    if elapsed_seconds is not None and sampled_at_ms is not None:
        actual_elapsed_ms = elapsed_seconds * 1000.0 + (now_ms - sampled_at_ms)
        start = now_ms - actual_elapsed_ms
    elif track_start_ms is not None:
        start = track_start_ms
    else:
        start = now_ms

    end = None
    if duration_seconds is not None and duration_seconds > 0:
        end = start + duration_seconds * 1000.0

    return int(round(start)), (int(round(end)) if end is not None else None)


def format_duration(seconds: float) -> str:
    mins = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{mins}:{secs:02d}"
