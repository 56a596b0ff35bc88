#main.py
import argparse
import json
import signal
import sys
from dataclasses import asdict

from core import debug
from core.cache import ttl_cache
from core.config import ConfigError, Settings, load_settings, setup_hint
from core.discord_rpc import RPC_ERRORS, DiscordPresence
from core.elapsed import format_duration
from core.models import MediaSource
from core.now_playing import normalize_snapshot
from core.presence import build_controller
from core.scheduler import PollScheduler, SystemClock
from core.sources import SourceClassifier, load_media_query


def _raise_keyboard_interrupt(signum, frame):
    raise KeyboardInterrupt


def describe_snapshot(raw, classifier: SourceClassifier) -> str:
    snapshot = normalize_snapshot(raw)
    source = classifier.classify(snapshot)
    identity = snapshot.source_identity

    lines = ["Raw info: " + json.dumps(asdict(snapshot), indent=2, ensure_ascii=False), ""]
    if identity and identity.effective_bundle_id:
        lines.append(f"App: {identity.effective_bundle_id}")
    else:
        lines.append("App: (none detected)")

    if source is MediaSource.NONE:
        lines.append("Not a supported player")
    else:
        lines.append(f"{source.label} IS the current player")

    if snapshot.is_actively_playing:
        lines.append("Playback: PLAYING")
    elif snapshot.is_reported_playing:
        lines.append("Playback: PAUSED (rate = 0)")
    else:
        lines.append("Playback: STOPPED")

    if snapshot.title:
        lines.append(f"Title: {snapshot.title}")
    if snapshot.artist:
        lines.append(f"Artist: {snapshot.artist}")
    if snapshot.album:
        lines.append(f"Album: {snapshot.album}")
    if snapshot.duration_seconds is not None:
        lines.append(f"Duration: {format_duration(snapshot.duration_seconds)}")
    if snapshot.elapsed_seconds is not None:
        lines.append(f"Elapsed: {format_duration(snapshot.elapsed_seconds)}")
    return "\n".join(lines)


def run_test_mode(settings: Settings, media_query) -> int:
    print("[Music] TEST MODE: Now Playing detection only, no Discord connection")
    clock = SystemClock()
    classifier = SourceClassifier(cache=ttl_cache(settings.process_lookup_ttl, clock))

    def tick():
        print(describe_snapshot(media_query(timeout=settings.media_query_timeout), classifier))
        print("\n" + "=" * 50 + "\n")

    scheduler = PollScheduler(tick, settings.poll_seconds, clock)
    print(f"[Music] Polling every {settings.poll_seconds:g}s… (Ctrl+C to stop)")
    try:
        scheduler.run()
    except KeyboardInterrupt:
        pass
    return 0


def run_console(settings: Settings, media_query) -> int:
    clock = SystemClock()
    client = DiscordPresence(
        settings.client_id,
        rpc_timeout=settings.rpc_timeout,
        reconnect_seconds=settings.reconnect_seconds,
        clock=clock,
    )

    try:
        client.connect()
    except KeyboardInterrupt:
        print("\n[Music] Shutting down…")
        return 0
    except RPC_ERRORS as e:
        print(f"[RPC] Failed to connect to Discord: {e}")
        print("[RPC] Make sure Discord is running on your computer.")
        return 1

    scheduler = None
    controller = build_controller(settings, media_query, client, clock, on_quit=lambda: scheduler.stop())
    scheduler = PollScheduler(controller.tick, settings.poll_seconds, clock)

    print("[Music] Monitoring Telegram / YouTube Music playback… (Ctrl+C to stop)")
    with client:
        try:
            scheduler.run()
        except KeyboardInterrupt:
            print("\n[Music] Shutting down…")
        finally:
            controller.shutdown()
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Show Telegram and YouTube Music playback on Discord.")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--test", action="store_true", help="print Now Playing detection without Discord")
    mode.add_argument("--tray", action="store_true", help="run as a menu bar / system tray app")
    args = parser.parse_args(argv)

    try:
        settings = load_settings(require_client_id=not args.test)
    except ConfigError as e:
        print(f"[Config] {e}")
        print(setup_hint())
        return 1
    debug.set_debug(settings.debug)

    if args.tray:
        from app import main as tray_main

        return tray_main(settings)

    media_query = load_media_query()
    if not media_query:
        print("[Music] Unsupported OS or missing Windows dependency (winsdk).")
        return 1

    signal.signal(signal.SIGTERM, _raise_keyboard_interrupt)

    if args.test:
        return run_test_mode(settings, media_query)
    return run_console(settings, media_query)


if __name__ == "__main__":
    sys.exit(main())
