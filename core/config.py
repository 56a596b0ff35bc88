# core/config.py
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import dotenv_values, find_dotenv


DEVELOPER_PORTAL_URL = "https://discord.com/developers/applications"
_PLACEHOLDER_CLIENT_IDS = {"", "YOUR_CLIENT_ID_HERE"}


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class Settings:
    client_id: Optional[str]
    debug: bool = False
    poll_seconds: float = 5.0
    http_timeout: float = 4.0
    media_query_timeout: float = 5.0
    process_lookup_ttl: float = 30.0
    reconnect_seconds: float = 30.0
    rpc_timeout: float = 5.0


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    require_client_id: bool = True,
    dotenv_path: Optional[str] = None,
) -> Settings:
    """Read settings from `environ`, or from the process environment layered
    over a `.env` file when no mapping is given. Real variables win."""
    env = environ if environ is not None else _process_env(dotenv_path)

    client_id = (env.get("DISCORD_CLIENT_ID") or "").strip()
    if client_id in _PLACEHOLDER_CLIENT_IDS:
        if require_client_id:
            raise ConfigError(
                "DISCORD_CLIENT_ID is not set. Create an application at "
                f"{DEVELOPER_PORTAL_URL} and export its Application ID."
            )
        client_id = None
    elif not client_id.isdigit():
        raise ConfigError(f"DISCORD_CLIENT_ID must be numeric, got {client_id!r}")

    return Settings(
        client_id=client_id,
        debug=env.get("MDP_DEBUG") == "1",
    )


def setup_hint() -> str:
    return "\n".join(
        [
            f"  1. Go to {DEVELOPER_PORTAL_URL}",
            "  2. Create a new application",
            '  3. Add images named "telegram" and "youtube_music" in Rich Presence > Art Assets',
            "  4. Copy the Application ID",
            "  5. Set DISCORD_CLIENT_ID in the environment or in a .env file",
            "",
            "Example: DISCORD_CLIENT_ID=123456789 python main.py",
            "Tip: use --test to check Now Playing detection without Discord.",
        ]
    )


def _process_env(dotenv_path: Optional[str] = None) -> dict:
    path = dotenv_path or find_dotenv(usecwd=True)
    file_values = dotenv_values(path) if path else {}
    env = {k: v for k, v in file_values.items() if v is not None}
    env.update(os.environ)
    return env
