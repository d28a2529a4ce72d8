"""Token discovery from environment variables and local auth stores."""

import json
import logging
import os
from collections.abc import Mapping, Sequence
from pathlib import Path

logger = logging.getLogger(__name__)


def known_auth_paths(home: Path | None = None) -> list[Path]:
    """Auth files written by opencode-compatible CLIs, in priority order."""
    home = home or Path.home()
    return [
        home / ".local" / "share" / "opencode" / "auth.json",
        home / ".local" / "share" / "kilo" / "auth.json",
    ]


def load_auth_entry(name: str, paths: Sequence[Path] | None = None) -> dict | None:
    """Find the first auth entry stored under name; invalid files are skipped."""
    for path in paths if paths is not None else known_auth_paths():
        if not path.is_file():
            continue
        try:
            parsed = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.debug("skipping unreadable auth file %s: %s", path, exc)
            continue
        entry = parsed.get(name) if isinstance(parsed, dict) else None
        if isinstance(entry, dict):
            return entry
    return None


def first_env(names: Sequence[str], environ: Mapping[str, str] | None = None) -> str | None:
    """Return the first non-blank value among the named environment variables."""
    env = os.environ if environ is None else environ
    for name in names:
        value = (env.get(name) or "").strip()
        if value:
            return value
    return None


def entry_token(entry: Mapping | None) -> str | None:
    """Pick the usable token field out of an auth entry."""
    if not entry:
        return None
    for key in ("access", "refresh", "key"):
        value = entry.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None
