"""Remote key vocabulary shared by the RASP interpreter and validator."""

from __future__ import annotations

import re

__all__ = ["KEY_ALIASES", "is_known_key", "normalize_key"]

# Script token (lowercase) -> ECP key name
KEY_ALIASES: dict[str, str] = {
    "ok": "Select",
    "up": "Up",
    "down": "Down",
    "left": "Left",
    "right": "Right",
    "home": "Home",
    "back": "Back",
    "replay": "InstantReplay",
    "info": "Info",
    "backspace": "Backspace",
    "search": "Search",
    "enter": "Enter",
    "select": "Select",
    "play": "Play",
    "rev": "Rev",
    "fwd": "Fwd",
}

_SINGLE_CHARACTER_KEY = re.compile(r"^[A-Za-z0-9]$")


def normalize_key(token: str) -> str:
    """Map a script key token to its ECP name; unknown tokens pass through unchanged."""
    return KEY_ALIASES.get(token.lower(), token)


def is_known_key(token: str) -> bool:
    """True for an aliased key name or a single alphanumeric character."""
    return token.lower() in KEY_ALIASES or bool(_SINGLE_CHARACTER_KEY.match(token))
