"""Secret resolution for RASP text placeholders.

A text step whose value starts with ``script-`` is not typed literally; the
suffix names a secret instead. ``script-login`` and ``script-password`` map to
``RASP_LOGIN`` and ``RASP_PASSWORD``; any other suffix ``foo-bar`` maps to
``RASP_FOO_BAR``.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from typing import Protocol

from roku_deeplink.exceptions import ScriptError

__all__ = [
    "PLACEHOLDER_PREFIX",
    "EnvironmentSecretProvider",
    "MappingSecretProvider",
    "SecretProvider",
    "is_placeholder",
    "resolve_placeholder",
    "secret_name",
]

PLACEHOLDER_PREFIX = "script-"

_CANONICAL_SECRETS = {
    "login": "RASP_LOGIN",
    "password": "RASP_PASSWORD",
}
_NON_NAME_CHARS = re.compile(r"[^A-Z0-9]")


def is_placeholder(value: str) -> bool:
    """True when a text value refers to a secret instead of literal text."""
    return value.startswith(PLACEHOLDER_PREFIX)


def secret_name(placeholder: str) -> str:
    """Return the secret name a ``script-...`` placeholder refers to."""
    suffix = placeholder.removeprefix(PLACEHOLDER_PREFIX)
    canonical = _CANONICAL_SECRETS.get(suffix.lower())
    if canonical:
        return canonical
    return f"RASP_{_NON_NAME_CHARS.sub('_', suffix.upper())}"


class SecretProvider(Protocol):
    """Looks up secret values by name."""

    def get(self, name: str) -> str | None: ...


class MappingSecretProvider:
    """Secrets from an in-memory mapping."""

    def __init__(self, values: Mapping[str, str]) -> None:
        self._values = dict(values)

    def get(self, name: str) -> str | None:
        return self._values.get(name) or None


class EnvironmentSecretProvider:
    """Secrets from the process environment (an empty value counts as unset)."""

    def get(self, name: str) -> str | None:
        return os.environ.get(name) or None


def resolve_placeholder(placeholder: str, provider: SecretProvider) -> tuple[str, str]:
    """Resolve a placeholder to ``(secret_name, value)``.

    Raises:
        ScriptError: The secret is not set

    """
    name = secret_name(placeholder)
    value = provider.get(name)
    if not value:
        msg = f'Required secret not set: {name}. Set it with: export {name}="your-value"'
        raise ScriptError(msg)
    return name, value
