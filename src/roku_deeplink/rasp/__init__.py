"""RASP automation scripts: model, loader, interpreter and validator."""

from roku_deeplink.rasp.interpreter import RaspInterpreter
from roku_deeplink.rasp.keys import KEY_ALIASES, is_known_key, normalize_key
from roku_deeplink.rasp.loader import load_script, parse_script
from roku_deeplink.rasp.models import LaunchStep, PauseStep, PressStep, RaspParams, RaspScript, Step, TextStep
from roku_deeplink.rasp.secret_provider import EnvironmentSecretProvider, MappingSecretProvider, SecretProvider
from roku_deeplink.rasp.validator import RaspValidator, ValidationResult

__all__ = [
    "KEY_ALIASES",
    "EnvironmentSecretProvider",
    "LaunchStep",
    "MappingSecretProvider",
    "PauseStep",
    "PressStep",
    "RaspInterpreter",
    "RaspParams",
    "RaspScript",
    "RaspValidator",
    "SecretProvider",
    "Step",
    "TextStep",
    "ValidationResult",
    "is_known_key",
    "load_script",
    "normalize_key",
    "parse_script",
]
