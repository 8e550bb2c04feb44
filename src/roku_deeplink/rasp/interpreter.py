"""RASP interpreter: runs an automation script against the command dispatcher.

Steps run strictly in order with no branching or retries. The configured
step delay separates consecutive steps (never after the last one), and the
first failing step aborts the script with its original error.
"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import TYPE_CHECKING

from roku_deeplink.const import SCRIPT_CHARACTER_DELAY_SECONDS
from roku_deeplink.instrumentation import elapsed_ms
from roku_deeplink.logging_abstraction import get_logger
from roku_deeplink.rasp.keys import normalize_key
from roku_deeplink.rasp.loader import load_script
from roku_deeplink.rasp.models import LaunchStep, PauseStep, PressStep, RaspScript, Step, TextStep
from roku_deeplink.rasp.secret_provider import (
    EnvironmentSecretProvider,
    SecretProvider,
    is_placeholder,
    resolve_placeholder,
)

if TYPE_CHECKING:
    from roku_deeplink.ecp.dispatcher import CommandDispatcher

__all__ = ["RaspInterpreter"]

logger = get_logger(__name__)


class RaspInterpreter:
    """Executes parsed RASP scripts."""

    def __init__(
        self,
        dispatcher: CommandDispatcher,
        secrets: SecretProvider | None = None,
        char_delay: float = SCRIPT_CHARACTER_DELAY_SECONDS,
    ) -> None:
        """Initialize the interpreter.

        Args:
            dispatcher: Sends the device commands
            secrets: Resolves ``script-...`` placeholders (environment by default)
            char_delay: Pause after each typed character

        """
        self.dispatcher = dispatcher
        self.secrets: SecretProvider = secrets or EnvironmentSecretProvider()
        self.char_delay = char_delay

    async def run_file(self, path: str | Path) -> int:
        """Load a script file and execute it; returns elapsed milliseconds."""
        return await self.execute(load_script(path))

    async def execute(self, script: RaspScript) -> int:
        """Execute every step of ``script``.

        Returns:
            Elapsed time in milliseconds

        Raises:
            CommandError: A device command was rejected or failed
            ScriptError: A text placeholder names a secret that is not set

        """
        name = Path(script.source).name if script.source else "<inline>"
        total = len(script.steps)
        logger.info("Executing RASP script: %s", name, extra={"steps": total})
        start = time.monotonic()

        for index, step in enumerate(script.steps, start=1):
            logger.info("[%d/%d] %s", index, total, step.describe())
            try:
                await self._execute_step(step, script)
            except Exception:
                logger.error("RASP step %d/%d failed: %s", index, total, type(step).__name__)
                raise
            if index < total:
                await asyncio.sleep(script.params.default_step_delay_seconds)

        duration = elapsed_ms(start)
        logger.info("RASP script execution completed in %dms", duration)
        return duration

    async def _execute_step(self, step: Step, script: RaspScript) -> None:
        match step:
            case LaunchStep(channel=ref):
                app_id = script.params.resolve_channel(ref)
                await self.dispatcher.launch(app_id)
                logger.debug("Launched channel: %s", app_id)
            case PressStep(key=token):
                await self.dispatcher.keypress(normalize_key(token))
            case TextStep(value=value):
                await self._enter_text(value)
            case PauseStep(seconds=seconds):
                await asyncio.sleep(seconds)

    async def _enter_text(self, value: str) -> None:
        if is_placeholder(value):
            secret, text = resolve_placeholder(value, self.secrets)
            logger.debug("Using secret: %s", secret)
            shown = "*" * len(text)
        else:
            text = value
            shown = value
        await self.dispatcher.enter_text(text, char_delay=self.char_delay)
        logger.debug("Entered text: %s", shown)
