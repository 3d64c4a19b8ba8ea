"""Interactive terminal prompts.

Prompts go to stderr so they never mix with a wrapped command's stdout. A
single lock serializes prompts within the process; it is released on every
exit path, including failures.
"""

from __future__ import annotations

import getpass
import logging
import sys
import threading
from typing import TextIO

from aws_exec_cmd.aws_credentials.errors import CredentialError

logger = logging.getLogger(__name__)


class TerminalPromptError(CredentialError):
    """Raised when the terminal cannot be read."""

    default_code = "prompt_error"


class TerminalPrompter:
    def __init__(self, stream: TextIO | None = None, stdin: TextIO | None = None) -> None:
        self._lock = threading.Lock()
        self._stream = stream
        self._stdin = stdin

    @property
    def stream(self) -> TextIO:
        return self._stream or sys.stderr

    def prompt(self, message: str) -> str:
        """Print *message* and return one line of visible input, stripped."""
        with self._lock:
            self.stream.write(f"{message} ")
            self.stream.flush()
            try:
                line = (self._stdin or sys.stdin).readline()
            except OSError as exc:
                raise TerminalPromptError(f"failed to read prompt [{message}]: {exc}") from exc
            if not line:
                raise TerminalPromptError(f"no input for prompt [{message}]")
            return line.strip()

    def prompt_hidden(self, message: str) -> str:
        """Print *message* and return one line of input without echoing it."""
        with self._lock:
            try:
                value = getpass.getpass(prompt=f"{message} ", stream=self.stream)
            except EOFError as exc:
                raise TerminalPromptError(f"no input for prompt [{message}]") from exc
            except (OSError, getpass.GetPassWarning) as exc:
                raise TerminalPromptError(f"failed to read prompt [{message}]: {exc}") from exc
            logger.debug("Hidden prompt answered: %s (%d chars)", message, len(value))
            return value.strip()


_default_prompter = TerminalPrompter()


def default_prompter() -> TerminalPrompter:
    return _default_prompter
