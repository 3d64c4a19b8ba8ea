"""Execute a child command with a credential triple in its environment.

The child inherits stdin/stdout/stderr and the current environment plus
AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY and AWS_SESSION_TOKEN. In pty mode
the command runs attached to a pseudo-terminal and ``timeout_seconds`` is not
enforced.
"""

from __future__ import annotations

import logging
import os
import pty as _pty
import shutil
import subprocess
from collections.abc import Mapping, Sequence

from aws_exec_cmd.aws_credentials.credentials import TemporaryCredentials
from aws_exec_cmd.aws_credentials.errors import CredentialError

logger = logging.getLogger(__name__)

# Same status as coreutils timeout(1).
TIMEOUT_EXIT_CODE = 124


class ExecutionError(CredentialError):
    default_code = "execution_error"


class CommandNotSpecifiedError(ExecutionError):
    def __init__(self) -> None:
        super().__init__("command not specified", code="command_not_specified")


class CommandNotFoundError(ExecutionError):
    def __init__(self, command: str) -> None:
        super().__init__(f"command not found [{command}]", code="command_not_found")
        self.command = command


def build_child_env(
    credentials: TemporaryCredentials,
    env: Mapping[str, str] | None = None,
) -> dict[str, str]:
    child_env = dict(os.environ if env is None else env)
    child_env.update(credentials.to_env())
    return child_env


def _exit_code(status: int) -> int:
    # Signals are reported the way a shell does: 128 + signal number.
    return 128 - status if status < 0 else status


def run_with_credentials(
    credentials: TemporaryCredentials,
    args: Sequence[str],
    *,
    pty: bool = False,
    timeout_seconds: int = 0,
    env: Mapping[str, str] | None = None,
) -> int:
    """Run *args* and return its exit code."""
    if not args:
        raise CommandNotSpecifiedError()

    argv = list(args)
    child_env = build_child_env(credentials, env)

    if pty:
        return _run_in_pty(argv, child_env)

    timeout = timeout_seconds if timeout_seconds > 0 else None
    logger.debug("Running command: %s (timeout=%s)", argv[0], timeout)
    try:
        completed = subprocess.run(argv, env=child_env, timeout=timeout, check=False)
    except FileNotFoundError as exc:
        raise CommandNotFoundError(argv[0]) from exc
    except subprocess.TimeoutExpired:
        logger.warning("Command timed out after %d seconds: %s", timeout_seconds, argv[0])
        return TIMEOUT_EXIT_CODE
    return _exit_code(completed.returncode)


def _run_in_pty(argv: list[str], child_env: dict[str, str]) -> int:
    # spawn execs in a forked child, so resolve the command up front.
    if shutil.which(argv[0], path=child_env.get("PATH")) is None:
        raise CommandNotFoundError(argv[0])

    logger.debug("Running command in pty: %s", argv[0])
    # spawn has no env parameter; the forked child inherits os.environ.
    saved_env = dict(os.environ)
    os.environ.clear()
    os.environ.update(child_env)
    try:
        status = _pty.spawn(argv)
    finally:
        os.environ.clear()
        os.environ.update(saved_env)
    return _exit_code(os.waitstatus_to_exitcode(status))
