"""Running commands with acquired credentials."""

from aws_exec_cmd.execution.runner import (
    TIMEOUT_EXIT_CODE,
    CommandNotFoundError,
    CommandNotSpecifiedError,
    ExecutionError,
    build_child_env,
    run_with_credentials,
)

__all__ = [
    "TIMEOUT_EXIT_CODE",
    "CommandNotFoundError",
    "CommandNotSpecifiedError",
    "ExecutionError",
    "build_child_env",
    "run_with_credentials",
]
