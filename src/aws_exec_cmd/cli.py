"""Command-line entry point.

    aws-exec-cmd role --chain instance,arn:aws:iam::123456789012:role/backup -- aws s3 ls
    aws-exec-cmd idp --pool-id us-east-1:... --name accounts.google.com --token "$ID_TOKEN" -- env
"""

from __future__ import annotations

import logging
import sys

import click
import typer

from aws_exec_cmd import __version__
from aws_exec_cmd.aws_credentials.chain import RoleChainResolver
from aws_exec_cmd.aws_credentials.errors import CredentialError, EmptyChainError
from aws_exec_cmd.aws_credentials.providers import (
    CredentialProvider,
    IdentityPoolProvider,
    RoleChainProvider,
)
from aws_exec_cmd.aws_credentials.seed import SeedSources
from aws_exec_cmd.aws_credentials.sts_provider import STSCredentialProvider
from aws_exec_cmd.broker import CredentialBroker
from aws_exec_cmd.config import AuthSettings, Settings, load_settings
from aws_exec_cmd.execution.runner import (
    CommandNotSpecifiedError,
    ExecutionError,
    run_with_credentials,
)
from aws_exec_cmd.logging_utils import configure_logging
from aws_exec_cmd.terminal import default_prompter

PROG_NAME = "aws-exec-cmd"

app = typer.Typer(
    name=PROG_NAME,
    help="Run a command with AWS credentials from a role chain or an identity pool.",
    no_args_is_help=True,
    add_completion=False,
)

logger = logging.getLogger(__name__)

# Recent typer releases parse with a bundled click, whose usage errors do not
# derive from the installed click package. Catch both.
_CLICK_ERRORS = tuple(
    {click.ClickException}
    | {base for base in typer.BadParameter.__mro__ if base.__name__ == "ClickException"}
)
_ABORTS = tuple({click.exceptions.Abort, typer.Abort})

_ARGS_HELP = "Command to run, after --"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"{PROG_NAME} {__version__}")
        raise typer.Exit(code=0)


@app.callback()
def app_callback(
    ctx: typer.Context,
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Logging level (env override: AWS_EXEC_CMD_LOG_LEVEL)",
    ),
    version: bool = typer.Option(False, "--version", callback=_version_callback, is_eager=True),
) -> None:
    del version
    try:
        settings = load_settings()
    except RuntimeError as exc:
        raise click.ClickException(str(exc)) from exc
    configure_logging(log_level)
    ctx.obj = {"settings": settings}


def _ctx_settings(ctx: typer.Context) -> Settings:
    if isinstance(ctx.obj, dict) and isinstance(ctx.obj.get("settings"), Settings):
        return ctx.obj["settings"]
    return load_settings()


def _auth_settings(base: AuthSettings, **overrides: object) -> AuthSettings:
    update = {key: value for key, value in overrides.items() if value is not None}
    if overrides.get("cache_skip") is False:
        update.pop("cache_skip")
    return base.model_copy(update=update)


def _run(
    settings: Settings,
    auth: AuthSettings,
    provider: CredentialProvider,
    args: list[str] | None,
    pty: bool,
    timeout: int | None,
) -> int:
    if not args:
        raise CommandNotSpecifiedError()

    broker = CredentialBroker(auth, prompter=default_prompter())
    creds = broker.acquire(provider)
    return run_with_credentials(
        creds,
        args,
        pty=pty or settings.execution.pty,
        timeout_seconds=settings.execution.timeout_seconds if timeout is None else timeout,
    )


@app.command("role", help="Run a command with credentials from a role chain.")
def role_command(
    ctx: typer.Context,
    args: list[str] | None = typer.Argument(None, help=_ARGS_HELP),
    chain: str | None = typer.Option(
        None,
        "--chain",
        help='Comma-separated aliases, e.g. "instance" or "env-triple", followed by role ARNs',
    ),
    mfa_serial: str | None = typer.Option(None, "--mfa-serial", help="MFA serial ARN"),
    mfa_source: str | None = typer.Option(
        None,
        "--mfa-source",
        help="MFA source (to read from an environment variable, provide the variable's name)",
    ),
    session_ttl: int | None = typer.Option(None, "--session-ttl", min=1, help="Session TTL in seconds"),
    session_name: str | None = typer.Option(None, "--session-name", help="STS role session name"),
    region: str | None = typer.Option(None, "--region", help="STS region"),
    cache_dir: str | None = typer.Option(None, "--cache-dir", help="Credential cache directory"),
    cache_skip: bool = typer.Option(
        False, "--cache-skip", help="Skip reading from cache (but still write after success)"
    ),
    pty: bool = typer.Option(False, "--pty", help="Run in a pseudo-terminal"),
    timeout: int | None = typer.Option(
        None, "--timeout", min=0, help="Number of seconds to wait for a non-[--pty] command to finish"
    ),
) -> int:
    settings = _ctx_settings(ctx)
    auth = _auth_settings(
        settings.auth,
        role_chain=chain,
        mfa_serial=mfa_serial,
        mfa_source=mfa_source,
        session_ttl_seconds=session_ttl,
        session_name=session_name,
        cache_dir=cache_dir,
        cache_skip=cache_skip,
    )
    if not auth.role_chain:
        raise EmptyChainError("role chain required (--chain)")

    aws = settings.aws
    sts_region = region or aws.effective_region
    elevator = STSCredentialProvider(
        region=sts_region,
        connect_timeout=aws.connect_timeout_seconds,
        read_timeout=aws.read_timeout_seconds,
    )
    seeds = SeedSources(
        metadata_timeout=aws.metadata_timeout_seconds,
        metadata_attempts=aws.metadata_attempts,
    )
    provider = RoleChainProvider(
        RoleChainResolver(elevator, seeds),
        region=sts_region,
        session_name=auth.session_name,
    )
    return _run(settings, auth, provider, args, pty, timeout)


@app.command("idp", help="Run a command with credentials from a Cognito identity pool login.")
def idp_command(
    ctx: typer.Context,
    args: list[str] | None = typer.Argument(None, help=_ARGS_HELP),
    pool_id: str = typer.Option(..., "--pool-id", help="Identity pool ID"),
    name: str = typer.Option(..., "--name", help="Provider name, e.g. accounts.google.com"),
    token: str | None = typer.Option(None, "--token", help="Provider ID token, e.g. Google id_token"),
    refresh: str | None = typer.Option(
        None, "--refresh", help="Provider refresh token (used to obtain an ID token)"
    ),
    client_id: str | None = typer.Option(None, "--client-id", help="(--refresh requirement) Client ID"),
    client_secret: str | None = typer.Option(
        None, "--client-secret", help="(--refresh requirement) Client secret"
    ),
    role: str | None = typer.Option(
        None, "--role", help="Cache key discriminator, e.g. the pool's authenticated role ARN"
    ),
    mfa_serial: str | None = typer.Option(None, "--mfa-serial", help="MFA serial ARN"),
    mfa_source: str | None = typer.Option(
        None,
        "--mfa-source",
        help="MFA source (to read from an environment variable, provide the variable's name)",
    ),
    session_ttl: int | None = typer.Option(None, "--session-ttl", min=1, help="Session TTL in seconds"),
    region: str | None = typer.Option(None, "--region", help="Cognito identity region"),
    cache_dir: str | None = typer.Option(None, "--cache-dir", help="Credential cache directory"),
    cache_skip: bool = typer.Option(
        False, "--cache-skip", help="Skip reading from cache (but still write after success)"
    ),
    pty: bool = typer.Option(False, "--pty", help="Run in a pseudo-terminal"),
    timeout: int | None = typer.Option(
        None, "--timeout", min=0, help="Number of seconds to wait for a non-[--pty] command to finish"
    ),
) -> int:
    settings = _ctx_settings(ctx)
    auth = _auth_settings(
        settings.auth,
        role_chain=role or f"idp:{pool_id}:{name}",
        mfa_serial=mfa_serial,
        mfa_source=mfa_source,
        session_ttl_seconds=session_ttl,
        cache_dir=cache_dir,
        cache_skip=cache_skip,
    )

    provider = IdentityPoolProvider(
        pool_id,
        name,
        id_token=token,
        refresh_token=refresh,
        client_id=client_id,
        client_secret=client_secret,
        region=region or _identity_region(pool_id, settings),
        token_url=settings.oauth.token_url,
        http_timeout=settings.oauth.timeout_seconds,
    )
    # Reject bad flag combinations before any prompt or cache access.
    provider.validate()
    return _run(settings, auth, provider, args, pty, timeout)


def _identity_region(pool_id: str, settings: Settings) -> str:
    # Pool ids are "<region>:<uuid>".
    if settings.aws.region:
        return settings.aws.region
    prefix, sep, _ = pool_id.partition(":")
    return prefix if sep and prefix else settings.aws.sts_region


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    try:
        result = app(args=argv, prog_name=PROG_NAME, standalone_mode=False)
        if result is None:
            return 0
        return int(result)
    except typer.Exit as exc:
        return int(exc.exit_code)
    except _ABORTS:
        typer.echo("aborted", err=True)
        return 1
    except _CLICK_ERRORS as exc:
        exc.show()
        return int(exc.exit_code)
    except ExecutionError as exc:
        typer.echo(str(exc), err=True)
        return 1
    except CredentialError as exc:
        logger.debug("Credential acquisition failed: code=%s", exc.code)
        typer.echo(f"failed to acquire credentials: {exc}", err=True)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
