"""Tests for role chain traversal."""

from __future__ import annotations

from datetime import timedelta

import pytest

from aws_exec_cmd.aws_credentials import chain as chain_module
from aws_exec_cmd.aws_credentials.chain import (
    ResolutionInput,
    ResolutionLog,
    RoleChainResolver,
    is_role_identifier,
)
from aws_exec_cmd.aws_credentials.credentials import TemporaryCredentials
from aws_exec_cmd.aws_credentials.errors import (
    CredentialValidationError,
    DeadlineExceededError,
    ElevationError,
    EmptyChainError,
    InvalidChainLinkError,
    MissingMfaCodeError,
    SeedCredentialError,
    UnrecognizedAliasError,
)
from aws_exec_cmd.aws_credentials.sts_provider import STSCredentialError
from aws_exec_cmd.utils.time import utc_now

ROLE_A = "arn:aws:iam::123456789012:role/a"
ROLE_B = "arn:aws:iam::210987654321:role/b"
BACKUP = "arn:aws:iam::123456789012:role/backup"


def _creds(name: str) -> TemporaryCredentials:
    return TemporaryCredentials(
        access_key_id=f"AKIA{name}",
        secret_access_key=f"secret-{name}",
        session_token=f"token-{name}",
    )


class _FakeElevator:
    def __init__(self, fail_on: str | None = None) -> None:
        self.calls: list[dict[str, object]] = []
        self._fail_on = fail_on

    def assume_role(self, role_arn: str, **kwargs: object) -> TemporaryCredentials:
        self.calls.append({"role_arn": role_arn, **kwargs})
        if role_arn == self._fail_on:
            raise STSCredentialError(f"failed to assume role [{role_arn}]", code="access_denied")
        return _creds(role_arn.rsplit("/", 1)[-1])


class _FakeSeeds:
    def __init__(self) -> None:
        self.instance_calls = 0
        self.environment_calls = 0

    def instance_credentials(self) -> TemporaryCredentials:
        self.instance_calls += 1
        return _creds("instance")

    def environment_credentials(self) -> TemporaryCredentials:
        self.environment_calls += 1
        return _creds("env")


@pytest.fixture
def elevator() -> _FakeElevator:
    return _FakeElevator()


@pytest.fixture
def seeds() -> _FakeSeeds:
    return _FakeSeeds()


@pytest.fixture
def resolver(elevator: _FakeElevator, seeds: _FakeSeeds) -> RoleChainResolver:
    return RoleChainResolver(elevator, seeds)


def test_is_role_identifier() -> None:
    assert is_role_identifier(ROLE_A)
    assert not is_role_identifier("instance")
    assert not is_role_identifier("arn:aws-cn:iam::1:role/x")


def test_instance_then_role(resolver: RoleChainResolver, elevator: _FakeElevator, seeds: _FakeSeeds) -> None:
    result = resolver.resolve(ResolutionInput(chain=["instance", BACKUP]))

    assert seeds.instance_calls == 1
    assert seeds.environment_calls == 0
    assert len(elevator.calls) == 1
    assert elevator.calls[0]["role_arn"] == BACKUP
    assert elevator.calls[0]["basis"] == _creds("instance")
    assert result == _creds("backup")


def test_instance_then_role_logs_two_entries(resolver: RoleChainResolver) -> None:
    log = ResolutionLog()

    resolver.resolve(ResolutionInput(chain=["instance", BACKUP]), log)

    assert log == [
        "seeded chain with instance role creds",
        f"assumed role [{BACKUP}] with prior creds [true]",
    ]
    assert str(log) == ",".join(log)


def test_empty_log_formats_as_no_roles() -> None:
    assert str(ResolutionLog()) == "no roles resolved"


def test_env_triple_alone_returns_seed_verbatim(
    resolver: RoleChainResolver, elevator: _FakeElevator, seeds: _FakeSeeds
) -> None:
    result = resolver.resolve(ResolutionInput(chain=["env-triple"]))

    assert result == _creds("env")
    assert seeds.environment_calls == 1
    assert elevator.calls == []


def test_anonymous_first_elevation(resolver: RoleChainResolver, elevator: _FakeElevator) -> None:
    result = resolver.resolve(ResolutionInput(chain=[ROLE_A, ROLE_B]))

    assert [call["role_arn"] for call in elevator.calls] == [ROLE_A, ROLE_B]
    assert elevator.calls[0]["basis"] is None
    assert elevator.calls[1]["basis"] == _creds("a")
    assert result == _creds("b")


def test_static_seed_used_as_first_basis(resolver: RoleChainResolver, elevator: _FakeElevator) -> None:
    resolver.resolve(
        ResolutionInput(
            chain=[ROLE_A],
            access_key_id="AKIASTATIC",
            secret_access_key="static-secret",
        )
    )

    assert len(elevator.calls) == 1
    basis = elevator.calls[0]["basis"]
    assert isinstance(basis, TemporaryCredentials)
    assert basis.access_key_id == "AKIASTATIC"


def test_mfa_only_on_first_elevation(resolver: RoleChainResolver, elevator: _FakeElevator) -> None:
    resolver.resolve(
        ResolutionInput(
            chain=["instance", ROLE_A, ROLE_B, BACKUP],
            serial_number="arn:aws:iam::123456789012:mfa/user",
            token_code="123456",
        )
    )

    assert len(elevator.calls) == 3
    assert elevator.calls[0]["serial_number"] == "arn:aws:iam::123456789012:mfa/user"
    assert elevator.calls[0]["token_code"] == "123456"
    for call in elevator.calls[1:]:
        assert call["serial_number"] is None
        assert call["token_code"] is None


def test_mfa_cleared_even_when_first_elevation_fails(seeds: _FakeSeeds) -> None:
    elevator = _FakeElevator(fail_on=ROLE_A)
    resolver = RoleChainResolver(elevator, seeds)

    with pytest.raises(ElevationError):
        resolver.resolve(
            ResolutionInput(chain=[ROLE_A, ROLE_B], serial_number="serial", token_code="123456")
        )

    assert len(elevator.calls) == 1


def test_second_link_not_arn_makes_no_calls(
    resolver: RoleChainResolver, elevator: _FakeElevator, seeds: _FakeSeeds
) -> None:
    with pytest.raises(InvalidChainLinkError) as exc_info:
        resolver.resolve(ResolutionInput(chain=[ROLE_A, "instance"]))

    assert isinstance(exc_info.value, CredentialValidationError)
    assert exc_info.value.link == "instance"
    assert elevator.calls == []
    assert seeds.instance_calls == 0


def test_later_invalid_link_detected_before_any_call(
    resolver: RoleChainResolver, elevator: _FakeElevator, seeds: _FakeSeeds
) -> None:
    with pytest.raises(InvalidChainLinkError):
        resolver.resolve(ResolutionInput(chain=["instance", ROLE_A, "role/b"]))

    assert elevator.calls == []
    assert seeds.instance_calls == 0


def test_static_seed_rejects_alias_first_link(
    resolver: RoleChainResolver, elevator: _FakeElevator, seeds: _FakeSeeds
) -> None:
    with pytest.raises(InvalidChainLinkError) as exc_info:
        resolver.resolve(
            ResolutionInput(
                chain=["instance", ROLE_A],
                access_key_id="AKIASTATIC",
                secret_access_key="static-secret",
            )
        )

    assert exc_info.value.link == "instance"
    assert elevator.calls == []
    assert seeds.instance_calls == 0
    assert seeds.environment_calls == 0


def test_unrecognized_alias(resolver: RoleChainResolver, elevator: _FakeElevator) -> None:
    with pytest.raises(UnrecognizedAliasError, match=r"alias \[laptop\] is not recognized"):
        resolver.resolve(ResolutionInput(chain=["laptop", ROLE_A]))

    assert elevator.calls == []


@pytest.mark.parametrize("chain", [[], [""], ["  ", ""]])
def test_empty_chain(resolver: RoleChainResolver, chain: list[str]) -> None:
    with pytest.raises(EmptyChainError):
        resolver.resolve(ResolutionInput(chain=chain))


def test_missing_mfa_code(resolver: RoleChainResolver, elevator: _FakeElevator) -> None:
    with pytest.raises(MissingMfaCodeError):
        resolver.resolve(ResolutionInput(chain=[ROLE_A], serial_number="serial"))

    assert elevator.calls == []


def test_blank_links_are_skipped(resolver: RoleChainResolver, elevator: _FakeElevator) -> None:
    resolver.resolve(ResolutionInput(chain=[ROLE_A, "", ROLE_B, " "]))

    assert [call["role_arn"] for call in elevator.calls] == [ROLE_A, ROLE_B]


def test_failure_at_second_link_carries_first_step(seeds: _FakeSeeds) -> None:
    elevator = _FakeElevator(fail_on=ROLE_B)
    resolver = RoleChainResolver(elevator, seeds)

    with pytest.raises(ElevationError) as exc_info:
        resolver.resolve(ResolutionInput(chain=[ROLE_A, ROLE_B]))

    err = exc_info.value
    assert err.link == ROLE_B
    assert err.code == "access_denied"
    assert err.log == (f"assumed role [{ROLE_A}] with prior creds [false]",)
    assert f"log [assumed role [{ROLE_A}] with prior creds [false]]" in str(err)
    assert isinstance(err.__cause__, STSCredentialError)


def test_failure_at_first_link_reports_no_roles(seeds: _FakeSeeds) -> None:
    resolver = RoleChainResolver(_FakeElevator(fail_on=ROLE_A), seeds)

    with pytest.raises(ElevationError, match=r"log \[no roles resolved\]"):
        resolver.resolve(ResolutionInput(chain=[ROLE_A]))


def test_seed_failure_propagates(elevator: _FakeElevator) -> None:
    class _BrokenSeeds(_FakeSeeds):
        def instance_credentials(self) -> TemporaryCredentials:
            raise SeedCredentialError("no instance role", link="instance")

    resolver = RoleChainResolver(elevator, _BrokenSeeds())

    with pytest.raises(SeedCredentialError) as exc_info:
        resolver.resolve(ResolutionInput(chain=["instance", ROLE_A], session_name="deploy"))

    err = exc_info.value
    assert err.link == "instance"
    assert err.code == "seed_error"
    assert isinstance(err.__cause__, SeedCredentialError)
    assert str(err).startswith("failed to resolve role chain (session [deploy]")
    assert f"chain [instance,{ROLE_A}]): no instance role log [no roles resolved]" in str(err)
    assert str(err).count("log [") == 1
    assert elevator.calls == []


def test_session_and_duration_forwarded(resolver: RoleChainResolver, elevator: _FakeElevator) -> None:
    resolver.resolve(
        ResolutionInput(chain=[ROLE_A, ROLE_B], session_name="deploy", duration_seconds=1800)
    )

    for call in elevator.calls:
        assert call["session_name"] == "deploy"
        assert call["duration_seconds"] == 1800


def test_deadline_checked_before_each_elevation(
    resolver: RoleChainResolver, elevator: _FakeElevator
) -> None:
    with pytest.raises(DeadlineExceededError) as exc_info:
        resolver.resolve(
            ResolutionInput(chain=[ROLE_A], deadline=utc_now() - timedelta(seconds=1))
        )

    assert exc_info.value.code == "deadline_exceeded"
    assert elevator.calls == []


def test_deadline_passing_mid_chain_keeps_completed_steps(
    resolver: RoleChainResolver, elevator: _FakeElevator, monkeypatch: pytest.MonkeyPatch
) -> None:
    start = utc_now()
    ticks = iter([start, start + timedelta(seconds=2)])
    monkeypatch.setattr(chain_module, "utc_now", lambda: next(ticks))

    with pytest.raises(DeadlineExceededError) as exc_info:
        resolver.resolve(
            ResolutionInput(chain=[ROLE_A, ROLE_B], deadline=start + timedelta(seconds=1))
        )

    err = exc_info.value
    assert err.link == ROLE_B
    assert err.log == (f"assumed role [{ROLE_A}] with prior creds [false]",)
    assert [call["role_arn"] for call in elevator.calls] == [ROLE_A]


def test_input_str_hides_mfa_code() -> None:
    request = ResolutionInput(chain=[ROLE_A], serial_number="serial", token_code="987650")

    assert "987650" not in str(request)
    assert "987650" not in repr(request)
    assert "mfa code [6 chars]" in str(request)
