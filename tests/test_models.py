"""Session model unit tests."""

import pytest
from conftest import NOW
from k1s0_session_lifecycle.exceptions import RetryExhaustedError
from k1s0_session_lifecycle.models import (
    Credentials,
    RetryResult,
    Session,
    SessionState,
    ValidationResult,
)


def test_session_from_dict_expires_in() -> None:
    session = Session.from_dict(
        {
            "access_token": "at",
            "refresh_token": "rt",
            "expires_in": 3600,
            "user": {"id": "u-1", "email": "agent@example.com"},
        },
        now=NOW,
    )
    assert session.expires_at == NOW + 3600
    assert session.user_id == "u-1"
    assert session.email == "agent@example.com"


def test_session_from_dict_expires_at_wins() -> None:
    session = Session.from_dict(
        {"access_token": "at", "refresh_token": "rt", "expires_at": NOW, "expires_in": 10}
    )
    assert session.expires_at == NOW
    assert session.user_id is None


def test_session_from_dict_without_expiry() -> None:
    with pytest.raises(ValueError):
        Session.from_dict({"access_token": "at", "refresh_token": "rt"})


def test_session_from_dict_without_token() -> None:
    with pytest.raises(KeyError):
        Session.from_dict({"access_token": "at", "expires_in": 10})


@pytest.mark.parametrize(
    "data",
    [
        ["at", "rt"],
        {"access_token": "at", "refresh_token": "rt", "expires_in": 10, "user": "u-1"},
    ],
)
def test_session_from_dict_rejects_non_mapping(data: object) -> None:
    with pytest.raises(TypeError):
        Session.from_dict(data)  # type: ignore[arg-type]


def test_seconds_until_expiry() -> None:
    session = Session(access_token="at", refresh_token="rt", expires_at=NOW + 120)
    assert session.seconds_until_expiry(NOW) == 120


def test_credentials_repr_hides_password() -> None:
    creds = Credentials(email="agent@example.com", password="s3cret")
    assert "s3cret" not in repr(creds)
    assert "agent@example.com" in repr(creds)


def test_validation_result_rejects_sign_out_with_refresh() -> None:
    with pytest.raises(ValueError):
        ValidationResult(
            is_valid=False,
            needs_refresh=True,
            should_sign_out=True,
            state=SessionState.BACKEND_ERROR,
        )


def test_validation_result_valid_and_needs_refresh() -> None:
    result = ValidationResult(
        is_valid=True, needs_refresh=True, should_sign_out=False, state=SessionState.EXPIRING_SOON
    )
    assert result.is_valid and result.needs_refresh


def test_retry_result_unwrap() -> None:
    assert RetryResult(success=True, attempts=1, elapsed=0.0, value="v").unwrap() == "v"

    error = RuntimeError("boom")
    failed: RetryResult[str] = RetryResult(success=False, attempts=3, elapsed=0.1, error=error)
    with pytest.raises(RetryExhaustedError) as exc_info:
        failed.unwrap()
    assert exc_info.value.attempts == 3
    assert exc_info.value.last_error is error
