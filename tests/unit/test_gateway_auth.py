"""Unit tests for JWT handling and the caller dependencies."""

from datetime import timedelta

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt

from config.settings import settings
from src.ar_common.errors import InvalidCredentialsError, NotAdminError, NotServicesManagerError
from src.ar_gateway.auth.dependencies import (
    get_current_caller,
    require_admin,
    require_services_manager,
)
from src.ar_gateway.auth.jwt_handler import create_access_token, decode_token


def _bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


def test_access_token_carries_address() -> None:
    token = create_access_token("alice")
    payload = jwt.get_unverified_claims(token)
    assert payload["sub"] == "alice"
    assert payload["type"] == "access"


def test_decode_valid_token() -> None:
    assert decode_token(create_access_token("alice"))["sub"] == "alice"


def test_decode_expired_token() -> None:
    token = create_access_token("alice", expires_in=timedelta(seconds=-1))
    with pytest.raises(InvalidCredentialsError):
        decode_token(token)


def test_decode_wrong_type() -> None:
    token = jwt.encode(
        {"sub": "alice", "type": "refresh"}, settings.JWT_SECRET, algorithm="HS256"
    )
    with pytest.raises(InvalidCredentialsError):
        decode_token(token)


def test_decode_token_signed_with_another_secret() -> None:
    token = jwt.encode({"sub": "alice", "type": "access"}, "another-secret", algorithm="HS256")
    with pytest.raises(InvalidCredentialsError):
        decode_token(token)


class TestDependencies:
    async def test_caller_from_token(self) -> None:
        caller = await get_current_caller(_bearer(create_access_token("alice")))
        assert caller == "alice"

    async def test_missing_token(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_caller(None)
        assert exc_info.value.status_code == 401

    async def test_invalid_token(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_caller(_bearer("not-a-jwt"))
        assert exc_info.value.status_code == 401

    async def test_require_admin(self) -> None:
        assert await require_admin(settings.ADMIN_ADDRESS) == settings.ADMIN_ADDRESS
        with pytest.raises(NotAdminError):
            await require_admin("alice")

    async def test_require_services_manager(self) -> None:
        manager = settings.SERVICES_MANAGER_ADDRESS
        assert await require_services_manager(manager) == manager
        with pytest.raises(NotServicesManagerError):
            await require_services_manager(settings.ADMIN_ADDRESS)
