from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4

import pytest
from fastapi import HTTPException

from app.core.enums import RoleEnum
from app.core.security import create_access_token, secrets_match
from app.modules.identity.service import IdentityService
from app.shared.exceptions import AuthenticationException


@dataclass
class FakeUser:
    id: UUID
    is_active: bool = True


class FakeIdentityRepository:
    def __init__(self, users: dict[UUID, FakeUser] | None = None) -> None:
        self._users = users or {}
        self.roles: set[RoleEnum] = {RoleEnum.USER}

    async def get_user_by_id(self, user_id: UUID) -> FakeUser | None:
        return self._users.get(user_id)

    async def get_role_by_name(self, name: RoleEnum):
        return name if name in self.roles else None

    async def create_role(self, name: RoleEnum):
        self.roles.add(name)
        return name


@pytest.mark.asyncio
async def test_access_token_resolves_active_user() -> None:
    user = FakeUser(id=uuid4())
    service = IdentityService(FakeIdentityRepository({user.id: user}))

    resolved = await service.get_user_from_access_token(create_access_token(str(user.id)))

    assert resolved is user


@pytest.mark.asyncio
async def test_inactive_or_unknown_users_are_rejected() -> None:
    inactive = FakeUser(id=uuid4(), is_active=False)
    service = IdentityService(FakeIdentityRepository({inactive.id: inactive}))

    with pytest.raises(AuthenticationException):
        await service.get_user_from_access_token(create_access_token(str(inactive.id)))
    with pytest.raises(AuthenticationException):
        await service.get_user_from_access_token(create_access_token(str(uuid4())))
    with pytest.raises(AuthenticationException):
        await service.get_user_from_access_token(create_access_token("not-a-uuid"))
    with pytest.raises(AuthenticationException):
        await service.get_user_from_access_token(create_access_token(str(inactive.id), type="refresh"))


@pytest.mark.asyncio
async def test_tampered_token_is_rejected() -> None:
    service = IdentityService(FakeIdentityRepository())

    with pytest.raises(HTTPException) as exc_info:
        await service.get_user_from_access_token(create_access_token(str(uuid4())) + "x")

    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_default_roles_are_created_once() -> None:
    repository = FakeIdentityRepository()
    service = IdentityService(repository)

    await service.ensure_default_roles()
    await service.ensure_default_roles()

    assert repository.roles == {RoleEnum.USER, RoleEnum.ADMIN}


def test_secrets_match_requires_exact_value() -> None:
    assert secrets_match("webhook-secret", "webhook-secret") is True
    assert secrets_match("webhook-secreT", "webhook-secret") is False
    assert secrets_match(None, "webhook-secret") is False
    assert secrets_match("", "webhook-secret") is False
