from __future__ import annotations

import logging

from beautypro.clients.supabase import SupabaseClient
from beautypro.schemas.auth import AuthSession, AuthUser
from beautypro.services.exceptions import (
    AuthenticationError,
    DownstreamServiceError,
    ServiceError,
)
from beautypro.services.mock_store import AuthRepository, get_mock_store

logger = logging.getLogger(__name__)


class AuthService:
    """Password sign-in and session termination against the hosted auth service."""

    def __init__(
        self,
        client: SupabaseClient,
        *,
        repository: AuthRepository | None = None,
    ) -> None:
        self._client = client
        self._repository = repository
        if self._client.use_mock_data:
            self._repository = repository or get_mock_store().auth

    async def sign_in(self, email: str, password: str) -> AuthSession:
        logger.info("Signing in %s", email)
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            return await self._repository.sign_in(email, password)

        try:
            data = await self._client.sign_in_with_password(email, password)
        except DownstreamServiceError as exc:
            if exc.status_code in (400, 401):
                raise AuthenticationError("Invalid login credentials", cause=exc) from exc
            raise
        try:
            return AuthSession(**data)
        except Exception as exc:
            logger.exception("Unexpected sign-in payload")
            raise ServiceError("Failed to sign in", cause=exc)

    async def sign_out(self, access_token: str | None) -> None:
        if not access_token:
            return
        logger.info("Signing out session")
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            await self._repository.sign_out(access_token)
            return
        await self._client.sign_out(access_token)

    async def get_user(self, access_token: str) -> AuthUser | None:
        if self._client.use_mock_data:
            await self._client.simulate_latency()
            return await self._repository.get_user(access_token)
        try:
            data = await self._client.get_user(access_token)
        except DownstreamServiceError as exc:
            if exc.status_code in (401, 403):
                return None
            raise
        return AuthUser(**data) if data else None
