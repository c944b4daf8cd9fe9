"""Login/logout wiring on top of the request bindings.

`AuthSession` holds no credentials of its own: the bearer token lives on the
`RequestService`. Persisting the token across restarts is left to the
application.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Mapping

from loguru import logger

from showroom.config import ENDPOINTS
from showroom.hooks.mutation import RequestMutation
from showroom.hooks.query import RequestQuery
from showroom.hooks.state import RequestState
from showroom.net.http import RequestService

__all__ = ["AuthSession"]

log = logger.bind(module="auth")

_AUTH = ENDPOINTS["auth"]


class AuthSession:
    """Pairs the auth endpoints with the service's token slot.

    Args:
        service: The request service whose token slot is managed.
        is_authenticated: Predicate gating the profile query. Defaults to
            "the service currently holds a token".
    """

    def __init__(
        self,
        service: RequestService,
        *,
        is_authenticated: Callable[[], bool] | None = None,
    ) -> None:
        self.service = service
        self._is_authenticated = is_authenticated or (lambda: service.auth_token is not None)

        self.login_mutation: RequestMutation[dict[str, Any]] = RequestMutation(service, _AUTH["login"], "POST")
        self.register_mutation: RequestMutation[dict[str, Any]] = RequestMutation(
            service, _AUTH["register"], "POST"
        )
        self.profile: RequestQuery[dict[str, Any]] = RequestQuery(
            service,
            _AUTH["profile"],
            enabled=bool(self._is_authenticated()),
        )

    @property
    def login_state(self) -> RequestState[dict[str, Any]]:
        return self.login_mutation.state

    @property
    def register_state(self) -> RequestState[dict[str, Any]]:
        return self.register_mutation.state

    @property
    def profile_state(self) -> RequestState[dict[str, Any]]:
        return self.profile.state

    def sync(self) -> asyncio.Task[None] | None:
        """Re-evaluate the authentication predicate for the profile query."""
        return self.profile.watch(enabled=bool(self._is_authenticated()))

    async def login(self, payload: Mapping[str, Any]) -> Any:
        """POST credentials; store the returned token on the service."""
        result = await self.login_mutation.mutate(dict(payload))
        token = result.get("token") if isinstance(result, dict) else None
        if isinstance(token, str) and token:
            self.service.set_auth_token(token)
            log.info("Login succeeded; bearer token installed")
        else:
            log.warning("Login response did not include a token")
        self.sync()
        return result

    async def register(self, payload: Mapping[str, Any]) -> Any:
        return await self.register_mutation.mutate(dict(payload))

    async def get_profile(self) -> None:
        await self.profile.refetch()

    def logout(self) -> None:
        """Forget the bearer token; subsequent requests are anonymous."""
        self.service.clear_auth_token()
        log.info("Logged out; bearer token cleared")
        self.sync()

    def dispose(self) -> None:
        self.profile.dispose()
