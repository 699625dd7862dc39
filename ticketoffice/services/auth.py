"""Login/session management against the remote auth endpoints."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from ticketoffice.http import HttpClient, HttpError
from ticketoffice.models import LoginResponse, User
from ticketoffice.permissions import BACKOFFICE_ROLES, Role, coerce_role, map_server_roles
from ticketoffice.sanitize import sanitize_email, sanitize_username
from ticketoffice.services.base import BaseService
from ticketoffice.storage import LocalStorage

log = logging.getLogger(__name__)

TOKEN_KEY = "auth_token"
USER_KEY = "user_data"


def to_app_user(api_user: dict[str, Any]) -> User:
    """Convert a ``/users/me`` payload, collapsing server roles to one app role."""
    roles = api_user.get("role")
    if isinstance(roles, str):
        roles = [roles]
    return User(
        id=api_user["id"],
        username=api_user["username"],
        email=api_user.get("email"),
        name=api_user.get("username"),
        role=map_server_roles(roles).value,
    )


class AuthService(BaseService):
    """Owns the bearer token and current user.

    Construction registers :meth:`get_token` as the HTTP client's token
    provider. Sessions opened with ``remember=True`` are written to local
    storage and come back with :meth:`restore`; others live in memory only.
    """

    def __init__(self, http: HttpClient, storage: LocalStorage) -> None:
        super().__init__(http)
        self._storage = storage
        self._token: str | None = None
        self._user: User | None = None
        self._remember = False
        http.set_token_provider(self.get_token)

    # ------------------------------------------------------------------
    # Session state
    # ------------------------------------------------------------------

    def get_token(self) -> str | None:
        return self._token

    @property
    def current_user(self) -> User | None:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    @property
    def remembered(self) -> bool:
        """Whether the current session survives a restart."""
        return self._remember

    @property
    def role(self) -> Role | None:
        return coerce_role(self._user.role) if self._user else None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_seller(self) -> bool:
        return self.role is Role.SELLER

    @property
    def has_backoffice_access(self) -> bool:
        return self.role in BACKOFFICE_ROLES

    async def restore(self) -> User | None:
        """Reload a remembered session from local storage."""
        self._token = await self._storage.get_item(TOKEN_KEY)
        self._remember = self._token is not None
        raw_user = await self._storage.get_json(USER_KEY)
        self._user = None
        if raw_user is not None:
            try:
                self._user = User.model_validate(raw_user)
            except ValidationError:
                log.warning("Stored user is invalid; ignoring it")
        return self._user

    async def _persist(self, token: str, user: User | None, remember: bool) -> None:
        self._token = token
        self._user = user
        self._remember = remember
        if remember:
            await self._storage.set_item(TOKEN_KEY, token)
            if user is not None:
                await self._storage.set_json(USER_KEY, user.model_dump(mode="json"))
        else:
            await self._storage.remove_item(TOKEN_KEY)
            await self._storage.remove_item(USER_KEY)

    async def _clear(self) -> None:
        self._token = None
        self._user = None
        self._remember = False
        await self._storage.remove_item(TOKEN_KEY)
        await self._storage.remove_item(USER_KEY)

    # ------------------------------------------------------------------
    # Remote calls
    # ------------------------------------------------------------------

    async def _fetch_me(self) -> User:
        return to_app_user(await self.http.get("/users/me"))

    async def login(self, username: str, password: str, remember: bool = False) -> LoginResponse:
        data = await self.http.post(
            "/auth/login", {"username": username, "password": password}
        )
        token = data["token"]
        await self._persist(token, None, remember)

        user = await self._fetch_me()
        await self._persist(token, user, remember)
        log.info("login ok username=%s role=%s", user.username, user.role)
        return LoginResponse(token=token, user=user)

    async def register(
        self, username: str, password: str, email: str, remember: bool = False
    ) -> User | None:
        """Sign up; when the API answers with a token the new user is logged in.

        Raises ``ValueError`` when the username or email is empty once cleaned.
        """
        username = sanitize_username(username)
        email = sanitize_email(email)
        if not username or not email:
            raise ValueError("a valid username and email are required")
        data = await self.http.post(
            "/auth/signup",
            {"username": username, "password": password, "email": email},
        )
        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            return None
        await self._persist(token, None, remember)
        user = await self._fetch_me()
        await self._persist(token, user, remember)
        return user

    async def me(self) -> User | None:
        """Refresh the current user; an API or payload error ends the session."""
        if self._token is None:
            return None
        try:
            user = await self._fetch_me()
        except (HttpError, ValidationError, KeyError) as exc:
            log.warning("me() failed (%s); clearing session", exc)
            await self._clear()
            return None
        await self._persist(self._token, user, self._remember)
        return user

    async def logout(self) -> None:
        await self._clear()
