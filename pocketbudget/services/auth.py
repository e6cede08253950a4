"""
Auth Collaborator

The ledger core only needs to know whether a user is signed in and
what their stable id is. Credential checks belong to the identity
provider and are not implemented here.
"""

import inspect
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class AuthUser(BaseModel):
    """Opaque signed-in identity."""
    model_config = ConfigDict(frozen=True)

    uid: str = Field(..., min_length=1, description="Stable user id")
    email: Optional[str] = None
    display_name: Optional[str] = None


AuthListener = Callable[[Optional[AuthUser]], Union[None, Awaitable[None]]]


class AuthProviderInterface(ABC):
    """What the synchronizer needs from an identity provider."""

    @property
    @abstractmethod
    def current_user(self) -> Optional[AuthUser]:
        pass

    @abstractmethod
    async def add_listener(self, listener: AuthListener) -> Callable[[], None]:
        """
        Register for auth-state changes.

        The listener is called immediately with the current user, then
        with the new user (or None) on every change.

        Returns:
            A function that removes the listener
        """
        pass

    @abstractmethod
    async def sign_out(self) -> None:
        pass


class LocalAuthProvider(AuthProviderInterface):
    """
    In-process provider.

    sign_in() trusts the identity it is given; use it for tests and for
    embedding behind a host that has already authenticated the user.
    """

    def __init__(self, user: Optional[AuthUser] = None):
        self._user = user
        self._listeners: list[AuthListener] = []

    @property
    def current_user(self) -> Optional[AuthUser]:
        return self._user

    async def _emit(self, listener: AuthListener) -> None:
        result = listener(self._user)
        if inspect.isawaitable(result):
            await result

    async def add_listener(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)
        await self._emit(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def sign_in(self, user: AuthUser) -> None:
        if self._user == user:
            return
        self._user = user
        for listener in list(self._listeners):
            await self._emit(listener)

    async def sign_out(self) -> None:
        if self._user is None:
            return
        self._user = None
        for listener in list(self._listeners):
            await self._emit(listener)
