"""Unauthenticated identities and authenticated sessions.

An :class:`Identity` names an account (``username`` on ``instance``) and
exposes no remote operation at all.  The only way to obtain a
:class:`Session`, which every authenticated API call requires, is
:meth:`Identity.login`; constructing one directly raises ``TypeError``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from lemmybliss.config import validate_instance_url

if TYPE_CHECKING:
    from lemmybliss.lemmy_api.account import AccountAPI

_LOGIN_GRANT = object()


def instance_host(instance: str) -> str:
    """Return the host part of *instance*, or *instance* itself."""
    return urlparse(instance).hostname or instance


@dataclass(frozen=True)
class Identity:
    """An account that has not logged in yet.

    Parameters
    ----------
    username:
        Username or email used for the login exchange.
    instance:
        Instance root URL; normalised to end with ``/``.
    """

    username: str
    instance: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "instance", validate_instance_url(self.instance))

    def login(
        self,
        account_api: AccountAPI,
        password: str,
        totp_token: str | None = None,
    ) -> Session:
        """Exchange credentials for a :class:`Session`.

        Raises
        ------
        BlissAuthError
            If the instance rejects the credentials or returns no jwt.
        BlissNetworkError
            If the instance cannot be reached.
        """
        jwt = account_api.login(self.username, password, totp_token)
        return Session(self.username, self.instance, jwt, _grant=_LOGIN_GRANT)

    def __str__(self) -> str:
        return f"{self.username}@{instance_host(self.instance)}"


class Session:
    """An authenticated account, scoped to one run and never persisted.

    Read-only after creation.
    """

    __slots__ = ("_jwt", "_username", "_instance")

    def __init__(
        self,
        username: str,
        instance: str,
        jwt: str,
        *,
        _grant: object = None,
    ) -> None:
        if _grant is not _LOGIN_GRANT:
            raise TypeError("Session objects are created by Identity.login()")
        object.__setattr__(self, "_username", username)
        object.__setattr__(self, "_instance", instance)
        object.__setattr__(self, "_jwt", jwt)

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError("Session is read-only")

    @property
    def username(self) -> str:
        return self._username

    @property
    def instance(self) -> str:
        return self._instance

    @property
    def jwt(self) -> str:
        return self._jwt

    def __str__(self) -> str:
        return f"{self._username}@{instance_host(self._instance)}"

    def __repr__(self) -> str:
        masked = f"...{self._jwt[-4:]}" if len(self._jwt) >= 4 else "****"
        return (
            f"Session(username={self._username!r}, instance={self._instance!r}, "
            f"jwt='{masked}')"
        )
