"""Account, search and relation endpoints of the Lemmy API.

:class:`AccountAPI` is a thin wrapper: it builds request bodies and
delegates every HTTP concern (auth header, retries, error mapping) to
:class:`~lemmybliss.lemmy_api.transport.LemmyTransport`.  Responses are
returned as plain dicts; :mod:`lemmybliss.profile` turns them into models.
"""

from __future__ import annotations

from typing import Any

from lemmybliss.errors import BlissAuthError, BlissValidationError

from .transport import LemmyTransport

SEARCH_COMMUNITIES = "Communities"
SEARCH_USERS = "Users"
SORT_TOP_ALL = "TopAll"


class AccountAPI:
    """Synchronous wrapper for the account-level Lemmy endpoints.

    Parameters
    ----------
    transport:
        A :class:`LemmyTransport` bound to the instance the session
        belongs to.
    """

    def __init__(self, transport: LemmyTransport) -> None:
        self._transport = transport

    @property
    def instance(self) -> str:
        return self._transport.instance

    def login(
        self,
        username_or_email: str,
        password: str,
        totp_token: str | None = None,
    ) -> str:
        """Run the login exchange and return the jwt.

        Any rejection of the credentials (Lemmy answers ``400`` with
        ``incorrect_login``, ``missing_totp_token`` and similar codes, or
        ``401``) is raised as :class:`BlissAuthError`.
        """
        body: dict[str, Any] = {
            "username_or_email": username_or_email,
            "password": password,
        }
        if totp_token:
            body["totp_2fa_token"] = totp_token
        context = {"username": username_or_email, "instance": self.instance}
        try:
            response = self._transport.request("POST", "user/login", json=body)
        except (BlissAuthError, BlissValidationError) as exc:
            raise BlissAuthError(
                message=f"Login failed for {username_or_email}: {exc.message}",
                context={**context, **exc.context},
                cause=exc,
            ) from exc
        jwt = response.get("jwt")
        if not jwt:
            raise BlissAuthError(
                message=(
                    f"Login for {username_or_email} returned no token "
                    "(registration pending or email not verified)"
                ),
                context=context,
            )
        return str(jwt)

    def site(self, session: Any) -> dict[str, Any]:
        """Fetch ``GET /site``: the live account state plus rate limits."""
        return self._transport.request("GET", "site", jwt=session.jwt)

    def save_user_settings(self, session: Any, settings: dict[str, Any]) -> dict[str, Any]:
        """Push the settings payload wholesale.  ``None`` values are dropped
        so that the instance leaves those fields unchanged."""
        body = {key: value for key, value in settings.items() if value is not None}
        return self._transport.request(
            "PUT", "user/save_user_settings", jwt=session.jwt, json=body,
        )

    def search(
        self,
        session: Any,
        query: str,
        type_: str,
        sort: str = SORT_TOP_ALL,
    ) -> dict[str, Any]:
        """Run a text search scoped to ``Communities`` or ``Users``."""
        params = {"q": query, "type_": type_, "sort": sort}
        return self._transport.request("GET", "search", jwt=session.jwt, params=params)

    def follow_community(self, session: Any, community_id: int, follow: bool) -> dict[str, Any]:
        """Follow (``True``) or unfollow (``False``) a community."""
        body = {"community_id": community_id, "follow": follow}
        return self._transport.request("POST", "community/follow", jwt=session.jwt, json=body)

    def block_community(self, session: Any, community_id: int, block: bool) -> dict[str, Any]:
        """Block (``True``) or unblock (``False``) a community."""
        body = {"community_id": community_id, "block": block}
        return self._transport.request("POST", "community/block", jwt=session.jwt, json=body)

    def block_person(self, session: Any, person_id: int, block: bool) -> dict[str, Any]:
        """Block (``True``) or unblock (``False``) a person."""
        body = {"person_id": person_id, "block": block}
        return self._transport.request("POST", "user/block", jwt=session.jwt, json=body)
