"""Cross-instance identity resolution.

A profile captured on one instance records communities and people by name
and actor URI only; their numeric ids are meaningless elsewhere.  Before a
mutation can be sent to the destination, the entity's destination-local id
is found by searching for its name and keeping only exact matches on
**both** name and actor URI.  Names collide across instances, so a name
match alone is never trusted, and the lookup fails unless exactly one
candidate survives.
"""

from __future__ import annotations

from typing import Any

from lemmybliss.errors import BlissAmbiguousOrMissingError
from lemmybliss.lemmy_api.account import SEARCH_COMMUNITIES, SEARCH_USERS, SORT_TOP_ALL
from lemmybliss.models import Community, Person, RelationKind, Target
from lemmybliss.observability import NoopMetricsHook, get_logger

log = get_logger("lemmybliss.identity")


def _community_candidates(response: dict[str, Any]) -> list[dict[str, Any]]:
    return [view["community"] for view in response.get("communities", [])]


def _person_candidates(response: dict[str, Any]) -> list[dict[str, Any]]:
    return [view["person"] for view in response.get("users", [])]


def match_candidates(reference: Target, candidates: list[dict[str, Any]]) -> list[int]:
    """Return the ids of *candidates* whose name and actor URI both equal
    those of *reference*."""
    name = reference.name if isinstance(reference, Community) else reference.username
    return [
        candidate["id"]
        for candidate in candidates
        if candidate.get("name") == name and candidate.get("actor_id") == reference.actor
    ]


class IdentityResolver:
    """Resolve profile references to destination-local ids.

    Parameters
    ----------
    account_api:
        An :class:`~lemmybliss.lemmy_api.account.AccountAPI` bound to the
        destination instance.
    metrics:
        Optional metrics hook; counts resolutions by outcome.
    """

    def __init__(self, account_api: Any, metrics: Any | None = None) -> None:
        self._api = account_api
        self._metrics = metrics if metrics is not None else NoopMetricsHook()

    def resolve(self, session: Any, kind: RelationKind, reference: Target) -> int:
        """Return the destination-local id of *reference*.

        Parameters
        ----------
        session:
            The authenticated destination session.
        kind:
            Relation kind; selects a community or a user search.
        reference:
            The :class:`Community` or :class:`Person` from the profile.

        Raises
        ------
        BlissAmbiguousOrMissingError
            If zero or more than one search result matches exactly.
        """
        if kind is RelationKind.PERSON_BLOCK:
            if not isinstance(reference, Person):
                raise TypeError(f"{kind.value} needs a Person, got {type(reference).__name__}")
            response = self._api.search(session, reference.username, SEARCH_USERS, SORT_TOP_ALL)
            candidates = _person_candidates(response)
            name = reference.username
        else:
            if not isinstance(reference, Community):
                raise TypeError(f"{kind.value} needs a Community, got {type(reference).__name__}")
            response = self._api.search(session, reference.name, SEARCH_COMMUNITIES, SORT_TOP_ALL)
            candidates = _community_candidates(response)
            name = reference.name

        found = match_candidates(reference, candidates)
        if len(found) != 1:
            self._metrics.increment("lemmybliss.resolutions_total", tags={"status": "failed"})
            what = "user" if kind is RelationKind.PERSON_BLOCK else "community"
            reason = "No exact match" if not found else f"{len(found)} exact matches"
            raise BlissAmbiguousOrMissingError(
                message=f"Unable to find {what}: {reference.actor} ({reason})",
                context={
                    "kind": kind.value,
                    "name": name,
                    "actor": reference.actor,
                    "candidates": len(candidates),
                    "matches": len(found),
                },
            )

        self._metrics.increment("lemmybliss.resolutions_total", tags={"status": "ok"})
        log.debug(
            "Resolved %s to id %s", reference.actor, found[0],
            extra={"extra_fields": {"op": "resolve", "kind": kind.value}},
        )
        return found[0]

    def resolve_community(
        self,
        session: Any,
        community: Community,
        kind: RelationKind = RelationKind.COMMUNITY_FOLLOW,
    ) -> int:
        return self.resolve(session, kind, community)

    def resolve_person(self, session: Any, person: Person) -> int:
        return self.resolve(session, RelationKind.PERSON_BLOCK, person)
