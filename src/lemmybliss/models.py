"""Public data models for lemmybliss.

This module contains the profile schema (communities, people, relation
sets, settings and metadata), the mutation types produced by the diff
planner, and the result and warning types returned by the client.  All
types are plain dataclasses.

:class:`Community` and :class:`Person` are frozen and compare on their
cross-instance identity only: the instance-local ``id`` is carried for
convenience but excluded from equality and hashing, so an entity captured
on one instance equals the same entity seen from another.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Union

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class RelationKind(str, Enum):
    """The three relation collections managed by lemmybliss."""

    COMMUNITY_FOLLOW = "community_follow"
    """The account follows (subscribes to) a community."""

    COMMUNITY_BLOCK = "community_block"
    """The account blocks a community."""

    PERSON_BLOCK = "person_block"
    """The account blocks another person."""

    @property
    def attribute(self) -> str:
        """Name of the :class:`Info` collection holding this kind."""
        return _KIND_ATTRIBUTES[self]


class MutationAction(str, Enum):
    """Direction of a relation mutation."""

    ADD = "add"
    """Create the relation (follow / block)."""

    REMOVE = "remove"
    """Drop the relation (unfollow / unblock)."""


_KIND_ATTRIBUTES: dict[RelationKind, str] = {
    RelationKind.COMMUNITY_FOLLOW: "communities_follows",
    RelationKind.COMMUNITY_BLOCK: "communities_blocks",
    RelationKind.PERSON_BLOCK: "people_blocks",
}

_VERBS: dict[tuple[RelationKind, MutationAction], str] = {
    (RelationKind.COMMUNITY_FOLLOW, MutationAction.ADD): "Following",
    (RelationKind.COMMUNITY_FOLLOW, MutationAction.REMOVE): "Unfollowing",
    (RelationKind.COMMUNITY_BLOCK, MutationAction.ADD): "Blocking community",
    (RelationKind.COMMUNITY_BLOCK, MutationAction.REMOVE): "Unblocking community",
    (RelationKind.PERSON_BLOCK, MutationAction.ADD): "Blocking user",
    (RelationKind.PERSON_BLOCK, MutationAction.REMOVE): "Unblocking user",
}


# ---------------------------------------------------------------------------
# Relation targets
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Community:
    """A community reference that survives a move between instances.

    Attributes
    ----------
    name:
        The community's short name (e.g. ``"tech"``).
    actor:
        The ActivityPub actor URI, globally unique across instances.
    id:
        Instance-local numeric id.  Only valid on the instance it was read
        from; never part of equality.
    """

    name: str
    actor: str
    id: int | None = field(default=None, compare=False)

    @property
    def label(self) -> str:
        return f"{self.name} ({self.actor})"


@dataclass(frozen=True)
class Person:
    """A person reference that survives a move between instances.

    Attributes
    ----------
    username:
        The person's account name (not the display name).
    actor:
        The ActivityPub actor URI, globally unique across instances.
    id:
        Instance-local numeric id, excluded from equality.
    """

    username: str
    actor: str
    id: int | None = field(default=None, compare=False)

    @property
    def label(self) -> str:
        return f"{self.username} ({self.actor})"


Target = Union[Community, Person]


def _dedupe(items: list) -> list:
    seen: set = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


# ---------------------------------------------------------------------------
# Profile schema
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class Info:
    """The relation set of an account plus its profile text fields.

    The three collections behave as sets: duplicates (by equality key) are
    dropped on construction, insertion order is kept so that mutations are
    applied deterministically, and order is ignored by ``==``.
    """

    communities_follows: list[Community] = field(default_factory=list)
    communities_blocks: list[Community] = field(default_factory=list)
    people_blocks: list[Person] = field(default_factory=list)
    bio: str | None = None
    display_name: str | None = None
    avatar: str | None = None
    banner: str | None = None

    def __post_init__(self) -> None:
        self.communities_follows = _dedupe(self.communities_follows)
        self.communities_blocks = _dedupe(self.communities_blocks)
        self.people_blocks = _dedupe(self.people_blocks)

    def relations(self, kind: RelationKind) -> list[Target]:
        """Return the collection holding relations of *kind*."""
        return getattr(self, kind.attribute)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Info):
            return NotImplemented
        return all(
            set(self.relations(kind)) == set(other.relations(kind))
            for kind in RelationKind
        ) and (
            (self.bio, self.display_name, self.avatar, self.banner)
            == (other.bio, other.display_name, other.avatar, other.banner)
        )

    __hash__ = None  # type: ignore[assignment]


@dataclass
class Settings:
    """Flat account preferences.  ``None`` means "leave unchanged" on push."""

    show_nsfw: bool | None = None
    theme: str | None = None
    default_sort_type: str | None = None
    default_listing_type: str | None = None
    interface_language: str | None = None
    show_avatars: bool | None = None
    send_notifications_to_email: bool | None = None
    bot_account: bool | None = None
    show_bot_accounts: bool | None = None
    show_read_posts: bool | None = None
    show_new_post_notifs: bool | None = None
    discussion_languages: list[int] | None = None
    email: str | None = None
    matrix_user_id: str | None = None


@dataclass
class Meta:
    """Provenance of a snapshot."""

    username: str
    instance: str
    date_created: datetime
    date_updated: datetime


@dataclass
class Profile:
    """A saved snapshot of one account: metadata, settings and relations."""

    meta: Meta
    settings: Settings = field(default_factory=Settings)
    info: Info = field(default_factory=Info)


# ---------------------------------------------------------------------------
# Diff engine types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Mutation:
    """A single relation change in a push plan.

    Attributes
    ----------
    kind:
        Which relation collection is affected.
    action:
        Whether the relation is created or dropped.
    target:
        The community or person the relation points at.
    """

    kind: RelationKind
    action: MutationAction
    target: Target

    def describe(self) -> str:
        """Human-readable identity used in log lines, e.g.
        ``"Following tech (https://a.example/c/tech)"``."""
        return f"{_VERBS[(self.kind, self.action)]} {self.target.label}"


# ---------------------------------------------------------------------------
# Results and warnings
# ---------------------------------------------------------------------------

@dataclass
class BlissWarning:
    """A non-fatal issue encountered during push.

    Attributes
    ----------
    code:
        A machine-readable warning code (e.g. ``"UNKNOWN_FIELD"``).
    message:
        A human-readable description of the issue.
    context:
        Arbitrary structured data for diagnostics.
    """

    code: str
    message: str
    context: dict = field(default_factory=dict)


@dataclass
class ExecutionSummary:
    """Aggregate outcome of one executor run.  No per-item detail."""

    attempted: int = 0
    succeeded: int = 0
    failed: int = 0


@dataclass
class PushResult:
    """Result of :meth:`BlissClient.push`.

    Attributes
    ----------
    settings_pushed:
        Whether the settings phase completed.
    mutations_planned:
        Number of relation mutations in the push plan.
    summary:
        Aggregate executor outcome.
    warnings:
        Non-fatal issues (unknown field names, skipped assets).
    """

    settings_pushed: bool
    mutations_planned: int
    summary: ExecutionSummary = field(default_factory=ExecutionSummary)
    warnings: list[BlissWarning] = field(default_factory=list)
