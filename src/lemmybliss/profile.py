"""Conversion between Lemmy API payloads, profile models and the stored
document layout.

* :func:`profile_from_site` builds a fresh :class:`Profile` from the
  ``GET /site`` response of a logged-in account.
* :func:`settings_payload` turns a profile back into the
  ``save_user_settings`` body.
* :func:`profile_to_document` / :func:`profile_from_document` map a
  profile to and from the stored document through
  :class:`~lemmybliss.document.ProfileDocument`.

Instance-local ids are read from live payloads (they are needed to unfollow
or unblock on that same instance) but never written to the stored
document, which only keeps cross-instance identity.
"""

from __future__ import annotations

from dataclasses import asdict, fields
from datetime import datetime, timezone
from typing import Any

from lemmybliss.document import ProfileDocument
from lemmybliss.errors import BlissAuthError
from lemmybliss.models import Community, Info, Meta, Person, Profile, Settings

PROFILE_TEXT_FIELDS: tuple[str, ...] = ("bio", "display_name", "avatar", "banner")

_SETTINGS_FIELDS: tuple[str, ...] = tuple(f.name for f in fields(Settings))


# ---------------------------------------------------------------------------
# Live API payloads -> models
# ---------------------------------------------------------------------------

def _my_user(site: dict[str, Any]) -> dict[str, Any]:
    my_user = site.get("my_user")
    if not my_user:
        raise BlissAuthError(
            message="Site response carries no account data; the session was not accepted",
        )
    return my_user


def _community(raw: dict[str, Any]) -> Community:
    return Community(name=raw["name"], actor=raw["actor_id"], id=raw.get("id"))


def _person(raw: dict[str, Any]) -> Person:
    return Person(username=raw["name"], actor=raw["actor_id"], id=raw.get("id"))


def info_from_site(site: dict[str, Any]) -> Info:
    """Extract the relation set and profile text fields of the account."""
    my_user = _my_user(site)
    person = my_user.get("local_user_view", {}).get("person", {})
    return Info(
        communities_follows=[_community(f["community"]) for f in my_user.get("follows", [])],
        communities_blocks=[
            _community(b["community"]) for b in my_user.get("community_blocks", [])
        ],
        people_blocks=[_person(b["target"]) for b in my_user.get("person_blocks", [])],
        bio=person.get("bio"),
        display_name=person.get("display_name"),
        avatar=person.get("avatar"),
        banner=person.get("banner"),
    )


def settings_from_site(site: dict[str, Any]) -> Settings:
    """Extract the flat account preferences."""
    my_user = _my_user(site)
    view = my_user.get("local_user_view", {})
    local_user = view.get("local_user", {})
    person = view.get("person", {})
    values = {name: local_user.get(name) for name in _SETTINGS_FIELDS}
    values["bot_account"] = person.get("bot_account", local_user.get("bot_account"))
    values["matrix_user_id"] = person.get("matrix_user_id", local_user.get("matrix_user_id"))
    values["discussion_languages"] = list(my_user.get("discussion_languages") or [])
    return Settings(**values)


def rate_limit_from_site(site: dict[str, Any]) -> float | None:
    """Return the published ``message_per_second`` limit, if any."""
    limits = (site.get("site_view") or {}).get("local_site_rate_limit") or {}
    value = limits.get("message_per_second")
    return float(value) if value is not None else None


def profile_from_site(
    username: str,
    instance: str,
    site: dict[str, Any],
    now: datetime | None = None,
) -> Profile:
    """Build a fresh profile; both timestamps are set to *now*."""
    stamp = now or datetime.now(timezone.utc)
    return Profile(
        meta=Meta(
            username=username,
            instance=instance,
            date_created=stamp,
            date_updated=stamp,
        ),
        settings=settings_from_site(site),
        info=info_from_site(site),
    )


# ---------------------------------------------------------------------------
# Models -> API payloads
# ---------------------------------------------------------------------------

def settings_payload(profile: Profile) -> dict[str, Any]:
    """Return the ``save_user_settings`` body for *profile*.

    Settings and the profile text fields travel together; ``None`` values
    are left for the API wrapper to drop.
    """
    payload = asdict(profile.settings)
    for name in PROFILE_TEXT_FIELDS:
        payload[name] = getattr(profile.info, name)
    return payload


# ---------------------------------------------------------------------------
# Stored document layout
# ---------------------------------------------------------------------------

def profile_to_document(profile: Profile) -> dict[str, Any]:
    """Return the plain-data form of *profile* for serialisation."""
    return ProfileDocument.from_profile(profile).model_dump(mode="json")


def profile_from_document(document: Any) -> Profile:
    """Validate *document* against :class:`ProfileDocument` and rebuild the
    profile.

    Unknown keys are ignored so documents written by newer versions still
    load.

    Raises
    ------
    pydantic.ValidationError
        If the document does not match the schema.  The snapshot store
        turns this into :class:`BlissCorruptFormatError`.
    """
    return ProfileDocument.model_validate(document).to_profile()
