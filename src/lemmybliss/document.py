"""Pydantic schema of the stored ``profile.yml`` document.

The snapshot store loads YAML into plain data and validates it here before
anything becomes a :class:`~lemmybliss.models.Profile`; a document that
does not fit raises :class:`pydantic.ValidationError`.  Instance-local ids
have no field, so they are never written.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from lemmybliss.models import Community, Info, Meta, Person, Profile, Settings


class MetaDocument(BaseModel):
    """Who the snapshot was taken from, and when."""

    username: str
    instance: str
    date_created: datetime
    date_updated: datetime

    @field_validator("date_created", "date_updated", mode="before")
    @classmethod
    def _timestamp_only(cls, value: Any) -> Any:
        # Numbers would otherwise be read as Unix epochs.
        if not isinstance(value, (str, datetime)):
            raise ValueError("expected an ISO-8601 timestamp")
        return value

    @field_validator("date_created", "date_updated")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class SettingsDocument(BaseModel):
    """Account preferences.  Keys this version does not know are dropped."""

    show_nsfw: Optional[bool] = None
    theme: Optional[str] = None
    default_sort_type: Optional[str] = None
    default_listing_type: Optional[str] = None
    interface_language: Optional[str] = None
    show_avatars: Optional[bool] = None
    send_notifications_to_email: Optional[bool] = None
    bot_account: Optional[bool] = None
    show_bot_accounts: Optional[bool] = None
    show_read_posts: Optional[bool] = None
    show_new_post_notifs: Optional[bool] = None
    discussion_languages: Optional[list[int]] = None
    email: Optional[str] = None
    matrix_user_id: Optional[str] = None


class CommunityEntry(BaseModel):
    name: str
    actor: str


class PersonEntry(BaseModel):
    username: str
    actor: str


class InfoDocument(BaseModel):
    """Relations and profile text fields."""

    communities_follows: list[CommunityEntry] = Field(default_factory=list)
    communities_blocks: list[CommunityEntry] = Field(default_factory=list)
    people_blocks: list[PersonEntry] = Field(default_factory=list)
    bio: Optional[str] = None
    display_name: Optional[str] = None
    avatar: Optional[str] = None
    banner: Optional[str] = None

    @field_validator("communities_follows", "communities_blocks", "people_blocks", mode="before")
    @classmethod
    def _empty_list(cls, value: Any) -> Any:
        # A YAML key with nothing after it loads as None.
        return [] if value is None else value


class ProfileDocument(BaseModel):
    """The whole stored document, in the order it is written."""

    meta: MetaDocument
    settings: SettingsDocument = Field(default_factory=SettingsDocument)
    info: InfoDocument = Field(default_factory=InfoDocument)

    @field_validator("settings", "info", mode="before")
    @classmethod
    def _empty_section(cls, value: Any) -> Any:
        return {} if value is None else value

    @classmethod
    def from_profile(cls, profile: Profile) -> ProfileDocument:
        info = profile.info
        return cls(
            meta=MetaDocument(
                username=profile.meta.username,
                instance=profile.meta.instance,
                date_created=profile.meta.date_created,
                date_updated=profile.meta.date_updated,
            ),
            settings=SettingsDocument(
                **{name: getattr(profile.settings, name) for name in SettingsDocument.model_fields}
            ),
            info=InfoDocument(
                communities_follows=[
                    CommunityEntry(name=c.name, actor=c.actor) for c in info.communities_follows
                ],
                communities_blocks=[
                    CommunityEntry(name=c.name, actor=c.actor) for c in info.communities_blocks
                ],
                people_blocks=[
                    PersonEntry(username=p.username, actor=p.actor) for p in info.people_blocks
                ],
                bio=info.bio,
                display_name=info.display_name,
                avatar=info.avatar,
                banner=info.banner,
            ),
        )

    def to_profile(self) -> Profile:
        info = self.info
        return Profile(
            meta=Meta(**self.meta.model_dump()),
            settings=Settings(**self.settings.model_dump()),
            info=Info(
                communities_follows=[Community(c.name, c.actor) for c in info.communities_follows],
                communities_blocks=[Community(c.name, c.actor) for c in info.communities_blocks],
                people_blocks=[Person(p.username, p.actor) for p in info.people_blocks],
                bio=info.bio,
                display_name=info.display_name,
                avatar=info.avatar,
                banner=info.banner,
            ),
        )
