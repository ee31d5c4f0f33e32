"""Tests for profile conversion (lemmybliss.profile) and the snapshot store."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import yaml
from pydantic import ValidationError

from lemmybliss.errors import (
    BlissAuthError,
    BlissCorruptFormatError,
    BlissProfileNotFoundError,
    BlissValidationError,
)
from lemmybliss.models import Community, Info, Meta, Person, Profile, Settings
from lemmybliss.profile import (
    info_from_site,
    profile_from_document,
    profile_from_site,
    profile_to_document,
    rate_limit_from_site,
    settings_from_site,
    settings_payload,
)
from lemmybliss.store import SnapshotStore

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _profile(**info) -> Profile:
    return Profile(
        meta=Meta("alice", "https://a.example/", T0, T0),
        settings=Settings(theme="darkly", show_nsfw=False, discussion_languages=[0, 37]),
        info=Info(**info),
    )


def _site(destination) -> dict:
    cid = destination.add_community("tech", "https://a.example/c/tech")
    sid = destination.add_community("spam", "https://c.example/c/spam")
    pid = destination.add_person("troll", "https://c.example/u/troll")
    destination.follows.append(cid)
    destination.community_blocks.append(sid)
    destination.person_blocks.append(pid)
    destination.person.update(bio="hello", display_name="Alice", avatar="https://a.example/pictrs/image/a.png")
    destination.person["matrix_user_id"] = "@alice:matrix.org"
    return destination.site()


# =========================================================================
# Live payload -> models
# =========================================================================

class TestFromSite:
    def test_info(self, destination):
        info = info_from_site(_site(destination))
        assert info.communities_follows == [Community("tech", "https://a.example/c/tech")]
        assert info.communities_blocks == [Community("spam", "https://c.example/c/spam")]
        assert info.people_blocks == [Person("troll", "https://c.example/u/troll")]
        assert (info.bio, info.display_name) == ("hello", "Alice")
        assert info.avatar == "https://a.example/pictrs/image/a.png"
        assert info.banner is None

    def test_live_ids_kept(self, destination):
        site = _site(destination)
        info = info_from_site(site)
        assert info.communities_follows[0].id == destination.follows[0]

    def test_settings(self, destination):
        settings = settings_from_site(_site(destination))
        assert settings.theme == "browser"
        assert settings.email == "alice@example.org"
        assert settings.matrix_user_id == "@alice:matrix.org"
        assert settings.bot_account is False
        assert settings.discussion_languages == [0, 37]

    def test_missing_my_user(self):
        with pytest.raises(BlissAuthError):
            info_from_site({"site_view": {}})

    def test_rate_limit(self, destination):
        assert rate_limit_from_site(destination.site()) == 4.0
        assert rate_limit_from_site({"site_view": {"local_site_rate_limit": {}}}) is None
        assert rate_limit_from_site({}) is None

    def test_profile_from_site(self, destination):
        profile = profile_from_site("alice", "https://b.example/", _site(destination), now=T0)
        assert profile.meta == Meta("alice", "https://b.example/", T0, T0)


class TestSettingsPayload:
    def test_includes_text_fields(self):
        payload = settings_payload(_profile(bio="hi", avatar="https://x/pictrs/image/1.png"))
        assert payload["theme"] == "darkly"
        assert payload["bio"] == "hi"
        assert payload["avatar"] == "https://x/pictrs/image/1.png"
        assert payload["display_name"] is None
        assert "communities_follows" not in payload


# =========================================================================
# Document layout
# =========================================================================

class TestDocument:
    def test_round_trip(self):
        profile = _profile(
            communities_follows=[Community("tech", "https://a.example/c/tech", id=9)],
            people_blocks=[Person("troll", "https://c.example/u/troll", id=3)],
            bio="hi",
        )
        restored = profile_from_document(profile_to_document(profile))
        assert restored == profile

    def test_ids_not_stored(self):
        doc = profile_to_document(_profile(communities_follows=[Community("t", "https://a/c/t", id=9)]))
        assert doc["info"]["communities_follows"] == [{"name": "t", "actor": "https://a/c/t"}]

    def test_unknown_settings_ignored(self):
        doc = profile_to_document(_profile())
        doc["settings"]["future_flag"] = True
        assert profile_from_document(doc).settings.theme == "darkly"

    def test_naive_timestamp_is_utc(self):
        doc = profile_to_document(_profile())
        doc["meta"]["date_created"] = "2026-03-01T12:00:00"
        assert profile_from_document(doc).meta.date_created == T0

    @pytest.mark.parametrize(
        "mutate",
        [
            lambda d: d.pop("meta"),
            lambda d: d["meta"].update(date_created=12),
            lambda d: d["meta"].update(date_updated="yesterday"),
            lambda d: d["info"].update(communities_follows=[{"name": "x"}]),
            lambda d: d["info"].update(bio=["not", "text"]),
            lambda d: d.update(settings=[1, 2]),
        ],
    )
    def test_schema_violations(self, mutate):
        doc = profile_to_document(_profile())
        mutate(doc)
        with pytest.raises(ValidationError):
            profile_from_document(doc)

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("show_nsfw", "definitely"),
            ("theme", [1, 2]),
            ("discussion_languages", "abc"),
            ("discussion_languages", ["en"]),
            ("email", 42),
        ],
    )
    def test_settings_type_violations(self, field, value):
        doc = profile_to_document(_profile())
        doc["settings"][field] = value
        with pytest.raises(ValidationError) as exc_info:
            profile_from_document(doc)
        assert exc_info.value.errors()[0]["loc"][:2] == ("settings", field)

    def test_empty_sections_load(self):
        doc = profile_to_document(_profile())
        doc["settings"] = None
        doc["info"]["people_blocks"] = None
        profile = profile_from_document(doc)
        assert profile.settings == Settings()
        assert profile.info.people_blocks == []

    def test_not_a_mapping(self):
        with pytest.raises(ValidationError):
            profile_from_document(["a"])


# =========================================================================
# SnapshotStore
# =========================================================================

class TestSnapshotStore:
    def test_save_then_load(self, tmp_path):
        store = SnapshotStore(tmp_path)
        profile = _profile(communities_follows=[Community("tech", "https://a.example/c/tech")])
        saved = store.save("main", profile, now=T0)
        assert store.load("main") == saved
        assert (tmp_path / "main" / "profile.yml").is_file()

    def test_document_is_yaml(self, tmp_path):
        store = SnapshotStore(tmp_path)
        store.save("main", _profile(bio="hi"), now=T0)
        doc = yaml.safe_load((tmp_path / "main" / "profile.yml").read_text())
        assert doc["info"]["bio"] == "hi"
        assert list(doc) == ["meta", "settings", "info"]

    def test_fresh_name_has_equal_timestamps(self, tmp_path):
        saved = SnapshotStore(tmp_path).save("main", _profile(), now=T0 + timedelta(days=1))
        assert saved.meta.date_created == saved.meta.date_updated == T0 + timedelta(days=1)

    def test_merge_keeps_created_and_advances_updated(self, tmp_path):
        store = SnapshotStore(tmp_path)
        first = store.save("main", _profile(), now=T0)
        later = T0 + timedelta(hours=2)
        second = store.save("main", _profile(bio="new"), now=later)
        assert second.meta.date_created == first.meta.date_created
        assert second.meta.date_updated == later
        assert store.load("main").info.bio == "new"

    def test_updated_strictly_increases_with_frozen_clock(self, tmp_path):
        store = SnapshotStore(tmp_path)
        first = store.save("main", _profile(), now=T0)
        second = store.save("main", _profile(), now=T0)
        assert second.meta.date_updated > first.meta.date_updated

    def test_clock_going_backwards(self, tmp_path):
        store = SnapshotStore(tmp_path)
        store.save("main", _profile(), now=T0)
        second = store.save("main", _profile(), now=T0 - timedelta(days=1))
        assert second.meta.date_updated > T0

    def test_load_missing(self, tmp_path):
        with pytest.raises(BlissProfileNotFoundError) as exc_info:
            SnapshotStore(tmp_path).load("nope")
        assert exc_info.value.context["profile"] == "nope"

    def test_load_invalid_yaml(self, tmp_path):
        (tmp_path / "bad").mkdir()
        (tmp_path / "bad" / "profile.yml").write_text("meta: [unclosed\n")
        with pytest.raises(BlissCorruptFormatError):
            SnapshotStore(tmp_path).load("bad")

    def test_load_wrong_schema(self, tmp_path):
        (tmp_path / "bad").mkdir()
        (tmp_path / "bad" / "profile.yml").write_text("just a string\n")
        with pytest.raises(BlissCorruptFormatError):
            SnapshotStore(tmp_path).load("bad")

    def test_load_invalid_utf8(self, tmp_path):
        (tmp_path / "bad").mkdir()
        (tmp_path / "bad" / "profile.yml").write_bytes(b"meta: \xff\xfe\x00broken\n")
        with pytest.raises(BlissCorruptFormatError) as exc_info:
            SnapshotStore(tmp_path).load("bad")
        assert isinstance(exc_info.value.cause, UnicodeDecodeError)

    def test_load_document_path_is_directory(self, tmp_path):
        (tmp_path / "bad" / "profile.yml").mkdir(parents=True)
        with pytest.raises(BlissCorruptFormatError):
            SnapshotStore(tmp_path).load("bad")

    def test_load_settings_of_wrong_type(self, tmp_path):
        store = SnapshotStore(tmp_path)
        store.save("main", _profile(), now=T0)
        path = tmp_path / "main" / "profile.yml"
        doc = yaml.safe_load(path.read_text())
        doc["settings"].update(show_nsfw="definitely", theme=[1, 2], discussion_languages="abc")
        path.write_text(yaml.safe_dump(doc))
        with pytest.raises(BlissCorruptFormatError) as exc_info:
            store.load("main")
        assert isinstance(exc_info.value.cause, ValidationError)

    def test_save_over_undecodable_snapshot(self, tmp_path):
        (tmp_path / "bad").mkdir()
        (tmp_path / "bad" / "profile.yml").write_bytes(b"\xff\xfe")
        store = SnapshotStore(tmp_path)
        store.save("bad", _profile(), now=T0)
        assert store.load("bad").meta.date_created == T0

    def test_failed_write_leaves_no_temp_file(self, tmp_path, monkeypatch):
        def fail(fd):
            raise OSError("disk full")

        monkeypatch.setattr("lemmybliss.store.os.fsync", fail)
        with pytest.raises(OSError, match="disk full"):
            SnapshotStore(tmp_path).save("main", _profile(), now=T0)
        assert list((tmp_path / "main").iterdir()) == []

    def test_save_over_corrupt_snapshot(self, tmp_path):
        (tmp_path / "bad").mkdir()
        (tmp_path / "bad" / "profile.yml").write_text("{{{")
        saved = SnapshotStore(tmp_path).save("bad", _profile(), now=T0)
        assert saved.meta.date_created == T0

    def test_no_temp_file_left(self, tmp_path):
        SnapshotStore(tmp_path).save("main", _profile(), now=T0)
        assert sorted(p.name for p in (tmp_path / "main").iterdir()) == ["profile.yml"]

    @pytest.mark.parametrize("name", ["", ".", "..", "a/b", "..\\x"])
    def test_invalid_names(self, tmp_path, name):
        with pytest.raises(BlissValidationError):
            SnapshotStore(tmp_path).profile_dir(name)

    def test_exists_and_list(self, tmp_path):
        store = SnapshotStore(tmp_path)
        assert store.list_profiles() == []
        store.save("work", _profile(), now=T0)
        store.save("home", _profile(), now=T0)
        (tmp_path / "stray").mkdir()
        assert store.exists("work")
        assert not store.exists("stray")
        assert store.list_profiles() == ["home", "work"]

    def test_list_without_base_dir(self, tmp_path):
        assert SnapshotStore(tmp_path / "missing").list_profiles() == []


class TestAssets:
    def test_save_load_delete(self, tmp_path):
        store = SnapshotStore(tmp_path)
        store.save_asset("main", "avatar", b"img")
        assert store.load_asset("main", "avatar") == b"img"
        assert store.load_asset("main", "banner") is None
        store.delete_asset("main", "avatar")
        store.delete_asset("main", "avatar")
        assert store.load_asset("main", "avatar") is None

    def test_unknown_kind(self, tmp_path):
        with pytest.raises(BlissValidationError):
            SnapshotStore(tmp_path).save_asset("main", "icon", b"x")

    def test_assets_independent_of_document(self, tmp_path):
        store = SnapshotStore(tmp_path)
        store.save_asset("main", "banner", b"b")
        assert not store.exists("main")
        store.save("main", _profile(), now=T0)
        assert store.load_asset("main", "banner") == b"b"
