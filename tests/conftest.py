"""Shared test fixtures for the lemmybliss test suite."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import httpx
import pytest

from lemmybliss.config import BlissConfig

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def make_config(profiles_dir: Path | str = "/tmp/lemmybliss-tests", **overrides) -> BlissConfig:
    """Return a BlissConfig tuned for fast, deterministic tests."""
    defaults: dict[str, Any] = dict(
        profiles_dir=profiles_dir,
        retry_max_attempts=3,
        retry_base_delay=0.0,
        retry_max_delay=0.0,
        retry_jitter=False,
    )
    defaults.update(overrides)
    return BlissConfig(**defaults)


def _json_response(status: int, body: Any) -> httpx.Response:
    return httpx.Response(status, json=body)


class FakeLemmy:
    """An in-memory Lemmy instance served through :class:`httpx.MockTransport`.

    Holds a catalogue of communities and people (as the instance's search
    would return them), one logged-in account, and a record of every call.
    Image URLs on any host can be registered in :attr:`images` to serve
    downloads.
    """

    def __init__(
        self,
        instance: str = "https://b.example/",
        *,
        username: str = "alice",
        password: str = "hunter2",
        jwt: str = "jwt-for-b-0001",
        message_per_second: float | None = 4,
    ) -> None:
        self.instance = instance
        self.username = username
        self.password = password
        self.jwt = jwt
        self.message_per_second = message_per_second
        self.communities: dict[int, dict[str, Any]] = {}
        self.people: dict[int, dict[str, Any]] = {}
        self.follows: list[int] = []
        self.community_blocks: list[int] = []
        self.person_blocks: list[int] = []
        self.local_user: dict[str, Any] = {
            "show_nsfw": False,
            "theme": "browser",
            "default_sort_type": "Active",
            "default_listing_type": "Subscribed",
            "interface_language": "en",
            "show_avatars": True,
            "send_notifications_to_email": False,
            "show_bot_accounts": True,
            "show_read_posts": True,
            "show_new_post_notifs": False,
            "email": "alice@example.org",
        }
        self.person: dict[str, Any] = {
            "id": 1,
            "name": username,
            "actor_id": f"{instance}u/{username}",
            "bio": None,
            "display_name": None,
            "avatar": None,
            "banner": None,
            "bot_account": False,
            "matrix_user_id": None,
        }
        self.discussion_languages: list[int] = [0, 37]
        self.images: dict[str, bytes] = {}
        self.calls: list[tuple[str, str]] = []
        self.saved_settings: list[dict[str, Any]] = []
        self.uploads: list[bytes] = []
        self.errors: dict[str, tuple[int, dict[str, Any]]] = {}
        # endpoint or absolute URL -> exceptions raised by the next calls
        self.faults: dict[str, list[Exception]] = {}
        self._next_id = 100

    # -- catalogue ---------------------------------------------------------

    def add_community(self, name: str, actor: str) -> int:
        self._next_id += 1
        self.communities[self._next_id] = {"id": self._next_id, "name": name, "actor_id": actor}
        return self._next_id

    def add_person(self, name: str, actor: str) -> int:
        self._next_id += 1
        self.people[self._next_id] = {"id": self._next_id, "name": name, "actor_id": actor}
        return self._next_id

    def actors(self, ids: list[int], table: dict[int, dict[str, Any]]) -> set[str]:
        return {table[i]["actor_id"] for i in ids}

    def mutation_calls(self) -> list[tuple[str, str]]:
        return [call for call in self.calls if call[1] in (
            "community/follow", "community/block", "user/block",
        )]

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))

    # -- request handling --------------------------------------------------

    def _raise_fault(self, key: str) -> None:
        pending = self.faults.get(key)
        if pending:
            raise pending.pop(0)

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self._raise_fault(url)
        if request.method == "GET" and url in self.images:
            self.calls.append(("GET", url))
            return httpx.Response(200, content=self.images[url])

        path = request.url.path
        if path.startswith("/api/v3/"):
            endpoint = path[len("/api/v3/"):]
        else:
            endpoint = path.lstrip("/")
        self.calls.append((request.method, endpoint))
        self._raise_fault(endpoint)

        if endpoint in self.errors:
            status, body = self.errors[endpoint]
            return _json_response(status, body)

        if endpoint == "user/login":
            body = json.loads(request.content)
            if body.get("password") != self.password:
                return _json_response(400, {"error": "incorrect_login"})
            return _json_response(200, {"jwt": self.jwt})

        if endpoint == "pictrs/image":
            if f"jwt={self.jwt}" not in request.headers.get("cookie", ""):
                return _json_response(401, {"msg": "not_logged_in"})
            self.uploads.append(request.content)
            name = f"upload-{len(self.uploads)}.png"
            self.images[f"{self.instance}pictrs/image/{name}"] = request.content
            return _json_response(200, {"msg": "ok", "files": [{"file": name}]})

        if request.headers.get("authorization") != f"Bearer {self.jwt}":
            return _json_response(401, {"error": "not_logged_in"})

        if endpoint == "site":
            return _json_response(200, self.site())
        if endpoint == "search":
            return _json_response(200, self.search(request.url.params))
        if endpoint == "user/save_user_settings":
            body = json.loads(request.content)
            self.saved_settings.append(body)
            for key, value in body.items():
                if key in self.person:
                    self.person[key] = value
                elif key == "discussion_languages":
                    self.discussion_languages = value
                else:
                    self.local_user[key] = value
            return _json_response(200, {"jwt": self.jwt})
        if endpoint == "community/follow":
            body = json.loads(request.content)
            return self._toggle(self.follows, self.communities, body["community_id"], body["follow"])
        if endpoint == "community/block":
            body = json.loads(request.content)
            return self._toggle(
                self.community_blocks, self.communities, body["community_id"], body["block"],
            )
        if endpoint == "user/block":
            body = json.loads(request.content)
            return self._toggle(self.person_blocks, self.people, body["person_id"], body["block"])
        return _json_response(404, {"error": "unknown_endpoint"})

    def _toggle(
        self,
        relation: list[int],
        table: dict[int, dict[str, Any]],
        target_id: int,
        on: bool,
    ) -> httpx.Response:
        if target_id not in table:
            return _json_response(404, {"error": "couldnt_find_object"})
        if on and target_id not in relation:
            relation.append(target_id)
        elif not on and target_id in relation:
            relation.remove(target_id)
        return _json_response(200, {})

    def site(self) -> dict[str, Any]:
        limits = {}
        if self.message_per_second is not None:
            limits["message_per_second"] = self.message_per_second
        return {
            "site_view": {"local_site_rate_limit": limits},
            "my_user": {
                "local_user_view": {
                    "local_user": dict(self.local_user),
                    "person": dict(self.person),
                },
                "follows": [{"community": self.communities[i]} for i in self.follows],
                "community_blocks": [
                    {"community": self.communities[i]} for i in self.community_blocks
                ],
                "person_blocks": [{"target": self.people[i]} for i in self.person_blocks],
                "discussion_languages": list(self.discussion_languages),
            },
        }

    def search(self, params: httpx.QueryParams) -> dict[str, Any]:
        query = params.get("q", "")
        if params.get("type_") == "Users":
            users = [{"person": p} for p in self.people.values() if p["name"] == query]
            return {"type_": "Users", "communities": [], "users": users}
        communities = [
            {"community": c} for c in self.communities.values() if c["name"] == query
        ]
        return {"type_": "Communities", "communities": communities, "users": []}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def config(tmp_path: Path) -> BlissConfig:
    """Fast test configuration with an isolated profile directory."""
    return make_config(profiles_dir=tmp_path / "profiles")


@pytest.fixture
def source() -> FakeLemmy:
    """The instance accounts are pulled from."""
    return FakeLemmy("https://a.example/", jwt="jwt-for-a-0001")


@pytest.fixture
def destination() -> FakeLemmy:
    """The instance profiles are pushed to."""
    return FakeLemmy("https://b.example/", jwt="jwt-for-b-0001")


@pytest.fixture
def sleeps() -> list[float]:
    """Collects the pacing intervals requested by the executor."""
    return []


@pytest.fixture
def fake_lemmy() -> type[FakeLemmy]:
    """The :class:`FakeLemmy` class, for tests that need extra instances."""
    return FakeLemmy


@pytest.fixture
def png_bytes() -> bytes:
    """A minimal payload that sniffs as ``image/png``."""
    return PNG_BYTES
