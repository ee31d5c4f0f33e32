"""The lemmybliss client: pull an account into a profile, push it back.

:class:`BlissClient` owns one authenticated :class:`Session` and wires the
API wrappers, identity resolver, diff planner, executor and snapshot store
together.  It can only be obtained through :meth:`BlissClient.login`.

Usage::

    from lemmybliss import BlissClient, Identity

    source = Identity("alice", "https://old.example")
    with BlissClient.login(source, password, "main") as client:
        client.pull()

    target = Identity("alice", "https://new.example")
    with BlissClient.login(target, password, "main") as client:
        result = client.push(subtractive=False, include_extra=["avatar"])
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from dataclasses import replace
from typing import Any

import httpx

from lemmybliss.assets import validate_asset
from lemmybliss.config import BlissConfig
from lemmybliss.diff.executor import MutationExecutor
from lemmybliss.diff.planner import DiffPlanner
from lemmybliss.errors import BlissError, ErrorCode
from lemmybliss.identity import IdentityResolver
from lemmybliss.lemmy_api.account import AccountAPI
from lemmybliss.lemmy_api.images import ImageAPI
from lemmybliss.lemmy_api.rate_limit import Pacer, interval_from_rate
from lemmybliss.lemmy_api.transport import LemmyTransport
from lemmybliss.models import (
    BlissWarning,
    Mutation,
    MutationAction,
    Person,
    Profile,
    PushResult,
    RelationKind,
)
from lemmybliss.observability import get_logger
from lemmybliss.profile import (
    info_from_site,
    profile_from_site,
    rate_limit_from_site,
    settings_payload,
)
from lemmybliss.session import Identity, Session
from lemmybliss.store import ASSET_KINDS, SnapshotStore

log = get_logger("lemmybliss.client")

# Fields a push may leave untouched on the destination, and where they live.
EXCLUDABLE_FIELDS: dict[str, str] = {
    "email": "settings",
    "matrix_user_id": "settings",
    "bio": "info",
    "display_name": "info",
    "avatar": "info",
    "banner": "info",
}


def apply_exclusions(
    profile: Profile,
    exclude: Iterable[str],
) -> tuple[Profile, list[BlissWarning]]:
    """Return a copy of *profile* with the excluded fields set to ``None``.

    Unrecognised names produce an ``UNKNOWN_FIELD`` warning and are
    otherwise ignored.
    """
    warnings: list[BlissWarning] = []
    settings_changes: dict[str, Any] = {}
    info_changes: dict[str, Any] = {}
    for name in exclude:
        section = EXCLUDABLE_FIELDS.get(name)
        if section == "settings":
            settings_changes[name] = None
        elif section == "info":
            info_changes[name] = None
        else:
            log.warning("Ignoring unknown field to exclude: %s", name)
            warnings.append(
                BlissWarning(
                    code=ErrorCode.UNKNOWN_FIELD,
                    message=f"Unknown field to exclude: {name!r}",
                    context={"field": name, "allowed": sorted(EXCLUDABLE_FIELDS)},
                )
            )
    return (
        replace(
            profile,
            settings=replace(profile.settings, **settings_changes),
            info=replace(profile.info, **info_changes),
        ),
        warnings,
    )


class BlissClient:
    """Pull and push one account against one local profile.

    Do not instantiate directly; use :meth:`login`.

    Parameters
    ----------
    session:
        The authenticated session.
    profile_name:
        Name of the local profile to read and write.
    config:
        Configuration shared by all components.
    transport:
        The transport the API wrappers use; closed by :meth:`close`.
    sleep:
        Sleep function used to pace mutations.
    """

    def __init__(
        self,
        session: Session,
        profile_name: str,
        config: BlissConfig,
        transport: LemmyTransport,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._session = session
        self._profile_name = profile_name
        self._config = config
        self._transport = transport
        self._sleep = sleep
        self._account = AccountAPI(transport)
        self._images = ImageAPI(transport)
        self._resolver = IdentityResolver(self._account, config.metrics)
        self._planner = DiffPlanner()
        self._executor = MutationExecutor(config)
        self._store = SnapshotStore(config.profiles_dir)

    @classmethod
    def login(
        cls,
        identity: Identity,
        password: str,
        profile_name: str,
        totp_token: str | None = None,
        config: BlissConfig | None = None,
        *,
        http_client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> BlissClient:
        """Log in as *identity* and return a ready client.

        Parameters
        ----------
        identity:
            The account to log in as.
        password:
            Account password.  Never logged.
        profile_name:
            Local profile to pull into or push from.
        totp_token:
            Optional two-factor token.
        config:
            Configuration; defaults to ``BlissConfig()``.
        http_client:
            Optional pre-built :class:`httpx.Client` (tests).
        sleep:
            Sleep function used to pace mutations (tests).

        Raises
        ------
        BlissAuthError
            If the credentials are rejected.
        BlissNetworkError
            If the instance cannot be reached.
        """
        config = config or BlissConfig()
        transport = LemmyTransport(identity.instance, config, client=http_client)
        try:
            session = identity.login(AccountAPI(transport), password, totp_token)
        except BlissError:
            transport.close()
            raise
        log.info("Logged in as %s", session)
        return cls(session, profile_name, config, transport, sleep=sleep)

    @property
    def session(self) -> Session:
        return self._session

    @property
    def store(self) -> SnapshotStore:
        return self._store

    # ------------------------------------------------------------------
    # Pull
    # ------------------------------------------------------------------

    def pull(self) -> Profile:
        """Capture the live account into the local profile.

        Every tracked field is overwritten.  Avatar and banner images are
        downloaded next to the document; a failed download is logged and
        skipped.

        Returns
        -------
        Profile
            The profile as saved (with merged timestamps).
        """
        log.info("Pulling %s to local profile %s", self._session, self._profile_name)
        site = self._account.site(self._session)
        profile = profile_from_site(self._session.username, self._session.instance, site)

        for kind in sorted(ASSET_KINDS):
            url = getattr(profile.info, kind)
            try:
                data = self._images.download(url)
            except BlissError as exc:
                log.warning("Could not download %s: %s", kind, exc.message)
                continue
            if data:
                self._store.save_asset(self._profile_name, kind, data)
            else:
                self._store.delete_asset(self._profile_name, kind)

        saved = self._store.save(self._profile_name, profile)
        info = saved.info
        log.info(
            "Pulled successfully",
            extra={
                "extra_fields": {
                    "op": "pull",
                    "profile": self._profile_name,
                    "follows": len(info.communities_follows),
                    "community_blocks": len(info.communities_blocks),
                    "person_blocks": len(info.people_blocks),
                }
            },
        )
        return saved

    # ------------------------------------------------------------------
    # Push
    # ------------------------------------------------------------------

    def push(
        self,
        subtractive: bool = False,
        exclude: Iterable[str] = (),
        include_extra: Iterable[str] = (),
    ) -> PushResult:
        """Replay the local profile onto the live account.

        Parameters
        ----------
        subtractive:
            Also unfollow/unblock destination relations that are not in the
            profile, converging the destination to the profile exactly.
        exclude:
            Fields to leave untouched on the destination: ``email``,
            ``matrix_user_id``, ``bio``, ``display_name``, ``avatar``,
            ``banner``.
        include_extra:
            Stored assets to upload (``avatar``, ``banner``); the uploaded
            URL replaces the one recorded in the profile.

        Returns
        -------
        PushResult

        Raises
        ------
        BlissProfileNotFoundError, BlissCorruptFormatError
            If the profile cannot be loaded.
        BlissError
            Any failure while pushing settings or reading the destination's
            live state.  Failures of individual relation changes are only
            logged.
        """
        log.info("Pushing %s from local profile %s", self._session, self._profile_name)
        profile = self._store.load(self._profile_name)
        profile, warnings = apply_exclusions(profile, exclude)
        profile = self._upload_extras(profile, include_extra, warnings)

        self._push_settings(profile)

        site = self._account.site(self._session)
        current = info_from_site(site)
        interval = interval_from_rate(
            rate_limit_from_site(site),
            fallback=self._config.fallback_messages_per_second,
        )
        plan = self._planner.plan(profile.info, current, subtractive=subtractive)
        log.info(
            "Applying %d relation changes", len(plan),
            extra={
                "extra_fields": {
                    "op": "push",
                    "subtractive": subtractive,
                    "interval_s": interval,
                }
            },
        )
        summary = self._executor.execute(plan, self._apply, Pacer(interval, self._sleep))
        log.info("Pushed successfully")
        return PushResult(
            settings_pushed=True,
            mutations_planned=len(plan),
            summary=summary,
            warnings=warnings,
        )

    def _upload_extras(
        self,
        profile: Profile,
        include_extra: Iterable[str],
        warnings: list[BlissWarning],
    ) -> Profile:
        changes: dict[str, str] = {}
        for kind in include_extra:
            if kind not in ASSET_KINDS:
                log.warning("Ignoring unknown extra: %s", kind)
                warnings.append(
                    BlissWarning(
                        code=ErrorCode.UNKNOWN_FIELD,
                        message=f"Unknown extra to include: {kind!r}",
                        context={"field": kind, "allowed": sorted(ASSET_KINDS)},
                    )
                )
                continue
            data = self._store.load_asset(self._profile_name, kind)
            if data is None:
                log.warning("No stored %s for profile %s", kind, self._profile_name)
                warnings.append(
                    BlissWarning(
                        code=ErrorCode.ASSET_ERROR,
                        message=f"No stored {kind} in profile {self._profile_name!r}",
                        context={"asset": kind},
                    )
                )
                continue
            try:
                mime_type = validate_asset(kind, data, self._config)
                url = self._images.upload(self._session, data, mime_type)
            except BlissError as exc:
                log.warning("Skipping %s upload: %s", kind, exc.message)
                warnings.append(
                    BlissWarning(code=exc.code, message=exc.message, context=exc.context)
                )
                continue
            log.info("Uploaded %s", kind)
            changes[kind] = url
        if not changes:
            return profile
        return replace(profile, info=replace(profile.info, **changes))

    def _push_settings(self, profile: Profile) -> None:
        log.info("Uploading settings...")
        self._account.save_user_settings(self._session, settings_payload(profile))
        log.info("Successfully uploaded settings")

    def _apply(self, mutation: Mutation) -> None:
        """Resolve the target's destination id and send one toggle call."""
        target = mutation.target
        add = mutation.action is MutationAction.ADD
        # Removal targets come from the destination's own state and carry
        # an id valid there.
        if not add and target.id is not None:
            target_id = target.id
        elif isinstance(target, Person):
            target_id = self._resolver.resolve_person(self._session, target)
        else:
            target_id = self._resolver.resolve_community(self._session, target, mutation.kind)

        if mutation.kind is RelationKind.COMMUNITY_FOLLOW:
            self._account.follow_community(self._session, target_id, add)
        elif mutation.kind is RelationKind.COMMUNITY_BLOCK:
            self._account.block_community(self._session, target_id, add)
        else:
            self._account.block_person(self._session, target_id, add)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._transport.close()

    def __enter__(self) -> BlissClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
