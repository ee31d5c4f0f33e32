"""Snapshot store: profiles on disk, addressed by name.

Layout under the base directory (``~/.bliss/profiles`` by default)::

    <base>/<profile name>/profile.yml   the structured document
    <base>/<profile name>/avatar        optional raw avatar bytes
    <base>/<profile name>/banner        optional raw banner bytes

Writes go to a temporary sibling that is then moved over the target with
:func:`os.replace`, so a reader sees either the old or the new file, never
a partial one.  The binary assets are independent of the document and a
missing asset is not an error.
"""

from __future__ import annotations

import os
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path

import yaml
from pydantic import ValidationError

from lemmybliss.errors import (
    BlissCorruptFormatError,
    BlissProfileNotFoundError,
    BlissValidationError,
)
from lemmybliss.models import Profile
from lemmybliss.observability import get_logger
from lemmybliss.profile import profile_from_document, profile_to_document

log = get_logger("lemmybliss.store")

PROFILE_FILENAME = "profile.yml"
ASSET_KINDS: frozenset[str] = frozenset({"avatar", "banner"})


def _atomic_write(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        with open(tmp_path, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


class SnapshotStore:
    """Load and save profiles under *base_dir*.

    Parameters
    ----------
    base_dir:
        Directory holding one sub-directory per profile.
    """

    def __init__(self, base_dir: Path | str) -> None:
        self.base_dir = Path(base_dir).expanduser()

    # -- paths -------------------------------------------------------------

    def profile_dir(self, name: str) -> Path:
        """Return the directory of profile *name*.

        Raises
        ------
        BlissValidationError
            If *name* is empty or not a single path component.
        """
        if (
            not name
            or name in (".", "..")
            or "/" in name
            or "\\" in name
            or os.sep in name
        ):
            raise BlissValidationError(
                message=f"Invalid profile name: {name!r}",
                context={"field": "profile"},
            )
        return self.base_dir / name

    def _document_path(self, name: str) -> Path:
        return self.profile_dir(name) / PROFILE_FILENAME

    def _asset_path(self, name: str, kind: str) -> Path:
        if kind not in ASSET_KINDS:
            raise BlissValidationError(
                message=f"Unknown asset kind: {kind!r}",
                context={"field": "asset", "allowed": sorted(ASSET_KINDS)},
            )
        return self.profile_dir(name) / kind

    # -- documents ---------------------------------------------------------

    def exists(self, name: str) -> bool:
        return self._document_path(name).is_file()

    def list_profiles(self) -> list[str]:
        """Return the names of all stored profiles, sorted."""
        if not self.base_dir.is_dir():
            return []
        return sorted(
            entry.name
            for entry in self.base_dir.iterdir()
            if (entry / PROFILE_FILENAME).is_file()
        )

    def load(self, name: str) -> Profile:
        """Load profile *name*.

        Raises
        ------
        BlissProfileNotFoundError
            If no document is stored under *name*.
        BlissCorruptFormatError
            If the document cannot be read as UTF-8 text, is not valid YAML,
            or does not match :class:`~lemmybliss.document.ProfileDocument`.
        """
        path = self._document_path(name)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise BlissProfileNotFoundError(
                message=f"No local profile named {name!r}",
                context={"profile": name, "path": str(path)},
                cause=exc,
            ) from exc
        except (UnicodeDecodeError, OSError) as exc:
            raise BlissCorruptFormatError(
                message=f"Could not read profile {name!r}: {exc}",
                context={"profile": name, "path": str(path), "reason": repr(exc)},
                cause=exc,
            ) from exc

        try:
            document = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise BlissCorruptFormatError(
                message=f"Could not read profile {name!r}: invalid YAML",
                context={"profile": name, "path": str(path), "reason": str(exc)},
                cause=exc,
            ) from exc

        try:
            return profile_from_document(document)
        except ValidationError as exc:
            raise BlissCorruptFormatError(
                message=f"Could not read profile {name!r}: {exc.error_count()} schema errors",
                context={"profile": name, "path": str(path), "reason": repr(exc)},
                cause=exc,
            ) from exc

    def save(self, name: str, profile: Profile, now: datetime | None = None) -> Profile:
        """Write *profile* under *name* and return what was written.

        If a readable snapshot already exists, its ``date_created`` is kept
        and ``date_updated`` is advanced to *now* (or just past the prior
        value if the clock has not moved).  A fresh name gets
        ``date_created == date_updated``.  An unreadable prior snapshot is
        overwritten.
        """
        stamp = now or datetime.now(timezone.utc)
        try:
            previous: Profile | None = self.load(name)
        except BlissProfileNotFoundError:
            previous = None
        except BlissCorruptFormatError as exc:
            log.warning("Overwriting unreadable profile %s: %s", name, exc.message)
            previous = None

        if previous is None:
            meta = replace(profile.meta, date_created=stamp, date_updated=stamp)
        else:
            updated = max(stamp, previous.meta.date_updated + timedelta(microseconds=1))
            meta = replace(
                profile.meta,
                date_created=previous.meta.date_created,
                date_updated=updated,
            )
        saved = replace(profile, meta=meta)

        text = yaml.safe_dump(
            profile_to_document(saved),
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )
        _atomic_write(self._document_path(name), text.encode("utf-8"))
        log.debug("Saved profile %s", name)
        return saved

    # -- assets ------------------------------------------------------------

    def save_asset(self, name: str, kind: str, data: bytes) -> Path:
        """Store the raw *kind* (``avatar`` / ``banner``) bytes."""
        path = self._asset_path(name, kind)
        _atomic_write(path, data)
        return path

    def load_asset(self, name: str, kind: str) -> bytes | None:
        """Return the stored *kind* bytes, or ``None`` if absent."""
        path = self._asset_path(name, kind)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def delete_asset(self, name: str, kind: str) -> None:
        """Remove a stored asset; absent assets are ignored."""
        self._asset_path(name, kind).unlink(missing_ok=True)
