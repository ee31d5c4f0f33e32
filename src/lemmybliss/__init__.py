"""lemmybliss: copy Lemmy account state between instances.

Public re-exports
-----------------

* **Client:** :class:`BlissClient`
* **Accounts:** :class:`Identity`, :class:`Session`
* **Configuration:** :class:`BlissConfig`
* **Errors:** Every :class:`BlissError` subclass and :class:`ErrorCode`
* **Models:** Profile, relation and result dataclasses and enums
* **Storage:** :class:`SnapshotStore`

Usage::

    from lemmybliss import BlissClient, Identity

    source = Identity("alice", "https://old.example")
    with BlissClient.login(source, "hunter2", "main") as client:
        client.pull()

    target = Identity("alice", "https://new.example")
    with BlissClient.login(target, "hunter2", "main") as client:
        result = client.push(subtractive=True)
"""

from __future__ import annotations

__version__ = "0.1.0"

# ── Client ─────────────────────────────────────────────────────────────
from lemmybliss.client import EXCLUDABLE_FIELDS, BlissClient

# ── Configuration ───────────────────────────────────────────────────────
from lemmybliss.config import DEFAULT_ASSET_MIMES, DEFAULT_PROFILES_DIR, BlissConfig

# ── Errors ──────────────────────────────────────────────────────────────
from lemmybliss.errors import (
    BlissAmbiguousOrMissingError,
    BlissAssetError,
    BlissAuthError,
    BlissCorruptFormatError,
    BlissError,
    BlissNetworkError,
    BlissNotFoundError,
    BlissPermissionError,
    BlissProfileNotFoundError,
    BlissRetryExhaustedError,
    BlissUploadError,
    BlissValidationError,
    ErrorCode,
)

# ── Models ──────────────────────────────────────────────────────────────
from lemmybliss.models import (
    BlissWarning,
    Community,
    ExecutionSummary,
    Info,
    Meta,
    Mutation,
    MutationAction,
    Person,
    Profile,
    PushResult,
    RelationKind,
    Settings,
)

# ── Accounts & storage ─────────────────────────────────────────────────
from lemmybliss.session import Identity, Session
from lemmybliss.store import SnapshotStore

# ── Public surface ──────────────────────────────────────────────────────

__all__ = [
    "__version__",
    # Client
    "BlissClient",
    "EXCLUDABLE_FIELDS",
    # Accounts
    "Identity",
    "Session",
    # Configuration
    "BlissConfig",
    "DEFAULT_ASSET_MIMES",
    "DEFAULT_PROFILES_DIR",
    # Error base + code enum
    "BlissError",
    "ErrorCode",
    # API / transport errors
    "BlissValidationError",
    "BlissAuthError",
    "BlissPermissionError",
    "BlissNotFoundError",
    "BlissRetryExhaustedError",
    "BlissNetworkError",
    # Storage errors
    "BlissProfileNotFoundError",
    "BlissCorruptFormatError",
    # Resolution errors
    "BlissAmbiguousOrMissingError",
    # Asset errors
    "BlissAssetError",
    "BlissUploadError",
    # Models: relations
    "Community",
    "Person",
    "RelationKind",
    # Models: profile
    "Info",
    "Settings",
    "Meta",
    "Profile",
    # Models: diff types
    "Mutation",
    "MutationAction",
    # Models: result types
    "ExecutionSummary",
    "PushResult",
    "BlissWarning",
    # Storage
    "SnapshotStore",
]
