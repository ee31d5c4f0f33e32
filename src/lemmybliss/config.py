"""Runtime configuration for lemmybliss.

:class:`BlissConfig` is a plain dataclass that captures every tuneable knob
of the synchronizer.  One instance is shared by the transport, the API
wrappers, the mutation executor and the snapshot store.

The module-level constant :data:`DEFAULT_ASSET_MIMES` defines which image
types may be uploaded as avatar or banner.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_ASSET_MIMES: list[str] = [
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
]
"""MIME types accepted for avatar and banner uploads."""

DEFAULT_PROFILES_DIR: Path = Path.home() / ".bliss" / "profiles"
"""Base directory holding one sub-directory per saved profile."""


# ---------------------------------------------------------------------------
# Configuration dataclass
# ---------------------------------------------------------------------------

@dataclass
class BlissConfig:
    """Complete configuration for a lemmybliss run.

    Every parameter has a default, so ``BlissConfig()`` is a working
    configuration.

    Parameters
    ----------
    api_base:
        Path prefix of the Lemmy HTTP API, joined onto the instance URL.
    timeout_seconds:
        Per-request timeout handed to httpx.
    http_proxy:
        Proxy URL for all requests, if any.
    user_agent:
        ``User-Agent`` header sent with every request.
    retry_max_attempts, retry_base_delay, retry_max_delay, retry_jitter:
        Shape of the per-request :class:`~lemmybliss.lemmy_api.retries.RetryPolicy`
        applied to 429, 5xx and network failures.
    fallback_messages_per_second:
        Rate used to pace mutations when the destination does not publish
        a usable ``message_per_second`` limit.
    profiles_dir:
        Base directory of the snapshot store.
    asset_max_size_bytes:
        Maximum size of an avatar or banner upload.  Default is 5 MiB.
    asset_allowed_mimes:
        MIME types accepted for avatar and banner uploads.
    metrics:
        Optional :class:`~lemmybliss.observability.MetricsHook` backend.
    debug_dump_payload:
        Print every request and response, credentials redacted, to stderr.
    """

    # ── API ─────────────────────────────────────────────────────────────
    api_base: str = "/api/v3"

    # ── HTTP ────────────────────────────────────────────────────────────
    timeout_seconds: float = 30.0

    http_proxy: str | None = None

    user_agent: str = "lemmybliss"

    # ── Retry & rate ────────────────────────────────────────────────────
    retry_max_attempts: int = 3

    retry_base_delay: float = 1.0

    retry_max_delay: float = 30.0

    retry_jitter: bool = True

    fallback_messages_per_second: float = 1.0

    # ── Storage ─────────────────────────────────────────────────────────
    profiles_dir: Path = field(default_factory=lambda: DEFAULT_PROFILES_DIR)

    # ── Assets ──────────────────────────────────────────────────────────
    asset_max_size_bytes: int = 5 * 1024 * 1024  # 5 MiB

    asset_allowed_mimes: list[str] = field(
        default_factory=lambda: list(DEFAULT_ASSET_MIMES),
    )

    # ── Observability ──────────────────────────────────────────────────
    metrics: Any | None = None

    # ── Debug ───────────────────────────────────────────────────────────
    debug_dump_payload: bool = False

    def __post_init__(self) -> None:
        self.profiles_dir = Path(self.profiles_dir).expanduser()
        if not self.api_base.startswith("/"):
            raise ValueError(f"api_base must start with '/', got {self.api_base!r}")
        for name, lowest, inclusive in _BOUNDS:
            value = getattr(self, name)
            if value < lowest or (value == lowest and not inclusive):
                op = ">=" if inclusive else ">"
                raise ValueError(f"{name} must be {op} {lowest}, got {value}")


# (field, lower bound, bound allowed)
_BOUNDS: tuple[tuple[str, float, bool], ...] = (
    ("retry_max_attempts", 1, True),
    ("retry_base_delay", 0, True),
    ("retry_max_delay", 0, True),
    ("fallback_messages_per_second", 0, False),
    ("timeout_seconds", 0, False),
    ("asset_max_size_bytes", 0, False),
)


def validate_instance_url(url: str) -> str:
    """Return *url* normalised to end with ``/``.

    Rejects anything that is not ``https://`` unless it targets localhost,
    since the login exchange sends the password in the request body.

    Raises
    ------
    ValueError
        If the URL has no host or uses an insecure scheme for a remote host.
    """
    from urllib.parse import urlparse

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise ValueError(f"instance must be an http(s) URL with a host, got {url!r}")
    if parsed.scheme == "http" and parsed.hostname not in (
        "localhost",
        "127.0.0.1",
        "::1",
    ):
        raise ValueError(
            f"instance uses insecure HTTP for non-local host '{parsed.hostname}'. "
            "Use HTTPS to protect your credentials, or target localhost for testing."
        )
    return url if url.endswith("/") else url + "/"
