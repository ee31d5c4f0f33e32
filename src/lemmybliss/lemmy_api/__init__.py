"""lemmybliss.lemmy_api -- Lemmy HTTP transport and endpoint wrappers.

This sub-package provides:

* :mod:`.transport` -- HTTP transport with auth, retries and error mapping.
* :mod:`.retries` -- Per-request retry policy and backoff.
* :mod:`.rate_limit` -- Mutation pacing from the published rate limit.
* :mod:`.account` -- Login, site, settings, search and relation endpoints.
* :mod:`.images` -- pict-rs image upload and download.
"""

from __future__ import annotations

from .account import AccountAPI
from .images import ImageAPI
from .rate_limit import Pacer, interval_from_rate
from .retries import RetryPolicy
from .transport import LemmyTransport

__all__ = [
    "AccountAPI",
    "ImageAPI",
    "LemmyTransport",
    "Pacer",
    "RetryPolicy",
    "interval_from_rate",
]
