"""Credential scrubbing for debug dumps.

The login body carries the account password and every authenticated call
carries the jwt, so anything printed by ``debug_dump_payload`` goes through
:func:`redact` first:

* a value whose key mentions ``password``, ``jwt``, ``token``, ``auth``,
  ``secret`` or ``cookie`` becomes ``"<redacted>"``;
* the session jwt is cut out of every string, as is anything following
  ``Bearer``;
* raw bytes (image uploads) become ``"<binary:N_bytes>"``.
"""

from __future__ import annotations

import re
from typing import Any

_SENSITIVE_KEY_PARTS = ("password", "jwt", "token", "auth", "secret", "cookie")

_BEARER_RE = re.compile(r"(Bearer\s+)\S+")


def _is_sensitive(key: Any) -> bool:
    return isinstance(key, str) and any(part in key.lower() for part in _SENSITIVE_KEY_PARTS)


def _scrub(text: str, secret: str | None) -> str:
    if secret and secret in text:
        # Keep the last four characters so two sessions can be told apart.
        hint = f"<redacted:...{secret[-4:]}>" if len(secret) > 4 else "<redacted>"
        text = text.replace(secret, hint)
    return _BEARER_RE.sub(r"\1<redacted>", text)


def _walk(node: Any, secret: str | None) -> Any:
    if isinstance(node, dict):
        return {
            key: "<redacted>" if value is not None and _is_sensitive(key) else _walk(value, secret)
            for key, value in node.items()
        }
    if isinstance(node, (list, tuple)):
        return [_walk(item, secret) for item in node]
    if isinstance(node, str):
        return _scrub(node, secret)
    if isinstance(node, (bytes, bytearray)):
        return f"<binary:{len(node)}_bytes>"
    return node


def redact(payload: dict, secret: str | None = None) -> dict:
    """Return a scrubbed copy of *payload*; the input is left untouched.

    Parameters
    ----------
    payload:
        A request body, query or header mapping.
    secret:
        The session jwt, removed wherever it occurs.

    Examples
    --------
    >>> redact({"username_or_email": "alice", "password": "hunter2"})
    {'username_or_email': 'alice', 'password': '<redacted>'}
    """
    return _walk(payload, secret)
