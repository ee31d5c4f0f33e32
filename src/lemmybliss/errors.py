"""Exceptions raised by lemmybliss.

All of them derive from :class:`BlissError` and carry a machine-readable
``code`` (an :class:`ErrorCode`), the ``message``, a ``context`` dict with
diagnostic detail and, when one error wraps another, the ``cause``.

Whether an error is fatal depends on where it surfaces.  An authentication
or network failure during login, pull, the settings push or the initial
live-state fetch aborts the operation; the same error raised while applying
one relation mutation is logged by the executor and the run moves on.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar


class ErrorCode(str, Enum):
    """Codes shared by exceptions and :class:`~lemmybliss.models.BlissWarning`."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTH_ERROR = "AUTH_ERROR"
    PERMISSION_ERROR = "PERMISSION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    RETRY_EXHAUSTED = "RETRY_EXHAUSTED"
    NETWORK_ERROR = "NETWORK_ERROR"
    PROFILE_NOT_FOUND = "PROFILE_NOT_FOUND"
    CORRUPT_FORMAT = "CORRUPT_FORMAT"
    AMBIGUOUS_OR_MISSING = "AMBIGUOUS_OR_MISSING"
    ASSET_ERROR = "ASSET_ERROR"
    UPLOAD_ERROR = "UPLOAD_ERROR"
    UNKNOWN_FIELD = "UNKNOWN_FIELD"


class BlissError(Exception):
    """Base class for every lemmybliss exception.

    Subclasses fix :attr:`default_code`; pass *code* only to override it.

    Parameters
    ----------
    message:
        What went wrong, suitable for showing to the user.
    context:
        Structured detail; the keys used by each subclass are listed in
        its docstring.
    cause:
        The exception this one wraps.  Also set as ``__cause__``.
    code:
        Overrides :attr:`default_code`.
    """

    default_code: ClassVar[ErrorCode] = ErrorCode.VALIDATION_ERROR

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
        *,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code: str = code if code is not None else self.default_code
        self.message = message
        self.context: dict[str, Any] = dict(context or {})
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __repr__(self) -> str:
        parts = [f"code={self.code!r}", f"message={self.message!r}"]
        if self.context:
            parts.append(f"context={self.context!r}")
        return f"{type(self).__name__}({', '.join(parts)})"


# -- remote API --------------------------------------------------------------

class BlissValidationError(BlissError):
    """Lemmy rejected a request (400 or another non-retryable 4xx), or a
    local argument such as a profile name is invalid.

    Context keys: ``status_code``, ``lemmy_error``, ``field``.
    """

    default_code = ErrorCode.VALIDATION_ERROR


class BlissAuthError(BlissError):
    """Login failed or the jwt was refused (401).

    Context keys: ``username``, ``instance``, ``status_code``.
    """

    default_code = ErrorCode.AUTH_ERROR


class BlissPermissionError(BlissError):
    """Lemmy refused the operation (403).

    Context keys: ``status_code``, ``operation``.
    """

    default_code = ErrorCode.PERMISSION_ERROR


class BlissNotFoundError(BlissError):
    """Lemmy answered 404.

    Context keys: ``status_code``, ``path``.
    """

    default_code = ErrorCode.NOT_FOUND


class BlissRetryExhaustedError(BlissError):
    """Every attempt at a request hit a retryable status.

    Context keys: ``attempts``, ``last_status_code``.
    """

    default_code = ErrorCode.RETRY_EXHAUSTED


class BlissNetworkError(BlissError):
    """Connection failure, timeout, or a success body that is not JSON.

    Context keys: ``url``, ``attempt``.
    """

    default_code = ErrorCode.NETWORK_ERROR


# -- snapshot store ----------------------------------------------------------

class BlissProfileNotFoundError(BlissError):
    """Nothing is stored under the requested profile name.

    Context keys: ``profile``, ``path``.
    """

    default_code = ErrorCode.PROFILE_NOT_FOUND


class BlissCorruptFormatError(BlissError):
    """A stored snapshot does not parse into a profile.

    Context keys: ``profile``, ``path``, ``reason``.
    """

    default_code = ErrorCode.CORRUPT_FORMAT


# -- reconciliation ----------------------------------------------------------

class BlissAmbiguousOrMissingError(BlissError):
    """Identity resolution found no exact match, or more than one.

    Context keys: ``kind``, ``name``, ``actor``, ``candidates``.
    """

    default_code = ErrorCode.AMBIGUOUS_OR_MISSING


# -- avatar / banner assets --------------------------------------------------

class BlissAssetError(BlissError):
    """A stored avatar or banner has the wrong type or is too large.

    Context keys: ``asset``, ``detected_mime``, ``size_bytes``, ``max_bytes``.
    """

    default_code = ErrorCode.ASSET_ERROR


class BlissUploadError(BlissError):
    """The image host refused an upload or returned an unexpected body.

    Context keys: ``status_code``, ``msg``.
    """

    default_code = ErrorCode.UPLOAD_ERROR
