"""Image hosting (pict-rs) endpoints.

Lemmy fronts pict-rs at ``<instance>/pictrs/image``, outside the
``/api/v3`` prefix.  Uploads authenticate with the ``jwt`` cookie and
answer ``{"msg": "ok", "files": [{"file": "<name>", ...}]}``; the hosted
image is then served from ``<instance>/pictrs/image/<name>``.
"""

from __future__ import annotations

from typing import Any

from lemmybliss.errors import BlissUploadError

from .transport import LemmyTransport


class ImageAPI:
    """Synchronous wrapper for avatar/banner uploads and downloads.

    Parameters
    ----------
    transport:
        A :class:`LemmyTransport` bound to the instance receiving uploads.
    """

    def __init__(self, transport: LemmyTransport) -> None:
        self._transport = transport

    def upload(self, session: Any, data: bytes, content_type: str) -> str:
        """Upload *data* and return the hosted image URL.

        Raises
        ------
        BlissUploadError
            If the image host answers without ``msg == "ok"`` or without a
            file name.
        """
        url = session.instance + "pictrs/image"
        files = {"images[]": ("image", data, content_type)}
        response = self._transport.request(
            "POST", url,
            jwt=session.jwt,
            files=files,
            headers={"Cookie": f"jwt={session.jwt}"},
        )
        msg = response.get("msg")
        uploaded = response.get("files") or []
        if msg != "ok" or not uploaded or not uploaded[0].get("file"):
            raise BlissUploadError(
                message=f"Image upload rejected: msg={msg!r}",
                context={"msg": msg},
            )
        return f"{session.instance}pictrs/image/{uploaded[0]['file']}"

    def download(self, url: str | None) -> bytes | None:
        """Fetch the image at *url*; ``None`` when there is no URL."""
        if not url:
            return None
        return self._transport.request_bytes("GET", url)
