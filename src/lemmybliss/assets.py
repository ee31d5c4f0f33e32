"""Avatar and banner validation before upload.

Stored assets are raw bytes without a file name, so the MIME type is
sniffed from the leading magic bytes and checked against the configured
allowlist, together with the size limit.
"""

from __future__ import annotations

from lemmybliss.config import BlissConfig
from lemmybliss.errors import BlissAssetError

# Map of magic bytes to MIME types for sniffing.
_MAGIC_BYTES: list[tuple[bytes, str]] = [
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"RIFF", "image/webp"),  # RIFF....WEBP (check further)
    (b"BM", "image/bmp"),
]


def sniff_mime(data: bytes) -> str | None:
    """Detect the MIME type from the first bytes of image data."""
    for magic, mime in _MAGIC_BYTES:
        if data[:len(magic)] == magic:
            if magic == b"RIFF" and data[8:12] != b"WEBP":
                continue
            return mime
    return None


def validate_asset(kind: str, data: bytes, config: BlissConfig) -> str:
    """Validate an avatar/banner payload and return its MIME type.

    Raises
    ------
    BlissAssetError
        If the payload is empty, of a type outside
        ``config.asset_allowed_mimes``, or larger than
        ``config.asset_max_size_bytes``.
    """
    if not data:
        raise BlissAssetError(
            message=f"Stored {kind} is empty",
            context={"asset": kind, "size_bytes": 0},
        )

    mime_type = sniff_mime(data) or "application/octet-stream"
    if mime_type not in config.asset_allowed_mimes:
        raise BlissAssetError(
            message=f"Stored {kind} has unsupported type {mime_type!r}",
            context={
                "asset": kind,
                "detected_mime": mime_type,
                "allowed_mimes": config.asset_allowed_mimes,
            },
        )

    if len(data) > config.asset_max_size_bytes:
        raise BlissAssetError(
            message=(
                f"Stored {kind} is {len(data)} bytes, over the "
                f"{config.asset_max_size_bytes} byte limit"
            ),
            context={
                "asset": kind,
                "size_bytes": len(data),
                "max_bytes": config.asset_max_size_bytes,
            },
        )

    return mime_type
