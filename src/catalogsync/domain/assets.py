"""Image assets attached to staged changes."""

from __future__ import annotations

import mimetypes
import re
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import PurePath
from typing import Final

from .errors import AssetError

ACCEPTED_MEDIA_TYPES: Final[frozenset[str]] = frozenset(
    {"image/jpeg", "image/png", "image/gif", "image/webp"}
)
MAX_ASSET_BYTES: Final[int] = 5 * 1024 * 1024

_WHITESPACE = re.compile(r"\s+")
_UNSAFE = re.compile(r"[^a-z0-9\-_]")
_DASHES = re.compile(r"-+")


@dataclass(frozen=True, slots=True)
class AssetUpload:
    """An image chosen by the operator, not yet stored anywhere."""

    filename: str
    content: bytes
    media_type: str

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(cls, path: str | PurePath, content: bytes) -> AssetUpload:
        media_type, _ = mimetypes.guess_type(str(path))
        return cls(
            filename=PurePath(path).name,
            content=content,
            media_type=media_type or "application/octet-stream",
        )


def validate_asset(asset: AssetUpload) -> None:
    if asset.media_type not in ACCEPTED_MEDIA_TYPES:
        accepted = ", ".join(sorted(ACCEPTED_MEDIA_TYPES))
        raise AssetError(
            f"Unsupported image type {asset.media_type!r} for {asset.filename} "
            f"(accepted: {accepted})"
        )
    if asset.size > MAX_ASSET_BYTES:
        raise AssetError(
            f"{asset.filename} is {asset.size} bytes, the limit is {MAX_ASSET_BYTES} bytes"
        )


def sanitize_asset_name(filename: str, *, now: datetime | None = None) -> str:
    """Return a repository-safe asset key with a millisecond suffix.

    ``"Red Shoe (1).JPG"`` becomes ``"red-shoe-1_<ms>.jpg"``.
    """

    stem, dot, extension = filename.rpartition(".")
    if not dot:
        stem, extension = filename, ""
    name = _WHITESPACE.sub("-", stem.lower())
    name = _UNSAFE.sub("", name)
    name = _DASHES.sub("-", name).strip("-") or "asset"
    extension = _UNSAFE.sub("", extension.lower())
    moment = now or datetime.now(UTC)
    stamp = int(moment.timestamp() * 1000)
    return f"{name}_{stamp}.{extension}" if extension else f"{name}_{stamp}"


def is_remote_url(ref: str) -> bool:
    return ref.startswith(("http://", "https://"))
