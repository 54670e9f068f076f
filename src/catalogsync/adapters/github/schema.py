"""Pydantic models describing the GitHub Contents API payloads."""

from __future__ import annotations

import base64
import binascii

from pydantic import BaseModel, ConfigDict, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class GitHubBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ContentFile(GitHubBaseModel):
    """``GET /repos/{owner}/{repo}/contents/{path}`` for a single file."""

    type: str = "file"
    name: str
    path: str
    sha: str
    size: int = 0
    encoding: str | None = None
    content: str | None = None
    download_url: str | None = None

    _normalize_content = field_validator("content", "encoding", mode="before")(_blank_to_none)

    @property
    def is_inline(self) -> bool:
        # Files above 1 MB come back with ``encoding: "none"`` and no content.
        return self.encoding == "base64" and self.content is not None

    def decode(self) -> bytes:
        if not self.is_inline or self.content is None:
            raise ValueError(f"{self.path} has no inline base64 content")
        try:
            return base64.b64decode(self.content.replace("\n", ""), validate=True)
        except binascii.Error as exc:
            raise ValueError(f"{self.path} has malformed base64 content") from exc


class CommitPayload(GitHubBaseModel):
    sha: str | None = None
    html_url: str | None = None
    message: str | None = None


class ContentReference(GitHubBaseModel):
    path: str | None = None
    sha: str | None = None


class WriteResponse(GitHubBaseModel):
    """Response of a create/update (``PUT``) or delete (``DELETE``) on a path."""

    content: ContentReference | None = None
    commit: CommitPayload


class ErrorResponse(GitHubBaseModel):
    message: str = ""
    documentation_url: str | None = None


def encode_content(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")
