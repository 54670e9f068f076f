"""Remote document client backed by the GitHub Contents API."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx
from pydantic import ValidationError as PydanticValidationError

from catalogsync.adapters.http_resilience import ResilientClient
from catalogsync.config import ConfigurationError, get_github_config
from catalogsync.domain.errors import NotConfiguredError, RemoteError
from catalogsync.domain.ports import CommitRef, RemoteDocument, RemoteDocumentClient

from .schema import ContentFile, ErrorResponse, WriteResponse, encode_content

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from catalogsync.config import GitHubConfig, ResilienceConfig

log = getLogger(__name__)

RAW_MEDIA_TYPE = "application/vnd.github.raw+json"


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def _error_message(response: httpx.Response) -> str:
    try:
        return ErrorResponse.model_validate(response.json()).message or response.reason_phrase
    except (ValueError, PydanticValidationError):
        return response.reason_phrase


def _raise_for_status(response: httpx.Response, *, action: str, path: str) -> None:
    status = response.status_code
    if status < 400:
        return
    if status == 401:
        raise RemoteError(
            "GitHub rejected the token (401); check CATALOGSYNC_GITHUB_TOKEN",
            status_code=status,
        )
    if status == 409:
        raise RemoteError(
            f"Conflict while trying to {action} {path}: it changed remotely, reload and retry",
            status_code=status,
        )
    raise RemoteError(
        f"GitHub could not {action} {path} ({status}): {_error_message(response)}",
        status_code=status,
    )


def _commit_ref(response: httpx.Response, *, action: str, path: str) -> CommitRef:
    try:
        payload = WriteResponse.model_validate(response.json())
    except (ValueError, PydanticValidationError) as exc:
        raise RemoteError(f"Unexpected GitHub response to {action} {path}: {exc}") from exc
    return CommitRef(
        sha=payload.commit.sha,
        url=payload.commit.html_url,
        content_sha=payload.content.sha if payload.content else None,
    )


@dataclass(slots=True)
class GitHubContentsClient:
    """Reads and writes repository files on one branch.

    Asset writes overwrite whatever is there. Document commits can pass the blob
    sha read at reload as ``base_sha``, and GitHub then rejects the write with a
    409 if another commit changed the file in between.
    """

    config: GitHubConfig | None = None
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    @property
    def settings(self) -> GitHubConfig:
        """Configuration, read from the environment on first use."""

        if self.config is None:
            self.config = get_github_config()
        return self.config

    def is_configured(self) -> bool:
        try:
            return self.settings.has_token
        except ConfigurationError as exc:
            log.debug("GitHub remote is not configured: %s", exc)
            return False

    @property
    def api_url(self) -> str:
        return (self.settings.resilience.base_url or "https://api.github.com").rstrip("/")

    def contents_url(self, path: str) -> str:
        return (
            f"{self.api_url}/repos/{self.settings.owner}/{self.settings.repository}"
            f"/contents/{quote(path.lstrip('/'))}"
        )

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self.settings.token:
            headers["Authorization"] = f"Bearer {self.settings.token}"
        if extra:
            headers.update(extra)
        return headers

    def _require_token(self) -> None:
        if not self.is_configured():
            raise NotConfiguredError(
                "No GitHub token configured; set CATALOGSYNC_GITHUB_TOKEN to publish"
            )

    async def fetch_document(self, path: str) -> RemoteDocument | None:
        async with self.client_factory(self.settings.resilience) as client:
            current = await self._get_file(client, path, action="read")
            if current is None:
                return None
            if current.is_inline:
                try:
                    text = current.decode().decode("utf-8")
                except (ValueError, UnicodeDecodeError) as exc:
                    raise RemoteError(f"Could not decode {path}: {exc}") from exc
            else:
                text = await self._get_raw(client, path)
        log.info("Fetched %s (sha %s)", path, current.sha)
        return RemoteDocument(text=text, sha=current.sha)

    async def upload_asset(self, path: str, content: bytes) -> CommitRef:
        self._require_token()
        ref = await self._put(path, content, message=f"Upload image {path.rsplit('/', 1)[-1]}")
        log.info("Uploaded %s (%s bytes)", path, len(content))
        return ref

    async def delete_asset(self, path: str, message: str) -> None:
        self._require_token()
        async with self.client_factory(self.settings.resilience) as client:
            current = await self._get_file(client, path, action="delete")
            if current is None:
                log.info("%s is already gone", path)
                return
            body = {"message": message, "sha": current.sha, "branch": self.settings.branch}
            response = await self._call(
                client.delete(self.contents_url(path), json=body, headers=self._headers()),
                action="delete",
                path=path,
            )
            if response.status_code == 404:
                return
            _raise_for_status(response, action="delete", path=path)
        log.info("Deleted %s", path)

    async def commit_document(
        self, path: str, content: str, message: str, *, base_sha: str | None = None
    ) -> CommitRef:
        self._require_token()
        ref = await self._put(path, content.encode("utf-8"), message=message, base_sha=base_sha)
        log.info("Committed %s as %s", path, ref.sha)
        return ref

    async def _put(
        self, path: str, data: bytes, *, message: str, base_sha: str | None = None
    ) -> CommitRef:
        async with self.client_factory(self.settings.resilience) as client:
            body: dict[str, str] = {
                "message": message,
                "content": encode_content(data),
                "branch": self.settings.branch,
            }
            if base_sha is not None:
                body["sha"] = base_sha
            else:
                current = await self._get_file(client, path, action="update")
                if current is not None:
                    body["sha"] = current.sha
            response = await self._call(
                client.put(self.contents_url(path), json=body, headers=self._headers()),
                action="write",
                path=path,
            )
            _raise_for_status(response, action="write", path=path)
            return _commit_ref(response, action="write", path=path)

    async def _get_file(
        self, client: ResilientClient, path: str, *, action: str
    ) -> ContentFile | None:
        response = await self._call(
            client.get(
                self.contents_url(path),
                params={"ref": self.settings.branch},
                headers=self._headers(),
            ),
            action=action,
            path=path,
        )
        if response.status_code == 404:
            return None
        _raise_for_status(response, action=action, path=path)
        try:
            return ContentFile.model_validate(response.json())
        except (ValueError, PydanticValidationError) as exc:
            raise RemoteError(f"{path} is not a file: {exc}") from exc

    async def _get_raw(self, client: ResilientClient, path: str) -> str:
        response = await self._call(
            client.get(
                self.contents_url(path),
                params={"ref": self.settings.branch},
                headers=self._headers({"Accept": RAW_MEDIA_TYPE}),
            ),
            action="read",
            path=path,
        )
        _raise_for_status(response, action="read", path=path)
        return response.text

    @staticmethod
    async def _call(
        pending: Awaitable[httpx.Response], *, action: str, path: str
    ) -> httpx.Response:
        try:
            return await pending
        except httpx.HTTPError as exc:
            raise RemoteError(f"Could not {action} {path}: {exc}") from exc


if TYPE_CHECKING:
    _client_check: RemoteDocumentClient = GitHubContentsClient()
