"""GitHub contents API storage client."""
import base64
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from taskdb.config import settings
from taskdb.core.exceptions import RemoteNotFoundError, RevisionConflictError, StorageError
from taskdb.integrations.storage import RemoteFile, StorageClient

logger = logging.getLogger(__name__)

PUBLIC_ACCESS_TOKEN = "public-access"


class GitHubStorageClient(StorageClient):
    """Reads and writes repository files; the revision token is the blob sha."""

    name = "github"

    def __init__(
        self,
        owner: Optional[str] = None,
        repo: Optional[str] = None,
        branch: Optional[str] = None,
        token: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.owner = owner or settings.GITHUB_OWNER
        self.repo = repo or settings.GITHUB_REPO
        self.branch = branch or settings.GITHUB_BRANCH
        self.token = token if token is not None else settings.GITHUB_TOKEN
        self.api_url = (api_url or settings.GITHUB_API_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.REMOTE_TIMEOUT_SECONDS
        self._transport = transport

    def _build_headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/vnd.github.v3+json"}
        if self.token and self.token != PUBLIC_ACCESS_TOKEN:
            headers["Authorization"] = f"token {self.token}"
        return headers

    def _contents_url(self, path: str) -> str:
        return f"/repos/{self.owner}/{self.repo}/contents/{quote(path.lstrip('/'))}"

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            message = response.json().get("message")
        except ValueError:
            message = None
        return f"GitHub API error {response.status_code}: {message or response.reason_phrase}"

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        async with httpx.AsyncClient(
            base_url=self.api_url,
            headers=self._build_headers(),
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            try:
                return await client.request(method, self._contents_url(path), **kwargs)
            except httpx.HTTPError as exc:
                raise StorageError(f"GitHub request failed for {path}: {exc}") from exc

    async def get_file(self, path: str) -> RemoteFile:
        response = await self._request("GET", path, params={"ref": self.branch})
        if response.status_code == 404:
            raise RemoteNotFoundError(f"Not Found: {path}")
        if response.is_error:
            raise StorageError(self._error_message(response))

        data = response.json()
        content = base64.b64decode(data.get("content") or "").decode("utf-8")
        return RemoteFile(content=content, revision=data.get("sha"))

    async def put_file(self, path: str, content: str, message: str, revision: Optional[str] = None) -> Optional[str]:
        body: Dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": self.branch,
        }
        if revision:
            body["sha"] = revision

        response = await self._request("PUT", path, json=body)
        if response.status_code == 409 or (
            response.status_code == 422 and "sha" in self._error_message(response).lower()
        ):
            raise RevisionConflictError(path, revision, self._error_message(response))
        if response.is_error:
            raise StorageError(self._error_message(response))

        new_revision = (response.json().get("content") or {}).get("sha")
        logger.info("Saved %s to %s/%s@%s", path, self.owner, self.repo, self.branch)
        return new_revision
