import base64
import threading
import time
from typing import Any
from urllib.parse import quote

import requests

from ..config import Config
from ..validators import validate_branch_name, validate_repo_path


class GitHubAPIError(Exception):
    """A GitHub REST call returned a non-2xx status.

    Attributes:
        status_code: HTTP status code.
        message: ``message`` field of the error body, or the reason phrase.
    """

    def __init__(self, status_code: int, message: str):
        super().__init__(f"GitHub API error {status_code}: {message}")
        self.status_code = status_code
        self.message = message

    @property
    def is_precondition_failure(self) -> bool:
        """True when the expected blob SHA no longer matches the remote."""
        if self.status_code == 409:
            return True
        return self.status_code == 422 and "sha" in self.message.lower()


class GitHubClient:
    """Minimal GitHub REST client for the contents and git-data APIs.

    Every request disables HTTP caching and carries a cache-busting query
    parameter, so tree listings always reflect the current branch tip.
    """

    def __init__(self, config: Config):
        self.config = config
        self._thread_local = threading.local()
        self.api_url = config.api_url.rstrip("/")

    @property
    def session(self) -> requests.Session:
        """The current thread's session."""
        return self._get_session()

    def _get_session(self) -> requests.Session:
        if not hasattr(self._thread_local, "session"):
            self._thread_local.session = self._create_session()
        return self._thread_local.session

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
                "Cache-Control": "no-cache, no-store",
                "Pragma": "no-cache",
            }
        )
        if self.config.token:
            session.headers["Authorization"] = f"Bearer {self.config.token}"
        return session

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """
        Make a REST request and return the decoded JSON body.

        Raises:
            GitHubAPIError: If the response status is not 2xx.
        """
        query = dict(params or {})
        query["_"] = int(time.time() * 1000)
        response = self._get_session().request(
            method,
            f"{self.api_url}{path}",
            params=query,
            json=json,
            timeout=(10, self.config.timeout),
        )
        if not response.ok:
            try:
                message = response.json().get("message", response.reason)
            except ValueError:
                message = response.reason or "Unknown error"
            raise GitHubAPIError(response.status_code, str(message))
        if not response.content:
            return None
        return response.json()

    @staticmethod
    def _contents_path(owner: str, repo: str, repo_path: str) -> str:
        ok, reason = validate_repo_path(repo_path)
        if not ok:
            raise ValueError(reason)
        return f"/repos/{owner}/{repo}/contents/{quote(repo_path)}"

    def validate_connection(self) -> str:
        """
        Check the token by fetching the authenticated user.
        Returns the login name.
        """
        data = self._request("GET", "/user")
        return str(data.get("login", ""))

    def get_branch_tip(self, owner: str, repo: str, branch: str) -> str:
        """
        Return the commit SHA at the tip of *branch*.

        Raises:
            ValueError: If the branch name is invalid
            GitHubAPIError: If the branch does not exist (404)
        """
        ok, reason = validate_branch_name(branch)
        if not ok:
            raise ValueError(reason)
        data = self._request(
            "GET", f"/repos/{owner}/{repo}/git/ref/heads/{quote(branch)}"
        )
        return data["object"]["sha"]

    def get_tree(
        self, owner: str, repo: str, commit: str, recursive: bool = True
    ) -> dict[str, Any]:
        """
        Return the tree of *commit*.

        Returns:
            Dict with ``tree`` (list of ``{path, type, sha}``) and
            ``truncated`` (bool).
        """
        params = {"recursive": "1"} if recursive else None
        data = self._request(
            "GET", f"/repos/{owner}/{repo}/git/trees/{commit}", params=params
        )
        return {
            "tree": [
                {
                    "path": item["path"],
                    "type": item["type"],
                    "sha": item["sha"],
                }
                for item in data.get("tree", [])
            ],
            "truncated": bool(data.get("truncated", False)),
        }

    def get_file_content(
        self, owner: str, repo: str, repo_path: str, ref: str
    ) -> bytes:
        """
        Download the bytes of a file at *ref*.

        Files above the contents API size limit come back without inline
        content; those are fetched through the blob API by SHA.

        Raises:
            ValueError: If *repo_path* names a directory
            GitHubAPIError: If the file does not exist
        """
        data = self._request(
            "GET",
            self._contents_path(owner, repo, repo_path),
            params={"ref": ref},
        )
        if isinstance(data, list) or data.get("type") != "file":
            raise ValueError(f"Not a file: {repo_path}")
        if data.get("encoding") == "base64" and data.get("content") is not None:
            return base64.b64decode(data["content"])
        blob = self._request(
            "GET", f"/repos/{owner}/{repo}/git/blobs/{data['sha']}"
        )
        return base64.b64decode(blob["content"])

    def create_or_update_file(
        self,
        owner: str,
        repo: str,
        repo_path: str,
        message: str,
        content: bytes,
        branch: str,
        expected_hash: str | None = None,
    ) -> str:
        """
        Create or overwrite a file with a single commit.

        Args:
            content: Raw bytes; base64-encoded here.
            expected_hash: Blob SHA last observed remotely. Required by
                GitHub for updates; a stale value makes the write fail.

        Returns:
            The blob SHA of the written content.
        """
        body: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content).decode("ascii"),
            "branch": branch,
        }
        if expected_hash:
            body["sha"] = expected_hash
        data = self._request(
            "PUT", self._contents_path(owner, repo, repo_path), json=body
        )
        return data["content"]["sha"]

    def delete_file(
        self,
        owner: str,
        repo: str,
        repo_path: str,
        message: str,
        expected_hash: str,
        branch: str,
    ) -> None:
        """
        Delete a file with a single commit.

        Raises:
            GitHubAPIError: If *expected_hash* is stale or the file is gone
        """
        self._request(
            "DELETE",
            self._contents_path(owner, repo, repo_path),
            json={
                "message": message,
                "sha": expected_hash,
                "branch": branch,
            },
        )
