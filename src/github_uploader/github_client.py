"""
GitHub client for the Git Data API.
Creates blobs, trees and commits and moves branch refs without a local clone.
"""

import base64
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests
from loguru import logger

from core.errors import (
    ApiError,
    AuthError,
    ConflictError,
    NetworkError,
    NotFoundError,
)
from core.models import GitHubConfig, UploadedBlob


class GitHubClient:
    """GitHub API client for low-level git object operations."""

    def __init__(self, config: GitHubConfig, session: Optional[requests.Session] = None):
        """
        Initialize GitHub client.

        Args:
            config: Immutable connection settings
            session: Optional session to send requests through
        """
        self.config = config
        self.session = session or requests.Session()

        self.repo_url = f"{config.api_base_url}/repos/{config.owner}/{config.repo}"
        self.headers = {
            "Authorization": f"Bearer {config.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": config.api_version,
            "User-Agent": config.user_agent,
        }

        logger.debug(f"GitHubClient initialized for {config.repository}")

    def _make_request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """
        Make one authenticated request to the GitHub API.

        There is no retry: every call is attempted exactly once.

        Args:
            method: HTTP method
            path: Path relative to the repository URL, e.g. ``/git/blobs``
            **kwargs: Additional request parameters

        Returns:
            Decoded JSON body

        Raises:
            NetworkError: Transport failure
            AuthError: 401/403
            NotFoundError: 404
            ApiError: Any other non-2xx status, or an undecodable body
        """
        url = f"{self.repo_url}{path}"
        logger.debug(f"{method} {url}")

        try:
            response = self.session.request(
                method, url, headers=self.headers, timeout=self.config.timeout, **kwargs
            )
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"{method} {url} failed: {e}") from e

        if response.status_code >= 400:
            raise self._error_for(method, url, response)

        try:
            return response.json()
        except ValueError as e:
            raise ApiError(
                f"{method} {url} returned a non-JSON body",
                status_code=response.status_code,
                detail=response.text[:200],
            ) from e

    @staticmethod
    def _detail(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:200]
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return str(body)[:200]

    def _error_for(self, method: str, url: str, response: requests.Response) -> Exception:
        status = response.status_code
        detail = self._detail(response)
        message = f"{method} {url} failed with HTTP {status}: {detail}"

        if status in (401, 403):
            return AuthError(message, status_code=status, detail=detail)
        if status == 404:
            return NotFoundError(message, status_code=status, detail=detail)
        return ApiError(message, status_code=status, detail=detail)

    @staticmethod
    def _ref_path(branch: str) -> str:
        # keep "/" between segments of names like feature/x
        return "/".join(quote(part, safe="") for part in branch.split("/"))

    def get_branch_head(self, branch: str) -> str:
        """
        Resolve a branch to the sha of the commit it points at.

        Args:
            branch: Branch name without ``refs/heads/``

        Returns:
            Commit sha
        """
        data = self._make_request("GET", f"/git/ref/heads/{self._ref_path(branch)}")
        # a prefix match returns a list of refs instead of one
        if not isinstance(data, dict):
            raise NotFoundError(f"Branch '{branch}' not found in {self.config.repository}")
        return data["object"]["sha"]

    def get_commit_tree(self, commit_sha: str) -> str:
        """Return the root tree sha of a commit."""
        data = self._make_request("GET", f"/git/commits/{commit_sha}")
        return data["tree"]["sha"]

    def create_blob(self, content: bytes) -> str:
        """
        Upload raw bytes as a blob.

        Args:
            content: File content, sent base64-encoded

        Returns:
            Blob sha
        """
        payload = {
            "content": base64.b64encode(content).decode("ascii"),
            "encoding": "base64",
        }
        data = self._make_request("POST", "/git/blobs", json=payload)
        return data["sha"]

    def create_tree(self, base_tree: str, blobs: List[UploadedBlob]) -> str:
        """
        Create a tree that overlays ``blobs`` on top of ``base_tree``.

        Returns:
            New tree sha
        """
        payload = {
            "base_tree": base_tree,
            "tree": [blob.to_tree_entry() for blob in blobs],
        }
        data = self._make_request("POST", "/git/trees", json=payload)
        return data["sha"]

    def create_commit(self, message: str, tree_sha: str, parents: List[str]) -> str:
        """Create a commit object and return its sha."""
        payload = {
            "message": message,
            "tree": tree_sha,
            "parents": list(parents),
        }
        data = self._make_request("POST", "/git/commits", json=payload)
        return data["sha"]

    def update_ref(self, branch: str, commit_sha: str, force: bool = False) -> str:
        """
        Move a branch to ``commit_sha``.

        With ``force=False`` GitHub rejects anything that is not a fast-forward.

        Returns:
            The sha the branch now points at

        Raises:
            ConflictError: The branch moved since it was read
        """
        payload = {"sha": commit_sha, "force": force}

        try:
            data = self._make_request(
                "PATCH", f"/git/refs/heads/{self._ref_path(branch)}", json=payload
            )
        except ApiError as e:
            if e.status_code == 409 or (
                e.status_code == 422 and "fast forward" in (e.detail or "").lower()
            ):
                raise ConflictError(
                    branch, commit_sha, detail=e.detail, status_code=e.status_code
                ) from e
            raise

        return data["object"]["sha"]
