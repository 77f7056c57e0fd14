"""Typed exceptions raised while building and pushing a commit."""

from __future__ import annotations

from typing import Optional


class SyncError(RuntimeError):
	"""Base class for all upload errors."""


class ConfigError(SyncError):
	"""Configuration is missing or invalid (credential, repository, branch)."""


class LocalFileMissing(SyncError):
	"""A requested local file does not exist. Skipped, never fatal."""

	def __init__(self, path: str):
		self.path = path
		super().__init__(f"Local file not found: {path}")


class LocalFileUnreadable(SyncError):
	"""A local file exists but could not be read (permissions, I/O error)."""

	def __init__(self, path: str, reason: str):
		self.path = path
		self.reason = reason
		super().__init__(f"Cannot read local file {path}: {reason}")


# ---------------------------------------------------------------------------
# Remote API errors
# ---------------------------------------------------------------------------


class RemoteError(SyncError):
	"""Base class for failures talking to the GitHub API."""

	def __init__(self, message: str, status_code: Optional[int] = None, detail: Optional[str] = None):
		self.status_code = status_code
		self.detail = detail
		super().__init__(message)


class NetworkError(RemoteError):
	"""Transport level failure (DNS, connection reset, timeout)."""


class AuthError(RemoteError):
	"""Authentication or authorization failed (401/403)."""


class NotFoundError(RemoteError):
	"""Branch, commit or repository not found (404)."""


class ConflictError(RemoteError):
	"""Branch moved since it was read; the update is not a fast-forward."""

	def __init__(self, branch: str, commit_sha: str, detail: Optional[str] = None, status_code: Optional[int] = None):
		self.branch = branch
		self.commit_sha = commit_sha
		super().__init__(
			f"Branch '{branch}' moved during upload; refusing to overwrite it. "
			f"Commit {commit_sha[:12]} was created but is not referenced. Re-run to retry.",
			status_code=status_code,
			detail=detail,
		)


class ApiError(RemoteError):
	"""Any other non-2xx response, with the API's error detail."""
