"""Core datamodels used across the uploader."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from .errors import ConfigError, SyncError

DEFAULT_API_BASE_URL = "https://api.github.com"
DEFAULT_BRANCH = "main"
DEFAULT_API_VERSION = "2022-11-28"
DEFAULT_USER_AGENT = "github-commit-uploader"

COMMIT_MESSAGE_PREFIX = "Update files"


# ---------------------------------------------------------------------------
# Configuration dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GitHubConfig:
	"""Connection settings, built once at startup and never mutated."""

	token: str
	owner: str
	repo: str
	branch: str = DEFAULT_BRANCH
	api_base_url: str = DEFAULT_API_BASE_URL
	timeout: Optional[float] = None
	api_version: str = DEFAULT_API_VERSION
	user_agent: str = DEFAULT_USER_AGENT

	@property
	def repository(self) -> str:
		return f"{self.owner}/{self.repo}"

	@property
	def web_base_url(self) -> str:
		"""Browser URL of the host, e.g. ``https://github.com``."""

		parsed = urlparse(self.api_base_url)
		if parsed.netloc == "api.github.com":
			return "https://github.com"
		# GitHub Enterprise serves the API under /api/v3 on the web host
		return f"{parsed.scheme}://{parsed.netloc}"

	def commit_url(self, sha: str) -> str:
		return f"{self.web_base_url}/{self.owner}/{self.repo}/commit/{sha}"

	@staticmethod
	def from_dict(payload: Dict[str, Any]) -> "GitHubConfig":
		section = payload.get("github", {}) or {}
		if not isinstance(section, dict):
			raise ConfigError("'github' section must be a mapping")

		owner, repo = split_repository(section.get("repository") or "")
		timeout = section.get("timeout")
		try:
			timeout = float(timeout) if timeout not in (None, "") else None
		except (TypeError, ValueError) as exc:
			raise ConfigError(f"Timeout must be a number of seconds, got: '{timeout}'") from exc

		return GitHubConfig(
			token=section.get("token") or "",
			owner=owner,
			repo=repo,
			branch=section.get("branch") or DEFAULT_BRANCH,
			api_base_url=(section.get("api_base_url") or DEFAULT_API_BASE_URL).rstrip("/"),
			timeout=timeout,
		)


def split_repository(repository: str) -> tuple[str, str]:
	"""Split ``owner/repo`` into its two parts."""

	parts = repository.strip().split("/")
	if len(parts) != 2 or not all(parts):
		raise ConfigError(f"Repository must be in format 'owner/repo', got: '{repository}'")
	return parts[0], parts[1]


# ---------------------------------------------------------------------------
# Request data models
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FileUpload:
	"""One local file and the path it should get in the repository."""

	local_path: Path
	remote_path: str


@dataclass
class SyncRequest:
	files: List[FileUpload]
	message: str
	working_dir: Path


def default_commit_message(now: Optional[datetime] = None) -> str:
	"""Return ``Update files - <local timestamp>``."""

	moment = now or datetime.now()
	return f"{COMMIT_MESSAGE_PREFIX} - {moment.strftime('%Y-%m-%d %H:%M:%S')}"


# ---------------------------------------------------------------------------
# Runtime data models
# ---------------------------------------------------------------------------


class SyncStage(str, Enum):
	"""Pipeline states, in the order they are reached."""

	START = "start"
	REF_READ = "ref_read"
	TREE_RESOLVED = "tree_resolved"
	BLOBS_UPLOADED = "blobs_uploaded"
	TREE_WRITTEN = "tree_written"
	COMMIT_WRITTEN = "commit_written"
	REF_UPDATED = "ref_updated"
	FAILED = "failed"


class SyncStatus(str, Enum):
	COMMITTED = "committed"
	NOTHING_TO_SYNC = "nothing_to_sync"
	FAILED = "failed"


@dataclass(frozen=True)
class UploadedBlob:
	remote_path: str
	sha: str

	def to_tree_entry(self) -> Dict[str, str]:
		return {
			"path": self.remote_path,
			"mode": "100644",
			"type": "blob",
			"sha": self.sha,
		}


@dataclass
class SyncResult:
	"""Outcome of one run.

	``stage`` is the terminal state reached. On failure it is
	:attr:`SyncStage.FAILED` and ``failed_stage`` names the step that
	was being attempted.
	"""

	status: SyncStatus
	stage: SyncStage
	parent_sha: Optional[str] = None
	base_tree_sha: Optional[str] = None
	tree_sha: Optional[str] = None
	commit_sha: Optional[str] = None
	uploaded: List[UploadedBlob] = field(default_factory=list)
	skipped: List[str] = field(default_factory=list)
	error: Optional[SyncError] = None
	failed_stage: Optional[SyncStage] = None

	@property
	def ok(self) -> bool:
		return self.status != SyncStatus.FAILED

	@property
	def orphaned_commit(self) -> Optional[str]:
		"""Commit created by a run whose ref update never happened."""

		if self.status == SyncStatus.FAILED:
			return self.commit_sha
		return None
