"""Upload orchestration logic."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import requests

from core.models import GitHubConfig, SyncRequest, SyncResult
from github_uploader.commit_builder import CommitBuilder, LoggingObserver, SyncObserver
from github_uploader.github_client import GitHubClient
from github_uploader.paths import build_sync_request


@dataclass
class SyncOverrides:
	files: List[str] = field(default_factory=list)
	message: Optional[str] = None
	working_dir: Optional[Path] = None


def prepare_request(overrides: SyncOverrides) -> SyncRequest:
	return build_sync_request(overrides.files, overrides.message, overrides.working_dir)


def run_sync(
	config: GitHubConfig,
	request: SyncRequest,
	observer: Optional[SyncObserver] = None,
	session: Optional[requests.Session] = None,
) -> SyncResult:
	"""Commit the files of ``request`` to the configured branch."""

	client = GitHubClient(config, session=session)
	builder = CommitBuilder(client, observer=observer or LoggingObserver())
	return builder.run(request)
