"""
GitHub Uploader Module
Commits local files to a GitHub repository through the Git Data API.
"""

from .commit_builder import CommitBuilder, LoggingObserver, SyncObserver, plan_sync
from .github_client import GitHubClient
from .paths import build_sync_request, remote_path_for

__all__ = [
    'CommitBuilder',
    'GitHubClient',
    'LoggingObserver',
    'SyncObserver',
    'build_sync_request',
    'plan_sync',
    'remote_path_for',
]
