"""Test core datamodels."""

from datetime import datetime

import pytest

from core.errors import ConfigError, ConflictError, RemoteError
from core.models import (
    GitHubConfig,
    SyncResult,
    SyncStage,
    SyncStatus,
    UploadedBlob,
    default_commit_message,
    split_repository,
)


def test_default_commit_message_uses_local_timestamp():
    assert default_commit_message(datetime(2024, 3, 5, 7, 8, 9)) == "Update files - 2024-03-05 07:08:09"


def test_split_repository():
    assert split_repository("octo/demo") == ("octo", "demo")
    for bad in ("octo", "octo/", "/demo", "a/b/c", ""):
        with pytest.raises(ConfigError):
            split_repository(bad)


def test_config_from_dict_defaults():
    config = GitHubConfig.from_dict({"github": {"token": "t", "repository": "octo/demo"}})

    assert config.branch == "main"
    assert config.api_base_url == "https://api.github.com"
    assert config.timeout is None
    assert config.repository == "octo/demo"


def test_config_is_immutable():
    config = GitHubConfig(token="t", owner="octo", repo="demo")
    with pytest.raises(AttributeError):
        config.branch = "dev"


def test_commit_url_public_and_enterprise():
    public = GitHubConfig(token="t", owner="octo", repo="demo")
    enterprise = GitHubConfig.from_dict({"github": {
        "token": "t",
        "repository": "octo/demo",
        "api_base_url": "https://git.example.com/api/v3/",
        "timeout": "15",
    }})

    assert public.commit_url("abc") == "https://github.com/octo/demo/commit/abc"
    assert enterprise.api_base_url == "https://git.example.com/api/v3"
    assert enterprise.commit_url("abc") == "https://git.example.com/octo/demo/commit/abc"
    assert enterprise.timeout == 15.0


def test_uploaded_blob_tree_entry():
    entry = UploadedBlob(remote_path="sub/app.js", sha="f00").to_tree_entry()
    assert entry == {"path": "sub/app.js", "mode": "100644", "type": "blob", "sha": "f00"}


def test_sync_result_orphaned_commit():
    ok = SyncResult(status=SyncStatus.COMMITTED, stage=SyncStage.REF_UPDATED, commit_sha="c1")
    failed = SyncResult(
        status=SyncStatus.FAILED,
        stage=SyncStage.FAILED,
        failed_stage=SyncStage.REF_UPDATED,
        commit_sha="c2",
        error=ConflictError("main", "c2"),
    )

    assert ok.ok and ok.orphaned_commit is None
    assert not failed.ok and failed.orphaned_commit == "c2"


def test_conflict_error_is_remote_error():
    error = ConflictError("main", "0123456789abcdef", detail="Update is not a fast forward", status_code=422)

    assert isinstance(error, RemoteError)
    assert error.branch == "main"
    assert "0123456789ab" in str(error)
