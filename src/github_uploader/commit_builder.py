"""
Builds one commit from local files and moves a branch to it.

The pipeline runs strictly in order::

    RefRead -> TreeResolved -> BlobsUploaded -> TreeWritten -> CommitWritten -> RefUpdated

Each remote call is attempted once. A failure stops the run and is returned
in the :class:`SyncResult`; objects already created stay orphaned on the
remote, which is harmless in a content-addressed store.
"""

from typing import List, Optional, Tuple

from loguru import logger

from core.errors import LocalFileMissing, LocalFileUnreadable, RemoteError, SyncError
from core.models import (
    FileUpload,
    SyncRequest,
    SyncResult,
    SyncStage,
    SyncStatus,
    UploadedBlob,
)

from .github_client import GitHubClient


class SyncObserver:
    """Receives progress events from :class:`CommitBuilder`.

    All hooks are no-ops; subclasses override the ones they care about.
    """

    def stage_reached(self, stage: SyncStage, result: SyncResult) -> None:
        pass

    def file_skipped(self, upload: FileUpload, error: LocalFileMissing) -> None:
        pass

    def blob_uploaded(self, upload: FileUpload, blob: UploadedBlob) -> None:
        pass

    def nothing_to_sync(self, result: SyncResult) -> None:
        pass

    def failed(self, stage: SyncStage, error: SyncError) -> None:
        pass


class LoggingObserver(SyncObserver):
    """Narrates a run through loguru."""

    def stage_reached(self, stage: SyncStage, result: SyncResult) -> None:
        if stage == SyncStage.REF_READ:
            logger.info(f"Branch head is {result.parent_sha}")
        elif stage == SyncStage.TREE_RESOLVED:
            logger.info(f"Base tree is {result.base_tree_sha}")
        elif stage == SyncStage.BLOBS_UPLOADED:
            logger.info(f"Uploaded {len(result.uploaded)} blob(s)")
        elif stage == SyncStage.TREE_WRITTEN:
            logger.info(f"Created tree {result.tree_sha}")
        elif stage == SyncStage.COMMIT_WRITTEN:
            logger.info(f"Created commit {result.commit_sha}")
        elif stage == SyncStage.REF_UPDATED:
            logger.success(f"Branch now points at {result.commit_sha}")

    def file_skipped(self, upload: FileUpload, error: LocalFileMissing) -> None:
        logger.warning(f"Skipping {upload.local_path}: file not found")

    def blob_uploaded(self, upload: FileUpload, blob: UploadedBlob) -> None:
        logger.info(f"Uploaded {upload.local_path} -> {blob.remote_path} ({blob.sha[:7]})")

    def nothing_to_sync(self, result: SyncResult) -> None:
        logger.warning("Nothing to sync: none of the given files exist")

    def failed(self, stage: SyncStage, error: SyncError) -> None:
        logger.error(f"Upload failed while reaching {stage.value}: {error}")


def plan_sync(request: SyncRequest) -> Tuple[List[FileUpload], List[FileUpload]]:
    """Split a request into files that exist and files that would be skipped."""
    present = [upload for upload in request.files if upload.local_path.is_file()]
    missing = [upload for upload in request.files if not upload.local_path.is_file()]
    return present, missing


class CommitBuilder:
    """Runs the ref -> blobs -> tree -> commit -> ref sequence against one branch."""

    def __init__(self, client: GitHubClient, branch: Optional[str] = None,
                 observer: Optional[SyncObserver] = None):
        self.client = client
        self.branch = branch or client.config.branch
        self.observer = observer or SyncObserver()

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def read_ref(self) -> str:
        return self.client.get_branch_head(self.branch)

    def resolve_tree(self, commit_sha: str) -> str:
        return self.client.get_commit_tree(commit_sha)

    def upload_blob(self, upload: FileUpload) -> UploadedBlob:
        """
        Read one file and upload it.

        Raises:
            LocalFileMissing: The file vanished or is not a regular file
            LocalFileUnreadable: The file exists but reading it failed
        """
        try:
            content = upload.local_path.read_bytes()
        except (FileNotFoundError, IsADirectoryError) as e:
            raise LocalFileMissing(str(upload.local_path)) from e
        except OSError as e:
            raise LocalFileUnreadable(str(upload.local_path), e.strerror or str(e)) from e

        return UploadedBlob(remote_path=upload.remote_path, sha=self.client.create_blob(content))

    def upload_blobs(self, files: List[FileUpload], skipped: List[str]) -> List[UploadedBlob]:
        """Upload files one at a time, in order. Missing files are appended to ``skipped``."""
        blobs = []
        for upload in files:
            try:
                blob = self.upload_blob(upload)
            except LocalFileMissing as e:
                skipped.append(str(upload.local_path))
                self.observer.file_skipped(upload, e)
                continue
            blobs.append(blob)
            self.observer.blob_uploaded(upload, blob)
        return blobs

    def write_tree(self, base_tree: str, blobs: List[UploadedBlob]) -> str:
        return self.client.create_tree(base_tree, blobs)

    def write_commit(self, message: str, tree_sha: str, parent_sha: str) -> str:
        return self.client.create_commit(message, tree_sha, [parent_sha])

    def update_ref(self, commit_sha: str) -> str:
        return self.client.update_ref(self.branch, commit_sha, force=False)

    # ------------------------------------------------------------------

    def run(self, request: SyncRequest) -> SyncResult:
        """
        Commit every existing file in ``request`` to the branch.

        Returns:
            SyncResult; ``status`` is ``failed`` when any remote call failed
            or an existing file could not be read
        """
        result = SyncResult(status=SyncStatus.COMMITTED, stage=SyncStage.START)

        pending, missing = plan_sync(request)
        for upload in missing:
            result.skipped.append(str(upload.local_path))
            self.observer.file_skipped(upload, LocalFileMissing(str(upload.local_path)))
        if not pending:
            return self._nothing_to_sync(result)

        stage = SyncStage.REF_READ
        try:
            result.parent_sha = self.read_ref()
            self._reach(result, stage)

            stage = SyncStage.TREE_RESOLVED
            result.base_tree_sha = self.resolve_tree(result.parent_sha)
            self._reach(result, stage)

            stage = SyncStage.BLOBS_UPLOADED
            result.uploaded = self.upload_blobs(pending, result.skipped)
            if not result.uploaded:
                return self._nothing_to_sync(result)
            self._reach(result, stage)

            stage = SyncStage.TREE_WRITTEN
            result.tree_sha = self.write_tree(result.base_tree_sha, result.uploaded)
            self._reach(result, stage)

            stage = SyncStage.COMMIT_WRITTEN
            result.commit_sha = self.write_commit(request.message, result.tree_sha, result.parent_sha)
            self._reach(result, stage)

            stage = SyncStage.REF_UPDATED
            self.update_ref(result.commit_sha)
            self._reach(result, stage)
        except (RemoteError, LocalFileUnreadable) as e:
            result.status = SyncStatus.FAILED
            result.stage = SyncStage.FAILED
            result.failed_stage = stage
            result.error = e
            self.observer.failed(stage, e)

        return result

    def _reach(self, result: SyncResult, stage: SyncStage) -> None:
        result.stage = stage
        self.observer.stage_reached(stage, result)

    def _nothing_to_sync(self, result: SyncResult) -> SyncResult:
        result.status = SyncStatus.NOTHING_TO_SYNC
        self.observer.nothing_to_sync(result)
        return result
