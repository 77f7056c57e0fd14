"""Mapping between local file arguments and repository paths."""

import os
import posixpath
from pathlib import Path, PureWindowsPath
from typing import Dict, Iterable, Optional

from loguru import logger

from core.models import FileUpload, SyncRequest, default_commit_message


def _is_absolute(raw: str) -> bool:
    return os.path.isabs(raw) or PureWindowsPath(raw).is_absolute()


def remote_path_for(raw: str) -> str:
    """
    Compute the repository path for a local path argument.

    Absolute paths are flattened to their base name. Relative paths keep
    their structure with separators normalised to ``/``. A relative path
    that climbs out of the working directory is flattened as well.

    >>> remote_path_for("/tmp/x/app.js")
    'app.js'
    >>> remote_path_for("sub\\\\dir\\\\app.js")
    'sub/dir/app.js'
    """
    normalized = raw.replace("\\", "/")

    if _is_absolute(raw):
        return normalized.rstrip("/").rsplit("/", 1)[-1]

    cleaned = posixpath.normpath(normalized)
    if cleaned == ".." or cleaned.startswith("../"):
        return cleaned.rsplit("/", 1)[-1]
    return cleaned


def resolve_local_path(raw: str, working_dir: Path) -> Path:
    """Resolve a path argument against ``working_dir`` unless it is absolute."""
    if _is_absolute(raw):
        return Path(raw)
    return working_dir / raw.replace("\\", "/")


def build_sync_request(
    paths: Iterable[str],
    message: Optional[str] = None,
    working_dir: Optional[Path] = None,
) -> SyncRequest:
    """
    Build the transient request for one run.

    Args:
        paths: File arguments as given on the command line
        message: Commit message; a timestamped default is used when empty
        working_dir: Base for relative paths (defaults to the current directory)

    Returns:
        SyncRequest with one entry per distinct remote path, in argument order
    """
    base = Path(working_dir) if working_dir is not None else Path.cwd()
    files: Dict[str, FileUpload] = {}

    for raw in paths:
        remote_path = remote_path_for(raw)
        upload = FileUpload(local_path=resolve_local_path(raw, base), remote_path=remote_path)

        if remote_path in files:
            earlier = files[remote_path]
            # a missing file never displaces one that exists
            if earlier.local_path.is_file() and not upload.local_path.is_file():
                logger.warning(
                    f"{raw} maps to {remote_path}, already used by {earlier.local_path}; "
                    f"keeping {earlier.local_path} because {raw} does not exist"
                )
                continue
            # otherwise the later argument wins, as it would in the tree overlay
            logger.warning(
                f"{raw} maps to {remote_path}, already used by {earlier.local_path}; keeping {raw}"
            )
            del files[remote_path]
        files[remote_path] = upload

    return SyncRequest(
        files=list(files.values()),
        message=message or default_commit_message(),
        working_dir=base,
    )
