"""Command-line entry for the uploader."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from loguru import logger

from core.config_loader import load_github_config
from core.errors import ConfigError
from core.models import SyncStatus
from github_uploader.commit_builder import plan_sync

from .pipeline import SyncOverrides, prepare_request, run_sync

LOG_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}"


def build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(
		prog="github-commit-upload",
		description="Commit local files to a GitHub branch through the Git Data API",
	)
	parser.add_argument("files", nargs="*", help="Files to upload (relative paths keep their structure)")
	parser.add_argument("-m", "--message", help="Commit message (default: 'Update files - <timestamp>')")
	parser.add_argument("--config", help="Path to YAML config (default: config/github.yaml if present)")
	parser.add_argument("--repo", dest="repository", help="Target repository as owner/repo")
	parser.add_argument("--branch", help="Target branch")
	parser.add_argument("-C", "--cwd", type=Path, help="Resolve relative paths against this directory")
	parser.add_argument("--dry-run", action="store_true", help="Show what would be uploaded without calling GitHub")
	parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
	parser.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")
	return parser


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
	level = "DEBUG" if verbose else "WARNING" if quiet else "INFO"
	logger.remove()
	logger.add(sys.stderr, level=level, format=LOG_FORMAT)


def main(argv: list[str] | None = None) -> int:
	parser = build_parser()
	args = parser.parse_args(argv)

	if not args.files:
		parser.print_usage()
		return 0

	configure_logging(verbose=args.verbose, quiet=args.quiet)

	request = prepare_request(
		SyncOverrides(files=args.files, message=args.message, working_dir=args.cwd)
	)

	if args.dry_run:
		present, missing = plan_sync(request)
		print(f"[INFO] Commit message: {request.message}")
		for upload in present:
			print(f"[INFO] Would upload {upload.local_path} -> {upload.remote_path}")
		for upload in missing:
			print(f"[WARN] Would skip {upload.local_path} (not found)")
		if not present:
			print("[INFO] Nothing to sync")
		return 0

	try:
		config = load_github_config(args.config, repository=args.repository, branch=args.branch)
	except ConfigError as e:
		logger.error(str(e))
		return 1

	result = run_sync(config, request)

	if result.status == SyncStatus.NOTHING_TO_SYNC:
		print("[INFO] Nothing to sync")
		return 0

	if not result.ok:
		print(f"[ERROR] Upload to {config.repository}@{config.branch} failed: {result.error}", file=sys.stderr)
		return 1

	print(f"[INFO] Committed {len(result.uploaded)} file(s) to {config.repository}@{config.branch}")
	if result.skipped:
		print(f"[INFO] Skipped {len(result.skipped)} missing file(s)")
	print(f"[INFO] Commit: {result.commit_sha}")
	print(f"[INFO] Tree: {result.tree_sha}")
	print(f"[INFO] URL: {config.commit_url(result.commit_sha)}")
	return 0


if __name__ == "__main__":
	raise SystemExit(main())
